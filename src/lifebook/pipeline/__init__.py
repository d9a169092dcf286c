"""Monthly and yearly aggregation pipelines."""

from lifebook.pipeline.monthly import MonthlyAggregationPipeline, month_window
from lifebook.pipeline.yearly import YearlyAggregationPipeline, select_year_photos

__all__ = [
    "MonthlyAggregationPipeline",
    "YearlyAggregationPipeline",
    "month_window",
    "select_year_photos",
]
