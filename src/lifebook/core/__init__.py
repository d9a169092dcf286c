"""Core data models and the deterministic parts of aggregation.

Exports:
    - Day data: DayRecord, PhotoRecord, Mood
    - Statistics: StatisticsAggregator, longest_streak, MonthlyStats, YearlyStats
    - Selection: PhotoSelector, SelectionState, Topic, ThemedPhotoSelection
    - Artifacts: MonthlyPack, YearlySummary, GenerationMethod
    - Stores: EntryStore, InMemoryEntryStore, JsonEntryStore
"""

from lifebook.core.collaborators import (
    PhotoTagger,
    PhotoTags,
    SimpleTextTagger,
    TextAnalysis,
    TextTagger,
)
from lifebook.core.digest import DigestProcessor
from lifebook.core.models import (
    DailyEntryContext,
    DayRecord,
    GenerationMethod,
    Mood,
    MonthlyPack,
    MonthlyStats,
    PhotoRecord,
    StatsDecodeError,
    ThemedPhotoSelection,
    Topic,
    TopicSource,
    YearlyStats,
    YearlySummary,
)
from lifebook.core.narrative_text import NarrativeSections, compose_narrative, split_narrative
from lifebook.core.selection import PhotoSelector, SelectionState, score_photo
from lifebook.core.statistics import StatisticsAggregator, longest_streak
from lifebook.core.store import EntryStore, InMemoryEntryStore, JsonEntryStore

__all__ = [
    # Models
    "DailyEntryContext",
    "DayRecord",
    "GenerationMethod",
    "Mood",
    "MonthlyPack",
    "MonthlyStats",
    "PhotoRecord",
    "StatsDecodeError",
    "ThemedPhotoSelection",
    "Topic",
    "TopicSource",
    "YearlyStats",
    "YearlySummary",
    # Collaborators
    "PhotoTagger",
    "PhotoTags",
    "SimpleTextTagger",
    "TextAnalysis",
    "TextTagger",
    "DigestProcessor",
    # Aggregation
    "StatisticsAggregator",
    "longest_streak",
    "PhotoSelector",
    "SelectionState",
    "score_photo",
    # Narrative text
    "NarrativeSections",
    "compose_narrative",
    "split_narrative",
    # Stores
    "EntryStore",
    "InMemoryEntryStore",
    "JsonEntryStore",
]
