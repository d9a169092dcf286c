"""Decode targets for language-model responses.

One model per call site. Field names follow the camelCase keys the prompts
ask for; Python code uses the snake_case attributes.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MonthlySummaryOutput(_ResponseModel):
    """Monthly narrative sections."""

    opening: str = Field(min_length=1)
    journey: str = Field(min_length=1)
    milestones: str | None = None
    closing_reflection: str = Field(min_length=1)


class YearlySummaryOutput(_ResponseModel):
    """Yearly narrative sections."""

    year_overview: str = Field(min_length=1)
    major_themes: str = Field(min_length=1)
    growth_patterns: str = Field(min_length=1)
    significant_milestones: str = Field(min_length=1)
    challenges: str | None = None
    future_insights: str = Field(min_length=1)


class ExtractedTopic(_ResponseModel):
    """One topic proposed by the model."""

    name: str
    days: list[int] = Field(default_factory=list)
    description: str = ""

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class TopicsWrapper(_ResponseModel):
    """``{"topics": [...]}`` shape of a topic response."""

    topics: list[ExtractedTopic]
