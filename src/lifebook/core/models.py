"""Core data models for Lifebook.

Models follow a tiered flow:
1. RAW DAY DATA (PhotoRecord, DayRecord)
2. DERIVED STATISTICS (MonthlyStats, YearlyStats)
3. SELECTION UNITS (Topic, ThemedPhotoSelection)
4. PERSISTED ARTIFACTS (MonthlyPack, YearlySummary)

Statistics are always recomputed wholesale from day records; nothing in
this module patches a stats value incrementally.
"""

from __future__ import annotations

import calendar
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

DateType = date

MAX_PHOTOS_PER_DAY = 4
MAX_KEYWORDS_PER_DAY = 20


# =============================================================================
# Exceptions
# =============================================================================


class StatsDecodeError(Exception):
    """A persisted stats blob could not be decoded.

    Attributes:
        key: Identifier of the artifact holding the blob (e.g. "2024-03").
        original_error: The underlying validation error.
    """

    def __init__(self, key: str, original_error: Exception | None = None) -> None:
        self.key = key
        self.original_error = original_error
        super().__init__(f"Stats for {key} could not be decoded")


# =============================================================================
# Enums
# =============================================================================


class Mood(str, Enum):
    """Mood tag attached to a day."""

    GREAT = "great"
    GOOD = "good"
    NEUTRAL = "neutral"
    CHALLENGING = "challenging"
    DIFFICULT = "difficult"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class GenerationMethod(str, Enum):
    """How a pack or summary narrative was produced."""

    AI = "ai"
    TEMPLATE = "template"


class TopicSource(str, Enum):
    """Which extraction strategy produced a topic."""

    AI = "ai"
    KEYWORD = "keyword"


# =============================================================================
# Day Data
# =============================================================================


class PhotoRecord(BaseModel):
    """A photo attached to a day, with tags from the photo tagging collaborator.

    Attributes:
        id: Stable identifier, unique across the whole store.
        file_reference: Opaque reference to the image file.
        captured_at: When the photo was taken, if known.
        detected_scenes: Scene labels, most confident first.
        has_faces: Whether any face was detected.
        quality_score: Aesthetic/technical quality in [0, 1].
        ocr_text: Text recognised in the image.
        caption: User-written caption.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    file_reference: str = ""
    captured_at: datetime | None = None
    detected_scenes: list[str] = Field(default_factory=list)
    has_faces: bool = False
    quality_score: float = Field(default=0.5, ge=0.0, le=1.0)
    ocr_text: str | None = None
    caption: str | None = None

    @property
    def is_tagged(self) -> bool:
        """True once the photo tagger has produced at least one scene."""
        return bool(self.detected_scenes)

    def describe(self) -> str | None:
        """Short description for prompts: the caption, else the top three scenes."""
        if self.caption and self.caption.strip():
            return self.caption.strip()
        if self.detected_scenes:
            return ", ".join(self.detected_scenes[:3])
        return None


class DayRecord(BaseModel):
    """Everything recorded for one calendar day.

    Keywords are derived (see DigestProcessor) and kept ordered and
    deduplicated; a day carries at most four photos.

    Example:
        >>> day = DayRecord(date=date(2024, 3, 5), mood=Mood.GOOD, keywords=["beach", "beach"])
        >>> day.keywords
        ['beach']
    """

    date: DateType
    text: str | None = None
    mood: Mood | None = None
    starred: bool = False
    keywords: list[str] = Field(default_factory=list)
    photos: list[PhotoRecord] = Field(default_factory=list)

    @field_validator("keywords")
    @classmethod
    def dedupe_keywords(cls, v: list[str]) -> list[str]:
        seen: set[str] = set()
        result: list[str] = []
        for keyword in v:
            keyword = keyword.strip()
            if keyword and keyword not in seen:
                seen.add(keyword)
                result.append(keyword)
        return result[:MAX_KEYWORDS_PER_DAY]

    @field_validator("photos")
    @classmethod
    def limit_photos(cls, v: list[PhotoRecord]) -> list[PhotoRecord]:
        if len(v) > MAX_PHOTOS_PER_DAY:
            raise ValueError(f"A day holds at most {MAX_PHOTOS_PER_DAY} photos, got {len(v)}")
        return v

    @property
    def day_of_month(self) -> int:
        return self.date.day

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())


class DailyEntryContext(BaseModel):
    """One day, flattened for inclusion in a language-model prompt."""

    day_of_month: int
    weekday: str
    text: str | None = None
    mood: str | None = None
    starred: bool = False
    keywords: list[str] = Field(default_factory=list)
    photo_descriptions: list[str] = Field(default_factory=list)

    TEXT_LIMIT: ClassVar[int] = 300

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_day(cls, day: DayRecord) -> "DailyEntryContext":
        descriptions = [d for d in (photo.describe() for photo in day.photos) if d]
        return cls(
            day_of_month=day.day_of_month,
            weekday=day.date.strftime("%A"),
            text=day.text.strip() if day.has_text else None,
            mood=day.mood.display_name if day.mood else None,
            starred=day.starred,
            keywords=day.keywords[:5],
            photo_descriptions=descriptions,
        )

    def formatted(self) -> str:
        """Render as a compact block, e.g. ``[Tuesday, Day 5 ⭐]`` plus detail lines."""
        star = " ⭐" if self.starred else ""
        lines = [f"[{self.weekday}, Day {self.day_of_month}{star}]"]
        if self.mood:
            lines.append(f"Mood: {self.mood}")
        if self.text:
            excerpt = self.text
            if len(excerpt) > self.TEXT_LIMIT:
                excerpt = excerpt[: self.TEXT_LIMIT] + "..."
            lines.append(f'Entry: "{excerpt}"')
        if self.photo_descriptions:
            lines.append(f"Photos: {'; '.join(self.photo_descriptions)}")
        if self.keywords:
            lines.append(f"Keywords: {', '.join(self.keywords)}")
        return "\n".join(lines)


# =============================================================================
# Statistics
# =============================================================================


def _ranked(counts: dict[str, int], limit: int | None = None) -> list[tuple[str, int]]:
    # Frequency descending, then alphabetical so ties are stable
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:limit] if limit is not None else ranked


class MonthlyStats(BaseModel):
    """Aggregate counts for one month of day records."""

    total_days: int = 0
    days_with_entries: int = 0
    total_photos: int = 0
    total_words: int = 0
    longest_streak: int = 0
    starred_days_count: int = 0
    top_themes: dict[str, int] = Field(default_factory=dict)
    mood_breakdown: dict[str, int] = Field(default_factory=dict)
    milestone_keywords: list[str] = Field(default_factory=list)

    def ranked_themes(self, limit: int | None = None) -> list[str]:
        return [name for name, _ in _ranked(self.top_themes, limit)]

    def dominant_mood(self) -> str | None:
        ranked = _ranked(self.mood_breakdown, 1)
        return ranked[0][0] if ranked else None

    @property
    def entry_ratio(self) -> float:
        if self.total_days == 0:
            return 0.0
        return self.days_with_entries / self.total_days


class YearlyStats(BaseModel):
    """Aggregate counts for one year, folded from monthly stats."""

    total_days: int = 365
    days_with_entries: int = 0
    total_photos: int = 0
    total_words: int = 0
    longest_streak: int = 0
    months_completed: int = 0
    top_themes: dict[str, int] = Field(default_factory=dict)
    mood_breakdown: dict[str, int] = Field(default_factory=dict)
    milestones: list[str] = Field(default_factory=list)

    def ranked_themes(self, limit: int | None = None) -> list[str]:
        return [name for name, _ in _ranked(self.top_themes, limit)]

    def dominant_mood(self) -> tuple[str, float] | None:
        """Most frequent mood and its share of all tagged days."""
        ranked = _ranked(self.mood_breakdown, 1)
        total = sum(self.mood_breakdown.values())
        if not ranked or total == 0:
            return None
        mood, count = ranked[0]
        return mood, count / total


# =============================================================================
# Selection Units
# =============================================================================


class Topic(BaseModel):
    """A named cluster of days, produced by topic extraction.

    Attributes:
        name: Short title of the theme.
        days: Day-of-month references. Empty for keyword topics.
        description: Caption text for the theme.
        source: Which strategy produced the topic.
    """

    name: str
    days: list[int] = Field(default_factory=list)
    description: str = ""
    source: TopicSource = TopicSource.AI


class ThemedPhotoSelection(BaseModel):
    """A theme bound to its chosen photo(s) and caption.

    The first photo is the primary one. Older persisted packs stored a
    single ``photo``; those are upgraded on load.
    """

    theme: str
    photos: list[PhotoRecord] = Field(default_factory=list)
    day_keywords: list[str] = Field(default_factory=list)
    description: str | None = None

    @model_validator(mode="before")
    @classmethod
    def upgrade_single_photo(cls, data: Any) -> Any:
        if isinstance(data, dict) and "photo" in data and "photos" not in data:
            data = dict(data)
            data["photos"] = [data.pop("photo")]
        return data

    @property
    def primary_photo(self) -> PhotoRecord | None:
        return self.photos[0] if self.photos else None


# =============================================================================
# Persisted Artifacts
# =============================================================================


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MonthlyPack(BaseModel):
    """The generated artifact for one month, upserted by (year, month).

    ``stats_data`` holds the MonthlyStats as a JSON blob so that an older or
    damaged blob can be skipped on its own during a yearly rollup.
    """

    year: int
    month: int = Field(ge=1, le=12)
    stats_data: str = ""
    narrative_text: str = ""
    generation_method: GenerationMethod = GenerationMethod.TEMPLATE
    themed_photos: list[ThemedPhotoSelection] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def build(cls, year: int, month: int, stats: MonthlyStats, **kwargs: Any) -> "MonthlyPack":
        return cls(year=year, month=month, stats_data=stats.model_dump_json(), **kwargs)

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.month]

    def decode_stats(self) -> MonthlyStats:
        """Decode the stats blob.

        Raises:
            StatsDecodeError: If the blob is empty or does not match MonthlyStats.
        """
        try:
            return MonthlyStats.model_validate_json(self.stats_data)
        except ValidationError as e:
            raise StatsDecodeError(self.key, original_error=e) from e

    @property
    def selected_photos(self) -> list[PhotoRecord]:
        """Primary photo of each themed selection, in selection order."""
        return [s.primary_photo for s in self.themed_photos if s.primary_photo is not None]


class YearlySummary(BaseModel):
    """The generated artifact for one year, upserted by year."""

    year: int
    stats: YearlyStats = Field(default_factory=YearlyStats)
    narrative_text: str = ""
    generation_method: GenerationMethod = GenerationMethod.TEMPLATE
    selected_photos: list[PhotoRecord] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=_utcnow)

    @property
    def key(self) -> str:
        return f"{self.year:04d}"
