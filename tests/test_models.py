"""Tests for lifebook.core.models."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from lifebook.core.models import (
    DailyEntryContext,
    DayRecord,
    Mood,
    MonthlyPack,
    MonthlyStats,
    PhotoRecord,
    StatsDecodeError,
    ThemedPhotoSelection,
    YearlySummary,
)


class TestPhotoRecord:
    """Tests for PhotoRecord."""

    def test_defaults(self) -> None:
        """A bare photo gets an id and neutral quality."""
        photo = PhotoRecord()

        assert photo.id
        assert photo.quality_score == 0.5
        assert photo.is_tagged is False

    def test_quality_bounds(self) -> None:
        """Quality outside [0, 1] is rejected."""
        with pytest.raises(ValidationError):
            PhotoRecord(quality_score=1.5)
        with pytest.raises(ValidationError):
            PhotoRecord(quality_score=-0.1)

    def test_describe_prefers_caption(self) -> None:
        """The caption wins over scenes."""
        photo = PhotoRecord(caption=" At the lake ", detected_scenes=["lake"])
        assert photo.describe() == "At the lake"

    def test_describe_top_scenes(self) -> None:
        """Without a caption the first three scenes are used."""
        photo = PhotoRecord(detected_scenes=["beach", "ocean", "sky", "sand"])
        assert photo.describe() == "beach, ocean, sky"

    def test_describe_nothing(self) -> None:
        """An untagged, uncaptioned photo has no description."""
        assert PhotoRecord().describe() is None


class TestDayRecord:
    """Tests for DayRecord."""

    def test_keywords_deduplicated_in_order(self) -> None:
        """Duplicates and blanks are removed, order kept."""
        day = DayRecord(date=date(2024, 3, 1), keywords=["beach", " beach ", "", "sun"])
        assert day.keywords == ["beach", "sun"]

    def test_keywords_capped(self) -> None:
        """At most twenty keywords are kept."""
        day = DayRecord(date=date(2024, 3, 1), keywords=[f"k{i}" for i in range(30)])
        assert len(day.keywords) == 20

    def test_at_most_four_photos(self) -> None:
        """A fifth photo is a validation error."""
        photos = [PhotoRecord() for _ in range(5)]
        with pytest.raises(ValidationError):
            DayRecord(date=date(2024, 3, 1), photos=photos)

    def test_mood_from_string(self) -> None:
        """Moods parse from their values."""
        day = DayRecord(date=date(2024, 3, 1), mood="challenging")
        assert day.mood == Mood.CHALLENGING

    def test_has_text(self) -> None:
        """Whitespace-only text does not count."""
        assert DayRecord(date=date(2024, 3, 1), text="  ").has_text is False
        assert DayRecord(date=date(2024, 3, 1), text="Hi").has_text is True


class TestDailyEntryContext:
    """Tests for DailyEntryContext."""

    def test_formatted_block(self) -> None:
        """The block has a header and detail lines."""
        day = DayRecord(
            date=date(2024, 3, 5),
            text="Walked by the sea.",
            mood=Mood.GOOD,
            starred=True,
            keywords=["sea", "walk"],
            photos=[PhotoRecord(detected_scenes=["beach"])],
        )
        block = DailyEntryContext.from_day(day).formatted()

        assert block.splitlines() == [
            "[Tuesday, Day 5 ⭐]",
            "Mood: Good",
            'Entry: "Walked by the sea."',
            "Photos: beach",
            "Keywords: sea, walk",
        ]

    def test_long_text_truncated(self) -> None:
        """Entry text is cut at the limit with an ellipsis."""
        day = DayRecord(date=date(2024, 3, 5), text="a" * 400)
        block = DailyEntryContext.from_day(day).formatted()

        assert f'Entry: "{"a" * 300}..."' in block

    def test_only_five_keywords(self) -> None:
        """At most five keywords reach the prompt."""
        day = DayRecord(date=date(2024, 3, 5), keywords=list("abcdefg"))
        assert DailyEntryContext.from_day(day).keywords == list("abcde")


class TestMonthlyStats:
    """Tests for MonthlyStats helpers."""

    def test_ranked_themes_ties_alphabetical(self) -> None:
        """Equal counts are ordered by name."""
        stats = MonthlyStats(top_themes={"b": 2, "a": 2, "c": 3})
        assert stats.ranked_themes() == ["c", "a", "b"]

    def test_entry_ratio(self) -> None:
        """Ratio of documented days, zero-safe."""
        assert MonthlyStats(total_days=30, days_with_entries=15).entry_ratio == 0.5
        assert MonthlyStats().entry_ratio == 0.0


class TestThemedPhotoSelection:
    """Tests for ThemedPhotoSelection."""

    def test_legacy_single_photo_upgraded(self) -> None:
        """A stored ``photo`` field becomes a one-item ``photos`` list."""
        selection = ThemedPhotoSelection.model_validate({"theme": "Beach", "photo": {"id": "p1"}})

        assert [p.id for p in selection.photos] == ["p1"]
        assert selection.primary_photo.id == "p1"

    def test_no_photos(self) -> None:
        """An empty selection has no primary photo."""
        assert ThemedPhotoSelection(theme="x").primary_photo is None


class TestMonthlyPack:
    """Tests for MonthlyPack."""

    def test_build_and_decode(self) -> None:
        """Stats survive the JSON blob."""
        stats = MonthlyStats(total_days=31, days_with_entries=4, top_themes={"sea": 2})
        pack = MonthlyPack.build(2024, 3, stats)

        assert pack.decode_stats() == stats
        assert pack.key == "2024-03"
        assert pack.month_name == "March"

    def test_bad_blob_raises_stats_decode_error(self) -> None:
        """A damaged blob raises StatsDecodeError with the pack key."""
        pack = MonthlyPack(year=2024, month=7, stats_data='{"total_days": "many"}')

        with pytest.raises(StatsDecodeError) as exc_info:
            pack.decode_stats()
        assert exc_info.value.key == "2024-07"
        assert exc_info.value.original_error is not None

    def test_month_range(self) -> None:
        """Month must be 1-12."""
        with pytest.raises(ValidationError):
            MonthlyPack(year=2024, month=13)

    def test_selected_photos(self) -> None:
        """Primary photos in selection order, empty selections skipped."""
        pack = MonthlyPack.build(
            2024,
            3,
            MonthlyStats(),
            themed_photos=[
                ThemedPhotoSelection(theme="a", photos=[PhotoRecord(id="1"), PhotoRecord(id="2")]),
                ThemedPhotoSelection(theme="b"),
                ThemedPhotoSelection(theme="c", photos=[PhotoRecord(id="3")]),
            ],
        )
        assert [p.id for p in pack.selected_photos] == ["1", "3"]


class TestYearlySummary:
    """Tests for YearlySummary."""

    def test_key(self) -> None:
        """The key is the four-digit year."""
        assert YearlySummary(year=2024).key == "2024"
