"""Central Pytest Fixtures for Lifebook.

Fixtures included:
- Factories: make_photo, make_day, make_generator
- Scenario data: march_days (ten March days, three starred)
- Stores: memory_store, json_store
- AI doubles: FakeGenerator via make_generator, recorded no-op sleep
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import date
from pathlib import Path
from typing import Any

import pytest

from lifebook.ai.narrative import NarrativeClient
from lifebook.config import reset_config
from lifebook.core.models import DayRecord, Mood, PhotoRecord
from lifebook.core.store import InMemoryEntryStore, JsonEntryStore

# =============================================================================
# Test Doubles
# =============================================================================


class FakeGenerator:
    """Scripted text generator.

    Each call to ``generate`` pops the next scripted item: a string is
    returned, an exception is raised. Once the script runs out the last
    item repeats.
    """

    def __init__(self, responses: list[Any] | None = None, available: bool = True) -> None:
        self.responses = list(responses or [])
        self.available = available
        self.prompts: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def is_available(self) -> bool:
        return self.available

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise RuntimeError("no scripted response")
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        return item


# =============================================================================
# Autouse Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_state() -> Iterator[None]:
    """Reset cached config and the package logger around every test."""
    reset_config()
    yield
    reset_config()
    package_logger = logging.getLogger("lifebook")
    package_logger.handlers = []
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_photo() -> Callable[..., PhotoRecord]:
    """Factory for PhotoRecord with readable defaults."""

    def _make(
        photo_id: str,
        quality: float = 0.5,
        scenes: list[str] | None = None,
        faces: bool = False,
        **kwargs: Any,
    ) -> PhotoRecord:
        return PhotoRecord(
            id=photo_id,
            file_reference=f"photos/{photo_id}.jpg",
            detected_scenes=scenes if scenes is not None else [],
            has_faces=faces,
            quality_score=quality,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_day() -> Callable[..., DayRecord]:
    """Factory for DayRecord in March 2024 unless a date is given."""

    def _make(
        day: int,
        keywords: list[str] | None = None,
        photos: list[PhotoRecord] | None = None,
        starred: bool = False,
        mood: Mood | None = None,
        text: str | None = None,
        year: int = 2024,
        month: int = 3,
    ) -> DayRecord:
        return DayRecord(
            date=date(year, month, day),
            text=text,
            mood=mood,
            starred=starred,
            keywords=keywords or [],
            photos=photos or [],
        )

    return _make


@pytest.fixture
def make_generator() -> Callable[..., FakeGenerator]:
    """Factory for scripted FakeGenerator instances."""

    def _make(responses: list[Any] | None = None, available: bool = True) -> FakeGenerator:
        return FakeGenerator(responses, available)

    return _make


@pytest.fixture
def sleeps() -> list[float]:
    """Delays passed to the no-op sleep."""
    return []


@pytest.fixture
def make_client(sleeps: list[float]) -> Callable[..., NarrativeClient]:
    """NarrativeClient factory whose backoff records delays instead of sleeping."""

    def _make(generator: Any, **kwargs: Any) -> NarrativeClient:
        return NarrativeClient(generator, sleep=sleeps.append, **kwargs)

    return _make


# =============================================================================
# Scenario Data
# =============================================================================


@pytest.fixture
def march_days(make_day, make_photo) -> list[DayRecord]:
    """Ten March 2024 days: three starred, moods great 4 / good 3 / neutral 3.

    Every day has one photo with quality between 0.4 and 0.9. Days 1-5 form
    the longest streak (5 days).
    """
    return [
        make_day(
            1,
            ["beach", "family", "sunset"],
            [make_photo("p01", 0.6, ["beach", "ocean"], faces=True)],
            mood=Mood.GREAT,
            text="Spent the evening at the beach with the family watching the sunset.",
        ),
        make_day(
            2,
            ["family", "dinner", "birthday"],
            [make_photo("p02", 0.8, ["people", "cake"], faces=True)],
            starred=True,
            mood=Mood.GREAT,
            text="Mom's birthday dinner. Everyone came.",
        ),
        make_day(
            3,
            ["work", "coffee"],
            [make_photo("p03", 0.4, ["document"])],
            mood=Mood.GOOD,
            text="Long day at work, too much coffee.",
        ),
        make_day(
            4,
            ["hiking", "mountains"],
            [make_photo("p04", 0.9, ["mountain", "trail"])],
            mood=Mood.GOOD,
        ),
        make_day(
            5,
            ["work", "meeting"],
            [make_photo("p05", 0.5, ["indoor"])],
            mood=Mood.NEUTRAL,
            text="Meetings all day.",
        ),
        make_day(
            8,
            ["beach", "surfing"],
            [make_photo("p08", 0.7, ["beach", "surfboard"])],
            mood=Mood.GREAT,
        ),
        make_day(
            9,
            ["hiking", "friends", "summit"],
            [make_photo("p09", 0.6, ["mountain"], faces=True)],
            starred=True,
            mood=Mood.GREAT,
            text="Reached the summit with friends.",
        ),
        make_day(
            10,
            ["coffee", "reading"],
            [make_photo("p10", 0.45, ["book"])],
            mood=Mood.NEUTRAL,
        ),
        make_day(
            15,
            ["beach", "picnic", "family"],
            [make_photo("p15", 0.5, ["beach"])],
            starred=True,
            mood=Mood.GOOD,
        ),
        make_day(
            20,
            ["work", "deadline"],
            [make_photo("p20", 0.55, ["laptop"])],
            mood=Mood.NEUTRAL,
            text="Deadline day.",
        ),
    ]


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def memory_store(march_days: list[DayRecord]) -> InMemoryEntryStore:
    """In-memory store preloaded with the March scenario."""
    return InMemoryEntryStore(march_days)


@pytest.fixture
def json_store(tmp_path: Path) -> JsonEntryStore:
    """Empty JSON store in a temporary directory."""
    return JsonEntryStore(tmp_path / "store")
