"""Photo selection: binding themes to their best photo.

Every photo is scored with the same formula::

    score = quality_score + 0.3 (day is starred) + 0.2 (photo has faces)

Topics are resolved in order, so earlier topics get first pick. Three
matching paths exist:

- **Day matching** (AI topics with day references): only the listed days
  are searched. The winning photo AND its day are consumed, so a day never
  feeds two themes. References to days that are not in the window are
  skipped without complaint.
- **Keyword matching** (keyword topics, or topics without days): every day
  whose keywords contain, or are contained in, the topic name is searched,
  with a +0.2 bonus when a photo's scene label equals the topic name. Only
  the photo is consumed. When AI topics bind no photo at all, the window's
  keyword themes are run through this path instead.
- **Moments** (nothing matched at all but photos exist): the best unused
  photo of each day, best days first, is taken as-is with a generated
  caption.

Selection state is an explicit SelectionState passed through the calls;
create a fresh one per month.

Example:
    >>> selector = PhotoSelector()
    >>> selections = selector.select(topics, days)
    >>> [s.theme for s in selections]
    ['Beach Weekend', 'Family Dinner']
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from lifebook.core.models import DayRecord, PhotoRecord, ThemedPhotoSelection, Topic, TopicSource

logger = logging.getLogger(__name__)

STARRED_BONUS = 0.3
FACES_BONUS = 0.2
SCENE_MATCH_BONUS = 0.2

# Vision labels too technical to put in a caption
GENERIC_LABELS = frozenset(
    {
        "adult",
        "container",
        "conveyance",
        "document",
        "equipment",
        "image",
        "indoor",
        "machine",
        "material",
        "object",
        "outdoor",
        "paper",
        "people",
        "person",
        "photo",
        "printed page",
        "screenshot",
        "structure",
        "text",
        "textile",
        "wood processed",
    }
)

TIME_PHRASES = (
    "One quiet morning",
    "On an easy afternoon",
    "One evening",
    "On an ordinary weekday",
    "Over a slow weekend",
    "Somewhere in the middle of the month",
)


@dataclass
class SelectionState:
    """Photos and days already consumed during one selection run."""

    used_photo_ids: set[str] = field(default_factory=set)
    used_days: set[int] = field(default_factory=set)

    def consume(self, photo: PhotoRecord, day: int | None = None) -> None:
        self.used_photo_ids.add(photo.id)
        if day is not None:
            self.used_days.add(day)


@dataclass(frozen=True)
class _Candidate:
    photo: PhotoRecord
    day: DayRecord
    score: float


def score_photo(photo: PhotoRecord, day: DayRecord) -> float:
    """Base score of a photo in the context of its day."""
    score = photo.quality_score
    if day.starred:
        score += STARRED_BONUS
    if photo.has_faces:
        score += FACES_BONUS
    return score


def _title(word: str) -> str:
    return word.replace("_", " ").strip().title()


class PhotoSelector:
    """Matches topics to photos under the exclusivity rules above.

    Args:
        max_moments: Upper bound on selections produced by the moments path.
        max_keyword_themes: Keyword themes tried when AI topics match nothing.
    """

    def __init__(self, max_moments: int = 5, max_keyword_themes: int = 5) -> None:
        self.max_moments = max_moments
        self.max_keyword_themes = max_keyword_themes
        self._logger = logging.getLogger(f"{__name__}.PhotoSelector")

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def select(
        self,
        topics: list[Topic],
        days: list[DayRecord],
        state: SelectionState | None = None,
        keyword_themes: list[str] | None = None,
    ) -> list[ThemedPhotoSelection]:
        """Resolve every topic in order, then fall back if nothing matched.

        When AI topics bind no photo, ``keyword_themes`` (by default the
        window's most frequent keywords) are tried by keyword matching.
        Moments are used only when that also finds nothing.
        """
        state = state if state is not None else SelectionState()
        index = {day.day_of_month: day for day in days}
        selections: list[ThemedPhotoSelection] = []

        for topic in topics:
            if topic.source == TopicSource.AI and topic.days:
                selection = self._match_by_days(topic, index, state)
            else:
                selection = self._match_by_keywords(topic, days, state)
            if selection is not None:
                selections.append(selection)

        if not selections and any(t.source == TopicSource.AI and t.days for t in topics):
            themes = keyword_themes if keyword_themes is not None else self.frequent_keywords(days)
            self._logger.info(f"AI topics matched no photo; trying {len(themes)} keyword themes")
            fallback_topics = [Topic(name=name, source=TopicSource.KEYWORD) for name in themes]
            selections = self.select_by_keywords(fallback_topics, days, state)

        if not selections and any(day.photos for day in days):
            self._logger.info("No topic matched a photo; selecting unmatched moments")
            selections = self.select_moments(days, state)

        self._logger.debug(f"Selected {len(selections)} themed photos from {len(topics)} topics")
        return selections

    def frequent_keywords(self, days: list[DayRecord]) -> list[str]:
        """Most frequent day keywords, ties alphabetical, at most ``max_keyword_themes``."""
        counts = Counter(keyword for day in days for keyword in day.keywords)
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [name for name, _ in ranked[: self.max_keyword_themes]]

    # -------------------------------------------------------------------------
    # Individual paths
    # -------------------------------------------------------------------------

    def select_for_topics(
        self, topics: list[Topic], days: list[DayRecord], state: SelectionState
    ) -> list[ThemedPhotoSelection]:
        """Day matching for every topic, consuming both photo and day."""
        index = {day.day_of_month: day for day in days}
        results = (self._match_by_days(topic, index, state) for topic in topics)
        return [r for r in results if r is not None]

    def select_by_keywords(
        self, topics: list[Topic], days: list[DayRecord], state: SelectionState
    ) -> list[ThemedPhotoSelection]:
        """Keyword matching for every topic, consuming only the photo."""
        results = (self._match_by_keywords(topic, days, state) for topic in topics)
        return [r for r in results if r is not None]

    def select_moments(
        self, days: list[DayRecord], state: SelectionState
    ) -> list[ThemedPhotoSelection]:
        """Top-scored unused photos with generated captions, one per day.

        Takes as many photos as there are days with photos, capped at
        ``max_moments``. Days already consumed are skipped. Equal scores keep
        their day/photo order.
        """
        candidates = [
            _Candidate(photo, day, score_photo(photo, day))
            for day in days
            for photo in day.photos
            if photo.id not in state.used_photo_ids
        ]
        candidates.sort(key=lambda c: -c.score)

        days_with_photos = sum(1 for day in days if day.photos)
        count = min(days_with_photos, self.max_moments)

        selections: list[ThemedPhotoSelection] = []
        for candidate in candidates:
            if len(selections) == count:
                break
            if candidate.day.day_of_month in state.used_days:
                continue
            position = len(selections)
            selections.append(
                ThemedPhotoSelection(
                    theme=f"Moment {position + 1}",
                    photos=[candidate.photo],
                    day_keywords=[_title(k) for k in candidate.day.keywords[:4]],
                    description=self.moment_caption(candidate.photo, candidate.day, position),
                )
            )
            state.consume(candidate.photo, candidate.day.day_of_month)
        return selections

    # -------------------------------------------------------------------------
    # Matching
    # -------------------------------------------------------------------------

    def _match_by_days(
        self, topic: Topic, index: dict[int, DayRecord], state: SelectionState
    ) -> ThemedPhotoSelection | None:
        best: _Candidate | None = None

        for day_number in topic.days:
            if day_number in state.used_days:
                continue
            day = index.get(day_number)
            if day is None:
                self._logger.debug(f"Topic '{topic.name}' references missing day {day_number}")
                continue
            for photo in day.photos:
                if photo.id in state.used_photo_ids:
                    continue
                score = score_photo(photo, day)
                if best is None or score > best.score:
                    best = _Candidate(photo, day, score)

        if best is None:
            return None

        state.consume(best.photo, best.day.day_of_month)
        return ThemedPhotoSelection(
            theme=topic.name,
            photos=[best.photo],
            day_keywords=[_title(k) for k in best.day.keywords],
            description=topic.description or None,
        )

    def _match_by_keywords(
        self, topic: Topic, days: list[DayRecord], state: SelectionState
    ) -> ThemedPhotoSelection | None:
        theme = topic.name.strip().lower()
        if not theme:
            return None
        best: _Candidate | None = None

        for day in days:
            keywords = [k.lower() for k in day.keywords]
            if not any(k in theme or theme in k for k in keywords):
                continue
            for photo in day.photos:
                if photo.id in state.used_photo_ids:
                    continue
                score = score_photo(photo, day)
                if theme in (scene.lower() for scene in photo.detected_scenes):
                    score += SCENE_MATCH_BONUS
                if best is None or score > best.score:
                    best = _Candidate(photo, day, score)

        if best is None:
            return None

        state.consume(best.photo)
        return ThemedPhotoSelection(
            theme=_title(topic.name),
            photos=[best.photo],
            day_keywords=[_title(k) for k in best.day.keywords],
            description=topic.description or None,
        )

    # -------------------------------------------------------------------------
    # Captions
    # -------------------------------------------------------------------------

    @staticmethod
    def moment_caption(photo: PhotoRecord, day: DayRecord, position: int) -> str:
        """Vague caption built from the photo's descriptive labels.

        Scenes come before day keywords; generic labels are dropped and at
        most two words are used.
        """
        phrase = TIME_PHRASES[position % len(TIME_PHRASES)]
        words: list[str] = []
        for label in [*photo.detected_scenes, *day.keywords]:
            word = label.replace("_", " ").strip().lower()
            if word and word not in GENERIC_LABELS and word not in words:
                words.append(word)
            if len(words) == 2:
                break

        if not words:
            return f"{phrase}, a moment worth keeping."
        return f"{phrase}, a moment of {' and '.join(words)}."
