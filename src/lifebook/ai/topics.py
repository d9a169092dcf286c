"""Topic extraction: AI themes with a keyword-frequency fallback.

Two strategies share one contract, ``extract(days, max_topics)``:

- AITopicStrategy asks the narrative client for named, day-annotated,
  captioned topics. Day references are taken as given; the photo selector
  skips days that do not exist.
- KeywordTopicStrategy ranks keyword frequency and returns the top names
  with no days attached.

TopicExtractor always tries the AI strategy first and falls back when it is
unavailable, fails, or returns nothing. It never raises.
"""

from __future__ import annotations

import calendar
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Protocol

from lifebook.ai.narrative import NarrativeClient, NarrativeError
from lifebook.ai.outputs import ExtractedTopic, TopicsWrapper
from lifebook.ai.prompts import TOPIC_EXTRACTION_PROMPT, render_with_day_entries
from lifebook.core.models import DailyEntryContext, DayRecord, Topic, TopicSource

logger = logging.getLogger(__name__)


class TopicStrategy(Protocol):
    def extract(self, days: list[DayRecord], max_topics: int) -> list[Topic]: ...


@dataclass(frozen=True)
class TopicExtraction:
    """Topics plus which strategy produced them."""

    topics: list[Topic]
    source: TopicSource
    failure: NarrativeError | None = None


class AITopicStrategy:
    """Topics proposed by the text generator.

    Raises NarrativeError subclasses on any failure; TopicExtractor turns
    those into a fallback.
    """

    def __init__(self, client: NarrativeClient, max_prompt_chars: int = 12000) -> None:
        self._client = client
        self.max_prompt_chars = max_prompt_chars

    def build_prompt(self, days: list[DayRecord], max_topics: int) -> str:
        first = days[0].date
        contexts = [DailyEntryContext.from_day(day) for day in days]
        return render_with_day_entries(
            TOPIC_EXTRACTION_PROMPT,
            contexts,
            self.max_prompt_chars,
            max_topics=max_topics,
            month_name=calendar.month_name[first.month],
            year=first.year,
        )

    def extract(self, days: list[DayRecord], max_topics: int) -> list[Topic]:
        if not days:
            return []

        decoded = self._client.request(
            self.build_prompt(days, max_topics),
            (TopicsWrapper, list[ExtractedTopic]),
            max_chars=self.max_prompt_chars,
        )
        extracted = decoded.topics if isinstance(decoded, TopicsWrapper) else decoded

        topics = [
            Topic(name=t.name, days=t.days, description=t.description.strip(), source=TopicSource.AI)
            for t in extracted
            if t.name
        ]
        return topics[:max_topics]


class KeywordTopicStrategy:
    """Most frequent keywords as topic names, ties broken alphabetically."""

    def extract(self, days: list[DayRecord], max_topics: int) -> list[Topic]:
        counts: Counter[str] = Counter()
        for day in days:
            counts.update(day.keywords)
        return self.from_counts(dict(counts), max_topics)

    def from_counts(self, counts: dict[str, int], max_topics: int) -> list[Topic]:
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [
            Topic(name=name, days=[], description="", source=TopicSource.KEYWORD)
            for name, _ in ranked[:max_topics]
        ]


class TopicExtractor:
    """Fixed selection order: AI strategy, then keyword strategy.

    Args:
        ai_strategy: None skips straight to keywords.
        keyword_strategy: Defaults to KeywordTopicStrategy().

    Example:
        >>> extractor = TopicExtractor(AITopicStrategy(client))
        >>> result = extractor.extract(days, max_topics=5)
        >>> result.source
        <TopicSource.KEYWORD: 'keyword'>
    """

    def __init__(
        self,
        ai_strategy: AITopicStrategy | None = None,
        keyword_strategy: KeywordTopicStrategy | None = None,
    ) -> None:
        self._ai = ai_strategy
        self._keywords = keyword_strategy or KeywordTopicStrategy()
        self._logger = logging.getLogger(f"{__name__}.TopicExtractor")

    def extract(
        self,
        days: list[DayRecord],
        max_topics: int,
        keyword_counts: dict[str, int] | None = None,
    ) -> TopicExtraction:
        """Extract topics, never raising.

        Args:
            days: Day records of the window.
            max_topics: Upper bound on topics returned.
            keyword_counts: Precomputed keyword frequency (a stats
                ``top_themes``); counted from ``days`` when omitted.
        """
        failure: NarrativeError | None = None

        if self._ai is not None and days:
            try:
                topics = self._ai.extract(days, max_topics)
            except NarrativeError as e:
                failure = e
                self._logger.info(f"AI topic extraction unavailable, using keywords: {e}")
            else:
                if topics:
                    self._logger.debug(f"AI proposed {len(topics)} topics")
                    return TopicExtraction(topics, TopicSource.AI)
                self._logger.info("AI returned no topics, using keywords")

        if keyword_counts is not None:
            topics = self._keywords.from_counts(keyword_counts, max_topics)
        else:
            topics = self._keywords.extract(days, max_topics)
        return TopicExtraction(topics, TopicSource.KEYWORD, failure)
