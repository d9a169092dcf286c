"""Monthly aggregation pipeline.

Orchestrates one month end to end::

    fetch days -> retag untagged photos -> stats -> topics -> photo selection
        -> narrative (AI or template) -> upsert MonthlyPack

Every AI-touching stage has a deterministic fallback, so ``generate``
always returns a pack. Only store failures propagate.

Example:
    >>> pipeline = MonthlyAggregationPipeline.from_config(config, store, generator)
    >>> pack = pipeline.generate(2024, 3)
    >>> pack.generation_method
    <GenerationMethod.TEMPLATE: 'template'>
"""

from __future__ import annotations

import logging
from datetime import date

from lifebook.ai.fallback import monthly_template_narrative
from lifebook.ai.narrative import NarrativeClient, NarrativeResult, TextGenerator
from lifebook.ai.outputs import MonthlySummaryOutput
from lifebook.ai.prompts import MONTHLY_SUMMARY_PROMPT, render_with_day_entries, summarize_monthly_stats
from lifebook.ai.topics import AITopicStrategy, TopicExtractor
from lifebook.config import AppConfig
from lifebook.core.digest import DigestProcessor
from lifebook.core.models import (
    DailyEntryContext,
    DayRecord,
    GenerationMethod,
    MonthlyPack,
    MonthlyStats,
)
from lifebook.core.narrative_text import compose_narrative
from lifebook.core.selection import PhotoSelector, SelectionState
from lifebook.core.statistics import StatisticsAggregator
from lifebook.core.store import EntryStore
from lifebook.utils.logging import log_duration

logger = logging.getLogger(__name__)


def month_window(year: int, month: int) -> tuple[date, date]:
    """Half-open date range ``[first of month, first of next month)``."""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def format_monthly_output(output: MonthlySummaryOutput) -> str:
    return compose_narrative(output.opening, output.closing_reflection, output.journey, output.milestones)


class MonthlyAggregationPipeline:
    """Builds and stores the MonthlyPack for a (year, month).

    Args:
        store: Source of day records and destination of packs.
        narrative_client: Client used for the summary narrative.
        topic_extractor: Topic strategies; defaults to keywords only.
        selector: Photo selector.
        aggregator: Statistics aggregator.
        digest: When given, photos without scene tags are retagged first
            and the updated day records saved back.
        max_topics: Topics requested per month.
        max_prompt_chars: Character budget of the summary prompt.
    """

    def __init__(
        self,
        store: EntryStore,
        narrative_client: NarrativeClient,
        topic_extractor: TopicExtractor | None = None,
        selector: PhotoSelector | None = None,
        aggregator: StatisticsAggregator | None = None,
        digest: DigestProcessor | None = None,
        max_topics: int = 5,
        max_prompt_chars: int = 10000,
    ) -> None:
        self._store = store
        self._client = narrative_client
        self._topics = topic_extractor or TopicExtractor()
        self._selector = selector or PhotoSelector()
        self._aggregator = aggregator or StatisticsAggregator()
        self._digest = digest
        self.max_topics = max_topics
        self.max_prompt_chars = max_prompt_chars
        self._logger = logging.getLogger(f"{__name__}.MonthlyAggregationPipeline")

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        store: EntryStore,
        generator: TextGenerator | None,
        digest: DigestProcessor | None = None,
    ) -> "MonthlyAggregationPipeline":
        client = NarrativeClient.from_config(config, generator)
        return cls(
            store,
            client,
            topic_extractor=TopicExtractor(AITopicStrategy(client, config.ai.topic_prompt_chars)),
            selector=PhotoSelector(max_moments=config.book.max_moments),
            digest=digest,
            max_topics=config.book.max_topics,
            max_prompt_chars=config.ai.max_prompt_chars,
        )

    def generate(self, year: int, month: int) -> MonthlyPack:
        """Aggregate one month and upsert its pack."""
        with log_duration(f"Generating pack for {year}-{month:02d}", logger=self._logger):
            start, end = month_window(year, month)
            days = self._retag(self._store.fetch_day_records(start, end))

            stats = self._aggregator.monthly(year, month, days)
            extraction = self._topics.extract(days, self.max_topics, keyword_counts=stats.top_themes)
            selections = self._selector.select(
                extraction.topics,
                days,
                SelectionState(),
                keyword_themes=stats.ranked_themes(self.max_topics),
            )
            narrative = self.narrate(year, month, days, stats)

            pack = MonthlyPack.build(
                year,
                month,
                stats,
                narrative_text=narrative.value,
                generation_method=narrative.method,
                themed_photos=selections,
            )
            self._store.upsert_monthly_pack(pack)

        self._logger.info(
            f"Pack {pack.key}: {stats.days_with_entries} days, {len(selections)} themed photos "
            f"({extraction.source.value} topics, {narrative.method.value} narrative)"
        )
        return pack

    def narrate(
        self, year: int, month: int, days: list[DayRecord], stats: MonthlyStats
    ) -> NarrativeResult[str]:
        """AI narrative for the month, or the stats template."""
        if not days:
            return NarrativeResult(monthly_template_narrative(stats), GenerationMethod.TEMPLATE)

        prompt = render_with_day_entries(
            MONTHLY_SUMMARY_PROMPT,
            [DailyEntryContext.from_day(day) for day in days],
            self.max_prompt_chars,
            month_name=date(year, month, 1).strftime("%B"),
            year=year,
            stats_summary=summarize_monthly_stats(stats),
        )
        return self._client.request_with_fallback(
            prompt,
            MonthlySummaryOutput,
            fallback=lambda: monthly_template_narrative(stats),
            max_chars=self.max_prompt_chars,
            convert=format_monthly_output,
        )

    def _retag(self, days: list[DayRecord]) -> list[DayRecord]:
        if self._digest is None:
            return days

        result: list[DayRecord] = []
        for day in days:
            try:
                updated, changed = self._digest.retag_untagged(day)
            except Exception as e:
                # A tagger fault leaves the day as it was
                self._logger.warning(f"Photo retagging failed for {day.date}: {type(e).__name__}")
                result.append(day)
                continue
            if changed:
                self._store.save_day_record(updated)
            result.append(updated)
        return result
