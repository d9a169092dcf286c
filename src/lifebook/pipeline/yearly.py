"""Yearly aggregation pipeline.

Folds the stored monthly packs of a year into a YearlySummary. Packs whose
stats blob cannot be decoded are skipped with a warning; the rest of the
year is still summarised.
"""

from __future__ import annotations

import logging

from lifebook.ai.fallback import yearly_template_narrative
from lifebook.ai.narrative import NarrativeClient, NarrativeResult, TextGenerator
from lifebook.ai.outputs import YearlySummaryOutput
from lifebook.ai.prompts import YEARLY_SUMMARY_PROMPT, excerpt, summarize_yearly_stats
from lifebook.config import AppConfig
from lifebook.core.models import (
    GenerationMethod,
    MonthlyPack,
    MonthlyStats,
    PhotoRecord,
    StatsDecodeError,
    YearlySummary,
    YearlyStats,
)
from lifebook.core.narrative_text import compose_narrative, split_narrative
from lifebook.core.statistics import StatisticsAggregator
from lifebook.core.store import EntryStore
from lifebook.utils.logging import log_duration

logger = logging.getLogger(__name__)


def format_yearly_output(output: YearlySummaryOutput) -> str:
    return compose_narrative(
        output.year_overview,
        output.future_insights,
        output.major_themes,
        output.growth_patterns,
        output.significant_milestones,
        output.challenges,
    )


def select_year_photos(packs: list[MonthlyPack], max_photos: int = 24) -> list[PhotoRecord]:
    """Primary photos drawn evenly across months.

    Each month contributes at most ``max_photos // len(packs)`` photos, in
    its own selection order; the result is capped at ``max_photos``.
    """
    if not packs:
        return []
    per_month = max_photos // len(packs)
    photos: list[PhotoRecord] = []
    for pack in packs:
        photos.extend(pack.selected_photos[:per_month])
    return photos[:max_photos]


class YearlyAggregationPipeline:
    """Builds and stores the YearlySummary for a year."""

    def __init__(
        self,
        store: EntryStore,
        narrative_client: NarrativeClient,
        aggregator: StatisticsAggregator | None = None,
        max_photos: int = 24,
        excerpt_chars: int = 600,
        max_prompt_chars: int = 10000,
    ) -> None:
        self._store = store
        self._client = narrative_client
        self._aggregator = aggregator or StatisticsAggregator()
        self.max_photos = max_photos
        self.excerpt_chars = excerpt_chars
        self.max_prompt_chars = max_prompt_chars
        self._logger = logging.getLogger(f"{__name__}.YearlyAggregationPipeline")

    @classmethod
    def from_config(
        cls, config: AppConfig, store: EntryStore, generator: TextGenerator | None
    ) -> "YearlyAggregationPipeline":
        return cls(
            store,
            NarrativeClient.from_config(config, generator),
            max_photos=config.book.max_year_photos,
            excerpt_chars=config.book.monthly_excerpt_chars,
            max_prompt_chars=config.ai.max_prompt_chars,
        )

    def generate(self, year: int) -> YearlySummary:
        """Aggregate a year's packs and upsert the summary."""
        with log_duration(f"Generating summary for {year}", logger=self._logger):
            decoded = self.decode_packs(self._store.fetch_monthly_packs(year))
            packs = [pack for pack, _ in decoded]

            stats = self._aggregator.yearly(month_stats for _, month_stats in decoded)
            narrative = self.narrate(year, packs, stats)

            summary = YearlySummary(
                year=year,
                stats=stats,
                narrative_text=narrative.value,
                generation_method=narrative.method,
                selected_photos=select_year_photos(packs, self.max_photos),
            )
            self._store.upsert_yearly_summary(summary)

        self._logger.info(
            f"Summary {year}: {stats.months_completed} months, "
            f"{len(summary.selected_photos)} photos ({narrative.method.value} narrative)"
        )
        return summary

    def decode_packs(self, packs: list[MonthlyPack]) -> list[tuple[MonthlyPack, MonthlyStats]]:
        """Pair each pack with its decoded stats, dropping undecodable ones."""
        decoded: list[tuple[MonthlyPack, MonthlyStats]] = []
        for pack in sorted(packs, key=lambda p: p.month):
            try:
                decoded.append((pack, pack.decode_stats()))
            except StatsDecodeError as e:
                self._logger.warning(f"Skipping pack {e.key}: stats could not be decoded")
        return decoded

    def narrate(
        self, year: int, packs: list[MonthlyPack], stats: YearlyStats
    ) -> NarrativeResult[str]:
        """AI narrative for the year, or the stats template."""
        if not packs:
            return NarrativeResult(yearly_template_narrative(year, stats), GenerationMethod.TEMPLATE)

        prompt = YEARLY_SUMMARY_PROMPT.render_prompt(
            year=year,
            stats_summary=summarize_yearly_stats(stats),
            monthly_summaries=self._monthly_summaries(packs),
        )
        return self._client.request_with_fallback(
            prompt,
            YearlySummaryOutput,
            fallback=lambda: yearly_template_narrative(year, stats),
            max_chars=self.max_prompt_chars,
            convert=format_yearly_output,
        )

    def _monthly_summaries(self, packs: list[MonthlyPack]) -> str:
        blocks = []
        for pack in packs:
            sections = split_narrative(pack.narrative_text)
            text = " ".join(p for p in (sections.opening, sections.body, sections.closing) if p)
            blocks.append(f"### {pack.month_name}\n{excerpt(text, self.excerpt_chars) or '(no narrative)'}")
        return "\n\n".join(blocks)
