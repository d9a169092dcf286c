"""Statistics aggregation for monthly packs and yearly summaries.

Both folds are pure: the same set of inputs gives the same stats no matter
what order they arrive in. Counters are summed, milestone lists are sorted
or ranked, and streaks sort their dates first.

Example:
    >>> aggregator = StatisticsAggregator()
    >>> stats = aggregator.monthly(2024, 3, days)
    >>> stats.days_with_entries
    10
    >>> longest_streak([date(2024, 3, 1), date(2024, 3, 2)])
    2
"""

from __future__ import annotations

import calendar
import logging
from collections import Counter
from collections.abc import Iterable
from datetime import date

from lifebook.core.collaborators import SimpleTextTagger, TextTagger
from lifebook.core.models import DayRecord, MonthlyStats, YearlyStats

logger = logging.getLogger(__name__)

DAYS_IN_YEAR = 365
MILESTONE_KEYWORDS_PER_DAY = 3
YEARLY_MILESTONE_LIMIT = 10


def longest_streak(dates: Iterable[date]) -> int:
    """Length of the longest run of calendar-consecutive dates.

    Dates are sorted first. A repeated date is a gap of zero: it neither
    extends nor breaks the current run.

    Examples:
        >>> longest_streak([])
        0
        >>> d = date(2024, 3, 1)
        >>> longest_streak([d, d, date(2024, 3, 2)])
        2
    """
    ordered = sorted(dates)
    if not ordered:
        return 0

    best = current = 1
    for previous, following in zip(ordered, ordered[1:]):
        gap = (following - previous).days
        if gap == 0:
            continue
        if gap == 1:
            current += 1
            best = max(best, current)
        else:
            current = 1
    return best


class StatisticsAggregator:
    """Folds day records into MonthlyStats and MonthlyStats into YearlyStats."""

    def __init__(self, text_tagger: TextTagger | None = None) -> None:
        self._text_tagger = text_tagger or SimpleTextTagger()

    def monthly(self, year: int, month: int, days: Iterable[DayRecord]) -> MonthlyStats:
        """Compute stats for one month.

        Args:
            year: Calendar year of the window.
            month: Month number (1-12).
            days: Every day record in the window. Records outside the month
                are the caller's mistake and are still counted.

        Returns:
            MonthlyStats. An empty month still reports its calendar length.
        """
        days = list(days)
        themes: Counter[str] = Counter()
        moods: Counter[str] = Counter()
        milestones: set[str] = set()
        total_photos = 0
        total_words = 0
        starred = 0

        for day in days:
            themes.update(day.keywords)
            if day.mood is not None:
                moods[day.mood.value] += 1
            if day.has_text:
                total_words += self._text_tagger.count_words(day.text or "")
            total_photos += len(day.photos)
            if day.starred:
                starred += 1
                milestones.update(day.keywords[:MILESTONE_KEYWORDS_PER_DAY])

        stats = MonthlyStats(
            total_days=calendar.monthrange(year, month)[1],
            days_with_entries=len(days),
            total_photos=total_photos,
            total_words=total_words,
            longest_streak=longest_streak(day.date for day in days),
            starred_days_count=starred,
            top_themes=dict(sorted(themes.items())),
            mood_breakdown=dict(sorted(moods.items())),
            milestone_keywords=sorted(milestones),
        )
        logger.debug(
            f"Monthly stats {year}-{month:02d}: {stats.days_with_entries} days, "
            f"{stats.total_photos} photos, streak {stats.longest_streak}"
        )
        return stats

    def yearly(self, months: Iterable[MonthlyStats]) -> YearlyStats:
        """Fold decoded monthly stats into a year.

        ``months_completed`` counts the stats passed in, so callers should
        drop undecodable months before calling.
        """
        months = list(months)
        themes: Counter[str] = Counter()
        moods: Counter[str] = Counter()
        milestone_counts: Counter[str] = Counter()

        for stats in months:
            themes.update(stats.top_themes)
            moods.update(stats.mood_breakdown)
            milestone_counts.update(stats.milestone_keywords)

        ranked_milestones = sorted(milestone_counts.items(), key=lambda item: (-item[1], item[0]))

        return YearlyStats(
            total_days=DAYS_IN_YEAR,
            days_with_entries=sum(m.days_with_entries for m in months),
            total_photos=sum(m.total_photos for m in months),
            total_words=sum(m.total_words for m in months),
            longest_streak=max((m.longest_streak for m in months), default=0),
            months_completed=len(months),
            top_themes=dict(sorted(themes.items())),
            mood_breakdown=dict(sorted(moods.items())),
            milestones=[name for name, _ in ranked_milestones[:YEARLY_MILESTONE_LIMIT]],
        )
