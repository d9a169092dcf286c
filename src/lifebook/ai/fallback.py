"""Template narratives used when the text generator is unavailable or fails.

Every function here is a pure function of a stats value: no generator,
no store, no randomness. The output is plain paragraphs separated by blank
lines, which ``split_narrative`` reads as opening / body / closing.

Example:
    >>> monthly_template_narrative(stats)
    'This month had 18 journal entries, capturing many memorable moments. ...'
"""

from __future__ import annotations

from lifebook.core.models import Mood, MonthlyStats, YearlyStats


# =============================================================================
# Thresholds
# =============================================================================


HIGHLY_DOCUMENTED_RATIO = 0.8
WELL_DOCUMENTED_RATIO = 0.5
NOTABLE_MONTHLY_STREAK = 7
EXCEPTIONAL_ENTRIES_PER_MONTH = 20
STRONG_ENTRIES_PER_MONTH = 10
IMPRESSIVE_YEARLY_STREAK = 30
SOLID_YEARLY_STREAK = 14


def _mood_label(value: str) -> str:
    try:
        return Mood(value).display_name.lower()
    except ValueError:
        return value.lower()


def monthly_template_narrative(stats: MonthlyStats) -> str:
    """Narrative for a month built from its stats alone."""
    if stats.days_with_entries == 0:
        return "No journal entries were recorded this month."

    sentences: list[str] = []
    ratio = stats.entry_ratio
    if ratio > HIGHLY_DOCUMENTED_RATIO:
        sentences.append(
            f"This was a highly documented month with entries on "
            f"{stats.days_with_entries} out of {stats.total_days} days."
        )
    elif ratio > WELL_DOCUMENTED_RATIO:
        sentences.append(
            f"This month had {stats.days_with_entries} journal entries, "
            "capturing many memorable moments."
        )
    else:
        sentences.append(
            f"This month featured {stats.days_with_entries} journal entries "
            "with highlights worth remembering."
        )

    mood = stats.dominant_mood()
    if mood:
        sentences.append(f"The overall mood was predominantly {_mood_label(mood)}.")

    themes = stats.ranked_themes(3)
    if themes:
        sentences.append(f"Key themes included: {', '.join(themes)}.")

    if stats.total_photos > 0:
        sentences.append(f"Captured {stats.total_photos} photos this month.")

    if stats.longest_streak > NOTABLE_MONTHLY_STREAK:
        sentences.append(f"Maintained an impressive {stats.longest_streak}-day journaling streak.")

    paragraphs = [" ".join(sentences)]

    if stats.starred_days_count > 0:
        starred = f"Starred {stats.starred_days_count} special day(s) this month"
        if stats.milestone_keywords:
            starred += f" featuring: {', '.join(stats.milestone_keywords[:5])}"
        paragraphs.append(starred + ".")

    return "\n\n".join(paragraphs)


def yearly_template_narrative(year: int, stats: YearlyStats) -> str:
    """Narrative for a year built from its folded stats alone."""
    if stats.months_completed == 0:
        return f"No monthly chapters have been generated for {year} yet."

    opening = [
        f"{year} was documented across {stats.months_completed} months with "
        f"{stats.days_with_entries} total journal entries."
    ]
    if stats.total_photos > 0:
        opening.append(
            f"This year captured {stats.total_photos} photos and "
            f"{stats.total_words} words of reflection."
        )

    average = stats.days_with_entries / max(stats.months_completed, 1)
    if average > EXCEPTIONAL_ENTRIES_PER_MONTH:
        opening.append(
            f"Maintained exceptional consistency with an average of "
            f"{int(average)} entries per month."
        )
    elif average > STRONG_ENTRIES_PER_MONTH:
        opening.append("Showed strong commitment with regular journaling throughout the year.")

    paragraphs = [" ".join(opening)]

    themes_paragraph: list[str] = []
    themes = stats.ranked_themes(5)
    if themes:
        themes_paragraph.append(f"Key themes that defined the year: {', '.join(themes)}.")
    dominant = stats.dominant_mood()
    if dominant:
        mood, share = dominant
        themes_paragraph.append(
            f"Overall sentiment leaned {_mood_label(mood)} ({int(share * 100)}% of entries)."
        )
    if themes_paragraph:
        paragraphs.append(" ".join(themes_paragraph))

    if stats.milestones:
        paragraphs.append(f"Notable milestones and moments: {', '.join(stats.milestones[:5])}.")

    if stats.longest_streak > IMPRESSIVE_YEARLY_STREAK:
        paragraphs.append(
            f"Achieved an impressive {stats.longest_streak}-day journaling streak, "
            "demonstrating remarkable dedication."
        )
    elif stats.longest_streak > SOLID_YEARLY_STREAK:
        paragraphs.append(f"Maintained a solid {stats.longest_streak}-day journaling streak.")

    return "\n\n".join(paragraphs)
