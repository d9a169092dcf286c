"""Centralized Prompt Templates for Lifebook.

This module is the SINGLE SOURCE of prompts sent to the text generator.
Each template has a system instruction and a user prompt with ``$name``
placeholders (``string.Template`` syntax), and asks for a JSON shape that
matches a decode target in ``lifebook.ai.outputs``.

Example:
    >>> template = get_prompt("monthly_summary_v1")
    >>> prompt = template.render_prompt(month_name="March", year=2024, ...)
"""

from __future__ import annotations

import json
import textwrap
from dataclasses import dataclass, field
from string import Template
from typing import Any

from lifebook.core.models import DailyEntryContext, MonthlyStats, YearlyStats


# =============================================================================
# Template Model
# =============================================================================


@dataclass(frozen=True)
class PromptTemplate:
    """Metadata and content for a prompt template.

    Attributes:
        id: Unique identifier (e.g., "monthly_summary_v1").
        version: Version string for tracking wording changes.
        system_instruction: Role and behavior instructions.
        user_prompt_template: User prompt with $placeholder variables.
        output_schema: JSON shape the model is asked to return.
        required_variables: Variables that MUST be provided.
    """

    id: str
    version: str
    system_instruction: str
    user_prompt_template: str
    output_schema: dict[str, Any] | list[Any] | None = None
    required_variables: frozenset[str] = field(default_factory=frozenset)

    def render(self, **variables: Any) -> tuple[str, str]:
        """Render the template.

        Returns:
            Tuple of (system_instruction, rendered_user_prompt).

        Raises:
            ValueError: If required variables are missing.
        """
        missing = sorted(self.required_variables - set(variables))
        if missing:
            raise ValueError(f"Missing required variables for prompt '{self.id}': {missing}")

        if self.output_schema is not None and "output_schema" not in variables:
            variables["output_schema"] = json.dumps(self.output_schema, indent=2)

        return self.system_instruction, Template(self.user_prompt_template).substitute(variables)

    def render_prompt(self, **variables: Any) -> str:
        """System instruction and user prompt as a single string."""
        system, user = self.render(**variables)
        return f"{system}\n\n{user}"


# =============================================================================
# System Instructions
# =============================================================================


BIOGRAPHER_SYSTEM = textwrap.dedent(
    """
    You are a warm, perceptive biographer helping someone turn their private
    journal into a book about their own life. Write in the second person
    ("you"), stay faithful to what the entries say, and never invent people,
    places or events. Respond with JSON only, no markdown fences.
    """
).strip()

TOPIC_ANALYST_SYSTEM = textwrap.dedent(
    """
    You group journal days into a few meaningful themes. Only reference day
    numbers that appear in the entries you are given. Respond with JSON only,
    no markdown fences.
    """
).strip()


# =============================================================================
# Output Schemas
# =============================================================================


MONTHLY_SUMMARY_SCHEMA = {
    "opening": "1-2 sentences setting the scene for the month",
    "journey": "2-3 paragraphs following the month from start to end",
    "milestones": "optional paragraph about starred days and highlights",
    "closingReflection": "1-2 reflective sentences closing the month",
}

YEARLY_SUMMARY_SCHEMA = {
    "yearOverview": "one paragraph introducing the year",
    "majorThemes": "one paragraph on recurring themes",
    "growthPatterns": "one paragraph on how things changed over the year",
    "significantMilestones": "one paragraph on the standout moments",
    "challenges": "optional paragraph on difficult stretches",
    "futureInsights": "1-2 sentences looking ahead",
}

TOPIC_EXTRACTION_SCHEMA = {
    "topics": [
        {
            "name": "short theme title (2-4 words)",
            "days": [1, 2],
            "description": "one-sentence caption for a photo of this theme",
        }
    ]
}


# =============================================================================
# Templates
# =============================================================================


MONTHLY_SUMMARY_PROMPT = PromptTemplate(
    id="monthly_summary_v1",
    version="1.0.0",
    system_instruction=BIOGRAPHER_SYSTEM,
    user_prompt_template=textwrap.dedent(
        """
        Write the chapter for $month_name $year.

        ## Month at a Glance
        $stats_summary

        ## Journal Days
        $day_entries

        ## Output Schema
        $output_schema
        """
    ).strip(),
    output_schema=MONTHLY_SUMMARY_SCHEMA,
    required_variables=frozenset({"month_name", "year", "stats_summary", "day_entries"}),
)

YEARLY_SUMMARY_PROMPT = PromptTemplate(
    id="yearly_summary_v1",
    version="1.0.0",
    system_instruction=BIOGRAPHER_SYSTEM,
    user_prompt_template=textwrap.dedent(
        """
        Write the closing chapter for the year $year, drawing on its months.

        ## Year at a Glance
        $stats_summary

        ## Monthly Chapters
        $monthly_summaries

        ## Output Schema
        $output_schema
        """
    ).strip(),
    output_schema=YEARLY_SUMMARY_SCHEMA,
    required_variables=frozenset({"year", "stats_summary", "monthly_summaries"}),
)

TOPIC_EXTRACTION_PROMPT = PromptTemplate(
    id="topic_extraction_v1",
    version="1.0.0",
    system_instruction=TOPIC_ANALYST_SYSTEM,
    user_prompt_template=textwrap.dedent(
        """
        Find up to $max_topics themes in these journal days from $month_name $year.
        Each theme lists the day numbers it covers and a one-sentence caption.
        Prefer themes that starred days belong to.

        ## Journal Days
        $day_entries

        ## Output Schema
        $output_schema
        """
    ).strip(),
    output_schema=TOPIC_EXTRACTION_SCHEMA,
    required_variables=frozenset({"max_topics", "month_name", "year", "day_entries"}),
)


# =============================================================================
# Prompt Registry
# =============================================================================


PROMPT_REGISTRY: dict[str, PromptTemplate] = {}


def register_prompt(template: PromptTemplate) -> None:
    """Register a prompt template.

    Raises:
        ValueError: If a prompt with the same ID is already registered.
    """
    if template.id in PROMPT_REGISTRY:
        raise ValueError(f"Prompt '{template.id}' is already registered")
    PROMPT_REGISTRY[template.id] = template


def get_prompt(prompt_id: str) -> PromptTemplate:
    """Retrieve a prompt template by ID.

    Raises:
        KeyError: If no prompt with the given ID exists.
    """
    if prompt_id not in PROMPT_REGISTRY:
        available = ", ".join(sorted(PROMPT_REGISTRY))
        raise KeyError(f"Prompt '{prompt_id}' not found. Available prompts: {available}")
    return PROMPT_REGISTRY[prompt_id]


for _template in (MONTHLY_SUMMARY_PROMPT, YEARLY_SUMMARY_PROMPT, TOPIC_EXTRACTION_PROMPT):
    register_prompt(_template)


# =============================================================================
# Helper Functions
# =============================================================================


def format_day_entries(contexts: list[DailyEntryContext], max_chars: int | None = None) -> str:
    """Join day blocks, stopping before ``max_chars`` would be exceeded.

    When days are dropped a final line says how many.
    """
    blocks: list[str] = []
    used = 0
    for position, context in enumerate(contexts):
        block = context.formatted()
        cost = len(block) + 2
        if max_chars is not None and used + cost > max_chars:
            blocks.append(f"({len(contexts) - position} more days omitted)")
            break
        blocks.append(block)
        used += cost
    return "\n\n".join(blocks) if blocks else "(no entries)"


def summarize_monthly_stats(stats: MonthlyStats) -> str:
    lines = [
        f"- Days with entries: {stats.days_with_entries} of {stats.total_days}",
        f"- Starred days: {stats.starred_days_count}",
        f"- Photos: {stats.total_photos}",
        f"- Longest streak: {stats.longest_streak} days",
    ]
    if stats.mood_breakdown:
        moods = ", ".join(f"{mood} {count}" for mood, count in sorted(stats.mood_breakdown.items()))
        lines.append(f"- Moods: {moods}")
    themes = stats.ranked_themes(5)
    if themes:
        lines.append(f"- Top themes: {', '.join(themes)}")
    return "\n".join(lines)


def summarize_yearly_stats(stats: YearlyStats) -> str:
    lines = [
        f"- Months documented: {stats.months_completed}",
        f"- Days with entries: {stats.days_with_entries}",
        f"- Photos: {stats.total_photos}",
        f"- Words written: {stats.total_words}",
        f"- Longest streak: {stats.longest_streak} days",
    ]
    themes = stats.ranked_themes(8)
    if themes:
        lines.append(f"- Top themes: {', '.join(themes)}")
    if stats.milestones:
        lines.append(f"- Milestones: {', '.join(stats.milestones)}")
    return "\n".join(lines)


def excerpt(text: str, limit: int) -> str:
    """Trim text to ``limit`` characters on a word boundary."""
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit].rsplit(" ", 1)[0] + "..."


def render_with_day_entries(
    template: PromptTemplate,
    contexts: list[DailyEntryContext],
    max_chars: int,
    **variables: Any,
) -> str:
    """Render a day-listing prompt, dropping trailing days to stay within ``max_chars``."""
    skeleton = template.render_prompt(day_entries="", **variables)
    # Leave room for the "more days omitted" line
    room = max(max_chars - len(skeleton) - 40, 0)
    return template.render_prompt(day_entries=format_day_entries(contexts, room), **variables)
