"""Tests for lifebook.ai.prompts."""

from __future__ import annotations

import pytest

from lifebook.ai.prompts import (
    MONTHLY_SUMMARY_PROMPT,
    PROMPT_REGISTRY,
    PromptTemplate,
    excerpt,
    format_day_entries,
    get_prompt,
    register_prompt,
    render_with_day_entries,
    summarize_monthly_stats,
)
from lifebook.core.models import DailyEntryContext, DayRecord, MonthlyStats


class TestPromptTemplate:
    """Tests for PromptTemplate rendering."""

    def test_missing_variables(self) -> None:
        """Rendering without a required variable fails."""
        with pytest.raises(ValueError, match="month_name"):
            MONTHLY_SUMMARY_PROMPT.render(year=2024, stats_summary="", day_entries="")

    def test_schema_injected(self) -> None:
        """The output schema is rendered as JSON."""
        prompt = MONTHLY_SUMMARY_PROMPT.render_prompt(
            month_name="March", year=2024, stats_summary="- stats", day_entries="- days"
        )

        assert '"closingReflection"' in prompt
        assert prompt.startswith(MONTHLY_SUMMARY_PROMPT.system_instruction)

    def test_values_with_dollar_signs(self) -> None:
        """Variable values are not re-interpreted as placeholders."""
        template = PromptTemplate(id="t", version="1", system_instruction="S", user_prompt_template="$a")
        assert template.render_prompt(a="cost $5") == "S\n\ncost $5"


class TestRegistry:
    """Tests for the prompt registry."""

    def test_builtin_prompts_registered(self) -> None:
        """All three built-in prompts are available by id."""
        assert {"monthly_summary_v1", "yearly_summary_v1", "topic_extraction_v1"} <= set(PROMPT_REGISTRY)
        assert get_prompt("monthly_summary_v1") is MONTHLY_SUMMARY_PROMPT

    def test_unknown_prompt(self) -> None:
        """Unknown ids raise KeyError listing the available ones."""
        with pytest.raises(KeyError, match="monthly_summary_v1"):
            get_prompt("nope")

    def test_duplicate_registration(self) -> None:
        """Registering an existing id is an error."""
        with pytest.raises(ValueError):
            register_prompt(MONTHLY_SUMMARY_PROMPT)


class TestHelpers:
    """Tests for prompt helper functions."""

    def test_format_day_entries_budget(self, march_days: list[DayRecord]) -> None:
        """Days past the budget are counted, not included."""
        contexts = [DailyEntryContext.from_day(d) for d in march_days]
        text = format_day_entries(contexts, max_chars=200)

        assert text.endswith("more days omitted)")
        assert "Day 20" not in text

    def test_format_day_entries_empty(self) -> None:
        """No contexts gives a placeholder."""
        assert format_day_entries([]) == "(no entries)"

    def test_render_with_day_entries_fits(self, march_days: list[DayRecord]) -> None:
        """The rendered prompt stays within its budget."""
        contexts = [DailyEntryContext.from_day(d) for d in march_days]
        prompt = render_with_day_entries(
            MONTHLY_SUMMARY_PROMPT,
            contexts,
            1500,
            month_name="March",
            year=2024,
            stats_summary="- stats",
        )

        assert len(prompt) <= 1500
        assert "Day 1]" in prompt

    def test_summarize_monthly_stats(self) -> None:
        """The summary lists counts, moods and themes."""
        stats = MonthlyStats(
            total_days=31,
            days_with_entries=3,
            mood_breakdown={"good": 2, "great": 1},
            top_themes={"sea": 2},
        )
        summary = summarize_monthly_stats(stats)

        assert "- Days with entries: 3 of 31" in summary
        assert "- Moods: good 2, great 1" in summary
        assert "- Top themes: sea" in summary

    def test_excerpt(self) -> None:
        """Excerpts cut on a word boundary."""
        assert excerpt("one two three", 100) == "one two three"
        assert excerpt("one two three", 9) == "one two..."
