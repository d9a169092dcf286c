"""Smoke tests for the lifebook command line.

Every command runs against a temporary store with AI switched off, so no
network or keyring access happens.
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from unittest.mock import patch

import keyring.errors
import pytest
from click.testing import CliRunner
from rich.console import Console

from lifebook.cli.main import cli
from lifebook.core.store import JsonEntryStore

# =============================================================================
# Fixtures
# =============================================================================


DAYS_JSON = [
    {
        "date": "2024-03-01",
        "text": "Long walk on the beach with the family.",
        "mood": "great",
        "keywords": ["beach", "family"],
        "photos": [
            {"id": "p1", "file_reference": "photos/p1.jpg", "detected_scenes": ["beach"], "quality_score": 0.8}
        ],
    },
    {
        "date": "2024-03-02",
        "text": "Quiet day of reading.",
        "mood": "good",
        "starred": True,
        "keywords": ["reading"],
        "photos": [{"id": "p2", "file_reference": "photos/p2.jpg", "quality_score": 0.6}],
    },
    {"date": "2024-03-03", "text": "Coffee with friends downtown."},
]


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the CLI away from real config files and API keys."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("lifebook.config.DEFAULT_SEARCH_PATHS", ())
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setattr("lifebook.cli.main.console", Console(width=200))


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    return tmp_path / "store"


@pytest.fixture
def days_file(tmp_path: Path) -> Path:
    path = tmp_path / "march.json"
    path.write_text(json.dumps(DAYS_JSON), encoding="utf-8")
    return path


def invoke(runner: CliRunner, store_dir: Path, *args: str):
    return runner.invoke(cli, ["--store", str(store_dir), *args])


# =============================================================================
# Entry Point Tests
# =============================================================================


class TestEntryPoint:
    """Tests for the group itself."""

    def test_help(self, runner: CliRunner) -> None:
        """--help lists the commands."""
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("import", "month", "year", "show-month", "show-year", "config"):
            assert command in result.output

    def test_version(self, runner: CliRunner) -> None:
        """--version prints the program name and version."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "Lifebook" in result.output
        assert "1.0.0" in result.output

    def test_log_file(self, runner: CliRunner, store_dir: Path, days_file: Path, tmp_path: Path) -> None:
        """--log-file writes log records to disk."""
        log_file = tmp_path / "logs" / "lifebook.log"
        result = runner.invoke(
            cli, ["--store", str(store_dir), "--log-file", str(log_file), "-v", "import", str(days_file)]
        )

        assert result.exit_code == 0
        assert log_file.exists()


# =============================================================================
# Import Tests
# =============================================================================


class TestImport:
    """Tests for the import command."""

    def test_import_days(self, runner: CliRunner, store_dir: Path, days_file: Path) -> None:
        """Each day lands in the store as its own file."""
        result = invoke(runner, store_dir, "import", str(days_file))

        assert result.exit_code == 0
        assert "Imported 3 day records" in result.output
        assert sorted(p.name for p in (store_dir / "days").iterdir()) == [
            "2024-03-01.json",
            "2024-03-02.json",
            "2024-03-03.json",
        ]

    def test_keywords_derived_when_missing(
        self, runner: CliRunner, store_dir: Path, days_file: Path
    ) -> None:
        """A day without keywords gets them from its text; others are kept."""
        invoke(runner, store_dir, "import", str(days_file))

        days = JsonEntryStore(store_dir).fetch_day_records(date(2024, 3, 1), date(2024, 4, 1))
        assert days[0].keywords == ["beach", "family"]
        assert days[2].keywords

    def test_invalid_json(self, runner: CliRunner, store_dir: Path, tmp_path: Path) -> None:
        """Malformed input exits with status 1 and saves nothing."""
        bad = tmp_path / "bad.json"
        bad.write_text('[{"date": "not a date"}]', encoding="utf-8")

        result = invoke(runner, store_dir, "import", str(bad))

        assert result.exit_code == 1
        assert "not a valid list of day records" in result.output
        assert not (store_dir / "days").exists()

    def test_missing_file(self, runner: CliRunner, store_dir: Path) -> None:
        """A file that does not exist is a usage error."""
        result = invoke(runner, store_dir, "import", "nowhere.json")
        assert result.exit_code == 2


# =============================================================================
# Generation And Show Tests
# =============================================================================


class TestMonthAndYear:
    """Tests for month, year, show-month and show-year."""

    def test_month_then_show(self, runner: CliRunner, store_dir: Path, days_file: Path) -> None:
        """A generated pack can be printed back."""
        invoke(runner, store_dir, "import", str(days_file))

        result = invoke(runner, store_dir, "month", "2024", "3", "--no-ai")
        assert result.exit_code == 0, result.output
        assert "March 2024" in result.output
        assert "template narrative" in result.output
        assert (store_dir / "packs" / "2024-03.json").exists()

        shown = invoke(runner, store_dir, "show-month", "2024", "3")
        assert shown.exit_code == 0, shown.output
        assert "March 2024" in shown.output
        assert "Statistics" in shown.output
        assert "Themed Photos" in shown.output

    def test_empty_month(self, runner: CliRunner, store_dir: Path) -> None:
        """A month without records still produces a pack."""
        result = invoke(runner, store_dir, "month", "2024", "7", "--no-ai")

        assert result.exit_code == 0, result.output
        assert "0 themed photos" in result.output

    def test_invalid_month(self, runner: CliRunner, store_dir: Path) -> None:
        """Month numbers outside 1-12 are rejected."""
        result = invoke(runner, store_dir, "month", "2024", "13")
        assert result.exit_code == 2

    def test_year_then_show(self, runner: CliRunner, store_dir: Path, days_file: Path) -> None:
        """The yearly summary reads the stored packs."""
        invoke(runner, store_dir, "import", str(days_file))
        invoke(runner, store_dir, "month", "2024", "3", "--no-ai")

        result = invoke(runner, store_dir, "year", "2024", "--no-ai")
        assert result.exit_code == 0, result.output
        assert "1 months" in result.output

        shown = invoke(runner, store_dir, "show-year", "2024")
        assert shown.exit_code == 0, shown.output
        assert "2024 in Review" in shown.output

    def test_year_without_packs_warns(self, runner: CliRunner, store_dir: Path) -> None:
        """An empty year is generated with a warning."""
        result = invoke(runner, store_dir, "year", "2023", "--no-ai")

        assert result.exit_code == 0
        assert "No monthly packs found for 2023" in result.output

    def test_show_missing_pack(self, runner: CliRunner, store_dir: Path) -> None:
        """Showing a pack that was never generated fails."""
        result = invoke(runner, store_dir, "show-month", "2024", "5")

        assert result.exit_code == 1
        assert "No pack stored for 2024-05" in result.output

    def test_show_missing_summary(self, runner: CliRunner, store_dir: Path) -> None:
        """Showing a summary that was never generated fails."""
        result = invoke(runner, store_dir, "show-year", "2022")
        assert result.exit_code == 1


# =============================================================================
# Config Tests
# =============================================================================


class TestConfigCommands:
    """Tests for the config group."""

    def test_show(self, runner: CliRunner) -> None:
        """Settings are listed with the key status."""
        with patch("lifebook.config.keyring.get_password", return_value=None):
            result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0
        assert "ai.max_attempts" in result.output
        assert "[NOT SET]" in result.output

    def test_show_uses_config_file(self, runner: CliRunner, tmp_path: Path) -> None:
        """--config points at a YAML file."""
        path = tmp_path / "custom.yaml"
        path.write_text("book:\n  max_topics: 7\n", encoding="utf-8")

        with patch("lifebook.config.keyring.get_password", return_value=None):
            result = runner.invoke(cli, ["--config", str(path), "config", "show"])

        assert result.exit_code == 0
        assert "book.max_topics" in result.output
        assert "7" in result.output

    def test_set_key(self, runner: CliRunner) -> None:
        """A plausible key is stored in the keyring."""
        with patch("lifebook.config.keyring.set_password") as set_password:
            result = runner.invoke(cli, ["config", "set-key"], input="abcdefghijklmnop\n")

        assert result.exit_code == 0
        set_password.assert_called_once_with("lifebook", "gemini", "abcdefghijklmnop")

    def test_set_key_too_short(self, runner: CliRunner) -> None:
        """A short key is rejected before touching the keyring."""
        with patch("lifebook.config.keyring.set_password") as set_password:
            result = runner.invoke(cli, ["config", "set-key"], input="short\n")

        assert result.exit_code == 1
        assert "Invalid API key format" in result.output
        set_password.assert_not_called()

    def test_set_key_keyring_failure(self, runner: CliRunner) -> None:
        """A missing keyring backend is reported, not raised."""
        with patch(
            "lifebook.config.keyring.set_password",
            side_effect=keyring.errors.NoKeyringError("no backend"),
        ):
            result = runner.invoke(cli, ["config", "set-key"], input="abcdefghijklmnop\n")

        assert result.exit_code == 1
        assert "Could not store the key" in result.output
