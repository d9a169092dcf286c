"""
Command Line Interface for Lifebook.

Imports day records into the JSON entry store, generates monthly packs and
yearly summaries, and prints them back.

Example:
    lifebook import march.json
    lifebook month 2024 3
    lifebook show-month 2024 3
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import keyring.errors
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from lifebook import __version__
from lifebook.ai.client import GeminiTextGenerator
from lifebook.config import APIKeyManager, AppConfig, get_config, load_config
from lifebook.core.digest import DigestProcessor
from lifebook.core.models import DayRecord, GenerationMethod, MonthlyPack, StatsDecodeError, YearlySummary
from lifebook.core.narrative_text import split_narrative
from lifebook.core.store import JsonEntryStore
from lifebook.pipeline.monthly import MonthlyAggregationPipeline
from lifebook.pipeline.yearly import YearlyAggregationPipeline
from lifebook.utils.logging import setup_logging

logger = logging.getLogger(__name__)

console = Console()


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def print_header(text: str) -> None:
    """Print styled header."""
    console.print(f"\n[bold cyan]{text}[/bold cyan]\n")


def print_success(text: str) -> None:
    """Print green success message."""
    console.print(f"[bold green]✓[/bold green] {text}")


def print_warning(text: str) -> None:
    """Print yellow warning message."""
    console.print(f"[bold yellow]⚠[/bold yellow] {text}")


def print_error(text: str) -> None:
    """Print red error message."""
    console.print(f"[bold red]✗[/bold red] {text}")


def print_narrative(title: str, text: str) -> None:
    sections = split_narrative(text)
    body = "\n\n".join(part for part in (sections.opening, sections.body, sections.closing) if part)
    console.print(Panel(body or "(empty)", title=title, border_style="blue"))


def _store(ctx: click.Context) -> JsonEntryStore:
    return JsonEntryStore(ctx.obj["store_dir"])


def _generator(config: AppConfig, no_ai: bool) -> GeminiTextGenerator | None:
    if no_ai:
        return None
    return GeminiTextGenerator(config)


def _method_label(pack: MonthlyPack | YearlySummary) -> str:
    return "AI narrative" if pack.generation_method == GenerationMethod.AI else "template narrative"


# =============================================================================
# MAIN CLI GROUP
# =============================================================================


@click.group()
@click.version_option(__version__, prog_name="Lifebook")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Custom config file")
@click.option("--store", "store_dir", type=click.Path(path_type=Path), help="Override the store directory")
@click.option("--log-file", type=click.Path(path_type=Path), help="Also write logs to this file")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    debug: bool,
    config_path: Path | None,
    store_dir: Path | None,
    log_file: Path | None,
) -> None:
    """
    Lifebook - turn your journal into a book of your life.

    Day records are gathered into monthly chapters and yearly summaries,
    with AI narratives when Gemini is configured.
    """
    config = load_config(config_path) if config_path else get_config()

    if debug or config.debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = "WARNING"
    setup_logging(level=level, log_file=log_file)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["store_dir"] = store_dir or config.paths.store_dir


# =============================================================================
# IMPORT COMMAND
# =============================================================================


@cli.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_days(ctx: click.Context, file: Path) -> None:
    """
    Import day records from a JSON list.

    Records without keywords get them derived from their text and photo tags.

    Example:
        lifebook import march.json
    """
    try:
        days = TypeAdapter(list[DayRecord]).validate_json(file.read_bytes())
    except ValidationError as e:
        print_error(f"{file.name} is not a valid list of day records ({e.error_count()} errors)")
        sys.exit(1)

    store = _store(ctx)
    digest = DigestProcessor()
    for day in days:
        store.save_day_record(day if day.keywords else digest.process(day))

    print_success(f"Imported {len(days)} day records into {store.root}")


# =============================================================================
# GENERATION COMMANDS
# =============================================================================


@cli.command()
@click.argument("year", type=int)
@click.argument("month", type=click.IntRange(1, 12))
@click.option("--no-ai", is_flag=True, help="Use template narrative and keyword topics only")
@click.pass_context
def month(ctx: click.Context, year: int, month: int, no_ai: bool) -> None:
    """
    Generate the monthly pack for YEAR MONTH.

    Example:
        lifebook month 2024 3
    """
    config: AppConfig = ctx.obj["config"]
    pipeline = MonthlyAggregationPipeline.from_config(
        config, _store(ctx), _generator(config, no_ai), digest=DigestProcessor()
    )

    try:
        pack = pipeline.generate(year, month)
    except OSError as e:
        print_error(f"Could not save the pack: {e}")
        sys.exit(1)

    print_success(
        f"{pack.month_name} {year}: {len(pack.themed_photos)} themed photos, {_method_label(pack)}"
    )


@cli.command()
@click.argument("year", type=int)
@click.option("--no-ai", is_flag=True, help="Use the template narrative only")
@click.pass_context
def year(ctx: click.Context, year: int, no_ai: bool) -> None:
    """
    Generate the yearly summary from the stored monthly packs.

    Example:
        lifebook year 2024
    """
    config: AppConfig = ctx.obj["config"]
    pipeline = YearlyAggregationPipeline.from_config(config, _store(ctx), _generator(config, no_ai))

    try:
        summary = pipeline.generate(year)
    except OSError as e:
        print_error(f"Could not save the summary: {e}")
        sys.exit(1)

    if summary.stats.months_completed == 0:
        print_warning(f"No monthly packs found for {year}; run 'lifebook month' first")
    print_success(
        f"{year}: {summary.stats.months_completed} months, "
        f"{len(summary.selected_photos)} photos, {_method_label(summary)}"
    )


# =============================================================================
# SHOW COMMANDS
# =============================================================================


@cli.command("show-month")
@click.argument("year", type=int)
@click.argument("month", type=click.IntRange(1, 12))
@click.pass_context
def show_month(ctx: click.Context, year: int, month: int) -> None:
    """Print a stored monthly pack."""
    pack = _store(ctx).get_monthly_pack(year, month)
    if pack is None:
        print_error(f"No pack stored for {year}-{month:02d}")
        sys.exit(1)

    print_header(f"{pack.month_name} {pack.year}")

    try:
        stats = pack.decode_stats()
    except StatsDecodeError:
        print_warning("Statistics for this pack could not be decoded")
    else:
        table = Table(title="Statistics")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_row("Days with entries", f"{stats.days_with_entries} / {stats.total_days}")
        table.add_row("Starred days", str(stats.starred_days_count))
        table.add_row("Photos", str(stats.total_photos))
        table.add_row("Words", f"{stats.total_words:,}")
        table.add_row("Longest streak", str(stats.longest_streak))
        table.add_row("Top themes", ", ".join(stats.ranked_themes(3)) or "-")
        console.print(table)

    print_narrative(_method_label(pack), pack.narrative_text)

    if pack.themed_photos:
        photos = Table(title="Themed Photos")
        photos.add_column("Theme", style="cyan")
        photos.add_column("Photo")
        photos.add_column("Caption")
        for selection in pack.themed_photos:
            primary = selection.primary_photo
            reference = (primary.file_reference or primary.id) if primary else "-"
            photos.add_row(selection.theme, reference, selection.description or "")
        console.print(photos)


@cli.command("show-year")
@click.argument("year", type=int)
@click.pass_context
def show_year(ctx: click.Context, year: int) -> None:
    """Print a stored yearly summary."""
    summary = _store(ctx).get_yearly_summary(year)
    if summary is None:
        print_error(f"No summary stored for {year}")
        sys.exit(1)

    stats = summary.stats
    print_header(f"{summary.year} in Review")
    console.print(
        f"Months: {stats.months_completed}  Entries: {stats.days_with_entries}  "
        f"Photos: {stats.total_photos}  Longest streak: {stats.longest_streak}"
    )
    if stats.milestones:
        console.print(f"Milestones: {', '.join(stats.milestones)}")
    print_narrative(_method_label(summary), summary.narrative_text)
    console.print(f"{len(summary.selected_photos)} photos selected for the year")


# =============================================================================
# CONFIG GROUP
# =============================================================================


@cli.group()
def config() -> None:
    """Manage configuration settings."""
    pass


@config.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Display current configuration."""
    app_config: AppConfig = ctx.obj["config"]
    print_header("Current Configuration")

    table = Table(title="Settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for section, values in app_config.to_display_dict().items():
        if isinstance(values, dict):
            for key, value in values.items():
                table.add_row(f"{section}.{key}", str(value))
        else:
            table.add_row(section, str(values))

    key_status = "[CONFIGURED]" if APIKeyManager().get_key() is not None else "[NOT SET]"
    table.add_row("API Key", key_status)
    console.print(table)


@config.command("set-key")
def set_key() -> None:
    """Store the Gemini API key in the system keyring."""
    print_header("Set Gemini API Key")
    api_key = click.prompt("Enter your Gemini API key", hide_input=True)

    if len(api_key.strip()) < 10:
        print_error("Invalid API key format")
        sys.exit(1)

    try:
        APIKeyManager().store_key(api_key)
    except keyring.errors.KeyringError as e:
        print_error(f"Could not store the key: {type(e).__name__}")
        sys.exit(1)

    print_success("API key configured successfully")


if __name__ == "__main__":
    cli()
