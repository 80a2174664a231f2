"""
CLI interface for menugen.

Provides command-line access to batch generation, language detection
and usage statistics.
"""

import asyncio
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import openai
import typer
import yaml
from rich.console import Console
from rich.table import Table

from menugen.config.loader import MenugenConfig, load_config
from menugen.core.errors import MenugenError
from menugen.core.language import LanguageDetector
from menugen.core.models import BatchResult, GenerationMode
from menugen.observability import configure_logging
from menugen.pipeline import build_pipeline
from menugen.sdk.openai_client import OpenAIProvider
from menugen.storage.db import DEFAULT_DB_PATH, initialize_schema
from menugen.storage.repository import SQLiteUsageLedger

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON"),
):
    """menugen CLI."""
    configure_logging(json_logs=json_logs, level=log_level)
    if ctx.invoked_subcommand is None:
        console.print("menugen - Use --help to see available commands")


@app.command()
def init(db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path")):
    """Initialize the menugen database."""
    try:
        initialize_schema(db)
        console.print(f"[green]✓[/] Database initialized at {db}")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


def _load_items(path: Path) -> list:
    """Read a JSON list of {id, name, language_override?} objects."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict) and "items" in data:
        data = data["items"]
    return data


def _config_or_default(path: Optional[str]) -> MenugenConfig:
    return load_config(path) if path else MenugenConfig()


@app.command()
def generate(
    items_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with the items"),
    tenant: str = typer.Option(..., "--tenant", "-t", help="Tenant id"),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
    force: bool = typer.Option(False, "--force", "-f", help="Ignore cached content"),
    mode: GenerationMode = typer.Option(GenerationMode.FULL, "--mode", help="full or description_only"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw batch result as JSON"),
):
    """
    Generate content for a batch of items.

    Items already in the cache are returned without a provider call unless
    --force is given.
    """
    try:
        settings = _config_or_default(config)
        items = _load_items(items_file)
        initialize_schema(db)
        provider = OpenAIProvider(timeout_seconds=settings.provider.timeout_seconds)
        pipeline = build_pipeline(provider, settings, db)
        result = asyncio.run(pipeline.orchestrator.generate_batch(
            tenant, items, force_regeneration=force, mode=mode,
        ))
    except MenugenError as e:
        if as_json:
            print(json.dumps(e.to_dict(), ensure_ascii=False))
        else:
            console.print(f"[red]{e.code}:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)
    except (FileNotFoundError, ValueError, yaml.YAMLError, openai.OpenAIError) as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if as_json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        _display_batch_result(result)
    sys.exit(EXIT_CODE_FAIL if result.summary.failed_count else EXIT_CODE_PASS)


@app.command("detect-language")
def detect_language(
    name: str = typer.Argument(..., help="Item name"),
    override: Optional[str] = typer.Option(None, "--override", help="Manual language override"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
):
    """Show the detected language of an item name."""
    settings = _config_or_default(config)
    detector = LanguageDetector(settings.language.default, settings.language.supported)
    if override:
        console.print(f"Language: [bold]{override}[/] (manual override)")
        sys.exit(EXIT_CODE_PASS)

    detection = detector.detect(name)
    console.print(f"Language: [bold]{detection.language}[/]")
    console.print(f"Confidence: {detection.confidence:.2f}")
    for reason in detection.reasons:
        console.print(f"  - {reason}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def usage(
    tenant: str = typer.Option(..., "--tenant", "-t", help="Tenant id"),
    days: int = typer.Option(1, "--days", "-d", help="Number of days to look back"),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path"),
):
    """Show usage statistics for a tenant."""
    since = datetime.now(timezone.utc) - timedelta(days=days)
    try:
        stats = asyncio.run(SQLiteUsageLedger(db).get_usage_stats(tenant, since))
    except MenugenError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        console.print("Run `menugen init` to initialize the database")
        sys.exit(EXIT_CODE_FAIL)

    table = Table(title=f"Usage for {tenant} (last {days} day(s))")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Calls", str(stats["total_calls"]))
    table.add_row("Tokens", str(stats["total_tokens"]))
    table.add_row("Cost", _format_currency(stats["total_cost"]))
    table.add_row("Avg latency", f"{stats['avg_processing_time_ms']:.0f} ms")
    table.add_row("Error rate", f"{stats['error_rate'] * 100:.1f}%")
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


def _format_currency(amount: float) -> str:
    """Format small provider costs with enough precision to be visible."""
    return f"${abs(amount):,.6f}"


def _display_batch_result(result: BatchResult):
    """Display per-item outcomes and the batch summary."""
    table = Table(title="Generation Result")
    table.add_column("Id")
    table.add_column("Status")
    table.add_column("Lang")
    table.add_column("Description")
    table.add_column("Allergens")
    table.add_column("Cost", justify="right")
    for outcome in result.results:
        description = outcome.error if outcome.error else outcome.result.description
        table.add_row(
            outcome.item_id,
            outcome.status.value,
            outcome.result.language,
            description or "[dim]-[/]",
            ", ".join(outcome.result.allergen_codes),
            _format_currency(outcome.usage.cost_estimate),
        )
    console.print(table)

    summary = result.summary
    console.print(
        f"\n[bold]Total:[/bold] {summary.total}  "
        f"[green]cached[/] {summary.cached_count}  "
        f"[green]generated[/] {summary.generated_count}  "
        f"excluded {summary.excluded_count}  "
        f"[red]failed[/] {summary.failed_count}"
    )
    console.print(
        f"Cost: {_format_currency(summary.total_cost)}  "
        f"Tokens: {summary.total_tokens}  "
        f"Time: {summary.total_processing_time_ms} ms"
    )


if __name__ == "__main__":
    app()
