"""
LicitaWatch CLI - Main entry point.

Terminal front end for the procurement notice pipeline: feed syncs,
detail scraping, classification and querying the stored notices.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich.panel import Panel
from rich.table import Table
from rich.traceback import install as install_rich_traceback

from licitawatch import __app_name__, __version__

from .common import bootstrap, console, default_config_path, err_console, fail, state

# Load environment variables from .env (if present)
load_dotenv()

# Install rich traceback for better error display
install_rich_traceback(show_locals=False, width=120)

# Create main app
app = typer.Typer(
    name=__app_name__,
    help="Procurement notice feed ingestion, scraping and classification",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml (default: configs/app.yaml)",
        envvar="LICITAWATCH_CONFIG",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Debug logging",
    ),
) -> None:
    """LicitaWatch - Public procurement notice tracker."""
    state["config_path"] = config
    state["verbose"] = verbose


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import db, notices  # noqa: E402

app.add_typer(notices.app, name="notices", help="Query stored notices")
app.add_typer(db.app, name="db", help="Database operations")


# =============================================================================
# Init Command
# =============================================================================


DEFAULT_APP_CONFIG = """\
# LicitaWatch Configuration
# Values may reference environment variables: ${VAR} or ${VAR:-default}

data_dir: data

database:
  url: ${LICITAWATCH_DATABASE_URL:-sqlite:///data/licitawatch.db}
  echo: false

logging:
  level: INFO
  file: logs/licitawatch.log
  json_format: true
  rich_console: true

feed:
  lookback_days: 7

http:
  timeout_seconds: 30
  max_retries: 3

politeness:
  min_delay_seconds: 3
  max_delay_seconds: 5
  rate_limit_delay_seconds: 60

ingestion:
  batch_size: 20
  # max_scrape_attempts: 10

scheduler:
  enabled: true
  sync_interval_minutes: 30
  scrape_interval_minutes: 10
  scrape_after_sync: true
"""


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Initialize LicitaWatch directories, configuration and database."""
    for dir_path in (Path("configs"), Path("data"), Path("logs")):
        dir_path.mkdir(parents=True, exist_ok=True)

    config_path = default_config_path()
    if not config_path.exists() or force:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(DEFAULT_APP_CONFIG, encoding="utf-8")

    config = bootstrap(create_schema=True)

    console.print()
    console.print(Panel.fit(
        "[bold green]OK - LicitaWatch initialized[/bold green]\n\n"
        f"Config:   [cyan]{config_path}[/cyan]\n"
        f"Database: [cyan]{config.database.url}[/cyan]\n\n"
        "Next steps:\n"
        "  1. Pull the feed: [yellow]licitawatch sync[/yellow]\n"
        "  2. Scrape details: [yellow]licitawatch scrape[/yellow]\n"
        "  3. Run continuously: [yellow]licitawatch serve[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


@app.command()
def validate(
    path: Optional[Path] = typer.Argument(
        None,
        help="Configuration file (default: --config or configs/app.yaml)",
    ),
) -> None:
    """Check a configuration file without running anything."""
    from licitawatch.core.config.loader import validate_app_config_file

    config_path = path or default_config_path()
    errors = validate_app_config_file(config_path)

    if errors:
        err_console.print(f"[red]{config_path} is invalid:[/red]")
        for error in errors:
            err_console.print(f"  [red]-[/red] {error}")
        raise typer.Exit(1)

    console.print(f"[green]OK[/green] {config_path}")


# =============================================================================
# Status Command
# =============================================================================


@app.command()
def status() -> None:
    """Show queue state, category counts and recent runs."""
    from licitawatch.persistence.db import get_session
    from licitawatch.persistence.models import ScrapeStatus
    from licitawatch.persistence.repo import NoticeRepository, RunRepository

    config = bootstrap()

    with get_session() as session:
        notice_repo = NoticeRepository(session)
        run_repo = RunRepository(session)

        by_status = notice_repo.count_by_status()
        pending = notice_repo.count_pending(config.ingestion.max_scrape_attempts)
        by_category = notice_repo.count_by_category()
        runs = run_repo.get_recent(limit=5)

        console.print()
        console.print("[bold]LicitaWatch Status[/bold]")
        console.print()

        summary = Table(show_header=False, box=None)
        summary.add_column("Key", style="cyan")
        summary.add_column("Value", justify="right")
        summary.add_row("Total notices", str(sum(by_status.values())))
        summary.add_row("Scraped", str(by_status.get(ScrapeStatus.SCRAPED, 0)))
        summary.add_row("Pending scrape", str(pending))
        console.print(summary)
        console.print()

        if by_category:
            cat_table = Table(title="Categories", show_header=True, header_style="bold magenta")
            cat_table.add_column("Category", style="cyan")
            cat_table.add_column("Count", justify="right")
            for category, count in by_category.items():
                cat_table.add_row(category, str(count))
            console.print(cat_table)
            console.print()

        if runs:
            run_table = Table(title="Recent Runs", show_header=True, header_style="bold magenta")
            run_table.add_column("ID", justify="right")
            run_table.add_column("Type", style="cyan")
            run_table.add_column("Status")
            run_table.add_column("Started")
            run_table.add_column("Seen/New/OK/Failed", justify="right")
            for run in runs:
                color = {"COMPLETED": "green", "FAILED": "red"}.get(run.status, "yellow")
                run_table.add_row(
                    str(run.id),
                    run.run_type,
                    f"[{color}]{run.status}[/{color}]",
                    run.started_at.strftime("%Y-%m-%d %H:%M"),
                    f"{run.items_seen}/{run.items_new}/{run.items_succeeded}/{run.items_failed}",
                )
            console.print(run_table)
        else:
            console.print("[dim]No runs yet. Start with:[/dim] licitawatch sync")


# =============================================================================
# Sync / Scrape Commands
# =============================================================================


@app.command()
def sync(
    lookback_days: Optional[int] = typer.Option(
        None,
        "--lookback-days",
        "-d",
        help="Days of feed history to request (default from config)",
    ),
    scrape: bool = typer.Option(
        False,
        "--scrape",
        help="Run a scrape cycle afterwards if new notices arrived",
    ),
) -> None:
    """Pull the RSS feed and store new notices."""
    from licitawatch.core.backends.base import BackendError
    from licitawatch.core.feed.fetcher import ParseError
    from licitawatch.core.orchestrator.coordinator import build_coordinator
    from licitawatch.persistence.db import PersistenceError

    config = bootstrap()
    if lookback_days is not None:
        config.feed.lookback_days = lookback_days

    async def _run():
        coordinator = build_coordinator(config)
        coordinator.scrape_after_sync = scrape
        try:
            return await coordinator.sync_and_scrape()
        finally:
            await coordinator.close()

    try:
        result, cycle = asyncio.run(_run())
    except (BackendError, ParseError) as e:
        fail("Feed sync failed:", e)
    except PersistenceError as e:
        fail("Database error:", e)

    console.print(
        f"[green]OK[/green] Feed sync: [bold]{result.total_parsed}[/bold] parsed, "
        f"[bold]{result.newly_inserted}[/bold] new, {result.skipped} skipped"
    )
    if cycle is not None:
        _print_cycle(cycle)


@app.command()
def scrape(
    batch_size: Optional[int] = typer.Option(
        None,
        "--batch-size",
        "-b",
        help="Notices to process (default from config)",
    ),
) -> None:
    """Scrape, classify and store a batch of pending notices."""
    from licitawatch.core.orchestrator.coordinator import build_coordinator
    from licitawatch.persistence.db import PersistenceError

    config = bootstrap()

    async def _run():
        coordinator = build_coordinator(config)
        try:
            return await coordinator.run_scrape_cycle(batch_size)
        finally:
            await coordinator.close()

    try:
        cycle = asyncio.run(_run())
    except PersistenceError as e:
        fail("Database error:", e)

    _print_cycle(cycle)


def _print_cycle(cycle) -> None:
    if cycle.selected == 0:
        console.print("[dim]No pending notices.[/dim]")
        return

    color = "green" if cycle.failed == 0 else "yellow"
    console.print(
        f"[{color}]Scrape cycle[/{color}]: {cycle.succeeded}/{cycle.selected} scraped, "
        f"{cycle.failed} failed ({cycle.rate_limited} rate limited)"
    )
    for error in cycle.errors[:10]:
        console.print(f"  [red]-[/red] {error}")


# =============================================================================
# Serve Command
# =============================================================================


@app.command()
def serve() -> None:
    """Run the scheduler in the foreground (Ctrl+C to stop)."""
    from licitawatch.core.orchestrator.coordinator import build_coordinator
    from licitawatch.core.scheduler.service import SchedulerService
    from licitawatch.persistence.db import dispose_engines

    config = bootstrap()

    if not config.scheduler.enabled:
        console.print("[yellow]Scheduler disabled in configuration.[/yellow]")
        raise typer.Exit()

    async def _serve():
        coordinator = build_coordinator(config)
        service = SchedulerService(coordinator, config.scheduler)
        try:
            await service.run_until_stopped()
        finally:
            await coordinator.close()

    console.print(
        f"[bold]Serving[/bold]: sync every {config.scheduler.sync_interval_minutes} min, "
        f"scrape every {config.scheduler.scrape_interval_minutes} min"
    )
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")
    finally:
        dispose_engines()


# =============================================================================
# Classify Command
# =============================================================================


@app.command()
def classify(
    text: List[str] = typer.Argument(..., help="Text to classify"),
    show_scores: bool = typer.Option(
        False,
        "--scores",
        "-s",
        help="Show every category's score",
    ),
) -> None:
    """Classify free text with the keyword scorer."""
    from licitawatch.core.classify.classifier import Classifier

    classifier = Classifier()
    texts = [" ".join(text)]

    category = classifier.classify(texts)
    console.print(f"Category: [bold cyan]{category}[/bold cyan]")

    if show_scores:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Category", style="cyan")
        table.add_column("Score", justify="right")
        for name, score in classifier.scores(texts):
            table.add_row(name, str(score))
        console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
