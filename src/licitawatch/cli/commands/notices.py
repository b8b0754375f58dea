"""
Notice query commands.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import orjson
import typer
from rich.table import Table

from ..common import bootstrap, console, err_console

app = typer.Typer(
    help="Query stored notices",
    no_args_is_help=True,
)


def _parse_day(value: str | None, option: str) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        err_console.print(f"[red]Invalid date for {option}:[/red] {value} (expected YYYY-MM-DD)")
        raise typer.Exit(1)


def _notice_row(notice) -> dict:
    return {
        "id": notice.id,
        "identifier": notice.identifier,
        "title": notice.title,
        "published_at": notice.published_at.isoformat() if notice.published_at else None,
        "organization": notice.organization,
        "notice_type": notice.notice_type,
        "category": notice.category,
        "scrape_status": notice.scrape_status,
        "total_amount": notice.total_amount,
        "source_link": notice.source_link,
    }


def _print_notices(rows, title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right")
    table.add_column("Published")
    table.add_column("Title", max_width=60)
    table.add_column("Organization", max_width=30)
    table.add_column("Category", style="cyan")
    table.add_column("Status")

    for n in rows:
        status_style = "green" if n.scrape_status == "scraped" else "yellow"
        table.add_row(
            str(n.id),
            n.published_at.strftime("%Y-%m-%d"),
            (n.title or "")[:60],
            (n.organization or "-")[:30],
            n.category or "-",
            f"[{status_style}]{n.scrape_status}[/{status_style}]",
        )

    console.print(table)


@app.command("list")
def list_notices(
    category: Optional[str] = typer.Option(None, "--category", help="Exact category name"),
    organization: Optional[str] = typer.Option(None, "--organization", "-o", help="Organization contains"),
    notice_type: Optional[str] = typer.Option(None, "--type", "-t", help="Notice type contains"),
    since: Optional[str] = typer.Option(None, "--from", help="Published on or after (YYYY-MM-DD)"),
    until: Optional[str] = typer.Option(None, "--to", help="Published on or before (YYYY-MM-DD)"),
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Free text in title/description"),
    pending: bool = typer.Option(False, "--pending", help="Only notices not scraped yet"),
    limit: int = typer.Option(20, "--limit", "-n", help="Page size"),
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page number"),
    format: str = typer.Option("table", "--format", "-f", help="Output format (table, json)"),
) -> None:
    """List notices with filters and pagination.

    Examples:
        licitawatch notices list --category Limpieza
        licitawatch notices list --from 2024-03-01 --search hipoclorito --format json
    """
    from licitawatch.persistence.db import get_session
    from licitawatch.persistence.models import ScrapeStatus
    from licitawatch.persistence.repo import NoticeFilter, NoticeRepository

    filters = NoticeFilter(
        category=category,
        organization=organization,
        notice_type=notice_type,
        published_from=_parse_day(since, "--from"),
        published_to=_parse_day(until, "--to").replace(hour=23, minute=59, second=59) if until else None,
        text=search,
        scrape_status=ScrapeStatus.NOT_SCRAPED if pending else None,
    )

    bootstrap()

    with get_session() as session:
        repo = NoticeRepository(session)
        total = repo.count_notices(filters)
        rows = repo.list_notices(filters, limit=limit, offset=(page - 1) * limit)

        if format == "json":
            payload = {
                "total": total,
                "page": page,
                "limit": limit,
                "items": [_notice_row(n) for n in rows],
            }
            console.print_json(orjson.dumps(payload).decode("utf-8"))
            return

        if not rows:
            console.print("[dim]No notices found matching criteria.[/dim]")
            return

        pages = (total + limit - 1) // limit
        _print_notices(rows, f"Notices (page {page}/{pages}, {total} total)")


@app.command("show")
def show_notice(
    notice_id: int = typer.Argument(..., help="Notice ID"),
) -> None:
    """Show every stored field of one notice."""
    from licitawatch.core.extract.base import NoticeDetail
    from licitawatch.persistence.db import get_session
    from licitawatch.persistence.repo import NoticeRepository

    bootstrap()

    with get_session() as session:
        notice = NoticeRepository(session).get_by_id(notice_id)
        if notice is None:
            err_console.print(f"[red]Notice not found:[/red] {notice_id}")
            raise typer.Exit(1)

        table = Table(show_header=False, title=f"Notice {notice.id}")
        table.add_column("Field", style="cyan")
        table.add_column("Value", max_width=90)

        fields = ["identifier", "title", "description", "published_at", "source_link"]
        fields += NoticeDetail.field_names()
        fields += ["category", "scrape_status", "scrape_attempts", "last_scrape_error", "last_scrape_attempt_at"]

        for name in fields:
            value = getattr(notice, name)
            table.add_row(name, "-" if value is None else str(value))

        console.print(table)


@app.command("stats")
def stats() -> None:
    """Counts by category and notice type, and the pending queue size."""
    from licitawatch.persistence.db import get_session
    from licitawatch.persistence.repo import NoticeRepository

    config = bootstrap()

    with get_session() as session:
        repo = NoticeRepository(session)

        for title, counts in (
            ("By Category", repo.count_by_category()),
            ("By Type", repo.count_by_type()),
        ):
            table = Table(title=title, show_header=True, header_style="bold magenta")
            table.add_column("Name", style="cyan")
            table.add_column("Count", justify="right")
            for name, count in counts.items():
                table.add_row(name, str(count))
            console.print(table)

        console.print(f"Pending scrape: [bold]{repo.count_pending(config.ingestion.max_scrape_attempts)}[/bold]")


@app.command("new")
def new_notices(
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum results"),
) -> None:
    """Notices first stored by the most recent completed feed sync."""
    from licitawatch.persistence.db import get_session
    from licitawatch.persistence.models import RunStatus, RunType
    from licitawatch.persistence.repo import NoticeRepository, RunRepository

    bootstrap()

    with get_session() as session:
        runs = RunRepository(session).get_recent(run_type=RunType.FEED_SYNC, limit=20)
        last = next((r for r in runs if r.status == RunStatus.COMPLETED), None)
        if last is None:
            console.print("[dim]No completed feed sync yet.[/dim]")
            return

        rows = NoticeRepository(session).list_created_since(last.started_at, limit=limit)
        if not rows:
            console.print(f"[dim]No new notices since {last.started_at:%Y-%m-%d %H:%M}.[/dim]")
            return

        _print_notices(rows, f"New since {last.started_at:%Y-%m-%d %H:%M}")
