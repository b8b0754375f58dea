"""
Database management commands.
"""

from __future__ import annotations

import typer

from ..common import console, fail, load_config

app = typer.Typer(
    help="Database operations",
    no_args_is_help=True,
)


@app.command("init")
def init_database(
    drop_existing: bool = typer.Option(
        False,
        "--drop",
        help="Drop existing tables before creating",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip the confirmation prompt for --drop",
    ),
) -> None:
    """Initialize the database schema.

    Creates all tables. Use --drop to reset the database.
    """
    from licitawatch.persistence.db import PersistenceError, check_connection, drop_db, get_engine, init_db

    config = load_config()

    try:
        check_connection(get_engine(config.database.url))

        if drop_existing:
            if not yes and not typer.confirm("This will DELETE ALL DATA. Continue?", default=False):
                raise typer.Abort()

            console.print("[yellow]Dropping existing tables...[/yellow]")
            drop_db(config.database.url)

        console.print("Creating database schema...")
        init_db(config.database.url)
    except PersistenceError as e:
        fail("Database error:", e)

    console.print("[green]OK[/green] Database initialized")
