"""
Shared CLI state: consoles, configuration and store bootstrap.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from licitawatch.core.config.loader import ConfigError, load_app_config
from licitawatch.core.config.models import AppConfig
from licitawatch.core.logging import setup_logging
from licitawatch.persistence.db import PersistenceError, check_connection, get_engine, init_db

console = Console()
err_console = Console(stderr=True)

# Filled by the root callback
state: dict[str, Any] = {"config_path": None, "verbose": False}


def load_config() -> AppConfig:
    """Load configuration, exiting with a short message when invalid."""
    try:
        return load_app_config(state["config_path"])
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)


def bootstrap(*, create_schema: bool = True) -> AppConfig:
    """Load config, configure logging and connect to the store.

    An unreachable store is fatal: the process exits with status 1.
    """
    config = load_config()
    config.ensure_directories()

    setup_logging(config.logging, verbose=state["verbose"])

    try:
        engine = get_engine(config.database.url, echo=config.database.echo, pool_size=config.database.pool_size)
        check_connection(engine)
        if create_schema:
            init_db(config.database.url)
    except PersistenceError as e:
        err_console.print(f"[red]Database unavailable:[/red] {e}")
        raise typer.Exit(1)

    return config


def fail(message: str, error: BaseException | None = None) -> None:
    """Print a short red error and exit 1."""
    detail = f" {error}" if error is not None else ""
    err_console.print(f"[red]{message}[/red]{detail}")
    raise typer.Exit(1)


def default_config_path() -> Path:
    return Path(state["config_path"] or "configs/app.yaml")
