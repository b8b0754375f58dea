"""CLI command modules."""

from . import db, notices

__all__ = [
    "db",
    "notices",
]
