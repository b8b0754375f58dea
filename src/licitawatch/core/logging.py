"""
Logging setup for LicitaWatch.

Console output goes through Rich; the optional log file gets one JSON
object per line. Pipeline code logs through ``ContextualLogger`` so every
line of a scrape cycle carries the run id and, per item, the notice
identifier.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson
from rich.logging import RichHandler
from rich.markup import escape

if TYPE_CHECKING:
    from .config.models import LoggingConfig


ROOT_LOGGER = "licitawatch"

# Record attributes copied into JSON lines when present
CONTEXT_KEYS = ("notice", "run_id", "url")

_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                data[key] = value
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        return orjson.dumps(data, default=str).decode("utf-8")


class NoticeRichHandler(RichHandler):
    """RichHandler that prefixes the notice identifier when one is attached."""

    def render_message(self, record: logging.LogRecord, message: str):
        notice = getattr(record, "notice", None)
        # Feed titles and identifiers may contain square brackets
        text = escape(message)
        if notice:
            text = f"[cyan]\\[{escape(str(notice))}][/cyan] {text}"
        return super().render_message(record, text)


def setup_logging(config: "LoggingConfig | None" = None, *, verbose: bool = False) -> logging.Logger:
    """Configure the ``licitawatch`` logger tree from a LoggingConfig.

    Safe to call repeatedly: existing handlers are replaced.
    """
    if config is None:
        from .config.models import LoggingConfig
        config = LoggingConfig()

    level = logging.DEBUG if verbose else getattr(logging, config.level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if config.rich_console:
        console_handler: logging.Handler = NoticeRichHandler(
            level=level,
            markup=True,
            rich_tracebacks=True,
            show_path=False,
        )
    else:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
    logger.addHandler(console_handler)

    if config.file:
        path = Path(config.file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            JSONFormatter() if config.json_format else logging.Formatter(_FILE_FORMAT, "%Y-%m-%d %H:%M:%S")
        )
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """``licitawatch.<name>``, or the root package logger."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


class ContextualLogger(logging.LoggerAdapter):
    """Adapter stamping ``notice`` and ``run_id`` onto every record."""

    def __init__(
        self,
        logger: logging.Logger,
        notice: str | None = None,
        run_id: int | None = None,
    ):
        super().__init__(logger, {})
        self.notice = notice
        self.run_id = run_id

    def process(self, msg: Any, kwargs: dict[str, Any]) -> tuple[Any, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        if self.notice is not None:
            extra.setdefault("notice", self.notice)
        if self.run_id is not None:
            extra.setdefault("run_id", self.run_id)
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(
        self,
        notice: str | None = None,
        run_id: int | None = None,
    ) -> "ContextualLogger":
        """Copy of this adapter with extra context; unset values are inherited."""
        return ContextualLogger(
            self.logger,
            notice=notice if notice is not None else self.notice,
            run_id=run_id if run_id is not None else self.run_id,
        )


def get_contextual_logger(
    name: str | None = None,
    notice: str | None = None,
    run_id: int | None = None,
) -> ContextualLogger:
    return ContextualLogger(get_logger(name), notice=notice, run_id=run_id)
