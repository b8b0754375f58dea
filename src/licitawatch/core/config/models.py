"""
Pydantic configuration models for LicitaWatch.

These models provide type-safe configuration with validation for:
- Database and logging settings
- Feed and HTTP settings
- Politeness and ingestion settings
- Scheduler intervals
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .labels import CONTACT_BOILERPLATE, CONTACT_LABELS, DETAIL_LABELS, STOP_LABELS


DEFAULT_FEED_URL_TEMPLATE = (
    "https://www.comprasestatales.gub.uy/consultas/rss/tipo-pub/ALL/tipo-fecha/MOD/"
    "orden/ORD_MOD/tipo-orden/DESC/rango-fecha/{start}_{end}"
)

# Every string-valued detail field, in NoticeDetail order (the classifier default)
TEXT_DETAIL_FIELDS = [
    "organization",
    "sub_unit",
    "notice_type",
    "opening_location",
    "delivery_location",
    "document_price",
    "resolution_state",
    "resolution_number",
    "contact_name",
    "contact_email",
    "contact_phone",
    "attachment_url",
]


# =============================================================================
# Database Configuration
# =============================================================================


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite:///data/licitawatch.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging)",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Connection pool size",
    )


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=Path("logs/licitawatch.log"),
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )


# =============================================================================
# Feed / HTTP Configuration
# =============================================================================


class FeedConfig(BaseModel):
    """Upstream RSS feed settings."""

    url_template: str = Field(
        default=DEFAULT_FEED_URL_TEMPLATE,
        description="Feed URL with {start} and {end} placeholders",
    )
    lookback_days: int = Field(
        default=7,
        ge=0,
        le=365,
        description="Rolling window of days requested from the feed",
    )
    timeout_seconds: float | None = Field(
        default=None,
        ge=1.0,
        le=300.0,
        description="Feed request timeout (default: http.timeout_seconds)",
    )

    @field_validator("url_template")
    @classmethod
    def has_placeholders(cls, v: str) -> str:
        if "{start}" not in v or "{end}" not in v:
            raise ValueError("url_template must contain {start} and {end}")
        return v


class HttpConfig(BaseModel):
    """HTTP client settings shared by feed and detail fetches."""

    user_agent: str | None = Field(
        default=None,
        description="User-Agent header (default: desktop Chrome)",
    )
    timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per request on transport errors",
    )
    retry_backoff_factor: float = Field(
        default=2.0,
        ge=1.0,
        le=10.0,
        description="Exponential backoff multiplier for retries",
    )


# =============================================================================
# Politeness Configuration
# =============================================================================


class PolitenessConfig(BaseModel):
    """Delays between consecutive detail-page requests."""

    min_delay_seconds: float = Field(
        default=3.0,
        ge=0.0,
        description="Minimum pause between items",
    )
    max_delay_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="Maximum pause between items",
    )
    rate_limit_delay_seconds: float = Field(
        default=60.0,
        ge=0.0,
        description="Pause after the upstream throttles a request",
    )

    @field_validator("max_delay_seconds")
    @classmethod
    def max_delay_gte_min(cls, v: float, info: Any) -> float:
        """Ensure max delay is at least min delay."""
        min_delay = info.data.get("min_delay_seconds", 0)
        if v < min_delay:
            raise ValueError("max_delay_seconds must be >= min_delay_seconds")
        return v


# =============================================================================
# Ingestion Configuration
# =============================================================================


class IngestionConfig(BaseModel):
    """Scrape queue settings."""

    batch_size: int = Field(
        default=20,
        ge=1,
        le=1000,
        description="Notices processed per scrape cycle",
    )
    max_scrape_attempts: int | None = Field(
        default=None,
        ge=1,
        description="Stop selecting a notice after this many failed attempts (None = retry forever)",
    )
    classifier_fields: list[str] = Field(
        default_factory=lambda: list(TEXT_DETAIL_FIELDS),
        description="Detail fields concatenated with title and description for classification",
    )

    @field_validator("classifier_fields")
    @classmethod
    def known_fields(cls, v: list[str]) -> list[str]:
        unknown = [name for name in v if name not in DETAIL_LABELS and name not in TEXT_DETAIL_FIELDS]
        if unknown:
            raise ValueError(f"Unknown classifier fields: {', '.join(unknown)}")
        return v


class LabelsConfig(BaseModel):
    """Label data used by the detail extractor."""

    fields: dict[str, list[str]] = Field(default_factory=lambda: {k: list(v) for k, v in DETAIL_LABELS.items()})
    contact: list[str] = Field(default_factory=lambda: list(CONTACT_LABELS))
    stop: list[str] = Field(default_factory=lambda: list(STOP_LABELS))
    contact_boilerplate: list[str] = Field(default_factory=lambda: list(CONTACT_BOILERPLATE))
    max_value_chars: int = Field(
        default=300,
        ge=20,
        le=5000,
        description="Bounded slice length after a label",
    )

    @field_validator("fields")
    @classmethod
    def merge_defaults(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        """Overrides replace individual fields; unspecified fields keep defaults."""
        unknown = [name for name in v if name not in DETAIL_LABELS]
        if unknown:
            raise ValueError(f"Unknown detail fields: {', '.join(unknown)}")
        merged = {k: list(labels) for k, labels in DETAIL_LABELS.items()}
        merged.update(v)
        return merged


# =============================================================================
# Scheduler Configuration
# =============================================================================


class SchedulerConfig(BaseModel):
    """Periodic trigger settings."""

    enabled: bool = Field(
        default=True,
        description="Master scheduler enable/disable",
    )
    sync_interval_minutes: int = Field(
        default=30,
        ge=1,
        le=1440,
        description="Minutes between feed syncs",
    )
    scrape_interval_minutes: int = Field(
        default=10,
        ge=1,
        le=1440,
        description="Minutes between scrape cycles",
    )
    scrape_after_sync: bool = Field(
        default=True,
        description="Run a scrape cycle right after a sync that found new notices",
    )


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from app.yaml.
    """

    data_dir: Path = Field(
        default=Path("data"),
        description="Data storage directory",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    politeness: PolitenessConfig = Field(default_factory=PolitenessConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    labels: LabelsConfig = Field(default_factory=LabelsConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        if self.logging.file:
            self.logging.file.parent.mkdir(parents=True, exist_ok=True)
