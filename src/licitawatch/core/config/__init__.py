"""Configuration loading and validation."""

from .categories import DEFAULT_CATEGORIES, FALLBACK_CATEGORY, Category
from .loader import ConfigError, load_app_config, validate_app_config_file
from .models import (
    AppConfig,
    DatabaseConfig,
    FeedConfig,
    HttpConfig,
    IngestionConfig,
    LabelsConfig,
    LoggingConfig,
    PolitenessConfig,
    SchedulerConfig,
)

__all__ = [
    # Config models
    "AppConfig",
    "DatabaseConfig",
    "FeedConfig",
    "HttpConfig",
    "IngestionConfig",
    "LabelsConfig",
    "LoggingConfig",
    "PolitenessConfig",
    "SchedulerConfig",
    # Categories
    "Category",
    "DEFAULT_CATEGORIES",
    "FALLBACK_CATEGORY",
    # Loaders
    "ConfigError",
    "load_app_config",
    "validate_app_config_file",
]
