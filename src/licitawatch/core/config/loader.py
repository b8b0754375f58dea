"""
YAML configuration loading.

``configs/app.yaml`` is read with PyYAML, string values get ``${VAR}`` /
``${VAR:-default}`` substitution from the environment, and the result is
validated into :class:`AppConfig`.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import AppConfig

DEFAULT_APP_CONFIG_PATH = Path("configs/app.yaml")

_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>[^}]*))?\}")


class ConfigError(Exception):
    """Raised when a configuration file cannot be read, parsed or validated."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        self.path = path
        self.details = details
        super().__init__(message)


def expand_env(value: Any) -> Any:
    """Substitute environment references in every string of a YAML tree."""
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m["name"], m["default"] or ""), value)
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    return value


def _read_mapping(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}", path=path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}", path=path, details=str(e)) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}", path=path, details=str(e)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a mapping", path=path)
    return data


def _error_lines(error: ValidationError) -> list[str]:
    lines = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item["loc"]) or "<root>"
        lines.append(f"{loc}: {item['msg']}")
    return lines


def load_app_config(path: Path | str | None = None, expand_env_vars: bool = True) -> AppConfig:
    """Load ``path`` (default ``configs/app.yaml``) into an AppConfig.

    A missing file yields the built-in defaults. Anything unreadable or
    invalid raises :class:`ConfigError` with the individual problems in
    ``details``.
    """
    path = DEFAULT_APP_CONFIG_PATH if path is None else Path(path)
    if not path.exists():
        return AppConfig()

    data = _read_mapping(path)
    if expand_env_vars:
        data = expand_env(data)

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid app configuration in {path}",
            path=path,
            details="\n".join(_error_lines(e)),
        ) from e


def validate_app_config_file(path: Path | str) -> list[str]:
    """Problems found in a configuration file, as ``"loc: message"`` lines.

    An empty list means the file is valid.
    """
    path = Path(path)
    try:
        data = expand_env(_read_mapping(path))
    except ConfigError as e:
        return [str(e)]

    try:
        AppConfig.model_validate(data)
    except ValidationError as e:
        return _error_lines(e)
    return []
