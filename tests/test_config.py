"""Tests for YAML configuration loading."""

from dataclasses import fields
from pathlib import Path

import pytest

from licitawatch.core.config import AppConfig, ConfigError, load_app_config, validate_app_config_file
from licitawatch.core.config.labels import DETAIL_LABELS
from licitawatch.core.config.models import TEXT_DETAIL_FIELDS
from licitawatch.core.extract import NoticeDetail


def write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "app.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_missing_file_gives_defaults(tmp_path):
    config = load_app_config(tmp_path / "nope.yaml")

    assert config == AppConfig()
    assert config.ingestion.max_scrape_attempts is None
    assert config.ingestion.classifier_fields == TEXT_DETAIL_FIELDS
    assert config.politeness.rate_limit_delay_seconds == 60.0


def test_shipped_config_is_valid():
    path = Path(__file__).resolve().parent.parent / "configs" / "app.yaml"

    assert validate_app_config_file(path) == []


def test_env_expansion(tmp_path, monkeypatch):
    monkeypatch.setenv("LW_DB", "sqlite:///tmp/test.db")
    monkeypatch.delenv("LW_MISSING", raising=False)
    path = write(tmp_path, "database:\n  url: ${LW_DB}\nlogging:\n  level: ${LW_MISSING:-WARNING}\n")

    config = load_app_config(path)

    assert config.database.url == "sqlite:///tmp/test.db"
    assert config.logging.level == "WARNING"


def test_invalid_values_raise_config_error(tmp_path):
    path = write(tmp_path, "politeness:\n  min_delay_seconds: 5\n  max_delay_seconds: 1\n")

    with pytest.raises(ConfigError) as exc_info:
        load_app_config(path)

    assert "max_delay_seconds" in exc_info.value.details


def test_invalid_yaml_raises_config_error(tmp_path):
    path = write(tmp_path, "feed: [unclosed\n")

    with pytest.raises(ConfigError):
        load_app_config(path)


def test_feed_template_needs_placeholders(tmp_path):
    path = write(tmp_path, "feed:\n  url_template: https://feed.test/rss\n")

    errors = validate_app_config_file(path)

    assert len(errors) == 1
    assert errors[0].startswith("feed.url_template")


def test_unknown_classifier_field_rejected(tmp_path):
    path = write(tmp_path, "ingestion:\n  classifier_fields: [organization, colour]\n")

    with pytest.raises(ConfigError):
        load_app_config(path)


def test_label_overrides_keep_other_defaults(tmp_path):
    path = write(tmp_path, "labels:\n  fields:\n    organization: [Entidad]\n")

    config = load_app_config(path)

    assert config.labels.fields["organization"] == ["Entidad"]
    assert config.labels.fields["total_amount"] == DETAIL_LABELS["total_amount"]


def test_default_classifier_fields_are_every_text_detail_field():
    text_fields = [f.name for f in fields(NoticeDetail) if f.type == "str | None"]
    detail = NoticeDetail(contact_email="a@b.uy", attachment_url="https://x.test/pliego.pdf")

    assert TEXT_DETAIL_FIELDS == text_fields
    assert detail.text_fields() == detail.text_fields(AppConfig().ingestion.classifier_fields)
