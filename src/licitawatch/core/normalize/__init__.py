"""Normalization of values extracted from feeds and detail pages."""

from .parsing import (
    clean_html_text,
    normalize_whitespace,
    parse_amount,
    parse_date,
    parse_flag,
    parse_pub_date,
    strip_artifacts,
)

__all__ = [
    "parse_date",
    "parse_pub_date",
    "parse_amount",
    "parse_flag",
    "normalize_whitespace",
    "strip_artifacts",
    "clean_html_text",
]
