"""
Parsing utilities for normalizing extracted data.

Handles the date, amount and flag formats found on notice detail pages,
feed publication dates, and cleanup of residual markup in sliced text.
None of these functions raise on malformed input; they return None.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import dateparser


# =============================================================================
# Date Parsing
# =============================================================================

# DD/MM/YYYY HH:MM, as printed on detail pages
_DETAIL_DATE_PATTERN = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{2})\b")


def parse_date(value: str | None) -> datetime | None:
    """Parse a ``DD/MM/YYYY HH:MM`` timestamp found anywhere in ``value``.

    Returns None when the pattern is absent or names an impossible
    calendar date (e.g. 31/02/2024).
    """
    if not value:
        return None

    match = _DETAIL_DATE_PATTERN.search(value)
    if not match:
        return None

    day, month, year, hour, minute = (int(g) for g in match.groups())
    try:
        return datetime(year, month, day, hour, minute)
    except ValueError:
        return None


def parse_pub_date(value: str | None) -> datetime | None:
    """Parse a feed ``pubDate`` into a naive UTC datetime.

    RFC 822 is tried first since that is what RSS mandates; anything else
    goes through dateparser.
    """
    if value is None:
        return None

    text = value.strip()
    if not text:
        return None

    parsed: datetime | None
    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        parsed = None

    if parsed is None:
        settings = {
            "RETURN_AS_TIMEZONE_AWARE": True,
            "TO_TIMEZONE": "UTC",
            "DATE_ORDER": "DMY",
            "PREFER_DAY_OF_MONTH": "first",
        }
        try:
            parsed = dateparser.parse(text, settings=settings)
        except (TypeError, ValueError, OverflowError):
            parsed = None

    if parsed is None:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# =============================================================================
# Amount Parsing
# =============================================================================


def parse_amount(value: str | None) -> float | None:
    """Parse an amount written with ``.`` thousands and ``,`` decimals.

    ``"$1.234.567,89"`` becomes ``1234567.89``; text without digits gives None.
    """
    if not value:
        return None

    numeric = re.sub(r"[^\d,.]", "", value)
    numeric = numeric.replace(".", "").replace(",", ".")
    if not numeric:
        return None

    try:
        return float(numeric)
    except ValueError:
        return None


# =============================================================================
# Flag Parsing
# =============================================================================

_TRUE_PATTERN = re.compile(r"^(s[ií]|yes)\b", re.IGNORECASE)
_FALSE_PATTERN = re.compile(r"^no\b", re.IGNORECASE)


def parse_flag(value: str | None) -> bool | None:
    """Parse a yes/no answer (``Sí``, ``Si``, ``Yes``, ``No``)."""
    if not value:
        return None

    text = value.strip()
    if _TRUE_PATTERN.match(text):
        return True
    if _FALSE_PATTERN.match(text):
        return False
    return None


# =============================================================================
# Utility Functions
# =============================================================================

_ARTIFACT_PATTERNS = (
    re.compile(r"<[^>]*>"),
    re.compile(r"\{[^}]*\}"),
    re.compile(r"&#?\w+;"),
    re.compile(r"javascript:\S*", re.IGNORECASE),
)


def normalize_whitespace(text: str | None) -> str:
    """Normalize whitespace in text."""
    if text is None:
        return ""
    return " ".join(text.split())


def strip_artifacts(text: str | None) -> str | None:
    """Remove leftover markup and script fragments from a sliced value.

    Returns None when nothing but whitespace remains.
    """
    if text is None:
        return None

    for pattern in _ARTIFACT_PATTERNS:
        text = pattern.sub(" ", text)

    cleaned = normalize_whitespace(text)
    return cleaned or None


def clean_html_text(text: str | None) -> str:
    """Clean text taken from feed fields, which may carry escaped HTML."""
    if text is None:
        return ""

    text = re.sub(r"&nbsp;?", " ", text)
    text = re.sub(r"&amp;?", "&", text)
    text = re.sub(r"&lt;?", "<", text)
    text = re.sub(r"&gt;?", ">", text)
    text = re.sub(r"&quot;?", '"', text)
    text = re.sub(r"&#39;?", "'", text)
    text = re.sub(r"<[^>]*>", " ", text)

    return normalize_whitespace(text)
