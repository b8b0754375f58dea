"""
Detail-page extraction and scraping.

DetailExtractor turns a notice page into a NoticeDetail using
label-anchored slicing plus the date, amount, flag, contact and
attachment parsers. DetailScraper fetches the page through a backend
and hands the HTML to the extractor.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable
from urllib.parse import urljoin, urlparse

from lxml.html import HtmlElement

from ..backends.base import Backend, RequestSpec
from ..config.labels import (
    ATTACHMENT_HREF_PATTERN,
    CONTACT_BOILERPLATE,
    CONTACT_LABELS,
    DETAIL_LABELS,
    STOP_LABELS,
    all_field_labels,
)
from ..normalize.parsing import parse_amount, parse_date, parse_flag
from .base import Extractor, NoticeDetail
from .labels import DEFAULT_MAX_VALUE_CHARS, LabelLocator, flatten_document, parse_html

logger = logging.getLogger(__name__)


DATE_FIELDS = frozenset({"opening_at", "extension_deadline", "clarification_deadline", "resolution_at"})
AMOUNT_FIELDS = frozenset({"total_amount"})
FLAG_FIELDS = frozenset({"revolving_funds"})

CONTACT_SECTION_CHARS = 600
MAX_CONTACT_NAME_CHARS = 80

EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
PHONE_PATTERN = re.compile(r"\+?[\d(][\d\s()\-]*\d")
_NAME_STRIP = " \t:;,|•-–()<>[]"


# =============================================================================
# Contact Parsing
# =============================================================================


@dataclass
class ContactInfo:
    """Contact details found near an email address."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None


@lru_cache(maxsize=8)
def _boilerplate_pattern(markers: tuple[str, ...]) -> re.Pattern[str] | None:
    # Word edges of a marker must not run into letters ("arce" vs "Marcelo")
    parts = []
    for marker in markers:
        marker = marker.strip().lower()
        if not marker:
            continue
        head = r"(?<!\w)" if re.match(r"\w", marker) else ""
        tail = r"(?!\w)" if re.search(r"\w$", marker) else ""
        parts.append(f"{head}{re.escape(marker)}{tail}")
    if not parts:
        return None
    return re.compile("|".join(parts), re.IGNORECASE)


def _looks_like_boilerplate(candidate: str, markers: Iterable[str]) -> bool:
    pattern = _boilerplate_pattern(tuple(markers))
    if pattern is not None and pattern.search(candidate):
        return True
    if not re.search(r"[^\W\d_]", candidate):
        return True
    return len(candidate) > MAX_CONTACT_NAME_CHARS


def parse_contact(section: str, boilerplate: Iterable[str] = CONTACT_BOILERPLATE) -> ContactInfo:
    """Pull name, email and phone from a contact section.

    The email anchors the search: the name is whatever precedes it on the
    same line, the phone is the first run of at least seven digits after
    it on that line. Each part is independently optional.
    """
    match = EMAIL_PATTERN.search(section)
    if not match:
        return ContactInfo()

    email = match.group(0)

    line_start = section.rfind("\n", 0, match.start()) + 1
    line_end = section.find("\n", match.end())
    if line_end == -1:
        line_end = len(section)

    name: str | None = section[line_start:match.start()].strip(_NAME_STRIP)
    if not name or _looks_like_boilerplate(name, boilerplate):
        name = None

    phone = None
    for candidate in PHONE_PATTERN.finditer(section, match.end(), line_end):
        digits = re.sub(r"\D", "", candidate.group(0))
        if len(digits) >= 7:
            phone = candidate.group(0).strip()
            break

    return ContactInfo(name=name, email=email, phone=phone)


# =============================================================================
# Attachment Discovery
# =============================================================================


def site_origin(url: str | None) -> str | None:
    """``scheme://host/`` of a URL, or None when it is not absolute."""
    if not url:
        return None
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}/"


def find_attachment(
    doc: HtmlElement,
    url: str | None = None,
    pattern: str = ATTACHMENT_HREF_PATTERN,
) -> str | None:
    """First anchor whose href looks like a tender document.

    Relative hrefs are resolved against the page's origin.
    """
    href_re = re.compile(pattern, re.IGNORECASE)
    origin = site_origin(url)

    for anchor in doc.cssselect("a[href]"):
        href = (anchor.get("href") or "").strip()
        if not href or not href_re.search(href):
            continue
        if href.lower().startswith("javascript:"):
            continue
        return urljoin(origin, href) if origin else href

    return None


# =============================================================================
# Extractor
# =============================================================================


class DetailExtractor(Extractor):
    """Label-anchored extractor for notice detail pages.

    Labels are data: pass overrides to follow site wording changes
    without touching the slicing logic.
    """

    def __init__(
        self,
        *,
        field_labels: dict[str, list[str]] | None = None,
        contact_labels: list[str] | None = None,
        stop_labels: list[str] | None = None,
        contact_boilerplate: list[str] | None = None,
        attachment_pattern: str = ATTACHMENT_HREF_PATTERN,
        max_value_chars: int = DEFAULT_MAX_VALUE_CHARS,
    ) -> None:
        self.field_labels = field_labels if field_labels is not None else DETAIL_LABELS
        self.contact_labels = contact_labels if contact_labels is not None else CONTACT_LABELS
        self.contact_boilerplate = contact_boilerplate if contact_boilerplate is not None else CONTACT_BOILERPLATE
        self.attachment_pattern = attachment_pattern

        every_label = all_field_labels(self.field_labels)
        every_label += self.contact_labels
        every_label += stop_labels if stop_labels is not None else STOP_LABELS
        self.locator = LabelLocator(every_label, max_value_chars=max_value_chars)

        # Contact labels inside the block do not end it
        contact_stops = [label for label in every_label if label not in self.contact_labels]
        self.contact_locator = LabelLocator(contact_stops, max_value_chars=CONTACT_SECTION_CHARS)

    @classmethod
    def from_config(cls, labels) -> "DetailExtractor":
        """Build from a ``LabelsConfig``."""
        return cls(
            field_labels=labels.fields,
            contact_labels=labels.contact,
            stop_labels=labels.stop,
            contact_boilerplate=labels.contact_boilerplate,
            max_value_chars=labels.max_value_chars,
        )

    @property
    def name(self) -> str:
        return "label_anchored"

    def extract(self, html: str | bytes, url: str | None = None, encoding: str | None = None) -> NoticeDetail:
        detail = NoticeDetail()

        doc = parse_html(html, encoding)
        if doc is None:
            detail.warnings.append("Unparsable HTML")
            return detail

        detail.attachment_url = find_attachment(doc, url, self.attachment_pattern)

        text = flatten_document(doc)
        if not text:
            detail.warnings.append("No text content")
            return detail

        for field_name, value in self.extract_fields(text).items():
            setattr(detail, field_name, value)

        contact = self.extract_contact(text)
        detail.contact_name = contact.name
        detail.contact_email = contact.email
        detail.contact_phone = contact.phone

        return detail

    def extract_fields(self, text: str) -> dict[str, object]:
        """Labelled fields from flattened text, parsed to their types."""
        values: dict[str, object] = {}

        for field_name, labels in self.field_labels.items():
            raw = self.locator.find_value(text, labels)
            if raw is None:
                values[field_name] = None
            elif field_name in DATE_FIELDS:
                values[field_name] = parse_date(raw)
            elif field_name in AMOUNT_FIELDS:
                values[field_name] = parse_amount(raw)
            elif field_name in FLAG_FIELDS:
                values[field_name] = parse_flag(raw)
            else:
                values[field_name] = raw

        return values

    def extract_contact(self, text: str) -> ContactInfo:
        """Contact info from the contact block, or the whole page without one."""
        match = self.contact_locator.locate(text, self.contact_labels)
        section = match.raw if match is not None else text
        return parse_contact(section, self.contact_boilerplate)


# =============================================================================
# Scraper
# =============================================================================


class DetailScraper:
    """Fetch a notice's detail page and extract its fields.

    Network errors surface as ``FetchError``; HTTP 429/503 as
    ``RateLimitError`` so the caller can back off harder.
    """

    def __init__(
        self,
        backend: Backend,
        extractor: Extractor | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        self.backend = backend
        self.extractor = extractor or DetailExtractor()
        self.timeout = timeout

    async def scrape(self, url: str) -> NoticeDetail:
        result = await self.backend.fetch(
            RequestSpec(url=url, timeout=self.timeout, page_type="detail")
        )

        detail = self.extractor.extract(result.content, result.final_url or url, encoding=result.encoding)
        logger.debug(
            "Extracted %d/%d fields from %s",
            detail.populated_count,
            len(NoticeDetail.field_names()),
            url,
        )
        for warning in detail.warnings:
            logger.warning("%s: %s", url, warning)

        return detail
