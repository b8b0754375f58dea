"""
Label-anchored text slicing.

Detail pages have no stable markup, only label texts followed by their
values. The page is flattened into one line per block element, a label
is located at the start of a line (or right after a ``|``, ``•`` or ``;``
separator), and the value is the text between it and the next known
label, capped at a fixed number of characters.
"""

from __future__ import annotations

import codecs
import re
from dataclasses import dataclass
from typing import Iterable

from lxml import etree
from lxml import html as lxml_html
from lxml.html import HtmlElement

from ..normalize.parsing import normalize_whitespace, strip_artifacts


DROP_TAGS = ("script", "style", "noscript", "template")

BLOCK_TAGS = frozenset({
    "address", "article", "aside", "blockquote", "dd", "div", "dl", "dt",
    "fieldset", "figcaption", "footer", "form", "h1", "h2", "h3", "h4",
    "h5", "h6", "header", "hr", "label", "legend", "li", "main", "nav",
    "ol", "p", "pre", "section", "table", "tbody", "td", "th", "thead",
    "tr", "ul",
})

DEFAULT_MAX_VALUE_CHARS = 300

# Where a label may start: line start or after an inline separator
_ANCHOR = r"(?:^|[|•;])[ \t]*"
# A label must not run into a longer word ("Estado" vs "Estadística")
_WORD_END = r"(?![^\W\d_])"
_VALUE_LEAD = re.compile(r"[\s:\-–]*")

_META_CHARSET = re.compile(rb"""<meta[^>]+charset\s*=\s*["']?\s*([A-Za-z0-9_.:-]+)""", re.IGNORECASE)

_HTML_PARSER = lxml_html.HTMLParser(encoding="utf-8")


def sniff_charset(content: bytes, default: str = "utf-8") -> str:
    """Charset from a ``<meta>`` tag near the top of the page, else ``default``."""
    match = _META_CHARSET.search(content[:4096])
    if match:
        name = match.group(1).decode("ascii")
        try:
            return codecs.lookup(name).name
        except LookupError:
            pass
    return default


def parse_html(html: str | bytes, encoding: str | None = None) -> HtmlElement | None:
    """Parse an HTML document, returning None when lxml cannot.

    Bytes are decoded with ``encoding`` when given, else with the page's
    meta charset, else as UTF-8.
    """
    if not html or not html.strip():
        return None
    if isinstance(html, bytes):
        try:
            html = html.decode(encoding or sniff_charset(html), errors="replace")
        except LookupError:
            html = html.decode("utf-8", errors="replace")
    try:
        return lxml_html.document_fromstring(html.encode("utf-8"), parser=_HTML_PARSER)
    except (etree.ParserError, ValueError):
        return None


def flatten_document(doc: HtmlElement) -> str:
    """Flatten a parsed document into newline-separated text.

    Mutates ``doc``: non-content elements are dropped and line breaks are
    injected around block elements.
    """
    for bad in doc.xpath("|".join(f"//{tag}" for tag in DROP_TAGS)):
        bad.drop_tree()

    for el in doc.iter():
        if not isinstance(el.tag, str):
            continue
        tag = el.tag.lower()
        if tag == "br":
            el.tail = "\n" + (el.tail or "")
        elif tag in BLOCK_TAGS:
            el.text = "\n" + (el.text or "")
            el.tail = "\n" + (el.tail or "")

    lines = (normalize_whitespace(line) for line in doc.text_content().splitlines())
    return "\n".join(line for line in lines if line)


def flatten_html(html: str | bytes) -> str:
    """Flatten raw HTML; unparsable input gives an empty string."""
    doc = parse_html(html)
    if doc is None:
        return ""
    return flatten_document(doc)


def _label_pattern(labels: Iterable[str]) -> re.Pattern[str] | None:
    # Longest first so a label never shadows a longer one sharing its prefix
    variants = sorted({label.strip() for label in labels if label.strip()}, key=len, reverse=True)
    if not variants:
        return None
    alternation = "|".join(re.escape(label) for label in variants)
    return re.compile(f"{_ANCHOR}(?:{alternation}){_WORD_END}", re.IGNORECASE | re.MULTILINE)


@dataclass
class LabelMatch:
    """Where a label was found and the value sliced after it."""

    label: str
    start: int
    value_start: int
    value_end: int
    raw: str

    @property
    def value(self) -> str | None:
        return strip_artifacts(self.raw)


class LabelLocator:
    """Locate labels in flattened text and slice the value after each.

    Args:
        stop_labels: Every label that terminates a value (field labels,
            contact labels and pure stop labels)
        max_value_chars: Upper bound on a value's length
    """

    def __init__(
        self,
        stop_labels: Iterable[str],
        *,
        max_value_chars: int = DEFAULT_MAX_VALUE_CHARS,
    ) -> None:
        self.max_value_chars = max_value_chars
        self._stop_pattern = _label_pattern(stop_labels)
        self._patterns: dict[str, re.Pattern[str] | None] = {}

    def _pattern_for(self, label: str) -> re.Pattern[str] | None:
        if label not in self._patterns:
            self._patterns[label] = _label_pattern([label])
        return self._patterns[label]

    def locate(self, text: str, labels: Iterable[str], *, limit: int | None = None) -> LabelMatch | None:
        """Find the first variant present in ``text`` and slice its value.

        Variants are tried in the given order; the first one that occurs
        wins, at its first occurrence.

        Args:
            text: Flattened page text
            labels: Label variants for one field
            limit: Override for the maximum value length
        """
        max_chars = limit if limit is not None else self.max_value_chars

        for label in labels:
            pattern = self._pattern_for(label)
            if pattern is None:
                continue
            match = pattern.search(text)
            if not match:
                continue

            lead = _VALUE_LEAD.match(text, match.end())
            value_start = lead.end() if lead else match.end()
            value_end = min(len(text), value_start + max_chars)

            if self._stop_pattern is not None:
                stop = self._stop_pattern.search(text, value_start, value_end)
                if stop:
                    value_end = stop.start()

            return LabelMatch(
                label=label,
                start=match.start(),
                value_start=value_start,
                value_end=value_end,
                raw=text[value_start:value_end],
            )

        return None

    def find_value(self, text: str, labels: Iterable[str]) -> str | None:
        """Cleaned value after the first matching label, or None."""
        match = self.locate(text, labels)
        if match is None:
            return None
        return match.value
