"""Detail-page extraction: label-anchored slicing and field parsers."""

from .base import Extractor, NoticeDetail
from .detail import (
    ContactInfo,
    DetailExtractor,
    DetailScraper,
    find_attachment,
    parse_contact,
)
from .labels import LabelLocator, LabelMatch, flatten_html

__all__ = [
    "Extractor",
    "NoticeDetail",
    "DetailExtractor",
    "DetailScraper",
    "ContactInfo",
    "parse_contact",
    "find_attachment",
    "LabelLocator",
    "LabelMatch",
    "flatten_html",
]
