"""
Extraction base classes and data structures.

Defines the enrichment record produced from a detail page and the
interface every extraction strategy implements.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any


@dataclass
class NoticeDetail:
    """Structured fields extracted from one notice's detail page.

    Every field is optional; a page with no recognizable labels yields
    an instance with all fields None.
    """

    organization: str | None = None
    sub_unit: str | None = None
    notice_type: str | None = None
    opening_at: datetime | None = None
    opening_location: str | None = None
    delivery_location: str | None = None
    document_price: str | None = None
    extension_deadline: datetime | None = None
    clarification_deadline: datetime | None = None
    resolution_state: str | None = None
    resolution_number: str | None = None
    resolution_at: datetime | None = None
    total_amount: float | None = None
    revolving_funds: bool | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    attachment_url: str | None = None

    # Extraction notes, not persisted
    warnings: list[str] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def field_names(cls) -> list[str]:
        """Names of the persisted detail fields, in declaration order."""
        return [f.name for f in fields(cls) if f.name != "warnings"]

    def to_dict(self) -> dict[str, Any]:
        """Detail fields as a column -> value mapping."""
        data = asdict(self)
        data.pop("warnings", None)
        return data

    def text_fields(self, names: list[str] | None = None) -> list[str]:
        """String values of the named fields, skipping empty ones.

        Args:
            names: Fields to include (default: every string-valued field)
        """
        selected = names if names is not None else self.field_names()
        values = []
        for name in selected:
            value = getattr(self, name, None)
            if isinstance(value, str) and value.strip():
                values.append(value)
        return values

    @property
    def is_empty(self) -> bool:
        """True when nothing at all was extracted."""
        return all(value is None for value in self.to_dict().values())

    @property
    def populated_count(self) -> int:
        return sum(1 for value in self.to_dict().values() if value is not None)


class Extractor(ABC):
    """Abstract base class for detail extraction strategies."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Extractor identifier."""
        pass

    @abstractmethod
    def extract(self, html: str | bytes, url: str | None = None, encoding: str | None = None) -> NoticeDetail:
        """Extract detail fields from HTML content.

        Implementations must not raise on malformed markup.

        Args:
            html: HTML content to parse, decoded or raw
            url: Source URL, used to resolve relative links
            encoding: Charset for raw bytes, when the server declared one

        Returns:
            NoticeDetail with whatever could be extracted
        """
        pass
