"""
Weighted keyword classifier.

Each category adds its weight once for every distinct keyword found as
a substring of the lower-cased text. The highest score wins; ties keep
the category declared first; no hits at all give the fallback.
"""

from __future__ import annotations

from typing import Iterable

from ..config.categories import DEFAULT_CATEGORIES, FALLBACK_CATEGORY, Category


def combine_texts(texts: Iterable[str | None]) -> str:
    """Join the non-empty texts with spaces and lower-case the result."""
    return " ".join(t.strip() for t in texts if t and t.strip()).lower()


class Classifier:
    """Assign a business category from free text.

    Pure and synchronous: the same input always yields the same category.
    """

    def __init__(
        self,
        categories: Iterable[Category] = DEFAULT_CATEGORIES,
        fallback: str = FALLBACK_CATEGORY,
    ) -> None:
        self.categories = tuple(categories)
        self.fallback = fallback
        # Keywords are matched lower-cased; duplicates count once
        self._keywords = [
            tuple(dict.fromkeys(k.lower() for k in category.keywords if k))
            for category in self.categories
        ]

    @property
    def names(self) -> list[str]:
        """Every category this classifier can return."""
        return [c.name for c in self.categories] + [self.fallback]

    def scores(self, texts: Iterable[str | None]) -> list[tuple[str, int]]:
        """Score of every category, in declared order."""
        combined = combine_texts(texts)
        return [
            (category.name, category.weight * sum(1 for k in keywords if k in combined))
            for category, keywords in zip(self.categories, self._keywords)
        ]

    def classify(self, texts: Iterable[str | None]) -> str:
        """Best-scoring category name, or the fallback when nothing matches."""
        best_name = self.fallback
        best_score = 0

        for name, score in self.scores(texts):
            if score > best_score:
                best_name, best_score = name, score

        return best_name
