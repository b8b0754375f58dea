"""Keyword-based notice classification."""

from .classifier import Classifier, combine_texts

__all__ = ["Classifier", "combine_texts"]
