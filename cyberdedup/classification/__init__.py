"""Duplicate/update classification."""

from .classifier import (
    DuplicateClassifier,
    print_classification_summary,
    print_similarity_breakdown,
)
from .models import ClassificationResult, Decision

__all__ = [
    "ClassificationResult",
    "Decision",
    "DuplicateClassifier",
    "print_classification_summary",
    "print_similarity_breakdown",
]
