"""Article similarity scoring."""

from .models import SimilarityResult
from .scorer import DIMENSIONS, SimilarityScorer
from .scorers import (
    BaseScorer,
    CVEScorer,
    EntityScorer,
    TextScorer,
    TrigramTextScorer,
    char_trigrams,
    jaccard,
)

__all__ = [
    "SimilarityScorer",
    "SimilarityResult",
    "DIMENSIONS",
    "BaseScorer",
    "CVEScorer",
    "EntityScorer",
    "TextScorer",
    "TrigramTextScorer",
    "char_trigrams",
    "jaccard",
]
