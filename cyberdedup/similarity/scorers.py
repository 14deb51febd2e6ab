"""Individual similarity components for article comparison."""

from abc import ABC, abstractmethod
from typing import AbstractSet, Set

from ..models import Article


def jaccard(a: AbstractSet, b: AbstractSet) -> float:
    """Jaccard index of two sets; two empty sets score 0.0."""
    if not a and not b:
        return 0.0
    return len(a & b) / len(a | b)


def char_trigrams(text: str) -> Set[str]:
    """Lowercased character trigrams of trimmed text."""
    normalized = text.lower().strip()
    return {normalized[i:i + 3] for i in range(len(normalized) - 2)}


class BaseScorer(ABC):
    """Base class for similarity components."""

    @abstractmethod
    def score(self, target: Article, candidate: Article) -> float:
        """
        Score the similarity of two articles from 0.0 to 1.0.

        Args:
            target: Incoming article
            candidate: Previously indexed article

        Returns:
            Score between 0.0 and 1.0
        """
        pass


class CVEScorer(BaseScorer):
    """Jaccard overlap of referenced CVE ids."""

    def score(self, target: Article, candidate: Article) -> float:
        return jaccard(target.cve_ids, candidate.cve_ids)


class EntityScorer(BaseScorer):
    """Jaccard overlap of entity names of a single type."""

    def __init__(self, entity_type: str) -> None:
        self.entity_type = entity_type

    def score(self, target: Article, candidate: Article) -> float:
        return jaccard(
            target.entity_names(self.entity_type),
            candidate.entity_names(self.entity_type),
        )


class TextScorer(BaseScorer):
    """Base class for text similarity strategies."""

    def select_texts(self, target: Article, candidate: Article):
        """
        Pick the texts to compare.

        Full text is preferred, but both sides fall back to the summary when
        either article lacks it, so long and short texts are never mixed.
        """
        if target.full_text and candidate.full_text:
            return target.full_text, candidate.full_text
        return target.summary or "", candidate.summary or ""


class TrigramTextScorer(TextScorer):
    """Jaccard overlap of character trigram sets."""

    def score(self, target: Article, candidate: Article) -> float:
        text_a, text_b = self.select_texts(target, candidate)
        return jaccard(char_trigrams(text_a), char_trigrams(text_b))
