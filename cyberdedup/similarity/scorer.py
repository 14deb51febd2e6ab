"""Weighted similarity scorer combining the dimension scorers."""

from typing import Dict, List, Optional

from ..config import ScoringWeights
from ..models import Article
from .models import SimilarityResult
from .scorers import BaseScorer, CVEScorer, EntityScorer, TextScorer, TrigramTextScorer

DIMENSIONS = ("cve", "text", "threat_actor", "malware", "product", "company")


class SimilarityScorer:
    """Score article pairs over six weighted dimensions."""

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        text_scorer: Optional[TextScorer] = None,
    ) -> None:
        """
        Initialize similarity scorer.

        Args:
            weights: Dimension weights, summing to 1.0
            text_scorer: Text similarity strategy (character trigrams by default)
        """
        self.weights = weights or ScoringWeights()
        self.scorers: Dict[str, BaseScorer] = {
            "cve": CVEScorer(),
            "text": text_scorer or TrigramTextScorer(),
            "threat_actor": EntityScorer("threat_actor"),
            "malware": EntityScorer("malware"),
            "product": EntityScorer("product"),
            "company": EntityScorer("company"),
        }

    def score(self, target: Article, candidate: Article) -> SimilarityResult:
        """Score one candidate against the target."""
        weights = self.weights.model_dump()
        breakdown = {
            dimension: self.scorers[dimension].score(target, candidate)
            for dimension in DIMENSIONS
        }
        total = sum(breakdown[dimension] * weights[dimension] for dimension in DIMENSIONS)

        # Rounding keeps float noise from pushing a score across a threshold.
        total = round(max(0.0, min(1.0, total)), 10)

        return SimilarityResult(
            candidate_id=candidate.id,
            candidate_date=candidate.publication_date,
            candidate_headline=candidate.headline,
            total=total,
            breakdown=breakdown,
            weights=weights,
        )

    def score_all(self, target: Article, candidates: List[Article]) -> List[SimilarityResult]:
        return [self.score(target, candidate) for candidate in candidates]
