"""Similarity models."""

from datetime import date
from typing import Dict

from pydantic import BaseModel, Field


class SimilarityResult(BaseModel):
    """Weighted similarity between a target and one candidate."""

    candidate_id: str = Field(..., description="Candidate article id")
    candidate_date: date = Field(..., description="Candidate publication date")
    candidate_headline: str = Field("", description="Candidate headline")
    total: float = Field(..., description="Weighted total score", ge=0.0, le=1.0)
    breakdown: Dict[str, float] = Field(..., description="Raw score per dimension")
    weights: Dict[str, float] = Field(..., description="Weight per dimension")

    def weighted(self, dimension: str) -> float:
        """Contribution of one dimension to the total."""
        return self.breakdown[dimension] * self.weights[dimension]
