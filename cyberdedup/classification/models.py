"""Classification models."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..similarity import SimilarityResult


class Decision(str, Enum):
    """Classifier bucket for a target article."""

    NEW = "NEW"
    BORDERLINE = "BORDERLINE"
    UPDATE = "UPDATE"


class ClassificationResult(BaseModel):
    """Outcome of classifying one target against its candidates."""

    target_id: str = Field(..., description="Target article id")
    decision: Decision = Field(..., description="Bucket for the best candidate")
    best_candidate_id: Optional[str] = Field(None, description="Best matching candidate")
    best_score: float = Field(0.0, description="Best total score", ge=0.0, le=1.0)
    breakdown: Dict[str, float] = Field(default_factory=dict, description="Best candidate breakdown")
    scored: List[SimilarityResult] = Field(
        default_factory=list, description="All candidates, best first"
    )

    @property
    def best(self) -> Optional[SimilarityResult]:
        return self.scored[0] if self.scored else None
