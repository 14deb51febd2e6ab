"""Batch report models."""

from collections import Counter
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models import Resolution, UpdateDraft


class TargetStatus(str, Enum):
    """Per-target outcome reported for every batch."""

    CLASSIFIED = "classified"
    HELD_FOR_REVIEW = "held_for_review"
    ERRORED = "errored"


class TargetOutcome(BaseModel):
    """What happened to one incoming article."""

    target_id: str = Field(..., description="Incoming article id")
    headline: str = Field("", description="Incoming article headline")
    publication_date: date = Field(..., description="Incoming article publication date")
    status: TargetStatus = Field(..., description="classified, held_for_review or errored")
    resolution: Resolution = Field(..., description="NEW, SKIP, UPDATE, HELD or ERROR")
    classification: Optional[str] = Field(None, description="Classifier decision")
    best_candidate_id: Optional[str] = Field(None, description="Best matching candidate")
    best_score: float = Field(0.0, description="Best total score")
    breakdown: Dict[str, float] = Field(default_factory=dict, description="Best candidate breakdown")
    resolution_method: str = Field("automatic", description="automatic or llm")
    reasoning: Optional[str] = Field(None, description="Arbitration reasoning")
    error: Optional[str] = Field(None, description="Error for held or errored targets")
    update: Optional[UpdateDraft] = Field(None, description="Update applied or previewed")


class BatchReport(BaseModel):
    """Result of processing one batch of articles."""

    run_id: Optional[int] = Field(None, description="Run ID, None for dry runs")
    run_date: date = Field(..., description="Logical run date")
    dry_run: bool = Field(False, description="Whether writes were suppressed")
    started_at: datetime = Field(..., description="When processing started")
    finished_at: Optional[datetime] = Field(None, description="When processing finished")
    outcomes: List[TargetOutcome] = Field(default_factory=list, description="Per-target outcomes")
    arbitration_calls: int = Field(0, description="Arbitration provider calls")
    arbitration_retries: int = Field(0, description="Retried arbitration calls")
    arbitration_usage: Dict[str, Any] = Field(
        default_factory=dict, description="Arbitration provider usage (tokens, API calls, model)"
    )
    aborted: bool = Field(False, description="Whether the batch was aborted")
    error: Optional[str] = Field(None, description="Abort reason")

    @property
    def duration(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def stats(self) -> Dict:
        """Aggregate counts stored with the run."""
        return {
            "total": len(self.outcomes),
            "status": dict(Counter(o.status.value for o in self.outcomes)),
            "resolution": dict(Counter(o.resolution for o in self.outcomes)),
            "arbitration_calls": self.arbitration_calls,
            "arbitration_retries": self.arbitration_retries,
            "arbitration_usage": self.arbitration_usage,
            "duration": self.duration,
            "dry_run": self.dry_run,
            "aborted": self.aborted,
        }
