"""Run models for tracking pipeline executions and their decisions."""

from datetime import date, datetime
from typing import Any, Dict, Literal, Optional

from pydantic import Field

from .base import DBModel

Resolution = Literal["NEW", "SKIP", "UPDATE", "HELD", "ERROR"]


class Run(DBModel):
    """Pipeline run model."""

    id: Optional[int] = Field(None, description="Primary key")
    run_date: date = Field(..., description="Logical date of the run")
    started_at: datetime = Field(..., description="When the run started")
    finished_at: Optional[datetime] = Field(None, description="When the run finished")
    status: str = Field("running", description="Run status (success, failed, running)")
    stats_json: Optional[Dict[str, Any]] = Field(None, description="Aggregate run statistics")


class ArticleResolution(DBModel):
    """Append-only audit entry describing how one incoming article was resolved."""

    id: Optional[int] = Field(None, description="Primary key")
    run_id: Optional[int] = Field(None, description="Run that produced the resolution")
    article_id: str = Field(..., description="Incoming article id")
    publication_date: date = Field(..., description="Publication date of the incoming article")
    resolution: Resolution = Field(..., description="Final outcome for the article")
    classification: Optional[str] = Field(None, description="Classifier decision before arbitration")
    similarity_score: Optional[float] = Field(None, description="Best candidate score")
    breakdown: Optional[Dict[str, float]] = Field(None, description="Per-dimension scores")
    matched_article_id: Optional[str] = Field(None, description="Existing article it matched")
    reasoning: Optional[str] = Field(None, description="Arbitration reasoning or error text")
    resolution_method: Literal["automatic", "llm"] = Field(
        "automatic", description="Whether arbitration decided the outcome"
    )
    target_json: Optional[Dict[str, Any]] = Field(
        None, description="Snapshot of a held article for manual review"
    )
