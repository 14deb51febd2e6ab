"""Arbitration request and response models."""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from ..models import Article, Source, UpdateDraft


class ArbitrationDecision(str, Enum):
    """Final decision returned by the arbitration service."""

    NEW = "NEW"
    SKIP = "SKIP"
    UPDATE = "UPDATE"


class ArticleText(BaseModel):
    """Plaintext view of an article sent for arbitration."""

    id: str = Field(..., description="Article id")
    publication_date: date = Field(..., description="Publication date")
    headline: str = Field("", description="Headline")
    summary: str = Field("", description="Summary")
    full_text: str = Field("", description="Full report, or the summary when missing")
    sources: List[Source] = Field(default_factory=list, description="Article sources")

    @classmethod
    def from_article(cls, article: Article) -> "ArticleText":
        return cls(
            id=article.id,
            publication_date=article.publication_date,
            headline=article.headline,
            summary=article.summary,
            full_text=article.full_text or article.summary,
            sources=article.sources,
        )


class ArbitrationRequest(BaseModel):
    """Pair of articles to arbitrate."""

    existing: ArticleText = Field(..., description="Previously published article")
    incoming: ArticleText = Field(..., description="New article under review")
    similarity_score: Optional[float] = Field(None, description="Classifier score of the pair")

    @classmethod
    def from_articles(
        cls,
        target: Article,
        candidate: Article,
        similarity_score: Optional[float] = None,
    ) -> "ArbitrationRequest":
        return cls(
            existing=ArticleText.from_article(candidate),
            incoming=ArticleText.from_article(target),
            similarity_score=similarity_score,
        )


class ArbitrationResult(BaseModel):
    """Validated arbitration response."""

    decision: ArbitrationDecision = Field(..., description="NEW, SKIP or UPDATE")
    reasoning: str = Field("", description="Explanation of the decision")
    update: Optional[UpdateDraft] = Field(None, description="Update payload for UPDATE decisions")

    @model_validator(mode="after")
    def check_update_payload(self) -> "ArbitrationResult":
        """An update payload is required for UPDATE and forbidden otherwise."""
        if self.decision == ArbitrationDecision.UPDATE and self.update is None:
            raise ValueError("UPDATE decision requires an update payload")
        if self.decision != ArbitrationDecision.UPDATE and self.update is not None:
            raise ValueError(f"{self.decision.value} decision must not carry an update payload")
        return self
