"""Input schema for articles produced by the structuring service."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class StructuredArticle(BaseModel):
    """
    Structured article as emitted by the upstream LLM.

    The schema is deliberately loose: nested lists are kept as raw items and
    normalized by the entity extractor, so a malformed entry never rejects the
    whole article.
    """

    id: Optional[str] = Field(None, description="Article identifier")
    slug: Optional[str] = Field(None, description="URL slug")
    headline: Optional[str] = Field(None, description="Short headline")
    title: Optional[str] = Field(None, description="Full title")
    summary: Optional[str] = Field(None, description="Summary text")
    full_text: Optional[str] = Field(None, description="Full report text")
    full_report: Optional[str] = Field(None, description="Legacy name for full_text")
    publication_date: Optional[str] = Field(None, description="Publication date (YYYY-MM-DD)")
    pub_date: Optional[str] = Field(None, description="Legacy name for publication_date")
    cves: List[Any] = Field(default_factory=list, description="CVE ids or CVE objects")
    entities: List[Any] = Field(default_factory=list, description="Entity objects")
    sources: List[Any] = Field(default_factory=list, description="Source objects")

    class Config:
        extra = "ignore"

    @field_validator("cves", "entities", "sources", mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> List[Any]:
        """Anything that is not a list becomes an empty list."""
        if isinstance(v, (list, tuple)):
            return list(v)
        return []

    @field_validator(
        "id", "slug", "headline", "title", "summary", "full_text", "full_report",
        "publication_date", "pub_date",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        """Stringify scalars, drop containers and blanks."""
        if v is None or isinstance(v, (dict, list, tuple)):
            return None
        text = str(v).strip()
        return text or None
