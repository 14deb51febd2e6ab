"""Article model and its update history."""

from datetime import date, datetime
from enum import Enum
from typing import List, Literal, Optional, Set, Tuple

from pydantic import BaseModel, Field, field_validator

from .base import DBModel

EntityType = Literal["threat_actor", "malware", "product", "company", "government_agency"]


class SeverityChange(str, Enum):
    """How an update changes the severity of the original story."""

    INCREASED = "increased"
    DECREASED = "decreased"
    UNCHANGED = "unchanged"


class CVE(BaseModel):
    """CVE reference. Only ``cve_id`` takes part in comparisons."""

    cve_id: str = Field(..., description="CVE identifier, e.g. CVE-2025-61882")
    cvss_score: Optional[float] = Field(None, description="CVSS base score", ge=0.0, le=10.0)
    severity: Optional[str] = Field(None, description="critical, high, medium, low or none")
    is_known_exploited: bool = Field(False, description="Listed in the CISA KEV catalog")

    class Config:
        frozen = True


class Entity(BaseModel):
    """Named entity retained for similarity scoring."""

    name: str = Field(..., description="Entity name as extracted")
    type: EntityType = Field(..., description="Normalized entity type")

    class Config:
        frozen = True


class Source(BaseModel):
    """Source reference of an article or update."""

    url: str = Field(..., description="Source URL")
    title: str = Field(..., description="Source title")


class UpdateDraft(BaseModel):
    """Update payload before the merger assigns a timestamp."""

    summary: str = Field(..., description="What changed (50-150 chars)", min_length=1)
    detail: str = Field(..., description="Detailed description (200-800 chars)", min_length=1)
    sources: List[Source] = Field(default_factory=list, description="Sources of the new article")
    severity_change: SeverityChange = Field(..., description="Severity movement")

    class Config:
        extra = "forbid"


class UpdateRecord(UpdateDraft):
    """One entry of an article's append-only update history."""

    timestamp: datetime = Field(..., description="When the update was recognized")


class Article(DBModel):
    """Structured article as stored in the candidate index."""

    id: str = Field(..., description="Opaque article identifier")
    publication_date: date = Field(..., description="Publication date")
    headline: str = Field("", description="Article headline")
    slug: Optional[str] = Field(None, description="URL slug")
    summary: str = Field("", description="Short summary")
    full_text: Optional[str] = Field(None, description="Full report text")
    cves: List[CVE] = Field(default_factory=list, description="Referenced CVEs")
    entities: List[Entity] = Field(default_factory=list, description="Retained named entities")
    sources: List[Source] = Field(default_factory=list, description="Article sources")
    updates: List[UpdateRecord] = Field(default_factory=list, description="Update history")
    revision_count: int = Field(0, description="Number of applied updates", ge=0)

    @field_validator("cves")
    @classmethod
    def unique_cves(cls, v: List[CVE]) -> List[CVE]:
        """Keep the first occurrence of each CVE id."""
        seen = set()
        unique = []
        for cve in v:
            if cve.cve_id not in seen:
                seen.add(cve.cve_id)
                unique.append(cve)
        return unique

    @field_validator("entities")
    @classmethod
    def unique_entities(cls, v: List[Entity]) -> List[Entity]:
        """Keep the first occurrence of each (name, type) pair."""
        seen = set()
        unique = []
        for entity in v:
            key = (entity.name, entity.type)
            if key not in seen:
                seen.add(key)
                unique.append(entity)
        return unique

    @property
    def cve_ids(self) -> Set[str]:
        return {cve.cve_id for cve in self.cves}

    @property
    def entity_keys(self) -> Set[Tuple[str, str]]:
        """(type, name) pairs used by the inverted index."""
        return {(entity.type, entity.name) for entity in self.entities}

    def entity_names(self, entity_type: str) -> Set[str]:
        return {entity.name for entity in self.entities if entity.type == entity_type}

    @property
    def max_cvss(self) -> Optional[float]:
        scores = [cve.cvss_score for cve in self.cves if cve.cvss_score is not None]
        return max(scores) if scores else None
