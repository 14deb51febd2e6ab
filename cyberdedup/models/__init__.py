"""Data models for the duplicate detection pipeline."""

from .article import (
    CVE,
    Article,
    Entity,
    EntityType,
    SeverityChange,
    Source,
    UpdateDraft,
    UpdateRecord,
)
from .run import ArticleResolution, Resolution, Run

__all__ = [
    "Article",
    "ArticleResolution",
    "CVE",
    "Entity",
    "EntityType",
    "Resolution",
    "Run",
    "SeverityChange",
    "Source",
    "UpdateDraft",
    "UpdateRecord",
]
