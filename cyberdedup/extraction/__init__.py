"""Entity extraction from structured articles."""

from .extractor import (
    ENTITY_TYPE_ALIASES,
    EXCLUDED_ENTITY_TYPES,
    INDEXED_ENTITY_TYPES,
    EntityExtractor,
)
from .models import StructuredArticle

__all__ = [
    "EntityExtractor",
    "StructuredArticle",
    "INDEXED_ENTITY_TYPES",
    "EXCLUDED_ENTITY_TYPES",
    "ENTITY_TYPE_ALIASES",
]
