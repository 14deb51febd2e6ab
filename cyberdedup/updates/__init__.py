"""Merging updates into existing articles."""

from .merger import (
    UpdateMerger,
    build_update_draft,
    clip,
    compare_severity,
    restrict_sources,
)

__all__ = [
    "UpdateMerger",
    "build_update_draft",
    "clip",
    "compare_severity",
    "restrict_sources",
]
