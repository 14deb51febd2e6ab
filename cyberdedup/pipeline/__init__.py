"""Batch pipeline for duplicate and update resolution."""

from .batch import BatchProcessor
from .models import BatchReport, TargetOutcome, TargetStatus
from .orchestrator import PipelineOrchestrator, PipelineStage

__all__ = [
    "BatchProcessor",
    "BatchReport",
    "PipelineOrchestrator",
    "PipelineStage",
    "TargetOutcome",
    "TargetStatus",
]
