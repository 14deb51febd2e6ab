"""Candidate index of previously processed articles."""

from .base import CandidateIndex, lookback_range
from .memory import InMemoryCandidateIndex

__all__ = ["CandidateIndex", "InMemoryCandidateIndex", "lookback_range"]
