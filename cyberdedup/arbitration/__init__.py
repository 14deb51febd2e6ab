"""Arbitration of BORDERLINE classifications."""

from .adapter import ArbitrationAdapter
from .models import ArbitrationDecision, ArbitrationRequest, ArbitrationResult, ArticleText
from .provider import (
    ArbitrationProvider,
    MockArbitrator,
    OpenAIArbitrator,
    build_prompt,
    create_arbitrator,
)

__all__ = [
    "ArbitrationAdapter",
    "ArbitrationDecision",
    "ArbitrationProvider",
    "ArbitrationRequest",
    "ArbitrationResult",
    "ArticleText",
    "MockArbitrator",
    "OpenAIArbitrator",
    "build_prompt",
    "create_arbitrator",
]
