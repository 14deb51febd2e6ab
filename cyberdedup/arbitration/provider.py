"""Arbitration provider interface and implementations."""

import json
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Union

import openai
from openai import OpenAI
from rich.console import Console

from ..errors import (
    ArbitrationError,
    ArbitrationTimeoutError,
    TransientArbitrationError,
    ValidationError,
)
from .models import ArbitrationRequest

console = Console()

PROMPT_TEMPLATE = """You are analyzing whether a new cybersecurity article should be published or skipped.

EXISTING ARTICLE ({existing_date}):
Headline: {existing_headline}
Summary: {existing_summary}
Full Report: {existing_full_text}

NEW ARTICLE ({incoming_date}):
Headline: {incoming_headline}
Summary: {incoming_summary}
Full Report: {incoming_full_text}

NEW ARTICLE SOURCES:
{incoming_sources}

DECISION CRITERIA:

NEW - Publish as separate article if:
- Reports a completely different incident or vulnerability
- Different threat actor or campaign
- Different affected organization or product
- Substantially different technical details

SKIP - Skip as duplicate if:
- Same incident/vulnerability with just different wording
- Same source but different news outlet reporting it
- No new information beyond what's in existing article
- Less detailed than existing article

UPDATE - Merge into existing article if:
- Reports new developments or consequences of the same incident
- Contains new technical details (CVEs, IOCs, TTPs) for same incident
- Reports additional victims for the same campaign
- Provides patch/mitigation information for same vulnerability
- Adds expert analysis or attribution for same event

Respond ONLY with a JSON object:
{{
  "decision": "NEW" | "SKIP" | "UPDATE",
  "reasoning": "2-4 sentences explaining the decision",
  "update": null
}}

For UPDATE decisions "update" MUST be an object with exactly these fields:
- summary: 50-150 character summary of what changed
- detail: 200-800 character description of the new information
- sources: array of {{"url": ..., "title": ...}} taken from the NEW ARTICLE SOURCES only
- severity_change: "increased", "decreased" or "unchanged"

For NEW and SKIP decisions "update" MUST be null."""


def build_prompt(request: ArbitrationRequest) -> str:
    """Render the arbitration prompt for an article pair."""
    sources = "\n".join(
        f"- {source.title}: {source.url}" for source in request.incoming.sources
    ) or "- none"
    return PROMPT_TEMPLATE.format(
        existing_date=request.existing.publication_date,
        existing_headline=request.existing.headline,
        existing_summary=request.existing.summary,
        existing_full_text=request.existing.full_text,
        incoming_date=request.incoming.publication_date,
        incoming_headline=request.incoming.headline,
        incoming_summary=request.incoming.summary,
        incoming_full_text=request.incoming.full_text,
        incoming_sources=sources,
    )


class ArbitrationProvider(ABC):
    """Abstract base class for arbitration services."""

    @abstractmethod
    def arbitrate(self, request: ArbitrationRequest, timeout: float) -> Dict[str, Any]:
        """
        Ask the service to decide an article pair.

        Args:
            request: Both articles as plaintext
            timeout: Seconds the service may take

        Returns:
            Raw response payload, validated by the adapter

        Raises:
            TransientArbitrationError: Retryable failure
            ArbitrationTimeoutError: The call exceeded the timeout
        """
        pass

    @abstractmethod
    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        pass


class OpenAIArbitrator(ArbitrationProvider):
    """OpenAI implementation of the arbitration service."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
    ) -> None:
        """
        Initialize OpenAI arbitrator.

        Args:
            api_key: OpenAI API key
            model: Model name to use
            base_url: Custom base URL (for testing)
        """
        self.client = OpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        self.model = model
        self.total_tokens = 0
        self.api_calls = 0

    def arbitrate(self, request: ArbitrationRequest, timeout: float) -> Dict[str, Any]:
        """Arbitrate an article pair using OpenAI."""
        prompt = build_prompt(request)

        try:
            self.api_calls += 1
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.1,
                response_format={"type": "json_object"},
                timeout=timeout,
            )
        except openai.APITimeoutError as e:
            raise ArbitrationTimeoutError(f"OpenAI request timed out: {e}") from e
        except (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError) as e:
            raise TransientArbitrationError(f"OpenAI request failed: {e}") from e
        except openai.APIError as e:
            raise ArbitrationError(f"OpenAI request rejected: {e}") from e

        if response.usage:
            self.total_tokens += response.usage.total_tokens

        content = (response.choices[0].message.content or "").strip()
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Arbitration response is not JSON: {e}") from e
        if not isinstance(payload, dict):
            raise ValidationError("Arbitration response is not a JSON object")
        return payload

    def get_usage_stats(self) -> Dict:
        return {
            "total_tokens": self.total_tokens,
            "api_calls": self.api_calls,
            "model": self.model,
        }


Response = Union[Dict[str, Any], Exception, Callable[[ArbitrationRequest], Dict[str, Any]]]


class MockArbitrator(ArbitrationProvider):
    """Mock arbitration service for testing and offline runs."""

    def __init__(
        self,
        responses: Optional[List[Response]] = None,
        default: Optional[Dict[str, Any]] = None,
        delay: float = 0.0,
    ) -> None:
        """
        Initialize mock arbitrator.

        Args:
            responses: Scripted responses consumed in order; exceptions are raised
            default: Response once the script is exhausted
            delay: Seconds to sleep before answering
        """
        self.responses = list(responses or [])
        self.default = default or {"decision": "NEW", "reasoning": "Mock decision", "update": None}
        self.delay = delay
        self.calls: List[ArbitrationRequest] = []

    def arbitrate(self, request: ArbitrationRequest, timeout: float) -> Dict[str, Any]:
        """Mock arbitration."""
        self.calls.append(request)
        if self.delay:
            time.sleep(self.delay)

        response = self.responses.pop(0) if self.responses else self.default
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return dict(response)

    def get_usage_stats(self) -> Dict:
        return {
            "total_tokens": 0,
            "api_calls": len(self.calls),
            "model": "mock",
        }


def create_arbitrator(llm_config: Dict[str, Any]) -> Optional[ArbitrationProvider]:
    """
    Build the configured arbitration provider.

    Returns None when no API key is available, which disables arbitration.
    """
    provider = llm_config.get("provider", "openai")
    if provider == "mock":
        return MockArbitrator()

    api_key = llm_config.get("api_key")
    if not api_key:
        console.print(
            "[yellow]Warning: No LLM API key configured, BORDERLINE cases will be held for review[/yellow]"
        )
        return None

    return OpenAIArbitrator(
        api_key=api_key,
        model=llm_config.get("model", "gpt-4o-mini"),
        base_url=llm_config.get("base_url"),
    )
