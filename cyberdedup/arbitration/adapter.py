"""Arbitration adapter: timeout, retry and strict validation around a provider."""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from ..config import ArbitrationConfig
from ..errors import (
    ArbitrationError,
    ArbitrationTimeoutError,
    DedupError,
    TransientArbitrationError,
    ValidationError,
)
from ..models import Article
from .models import ArbitrationRequest, ArbitrationResult
from .provider import ArbitrationProvider

console = Console()


class ArbitrationAdapter:
    """Send BORDERLINE pairs to an arbitration provider and validate the answer."""

    def __init__(
        self,
        provider: ArbitrationProvider,
        config: Optional[ArbitrationConfig] = None,
    ) -> None:
        self.provider = provider
        self.config = config or ArbitrationConfig()
        self.calls = 0
        self.retries = 0

    def _call_with_timeout(self, request: ArbitrationRequest) -> Dict[str, Any]:
        """Run one provider call, abandoning it once the timeout expires."""
        timeout = self.config.timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="arbitration")
        try:
            future = executor.submit(self.provider.arbitrate, request, timeout)
            try:
                return future.result(timeout=timeout)
            except FutureTimeoutError as e:
                raise ArbitrationTimeoutError(
                    f"Arbitration exceeded {timeout}s for {request.incoming.id}"
                ) from e
            except DedupError:
                raise
            except Exception as e:
                raise ArbitrationError(
                    f"Arbitration provider failed for {request.incoming.id}: {e}"
                ) from e
        finally:
            executor.shutdown(wait=False)

    @staticmethod
    def validate(payload: Any) -> ArbitrationResult:
        """Validate a raw provider payload; out-of-domain values are rejected."""
        if not isinstance(payload, dict):
            raise ValidationError(f"Arbitration payload must be an object, got {type(payload).__name__}")
        try:
            return ArbitrationResult.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid arbitration payload: {e}") from e

    def arbitrate(
        self,
        target: Article,
        candidate: Article,
        similarity_score: Optional[float] = None,
    ) -> ArbitrationResult:
        """
        Arbitrate a target against its best candidate.

        Transient failures are retried up to ``max_retries`` times. Timeouts
        and validation failures are raised immediately.

        Raises:
            ArbitrationTimeoutError: Call exceeded the configured timeout
            TransientArbitrationError: Retries exhausted
            ValidationError: Malformed response
        """
        request = ArbitrationRequest.from_articles(target, candidate, similarity_score)
        attempts = self.config.max_retries + 1
        attempt = 0

        while True:
            attempt += 1
            self.calls += 1
            try:
                payload = self._call_with_timeout(request)
            except TransientArbitrationError as e:
                if attempt >= attempts:
                    raise
                self.retries += 1
                console.print(
                    f"[yellow]Arbitration attempt {attempt}/{attempts} for {target.id} failed: "
                    f"{e}; retrying[/yellow]"
                )
                continue
            return self.validate(payload)
