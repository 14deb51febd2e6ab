"""Error types raised by the duplicate detection pipeline."""

from typing import Optional


class DedupError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(DedupError, ValueError):
    """Malformed payload from an external collaborator (e.g. arbitration)."""


class NotFoundError(DedupError, LookupError):
    """Referenced article does not exist in the index."""

    def __init__(self, article_id: str) -> None:
        super().__init__(f"Article not found: {article_id}")
        self.article_id = article_id


class IndexUnavailableError(DedupError):
    """Candidate index storage cannot be reached."""


class RevisionConflictError(DedupError):
    """Article revision changed between read and write."""

    def __init__(self, article_id: str, expected: int, actual: Optional[int]) -> None:
        super().__init__(
            f"Revision conflict on article {article_id}: expected {expected}, found {actual}"
        )
        self.article_id = article_id
        self.expected = expected
        self.actual = actual


class ArbitrationError(DedupError):
    """Arbitration service could not produce a decision."""


class ArbitrationTimeoutError(ArbitrationError):
    """Arbitration call exceeded the caller supplied timeout."""


class TransientArbitrationError(ArbitrationError):
    """Retryable failure talking to the arbitration service."""
