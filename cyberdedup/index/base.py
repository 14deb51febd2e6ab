"""Candidate index interface."""

from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import List, Optional, Tuple

from ..models import Article, ArticleResolution, UpdateRecord


def lookback_range(target: Article, window_days: int) -> Tuple[date, date]:
    """Return the half-open ``[start, end)`` date range searched for candidates."""
    end = target.publication_date
    return end - timedelta(days=window_days), end


class CandidateIndex(ABC):
    """Store of processed articles queried by shared CVEs and entities."""

    @abstractmethod
    def insert(self, article: Article) -> None:
        """
        Insert or refresh an article.

        Re-inserting an existing id replaces its content, CVEs and entities
        but keeps its update history and revision count.
        """
        pass

    @abstractmethod
    def get(self, article_id: str) -> Article:
        """Return one article with its update history, or raise NotFoundError."""
        pass

    @abstractmethod
    def find_candidates(self, target: Article, window_days: int) -> List[Article]:
        """
        Find articles sharing a CVE id or an entity with the target.

        Args:
            target: Incoming article
            window_days: Lookback window in days

        Returns:
            Articles published in ``[target date - window_days, target date)``,
            never including the target itself
        """
        pass

    @abstractmethod
    def append_update(
        self,
        article_id: str,
        record: UpdateRecord,
        expected_revision: Optional[int] = None,
    ) -> Article:
        """
        Append an update record and increment the revision count atomically.

        Raises NotFoundError for an unknown id and RevisionConflictError when
        ``expected_revision`` no longer matches.
        """
        pass

    @abstractmethod
    def articles_between(self, start: date, end: date) -> List[Article]:
        """Articles with ``start <= publication_date <= end`` ordered by date."""
        pass

    @abstractmethod
    def record_resolution(self, resolution: ArticleResolution) -> ArticleResolution:
        """Append a resolution to the audit log."""
        pass

    @abstractmethod
    def list_resolutions(
        self,
        article_id: Optional[str] = None,
        publication_date: Optional[date] = None,
        resolution: Optional[str] = None,
    ) -> List[ArticleResolution]:
        """Resolutions in insertion order, optionally filtered by article, date or outcome."""
        pass
