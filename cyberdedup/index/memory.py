"""In-memory candidate index for dry runs and tests."""

import threading
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Set, Tuple

import pendulum

from ..errors import NotFoundError, RevisionConflictError
from ..models import Article, ArticleResolution, UpdateRecord
from .base import CandidateIndex, lookback_range


class InMemoryCandidateIndex(CandidateIndex):
    """Dictionary backed index with CVE and entity inverted lookups."""

    def __init__(self, articles: Optional[List[Article]] = None) -> None:
        self._articles: Dict[str, Article] = {}
        self._by_cve: Dict[str, Set[str]] = defaultdict(set)
        self._by_entity: Dict[Tuple[str, str], Set[str]] = defaultdict(set)
        self._resolutions: List[ArticleResolution] = []
        self._lock = threading.RLock()

        for article in articles or []:
            self.insert(article)

    def __len__(self) -> int:
        return len(self._articles)

    def __contains__(self, article_id: object) -> bool:
        return article_id in self._articles

    def _unindex(self, article: Article) -> None:
        for cve_id in article.cve_ids:
            self._by_cve[cve_id].discard(article.id)
        for key in article.entity_keys:
            self._by_entity[key].discard(article.id)

    def insert(self, article: Article) -> None:
        with self._lock:
            existing = self._articles.get(article.id)
            stored = article.model_copy(deep=True)
            now = pendulum.now("UTC")
            if existing is not None:
                self._unindex(existing)
                stored = stored.model_copy(
                    update={
                        "updates": existing.updates,
                        "revision_count": existing.revision_count,
                        "created_at": existing.created_at,
                        "updated_at": now,
                    }
                )
            else:
                stored = stored.model_copy(update={"created_at": now, "updated_at": now})

            self._articles[article.id] = stored
            for cve_id in stored.cve_ids:
                self._by_cve[cve_id].add(stored.id)
            for key in stored.entity_keys:
                self._by_entity[key].add(stored.id)

    def get(self, article_id: str) -> Article:
        with self._lock:
            article = self._articles.get(article_id)
            if article is None:
                raise NotFoundError(article_id)
            return article.model_copy(deep=True)

    def find_candidates(self, target: Article, window_days: int) -> List[Article]:
        start, end = lookback_range(target, window_days)
        with self._lock:
            ids: Set[str] = set()
            for cve_id in target.cve_ids:
                ids |= self._by_cve.get(cve_id, set())
            for key in target.entity_keys:
                ids |= self._by_entity.get(key, set())
            ids.discard(target.id)

            candidates = [
                self._articles[article_id].model_copy(deep=True)
                for article_id in ids
                if start <= self._articles[article_id].publication_date < end
            ]
        candidates.sort(key=lambda a: (a.publication_date, a.id))
        return candidates

    def append_update(
        self,
        article_id: str,
        record: UpdateRecord,
        expected_revision: Optional[int] = None,
    ) -> Article:
        with self._lock:
            article = self._articles.get(article_id)
            if article is None:
                raise NotFoundError(article_id)
            if expected_revision is not None and article.revision_count != expected_revision:
                raise RevisionConflictError(article_id, expected_revision, article.revision_count)

            updated = article.model_copy(
                update={
                    "updates": [*article.updates, record],
                    "revision_count": article.revision_count + 1,
                    "updated_at": pendulum.now("UTC"),
                }
            )
            self._articles[article_id] = updated
            return updated.model_copy(deep=True)

    def articles_between(self, start: date, end: date) -> List[Article]:
        with self._lock:
            articles = [
                article.model_copy(deep=True)
                for article in self._articles.values()
                if start <= article.publication_date <= end
            ]
        articles.sort(key=lambda a: (a.publication_date, a.id))
        return articles

    def record_resolution(self, resolution: ArticleResolution) -> ArticleResolution:
        with self._lock:
            stored = resolution.model_copy(
                update={
                    "id": len(self._resolutions) + 1,
                    "created_at": resolution.created_at or pendulum.now("UTC"),
                }
            )
            self._resolutions.append(stored)
            return stored

    def list_resolutions(
        self,
        article_id: Optional[str] = None,
        publication_date: Optional[date] = None,
        resolution: Optional[str] = None,
    ) -> List[ArticleResolution]:
        with self._lock:
            return [
                r for r in self._resolutions
                if (article_id is None or r.article_id == article_id)
                and (publication_date is None or r.publication_date == publication_date)
                and (resolution is None or r.resolution == resolution)
            ]
