"""Postgres backed candidate index."""

import json
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterator, List, Optional

import psycopg
from psycopg import Connection

from ..errors import IndexUnavailableError, NotFoundError, RevisionConflictError
from ..index import CandidateIndex, lookback_range
from ..models import CVE, Article, ArticleResolution, Entity, UpdateRecord


@contextmanager
def translate_errors() -> Iterator[None]:
    """Surface connection failures as IndexUnavailableError."""
    try:
        yield
    except psycopg.OperationalError as e:
        raise IndexUnavailableError(f"Candidate index unavailable: {e}") from e


class PostgresCandidateIndex(CandidateIndex):
    """Candidate index stored in Postgres with relational CVE/entity lookups."""

    def __init__(self, conn: Connection) -> None:
        """
        Initialize index.

        Args:
            conn: Database connection using the dict_row row factory
        """
        self.conn = conn

    def insert(self, article: Article) -> None:
        with translate_errors(), self.conn.transaction():
            with self.conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO articles (
                        id, publication_date, headline, slug, summary, full_text, sources
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (id) DO UPDATE SET
                        publication_date = EXCLUDED.publication_date,
                        headline = EXCLUDED.headline,
                        slug = EXCLUDED.slug,
                        summary = EXCLUDED.summary,
                        full_text = EXCLUDED.full_text,
                        sources = EXCLUDED.sources
                    """,
                    (
                        article.id,
                        article.publication_date,
                        article.headline,
                        article.slug,
                        article.summary,
                        article.full_text,
                        json.dumps([s.model_dump() for s in article.sources]),
                    ),
                )

                cur.execute("DELETE FROM article_cves WHERE article_id = %s", (article.id,))
                if article.cves:
                    cur.executemany(
                        """
                        INSERT INTO article_cves (
                            article_id, cve_id, cvss_score, severity, is_known_exploited
                        )
                        VALUES (%s, %s, %s, %s, %s)
                        """,
                        [
                            (article.id, c.cve_id, c.cvss_score, c.severity, c.is_known_exploited)
                            for c in article.cves
                        ],
                    )

                cur.execute("DELETE FROM article_entities WHERE article_id = %s", (article.id,))
                if article.entities:
                    cur.executemany(
                        """
                        INSERT INTO article_entities (article_id, entity_name, entity_type)
                        VALUES (%s, %s, %s)
                        """,
                        [(article.id, e.name, e.type) for e in article.entities],
                    )

    def _load_articles(self, cur, article_ids: List[str]) -> List[Article]:
        """Load full articles for a list of ids, ordered by date then id."""
        if not article_ids:
            return []

        cur.execute(
            """
            SELECT * FROM articles
            WHERE id = ANY(%s)
            ORDER BY publication_date, id
            """,
            (article_ids,),
        )
        rows = cur.fetchall()

        cur.execute(
            """
            SELECT article_id, cve_id, cvss_score, severity, is_known_exploited
            FROM article_cves
            WHERE article_id = ANY(%s)
            ORDER BY article_id, cve_id
            """,
            (article_ids,),
        )
        cves: Dict[str, List[CVE]] = {}
        for row in cur.fetchall():
            cves.setdefault(row["article_id"], []).append(
                CVE(
                    cve_id=row["cve_id"],
                    cvss_score=row["cvss_score"],
                    severity=row["severity"],
                    is_known_exploited=row["is_known_exploited"],
                )
            )

        cur.execute(
            """
            SELECT article_id, entity_name, entity_type
            FROM article_entities
            WHERE article_id = ANY(%s)
            ORDER BY article_id, entity_type, entity_name
            """,
            (article_ids,),
        )
        entities: Dict[str, List[Entity]] = {}
        for row in cur.fetchall():
            entities.setdefault(row["article_id"], []).append(
                Entity(name=row["entity_name"], type=row["entity_type"])
            )

        return [
            Article(
                id=row["id"],
                publication_date=row["publication_date"],
                headline=row["headline"],
                slug=row["slug"],
                summary=row["summary"],
                full_text=row["full_text"],
                sources=row["sources"] or [],
                updates=row["updates"] or [],
                revision_count=row["revision_count"],
                cves=cves.get(row["id"], []),
                entities=entities.get(row["id"], []),
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

    def get(self, article_id: str) -> Article:
        with translate_errors(), self.conn.cursor() as cur:
            articles = self._load_articles(cur, [article_id])
        if not articles:
            raise NotFoundError(article_id)
        return articles[0]

    def find_candidates(self, target: Article, window_days: int) -> List[Article]:
        cve_ids = sorted(target.cve_ids)
        entity_keys = sorted(target.entity_keys)
        if not cve_ids and not entity_keys:
            return []

        start, end = lookback_range(target, window_days)
        with translate_errors(), self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT a.id
                FROM articles a
                WHERE a.publication_date >= %s
                  AND a.publication_date < %s
                  AND a.id <> %s
                  AND (
                    a.id IN (
                        SELECT c.article_id FROM article_cves c
                        WHERE c.cve_id = ANY(%s)
                    )
                    OR a.id IN (
                        SELECT e.article_id
                        FROM article_entities e
                        JOIN unnest(%s::text[], %s::text[]) AS t(entity_type, entity_name)
                          ON e.entity_type = t.entity_type AND e.entity_name = t.entity_name
                    )
                  )
                """,
                (
                    start,
                    end,
                    target.id,
                    cve_ids,
                    [key[0] for key in entity_keys],
                    [key[1] for key in entity_keys],
                ),
            )
            article_ids = [row["id"] for row in cur.fetchall()]
            return self._load_articles(cur, article_ids)

    def append_update(
        self,
        article_id: str,
        record: UpdateRecord,
        expected_revision: Optional[int] = None,
    ) -> Article:
        record_json = record.model_dump(mode="json")

        with translate_errors():
            with self.conn.transaction():
                with self.conn.cursor() as cur:
                    cur.execute(
                        "SELECT revision_count FROM articles WHERE id = %s FOR UPDATE",
                        (article_id,),
                    )
                    row = cur.fetchone()
                    if row is None:
                        raise NotFoundError(article_id)

                    current = row["revision_count"]
                    if expected_revision is not None and current != expected_revision:
                        raise RevisionConflictError(article_id, expected_revision, current)

                    cur.execute(
                        """
                        INSERT INTO article_updates (
                            article_id, revision, update_timestamp,
                            summary, detail, sources, severity_change
                        )
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        """,
                        (
                            article_id,
                            current + 1,
                            record.timestamp,
                            record.summary,
                            record.detail,
                            json.dumps(record_json["sources"]),
                            record.severity_change.value,
                        ),
                    )
                    cur.execute(
                        """
                        UPDATE articles
                        SET
                            updates = updates || %s::jsonb,
                            revision_count = %s
                        WHERE id = %s
                        """,
                        (json.dumps([record_json]), current + 1, article_id),
                    )

            return self.get(article_id)

    def articles_between(self, start: date, end: date) -> List[Article]:
        with translate_errors(), self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT id FROM articles
                WHERE publication_date BETWEEN %s AND %s
                ORDER BY publication_date, id
                """,
                (start, end),
            )
            article_ids = [row["id"] for row in cur.fetchall()]
            return self._load_articles(cur, article_ids)

    def record_resolution(self, resolution: ArticleResolution) -> ArticleResolution:
        with translate_errors(), self.conn.transaction():
            with self.conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO article_resolutions (
                        run_id, article_id, publication_date, resolution,
                        classification, similarity_score, breakdown,
                        matched_article_id, reasoning, resolution_method, target_json
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING id, created_at
                    """,
                    (
                        resolution.run_id,
                        resolution.article_id,
                        resolution.publication_date,
                        resolution.resolution,
                        resolution.classification,
                        resolution.similarity_score,
                        json.dumps(resolution.breakdown) if resolution.breakdown else None,
                        resolution.matched_article_id,
                        resolution.reasoning,
                        resolution.resolution_method,
                        json.dumps(resolution.target_json) if resolution.target_json else None,
                    ),
                )
                row = cur.fetchone()

        return resolution.model_copy(update={"id": row["id"], "created_at": row["created_at"]})

    def list_resolutions(
        self,
        article_id: Optional[str] = None,
        publication_date: Optional[date] = None,
        resolution: Optional[str] = None,
    ) -> List[ArticleResolution]:
        conditions = []
        params: List = []
        if article_id is not None:
            conditions.append("article_id = %s")
            params.append(article_id)
        if publication_date is not None:
            conditions.append("publication_date = %s")
            params.append(publication_date)
        if resolution is not None:
            conditions.append("resolution = %s")
            params.append(resolution)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        with translate_errors(), self.conn.cursor() as cur:
            cur.execute(f"SELECT * FROM article_resolutions {where} ORDER BY id", params)
            return [ArticleResolution.model_validate(row) for row in cur.fetchall()]
