"""Entity extraction and normalization for structured articles."""

import re
import uuid
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import pendulum
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from ..models import CVE, Article, Entity, Source
from .models import StructuredArticle

console = Console()

CVE_PATTERN = re.compile(r"^CVE-\d{4}-\d{4,}$")

INDEXED_ENTITY_TYPES = {
    "threat_actor",
    "malware",
    "product",
    "company",
    "government_agency",
}

EXCLUDED_ENTITY_TYPES = {"person", "technology", "security_organization", "other"}

ENTITY_TYPE_ALIASES = {"vendor": "company"}

SEVERITIES = {"critical", "high", "medium", "low", "none"}


class EntityExtractor:
    """Turn structured article payloads into normalized articles."""

    def __init__(self, default_date: Optional[date] = None) -> None:
        """
        Initialize extractor.

        Args:
            default_date: Publication date used when an article has none
        """
        self.default_date = default_date or pendulum.today().date()

    def normalize_cve_id(self, value: Any) -> Optional[str]:
        """Return an uppercase CVE id, or None if the value is not one."""
        if not isinstance(value, str):
            return None
        cve_id = value.strip().upper()
        if not CVE_PATTERN.match(cve_id):
            return None
        return cve_id

    def extract_cves(self, items: Iterable[Any]) -> List[CVE]:
        """
        Extract CVE references.

        Accepts bare id strings and objects with ``id`` or ``cve_id`` plus
        optional ``cvss_score``, ``severity`` and ``kev`` metadata. Invalid
        metadata is dropped; an invalid id drops the entry.
        """
        cves: Dict[str, CVE] = {}
        for item in items:
            if isinstance(item, dict):
                cve_id = self.normalize_cve_id(item.get("cve_id") or item.get("id"))
                if cve_id is None:
                    continue
                cve = CVE(
                    cve_id=cve_id,
                    cvss_score=self._cvss(item.get("cvss_score")),
                    severity=self._severity(item.get("severity")),
                    is_known_exploited=self._flag(
                        item.get("is_known_exploited", item.get("kev"))
                    ),
                )
            else:
                cve_id = self.normalize_cve_id(item)
                if cve_id is None:
                    continue
                cve = CVE(cve_id=cve_id)
            cves.setdefault(cve_id, cve)
        return list(cves.values())

    def normalize_entity_type(self, value: Any) -> Optional[str]:
        """Map a raw entity type onto the retained types, or None to drop it."""
        if not isinstance(value, str):
            return None
        entity_type = value.strip().lower()
        entity_type = ENTITY_TYPE_ALIASES.get(entity_type, entity_type)
        if entity_type not in INDEXED_ENTITY_TYPES:
            return None
        return entity_type

    def extract_entities(self, items: Iterable[Any]) -> List[Entity]:
        """Extract retained entities; excluded and unknown types are discarded."""
        entities: Dict[tuple, Entity] = {}
        for item in items:
            if not isinstance(item, dict):
                continue
            name = item.get("name")
            if not isinstance(name, str) or not name.strip():
                continue
            entity_type = self.normalize_entity_type(item.get("type"))
            if entity_type is None:
                continue
            name = name.strip()
            entities.setdefault((name, entity_type), Entity(name=name, type=entity_type))
        return list(entities.values())

    def extract_sources(self, items: Iterable[Any]) -> List[Source]:
        sources = []
        seen = set()
        for item in items:
            if not isinstance(item, dict):
                continue
            url = item.get("url")
            if not isinstance(url, str) or not url.strip():
                continue
            url = url.strip()
            if url in seen:
                continue
            seen.add(url)
            title = item.get("title")
            sources.append(Source(url=url, title=str(title).strip() if title else url))
        return sources

    def parse_date(self, value: Optional[str]) -> date:
        """Parse a publication date, falling back to the default date."""
        if not value:
            return self.default_date
        try:
            return pendulum.parse(value).date()
        except (ValueError, TypeError, AttributeError):
            console.print(
                f"[yellow]Warning: unparseable publication date {value!r}, "
                f"using {self.default_date}[/yellow]"
            )
            return self.default_date

    def extract(self, payload: Any) -> Article:
        """
        Build an Article from one structured payload.

        Args:
            payload: Raw JSON object or StructuredArticle

        Returns:
            Normalized article
        """
        if isinstance(payload, StructuredArticle):
            structured = payload
        else:
            try:
                structured = StructuredArticle.model_validate(
                    payload if isinstance(payload, dict) else {}
                )
            except PydanticValidationError:
                structured = StructuredArticle()

        summary = structured.summary or ""
        full_text = structured.full_text or structured.full_report

        return Article(
            id=structured.id or str(uuid.uuid4()),
            publication_date=self.parse_date(structured.publication_date or structured.pub_date),
            headline=structured.headline or structured.title or "",
            slug=structured.slug,
            summary=summary,
            full_text=full_text,
            cves=self.extract_cves(structured.cves),
            entities=self.extract_entities(structured.entities),
            sources=self.extract_sources(structured.sources),
        )

    def extract_batch(self, payloads: Iterable[Any]) -> List[Article]:
        return [self.extract(payload) for payload in payloads]

    @staticmethod
    def _cvss(value: Any) -> Optional[float]:
        if isinstance(value, bool):
            return None
        try:
            score = float(value)
        except (TypeError, ValueError):
            return None
        if 0.0 <= score <= 10.0:
            return score
        return None

    @staticmethod
    def _severity(value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        severity = value.strip().lower()
        return severity if severity in SEVERITIES else None

    @staticmethod
    def _flag(value: Any) -> bool:
        return value is True
