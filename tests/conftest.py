"""Shared fixtures for the test suite."""

from datetime import date
from pathlib import Path

import pytest
import yaml

from cyberdedup.config import Config
from cyberdedup.index import InMemoryCandidateIndex
from cyberdedup.models import CVE, Article, Entity, Source

RUN_DATE = date(2025, 10, 16)


def build_article(
    article_id,
    publication_date=RUN_DATE,
    cves=(),
    entities=(),
    summary="",
    full_text=None,
    headline="",
    sources=(),
    cvss=None,
):
    """Build an article from compact arguments.

    ``entities`` is a sequence of (name, type) pairs and ``sources`` a
    sequence of URLs.
    """
    return Article(
        id=article_id,
        publication_date=publication_date,
        headline=headline or f"Headline {article_id}",
        summary=summary,
        full_text=full_text,
        cves=[CVE(cve_id=cve_id, cvss_score=cvss) for cve_id in cves],
        entities=[Entity(name=name, type=entity_type) for name, entity_type in entities],
        sources=[Source(url=url, title=f"Title {url}") for url in sources],
    )


@pytest.fixture
def make_article():
    return build_article


@pytest.fixture
def memory_index():
    return InMemoryCandidateIndex()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.dump(
            {
                "workspace_root": str(tmp_path / "workspace"),
                "llm": {"provider": "openai", "api_key_env": "CYBERDEDUP_TEST_MISSING_KEY"},
            }
        )
    )
    return path


@pytest.fixture
def config(config_path: Path) -> Config:
    return Config(config_path)
