from datetime import date

import pytest

from cyberdedup.extraction import EntityExtractor, StructuredArticle

DEFAULT_DATE = date(2025, 10, 16)


@pytest.fixture
def extractor():
    return EntityExtractor(default_date=DEFAULT_DATE)


def test_vendor_is_rewritten_to_company(extractor):
    entities = extractor.extract_entities([{"name": "Oracle", "type": "vendor"}])
    assert [(e.name, e.type) for e in entities] == [("Oracle", "company")]


@pytest.mark.parametrize("entity_type", ["person", "technology", "security_organization", "other"])
def test_excluded_entity_types_are_dropped(extractor, entity_type):
    assert extractor.extract_entities([{"name": "Someone", "type": entity_type}]) == []


def test_retained_entity_types(extractor):
    raw = [
        {"name": "Cl0p", "type": "threat_actor"},
        {"name": "LockBit", "type": "malware"},
        {"name": "Oracle EBS", "type": "product"},
        {"name": "Oracle", "type": "company"},
        {"name": "CISA", "type": "government_agency"},
        {"name": "Unknown", "type": "spaceship"},
    ]
    types = {e.type for e in extractor.extract_entities(raw)}
    assert types == {"threat_actor", "malware", "product", "company", "government_agency"}


def test_entities_are_deduplicated_and_trimmed(extractor):
    raw = [
        {"name": " Cl0p ", "type": "threat_actor"},
        {"name": "Cl0p", "type": "THREAT_ACTOR"},
        {"name": "Cl0p", "type": "malware"},
        {"name": "", "type": "malware"},
        {"type": "malware"},
        "Cl0p",
    ]
    entities = extractor.extract_entities(raw)
    assert [(e.name, e.type) for e in entities] == [("Cl0p", "threat_actor"), ("Cl0p", "malware")]


def test_cves_from_strings_and_objects(extractor):
    raw = [
        "cve-2025-61882",
        {"id": "CVE-2025-61882", "cvss_score": 9.8},
        {"id": "CVE-2025-10035", "cvss_score": 10.0, "severity": "Critical", "kev": True},
        {"cve_id": "CVE-2024-1234", "cvss_score": "not a score", "severity": "bogus"},
        "not-a-cve",
        {"id": None},
        42,
    ]
    cves = extractor.extract_cves(raw)

    assert [c.cve_id for c in cves] == ["CVE-2025-61882", "CVE-2025-10035", "CVE-2024-1234"]
    assert cves[0].cvss_score is None
    assert cves[1].cvss_score == 10.0
    assert cves[1].severity == "critical"
    assert cves[1].is_known_exploited is True
    assert cves[2].cvss_score is None
    assert cves[2].severity is None


def test_malformed_fields_default_to_empty(extractor):
    article = extractor.extract(
        {
            "id": "a1",
            "pub_date": "2025-10-10",
            "summary": "Summary",
            "cves": "CVE-2025-61882",
            "entities": None,
            "sources": {"url": "https://example.com"},
        }
    )
    assert article.cves == []
    assert article.entities == []
    assert article.sources == []
    assert article.publication_date == date(2025, 10, 10)


def test_full_report_is_used_as_full_text(extractor):
    article = extractor.extract({"id": "a1", "summary": "short", "full_report": "long report"})
    assert article.full_text == "long report"
    assert article.summary == "short"


def test_missing_or_invalid_date_uses_default(extractor):
    assert extractor.extract({"id": "a1"}).publication_date == DEFAULT_DATE
    assert extractor.extract({"id": "a2", "publication_date": "soon"}).publication_date == DEFAULT_DATE


def test_missing_id_is_generated(extractor):
    first = extractor.extract({"summary": "x"})
    second = extractor.extract({"summary": "x"})
    assert first.id and second.id
    assert first.id != second.id


def test_non_object_payload_never_fails(extractor):
    article = extractor.extract(["not", "an", "article"])
    assert article.cves == []
    assert article.publication_date == DEFAULT_DATE


def test_sources_are_normalized(extractor):
    article = extractor.extract(
        {
            "id": "a1",
            "sources": [
                {"url": "https://a.example/1", "title": "A"},
                {"url": "https://a.example/1", "title": "A again"},
                {"url": "https://b.example/2"},
                {"title": "no url"},
            ],
        }
    )
    assert [(s.url, s.title) for s in article.sources] == [
        ("https://a.example/1", "A"),
        ("https://b.example/2", "https://b.example/2"),
    ]


def test_extraction_is_deterministic(extractor):
    payload = {
        "id": "a1",
        "cves": ["CVE-2025-61882", "CVE-2025-10035"],
        "entities": [{"name": "Cl0p", "type": "threat_actor"}, {"name": "Oracle", "type": "vendor"}],
    }
    first = extractor.extract(payload)
    second = extractor.extract(payload)
    assert first.cves == second.cves
    assert first.entities == second.entities


def test_structured_article_accepts_existing_model(extractor):
    structured = StructuredArticle(id="a1", headline="Headline", summary="Summary")
    article = extractor.extract(structured)
    assert article.id == "a1"
    assert article.headline == "Headline"
