from datetime import date, timedelta

import pendulum
import pytest

from cyberdedup.errors import NotFoundError, RevisionConflictError
from cyberdedup.index import InMemoryCandidateIndex, lookback_range
from cyberdedup.models import ArticleResolution, SeverityChange, UpdateRecord

from .conftest import RUN_DATE


def _record(summary="Patch released"):
    return UpdateRecord(
        timestamp=pendulum.datetime(2025, 10, 16, 12, tz="UTC"),
        summary=summary,
        detail="Vendor released an emergency patch for the vulnerability.",
        sources=[],
        severity_change=SeverityChange.DECREASED,
    )


def test_lookback_range_is_half_open(make_article):
    start, end = lookback_range(make_article("t"), 30)
    assert start == RUN_DATE - timedelta(days=30)
    assert end == RUN_DATE


def test_empty_index_returns_no_candidates(memory_index, make_article):
    assert memory_index.find_candidates(make_article("t", cves=["CVE-2025-61882"]), 30) == []


def test_window_bounds(memory_index, make_article):
    cve = ["CVE-2025-61882"]
    memory_index.insert(make_article("edge", RUN_DATE - timedelta(days=30), cves=cve))
    memory_index.insert(make_article("old", RUN_DATE - timedelta(days=31), cves=cve))
    memory_index.insert(make_article("yesterday", RUN_DATE - timedelta(days=1), cves=cve))
    memory_index.insert(make_article("same-day", RUN_DATE, cves=cve))
    memory_index.insert(make_article("future", RUN_DATE + timedelta(days=1), cves=cve))

    candidates = memory_index.find_candidates(make_article("t", cves=cve), 30)

    assert [c.id for c in candidates] == ["edge", "yesterday"]


def test_old_articles_are_retained(memory_index, make_article):
    memory_index.insert(make_article("old", date(2024, 1, 1), cves=["CVE-2024-0001"]))
    target = make_article("t", cves=["CVE-2024-0001"])

    assert memory_index.find_candidates(target, 30) == []
    assert memory_index.get("old").id == "old"
    assert [c.id for c in memory_index.find_candidates(target, 1000)] == ["old"]


def test_candidates_must_share_cve_or_entity(memory_index, make_article):
    day = RUN_DATE - timedelta(days=2)
    memory_index.insert(make_article("cve", day, cves=["CVE-2025-61882"]))
    memory_index.insert(make_article("actor", day, entities=[("Cl0p", "threat_actor")]))
    memory_index.insert(make_article("other-type", day, entities=[("Cl0p", "malware")]))
    memory_index.insert(make_article("unrelated", day, cves=["CVE-2025-00001"]))

    target = make_article("t", cves=["CVE-2025-61882"], entities=[("Cl0p", "threat_actor")])

    assert [c.id for c in memory_index.find_candidates(target, 30)] == ["actor", "cve"]


def test_target_is_never_its_own_candidate(memory_index, make_article):
    earlier = make_article("t", RUN_DATE - timedelta(days=1), cves=["CVE-2025-61882"])
    memory_index.insert(earlier)
    target = make_article("t", cves=["CVE-2025-61882"])
    assert memory_index.find_candidates(target, 30) == []


def test_insert_is_idempotent(memory_index, make_article):
    article = make_article("a", RUN_DATE - timedelta(days=1), cves=["CVE-2025-61882"])
    memory_index.insert(article)
    memory_index.insert(article)

    assert len(memory_index) == 1
    candidates = memory_index.find_candidates(make_article("t", cves=["CVE-2025-61882"]), 30)
    assert [c.id for c in candidates] == ["a"]


def test_reinsert_replaces_lookups_but_keeps_history(memory_index, make_article):
    day = RUN_DATE - timedelta(days=1)
    memory_index.insert(make_article("a", day, cves=["CVE-2025-61882"]))
    memory_index.append_update("a", _record())
    memory_index.insert(make_article("a", day, cves=["CVE-2025-10035"]))

    stored = memory_index.get("a")
    assert stored.revision_count == 1
    assert len(stored.updates) == 1
    assert memory_index.find_candidates(make_article("t", cves=["CVE-2025-61882"]), 30) == []


def test_append_update_is_append_only(memory_index, make_article):
    memory_index.insert(make_article("a"))

    memory_index.append_update("a", _record("first"))
    updated = memory_index.append_update("a", _record("second"), expected_revision=1)

    assert updated.revision_count == 2
    assert [u.summary for u in updated.updates] == ["first", "second"]


def test_append_update_unknown_article(memory_index):
    with pytest.raises(NotFoundError) as exc_info:
        memory_index.append_update("missing", _record())
    assert exc_info.value.article_id == "missing"


def test_append_update_revision_conflict(memory_index, make_article):
    memory_index.insert(make_article("a"))
    memory_index.append_update("a", _record())

    with pytest.raises(RevisionConflictError):
        memory_index.append_update("a", _record(), expected_revision=0)
    assert memory_index.get("a").revision_count == 1


def test_get_returns_copies(memory_index, make_article):
    memory_index.insert(make_article("a"))
    copy = memory_index.get("a")
    copy.updates.append(_record())
    assert memory_index.get("a").updates == []


def test_get_unknown_article(memory_index):
    with pytest.raises(NotFoundError):
        memory_index.get("missing")


def test_articles_between_is_inclusive_and_ordered(make_article):
    index = InMemoryCandidateIndex([
        make_article("c", date(2025, 10, 3)),
        make_article("a", date(2025, 10, 1)),
        make_article("b", date(2025, 10, 2)),
        make_article("d", date(2025, 10, 4)),
    ])
    articles = index.articles_between(date(2025, 10, 1), date(2025, 10, 3))
    assert [a.id for a in articles] == ["a", "b", "c"]


def test_record_resolution_is_append_only(memory_index):
    for resolution in ("NEW", "SKIP"):
        memory_index.record_resolution(
            ArticleResolution(article_id="x", publication_date=RUN_DATE, resolution=resolution)
        )
    memory_index.record_resolution(
        ArticleResolution(article_id="y", publication_date=RUN_DATE, resolution="HELD")
    )

    rows = memory_index.list_resolutions("x")
    assert [(r.id, r.resolution) for r in rows] == [(1, "NEW"), (2, "SKIP")]
    assert all(r.created_at is not None for r in rows)
    assert len(memory_index.list_resolutions()) == 3
    assert [r.article_id for r in memory_index.list_resolutions(resolution="HELD")] == ["y"]
    assert memory_index.list_resolutions(publication_date=date(2025, 1, 1)) == []
