import json
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from cyberdedup.arbitration import ArbitrationAdapter, MockArbitrator
from cyberdedup.classification import DuplicateClassifier
from cyberdedup.config import ArbitrationConfig
from cyberdedup.errors import IndexUnavailableError, NotFoundError, TransientArbitrationError
from cyberdedup.index import InMemoryCandidateIndex
from cyberdedup.pipeline import BatchProcessor, PipelineOrchestrator, TargetStatus
from cyberdedup.updates import UpdateMerger

from .conftest import RUN_DATE

CVE = "CVE-2025-61882"
ENTITIES = [("Cl0p", "threat_actor"), ("Oracle EBS", "product")]


@pytest.fixture
def original(make_article):
    return make_article(
        "orig",
        RUN_DATE - timedelta(days=3),
        cves=[CVE],
        entities=ENTITIES,
        summary="Cl0p exploits an Oracle E-Business Suite zero-day",
        sources=["https://old.example/1"],
    )


@pytest.fixture
def index(original):
    return InMemoryCandidateIndex([original])


def _borderline_target(make_article):
    # Shares the CVE only: 0.45 plus a little text overlap
    return make_article(
        "borderline",
        cves=[CVE],
        summary="Oracle patches exploited E-Business Suite flaw",
        sources=["https://new.example/1"],
    )


def _processor(index, arbitrator=None, **kwargs):
    return BatchProcessor(index, DuplicateClassifier(), arbitrator=arbitrator, **kwargs)


def _adapter(responses, **config):
    return ArbitrationAdapter(MockArbitrator(responses), ArbitrationConfig(**config))


def test_new_article_is_indexed(index, make_article):
    target = make_article("fresh", cves=["CVE-2025-99999"])

    [outcome] = _processor(index).process([target])

    assert outcome.status == TargetStatus.CLASSIFIED
    assert outcome.resolution == "NEW"
    assert outcome.best_candidate_id is None
    assert "fresh" in index
    [resolution] = index.list_resolutions("fresh")
    assert resolution.resolution == "NEW"
    assert resolution.resolution_method == "automatic"


def test_direct_update_merges_into_original(index, make_article, original):
    target = make_article(
        "dup",
        cves=[CVE],
        entities=ENTITIES,
        summary=original.summary,
        sources=["https://new.example/1"],
    )

    [outcome] = _processor(index).process([target])

    assert outcome.resolution == "UPDATE"
    assert outcome.classification == "UPDATE"
    assert outcome.best_candidate_id == "orig"
    assert "dup" not in index
    stored = index.get("orig")
    assert stored.revision_count == 1
    assert [s.url for s in stored.updates[0].sources] == ["https://new.example/1"]


def test_borderline_without_arbitration_is_held(index, make_article):
    target = _borderline_target(make_article)

    [outcome] = _processor(index).process([target])

    assert outcome.classification == "BORDERLINE"
    assert outcome.status == TargetStatus.HELD_FOR_REVIEW
    assert outcome.resolution == "HELD"
    assert "borderline" not in index
    [resolution] = index.list_resolutions("borderline")
    assert resolution.target_json["id"] == "borderline"


def test_arbitration_update_applies_new_sources_only(index, make_article):
    target = _borderline_target(make_article)
    adapter = _adapter([{
        "decision": "UPDATE",
        "reasoning": "Patch for the same vulnerability",
        "update": {
            "summary": "Oracle releases patch for exploited EBS flaw",
            "detail": "Oracle published fixes for CVE-2025-61882 after active exploitation by Cl0p.",
            "sources": [
                {"url": "https://new.example/1", "title": "Patch"},
                {"url": "https://old.example/1", "title": "Original"},
            ],
            "severity_change": "decreased",
        },
    }])

    [outcome] = _processor(index, adapter).process([target])

    assert outcome.resolution == "UPDATE"
    assert outcome.resolution_method == "llm"
    stored = index.get("orig")
    assert stored.revision_count == 1
    assert [s.url for s in stored.updates[0].sources] == ["https://new.example/1"]


def test_arbitration_new_publishes_target(index, make_article):
    adapter = _adapter([{"decision": "NEW", "reasoning": "Different incident"}])
    [outcome] = _processor(index, adapter).process([_borderline_target(make_article)])

    assert outcome.resolution == "NEW"
    assert outcome.reasoning == "Different incident"
    assert "borderline" in index


def test_arbitration_skip_discards_target(index, make_article):
    adapter = _adapter([{"decision": "SKIP", "reasoning": "Same story"}])
    [outcome] = _processor(index, adapter).process([_borderline_target(make_article)])

    assert outcome.resolution == "SKIP"
    assert outcome.status == TargetStatus.CLASSIFIED
    assert "borderline" not in index
    assert index.get("orig").revision_count == 0


def test_invalid_arbitration_leaves_case_unresolved(index, make_article):
    adapter = _adapter([{"decision": "MAYBE", "reasoning": "?"}])

    [outcome] = _processor(index, adapter).process([_borderline_target(make_article)])

    assert outcome.status == TargetStatus.HELD_FOR_REVIEW
    assert outcome.classification == "BORDERLINE"
    assert "borderline" not in index
    assert index.get("orig").revision_count == 0


def test_exhausted_retries_are_held(index, make_article):
    adapter = _adapter([TransientArbitrationError("503")] * 3, max_retries=2)

    [outcome] = _processor(index, adapter).process([_borderline_target(make_article)])

    assert outcome.status == TargetStatus.HELD_FOR_REVIEW
    assert adapter.calls == 3


def test_timeout_is_held(index, make_article):
    adapter = ArbitrationAdapter(
        MockArbitrator([{"decision": "NEW"}], delay=0.5),
        ArbitrationConfig(timeout_seconds=0.05),
    )

    [outcome] = _processor(index, adapter).process([_borderline_target(make_article)])

    assert outcome.status == TargetStatus.HELD_FOR_REVIEW
    assert "borderline" not in index


def test_missing_update_target_errors_only_that_article(index, make_article, original):
    merger = MagicMock(spec=UpdateMerger)
    merger.apply_update.side_effect = NotFoundError("orig")
    duplicate = make_article("dup", cves=[CVE], entities=ENTITIES, summary=original.summary)
    fresh = make_article("fresh", cves=["CVE-2025-99999"])

    outcomes = _processor(index, merger=merger).process([duplicate, fresh])

    assert [o.status for o in outcomes] == [TargetStatus.ERRORED, TargetStatus.CLASSIFIED]
    assert outcomes[0].resolution == "ERROR"
    assert "Article not found: orig" in outcomes[0].error
    assert "fresh" in index


def test_unavailable_index_aborts_batch(make_article):
    index = MagicMock()
    index.find_candidates.side_effect = IndexUnavailableError("connection refused")

    processor = _processor(index)

    with pytest.raises(IndexUnavailableError):
        processor.process([make_article("a"), make_article("b")])
    assert index.find_candidates.call_count == 1
    assert [o.status for o in processor.outcomes] == [TargetStatus.ERRORED] * 2
    index.record_resolution.assert_not_called()


def test_dry_run_writes_nothing(index, make_article, original):
    duplicate = make_article("dup", cves=[CVE], entities=ENTITIES, summary=original.summary)
    fresh = make_article("fresh", cves=["CVE-2025-99999"])

    outcomes = _processor(index, dry_run=True).process([duplicate, fresh])

    assert [o.resolution for o in outcomes] == ["UPDATE", "NEW"]
    assert outcomes[0].update is not None
    assert "fresh" not in index
    assert index.get("orig").revision_count == 0
    assert index.list_resolutions() == []


def test_batch_is_processed_oldest_first(make_article):
    index = InMemoryCandidateIndex()
    first = make_article(
        "first", RUN_DATE - timedelta(days=1), cves=[CVE], entities=ENTITIES, summary="Same story"
    )
    second = make_article("second", cves=[CVE], entities=ENTITIES, summary="Same story")

    outcomes = _processor(index).process([second, first])

    assert [o.target_id for o in outcomes] == ["first", "second"]
    assert [o.resolution for o in outcomes] == ["NEW", "UPDATE"]
    assert index.get("first").revision_count == 1


def test_orchestrator_writes_report(config, index, original):
    payloads = [
        {
            "id": "dup",
            "publication_date": str(RUN_DATE),
            "summary": original.summary,
            "cves": [CVE],
            "entities": [{"name": n, "type": t} for n, t in ENTITIES],
            "sources": [{"url": "https://new.example/1", "title": "New"}],
        },
        {"id": "fresh", "publication_date": str(RUN_DATE), "cves": ["CVE-2025-99999"]},
        {"id": "blank"},
    ]

    report = PipelineOrchestrator(config).run(payloads, run_date=RUN_DATE, index=index)

    assert not report.aborted
    assert report.stats()["resolution"] == {"UPDATE": 1, "NEW": 2}
    report_path = config.get_run_dir(str(RUN_DATE)) / "report.json"
    data = json.loads(report_path.read_text())
    assert data["stats"]["total"] == 3
    assert data["stages"]["resolve"]["success"] is True


def test_orchestrator_holds_borderline_without_api_key(config, index, make_article):
    payload = {
        "id": "borderline",
        "publication_date": str(RUN_DATE),
        "summary": "Oracle patches exploited E-Business Suite flaw",
        "cves": [CVE],
    }

    report = PipelineOrchestrator(config).run([payload], run_date=RUN_DATE, index=index)

    [outcome] = report.outcomes
    assert outcome.status == TargetStatus.HELD_FOR_REVIEW
    assert report.arbitration_calls == 0


def test_orchestrator_uses_provider_override(config, index):
    provider = MockArbitrator([{"decision": "SKIP", "reasoning": "Same story"}])
    payload = {
        "id": "borderline",
        "publication_date": str(RUN_DATE),
        "summary": "Oracle patches exploited E-Business Suite flaw",
        "cves": [CVE],
    }

    report = PipelineOrchestrator(config, arbitration_provider=provider).run(
        [payload], run_date=RUN_DATE, index=index
    )

    assert report.outcomes[0].resolution == "SKIP"
    assert report.arbitration_calls == 1
    assert report.arbitration_usage == {"total_tokens": 0, "api_calls": 1, "model": "mock"}
    assert report.stats()["arbitration_usage"]["api_calls"] == 1
    saved = json.loads((config.get_run_dir(str(RUN_DATE)) / "report.json").read_text())
    assert saved["stats"]["arbitration_usage"]["model"] == "mock"


def test_orchestrator_dry_run_skips_report(config, index):
    report = PipelineOrchestrator(config).run(
        [{"id": "fresh", "cves": ["CVE-2025-99999"]}],
        run_date=RUN_DATE,
        dry_run=True,
        index=index,
    )

    assert report.dry_run
    assert "fresh" not in index
    assert not (config.workspace_root / "runs" / str(RUN_DATE) / "report.json").exists()


def test_orchestrator_reports_abort(config, make_article):
    index = MagicMock()
    index.find_candidates.side_effect = IndexUnavailableError("connection refused")

    report = PipelineOrchestrator(config).run([{"id": "a"}], run_date=RUN_DATE, index=index)

    assert report.aborted
    assert "connection refused" in report.error
    [outcome] = report.outcomes
    assert outcome.status == TargetStatus.ERRORED
    assert "connection refused" in outcome.error


def _fail_after(index, calls):
    """Make the index unreachable once ``calls`` lookups have succeeded."""
    lookup = index.find_candidates
    seen = []

    def find_candidates(target, window_days):
        seen.append(target.id)
        if len(seen) > calls:
            raise IndexUnavailableError("connection lost")
        return lookup(target, window_days)

    index.find_candidates = find_candidates


def test_abort_keeps_outcomes_of_processed_targets(make_article):
    index = InMemoryCandidateIndex()
    _fail_after(index, 1)
    processor = _processor(index)
    articles = [make_article(name, cves=[f"CVE-2025-0000{i}"]) for i, name in enumerate("abc")]

    with pytest.raises(IndexUnavailableError):
        processor.process(articles)

    assert [(o.target_id, o.status) for o in processor.outcomes] == [
        ("a", TargetStatus.CLASSIFIED),
        ("b", TargetStatus.ERRORED),
        ("c", TargetStatus.ERRORED),
    ]
    assert processor.outcomes[1].error == "Batch aborted: connection lost"
    assert "a" in index
    assert [r.article_id for r in index.list_resolutions()] == ["a"]


def test_orchestrator_abort_reports_every_target(config, index):
    _fail_after(index, 1)
    payloads = [
        {"id": "a", "publication_date": str(RUN_DATE), "cves": ["CVE-2025-00001"]},
        {"id": "b", "publication_date": str(RUN_DATE), "cves": ["CVE-2025-00002"]},
    ]

    report = PipelineOrchestrator(config).run(payloads, run_date=RUN_DATE, index=index)

    assert report.aborted
    assert [o.target_id for o in report.outcomes] == ["a", "b"]
    assert report.stats()["status"] == {"classified": 1, "errored": 1}
    saved = json.loads((config.get_run_dir(str(RUN_DATE)) / "report.json").read_text())
    assert saved["stats"]["total"] == 2


def test_provider_crash_is_held(index, make_article):
    adapter = _adapter([RuntimeError("unexpected response shape")])

    [outcome] = _processor(index, adapter).process([_borderline_target(make_article)])

    assert outcome.status == TargetStatus.HELD_FOR_REVIEW
    assert "unexpected response shape" in outcome.error
    assert "borderline" not in index
