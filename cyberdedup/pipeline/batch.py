"""Batch processing: classify, arbitrate and apply each incoming article."""

from typing import List, Optional

from rich.console import Console

from ..arbitration import ArbitrationAdapter, ArbitrationDecision
from ..classification import ClassificationResult, Decision, DuplicateClassifier
from ..errors import (
    ArbitrationError,
    DedupError,
    IndexUnavailableError,
    NotFoundError,
    ValidationError,
)
from ..index import CandidateIndex
from ..models import Article, ArticleResolution, UpdateDraft
from ..updates import UpdateMerger, build_update_draft, restrict_sources
from .models import TargetOutcome, TargetStatus

console = Console()


class BatchProcessor:
    """Resolve a batch of incoming articles against the candidate index."""

    def __init__(
        self,
        index: CandidateIndex,
        classifier: DuplicateClassifier,
        arbitrator: Optional[ArbitrationAdapter] = None,
        merger: Optional[UpdateMerger] = None,
        lookback_days: Optional[int] = None,
        dry_run: bool = False,
        run_id: Optional[int] = None,
    ) -> None:
        """
        Initialize batch processor.

        Args:
            index: Candidate index to query and update
            classifier: Duplicate classifier
            arbitrator: Arbitration adapter; BORDERLINE cases are held without one
            merger: Update merger (built on the index if omitted)
            lookback_days: Candidate window, defaults to the classifier config
            dry_run: Classify and arbitrate without writing
            run_id: Run the audit rows belong to
        """
        self.index = index
        self.classifier = classifier
        self.arbitrator = arbitrator
        self.merger = merger or UpdateMerger(index)
        self.lookback_days = lookback_days or classifier.config.lookback_days
        self.dry_run = dry_run
        self.run_id = run_id
        self.outcomes: List[TargetOutcome] = []

    def process(self, articles: List[Article]) -> List[TargetOutcome]:
        """
        Process articles oldest first.

        A missing update target or other per-article failure marks only that
        article as errored. An unavailable index aborts the whole batch: the
        articles not yet resolved are reported as errored and the error is
        re-raised, with every outcome kept on ``self.outcomes``.
        """
        self.outcomes = outcomes = []
        pending = sorted(articles, key=lambda a: a.publication_date)
        for position, target in enumerate(pending):
            try:
                outcome = self._process_safely(target)
                self._record(target, outcome)
            except IndexUnavailableError as e:
                console.print(f"[red]Aborting batch at {target.id}: {e}[/red]")
                reason = f"Batch aborted: {e}"
                outcomes.extend(
                    self._outcome(article, "ERROR", TargetStatus.ERRORED, error=reason)
                    for article in pending[position:]
                )
                raise
            outcomes.append(outcome)
        return outcomes

    def _process_safely(self, target: Article) -> TargetOutcome:
        try:
            return self.process_one(target)
        except IndexUnavailableError:
            raise
        except NotFoundError as e:
            console.print(f"[red]Update target missing for {target.id}: {e}[/red]")
            return self._outcome(target, "ERROR", TargetStatus.ERRORED, error=str(e))
        except DedupError as e:
            console.print(f"[red]Failed to process {target.id}: {e}[/red]")
            return self._outcome(target, "ERROR", TargetStatus.ERRORED, error=str(e))

    def process_one(self, target: Article) -> TargetOutcome:
        """Classify one target and apply the resulting decision."""
        candidates = self.index.find_candidates(target, self.lookback_days)
        result = self.classifier.classify(target, candidates)

        if result.decision == Decision.NEW:
            self._publish(target)
            return self._outcome(target, "NEW", TargetStatus.CLASSIFIED, result)

        candidate = next(c for c in candidates if c.id == result.best_candidate_id)

        if result.decision == Decision.UPDATE:
            draft = build_update_draft(target, candidate)
            self._apply(candidate.id, draft)
            return self._outcome(target, "UPDATE", TargetStatus.CLASSIFIED, result, update=draft)

        return self._arbitrate(target, candidate, result)

    def _arbitrate(
        self,
        target: Article,
        candidate: Article,
        result: ClassificationResult,
    ) -> TargetOutcome:
        if self.arbitrator is None:
            return self._outcome(
                target, "HELD", TargetStatus.HELD_FOR_REVIEW, result,
                error="Arbitration disabled",
            )

        try:
            arbitration = self.arbitrator.arbitrate(target, candidate, result.best_score)
        except ValidationError as e:
            console.print(f"[red]Rejected arbitration response for {target.id}: {e}[/red]")
            return self._outcome(
                target, "HELD", TargetStatus.HELD_FOR_REVIEW, result,
                method="llm", error=str(e),
            )
        except ArbitrationError as e:
            console.print(f"[yellow]Holding {target.id} for review: {e}[/yellow]")
            return self._outcome(
                target, "HELD", TargetStatus.HELD_FOR_REVIEW, result,
                method="llm", error=str(e),
            )

        reasoning = arbitration.reasoning
        if arbitration.decision == ArbitrationDecision.NEW:
            self._publish(target)
            return self._outcome(
                target, "NEW", TargetStatus.CLASSIFIED, result,
                method="llm", reasoning=reasoning,
            )
        if arbitration.decision == ArbitrationDecision.SKIP:
            return self._outcome(
                target, "SKIP", TargetStatus.CLASSIFIED, result,
                method="llm", reasoning=reasoning,
            )

        draft = restrict_sources(arbitration.update, target)
        self._apply(candidate.id, draft)
        return self._outcome(
            target, "UPDATE", TargetStatus.CLASSIFIED, result,
            method="llm", reasoning=reasoning, update=draft,
        )

    def _publish(self, target: Article) -> None:
        if not self.dry_run:
            self.index.insert(target)

    def _apply(self, original_id: str, draft: UpdateDraft) -> None:
        if not self.dry_run:
            self.merger.apply_update(original_id, draft)

    def _outcome(
        self,
        target: Article,
        resolution: str,
        status: TargetStatus,
        result: Optional[ClassificationResult] = None,
        method: str = "automatic",
        reasoning: Optional[str] = None,
        error: Optional[str] = None,
        update: Optional[UpdateDraft] = None,
    ) -> TargetOutcome:
        return TargetOutcome(
            target_id=target.id,
            headline=target.headline,
            publication_date=target.publication_date,
            status=status,
            resolution=resolution,
            classification=result.decision.value if result else None,
            best_candidate_id=result.best_candidate_id if result else None,
            best_score=result.best_score if result else 0.0,
            breakdown=result.breakdown if result else {},
            resolution_method=method,
            reasoning=reasoning,
            error=error,
            update=update,
        )

    def _record(self, target: Article, outcome: TargetOutcome) -> None:
        """Append the outcome to the audit log."""
        if self.dry_run:
            return

        held = outcome.status == TargetStatus.HELD_FOR_REVIEW
        self.index.record_resolution(
            ArticleResolution(
                run_id=self.run_id,
                article_id=target.id,
                publication_date=target.publication_date,
                resolution=outcome.resolution,
                classification=outcome.classification,
                similarity_score=outcome.best_score if outcome.classification else None,
                breakdown=outcome.breakdown or None,
                matched_article_id=outcome.best_candidate_id,
                reasoning=outcome.reasoning or outcome.error,
                resolution_method=outcome.resolution_method,
                target_json=target.model_dump(mode="json") if held else None,
            )
        )
