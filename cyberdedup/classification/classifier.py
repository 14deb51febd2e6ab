"""Duplicate classifier applying thresholds to similarity scores."""

from typing import List, Optional

from rich.console import Console
from rich.table import Table

from ..config import ScoringConfig
from ..models import Article
from ..similarity import DIMENSIONS, SimilarityResult, SimilarityScorer
from .models import ClassificationResult, Decision

console = Console()


class DuplicateClassifier:
    """Pick the best candidate for a target and bucket its score."""

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        scorer: Optional[SimilarityScorer] = None,
    ) -> None:
        """
        Initialize classifier.

        Args:
            config: Scoring configuration (weights, thresholds, tie-break)
            scorer: Similarity scorer; built from the config weights if omitted
        """
        self.config = config or ScoringConfig()
        self.scorer = scorer or SimilarityScorer(self.config.weights)

    def bucket(self, score: float) -> Decision:
        """Map a total score onto a decision."""
        thresholds = self.config.thresholds
        if score >= thresholds.update:
            return Decision.UPDATE
        if score >= thresholds.borderline:
            return Decision.BORDERLINE
        return Decision.NEW

    def rank(self, results: List[SimilarityResult]) -> List[SimilarityResult]:
        """
        Order results best first.

        Equal totals are ordered by publication date according to the
        tie-break policy, then by candidate id.
        """
        direction = 1 if self.config.tie_break == "most_recent" else -1
        return sorted(
            results,
            key=lambda r: (r.total, direction * r.candidate_date.toordinal(), r.candidate_id),
            reverse=True,
        )

    def classify(self, target: Article, candidates: List[Article]) -> ClassificationResult:
        """
        Classify a target against its candidates.

        Args:
            target: Incoming article
            candidates: Pre-filtered candidates from the index

        Returns:
            Decision with the best candidate and its breakdown
        """
        if not candidates:
            return ClassificationResult(target_id=target.id, decision=Decision.NEW)

        scored = self.rank(self.scorer.score_all(target, candidates))
        best = scored[0]

        return ClassificationResult(
            target_id=target.id,
            decision=self.bucket(best.total),
            best_candidate_id=best.candidate_id,
            best_score=best.total,
            breakdown=best.breakdown,
            scored=scored,
        )


def print_similarity_breakdown(result: SimilarityResult) -> None:
    """Print one candidate breakdown as score x weight = weighted."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Dimension")
    table.add_column("Score", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Weighted", justify="right")

    for dimension in DIMENSIONS:
        table.add_row(
            dimension,
            f"{result.breakdown[dimension]:.3f}",
            f"× {result.weights[dimension]:.2f}",
            f"= {result.weighted(dimension):.3f}",
        )
    table.add_row("[bold]total[/bold]", "", "", f"[bold]{result.total:.3f}[/bold]")
    console.print(table)


def print_classification_summary(result: ClassificationResult, show_all: bool = False) -> None:
    """Print classification summary."""
    colors = {
        Decision.NEW: "green",
        Decision.BORDERLINE: "yellow",
        Decision.UPDATE: "cyan",
    }
    color = colors[result.decision]
    console.print(
        f"\n[bold]{result.target_id}[/bold]: [{color}]{result.decision.value}[/{color}]"
    )

    if not result.scored:
        console.print("  No candidates in lookback window")
        return

    shown = result.scored if show_all else result.scored[:1]
    for i, similarity in enumerate(shown, 1):
        console.print(
            f"  {i}. [yellow]{similarity.candidate_headline or similarity.candidate_id}[/yellow] "
            f"({similarity.candidate_date}) score {similarity.total:.3f}"
        )
        print_similarity_breakdown(similarity)
