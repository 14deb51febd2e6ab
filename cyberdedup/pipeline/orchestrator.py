"""Pipeline orchestrator that resolves a batch of structured articles."""

import json
import time
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from ..arbitration import ArbitrationAdapter, ArbitrationProvider, create_arbitrator
from ..classification import DuplicateClassifier
from ..config import Config
from ..db import get_connection
from ..db.articles import PostgresCandidateIndex
from ..db.runs import RunManager
from ..errors import IndexUnavailableError
from ..extraction import EntityExtractor
from ..index import CandidateIndex
from ..models import Article
from .batch import BatchProcessor
from .models import BatchReport, TargetOutcome, TargetStatus

console = Console()


class PipelineStage:
    """Represents a pipeline stage."""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.success = False
        self.error: Optional[str] = None
        self.stats: Dict = {}

    def start(self):
        """Mark stage as started."""
        self.start_time = time.time()

    def complete(self, stats: Optional[Dict] = None):
        """Mark stage as completed successfully."""
        self.end_time = time.time()
        self.success = True
        if stats:
            self.stats.update(stats)

    def fail(self, error: str):
        """Mark stage as failed."""
        self.end_time = time.time()
        self.success = False
        self.error = error

    @property
    def duration(self) -> float:
        """Get stage duration in seconds."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return 0.0


class PipelineOrchestrator:
    """Orchestrates extraction, classification, arbitration and merging."""

    def __init__(
        self,
        config: Config,
        arbitration_provider: Optional[ArbitrationProvider] = None,
    ):
        """
        Initialize pipeline orchestrator.

        Args:
            config: Configuration manager
            arbitration_provider: Provider override; built from the LLM config if omitted
        """
        self.config = config
        self.arbitration_provider = arbitration_provider
        self.stages: List[PipelineStage] = []
        self.run_id: Optional[int] = None

    def _reset(self) -> None:
        """Prepare fresh stages for a new run."""
        self.stages = [
            PipelineStage("extract", "Extracting CVEs and entities"),
            PipelineStage("resolve", "Classifying and resolving articles"),
            PipelineStage("report", "Writing batch report"),
        ]
        self.run_id = None

    def _get_arbitrator(self, enabled: bool) -> Optional[ArbitrationAdapter]:
        """Get configured arbitration adapter, or None when disabled."""
        arbitration_config = self.config.config.arbitration
        if not enabled or not arbitration_config.enabled:
            return None

        provider = self.arbitration_provider or create_arbitrator(self.config.get_llm_config())
        if provider is None:
            return None
        return ArbitrationAdapter(provider, arbitration_config)

    def extract(self, payloads: List[Any], run_date: date) -> List[Article]:
        """Normalize raw structured payloads into articles."""
        return EntityExtractor(default_date=run_date).extract_batch(payloads)

    def run(
        self,
        payloads: List[Any],
        run_date: date,
        lookback_days: Optional[int] = None,
        dry_run: bool = False,
        arbitrate: bool = True,
        index: Optional[CandidateIndex] = None,
    ) -> BatchReport:
        """
        Run the pipeline over one batch.

        Args:
            payloads: Structured article payloads
            run_date: Logical run date, also the default publication date
            lookback_days: Override the configured lookback window
            dry_run: Classify and arbitrate without writing anything
            arbitrate: Send BORDERLINE cases to the arbitration service
            index: Candidate index to use instead of Postgres (no run tracking)

        Returns:
            Batch report with one outcome per article
        """
        self._reset()
        report = BatchReport(run_date=run_date, dry_run=dry_run, started_at=pendulum.now())

        console.print(Panel.fit(
            f"Duplicate Resolution Pipeline\n"
            f"Date: {run_date} • Articles: {len(payloads)} • "
            f"{'Dry run' if dry_run else 'Committing changes'}",
            style="bold blue"
        ))

        stage = self.stages[0]
        stage.start()
        articles = self.extract(payloads, run_date)
        stage.complete({
            "articles": len(articles),
            "cves": sum(len(a.cves) for a in articles),
            "entities": sum(len(a.entities) for a in articles),
        })

        try:
            if index is not None:
                self._resolve(index, articles, report, lookback_days, arbitrate)
            else:
                self._run_with_database(articles, report, lookback_days, arbitrate)
        except IndexUnavailableError as e:
            console.print(f"[red]Candidate index unavailable, aborting batch: {e}[/red]")
            self.stages[1].fail(str(e))
            report.aborted = True
            report.error = str(e)

        report.finished_at = pendulum.now()
        report.run_id = self.run_id

        stage = self.stages[2]
        stage.start()
        if not dry_run:
            report_path = self._save_report(report)
            stage.complete({"path": str(report_path)})
        else:
            stage.complete({"path": None})

        self._print_summary(report)
        return report

    def _run_with_database(
        self,
        articles: List[Article],
        report: BatchReport,
        lookback_days: Optional[int],
        arbitrate: bool,
    ) -> None:
        """Resolve against Postgres, tracking the run unless this is a dry run."""
        db_config = self.config.get_db_config()

        with get_connection(db_config) as conn:
            index = PostgresCandidateIndex(conn)
            if report.dry_run:
                self._resolve(index, articles, report, lookback_days, arbitrate)
                return

            run_manager = RunManager()
            self.run_id = run_manager.create_run(conn, report.run_date)
            try:
                self._resolve(index, articles, report, lookback_days, arbitrate)
            except Exception:
                run_manager.update_run_status(conn, self.run_id, "failed", report.stats())
                raise

            report.finished_at = pendulum.now()
            run_manager.update_run_status(conn, self.run_id, "success", report.stats())

    def _resolve(
        self,
        index: CandidateIndex,
        articles: List[Article],
        report: BatchReport,
        lookback_days: Optional[int],
        arbitrate: bool,
    ) -> None:
        stage = self.stages[1]
        stage.start()

        scoring = self.config.config.scoring
        arbitrator = self._get_arbitrator(arbitrate)
        processor = BatchProcessor(
            index=index,
            classifier=DuplicateClassifier(scoring),
            arbitrator=arbitrator,
            lookback_days=lookback_days or scoring.lookback_days,
            dry_run=report.dry_run,
            run_id=self.run_id,
        )

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task(stage.description, total=1)
            try:
                processor.process(articles)
            finally:
                report.outcomes = processor.outcomes
                if arbitrator is not None:
                    report.arbitration_calls = arbitrator.calls
                    report.arbitration_retries = arbitrator.retries
                    report.arbitration_usage = arbitrator.provider.get_usage_stats()
            progress.advance(task, 1)

        stage.complete(report.stats()["status"])

    def _save_report(self, report: BatchReport) -> Path:
        """Save the batch report as JSON in the run directory."""
        run_dir = self.config.get_run_dir(str(report.run_date))
        report_path = run_dir / "report.json"

        data = report.model_dump(mode="json")
        data["stats"] = report.stats()
        data["stages"] = {
            stage.name: {
                "duration": stage.duration,
                "success": stage.success,
                "error": stage.error,
                "stats": stage.stats,
            }
            for stage in self.stages
        }

        with open(report_path, "w") as f:
            json.dump(data, f, indent=2)
        return report_path

    def _print_summary(self, report: BatchReport):
        """Print pipeline execution summary."""
        table = Table(title="Batch Summary")
        table.add_column("Article", style="cyan")
        table.add_column("Status", style="bold")
        table.add_column("Resolution")
        table.add_column("Score", style="yellow", justify="right")
        table.add_column("Matched", style="dim")
        table.add_column("Details", style="dim")

        colors = {
            TargetStatus.CLASSIFIED: "green",
            TargetStatus.HELD_FOR_REVIEW: "yellow",
            TargetStatus.ERRORED: "red",
        }
        for outcome in report.outcomes:
            color = colors[outcome.status]
            table.add_row(
                outcome.headline or outcome.target_id,
                f"[{color}]{outcome.status.value}[/{color}]",
                f"{outcome.resolution} ({outcome.resolution_method})",
                f"{outcome.best_score:.3f}",
                outcome.best_candidate_id or "-",
                _details(outcome),
            )

        console.print("\n")
        console.print(table)

        stats = report.stats()
        counts = ", ".join(f"{k}: {v}" for k, v in sorted(stats["resolution"].items())) or "none"
        statuses = ", ".join(f"{k}: {v}" for k, v in sorted(stats["status"].items())) or "none"
        if report.aborted:
            console.print(Panel(
                f"[red]Batch aborted![/red]\n\n"
                f"Reason: {report.error}\n"
                f"Outcomes: {statuses}",
                style="red"
            ))
        else:
            console.print(Panel(
                f"[green]Batch completed[/green]{' (dry run)' if report.dry_run else ''}\n\n"
                f"Run date: {report.run_date}\n"
                f"Duration: {report.duration:.1f} seconds\n"
                f"Resolutions: {counts}\n"
                f"Arbitration calls: {report.arbitration_calls} "
                f"({report.arbitration_retries} retries, "
                f"{report.arbitration_usage.get('total_tokens', 0)} tokens)",
                style="green"
            ))


def _details(outcome: TargetOutcome) -> str:
    if outcome.error:
        return outcome.error
    if outcome.update:
        return outcome.update.summary
    return outcome.reasoning or ""
