"""Check command implementation."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ..classification import DuplicateClassifier, print_classification_summary
from ..config import Config
from ..db import get_connection
from ..db.articles import PostgresCandidateIndex
from ..errors import IndexUnavailableError
from ..extraction import EntityExtractor
from ..index import CandidateIndex
from .payloads import load_payloads, parse_run_date, seeded_index

console = Console()


def _check(
    index: CandidateIndex,
    classifier: DuplicateClassifier,
    articles,
    lookback_days: int,
) -> None:
    for article in articles:
        candidates = index.find_candidates(article, lookback_days)
        print_classification_summary(classifier.classify(article, candidates), show_all=True)


def check_command(
    file: Path = typer.Argument(..., help="JSON file of structured articles"),
    run_date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Publication date for articles without one (YYYY-MM-DD). Default: today",
    ),
    lookback_days: Optional[int] = typer.Option(
        None,
        "--lookback-days",
        min=1,
        help="Candidate lookback window in days. Default: from config",
    ),
    seed: Optional[Path] = typer.Option(
        None,
        "--seed",
        help="Use an in-memory index seeded from this JSON file instead of Postgres",
    ),
) -> None:
    """Score articles against the index and print every candidate breakdown."""
    try:
        config = Config()
        logical_date = parse_run_date(run_date)
        scoring = config.config.scoring
        classifier = DuplicateClassifier(scoring)
        window = lookback_days or scoring.lookback_days
        articles = EntityExtractor(default_date=logical_date).extract_batch(load_payloads(file))

        if seed is not None:
            _check(seeded_index(seed, logical_date), classifier, articles, window)
            return

        with get_connection(config.get_db_config()) as conn:
            _check(PostgresCandidateIndex(conn), classifier, articles, window)

    except IndexUnavailableError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Check failed: {e}[/red]")
        raise typer.Exit(1)
