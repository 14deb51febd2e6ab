"""Run command implementation."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ..config import Config
from ..db import validate_connection
from ..pipeline import PipelineOrchestrator
from .payloads import load_payloads, parse_run_date, seeded_index

console = Console()


def run_command(
    file: Path = typer.Argument(..., help="JSON file of structured articles"),
    run_date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Logical date of the run (YYYY-MM-DD). Default: today",
    ),
    lookback_days: Optional[int] = typer.Option(
        None,
        "--lookback-days",
        min=1,
        help="Candidate lookback window in days. Default: from config",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Classify and arbitrate without writing anything",
    ),
    no_arbitration: bool = typer.Option(
        False,
        "--no-arbitration",
        help="Hold BORDERLINE cases for review instead of calling the LLM",
    ),
    seed: Optional[Path] = typer.Option(
        None,
        "--seed",
        help="Use an in-memory index seeded from this JSON file instead of Postgres",
    ),
) -> None:
    """Classify a batch of articles as NEW, duplicate or UPDATE and apply the results."""
    try:
        config = Config()
        logical_date = parse_run_date(run_date)
        payloads = load_payloads(file)

        index = None
        if seed is not None:
            index = seeded_index(seed, logical_date)
        else:
            console.print("[dim]Checking database connection...[/dim]")
            if not validate_connection(config.get_db_config()):
                console.print("[red]❌ Database connection failed![/red]")
                console.print("Please check your database configuration and ensure Postgres is running.")
                raise typer.Exit(1)

        orchestrator = PipelineOrchestrator(config)
        report = orchestrator.run(
            payloads,
            run_date=logical_date,
            lookback_days=lookback_days,
            dry_run=dry_run,
            arbitrate=not no_arbitration,
            index=index,
        )

        if report.aborted:
            raise typer.Exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Pipeline interrupted by user[/yellow]")
        raise typer.Exit(1)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Pipeline failed: {e}[/red]")
        raise typer.Exit(1)
