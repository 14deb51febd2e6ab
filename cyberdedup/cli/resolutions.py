"""Resolutions command implementation."""

from collections import Counter
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import Config
from ..db import get_connection
from ..db.articles import PostgresCandidateIndex
from ..errors import IndexUnavailableError
from .payloads import parse_run_date

console = Console()


def resolutions_command(
    run_date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Only articles published on this date (YYYY-MM-DD)",
    ),
    held: bool = typer.Option(
        False,
        "--held",
        help="Only cases held for manual review",
    ),
    article_id: Optional[str] = typer.Option(
        None,
        "--article",
        help="Only resolutions of this article",
    ),
) -> None:
    """Review resolution decisions recorded by previous runs."""
    publication_date = parse_run_date(run_date) if run_date else None

    try:
        config = Config()
        with get_connection(config.get_db_config()) as conn:
            rows = PostgresCandidateIndex(conn).list_resolutions(
                article_id=article_id,
                publication_date=publication_date,
                resolution="HELD" if held else None,
            )
    except IndexUnavailableError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Failed to load resolutions: {e}[/red]")
        raise typer.Exit(1)

    if not rows:
        console.print("[yellow]No resolutions found.[/yellow]")
        return

    table = Table(title="Held for Review" if held else "Resolutions")
    table.add_column("ID", style="dim")
    table.add_column("Run", style="dim")
    table.add_column("Article", style="cyan")
    table.add_column("Date")
    table.add_column("Resolution", style="bold")
    table.add_column("Score", style="yellow", justify="right")
    table.add_column("Matched", style="dim")
    table.add_column("Reasoning")

    for row in rows:
        headline = (row.target_json or {}).get("headline")
        table.add_row(
            str(row.id),
            str(row.run_id) if row.run_id is not None else "-",
            f"{row.article_id}\n{headline}" if headline else row.article_id,
            str(row.publication_date),
            f"{row.resolution} ({row.resolution_method})",
            f"{row.similarity_score:.3f}" if row.similarity_score is not None else "-",
            row.matched_article_id or "-",
            row.reasoning or "",
        )

    console.print(table)

    counts = Counter(row.resolution for row in rows)
    console.print(
        f"\nTotal: {len(rows)} • "
        + " • ".join(f"{name}: {count}" for name, count in sorted(counts.items()))
    )
