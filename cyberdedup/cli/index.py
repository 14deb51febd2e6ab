"""Index command implementation."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ..config import Config
from ..db import get_connection
from ..db.articles import PostgresCandidateIndex
from ..errors import IndexUnavailableError
from ..extraction import EntityExtractor
from .payloads import load_payloads, parse_run_date

console = Console()


def index_command(
    file: Path = typer.Argument(..., help="JSON file of already published articles"),
    run_date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Publication date for articles without one (YYYY-MM-DD). Default: today",
    ),
) -> None:
    """Insert published articles into the candidate index without classifying them."""
    try:
        config = Config()
        articles = EntityExtractor(default_date=parse_run_date(run_date)).extract_batch(
            load_payloads(file)
        )

        with get_connection(config.get_db_config()) as conn:
            index = PostgresCandidateIndex(conn)
            for article in articles:
                index.insert(article)

        console.print(
            f"✅ Indexed {len(articles)} articles "
            f"({sum(len(a.cves) for a in articles)} CVEs, "
            f"{sum(len(a.entities) for a in articles)} entities)"
        )
    except IndexUnavailableError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Indexing failed: {e}[/red]")
        raise typer.Exit(1)
