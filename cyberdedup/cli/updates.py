"""Updates command implementation."""

import typer
from rich.console import Console
from rich.table import Table

from ..config import Config
from ..db import get_connection
from ..db.articles import PostgresCandidateIndex
from ..errors import IndexUnavailableError, NotFoundError

console = Console()


def updates_command(
    article_id: str = typer.Argument(..., help="Article id"),
) -> None:
    """Show the update history of an article."""
    try:
        config = Config()
        with get_connection(config.get_db_config()) as conn:
            article = PostgresCandidateIndex(conn).get(article_id)
    except NotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except IndexUnavailableError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Failed to load article: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold]{article.headline or article.id}[/bold] ({article.publication_date})")
    console.print(f"  Revision: {article.revision_count}")

    if not article.updates:
        console.print("[yellow]No updates recorded.[/yellow]")
        return

    table = Table(title="Update History")
    table.add_column("#", style="dim")
    table.add_column("Timestamp", style="cyan")
    table.add_column("Severity", style="magenta")
    table.add_column("Summary")
    table.add_column("Sources", style="blue")

    for i, update in enumerate(article.updates, 1):
        table.add_row(
            str(i),
            update.timestamp.isoformat(),
            update.severity_change.value,
            update.summary,
            "\n".join(source.url for source in update.sources),
        )

    console.print(table)
