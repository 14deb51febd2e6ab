"""Helpers shared by the CLI commands."""

import json
from datetime import date
from pathlib import Path
from typing import Any, List, Optional

import pendulum
import typer
from rich.console import Console

from ..extraction import EntityExtractor
from ..index import InMemoryCandidateIndex

console = Console()


def load_payloads(path: Path) -> List[Any]:
    """
    Load structured articles from a JSON file.

    Accepts a list of articles, a single article object, or an object with
    an ``articles`` list.
    """
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {path}: {e}[/red]")
        raise typer.Exit(1)

    if isinstance(data, dict) and isinstance(data.get("articles"), list):
        return data["articles"]
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return data

    console.print(f"[red]Expected a JSON list of articles in {path}[/red]")
    raise typer.Exit(1)


def parse_run_date(value: Optional[str]) -> date:
    """Parse a --date option, defaulting to today."""
    if value is None:
        return pendulum.now().date()
    try:
        return pendulum.parse(value).date()
    except (ValueError, TypeError, AttributeError):
        console.print(f"[red]Invalid date: {value} (expected YYYY-MM-DD)[/red]")
        raise typer.Exit(1)


def seeded_index(seed: Path, run_date: date) -> InMemoryCandidateIndex:
    """Build an in-memory index from a JSON file of already published articles."""
    articles = EntityExtractor(default_date=run_date).extract_batch(load_payloads(seed))
    console.print(f"[dim]Seeded in-memory index with {len(articles)} articles from {seed}[/dim]")
    return InMemoryCandidateIndex(articles)
