"""Update merger: append update records to existing articles."""

from datetime import datetime
from typing import Callable, Optional

import pendulum
from rich.console import Console

from ..errors import RevisionConflictError
from ..index import CandidateIndex
from ..models import Article, SeverityChange, UpdateDraft, UpdateRecord

console = Console()

SUMMARY_MAX_CHARS = 150
DETAIL_MAX_CHARS = 800
FALLBACK_SUMMARY = "Additional details provided"


def clip(text: str, limit: int) -> str:
    """Trim text to ``limit`` characters, marking the cut with an ellipsis."""
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def compare_severity(new: Article, original: Article) -> SeverityChange:
    """Compare the highest CVSS score of the new article with the original."""
    new_score = new.max_cvss
    original_score = original.max_cvss
    if new_score is None or original_score is None or new_score == original_score:
        return SeverityChange.UNCHANGED
    if new_score > original_score:
        return SeverityChange.INCREASED
    return SeverityChange.DECREASED


def build_update_draft(new: Article, original: Article) -> UpdateDraft:
    """
    Build an update draft for a direct UPDATE classification.

    Args:
        new: Incoming article that updates the story
        original: Existing article receiving the update

    Returns:
        Draft using only the new article's text and sources
    """
    summary = clip(new.headline or new.summary, SUMMARY_MAX_CHARS) or FALLBACK_SUMMARY
    detail = clip(new.summary or new.full_text or "", DETAIL_MAX_CHARS) or summary
    return UpdateDraft(
        summary=summary,
        detail=detail,
        sources=new.sources,
        severity_change=compare_severity(new, original),
    )


def restrict_sources(draft: UpdateDraft, new: Article) -> UpdateDraft:
    """
    Keep only draft sources that belong to the new article.

    Falls back to all of the new article's sources when none of the draft's
    sources match.
    """
    allowed = {source.url for source in new.sources}
    sources = [source for source in draft.sources if source.url in allowed]
    return draft.model_copy(update={"sources": sources or list(new.sources)})


class UpdateMerger:
    """Apply update drafts to articles in the candidate index."""

    def __init__(
        self,
        index: CandidateIndex,
        clock: Optional[Callable[[], datetime]] = None,
        max_conflicts: int = 3,
    ) -> None:
        """
        Initialize update merger.

        Args:
            index: Index holding the original articles
            clock: Timestamp source for update records
            max_conflicts: Revision conflicts tolerated before giving up
        """
        self.index = index
        self.clock = clock or (lambda: pendulum.now("UTC"))
        self.max_conflicts = max_conflicts

    def apply_update(self, original_article_id: str, draft: UpdateDraft) -> UpdateRecord:
        """
        Append an update to the original article.

        The revision read before the write is checked again when appending,
        so concurrent writers never lose an update.

        Raises:
            NotFoundError: The original article does not exist
            RevisionConflictError: The revision kept changing underneath us
        """
        record = UpdateRecord(timestamp=self.clock(), **draft.model_dump())
        attempt = 0

        while True:
            attempt += 1
            original = self.index.get(original_article_id)
            try:
                self.index.append_update(
                    original_article_id,
                    record,
                    expected_revision=original.revision_count,
                )
            except RevisionConflictError as e:
                if attempt >= self.max_conflicts:
                    raise
                console.print(f"[yellow]{e}; retrying[/yellow]")
                continue
            return record
