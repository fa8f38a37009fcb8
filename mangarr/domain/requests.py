"""Immutable request models shared between CLI and application layers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from mangarr.constants import ArchiveFormat, SelectionMode


@dataclass(frozen=True, slots=True)
class DownloadRequest:
    """Inputs required to execute one one-shot download run."""

    source: str
    manga: str
    out_dir: str
    naming_template: str
    group: str = ""
    language: str = "en"
    selection_mode: SelectionMode = SelectionMode.LATEST
    chapters: str = ""
    archive_format: ArchiveFormat = ArchiveFormat.CBZ
    max_chapter_workers: int = 4
    max_page_workers: int = 8


@dataclass(frozen=True, slots=True)
class DownloadSummary:
    """Summary counters reported for one completed title run."""

    title: str
    downloaded: int
    skipped: int
    failed: int
    failed_chapters: tuple[Decimal, ...]

    @property
    def has_failures(self) -> bool:
        """Return whether the run encountered at least one failed chapter."""
        return self.failed > 0
