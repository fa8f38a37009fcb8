"""Run-level download reporting helpers."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from decimal import Decimal

from mangarr.constants import ChapterOutcome
from mangarr.domain.requests import DownloadSummary


@dataclass(slots=True)
class RunReport:
    """Accumulate run counters from concurrent chapter tasks."""

    title: str = ""
    downloaded: int = 0
    skipped: int = 0
    failed: int = 0
    failed_chapters: list[Decimal] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def mark(self, outcome: ChapterOutcome) -> None:
        """Count one finished chapter by its outcome."""
        with self._lock:
            if outcome is ChapterOutcome.DOWNLOADED:
                self.downloaded += 1
            else:
                self.skipped += 1

    def mark_failed(self, chapter_number: Decimal) -> None:
        """Increment failure counters and record the failed chapter number."""
        with self._lock:
            self.failed += 1
            self.failed_chapters.append(chapter_number)

    def as_summary(self) -> DownloadSummary:
        """Build immutable summary payload for CLI and workflow boundaries."""
        with self._lock:
            return DownloadSummary(
                title=self.title,
                downloaded=self.downloaded,
                skipped=self.skipped,
                failed=self.failed,
                failed_chapters=tuple(sorted(self.failed_chapters)),
            )
