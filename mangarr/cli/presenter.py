"""CLI presentation helpers for human-readable output."""

from __future__ import annotations

import click

from mangarr.domain.requests import DownloadSummary
from mangarr.utils import format_chapter_number


class CliPresenter:
    """Render command outputs, honouring the quiet flag."""

    def __init__(self, *, quiet: bool) -> None:
        """Store output-mode flags for rendering decisions."""
        self.quiet = quiet

    def emit_intro(self, intro: str) -> None:
        """Emit a styled intro banner unless quiet."""
        if not self.quiet:
            click.echo(click.style(intro, fg="blue"))

    def emit_notice(self, message: str) -> None:
        """Emit one informational message unless quiet."""
        if not self.quiet:
            click.echo(message)

    def emit_error(self, message: str) -> None:
        """Emit one error message; errors are never suppressed."""
        click.echo(click.style(message, fg="red"), err=True)

    def emit_download_summary(self, summary: DownloadSummary) -> None:
        """Emit human-readable download result counters."""
        if self.quiet:
            return
        click.echo(
            f"Download summary for {summary.title!r}: "
            f"downloaded={summary.downloaded}, "
            f"skipped={summary.skipped}, "
            f"failed={summary.failed}"
        )
        if summary.failed_chapters:
            failed = " ".join(format_chapter_number(number) for number in summary.failed_chapters)
            click.echo(f"Failed chapters: {failed}")
