"""Application-layer workflows shared by one-shot downloads and the monitor."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import Callable, Collection

from mangarr.constants import ChapterOutcome, SelectionMode
from mangarr.domain.models import Title
from mangarr.domain.requests import DownloadRequest, DownloadSummary
from mangarr.errors import (
    ChapterDownloadError,
    ChapterSelectionError,
    DecodeError,
    DownloadCancelledError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from mangarr.manga_loader.downloader import ChapterDownloader
from mangarr.manga_loader.fetcher import PageFetcher
from mangarr.manga_loader.run_report import RunReport
from mangarr.manga_loader.selection import first_chapter, latest_chapter, select_chapters
from mangarr.manga_loader.transport import RetryPolicy
from mangarr.sources import build_source
from mangarr.types import SessionLike, SourceLike

log = logging.getLogger(__name__)

SourceFactory = Callable[..., SourceLike]


class WorkflowError(RuntimeError):
    """Base class for workflow-level execution failures."""


class InvalidInputError(WorkflowError):
    """Raise when source identifiers or the chapter selection are invalid."""


class ExternalDependencyError(WorkflowError):
    """Raise when the provider cannot be reached or returns unusable data."""


class DownloadInterrupted(WorkflowError):
    """Raise when shutdown was requested while preserving the partial summary."""

    def __init__(self, summary: DownloadSummary) -> None:
        """Store partial summary generated before interruption."""
        super().__init__("Download interrupted by user.")
        self.summary = summary


def resolve_chapter_numbers(
    mode: SelectionMode,
    expression: str,
    available: Collection[Decimal],
) -> set[Decimal]:
    """Pick chapter numbers for ``mode`` from the ``available`` ones."""
    if mode is SelectionMode.FIRST:
        return first_chapter(available)
    if mode is SelectionMode.LATEST:
        return latest_chapter(available)
    return select_chapters(expression, available)


def prepare_title(source: SourceLike) -> Title:
    """Validate the source input, then resolve the title and its chapters."""
    source.validate_input()
    title = source.get_title()
    source.get_chapters(title)
    return title


def download_title(
    source: SourceLike,
    downloader: ChapterDownloader,
    *,
    selection_mode: SelectionMode = SelectionMode.LATEST,
    expression: str = "",
    max_chapter_workers: int = 4,
    cancel_event: threading.Event | None = None,
) -> DownloadSummary:
    """
    Download the selected chapters of one title.

    Chapter failures are logged and counted; they never abort sibling
    chapters. Chapters not yet started when ``cancel_event`` is set are not
    started at all.

    Raises:
        ValidationError: If the source identifiers are malformed.
        ChapterSelectionError: If the selection cannot be resolved.
        NotFoundError, TransportError, DecodeError: If the title or its
            chapter list cannot be retrieved.
    """
    cancel_event = cancel_event or threading.Event()
    title = prepare_title(source)
    numbers = resolve_chapter_numbers(selection_mode, expression, title.chapters.keys())
    report = RunReport(title=title.name)

    if not numbers:
        log.info("No chapters of %r match %r", title.name, expression)
        return report.as_summary()

    def _task(number: Decimal) -> None:
        if cancel_event.is_set():
            return
        chapter = title.chapters[number]
        name = downloader.chapter_name(title, chapter)
        try:
            outcome = downloader.download(title, chapter)
        except ChapterDownloadError as exc:
            log.error("[%s] %s: failed to download %r: %s", source, title.name, name, exc)
            report.mark_failed(number)
            return
        if outcome is ChapterOutcome.DOWNLOADED:
            log.info("[%s] %s: finished downloading %r", source, title.name, name)
        report.mark(outcome)

    ordered = sorted(numbers)
    workers = max(1, min(max_chapter_workers, len(ordered)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="chapter") as executor:
        futures = [executor.submit(_task, number) for number in ordered]
    for future in futures:
        future.result()

    return report.as_summary()


def build_downloader(
    source: SourceLike,
    session: SessionLike,
    policy: RetryPolicy,
    *,
    destination: str,
    naming_template: str,
    archive_format,
    max_page_workers: int,
) -> ChapterDownloader:
    """Wire a ``ChapterDownloader`` around the shared session and policy."""
    return ChapterDownloader(
        source,
        PageFetcher(session, policy=policy),
        destination=destination,
        naming_template=naming_template,
        archive_format=archive_format,
        max_page_workers=max_page_workers,
    )


def execute_download(
    request: DownloadRequest,
    *,
    session: SessionLike,
    cancel_event: threading.Event | None = None,
    source_factory: SourceFactory = build_source,
    policy: RetryPolicy | None = None,
) -> DownloadSummary:
    """Execute one one-shot download request and translate domain failures."""
    cancel_event = cancel_event or threading.Event()
    policy = policy or RetryPolicy(cancel_event=cancel_event)

    try:
        source = source_factory(
            request.source,
            session,
            request.manga,
            group=request.group,
            language=request.language,
            policy=policy,
        )
        downloader = build_downloader(
            source,
            session,
            policy,
            destination=request.out_dir,
            naming_template=request.naming_template,
            archive_format=request.archive_format,
            max_page_workers=request.max_page_workers,
        )
        summary = download_title(
            source,
            downloader,
            selection_mode=request.selection_mode,
            expression=request.chapters,
            max_chapter_workers=request.max_chapter_workers,
            cancel_event=cancel_event,
        )
    except (ValidationError, ChapterSelectionError) as exc:
        raise InvalidInputError(str(exc)) from exc
    except DownloadCancelledError as exc:
        raise DownloadInterrupted(DownloadSummary(request.manga, 0, 0, 0, ())) from exc
    except (NotFoundError, TransportError, DecodeError) as exc:
        raise ExternalDependencyError(f"Download request failed: {exc}") from exc

    if cancel_event.is_set():
        raise DownloadInterrupted(summary)
    return summary
