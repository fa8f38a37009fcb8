"""Per-chapter download orchestration: dedup, page fan-out and packaging."""

from __future__ import annotations

import logging
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path

from filelock import FileLock, Timeout

from mangarr.constants import ArchiveFormat, ChapterOutcome, DEFAULT_NAMING_TEMPLATE
from mangarr.domain.models import Chapter, Title
from mangarr.errors import ChapterDownloadError, MangarrError, NotFoundError
from mangarr.exporters import ArchiveMetadata, ExporterBase
from mangarr.manga_loader.fetcher import PageFetcher
from mangarr.manga_loader.naming import render_chapter_name
from mangarr.types import NamingFunction, SourceLike
from mangarr.utils import format_chapter_number, page_stem, sanitize_filename

log = logging.getLogger(__name__)

SCRATCH_PREFIX = "mangarr-"


class ChapterDownloader:
    """
    Ensure the packaged archive of one chapter exists on disk.

    The target path is derived from the title name and the rendered naming
    template. An existing file at that path is the only dedup signal.
    """

    def __init__(
        self,
        source: SourceLike,
        fetcher: PageFetcher,
        *,
        destination: str | Path,
        naming_template: str = DEFAULT_NAMING_TEMPLATE,
        archive_format: ArchiveFormat = ArchiveFormat.CBZ,
        max_page_workers: int = 8,
        naming: NamingFunction = render_chapter_name,
    ) -> None:
        self.source = source
        self.fetcher = fetcher
        self.destination = Path(destination)
        self.naming_template = naming_template
        self.archive_format = archive_format
        self.max_page_workers = max(1, max_page_workers)
        self.naming = naming

    @property
    def exporter_class(self) -> type[ExporterBase]:
        """Return the exporter registered for the configured archive format."""
        return ExporterBase.FORMAT_REGISTRY[self.archive_format.value]

    def chapter_name(self, title: Title, chapter: Chapter) -> str:
        """Render and sanitize the file stem for ``chapter``."""
        return sanitize_filename(self.naming(self.naming_template, title, chapter))

    def target_path(self, title: Title, chapter: Chapter) -> Path:
        """Return ``{destination}/{title}/{name}.{ext}`` for ``chapter``."""
        return (
            self.destination
            / sanitize_filename(title.name)
            / f"{self.chapter_name(title, chapter)}.{self.archive_format.value}"
        )

    def download(self, title: Title, chapter: Chapter) -> ChapterOutcome:
        """
        Download and package ``chapter`` unless its archive already exists.

        Returns:
            ChapterOutcome: ``SKIPPED`` when the archive exists, ``LOCKED`` when
            another process is building it, ``DOWNLOADED`` otherwise.

        Raises:
            ChapterDownloadError: If populating pages, fetching any page or
            building the archive fails.
        """
        path = self.target_path(title, chapter)
        if path.exists():
            log.debug("Chapter has already been downloaded, skipping %r", path.name)
            return ChapterOutcome.SKIPPED

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ChapterDownloadError(chapter.number, "archive", exc) from exc

        lock_path = path.with_name(f".{path.name}.lock")
        lock = FileLock(str(lock_path), timeout=0)
        try:
            lock.acquire()
        except Timeout:
            log.info("Chapter %r is being downloaded by another process, skipping", path.name)
            return ChapterOutcome.LOCKED

        try:
            if path.exists():
                return ChapterOutcome.SKIPPED
            self._download_locked(title, replace(chapter, pages=list(chapter.pages)), path)
        finally:
            lock.release()

        return ChapterOutcome.DOWNLOADED

    def _download_locked(self, title: Title, chapter: Chapter, path: Path) -> None:
        self._populate_pages(chapter)

        scratch = Path(tempfile.mkdtemp(prefix=SCRATCH_PREFIX))
        try:
            self._fetch_pages(chapter, scratch)
            self._build_archive(title, chapter, scratch, path)
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

    def _populate_pages(self, chapter: Chapter) -> None:
        """Ask the source for the page list of ``chapter``."""
        try:
            self.source.get_pages(chapter)
            if not chapter.pages:
                raise NotFoundError(f"no pages found for chapter {format_chapter_number(chapter.number)}")
        except MangarrError as exc:
            raise ChapterDownloadError(chapter.number, "pages", exc) from exc

    def _fetch_pages(self, chapter: Chapter, scratch: Path) -> None:
        """
        Fetch every page concurrently into ``scratch``.

        All fetches run to completion; the chapter fails if any page failed.
        """
        total = len(chapter.pages)
        workers = min(self.max_page_workers, total)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="page") as executor:
            futures = [
                executor.submit(self.fetcher.fetch, page, scratch, page_stem(index, total))
                for index, page in enumerate(chapter.pages, 1)
            ]

        errors = []
        for index, future in enumerate(futures, 1):
            exc = future.exception()
            if exc is not None:
                log.warning("Page %d/%d of chapter %s failed: %s", index, total, chapter.number, exc)
                errors.append(exc)

        if errors:
            raise ChapterDownloadError(chapter.number, "fetch", errors[0]) from errors[0]

    def _build_archive(self, title: Title, chapter: Chapter, scratch: Path, path: Path) -> None:
        """Package the fetched pages into ``path``."""
        metadata = ArchiveMetadata(
            series=title.name,
            number=format_chapter_number(chapter.number),
            title=chapter.title,
        )
        exporter = self.exporter_class(
            scratch,
            path,
            filter_widths=chapter.is_double_page,
            metadata=metadata,
        )
        try:
            exporter.export()
        except MangarrError as exc:
            raise ChapterDownloadError(chapter.number, "archive", exc) from exc
