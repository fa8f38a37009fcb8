"""Tests for per-chapter download orchestration."""

from __future__ import annotations

import io
import tempfile
import zipfile
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest
from filelock import FileLock
from PIL import Image

from mangarr.constants import ArchiveFormat, ChapterOutcome
from mangarr.domain.models import Chapter, PageRef, Title
from mangarr.errors import ChapterDownloadError, NotFoundError
from mangarr.manga_loader.downloader import ChapterDownloader
from mangarr.manga_loader.fetcher import PageFetcher
from mangarr.manga_loader.transport import RetryPolicy


def _png_bytes(width: int = 20, height: int = 30) -> bytes:
    """Create a small in-memory PNG payload."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(0, 128, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


class DummyResponse:
    """Streaming response test double."""

    def __init__(self, status_code: int = 200, content: bytes = b"") -> None:
        """Store status and payload."""
        self.status_code = status_code
        self.content = content
        self.headers = {"Content-Type": "image/png"}

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        """Yield the payload in chunks."""
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def __enter__(self) -> DummyResponse:
        return self

    def __exit__(self, *args: object) -> None:
        return None


class DummySession:
    """Session test double building a fresh response per URL."""

    def __init__(self, handler: Callable[[str], DummyResponse] | None = None) -> None:
        """Store the URL handler; every page is a valid PNG by default."""
        self.handler = handler or (lambda url: DummyResponse(content=_png_bytes()))
        self.calls: list[str] = []

    def get(self, url: str, **kwargs: Any) -> DummyResponse:
        """Record the URL and build its response."""
        self.calls.append(url)
        return self.handler(url)


class DummySource:
    """Source test double listing a fixed number of pages per chapter."""

    key = "dummy"

    def __init__(self, page_counts: dict[Decimal, int]) -> None:
        """Store page counts keyed by chapter number."""
        self.page_counts = page_counts
        self.page_requests: list[Decimal] = []

    def get_pages(self, chapter: Chapter) -> None:
        """Populate the chapter with deterministic page URLs."""
        self.page_requests.append(chapter.number)
        chapter.pages = [
            PageRef(url=f"http://cdn/{chapter.number}/{index}")
            for index in range(1, self.page_counts.get(chapter.number, 0) + 1)
        ]


def _downloader(source: DummySource, session: DummySession, destination: Path, **kwargs: Any) -> ChapterDownloader:
    fetcher = PageFetcher(session, policy=RetryPolicy(delay=0, max_jitter=0))
    return ChapterDownloader(source, fetcher, destination=destination, max_page_workers=4, **kwargs)


@pytest.fixture
def scratch_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect scratch directories into the test tree."""
    root = tmp_path / "scratch"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


def test_target_path_uses_sanitized_title_and_template(tmp_path: Path) -> None:
    """Verify the archive path is ``{root}/{title}/{name}.{ext}``."""
    downloader = _downloader(DummySource({}), DummySession(), tmp_path)
    title = Title(name="Re:Zero?")
    chapter = Chapter(number=Decimal("3"), title="A/B")

    assert downloader.target_path(title, chapter) == tmp_path / "ReZero" / "ReZero Ch. 003 - AB.cbz"


def test_download_packages_pages_in_order(tmp_path: Path, scratch_root: Path) -> None:
    """Verify a chapter is fetched and packaged, and scratch space is removed."""
    source = DummySource({Decimal("1"): 3})
    session = DummySession()
    downloader = _downloader(source, session, tmp_path / "library")
    title = Title(name="Demo")
    chapter = Chapter(number=Decimal("1"))

    outcome = downloader.download(title, chapter)

    target = tmp_path / "library" / "Demo" / "Demo Ch. 001.cbz"
    assert outcome is ChapterOutcome.DOWNLOADED
    with zipfile.ZipFile(target) as archive:
        assert archive.namelist() == ["001.png", "002.png", "003.png", "ComicInfo.xml"]
    assert sorted(session.calls) == [f"http://cdn/1/{index}" for index in (1, 2, 3)]
    assert list(scratch_root.iterdir()) == []
    assert [entry.name for entry in target.parent.iterdir()] == [target.name]
    assert chapter.pages == []


def test_download_skips_existing_archive_without_network(tmp_path: Path) -> None:
    """Verify an existing archive short-circuits before any source or network call."""
    source = DummySource({Decimal("1"): 3})
    session = DummySession()
    downloader = _downloader(source, session, tmp_path)
    title = Title(name="Demo")
    chapter = Chapter(number=Decimal("1"))
    target = downloader.target_path(title, chapter)
    target.parent.mkdir(parents=True)
    target.write_bytes(b"already here")

    assert downloader.download(title, chapter) is ChapterOutcome.SKIPPED
    assert downloader.download(title, chapter) is ChapterOutcome.SKIPPED
    assert source.page_requests == []
    assert session.calls == []
    assert target.read_bytes() == b"already here"


def test_download_reports_locked_chapter(tmp_path: Path) -> None:
    """Verify a chapter locked by another worker is not downloaded twice."""
    source = DummySource({Decimal("1"): 1})
    downloader = _downloader(source, DummySession(), tmp_path)
    title = Title(name="Demo")
    chapter = Chapter(number=Decimal("1"))
    target = downloader.target_path(title, chapter)
    target.parent.mkdir(parents=True)

    with FileLock(str(target.with_name(f".{target.name}.lock"))):
        outcome = downloader.download(title, chapter)

    assert outcome is ChapterOutcome.LOCKED
    assert source.page_requests == []


def test_lock_file_survives_release_and_keeps_excluding(tmp_path: Path, scratch_root: Path) -> None:
    """Verify the lock file stays in place so later holders lock the same file."""
    source = DummySource({Decimal("1"): 1})
    downloader = _downloader(source, DummySession(), tmp_path)
    title = Title(name="Demo")
    chapter = Chapter(number=Decimal("1"))
    target = downloader.target_path(title, chapter)
    lock_path = target.with_name(f".{target.name}.lock")

    assert downloader.download(title, chapter) is ChapterOutcome.DOWNLOADED
    assert lock_path.exists()

    target.unlink()
    with FileLock(str(lock_path)):
        assert downloader.download(title, chapter) is ChapterOutcome.LOCKED
    assert not target.exists()


def test_failed_page_fails_chapter_without_partial_archive(tmp_path: Path, scratch_root: Path) -> None:
    """Verify one forbidden page fails the chapter, leaving no archive or scratch."""
    source = DummySource({Decimal("2"): 4})

    def _handler(url: str) -> DummyResponse:
        if url.endswith("/3"):
            return DummyResponse(status_code=403)
        return DummyResponse(content=_png_bytes())

    session = DummySession(_handler)
    downloader = _downloader(source, session, tmp_path / "library")
    title = Title(name="Demo")
    chapter = Chapter(number=Decimal("2"))

    with pytest.raises(ChapterDownloadError) as exc_info:
        downloader.download(title, chapter)

    assert exc_info.value.stage == "fetch"
    assert exc_info.value.chapter_number == Decimal("2")
    assert len(session.calls) == 4
    assert not downloader.target_path(title, chapter).exists()
    assert list((tmp_path / "library" / "Demo").iterdir()) == []
    assert list(scratch_root.iterdir()) == []


def test_chapter_without_pages_fails_in_pages_stage(tmp_path: Path) -> None:
    """Verify an empty page list is reported as a not-found chapter failure."""
    downloader = _downloader(DummySource({}), DummySession(), tmp_path)

    with pytest.raises(ChapterDownloadError) as exc_info:
        downloader.download(Title(name="Demo"), Chapter(number=Decimal("9")))

    assert exc_info.value.stage == "pages"
    assert isinstance(exc_info.value.cause, NotFoundError)


def test_undecodable_pages_fail_filtered_chapter_in_archive_stage(tmp_path: Path) -> None:
    """Verify a double-page chapter without readable widths fails while packaging."""
    session = DummySession(lambda url: DummyResponse(content=b"not an image"))
    downloader = _downloader(DummySource({Decimal("1"): 2}), session, tmp_path)

    with pytest.raises(ChapterDownloadError) as exc_info:
        downloader.download(Title(name="Demo"), Chapter(number=Decimal("1"), is_double_page=True))

    assert exc_info.value.stage == "archive"


def test_pdf_format_writes_pdf_archive(tmp_path: Path) -> None:
    """Verify the configured archive format selects the exporter and extension."""
    downloader = _downloader(
        DummySource({Decimal("1"): 2}),
        DummySession(),
        tmp_path,
        archive_format=ArchiveFormat.PDF,
    )
    title = Title(name="Demo")
    chapter = Chapter(number=Decimal("1"))

    assert downloader.download(title, chapter) is ChapterOutcome.DOWNLOADED
    assert (tmp_path / "Demo" / "Demo Ch. 001.pdf").read_bytes().startswith(b"%PDF")
