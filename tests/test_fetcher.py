"""Tests for single-page fetching."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Iterator

import pytest
import requests

from mangarr.domain.models import PageRef
from mangarr.errors import (
    DecodeError,
    DownloadCancelledError,
    FormatError,
    TransientTransportError,
    UnrecoverableTransportError,
)
from mangarr.manga_loader.decryption import xor_decrypt
from mangarr.manga_loader.fetcher import PageFetcher, image_extension
from mangarr.manga_loader.transport import RetryPolicy


class DummyResponse:
    """Streaming response test double."""

    def __init__(
        self,
        status_code: int = 200,
        content: bytes = b"image-bytes",
        content_type: str = "image/png",
        fail_midway: bool = False,
    ) -> None:
        """Store the payload and response metadata."""
        self.status_code = status_code
        self.content = content
        self.headers = {"Content-Type": content_type}
        self.fail_midway = fail_midway
        self.closed = False

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        """Yield the payload in chunks, optionally dropping the connection."""
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]
            if self.fail_midway:
                raise requests.ConnectionError("connection dropped")

    def json(self) -> Any:
        raise ValueError("not json")

    def __enter__(self) -> DummyResponse:
        return self

    def __exit__(self, *args: object) -> None:
        self.closed = True


class DummySession:
    """Session test double replaying queued responses."""

    def __init__(self, *responses: DummyResponse) -> None:
        """Queue responses returned by successive ``get`` calls."""
        self.responses = list(responses)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get(self, url: str, **kwargs: Any) -> DummyResponse:
        """Record the call and return the next queued response."""
        self.calls.append((url, kwargs))
        return self.responses.pop(0)


def _fetcher(session: DummySession, cancel_event: threading.Event | None = None) -> PageFetcher:
    return PageFetcher(session, policy=RetryPolicy(delay=0, max_jitter=0, cancel_event=cancel_event))


@pytest.mark.parametrize(
    ("content_type", "extension"),
    [
        ("image/jpeg", ".jpg"),
        ("image/jpg", ".jpg"),
        ("image/png", ".png"),
        ("image/gif", ".gif"),
        ("image/webp", ".webp"),
        ("IMAGE/PNG; charset=binary", ".png"),
    ],
)
def test_image_extension_maps_supported_types(content_type: str, extension: str) -> None:
    """Verify supported media types map onto file extensions."""
    assert image_extension(content_type) == extension


@pytest.mark.parametrize("content_type", ["text/html", "", None])
def test_image_extension_rejects_unsupported_types(content_type: str | None) -> None:
    """Verify non-image content types raise FormatError."""
    with pytest.raises(FormatError):
        image_extension(content_type)


def test_fetch_streams_page_to_indexed_file(tmp_path: Path) -> None:
    """Verify an unencrypted page is streamed to ``{stem}{ext}``."""
    response = DummyResponse(content=b"x" * 200_000, content_type="image/jpeg")
    session = DummySession(response)

    path = _fetcher(session).fetch(PageRef(url="http://cdn/1.jpg"), tmp_path, "001")

    assert path == tmp_path / "001.jpg"
    assert path.read_bytes() == b"x" * 200_000
    assert response.closed is True
    assert session.calls[0][1]["stream"] is True


def test_fetch_decrypts_page_with_key(tmp_path: Path) -> None:
    """Verify encrypted pages are XOR-decrypted before being written."""
    plaintext = b"\x89PNG fake payload"
    encrypted = bytes(xor_decrypt(bytearray(plaintext), bytes.fromhex("0a0b0c")))
    session = DummySession(DummyResponse(content=encrypted))

    path = _fetcher(session).fetch(PageRef(url="http://cdn/2", decryption_key="0a0b0c"), tmp_path, "002")

    assert path.read_bytes() == plaintext


def test_fetch_retries_404_then_succeeds(tmp_path: Path) -> None:
    """Verify a 404 followed by a 200 produces the page after two attempts."""
    session = DummySession(DummyResponse(status_code=404), DummyResponse(content=b"ok"))

    path = _fetcher(session).fetch(PageRef(url="http://cdn/3"), tmp_path, "003")

    assert path.read_bytes() == b"ok"
    assert len(session.calls) == 2


def test_fetch_fails_after_one_attempt_on_403(tmp_path: Path) -> None:
    """Verify forbidden pages fail without retrying and write nothing."""
    session = DummySession(DummyResponse(status_code=403), DummyResponse())

    with pytest.raises(UnrecoverableTransportError):
        _fetcher(session).fetch(PageRef(url="http://cdn/4"), tmp_path, "004")

    assert len(session.calls) == 1
    assert list(tmp_path.iterdir()) == []


def test_fetch_gives_up_after_three_server_errors(tmp_path: Path) -> None:
    """Verify persistent 5xx responses exhaust the attempts."""
    session = DummySession(*(DummyResponse(status_code=503) for _ in range(3)))

    with pytest.raises(TransientTransportError):
        _fetcher(session).fetch(PageRef(url="http://cdn/5"), tmp_path, "005")

    assert len(session.calls) == 3


def test_fetch_rejects_unsupported_content_type_before_writing(tmp_path: Path) -> None:
    """Verify a non-image response raises FormatError and leaves no file."""
    session = DummySession(DummyResponse(content_type="text/html"))

    with pytest.raises(FormatError):
        _fetcher(session).fetch(PageRef(url="http://cdn/6"), tmp_path, "006")

    assert list(tmp_path.iterdir()) == []


def test_fetch_rejects_invalid_key_without_retry(tmp_path: Path) -> None:
    """Verify an invalid decryption key fails the page immediately."""
    session = DummySession(DummyResponse(), DummyResponse())

    with pytest.raises(DecodeError):
        _fetcher(session).fetch(PageRef(url="http://cdn/7", decryption_key="xyz"), tmp_path, "007")

    assert len(session.calls) == 1


def test_fetch_retries_dropped_stream_and_removes_partial_file(tmp_path: Path) -> None:
    """Verify a connection dropped mid-body is retried from scratch."""
    session = DummySession(
        DummyResponse(content=b"a" * 100_000, fail_midway=True),
        DummyResponse(content=b"b" * 10),
    )

    path = _fetcher(session).fetch(PageRef(url="http://cdn/8"), tmp_path, "008")

    assert path.read_bytes() == b"b" * 10
    assert len(session.calls) == 2


def test_fetch_does_nothing_once_cancelled(tmp_path: Path) -> None:
    """Verify no request is made after cancellation was requested."""
    cancel_event = threading.Event()
    cancel_event.set()
    session = DummySession(DummyResponse())

    with pytest.raises(DownloadCancelledError):
        _fetcher(session, cancel_event).fetch(PageRef(url="http://cdn/9"), tmp_path, "009")

    assert session.calls == []
