"""Typed protocol contracts shared across runtime components."""

from __future__ import annotations

from typing import Any, Iterator, Mapping, MutableMapping, Protocol

from mangarr.domain.models import Chapter, Title


class ResponseLike(Protocol):
    """Minimal HTTP response contract used by transport code."""

    status_code: int
    headers: Mapping[str, str]
    content: bytes
    text: str

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        """Yield the body in chunks."""

    def json(self) -> Any:
        """Decode the body as JSON."""

    def __enter__(self) -> ResponseLike:
        """Enter the response context."""

    def __exit__(self, *args: object) -> None:
        """Release the underlying connection."""


class SessionLike(Protocol):
    """Minimal HTTP session contract used by fetchers and sources."""

    headers: MutableMapping[str, str]

    def get(self, url: str, **kwargs: Any) -> ResponseLike:
        """Perform an HTTP GET request and return a response object."""


class SourceLike(Protocol):
    """Contract every provider adapter implements."""

    key: str

    def validate_input(self) -> None:
        """Raise ``ValidationError`` for malformed source identifiers."""

    def get_title(self) -> Title:
        """Resolve the configured identifier into a title."""

    def get_chapters(self, title: Title) -> None:
        """Populate ``title.chapters`` in place."""

    def get_pages(self, chapter: Chapter) -> None:
        """Populate ``chapter.pages`` in place."""


class NamingFunction(Protocol):
    """Pure function turning a title and chapter into an output name."""

    def __call__(self, template: str, title: Title, chapter: Chapter) -> str:
        """Render the human-facing chapter name."""
