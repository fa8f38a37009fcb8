"""Domain-specific exceptions raised by mangarr runtime components."""

from __future__ import annotations

from decimal import Decimal


class MangarrError(Exception):
    """Base exception for mangarr-specific runtime failures."""


class ConfigError(MangarrError):
    """Raised when configuration cannot be loaded or is invalid."""


class ValidationError(MangarrError):
    """Raised when source-specific input fails validation before any network use."""


class NotFoundError(MangarrError):
    """Raised when a source resolves no title, chapters or pages."""


class TransportError(MangarrError):
    """Base class for HTTP transport failures."""

    def __init__(self, message: str, *, url: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class TransientTransportError(TransportError):
    """Raised for transport failures that may succeed on a later attempt."""


class UnrecoverableTransportError(TransportError):
    """Raised for transport failures that must never be retried."""


class DecodeError(MangarrError):
    """Raised when a payload or key cannot be decoded."""


class FormatError(MangarrError):
    """Raised when a page is delivered with an unsupported content type."""


class StorageError(MangarrError):
    """Raised when a local filesystem operation fails."""


class DownloadCancelledError(MangarrError):
    """Raised when a download is abandoned because shutdown was requested."""


class ChapterSelectionError(MangarrError):
    """Base class for chapter selection failures."""


class MalformedSelectionError(ChapterSelectionError):
    """Raised when a selection token is not a number or a range."""


class ReversedRangeError(ChapterSelectionError):
    """Raised when a range starts above its end."""


class EmptyChapterSetError(ChapterSelectionError):
    """Raised when a title has no chapters to select from."""


class ChapterDownloadError(MangarrError):
    """Raised when one chapter could not be packaged."""

    def __init__(self, chapter_number: Decimal, stage: str, cause: Exception) -> None:
        super().__init__(f"chapter {chapter_number} failed during {stage}: {cause}")
        self.chapter_number = chapter_number
        self.stage = stage
        self.cause = cause
