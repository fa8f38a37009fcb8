"""Domain entities produced by source adapters and consumed by the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(slots=True)
class PageRef:
    """One remote page image, optionally XOR-obfuscated with a hex key."""

    url: str
    decryption_key: str | None = None
    width: float | None = None
    height: float | None = None

    @property
    def is_encrypted(self) -> bool:
        """Return whether the page bytes must be decrypted before use."""
        return bool(self.decryption_key)


@dataclass(slots=True)
class Chapter:
    """One numbered installment of a title."""

    number: Decimal
    id: str = ""
    url: str = ""
    title: str = ""
    is_double_page: bool = False
    pages: list[PageRef] = field(default_factory=list)


@dataclass(slots=True)
class Title:
    """One serialized work and its chapters keyed by chapter number."""

    name: str
    url: str = ""
    chapters: dict[Decimal, Chapter] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class MonitoredTitle:
    """One configured title the monitor re-checks on every tick."""

    source: str
    manga: str
    group: str = ""
    language: str = "en"
