from decimal import Decimal, InvalidOperation
from urllib.parse import urlparse

from mangarr.domain.models import Chapter, PageRef, Title
from mangarr.errors import DecodeError, NotFoundError, ValidationError
from mangarr.sources.base import SourceBase


def chapter_name(raw_title: str) -> str:
    """Return the part of a Cubari chapter title after the first colon."""
    return raw_title.partition(":")[2].strip() if ":" in raw_title else raw_title.strip()


class CubariSource(SourceBase):
    """
    Cubari gist adapter.

    `manga` is the URL of the gist JSON and `group` the key of the scanlation
    group inside each chapter. The single document already carries every
    page URL, so pages are filled while the title is resolved.
    """
    key = "cubari"
    display_name = "Cubari"

    def validate_input(self) -> None:
        parsed = urlparse(self.manga)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(f"invalid cubari url: {self.manga!r}")
        if not self.group:
            raise ValidationError("cubari group id is required")

    def get_title(self) -> Title:
        payload = self._get_json(self.manga)
        if not isinstance(payload, dict):
            raise DecodeError(f"unexpected cubari payload from {self.manga}")

        name = payload.get("title") or ""
        if not name:
            raise NotFoundError(f"failed to get manga for provided url: {self.manga}")

        title = Title(name=name, url=self.manga)
        for raw_number, entry in (payload.get("chapters") or {}).items():
            try:
                number = Decimal(raw_number)
            except InvalidOperation as exc:
                raise DecodeError(f"invalid chapter number {raw_number!r} in {self.manga}") from exc
            if not number.is_finite():
                raise DecodeError(f"invalid chapter number {raw_number!r} in {self.manga}")

            urls = (entry.get("groups") or {}).get(self.group)
            if urls is None:
                continue
            title.chapters[number] = Chapter(
                number=number,
                url=self.manga,
                title=chapter_name(entry.get("title") or ""),
                pages=[PageRef(url=url) for url in urls],
            )

        if not title.chapters:
            raise NotFoundError(f"failed to get chapters for manga: {name}")
        return title

    def get_chapters(self, title: Title) -> None:
        pass

    def get_pages(self, chapter: Chapter) -> None:
        if not chapter.pages:
            raise NotFoundError(f"no pages listed for chapter {chapter.number}")
