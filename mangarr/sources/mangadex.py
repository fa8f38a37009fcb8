import logging
import uuid
from decimal import Decimal, InvalidOperation

from mangarr.domain.models import Chapter, PageRef, Title
from mangarr.errors import DecodeError, NotFoundError, ValidationError
from mangarr.sources.base import SourceBase

log = logging.getLogger(__name__)

API_URL = "https://api.mangadex.org"
FEED_LIMIT = 500


def _parse_uuid(value: str, label: str) -> None:
    try:
        uuid.UUID(value)
    except (ValueError, TypeError, AttributeError):
        raise ValidationError(f"invalid mangadex {label} id: {value!r}") from None


class MangaDexSource(SourceBase):
    """
    MangaDex REST API adapter.

    `manga` and `group` are MangaDex UUIDs. Chapters are read from the
    paginated translated feed and only chapters released by `group` are kept.
    """
    key = "mangadex"
    display_name = "MangaDex"

    def validate_input(self) -> None:
        _parse_uuid(self.manga, "manga")
        _parse_uuid(self.group, "group")
        if not self.language:
            self.language = "en"

    def get_title(self) -> Title:
        url = f"{API_URL}/manga/{self.manga}"
        payload = self._get_json(url)
        try:
            name = payload["data"]["attributes"]["title"].get("en") or ""
        except (KeyError, TypeError, AttributeError) as exc:
            raise DecodeError(f"unexpected manga payload from {url}") from exc
        if not name:
            raise NotFoundError(f"failed to get manga for id: {self.manga}")
        return Title(name=name, url=url)

    def _feed_page(self, offset: int) -> dict:
        params = {
            "translatedLanguage[]": [self.language],
            "order[volume]": "desc",
            "order[chapter]": "desc",
            "limit": FEED_LIMIT,
            "offset": offset,
        }
        payload = self._get_json(f"{API_URL}/manga/{self.manga}/feed", params=params)
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            raise DecodeError(f"unexpected chapter feed payload for manga {self.manga}")
        return payload

    def _is_from_group(self, entry: dict) -> bool:
        return any(
            relation.get("type") == "scanlation_group" and relation.get("id") == self.group
            for relation in entry.get("relationships") or []
        )

    def get_chapters(self, title: Title) -> None:
        offset = 0
        while True:
            payload = self._feed_page(offset)
            entries = payload["data"]
            for entry in entries:
                if not self._is_from_group(entry):
                    continue
                attributes = entry.get("attributes") or {}
                try:
                    number = Decimal(str(attributes.get("chapter")))
                except InvalidOperation:
                    log.debug("Skipping chapter %s without a number", entry.get("id"))
                    continue
                if not number.is_finite():
                    continue
                title.chapters[number] = Chapter(
                    number=number,
                    id=entry.get("id", ""),
                    title=attributes.get("title") or "",
                )

            offset += len(entries)
            if not entries or offset >= int(payload.get("total", 0)):
                break

        if not title.chapters:
            raise NotFoundError(f"failed to get chapters for id: {self.manga}")

    def get_pages(self, chapter: Chapter) -> None:
        url = f"{API_URL}/at-home/server/{chapter.id}"
        payload = self._get_json(url)
        try:
            base_url = payload["baseUrl"].rstrip("/")
            chapter_hash = payload["chapter"]["hash"]
            files = payload["chapter"]["data"]
        except (KeyError, TypeError, AttributeError) as exc:
            raise DecodeError(f"unexpected at-home payload from {url}") from exc

        chapter.pages = [PageRef(url=f"{base_url}/data/{chapter_hash}/{name}") for name in files]
        if not chapter.pages:
            raise NotFoundError(f"failed to get image urls for chapter id: {chapter.id}")
