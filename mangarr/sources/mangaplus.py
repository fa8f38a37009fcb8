import logging
import re
from decimal import Decimal, InvalidOperation

from google.protobuf.message import DecodeError as ProtobufDecodeError

from mangarr.domain.models import Chapter, PageRef, Title
from mangarr.errors import DecodeError, NotFoundError, ValidationError
from mangarr.sources.base import SourceBase
from mangarr.sources.mangaplus_pb import Response

log = logging.getLogger(__name__)

API_URL = "https://jumpg-webapi.tokyo-cdn.com/api"
TITLE_ID_PATTERN = re.compile(r"^[1-9]\d{5}$")


class MangaPlusSource(SourceBase):
    """
    MANGA Plus adapter.

    `manga` is the six digit title id. Responses are protobuf encoded, page
    images are XOR-obfuscated with a per-page key.
    """
    key = "mangaplus"
    display_name = "MangaPlus"

    def validate_input(self) -> None:
        if not self.manga:
            raise ValidationError("mangaplus manga id is required")
        if not TITLE_ID_PATTERN.match(self.manga):
            raise ValidationError(f"invalid mangaplus id: {self.manga!r}")

    def _get_response(self, endpoint: str, params: dict) -> Response:
        url = f"{API_URL}/{endpoint}"
        content = self._get_content(url, params=params)
        try:
            return Response.FromString(content)
        except ProtobufDecodeError as exc:
            raise DecodeError(f"invalid protobuf payload from {url}: {exc}") from exc

    def get_title(self) -> Title:
        response = self._get_response("title_detailV3", {"title_id": self.manga})
        detail = response.success.title_detail_view

        name = detail.title.name
        if not name:
            raise NotFoundError(f"failed to get manga for id: {self.manga}")

        title = Title(name=name, url=f"{API_URL}/title_detailV3?title_id={self.manga}")
        for group in detail.chapter_list_group:
            # mid lists hold chapters that can no longer be read
            for entry in (*group.first_chapter_list, *group.last_chapter_list):
                try:
                    number = Decimal(entry.name.strip("#"))
                except InvalidOperation:
                    log.debug("Skipping chapter %s named %r", entry.chapter_id, entry.name)
                    continue
                if not number.is_finite():
                    continue
                title.chapters[number] = Chapter(
                    number=number,
                    id=str(entry.chapter_id),
                    title=entry.sub_title,
                )

        if not title.chapters:
            raise NotFoundError(f"failed to get chapters for manga: {name}")
        return title

    def get_chapters(self, title: Title) -> None:
        pass

    def get_pages(self, chapter: Chapter) -> None:
        response = self._get_response(
            "manga_viewer",
            {"chapter_id": chapter.id, "split": "yes", "img_quality": "super_high"},
        )
        chapter.pages = [
            PageRef(
                url=page.manga_page.image_url,
                decryption_key=page.manga_page.encryption_key or None,
                width=page.manga_page.width or None,
                height=page.manga_page.height or None,
            )
            for page in response.success.manga_viewer.pages
            if page.HasField("manga_page") and page.manga_page.image_url
        ]
        if not chapter.pages:
            raise NotFoundError(f"failed to get image urls for chapter id: {chapter.id}")
