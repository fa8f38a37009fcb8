import re
from decimal import Decimal
from urllib.parse import urljoin

from mangarr.domain.models import Chapter, PageRef, Title
from mangarr.errors import NotFoundError, ValidationError
from mangarr.sources.base import SourceBase

BASE_URL = "https://tcbscans.me"
CHAPTER_PATTERN = re.compile(r"Chapter (\d+(?:\.\d+)?)")


class TCBScansSource(SourceBase):
    """
    TCB Scans adapter.

    `manga` is the title exactly as listed on the projects page.
    """
    key = "tcbscans"
    display_name = "TCB Scans"

    def validate_input(self) -> None:
        if not self.manga:
            raise ValidationError("tcbscans manga title is required")

    def get_title(self) -> Title:
        soup = self._get_soup(urljoin(BASE_URL, "/projects"))

        for card in soup.select("div.bg-card.border.border-border.rounded.p-3.mb-3"):
            image, link = card.find("img"), card.find("a")
            if image is None or link is None or image.get("alt") != self.manga:
                continue
            return Title(name=self.manga, url=link.get("href", ""))

        raise NotFoundError(f"failed to get manga for provided name: {self.manga}")

    def get_chapters(self, title: Title) -> None:
        soup = self._get_soup(urljoin(BASE_URL, title.url))

        for link in soup.select("a.block.border.border-border.bg-card.mb-3.p-3.rounded"):
            name = link.select_one("div.text-lg.font-bold")
            match = CHAPTER_PATTERN.search(name.get_text(strip=True) if name else "")
            if not match:
                continue
            subtitle = link.select_one("div.text-gray-500")
            number = Decimal(match.group(1))
            title.chapters[number] = Chapter(
                number=number,
                url=link.get("href", ""),
                title=subtitle.get_text(strip=True) if subtitle else "",
            )

        if not title.chapters:
            raise NotFoundError(f"failed to get chapters for manga: {title.name}")

    def get_pages(self, chapter: Chapter) -> None:
        soup = self._get_soup(urljoin(BASE_URL, chapter.url))
        chapter.pages = [
            PageRef(url=image["src"])
            for image in soup.select("img.fixed-ratio-content")
            if image.get("src")
        ]
        if not chapter.pages:
            raise NotFoundError(f"failed to get image urls for chapter number: {chapter.number}")
