import re
from decimal import Decimal
from urllib.parse import urljoin, urlparse

from mangarr.domain.models import Chapter, PageRef, Title
from mangarr.errors import NotFoundError, ValidationError
from mangarr.sources.base import SourceBase

BASE_URL = "https://asuracomic.net"
SERIES_URL = f"{BASE_URL}/series/"
IMAGE_HOST = "https://gg.asuracomic.net"
CHAPTER_PATTERN = re.compile(r"Chapter\s+(\d+(?:\.\d+)?)\s*(.*)", re.IGNORECASE)


class AsuraScansSource(SourceBase):
    """
    Asura Scans adapter scraping the series page.

    `manga` is the series URL. Chapters are long strips, so their pages go
    through the width filter.
    """
    key = "asurascans"
    display_name = "Asura Scans"

    def validate_input(self) -> None:
        if not self.manga.startswith(BASE_URL) or not urlparse(self.manga).netloc:
            raise ValidationError(f"the url for asurascans must start with {BASE_URL}")

    def get_title(self) -> Title:
        soup = self._get_soup(self.manga)

        heading = soup.select_one("span.text-xl.font-bold")
        name = heading.get_text(strip=True) if heading else ""
        if not name:
            raise NotFoundError(f"failed to get manga for provided url: {self.manga}")

        title = Title(name=name, url=self.manga)
        for link in soup.select(".pl-4.pr-2.pb-4 a"):
            match = CHAPTER_PATTERN.search(link.get_text(" ", strip=True))
            if not match:
                continue
            number = Decimal(match.group(1))
            title.chapters[number] = Chapter(
                number=number,
                url=link.get("href", ""),
                title=match.group(2).strip(),
                is_double_page=True,
            )

        if not title.chapters:
            raise NotFoundError(f"failed to get chapters for manga: {name}")
        return title

    def get_chapters(self, title: Title) -> None:
        pass

    def get_pages(self, chapter: Chapter) -> None:
        soup = self._get_soup(urljoin(SERIES_URL, chapter.url))
        chapter.pages = [
            PageRef(url=image["src"])
            for image in soup.select(".w-full.mx-auto img")
            if image.get("src", "").startswith(IMAGE_HOST)
        ]
        if not chapter.pages:
            raise NotFoundError(f"failed to get image urls for chapter number: {chapter.number}")
