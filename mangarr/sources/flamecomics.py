from decimal import Decimal, InvalidOperation
from urllib.parse import urlparse

from mangarr.domain.models import Chapter, PageRef, Title
from mangarr.errors import NotFoundError, ValidationError
from mangarr.sources.base import SourceBase

BASE_URL = "https://flamecomics.xyz"
IMAGE_PREFIX = "https://flamecomics"


class FlameComicsSource(SourceBase):
    """
    Flame Comics adapter scraping the series page.

    `manga` is the series URL. Chapters are long strips, so their pages go
    through the width filter.
    """
    key = "flamecomics"
    display_name = "Flame Comics"

    def validate_input(self) -> None:
        if not self.manga.startswith(BASE_URL) or not urlparse(self.manga).netloc:
            raise ValidationError(f"the url for flamecomics must start with {BASE_URL}")

    def get_title(self) -> Title:
        soup = self._get_soup(self.manga)

        heading = soup.select_one(".entry-title")
        name = heading.get_text(strip=True) if heading else ""
        if not name:
            raise NotFoundError(f"failed to get manga for provided url: {self.manga}")

        title = Title(name=name, url=self.manga)
        for item in soup.select(".eplister li"):
            try:
                number = Decimal(item.get("data-num", ""))
            except InvalidOperation:
                continue
            if not number.is_finite():
                continue
            link = item.find("a")
            title.chapters[number] = Chapter(
                number=number,
                url=link.get("href", "") if link else "",
                is_double_page=True,
            )

        if not title.chapters:
            raise NotFoundError(f"failed to get chapters for manga: {name}")
        return title

    def get_chapters(self, title: Title) -> None:
        pass

    def get_pages(self, chapter: Chapter) -> None:
        soup = self._get_soup(chapter.url)
        chapter.pages = [
            PageRef(url=image["src"])
            for image in soup.select("#readerarea img")
            if image.get("src", "").startswith(IMAGE_PREFIX)
        ]
        if not chapter.pages:
            raise NotFoundError(f"failed to get image urls for chapter number: {chapter.number}")
