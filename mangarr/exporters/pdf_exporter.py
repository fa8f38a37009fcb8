import logging
from pathlib import Path
from typing import BinaryIO

from PIL import Image, UnidentifiedImageError

from mangarr.__version__ import __title__, __version__
from mangarr.errors import NotFoundError
from mangarr.exporters.exporter_base import ExporterBase

log = logging.getLogger(__name__)


class PDFExporter(ExporterBase):
    """
    Export chapter pages as a PDF document, one image per page.
    """
    format = "pdf"

    def _load_pages(self, pages: list[Path]) -> list[Image.Image]:
        """
        Open every portrait page as an RGB image.

        Landscape pages (spreads, banners) and files Pillow cannot read are
        skipped.
        """
        images = []
        for page in pages:
            try:
                with Image.open(page) as image:
                    if image.width > image.height:
                        log.debug("Skipping landscape page %s", page.name)
                        continue
                    images.append(image.convert("RGB"))
            except (UnidentifiedImageError, OSError):
                log.debug("Skipping unreadable page %s", page.name)
        return images

    def write(self, pages: list[Path], file_obj: BinaryIO):
        """
        Save all collected images as a single PDF document.

        Parameters:
            pages (list[Path]): Page files in document order.
            file_obj (BinaryIO): Destination opened for writing.
        """
        images = self._load_pages(pages)
        if not images:
            raise NotFoundError(f"no portrait pages to package in {self.source_dir}")

        app_info = f"{__title__} - {__version__}"
        title = self.metadata.series if self.metadata else self.path.stem

        images[0].save(
            file_obj,
            "PDF",
            resolution=100.0,
            save_all=True,
            append_images=images[1:],
            title=title,
            producer=app_info,
            creator=app_info,
        )
