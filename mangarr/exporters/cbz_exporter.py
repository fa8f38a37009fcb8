import zipfile
from html import escape
from pathlib import Path
from typing import BinaryIO

from mangarr.exporters.exporter_base import ExporterBase


class CBZExporter(ExporterBase):
    """
    Export chapter pages as a CBZ (Comic Book Zip) archive.
    """
    format = "cbz"

    COMICINFO_XML_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<ComicInfo>
    <Series>{series}</Series>
    <Number>{number}</Number>
    <Title>{title}</Title>
    <PageCount>{page_count}</PageCount>
    <Manga>Yes</Manga>
</ComicInfo>
"""

    def __init__(self, *args, compression=zipfile.ZIP_STORED, **kwargs):
        """
        Initialize the CBZ exporter.

        Parameters:
            compression: The ZIP compression mode (default is ZIP_STORED, images
                are already compressed).
        """
        super().__init__(*args, **kwargs)
        self.compression = compression

    def _generate_comicinfo_xml(self, page_count: int) -> str:
        """
        Generate a basic ComicInfo.xml metadata file.
        See: https://github.com/anansi-project/comicinfo

        Values are XML-escaped so metadata containing '&', '<' or '>' still
        produces a well-formed document.
        """
        return self.COMICINFO_XML_TEMPLATE.format(
            series=escape(self.metadata.series),
            number=escape(self.metadata.number),
            title=escape(self.metadata.title),
            page_count=page_count,
        )

    def write(self, pages: list[Path], file_obj: BinaryIO):
        """
        Add every page to the archive under its own file name.

        Parameters:
            pages (list[Path]): Page files in archive order.
            file_obj (BinaryIO): Destination opened for writing.
        """
        with zipfile.ZipFile(file_obj, mode="w", compression=self.compression) as archive:
            for page in pages:
                archive.write(page, arcname=page.name)
            if self.metadata is not None:
                archive.writestr("ComicInfo.xml", self._generate_comicinfo_xml(len(pages)))
