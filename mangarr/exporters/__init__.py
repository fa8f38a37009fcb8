from .exporter_base import ArchiveMetadata, ExporterBase
from .cbz_exporter import CBZExporter
from .pdf_exporter import PDFExporter

__all__ = [
    "ArchiveMetadata",
    "ExporterBase",
    "CBZExporter",
    "PDFExporter",
]
