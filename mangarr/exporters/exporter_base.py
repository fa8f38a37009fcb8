import logging
from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import BinaryIO, Optional

from mangarr.errors import NotFoundError, StorageError
from mangarr.exporters.page_filter import filter_consistent_widths

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveMetadata:
    """Descriptive fields embedded into archives that support them."""

    series: str
    number: str
    title: str = ""


class ExporterBase(metaclass=ABCMeta):
    """
    Base class for packaging a directory of downloaded pages into one file.

    Concrete exporters implement `write` and the `format` property. The base
    class handles page collection, the width filter for continuous-scroll
    chapters and the temp-file-then-replace write that keeps half-written
    archives away from the target path.
    """
    FORMAT_REGISTRY = {}

    def __init__(
            self,
            source_dir: Path,
            path: Path,
            filter_widths: bool = False,
            metadata: Optional[ArchiveMetadata] = None,
    ):
        """
        Initialize the exporter.

        Parameters:
            source_dir (Path): Directory holding the page files.
            path (Path): Target archive path.
            filter_widths (bool): If True, drop pages of inconsistent width.
            metadata (Optional[ArchiveMetadata]): Fields for embedded metadata.
        """
        self.source_dir = Path(source_dir)
        self.path = Path(path)
        self.filter_widths = filter_widths
        self.metadata = metadata

    def collect_pages(self) -> list[Path]:
        """
        Return the page files to package, in name order.

        Returns:
            list[Path]: All files of the source directory, narrowed by the
            width filter when `filter_widths` is set.
        """
        pages = sorted(entry for entry in self.source_dir.iterdir() if entry.is_file())
        if self.filter_widths:
            return filter_consistent_widths(pages)
        return pages

    def export(self) -> Path:
        """
        Package the collected pages into `path`.

        Missing parent directories are created. Output goes to a temporary file
        next to the target that replaces it only once fully written.

        Returns:
            Path: The written archive.

        Raises:
            NotFoundError: If there is nothing to package.
            StorageError: If the archive cannot be written.
        """
        pages = self.collect_pages()
        if not pages:
            raise NotFoundError(f"no pages to package in {self.source_dir}")

        temp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile("wb", delete=False, dir=self.path.parent, suffix=".part") as tmp:
                temp_path = Path(tmp.name)
                self.write(pages, tmp)
            temp_path.replace(self.path)
        except OSError as exc:
            self._discard(temp_path)
            raise StorageError(f"failed to write archive {self.path}: {exc}") from exc
        except BaseException:
            self._discard(temp_path)
            raise

        log.debug("Packaged %d page(s) into %s", len(pages), self.path)
        return self.path

    @staticmethod
    def _discard(temp_path: Optional[Path]) -> None:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)

    def __init_subclass__(cls, **kwargs) -> None:
        """
        Automatically register subclasses by their format.
        """
        cls.FORMAT_REGISTRY[cls.format] = cls
        return super().__init_subclass__(**kwargs)

    @abstractmethod
    def write(self, pages: list[Path], file_obj: BinaryIO):
        """
        Write the archive for `pages` into the open binary file.

        Parameters:
            pages (list[Path]): Page files in archive order.
            file_obj (BinaryIO): Destination opened for writing.
        """
        pass

    @property
    @abstractmethod
    def format(self) -> str:
        """
        The archive format identifier, also used as file extension.
        """
        pass
