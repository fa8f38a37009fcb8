"""Download one page image to disk, decrypting it when the page carries a key."""

from __future__ import annotations

import logging
from pathlib import Path

import requests

from mangarr.constants import IMAGE_EXTENSIONS, REQUEST_TIMEOUT
from mangarr.domain.models import PageRef
from mangarr.errors import FormatError, StorageError
from mangarr.manga_loader.decryption import decrypt_image
from mangarr.manga_loader.transport import RetryPolicy, check_status_code, wrap_request_error
from mangarr.types import ResponseLike, SessionLike

log = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def image_extension(content_type: str | None) -> str:
    """
    Map a response ``Content-Type`` header to a file extension.

    Parameters are ignored, so ``"image/png; charset=binary"`` yields ``.png``.

    Raises:
        FormatError: If the media type is not a supported image type.
    """
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    try:
        return IMAGE_EXTENSIONS[media_type]
    except KeyError:
        raise FormatError(f"unsupported content type: {content_type!r}") from None


class PageFetcher:
    """Fetch single pages through the shared session under the retry policy."""

    def __init__(
        self,
        session: SessionLike,
        *,
        policy: RetryPolicy | None = None,
        request_timeout: tuple[float, float] = REQUEST_TIMEOUT,
    ) -> None:
        self.session = session
        self.policy = policy or RetryPolicy()
        self.request_timeout = request_timeout

    def fetch(self, page: PageRef, directory: Path, stem: str) -> Path:
        """
        Download ``page`` into ``directory`` as ``{stem}{ext}``.

        Only the network request is retried; format and decryption failures
        are terminal for the page.

        Returns:
            Path: The written file.
        """
        return self.policy.call(lambda: self._fetch_once(page, Path(directory), stem))

    def _fetch_once(self, page: PageRef, directory: Path, stem: str) -> Path:
        try:
            response = self.session.get(page.url, stream=True, timeout=self.request_timeout)
        except requests.RequestException as exc:
            raise wrap_request_error(exc, page.url) from exc

        with response:
            check_status_code(response.status_code, page.url)
            path = directory / f"{stem}{image_extension(response.headers.get('Content-Type'))}"

            try:
                if page.is_encrypted:
                    self._write_decrypted(response, page.decryption_key, path)
                else:
                    self._write_streamed(response, path)
            except requests.RequestException as exc:
                path.unlink(missing_ok=True)
                raise wrap_request_error(exc, page.url) from exc
            except OSError as exc:
                raise StorageError(f"failed to write {path}: {exc}") from exc

        log.debug("Saved page %s to %s", page.url, path)
        return path

    @staticmethod
    def _write_decrypted(response: ResponseLike, key: str, path: Path) -> None:
        """Buffer the whole body, decrypt it, then write it out."""
        path.write_bytes(decrypt_image(response.content, key))

    @staticmethod
    def _write_streamed(response: ResponseLike, path: Path) -> None:
        """Stream the body to disk without holding it in memory."""
        with path.open("wb") as file_obj:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    file_obj.write(chunk)
