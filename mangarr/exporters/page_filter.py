"""Width-consistency filter for continuous-scroll chapters."""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Iterable, Sequence

from PIL import Image, UnidentifiedImageError

from mangarr.constants import WIDTH_BIN_SIZE

log = logging.getLogger(__name__)


def read_width(path: Path) -> int | None:
    """
    Return the pixel width declared in the image header.

    ``Image.open`` is lazy, so only the header is parsed. Files Pillow cannot
    identify yield ``None``.
    """
    try:
        with Image.open(path) as image:
            return image.width
    except (UnidentifiedImageError, OSError):
        log.debug("Could not read dimensions of %s", path)
        return None


def width_bin(width: int, bin_size: int = WIDTH_BIN_SIZE) -> int:
    """Return the lower edge of the bin ``width`` falls into."""
    return (width // bin_size) * bin_size


def most_common_bin(widths: Iterable[int], bin_size: int = WIDTH_BIN_SIZE) -> int | None:
    """Return the most frequent width bin, preferring the narrower bin on ties."""
    counts = Counter(width_bin(width, bin_size) for width in widths)
    if not counts:
        return None
    return min(counts, key=lambda bin_edge: (-counts[bin_edge], bin_edge))


def filter_consistent_widths(pages: Sequence[Path], bin_size: int = WIDTH_BIN_SIZE) -> list[Path]:
    """
    Drop pages whose width is far from the dominant page width.

    The first pass bins every readable width and picks the most common bin.
    The second pass keeps, in input order, the pages whose width lies within
    one bin of it. Pages with unreadable dimensions are dropped.
    """
    widths = {page: read_width(page) for page in pages}
    common = most_common_bin((width for width in widths.values() if width is not None), bin_size)
    if common is None:
        return []

    low, high = common - bin_size, common + bin_size
    kept = []
    for page in pages:
        width = widths[page]
        if width is not None and low <= width <= high:
            kept.append(page)
        else:
            log.debug("Excluding %s with width %s (expected %s-%s)", page.name, width, low, high)
    return kept
