"""Generic utility helpers for chapter numbers and filename sanitization."""

import re
from decimal import Decimal

_ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')


def sanitize_filename(name: str) -> str:
    """
    Remove characters that are illegal on common filesystems.

    Leading and trailing spaces and dots are trimmed first, then every
    character in ``<>:"/\\|?*`` is dropped.

    Parameters:
        name (str): The raw title or chapter name.

    Returns:
        str: A string safe to use as a single path component.
    """
    trimmed = name.strip(" .")
    return _ILLEGAL_FILENAME_CHARS.sub("", trimmed)


def format_chapter_number(number: Decimal) -> str:
    """
    Render a chapter number without exponent or trailing zeros.

    Parameters:
        number (Decimal): The chapter number.

    Returns:
        str: ``"10"`` for ``Decimal("10.0")``, ``"10.5"`` for ``Decimal("10.50")``.
    """
    normalized = number.normalize()
    if normalized == normalized.to_integral_value():
        normalized = normalized.quantize(Decimal(1))
    return f"{normalized:f}"


def pad_chapter_number(number: Decimal, width: int) -> str:
    """
    Zero-pad the integer part of a chapter number, keeping its decimals.

    Parameters:
        number (Decimal): The chapter number.
        width (int): Minimal width of the integer part.

    Returns:
        str: e.g. ``"007.5"`` for ``Decimal("7.5")`` and width 3.
    """
    integer_part, dot, fraction = format_chapter_number(number).partition(".")
    return f"{integer_part:0>{width}}{dot}{fraction}"


def page_stem(index: int, total: int) -> str:
    """
    Build the zero-padded file stem for the 1-based page ``index``.

    The width grows with ``total`` so that lexical order always matches
    page order.
    """
    width = max(3, len(str(total)))
    return f"{index:0{width}d}"
