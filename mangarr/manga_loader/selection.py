"""Chapter selection parsing against the chapters a title actually has."""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Collection

from mangarr.errors import EmptyChapterSetError, MalformedSelectionError, ReversedRangeError

_NUMBER_PATTERN = re.compile(r"^\d+(?:\.\d+)?$")


def _require_available(available: Collection[Decimal]) -> None:
    if not available:
        raise EmptyChapterSetError("no chapters available to select from")


def _parse_number(text: str, token: str) -> Decimal:
    """Parse one decimal bound, rejecting anything but plain digits with an optional fraction."""
    cleaned = text.strip()
    if not _NUMBER_PATTERN.match(cleaned):
        raise MalformedSelectionError(f"invalid chapter number {cleaned!r} in {token!r}")
    return Decimal(cleaned)


def _parse_token(token: str) -> tuple[Decimal, Decimal]:
    """
    Parse one selection token into inclusive ``(start, end)`` bounds.

    A single number yields identical bounds.
    """
    if "-" not in token:
        number = _parse_number(token, token)
        return number, number

    range_parts = token.split("-")
    if len(range_parts) != 2:
        raise MalformedSelectionError(f"invalid range format: {token!r}")

    start = _parse_number(range_parts[0], token)
    end = _parse_number(range_parts[1], token)
    if start > end:
        raise ReversedRangeError(f"start of range should not be greater than end: {token.strip()!r}")
    return start, end


def parse_selection(expression: str) -> list[tuple[Decimal, Decimal]]:
    """
    Parse a selection expression into inclusive bounds without resolving it.

    Raises:
        MalformedSelectionError: If any token is not a number or range.
        ReversedRangeError: If any range starts above its end.
    """
    return [_parse_token(token) for token in expression.split(",")]


def select_chapters(expression: str, available: Collection[Decimal]) -> set[Decimal]:
    """
    Resolve a selection expression into chapter numbers present in ``available``.

    The expression is a comma-separated list of decimal numbers and inclusive
    ``A-B`` ranges, e.g. ``"1, 3-5, 10.5"``. Only available chapters are
    returned; numbers that do not exist are never conjured.

    Parameters:
        expression (str): The user-provided selection.
        available (Collection[Decimal]): Chapter numbers of the title.

    Returns:
        set[Decimal]: The selected chapter numbers.

    Raises:
        EmptyChapterSetError: If ``available`` is empty.
        MalformedSelectionError: If any token is not a number or range.
        ReversedRangeError: If any range starts above its end.
    """
    _require_available(available)

    # Parse everything first so a bad token fails the whole request.
    bounds = parse_selection(expression)

    return {
        number
        for number in available
        for start, end in bounds
        if start <= number <= end
    }


def first_chapter(available: Collection[Decimal]) -> set[Decimal]:
    """Return the lowest available chapter number as a one-element set."""
    _require_available(available)
    return {min(available)}


def latest_chapter(available: Collection[Decimal]) -> set[Decimal]:
    """Return the highest available chapter number as a one-element set."""
    _require_available(available)
    return {max(available)}
