"""Tests for chapter selection parsing."""

from __future__ import annotations

from decimal import Decimal

import pytest

from mangarr.errors import EmptyChapterSetError, MalformedSelectionError, ReversedRangeError
from mangarr.manga_loader.selection import (
    first_chapter,
    latest_chapter,
    parse_selection,
    select_chapters,
)

AVAILABLE = {Decimal(n) for n in ("1", "2", "2.5", "3", "4", "10", "10.5")}


def test_select_chapters_combines_numbers_and_ranges() -> None:
    """Verify comma-separated numbers and ranges select available chapters."""
    selected = select_chapters("1, 3-4, 10.5", AVAILABLE)

    assert selected == {Decimal("1"), Decimal("3"), Decimal("4"), Decimal("10.5")}


def test_select_chapters_range_includes_decimal_chapters() -> None:
    """Verify ranges pick up fractional chapters inside the bounds."""
    assert select_chapters("2-3", AVAILABLE) == {Decimal("2"), Decimal("2.5"), Decimal("3")}


def test_select_chapters_result_is_subset_of_available() -> None:
    """Verify numbers and ranges outside the available set are not conjured."""
    selected = select_chapters("5, 7-9, 11-20", AVAILABLE)

    assert selected == set()


def test_select_chapters_collapses_duplicates() -> None:
    """Verify overlapping tokens yield each chapter once."""
    assert select_chapters("1-2, 2, 1", AVAILABLE) == {Decimal("1"), Decimal("2")}


def test_select_chapters_matches_equal_decimal_spellings() -> None:
    """Verify "10.50" and "10.5" denote the same chapter."""
    assert select_chapters("10.50", AVAILABLE) == {Decimal("10.5")}


@pytest.mark.parametrize("expression", ["", "abc", "1-", "1-2-3", "NaN", "-1", "1,,2", "1.2.3"])
def test_select_chapters_rejects_malformed_tokens(expression: str) -> None:
    """Verify invalid tokens fail the whole request."""
    with pytest.raises(MalformedSelectionError):
        select_chapters(expression, AVAILABLE)


def test_select_chapters_rejects_reversed_range() -> None:
    """Verify a range whose start exceeds its end is rejected."""
    with pytest.raises(ReversedRangeError):
        select_chapters("1, 5-3", AVAILABLE)


def test_selection_requires_available_chapters() -> None:
    """Verify every selector fails on an empty chapter set."""
    with pytest.raises(EmptyChapterSetError):
        select_chapters("1", set())
    with pytest.raises(EmptyChapterSetError):
        first_chapter(set())
    with pytest.raises(EmptyChapterSetError):
        latest_chapter(set())


def test_first_and_latest_use_numeric_order() -> None:
    """Verify min/max compare numerically, not lexically."""
    assert first_chapter(AVAILABLE) == {Decimal("1")}
    assert latest_chapter(AVAILABLE) == {Decimal("10.5")}


def test_parse_selection_returns_bounds() -> None:
    """Verify syntax-only parsing returns inclusive bounds per token."""
    assert parse_selection("3, 1-2.5") == [
        (Decimal("3"), Decimal("3")),
        (Decimal("1"), Decimal("2.5")),
    ]
