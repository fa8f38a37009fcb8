"""Tests for generic utility helper functions."""

from __future__ import annotations

from decimal import Decimal

from mangarr import utils


def test_sanitize_filename_trims_and_drops_illegal_characters() -> None:
    """Verify surrounding spaces/dots are trimmed and illegal characters removed."""
    assert utils.sanitize_filename(' .Re:Zero / "Arc" <3>?* . ') == "ReZero  Arc 3"


def test_sanitize_filename_keeps_inner_dots() -> None:
    """Verify dots inside the name survive sanitization."""
    assert utils.sanitize_filename("Demo Ch. 002.5") == "Demo Ch. 002.5"


def test_format_chapter_number_drops_trailing_zeros() -> None:
    """Verify integral and fractional numbers render without exponent or padding zeros."""
    assert utils.format_chapter_number(Decimal("10.0")) == "10"
    assert utils.format_chapter_number(Decimal("10.50")) == "10.5"
    assert utils.format_chapter_number(Decimal("100")) == "100"


def test_pad_chapter_number_pads_integer_part_only() -> None:
    """Verify zero padding applies to the integer part and keeps decimals."""
    assert utils.pad_chapter_number(Decimal("7"), 3) == "007"
    assert utils.pad_chapter_number(Decimal("7.5"), 3) == "007.5"
    assert utils.pad_chapter_number(Decimal("1234"), 3) == "1234"


def test_page_stem_width_grows_with_page_count() -> None:
    """Verify page stems sort lexically in page order for long chapters."""
    assert utils.page_stem(1, 12) == "001"
    assert utils.page_stem(7, 1500) == "0007"
