"""Tests for CLI callback validators."""

from __future__ import annotations

import click
import pytest

from mangarr.cli.validators import resolve_selection_mode, validate_chapters, validate_source
from mangarr.constants import SelectionMode


def test_validate_source_normalizes_known_sources() -> None:
    """Verify registered sources pass and are lower-cased."""
    ctx = click.Context(click.Command("mangarr"))

    assert validate_source(ctx, None, " MangaDex ") == "mangadex"
    assert validate_source(ctx, None, None) is None


def test_validate_source_rejects_unknown_sources() -> None:
    """Verify unknown sources raise a click validation error listing known ones."""
    ctx = click.Context(click.Command("mangarr"))

    with pytest.raises(click.BadParameter, match="asurascans, cubari, flamecomics, mangadex, mangaplus, tcbscans"):
        validate_source(ctx, None, "kissmanga")


def test_validate_chapters_checks_syntax_only() -> None:
    """Verify well-formed expressions pass and malformed ones are rejected."""
    ctx = click.Context(click.Command("mangarr"))

    assert validate_chapters(ctx, None, " 1, 3-5 ") == "1, 3-5"
    assert validate_chapters(ctx, None, None) is None
    with pytest.raises(click.BadParameter):
        validate_chapters(ctx, None, "1-two")


def test_resolve_selection_mode() -> None:
    """Verify selection flags map to modes and conflicts are rejected."""
    assert resolve_selection_mode(False, False, None) is SelectionMode.LATEST
    assert resolve_selection_mode(False, True, None) is SelectionMode.LATEST
    assert resolve_selection_mode(True, False, None) is SelectionMode.FIRST
    assert resolve_selection_mode(False, False, "1-3") is SelectionMode.EXPRESSION
    with pytest.raises(click.UsageError, match="--first and --chapters"):
        resolve_selection_mode(True, False, "1-3")
