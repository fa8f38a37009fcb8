from typing import Optional

import click

from mangarr.constants import SelectionMode
from mangarr.errors import ChapterSelectionError
from mangarr.manga_loader.selection import parse_selection
from mangarr.sources import SourceBase


def validate_source(ctx: click.Context, param, value):
    """
    Validate the source identifier against the registered adapters.

    Parameters:
        ctx (click.Context): The Click context.
        param: The parameter definition.
        value: The source identifier provided.

    Returns:
        The lower-cased source identifier; otherwise, raises a click.BadParameter exception.
    """
    if value is None:
        return value

    key = value.strip().lower()
    if key not in SourceBase.SOURCE_REGISTRY:
        known = ", ".join(sorted(SourceBase.SOURCE_REGISTRY))
        raise click.BadParameter(f"Unknown source {value!r}, expected one of: {known}")
    return key


def validate_chapters(ctx: click.Context, param, value):
    """
    Validate the syntax of a chapter selection such as "1, 3-5, 10.5".

    Whether the chapters exist is only known once the title is fetched.
    """
    if value is None:
        return value

    try:
        parse_selection(value)
    except ChapterSelectionError as exc:
        raise click.BadParameter(str(exc))
    return value.strip()


def resolve_selection_mode(first: bool, latest: bool, chapters: Optional[str]) -> SelectionMode:
    """
    Combine the mutually exclusive selection options into one mode.

    Without any of them the latest chapter is selected.
    """
    chosen = [name for name, flag in (("--first", first), ("--latest", latest), ("--chapters", chapters)) if flag]
    if len(chosen) > 1:
        raise click.UsageError(f"{' and '.join(chosen)} are mutually exclusive.")
    if first:
        return SelectionMode.FIRST
    if chapters:
        return SelectionMode.EXPRESSION
    return SelectionMode.LATEST
