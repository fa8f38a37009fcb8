"""Render human-readable chapter names from a naming template."""

from __future__ import annotations

import re

from mangarr.domain.models import Chapter, Title
from mangarr.utils import format_chapter_number, pad_chapter_number

# {name} or {name:options}; "<.>" inside options stands for the value.
TEMPLATE_PATTERN = re.compile(r"{((\w+?)(:.*?)?)}")
VALUE_PLACEHOLDER = "<.>"


def _strip_options(options: str | None) -> str:
    return (options or "").removeprefix(":")


def _render_num(chapter: Chapter, options: str) -> str:
    if not options:
        return format_chapter_number(chapter.number)
    try:
        width = int(options)
    except ValueError:
        return format_chapter_number(chapter.number)
    return pad_chapter_number(chapter.number, width)


def _render_value(value: str, options: str) -> str:
    if not value:
        return ""
    if not options:
        return value
    return options.replace(VALUE_PLACEHOLDER, value)


def render_chapter_name(template: str, title: Title, chapter: Chapter) -> str:
    """
    Expand ``template`` for one chapter.

    Supported fields:
        ``{num}`` / ``{num:3}``: chapter number, optionally zero-padded.
        ``{manga:<.>}``: title name wrapped in the option text.
        ``{title: - <.>}``: chapter title wrapped in the option text, or
        nothing when the chapter has no title.

    Unknown fields are left untouched.

    Example:
        ``"{manga:<.>} Ch. {num:3}{title: - <.>}"`` gives
        ``"Demo Ch. 007 - Start"``.
    """
    def replace(match: re.Match[str]) -> str:
        field, options = match.group(2), _strip_options(match.group(3))
        if field == "num":
            return _render_num(chapter, options)
        if field == "manga":
            return _render_value(title.name, options)
        if field == "title":
            return _render_value(chapter.title, options)
        return match.group(0)

    return TEMPLATE_PATTERN.sub(replace, template)
