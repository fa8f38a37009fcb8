"""Tests for CLI output presenter behavior."""

from __future__ import annotations

from decimal import Decimal

import pytest

from mangarr.cli.presenter import CliPresenter
from mangarr.domain.requests import DownloadSummary


def _summary(*failed: str) -> DownloadSummary:
    return DownloadSummary(
        title="Demo",
        downloaded=3,
        skipped=1,
        failed=len(failed),
        failed_chapters=tuple(Decimal(number) for number in failed),
    )


def test_presenter_emits_intro_when_enabled(capsys: pytest.CaptureFixture[str]) -> None:
    """Verify intro banner is emitted in default output mode."""
    CliPresenter(quiet=False).emit_intro("hello")

    assert "hello" in capsys.readouterr().out


def test_presenter_suppresses_intro_and_notices_in_quiet_mode(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Verify quiet mode suppresses banner, notices and summaries."""
    presenter = CliPresenter(quiet=True)

    presenter.emit_intro("hello")
    presenter.emit_notice("notice")
    presenter.emit_download_summary(_summary("2"))

    assert capsys.readouterr().out == ""


def test_presenter_emits_errors_even_when_quiet(capsys: pytest.CaptureFixture[str]) -> None:
    """Verify errors go to stderr regardless of quiet mode."""
    CliPresenter(quiet=True).emit_error("broken")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "broken" in captured.err


def test_presenter_emits_download_summary(capsys: pytest.CaptureFixture[str]) -> None:
    """Verify summary counters are rendered in one line."""
    CliPresenter(quiet=False).emit_download_summary(_summary())

    out = capsys.readouterr().out
    assert out.strip() == "Download summary for 'Demo': downloaded=3, skipped=1, failed=0"


def test_presenter_lists_failed_chapter_numbers(capsys: pytest.CaptureFixture[str]) -> None:
    """Verify failed chapters are rendered without trailing zeros."""
    CliPresenter(quiet=False).emit_download_summary(_summary("10.0", "12.50"))

    lines = capsys.readouterr().out.splitlines()
    assert lines[-1] == "Failed chapters: 10 12.5"
