import logging
import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import click

from mangarr import __version__ as about
from mangarr.application.workflows import (
    DownloadInterrupted,
    ExternalDependencyError,
    InvalidInputError,
    execute_download,
)
from mangarr.cli import exit_codes
from mangarr.cli.config import setup_logging
from mangarr.cli.presenter import CliPresenter
from mangarr.cli.validators import resolve_selection_mode, validate_chapters, validate_source
from mangarr.config import (
    AppSettings,
    ConfigStore,
    ConfigWatcher,
    find_config_file,
    load_settings,
    validate_location,
    write_config_template,
)
from mangarr.constants import ArchiveFormat
from mangarr.domain.requests import DownloadRequest
from mangarr.errors import ConfigError
from mangarr.manga_loader.monitor import MonitorScheduler
from mangarr.manga_loader.transport import build_session

log = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGHUP", "SIGINT", "SIGQUIT", "SIGTERM") if hasattr(signal, name)
)
DEFAULT_CONFIG_DIR = Path("~/.config/mangarr")

EPILOG = f"""
Examples:

{click.style('• download the latest chapter of a MangaDex title', fg="green")}

    $ mangarr download -s mangadex -m d8f1d7da-8bb1-407b-8be3-10ac2894d3c6
    -g 310361d7-52dd-4848-9b36-2eb4fcc95e83 -d ~/manga

{click.style('• download chapters 1 to 10 and 12.5 of a Cubari gist as PDF', fg="green")}

    $ mangarr download -s cubari -m https://git.io/OPM -g /r/OnePunchMan
    -c "1-10, 12.5" -f pdf

{click.style('• monitor the titles listed in ~/.config/mangarr/config.toml', fg="green")}

    $ mangarr init && mangarr monitor
"""


@contextmanager
def handle_shutdown_signals(stop_event: threading.Event):
    """
    Set ``stop_event`` when a shutdown signal arrives while the block runs.

    Previous handlers are restored on exit.
    """

    def _handler(signum, frame):
        del frame
        log.info("Received signal %s, stopping.", signal.Signals(signum).name)
        stop_event.set()

    previous = {}
    for signum in SHUTDOWN_SIGNALS:
        previous[signum] = signal.signal(signum, _handler)
    try:
        yield stop_event
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def _configure_logging(settings: AppSettings) -> None:
    setup_logging(
        settings.log_level,
        settings.log_path or None,
        settings.log_max_size,
        settings.log_max_backups,
    )


def _load(ctx: click.Context, presenter: CliPresenter, **overrides) -> tuple[AppSettings, Optional[Path]]:
    config_file = find_config_file(ctx.obj["config_dir"])
    try:
        settings = load_settings(config_file, overrides=overrides)
    except ConfigError as exc:
        presenter.emit_error(f"Invalid configuration: {exc}")
        ctx.exit(exit_codes.USER_ERROR)
    if config_file is not None:
        log.debug("Using config file %s", config_file)
    return settings, config_file


@click.group(
    help=about.__description__,
    epilog=EPILOG,
)
@click.version_option(
    about.__version__,
    prog_name=about.__title__,
    message="%(prog)s, version %(version)s\nCheck {url} for more info".format(url=about.__url__),
)
@click.option(
    "--config",
    "config_dir",
    type=click.Path(file_okay=False),
    metavar="<directory>",
    help="Directory holding config.toml",
    envvar="MANGARR_CONFIG",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Only print errors",
)
@click.pass_context
def main(ctx: click.Context, config_dir: Optional[str], quiet: bool):
    """
    Entry point of the mangarr CLI.

    Parameters:
        ctx (click.Context): Click context.
        config_dir (Optional[str]): Directory holding config.toml.
        quiet (bool): Suppress everything except errors.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir
    ctx.obj["presenter"] = CliPresenter(quiet=quiet)


@main.command(help="Download chapters of one manga")
@click.option(
    "--source", "-s",
    required=True,
    callback=validate_source,
    help="Source to download from: mangadex, cubari, mangaplus, asurascans, flamecomics or tcbscans",
)
@click.option(
    "--manga", "-m",
    required=True,
    help="Manga ID, name or URL, depending on the source",
)
@click.option(
    "--group", "-g",
    default="",
    help="Scanlation group ID, depending on the source",
)
@click.option(
    "--language", "-l",
    default="en",
    show_default=True,
    help="Language of the chapters, depending on the source",
)
@click.option(
    "--dir", "-d",
    "out_dir",
    type=click.Path(file_okay=False),
    metavar="<directory>",
    help="Download directory (defaults to download_location from the config)",
    envvar="MANGARR_DOWNLOAD_DIR",
)
@click.option(
    "--naming", "-n",
    "naming_template",
    help="Naming template for chapter archives",
    envvar="MANGARR_NAMING_TEMPLATE",
)
@click.option(
    "--chapters", "-c",
    callback=validate_chapters,
    help='Chapters to download, e.g. "1, 3-5, 10.5"',
)
@click.option(
    "--first",
    is_flag=True,
    default=False,
    help="Download only the first chapter",
)
@click.option(
    "--latest",
    is_flag=True,
    default=False,
    help="Download only the latest chapter (default)",
)
@click.option(
    "--format", "-f",
    "archive_format",
    type=click.Choice([archive_format.value for archive_format in ArchiveFormat], case_sensitive=False),
    help="Archive format (defaults to archive_format from the config)",
    envvar="MANGARR_ARCHIVE_FORMAT",
)
@click.pass_context
def download(
        ctx: click.Context,
        source: str,
        manga: str,
        group: str,
        language: str,
        out_dir: Optional[str],
        naming_template: Optional[str],
        chapters: Optional[str],
        first: bool,
        latest: bool,
        archive_format: Optional[str],
):
    """Download the selected chapters of one manga and report a summary."""
    presenter: CliPresenter = ctx.obj["presenter"]
    selection_mode = resolve_selection_mode(first, latest, chapters)

    settings, _ = _load(
        ctx,
        presenter,
        download_location=out_dir,
        naming_template=naming_template,
        archive_format=archive_format,
    )
    _configure_logging(settings)

    try:
        validate_location(settings.download_location)
    except ConfigError as exc:
        presenter.emit_error(f"Invalid location: {exc}")
        ctx.exit(exit_codes.USER_ERROR)

    presenter.emit_intro(about.__intro__)
    request = DownloadRequest(
        source=source,
        manga=manga,
        out_dir=settings.download_location,
        naming_template=settings.naming_template,
        group=group,
        language=language,
        selection_mode=selection_mode,
        chapters=chapters or "",
        archive_format=settings.archive_format,
        max_chapter_workers=settings.max_title_workers,
        max_page_workers=settings.max_page_workers,
    )

    stop_event = threading.Event()
    try:
        with handle_shutdown_signals(stop_event):
            summary = execute_download(request, session=build_session(), cancel_event=stop_event)
    except InvalidInputError as exc:
        presenter.emit_error(f"Invalid input: {exc}")
        ctx.exit(exit_codes.VALIDATION_ERROR)
    except ExternalDependencyError as exc:
        presenter.emit_error(str(exc))
        ctx.exit(exit_codes.EXTERNAL_FAILURE)
    except DownloadInterrupted as exc:
        presenter.emit_download_summary(exc.summary)
        presenter.emit_error(str(exc))
        ctx.exit(exit_codes.EXTERNAL_FAILURE)
    except Exception:
        log.exception("Failed to download manga")
        presenter.emit_error("Download failed")
        ctx.exit(exit_codes.INTERNAL_BUG)

    presenter.emit_download_summary(summary)
    if summary.has_failures:
        presenter.emit_error(f"Download completed with {summary.failed} failed chapter(s).")
        ctx.exit(exit_codes.EXTERNAL_FAILURE)


@main.command(help="Monitor the configured manga for new chapters")
@click.pass_context
def monitor(ctx: click.Context):
    """Run the monitor until a shutdown signal arrives."""
    presenter: CliPresenter = ctx.obj["presenter"]
    settings, config_file = _load(ctx, presenter)
    _configure_logging(settings)

    try:
        validate_location(settings.download_location)
    except ConfigError as exc:
        log.error("Invalid download location: %s", exc)
        ctx.exit(exit_codes.USER_ERROR)

    store = ConfigStore(settings, config_file)
    store.add_listener(_configure_logging)

    stop_event = threading.Event()
    watcher = ConfigWatcher(store, stop_event)
    with handle_shutdown_signals(stop_event):
        watcher.start()
        scheduler = MonitorScheduler(store, build_session(), stop_event)
        scheduler.run()
    presenter.emit_notice("Stopped monitoring.")


@main.command(help="Write a config template")
@click.pass_context
def init(ctx: click.Context):
    """Create config.toml in the --config directory or ~/.config/mangarr."""
    presenter: CliPresenter = ctx.obj["presenter"]
    config_dir = ctx.obj["config_dir"] or DEFAULT_CONFIG_DIR
    try:
        path = write_config_template(config_dir)
    except ConfigError as exc:
        presenter.emit_error(str(exc))
        ctx.exit(exit_codes.USER_ERROR)
    presenter.emit_notice(f"Config file: {path}")


if __name__ == "__main__":
    main()
