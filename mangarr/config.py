"""Runtime configuration: TOML file, ``.env`` and ``MANGARR__*`` environment overrides."""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Mapping

from dotenv import load_dotenv

from mangarr.constants import ArchiveFormat, DEFAULT_CHECK_INTERVAL, DEFAULT_NAMING_TEMPLATE
from mangarr.domain.models import MonitoredTitle
from mangarr.errors import ConfigError

log = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.toml"
ENV_PREFIX = "MANGARR__"
LOG_LEVELS = {
    "TRACE": "DEBUG",
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARN": "WARNING",
    "WARNING": "WARNING",
    "ERROR": "ERROR",
}

CONFIG_TEMPLATE = """\
# config.toml

# Download Location
# Needs to be filled out correctly, e.g. "/data/downloads/manga"
#
# Default: ""
#
download_location = ""

# Naming Template
# This can be used to change how the downloaded chapter will be named
# The default will result something like this: Manga Ch. 001 - Chapter Title
#
# Default: "{manga:<.>} Ch. {num:3}{title: - <.>}"
#
naming_template = "{manga:<.>} Ch. {num:3}{title: - <.>}"

# Check interval in minutes
#
# Default: 15
#
check_interval = 15

# Archive format of downloaded chapters
#
# Default: "cbz"
#
# Options: "cbz", "pdf"
#
archive_format = "cbz"

# Maximum number of titles and chapters processed at the same time
#
# Default: 4
#
#max_title_workers = 4

# Maximum number of pages fetched at the same time for one chapter
#
# Default: 8
#
#max_page_workers = 8

# mangarr log file
# If not defined, logs to stdout
#
# Optional
#
#log_path = ""

# Log level
#
# Default: "DEBUG"
#
# Options: "ERROR", "WARN", "INFO", "DEBUG", "TRACE"
#
log_level = "DEBUG"

# Log Max Size in megabytes
#
# Default: 50
#
#log_max_size = 50

# Log Max Backups
#
# Default: 3
#
#log_max_backups = 3

# Monitored Manga
# Every table below is one title; the table name is only used in log messages.
#
[monitored_manga."Isekai Ojisan"]
# Source from where the manga should be downloaded
source = "mangadex"
# ID of the manga on MangaDex
manga = "d8f1d7da-8bb1-407b-8be3-10ac2894d3c6"
# ID of the scanlation group on MangaDex
group = "310361d7-52dd-4848-9b36-2eb4fcc95e83"
# Language of the manga on MangaDex
language = "en"

[monitored_manga."One Punch Man"]
source = "cubari"
# URL of the gist for the manga on Cubari
manga = "https://git.io/OPM"
# Key of the scanlation group inside the gist
group = "/r/OnePunchMan"
"""

_INT_FIELDS = ("check_interval", "max_title_workers", "max_page_workers", "log_max_size", "log_max_backups")
_STR_FIELDS = ("download_location", "naming_template", "log_path")


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Resolved runtime settings."""

    download_location: str = ""
    naming_template: str = DEFAULT_NAMING_TEMPLATE
    check_interval: int = DEFAULT_CHECK_INTERVAL
    archive_format: ArchiveFormat = ArchiveFormat.CBZ
    max_title_workers: int = 4
    max_page_workers: int = 8
    monitored_titles: dict[str, MonitoredTitle] = field(default_factory=dict)
    log_level: str = "DEBUG"
    log_path: str = ""
    log_max_size: int = 50
    log_max_backups: int = 3


def normalize_log_level(value: str) -> str:
    """Map a configured level name onto a ``logging`` level name."""
    try:
        return LOG_LEVELS[str(value).strip().upper()]
    except KeyError:
        raise ConfigError(f"invalid log level: {value!r}") from None


def _parse_archive_format(value: Any) -> ArchiveFormat:
    if isinstance(value, ArchiveFormat):
        return value
    try:
        return ArchiveFormat(str(value).lower())
    except ValueError:
        raise ConfigError(f"invalid archive format: {value!r}") from None


def _parse_positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a positive integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a positive integer, got {value!r}") from None
    if number <= 0:
        raise ConfigError(f"{name} must be a positive integer, got {value!r}")
    return number


def _parse_monitored(data: Any) -> dict[str, MonitoredTitle]:
    if not isinstance(data, Mapping):
        raise ConfigError("monitored_manga must be a table of titles")

    titles = {}
    for name, entry in data.items():
        if not isinstance(entry, Mapping):
            raise ConfigError(f"monitored manga {name!r} must be a table")
        source = str(entry.get("source", "")).strip()
        manga = str(entry.get("manga", "")).strip()
        if not source or not manga:
            raise ConfigError(f"monitored manga {name!r} needs both 'source' and 'manga'")
        titles[name] = MonitoredTitle(
            source=source.lower(),
            manga=manga,
            group=str(entry.get("group", "")),
            language=str(entry.get("language", "")) or "en",
        )
    return titles


def _settings_from_mapping(data: Mapping[str, Any]) -> dict[str, Any]:
    """Validate raw config-file values into ``AppSettings`` keyword arguments."""
    values: dict[str, Any] = {}
    for name in _STR_FIELDS:
        if name in data:
            values[name] = str(data[name])
    for name in _INT_FIELDS:
        if name in data:
            values[name] = _parse_positive_int(name, data[name])
    if "archive_format" in data:
        values["archive_format"] = _parse_archive_format(data["archive_format"])
    if "log_level" in data:
        values["log_level"] = normalize_log_level(data["log_level"])
    if "monitored_manga" in data:
        values["monitored_titles"] = _parse_monitored(data["monitored_manga"])
    return values


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """
    Collect ``MANGARR__<FIELD>`` overrides.

    Empty values are ignored, as are integer values that are not positive.
    """
    known = {f.name for f in fields(AppSettings)} - {"monitored_titles"}
    raw = {}
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX) or not value:
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in known:
            raw[name] = value

    for name in _INT_FIELDS:
        if name not in raw:
            continue
        try:
            raw[name] = _parse_positive_int(name, raw[name])
        except ConfigError as exc:
            log.warning("Ignoring %s%s: %s", ENV_PREFIX, name.upper(), exc)
            del raw[name]
    return _settings_from_mapping(raw)


def config_search_paths(config_dir: str | Path | None = None) -> list[Path]:
    """Return candidate config files in lookup order."""
    if config_dir:
        return [Path(config_dir).expanduser() / CONFIG_FILE_NAME]
    home = Path.home()
    return [
        Path.cwd() / CONFIG_FILE_NAME,
        home / ".config" / "mangarr" / CONFIG_FILE_NAME,
        home / ".mangarr" / CONFIG_FILE_NAME,
    ]


def find_config_file(config_dir: str | Path | None = None) -> Path | None:
    """Return the first existing config file, or ``None``."""
    for candidate in config_search_paths(config_dir):
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Parse a TOML config file."""
    path = Path(path)
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"could not parse config file {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"could not read config file {path}: {exc}") from exc


def load_settings(
    config_file: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> AppSettings:
    """
    Resolve settings from defaults, the config file, environment and overrides.

    Later sources win: defaults < ``config_file`` < ``MANGARR__*`` environment
    variables < ``overrides`` (``None`` values in ``overrides`` are ignored).
    When ``environ`` is omitted, ``.env`` is loaded into ``os.environ`` first.

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    values: dict[str, Any] = {}
    if config_file is not None:
        values.update(_settings_from_mapping(read_config_file(config_file)))
    values.update(_env_overrides(environ))
    if overrides:
        values.update(
            _settings_from_mapping({key: value for key, value in overrides.items() if value is not None})
        )
    return AppSettings(**values)


def write_config_template(config_dir: str | Path) -> Path:
    """
    Create ``config.toml`` with commented defaults in ``config_dir``.

    An existing file is left untouched.
    """
    directory = Path(config_dir).expanduser()
    path = directory / CONFIG_FILE_NAME
    try:
        directory.mkdir(parents=True, exist_ok=True)
        if not path.exists():
            path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
            log.info("Wrote config template to %s", path)
    except OSError as exc:
        raise ConfigError(f"could not write config template to {path}: {exc}") from exc
    return path


def validate_location(location: str) -> Path:
    """
    Check that the download location is an existing writable directory.

    Raises:
        ConfigError: If the location is empty, missing or not writable.
    """
    if not location:
        raise ConfigError(
            "download location can't be empty, please provide a valid path "
            "to the directory you want your downloads to go to"
        )
    path = Path(location).expanduser()
    if not path.is_dir():
        raise ConfigError(f"download location {str(path)!r} is not an existing directory")
    if not os.access(path, os.W_OK):
        raise ConfigError(f"download location {str(path)!r} is not writable")
    return path


class ConfigStore:
    """
    Thread-safe holder of the current settings snapshot.

    Reloading only picks up the log settings; everything else keeps the value
    read at startup.
    """

    def __init__(
        self,
        settings: AppSettings,
        config_file: str | Path | None = None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._settings = settings
        self.config_file = Path(config_file) if config_file else None
        self._environ = environ
        self._lock = threading.Lock()
        self._version = 0
        self._listeners: list[Callable[[AppSettings], None]] = []

    @property
    def settings(self) -> AppSettings:
        with self._lock:
            return self._settings

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def add_listener(self, listener: Callable[[AppSettings], None]) -> None:
        """Call ``listener`` with the new snapshot after every reload."""
        with self._lock:
            self._listeners.append(listener)

    def reload(self) -> AppSettings:
        """
        Re-read the config file and apply its log settings.

        Log settings missing from the file and the environment fall back to
        their defaults. A failing listener is logged and does not stop the
        others.
        """
        if self.config_file is None:
            return self.settings

        values = _settings_from_mapping(read_config_file(self.config_file))
        values.update(_env_overrides(os.environ if self._environ is None else self._environ))
        defaults = AppSettings()
        with self._lock:
            self._settings = replace(
                self._settings,
                log_level=values.get("log_level", defaults.log_level),
                log_path=values.get("log_path", defaults.log_path),
            )
            self._version += 1
            snapshot = self._settings
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                log.exception("Failed to apply reloaded config")
        log.debug("config file reloaded!")
        return snapshot


class ConfigWatcher:
    """Poll the config file modification time and reload the store on change."""

    def __init__(self, store: ConfigStore, stop_event: threading.Event, poll_interval: float = 2.0) -> None:
        self.store = store
        self.stop_event = stop_event
        self.poll_interval = poll_interval
        self._last_mtime = self._mtime()
        self._thread: threading.Thread | None = None

    def _mtime(self) -> float | None:
        if self.store.config_file is None:
            return None
        try:
            return self.store.config_file.stat().st_mtime
        except OSError:
            return None

    def check(self) -> bool:
        """Reload once if the file changed since the last check."""
        mtime = self._mtime()
        if mtime is None or mtime == self._last_mtime:
            return False
        self._last_mtime = mtime
        try:
            self.store.reload()
        except ConfigError as exc:
            log.error("Error reloading config: %s", exc)
            return False
        return True

    def _run(self) -> None:
        while not self.stop_event.wait(self.poll_interval):
            self.check()

    def start(self) -> None:
        if self.store.config_file is None or self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="config-watcher", daemon=True)
        self._thread.start()
