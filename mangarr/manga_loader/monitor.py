"""Periodic re-check of monitored titles for new chapters."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

from mangarr.application.workflows import SourceFactory, build_downloader, download_title
from mangarr.config import ConfigStore
from mangarr.constants import MONITOR_LEAD_TIME, SelectionMode
from mangarr.errors import MangarrError
from mangarr.manga_loader.transport import RetryPolicy
from mangarr.sources import build_source
from mangarr.types import SessionLike, SourceLike

log = logging.getLogger(__name__)

MIN_TICK_INTERVAL = 1.0


class MonitorState(Enum):
    """Lifecycle of the scheduler."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


def tick_interval(check_interval: int) -> float:
    """Return the seconds between two cycles for a check interval in minutes."""
    return max(MIN_TICK_INTERVAL, check_interval * 60 - MONITOR_LEAD_TIME)


class MonitorScheduler:
    """
    Download the latest chapter of every monitored title once per tick.

    The monitored titles and the check interval are read once from the store
    at construction. Titles with an unknown source are logged and skipped.
    """

    def __init__(
        self,
        store: ConfigStore,
        session: SessionLike,
        stop_event: threading.Event,
        *,
        source_factory: SourceFactory = build_source,
        policy: RetryPolicy | None = None,
    ) -> None:
        self.store = store
        self.session = session
        self.stop_event = stop_event
        self.policy = policy or RetryPolicy(cancel_event=stop_event)

        settings = store.settings
        self.settings = settings
        self.interval = tick_interval(settings.check_interval)
        self.state = MonitorState.IDLE
        self._state_lock = threading.Lock()

        self.sources: list[tuple[str, SourceLike]] = []
        for name, monitored in settings.monitored_titles.items():
            try:
                source = source_factory(
                    monitored.source,
                    session,
                    monitored.manga,
                    group=monitored.group,
                    language=monitored.language,
                    policy=self.policy,
                )
            except MangarrError as exc:
                log.error("Unknown monitored manga source for %s: %s", name, exc)
                continue
            self.sources.append((name, source))

    def _set_state(self, state: MonitorState) -> None:
        with self._state_lock:
            self.state = state

    def run(self) -> None:
        """
        Run cycles every tick until the stop event is set.

        A cycle in flight when the event is set is finished before returning.
        """
        log.info("Starting to monitor %d configured manga", len(self.sources))
        while not self.stop_event.wait(self.interval):
            self.run_cycle()
        self._set_state(MonitorState.STOPPED)
        log.info("Stopped monitoring")

    def run_cycle(self) -> None:
        """Check every monitored title once, concurrently."""
        if self.stop_event.is_set() or not self.sources:
            return

        self._set_state(MonitorState.RUNNING)
        try:
            workers = max(1, min(self.settings.max_title_workers, len(self.sources)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="monitor") as executor:
                for name, source in self.sources:
                    executor.submit(self._check_title, name, source)
        finally:
            if not self.stop_event.is_set():
                self._set_state(MonitorState.IDLE)

    def _check_title(self, name: str, source: SourceLike) -> None:
        if self.stop_event.is_set():
            return

        downloader = build_downloader(
            source,
            self.session,
            self.policy,
            destination=self.settings.download_location,
            naming_template=self.settings.naming_template,
            archive_format=self.settings.archive_format,
            max_page_workers=self.settings.max_page_workers,
        )
        try:
            summary = download_title(
                source,
                downloader,
                selection_mode=SelectionMode.LATEST,
                max_chapter_workers=1,
                cancel_event=self.stop_event,
            )
        except MangarrError as exc:
            log.error("[%s] %s: error checking for new chapters: %s", source, name, exc)
            return
        except Exception:
            log.exception("[%s] %s: unexpected error checking for new chapters", source, name)
            return

        if summary.downloaded:
            log.info("[%s] %s: downloaded the latest chapter", source, summary.title)
        elif not summary.failed:
            log.debug("[%s] %s: no new chapter", source, summary.title)
