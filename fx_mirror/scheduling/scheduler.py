"""Trigger pipeline runs daily or, in debug mode, on a short interval."""

from __future__ import annotations

import random
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date
from typing import Any, Callable

import schedule

from fx_mirror.config import Settings
from fx_mirror.utils.date_range import DateRange, random_historical_date
from fx_mirror.utils.logger import get_logger

LOGGER = get_logger(__name__)

DEFAULT_POLL_SECONDS = 1.0
MIN_POLL_SECONDS = 0.001


class RateScheduler:
    """Fire pipeline runs according to the configured mode.

    Daily mode fires once a day at ``FETCH_TIME`` for today's rates. Debug
    mode fires every ``DEBUG_FETCH_INTERVAL`` milliseconds for a random day of
    the last 90. Each fire starts a run on a thread pool; runs are not
    serialised, so overlapping runs are possible when the interval is shorter
    than a run. At most ``SCHEDULER_MAX_WORKERS`` runs are in flight; a fire
    that finds every worker busy is skipped with a warning, never queued.
    """

    def __init__(
        self,
        settings: Settings,
        run_callback: Callable[[DateRange], Any],
        *,
        clock: Callable[[], date] = date.today,
        rng: random.Random | None = None,
        poll_seconds: float = DEFAULT_POLL_SECONDS,
    ) -> None:
        self.settings = settings
        self.run_callback = run_callback
        self.clock = clock
        self.rng = rng if rng is not None else random.SystemRandom()
        self.poll_seconds = poll_seconds
        self.scheduler = schedule.Scheduler()
        self._executor = ThreadPoolExecutor(
            max_workers=settings.scheduler_max_workers, thread_name_prefix="fx-mirror-run"
        )
        self._slots = threading.BoundedSemaphore(settings.scheduler_max_workers)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._job = self._register_job()

    @property
    def debug(self) -> bool:
        return self.settings.debug

    def _register_job(self) -> schedule.Job:
        if self.debug:
            interval = self.settings.debug_fetch_interval_seconds
            LOGGER.info("Debug mode: fetching random historical dates every %ss", interval)
            return self.scheduler.every(interval).seconds.do(self.fire)
        LOGGER.info("Daily mode: fetching today's rates at %s", self.settings.fetch_time)
        return self.scheduler.every().day.at(self.settings.fetch_time).do(self.fire)

    def next_window(self) -> DateRange:
        """Return the date window the next fire should fetch."""

        today = self.clock()
        if self.debug:
            day = random_historical_date(today, self.rng)
            LOGGER.debug("Debug mode: fetching data for random date %s", day)
            return DateRange.single(day)
        return DateRange.single(today)

    def fire(self) -> Future | None:
        """Start one run in the background and return its future.

        Returns ``None`` when the scheduler is stopped or every worker is
        already busy with an earlier run.
        """

        if self._stop_event.is_set():
            return None
        if not self._slots.acquire(blocking=False):
            LOGGER.warning(
                "Skipping exchange rate run: %s runs still in flight",
                self.settings.scheduler_max_workers,
            )
            return None
        window = self.next_window()
        try:
            future = self._executor.submit(self._run, window)
        except RuntimeError:
            # executor already shut down by stop()
            self._slots.release()
            return None
        future.add_done_callback(lambda done: _log_failed_run(window, done))
        return future

    def _run(self, window: DateRange) -> Any:
        try:
            return self.run_callback(window)
        finally:
            self._slots.release()

    def run_pending(self) -> None:
        self.scheduler.run_pending()

    def start(self) -> None:
        """Poll the schedule on a daemon thread until :meth:`stop` is called."""

        if self._thread is not None:
            raise RuntimeError("RateScheduler already started")
        self._thread = threading.Thread(target=self._loop, name="fx-mirror-scheduler", daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_pending()
            except Exception:
                LOGGER.exception("Scheduler tick failed")
            self._stop_event.wait(self._next_wait())

    def _next_wait(self) -> float:
        """Sleep until the next job is due, but never longer than ``poll_seconds``."""

        idle = self.scheduler.idle_seconds
        if idle is None:
            return self.poll_seconds
        return max(min(self.poll_seconds, idle), MIN_POLL_SECONDS)

    def stop(self, wait: bool = True) -> None:
        """Cancel future fires; in-flight runs finish when ``wait`` is true."""

        self._stop_event.set()
        self.scheduler.clear()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.poll_seconds * 2 + 1)
        self._executor.shutdown(wait=wait, cancel_futures=True)
        LOGGER.info("Scheduler stopped")

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def __enter__(self) -> "RateScheduler":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


def _log_failed_run(window: DateRange, future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        LOGGER.error("Exchange rate run for %s failed: %s", window, exc, exc_info=exc)


__all__ = ["RateScheduler"]
