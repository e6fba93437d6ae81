"""Periodic and on-demand sync passes on background threads."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from govindex.core.logging import Logger, get_logger

from .locks import SingleFlightGuard
from .service import DatasetSynchronizer, SyncReport

__all__ = [
    "SchedulerStatus",
    "SyncScheduler",
    "TriggerOutcome",
]


def _default_now() -> datetime:
    return datetime.now(timezone.utc)


class TriggerOutcome(str, Enum):
    """Result of asking the scheduler for a pass."""

    STARTED = "started"
    COALESCED = "coalesced"


@dataclass(frozen=True, slots=True)
class SchedulerStatus:
    """Point-in-time view of the scheduler for health and diagnostics."""

    running: bool
    in_flight: bool
    pending: bool
    passes: int
    failed_passes: int
    last_report: SyncReport | None
    last_error: str | None
    last_finished_at: datetime | None

    @property
    def last_pass_failed(self) -> bool:
        return self.last_error is not None


class SyncScheduler:
    """Run sync passes every ``interval`` seconds and on demand.

    Passes for the same key never overlap. A trigger that arrives while a
    pass is in flight is coalesced: any number of them produce exactly one
    follow-up pass once the current one ends. A failed pass is logged and
    recorded in :meth:`status`; it never stops the schedule.
    """

    def __init__(
        self,
        synchronizer: DatasetSynchronizer,
        *,
        interval: float,
        key: str,
        run_on_start: bool = True,
        guard: SingleFlightGuard | None = None,
        logger: Logger | None = None,
        now: Callable[[], datetime] = _default_now,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.synchronizer = synchronizer
        self.interval = interval
        self.key = key
        self.run_on_start = run_on_start
        self.logger = logger or get_logger(__name__, component="scheduler")
        self._guard = guard or SingleFlightGuard()
        self._now = now
        self._stop = threading.Event()
        self._state_lock = threading.Lock()
        self._ticker: threading.Thread | None = None
        self._workers: list[threading.Thread] = []
        self._passes = 0
        self._failed_passes = 0
        self._last_report: SyncReport | None = None
        self._last_error: str | None = None
        self._last_finished_at: datetime | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Start the periodic ticker; a no-op when already running."""

        if self._ticker is not None and self._ticker.is_alive():
            return
        self._stop.clear()
        self._ticker = threading.Thread(
            target=self._tick_loop,
            name=f"govindex-scheduler-{self.key}",
            daemon=True,
        )
        self._ticker.start()
        self.logger.info(
            "scheduler-started",
            key=self.key,
            interval=self.interval,
            run_on_start=self.run_on_start,
        )

    def stop(self, *, timeout: float | None = None) -> None:
        """Stop ticking and join the ticker and any in-flight worker."""

        self._stop.set()
        ticker = self._ticker
        if ticker is not None:
            ticker.join(timeout)
        self._ticker = None
        for worker in self._drain_workers():
            worker.join(timeout)
        self.logger.info("scheduler-stopped", key=self.key)

    def __enter__(self) -> "SyncScheduler":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------
    def trigger(self) -> TriggerOutcome:
        """Request a pass without blocking."""

        if not self._guard.try_begin(self.key):
            self.logger.info("sync-coalesced", key=self.key)
            return TriggerOutcome.COALESCED

        worker = threading.Thread(
            target=self._drain,
            name=f"govindex-sync-{self.key}",
            daemon=True,
        )
        with self._state_lock:
            self._workers = [w for w in self._workers if w.is_alive()]
            self._workers.append(worker)
        worker.start()
        return TriggerOutcome.STARTED

    def run_once(self) -> SyncReport | None:
        """Run a pass on the calling thread.

        Returns the first pass's report, or ``None`` when the pass was
        coalesced into one already in flight or it failed (see
        :meth:`status`).
        """

        if not self._guard.try_begin(self.key):
            self.logger.info("sync-coalesced", key=self.key)
            return None
        return self._drain()

    def wait_idle(self, timeout: float | None = None) -> None:
        """Join workers started by :meth:`trigger` so far."""

        for worker in self._drain_workers():
            worker.join(timeout)

    def status(self) -> SchedulerStatus:
        ticker = self._ticker
        with self._state_lock:
            return SchedulerStatus(
                running=ticker is not None and ticker.is_alive(),
                in_flight=self._guard.is_running(self.key),
                pending=self._guard.has_pending(self.key),
                passes=self._passes,
                failed_passes=self._failed_passes,
                last_report=self._last_report,
                last_error=self._last_error,
                last_finished_at=self._last_finished_at,
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _drain_workers(self) -> list[threading.Thread]:
        with self._state_lock:
            workers, self._workers = self._workers, []
        return [w for w in workers if w is not threading.current_thread()]

    def _tick_loop(self) -> None:
        if self.run_on_start:
            self.trigger()
        while not self._stop.wait(self.interval):
            self.trigger()

    def _drain(self) -> SyncReport | None:
        first: SyncReport | None = None
        first_done = False
        try:
            while True:
                report = self._execute()
                if not first_done:
                    first, first_done = report, True
                if self._stop.is_set() or not self._guard.finish(self.key):
                    break
                self.logger.info("sync-follow-up", key=self.key)
        except BaseException:
            self._guard.abort(self.key)
            raise
        if self._stop.is_set():
            self._guard.abort(self.key)
        return first

    def _execute(self) -> SyncReport | None:
        try:
            report = self.synchronizer.sync()
        except Exception as exc:
            self.logger.exception(
                "sync-pass-failed",
                key=self.key,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            with self._state_lock:
                self._passes += 1
                self._failed_passes += 1
                self._last_error = str(exc) or exc.__class__.__name__
                self._last_finished_at = self._now()
            return None

        with self._state_lock:
            self._passes += 1
            self._last_report = report
            self._last_error = None
            self._last_finished_at = report.finished_at or self._now()
        return report
