"""Recurring timer that triggers scheduled snapshots.

One daemon ``threading.Timer`` is alive at a time. Reconfiguring the
interval cancels it and arms a new one under the same lock, so two timers
never coexist. A tick runs its task to completion before arming the next
one; tick failures are logged and counted, never raised out of the timer
thread.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class BackupScheduler:
    """Invokes ``task`` every ``interval_minutes``; zero or less disables it."""

    task: Callable[[], Any]
    interval_minutes: int = 10
    on_result: Optional[Callable[[Any, Optional[BaseException]], None]] = None
    _timer: Optional[threading.Timer] = field(default=None, init=False, repr=False)
    _running: bool = field(default=False, init=False, repr=False)
    _last_run: Optional[datetime] = field(default=None, init=False, repr=False)
    _consecutive_failures: int = field(default=0, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    @property
    def enabled(self) -> bool:
        return self.interval_minutes > 0

    @property
    def interval_seconds(self) -> float:
        return float(self.interval_minutes) * 60.0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_run(self) -> Optional[datetime]:
        return self._last_run

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def start(self) -> None:
        """Arm the timer; idempotent, and a no-op while scheduling is disabled."""
        with self._lock:
            if self._running:
                return
            self._running = True
            self._arm()
        logger.debug("Backup scheduler started (interval=%s min)", self.interval_minutes)

    def stop(self) -> None:
        with self._lock:
            self._running = False
            self._cancel()
        logger.debug("Backup scheduler stopped")

    def set_interval(self, minutes: int) -> None:
        """Replace the interval, tearing down and re-arming the timer atomically."""
        with self._lock:
            self.interval_minutes = int(minutes)
            self._cancel()
            if self._running:
                self._arm()
        logger.info("Backup interval set to %s minute(s)", minutes)

    def run_now(self) -> None:
        """Run one tick synchronously on the calling thread."""
        self._run_task()

    # ── Internal ──────────────────────────────────────────────────

    def _cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm(self) -> None:
        """Caller must hold _lock."""
        if not self._running or not self.enabled:
            return
        timer = threading.Timer(self.interval_seconds, self._on_timer)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _on_timer(self) -> None:
        with self._lock:
            if not self._running:
                return
            # A reschedule while this tick was waiting replaced the timer.
            if self._timer is not None and self._timer is not threading.current_thread():
                return
            self._timer = None
        self._run_task()
        with self._lock:
            if self._timer is None:
                self._arm()

    def _run_task(self) -> None:
        result: Any = None
        error: Optional[BaseException] = None
        try:
            result = self.task()
            self._consecutive_failures = 0
        except Exception as exc:
            error = exc
            self._consecutive_failures += 1
            logger.warning(
                "Scheduled snapshot failed (%d consecutive): %s",
                self._consecutive_failures,
                exc,
            )
        self._last_run = datetime.now(timezone.utc)
        if self.on_result is not None:
            try:
                self.on_result(result, error)
            except Exception:
                logger.exception("Scheduled snapshot result callback failed")


__all__ = ["BackupScheduler"]
