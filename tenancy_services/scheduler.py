"""
DailySweepScheduler -- in-process timer for the daily expiry sweep.

Contract:
    Polls on a fixed interval and runs ``ExpiryService.run_daily_sweep``
    at most once per day, at or after ``daily_sweep_hour`` (clock time).
    ``tick()`` is public for tests; ``start()`` / ``stop()`` run it on a
    background thread with a graceful stop.

Non-goals:
    Not a distributed scheduler; run one instance per database.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from tenancy_config import TenancyPolicy, get_active_policy
from tenancy_kernel.domain.clock import Clock, SystemClock
from tenancy_kernel.logging_config import get_logger
from tenancy_engines.expiry import next_sweep_at, should_sweep
from tenancy_services.expiry_service import ExpiryService, SweepResult

logger = get_logger("services.scheduler")


class DailySweepScheduler:

    def __init__(
        self,
        session_factory: Callable[[], Session],
        service_factory: Callable[[Session], ExpiryService],
        clock: Clock | None = None,
        policy: TenancyPolicy | None = None,
        tick_interval_seconds: int = 60,
    ):
        self._session_factory = session_factory
        self._service_factory = service_factory
        self._clock = clock or SystemClock()
        self._policy = policy or get_active_policy()
        self._tick_interval = tick_interval_seconds
        self._last_run: datetime | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def last_run(self) -> datetime | None:
        return self._last_run

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> SweepResult | None:
        """Run the sweep if it is due; returns its result, else ``None``."""
        now = self._clock.now()
        if not should_sweep(self._last_run, now, self._policy.daily_sweep_hour):
            return None

        session = self._session_factory()
        try:
            result = self._service_factory(session).run_daily_sweep()
        except Exception:
            session.rollback()
            logger.exception("daily_sweep_failed")
            return None
        finally:
            session.close()

        self._last_run = now
        logger.info("daily_sweep_fired", extra={
            "next_sweep_at": next_sweep_at(now, self._policy.daily_sweep_hour).isoformat(),
        })
        return result

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="tenancy-daily-sweep",
            daemon=True,
        )
        self._thread.start()
        logger.info("scheduler_started", extra={"tick_interval": self._tick_interval})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for an in-flight sweep to finish."""
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("scheduler_tick_exception")
            self._stop_event.wait(timeout=self._tick_interval)
