"""
Recurring refresh timer.

State machine:
    Stopped --start()--> Running --stop()--> Stopped

Both transitions are idempotent. The running flag and timer handle change
together under one lock, so concurrent start()/stop() calls can never arm two
timers or cancel one twice.

The timer is a daemon thread waiting on a per-run threading.Event. Each tick
hands its refresh cycle to a fresh daemon thread, so a slow cycle never delays
the next tick and cycles may overlap. stop() only prevents future ticks; a
cycle already in progress runs to completion.
"""

import logging
import threading
from collections.abc import Callable

from aws_secrets_cache.events import (
    NotificationHub,
    RefreshStartedEvent,
    RefreshStoppedEvent,
    SecretErrorEvent,
)

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """
    Drives periodic refresh cycles.

    Args:
        interval_seconds: Time between ticks
        refresh: Callable running one full refresh cycle
        hub: Notification hub for start/stop/error events
        logger: Logger for lifecycle and failure messages
    """

    def __init__(
        self,
        interval_seconds: float,
        refresh: Callable[[], None],
        hub: NotificationHub,
        logger: logging.Logger = logger,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self._interval = interval_seconds
        self._refresh = refresh
        self._hub = hub
        self._logger = logger

        self._lock = threading.Lock()
        self._running = False
        self._stop_event: threading.Event | None = None
        self._timer_thread: threading.Thread | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def start(self) -> bool:
        """
        Arm the recurring timer.

        Returns:
            True if the scheduler transitioned to running, False if it already was.
        """
        with self._lock:
            if self._running:
                return False

            stop_event = threading.Event()
            timer_thread = threading.Thread(
                target=self._timer_loop,
                args=(stop_event,),
                name="secrets-cache-refresh-timer",
                daemon=True,
            )
            self._running = True
            self._stop_event = stop_event
            self._timer_thread = timer_thread
            timer_thread.start()

        self._hub.emit(RefreshStartedEvent())
        self._logger.info(
            "Scheduled refresh started",
            extra={"interval_seconds": self._interval},
        )
        return True

    def stop(self) -> bool:
        """
        Cancel the recurring timer without waiting for an in-flight cycle.

        Returns:
            True if the scheduler transitioned to stopped, False if it already was.
        """
        with self._lock:
            if not self._running:
                return False

            if self._stop_event is not None:
                self._stop_event.set()
            self._running = False
            self._stop_event = None
            self._timer_thread = None

        self._hub.emit(RefreshStoppedEvent())
        self._logger.info("Scheduled refresh stopped")
        return True

    def run_cycle(self) -> None:
        """
        Run one refresh cycle, converting any failure into an ``error`` event.

        Never raises: a failing cycle must not terminate future ticks.
        """
        try:
            self._refresh()
        except Exception as e:
            self._hub.emit(SecretErrorEvent(alias=None, error=e))
            self._logger.exception("Scheduled refresh failed")

    def _timer_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval):
            # stop() sets the event under the same lock
            with self._lock:
                if stop_event.is_set():
                    break
                threading.Thread(
                    target=self.run_cycle,
                    name="secrets-cache-refresh-cycle",
                    daemon=True,
                ).start()
            self._logger.info("Scheduled refresh triggered")
