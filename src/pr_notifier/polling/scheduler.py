"""
Scheduler

Repeating check loop with a single-flight guarantee.
"""

import logging
import threading
from typing import Callable, Generic, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar('T')


class Scheduler(Generic[T]):
    """
    Runs ``check`` once immediately and then every interval.

    The interval is read before every sleep, so a changed setting takes
    effect on the next wait. At most one check runs at a time; a request
    that arrives while a check is running is dropped, not queued.

    Args:
        check: The cycle to run
        interval_seconds: Returns the current wait between cycles
        name: Thread name of the loop
    """

    def __init__(
        self,
        check: Callable[[], T],
        interval_seconds: Callable[[], float],
        name: str = "pr-notifier-scheduler",
    ):
        self._check = check
        self._interval_seconds = interval_seconds
        self._name = name
        self._in_flight = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return (
                self._thread is not None
                and self._thread.is_alive()
                and not self._stop_event.is_set()
            )

    @property
    def is_checking(self) -> bool:
        return self._in_flight.locked()

    def check_now(self) -> Optional[T]:
        """
        Run a check unless one is already running.

        Returns:
            The check's result, or None when the call was dropped
        """
        if not self._in_flight.acquire(blocking=False):
            logger.debug("Check already in progress; request dropped")
            return None
        try:
            return self._check()
        finally:
            self._in_flight.release()

    def start(self) -> None:
        """Start (or restart) the loop with an immediate check."""
        with self._state_lock:
            self._cancel_locked()
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event,),
                name=self._name,
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()
        logger.info("Polling started")

    def restart(self) -> None:
        self.start()

    def stop(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        """
        Interrupt the inter-cycle wait.

        A check that is already running is allowed to finish.

        Args:
            wait: Join the loop thread, i.e. wait for a running check
            timeout: Upper bound for the join
        """
        with self._state_lock:
            thread = self._cancel_locked()
            self._stop_event = None
            self._thread = None
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("Polling stopped")

    def _cancel_locked(self) -> Optional[threading.Thread]:
        if self._stop_event is not None:
            self._stop_event.set()
        return self._thread

    def _run(self, stop_event: threading.Event) -> None:
        if not stop_event.is_set():
            self._run_check()

        while not stop_event.is_set():
            seconds = max(0.0, float(self._interval_seconds()))
            if stop_event.wait(seconds):
                break
            self._run_check()

    def _run_check(self) -> None:
        try:
            self.check_now()
        except Exception:
            # keep the loop alive; the next cycle retries
            logger.exception("Scheduled check failed")
