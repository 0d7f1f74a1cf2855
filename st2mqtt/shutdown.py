"""Process-wide shutdown handling: signals, exit codes and clean-up."""

from __future__ import annotations

import atexit
import os
import logging
import signal
import threading
from typing import Callable, List, Optional

LOGGER = logging.getLogger(__name__)

SIGNAL_EXIT_BASE = 128
EXIT_BUS_FAILURE = 1


def _handled_signals() -> List[int]:
    names = ("SIGHUP", "SIGINT", "SIGTERM")
    return [getattr(signal, name) for name in names if hasattr(signal, name)]


class ShutdownCoordinator:
    """Turns termination requests into one clean-up run and an exit code.

    Signal handlers only record the request; the main thread, blocked in
    :meth:`wait`, performs the clean-up and hands the exit code back to the
    caller. Clean-up runs at most once whichever path triggers it.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._requested = threading.Event()
        self._exit_code: Optional[int] = None
        self._callbacks: List[Callable[[], None]] = []
        self._cleaned_up = False

    @property
    def exit_code(self) -> Optional[int]:
        return self._exit_code

    def add_callback(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    def install(self) -> None:
        LOGGER.info("Registering exit handlers")
        for signum in _handled_signals():
            signal.signal(signum, self._handle_signal)
        atexit.register(self.shutdown)

    def _handle_signal(self, signum, frame) -> None:
        LOGGER.info("Received %s", signal.Signals(signum).name)
        self.request_exit(SIGNAL_EXIT_BASE + signum)

    def request_exit(self, code: int) -> None:
        with self._lock:
            if self._exit_code is not None:
                LOGGER.debug("Exit already requested (code %s), ignoring code %s", self._exit_code, code)
                return
            self._exit_code = code
        self._requested.set()

    def wait(self, poll_interval: float = 1.0) -> int:
        # Short waits keep the main thread responsive to signal handlers.
        while not self._requested.wait(poll_interval):
            pass
        self.shutdown()
        return self._exit_code

    def shutdown(self) -> None:
        with self._lock:
            if self._cleaned_up:
                return
            self._cleaned_up = True

        LOGGER.info("Cleaning up")
        for callback in self._callbacks:
            try:
                callback()
            except Exception:  # pylint: disable=broad-except
                LOGGER.exception("Clean-up step %r failed", callback)


def terminate(code: int) -> None:
    """Exit immediately with ``code`` once clean-up has run.

    A measurement may still be running on a scheduler worker or the start-up
    thread. ``sys.exit`` would join those threads, so the interpreter is left
    without waiting for them after the log handlers are flushed.
    """
    LOGGER.info("Exiting with code %s", code)
    logging.shutdown()
    os._exit(code)
