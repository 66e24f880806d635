"""Cooperative cancellation shared by every in-flight request."""

from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List

from updatekit.errors import OperationCancelledError

LOGGER = logging.getLogger(__name__)

CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class CancellationToken:
    """One-shot flag; once cancelled it stays cancelled.

    Callbacks registered with ``add_callback`` run exactly once, with the
    reason, when the token is triggered.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        # re-entrant: the signal adapter may cancel while the main thread holds it
        self._lock = threading.RLock()
        self._reason: str | None = None
        self._callbacks: List[Callable[[str], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> bool:
        """Trigger the token. Returns False if it was already triggered."""
        with self._lock:
            if self._event.is_set():
                return False
            self._reason = reason
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        LOGGER.debug("Cancellation requested: %s", reason)
        for callback in callbacks:
            callback(reason)
        return True

    def add_callback(self, callback: Callable[[str], None]) -> None:
        """Run ``callback(reason)`` on cancellation, right away if already cancelled."""
        with self._lock:
            self._callbacks.append(callback)
            if not self._event.is_set() or callback not in self._callbacks:
                return
            self._callbacks.remove(callback)
        callback(self._reason or "cancelled")

    def remove_callback(self, callback: Callable[[str], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError(self._reason or "cancelled")


@contextmanager
def cancel_on_signals(token: CancellationToken) -> Iterator[CancellationToken]:
    """Trigger ``token`` on SIGINT/SIGTERM while the block runs.

    Handlers can only be installed from the main thread; elsewhere this is a
    no-op. Previous handlers are restored on exit.
    """
    if threading.current_thread() is not threading.main_thread():
        yield token
        return

    def handler(signum: int, _frame) -> None:
        name = signal.Signals(signum).name
        LOGGER.info("%s: canceling...", name)
        token.cancel(f"interrupted by {name}")

    previous = {sig: signal.signal(sig, handler) for sig in CANCEL_SIGNALS}
    try:
        yield token
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)
