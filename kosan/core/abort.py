"""
Abort signals for in-flight requests.

A view creates an ``AbortController`` per mounted component and passes its
``signal`` to every call it makes. Aborting marks the signal; the API client
checks it before sending and again before a response is handed back, so a
result that arrives after unmount is discarded instead of applied.
"""

import threading
from typing import Callable, List, Optional

from kosan.core.exceptions import RequestAbortedError


class AbortSignal:
    """Read-only view of an abort flag"""

    def __init__(self):
        self._event = threading.Event()
        self._reason: Optional[str] = None
        self._callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on abort, or immediately if already aborted"""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def raise_if_aborted(self) -> None:
        if self._event.is_set():
            raise RequestAbortedError(self._reason or "Request was aborted")

    def _abort(self, reason: Optional[str]) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()


class AbortController:
    """Owner side of an ``AbortSignal``"""

    def __init__(self):
        self.signal = AbortSignal()

    def abort(self, reason: Optional[str] = None) -> None:
        self.signal._abort(reason)


def raise_if_aborted(signal: Optional[AbortSignal]) -> None:
    if signal is not None:
        signal.raise_if_aborted()
