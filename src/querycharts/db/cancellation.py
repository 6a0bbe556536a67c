from __future__ import annotations

import threading
from typing import Callable, List

from querycharts.logging.logger import get_logger

log = get_logger("db.cancellation")


class CancellationToken:
    """Caller-owned flag used to abort a running query from another thread.

    Engines register a callback while their statement is in flight; ``cancel()``
    sets the flag and runs every registered callback once; a callback that raises
    is logged and the remaining ones still run.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for cb in callbacks:
            # one failing callback must not leave the other queries running
            try:
                cb()
            except Exception:
                log.warning("Cancel callback failed", exc_info=True, extra={"callback": repr(cb)})

    def register(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it.

        If the token is already cancelled the callback runs immediately.
        """
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(callback)
                return lambda: self._unregister(callback)
        callback()
        return lambda: None

    def _unregister(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
