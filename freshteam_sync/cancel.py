from __future__ import annotations

import threading
from typing import Optional

from freshteam_sync.errors import SyncCancelledError


class CancelToken:
    """Cooperative cancellation flag checked before every request and every sleep."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
        self._event.set()

    def raise_if_cancelled(self, where: Optional[str] = None) -> None:
        if self._event.is_set():
            raise SyncCancelledError(self._reason or "cancelled", where)

    def sleep(self, seconds: float) -> None:
        """Drop-in for time.sleep that wakes up early when cancelled."""
        if seconds > 0:
            self._event.wait(seconds)
        self.raise_if_cancelled("resuming after sleep")


def check(cancel: Optional[CancelToken], where: str) -> None:
    if cancel is not None:
        cancel.raise_if_cancelled(where)
