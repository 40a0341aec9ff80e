from __future__ import annotations

import logging
import time
from typing import Callable, Mapping, Optional

from freshteam_sync.cancel import CancelToken, check
from freshteam_sync.config import ThrottleConfig, parse_leading_int
from freshteam_sync.logging_utils import log_event

LOGGER = logging.getLogger("freshteam_sync.throttle")

QUOTA_WINDOW_S = 60.0
LOW_REMAINING_THRESHOLD = 2
REMAINING_HEADER = "x-ratelimit-remaining"


def parse_remaining(headers: Mapping[str, str]) -> Optional[int]:
    return parse_leading_int(headers.get(REMAINING_HEADER))


class IntervalPacer:
    """Enforces a minimum gap between successive requests."""

    def __init__(
        self,
        *,
        min_interval_s: float,
        now: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._min_interval_s = max(0.0, float(min_interval_s))
        self._now = now
        self._sleep = sleep
        self._next_allowed: Optional[float] = None

    def wait(self, cancel: Optional[CancelToken] = None) -> float:
        if self._min_interval_s <= 0:
            return 0.0
        waited = 0.0
        now = self._now()
        if self._next_allowed is not None and now < self._next_allowed:
            waited = self._next_allowed - now
            check(cancel, "paced sleep")
            self._sleep(waited)
        self._next_allowed = self._now() + self._min_interval_s
        return waited


class ThrottleController:
    def __init__(
        self,
        config: Optional[ThrottleConfig] = None,
        *,
        pace: bool = False,
        quota_window_s: float = QUOTA_WINDOW_S,
        now: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config or ThrottleConfig()
        self._quota_window_s = float(quota_window_s)
        self._sleep = sleep
        self._pacer: Optional[IntervalPacer] = (
            IntervalPacer(min_interval_s=self.delay_s, now=now, sleep=sleep) if pace else None
        )

    @property
    def requests_per_minute(self) -> int:
        return self._config.requests_per_minute

    @property
    def delay_ms(self) -> int:
        return self._config.delay_ms

    @property
    def delay_s(self) -> float:
        return self._config.delay_ms / 1000.0

    @property
    def pacing(self) -> bool:
        return self._pacer is not None

    def before_request(self, cancel: Optional[CancelToken] = None) -> float:
        if self._pacer is None:
            return 0.0
        return self._pacer.wait(cancel)

    def observe(self, headers: Mapping[str, str], *, url: str = "", cancel: Optional[CancelToken] = None) -> float:
        """Pause for a full quota window when the server says the quota is nearly spent."""
        remaining = parse_remaining(headers)
        if remaining is None or remaining > LOW_REMAINING_THRESHOLD:
            return 0.0

        log_event(
            LOGGER,
            logging.INFO,
            "quota_low_pause",
            url=url,
            remaining=remaining,
            sleep_s=self._quota_window_s,
        )
        check(cancel, "quota window pause")
        self._sleep(self._quota_window_s)
        return self._quota_window_s
