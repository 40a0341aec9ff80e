from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

import httpx

from freshteam_sync.cancel import CancelToken, check
from freshteam_sync.config import parse_leading_int
from freshteam_sync.errors import RateLimitExceededError
from freshteam_sync.logging_utils import log_event

LOGGER = logging.getLogger("freshteam_sync.retry")

MAX_RETRIES_429 = 5
DEFAULT_WAIT_S = 60.0


class RetryPhase(str, enum.Enum):
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    FAILED = "failed"


@dataclass
class RetryState:
    attempt: int = 0
    max_attempts: int = MAX_RETRIES_429
    phase: RetryPhase = RetryPhase.ATTEMPTING

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts


TransitionHook = Callable[[RetryPhase, RetryState, Optional[float]], None]


def retry_after_s(headers: Mapping[str, str], default_s: float = DEFAULT_WAIT_S) -> float:
    # Retry-After is whole seconds; anything unparseable waits out the quota window.
    seconds = parse_leading_int(headers.get("Retry-After"))
    if seconds is None or seconds < 0:
        return default_s
    return float(seconds)


class RetryPolicy:
    """Retries a single logical call while the server answers 429."""

    def __init__(
        self,
        *,
        max_attempts: int = MAX_RETRIES_429,
        default_wait_s: float = DEFAULT_WAIT_S,
        sleep: Callable[[float], None] = time.sleep,
        on_transition: Optional[TransitionHook] = None,
    ) -> None:
        self._max_attempts = max(0, int(max_attempts))
        self._default_wait_s = float(default_wait_s)
        self._sleep = sleep
        self._on_transition = on_transition

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def _enter(self, state: RetryState, phase: RetryPhase, wait_s: Optional[float] = None) -> None:
        state.phase = phase
        if self._on_transition is not None:
            self._on_transition(phase, state, wait_s)

    def execute(
        self,
        send: Callable[[], httpx.Response],
        *,
        url: str,
        cancel: Optional[CancelToken] = None,
    ) -> httpx.Response:
        state = RetryState(max_attempts=self._max_attempts)
        while True:
            self._enter(state, RetryPhase.ATTEMPTING)
            check(cancel, url)
            resp = send()
            if resp.status_code != 429:
                return resp

            wait_s = retry_after_s(resp.headers, self._default_wait_s)
            resp.close()

            if state.exhausted:
                self._enter(state, RetryPhase.FAILED)
                log_event(
                    LOGGER,
                    logging.ERROR,
                    "rate_limit_exceeded",
                    url=url,
                    attempts=state.attempt + 1,
                )
                raise RateLimitExceededError(url, attempts=state.attempt + 1, retry_after_s=wait_s)

            self._enter(state, RetryPhase.BACKOFF, wait_s)
            log_event(
                LOGGER,
                logging.WARNING,
                "rate_limited_backoff",
                url=url,
                attempt=state.attempt + 1,
                max_attempts=state.max_attempts,
                wait_s=wait_s,
            )
            check(cancel, "429 backoff")
            self._sleep(wait_s)
            state.attempt += 1
