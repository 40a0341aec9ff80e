from __future__ import annotations

from typing import List, Optional

import httpx
import pytest

from freshteam_sync.cancel import CancelToken
from freshteam_sync.errors import RateLimitExceededError, SyncCancelledError
from freshteam_sync.retry import RetryPhase, RetryPolicy, RetryState, retry_after_s

URL = "https://acme.freshteam.com/api/job_postings"


def _responses(*responses: httpx.Response):
    queue = list(responses)
    calls: List[int] = []

    def send() -> httpx.Response:
        calls.append(1)
        return queue.pop(0)

    return send, calls


def _too_many(retry_after: Optional[str] = None) -> httpx.Response:
    headers = {"Retry-After": retry_after} if retry_after is not None else {}
    return httpx.Response(429, headers=headers, text="Too Many Requests")


def test_retry_after_header_is_used_in_seconds():
    assert retry_after_s(httpx.Headers({"Retry-After": "5"})) == 5.0


def test_missing_or_unparseable_retry_after_waits_a_full_window():
    assert retry_after_s(httpx.Headers({})) == 60.0
    assert retry_after_s(httpx.Headers({"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"})) == 60.0


def test_429_with_retry_after_sleeps_then_returns_success():
    sleeps: List[float] = []
    send, calls = _responses(_too_many("5"), httpx.Response(200, json=[]))

    resp = RetryPolicy(sleep=sleeps.append).execute(send, url=URL)

    assert resp.status_code == 200
    assert sleeps == [5.0]
    assert len(calls) == 2


def test_429_without_retry_after_defaults_to_sixty_seconds():
    sleeps: List[float] = []
    send, _calls = _responses(_too_many(), httpx.Response(200, json=[]))

    RetryPolicy(sleep=sleeps.append).execute(send, url=URL)

    assert sleeps == [60.0]


def test_six_consecutive_429s_fail_after_five_retries():
    sleeps: List[float] = []
    send, calls = _responses(*[_too_many("1") for _ in range(6)])

    with pytest.raises(RateLimitExceededError) as exc_info:
        RetryPolicy(sleep=sleeps.append).execute(send, url=URL)

    assert len(calls) == 6
    assert sleeps == [1.0] * 5
    assert exc_info.value.attempts == 6
    assert exc_info.value.status_code == 429
    assert exc_info.value.url == URL


def test_non_429_errors_are_returned_untouched():
    sleeps: List[float] = []
    send, calls = _responses(httpx.Response(500, text="boom"))

    resp = RetryPolicy(sleep=sleeps.append).execute(send, url=URL)

    assert resp.status_code == 500
    assert sleeps == []
    assert len(calls) == 1


def test_state_transitions_are_reported():
    seen = []

    def on_transition(phase: RetryPhase, state: RetryState, wait_s: Optional[float]) -> None:
        seen.append((phase, state.attempt, wait_s))

    send, _calls = _responses(_too_many("2"), _too_many("3"), httpx.Response(200))
    RetryPolicy(sleep=lambda _s: None, on_transition=on_transition).execute(send, url=URL)

    assert seen == [
        (RetryPhase.ATTEMPTING, 0, None),
        (RetryPhase.BACKOFF, 0, 2.0),
        (RetryPhase.ATTEMPTING, 1, None),
        (RetryPhase.BACKOFF, 1, 3.0),
        (RetryPhase.ATTEMPTING, 2, None),
    ]


def test_failed_state_is_reported_before_raising():
    phases = []
    send, _calls = _responses(_too_many("0"), _too_many("0"))
    policy = RetryPolicy(max_attempts=1, sleep=lambda _s: None, on_transition=lambda p, s, w: phases.append(p))

    with pytest.raises(RateLimitExceededError):
        policy.execute(send, url=URL)

    assert phases[-1] is RetryPhase.FAILED


def test_cancellation_during_backoff_stops_retrying():
    cancel = CancelToken()
    sleeps: List[float] = []

    def sleep(seconds: float) -> None:
        sleeps.append(seconds)
        cancel.cancel("user abort")

    send, calls = _responses(_too_many("1"), _too_many("1"), httpx.Response(200))

    with pytest.raises(SyncCancelledError) as exc_info:
        RetryPolicy(sleep=sleep).execute(send, url=URL, cancel=cancel)

    assert exc_info.value.reason == "user abort"
    assert len(calls) == 1
    assert sleeps == [1.0]
