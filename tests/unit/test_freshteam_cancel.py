from __future__ import annotations

import threading

import pytest

from freshteam_sync.cancel import CancelToken, check
from freshteam_sync.errors import SyncCancelledError


def test_token_starts_uncancelled():
    token = CancelToken()
    assert not token.cancelled
    assert token.reason is None
    token.raise_if_cancelled("anywhere")


def test_first_reason_wins():
    token = CancelToken()
    token.cancel("shutdown")
    token.cancel("second")

    assert token.cancelled
    assert token.reason == "shutdown"
    with pytest.raises(SyncCancelledError) as exc_info:
        token.raise_if_cancelled("page 2")
    assert exc_info.value.reason == "shutdown"
    assert exc_info.value.where == "page 2"


def test_sleep_returns_normally_when_not_cancelled():
    CancelToken().sleep(0)


def test_sleep_wakes_up_when_cancelled_from_another_thread():
    token = CancelToken()
    timer = threading.Timer(0.05, token.cancel, args=("stop",))
    timer.start()
    try:
        with pytest.raises(SyncCancelledError):
            token.sleep(30)
    finally:
        timer.cancel()


def test_check_ignores_missing_token():
    check(None, "page 1")
    token = CancelToken()
    token.cancel()
    with pytest.raises(SyncCancelledError):
        check(token, "page 1")
