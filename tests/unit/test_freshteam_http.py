from __future__ import annotations

from typing import Iterator, List

import httpx
import pytest

from freshteam_sync.cancel import CancelToken
from freshteam_sync.errors import RateLimitExceededError, SyncCancelledError, UpstreamError
from freshteam_sync.http import FreshTeamHttpClient


class _BrokenStream(httpx.SyncByteStream):
    def __iter__(self) -> Iterator[bytes]:
        raise httpx.ReadError("connection reset while reading body")


def _make_http(config, handler, sleeps: List[float], **kwargs) -> FreshTeamHttpClient:
    return FreshTeamHttpClient(config, transport=httpx.MockTransport(handler), sleep=sleeps.append, **kwargs)


def test_get_json_sends_fixed_headers_and_parses_body(config):
    seen: List[httpx.Request] = []
    sleeps: List[float] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": 1}])

    with _make_http(config, handler, sleeps) as http:
        data = http.get_json("/job_postings", params={"page": 2, "per_page": 30})

    assert data == [{"id": 1}]
    request = seen[0]
    assert str(request.url) == "https://acme.freshteam.com/api/job_postings?page=2&per_page=30"
    assert request.headers["Accept"] == "application/json"
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["Authorization"] == "Bearer secret-key"
    assert http.requests_made == 1
    assert sleeps == []


def test_caller_headers_merge_but_cannot_override_fixed_ones(config):
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    with _make_http(config, handler, []) as http:
        http.get_json(
            "job_postings/1",
            headers={"Authorization": "Bearer other", "accept": "text/html", "X-Request-Id": "abc"},
        )

    request = seen[0]
    assert request.url.path == "/api/job_postings/1"
    assert request.headers["Authorization"] == "Bearer secret-key"
    assert request.headers["Accept"] == "application/json"
    assert request.headers["X-Request-Id"] == "abc"


def test_absolute_urls_are_used_as_is(config):
    seen: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"ok": True})

    with _make_http(config, handler, []) as http:
        http.get_json("https://acme.freshteam.com/api/applicants/9")

    assert seen == ["https://acme.freshteam.com/api/applicants/9"]


def test_non_2xx_raises_upstream_error_with_status_and_body(config):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, text='{"message": "forbidden"}')

    with _make_http(config, handler, []) as http:
        with pytest.raises(UpstreamError) as exc_info:
            http.get_json("/job_postings")

    err = exc_info.value
    assert err.status_code == 403
    assert err.body == '{"message": "forbidden"}'
    assert err.url == "https://acme.freshteam.com/api/job_postings"
    assert "403" in str(err)


def test_unreadable_error_body_becomes_empty_string(config):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, stream=_BrokenStream())

    with _make_http(config, handler, []) as http:
        with pytest.raises(UpstreamError) as exc_info:
            http.get_json("/job_postings")

    assert exc_info.value.status_code == 502
    assert exc_info.value.body == ""


def test_transport_failure_surfaces_as_upstream_error_without_status(config):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _make_http(config, handler, []) as http:
        with pytest.raises(UpstreamError) as exc_info:
            http.get_json("/job_postings")

    assert exc_info.value.status_code is None


def test_invalid_json_is_reported(config):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with _make_http(config, handler, []) as http:
        with pytest.raises(UpstreamError) as exc_info:
            http.get_json("/job_postings")

    assert exc_info.value.status_code == 200
    assert "invalid JSON" in str(exc_info.value)


def test_429_is_retried_and_low_quota_pauses_after_success(config):
    sleeps: List[float] = []
    responses = [
        httpx.Response(429, headers={"Retry-After": "5"}),
        httpx.Response(200, json=[], headers={"x-ratelimit-remaining": "1"}),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    with _make_http(config, handler, sleeps) as http:
        assert http.get_json("/job_postings") == []
        assert http.requests_made == 2

    assert sleeps == [5.0, 60.0]


def test_persistent_429_raises_rate_limit_exceeded(config):
    sleeps: List[float] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429)

    with _make_http(config, handler, sleeps) as http:
        with pytest.raises(RateLimitExceededError):
            http.get_json("/job_postings")
        assert http.requests_made == 6

    assert sleeps == [60.0] * 5


def test_no_request_is_sent_once_cancelled(config):
    calls: List[httpx.Request] = []
    cancel = CancelToken()
    cancel.cancel()

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=[])

    with _make_http(config, handler, []) as http:
        with pytest.raises(SyncCancelledError):
            http.get_json("/job_postings", cancel=cancel)

    assert calls == []


def test_api_redirect_is_not_followed(config):
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(302, headers={"Location": "https://elsewhere.example.com/api/job_postings"})

    with _make_http(config, handler, []) as http:
        with pytest.raises(UpstreamError) as exc_info:
            http.get_json("/job_postings")

    assert exc_info.value.status_code == 302
    assert len(seen) == 1
