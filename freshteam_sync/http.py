from __future__ import annotations

import logging
import time
from types import TracebackType
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from freshteam_sync.cancel import CancelToken, check
from freshteam_sync.config import FreshTeamConfig
from freshteam_sync.errors import UpstreamError
from freshteam_sync.logging_utils import log_event
from freshteam_sync.retry import MAX_RETRIES_429, RetryPolicy, TransitionHook
from freshteam_sync.throttle import ThrottleController

LOGGER = logging.getLogger("freshteam_sync.http")

_FIXED_HEADER_NAMES = {"accept", "content-type", "authorization"}


def _safe_body(resp: httpx.Response) -> str:
    try:
        resp.read()
        return resp.text
    except (httpx.HTTPError, httpx.StreamError, UnicodeDecodeError):
        return ""


class FreshTeamHttpClient:
    """Authenticated JSON executor for the FreshTeam REST API."""

    def __init__(
        self,
        config: FreshTeamConfig,
        *,
        timeout_s: float = 30.0,
        pace: bool = False,
        max_attempts: int = MAX_RETRIES_429,
        transport: Optional[httpx.BaseTransport] = None,
        now: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        on_retry_transition: Optional[TransitionHook] = None,
    ) -> None:
        self._config = config
        # Redirects are never followed: an API 3xx is an UpstreamError, and resume downloads
        # follow a single redirect themselves without the bearer credential.
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_s),
            follow_redirects=False,
            transport=transport,
        )
        self._throttle = ThrottleController(config.throttle, pace=pace, now=now, sleep=sleep)
        self._retry = RetryPolicy(max_attempts=max_attempts, sleep=sleep, on_transition=on_retry_transition)
        self.requests_made = 0

    @property
    def config(self) -> FreshTeamConfig:
        return self._config

    @property
    def throttle(self) -> ThrottleController:
        return self._throttle

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "FreshTeamHttpClient":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._config.base_url}{path if path.startswith('/') else '/' + path}"

    def _headers(self, extra: Optional[Mapping[str, str]]) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        for name, value in (extra or {}).items():
            if name.lower() not in _FIXED_HEADER_NAMES:
                headers[name] = value
        headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
                "Authorization": self._config.authorization,
            }
        )
        return headers

    def _send(self, url: str, params: Optional[Mapping[str, Any]], headers: Dict[str, str]) -> httpx.Response:
        request = self._client.build_request("GET", url, params=params, headers=headers)
        self.requests_made += 1
        try:
            return self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamError(url, None, message=f"HTTP transport error for {url}: {e}") from e

    def get_json(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        cancel: Optional[CancelToken] = None,
    ) -> Any:
        url = self.url_for(path)
        merged = self._headers(headers)

        def send() -> httpx.Response:
            self._throttle.before_request(cancel)
            check(cancel, url)
            return self._send(url, params, merged)

        resp = self._retry.execute(send, url=url, cancel=cancel)
        try:
            if not resp.is_success:
                body = _safe_body(resp)
                log_event(
                    LOGGER,
                    logging.WARNING,
                    "upstream_error",
                    url=url,
                    status_code=resp.status_code,
                )
                raise UpstreamError(url, resp.status_code, body)

            try:
                resp.read()
            except httpx.HTTPError as e:
                raise UpstreamError(url, resp.status_code, message=f"Failed reading body for {url}: {e}") from e
        finally:
            resp.close()

        self._throttle.observe(resp.headers, url=url, cancel=cancel)

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(
                url, resp.status_code, resp.text, message=f"FreshTeam API returned invalid JSON for {url}"
            ) from e

    def raw_get(self, url: str, *, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        """Single unauthenticated-by-default GET with no retries, used for file downloads."""
        try:
            return self._client.get(url, headers=dict(headers or {}))
        except httpx.HTTPError as e:
            raise UpstreamError(url, None, message=f"HTTP transport error for {url}: {e}") from e
