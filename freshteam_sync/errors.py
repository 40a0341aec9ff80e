from __future__ import annotations

from typing import Optional


class FreshTeamError(RuntimeError):
    pass


class ConfigurationError(FreshTeamError, ValueError):
    """Missing or blank deployment setting; never retried."""

    def __init__(self, setting: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"{setting} is not set")
        self.setting = setting


class FreshTeamHttpError(FreshTeamError):
    def __init__(self, url: str, status_code: Optional[int], message: str) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class UpstreamError(FreshTeamHttpError):
    def __init__(
        self,
        url: str,
        status_code: Optional[int],
        body: str = "",
        message: Optional[str] = None,
    ) -> None:
        if message is None:
            detail = body.strip()[:500] if body else ""
            message = f"FreshTeam API {status_code}: {detail}" if detail else f"FreshTeam API {status_code} for {url}"
        super().__init__(url, status_code, message)
        self.body = body


class RateLimitExceededError(FreshTeamHttpError):
    def __init__(self, url: str, attempts: int, retry_after_s: Optional[float] = None) -> None:
        super().__init__(url, 429, f"FreshTeam API still rate limited after {attempts} attempts: {url}")
        self.attempts = attempts
        self.retry_after_s = retry_after_s


class SyncCancelledError(FreshTeamError):
    def __init__(self, reason: str, where: Optional[str] = None) -> None:
        message = f"Sync cancelled ({reason})" if where is None else f"Sync cancelled ({reason}) before {where}"
        super().__init__(message)
        self.reason = reason
        self.where = where
