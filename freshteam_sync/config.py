"""
FreshTeam connection settings.

`resolve_config` turns raw domain/credential strings into an immutable
`FreshTeamConfig` that the client receives by injection. `FreshTeamSettings`
reads the same values from the environment (and a local `.env` file) and is
only consulted at the edge: the runner and the CLI script.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from freshteam_sync.errors import ConfigurationError

# Load .env file if it exists
load_dotenv()

VENDOR_HOST = "freshteam.com"

DEFAULT_REQUESTS_PER_MINUTE = 55
MIN_REQUESTS_PER_MINUTE = 1
MAX_REQUESTS_PER_MINUTE = 100

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def parse_leading_int(value: Optional[object]) -> Optional[int]:
    """Parse the leading integer of a header/env value ("12", " 7s", "5.9" -> 5)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT_RE.match(str(value))
    if match is None:
        return None
    return int(match.group(1))


def clamp_requests_per_minute(value: Optional[object]) -> int:
    """Clamp to 1..100. Missing, unparseable or sub-1 values fall back to the default of 55 rather than 1."""
    n = parse_leading_int(value)
    if n is None or n < MIN_REQUESTS_PER_MINUTE:
        return DEFAULT_REQUESTS_PER_MINUTE
    return min(n, MAX_REQUESTS_PER_MINUTE)


@dataclass(frozen=True)
class ThrottleConfig:
    requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE

    def __post_init__(self) -> None:
        object.__setattr__(self, "requests_per_minute", clamp_requests_per_minute(self.requests_per_minute))

    @property
    def delay_ms(self) -> int:
        # 55/min -> 1091ms between requests
        return math.ceil(60_000 / self.requests_per_minute)


@dataclass(frozen=True)
class FreshTeamConfig:
    domain: str
    api_key: str = field(repr=False)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)

    @property
    def origin(self) -> str:
        return f"https://{self.domain}.{VENDOR_HOST}"

    @property
    def base_url(self) -> str:
        return f"{self.origin}/api"

    @property
    def authorization(self) -> str:
        return f"Bearer {self.api_key}"


def _required(value: Optional[str], setting: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ConfigurationError(setting)
    return cleaned


def resolve_config(
    domain: Optional[str],
    api_key: Optional[str],
    requests_per_minute: Optional[object] = None,
) -> FreshTeamConfig:
    return FreshTeamConfig(
        domain=_required(domain, "FRESHTEAM_DOMAIN"),
        api_key=_required(api_key, "FRESHTEAM_API_KEY"),
        throttle=ThrottleConfig(requests_per_minute=clamp_requests_per_minute(requests_per_minute)),
    )


def is_configured(domain: Optional[str], api_key: Optional[str]) -> bool:
    return bool((domain or "").strip() and (api_key or "").strip())


class FreshTeamSettings(BaseSettings):
    """FreshTeam sync configuration read from FRESHTEAM_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="FRESHTEAM_", extra="ignore", populate_by_name=True)

    domain: str = Field(default="")
    api_key: str = Field(default="")
    # Kept raw so that junk values fall back to the default instead of failing validation.
    requests_per_minute: Optional[Union[int, str]] = Field(default=None)
    fetch_details: bool = Field(default=False)
    per_page: int = Field(default=30)
    expected_total: Optional[int] = Field(default=None)
    pace_requests: bool = Field(default=False)
    timeout_s: float = Field(default=30.0)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("expected_total", mode="before")
    @classmethod
    def blank_expected_total_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_configured(self) -> bool:
        return is_configured(self.domain, self.api_key)

    def resolve(self) -> FreshTeamConfig:
        return resolve_config(self.domain, self.api_key, self.requests_per_minute)


@lru_cache()
def get_settings() -> FreshTeamSettings:
    """
    Get cached settings instance.

    Tests that change the environment should call `get_settings.cache_clear()`.
    """
    return FreshTeamSettings()
