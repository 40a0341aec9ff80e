from __future__ import annotations

from typing import Callable, List

import pytest

from freshteam_sync.client import FreshTeamClient
from freshteam_sync.config import FreshTeamConfig, get_settings, resolve_config
from tests.helpers.fake_freshteam import FakeFreshTeamApi

_FRESHTEAM_ENV = (
    "FRESHTEAM_DOMAIN",
    "FRESHTEAM_API_KEY",
    "FRESHTEAM_REQUESTS_PER_MINUTE",
    "FRESHTEAM_FETCH_DETAILS",
    "FRESHTEAM_PER_PAGE",
    "FRESHTEAM_EXPECTED_TOTAL",
    "FRESHTEAM_PACE_REQUESTS",
    "FRESHTEAM_TIMEOUT_S",
)


@pytest.hookimpl(tryfirst=True)
def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "integration: Full client runs against a fake FreshTeam API.")


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    # A developer's .env or shell must not leak into tests.
    for name in _FRESHTEAM_ENV:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def config() -> FreshTeamConfig:
    return resolve_config("acme", "secret-key")


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def make_client(config: FreshTeamConfig, sleeps: List[float]) -> Callable[..., FreshTeamClient]:
    clients: List[FreshTeamClient] = []

    def _make(api: FakeFreshTeamApi, **kwargs) -> FreshTeamClient:
        kwargs.setdefault("sleep", sleeps.append)
        kwargs.setdefault("transport", api.transport)
        client = FreshTeamClient(kwargs.pop("config", config), **kwargs)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()
