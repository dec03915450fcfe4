"""Test fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import pytest
import pytest_asyncio
import respx
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from safir.testing.slack import MockSlackWebhook, mock_slack_webhook

from porthor.config import Config
from porthor.factory import Factory
from porthor.main import create_app

from .support.config import configure
from .support.constants import TEST_HOSTNAME, TEST_SERVICE_PASSWORD
from .support.hydra import MockHydra, mock_hydra
from .support.ldap import MockLDAP, patch_ldap


@pytest.fixture(autouse=True)
def environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set default values of environment variables for testing."""
    monkeypatch.setenv("PORTHOR_LDAP_BIND_PASSWORD", TEST_SERVICE_PASSWORD)
    monkeypatch.setenv("PORTHOR_SLACK_WEBHOOK", "https://slack.example.com/")


@pytest_asyncio.fixture
async def app(config: Config) -> AsyncIterator[FastAPI]:
    """Return a configured test application.

    Wraps the application in a lifespan manager so that startup and shutdown
    events are sent during test execution.
    """
    app = create_app()
    async with LifespanManager(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an ``httpx.AsyncClient`` configured to talk to the test app."""
    async with AsyncClient(
        base_url=f"https://{TEST_HOSTNAME}",
        transport=ASGITransport(app=app),
    ) as client:
        yield client


@pytest.fixture
def config() -> Config:
    """Set up and return the default test configuration.

    Notes
    -----
    This fixture must not be async so that it can be used by the cli tests,
    which must not be async because the Click support starts its own asyncio
    loop.
    """
    return configure("base")


@pytest_asyncio.fixture
async def factory(config: Config) -> AsyncIterator[Factory]:
    """Return a component factory."""
    async with Factory.standalone(config) as factory:
        yield factory


@pytest.fixture
def mock_hydra_api(config: Config, respx_mock: respx.Router) -> MockHydra:
    """Mock the Hydra admin API."""
    return mock_hydra(config, respx_mock)


@pytest.fixture
def mock_ldap(config: Config) -> Iterator[MockLDAP]:
    """Replace the bonsai LDAP API with a mock class."""
    yield from patch_ldap()


@pytest.fixture
def mock_slack(respx_mock: respx.Router) -> MockSlackWebhook:
    """Mock a Slack webhook."""
    return mock_slack_webhook("https://slack.example.com/", respx_mock)
