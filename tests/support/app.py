"""Helpers for running the application with a non-default configuration."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from porthor.main import create_app

from .config import configure
from .constants import TEST_HOSTNAME

__all__ = ["client_for_config"]


@asynccontextmanager
async def client_for_config(filename: str) -> AsyncIterator[AsyncClient]:
    """Run a new application with the given test configuration.

    The route prefix and middleware are fixed when the application is
    created, so changing them requires a new application rather than only
    reloading the configuration.

    Parameters
    ----------
    filename
        Test configuration file to use.

    Yields
    ------
    httpx.AsyncClient
        Client configured to talk to the new application.
    """
    configure(filename)
    app = create_app()
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        base_url = f"https://{TEST_HOSTNAME}"
        async with AsyncClient(base_url=base_url, transport=transport) as c:
            yield c
