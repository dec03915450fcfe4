"""Tests for the internal routes."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from porthor.config import Config

from ..support.ldap import MockLDAP


@pytest.mark.asyncio
async def test_get_index(client: AsyncClient) -> None:
    r = await client.get("/")
    assert r.status_code == 200
    data = r.json()
    assert data["name"] == "porthor"
    assert isinstance(data["version"], str)


@pytest.mark.asyncio
async def test_health(
    client: AsyncClient, config: Config, mock_ldap: MockLDAP
) -> None:
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy", "ldap_url": str(config.ldap.url)}
    assert mock_ldap.binds == [config.ldap.bind_dn]
    assert mock_ldap.open_connections == 0

    mock_ldap.down = True
    r = await client.get("/health")
    assert r.status_code == 500
    assert r.json()["detail"][0]["type"] == "ldap_unavailable"

    # The probes never touch LDAP.
    for route in ("/health/live", "/health/ready"):
        r = await client.get(route)
        assert r.status_code == 200
        assert r.json() == {"status": "healthy"}
