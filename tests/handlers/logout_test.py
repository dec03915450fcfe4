"""Tests for the ``/logout``, ``/post-logout``, and ``/error`` routes."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from ..support.app import client_for_config
from ..support.hydra import MockHydra


@pytest.mark.asyncio
async def test_logout(client: AsyncClient, mock_hydra_api: MockHydra) -> None:
    mock_hydra_api.add_logout_request("some-challenge")

    r = await client.get(
        "/logout", params={"logout_challenge": "some-challenge"}
    )
    assert r.status_code == 303
    assert r.headers["Location"] == (
        "https://hydra.example.com/oauth2/auth?logout_verifier=v"
    )
    assert mock_hydra_api.accepted[("logout", "some-challenge")] == {}

    r = await client.get("/logout", params={"logout_challenge": ""})
    assert r.status_code == 404
    assert r.json()["detail"][0]["loc"] == ["query", "logout_challenge"]

    mock_hydra_api.fail = True
    r = await client.get(
        "/logout", params={"logout_challenge": "some-challenge"}
    )
    assert r.status_code == 500


@pytest.mark.asyncio
async def test_post_logout(client: AsyncClient) -> None:
    r = await client.get("/post-logout")
    assert r.status_code == 200
    assert r.headers["Content-Type"].startswith("text/html")
    assert "signed out" in r.text


@pytest.mark.asyncio
async def test_error(client: AsyncClient) -> None:
    r = await client.get(
        "/error",
        params={
            "error": "access_denied",
            "error_description": "The resource owner denied the request",
            "error_hint": "<script>alert(1)</script>",
        },
    )
    assert r.status_code == 200
    assert "access_denied" in r.text
    assert "The resource owner denied the request" in r.text
    assert "<script>" not in r.text
    assert "&lt;script&gt;" in r.text

    r = await client.get("/error")
    assert r.status_code == 200
    assert "Unknown error" in r.text


@pytest.mark.asyncio
async def test_error_footer() -> None:
    async with client_for_config("base-path") as client:
        r = await client.get("/auth/error", params={"error": "server_error"})
        assert r.status_code == 200
        assert "server_error" in r.text
        assert 'href="mailto:help@example.com"' in r.text

        r = await client.get("/auth/post-logout")
        assert r.status_code == 200
