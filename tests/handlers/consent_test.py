"""Tests for the ``/consent`` route."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from safir.testing.slack import MockSlackWebhook

from porthor.models.ldap import UserRecord

from ..support.app import client_for_config
from ..support.hydra import MockHydra
from ..support.ldap import MockLDAP

ALICE = UserRecord(
    dn="uid=alice,ou=people,dc=example,dc=com",
    attributes={
        "cn": "Alice Smith",
        "sn": "Smith",
        "givenName": "Alice",
        "mail": "alice@example.com",
        "entryUUID": "0f5a6b8e-8c43-4c8a-9f6e-2b7a1c3d4e5f",
    },
    groups=["ops", "dev"],
)


@pytest.mark.asyncio
async def test_consent(client: AsyncClient, mock_hydra_api: MockHydra) -> None:
    mock_hydra_api.add_consent_request(
        "some-challenge",
        ALICE.attributes["entryUUID"],
        context=ALICE.to_context(),
        scopes=["openid", "email"],
        audience=["https://api.example.com/"],
    )

    r = await client.get(
        "/consent", params={"consent_challenge": "some-challenge"}
    )
    assert r.status_code == 303
    assert "consent_verifier" in r.headers["Location"]
    assert mock_hydra_api.accepted[("consent", "some-challenge")] == {
        "grant_scope": ["openid", "email"],
        "grant_access_token_audience": ["https://api.example.com/"],
        "remember": True,
        "remember_for": 0,
        "session": {
            "id_token": {
                "groups": ["ops", "dev"],
                "email": "alice@example.com",
            }
        },
    }

    mock_hydra_api.add_consent_request(
        "other-challenge",
        ALICE.attributes["entryUUID"],
        context=ALICE.to_context(),
        scopes=["openid", "profile"],
    )
    r = await client.get(
        "/consent", params={"consent_challenge": "other-challenge"}
    )
    assert r.status_code == 303
    accepted = mock_hydra_api.accepted[("consent", "other-challenge")]
    assert accepted["grant_access_token_audience"] == []
    assert accepted["session"]["id_token"] == {
        "groups": ["ops", "dev"],
        "name": "Alice Smith",
        "family_name": "Smith",
        "given_name": "Alice",
    }


@pytest.mark.asyncio
async def test_groups_only(
    client: AsyncClient, mock_hydra_api: MockHydra
) -> None:
    mock_hydra_api.add_consent_request(
        "some-challenge",
        ALICE.attributes["entryUUID"],
        context=ALICE.to_context(),
        scopes=[],
    )

    r = await client.get(
        "/consent", params={"consent_challenge": "some-challenge"}
    )
    assert r.status_code == 303
    accepted = mock_hydra_api.accepted[("consent", "some-challenge")]
    assert accepted["grant_scope"] == []
    assert accepted["session"]["id_token"] == {"groups": ["ops", "dev"]}


@pytest.mark.asyncio
async def test_missing_challenge(client: AsyncClient) -> None:
    r = await client.get("/consent")
    assert r.status_code == 404
    assert r.json()["detail"][0]["type"] == "missing_challenge"


@pytest.mark.asyncio
async def test_missing_context(
    client: AsyncClient, mock_hydra_api: MockHydra, mock_ldap: MockLDAP
) -> None:
    mock_hydra_api.add_consent_request(
        "some-challenge", ALICE.attributes["entryUUID"], scopes=["openid"]
    )
    r = await client.get(
        "/consent", params={"consent_challenge": "some-challenge"}
    )
    assert r.status_code == 500
    assert "Stored login information is missing or invalid" in r.text
    assert "authorization server" not in r.text
    assert mock_hydra_api.accepted == {}
    assert mock_ldap.binds == []

    mock_hydra_api.add_consent_request(
        "other-challenge",
        ALICE.attributes["entryUUID"],
        context={"attrs": {"cn": "Alice Smith"}},
        scopes=["openid"],
    )
    r = await client.get(
        "/consent", params={"consent_challenge": "other-challenge"}
    )
    assert r.status_code == 500
    assert "Stored login information is missing or invalid" in r.text
    assert mock_hydra_api.accepted == {}

    # A challenge Hydra does not know is a failure talking to Hydra.
    r = await client.get(
        "/consent", params={"consent_challenge": "unknown-challenge"}
    )
    assert r.status_code == 500
    assert "Communication with the authorization server failed" in r.text


@pytest.mark.asyncio
async def test_login_subject(
    mock_hydra_api: MockHydra, mock_ldap: MockLDAP
) -> None:
    async with client_for_config("login-subject") as client:
        mock_ldap.add_user(
            "alice",
            ALICE.dn,
            {"mail": ["alice@example.com"], "displayName": ["Alice"]},
        )
        mock_hydra_api.add_consent_request(
            "some-challenge", "alice", scopes=["openid", "email", "profile"]
        )

        # Without stored attributes, the subject is looked up again.
        r = await client.get(
            "/consent", params={"consent_challenge": "some-challenge"}
        )
        assert r.status_code == 303
        accepted = mock_hydra_api.accepted[("consent", "some-challenge")]
        assert accepted["session"]["id_token"] == {
            "groups": [],
            "email": "alice@example.com",
            "name": "Alice",
        }

        # A subject that has since disappeared is an internal error.
        mock_hydra_api.add_consent_request(
            "other-challenge", "bob", scopes=["openid"]
        )
        r = await client.get(
            "/consent", params={"consent_challenge": "other-challenge"}
        )
        assert r.status_code == 500
        assert "User no longer exists" in r.text


@pytest.mark.asyncio
async def test_slack_alert(
    mock_hydra_api: MockHydra, mock_slack: MockSlackWebhook
) -> None:
    async with client_for_config("slack") as client:
        mock_hydra_api.add_consent_request(
            "some-challenge",
            ALICE.attributes["entryUUID"],
            context=ALICE.to_context(),
            scopes=["openid"],
        )
        mock_hydra_api.fail = True

        r = await client.get(
            "/consent", params={"consent_challenge": "some-challenge"}
        )
        assert r.status_code == 500
        assert len(mock_slack.messages) == 1
