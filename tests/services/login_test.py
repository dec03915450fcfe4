"""Tests for the login service."""

from __future__ import annotations

import pytest

from porthor.config import Config
from porthor.exceptions import (
    HydraError,
    InvalidCredentialsError,
    LDAPTransportError,
    MissingSubjectError,
    UserNotFoundError,
)
from porthor.factory import Factory

from ..support.hydra import MockHydra
from ..support.ldap import MockLDAP

ALICE_DN = "uid=alice,ou=people,dc=example,dc=com"
"""DN of the test user."""

REDIRECT_URL = "https://hydra.example.com/oauth2/auth?login_verifier=v"
"""Redirect returned by the mock Hydra for accepted login requests."""


@pytest.mark.asyncio
async def test_login(
    config: Config,
    factory: Factory,
    mock_hydra_api: MockHydra,
    mock_ldap: MockLDAP,
) -> None:
    mock_ldap.add_user(
        "alice",
        ALICE_DN,
        {"cn": ["Alice"], "entryUUID": ["some-uuid"]},
        password="secret",
    )
    mock_hydra_api.add_login_request("some-challenge")
    login_service = factory.create_login_service()

    redirect = await login_service.login(
        "some-challenge", "alice", "secret", remember=False
    )
    assert redirect == REDIRECT_URL

    accepted = mock_hydra_api.accepted[("login", "some-challenge")]
    assert accepted["subject"] == "some-uuid"
    assert accepted["remember"] is False
    assert accepted["remember_for"] == 3600
    assert mock_ldap.binds == [config.ldap.bind_dn, ALICE_DN]
    assert mock_ldap.open_connections == 0


@pytest.mark.asyncio
async def test_login_failures(
    factory: Factory,
    mock_hydra_api: MockHydra,
    mock_ldap: MockLDAP,
) -> None:
    mock_ldap.add_user(
        "alice", ALICE_DN, {"entryUUID": ["some-uuid"]}, password="secret"
    )
    mock_ldap.add_user("bob", "uid=bob,ou=people,dc=example,dc=com", {})
    mock_hydra_api.add_login_request("some-challenge")
    login_service = factory.create_login_service()

    # An empty password must never reach LDAP, since it would be treated as
    # an anonymous bind.
    with pytest.raises(InvalidCredentialsError):
        await login_service.login(
            "some-challenge", "alice", "", remember=False
        )
    assert mock_ldap.binds == []

    with pytest.raises(InvalidCredentialsError):
        await login_service.login(
            "some-challenge", "alice", "wrong", remember=False
        )
    with pytest.raises(UserNotFoundError):
        await login_service.login(
            "some-challenge", "carol", "secret", remember=False
        )

    # Bob has no password, so he can never log in, and has no entryUUID.
    with pytest.raises(InvalidCredentialsError):
        await login_service.login(
            "some-challenge", "bob", "secret", remember=False
        )
    mock_ldap.set_password("uid=bob,ou=people,dc=example,dc=com", "secret")
    with pytest.raises(MissingSubjectError):
        await login_service.login(
            "some-challenge", "bob", "secret", remember=False
        )

    mock_ldap.down = True
    with pytest.raises(LDAPTransportError):
        await login_service.login(
            "some-challenge", "alice", "secret", remember=False
        )

    assert mock_hydra_api.accepted == {}
    assert mock_ldap.open_connections == 0


@pytest.mark.asyncio
async def test_start_login(
    factory: Factory, mock_hydra_api: MockHydra, mock_ldap: MockLDAP
) -> None:
    mock_hydra_api.add_login_request("some-challenge")
    mock_hydra_api.add_login_request(
        "other-challenge", skip=True, subject="some-uuid"
    )
    login_service = factory.create_login_service()

    assert await login_service.start_login("some-challenge") is None
    assert mock_hydra_api.accepted == {}

    # Without a stored context, none is sent back to Hydra.
    redirect = await login_service.start_login("other-challenge")
    assert redirect == REDIRECT_URL
    assert mock_hydra_api.accepted[("login", "other-challenge")] == {
        "subject": "some-uuid"
    }
    assert mock_ldap.binds == []

    with pytest.raises(HydraError):
        await login_service.start_login("unknown-challenge")
