"""Tests for the LDAP data models."""

from __future__ import annotations

import pytest

from porthor.models.ldap import UserRecord


def test_context() -> None:
    user = UserRecord(
        dn="uid=alice,ou=people,dc=example,dc=com",
        attributes={"cn": "Alice Smith", "mail": "alice@example.com"},
        groups=["ops", "dev"],
    )
    context = user.to_context()
    assert context == {
        "attrs": {
            "cn": "Alice Smith",
            "mail": "alice@example.com",
            "dn": "uid=alice,ou=people,dc=example,dc=com",
            "groups": ["ops", "dev"],
        }
    }
    assert UserRecord.from_context(context) == user

    # Groups may be missing from contexts stored by other tools.
    context = {"attrs": {"dn": "uid=bob,dc=example,dc=com", "cn": "Bob"}}
    user = UserRecord.from_context(context)
    assert user.groups == []
    assert user.attributes == {"cn": "Bob"}


def test_context_invalid() -> None:
    with pytest.raises(KeyError):
        UserRecord.from_context({})
    with pytest.raises(KeyError):
        UserRecord.from_context({"attrs": {"cn": "Alice"}})
    with pytest.raises(ValueError, match="Malformed"):
        UserRecord.from_context({"attrs": {"dn": "x", "groups": "ops"}})
