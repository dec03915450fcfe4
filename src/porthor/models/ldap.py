"""Data models for LDAP."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Self

from ..constants import GROUPS_CLAIM

__all__ = ["CredentialOutcome", "UserRecord"]


class CredentialOutcome(Enum):
    """Result of a simple bind with user-provided credentials.

    Transport and protocol failures are not outcomes. They are raised as
    `~porthor.exceptions.LDAPTransportError`.
    """

    valid = "valid"
    invalid = "invalid"


@dataclass
class UserRecord:
    """A user entry found in LDAP.

    Built fresh for each login attempt and never persisted, except as part
    of the opaque context stored by Hydra for the duration of the OAuth
    flow.
    """

    dn: str
    """Distinguished name of the user entry."""

    attributes: dict[str, str] = field(default_factory=dict)
    """Attributes of the entry.

    Multi-valued attributes are joined with commas into a single string.
    """

    groups: list[str] = field(default_factory=list)
    """Names of the groups of which the user is a member."""

    @classmethod
    def from_context(cls, context: dict[str, Any]) -> Self:
        """Recover a user record from a Hydra login context.

        Parameters
        ----------
        context
            Context stored in Hydra when accepting the login request.

        Returns
        -------
        UserRecord
            Recovered user record.

        Raises
        ------
        KeyError
            Raised if the context does not hold user attributes.
        ValueError
            Raised if the stored attributes are malformed.
        """
        attrs = dict(context["attrs"])
        dn = attrs.pop("dn")
        groups = attrs.pop(GROUPS_CLAIM, [])
        if not isinstance(dn, str) or not isinstance(groups, list):
            raise ValueError("Malformed user attributes in context")
        attributes = {k: str(v) for k, v in attrs.items()}
        return cls(dn=dn, attributes=attributes, groups=list(groups))

    def to_context(self) -> dict[str, Any]:
        """Serialize the user record as Hydra login context.

        The DN and groups are stored alongside the attributes under the
        ``attrs`` key.

        Returns
        -------
        dict
            Context to pass to Hydra when accepting the login request.
        """
        attrs: dict[str, Any] = dict(self.attributes)
        attrs["dn"] = self.dn
        attrs[GROUPS_CLAIM] = list(self.groups)
        return {"attrs": attrs}
