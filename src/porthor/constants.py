"""Constants for Porthor."""

__all__ = [
    "CONFIG_PATH",
    "DEFAULT_ATTRS_MAP",
    "DEFAULT_CLAIMS_MAP",
    "DEFAULT_GROUP_FILTER",
    "DEFAULT_USER_FILTER",
    "GROUPS_CLAIM",
    "INVALID_LOGIN_MESSAGE",
    "LOGIN_PLACEHOLDER",
    "USER_DN_PLACEHOLDER",
]

CONFIG_PATH = "/etc/porthor/porthor.yaml"
"""Default configuration path."""

DEFAULT_ATTRS_MAP = {
    "cn": "name",
    "sn": "family_name",
    "givenName": "given_name",
    "mail": "email",
}
"""Default mapping of LDAP attribute names to OAuth claim names."""

DEFAULT_CLAIMS_MAP = {
    "name": "profile",
    "family_name": "profile",
    "given_name": "profile",
    "email": "email",
}
"""Default mapping of OAuth claim names to the scope that releases them."""

DEFAULT_GROUP_FILTER = "(&(objectClass=groupOfNames)(member={user_dn}))"
"""Default LDAP search filter for the groups of a user."""

DEFAULT_USER_FILTER = (
    "(&(objectClass=inetOrgPerson)(|(uid={login})(mail={login})))"
)
"""Default LDAP search filter for users."""

GROUPS_CLAIM = "groups"
"""Name of the claim holding group membership, released for every scope."""

INVALID_LOGIN_MESSAGE = "Invalid login or password."
"""Form error shown for any credential failure, including unknown users."""

LOGIN_PLACEHOLDER = "{login}"
"""Placeholder in the user search filter replaced by the login."""

USER_DN_PLACEHOLDER = "{user_dn}"
"""Placeholder in the group search filter replaced by the user DN."""
