"""Mapping of LDAP attributes onto OAuth claims."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from structlog.stdlib import BoundLogger

from .constants import GROUPS_CLAIM
from .models.ldap import UserRecord

__all__ = ["map_claims"]


def map_claims(
    user: UserRecord,
    attrs_map: Mapping[str, str],
    claims_map: Mapping[str, str],
    requested_scopes: Iterable[str],
    logger: BoundLogger | None = None,
) -> dict[str, Any]:
    """Build the claims to release for a consent request.

    The ``groups`` claim is always included. Every other claim comes from an
    attribute of the user entry and is released only if the attribute is
    mapped to a claim, that claim is mapped to a scope, and that scope was
    requested by the client.

    Parameters
    ----------
    user
        User entry from LDAP.
    attrs_map
        Mapping of LDAP attribute names to claim names.
    claims_map
        Mapping of claim names to the scope that releases them.
    requested_scopes
        Scopes requested by the client.
    logger
        Logger for debug messages about each mapping decision.

    Returns
    -------
    dict
        Claims to add to the ID token.

    Notes
    -----
    Attributes are processed in sorted order by name. If the configuration
    allows two attributes to map to the same claim, the attribute that sorts
    last therefore wins regardless of the order returned by LDAP.
    """
    if not logger:
        logger = structlog.get_logger("porthor")
    scopes = frozenset(requested_scopes)
    claims: dict[str, Any] = {GROUPS_CLAIM: list(user.groups)}
    for attr, value in sorted(user.attributes.items()):
        claim = attrs_map.get(attr)
        if not claim:
            logger.debug("Skipping unmapped attribute", attr=attr)
            continue
        scope = claims_map.get(claim)
        if not scope:
            logger.debug("Skipping claim not mapped to a scope", claim=claim)
            continue
        if scope not in scopes:
            msg = "Skipping claim for scope not requested"
            logger.debug(msg, claim=claim, scope=scope)
            continue
        logger.debug("Releasing claim", attr=attr, claim=claim, scope=scope)
        claims[claim] = value
    return claims
