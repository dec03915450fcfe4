"""Models for the ORY Hydra admin API.

Only the fields used by Porthor are modeled. Hydra returns many more, which
are ignored.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

__all__ = [
    "AcceptConsentRequest",
    "AcceptLoginRequest",
    "CompletedRequest",
    "ConsentRequest",
    "ConsentSession",
    "LoginRequest",
]


class LoginRequest(BaseModel):
    """A pending login request, as returned by Hydra."""

    challenge: str = Field(..., title="Login challenge")

    skip: bool = Field(
        False,
        title="Whether to skip authentication",
        description=(
            "If true, Hydra has already authenticated the user and the login"
            " request must be accepted with the existing subject"
        ),
    )

    subject: str = Field(
        "",
        title="Subject",
        description="Previously authenticated subject, set if skip is true",
    )

    context: dict[str, Any] | None = Field(
        None,
        title="Stored context",
        description="Context stored with an earlier login, if any",
    )


class AcceptLoginRequest(BaseModel):
    """Body of a request to accept a login request."""

    subject: str = Field(..., title="Authenticated subject")

    context: dict[str, Any] | None = Field(
        None,
        title="Opaque context",
        description="Data passed through by Hydra to the consent request",
    )

    remember: bool | None = Field(
        None,
        title="Remember login",
        description="Whether Hydra should remember this login",
    )

    remember_for: int | None = Field(
        None,
        title="Remember duration",
        description="Seconds to remember the login, with 0 meaning forever",
    )


class ConsentRequest(BaseModel):
    """A pending consent request, as returned by Hydra."""

    challenge: str = Field(..., title="Consent challenge")

    subject: str = Field(..., title="Authenticated subject")

    context: dict[str, Any] | None = Field(
        None,
        title="Login context",
        description="Context stored when the login request was accepted",
    )

    requested_scope: list[str] = Field([], title="Requested scopes")

    requested_access_token_audience: list[str] = Field(
        [], title="Requested access token audiences"
    )

    @field_validator(
        "requested_scope", "requested_access_token_audience", mode="before"
    )
    @classmethod
    def _validate_lists(cls, v: Any) -> Any:
        # Hydra sends null rather than an empty list.
        return [] if v is None else v


class ConsentSession(BaseModel):
    """Session data Hydra adds to the issued tokens."""

    id_token: dict[str, Any] = Field(
        {},
        title="ID token claims",
        description="Additional claims to include in the ID token",
    )


class AcceptConsentRequest(BaseModel):
    """Body of a request to accept a consent request."""

    grant_scope: list[str] = Field(..., title="Granted scopes")

    grant_access_token_audience: list[str] = Field(
        [], title="Granted access token audiences"
    )

    remember: bool | None = Field(None, title="Remember consent")

    remember_for: int | None = Field(
        None,
        title="Remember duration",
        description="Seconds to remember the consent, with 0 meaning forever",
    )

    session: ConsentSession = Field(
        default_factory=ConsentSession, title="Token session data"
    )


class CompletedRequest(BaseModel):
    """Response from Hydra after accepting a request."""

    redirect_to: str = Field(
        ..., title="Redirect URL", description="Where to send the user next"
    )
