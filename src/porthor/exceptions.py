"""Exceptions for Porthor."""

from __future__ import annotations

from fastapi import status
from safir.fastapi import ClientRequestError
from safir.models import ErrorLocation
from safir.slack.blockkit import SlackException, SlackWebException

__all__ = [
    "AmbiguousUserError",
    "HydraError",
    "HydraWebError",
    "InputValidationError",
    "InvalidConsentContextError",
    "InvalidCredentialsError",
    "LDAPError",
    "LDAPTransportError",
    "MissingChallengeError",
    "MissingSubjectError",
    "UserNotFoundError",
]


class InputValidationError(ClientRequestError):
    """Represents an input validation error.

    This is a thin wrapper around `~safir.fastapi.ClientRequestError` so that
    all client errors raised by Porthor share a common base class.
    """


class MissingChallengeError(InputValidationError):
    """The challenge parameter from Hydra was missing or empty."""

    error = "missing_challenge"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str, field: str) -> None:
        super().__init__(message, ErrorLocation.query, [field])


class InvalidCredentialsError(Exception):
    """The directory rejected the password for a user.

    This is an expected outcome of a login attempt and is never reported as
    an error.
    """


class UserNotFoundError(Exception):
    """No directory entry matched the login.

    Presented to the user exactly like `InvalidCredentialsError` so that the
    existence of an account cannot be probed.

    Parameters
    ----------
    login
        Login that was not found.
    """

    def __init__(self, login: str) -> None:
        super().__init__(f"Cannot find user {login}")
        self.login = login


class LDAPError(SlackException):
    """User or group information in LDAP was invalid or LDAP calls failed."""


class LDAPTransportError(LDAPError):
    """The LDAP server could not be reached or returned an error.

    Also raised when the service identity cannot bind, since that is an
    operational misconfiguration and not a statement about the user.
    """


class AmbiguousUserError(LDAPError):
    """More than one LDAP entry matched a login and ambiguity is rejected."""


class MissingSubjectError(LDAPError):
    """The user entry has no value for the configured subject attribute."""


class HydraError(SlackException):
    """The Hydra admin API returned an invalid response."""


class HydraWebError(SlackWebException, HydraError):
    """An HTTP error occurred talking to the Hydra admin API."""


class InvalidConsentContextError(HydraError):
    """A consent request carries no usable user attributes.

    Raised when the login context does not contain the attributes stored at
    login time and they cannot be recovered from the subject.
    """
