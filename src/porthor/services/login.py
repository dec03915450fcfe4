"""Handling of Hydra login challenges."""

from __future__ import annotations

from structlog.stdlib import BoundLogger

from ..config import OAuthConfig
from ..exceptions import InvalidCredentialsError, MissingSubjectError
from ..models.hydra import AcceptLoginRequest
from ..models.ldap import UserRecord
from ..storage.hydra import HydraStorage
from ..storage.ldap import LDAPStorage

__all__ = ["LoginService"]


class LoginService:
    """Authenticate users against LDAP and accept Hydra login requests.

    Parameters
    ----------
    config
        Configuration for the OAuth subject and login lifetime.
    ldap
        LDAP storage layer.
    hydra
        Hydra admin API storage layer.
    logger
        Logger to use.
    """

    def __init__(
        self,
        *,
        config: OAuthConfig,
        ldap: LDAPStorage,
        hydra: HydraStorage,
        logger: BoundLogger,
    ) -> None:
        self._config = config
        self._ldap = ldap
        self._hydra = hydra
        self._logger = logger

    async def login(
        self, challenge: str, login: str, password: str, *, remember: bool
    ) -> str:
        """Authenticate a user and accept the login request.

        Parameters
        ----------
        challenge
            Login challenge from Hydra.
        login
            Login provided by the user.
        password
            Password provided by the user.
        remember
            Whether the user asked for the login to be remembered.

        Returns
        -------
        str
            URL to which to redirect the user.

        Raises
        ------
        HydraError
            Raised if accepting the login request failed.
        InvalidCredentialsError
            Raised if the password was empty or rejected by LDAP.
        LDAPError
            Raised if LDAP could not be queried or the user entry has no
            subject attribute.
        UserNotFoundError
            Raised if no LDAP entry matches the login.
        """
        # A simple bind with an empty password is an unauthenticated bind,
        # which LDAP servers accept.
        if not password:
            raise InvalidCredentialsError("Empty password")

        user = await self._ldap.find_user(login, self._config.ldap_attributes)
        if not await self._ldap.validate_credentials(user.dn, password):
            raise InvalidCredentialsError(f"Invalid password for {user.dn}")

        subject = self._get_subject(login, user)
        accept = AcceptLoginRequest(
            subject=subject,
            context=user.to_context(),
            remember=remember,
            remember_for=self._config.login_remember_seconds,
        )
        result = await self._hydra.accept_login_request(challenge, accept)
        self._logger.info(
            "Accepted login request", subject=subject, remember=remember
        )
        return result.redirect_to

    async def start_login(self, challenge: str) -> str | None:
        """Start processing a login request.

        If Hydra already knows the user, the login request is accepted
        immediately with the previously established subject and the context
        stored with it.

        Parameters
        ----------
        challenge
            Login challenge from Hydra.

        Returns
        -------
        str or None
            URL to which to redirect the user if the login was accepted
            without prompting, or `None` if the user must log in.

        Raises
        ------
        HydraError
            Raised if retrieving or accepting the login request failed.
        """
        request = await self._hydra.get_login_request(challenge)
        if not request.skip:
            return None
        accept = AcceptLoginRequest(
            subject=request.subject, context=request.context
        )
        result = await self._hydra.accept_login_request(challenge, accept)
        self._logger.info(
            "Accepted login request without prompting",
            subject=request.subject,
        )
        return result.redirect_to

    def _get_subject(self, login: str, user: UserRecord) -> str:
        """Determine the OAuth subject for an authenticated user.

        Raises
        ------
        MissingSubjectError
            Raised if the user entry has no value for the subject attribute.
        """
        attr = self._config.subject_attr
        if not attr:
            return login
        for name, value in user.attributes.items():
            if name.lower() == attr.lower() and value:
                return value
        msg = f"LDAP entry {user.dn} has no {attr} attribute"
        raise MissingSubjectError(msg, login)
