"""Handling of Hydra consent challenges."""

from __future__ import annotations

from structlog.stdlib import BoundLogger

from ..claims import map_claims
from ..config import OAuthConfig
from ..exceptions import InvalidConsentContextError
from ..models.hydra import AcceptConsentRequest, ConsentRequest, ConsentSession
from ..models.ldap import UserRecord
from ..storage.hydra import HydraStorage
from ..storage.ldap import LDAPStorage

__all__ = ["ConsentService"]


class ConsentService:
    """Grant consent requests with claims built from LDAP attributes.

    Porthor has no consent screen. Every consent request is granted for the
    requested scopes and audiences, and the consent is remembered forever.

    Parameters
    ----------
    config
        Configuration for mapping attributes to claims.
    ldap
        LDAP storage layer, used if the login context has no attributes.
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

    async def consent(self, challenge: str) -> str:
        """Grant a consent request.

        Parameters
        ----------
        challenge
            Consent challenge from Hydra.

        Returns
        -------
        str
            URL to which to redirect the user.

        Raises
        ------
        HydraError
            Raised if retrieving or accepting the consent request failed.
        InvalidConsentContextError
            Raised if the user attributes could not be recovered.
        LDAPError
            Raised if the attributes had to be retrieved from LDAP and that
            failed.
        UserNotFoundError
            Raised if the attributes had to be retrieved from LDAP and the
            subject no longer exists.
        """
        request = await self._hydra.get_consent_request(challenge)
        logger = self._logger.bind(subject=request.subject)
        user = await self._get_user(request, logger)
        claims = map_claims(
            user,
            self._config.attrs_map,
            self._config.claims_map,
            request.requested_scope,
            logger,
        )
        audience = request.requested_access_token_audience
        accept = AcceptConsentRequest(
            grant_scope=request.requested_scope,
            grant_access_token_audience=audience,
            remember=True,
            remember_for=0,
            session=ConsentSession(id_token=claims),
        )
        result = await self._hydra.accept_consent_request(challenge, accept)
        logger.info(
            "Accepted consent request",
            scopes=request.requested_scope,
            claims=sorted(claims),
        )
        return result.redirect_to

    async def _get_user(
        self, request: ConsentRequest, logger: BoundLogger
    ) -> UserRecord:
        """Recover the user attributes for a consent request.

        Attributes are normally stored in the context at login. If they are
        missing and the subject is the login itself, search LDAP again.
        """
        if request.context and "attrs" in request.context:
            try:
                return UserRecord.from_context(request.context)
            except (KeyError, TypeError, ValueError) as e:
                msg = f"Invalid attrs in consent request context: {e!s}"
                raise InvalidConsentContextError(msg, request.subject) from e
        if self._config.subject_attr:
            msg = "Unable to get attrs from consent request context"
            raise InvalidConsentContextError(msg, request.subject)
        logger.info("No attrs in consent request context, searching LDAP")
        return await self._ldap.find_user(
            request.subject, self._config.ldap_attributes
        )
