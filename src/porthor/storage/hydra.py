"""ORY Hydra admin API storage layer for Porthor."""

from __future__ import annotations

from typing import Any, TypeVar

from httpx import AsyncClient, HTTPError
from pydantic import BaseModel, ValidationError
from structlog.stdlib import BoundLogger

from ..config import HydraConfig
from ..exceptions import HydraError, HydraWebError
from ..models.hydra import (
    AcceptConsentRequest,
    AcceptLoginRequest,
    CompletedRequest,
    ConsentRequest,
    LoginRequest,
)

__all__ = ["HydraStorage"]

T = TypeVar("T", bound=BaseModel)


class HydraStorage:
    """Talk to the ORY Hydra admin API.

    Each call is a single request. Failures are never retried.

    Parameters
    ----------
    config
        Hydra configuration.
    http_client
        HTTP client to use.
    logger
        Logger to use.
    """

    def __init__(
        self,
        *,
        config: HydraConfig,
        http_client: AsyncClient,
        logger: BoundLogger,
    ) -> None:
        self._base_url = str(config.admin_url).rstrip("/")
        self._http_client = http_client
        self._logger = logger

    async def accept_consent_request(
        self, challenge: str, accept: AcceptConsentRequest
    ) -> CompletedRequest:
        """Accept a consent request.

        Parameters
        ----------
        challenge
            Consent challenge.
        accept
            Scopes, audiences, and claims to grant.

        Returns
        -------
        CompletedRequest
            Where to send the user next.

        Raises
        ------
        HydraError
            Raised if the response from Hydra was invalid.
        HydraWebError
            Raised if the HTTP request to Hydra failed.
        """
        r = await self._put(
            "consent", {"consent_challenge": challenge}, accept
        )
        return self._parse(CompletedRequest, r)

    async def accept_login_request(
        self, challenge: str, accept: AcceptLoginRequest
    ) -> CompletedRequest:
        """Accept a login request.

        Parameters
        ----------
        challenge
            Login challenge.
        accept
            Subject, context, and remember settings for the login.

        Returns
        -------
        CompletedRequest
            Where to send the user next.

        Raises
        ------
        HydraError
            Raised if the response from Hydra was invalid.
        HydraWebError
            Raised if the HTTP request to Hydra failed.
        """
        r = await self._put("login", {"login_challenge": challenge}, accept)
        return self._parse(CompletedRequest, r)

    async def accept_logout_request(self, challenge: str) -> CompletedRequest:
        """Accept a logout request.

        Parameters
        ----------
        challenge
            Logout challenge.

        Returns
        -------
        CompletedRequest
            Where to send the user next.

        Raises
        ------
        HydraError
            Raised if the response from Hydra was invalid.
        HydraWebError
            Raised if the HTTP request to Hydra failed.
        """
        r = await self._put("logout", {"logout_challenge": challenge})
        return self._parse(CompletedRequest, r)

    async def get_consent_request(self, challenge: str) -> ConsentRequest:
        """Retrieve a pending consent request.

        Parameters
        ----------
        challenge
            Consent challenge.

        Returns
        -------
        ConsentRequest
            Details of the consent request.

        Raises
        ------
        HydraError
            Raised if the response from Hydra was invalid.
        HydraWebError
            Raised if the HTTP request to Hydra failed.
        """
        r = await self._get("consent", {"consent_challenge": challenge})
        return self._parse(ConsentRequest, r)

    async def get_login_request(self, challenge: str) -> LoginRequest:
        """Retrieve a pending login request.

        Parameters
        ----------
        challenge
            Login challenge.

        Returns
        -------
        LoginRequest
            Details of the login request.

        Raises
        ------
        HydraError
            Raised if the response from Hydra was invalid.
        HydraWebError
            Raised if the HTTP request to Hydra failed.
        """
        r = await self._get("login", {"login_challenge": challenge})
        return self._parse(LoginRequest, r)

    async def _get(self, flow: str, params: dict[str, str]) -> Any:
        """Retrieve a pending request from Hydra and return the JSON."""
        url = self._url(flow)
        try:
            r = await self._http_client.get(url, params=params)
            r.raise_for_status()
            result = r.json()
        except HTTPError as e:
            raise HydraWebError.from_exception(e) from e
        except ValueError as e:
            raise HydraError(f"Hydra returned invalid JSON: {e!s}") from e
        self._logger.debug(f"Retrieved {flow} request", hydra_data=result)
        return result

    def _parse(self, model: type[T], data: Any) -> T:
        """Parse a Hydra response, converting errors to `HydraError`."""
        try:
            return model.model_validate(data)
        except ValidationError as e:
            name = model.__name__
            self._logger.debug(f"Invalid {name} from Hydra", hydra_data=data)
            msg = f"Hydra returned invalid {name}: {e!s}"
            raise HydraError(msg) from e

    async def _put(
        self,
        flow: str,
        params: dict[str, str],
        body: BaseModel | None = None,
    ) -> Any:
        """Send an accept request to Hydra and return the JSON response."""
        url = self._url(flow) + "/accept"
        json = body.model_dump(mode="json", exclude_none=True) if body else {}
        try:
            r = await self._http_client.put(url, params=params, json=json)
            r.raise_for_status()
            result = r.json()
        except HTTPError as e:
            raise HydraWebError.from_exception(e) from e
        except ValueError as e:
            raise HydraError(f"Hydra returned invalid JSON: {e!s}") from e
        self._logger.debug(f"Accepted {flow} request", hydra_url=url)
        return result

    def _url(self, flow: str) -> str:
        return f"{self._base_url}/admin/oauth2/auth/requests/{flow}"
