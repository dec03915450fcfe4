"""Handling of Hydra logout challenges."""

from __future__ import annotations

from structlog.stdlib import BoundLogger

from ..storage.hydra import HydraStorage

__all__ = ["LogoutService"]


class LogoutService:
    """Accept Hydra logout requests.

    Parameters
    ----------
    hydra
        Hydra admin API storage layer.
    logger
        Logger to use.
    """

    def __init__(self, *, hydra: HydraStorage, logger: BoundLogger) -> None:
        self._hydra = hydra
        self._logger = logger

    async def logout(self, challenge: str) -> str:
        """Accept a logout request unconditionally.

        Parameters
        ----------
        challenge
            Logout challenge from Hydra.

        Returns
        -------
        str
            URL to which to redirect the user.

        Raises
        ------
        HydraError
            Raised if accepting the logout request failed.
        """
        result = await self._hydra.accept_logout_request(challenge)
        self._logger.info("Accepted logout request")
        return result.redirect_to
