"""Create Porthor components."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass
from typing import Self

import structlog
from httpx import AsyncClient
from safir.dependencies.http_client import http_client_dependency
from safir.slack.webhook import SlackWebhookClient
from structlog.stdlib import BoundLogger

from .config import Config
from .services.consent import ConsentService
from .services.login import LoginService
from .services.logout import LogoutService
from .storage.hydra import HydraStorage
from .storage.ldap import LDAPStorage

__all__ = ["Factory", "ProcessContext"]


@dataclass(frozen=True, slots=True)
class ProcessContext:
    """Per-process application context.

    This object caches all of the per-process singletons that can be reused
    for every request and only need to be recreated if the application
    configuration changes. LDAP connections are deliberately not part of it,
    since each LDAP operation opens and closes its own connection.
    """

    config: Config
    """Porthor's configuration."""

    http_client: AsyncClient
    """Shared HTTP client for the Hydra admin API."""

    @classmethod
    async def from_config(cls, config: Config) -> Self:
        """Create a new process context from the Porthor configuration.

        Parameters
        ----------
        config
            The Porthor configuration.

        Returns
        -------
        ProcessContext
            Shared context for a Porthor process.
        """
        return cls(config=config, http_client=await http_client_dependency())

    async def aclose(self) -> None:
        """Clean up a process context.

        Called during shutdown, or before recreating the process context using
        a different configuration.
        """
        await http_client_dependency.aclose()


class Factory:
    """Build Porthor components.

    Uses the contents of a `ProcessContext` to construct the components of the
    application on demand.

    Parameters
    ----------
    context
        Shared process context.
    logger
        Logger to use for errors.
    """

    @classmethod
    @asynccontextmanager
    async def standalone(cls, config: Config) -> AsyncIterator[Self]:
        """Async context manager for Porthor components.

        Intended for command-line tools that run outside of the web
        application.

        Parameters
        ----------
        config
            Porthor configuration.

        Yields
        ------
        Factory
            The factory. Must be used as an async context manager.
        """
        logger = structlog.get_logger("porthor")
        context = await ProcessContext.from_config(config)
        factory = cls(context, logger)
        async with aclosing(factory):
            yield factory

    def __init__(self, context: ProcessContext, logger: BoundLogger) -> None:
        self._context = context
        self._logger = logger

    async def aclose(self) -> None:
        """Shut down the factory.

        After this method is called, the factory object is no longer valid and
        must not be used.
        """
        await self._context.aclose()

    def create_consent_service(self) -> ConsentService:
        """Create a service for handling consent challenges.

        Returns
        -------
        ConsentService
            Newly-created consent service.
        """
        return ConsentService(
            config=self._context.config.oauth,
            ldap=self.create_ldap_storage(),
            hydra=self.create_hydra_storage(),
            logger=self._logger,
        )

    def create_hydra_storage(self) -> HydraStorage:
        """Create a client for the Hydra admin API.

        Returns
        -------
        HydraStorage
            Newly-created Hydra storage layer.
        """
        return HydraStorage(
            config=self._context.config.hydra,
            http_client=self._context.http_client,
            logger=self._logger,
        )

    def create_ldap_storage(self) -> LDAPStorage:
        """Create the LDAP storage layer.

        Returns
        -------
        LDAPStorage
            Newly-created LDAP storage layer.
        """
        return LDAPStorage(self._context.config.ldap, self._logger)

    def create_login_service(self) -> LoginService:
        """Create a service for handling login challenges.

        Returns
        -------
        LoginService
            Newly-created login service.
        """
        return LoginService(
            config=self._context.config.oauth,
            ldap=self.create_ldap_storage(),
            hydra=self.create_hydra_storage(),
            logger=self._logger,
        )

    def create_logout_service(self) -> LogoutService:
        """Create a service for handling logout challenges.

        Returns
        -------
        LogoutService
            Newly-created logout service.
        """
        return LogoutService(
            hydra=self.create_hydra_storage(), logger=self._logger
        )

    def create_slack_client(self) -> SlackWebhookClient | None:
        """Create a client for sending messages to Slack.

        Returns
        -------
        safir.slack.webhook.SlackWebhookClient or None
            Configured Slack client if Slack alerts are enabled, otherwise
            `None`.
        """
        config = self._context.config
        if not config.slack_alerts or not config.slack_webhook:
            return None
        webhook = config.slack_webhook.get_secret_value()
        return SlackWebhookClient(webhook, "Porthor", self._logger)

    def set_logger(self, logger: BoundLogger) -> None:
        """Replace the internal logger.

        Used by the context dependency to update the logger for all
        newly-created components when it's rebound with additional context.

        Parameters
        ----------
        logger
            New logger.
        """
        self._logger = logger
