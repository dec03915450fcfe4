"""Application definition for Porthor."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version

import structlog
from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from safir.dependencies.http_client import http_client_dependency
from safir.fastapi import ClientRequestError, client_request_error_handler
from safir.logging import configure_uvicorn_logging
from safir.middleware.x_forwarded import XForwardedMiddleware
from safir.models import ErrorModel
from safir.slack.webhook import SlackRouteErrorHandler

from .dependencies.config import config_dependency
from .dependencies.context import context_dependency
from .handlers import consent, internal, login, logout
from .handlers.util import internal_error_handler

__all__ = ["create_app", "create_openapi"]


def create_app(*, load_config: bool = True) -> FastAPI:
    """Create the FastAPI application.

    This is in a function rather than using a global variable because the
    route prefix and the middleware depend on configuration settings, so the
    application is recreated between tests.

    Parameters
    ----------
    load_config
        If set to `False`, do not try to load the configuration. Routes are
        mounted at the root and no middleware is installed. This is used for
        OpenAPI schema generation, where constructing the app is required but
        the configuration won't matter.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        config = config_dependency.config()
        await context_dependency.initialize(config)

        yield

        await context_dependency.aclose()
        await http_client_dependency.aclose()

    app = FastAPI(
        title="Porthor",
        description=(
            "Porthor is a FastAPI application that handles the login, consent,"
            " and logout challenges of ORY Hydra by authenticating users"
            " against an LDAP directory."
        ),
        version=version("porthor"),
        tags_metadata=[
            {
                "name": "browser",
                "description": "Routes intended for use from a web browser.",
            },
            {
                "name": "internal",
                "description": "Internal routes used by health checks.",
            },
        ],
        lifespan=lifespan,
    )

    # Load configuration if it is available to us and configure Uvicorn
    # logging.
    config = None
    prefix = ""
    if load_config:
        config = config_dependency.config()
        prefix = config.path_prefix
        configure_uvicorn_logging(config.log_level)

    # Add all of the routes. Browser routes live below the base path.
    not_found = {404: {"description": "Not found", "model": ErrorModel}}
    app.include_router(internal.router)
    app.include_router(login.router, prefix=prefix, responses=not_found)
    app.include_router(consent.router, prefix=prefix, responses=not_found)
    app.include_router(logout.router, prefix=prefix, responses=not_found)

    # Install the middleware.
    if config and config.proxies:
        app.add_middleware(XForwardedMiddleware, proxies=config.proxies)

    # Configure Slack alerts.
    if config and config.slack_alerts and config.slack_webhook:
        logger = structlog.get_logger("porthor")
        webhook = config.slack_webhook.get_secret_value()
        SlackRouteErrorHandler.initialize(webhook, "Porthor", logger)
        logger.debug("Initialized Slack webhook")

    # Handle exceptions descended from ClientRequestError.
    app.exception_handler(ClientRequestError)(client_request_error_handler)

    # Show an HTML error page rather than plain text for uncaught errors.
    app.exception_handler(Exception)(internal_error_handler)

    return app


def create_openapi() -> str:
    """Generate the OpenAPI schema.

    Returns
    -------
    str
        OpenAPI schema as serialized JSON.
    """
    app = create_app(load_config=False)
    schema = get_openapi(
        title=app.title,
        description=app.description,
        version=app.version,
        routes=app.routes,
    )
    return json.dumps(schema)
