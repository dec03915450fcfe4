"""Shared helpers for the browser-facing handlers."""

from __future__ import annotations

from enum import Enum

from fastapi import Request, status
from fastapi.responses import Response
from safir.slack.blockkit import SlackException

from ..dependencies.config import config_dependency
from ..dependencies.context import RequestContext
from ..templates import templates

__all__ = [
    "NO_CACHE_HEADERS",
    "FlowError",
    "error_system",
    "internal_error_handler",
]

NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store"}
"""Headers for pages that must never be cached by the browser."""


class FlowError(Enum):
    """Internal failures of an OAuth flow and their error messages."""

    CONTEXT_INVALID = "Stored login information is missing or invalid"
    HYDRA_FAILED = "Communication with the authorization server failed"
    LDAP_FAILED = "Retrieving data from LDAP failed"
    UNEXPECTED = "An unexpected error occurred"
    USER_MISSING = "User no longer exists in LDAP"


async def error_system(
    context: RequestContext, error: FlowError, exc: Exception
) -> Response:
    """Generate an error page for an internal failure.

    The error is logged and, if it is a Slack-reportable exception and Slack
    alerts are configured, reported to Slack. The user only sees a generic
    message.

    Parameters
    ----------
    context
        Context of the incoming request.
    error
        Type of error.
    exc
        Exception representing the error.

    Returns
    -------
    fastapi.Response
        Response to send back to the user.
    """
    context.logger.error(error.value, error=str(exc))
    if isinstance(exc, SlackException):
        slack_client = context.factory.create_slack_client()
        if slack_client:
            await slack_client.post_exception(exc)
    return templates.TemplateResponse(
        context.request,
        "system-error.html",
        context={
            "error": error,
            "message": error.value,
            "error_footer": context.config.error_footer,
        },
        headers=NO_CACHE_HEADERS,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def internal_error_handler(request: Request, exc: Exception) -> Response:
    """Render an uncaught exception as an HTML error page.

    Starlette still re-raises the exception after sending this response, so
    it is logged by the server and reported to Slack by the route class.
    """
    config = config_dependency.config()
    return templates.TemplateResponse(
        request,
        "system-error.html",
        context={
            "error": FlowError.UNEXPECTED,
            "message": FlowError.UNEXPECTED.value,
            "error_footer": config.error_footer,
        },
        headers=NO_CACHE_HEADERS,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
