"""Logout handlers (``/logout``, ``/post-logout``, and ``/error``)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from safir.slack.webhook import SlackRouteErrorHandler

from ..dependencies.context import RequestContext, context_dependency
from ..exceptions import HydraError, MissingChallengeError
from ..templates import templates
from .util import NO_CACHE_HEADERS, FlowError, error_system

router = APIRouter(route_class=SlackRouteErrorHandler)

__all__ = ["router"]


@router.get(
    "/logout",
    description=(
        "Hydra redirects the user here to end their session. Logouts are"
        " always accepted."
    ),
    responses={
        303: {"description": "Logout accepted, redirect to Hydra"},
        404: {"description": "No logout challenge"},
        500: {
            "content": {"text/html": {}},
            "description": "Internal error",
        },
    },
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Log out",
    tags=["browser"],
)
async def get_logout(
    *,
    logout_challenge: Annotated[
        str, Query(title="Logout challenge", description="From Hydra")
    ] = "",
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> Response:
    if not logout_challenge:
        msg = "No logout challenge"
        raise MissingChallengeError(msg, "logout_challenge")
    context.rebind_logger(logout_challenge=logout_challenge)
    logout_service = context.factory.create_logout_service()
    try:
        redirect = await logout_service.logout(logout_challenge)
    except HydraError as e:
        return await error_system(context, FlowError.HYDRA_FAILED, e)
    return RedirectResponse(redirect, status.HTTP_303_SEE_OTHER)


@router.get(
    "/post-logout",
    description="Page shown once Hydra has completed a logout",
    response_class=HTMLResponse,
    summary="Logged out",
    tags=["browser"],
)
async def get_post_logout(
    *,
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> Response:
    return templates.TemplateResponse(
        context.request, "post-logout.html", headers=NO_CACHE_HEADERS
    )


@router.get(
    "/error",
    description=(
        "Hydra redirects the user here when an OAuth flow fails. The error"
        " reported by Hydra is shown to the user."
    ),
    response_class=HTMLResponse,
    summary="OAuth error",
    tags=["browser"],
)
async def get_error(
    *,
    error: Annotated[str, Query(title="Error code")] = "",
    error_description: Annotated[
        str, Query(title="Error description")
    ] = "",
    error_hint: Annotated[str, Query(title="Error hint")] = "",
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> Response:
    context.logger.info(
        "Hydra reported an error",
        hydra_error=error,
        hydra_error_description=error_description,
    )
    return templates.TemplateResponse(
        context.request,
        "error.html",
        context={
            "name": error,
            "description": error_description,
            "hint": error_hint,
            "error_footer": context.config.error_footer,
        },
        headers=NO_CACHE_HEADERS,
    )
