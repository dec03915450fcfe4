"""Login challenge handlers (``/login``)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Form, Query, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from safir.slack.webhook import SlackRouteErrorHandler

from ..constants import INVALID_LOGIN_MESSAGE
from ..dependencies.context import RequestContext, context_dependency
from ..exceptions import (
    HydraError,
    InvalidCredentialsError,
    LDAPError,
    MissingChallengeError,
    UserNotFoundError,
)
from ..templates import templates
from .util import NO_CACHE_HEADERS, FlowError, error_system

router = APIRouter(route_class=SlackRouteErrorHandler)

__all__ = ["router"]


@router.get(
    "/login",
    description=(
        "Hydra redirects the user here to start a login. If Hydra already"
        " knows the user, the login is accepted immediately and the user is"
        " sent back to Hydra. Otherwise the login form is shown."
    ),
    response_class=HTMLResponse,
    responses={
        303: {"description": "Login accepted, redirect to Hydra"},
        404: {"description": "No login challenge"},
        500: {
            "content": {"text/html": {}},
            "description": "Internal error",
        },
    },
    summary="Start login",
    tags=["browser"],
)
async def get_login(
    *,
    login_challenge: Annotated[
        str, Query(title="Login challenge", description="From Hydra")
    ] = "",
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> Response:
    if not login_challenge:
        msg = "No login challenge"
        raise MissingChallengeError(msg, "login_challenge")
    context.rebind_logger(login_challenge=login_challenge)
    login_service = context.factory.create_login_service()
    try:
        redirect = await login_service.start_login(login_challenge)
    except HydraError as e:
        return await error_system(context, FlowError.HYDRA_FAILED, e)
    if redirect:
        return RedirectResponse(redirect, status.HTTP_303_SEE_OTHER)
    return _login_form(context)


@router.post(
    "/login",
    description=(
        "Check the login and password against LDAP. On success, the login"
        " is accepted and the user is sent back to Hydra. On failure, the"
        " login form is shown again with an error message."
    ),
    response_class=HTMLResponse,
    responses={
        303: {"description": "Login accepted, redirect to Hydra"},
        404: {"description": "No login challenge"},
        500: {
            "content": {"text/html": {}},
            "description": "Internal error",
        },
    },
    summary="Log in",
    tags=["browser"],
)
async def post_login(
    *,
    login_challenge: Annotated[
        str, Query(title="Login challenge", description="From Hydra")
    ] = "",
    login: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    remember: Annotated[bool, Form()] = False,
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> Response:
    if not login_challenge:
        msg = "No login challenge"
        raise MissingChallengeError(msg, "login_challenge")
    context.rebind_logger(login_challenge=login_challenge, login=login)
    login_service = context.factory.create_login_service()
    try:
        redirect = await login_service.login(
            login_challenge, login, password, remember=remember
        )
    except (InvalidCredentialsError, UserNotFoundError) as e:
        context.logger.info("Login failed", error=str(e))
        return _login_form(context, login, INVALID_LOGIN_MESSAGE)
    except LDAPError as e:
        return await error_system(context, FlowError.LDAP_FAILED, e)
    except HydraError as e:
        return await error_system(context, FlowError.HYDRA_FAILED, e)
    return RedirectResponse(redirect, status.HTTP_303_SEE_OTHER)


def _login_form(
    context: RequestContext, login: str = "", form_error: str | None = None
) -> Response:
    """Render the login form, optionally with an error message."""
    return templates.TemplateResponse(
        context.request,
        "login.html",
        context={
            "login": login,
            "form_error": form_error,
        },
        headers=NO_CACHE_HEADERS,
    )
