"""Consent challenge handler (``/consent``)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse, Response
from safir.slack.webhook import SlackRouteErrorHandler

from ..dependencies.context import RequestContext, context_dependency
from ..exceptions import (
    HydraError,
    InvalidConsentContextError,
    LDAPError,
    MissingChallengeError,
    UserNotFoundError,
)
from .util import FlowError, error_system

router = APIRouter(route_class=SlackRouteErrorHandler)

__all__ = ["router"]


@router.get(
    "/consent",
    description=(
        "Hydra redirects the user here after login. There is no consent"
        " screen: the requested scopes and audiences are always granted and"
        " the ID token claims are built from the user's LDAP attributes."
    ),
    responses={
        303: {"description": "Consent granted, redirect to Hydra"},
        404: {"description": "No consent challenge"},
        500: {
            "content": {"text/html": {}},
            "description": "Internal error",
        },
    },
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Grant consent",
    tags=["browser"],
)
async def get_consent(
    *,
    consent_challenge: Annotated[
        str, Query(title="Consent challenge", description="From Hydra")
    ] = "",
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> Response:
    if not consent_challenge:
        msg = "No consent challenge"
        raise MissingChallengeError(msg, "consent_challenge")
    context.rebind_logger(consent_challenge=consent_challenge)
    consent_service = context.factory.create_consent_service()
    try:
        redirect = await consent_service.consent(consent_challenge)
    except UserNotFoundError as e:
        return await error_system(context, FlowError.USER_MISSING, e)
    except InvalidConsentContextError as e:
        return await error_system(context, FlowError.CONTEXT_INVALID, e)
    except LDAPError as e:
        return await error_system(context, FlowError.LDAP_FAILED, e)
    except HydraError as e:
        return await error_system(context, FlowError.HYDRA_FAILED, e)
    return RedirectResponse(redirect, status.HTTP_303_SEE_OTHER)
