"""Handlers for internal routes not exposed outside the cluster."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from safir.metadata import Metadata, get_metadata
from safir.slack.webhook import SlackRouteErrorHandler

from ..dependencies.context import RequestContext, context_dependency
from ..exceptions import LDAPError
from ..models.health import HealthCheck, HealthStatus

router = APIRouter(route_class=SlackRouteErrorHandler)

__all__ = ["router"]


@router.get(
    "/",
    description=(
        "Return metadata about the running application. This route is not"
        " exposed outside the cluster and therefore cannot be used by"
        " external clients."
    ),
    response_model=Metadata,
    response_model_exclude_none=True,
    summary="Application metadata",
    tags=["internal"],
)
async def get_index() -> Metadata:
    return get_metadata(package_name="porthor", application_name="porthor")


@router.get(
    "/health",
    description=(
        "Check that the LDAP server is reachable and accepts the service"
        " credentials"
    ),
    response_model=HealthCheck,
    responses={500: {"description": "LDAP service bind failed"}},
    summary="Health check",
    tags=["internal"],
)
async def get_health(
    *,
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> HealthCheck:
    ldap_storage = context.factory.create_ldap_storage()
    try:
        await ldap_storage.check()
    except LDAPError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=[{"msg": str(e), "type": "ldap_unavailable"}],
        ) from e
    ldap_url = str(context.config.ldap.url)
    return HealthCheck(status=HealthStatus.HEALTHY, ldap_url=ldap_url)


@router.get(
    "/health/live",
    description="Liveness probe that succeeds while the process is running",
    summary="Liveness probe",
    tags=["internal"],
)
async def get_live() -> dict[str, str]:
    return {"status": HealthStatus.HEALTHY}


@router.get(
    "/health/ready",
    description="Readiness probe, which does not check LDAP",
    summary="Readiness probe",
    tags=["internal"],
)
async def get_ready() -> dict[str, str]:
    return {"status": HealthStatus.HEALTHY}
