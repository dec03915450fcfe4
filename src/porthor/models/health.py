"""Models for health checks."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

__all__ = ["HealthCheck", "HealthStatus"]


class HealthStatus(StrEnum):
    """Status of a health check.

    Failures are reported as HTTP 500 errors, so only success is modeled.
    """

    HEALTHY = "healthy"


class HealthCheck(BaseModel):
    """Results of an internal health check."""

    status: HealthStatus = Field(..., title="Health status")

    ldap_url: str = Field(
        ...,
        title="LDAP server checked",
        description="URL of the LDAP server the service identity bound to",
    )
