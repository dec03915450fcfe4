"""Configuration for Porthor.

Porthor is primarily configured by a YAML file. Secrets may instead be
injected via environment variables, which take precedence over the file.
Only the settings with explicit ``validation_alias`` settings are intended
to be set via environment variable.

All configuration is read once at startup and treated as immutable
afterwards. It is passed explicitly to each component through the process
context rather than read from globals.
"""

from __future__ import annotations

from collections import Counter
from datetime import timedelta
from ipaddress import IPv4Network, IPv6Network
from pathlib import Path
from typing import Annotated, Any, Self

import yaml
from pydantic import (
    AliasChoices,
    Field,
    HttpUrl,
    SecretStr,
    UrlConstraints,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import Url
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from safir.logging import LogLevel, Profile, configure_logging
from safir.pydantic import HumanTimedelta
from typing_extensions import override

from .constants import (
    DEFAULT_ATTRS_MAP,
    DEFAULT_CLAIMS_MAP,
    DEFAULT_GROUP_FILTER,
    DEFAULT_USER_FILTER,
    GROUPS_CLAIM,
)
from .util import parse_key_value_map

LdapDsn = Annotated[
    Url, UrlConstraints(allowed_schemes=["ldap", "ldaps"], host_required=True)
]
"""DSN for connecting to an LDAP server."""

__all__ = [
    "CamelCaseSettings",
    "Config",
    "EnvFirstSettings",
    "HydraConfig",
    "LDAPConfig",
    "LdapDsn",
    "OAuthConfig",
]


class CamelCaseSettings(BaseSettings):
    """Base class for Pydantic settings supporting camel-case.

    This base class also forbids all extra attributes. It should be used as
    the base class (possibly indirectly) for all Porthor configuration
    models.
    """

    model_config = SettingsConfigDict(
        alias_generator=to_camel,
        extra="forbid",
        frozen=True,
        populate_by_name=True,
    )


class EnvFirstSettings(CamelCaseSettings):
    """Base class for Pydantic settings with environment overrides.

    Classes that inherit from this base class will prioritize environment
    variables over arguments to the class constructor.
    """

    @override
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Override the sources of settings.

        Deactivate :file:`.env` and secret file support. Allow environment
        variables to override init parameters, since init parameters come
        from the YAML configuration file and we want environment variables
        to take precedent.
        """
        return (env_settings, init_settings)


class HydraConfig(EnvFirstSettings):
    """Configuration for talking to the ORY Hydra admin API."""

    admin_url: HttpUrl = Field(
        ...,
        title="Hydra admin URL",
        description=(
            "Base URL of the Hydra admin API, without the ``/admin`` path"
            " component"
        ),
        examples=["http://hydra-admin.hydra.svc.cluster.local:4445"],
        validation_alias=AliasChoices("PORTHOR_HYDRA_ADMIN_URL", "adminUrl"),
    )


class LDAPConfig(EnvFirstSettings):
    """Configuration for LDAP authentication and user lookups."""

    url: LdapDsn = Field(
        ...,
        title="LDAP server URL",
        description="URL of the LDAP server",
        examples=["ldap://ldap.example.org:389"],
    )

    bind_dn: str = Field(
        ...,
        title="Service bind DN",
        description=(
            "DN to bind as with simple bind when searching for users and"
            " groups"
        ),
    )

    bind_password: SecretStr = Field(
        ...,
        title="Service bind password",
        description="Password for the service bind DN",
        validation_alias=AliasChoices(
            "PORTHOR_LDAP_BIND_PASSWORD", "bindPassword"
        ),
    )

    user_base_dn: str = Field(
        ...,
        title="Base DN for user lookups",
        description="Base DN of the subtree search for user entries",
    )

    user_filter: str = Field(
        DEFAULT_USER_FILTER,
        title="Search filter for users",
        description=(
            "The special string ``{login}`` will be replaced by the login"
            " provided by the user, escaped for use in a search filter"
        ),
    )

    group_base_dn: str | None = Field(
        None,
        title="Base DN for group lookups",
        description=(
            "Base DN of the subtree search for the groups of a user. If not"
            " set, group membership is not looked up and the ``groups`` claim"
            " is always empty."
        ),
    )

    group_filter: str = Field(
        DEFAULT_GROUP_FILTER,
        title="Search filter for groups",
        description=(
            "The special string ``{user_dn}`` will be replaced by the DN of"
            " the user entry"
        ),
    )

    group_name_attr: str = Field(
        "cn",
        title="Group name attribute",
        description="Attribute of group entries holding the group name",
    )

    reject_ambiguous_users: bool = Field(
        False,
        title="Reject logins matching multiple entries",
        description=(
            "If set to true, a login matching more than one user entry is"
            " treated as an error. Otherwise the first entry returned by the"
            " server is used."
        ),
    )


class OAuthConfig(EnvFirstSettings):
    """Configuration for mapping LDAP data onto OAuth claims."""

    attrs_map: dict[str, str] = Field(
        DEFAULT_ATTRS_MAP,
        title="Attribute to claim mapping",
        description=(
            "Mapping of LDAP attribute names to OAuth claim names. May also"
            " be given as comma-separated ``attribute:claim`` pairs."
        ),
    )

    claims_map: dict[str, str] = Field(
        DEFAULT_CLAIMS_MAP,
        title="Claim to scope mapping",
        description=(
            "Mapping of OAuth claim names to the scope that must be requested"
            " for the claim to be released. May also be given as"
            " comma-separated ``claim:scope`` pairs."
        ),
    )

    subject_attr: str | None = Field(
        "entryUUID",
        title="Subject attribute",
        description=(
            "LDAP attribute whose value becomes the OAuth subject. If set to"
            " null, the login provided by the user is used as the subject."
        ),
    )

    login_remember_for: HumanTimedelta = Field(
        timedelta(seconds=0),
        title="Login remember duration",
        description=(
            "How long a successful login should be remembered if the user"
            " asks for it. Zero means until the browser session ends."
        ),
    )

    allow_claim_collisions: bool = Field(
        False,
        title="Allow claim collisions",
        description=(
            "Whether to allow several attributes to map to the same claim."
            " If allowed, the attribute that sorts last wins."
        ),
    )

    @field_validator("attrs_map", "claims_map", mode="before")
    @classmethod
    def _validate_map(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_key_value_map(v)
        return v

    @field_validator("login_remember_for")
    @classmethod
    def _validate_login_remember_for(cls, v: timedelta) -> timedelta:
        if v < timedelta(seconds=0):
            raise ValueError("must not be negative")
        return v

    @model_validator(mode="after")
    def _validate_collisions(self) -> Self:
        """Reject attribute mappings that collide on a claim name."""
        for attr, claim in self.attrs_map.items():
            if claim == GROUPS_CLAIM:
                msg = f"Attribute {attr} cannot be mapped to {GROUPS_CLAIM}"
                raise ValueError(msg)
        if self.allow_claim_collisions:
            return self
        counts = Counter(self.attrs_map.values())
        duplicates = sorted(c for c, n in counts.items() if n > 1)
        if duplicates:
            claims = ", ".join(duplicates)
            msg = f"Several attributes map to the same claim: {claims}"
            raise ValueError(msg)
        return self

    @property
    def ldap_attributes(self) -> list[str]:
        """LDAP attributes to retrieve for a user."""
        attrs = sorted(self.attrs_map)
        if self.subject_attr and self.subject_attr not in attrs:
            attrs.append(self.subject_attr)
        return attrs

    @property
    def login_remember_seconds(self) -> int:
        """Login remember duration in seconds, as Hydra wants it."""
        return int(self.login_remember_for.total_seconds())


class Config(EnvFirstSettings):
    """Configuration for Porthor."""

    base_path: str = Field(
        "/",
        title="Path prefix",
        description="Path prefix under which all routes are mounted",
    )

    error_footer: str | None = Field(
        None,
        title="HTML for error pages",
        description="HTML to add (inside ``<p>``) to error pages",
    )

    log_level: LogLevel = Field(
        LogLevel.INFO,
        title="Logging level",
        description="Python logging level",
        validation_alias=AliasChoices("PORTHOR_LOG_LEVEL", "logLevel"),
    )

    log_profile: Profile = Field(
        Profile.production,
        title="Logging profile",
        description=(
            "Logging profile: ``production`` for JSON logs or ``development``"
            " for human-readable logs"
        ),
        validation_alias=AliasChoices("PORTHOR_LOG_PROFILE", "logProfile"),
    )

    proxies: list[IPv4Network | IPv6Network] | None = Field(
        None,
        title="Trusted incoming proxy netblocks",
        description=(
            "If this is set to a non-empty list, it will be used as the"
            " trusted list of proxies when parsing the ``X-Forwarded-For``"
            " HTTP header in incoming requests, which allows logging of"
            " accurate client IP addresses."
        ),
    )

    slack_alerts: bool = Field(
        False,
        title="Enable Slack alerts",
        description=(
            "Whether to enable Slack alerts. If true, ``slack_webhook`` must"
            " also be set."
        ),
    )

    slack_webhook: SecretStr | None = Field(
        None,
        title="Slack webhook for alerts",
        description="If set, alerts will be posted to this Slack webhook",
        validation_alias=AliasChoices(
            "PORTHOR_SLACK_WEBHOOK", "slackWebhook"
        ),
    )

    hydra: HydraConfig = Field(
        ...,
        title="Hydra configuration",
        description="Configuration for the Hydra admin API",
    )

    ldap: LDAPConfig = Field(
        ...,
        title="LDAP configuration",
        description="Configuration for authenticating users against LDAP",
    )

    oauth: OAuthConfig = Field(
        default_factory=OAuthConfig,
        title="OAuth claims configuration",
        description="Configuration for mapping LDAP attributes to claims",
    )

    @field_validator("base_path")
    @classmethod
    def _validate_base_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("path must start with /")
        return v

    @model_validator(mode="after")
    def _validate_slack(self) -> Self:
        if self.slack_alerts and not self.slack_webhook:
            raise ValueError("slackWebhook required if slackAlerts is set")
        return self

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Construct a Config object from a configuration file.

        Parameters
        ----------
        path
            Path to the configuration file in YAML.

        Returns
        -------
        Config
            The corresponding `Config` object.
        """
        with path.open("r") as f:
            return cls.model_validate(yaml.safe_load(f) or {})

    @property
    def path_prefix(self) -> str:
        """Prefix to use when mounting routers, without trailing slash."""
        return self.base_path.rstrip("/")

    def configure_logging(self) -> None:
        """Configure logging based on the Porthor configuration."""
        configure_logging(
            name="porthor", profile=self.log_profile, log_level=self.log_level
        )
