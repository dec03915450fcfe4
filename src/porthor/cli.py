"""Administrative command-line interface."""

from __future__ import annotations

import json
import sys
from dataclasses import asdict
from pathlib import Path

import click
import structlog
import uvicorn
from safir.asyncio import run_with_asyncio
from safir.click import display_help

from .claims import map_claims
from .dependencies.config import config_dependency
from .exceptions import LDAPError, UserNotFoundError
from .factory import Factory
from .main import create_openapi

__all__ = [
    "help",
    "lookup",
    "main",
    "openapi_schema",
    "run",
]


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(message="%(version)s")
def main() -> None:
    """Administrative command-line interface for porthor."""


@main.command()
@click.argument("topic", default=None, required=False, nargs=1)
@click.pass_context
def help(ctx: click.Context, topic: str | None) -> None:
    """Show help for any command."""
    display_help(main, ctx, topic)


@main.command()
@click.argument("login")
@click.option(
    "--scope",
    "scopes",
    multiple=True,
    help="Requested scope to use when mapping claims (may be repeated).",
)
@click.option(
    "--config-path",
    envvar="PORTHOR_CONFIG_PATH",
    type=click.Path(path_type=Path),
    default=None,
    help="Application configuration file.",
)
@run_with_asyncio
async def lookup(
    login: str, *, scopes: tuple[str, ...], config_path: Path | None
) -> None:
    """Look up a user in LDAP and show the claims they would receive.

    Searches with the configured service identity exactly as a login would,
    without checking any password.
    """
    if config_path:
        config_dependency.set_config_path(config_path)
    config = await config_dependency()
    logger = structlog.get_logger("porthor")
    async with Factory.standalone(config) as factory:
        ldap_storage = factory.create_ldap_storage()
        try:
            user = await ldap_storage.find_user(
                login, config.oauth.ldap_attributes
            )
        except UserNotFoundError as e:
            raise click.ClickException(str(e)) from e
        except LDAPError as e:
            raise click.ClickException(f"LDAP lookup failed: {e!s}") from e
    claims = map_claims(
        user,
        config.oauth.attrs_map,
        config.oauth.claims_map,
        list(scopes),
        logger,
    )
    result = {"user": asdict(user), "claims": claims}
    click.echo(json.dumps(result, indent=2, sort_keys=True))


@main.command()
@click.option(
    "--output",
    default=None,
    type=click.Path(path_type=Path),
    help="Output path (output to stdout if not given).",
)
def openapi_schema(*, output: Path | None) -> None:
    """Generate the OpenAPI schema."""
    schema = create_openapi()
    if output:
        output.parent.mkdir(exist_ok=True)
        output.write_text(schema)
    else:
        sys.stdout.write(schema)


@main.command()
@click.option(
    "--host", default="127.0.0.1", help="Address on which to listen."
)
@click.option(
    "--port", default=8080, type=int, help="Port to run the application on."
)
def run(*, host: str, port: int) -> None:
    """Run the application (for testing only)."""
    uvicorn.run(
        "porthor.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=True,
        reload_dirs=["src"],
    )
