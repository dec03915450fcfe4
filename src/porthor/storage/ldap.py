"""LDAP storage layer for Porthor."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

import bonsai
from bonsai import LDAPClient, LDAPEntry, LDAPSearchScope
from bonsai.asyncio import AIOLDAPConnection
from structlog.stdlib import BoundLogger

from ..config import LDAPConfig
from ..constants import GROUPS_CLAIM, LOGIN_PLACEHOLDER, USER_DN_PLACEHOLDER
from ..exceptions import (
    AmbiguousUserError,
    InvalidCredentialsError,
    LDAPTransportError,
    UserNotFoundError,
)
from ..models.ldap import CredentialOutcome, UserRecord
from ..util import render_filter

__all__ = ["LDAPStorage"]


class LDAPStorage:
    """LDAP storage layer.

    Every operation opens its own connection and closes it before returning,
    whether it succeeded or not. There is no connection pooling and no
    caching of results between requests.

    Parameters
    ----------
    config
        Configuration for LDAP binds and searches.
    logger
        Logger for debug messages and errors.
    """

    def __init__(self, config: LDAPConfig, logger: BoundLogger) -> None:
        self._config = config
        self._logger = logger.bind(ldap_url=str(config.url))

    async def authenticate(self, dn: str, password: str) -> CredentialOutcome:
        """Check a DN and password with a simple bind.

        Parameters
        ----------
        dn
            DN of the entry to bind as.
        password
            Password for that entry.

        Returns
        -------
        CredentialOutcome
            Whether the LDAP server accepted the credentials.

        Raises
        ------
        LDAPTransportError
            Raised if the server could not be reached or failed for any
            reason other than rejecting the credentials.
        """
        try:
            async with self.bind(dn, password):
                pass
        except InvalidCredentialsError:
            self._logger.debug("LDAP rejected credentials", dn=dn)
            return CredentialOutcome.invalid
        return CredentialOutcome.valid

    @asynccontextmanager
    async def bind(
        self, dn: str, password: str
    ) -> AsyncIterator[AIOLDAPConnection]:
        """Open a connection authenticated with a simple bind.

        The connection is closed when the context manager exits.

        Parameters
        ----------
        dn
            DN of the entry to bind as.
        password
            Password for that entry.

        Yields
        ------
        bonsai.asyncio.AIOLDAPConnection
            Authenticated connection.

        Raises
        ------
        InvalidCredentialsError
            Raised if the server reported invalid credentials.
        LDAPTransportError
            Raised if the connection or the bind failed in any other way.
        """
        client = LDAPClient(str(self._config.url))
        client.set_credentials("SIMPLE", user=dn, password=password)
        try:
            conn = await client.connect(is_async=True)
        except bonsai.AuthenticationError as e:
            raise InvalidCredentialsError(str(e)) from e
        except bonsai.LDAPError as e:
            msg = f"Cannot bind to LDAP: {type(e).__name__}: {e!s}"
            self._logger.exception("Cannot bind to LDAP", dn=dn, error=str(e))
            raise LDAPTransportError(msg) from e
        try:
            yield conn
        finally:
            conn.close()

    async def check(self) -> None:
        """Check that the service identity can bind.

        Raises
        ------
        LDAPTransportError
            Raised if the service bind failed.
        """
        async with self._service_bind():
            self._logger.debug("LDAP service bind succeeded")

    async def find_user(self, login: str, attrs: Iterable[str]) -> UserRecord:
        """Find the entry for a user and the groups of which it is a member.

        Binds as the service identity and uses that same connection for both
        the user search and the group search.

        Parameters
        ----------
        login
            Login provided by the user.
        attrs
            Attributes of the user entry to retrieve.

        Returns
        -------
        UserRecord
            Normalized user entry.

        Raises
        ------
        AmbiguousUserError
            Raised if several entries match the login and the configuration
            says to reject such logins.
        LDAPTransportError
            Raised if binding or searching failed.
        UserNotFoundError
            Raised if no entry matched the login.
        """
        search = render_filter(
            self._config.user_filter, LOGIN_PLACEHOLDER, login
        )
        logger = self._logger.bind(login=login)
        async with self._service_bind() as conn:
            entries = await self._query(
                conn, self._config.user_base_dn, search, list(attrs), logger
            )
            if not entries:
                logger.debug("No LDAP entry for login", ldap_search=search)
                raise UserNotFoundError(login)
            if len(entries) > 1:
                dns = [str(e.dn) for e in entries]
                if self._config.reject_ambiguous_users:
                    msg = f"{len(entries)} LDAP entries match login {login}"
                    logger.error("Ambiguous login", ldap_dns=dns)
                    raise AmbiguousUserError(msg, login)
                logger.warning("Ambiguous login, using first", ldap_dns=dns)
            entry = entries[0]
            dn = str(entry.dn)
            attributes = self._normalize(entry, logger)
            groups = await self._get_groups(conn, dn, logger)
        return UserRecord(dn=dn, attributes=attributes, groups=groups)

    async def validate_credentials(self, dn: str, password: str) -> bool:
        """Check whether a DN and password are valid.

        Parameters
        ----------
        dn
            DN of the user entry.
        password
            Password provided by the user.

        Returns
        -------
        bool
            `True` if the LDAP server accepted the bind, `False` if it
            reported invalid credentials.

        Raises
        ------
        LDAPTransportError
            Raised if the LDAP server could not be reached or failed.
        """
        outcome = await self.authenticate(dn, password)
        return outcome == CredentialOutcome.valid

    async def _get_groups(
        self, conn: AIOLDAPConnection, user_dn: str, logger: BoundLogger
    ) -> list[str]:
        """Get the names of the groups of a user.

        Parameters
        ----------
        conn
            Connection bound as the service identity.
        user_dn
            DN of the user entry.
        logger
            Logger to use.

        Returns
        -------
        list of str
            Group names, empty if group lookups are not configured.
        """
        if not self._config.group_base_dn:
            logger.debug("Skipping group search since groupBaseDn is not set")
            return []
        search = render_filter(
            self._config.group_filter, USER_DN_PLACEHOLDER, user_dn
        )
        name_attr = self._config.group_name_attr
        entries = await self._query(
            conn, self._config.group_base_dn, search, [name_attr], logger
        )
        groups = []
        for entry in entries:
            values = entry.get(name_attr)
            if not values:
                msg = "LDAP group has no name, ignoring"
                logger.warning(msg, group_dn=str(entry.dn))
                continue
            groups.append(str(values[0]))
        logger.debug("LDAP groups found", groups=groups)
        return groups

    def _normalize(
        self, entry: LDAPEntry, logger: BoundLogger
    ) -> dict[str, str]:
        """Collapse the attributes of an entry to single strings.

        Multiple values are joined with commas. Values that are not valid
        UTF-8 are binary and cannot be represented, so those attributes are
        dropped.
        """
        attributes = {}
        for name, values in entry.items():
            if name.lower() == "dn" or name == GROUPS_CLAIM:
                continue
            try:
                strings = [
                    v.decode() if isinstance(v, bytes) else str(v)
                    for v in values
                ]
            except UnicodeDecodeError:
                logger.debug("Ignoring binary LDAP attribute", attr=name)
                continue
            attributes[name] = ",".join(strings)
        return attributes

    async def _query(
        self,
        conn: AIOLDAPConnection,
        base: str,
        filter_exp: str,
        attrlist: list[str],
        logger: BoundLogger,
    ) -> list[LDAPEntry]:
        """Perform a subtree search.

        Parameters
        ----------
        conn
            Authenticated connection.
        base
            Base DN of the search.
        filter_exp
            Search filter.
        attrlist
            List of attributes to retrieve.
        logger
            Logger to use.

        Returns
        -------
        list of bonsai.LDAPEntry
            Matching entries.

        Raises
        ------
        LDAPTransportError
            Raised if the search failed.
        """
        logger = logger.bind(
            ldap_attrs=attrlist, ldap_base=base, ldap_search=filter_exp
        )
        try:
            logger.debug("Querying LDAP")
            return await conn.search(
                base=base,
                scope=LDAPSearchScope.SUB,
                filter_exp=filter_exp,
                attrlist=attrlist,
            )
        except bonsai.LDAPError as e:
            logger.exception("Cannot query LDAP", error=str(e))
            msg = f"Error querying LDAP: {type(e).__name__}: {e!s}"
            raise LDAPTransportError(msg) from e

    @asynccontextmanager
    async def _service_bind(self) -> AsyncIterator[AIOLDAPConnection]:
        """Open a connection bound as the service identity.

        Raises
        ------
        LDAPTransportError
            Raised if the bind failed for any reason, including the server
            rejecting the service credentials.
        """
        password = self._config.bind_password.get_secret_value()
        try:
            async with self.bind(self._config.bind_dn, password) as conn:
                yield conn
        except InvalidCredentialsError as e:
            msg = "LDAP rejected the service bind credentials"
            self._logger.error(msg, dn=self._config.bind_dn)
            raise LDAPTransportError(msg) from e
