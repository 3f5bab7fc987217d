"""
LDAP Directory Reader

Reads client organizational units and their inetOrgPerson members with ldap3.
ldap3 is synchronous; every directory round trip runs in a worker thread so the
orchestrator's event loop is never blocked.
"""

import asyncio
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from ldap3 import ALL
from ldap3 import BASE
from ldap3 import LEVEL
from ldap3 import SUBTREE
from ldap3 import Connection
from ldap3 import Server
from ldap3.core.exceptions import LDAPException
from ldap3.utils.dn import escape_rdn
from loguru import logger

from ldap_migration.errors import DirectoryConnectionError
from ldap_migration.errors import DirectoryQueryError
from ldap_migration.migration.models import ClientGroup
from ldap_migration.migration.models import UserRecord

CLIENT_FILTER = "(objectClass=organizationalUnit)"
USER_FILTER = "(objectClass=inetOrgPerson)"
CLIENT_ATTRIBUTES = ["ou", "description"]
USER_ATTRIBUTES = ["uid", "givenName", "sn", "mail", "userPassword"]


def _first_value(attributes: Dict[str, Any], name: str) -> str:
    """First value of an attribute as text, or "" when absent."""
    value = attributes.get(name)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


class LdapDirectoryReader:
    """Directory reader for client OUs and their users."""

    def __init__(
        self,
        server_url: str,
        bind_dn: str,
        bind_password: str,
        base_dn: str,
        timeout: int = 10,
    ):
        self.server_url = server_url
        self.bind_dn = bind_dn
        self.bind_password = bind_password
        self.base_dn = base_dn
        self.timeout = timeout
        self.connection: Optional[Connection] = None

    @classmethod
    def from_settings(cls, settings) -> "LdapDirectoryReader":
        return cls(
            server_url=settings.ldap_url,
            bind_dn=settings.ldap_bind_dn,
            bind_password=settings.ldap_bind_password,
            base_dn=settings.ldap_base_dn,
            timeout=settings.ldap_timeout,
        )

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self.connection is not None

    async def connect(self) -> None:
        """
        Bind to the directory.

        Raises:
            DirectoryConnectionError: If the server is unreachable or the bind is rejected
        """
        logger.info("LDAP connecting", url=self.server_url)
        try:
            self.connection = await asyncio.to_thread(self._bind)
        except LDAPException as e:
            logger.error("LDAP connection failed", error=str(e), url=self.server_url, bind_dn=self.bind_dn)
            raise DirectoryConnectionError(f"LDAP connection failed: {e}", cause=e) from e
        logger.info("LDAP connected", bind_dn=self.bind_dn, base_dn=self.base_dn)

    def _bind(self) -> Connection:
        server = Server(self.server_url, get_info=ALL, connect_timeout=self.timeout)
        return Connection(
            server,
            user=self.bind_dn,
            password=self.bind_password,
            auto_bind=True,
            receive_timeout=self.timeout,
        )

    async def disconnect(self) -> None:
        """Unbind from the directory. Safe to call when not connected."""
        if not self.connection:
            return
        connection, self.connection = self.connection, None
        try:
            await asyncio.to_thread(connection.unbind)
            logger.info("LDAP disconnected")
        except LDAPException as e:
            logger.warning(f"LDAP disconnect error: {e}")

    def _search(self, search_base: str, search_filter: str, scope: str, attributes: List[str]) -> List[Dict[str, Any]]:
        """Run one search and return the result entries (dn + attributes)."""
        if not self.connection:
            raise DirectoryQueryError("LDAP not connected")

        try:
            self.connection.search(
                search_base=search_base,
                search_filter=search_filter,
                search_scope=scope,
                attributes=attributes,
            )
        except LDAPException as e:
            raise DirectoryQueryError(f"LDAP search failed under {search_base}: {e}") from e

        result = self.connection.result or {}
        if result.get("result", 0) != 0:
            description = result.get("description") or result.get("message") or "unknown error"
            raise DirectoryQueryError(f"LDAP search failed under {search_base}: {description}")

        return [
            {"dn": entry.get("dn", ""), "attributes": entry.get("attributes") or {}}
            for entry in (self.connection.response or [])
            if entry.get("type") == "searchResEntry"
        ]

    async def list_client_groups(self) -> List[ClientGroup]:
        """
        Search for client organizational units one level below the base DN.

        Entries without an ``ou`` value are dropped.

        Returns:
            Client groups in the order the directory returned them
        """
        logger.info("LDAP searching_clients", base_dn=self.base_dn)
        entries = await asyncio.to_thread(self._search, self.base_dn, CLIENT_FILTER, LEVEL, CLIENT_ATTRIBUTES)

        clients = []
        for entry in entries:
            name = _first_value(entry["attributes"], "ou")
            if not name or entry["dn"].lower() == self.base_dn.lower():
                continue
            description = _first_value(entry["attributes"], "description")
            clients.append(ClientGroup(name=name, path=entry["dn"], display_name=description or None))

        logger.info("LDAP clients_found", count=len(clients), clients=[c.name for c in clients])
        return clients

    def client_dn(self, group_name: str) -> str:
        return f"ou={escape_rdn(group_name)},{self.base_dn}"

    async def list_users(self, group_name: str) -> List[UserRecord]:
        """
        Search for users within a client organizational unit.

        Entries without ``uid`` are dropped; absent attributes become empty strings.

        Args:
            group_name: Client OU name

        Returns:
            Users in the order the directory returned them
        """
        search_dn = self.client_dn(group_name)
        logger.info("LDAP searching_users", client=group_name, search_dn=search_dn)
        entries = await asyncio.to_thread(self._search, search_dn, USER_FILTER, SUBTREE, USER_ATTRIBUTES)

        users = []
        for entry in entries:
            attributes = entry["attributes"]
            uid = _first_value(attributes, "uid")
            if not uid:
                continue
            users.append(
                UserRecord(
                    username=uid,
                    path=entry["dn"],
                    given_name=_first_value(attributes, "givenName"),
                    family_name=_first_value(attributes, "sn"),
                    email=_first_value(attributes, "mail"),
                    raw_credential=_first_value(attributes, "userPassword"),
                )
            )

        logger.info("LDAP users_found", client=group_name, count=len(users))
        return users

    async def test_connection(self) -> bool:
        """Bind and unbind once. Returns False instead of raising."""
        try:
            await self.connect()
        except DirectoryConnectionError as e:
            logger.error(f"LDAP connection test failed: {e.detail}")
            return False
        await self.disconnect()
        logger.info("LDAP connection test successful")
        return True

    async def server_info(self) -> Dict[str, List[str]]:
        """Read naming contexts and supported mechanisms from the root DSE."""
        try:
            entries = await asyncio.to_thread(
                self._search,
                "",
                "(objectClass=*)",
                BASE,
                ["namingContexts", "supportedSASLMechanisms", "supportedLDAPVersion"],
            )
        except DirectoryQueryError as e:
            logger.error(f"Failed to get LDAP server info: {e}")
            return {}

        if not entries:
            return {}
        attributes = entries[0]["attributes"]

        def as_list(name: str) -> List[str]:
            value = attributes.get(name) or []
            if not isinstance(value, (list, tuple)):
                value = [value]
            return [str(v) for v in value]

        return {
            "naming_contexts": as_list("namingContexts"),
            "supported_sasl_mechanisms": as_list("supportedSASLMechanisms"),
            "supported_ldap_version": as_list("supportedLDAPVersion"),
        }
