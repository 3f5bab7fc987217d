"""Tests for the LDAP directory reader."""

import pytest
from ldap3 import LEVEL
from ldap3 import SUBTREE
from ldap3.core.exceptions import LDAPBindError
from ldap3.core.exceptions import LDAPSocketOpenError

from ldap_migration.directory import LdapDirectoryReader
from ldap_migration.errors import DirectoryConnectionError
from ldap_migration.errors import DirectoryQueryError
from tests.consts import BASE_DN


def entry(dn, **attributes):
    return {"type": "searchResEntry", "dn": dn, "attributes": attributes}


@pytest.fixture
def reader():
    return LdapDirectoryReader(
        server_url="ldap://ldap.test:389",
        bind_dn="cn=Directory Manager",
        bind_password="secret",
        base_dn=BASE_DN,
    )


class TestConnect:
    """Tests for connect, disconnect and test_connection."""

    @pytest.mark.asyncio
    async def test_connect_binds(self, reader, mock_ldap3):
        """Test connect binds with the configured credentials."""
        await reader.connect()

        assert reader.is_connected
        kwargs = mock_ldap3["connection_class"].call_args.kwargs
        assert kwargs["user"] == "cn=Directory Manager"
        assert kwargs["password"] == "secret"
        assert kwargs["auto_bind"] is True

    @pytest.mark.asyncio
    async def test_bind_rejected(self, reader, mock_ldap3):
        """Test a rejected bind becomes DirectoryConnectionError."""
        mock_ldap3["connection_class"].side_effect = LDAPBindError("invalidCredentials")

        with pytest.raises(DirectoryConnectionError) as exc_info:
            await reader.connect()

        assert "rejected" in exc_info.value.detail
        assert not reader.is_connected

    @pytest.mark.asyncio
    async def test_disconnect(self, reader, mock_ldap3):
        """Test disconnect unbinds once and is safe to repeat."""
        await reader.connect()
        await reader.disconnect()
        await reader.disconnect()

        mock_ldap3["connection"].unbind.assert_called_once()
        assert not reader.is_connected

    @pytest.mark.asyncio
    async def test_context_manager(self, reader, mock_ldap3):
        """Test the reader can be used as an async context manager."""
        async with reader as connected:
            assert connected.is_connected

        mock_ldap3["connection"].unbind.assert_called_once()

    @pytest.mark.asyncio
    async def test_test_connection(self, reader, mock_ldap3):
        """Test test_connection reports failures instead of raising."""
        assert await reader.test_connection() is True

        mock_ldap3["connection_class"].side_effect = LDAPSocketOpenError("connection refused")
        assert await reader.test_connection() is False


class TestSearch:
    """Tests for client and user enumeration."""

    @pytest.mark.asyncio
    async def test_list_client_groups(self, reader, mock_ldap3):
        """Test OUs one level below the base become client groups."""
        connection = mock_ldap3["connection"]
        connection.response = [
            entry(f"ou=acme,{BASE_DN}", ou=["acme"], description=["Acme Corp"]),
            entry(f"ou=globex,{BASE_DN}", ou=["globex"], description=[]),
            entry(f"ou=broken,{BASE_DN}", ou=[]),
            {"type": "searchResRef", "uri": ["ldap://elsewhere"]},
        ]
        await reader.connect()

        groups = await reader.list_client_groups()

        kwargs = connection.search.call_args.kwargs
        assert kwargs["search_base"] == BASE_DN
        assert kwargs["search_scope"] == LEVEL
        assert kwargs["search_filter"] == "(objectClass=organizationalUnit)"
        assert [g.name for g in groups] == ["acme", "globex"]
        assert groups[0].display_name == "Acme Corp"
        assert groups[1].display_name is None
        assert groups[0].path == f"ou=acme,{BASE_DN}"

    @pytest.mark.asyncio
    async def test_list_users(self, reader, mock_ldap3):
        """Test inetOrgPerson entries become users with normalized attributes."""
        connection = mock_ldap3["connection"]
        connection.response = [
            entry(
                f"uid=jdoe,ou=acme,{BASE_DN}",
                uid=["jdoe"],
                givenName=["John"],
                sn=["Doe"],
                mail=["jdoe@acme.com"],
                userPassword=[b"{SSHA}c2FsdA=="],
            ),
            entry(f"uid=bare,ou=acme,{BASE_DN}", uid=["bare"]),
            entry(f"cn=nouid,ou=acme,{BASE_DN}", cn=["nouid"]),
        ]
        await reader.connect()

        users = await reader.list_users("acme")

        kwargs = connection.search.call_args.kwargs
        assert kwargs["search_base"] == f"ou=acme,{BASE_DN}"
        assert kwargs["search_scope"] == SUBTREE
        assert [u.username for u in users] == ["jdoe", "bare"]
        assert users[0].raw_credential == "{SSHA}c2FsdA=="
        assert users[0].email == "jdoe@acme.com"
        assert users[1].given_name == ""
        assert users[1].raw_credential == ""
        assert users[1].target_credential is None

    def test_client_dn_escapes_name(self, reader):
        """Test special characters in an OU name are escaped."""
        assert reader.client_dn("Smith, Jones") == f"ou=Smith\\, Jones,{BASE_DN}"

    @pytest.mark.asyncio
    async def test_search_failure(self, reader, mock_ldap3):
        """Test a non-success result code raises DirectoryQueryError."""
        mock_ldap3["connection"].result = {"result": 32, "description": "noSuchObject"}
        await reader.connect()

        with pytest.raises(DirectoryQueryError, match="noSuchObject"):
            await reader.list_users("missing")

    @pytest.mark.asyncio
    async def test_search_requires_connection(self, reader):
        """Test searching before connect raises DirectoryQueryError."""
        with pytest.raises(DirectoryQueryError):
            await reader.list_client_groups()

    @pytest.mark.asyncio
    async def test_server_info(self, reader, mock_ldap3):
        """Test root DSE attributes are returned as lists of strings."""
        mock_ldap3["connection"].response = [
            entry(
                "",
                namingContexts=["dc=example,dc=com"],
                supportedSASLMechanisms=["EXTERNAL"],
                supportedLDAPVersion=3,
            )
        ]
        await reader.connect()

        info = await reader.server_info()

        assert info == {
            "naming_contexts": ["dc=example,dc=com"],
            "supported_sasl_mechanisms": ["EXTERNAL"],
            "supported_ldap_version": ["3"],
        }


class TestFromSettings:
    """Tests for building the reader from settings."""

    def test_from_settings(self, settings):
        """Test settings map onto reader parameters."""
        reader = LdapDirectoryReader.from_settings(settings)

        assert reader.server_url == "ldap://ldap.test:389"
        assert reader.base_dn == BASE_DN
        assert reader.timeout == 10
