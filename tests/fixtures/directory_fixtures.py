"""Fixtures for the directory side: a scripted fake reader and ldap3 mocks."""

from typing import Dict
from typing import List
from typing import Optional
from unittest.mock import MagicMock
from unittest.mock import patch

import pytest

from ldap_migration.errors import DirectoryConnectionError
from ldap_migration.errors import DirectoryQueryError
from ldap_migration.migration.models import ClientGroup
from ldap_migration.migration.models import UserRecord
from tests.consts import BASE_DN


def make_user(
    username: str,
    client: str,
    credential: str = "{SSHA}c2FsdGVkaGFzaA==",
    given_name: str = "",
    family_name: str = "",
    email: str = "",
) -> UserRecord:
    return UserRecord(
        username=username,
        path=f"uid={username},ou={client},{BASE_DN}",
        given_name=given_name,
        family_name=family_name,
        email=email,
        raw_credential=credential,
    )


class FakeDirectory:
    """
    Directory reader backed by a dict of client name -> users.

    Failures are scripted through the ``fail_*`` attributes.
    """

    def __init__(self, groups: Optional[Dict[str, List[UserRecord]]] = None):
        self.groups = dict(groups or {})
        self.fail_connect = False
        self.fail_enumeration = False
        self.fail_users = set()
        self.connected = False
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.listed_clients: List[str] = []

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_connect:
            raise DirectoryConnectionError(
                "LDAP connection failed: invalidCredentials",
                cause=Exception("invalidCredentials"),
            )
        self.connected = True

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    async def list_client_groups(self) -> List[ClientGroup]:
        if self.fail_enumeration:
            raise DirectoryQueryError(f"LDAP search failed under {BASE_DN}: noSuchObject")
        return [ClientGroup(name=name, path=f"ou={name},{BASE_DN}") for name in self.groups]

    async def list_users(self, group_name: str) -> List[UserRecord]:
        self.listed_clients.append(group_name)
        if group_name in self.fail_users:
            raise DirectoryQueryError(f"LDAP search failed under ou={group_name},{BASE_DN}: busy")
        return list(self.groups[group_name])

    async def test_connection(self) -> bool:
        return not self.fail_connect


@pytest.fixture
def example_directory() -> FakeDirectory:
    """Two clients, three users; user2 has neither email nor credential."""
    return FakeDirectory(
        {
            "clientA": [
                make_user("user1", "clientA", credential="{SSHA}abc", email="a@x.com"),
                make_user("user2", "clientA", credential="", email=""),
            ],
            "clientB": [
                make_user("user3", "clientB", credential="{MD5}def", email="b@x.com"),
            ],
        }
    )


@pytest.fixture
def mock_ldap3():
    """Patch ldap3 Server/Connection as used by the directory reader."""
    with patch("ldap_migration.directory.ldap_client.Server") as mock_server, patch(
        "ldap_migration.directory.ldap_client.Connection"
    ) as mock_connection_class:
        connection = MagicMock()
        connection.result = {"result": 0, "description": "success"}
        connection.response = []
        mock_connection_class.return_value = connection
        yield {"server": mock_server, "connection_class": mock_connection_class, "connection": connection}
