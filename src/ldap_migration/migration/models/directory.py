"""
Directory Models

Entries read from the LDAP directory, normalized for the store.
"""

from typing import Optional

from pydantic import BaseModel


class ClientGroup(BaseModel):
    """Client organizational unit read from the directory."""

    name: str  # ou value, natural key in the store
    path: str  # Full DN of the organizational unit
    display_name: Optional[str] = None  # OU description, if any


class UserRecord(BaseModel):
    """User entry read from the directory.

    Username and path are always present; absent directory attributes are
    normalized to empty strings. ``target_credential`` is derived during the
    migration and is None when no credential is provisioned.
    """

    username: str  # uid
    path: str  # Full DN, kept as provenance
    given_name: str = ""
    family_name: str = ""
    email: str = ""
    raw_credential: str = ""  # userPassword as stored in the directory
    target_credential: Optional[str] = None

    def with_credential(self, credential: Optional[str]) -> "UserRecord":
        """Copy of this record carrying the converted credential."""
        return self.model_copy(update={"target_credential": credential})
