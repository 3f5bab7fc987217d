"""
Store Models

Rows of the clients, users and migration_log tables.
"""

import json
from datetime import datetime
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import Field


class ClientRow(BaseModel):
    """Client database model (keyed by client_id, the OU name)."""

    id: int
    client_id: str
    name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    inserted: bool = False  # True when the upsert created the row

    class Config:
        from_attributes = True


class UserRow(BaseModel):
    """User database model (keyed by client_id + username)."""

    id: int
    client_id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    password_hash: Optional[str] = None
    ldap_dn: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    inserted: bool = False

    class Config:
        from_attributes = True


class RunSummary(BaseModel):
    """Migration run summary (migration_log table).

    Append-only table - written once at the end of a run, never updated.
    """

    id: Optional[int] = None
    migration_date: Optional[datetime] = None
    total_clients: int = 0
    total_users: int = 0
    successful_clients: int = 0
    successful_users: int = 0
    failed_clients: int = 0
    failed_users: int = 0
    errors: List[str] = Field(default_factory=list)
    dry_run: bool = False

    class Config:
        from_attributes = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RunSummary":
        """Build a summary from a migration_log row (error_log is JSONB)."""
        data = dict(row)
        error_log = data.pop("error_log", None)
        if isinstance(error_log, str):
            try:
                decoded = json.loads(error_log)
            except ValueError:
                decoded = None
            # Plain-text error_log written by earlier releases
            error_log = decoded if isinstance(decoded, list) else error_log.splitlines()
        data["errors"] = list(error_log or [])
        return cls(**data)
