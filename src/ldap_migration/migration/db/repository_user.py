"""
User Repository

Repository for migrated users, keyed by (client, username).
"""

from typing import Optional

from ldap_migration.migration.db.pool import StorePool
from ldap_migration.migration.db.repository_base import BaseRepository
from ldap_migration.migration.models import UserRecord
from ldap_migration.migration.models import UserRow

USER_COLUMNS = "id, client_id, username, first_name, last_name, email, password_hash, ldap_dn, created_at, updated_at"
USER_RETURNING = (
    "u.id, u.client_id, u.username, u.first_name, u.last_name, u.email, "
    "u.password_hash, u.ldap_dn, u.created_at, u.updated_at"
)


class UserRepository(BaseRepository):
    """User repository (synced from the directory)."""

    def __init__(self, pool: StorePool):
        super().__init__(pool, "users")

    async def upsert(self, user: UserRecord, client_pk: int) -> UserRow:
        """
        Create or update a user by (client, username).

        Merge policy on update:
        - empty directory attributes never overwrite stored values
        - non-empty directory attributes always overwrite
        - the DN is always refreshed
        - a stored password hash is kept; a new one is only written when none exists,
          so re-runs do not rotate credentials that may already have been reset

        Args:
            user: Normalized directory user carrying its converted credential
            client_pk: clients.id of the owning client

        Returns:
            The stored row; ``inserted`` tells whether it was created
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO {self.qualified_table} AS u
                    (client_id, username, first_name, last_name, email, password_hash, ldap_dn)
                VALUES ($1, $2, NULLIF($3, ''), NULLIF($4, ''), NULLIF($5, ''), $6, $7)
                ON CONFLICT (client_id, username) DO UPDATE
                SET first_name = COALESCE(EXCLUDED.first_name, u.first_name),
                    last_name = COALESCE(EXCLUDED.last_name, u.last_name),
                    email = COALESCE(EXCLUDED.email, u.email),
                    -- keep a stored hash so re-runs do not rotate it; a reset done here is never overwritten
                    password_hash = COALESCE(u.password_hash, EXCLUDED.password_hash),
                    ldap_dn = EXCLUDED.ldap_dn,
                    updated_at = NOW()
                RETURNING {USER_RETURNING}, (u.xmax = 0) AS inserted
                """,
                client_pk,
                user.username,
                user.given_name,
                user.family_name,
                user.email,
                user.target_credential,
                user.path,
            )
            return UserRow(**dict(row))

    async def get_by_username(self, client_pk: int, username: str) -> Optional[UserRow]:
        """Get user by (client, username)."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {USER_COLUMNS} FROM {self.qualified_table}
                WHERE client_id = $1 AND username = $2
                """,
                client_pk,
                username,
            )
            return UserRow(**dict(row)) if row else None
