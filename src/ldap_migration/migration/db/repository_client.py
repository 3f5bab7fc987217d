"""
Client Repository

Repository for client organizational units, keyed by OU name.
"""

from typing import Optional

from ldap_migration.migration.db.pool import StorePool
from ldap_migration.migration.db.repository_base import BaseRepository
from ldap_migration.migration.models import ClientRow


class ClientRepository(BaseRepository):
    """Client repository (one row per directory OU)."""

    def __init__(self, pool: StorePool):
        super().__init__(pool, "clients")

    async def upsert(self, client_id: str, name: Optional[str] = None) -> ClientRow:
        """
        Create or update a client by its natural key.

        An empty or missing name never replaces a stored one.

        Args:
            client_id: OU name
            name: Optional display name

        Returns:
            The stored row; ``inserted`` tells whether it was created
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO {self.qualified_table} AS c (client_id, name)
                VALUES ($1, NULLIF($2, ''))
                ON CONFLICT (client_id) DO UPDATE
                SET name = COALESCE(EXCLUDED.name, c.name),
                    updated_at = NOW()
                RETURNING c.id, c.client_id, c.name, c.created_at, c.updated_at, (c.xmax = 0) AS inserted
                """,
                client_id,
                name,
            )
            return ClientRow(**dict(row))

    async def get_by_client_id(self, client_id: str) -> Optional[ClientRow]:
        """Get client by OU name."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT id, client_id, name, created_at, updated_at
                FROM {self.qualified_table}
                WHERE client_id = $1
                """,
                client_id,
            )
            return ClientRow(**dict(row)) if row else None
