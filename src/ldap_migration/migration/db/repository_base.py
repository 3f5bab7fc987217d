"""
Base Repository

Base class holding the pool and the schema-qualified table name.
All concrete repositories inherit from this class and add their own queries.
"""

from ldap_migration.migration.db.pool import StorePool


class BaseRepository:
    """
    Base repository with common operations.

    Concrete repositories (ClientRepository, UserRepository, RunSummaryRepository)
    inherit from this.
    """

    def __init__(self, pool: StorePool, table_name: str):
        """
        Initialize base repository.

        Args:
            pool: Store pool (schema is taken from it)
            table_name: Database table name (without schema prefix)
        """
        self.pool = pool
        self.table = table_name

    @property
    def qualified_table(self) -> str:
        return f"{self.pool.schema}.{self.table}"
