"""SQL Server query builder."""

from sqbind.core.dialect import SQLSERVER
from sqbind.core.protocol import Table
from sqbind.dialects.base import QueryBuilder
from sqbind.operations.delete import DeleteQuery


class SQLServerQueryBuilder(QueryBuilder):
    """Builds queries for SQL Server (``@pN`` placeholders, bracket quoting)."""

    name = SQLSERVER

    def delete(self, table: Table) -> DeleteQuery:
        """``DELETE t FROM ...``."""
        return DeleteQuery(dialect=self.name, ctes=self.ctes, delete_tables=(table,))


SQLServer = SQLServerQueryBuilder()
