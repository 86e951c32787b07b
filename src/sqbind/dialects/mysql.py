"""MySQL query builder."""

from sqbind.core.dialect import MYSQL
from sqbind.core.protocol import Table
from sqbind.dialects.base import QueryBuilder
from sqbind.operations.delete import DeleteQuery
from sqbind.operations.insert import InsertQuery


class MySQLQueryBuilder(QueryBuilder):
    """Builds queries for MySQL (``?`` placeholders, backtick quoting)."""

    name = MYSQL

    def insert_ignore_into(self, table: Table) -> InsertQuery:
        return InsertQuery(dialect=self.name, ctes=self.ctes, insert_table=table, insert_ignore=True)

    def delete(self, *tables: Table) -> DeleteQuery:
        """``DELETE t1, t2 FROM ...`` multi-table delete."""
        return DeleteQuery(dialect=self.name, ctes=self.ctes, delete_tables=tables)


MySQL = MySQLQueryBuilder()
