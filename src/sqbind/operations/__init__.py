"""
SELECT, INSERT, UPDATE and DELETE statement builders.

Builders are immutable: every method returns a new query.
"""

from .column import Column, call_mapper
from .delete import DeleteQuery, delete, delete_from
from .insert import InsertConflict, InsertQuery, insert_ignore_into, insert_into
from .select import SelectQuery, from_, select, select_distinct, select_one
from .update import UpdateQuery, update

__all__ = [
    "Column",
    "call_mapper",
    "DeleteQuery",
    "delete",
    "delete_from",
    "InsertConflict",
    "InsertQuery",
    "insert_ignore_into",
    "insert_into",
    "SelectQuery",
    "from_",
    "select",
    "select_distinct",
    "select_one",
    "UpdateQuery",
    "update",
]
