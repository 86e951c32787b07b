"""
sqbind - dialect-aware SQL query construction and argument binding.

Queries are written as format templates (``{}``, ``{N}``, ``{name}``) or
assembled with the statement builders, then rendered for SQLite, Postgres,
MySQL or SQL Server into a query string and its bound arguments.

Example:
    >>> from sqbind import expr, named, to_sql
    >>> to_sql("postgres", expr("a = {x} OR b = {x}", named("x", 5)))
    ('a = $1 OR b = $1', [5])
"""

__version__ = "0.1.0"

from sqbind.core import (
    DEFAULT_VALUE,
    Dialect,
    DialectValuer,
    NamedArg,
    SQLWriter,
    named,
    placeholder,
    quote_identifier,
    sprint,
    sprintf,
    substitute_params,
    writef,
)
from sqbind.core.dialect import MYSQL, POSTGRES, SQLITE, SQLSERVER
from sqbind.core.protocol import (
    Assignment,
    Field,
    Parameter,
    Predicate,
    Query,
    Table,
    bool_param,
    bytes_param,
    float_param,
    int_param,
    param,
    string_param,
    time_param,
)
from sqbind.core.valuers import ArrayValue, EnumValue, JSONValue, UUIDValue
from sqbind.core.writer import to_sql
from sqbind.dialects import MySQL, Postgres, SQLite, SQLServer, builder_for
from sqbind.errors import (
    DialectNotSupportedError,
    DuplicateParameterError,
    InterpolationError,
    MapperError,
    NoRowsError,
    ParameterError,
    PlaceholderResolutionError,
    SQLBuildError,
    TemplateSyntaxError,
)
from sqbind.execution import (
    CompiledExec,
    CompiledFetch,
    LoggerConfig,
    QueryLogger,
    Result,
    Row,
    compile_exec,
    compile_fetch,
    exec_query,
    fetch_all,
    fetch_exists,
    fetch_one,
)
from sqbind.expressions import (
    AnyField,
    BooleanField,
    NumberField,
    StringField,
    TableStruct,
    and_,
    cte,
    exists,
    expr,
    in_,
    literal,
    not_exists,
    or_,
    queryf,
    recursive_cte,
    union,
    union_all,
    value,
)
from sqbind.operations import (
    Column,
    delete_from,
    from_,
    insert_into,
    select,
    update,
)

__all__ = [
    "__version__",
    "DEFAULT_VALUE",
    "Dialect",
    "DialectValuer",
    "NamedArg",
    "SQLWriter",
    "named",
    "placeholder",
    "quote_identifier",
    "sprint",
    "sprintf",
    "substitute_params",
    "writef",
    "MYSQL",
    "POSTGRES",
    "SQLITE",
    "SQLSERVER",
    "Assignment",
    "Field",
    "Parameter",
    "Predicate",
    "Query",
    "Table",
    "bool_param",
    "bytes_param",
    "float_param",
    "int_param",
    "param",
    "string_param",
    "time_param",
    "ArrayValue",
    "EnumValue",
    "JSONValue",
    "UUIDValue",
    "to_sql",
    "MySQL",
    "Postgres",
    "SQLite",
    "SQLServer",
    "builder_for",
    "DialectNotSupportedError",
    "DuplicateParameterError",
    "InterpolationError",
    "MapperError",
    "NoRowsError",
    "ParameterError",
    "PlaceholderResolutionError",
    "SQLBuildError",
    "TemplateSyntaxError",
    "CompiledExec",
    "CompiledFetch",
    "LoggerConfig",
    "QueryLogger",
    "Result",
    "Row",
    "compile_exec",
    "compile_fetch",
    "exec_query",
    "fetch_all",
    "fetch_exists",
    "fetch_one",
    "AnyField",
    "BooleanField",
    "NumberField",
    "StringField",
    "TableStruct",
    "and_",
    "cte",
    "exists",
    "expr",
    "in_",
    "literal",
    "not_exists",
    "or_",
    "queryf",
    "recursive_cte",
    "union",
    "union_all",
    "value",
    "Column",
    "delete_from",
    "from_",
    "insert_into",
    "select",
    "update",
]
