"""
Composable SQL fragments: expressions, predicates, tables, columns,
joins, window functions and common table expressions.
"""

from .assignments import Assignments, FieldAssignment, Fields, set_, setf
from .cte import (
    CTE,
    VariadicQuery,
    cte,
    except_,
    except_all,
    intersect,
    intersect_all,
    recursive_cte,
    union,
    union_all,
)
from .expression import (
    CustomQuery,
    Expression,
    RowValue,
    RowValues,
    VariadicPredicate,
    and_,
    cmp,
    eq,
    exists,
    expr,
    ge,
    gt,
    in_,
    le,
    lt,
    ne,
    not_exists,
    or_,
    queryf,
)
from .fields import (
    AnyField,
    ArrayField,
    BinaryField,
    BooleanField,
    EnumField,
    Identifier,
    JSONField,
    NumberField,
    StringField,
    TableStruct,
    TimeField,
    UUIDField,
    new_table_struct,
)
from .joins import JoinTable, cross_join, custom_join, full_join, join, join_using, left_join, right_join
from .misc import (
    CaseExpression,
    DialectExpression,
    LiteralValue,
    SelectValues,
    SimpleCaseExpression,
    TableValues,
    ValueExpression,
    avg,
    case,
    case_when,
    count,
    count_star,
    dialect_expr,
    dialect_value,
    literal,
    max_,
    min_,
    sum_,
    value,
)
from .window import (
    NamedWindow,
    NamedWindows,
    WindowDefinition,
    avg_over,
    base_window,
    count_over,
    count_star_over,
    cume_dist_over,
    dense_rank_over,
    first_value_over,
    last_value_over,
    max_over,
    min_over,
    order_by,
    partition_by,
    rank_over,
    row_number_over,
    sum_over,
)

__all__ = [
    "Assignments", "FieldAssignment", "Fields", "set_", "setf",
    "CTE", "VariadicQuery", "cte", "except_", "except_all", "intersect",
    "intersect_all", "recursive_cte", "union", "union_all",
    "CustomQuery", "Expression", "RowValue", "RowValues", "VariadicPredicate",
    "and_", "cmp", "eq", "exists", "expr", "ge", "gt", "in_", "le", "lt", "ne",
    "not_exists", "or_", "queryf",
    "AnyField", "ArrayField", "BinaryField", "BooleanField", "EnumField",
    "Identifier", "JSONField", "NumberField", "StringField", "TableStruct",
    "TimeField", "UUIDField", "new_table_struct",
    "JoinTable", "cross_join", "custom_join", "full_join", "join", "join_using",
    "left_join", "right_join",
    "CaseExpression", "DialectExpression", "LiteralValue", "SelectValues",
    "SimpleCaseExpression", "TableValues", "ValueExpression", "avg", "case",
    "case_when", "count", "count_star", "dialect_expr", "dialect_value",
    "literal", "max_", "min_", "sum_", "value",
    "NamedWindow", "NamedWindows", "WindowDefinition", "avg_over", "base_window",
    "count_over", "count_star_over", "cume_dist_over", "dense_rank_over",
    "first_value_over", "last_value_over", "max_over", "min_over", "order_by",
    "partition_by", "rank_over", "row_number_over", "sum_over",
]
