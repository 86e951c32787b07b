"""Exception hierarchy for query building, interpolation and execution.

Every failure raised by sqbind derives from :class:`SQLBuildError` so callers
can catch one type at the top of a render. Nested render failures are
re-raised with positional context ("predicate #2: ...") and chained with
``raise ... from``; use :func:`root_cause` to recover the original error.
"""

from typing import Any, Dict, Optional


class SQLBuildError(Exception):
    """Base error for every failure raised while building or running a query."""


class TemplateSyntaxError(SQLBuildError):
    """Format template is malformed (unterminated or invalid placeholder)."""


class PlaceholderResolutionError(SQLBuildError):
    """A placeholder could not be resolved against the value pool."""


class DuplicateParameterError(PlaceholderResolutionError):
    """The same parameter name was supplied twice in one value pool."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"named parameter {{{name}}} provided more than once")


class DialectNotSupportedError(SQLBuildError):
    """A clause or feature is not available in the requested dialect."""

    def __init__(self, feature: str, dialect: str):
        self.feature = feature
        self.dialect = dialect
        super().__init__(f"{dialect} does not support {feature}")


class InterpolationError(SQLBuildError):
    """A query could not be rendered with its arguments inlined."""


class ParameterError(SQLBuildError):
    """Rebinding compiled arguments by name failed."""


class MapperError(SQLBuildError):
    """Raised by a column or row mapper to abort the query with an error."""


class NoRowsError(SQLBuildError):
    """fetch_one found no rows."""


def wrap(context: str, exc: Exception) -> SQLBuildError:
    """Build a SQLBuildError carrying ``context`` in front of ``exc``'s message.

    The caller is expected to ``raise wrap(...) from exc`` so the original
    error stays reachable through ``__cause__``.
    """
    return SQLBuildError(f"{context}: {exc}")


def root_cause(exc: BaseException) -> BaseException:
    """Follow the ``__cause__`` chain down to the innermost error."""
    seen = set()
    while exc.__cause__ is not None and id(exc) not in seen:
        seen.add(id(exc))
        exc = exc.__cause__
    return exc


def error_chain(exc: BaseException) -> list:
    """Return ``exc`` followed by each of its causes, outermost first."""
    chain = [exc]
    while chain[-1].__cause__ is not None and chain[-1].__cause__ not in chain:
        chain.append(chain[-1].__cause__)
    return chain


def to_dict(exc: BaseException, query: Optional[str] = None) -> Dict[str, Any]:
    """Convert an error into a structured dict for logging."""
    cause = root_cause(exc)
    result: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "message": str(exc),
    }
    if cause is not exc:
        result["original_error_type"] = type(cause).__name__
        result["original_error_message"] = str(cause)
    if query is not None:
        result["query"] = query
    return result
