"""
Structured query logging.

Every executed query produces one ``QueryStats`` record. ``QueryLogger``
turns it into a single structlog event, ``query_executed`` on success and
``query_failed`` on error.

Example:
    >>> query_logger = QueryLogger(LoggerConfig(show_caller=False))
    >>> query_logger.log_query(QueryStats(dialect="sqlite", query="SELECT $1", args=[1]))
"""

import inspect
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqbind.config import get_settings
from sqbind.core.interpolate import sprintf
from sqbind.errors import InterpolationError
from sqbind.utils.logging import get_logger

logger = get_logger(__name__)

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@dataclass
class QueryStats:
    """Statistics about one executed query."""

    dialect: str = ""
    query: str = ""
    args: List[Any] = field(default_factory=list)
    params: Dict[str, List[int]] = field(default_factory=dict)
    error: Optional[BaseException] = None
    row_count: Optional[int] = None
    rows_affected: Optional[int] = None
    last_insert_id: Optional[int] = None
    exists: Optional[bool] = None
    started_at: Optional[datetime] = None
    # milliseconds
    time_taken: Optional[float] = None
    caller_file: str = ""
    caller_line: int = 0
    caller_function: str = ""
    # the first few fetched rows, rendered with sprint
    results: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class LoggerConfig:
    """
    What a QueryLogger includes in each event.

    Attributes:
        show_time_taken: Record start time and duration
        show_caller: Record the file, line and function that ran the query
        show_results: Number of fetched rows to include (0 disables)
        interpolate_verbose: Log the raw query and args next to the
            interpolated query
        hide_args: Log only the raw query with its placeholders
    """

    show_time_taken: bool = True
    show_caller: bool = True
    show_results: int = 0
    interpolate_verbose: bool = False
    hide_args: bool = False

    @classmethod
    def from_settings(cls) -> "LoggerConfig":
        settings = get_settings()
        return cls(
            show_time_taken=settings.log_include_time,
            show_caller=settings.log_include_caller,
            show_results=settings.log_include_results,
            interpolate_verbose=settings.log_interpolate,
            hide_args=settings.log_hide_args,
        )


def find_caller() -> Dict[str, Any]:
    """Return the first stack frame outside the sqbind package."""
    frame = inspect.currentframe()
    try:
        while frame is not None:
            filename = os.path.abspath(frame.f_code.co_filename)
            if not filename.startswith(_PACKAGE_DIR):
                return {
                    "caller_file": filename,
                    "caller_line": frame.f_lineno,
                    "caller_function": frame.f_code.co_name,
                }
            frame = frame.f_back
        return {}
    finally:
        del frame


class QueryLogger:
    """Emit QueryStats as structured log events."""

    def __init__(self, config: Optional[LoggerConfig] = None, log: Any = None):
        self.config = config if config is not None else LoggerConfig.from_settings()
        self.log = log if log is not None else logger

    def log_query(self, stats: QueryStats) -> None:
        config = self.config
        event: Dict[str, Any] = {"dialect": stats.dialect}

        if config.hide_args:
            event["query"] = stats.query
        elif stats.error is not None and not config.interpolate_verbose:
            event["query"] = stats.query
            event["args"] = [repr(arg) for arg in stats.args]
        else:
            try:
                event["query"] = sprintf(stats.dialect, stats.query, stats.args)
            except InterpolationError as exc:
                event["query"] = stats.query
                event["interpolation_error"] = str(exc)
            if config.interpolate_verbose:
                event["raw_query"] = stats.query
                event["args"] = [repr(arg) for arg in stats.args]

        if stats.error is not None:
            event["error"] = str(stats.error)
            event["error_type"] = type(stats.error).__name__
        if config.show_time_taken and stats.time_taken is not None:
            event["time_taken_ms"] = round(stats.time_taken, 3)
        if stats.row_count is not None:
            event["row_count"] = stats.row_count
        if stats.rows_affected is not None:
            event["rows_affected"] = stats.rows_affected
        if stats.last_insert_id is not None:
            event["last_insert_id"] = stats.last_insert_id
        if stats.exists is not None:
            event["exists"] = stats.exists
        if config.show_caller and stats.caller_file:
            event["caller"] = (
                f"{stats.caller_file}:{stats.caller_line}:{stats.caller_function}"
            )
        if config.show_results > 0 and stats.error is None and stats.results:
            event["results"] = stats.results

        if stats.error is not None:
            self.log.error("query_failed", **event)
        else:
            self.log.info("query_executed", **event)
