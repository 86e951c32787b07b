"""Shared pytest fixtures: isolated settings and an in-memory SQLite database."""

import sqlite3
from typing import Any, Dict, Iterator, List, Tuple

import pytest

from sqbind.config import get_settings


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep SQBIND_* variables from the host environment out of every test."""
    for name in (
        "SQBIND_DEFAULT_DIALECT",
        "SQBIND_LOG_INTERPOLATE",
        "SQBIND_LOG_INCLUDE_TIME",
        "SQBIND_LOG_INCLUDE_CALLER",
        "SQBIND_LOG_INCLUDE_RESULTS",
        "SQBIND_LOG_HIDE_ARGS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class RecordingLog:
    """Stands in for a structlog logger and keeps every call."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    def info(self, event: str, **kwargs: Any) -> None:
        self.calls.append(("info", event, kwargs))

    def error(self, event: str, **kwargs: Any) -> None:
        self.calls.append(("error", event, kwargs))


@pytest.fixture
def recording_log() -> RecordingLog:
    return RecordingLog()


@pytest.fixture
def sqlite_conn() -> Iterator[sqlite3.Connection]:
    """An in-memory database with a small ``actor`` table."""
    conn = sqlite3.connect(":memory:")
    conn.execute(
        "CREATE TABLE actor ("
        " actor_id INTEGER PRIMARY KEY,"
        " first_name TEXT NOT NULL,"
        " last_name TEXT NOT NULL,"
        " active INTEGER,"
        " score REAL"
        ")"
    )
    conn.executemany(
        "INSERT INTO actor (actor_id, first_name, last_name, active, score) VALUES (?, ?, ?, ?, ?)",
        [
            (1, "PENELOPE", "GUINESS", 1, 7.5),
            (2, "NICK", "WAHLBERG", 0, None),
            (3, "ED", "CHASE", 1, 3.0),
        ],
    )
    conn.commit()
    yield conn
    conn.close()
