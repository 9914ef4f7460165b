"""Shared fixtures: in-memory stand-ins for PyMySQL and psycopg connections.

The fakes implement the slice of the DB-API the wrapper uses. Each
`execute()` call consumes the next queued `FakeResult` (or raises it, when an
exception is queued), so a test scripts the server's answers up front.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import psycopg
import pymysql
import pytest


@dataclass
class FakeResult:
    """One server answer to an execute() call."""

    columns: tuple[str, ...] = ()
    rows: list[tuple[Any, ...]] = field(default_factory=list)
    rowcount: int | None = None
    lastrowid: int | None = None
    # Number of further result sets (script statements) after this one.
    extra_sets: int = 0
    # Raised when stepping past the last extra result set.
    nextset_error: BaseException | None = None


class FakeCursor:
    def __init__(self, connection: FakeConnection):
        self.connection = connection
        self.description = None
        self.rowcount = -1
        self.lastrowid = None
        self.closed = False
        self._rows: list[tuple[Any, ...]] = []
        self._extra_sets = 0
        self._nextset_error: BaseException | None = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def execute(self, query, params=None):
        self.connection.executed.append((query, params))
        outcome = self.connection.results.pop(0) if self.connection.results else FakeResult()
        if isinstance(outcome, BaseException):
            raise outcome
        self.description = [(name,) for name in outcome.columns] or None
        self._rows = list(outcome.rows)
        self.rowcount = outcome.rowcount if outcome.rowcount is not None else len(outcome.rows)
        self.lastrowid = outcome.lastrowid
        self._extra_sets = outcome.extra_sets
        self._nextset_error = outcome.nextset_error

    def nextset(self):
        if self._extra_sets > 0:
            self._extra_sets -= 1
            self.connection.sets_read += 1
            return True
        if self._nextset_error is not None:
            error, self._nextset_error = self._nextset_error, None
            raise error
        return None

    def fetchone(self):
        if not self._rows:
            return None
        return self._rows.pop(0)

    def mogrify(self, query, params=None):
        quoted = {
            name: f"'{value}'" if isinstance(value, str) else value
            for name, value in (params or {}).items()
        }
        return query % quoted

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.results: list[FakeResult | BaseException] = []
        self.executed: list[tuple[str, Any]] = []
        self.cursors: list[FakeCursor] = []
        self.sets_read = 0
        self.closed = False

    def cursor(self):
        cursor = FakeCursor(self)
        self.cursors.append(cursor)
        return cursor

    def close(self):
        self.closed = True


class FakeDriver:
    """Replaces a driver's `connect()`; remembers every connection it made."""

    def __init__(self):
        self.connections: list[FakeConnection] = []
        self.connect_error: BaseException | None = None
        # Answers queued before the connection exists; moved onto it at connect().
        self.results: list[FakeResult | BaseException] = []

    def connect(self, *args, **kwargs):
        if self.connect_error is not None:
            raise self.connect_error
        connection = FakeConnection(**kwargs)
        connection.results = self.results
        self.connections.append(connection)
        return connection

    @property
    def connection(self) -> FakeConnection:
        return self.connections[-1]


@pytest.fixture
def mysql_driver(monkeypatch) -> FakeDriver:
    driver = FakeDriver()
    monkeypatch.setattr(pymysql, "connect", driver.connect)
    return driver


@pytest.fixture
def pg_driver(monkeypatch) -> FakeDriver:
    driver = FakeDriver()
    monkeypatch.setattr(psycopg, "connect", driver.connect)
    return driver
