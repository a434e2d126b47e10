"""
Shared pytest fixtures for dbcommon tests.

This module provides:
- Cleanup fixtures for the process-wide default context and settings cache
- A file-backed SQLite database with a small ``products`` table
- ``FakeDriver``: an in-test DB-API module for resource-safety and
  stored-procedure tests, registered as the ``fake`` provider

Usage:
    def test_something(fake_driver, fake_context):
        fake_driver.rows = [(1, "widget")]
        ...
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from dbcommon.context import DatabaseContext, reset_default_context
from dbcommon.providers import ProviderFactory, provider_registry
from dbcommon.settings import ConnectionConfig, clear_settings_cache


# =============================================================================
# Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_process_state(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[None, None, None]:
    """Each test starts without a resolved default context or cached settings."""
    monkeypatch.delenv("DBCOMMON_CONFIG_FILE", raising=False)
    monkeypatch.chdir(tmp_path)
    reset_default_context()
    clear_settings_cache()
    yield
    reset_default_context()
    clear_settings_cache()
    provider_registry.unregister("fake")


# =============================================================================
# SQLite
# =============================================================================

PRODUCTS = [
    (1, "anvil", "HARDWARE", 19.99, "ACTIVE"),
    (2, "bolt", "HARDWARE", 0.25, "ACTIVE"),
    (3, "crate", "STORAGE", 12.5, "RETIRED"),
    (4, "drill", "TOOLS", 89.0, "ACTIVE"),
    (5, "easel", "ART", 45.0, None),
    (6, "funnel", "KITCHEN", 3.75, "ACTIVE"),
    (7, "gauge", "TOOLS", 22.0, "UNKNOWN"),
]


@pytest.fixture
def sqlite_path(tmp_path: Path) -> Path:
    """A SQLite file holding the ``products`` table."""
    path = tmp_path / "products.db"
    conn = sqlite3.connect(path)
    conn.execute(
        "CREATE TABLE products ("
        "id INTEGER PRIMARY KEY, name TEXT NOT NULL, category TEXT, "
        "price REAL, status TEXT)"
    )
    conn.executemany("INSERT INTO products VALUES (?, ?, ?, ?, ?)", PRODUCTS)
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def sqlite_config(sqlite_path: Path) -> ConnectionConfig:
    return ConnectionConfig(name="main", connection_string=str(sqlite_path), provider_name="sqlite")


@pytest.fixture
def sqlite_context(sqlite_config: ConnectionConfig) -> DatabaseContext:
    return DatabaseContext.from_config(sqlite_config)


# =============================================================================
# Fake DB-API driver
# =============================================================================


class FakeError(Exception):
    """The fake driver's DB-API ``Error``."""


class FakeCursor:
    def __init__(self, connection: FakeConnection) -> None:
        self.connection = connection
        self.driver = connection.driver
        self.description: list[tuple] | None = None
        self.rowcount = -1
        self.closed = False
        self._rows: list[tuple] = []

    def _check(self) -> None:
        if self.driver.fail_with is not None:
            raise self.driver.fail_with

    def execute(self, sql: str, params: Any = ()) -> None:
        self.driver.executed.append((sql, params))
        self._check()
        self.description = [(name, None, None, None, None, None, None) for name in self.driver.columns]
        self._rows = list(self.driver.rows)
        self.rowcount = self.driver.rowcount

    def fetchone(self) -> tuple | None:
        return self._rows.pop(0) if self._rows else None

    def callproc(self, name: str, args: list[Any]) -> list[Any]:
        self.driver.calls.append((name, list(args)))
        self._check()
        return self.driver.procedure(list(args))

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    def __init__(self, driver: FakeDriver, dsn: str, options: dict[str, Any]) -> None:
        self.driver = driver
        self.dsn = dsn
        self.options = options
        self.close_count = 0
        self.commits = 0
        self.rollbacks = 0
        self.cursors: list[FakeCursor] = []

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def cursor(self) -> FakeCursor:
        cursor = FakeCursor(self)
        self.cursors.append(cursor)
        return cursor

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        self.close_count += 1


class FakeDriver:
    """Module-like DB-API stand-in, configurable per test."""

    paramstyle = "qmark"
    Error = FakeError

    def __init__(self) -> None:
        self.connections: list[FakeConnection] = []
        self.executed: list[tuple[str, Any]] = []
        self.calls: list[tuple[str, list[Any]]] = []
        self.columns: list[str] = ["id", "name"]
        self.rows: list[tuple] = []
        self.rowcount = 0
        self.fail_with: Exception | None = None
        self.procedure: Callable[[list[Any]], list[Any]] = lambda args: args

    def connect(self, dsn: str, **options: Any) -> FakeConnection:
        connection = FakeConnection(self, dsn, options)
        self.connections.append(connection)
        return connection

    @property
    def last_connection(self) -> FakeConnection:
        return self.connections[-1]


@pytest.fixture
def fake_driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def fake_provider(fake_driver: FakeDriver) -> ProviderFactory:
    provider = ProviderFactory("fake", "fake_driver", "oracle", module=fake_driver)
    provider_registry.register("fake", provider)
    return provider


@pytest.fixture
def fake_context(fake_provider: ProviderFactory) -> DatabaseContext:
    config = ConnectionConfig(
        name="fake",
        connection_string="scott/tiger@fakehost/orcl",
        provider_name="fake",
        options={"timeout": 5},
    )
    return DatabaseContext.from_config(config)
