from __future__ import annotations

import time
from typing import Any, Callable, List, Optional

import psycopg2
import pymysql
import pytest

from querycharts.db.models import DataSourceConfig, EngineKind


class FakeCursor:
    def __init__(self, conn: "FakeConnection"):
        self.conn = conn
        self.description: Optional[List[Any]] = None

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc) -> None:
        return None

    def execute(self, sql: str, params: Any = None) -> None:
        self.conn.executed.append((sql, params))
        if self.conn.on_execute is not None:
            self.conn.on_execute()
        if self.conn.fail_with is not None:
            raise self.conn.fail_with
        self.description = self.conn.description

    def fetchall(self):
        return list(self.conn.result_rows)


class FakeConnection:
    def __init__(self, description=None, rows=(), fail_with: Optional[Exception] = None, on_execute=None):
        self.description = description
        self.result_rows = rows
        self.fail_with = fail_with
        self.on_execute = on_execute
        self.executed: List[Any] = []
        self.closed = False
        self.cancelled = False
        self.autocommit = False

    @property
    def open(self) -> bool:
        return not self.closed

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def cancel(self) -> None:
        self.cancelled = True

    def thread_id(self) -> int:
        return 42

    def close(self) -> None:
        self.closed = True


class FakeDriver:
    """Stands in for psycopg2.connect / pymysql.connect and records every connection."""

    def __init__(self):
        self.connections: List[FakeConnection] = []
        self.connect_kwargs: List[dict] = []
        self.connect_error: Optional[Exception] = None
        self.connect_delay = 0.0
        self.description = None
        self.rows: List[Any] = []
        self.query_error: Optional[Exception] = None
        self.on_execute: Optional[Callable[[], None]] = None

    def __call__(self, **kwargs) -> FakeConnection:
        self.connect_kwargs.append(kwargs)
        if self.connect_delay:
            time.sleep(self.connect_delay)
        if self.connect_error is not None:
            raise self.connect_error
        conn = FakeConnection(self.description, self.rows, self.query_error, self.on_execute)
        self.connections.append(conn)
        return conn


class PgColumn:
    def __init__(self, name: str, type_code: int):
        self.name = name
        self.type_code = type_code


@pytest.fixture
def fake_pg(monkeypatch) -> FakeDriver:
    driver = FakeDriver()
    driver.description = [PgColumn("region", 25), PgColumn("sales", 23)]
    driver.rows = [("east", 10), ("west", 20)]
    monkeypatch.setattr(psycopg2, "connect", driver)
    # Typecasters can only be registered on a real connection
    monkeypatch.setattr(psycopg2.extensions, "register_type", lambda *a, **k: None)
    return driver


@pytest.fixture
def fake_mysql(monkeypatch) -> FakeDriver:
    driver = FakeDriver()
    # (name, type_code, ...) as in the DB-API description
    driver.description = [("region", 253, None, None, None, None, True), ("sales", 3, None, None, None, None, True)]
    driver.rows = (("east", 10), ("west", 20))
    monkeypatch.setattr(pymysql, "connect", driver)
    return driver


@pytest.fixture
def pg_config() -> DataSourceConfig:
    return DataSourceConfig(
        type=EngineKind.POSTGRES, host="db.local", port=5432, user="app", password="secret", database="analytics"
    )


@pytest.fixture
def mysql_config() -> DataSourceConfig:
    return DataSourceConfig(
        type=EngineKind.MYSQL, host="db.local", port=3306, user="app", password="secret", database="analytics"
    )
