from __future__ import annotations

import psycopg2
import pymysql
import pytest
from psycopg2 import errors as pg_errors

from querycharts.db.cancellation import CancellationToken
from querycharts.db.executor import execute, execute_for
from querycharts.exceptions.errors import (
    ConfigError,
    ConnectionError,
    QueryCancelledError,
    QueryError,
    QueryTimeoutError,
)


# ---------------------------------------------------------------- postgres


def test_postgres_execute_normalizes_result(fake_pg, pg_config):
    result = execute("postgres", "select region, sales from t", pg_config)

    assert result.field_names == ["region", "sales"]
    assert result.rows == [["east", 10], ["west", 20]]
    assert all(len(r) == len(result.fields) for r in result.rows)
    assert result.runtime_millis >= 0

    conn = fake_pg.connections[0]
    assert conn.executed == [("select region, sales from t", None)]
    assert conn.autocommit is True
    assert conn.closed is True


def test_postgres_connect_kwargs(fake_pg, pg_config):
    execute("postgres", "select 1", pg_config)
    kwargs = fake_pg.connect_kwargs[0]
    assert kwargs["host"] == "db.local"
    assert kwargs["port"] == 5432
    assert kwargs["dbname"] == "analytics"
    assert "connect_timeout" not in kwargs


def test_postgres_timeout_reaches_connection(fake_pg, pg_config):
    execute("postgres", "select 1", pg_config, timeout=2.5)
    kwargs = fake_pg.connect_kwargs[0]
    assert kwargs["connect_timeout"] == 3
    assert kwargs["options"] == "-c statement_timeout=2500"


def test_postgres_sub_millisecond_timeout_stays_enabled(fake_pg, pg_config):
    execute("postgres", "select 1", pg_config, timeout=0.0004)
    assert fake_pg.connect_kwargs[0]["options"] == "-c statement_timeout=1"


def test_runtime_excludes_connection_setup(fake_pg, pg_config):
    fake_pg.connect_delay = 0.2
    result = execute("postgres", "select 1", pg_config)
    assert 0 <= result.runtime_millis < 200


def test_postgres_bad_credentials_is_connection_error(fake_pg, pg_config):
    fake_pg.connect_error = psycopg2.OperationalError('password authentication failed for user "app"')
    with pytest.raises(ConnectionError) as ei:
        execute("postgres", "select 1", pg_config)
    assert "password authentication failed" in str(ei.value)
    assert isinstance(ei.value.__cause__, psycopg2.OperationalError)


def test_postgres_invalid_query_is_query_error_and_closes(fake_pg, pg_config):
    fake_pg.query_error = pg_errors.SyntaxError('syntax error at or near "selct"')
    with pytest.raises(QueryError) as ei:
        execute("postgres", "selct 1", pg_config)
    assert not isinstance(ei.value, (QueryTimeoutError, QueryCancelledError))
    assert fake_pg.connections[0].closed is True


def test_postgres_statement_timeout(fake_pg, pg_config):
    fake_pg.query_error = pg_errors.QueryCanceled("canceling statement due to statement timeout")
    with pytest.raises(QueryTimeoutError):
        execute("postgres", "select pg_sleep(10)", pg_config, timeout=1)
    assert fake_pg.connections[0].closed is True


def test_postgres_cancelled_while_running(fake_pg, pg_config):
    token = CancellationToken()
    fake_pg.on_execute = token.cancel
    fake_pg.query_error = pg_errors.QueryCanceled("canceling statement due to user request")

    with pytest.raises(QueryCancelledError):
        execute("postgres", "select pg_sleep(10)", pg_config, cancel_token=token)

    conn = fake_pg.connections[0]
    assert conn.cancelled is True
    assert conn.closed is True


def test_each_call_uses_its_own_connection(fake_pg, pg_config):
    execute("postgres", "select 1", pg_config)
    execute("postgres", "select 2", pg_config)
    assert len(fake_pg.connections) == 2
    assert all(c.closed for c in fake_pg.connections)
    assert [c.executed[0][0] for c in fake_pg.connections] == ["select 1", "select 2"]


# ---------------------------------------------------------------- mysql


def test_mysql_execute_normalizes_result(fake_mysql, mysql_config):
    result = execute("mysql", "select region, sales from t", mysql_config)

    assert [(f.name, f.type) for f in result.fields] == [("region", "var_string"), ("sales", "long")]
    assert result.rows == [["east", 10], ["west", 20]]
    assert result.runtime_millis >= 0
    assert fake_mysql.connections[0].closed is True

    kwargs = fake_mysql.connect_kwargs[0]
    assert kwargs["autocommit"] is True
    assert kwargs["database"] == "analytics"


def test_mysql_bad_credentials_is_connection_error(fake_mysql, mysql_config):
    fake_mysql.connect_error = pymysql.err.OperationalError(1045, "Access denied for user 'app'")
    with pytest.raises(ConnectionError):
        execute("mysql", "select 1", mysql_config)
    assert fake_mysql.connections == []


def test_mysql_invalid_query_is_query_error(fake_mysql, mysql_config):
    fake_mysql.query_error = pymysql.err.ProgrammingError(1064, "You have an error in your SQL syntax")
    with pytest.raises(QueryError) as ei:
        execute("mysql", "selct 1", mysql_config)
    assert "SQL syntax" in str(ei.value)
    assert fake_mysql.connections[0].closed is True


def test_mysql_read_timeout(fake_mysql, mysql_config):
    fake_mysql.query_error = pymysql.err.OperationalError(2013, "Lost connection to MySQL server during query (timed out)")
    with pytest.raises(QueryTimeoutError):
        execute("mysql", "select sleep(10)", mysql_config, timeout=1)
    kwargs = fake_mysql.connect_kwargs[0]
    assert kwargs["read_timeout"] == 1
    assert kwargs["connect_timeout"] == 1


def test_mysql_statement_without_result_set(fake_mysql, mysql_config):
    fake_mysql.description = None
    result = execute("mysql", "update t set a = 1", mysql_config)
    assert result.fields == []
    assert result.rows == []


# ---------------------------------------------------------------- dispatch


def test_cancelled_token_never_connects(fake_pg, pg_config):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(QueryCancelledError):
        execute("postgres", "select 1", pg_config, cancel_token=token)
    assert fake_pg.connect_kwargs == []


def test_unknown_engine_is_config_error(pg_config):
    with pytest.raises(ConfigError):
        execute("oracle", "select 1 from dual", pg_config)


def test_non_positive_timeout_rejected(fake_pg, pg_config):
    with pytest.raises(ConfigError):
        execute("postgres", "select 1", pg_config, timeout=0)


def test_execute_for_uses_config_engine(fake_mysql, mysql_config):
    result = execute_for(mysql_config, "select 1")
    assert result.field_names == ["region", "sales"]
    assert len(fake_mysql.connections) == 1


def test_mysql_cancel_kills_running_query(fake_mysql, mysql_config):
    token = CancellationToken()
    fake_mysql.on_execute = token.cancel
    fake_mysql.query_error = pymysql.err.OperationalError(1317, "Query execution was interrupted")

    with pytest.raises(QueryCancelledError):
        execute("mysql", "select sleep(10)", mysql_config, cancel_token=token)

    # First connection ran the query; the second one issued KILL QUERY for its thread id
    query_conn, side_conn = fake_mysql.connections
    assert side_conn.executed == [("KILL QUERY %s", (42,))]
    assert query_conn.closed and side_conn.closed
