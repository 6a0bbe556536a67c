from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

import pymysql
from pymysql.constants import FIELD_TYPE
from pymysql.converters import conversions

from querycharts.db.base import Statement, query_head, register_engine
from querycharts.db.cancellation import CancellationToken
from querycharts.db.models import DataSourceConfig, EngineKind, FieldInfo, NormalizedResult, normalize_rows
from querycharts.db.utils import schema_and_table
from querycharts.exceptions.errors import (
    ConnectionError,
    QueryCancelledError,
    QueryError,
    QueryTimeoutError,
)
from querycharts.logging.logger import get_logger


log = get_logger("db.mysql")

# Date/time columns come back as the server's text rather than datetime objects
_DECODERS = dict(conversions)
for _t in (FIELD_TYPE.DATE, FIELD_TYPE.DATETIME, FIELD_TYPE.TIMESTAMP, FIELD_TYPE.TIME):
    _DECODERS.pop(_t, None)

_FIELD_TYPE_NAMES: Dict[int, str] = {}
for _name, _code in vars(FIELD_TYPE).items():
    if _name.isupper() and isinstance(_code, int):
        _FIELD_TYPE_NAMES.setdefault(_code, _name.lower())

# ER_QUERY_INTERRUPTED: the statement was hit by KILL QUERY
_ER_QUERY_INTERRUPTED = 1317
# CR_SERVER_LOST: what a socket read timeout surfaces as
_CR_SERVER_LOST = 2013

TABLES_SQL = """
select table_name as table_name, table_type as table_type
from information_schema.tables
where table_schema = %s
"""

TABLE_SUMMARY_SQL = """
select
    column_name as name,
    column_type as type,
    is_nullable as `null`,
    column_default as default_value,
    column_comment as description
from information_schema.columns
where table_schema = coalesce(%s, database())
    and table_name = %s
order by ordinal_position
"""


def _error_code(e: Exception) -> Optional[int]:
    if e.args and isinstance(e.args[0], int):
        return e.args[0]
    return None


@register_engine(EngineKind.MYSQL)
class MySqlEngine:
    kind: EngineKind

    def connect(self, config: DataSourceConfig, timeout: Optional[float] = None):
        kwargs: Dict[str, Any] = {
            "host": config.host,
            "port": config.effective_port,
            "user": config.user,
            "password": config.password,
            "database": config.database or None,
            "charset": "utf8mb4",
            "autocommit": True,
            "conv": _DECODERS,
        }
        if timeout:
            kwargs["connect_timeout"] = timeout
            kwargs["read_timeout"] = timeout
            kwargs["write_timeout"] = timeout

        try:
            return pymysql.connect(**kwargs)
        except pymysql.MySQLError as e:
            log.warning(
                "MySQL connection failed",
                extra={"host": config.host, "database": config.database, "error": str(e)},
            )
            raise ConnectionError(f"Could not connect to MySQL at {config.host}: {e}") from e

    def _kill_query(self, config: DataSourceConfig, thread_id: int) -> None:
        """Abort ``thread_id``'s running statement from a short-lived side connection."""
        try:
            side = self.connect(config, timeout=5)
        except ConnectionError:
            log.warning("MySQL cancel could not connect", extra={"thread_id": thread_id})
            return
        try:
            with side.cursor() as cur:
                cur.execute("KILL QUERY %s", (thread_id,))
        except pymysql.MySQLError as e:
            log.warning("MySQL KILL QUERY failed", extra={"thread_id": thread_id, "error": str(e)})
        finally:
            side.close()

    def execute(
        self,
        query: str,
        config: DataSourceConfig,
        params: Optional[Sequence[Any]] = None,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> NormalizedResult:
        log.info(
            "MySQL execute",
            extra={"host": config.host, "database": config.database, "sql_head": query_head(query)},
        )

        conn = self.connect(config, timeout)
        unregister = None
        if cancel_token is not None:
            thread_id = conn.thread_id()
            unregister = cancel_token.register(lambda: self._kill_query(config, thread_id))
        try:
            if cancel_token is not None and cancel_token.cancelled:
                raise QueryCancelledError("MySQL query cancelled before it was sent")
            with conn.cursor() as cur:
                start = time.perf_counter()
                cur.execute(query, params)
                rows = cur.fetchall() if cur.description is not None else ()
                runtime = (time.perf_counter() - start) * 1000.0
                fields: List[FieldInfo] = [
                    FieldInfo(name=d[0], type=_FIELD_TYPE_NAMES.get(d[1], str(d[1])))
                    for d in (cur.description or ())
                ]
        except pymysql.MySQLError as e:
            code = _error_code(e)
            if cancel_token is not None and cancel_token.cancelled and code in (_ER_QUERY_INTERRUPTED, _CR_SERVER_LOST):
                raise QueryCancelledError("MySQL query cancelled") from e
            if timeout and code == _CR_SERVER_LOST:
                raise QueryTimeoutError(f"MySQL query exceeded {timeout}s: {e}") from e
            log.warning("MySQL query failed", extra={"error": str(e), "code": code})
            raise QueryError(str(e)) from e
        finally:
            if unregister is not None:
                unregister()
            if conn.open:
                conn.close()

        log.info("MySQL query finished", extra={"rows": len(rows), "runtime_ms": round(runtime, 3)})
        return NormalizedResult(fields=fields, rows=normalize_rows(rows), runtime_millis=runtime)

    def tables_query(self, config: DataSourceConfig) -> Statement:
        return TABLES_SQL, (config.database,)

    def table_summary_query(self, table: str, config: DataSourceConfig) -> Statement:
        schema, name = schema_and_table(table)
        return TABLE_SUMMARY_SQL, (schema, name)
