from __future__ import annotations

import math
import time
from typing import Any, Dict, List, Optional, Sequence

import psycopg2
from psycopg2 import errors, extensions

from querycharts.db.base import Statement, query_head, register_engine
from querycharts.db.cancellation import CancellationToken
from querycharts.db.models import DataSourceConfig, EngineKind, FieldInfo, NormalizedResult, normalize_rows
from querycharts.db.utils import dialect_for
from querycharts.exceptions.errors import (
    ConnectionError,
    QueryCancelledError,
    QueryError,
    QueryTimeoutError,
)
from querycharts.logging.logger import get_logger


log = get_logger("db.postgres")

# date, timestamp, timestamptz: hand back the server's text instead of datetime objects
_RAW_TEXT_OIDS = (1082, 1114, 1184)
_RAW_TEXT = extensions.new_type(_RAW_TEXT_OIDS, "RAW_DATETIME", lambda value, cur: value)

TABLES_SQL = """
select table_schema, table_name, table_type
from information_schema.tables
where table_schema not in ('information_schema', 'pg_catalog', 'pg_internal')
"""

TABLE_SUMMARY_SQL = """
select
    pg_attribute.attname as name,
    pg_attribute.atttypid::regtype as type,
    case pg_attribute.attnotnull when true then 'NO' else 'YES' end as "null",
    pg_get_expr(pg_attrdef.adbin, pg_attrdef.adrelid) as default_value,
    pg_description.description as description
from
    pg_attribute
    left join pg_description on
        pg_description.objoid = pg_attribute.attrelid
        and pg_description.objsubid = pg_attribute.attnum
    left join pg_attrdef on
        pg_attrdef.adrelid = pg_attribute.attrelid
        and pg_attrdef.adnum = pg_attribute.attnum
where
    pg_attribute.attrelid = %s::regclass
    and not pg_attribute.attisdropped
    and pg_attribute.attnum > 0
order by pg_attribute.attnum
"""


def _cancel_open(conn) -> None:
    # The token may fire after execute() has already closed this connection
    if not conn.closed:
        conn.cancel()


def _type_name(type_code: Any) -> str:
    caster = extensions.string_types.get(type_code)
    if caster is not None:
        return caster.name.lower()
    return str(type_code)


@register_engine(EngineKind.POSTGRES)
class PostgresEngine:
    kind: EngineKind

    def connect(self, config: DataSourceConfig, timeout: Optional[float] = None):
        kwargs: Dict[str, Any] = {
            "host": config.host,
            "port": config.effective_port,
            "user": config.user,
            "password": config.password,
            "dbname": config.database,
        }
        if timeout:
            kwargs["connect_timeout"] = max(1, math.ceil(timeout))
            kwargs["options"] = f"-c statement_timeout={max(1, math.ceil(timeout * 1000))}"

        try:
            conn = psycopg2.connect(**kwargs)
        except psycopg2.Error as e:
            log.warning(
                "PostgreSQL connection failed",
                extra={"host": config.host, "database": config.database, "error": str(e).strip()},
            )
            raise ConnectionError(f"Could not connect to PostgreSQL at {config.host}: {str(e).strip()}") from e

        conn.autocommit = True
        extensions.register_type(_RAW_TEXT, conn)
        return conn

    def execute(
        self,
        query: str,
        config: DataSourceConfig,
        params: Optional[Sequence[Any]] = None,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> NormalizedResult:
        log.info(
            "PostgreSQL execute",
            extra={"host": config.host, "database": config.database, "sql_head": query_head(query)},
        )

        conn = self.connect(config, timeout)
        unregister = cancel_token.register(lambda: _cancel_open(conn)) if cancel_token is not None else None
        try:
            if cancel_token is not None and cancel_token.cancelled:
                raise QueryCancelledError("PostgreSQL query cancelled before it was sent")
            with conn.cursor() as cur:
                start = time.perf_counter()
                cur.execute(query, params)
                rows = cur.fetchall() if cur.description is not None else []
                runtime = (time.perf_counter() - start) * 1000.0
                fields: List[FieldInfo] = [
                    FieldInfo(name=d.name, type=_type_name(d.type_code)) for d in (cur.description or [])
                ]
        except errors.QueryCanceled as e:
            if cancel_token is not None and cancel_token.cancelled:
                raise QueryCancelledError("PostgreSQL query cancelled") from e
            raise QueryTimeoutError(f"PostgreSQL query exceeded {timeout}s: {str(e).strip()}") from e
        except psycopg2.Error as e:
            log.warning("PostgreSQL query failed", extra={"error": str(e).strip(), "pgcode": e.pgcode})
            raise QueryError(str(e).strip()) from e
        finally:
            if unregister is not None:
                unregister()
            conn.close()

        log.info("PostgreSQL query finished", extra={"rows": len(rows), "runtime_ms": round(runtime, 3)})
        return NormalizedResult(fields=fields, rows=normalize_rows(rows), runtime_millis=runtime)

    def tables_query(self, config: DataSourceConfig) -> Statement:
        return TABLES_SQL, None

    def table_summary_query(self, table: str, config: DataSourceConfig) -> Statement:
        # Bound as a parameter and quoted so ::regclass resolves the exact (case-sensitive) name
        return TABLE_SUMMARY_SQL, (dialect_for(EngineKind.POSTGRES).qualified(table),)
