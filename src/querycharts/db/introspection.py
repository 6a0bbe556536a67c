from __future__ import annotations

from typing import Optional

from querycharts.db.base import engine_for
from querycharts.db.cancellation import CancellationToken
from querycharts.db.executor import execute
from querycharts.db.models import DataSourceConfig, NormalizedResult
from querycharts.logging.logger import get_logger


log = get_logger("db.introspection")


def fetch_tables(
    data_source: DataSourceConfig,
    timeout: Optional[float] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> NormalizedResult:
    """List user-visible tables (schema, name, kind) of ``data_source``."""
    engine = engine_for(data_source.type)
    sql, params = engine.tables_query(data_source)
    log.info("Fetching tables", extra={"engine": engine.kind.value, "database": data_source.database})
    return execute(engine.kind, sql, data_source, params=params, timeout=timeout, cancel_token=cancel_token)


def fetch_table_summary(
    table_name: str,
    data_source: DataSourceConfig,
    timeout: Optional[float] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> NormalizedResult:
    """Describe the columns of ``table_name``.

    Output columns: name, type, null, default_value, description. An unknown table
    gives whatever the catalog gives (an empty result or a QueryError).
    """
    engine = engine_for(data_source.type)
    sql, params = engine.table_summary_query(table_name, data_source)
    log.info("Fetching table summary", extra={"engine": engine.kind.value, "table": table_name})
    return execute(engine.kind, sql, data_source, params=params, timeout=timeout, cancel_token=cancel_token)
