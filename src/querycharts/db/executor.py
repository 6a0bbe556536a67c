from __future__ import annotations

from typing import Any, Optional, Sequence, Union

# Engine modules register themselves on import
import querycharts.db.mysql  # noqa: F401
import querycharts.db.postgres  # noqa: F401
from querycharts.db.base import engine_for
from querycharts.db.cancellation import CancellationToken
from querycharts.db.models import DataSourceConfig, EngineKind, NormalizedResult
from querycharts.exceptions.errors import ConfigError, QueryCancelledError
from querycharts.logging.logger import get_logger


log = get_logger("db.executor")


def execute(
    engine_kind: Union[EngineKind, str],
    query: str,
    config: DataSourceConfig,
    params: Optional[Sequence[Any]] = None,
    timeout: Optional[float] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> NormalizedResult:
    """Run one query on a fresh connection and return the normalized result.

    Raises ``ConnectionError`` when the database cannot be reached or rejects the
    credentials, ``QueryError`` (or its timeout/cancel subclasses) when the query fails.
    Nothing is pooled or shared between calls.
    """
    if timeout is not None and timeout <= 0:
        raise ConfigError(f"timeout must be > 0 seconds, got {timeout}")

    engine = engine_for(engine_kind)
    if cancel_token is not None and cancel_token.cancelled:
        log.info("Query cancelled before start", extra={"engine": engine.kind.value})
        raise QueryCancelledError("Query cancelled before start")

    return engine.execute(query, config, params=params, timeout=timeout, cancel_token=cancel_token)


def execute_for(
    config: DataSourceConfig,
    query: str,
    params: Optional[Sequence[Any]] = None,
    timeout: Optional[float] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> NormalizedResult:
    """Same as :func:`execute`, using the engine named by ``config.type``."""
    return execute(config.type, query, config, params=params, timeout=timeout, cancel_token=cancel_token)
