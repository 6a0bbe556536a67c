from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Tuple, Type

from querycharts.db.cancellation import CancellationToken
from querycharts.db.models import DataSourceConfig, EngineKind, NormalizedResult
from querycharts.exceptions.errors import ConfigError

# (sql, params) pair handed to QueryEngine.execute
Statement = Tuple[str, Optional[Sequence[Any]]]


class QueryEngine(Protocol):
    """Capabilities every database backend provides.

    ``execute`` must open its own connection, run exactly one statement and
    close that connection before returning, on success and on failure.
    """

    kind: EngineKind

    def execute(
        self,
        query: str,
        config: DataSourceConfig,
        params: Optional[Sequence[Any]] = None,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> NormalizedResult:
        ...

    def tables_query(self, config: DataSourceConfig) -> Statement:
        ...

    def table_summary_query(self, table: str, config: DataSourceConfig) -> Statement:
        ...


_ENGINES: Dict[EngineKind, QueryEngine] = {}


def register_engine(kind: EngineKind) -> Callable[[Type[Any]], Type[Any]]:
    def deco(cls: Type[Any]) -> Type[Any]:
        cls.kind = kind
        _ENGINES[kind] = cls()
        return cls
    return deco


def engine_for(kind: Any) -> QueryEngine:
    k = EngineKind.parse(kind)
    try:
        return _ENGINES[k]
    except KeyError:
        raise ConfigError(f"No query engine registered for {k.value!r}") from None


def query_head(sql: str) -> str:
    return " ".join((sql or "").split())[:300]
