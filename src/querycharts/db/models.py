from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from querycharts.exceptions.errors import ConfigError, QueryError


class EngineKind(str, Enum):
    MYSQL = "mysql"
    POSTGRES = "postgres"

    @classmethod
    def parse(cls, value: Any) -> "EngineKind":
        if isinstance(value, EngineKind):
            return value
        t = str(value or "").strip().lower()
        if t in {"postgresql", "pg"}:
            t = "postgres"
        try:
            return cls(t)
        except ValueError:
            raise ConfigError(f"Unsupported engine type: {value!r}") from None


DEFAULT_PORTS: Dict[EngineKind, int] = {
    EngineKind.MYSQL: 3306,
    EngineKind.POSTGRES: 5432,
}


@dataclass(frozen=True)
class DataSourceConfig:
    """Connection settings for one database, owned by the caller."""

    type: EngineKind
    host: str = "localhost"
    port: Optional[int] = None
    user: str = ""
    password: str = field(default="", repr=False)
    database: str = ""

    @property
    def effective_port(self) -> int:
        return int(self.port) if self.port else DEFAULT_PORTS[self.type]

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "DataSourceConfig":
        port = d.get("port")
        return cls(
            type=EngineKind.parse(d.get("type")),
            host=str(d.get("host") or "localhost"),
            port=int(port) if port not in (None, "") else None,
            user=str(d.get("user") or ""),
            password=str(d.get("password") or ""),
            database=str(d.get("database") or ""),
        )


@dataclass(frozen=True)
class FieldInfo:
    name: str
    type: str = ""


@dataclass(frozen=True)
class NormalizedResult:
    """Engine-agnostic query result.

    Field order defines the column indices used by every downstream lookup,
    so rows are checked to be rectangular on construction.
    """

    fields: List[FieldInfo]
    rows: List[List[Any]]
    runtime_millis: float = 0.0

    def __post_init__(self) -> None:
        width = len(self.fields)
        for i, row in enumerate(self.rows):
            if len(row) != width:
                raise QueryError(f"Row {i} has {len(row)} values, expected {width}")
        if self.runtime_millis < 0:
            raise QueryError("runtime_millis must be >= 0")

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def column_index(self, name: str) -> int:
        for i, f in enumerate(self.fields):
            if f.name == name:
                return i
        return -1

    def column(self, name: str) -> List[Any]:
        idx = self.column_index(name)
        if idx < 0:
            raise KeyError(name)
        return [row[idx] for row in self.rows]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=self.field_names)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields": [{"name": f.name, "type": f.type} for f in self.fields],
            "rows": [list(r) for r in self.rows],
            "runtimeMillis": self.runtime_millis,
        }


def normalize_rows(rows: Sequence[Sequence[Any]]) -> List[List[Any]]:
    return [list(r) for r in rows]
