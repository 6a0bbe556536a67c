from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence

from querycharts.db.models import NormalizedResult
from querycharts.exceptions.errors import ChartRenderError


class ChartType(str, Enum):
    LINE = "line"
    SCATTER = "scatter"
    BAR = "bar"
    AREA = "area"
    PIE = "pie"
    NORMAL = "normal"


class Stacking(str, Enum):
    OFF = "off"
    ENABLE = "enable"
    PERCENT = "percent"

    @classmethod
    def parse(cls, value: Any) -> "Stacking":
        if isinstance(value, Stacking):
            return value
        # Older saved charts store "no stacking" as 0 / null
        if not value:
            return cls.OFF
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ChartRenderError(f"Unsupported stacking mode: {value!r}") from None


def _parse_type(value: Any) -> ChartType:
    if isinstance(value, ChartType):
        return value
    try:
        return ChartType(str(value or "").strip().lower())
    except ValueError:
        raise ChartRenderError(f"Unsupported chart type: {value!r}") from None


@dataclass(frozen=True)
class Series:
    name: str
    x: List[Any]
    y: List[Any]

    def __post_init__(self) -> None:
        if len(self.x) != len(self.y):
            raise ChartRenderError(
                f"Series {self.name!r} has {len(self.x)} x values but {len(self.y)} y values"
            )


@dataclass(frozen=True)
class ChartSpec:
    """What to draw and the table it is drawn from."""

    type: ChartType
    x: str
    y: List[str]
    fields: List[str]
    rows: List[List[Any]]
    stacking: Stacking = Stacking.OFF
    group_by: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", _parse_type(self.type))
        object.__setattr__(self, "stacking", Stacking.parse(self.stacking))

    @classmethod
    def from_result(
        cls,
        result: NormalizedResult,
        type: Any,
        x: str,
        y: Sequence[str],
        stacking: Any = Stacking.OFF,
        group_by: Optional[str] = None,
    ) -> "ChartSpec":
        return cls(
            type=type,
            x=x,
            y=list(y),
            fields=result.field_names,
            rows=result.rows,
            stacking=stacking,
            group_by=group_by,
        )

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ChartSpec":
        fields = [f["name"] if isinstance(f, Mapping) else f for f in (d.get("fields") or [])]
        return cls(
            type=d.get("type"),
            x=d.get("x") or "",
            y=list(d.get("y") or []),
            fields=fields,
            rows=[list(r) for r in (d.get("rows") or [])],
            stacking=d.get("stacking"),
            group_by=d.get("groupBy"),
        )

    def field_index(self, name: str) -> int:
        """Index of the first field called ``name``; -1 when absent."""
        for i, f in enumerate(self.fields):
            if f == name:
                return i
        return -1

    def has_valid_group_by(self) -> bool:
        return bool(self.group_by) and self.group_by in self.fields
