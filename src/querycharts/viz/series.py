from __future__ import annotations

import numbers
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from querycharts.exceptions.errors import ChartRenderError
from querycharts.logging.logger import get_logger
from querycharts.viz.spec import ChartSpec, Series

log = get_logger("viz.series")


def _require_index(spec: ChartSpec, name: str, role: str) -> int:
    idx = spec.field_index(name)
    if idx < 0:
        raise ChartRenderError(f"{role} field {name!r} is not a column of the result")
    return idx


def _group_sort_key(value: Any) -> Tuple[int, str, Any]:
    # Used only when group values are not mutually comparable (mixed types / NULL).
    # Numbers share one bucket so 1 < 1.5 < 2 regardless of int/float/Decimal.
    if value is None:
        return (0, "", "")
    if isinstance(value, (numbers.Real, Decimal)) and not isinstance(value, bool):
        return (1, "", value)
    return (2, type(value).__name__, value)


def sorted_group_values(values: List[Any]) -> List[Any]:
    try:
        return sorted(values)
    except TypeError:
        try:
            return sorted(values, key=_group_sort_key)
        except TypeError:
            return sorted(values, key=lambda v: (_group_sort_key(v)[:2], str(v)))


def format_group_value(value: Any) -> str:
    if value is None:
        return "null"
    return str(value)


def group_rows(spec: ChartSpec, group_idx: int) -> Dict[Any, List[List[Any]]]:
    """Partition rows by the group column in one pass, keeping row order within each group."""
    groups: Dict[Any, List[List[Any]]] = {}
    for row in spec.rows:
        groups.setdefault(row[group_idx], []).append(row)
    return groups


def generate_series(spec: ChartSpec) -> List[Series]:
    """Turn the chart spec's rows into named (x, y) series.

    Without a usable ``group_by`` there is one series per y field. With one, each
    y field is split per distinct group value (ascending), named ``"<y> (<group>)"``.
    """
    if not spec.y:
        return []

    x_idx = _require_index(spec, spec.x, "x")
    y_idxs = [(y, _require_index(spec, y, "y")) for y in spec.y]

    if not spec.has_valid_group_by():
        return [
            Series(name=y, x=[row[x_idx] for row in spec.rows], y=[row[y_idx] for row in spec.rows])
            for y, y_idx in y_idxs
        ]

    groups = group_rows(spec, spec.field_index(spec.group_by))
    keys = sorted_group_values(list(groups.keys()))
    log.debug("Grouped rows", extra={"group_by": spec.group_by, "groups": len(keys), "rows": len(spec.rows)})

    out: List[Series] = []
    for y, y_idx in y_idxs:
        for g in keys:
            subset = groups[g]
            out.append(
                Series(
                    name=f"{y} ({format_group_value(g)})",
                    x=[row[x_idx] for row in subset],
                    y=[row[y_idx] for row in subset],
                )
            )
    return out
