from __future__ import annotations
from typing import Callable, Dict, List
import plotly.graph_objects as go
from plotly.basedatatypes import BaseTraceType

from querycharts.exceptions.errors import ChartRenderError
from querycharts.logging.logger import get_logger
from querycharts.viz.distribution import normal_series
from querycharts.viz.series import generate_series
from querycharts.viz.spec import ChartSpec, ChartType, Stacking

log = get_logger("viz.plotly_factory")

MARKER_SIZE = 10


def _line(spec: ChartSpec) -> List[BaseTraceType]:
    return [go.Scatter(x=s.x, y=s.y, name=s.name, mode="lines") for s in generate_series(spec)]


def _scatter(spec: ChartSpec) -> List[BaseTraceType]:
    return [
        go.Scatter(x=s.x, y=s.y, name=s.name, mode="markers", marker=dict(size=MARKER_SIZE))
        for s in generate_series(spec)
    ]


def _bar(spec: ChartSpec) -> List[BaseTraceType]:
    return [go.Bar(x=s.x, y=s.y, name=s.name) for s in generate_series(spec)]


def _area(spec: ChartSpec) -> List[BaseTraceType]:
    return [
        go.Scatter(x=s.x, y=s.y, name=s.name, mode="lines", fill="tozeroy")
        for s in generate_series(spec)
    ]


def _pie(spec: ChartSpec) -> List[BaseTraceType]:
    # Pie only ever uses x as labels and the first y as values; group_by and extra y are ignored.
    if not spec.y:
        raise ChartRenderError("pie requires at least one y field.")
    x_idx = spec.field_index(spec.x)
    y_idx = spec.field_index(spec.y[0])
    if x_idx < 0 or y_idx < 0:
        raise ChartRenderError("Spec references missing columns.")
    return [
        go.Pie(
            labels=[row[x_idx] for row in spec.rows],
            values=[row[y_idx] for row in spec.rows],
            direction="clockwise",
        )
    ]


def _normal(spec: ChartSpec) -> List[BaseTraceType]:
    return [
        go.Scatter(x=s.x, y=s.y, name=s.name, mode="lines", showlegend=True)
        for s in normal_series(spec)
    ]


TRACE_BUILDERS: Dict[ChartType, Callable[[ChartSpec], List[BaseTraceType]]] = {
    ChartType.LINE: _line,
    ChartType.SCATTER: _scatter,
    ChartType.BAR: _bar,
    ChartType.AREA: _area,
    ChartType.PIE: _pie,
    ChartType.NORMAL: _normal,
}


def build_traces(spec: ChartSpec) -> List[BaseTraceType]:
    try:
        fn = TRACE_BUILDERS.get(spec.type)
        if fn is None:
            raise ChartRenderError(f"Unsupported chart type: {spec.type}")
        return fn(spec)
    except Exception:
        log.exception("Plotly trace build error", extra={"chart_type": spec.type.value})
        raise


def build_layout(spec: ChartSpec) -> go.Layout:
    layout = go.Layout(
        showlegend=True,
        margin=dict(l=50, r=50, t=10, b=10, pad=4),
        hoverlabel=dict(namelength=-1),
        xaxis=dict(automargin=True),
        yaxis=dict(automargin=True),
    )
    if spec.stacking is Stacking.ENABLE:
        layout.barmode = "stack"
    if spec.stacking is Stacking.PERCENT:
        layout.barmode = "stack"
        layout.barnorm = "percent"
    return layout


def build_figure(spec: ChartSpec) -> go.Figure:
    return go.Figure(data=build_traces(spec), layout=build_layout(spec))
