from __future__ import annotations
from pathlib import Path
from typing import Optional

from querycharts.db.models import NormalizedResult
from querycharts.exceptions.errors import ExportError
from querycharts.logging.logger import get_logger
from querycharts.viz.plotly_factory import build_figure
from querycharts.viz.spec import ChartSpec

log = get_logger("export.exporter")

# Max width of an embedded gist image in a desktop browser
SVG_WIDTH = 1100
SVG_HEIGHT = 300


def export_svg(spec: ChartSpec, width: int = SVG_WIDTH, height: int = SVG_HEIGHT) -> Optional[str]:
    """Render the chart as an SVG document, or None when there is nothing to draw."""
    fig = build_figure(spec)
    if not fig.data:
        return None
    try:
        raw = fig.to_image(format="svg", width=width, height=height)
    except Exception as e:
        log.exception("SVG export failed")
        raise ExportError("SVG export failed") from e

    svg = raw.decode("utf-8") if isinstance(raw, bytes) else raw
    svg = svg.replace('"Open Sans"', "'Open Sans'")
    log.info("Exported SVG", extra={"chart_type": spec.type.value, "bytes": len(svg)})
    return svg


def export_result_csv(result: NormalizedResult, path: str) -> str:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    try:
        result.to_frame().to_csv(path, index=False, encoding="utf-8")
    except Exception as e:
        log.exception("CSV export failed")
        raise ExportError("CSV export failed") from e
    log.info("Exported CSV", extra={"path": path, "rows": len(result.rows)})
    return path
