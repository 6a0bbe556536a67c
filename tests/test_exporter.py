from __future__ import annotations

import pandas as pd
import plotly.graph_objects as go
import pytest

from querycharts.db.models import FieldInfo, NormalizedResult
from querycharts.exceptions.errors import ExportError
from querycharts.export.exporter import export_result_csv, export_svg
from querycharts.viz.spec import ChartSpec


SPEC = ChartSpec(type="bar", x="day", y=["a"], fields=["day", "a"], rows=[["mon", 1], ["tue", 2]])


def test_export_svg_uses_fixed_size(monkeypatch):
    calls = []

    def fake_to_image(self, format=None, width=None, height=None, **kw):
        calls.append((format, width, height))
        return b'<svg><text style="font-family: "Open Sans""/></svg>'

    monkeypatch.setattr(go.Figure, "to_image", fake_to_image)
    svg = export_svg(SPEC)

    assert calls == [("svg", 1100, 300)]
    assert "'Open Sans'" in svg
    assert '"Open Sans"' not in svg


def test_export_svg_without_series_returns_none(monkeypatch):
    monkeypatch.setattr(go.Figure, "to_image", lambda *a, **k: pytest.fail("should not render"))
    empty = ChartSpec(type="line", x="day", y=[], fields=["day"], rows=[])
    assert export_svg(empty) is None


def test_export_svg_failure_is_export_error(monkeypatch):
    def boom(self, **kw):
        raise ValueError("kaleido missing")

    monkeypatch.setattr(go.Figure, "to_image", boom)
    with pytest.raises(ExportError):
        export_svg(SPEC)


def test_export_result_csv(tmp_path):
    result = NormalizedResult(fields=[FieldInfo("day"), FieldInfo("a")], rows=[["mon", 1], ["tue", 2]])
    path = export_result_csv(result, str(tmp_path / "out" / "result.csv"))
    df = pd.read_csv(path)
    assert list(df.columns) == ["day", "a"]
    assert df["a"].tolist() == [1, 2]
