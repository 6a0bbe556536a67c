"""Normal approximation of a proportion's sampling distribution.

Used for conversion-rate style overlays: ``x`` holds trial counts (e.g. page
views), ``y`` holds success counts (e.g. conversions). The observed rate
``m = successes / trials`` has variance ``m (1 - m) / trials``; the curve is that
Gaussian sampled over ``m +/- 5 sd`` with its low-density tails dropped.
"""
from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Iterable, List

from querycharts.exceptions.errors import InvalidDistributionInput
from querycharts.viz.series import generate_series
from querycharts.viz.spec import ChartSpec, Series

SAMPLE_RESOLUTION = 5000
SIGMA_SPAN = 5
DENSITY_THRESHOLD = 0.1


def to_number(value: Any) -> float:
    """Numbers pass through; strings are parsed. Anything else is rejected."""
    if isinstance(value, bool) or value is None:
        raise InvalidDistributionInput(f"Expected a number, got {value!r}")
    try:
        if isinstance(value, (int, float, Decimal)):
            num = float(value)
        elif isinstance(value, str):
            text = value.strip()
            try:
                num = float(int(text))
            except ValueError:
                num = float(text)
        else:
            raise InvalidDistributionInput(f"Expected a number, got {type(value).__name__}")
    except (ValueError, ArithmeticError) as e:
        # OverflowError for integers beyond float range, ValueError for text and signaling NaN
        raise InvalidDistributionInput(f"Not a usable number: {str(value)[:40]!r}") from e

    if not math.isfinite(num):
        raise InvalidDistributionInput(f"Not a finite number: {value!r}")
    return num


def _total(values: Iterable[Any]) -> float:
    return sum(to_number(v) for v in values)


def sample_grid(xmin: float, step: float, n: int) -> List[float]:
    # Repeated addition, not xmin + i * step; sampled points depend on the accumulated rounding
    grid = [xmin]
    px = xmin
    for _ in range(n):
        px += step
        grid.append(px)
    return grid


def estimate_distribution(series: Series) -> Series:
    total_trials = _total(series.x)
    total_successes = _total(series.y)
    if not math.isfinite(total_trials) or not math.isfinite(total_successes):
        raise InvalidDistributionInput(f"Series {series.name!r}: totals overflow a float")
    if total_trials <= 0:
        raise InvalidDistributionInput(f"Series {series.name!r}: total trials must be > 0, got {total_trials}")

    m = total_successes / total_trials
    if m == 0:
        # no successes: nothing to draw for this series
        return Series(name=series.name, x=[], y=[])
    if not 0 < m < 1:
        raise InvalidDistributionInput(
            f"Series {series.name!r}: proportion {m} must be strictly between 0 and 1"
        )
    v = m * (1 - m) / total_trials
    d = math.sqrt(v)

    xmin = max(0.0, m - SIGMA_SPAN * d)
    xmax = m + SIGMA_SPAN * d
    step = xmax / SAMPLE_RESOLUTION
    n = math.floor((xmax - xmin) / step)

    scale = 1 / math.sqrt(2 * math.pi * v)
    xs: List[float] = []
    ys: List[float] = []
    for px in sample_grid(xmin, step, n):
        density = scale * math.exp(-((px - m) ** 2) / (2 * v))
        if density >= DENSITY_THRESHOLD:
            xs.append(px)
            ys.append(density)

    return Series(name=series.name, x=xs, y=ys)


def normal_series(spec: ChartSpec) -> List[Series]:
    return [estimate_distribution(s) for s in generate_series(spec)]
