"""Input validation for raw chart data.

``validate_input`` reports the first problem found as a message naming the
chart and field; ``load_charts`` turns valid input into ``Chart`` models.
"""
from __future__ import annotations

import math
from collections import Counter
from typing import Any, List, Mapping, Optional, Sequence, Union

from models import Chart, ChartKind

MAX_CHARTS = 10
VALID_CHART_KINDS = tuple(kind.value for kind in ChartKind)

RawChart = Mapping[str, Any]
RawInput = Union[RawChart, Sequence[RawChart]]


class InputShapeError(ValueError):
    """Raised when chart input fails validation."""
    pass


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _duplicates(names: Sequence[Any]) -> List[Any]:
    counts = Counter(names)
    return [name for name, count in counts.items() if count > 1]


def validate_point(point: Any) -> Optional[str]:
    if not isinstance(point, Mapping):
        return "Point must be an object"
    name = point.get("name")
    if not isinstance(name, str) or not name.strip():
        return "Point name must be a non-empty string"
    if not _is_number(point.get("degree")):
        return f"Point {name} has invalid degree value: {point.get('degree')!r}"
    speed = point.get("speed")
    if speed is not None and not _is_number(speed):
        return f"Point {name} has invalid speed value: {speed!r}"
    return None


def validate_points(points: Any) -> Optional[str]:
    if not isinstance(points, (list, tuple)):
        return "Points must be an array"
    for i, point in enumerate(points):
        error = validate_point(point)
        if error:
            return f"Point at index {i}: {error}"
    duplicates = _duplicates([p["name"] for p in points])
    if duplicates:
        return f"Duplicate point names found: {', '.join(duplicates)}"
    return None


def validate_cusps(cusps: Any) -> Optional[str]:
    if cusps is None:
        return None
    if not isinstance(cusps, (list, tuple)):
        return "House cusps must be an array"
    if len(cusps) != 12:
        return f"House cusps must contain exactly 12 values, got {len(cusps)}"
    for i, cusp in enumerate(cusps):
        if not _is_number(cusp):
            return f"House cusp {i + 1} has invalid value: {cusp!r}"
    return None


def validate_chart(chart: Any) -> Optional[str]:
    if not isinstance(chart, Mapping):
        return "Chart data must be an object"

    name = chart.get("name")
    if not isinstance(name, str) or not name.strip():
        return "Chart name must be a non-empty string"

    points_error = validate_points(chart.get("points", chart.get("planets", [])))
    if points_error:
        return f"Points validation failed: {points_error}"

    for angle in ("ascendant", "midheaven"):
        value = chart.get(angle)
        if value is not None and not _is_number(value):
            return f"{angle.capitalize()} has invalid value: {value!r}"

    cusps_error = validate_cusps(chart.get("cusps", chart.get("house_cusps")))
    if cusps_error:
        return f"House cusps validation failed: {cusps_error}"

    location = chart.get("location")
    if location is not None and not isinstance(location, str):
        return "Location must be a string"

    kind = chart.get("kind", chart.get("chart_type"))
    if kind is not None and kind not in VALID_CHART_KINDS:
        return f"Chart type must be one of: {', '.join(VALID_CHART_KINDS)}"

    return None


def validate_charts(charts: Any) -> Optional[str]:
    if not isinstance(charts, (list, tuple)):
        return "Multi-chart data must be an array"
    if not charts:
        return "Multi-chart data must contain at least one chart"
    if len(charts) > MAX_CHARTS:
        return f"Multi-chart data cannot contain more than {MAX_CHARTS} charts"

    for i, chart in enumerate(charts):
        error = validate_chart(chart)
        if error:
            label = chart.get("name") if isinstance(chart, Mapping) else None
            return f"Chart at index {i} ({label or 'unnamed'}): {error}"

    duplicates = _duplicates([chart["name"] for chart in charts])
    if duplicates:
        return f"Duplicate chart names found: {', '.join(duplicates)}"

    transits = [c for c in charts if c.get("kind", c.get("chart_type")) == ChartKind.TRANSIT.value]
    if len(transits) > 1:
        return "Cannot have more than one transit chart"

    return None


def validate_input(raw: Any) -> Optional[str]:
    """Return an error message for invalid input, or ``None`` when it is valid."""
    if not raw:
        return "Data is required"
    if isinstance(raw, Mapping):
        error = validate_chart(raw)
        return f"Chart ({raw.get('name') or 'unnamed'}): {error}" if error else None
    return validate_charts(raw)


def load_charts(raw: RawInput) -> List[Chart]:
    """Validate ``raw`` and build ``Chart`` models from it."""
    error = validate_input(raw)
    if error:
        raise InputShapeError(error)
    charts = [raw] if isinstance(raw, Mapping) else list(raw)
    return [Chart.from_dict(chart) for chart in charts]
