"""Sign and house placement helpers."""
from __future__ import annotations

from typing import Optional, Sequence

from models import PlacedPoint, Point, Sign
from .dignities import dignities_for
from .precision import normalize_degrees


def degree_in_sign(degree: float) -> float:
    return normalize_degrees(degree) % 30


def sign_distance(degree_a: float, degree_b: float) -> int:
    """Number of whole signs between two longitudes, folded into 0..6."""
    diff = abs(Sign.from_degree(degree_a).ordinal - Sign.from_degree(degree_b).ordinal)
    if diff > 6:
        diff = 12 - diff
    return diff


def expected_sign_span(angle: float) -> int:
    """Signs an aspect of ``angle`` degrees is expected to span."""
    return int(angle / 30 + 0.5)


def house_for_degree(degree: float, cusps: Optional[Sequence[float]]) -> Optional[int]:
    """House (1-12) containing ``degree``, or ``None`` without 12 cusps."""
    if not cusps or len(cusps) != 12:
        return None
    longitude = normalize_degrees(degree)

    for i in range(12):
        current_cusp = normalize_degrees(cusps[i])
        next_cusp = normalize_degrees(cusps[(i + 1) % 12])

        if current_cusp > next_cusp:  # Crosses 0°
            if longitude >= current_cusp or longitude < next_cusp:
                return i + 1
        elif current_cusp <= longitude < next_cusp:
            return i + 1

    return None


def place_point(
    point: Point,
    chart_name: Optional[str] = None,
    cusps: Optional[Sequence[float]] = None,
    with_dignities: bool = False,
) -> PlacedPoint:
    sign = Sign.from_degree(point.degree)
    return PlacedPoint(
        name=point.name,
        degree=point.degree,
        sign=sign,
        chart_name=chart_name,
        house=house_for_degree(point.degree, cusps),
        dignities=dignities_for(point.name, sign) if with_dignities else (),
    )
