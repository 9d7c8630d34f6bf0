"""Epsilon-tolerant helpers for angular values."""
from __future__ import annotations

import math

# About 0.0036 arc-minutes
DEFAULT_EPSILON = 1e-4
EXACT_ASPECT_EPSILON = 0.1
CUSP_EPSILON = 0.001


def normalize_degrees(degrees: float) -> float:
    """Wrap an angle into [0, 360)."""
    result = degrees % 360.0
    # -1e-17 % 360 gives 360.0 in floating point
    if result >= 360.0:
        result = 0.0
    return result


def float_equals(a: float, b: float, epsilon: float = DEFAULT_EPSILON) -> bool:
    return abs(a - b) < epsilon


def is_near_zero(value: float, epsilon: float = DEFAULT_EPSILON) -> bool:
    return abs(value) < epsilon


def round_half_up(value: float, places: int = 0) -> float:
    """Round halves away from the floor (2.25 -> 2.3 at one place), unlike ``round``."""
    scale = 10 ** places
    return math.floor(value * scale + 0.5) / scale


def round_degrees(degrees: float) -> float:
    """Round to 4 decimal places to stop float noise accumulating."""
    return round_half_up(degrees, 4)


def degree_equals(deg1: float, deg2: float, epsilon: float = DEFAULT_EPSILON) -> bool:
    return float_equals(deg1, deg2, epsilon)


def is_on_cusp(degree: float, cusp: float, epsilon: float = CUSP_EPSILON) -> bool:
    return circular_distance(degree, cusp) < epsilon


def is_exact_aspect(orb: float, epsilon: float = EXACT_ASPECT_EPSILON) -> bool:
    return is_near_zero(orb, epsilon)


def circular_distance(a: float, b: float) -> float:
    """Shortest separation between two longitudes, in [0, 180]."""
    diff = abs(normalize_degrees(a) - normalize_degrees(b))
    if diff > 180.0:
        diff = 360.0 - diff
    return diff


def within_orb(orb: float, max_orb: float) -> bool:
    """An observed orb never exceeds the resolved maximum."""
    return orb <= max_orb
