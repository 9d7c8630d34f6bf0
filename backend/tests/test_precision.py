import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT))
sys.path.append(str(ROOT / "backend"))

from chart_engine.precision import (
    circular_distance,
    degree_equals,
    float_equals,
    is_exact_aspect,
    is_on_cusp,
    normalize_degrees,
    round_degrees,
    round_half_up,
    within_orb,
)


@pytest.mark.parametrize(
    "degrees, expected",
    [(0, 0.0), (360, 0.0), (720.5, 0.5), (-30, 330.0), (-390, 330.0), (359.999, 359.999)],
)
def test_normalize_degrees(degrees, expected):
    assert normalize_degrees(degrees) == pytest.approx(expected)


@pytest.mark.parametrize("degrees", [-1e-17, -725.25, 0.0, 45.0, 359.9999, 1080.0])
def test_normalize_is_idempotent_and_in_range(degrees):
    once = normalize_degrees(degrees)
    assert 0.0 <= once < 360.0
    assert normalize_degrees(once) == once


def test_circular_distance_wraps_at_zero():
    assert circular_distance(350, 10) == pytest.approx(20)
    assert circular_distance(10, 350) == pytest.approx(20)
    assert circular_distance(0, 180) == pytest.approx(180)
    assert circular_distance(-90, 90) == pytest.approx(180)


def test_epsilon_comparisons():
    assert float_equals(1.0, 1.00005)
    assert not float_equals(1.0, 1.001)
    assert degree_equals(359.99995, 359.99999)
    assert is_exact_aspect(0.05)
    assert not is_exact_aspect(0.2)
    assert is_on_cusp(359.9999, 0.0)


def test_within_orb_is_inclusive_and_strict_above():
    assert within_orb(5.0, 5.0)
    assert within_orb(4.99999, 5.0)
    assert not within_orb(5.00009, 5.0)
    assert not within_orb(5.01, 5.0)


@pytest.mark.parametrize(
    "value, places, expected",
    [(0.25, 1, 0.3), (2.25, 1, 2.3), (2.5, 0, 3.0), (-2.5, 0, -2.0), (1.234, 1, 1.2)],
)
def test_round_half_up(value, places, expected):
    assert round_half_up(value, places) == pytest.approx(expected)


def test_round_degrees():
    assert round_degrees(12.345678) == 12.3457
    assert round_degrees(0.1 + 0.2) == 0.3
