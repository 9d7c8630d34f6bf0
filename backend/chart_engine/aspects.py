"""Aspect detection between chart points."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from chart_config import cfg
from models import AspectDefinition, AspectObservation, ChartPairKind, Motion, Point
from .orbs import OrbResolver
from .precision import (
    EXACT_ASPECT_EPSILON,
    circular_distance,
    float_equals,
    is_exact_aspect,
    normalize_degrees,
    within_orb,
)
from .zodiac import expected_sign_span, sign_distance

logger = logging.getLogger(__name__)

# A point paired with the name of the chart it came from
UnionedPoint = Tuple[Point, str]

DEFAULT_MOTION_STEP_DAYS = 0.1


def _motion_step_days() -> float:
    return float(cfg().get("precision.motion_step_days", DEFAULT_MOTION_STEP_DAYS))


def _exact_epsilon() -> float:
    return float(cfg().get("precision.exact_aspect_epsilon", EXACT_ASPECT_EPSILON))


def orb_from_exact(degree_a: float, degree_b: float, angle: float) -> float:
    """Distance (degrees) between the current separation and ``angle``."""
    return abs(circular_distance(degree_a, degree_b) - angle)


def _orb_at_time(point_a: Point, point_b: Point, angle: float, time_days: float) -> float:
    """Orb to the exact aspect after ``time_days`` of motion."""

    future_a = normalize_degrees(point_a.degree + (point_a.speed or 0.0) * time_days)
    future_b = normalize_degrees(point_b.degree + (point_b.speed or 0.0) * time_days)
    return orb_from_exact(future_a, future_b, angle)


def determine_motion(
    point_a: Point,
    point_b: Point,
    angle: float,
    step_days: Optional[float] = None,
    exact_epsilon: Optional[float] = None,
) -> Motion:
    """Classify an aspect as applying, separating or exact.

    Both points are projected forward by ``step_days`` using their speeds and
    the orb at that time is compared against the current one. Points without
    speed data are reported as exact.
    """
    if point_a.speed is None or point_b.speed is None:
        return Motion.EXACT

    step = _motion_step_days() if step_days is None else step_days
    epsilon = _exact_epsilon() if exact_epsilon is None else exact_epsilon

    current_orb = orb_from_exact(point_a.degree, point_b.degree, angle)
    if is_exact_aspect(current_orb, epsilon):
        return Motion.EXACT

    future_orb = _orb_at_time(point_a, point_b, angle, step)
    if float_equals(future_orb, current_orb, 1e-9):
        return Motion.EXACT
    if future_orb < current_orb:
        return Motion.APPLYING
    return Motion.SEPARATING


def find_tightest_aspect(
    definitions: Sequence[AspectDefinition],
    point_a: Point,
    chart_a: str,
    point_b: Point,
    chart_b: str,
    resolver: Optional[OrbResolver] = None,
    pair_kind: ChartPairKind = ChartPairKind.NATAL,
    skip_out_of_sign: bool = True,
) -> Optional[AspectObservation]:
    """Return the tightest aspect between two points, if any is in orb.

    Ties on orb keep the earliest definition in ``definitions``.
    """
    resolver = resolver or OrbResolver()
    separation = circular_distance(point_a.degree, point_b.degree)
    signs_apart = sign_distance(point_a.degree, point_b.degree) if skip_out_of_sign else None

    best: Optional[AspectDefinition] = None
    best_orb = 0.0
    for definition in definitions:
        orb = abs(separation - definition.angle)

        if signs_apart is not None and signs_apart != expected_sign_span(definition.angle):
            continue

        max_orb = resolver.resolve_orb(point_a.name, point_b.name, definition, pair_kind)
        if not within_orb(orb, max_orb):
            continue
        if best is None or orb < best_orb:
            best = definition
            best_orb = orb

    if best is None:
        return None

    return AspectObservation(
        point_a=point_a.name,
        point_b=point_b.name,
        chart_a=chart_a,
        chart_b=chart_b,
        aspect_name=best.name,
        angle=best.angle,
        orb=best_orb,
        motion=determine_motion(point_a, point_b, best.angle),
    )


def _calculate(
    definitions: Sequence[AspectDefinition],
    points: Sequence[UnionedPoint],
    cross_chart_only: bool,
    resolver: Optional[OrbResolver],
    pair_kind: ChartPairKind,
    skip_out_of_sign: bool,
) -> List[AspectObservation]:
    resolver = resolver or OrbResolver()
    observations: List[AspectObservation] = []
    for i, (point_a, chart_a) in enumerate(points):
        for point_b, chart_b in points[i + 1 :]:
            if cross_chart_only and chart_a == chart_b:
                continue
            observation = find_tightest_aspect(
                definitions,
                point_a,
                chart_a,
                point_b,
                chart_b,
                resolver=resolver,
                pair_kind=pair_kind,
                skip_out_of_sign=skip_out_of_sign,
            )
            if observation:
                observations.append(observation)
    return observations


def calculate_aspects(
    definitions: Sequence[AspectDefinition],
    points: Sequence[UnionedPoint],
    resolver: Optional[OrbResolver] = None,
    skip_out_of_sign: bool = True,
    pair_kind: ChartPairKind = ChartPairKind.NATAL,
) -> List[AspectObservation]:
    """Aspects between every pair of ``points`` (single-chart mode)."""
    observations = _calculate(definitions, list(points), False, resolver, pair_kind, skip_out_of_sign)
    logger.debug(f"Found {len(observations)} aspects among {len(points)} points")
    return observations


def calculate_cross_chart_aspects(
    definitions: Sequence[AspectDefinition],
    points: Sequence[UnionedPoint],
    resolver: Optional[OrbResolver] = None,
    skip_out_of_sign: bool = True,
    pair_kind: ChartPairKind = ChartPairKind.SYNASTRY,
) -> List[AspectObservation]:
    """Aspects only between points whose origin charts differ."""
    observations = _calculate(definitions, list(points), True, resolver, pair_kind, skip_out_of_sign)
    logger.debug(f"Found {len(observations)} cross-chart aspects")
    return observations


def unioned_points(points: Iterable[Point], chart_name: str) -> List[UnionedPoint]:
    return [(point, chart_name) for point in points]
