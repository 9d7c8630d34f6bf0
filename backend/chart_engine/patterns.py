"""Aspect pattern detection over one or more charts' points.

Patterns are read off the aspect observations already computed for the
points, so membership honours the same orbs, sign filtering and tie-breaking
as the aspect list. Each detector runs independently: overlapping results
(a Grand Trine that is also the body of a Kite, say) are all reported.
"""
from __future__ import annotations

import logging
from itertools import combinations
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from chart_config import cfg
from models import (
    AspectObservation,
    Chart,
    GrandCross,
    GrandTrine,
    Kite,
    MysticRectangle,
    Pattern,
    PlacedPoint,
    Point,
    Sign,
    Stellium,
    TSquare,
    Yod,
)
from .aspects import UnionedPoint
from .precision import float_equals, round_degrees
from .zodiac import house_for_degree, place_point

logger = logging.getLogger(__name__)

CONJUNCTION = 0.0
SEXTILE = 60.0
SQUARE = 90.0
TRINE = 120.0
QUINCUNX = 150.0
OPPOSITION = 180.0

DEFAULT_PATTERN_EXCLUSIONS = ("Ascendant", "Midheaven", "North Node", "South Node")
DEFAULT_STELLIUM_MIN_POINTS = 3

PointKey = Tuple[str, str]  # (chart name, point name)
Placer = Callable[[UnionedPoint], PlacedPoint]


def _key(entry: UnionedPoint) -> PointKey:
    point, chart_name = entry
    return (chart_name, point.name)


class AspectLookup:
    """Symmetric point-pair index over aspect observations."""

    def __init__(self, observations: Iterable[AspectObservation]):
        self._pairs: Dict[FrozenSet[PointKey], AspectObservation] = {}
        for obs in observations:
            pair = frozenset(((obs.chart_a, obs.point_a), (obs.chart_b, obs.point_b)))
            self._pairs[pair] = obs

    def __len__(self) -> int:
        return len(self._pairs)

    def get(self, a: UnionedPoint, b: UnionedPoint) -> Optional[AspectObservation]:
        return self._pairs.get(frozenset((_key(a), _key(b))))

    def orb(self, a: UnionedPoint, b: UnionedPoint, angle: float) -> Optional[float]:
        """Orb of the pair's aspect when it is of ``angle``, else ``None``."""
        obs = self.get(a, b)
        if obs is None or not float_equals(obs.angle, angle):
            return None
        return obs.orb

    def has(self, a: UnionedPoint, b: UnionedPoint, angle: float) -> bool:
        return self.orb(a, b, angle) is not None


def pattern_exclusions() -> Tuple[str, ...]:
    return tuple(cfg().get("points.pattern_exclusions", DEFAULT_PATTERN_EXCLUSIONS) or ())


def points_for_patterns(chart: Chart) -> List[Point]:
    """Chart points eligible for pattern detection (angles and nodes excluded)."""
    excluded = set(pattern_exclusions())
    return [point for point in chart.points if point.name not in excluded]


def _make_placer(cusps_by_chart: Optional[Mapping[str, Optional[Sequence[float]]]]) -> Placer:
    cusps_by_chart = cusps_by_chart or {}

    def place(entry: UnionedPoint) -> PlacedPoint:
        point, chart_name = entry
        return place_point(point, chart_name, cusps_by_chart.get(chart_name))

    return place


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


_PAIRINGS = (
    ((0, 1), (2, 3)),
    ((0, 2), (1, 3)),
    ((0, 3), (1, 2)),
)


def _cross_pairs(pairing) -> List[Tuple[int, int]]:
    (a, b), (c, d) = pairing
    return [(a, c), (a, d), (b, c), (b, d)]


# ---------------------------------------------------------------------------
# Individual shapes
# ---------------------------------------------------------------------------


def detect_t_squares(points: Sequence[UnionedPoint], lookup: AspectLookup, place: Placer) -> List[TSquare]:
    patterns: List[TSquare] = []
    for i, j in combinations(range(len(points)), 2):
        opposition_orb = lookup.orb(points[i], points[j], OPPOSITION)
        if opposition_orb is None:
            continue
        for k, candidate in enumerate(points):
            if k in (i, j):
                continue
            orb_ik = lookup.orb(points[i], candidate, SQUARE)
            orb_jk = lookup.orb(points[j], candidate, SQUARE)
            if orb_ik is None or orb_jk is None:
                continue
            apex = place(candidate)
            patterns.append(
                TSquare(
                    apex=apex,
                    opposition=(place(points[i]), place(points[j])),
                    modality=apex.sign.modality,
                    average_orb=_mean([opposition_orb, orb_ik, orb_jk]),
                )
            )
    return patterns


def detect_grand_trines(points: Sequence[UnionedPoint], lookup: AspectLookup, place: Placer) -> List[GrandTrine]:
    patterns: List[GrandTrine] = []
    for i, j, k in combinations(range(len(points)), 3):
        orbs = [
            lookup.orb(points[i], points[j], TRINE),
            lookup.orb(points[j], points[k], TRINE),
            lookup.orb(points[k], points[i], TRINE),
        ]
        if any(orb is None for orb in orbs):
            continue
        members = (place(points[i]), place(points[j]), place(points[k]))
        patterns.append(
            GrandTrine(
                points=members,
                element=members[0].sign.element,
                average_orb=_mean(orbs),
            )
        )
    return patterns


def detect_grand_crosses(points: Sequence[UnionedPoint], lookup: AspectLookup, place: Placer) -> List[GrandCross]:
    patterns: List[GrandCross] = []
    for quad in combinations(range(len(points)), 4):
        group = [points[n] for n in quad]
        for pairing in _PAIRINGS:
            opposition_orbs = [lookup.orb(group[a], group[b], OPPOSITION) for a, b in pairing]
            if any(orb is None for orb in opposition_orbs):
                continue
            square_orbs = [lookup.orb(group[a], group[b], SQUARE) for a, b in _cross_pairs(pairing)]
            if any(orb is None for orb in square_orbs):
                continue
            members = tuple(place(entry) for entry in group)
            patterns.append(
                GrandCross(
                    points=members,
                    modality=members[0].sign.modality,
                    average_orb=_mean(opposition_orbs + square_orbs),
                )
            )
            break
    return patterns


def detect_yods(points: Sequence[UnionedPoint], lookup: AspectLookup, place: Placer) -> List[Yod]:
    patterns: List[Yod] = []
    for i, j in combinations(range(len(points)), 2):
        sextile_orb = lookup.orb(points[i], points[j], SEXTILE)
        if sextile_orb is None:
            continue
        for k, candidate in enumerate(points):
            if k in (i, j):
                continue
            orb_ik = lookup.orb(points[i], candidate, QUINCUNX)
            orb_jk = lookup.orb(points[j], candidate, QUINCUNX)
            if orb_ik is None or orb_jk is None:
                continue
            patterns.append(
                Yod(
                    apex=place(candidate),
                    base=(place(points[i]), place(points[j])),
                    average_orb=_mean([sextile_orb, orb_ik, orb_jk]),
                )
            )
    return patterns


def _harmonious_orb(lookup: AspectLookup, a: UnionedPoint, b: UnionedPoint) -> Optional[float]:
    orb = lookup.orb(a, b, SEXTILE)
    if orb is None:
        orb = lookup.orb(a, b, TRINE)
    return orb


def detect_mystic_rectangles(
    points: Sequence[UnionedPoint], lookup: AspectLookup, place: Placer
) -> List[MysticRectangle]:
    patterns: List[MysticRectangle] = []
    for quad in combinations(range(len(points)), 4):
        group = [points[n] for n in quad]
        for pairing in _PAIRINGS:
            opposition_orbs = [lookup.orb(group[a], group[b], OPPOSITION) for a, b in pairing]
            if any(orb is None for orb in opposition_orbs):
                continue
            side_orbs = [_harmonious_orb(lookup, group[a], group[b]) for a, b in _cross_pairs(pairing)]
            if any(orb is None for orb in side_orbs):
                continue
            (a, b), (c, d) = pairing
            patterns.append(
                MysticRectangle(
                    oppositions=(
                        (place(group[a]), place(group[b])),
                        (place(group[c]), place(group[d])),
                    ),
                    average_orb=_mean(opposition_orbs + side_orbs),
                )
            )
            break
    return patterns


def detect_kites(
    points: Sequence[UnionedPoint],
    lookup: AspectLookup,
    place: Placer,
    grand_trines: Optional[Sequence[GrandTrine]] = None,
) -> List[Kite]:
    if grand_trines is None:
        grand_trines = detect_grand_trines(points, lookup, place)
    by_key = {_key(entry): entry for entry in points}

    patterns: List[Kite] = []
    for trine in grand_trines:
        trine_keys = {(member.chart_name, member.name) for member in trine.points}
        for member in trine.points:
            trine_entry = by_key.get((member.chart_name, member.name))
            if trine_entry is None:
                continue
            for entry in points:
                if _key(entry) in trine_keys:
                    continue
                opposition_orb = lookup.orb(trine_entry, entry, OPPOSITION)
                if opposition_orb is None:
                    continue
                patterns.append(
                    Kite(
                        grand_trine=trine.points,
                        opposition=place(entry),
                        average_orb=(trine.average_orb + opposition_orb) / 2,
                    )
                )
    return patterns


def detect_aspect_patterns(
    points: Sequence[UnionedPoint],
    observations: Iterable[AspectObservation],
    cusps_by_chart: Optional[Mapping[str, Optional[Sequence[float]]]] = None,
) -> List[Pattern]:
    """Find every T-Square, Grand Trine, Grand Cross, Yod, Mystic Rectangle and Kite.

    ``points`` should already exclude angles and nodes. ``cusps_by_chart``
    supplies each origin chart's house cusps so members carry their house.
    """
    points = list(points)
    lookup = AspectLookup(observations)
    place = _make_placer(cusps_by_chart)

    t_squares = detect_t_squares(points, lookup, place)
    grand_trines = detect_grand_trines(points, lookup, place)
    grand_crosses = detect_grand_crosses(points, lookup, place)
    yods = detect_yods(points, lookup, place)
    rectangles = detect_mystic_rectangles(points, lookup, place)
    kites = detect_kites(points, lookup, place, grand_trines)

    logger.debug(
        f"Pattern detection over {len(points)} points: {len(t_squares)} T-Squares, "
        f"{len(grand_trines)} Grand Trines, {len(grand_crosses)} Grand Crosses, {len(yods)} Yods, "
        f"{len(rectangles)} Mystic Rectangles, {len(kites)} Kites"
    )

    patterns: List[Pattern] = []
    patterns.extend(t_squares)
    patterns.extend(grand_trines)
    patterns.extend(grand_crosses)
    patterns.extend(yods)
    patterns.extend(rectangles)
    patterns.extend(kites)
    return patterns


# ---------------------------------------------------------------------------
# Stelliums
# ---------------------------------------------------------------------------


def degree_span(degrees: Sequence[float]) -> float:
    """Smallest arc containing every longitude, wrapping at 0°."""
    if len(degrees) < 2:
        return 0.0
    ordered = sorted(degrees)
    gaps = [b - a for a, b in zip(ordered, ordered[1:])]
    gaps.append(360.0 - ordered[-1] + ordered[0])
    return round_degrees(360.0 - max(gaps))


def stellium_min_points() -> int:
    return int(cfg().get("analysis.stellium_min_points", DEFAULT_STELLIUM_MIN_POINTS))


def detect_stelliums(
    points: Sequence[Point],
    cusps: Optional[Sequence[float]] = None,
    min_points: Optional[int] = None,
    chart_name: Optional[str] = None,
) -> List[Stellium]:
    """Sign stelliums, plus house stelliums not already covered by one."""
    min_points = stellium_min_points() if min_points is None else min_points
    patterns: List[Stellium] = []

    sign_groups: Dict[Sign, List[Point]] = {}
    for point in points:
        sign_groups.setdefault(point.sign, []).append(point)

    for sign, grouped in sign_groups.items():
        if len(grouped) < min_points:
            continue
        members = tuple(place_point(p, chart_name, cusps) for p in grouped)
        houses = sorted({m.house for m in members if m.house is not None})
        patterns.append(
            Stellium(
                points=members,
                houses=tuple(houses),
                degree_span=degree_span([p.degree for p in grouped]),
                sign=sign,
            )
        )

    if not cusps:
        return patterns

    covered = {m.name for stellium in patterns for m in stellium.points}
    house_groups: Dict[int, List[Point]] = {}
    for point in points:
        house = house_for_degree(point.degree, cusps)
        if house is not None:
            house_groups.setdefault(house, []).append(point)

    for house, grouped in house_groups.items():
        if len(grouped) < min_points:
            continue
        if any(p.name in covered for p in grouped):
            continue
        patterns.append(
            Stellium(
                points=tuple(place_point(p, chart_name, cusps) for p in grouped),
                houses=(house,),
                degree_span=degree_span([p.degree for p in grouped]),
            )
        )

    return patterns
