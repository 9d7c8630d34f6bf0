import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT))
sys.path.append(str(ROOT / "backend"))

from chart_engine.aspects import calculate_aspects, calculate_cross_chart_aspects, unioned_points
from chart_engine.patterns import AspectLookup, detect_aspect_patterns
from models import (
    AspectClassification,
    AspectDefinition,
    Element,
    GrandCross,
    GrandTrine,
    Kite,
    Modality,
    MysticRectangle,
    PatternType,
    Point,
    TSquare,
    Yod,
)

DEFINITIONS = [
    AspectDefinition("conjunction", 0, 5, AspectClassification.MAJOR),
    AspectDefinition("opposition", 180, 5, AspectClassification.MAJOR),
    AspectDefinition("trine", 120, 5, AspectClassification.MAJOR),
    AspectDefinition("square", 90, 5, AspectClassification.MAJOR),
    AspectDefinition("sextile", 60, 3, AspectClassification.MINOR),
    AspectDefinition("quincunx", 150, 2, AspectClassification.MINOR),
]


def _detect(positions, chart_name="natal", cusps=None):
    points = unioned_points([Point(name, degree) for name, degree in positions.items()], chart_name)
    observations = calculate_aspects(DEFINITIONS, points)
    return detect_aspect_patterns(points, observations, {chart_name: cusps})


def _of_type(patterns, pattern_type):
    return [p for p in patterns if p.pattern_type is pattern_type]


def test_t_square():
    patterns = _detect({"Sun": 0, "Moon": 180, "Saturn": 90})
    assert len(patterns) == 1
    t_square = patterns[0]
    assert isinstance(t_square, TSquare)
    assert t_square.apex.name == "Saturn"
    assert t_square.modality is Modality.CARDINAL
    assert t_square.average_orb == pytest.approx(0.0)
    assert {p.name for p in t_square.opposition} == {"Sun", "Moon"}


def test_grand_trine():
    patterns = _detect({"Sun": 0, "Moon": 120, "Mars": 240})
    assert len(patterns) == 1
    trine = patterns[0]
    assert isinstance(trine, GrandTrine)
    assert trine.element is Element.FIRE
    assert trine.average_orb == pytest.approx(0.0)


def test_grand_trine_average_orb():
    patterns = _detect({"Sun": 0, "Moon": 122, "Mars": 241})
    trine = _of_type(patterns, PatternType.GRAND_TRINE)[0]
    # orbs 2, 1 and 1
    assert trine.average_orb == pytest.approx(4 / 3)


def test_yod():
    patterns = _detect({"Sun": 0, "Moon": 60, "Saturn": 210})
    assert len(patterns) == 1
    yod = patterns[0]
    assert isinstance(yod, Yod)
    assert yod.apex.name == "Saturn"
    assert {p.name for p in yod.base} == {"Sun", "Moon"}


def test_grand_cross_and_its_t_squares():
    patterns = _detect({"Sun": 0, "Moon": 90, "Mars": 180, "Saturn": 270})
    crosses = _of_type(patterns, PatternType.GRAND_CROSS)
    assert len(crosses) == 1
    assert isinstance(crosses[0], GrandCross)
    assert crosses[0].modality is Modality.CARDINAL
    assert len(crosses[0].points) == 4
    # every opposition with every squaring point is also a T-Square
    assert len(_of_type(patterns, PatternType.T_SQUARE)) == 4


def test_grand_cross_found_for_any_point_order():
    patterns = _detect({"Sun": 0, "Mars": 180, "Moon": 90, "Saturn": 270})
    assert len(_of_type(patterns, PatternType.GRAND_CROSS)) == 1


def test_mystic_rectangle():
    patterns = _detect({"Sun": 0, "Moon": 60, "Mars": 180, "Jupiter": 240})
    rectangles = _of_type(patterns, PatternType.MYSTIC_RECTANGLE)
    assert len(rectangles) == 1
    rectangle = rectangles[0]
    assert isinstance(rectangle, MysticRectangle)
    pairs = {frozenset(p.name for p in pair) for pair in rectangle.oppositions}
    assert pairs == {frozenset({"Sun", "Mars"}), frozenset({"Moon", "Jupiter"})}
    assert len(patterns) == 1


def test_kite_reported_alongside_its_grand_trine():
    patterns = _detect({"Sun": 0, "Moon": 120, "Mars": 240, "Saturn": 180})
    kites = _of_type(patterns, PatternType.KITE)
    assert len(kites) == 1
    kite = kites[0]
    assert isinstance(kite, Kite)
    assert kite.opposition.name == "Saturn"
    assert {p.name for p in kite.grand_trine} == {"Sun", "Moon", "Mars"}
    assert kite.average_orb == pytest.approx(0.0)
    assert len(_of_type(patterns, PatternType.GRAND_TRINE)) == 1


def test_kite_average_orb_blends_trine_average_with_opposition():
    # trine orbs 2, 1 and 1; Saturn opposes the Sun 3 degrees wide
    patterns = _detect({"Sun": 0, "Moon": 122, "Mars": 241, "Saturn": 183})
    kites = _of_type(patterns, PatternType.KITE)
    assert len(kites) == 1
    kite = kites[0]
    assert kite.opposition.name == "Saturn"
    assert kite.average_orb == pytest.approx((4 / 3 + 3) / 2)
    # not the plain mean of the four member orbs
    assert kite.average_orb != pytest.approx((2 + 1 + 1 + 3) / 4)


def test_members_carry_chart_and_house():
    cusps = [30.0 * i for i in range(12)]
    patterns = _detect({"Sun": 0, "Moon": 180, "Saturn": 90}, chart_name="A", cusps=cusps)
    t_square = patterns[0]
    assert t_square.chart_names() == frozenset({"A"})
    assert t_square.apex.house == 4
    assert t_square.apex.chart_name == "A"


def test_pattern_across_charts_records_provenance():
    points = (
        unioned_points([Point("Sun", 0)], "A")
        + unioned_points([Point("Sun", 120)], "B")
        + unioned_points([Point("Sun", 240)], "C")
    )
    observations = calculate_cross_chart_aspects(DEFINITIONS, points)
    patterns = detect_aspect_patterns(points, observations)
    assert len(patterns) == 1
    assert patterns[0].chart_names() == frozenset({"A", "B", "C"})


def test_lookup_is_symmetric():
    points = unioned_points([Point("Sun", 0), Point("Moon", 92)], "natal")
    lookup = AspectLookup(calculate_aspects(DEFINITIONS, points))
    assert len(lookup) == 1
    assert lookup.get(points[0], points[1]) is lookup.get(points[1], points[0])
    assert lookup.orb(points[1], points[0], 90) == pytest.approx(2.0)
    assert lookup.orb(points[0], points[1], 180) is None


def test_no_patterns_without_aspects():
    assert _detect({"Sun": 0, "Moon": 45, "Mars": 200}) == []
