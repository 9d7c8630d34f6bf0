import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT))
sys.path.append(str(ROOT / "backend"))

from chart_engine.distributions import analyze_sign_distributions
from chart_engine.overlays import calculate_house_overlays
from chart_engine.zodiac import house_for_degree, place_point, sign_distance
from models import Chart, Point, Sign

EQUAL_CUSPS = tuple(30.0 * i for i in range(12))


def test_sign_distributions_with_ascendant():
    distributions = analyze_sign_distributions([Point("Sun", 0), Point("Moon", 100)], ascendant=200)
    assert distributions.elements == {
        "Fire": ("Sun",),
        "Earth": (),
        "Air": ("Ascendant",),
        "Water": ("Moon",),
    }
    assert distributions.modalities == {"Cardinal": 3, "Fixed": 0, "Mutable": 0}
    assert distributions.polarities == {"Masculine": 2, "Feminine": 1}


def test_house_overlays_need_host_cusps():
    first = Chart("A", (Point("Sun", 45),), cusps=EQUAL_CUSPS)
    second = Chart("B", (Point("Moon", 95),))
    overlays = calculate_house_overlays(first, second)
    assert overlays.first_in_second == {}
    assert overlays.second_in_first == {"Moon": 4}


def test_house_lookup_wraps_at_zero():
    cusps = [(340 + 30 * i) % 360 for i in range(12)]
    assert house_for_degree(350, cusps) == 1
    assert house_for_degree(5, cusps) == 1
    assert house_for_degree(15, cusps) == 2
    assert house_for_degree(15, cusps[:11]) is None
    assert house_for_degree(15, None) is None


def test_placement_carries_dignities():
    placed = place_point(Point("Sun", 125), "natal", EQUAL_CUSPS, with_dignities=True)
    assert placed.sign is Sign.LEO
    assert placed.house == 5
    assert placed.dignities == ("Domicile",)
    assert placed.degree_in_sign == 5

    assert place_point(Point("Ceres", 125), with_dignities=True).dignities == ()


def test_sign_distance_folds_past_opposition():
    assert sign_distance(0, 350) == 1
    assert sign_distance(0, 180) == 6
    assert sign_distance(10, 250) == 4
