import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT))
sys.path.append(str(ROOT / "backend"))

from chart_engine.analysis import (
    ChartAnalyzer,
    ChartConfigurationError,
    analyze_charts,
    pair_kind,
    partition_charts,
)
from models import (
    Chart,
    ChartKind,
    ChartPairKind,
    GrandTrine,
    PatternType,
    Point,
    TSquare,
)
from settings import FINALS_ONLY, resolve_settings

EQUAL_CUSPS = tuple(30.0 * i for i in range(12))


def _chart(name, kind=ChartKind.NATAL, **positions):
    return Chart(name, tuple(Point(p, d) for p, d in positions.items()), kind=kind)


def _settings(**overrides):
    return resolve_settings({"include_aspect_patterns": True, **overrides})


def test_single_chart_report():
    chart = Chart(
        "Alice",
        (Point("Sun", 10), Point("Mercury", 15), Point("Venus", 20), Point("Moon", 190)),
        ascendant=100,
        cusps=EQUAL_CUSPS,
    )
    report = analyze_charts([chart], _settings())
    assert report.pairwise_analyses == ()
    assert report.transit_analyses == ()
    assert report.global_analysis is None
    assert report.global_transit_analysis is None

    analysis = report.chart_analysis("Alice")
    assert [p.name for p in analysis.placements] == ["Sun", "Mercury", "Venus", "Moon"]
    assert analysis.placements[0].house == 1
    assert len(analysis.stelliums) == 1
    assert analysis.stelliums[0].sign.sign_name == "Aries"
    # Ascendant takes part in aspects
    assert any("Ascendant" in (a.point_a, a.point_b) for a in analysis.aspects)
    assert analysis.sign_distributions.elements["Fire"] == ("Sun", "Mercury", "Venus")
    assert analysis.dispositors is not None


def test_angles_excluded_from_patterns():
    chart = Chart("Alice", (Point("Sun", 0), Point("Moon", 180)), ascendant=90)
    analysis = analyze_charts([chart], _settings()).chart_analysis("Alice")
    assert {a.aspect_name for a in analysis.aspects} == {"opposition", "square"}
    assert analysis.patterns == ()


def test_three_chart_grand_trine_is_global_only():
    charts = [_chart("A", Sun=0), _chart("B", Sun=120), _chart("C", Sun=240)]
    report = analyze_charts(charts, _settings())

    assert len(report.pairwise_analyses) == 3
    for pairwise in report.pairwise_analyses:
        assert pairwise.patterns == ()
        assert len(pairwise.aspects) == 1
    for analysis in report.chart_analyses:
        assert analysis.patterns == ()

    assert report.global_analysis is not None
    assert [c.name for c in report.global_analysis.charts] == ["A", "B", "C"]
    assert len(report.global_analysis.patterns) == 1
    assert isinstance(report.global_analysis.patterns[0], GrandTrine)
    assert report.global_transit_analysis is None


def test_two_chart_pattern_lands_in_pairwise_tier():
    charts = [_chart("A", Sun=0, Moon=180), _chart("B", Saturn=90)]
    report = analyze_charts(charts, _settings())
    pairwise = report.pairwise_analyses[0]
    assert [p.pattern_type for p in pairwise.patterns] == [PatternType.T_SQUARE]
    assert report.global_analysis is None
    assert report.chart_analysis("A").patterns == ()


def test_transit_t_square():
    natal = _chart("Natal", Sun=0, Moon=180)
    transit = _chart("Now", kind=ChartKind.TRANSIT, Saturn=90)
    report = analyze_charts([transit, natal], _settings())

    # transit chart is analysed last
    assert [a.chart.name for a in report.chart_analyses] == ["Natal", "Now"]
    assert report.pairwise_analyses == ()

    tier4 = report.transit_analyses[0]
    assert tier4.natal_chart is natal
    assert tier4.transit_chart is transit
    assert {a.aspect_name for a in tier4.aspects} == {"square"}
    assert len(tier4.patterns) == 1
    t_square = tier4.patterns[0]
    assert isinstance(t_square, TSquare)
    assert t_square.apex.name == "Saturn"
    assert t_square.apex.chart_name == "Now"

    natal_analysis = report.chart_analysis("Natal")
    assert natal_analysis.patterns == ()
    assert [a.aspect_name for a in natal_analysis.aspects] == ["opposition"]
    assert natal_analysis.dispositors is not None
    assert report.chart_analysis("Now").dispositors is None
    assert report.global_transit_analysis is None


def test_global_transit_tier():
    charts = [_chart("A", Sun=0), _chart("B", Moon=180), _chart("T", kind=ChartKind.TRANSIT, Saturn=90)]
    report = analyze_charts(charts, _settings())

    assert report.global_analysis is None
    assert all(p.patterns == () for p in report.pairwise_analyses)
    assert all(t.patterns == () for t in report.transit_analyses)
    assert report.global_transit_analysis is not None
    assert [c.name for c in report.global_transit_analysis.charts] == ["A", "B", "T"]
    pattern = report.global_transit_analysis.patterns[0]
    assert pattern.chart_names() == frozenset({"A", "B", "T"})


def test_multiple_transit_charts_rejected():
    charts = [_chart("T1", kind=ChartKind.TRANSIT, Sun=0), _chart("T2", kind=ChartKind.TRANSIT, Sun=10)]
    with pytest.raises(ChartConfigurationError, match="T1, T2"):
        analyze_charts(charts, _settings())


def test_patterns_disabled():
    chart = _chart("A", Sun=0, Mercury=5, Venus=10, Moon=180, Saturn=90)
    report = analyze_charts([chart], resolve_settings({"include_aspect_patterns": False}))
    analysis = report.chart_analysis("A")
    assert analysis.patterns == ()
    assert analysis.stelliums == ()
    assert analysis.aspects


def test_optional_sections_follow_settings():
    first = Chart("A", (Point("Venus", 210), Point("Mars", 30)), cusps=EQUAL_CUSPS)
    second = Chart("B", (Point("Sun", 45),), cusps=EQUAL_CUSPS)

    report = analyze_charts([first, second], resolve_settings({"include_dispositors": FINALS_ONLY}))
    dispositors = report.chart_analysis("A").dispositors
    assert dispositors.chains == ()
    assert len(dispositors.cycles) == 2
    assert report.pairwise_analyses[0].house_overlays.first_in_second == {"Venus": 8, "Mars": 2}

    report = analyze_charts(
        [first, second],
        resolve_settings(
            {"include_dispositors": False, "include_house_overlays": False, "include_sign_distributions": False}
        ),
    )
    assert report.chart_analysis("A").dispositors is None
    assert report.chart_analysis("A").sign_distributions is None
    assert report.pairwise_analyses[0].house_overlays is None


def test_pair_kinds_and_partition():
    natal = _chart("A")
    event = _chart("E", kind=ChartKind.EVENT)
    transit = _chart("T", kind=ChartKind.TRANSIT)
    assert pair_kind(natal, natal) is ChartPairKind.NATAL
    assert pair_kind(natal, event) is ChartPairKind.SYNASTRY
    assert pair_kind(transit, natal) is ChartPairKind.TRANSIT
    assert partition_charts([transit, natal, event]) == ([natal, event], transit)


def test_transit_orbs_use_transit_context():
    settings = resolve_settings(
        {
            "aspect_definitions": [{"name": "square", "angle": 90, "orb": 4}],
            "orb_configuration": {"contextual_orbs": {"transit": {"orb_multiplier": 0.5}}},
        }
    )
    natal = _chart("N", Sun=0)
    transit = _chart("T", kind=ChartKind.TRANSIT, Mars=93)
    report = ChartAnalyzer(settings).analyze([natal, transit])
    # 3° is inside the natal orb of 4° but outside the halved transit orb
    assert report.transit_analyses[0].aspects == ()

    other = _chart("O", Mars=93)
    report = ChartAnalyzer(settings).analyze([natal, other])
    assert len(report.pairwise_analyses[0].aspects) == 1
