"""Plain JSON-compatible rendering of a :class:`Report`."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from models import (
    AspectObservation,
    Chart,
    ChartAnalysis,
    DispositorAnalysis,
    GlobalAnalysis,
    GrandCross,
    GrandTrine,
    HouseOverlays,
    Kite,
    MysticRectangle,
    PairwiseAnalysis,
    Pattern,
    PlacedPoint,
    Report,
    SalienceReport,
    SignDistributions,
    Stellium,
    TransitAnalysis,
    TSquare,
    Yod,
)
from .precision import round_degrees, round_half_up


def _value(item: Any) -> Any:
    return item.value if isinstance(item, Enum) else item


def placed_point_to_dict(point: PlacedPoint) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "name": point.name,
        "degree": round_degrees(point.degree),
        "sign": point.sign.sign_name,
        "degree_in_sign": round_degrees(point.degree_in_sign),
    }
    if point.chart_name is not None:
        data["chart"] = point.chart_name
    if point.house is not None:
        data["house"] = point.house
    if point.dignities:
        data["dignities"] = list(point.dignities)
    return data


def aspect_to_dict(obs: AspectObservation) -> Dict[str, Any]:
    return {
        "point_a": obs.point_a,
        "chart_a": obs.chart_a,
        "point_b": obs.point_b,
        "chart_b": obs.chart_b,
        "aspect": obs.aspect_name,
        "orb": round_degrees(obs.orb),
        "motion": obs.motion.value,
    }


def pattern_to_dict(pattern: Pattern) -> Dict[str, Any]:
    data: Dict[str, Any] = {"type": pattern.pattern_type.value}

    if isinstance(pattern, TSquare):
        data["apex"] = placed_point_to_dict(pattern.apex)
        data["opposition"] = [placed_point_to_dict(p) for p in pattern.opposition]
        data["modality"] = pattern.modality.value
    elif isinstance(pattern, GrandTrine):
        data["points"] = [placed_point_to_dict(p) for p in pattern.points]
        data["element"] = pattern.element.value
    elif isinstance(pattern, GrandCross):
        data["points"] = [placed_point_to_dict(p) for p in pattern.points]
        data["modality"] = pattern.modality.value
    elif isinstance(pattern, Yod):
        data["apex"] = placed_point_to_dict(pattern.apex)
        data["base"] = [placed_point_to_dict(p) for p in pattern.base]
    elif isinstance(pattern, MysticRectangle):
        data["oppositions"] = [[placed_point_to_dict(p) for p in pair] for pair in pattern.oppositions]
    elif isinstance(pattern, Kite):
        data["grand_trine"] = [placed_point_to_dict(p) for p in pattern.grand_trine]
        data["opposition"] = placed_point_to_dict(pattern.opposition)
    elif isinstance(pattern, Stellium):
        data["points"] = [placed_point_to_dict(p) for p in pattern.points]
        data["houses"] = list(pattern.houses)
        data["degree_span"] = round_degrees(pattern.degree_span)
        if pattern.sign is not None:
            data["sign"] = pattern.sign.sign_name
        return data
    else:
        raise TypeError(f"Unsupported pattern type: {type(pattern).__name__}")

    data["average_orb"] = round_degrees(pattern.average_orb)
    return data


def chart_to_dict(chart: Chart) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "name": chart.name,
        "kind": chart.kind.value,
        "points": [
            {"name": p.name, "degree": p.degree, **({"speed": p.speed} if p.speed is not None else {})}
            for p in chart.points
        ],
    }
    for key in ("ascendant", "midheaven", "location"):
        value = getattr(chart, key)
        if value is not None:
            data[key] = value
    if chart.cusps:
        data["cusps"] = list(chart.cusps)
    return data


def distributions_to_dict(distributions: SignDistributions) -> Dict[str, Any]:
    return {
        "elements": {k: list(v) for k, v in distributions.elements.items()},
        "modalities": dict(distributions.modalities),
        "polarities": dict(distributions.polarities),
    }


def dispositors_to_dict(analysis: DispositorAnalysis) -> Dict[str, Any]:
    return {
        "rulers": {name: list(rulers) for name, rulers in analysis.rulers.items()},
        "finals": list(analysis.finals),
        "cycles": [list(cycle.path) for cycle in analysis.cycles],
        "chains": [
            {
                "point": chain.point,
                "path": list(chain.path),
                "terminus": chain.terminus.value,
                **({"external_rulers": list(chain.external_rulers)} if chain.external_rulers else {}),
            }
            for chain in analysis.chains
        ],
    }


def overlays_to_dict(overlays: HouseOverlays) -> Dict[str, Any]:
    return {
        "first_in_second": dict(overlays.first_in_second),
        "second_in_first": dict(overlays.second_in_first),
    }


def chart_analysis_to_dict(analysis: ChartAnalysis) -> Dict[str, Any]:
    return {
        "chart": chart_to_dict(analysis.chart),
        "placements": [placed_point_to_dict(p) for p in analysis.placements],
        "aspects": [aspect_to_dict(a) for a in analysis.aspects],
        "patterns": [pattern_to_dict(p) for p in analysis.patterns],
        "stelliums": [pattern_to_dict(s) for s in analysis.stelliums],
        "sign_distributions": (
            distributions_to_dict(analysis.sign_distributions) if analysis.sign_distributions else None
        ),
        "dispositors": dispositors_to_dict(analysis.dispositors) if analysis.dispositors else None,
    }


def pairwise_to_dict(analysis: PairwiseAnalysis) -> Dict[str, Any]:
    return {
        "charts": [analysis.first.name, analysis.second.name],
        "aspects": [aspect_to_dict(a) for a in analysis.aspects],
        "patterns": [pattern_to_dict(p) for p in analysis.patterns],
        "house_overlays": overlays_to_dict(analysis.house_overlays) if analysis.house_overlays else None,
    }


def transit_to_dict(analysis: TransitAnalysis) -> Dict[str, Any]:
    return {
        "natal_chart": analysis.natal_chart.name,
        "transit_chart": analysis.transit_chart.name,
        "aspects": [aspect_to_dict(a) for a in analysis.aspects],
        "patterns": [pattern_to_dict(p) for p in analysis.patterns],
    }


def global_to_dict(analysis: Optional[GlobalAnalysis]) -> Optional[Dict[str, Any]]:
    if analysis is None:
        return None
    return {
        "charts": [chart.name for chart in analysis.charts],
        "patterns": [pattern_to_dict(p) for p in analysis.patterns],
    }


def settings_to_dict(settings: Any) -> Dict[str, Any]:
    if settings is None:
        return {}
    return {
        "aspect_preset": settings.aspect_preset,
        "aspect_definitions": [
            {"name": d.name, "angle": d.angle, "orb": d.orb, "classification": _value(d.classification)}
            for d in settings.aspect_definitions
        ],
        "include_aspect_patterns": settings.include_aspect_patterns,
        "skip_out_of_sign_aspects": settings.skip_out_of_sign_aspects,
        "include_house_overlays": settings.include_house_overlays,
        "include_dispositors": settings.include_dispositors,
        "include_sign_distributions": settings.include_sign_distributions,
        "stellium_min_points": settings.stellium_min_points,
        "rulership": settings.rulership,
        "include_salience": settings.include_salience,
        "detail_level": settings.detail_level,
    }


def _attach_scores(items: List[Dict[str, Any]], scores: Sequence[float]) -> None:
    for item, score in zip(items, scores):
        item["salience_score"] = round_half_up(score, 2)


def _add_salience(data: Dict[str, Any], salience: SalienceReport) -> None:
    for chart_data, scored in zip(data["chart_analyses"], salience.charts):
        _attach_scores(chart_data["placements"], scored.placements)
        _attach_scores(chart_data["aspects"], scored.aspects)
        _attach_scores(chart_data["patterns"], scored.patterns)
        _attach_scores(chart_data["stelliums"], scored.stelliums)
        chart_data["salience_ranking"] = [
            {"point": entry.point, "total_score": entry.total_score, "rank": entry.rank}
            for entry in scored.ranking
        ]
    for key, links in (("pairwise_analyses", salience.pairwise), ("transit_analyses", salience.transits)):
        for link_data, link in zip(data[key], links):
            _attach_scores(link_data["aspects"], link.aspects)
            _attach_scores(link_data["patterns"], link.patterns)


def report_to_dict(report: Report, salience: Optional[SalienceReport] = None) -> Dict[str, Any]:
    """Render ``report`` as nested dicts and lists suitable for ``json.dumps``.

    With ``salience`` (scored for this same report), items carry a
    ``salience_score`` and each chart a ``salience_ranking``.
    """
    chart_analyses: List[Dict[str, Any]] = [chart_analysis_to_dict(a) for a in report.chart_analyses]
    data = {
        "settings": settings_to_dict(report.settings),
        "chart_analyses": chart_analyses,
        "pairwise_analyses": [pairwise_to_dict(a) for a in report.pairwise_analyses],
        "global_analysis": global_to_dict(report.global_analysis),
        "transit_analyses": [transit_to_dict(a) for a in report.transit_analyses],
        "global_transit_analysis": global_to_dict(report.global_transit_analysis),
    }
    if salience is not None:
        _add_salience(data, salience)
    return data
