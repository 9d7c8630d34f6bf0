"""Salience scoring and detail-level filtering of a finished report.

Every placement, aspect, pattern and stellium gets a score built from a base
value for its kind and multipliers for orb tightness, the points involved,
house angularity and the kind of comparison it belongs to. Scores are summed
per point into a ranking for each chart, and a report can be cut down to its
highest scoring items with a detail level:

* ``complete`` keeps everything
* ``standard`` keeps items scoring at least the median
* ``summary`` keeps roughly the top quarter

Reports are never modified; scoring and filtering return new frozen values.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from chart_config import cfg
from models import (
    AspectObservation,
    ChartAnalysis,
    ChartSalience,
    LinkSalience,
    Pattern,
    PatternType,
    PlacedPoint,
    PointSalience,
    Report,
    SalienceReport,
    Stellium,
)
from .precision import round_half_up

logger = logging.getLogger(__name__)

COMPLETE = "complete"
STANDARD = "standard"
SUMMARY = "summary"

NATAL = "natal"
SYNASTRY = "synastry"
TRANSIT = "transit"

ANGLES = ("Ascendant", "Midheaven", "Descendant", "IC")
ANGULAR_HOUSES = (1, 4, 7, 10)
SUCCEDENT_HOUSES = (2, 5, 8, 11)

# orb multiplier is 1 + ORB_WEIGHT / (orb + ORB_SOFTENING)
ORB_WEIGHT = 2.0
ORB_SOFTENING = 0.5

DEFAULT_BASE_SCORES = {
    "major_pattern": 100.0,
    "yod": 70.0,
    "stellium": 80.0,
    "angle_aspect": 60.0,
    "point_aspect": 50.0,
    "placement": 20.0,
}
DEFAULT_POINT_TIERS = {
    "Sun": 1.5, "Moon": 1.5, "Ascendant": 1.5, "Midheaven": 1.5,
    "Mercury": 1.2, "Venus": 1.2, "Mars": 1.2,
    "Jupiter": 1.0, "Saturn": 1.0,
    "Uranus": 0.8, "Neptune": 0.8, "Pluto": 0.8,
}
DEFAULT_ANGULARITY = {"angular": 1.3, "succedent": 1.0, "cadent": 0.9}
DEFAULT_CHART_TYPES = {NATAL: 1.0, SYNASTRY: 0.9, TRANSIT: 0.8}


@dataclass(frozen=True)
class SalienceConfig:
    base_scores: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_BASE_SCORES))
    point_tiers: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_POINT_TIERS))
    angularity: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_ANGULARITY))
    chart_types: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_CHART_TYPES))

    @classmethod
    def from_config(cls) -> "SalienceConfig":
        """Defaults overlaid with the ``salience`` section of the constants file."""

        def merged(key: str, defaults: Dict[str, float]) -> Dict[str, float]:
            values = dict(defaults)
            values.update({str(k): float(v) for k, v in (cfg().get(f"salience.{key}", {}) or {}).items()})
            return values

        return cls(
            base_scores=merged("base_scores", DEFAULT_BASE_SCORES),
            point_tiers=merged("point_tiers", DEFAULT_POINT_TIERS),
            angularity=merged("angularity", DEFAULT_ANGULARITY),
            chart_types=merged("chart_types", DEFAULT_CHART_TYPES),
        )

    def orb_modifier(self, orb: float) -> float:
        return 1 + ORB_WEIGHT / (orb + ORB_SOFTENING)

    def point_tier(self, point_name: str) -> float:
        return self.point_tiers.get(point_name, 1.0)

    def angularity_modifier(self, house: Optional[int]) -> float:
        if house in ANGULAR_HOUSES:
            return self.angularity["angular"]
        if house in SUCCEDENT_HOUSES:
            return self.angularity["succedent"]
        # cadent, or no house known
        return self.angularity["cadent"]

    def chart_type_modifier(self, chart_type: str) -> float:
        return self.chart_types.get(chart_type, 1.0)


def is_angle(point_name: str) -> bool:
    return point_name in ANGLES


class SalienceScorer:
    """Scores report items under one :class:`SalienceConfig`."""

    def __init__(self, config: Optional[SalienceConfig] = None):
        self.config = config or SalienceConfig.from_config()

    def score_placement(self, placement: PlacedPoint, chart_type: str = NATAL) -> float:
        config = self.config
        return (
            config.base_scores["placement"]
            * config.angularity_modifier(placement.house)
            * config.point_tier(placement.name)
            * config.chart_type_modifier(chart_type)
        )

    def score_aspect(self, aspect: AspectObservation, chart_type: str = NATAL) -> float:
        config = self.config
        involves_angle = is_angle(aspect.point_a) or is_angle(aspect.point_b)
        base = config.base_scores["angle_aspect" if involves_angle else "point_aspect"]
        tier = max(config.point_tier(aspect.point_a), config.point_tier(aspect.point_b))
        return base * config.orb_modifier(aspect.orb) * tier * config.chart_type_modifier(chart_type)

    def score_pattern(self, pattern: Pattern, chart_type: str = NATAL) -> float:
        if isinstance(pattern, Stellium):
            return self.score_stellium(pattern, chart_type)
        base = self.config.base_scores["yod" if pattern.pattern_type is PatternType.YOD else "major_pattern"]
        return base * self.config.chart_type_modifier(chart_type)

    def score_stellium(self, stellium: Stellium, chart_type: str = NATAL) -> float:
        size = 1 + (len(stellium.points) - 3) * 0.2
        # +1 keeps a zero-degree span finite
        tightness = 1 + 10 / (stellium.degree_span + 1)
        return (
            self.config.base_scores["stellium"]
            * size
            * tightness
            * self.config.chart_type_modifier(chart_type)
        )

    def score_chart(self, analysis: ChartAnalysis) -> ChartSalience:
        chart_type = TRANSIT if analysis.chart.is_transit else NATAL
        placements = tuple(self.score_placement(p, chart_type) for p in analysis.placements)
        aspects = tuple(self.score_aspect(a, chart_type) for a in analysis.aspects)
        patterns = tuple(self.score_pattern(p, chart_type) for p in analysis.patterns)
        stelliums = tuple(self.score_stellium(s, chart_type) for s in analysis.stelliums)

        totals: Dict[str, float] = {}

        def add(point_names: Iterable[str], score: float) -> None:
            for name in point_names:
                if is_angle(name):
                    continue
                totals[name] = totals.get(name, 0.0) + score

        for placement, score in zip(analysis.placements, placements):
            add((placement.name,), score)
        for aspect, score in zip(analysis.aspects, aspects):
            add((aspect.point_a, aspect.point_b), score)
        for pattern, score in zip(list(analysis.patterns) + list(analysis.stelliums), patterns + stelliums):
            add(pattern.member_names(), score)

        return ChartSalience(
            chart_name=analysis.chart.name,
            placements=placements,
            aspects=aspects,
            patterns=patterns,
            stelliums=stelliums,
            ranking=rank_points(totals),
        )

    def score_link(
        self,
        chart_names: Tuple[str, str],
        aspects: Sequence[AspectObservation],
        patterns: Sequence[Pattern],
        chart_type: str,
    ) -> LinkSalience:
        return LinkSalience(
            chart_names=chart_names,
            aspects=tuple(self.score_aspect(a, chart_type) for a in aspects),
            patterns=tuple(self.score_pattern(p, chart_type) for p in patterns),
        )


def rank_points(totals: Dict[str, float]) -> Tuple[PointSalience, ...]:
    """Points ordered by total score; equal totals keep first-seen order."""
    rounded = [(point, int(round_half_up(total))) for point, total in totals.items()]
    rounded.sort(key=lambda item: item[1], reverse=True)
    return tuple(
        PointSalience(point=point, total_score=total, rank=i + 1)
        for i, (point, total) in enumerate(rounded)
    )


def annotate(report: Report, config: Optional[SalienceConfig] = None) -> SalienceReport:
    """Score every item of ``report``.

    Tier 1 items use the natal weighting (transit for a transit chart),
    pairwise items the synastry weighting and transit items the transit one.
    """
    scorer = SalienceScorer(config)
    charts = tuple(scorer.score_chart(analysis) for analysis in report.chart_analyses)
    pairwise = tuple(
        scorer.score_link((a.first.name, a.second.name), a.aspects, a.patterns, SYNASTRY)
        for a in report.pairwise_analyses
    )
    transits = tuple(
        scorer.score_link((a.natal_chart.name, a.transit_chart.name), a.aspects, a.patterns, TRANSIT)
        for a in report.transit_analyses
    )
    logger.debug(f"Scored {sum(len(c.scores()) for c in charts)} chart items in {len(charts)} chart(s)")
    return SalienceReport(report=report, charts=charts, pairwise=pairwise, transits=transits)


def detail_threshold(scores: Sequence[float], detail_level: str) -> float:
    """Lowest score kept at ``detail_level``."""
    if detail_level == COMPLETE or not scores:
        return 0.0
    ordered = sorted(scores, reverse=True)
    if detail_level == STANDARD:
        index = len(ordered) // 2
    elif detail_level == SUMMARY:
        index = len(ordered) // 4
    else:
        raise ValueError(f"Unknown detail level: {detail_level!r}")
    return ordered[index]


def _keep(items: Sequence, scores: Sequence[float], threshold: float) -> Tuple[tuple, Tuple[float, ...]]:
    kept = [(item, score) for item, score in zip(items, scores) if score >= threshold]
    return tuple(item for item, _ in kept), tuple(score for _, score in kept)


def filter_report(salience: SalienceReport, detail_level: str) -> SalienceReport:
    """Drop items scoring below the ``detail_level`` threshold.

    The threshold is taken over every scored item in the report. Point
    rankings are left as scored.
    """
    if detail_level == COMPLETE:
        return salience
    threshold = detail_threshold(salience.all_scores(), detail_level)
    report = salience.report

    chart_analyses: List[ChartAnalysis] = []
    charts: List[ChartSalience] = []
    for analysis, scored in zip(report.chart_analyses, salience.charts):
        placements, placement_scores = _keep(analysis.placements, scored.placements, threshold)
        aspects, aspect_scores = _keep(analysis.aspects, scored.aspects, threshold)
        patterns, pattern_scores = _keep(analysis.patterns, scored.patterns, threshold)
        stelliums, stellium_scores = _keep(analysis.stelliums, scored.stelliums, threshold)
        chart_analyses.append(
            replace(analysis, placements=placements, aspects=aspects, patterns=patterns, stelliums=stelliums)
        )
        charts.append(
            replace(
                scored,
                placements=placement_scores,
                aspects=aspect_scores,
                patterns=pattern_scores,
                stelliums=stellium_scores,
            )
        )

    def filter_links(analyses, links):
        kept_analyses, kept_links = [], []
        for analysis, link in zip(analyses, links):
            aspects, aspect_scores = _keep(analysis.aspects, link.aspects, threshold)
            patterns, pattern_scores = _keep(analysis.patterns, link.patterns, threshold)
            kept_analyses.append(replace(analysis, aspects=aspects, patterns=patterns))
            kept_links.append(replace(link, aspects=aspect_scores, patterns=pattern_scores))
        return tuple(kept_analyses), tuple(kept_links)

    pairwise_analyses, pairwise = filter_links(report.pairwise_analyses, salience.pairwise)
    transit_analyses, transits = filter_links(report.transit_analyses, salience.transits)

    filtered = replace(
        report,
        chart_analyses=tuple(chart_analyses),
        pairwise_analyses=pairwise_analyses,
        transit_analyses=transit_analyses,
    )
    logger.info(f"Detail level '{detail_level}': kept items scoring {threshold:.1f} or more")
    return SalienceReport(report=filtered, charts=tuple(charts), pairwise=pairwise, transits=transits)


def score_report(report: Report) -> Optional[SalienceReport]:
    """Annotate and filter ``report`` as its settings ask, or ``None`` when salience is off."""
    settings = report.settings
    include = getattr(settings, "include_salience", False)
    detail_level = getattr(settings, "detail_level", COMPLETE)
    if not include and detail_level == COMPLETE:
        return None
    return filter_report(annotate(report), detail_level)
