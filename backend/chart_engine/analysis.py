"""Tiered analysis of one or more charts.

Aspects are computed within every chart and across every chart pair, patterns
are detected once over the union of all charts' points, and the results are
then sorted into tiers by the charts they involve:

1. each chart on its own
2. each pair of natal/event charts (synastry)
3. three or more natal/event charts together
4. each natal/event chart against the transit chart
5. the transit chart together with two or more other charts
"""
from __future__ import annotations

import logging
import sys
from itertools import combinations
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from models import (
    AspectObservation,
    Chart,
    ChartAnalysis,
    ChartPairKind,
    GlobalAnalysis,
    PairwiseAnalysis,
    Pattern,
    Report,
    TransitAnalysis,
)
from settings import AnalysisSettings, resolve_settings
from .aspects import calculate_aspects, calculate_cross_chart_aspects, unioned_points
from .dispositors import analyze_dispositors
from .distributions import analyze_sign_distributions
from .orbs import OrbResolver
from .overlays import calculate_house_overlays
from .patterns import detect_aspect_patterns, detect_stelliums, points_for_patterns
from .zodiac import place_point

logger = logging.getLogger(__name__)


class ChartConfigurationError(Exception):
    """Raised when the set of charts cannot be analysed together"""
    pass


def setup_chart_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Setup logging for the chart engine"""
    engine_logger = logging.getLogger("chart_engine")
    engine_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    # Prevent double logging with root handlers
    engine_logger.propagate = False

    engine_logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    engine_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        engine_logger.addHandler(file_handler)


def partition_charts(charts: Sequence[Chart]) -> Tuple[List[Chart], Optional[Chart]]:
    """Split charts into natal/event charts and the (single) transit chart."""
    non_transit = [chart for chart in charts if not chart.is_transit]
    transits = [chart for chart in charts if chart.is_transit]
    if len(transits) > 1:
        names = ", ".join(chart.name for chart in transits)
        raise ChartConfigurationError(f"Only one transit chart may be analysed at a time, got: {names}")
    return non_transit, (transits[0] if transits else None)


def pair_kind(first: Chart, second: Chart) -> ChartPairKind:
    """Orb context for aspects between two charts."""
    if first.name == second.name:
        return ChartPairKind.NATAL
    if first.is_transit or second.is_transit:
        return ChartPairKind.TRANSIT
    return ChartPairKind.SYNASTRY


def _patterns_with_charts(patterns: Iterable[Pattern], chart_names: FrozenSet[str]) -> Tuple[Pattern, ...]:
    return tuple(p for p in patterns if p.chart_names() == chart_names)


class ChartAnalyzer:
    """Builds a :class:`Report` for a set of validated charts."""

    def __init__(self, settings: Optional[AnalysisSettings] = None, resolver: Optional[OrbResolver] = None):
        self.settings = settings or resolve_settings()
        self.resolver = resolver or OrbResolver(self.settings.orb_configuration)

    # -- aspects -----------------------------------------------------------

    def within_chart_aspects(self, chart: Chart) -> List[AspectObservation]:
        return calculate_aspects(
            self.settings.aspect_definitions,
            unioned_points(chart.all_points(), chart.name),
            resolver=self.resolver,
            skip_out_of_sign=self.settings.skip_out_of_sign_aspects,
            pair_kind=ChartPairKind.NATAL,
        )

    def cross_chart_aspects(self, first: Chart, second: Chart) -> List[AspectObservation]:
        points = unioned_points(first.all_points(), first.name) + unioned_points(second.all_points(), second.name)
        return calculate_cross_chart_aspects(
            self.settings.aspect_definitions,
            points,
            resolver=self.resolver,
            skip_out_of_sign=self.settings.skip_out_of_sign_aspects,
            pair_kind=pair_kind(first, second),
        )

    def detect_patterns(self, charts: Sequence[Chart], observations: Sequence[AspectObservation]) -> List[Pattern]:
        if not self.settings.include_aspect_patterns:
            return []
        points = [(point, chart.name) for chart in charts for point in points_for_patterns(chart)]
        cusps = {chart.name: chart.cusps for chart in charts}
        return detect_aspect_patterns(points, observations, cusps)

    # -- tiers -------------------------------------------------------------

    def chart_analysis(
        self, chart: Chart, aspects: Sequence[AspectObservation], patterns: Sequence[Pattern]
    ) -> ChartAnalysis:
        settings = self.settings

        stelliums = ()
        if settings.include_aspect_patterns:
            stelliums = tuple(
                detect_stelliums(points_for_patterns(chart), chart.cusps, settings.stellium_min_points, chart.name)
            )

        dispositors = None
        if settings.dispositors_enabled and not chart.is_transit:
            dispositors = analyze_dispositors(
                chart.points, settings.rulership, include_chains=settings.dispositor_chains_enabled
            )

        distributions = None
        if settings.include_sign_distributions:
            distributions = analyze_sign_distributions(chart.points, chart.ascendant)

        return ChartAnalysis(
            chart=chart,
            placements=tuple(place_point(p, chart.name, chart.cusps, with_dignities=True) for p in chart.points),
            aspects=tuple(a for a in aspects if a.is_within(chart.name)),
            patterns=_patterns_with_charts(patterns, frozenset((chart.name,))),
            stelliums=stelliums,
            sign_distributions=distributions,
            dispositors=dispositors,
        )

    def pairwise_analysis(
        self, first: Chart, second: Chart, aspects: Sequence[AspectObservation], patterns: Sequence[Pattern]
    ) -> PairwiseAnalysis:
        return PairwiseAnalysis(
            first=first,
            second=second,
            aspects=tuple(a for a in aspects if a.crosses(first.name, second.name)),
            patterns=_patterns_with_charts(patterns, frozenset((first.name, second.name))),
            house_overlays=calculate_house_overlays(first, second) if self.settings.include_house_overlays else None,
        )

    def transit_analysis(
        self, natal: Chart, transit: Chart, aspects: Sequence[AspectObservation], patterns: Sequence[Pattern]
    ) -> TransitAnalysis:
        return TransitAnalysis(
            natal_chart=natal,
            transit_chart=transit,
            aspects=tuple(a for a in aspects if a.crosses(natal.name, transit.name)),
            patterns=_patterns_with_charts(patterns, frozenset((natal.name, transit.name))),
        )

    # -- report ------------------------------------------------------------

    def analyze(self, charts: Sequence[Chart]) -> Report:
        non_transit, transit = partition_charts(charts)
        all_charts = non_transit + ([transit] if transit else [])

        aspects: List[AspectObservation] = []
        for chart in all_charts:
            aspects.extend(self.within_chart_aspects(chart))
        for first, second in combinations(all_charts, 2):
            aspects.extend(self.cross_chart_aspects(first, second))

        patterns = self.detect_patterns(all_charts, aspects)
        logger.debug(f"{len(aspects)} aspects and {len(patterns)} patterns across {len(all_charts)} charts")

        chart_analyses = tuple(self.chart_analysis(chart, aspects, patterns) for chart in all_charts)

        pairwise: Tuple[PairwiseAnalysis, ...] = ()
        if len(non_transit) >= 2:
            pairwise = tuple(
                self.pairwise_analysis(first, second, aspects, patterns)
                for first, second in combinations(non_transit, 2)
            )

        global_analysis = None
        if len(non_transit) > 2:
            transit_name = transit.name if transit else None
            global_patterns = tuple(
                p for p in patterns if len(p.chart_names()) >= 3 and transit_name not in p.chart_names()
            )
            if global_patterns:
                global_analysis = GlobalAnalysis(charts=tuple(non_transit), patterns=global_patterns)

        transit_analyses: Tuple[TransitAnalysis, ...] = ()
        global_transit = None
        if transit is not None:
            transit_analyses = tuple(
                self.transit_analysis(natal, transit, aspects, patterns) for natal in non_transit
            )
            if non_transit:
                transit_patterns = tuple(
                    p for p in patterns if transit.name in p.chart_names() and len(p.chart_names()) >= 3
                )
                if transit_patterns:
                    global_transit = GlobalAnalysis(charts=tuple(all_charts), patterns=transit_patterns)

        logger.info(
            f"Analysed {len(all_charts)} chart(s): {len(pairwise)} pairwise, "
            f"{len(transit_analyses)} transit, global={'yes' if global_analysis else 'no'}, "
            f"global transit={'yes' if global_transit else 'no'}"
        )

        return Report(
            settings=self.settings,
            chart_analyses=chart_analyses,
            pairwise_analyses=pairwise,
            global_analysis=global_analysis,
            transit_analyses=transit_analyses,
            global_transit_analysis=global_transit,
        )


def analyze_charts(charts: Sequence[Chart], settings: Optional[AnalysisSettings] = None) -> Report:
    """Analyse validated charts with the given (or default) settings."""
    return ChartAnalyzer(settings).analyze(charts)
