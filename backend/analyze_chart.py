"""Command-line chart analysis.

Reads one chart (a JSON object) or several (a JSON array), validates them,
builds the tiered report and prints it as JSON, or as a grouped aspect
summary with ``--summary``.
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any, Dict, List, Optional

# Ensure the backend directory is importable when executed directly
sys.path.append(str(Path(__file__).resolve().parent))

from chart_config import ChartConfigError, cfg
from chart_engine.analysis import ChartConfigurationError, analyze_charts, setup_chart_logging
from chart_engine.grouping import group_aspects
from chart_engine.salience import score_report
from chart_engine.serialization import report_to_dict
from models import Report, SalienceReport
from settings import SettingsError, resolve_settings
from validation import InputShapeError, load_charts

logger = logging.getLogger(__name__)

EXIT_INVALID = 2


def analyze_chart_data(raw: Any, overrides: Optional[Dict[str, Any]] = None) -> Report:
    """Validate raw chart data and analyse it.

    Raises ``InputShapeError`` for invalid charts, ``SettingsError`` for invalid
    overrides and ``ChartConfigurationError`` when the charts cannot be
    analysed together.
    """
    charts = load_charts(raw)
    settings = resolve_settings(overrides)
    return analyze_charts(charts, settings)


def format_summary(report: Report, salience: Optional[SalienceReport] = None) -> str:
    lines: List[str] = []
    categories = report.settings.aspect_categories if report.settings else None

    def add_aspects(title: str, aspects) -> None:
        lines.append(f"== {title} ==")
        grouped = group_aspects(aspects, categories or None)
        if not grouped:
            lines.append("  (no aspects)")
        for category, observations in grouped.items():
            lines.append(f"  [{category}]")
            for obs in observations:
                lines.append(
                    f"    {obs.chart_a}:{obs.point_a} {obs.aspect_name} {obs.chart_b}:{obs.point_b} "
                    f"({obs.orb:.1f}°, {obs.motion.value})"
                )

    for analysis in report.chart_analyses:
        add_aspects(analysis.chart.name, analysis.aspects)
        for pattern in list(analysis.patterns) + list(analysis.stelliums):
            lines.append(f"  * {pattern.pattern_type.value}: {', '.join(pattern.member_names())}")
        scored = salience.chart(analysis.chart.name) if salience else None
        if scored and scored.ranking:
            ranking = ", ".join(f"{entry.point} ({entry.total_score})" for entry in scored.ranking)
            lines.append(f"  salience: {ranking}")
    for pairwise in report.pairwise_analyses:
        add_aspects(f"{pairwise.first.name} / {pairwise.second.name}", pairwise.aspects)
    for transit in report.transit_analyses:
        add_aspects(f"{transit.natal_chart.name} / {transit.transit_chart.name} (transits)", transit.aspects)
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Analyse one or more charts")
    parser.add_argument("chart_path", help="Path to a chart JSON file (object or array of charts)")
    parser.add_argument("--patterns", action="store_true", help="Detect aspect patterns and stelliums")
    parser.add_argument("--preset", default=None, help="Aspect preset (default, traditional, modern, tight, wide)")
    parser.add_argument("--salience", action="store_true", help="Score items and rank points by salience")
    parser.add_argument(
        "--detail-level",
        choices=("summary", "standard", "complete"),
        default=None,
        help="Keep only the most salient items (implies --salience)",
    )
    parser.add_argument("--summary", action="store_true", help="Print grouped aspects instead of JSON")
    parser.add_argument("--log-level", default="WARNING", help="Logging level for the chart engine")
    parser.add_argument("--log-file", default=None, help="Optional log file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_chart_logging(args.log_level, args.log_file)

    overrides: Dict[str, Any] = {}
    if args.patterns:
        overrides["include_aspect_patterns"] = True
    if args.preset:
        overrides["aspect_definitions"] = args.preset
    if args.salience:
        overrides["include_salience"] = True
    if args.detail_level:
        overrides["detail_level"] = args.detail_level

    try:
        cfg().validate_required_keys()
        raw = json.loads(Path(args.chart_path).read_text(encoding="utf-8"))
        report = analyze_chart_data(raw, overrides)
        salience = score_report(report)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Could not read {args.chart_path}: {e}", file=sys.stderr)
        return EXIT_INVALID
    except (InputShapeError, SettingsError, ChartConfigurationError, ChartConfigError) as e:
        print(f"Invalid chart data: {e}", file=sys.stderr)
        return EXIT_INVALID

    if salience is not None:
        report = salience.report

    if args.summary:
        print(format_summary(report, salience))
    else:
        print(json.dumps(report_to_dict(report, salience), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
