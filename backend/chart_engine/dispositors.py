"""Dispositor chains, final dispositors and rulership cycles for one chart."""
from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from models import (
    DispositorAnalysis,
    DispositorChain,
    DispositorCycle,
    DispositorTerminus,
    Point,
)
from .dignities import TRADITIONAL, sign_rulers

logger = logging.getLogger(__name__)


def ruler_map(points: Sequence[Point], rulership: str = TRADITIONAL) -> Dict[str, Tuple[str, ...]]:
    """Each point's sign ruler(s), keyed by point name."""
    return {point.name: sign_rulers(point.sign, rulership) for point in points}


def _trace(
    start: str,
    rulers: Dict[str, Tuple[str, ...]],
) -> Tuple[List[DispositorChain], List[DispositorCycle]]:
    """Walk every rulership path out of ``start`` with an explicit stack.

    A path ends when it reaches a self-ruling point, a point whose rulers are
    all outside the chart, or a point already on the path. Only a loop that
    closes back on ``start`` is recorded as a cycle; other loops end the chain.
    """
    chains: List[DispositorChain] = []
    cycles: List[DispositorCycle] = []
    stack: List[Tuple[str, ...]] = [(start,)]

    while stack:
        path = stack.pop()
        node = path[-1]
        node_rulers = rulers.get(node, ())

        if node in node_rulers:
            chains.append(DispositorChain(start, path, DispositorTerminus.FINAL))
            continue

        present = [r for r in node_rulers if r in rulers]
        external = tuple(r for r in node_rulers if r not in rulers)
        if not present:
            chains.append(DispositorChain(start, path, DispositorTerminus.NOT_IN_CHART, external))
            continue

        # Reversed so the first ruler is explored first
        for ruler in reversed(present):
            closed = path + (ruler,)
            if ruler in path:
                if ruler == start:
                    cycles.append(DispositorCycle(closed))
                chains.append(DispositorChain(start, closed, DispositorTerminus.CYCLE, external))
            else:
                stack.append(closed)

    return chains, cycles


def analyze_dispositors(
    points: Sequence[Point],
    rulership: str = TRADITIONAL,
    include_chains: bool = True,
) -> DispositorAnalysis:
    """Rulers, final dispositors and cycles for a chart's points.

    A final dispositor is a point in its own sign, or one whose rulers are all
    absent from the chart. Each cycle is reported once per member point, so a
    mutual reception between Venus and Mars yields both Venus→Mars→Venus and
    Mars→Venus→Mars. ``include_chains=False`` leaves out the per-point paths.
    """
    rulers = ruler_map(points, rulership)

    finals: List[str] = []
    for name, point_rulers in rulers.items():
        if name in point_rulers or not any(r in rulers for r in point_rulers):
            finals.append(name)

    chains: List[DispositorChain] = []
    cycles: List[DispositorCycle] = []
    for name in rulers:
        point_chains, point_cycles = _trace(name, rulers)
        chains.extend(point_chains)
        cycles.extend(point_cycles)

    logger.debug(
        f"Dispositors ({rulership}) over {len(rulers)} points: "
        f"finals={finals}, {len(cycles)} cycle entries"
    )

    return DispositorAnalysis(
        rulers=rulers,
        finals=tuple(finals),
        cycles=tuple(cycles),
        chains=tuple(chains) if include_chains else (),
    )
