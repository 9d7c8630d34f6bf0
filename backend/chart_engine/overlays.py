"""House overlays between two charts."""
from __future__ import annotations

from typing import Dict

from models import Chart, HouseOverlays
from .zodiac import house_for_degree


def _points_in_houses(guest: Chart, host: Chart) -> Dict[str, int]:
    if not host.cusps:
        return {}
    placements: Dict[str, int] = {}
    for point in guest.points:
        house = house_for_degree(point.degree, host.cusps)
        if house is not None:
            placements[point.name] = house
    return placements


def calculate_house_overlays(first: Chart, second: Chart) -> HouseOverlays:
    """Each chart's points placed in the other's houses.

    A side is empty when the host chart has no cusps.
    """
    return HouseOverlays(
        first_in_second=_points_in_houses(first, second),
        second_in_first=_points_in_houses(second, first),
    )
