"""Bucket aspect observations into orb-strength categories."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from chart_config import cfg
from models import AspectCategory, AspectObservation

OVERFLOW_CATEGORY = "WIDE ASPECTS"


def default_aspect_categories() -> List[AspectCategory]:
    return [AspectCategory.from_dict(c) for c in (cfg().get("aspect_categories", []) or [])]


def _matches(category: AspectCategory, orb: float) -> bool:
    if category.min_orb is not None and orb <= category.min_orb:
        return False
    return orb <= category.max_orb


def group_aspects(
    observations: Iterable[AspectObservation],
    categories: Optional[Sequence[AspectCategory]] = None,
) -> Dict[str, List[AspectObservation]]:
    """Group observations by the first category whose orb band contains them.

    Buckets keep category order and are sorted by orb; aspects wider than every
    band land in ``WIDE ASPECTS``. Empty buckets are left out.
    """
    if categories is None:
        categories = default_aspect_categories()

    buckets: Dict[str, List[AspectObservation]] = {c.name: [] for c in categories}
    buckets[OVERFLOW_CATEGORY] = buckets.get(OVERFLOW_CATEGORY, [])

    for obs in sorted(observations, key=lambda o: o.orb):
        for category in categories:
            if _matches(category, obs.orb):
                buckets[category.name].append(obs)
                break
        else:
            buckets[OVERFLOW_CATEGORY].append(obs)

    return {name: grouped for name, grouped in buckets.items() if grouped}
