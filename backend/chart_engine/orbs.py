"""Hierarchical orb resolution with a per-configuration memo table."""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from chart_config import cfg
from models import (
    AspectDefinition,
    ChartPairKind,
    OrbConfiguration,
    PlanetCategory,
)
from .precision import round_half_up

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_ORB = 3.0

OrbCacheKey = Tuple[str, str, AspectDefinition, ChartPairKind]


def default_planet_mapping() -> Dict[str, PlanetCategory]:
    """Point name to category table from the constants file."""
    categories = cfg().get("points.categories", {}) or {}
    return {name: PlanetCategory(category) for name, category in categories.items()}


class OrbResolver:
    """Resolve the widest permissible orb for a point pair and aspect.

    Resolution order:

    1. base orb: the larger of the two points' category orbs for the aspect
       (aspect-specific, then the category default), else the definition orb
    2. aspect classification multiplier
    3. chart-pair context multiplier (aspect-specific beats general)
    4. classification ``[min_orb, max_orb]`` clamp
    5. global fallback when the result is not positive
    6. rounding to one decimal

    Results are memoised per ``(point_a, point_b, definition, pair_kind)``.
    Replacing the configuration discards the whole cache.
    """

    def __init__(self, configuration: Optional[OrbConfiguration] = None):
        self._cache: Dict[OrbCacheKey, float] = {}
        self._configuration = configuration or OrbConfiguration()
        self._planet_mapping = self._build_mapping(self._configuration)

    @staticmethod
    def _build_mapping(configuration: OrbConfiguration) -> Dict[str, PlanetCategory]:
        mapping = default_planet_mapping()
        mapping.update(configuration.planet_mapping)
        return mapping

    @property
    def configuration(self) -> OrbConfiguration:
        return self._configuration

    @configuration.setter
    def configuration(self, configuration: OrbConfiguration) -> None:
        self._configuration = configuration
        self._planet_mapping = self._build_mapping(configuration)
        self.clear_cache()

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    @property
    def fallback_orb(self) -> float:
        """Configured fallback, else the constants file value."""
        if self._configuration.global_fallback_orb is not None:
            return self._configuration.global_fallback_orb
        return float(cfg().get("orbs.global_fallback_orb", DEFAULT_FALLBACK_ORB))

    def category_for(self, point_name: str) -> Optional[PlanetCategory]:
        return self._planet_mapping.get(point_name)

    def resolve_orb(
        self,
        point_a: str,
        point_b: str,
        definition: AspectDefinition,
        pair_kind: ChartPairKind = ChartPairKind.NATAL,
    ) -> float:
        key = (point_a, point_b, definition, pair_kind)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        orb = self._calculate_orb(point_a, point_b, definition, pair_kind)
        self._cache[key] = orb
        return orb

    def _calculate_orb(
        self,
        point_a: str,
        point_b: str,
        definition: AspectDefinition,
        pair_kind: ChartPairKind,
    ) -> float:
        orb = self._base_orb(point_a, point_b, definition)
        orb = self._apply_classification_multiplier(orb, definition)
        orb = self._apply_context_multiplier(orb, definition, pair_kind)
        orb = self._apply_constraints(orb, definition)
        return round_half_up(orb, 1)

    def _base_orb(self, point_a: str, point_b: str, definition: AspectDefinition) -> float:
        orbs = [
            orb
            for orb in (
                self._category_orb(point_a, definition),
                self._category_orb(point_b, definition),
            )
            if orb is not None
        ]
        # The wider body governs the pair
        if orbs:
            return max(orbs)
        return definition.orb

    def _category_orb(self, point_name: str, definition: AspectDefinition) -> Optional[float]:
        category = self.category_for(point_name)
        if category is None:
            return None
        rules = self._configuration.planet_categories.get(category)
        if rules is None:
            return None
        if definition.name in rules.aspect_orbs:
            return rules.aspect_orbs[definition.name]
        return rules.default_orb

    def _apply_classification_multiplier(self, orb: float, definition: AspectDefinition) -> float:
        if definition.classification is None:
            return orb
        rules = self._configuration.aspect_classification.get(definition.classification)
        if rules is None or not rules.orb_multiplier:
            return orb
        return orb * rules.orb_multiplier

    def _apply_context_multiplier(
        self, orb: float, definition: AspectDefinition, pair_kind: ChartPairKind
    ) -> float:
        rules = self._configuration.contextual_orbs.get(pair_kind)
        if rules is None:
            return orb
        aspect_multiplier = rules.aspect_multipliers.get(definition.name)
        if aspect_multiplier:
            return orb * aspect_multiplier
        if rules.orb_multiplier:
            return orb * rules.orb_multiplier
        return orb

    def _apply_constraints(self, orb: float, definition: AspectDefinition) -> float:
        rules = (
            self._configuration.aspect_classification.get(definition.classification)
            if definition.classification is not None
            else None
        )
        if rules is not None:
            if rules.min_orb is not None and orb < rules.min_orb:
                orb = rules.min_orb
            if rules.max_orb is not None and orb > rules.max_orb:
                orb = rules.max_orb

        if orb <= 0:
            fallback = self.fallback_orb
            logger.warning(
                f"Non-positive orb resolved for {definition.name}; using fallback {fallback}"
            )
            orb = fallback
        return orb
