"""Resolved analysis settings.

Defaults come from ``chart_constants.yaml``; callers pass a mapping of
overrides (as parsed from JSON or built in code) to :func:`resolve_settings`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple, Union

from chart_config import cfg
from chart_engine.dignities import RULERSHIP_SYSTEMS
from models import AspectCategory, AspectDefinition, OrbConfiguration


logger = logging.getLogger(__name__)

FINALS_ONLY = "finals-only"
DETAIL_LEVELS = ("summary", "standard", "complete")

DispositorMode = Union[bool, str]


class SettingsError(ValueError):
    """Raised when an analysis setting cannot be resolved."""
    pass


@dataclass(frozen=True)
class AnalysisSettings:
    aspect_definitions: Tuple[AspectDefinition, ...]
    aspect_categories: Tuple[AspectCategory, ...] = ()
    orb_configuration: Optional[OrbConfiguration] = field(default=None, compare=False)
    include_aspect_patterns: bool = False
    skip_out_of_sign_aspects: bool = True
    include_house_overlays: bool = True
    include_dispositors: DispositorMode = True
    include_sign_distributions: bool = True
    stellium_min_points: int = 3
    rulership: str = "traditional"
    aspect_preset: Optional[str] = None  # name of the preset the definitions came from
    include_salience: bool = False
    detail_level: str = "complete"

    @property
    def dispositors_enabled(self) -> bool:
        return self.include_dispositors is not False

    @property
    def dispositor_chains_enabled(self) -> bool:
        return self.include_dispositors is True


def aspect_preset(name: str) -> Tuple[AspectDefinition, ...]:
    """Aspect definitions of a named preset from the constants file."""
    presets = cfg().get("aspects", {}) or {}
    if name not in presets:
        available = ", ".join(sorted(presets))
        raise SettingsError(f"aspect_definitions: unknown preset '{name}' (available: {available})")
    return tuple(AspectDefinition.from_dict(d) for d in presets[name])


def _aspect_definitions(value: Any) -> Tuple[Tuple[AspectDefinition, ...], Optional[str]]:
    if isinstance(value, str):
        return aspect_preset(value), value
    try:
        definitions = tuple(
            d if isinstance(d, AspectDefinition) else AspectDefinition.from_dict(d) for d in value
        )
    except (KeyError, TypeError, ValueError) as e:
        raise SettingsError(f"aspect_definitions: invalid definition ({e})") from e
    for definition in definitions:
        if not 0 <= definition.angle <= 180:
            raise SettingsError(f"aspect_definitions: angle of '{definition.name}' must be within [0, 180]")
        if definition.orb <= 0:
            raise SettingsError(f"aspect_definitions: orb of '{definition.name}' must be positive")
    return definitions, None


def _aspect_categories(value: Any) -> Tuple[AspectCategory, ...]:
    try:
        return tuple(c if isinstance(c, AspectCategory) else AspectCategory.from_dict(c) for c in value or ())
    except (KeyError, TypeError, ValueError) as e:
        raise SettingsError(f"aspect_categories: invalid category ({e})") from e


def _orb_configuration(value: Any) -> Optional[OrbConfiguration]:
    if value is None or isinstance(value, OrbConfiguration):
        return value
    try:
        return OrbConfiguration.from_dict(value)
    except (AttributeError, TypeError, ValueError) as e:
        raise SettingsError(f"orb_configuration: {e}") from e


def _flag(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise SettingsError(f"{name}: expected true or false, got {value!r}")
    return value


def _dispositor_mode(value: Any) -> DispositorMode:
    if isinstance(value, bool) or value == FINALS_ONLY:
        return value
    raise SettingsError(f"include_dispositors: expected true, false or '{FINALS_ONLY}', got {value!r}")


def resolve_settings(overrides: Optional[Mapping[str, Any]] = None) -> AnalysisSettings:
    """Merge ``overrides`` over the configured defaults and validate the result."""
    overrides = dict(overrides or {})
    defaults = cfg().get("analysis", {}) or {}

    def pick(key: str, fallback: Any) -> Any:
        return overrides.pop(key) if key in overrides else defaults.get(key, fallback)

    preset_name = overrides.pop("aspect_preset", defaults.get("aspect_preset", "default"))
    definitions, preset = _aspect_definitions(overrides.pop("aspect_definitions", preset_name))
    categories = _aspect_categories(overrides.pop("aspect_categories", cfg().get("aspect_categories", [])))
    orb_configuration = _orb_configuration(overrides.pop("orb_configuration", None))

    stellium_min = pick("stellium_min_points", 3)
    if isinstance(stellium_min, bool) or not isinstance(stellium_min, int) or stellium_min < 2:
        raise SettingsError(f"stellium_min_points: expected an integer of at least 2, got {stellium_min!r}")

    rulership = pick("rulership", "traditional")
    if rulership not in RULERSHIP_SYSTEMS:
        raise SettingsError(f"rulership: expected one of {', '.join(RULERSHIP_SYSTEMS)}, got {rulership!r}")

    detail_level = pick("detail_level", "complete")
    if detail_level not in DETAIL_LEVELS:
        raise SettingsError(f"detail_level: expected one of {', '.join(DETAIL_LEVELS)}, got {detail_level!r}")

    settings = AnalysisSettings(
        aspect_definitions=definitions,
        aspect_categories=categories,
        orb_configuration=orb_configuration,
        include_aspect_patterns=_flag("include_aspect_patterns", pick("include_aspect_patterns", False)),
        skip_out_of_sign_aspects=_flag("skip_out_of_sign_aspects", pick("skip_out_of_sign_aspects", True)),
        include_house_overlays=_flag("include_house_overlays", pick("include_house_overlays", True)),
        include_dispositors=_dispositor_mode(pick("include_dispositors", True)),
        include_sign_distributions=_flag("include_sign_distributions", pick("include_sign_distributions", True)),
        stellium_min_points=stellium_min,
        rulership=rulership,
        aspect_preset=preset,
        include_salience=_flag("include_salience", pick("include_salience", False)),
        detail_level=detail_level,
    )

    if overrides:
        logger.warning(f"Ignoring unknown settings: {', '.join(sorted(overrides))}")

    return settings
