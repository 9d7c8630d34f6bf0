"""YAML-backed configuration for the chart analysis engine.

The constants file (``chart_engine/chart_constants.yaml``) is loaded once per
process and exposed both as nested attributes
(``cfg().analysis.stellium_min_points``) and through dotted lookups
(``cfg().get("precision.motion_step_days")``). Point ``CHART_CONFIG`` at
another YAML file to override the packaged defaults; call ``ChartConfig.reset()`` after
changing it.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, Optional

import yaml


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path(__file__).resolve().parent / "chart_engine" / "chart_constants.yaml"
CONFIG_ENV_VAR = "CHART_CONFIG"

REQUIRED_KEYS = [
    "analysis.aspect_preset",
    "analysis.stellium_min_points",
    "precision.exact_aspect_epsilon",
    "precision.motion_step_days",
    "points.pattern_exclusions",
    "orbs.global_fallback_orb",
    "aspects.default",
]


class ChartConfigError(Exception):
    """Raised when the constants file is missing or malformed."""
    pass


def _to_namespace(value: Any) -> Any:
    if isinstance(value, dict):
        return SimpleNamespace(**{str(k): _to_namespace(v) for k, v in value.items()})
    if isinstance(value, list):
        return [_to_namespace(v) for v in value]
    return value


class ChartConfig:
    """Loaded constants with attribute and dotted-key access."""

    _instance: Optional["ChartConfig"] = None

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE))
        self.data = self._load(self.path)
        for key, value in self.data.items():
            setattr(self, str(key), _to_namespace(value))

    @staticmethod
    def _load(path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ChartConfigError(f"Configuration file not found: {path}") from e
        except yaml.YAMLError as e:
            raise ChartConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ChartConfigError(f"Configuration root in {path} must be a mapping")
        logger.debug(f"Loaded chart configuration from {path}")
        return data

    @classmethod
    def instance(cls) -> "ChartConfig":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the cached configuration so the next access reloads it."""
        cls._instance = None

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Return the raw value at ``dotted_key`` or ``default``."""
        node: Any = self.data
        for part in dotted_key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def validate_required_keys(self) -> None:
        missing = [key for key in REQUIRED_KEYS if self.get(key) is None]
        if missing:
            raise ChartConfigError(
                f"Missing required configuration keys in {self.path}: {', '.join(missing)}"
            )


def get_config() -> ChartConfig:
    return ChartConfig.instance()


def cfg() -> ChartConfig:
    """Shorthand for :func:`get_config`."""
    return ChartConfig.instance()
