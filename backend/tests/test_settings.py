import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT))
sys.path.append(str(ROOT / "backend"))

from models import AspectDefinition, ChartPairKind, PlanetCategory
from settings import FINALS_ONLY, SettingsError, aspect_preset, resolve_settings


def test_defaults_from_constants_file():
    settings = resolve_settings()
    assert settings.aspect_preset == "default"
    assert [d.name for d in settings.aspect_definitions] == [
        "conjunction", "opposition", "trine", "square", "sextile", "quincunx",
    ]
    assert settings.include_aspect_patterns is False
    assert settings.skip_out_of_sign_aspects is True
    assert settings.include_dispositors is True
    assert settings.stellium_min_points == 3
    assert settings.rulership == "traditional"
    assert [c.name for c in settings.aspect_categories] == ["TIGHT ASPECTS", "MODERATE ASPECTS"]
    assert settings.orb_configuration is None
    assert settings.include_salience is False
    assert settings.detail_level == "complete"


@pytest.mark.parametrize("preset, count", [("traditional", 6), ("modern", 6), ("tight", 6), ("wide", 7)])
def test_presets(preset, count):
    settings = resolve_settings({"aspect_definitions": preset})
    assert len(settings.aspect_definitions) == count
    assert settings.aspect_preset == preset
    assert aspect_preset(preset) == settings.aspect_definitions


def test_unknown_preset_rejected():
    with pytest.raises(SettingsError, match="aspect_definitions"):
        resolve_settings({"aspect_definitions": "esoteric"})


def test_custom_definitions():
    settings = resolve_settings(
        {
            "aspect_definitions": [
                {"name": "square", "angle": 90, "orb": 4},
                AspectDefinition("quintile", 72, 1),
            ]
        }
    )
    assert [d.name for d in settings.aspect_definitions] == ["square", "quintile"]
    assert settings.aspect_preset is None


@pytest.mark.parametrize(
    "definition",
    [{"name": "wide", "angle": 200, "orb": 2}, {"name": "flat", "angle": 90, "orb": 0}, {"angle": 90}],
)
def test_invalid_definitions_rejected(definition):
    with pytest.raises(SettingsError, match="aspect_definitions"):
        resolve_settings({"aspect_definitions": [definition]})


def test_dispositor_modes():
    finals = resolve_settings({"include_dispositors": FINALS_ONLY})
    assert finals.dispositors_enabled
    assert not finals.dispositor_chains_enabled

    off = resolve_settings({"include_dispositors": False})
    assert not off.dispositors_enabled

    with pytest.raises(SettingsError, match="include_dispositors"):
        resolve_settings({"include_dispositors": "sometimes"})


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"include_aspect_patterns": "yes"}, "include_aspect_patterns"),
        ({"rulership": "vedic"}, "rulership"),
        ({"stellium_min_points": 1}, "stellium_min_points"),
        ({"detail_level": "brief"}, "detail_level"),
        ({"include_salience": 1}, "include_salience"),
        ({"orb_configuration": {"planet_categories": {"giants": {"default_orb": 3}}}}, "orb_configuration"),
    ],
)
def test_invalid_settings_name_the_field(overrides, field):
    with pytest.raises(SettingsError, match=field):
        resolve_settings(overrides)


def test_orb_configuration_parsed():
    settings = resolve_settings(
        {
            "orb_configuration": {
                "planet_categories": {"luminaries": {"default_orb": 10}},
                "contextual_orbs": {"synastry": {"orb_multiplier": 0.5}},
            }
        }
    )
    config = settings.orb_configuration
    assert config.planet_categories[PlanetCategory.LUMINARIES].default_orb == 10
    assert config.contextual_orbs[ChartPairKind.SYNASTRY].orb_multiplier == 0.5


def test_unknown_settings_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="settings"):
        resolve_settings({"date_format": "MM/DD/YYYY"})
    assert "date_format" in caplog.text
