from __future__ import annotations

from pathlib import Path

import pytest

from choromap.config import MarkersConfig, load_config
from choromap.errors import ConfigurationError


def test_load_config_resolves_relative_paths(config_path: Path):
    cfg = load_config(config_path)
    root = config_path.parent.resolve()
    assert cfg.paths.geometry == root / "regions.geojson"
    assert cfg.paths.output_png == root / "build" / "map.png"
    assert cfg.viewport.size == (400, 300)
    assert cfg.schema.category_names == ("White", "Latino", "Asian", "Black", "Other")


def test_optional_sections_take_defaults(config_path: Path):
    cfg = load_config(config_path)
    assert cfg.projection.crs == "EPSG:5070"
    assert cfg.markers.tier_thresholds == (10_000_000.0, 1_000_000.0)
    assert cfg.markers.tier_colors == ("#4682b4", "#E25098", "#990066")
    assert cfg.markers.radius_scale == 2.0
    assert cfg.style.palette == "Pastel1"
    assert cfg.schema.id_mode == "numeric"


def test_missing_config_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_top_level_must_be_mapping(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_viewport_must_be_positive(config_path: Path):
    text = config_path.read_text(encoding="utf-8").replace("width_px: 400", "width_px: 0")
    config_path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(config_path)


@pytest.mark.parametrize(
    "raw",
    [
        {"tier_thresholds": [1_000_000, 10_000_000]},
        {"tier_colors": ["#000000"]},
        {"alpha": 1.5},
    ],
)
def test_invalid_marker_settings(raw):
    with pytest.raises(ConfigurationError):
        MarkersConfig.from_mapping(raw)
