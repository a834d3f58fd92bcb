from __future__ import annotations

from pathlib import Path

import pytest
from matplotlib.patches import Circle

from choromap.config import MarkersConfig, StyleConfig, ViewportConfig, load_config
from choromap.models import OFF_SCREEN_SENTINEL
from choromap.pipeline import assemble_map_model, build_map_model
from choromap.state import InteractionController, MarkerHover, RegionHover
from choromap.view import MapView, render_png

from conftest import make_record


@pytest.fixture
def model(features, records, schema, markers_cfg):
    return assemble_map_model(
        features,
        records,
        schema=schema,
        viewport=(400, 300),
        crs="EPSG:5070",
        markers=markers_cfg,
    )


@pytest.fixture
def view(model, markers_cfg):
    view = MapView(
        model,
        viewport=ViewportConfig(width_px=400, height_px=300, dpi=100),
        style=StyleConfig.default(),
        markers=markers_cfg,
    )
    yield view
    view.close()


def _inside_region_away_from_marker(model, index):
    region = model.regions[index]
    centroid = region.screen_geometry.centroid
    vx, vy = region.screen_geometry.exterior.coords[0]
    return (centroid.x + 0.8 * (vx - centroid.x), centroid.y + 0.8 * (vy - centroid.y))


def test_hit_test_prefers_marker(view, model):
    marker = model.markers[0]
    target = view.hit_test(marker.anchor.x, marker.anchor.y)
    assert target.kind == "marker"
    assert target.marker is marker


def test_hit_test_region_outside_marker(view, model):
    x, y = _inside_region_away_from_marker(model, 1)
    target = view.hit_test(x, y)
    assert target.kind == "region"
    assert target.region.feature.name == "Beta"


def test_hit_test_empty_space(view, model):
    x, y = model.projection.forward(-97.8, 42.3)
    assert view.hit_test(x, y) is None


def test_pointer_enter_and_move_render_separately(view, model):
    controller = InteractionController(view.render)
    view.bind(controller)
    x, y = _inside_region_away_from_marker(model, 1)

    view.handle_pointer(x, y)
    assert view.render_count == 2
    assert controller.state.hover == RegionHover(name="Beta")
    assert controller.state.pointer is not None

    view.handle_pointer(x + 0.5, y)
    assert view.render_count == 3

    marker = model.markers[0]
    view.handle_pointer(marker.anchor.x, marker.anchor.y)
    assert view.render_count == 5
    assert isinstance(controller.state.hover, MarkerHover)
    assert view.tooltip.get_visible()
    assert view.tooltip.get_text().splitlines()[0] == "Alpha"


def test_region_hover_hides_tooltip(view, model):
    controller = InteractionController(view.render)
    view.bind(controller)
    marker = model.markers[0]
    view.handle_pointer(marker.anchor.x, marker.anchor.y)
    x, y = _inside_region_away_from_marker(model, 1)
    view.handle_pointer(x, y)
    assert controller.state.hover == RegionHover(name="Beta")
    assert not view.tooltip.get_visible()


def test_handle_pointer_requires_binding(view):
    with pytest.raises(RuntimeError):
        view.handle_pointer(1.0, 1.0)


def test_render_png_writes_image(config_path: Path, tmp_path: Path):
    cfg = load_config(config_path)
    model, _ = build_map_model(cfg)
    hovered = model.join.records[0]
    from choromap.state import InteractionState

    path = render_png(
        model,
        cfg,
        tmp_path / "out" / "map.png",
        state=InteractionState(hover=MarkerHover(record=hovered.record, anchor=hovered.anchor)),
    )
    assert path.exists()
    assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_off_screen_markers_are_not_drawn(features, records, schema):
    big = MarkersConfig.from_mapping({"radius_scale": 40.0})
    model = assemble_map_model(
        features,
        [*records, make_record(72, "Nowhere", 40_000_000, White=1)],
        schema=schema,
        viewport=(400, 300),
        crs="EPSG:5070",
        markers=big,
    )
    assert model.markers[-1].anchor.is_sentinel
    view = MapView(
        model,
        viewport=ViewportConfig(width_px=400, height_px=300, dpi=100),
        style=StyleConfig.default(),
        markers=big,
    )
    try:
        centers = [tuple(patch.center) for patch in view.ax.patches if isinstance(patch, Circle)]
        assert OFF_SCREEN_SENTINEL not in centers
        assert len(centers) == len(model.markers) - 1 + len(big.tier_colors)
    finally:
        view.close()
