from __future__ import annotations

import pytest

from choromap.errors import ConfigurationError
from choromap.markers import build_markers, marker_radius, size_tier, tier_color
from choromap.models import Anchor, EnrichedRecord

from conftest import make_record


@pytest.mark.parametrize(
    ("total", "tier"),
    [
        (15_000_000, 0),
        (10_000_001, 0),
        (10_000_000, 1),
        (5_000_000, 1),
        (1_000_000, 2),
        (50_000, 2),
        (0, 2),
    ],
)
def test_size_tier_uses_strict_thresholds(total, tier):
    assert size_tier(total) == tier


def test_radius_is_scaled_log10():
    assert marker_radius(1_000_000) == pytest.approx(12.0)
    assert marker_radius(1_000, scale=3.0) == pytest.approx(9.0)


@pytest.mark.parametrize(("t1", "t2"), [(0.5, 0.9), (1, 2), (999, 1_000), (5_000_000, 15_000_000)])
def test_radius_is_strictly_increasing(t1, t2):
    assert marker_radius(t1) < marker_radius(t2)


@pytest.mark.parametrize("total", [0, -5, float("nan"), float("inf")])
def test_radius_for_unusable_totals_is_zero(total):
    assert marker_radius(total) == 0.0


def test_tier_color_defaults():
    assert [tier_color(tier) for tier in range(3)] == ["#4682b4", "#E25098", "#990066"]
    with pytest.raises(ConfigurationError):
        tier_color(3)


def test_thresholds_must_decrease():
    with pytest.raises(ConfigurationError):
        size_tier(5, thresholds=(1_000_000, 10_000_000))


def test_build_markers_keeps_record_order():
    records = [
        EnrichedRecord(record=make_record(1, "A", 15_000_000), anchor=Anchor(10.0, 20.0)),
        EnrichedRecord(record=make_record(2, "B", 50_000), anchor=Anchor.sentinel()),
    ]
    markers = build_markers(records)
    assert [marker.tier for marker in markers] == [0, 2]
    assert [marker.color for marker in markers] == ["#4682b4", "#990066"]
    assert markers[1].anchor.is_sentinel
    assert markers[0].radius > markers[1].radius
