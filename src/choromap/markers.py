"""Marker size and size-tier encoding for record totals."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from .errors import ConfigurationError
from .models import Anchor, EnrichedRecord

DEFAULT_TIER_THRESHOLDS: tuple[float, ...] = (10_000_000.0, 1_000_000.0)
DEFAULT_TIER_COLORS: tuple[str, ...] = ("#4682b4", "#E25098", "#990066")
DEFAULT_RADIUS_SCALE = 2.0


@dataclass(frozen=True, slots=True)
class Marker:
    record: EnrichedRecord
    radius: float
    tier: int
    color: str

    @property
    def anchor(self) -> Anchor:
        return self.record.anchor


def marker_radius(total: float, scale: float = DEFAULT_RADIUS_SCALE) -> float:
    """Radius proportional to log10 of the total; zero for non-positive totals.

    Totals below 1 give a negative radius so the scale stays strictly
    increasing; drawing code clamps at zero.
    """
    value = float(total)
    if not math.isfinite(value) or value <= 0.0:
        return 0.0
    return scale * math.log10(value)


def size_tier(total: float, thresholds: Sequence[float] = DEFAULT_TIER_THRESHOLDS) -> int:
    """Index of the first threshold strictly exceeded, else len(thresholds)."""
    _check_thresholds(thresholds)
    value = float(total)
    for tier, threshold in enumerate(thresholds):
        if value > threshold:
            return tier
    return len(thresholds)


def tier_color(tier: int, colors: Sequence[str] = DEFAULT_TIER_COLORS) -> str:
    if not 0 <= tier < len(colors):
        raise ConfigurationError(f"No color configured for size tier {tier}")
    return colors[tier]


def build_markers(
    records: Sequence[EnrichedRecord],
    *,
    radius_scale: float = DEFAULT_RADIUS_SCALE,
    thresholds: Sequence[float] = DEFAULT_TIER_THRESHOLDS,
    colors: Sequence[str] = DEFAULT_TIER_COLORS,
) -> tuple[Marker, ...]:
    _check_thresholds(thresholds)
    if len(colors) != len(thresholds) + 1:
        raise ConfigurationError("Need exactly one more tier color than tier thresholds")
    out: list[Marker] = []
    for enriched in records:
        tier = size_tier(enriched.total, thresholds)
        out.append(
            Marker(
                record=enriched,
                radius=marker_radius(enriched.total, radius_scale),
                tier=tier,
                color=tier_color(tier, colors),
            )
        )
    return tuple(out)


def _check_thresholds(thresholds: Sequence[float]) -> None:
    if any(left <= right for left, right in zip(thresholds, thresholds[1:])):
        raise ConfigurationError(f"Tier thresholds must be strictly decreasing: {list(thresholds)}")
