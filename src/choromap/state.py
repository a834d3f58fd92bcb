"""Hover/pointer interaction state and its transitions."""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Callable

from .models import Anchor, CategorySchema, DemographicRecord, EnrichedRecord
from .projection import ProjectionHandle

_LOGGER = logging.getLogger("choromap.state")


@dataclass(frozen=True, slots=True)
class GeoPoint:
    lon: float
    lat: float


@dataclass(frozen=True, slots=True)
class NoHover:
    pass


@dataclass(frozen=True, slots=True)
class RegionHover:
    name: str


@dataclass(frozen=True, slots=True)
class MarkerHover:
    record: DemographicRecord
    anchor: Anchor


HoverTarget = NoHover | RegionHover | MarkerHover

NO_HOVER = NoHover()


@dataclass(frozen=True, slots=True)
class InteractionState:
    """Immutable snapshot: what is hovered plus the last pointer position."""

    hover: HoverTarget = NO_HOVER
    pointer: GeoPoint | None = None


RenderCallback = Callable[[InteractionState], None]


class InteractionController:
    """Single writer of the interaction state.

    Every transition swaps in a new snapshot and then calls `render` exactly
    once with it. There is no leave transition, so the last hover target
    stays until another one replaces it.
    """

    def __init__(self, render: RenderCallback, initial: InteractionState | None = None) -> None:
        self._render = render
        self._state = initial if initial is not None else InteractionState()
        self._lock = threading.Lock()

    @property
    def state(self) -> InteractionState:
        with self._lock:
            return self._state

    def enter_region(self, name: str) -> InteractionState:
        with self._lock:
            new_state = InteractionState(hover=RegionHover(name=name), pointer=self._state.pointer)
            self._state = new_state
        return self._emit(new_state)

    def enter_marker(self, enriched: EnrichedRecord) -> InteractionState:
        hover = MarkerHover(record=enriched.record, anchor=enriched.anchor)
        with self._lock:
            new_state = InteractionState(hover=hover, pointer=self._state.pointer)
            self._state = new_state
        return self._emit(new_state)

    def move_pointer(self, x: float, y: float, projection: ProjectionHandle) -> InteractionState:
        lon, lat = projection.inverse(x, y)
        pointer = GeoPoint(lon=lon, lat=lat) if math.isfinite(lon) and math.isfinite(lat) else None
        with self._lock:
            new_state = InteractionState(hover=self._state.hover, pointer=pointer)
            self._state = new_state
        return self._emit(new_state)

    def _emit(self, snapshot: InteractionState) -> InteractionState:
        _LOGGER.debug("Interaction state -> %s", snapshot)
        self._render(snapshot)
        return snapshot


def tooltip_lines(state: InteractionState, schema: CategorySchema) -> list[str] | None:
    """Detail text for a hovered marker; None for any other hover target."""
    hover = state.hover
    if not isinstance(hover, MarkerHover):
        return None
    record = hover.record
    lines = [record.name]
    for name in schema.category_names:
        lines.append(f"{name}: {_format_count(record.count(name))}")
    return lines


def pointer_label(state: InteractionState) -> str:
    if state.pointer is None:
        return ""
    return f"lon {state.pointer.lon:.4f}, lat {state.pointer.lat:.4f}"


def _format_count(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"
