"""matplotlib renderer: region fills, markers, legends and hover tooltip."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from .config import AppConfig, MarkersConfig, StyleConfig, ViewportConfig
from .markers import Marker
from .pipeline import MapModel, RegionView
from .state import InteractionController, InteractionState, pointer_label, tooltip_lines

_LOGGER = logging.getLogger("choromap.view")

_MARKER_ZORDER = 3
_LEGEND_ZORDER = 5
_TOOLTIP_ZORDER = 10


@dataclass(frozen=True, slots=True)
class HitTarget:
    kind: str
    region: RegionView | None = None
    marker: Marker | None = None

    @property
    def key(self) -> tuple[str, int]:
        item = self.marker if self.marker is not None else self.region
        return (self.kind, id(item))


class MapView:
    """One figure bound to a map model.

    `render` only reads the snapshot it is given; it never assumes which hover
    fields are populated.
    """

    def __init__(
        self,
        model: MapModel,
        *,
        viewport: ViewportConfig,
        style: StyleConfig,
        markers: MarkersConfig,
        interactive: bool = False,
    ) -> None:
        self.model = model
        self.viewport = viewport
        self.style = style
        self.markers_cfg = markers
        self.render_count = 0
        self._plt = _require_matplotlib(interactive=interactive)
        self._last_target: tuple[str, int] | None = None
        self._controller: InteractionController | None = None

        width, height = viewport.size
        self.fig = self._plt.figure(
            figsize=(width / viewport.dpi, height / viewport.dpi), dpi=viewport.dpi
        )
        self.ax = self.fig.add_axes((0.0, 0.0, 1.0, 1.0))
        self.ax.set_xlim(0.0, float(width))
        self.ax.set_ylim(float(height), 0.0)
        self.ax.set_axis_off()
        self.fig.patch.set_facecolor(style.background)
        self.ax.set_facecolor(style.background)

        self._draw_regions()
        self._draw_markers()
        self._draw_legends()
        self.tooltip = self.ax.annotate(
            "",
            xy=(0.0, 0.0),
            xytext=(10, -10),
            textcoords="offset points",
            va="top",
            fontsize=style.tooltip_font_size,
            bbox={"boxstyle": "round,pad=0.4", "fc": "white", "ec": "#555555", "alpha": 0.95},
            zorder=_TOOLTIP_ZORDER,
        )
        self.tooltip.set_visible(False)
        self.pointer_text = self.fig.text(
            0.995, 0.005, "", ha="right", va="bottom", fontsize=style.tooltip_font_size
        )

    def render(self, state: InteractionState) -> None:
        self.render_count += 1
        lines = tooltip_lines(state, self.model.schema)
        if lines is None:
            self.tooltip.set_visible(False)
        else:
            hover_anchor = getattr(state.hover, "anchor", None)
            if hover_anchor is not None:
                self.tooltip.xy = hover_anchor.as_tuple()
            self.tooltip.set_text("\n".join(lines))
            self.tooltip.set_visible(True)
        self.pointer_text.set_text(pointer_label(state))
        self.fig.canvas.draw_idle()

    def hit_test(self, x: float, y: float) -> HitTarget | None:
        """Topmost marker under the point, else the first region containing it."""
        for marker in reversed(self.model.markers):
            if marker.anchor.is_sentinel or marker.radius <= 0.0:
                continue
            dx = x - marker.anchor.x
            dy = y - marker.anchor.y
            if dx * dx + dy * dy <= marker.radius * marker.radius:
                return HitTarget(kind="marker", marker=marker)

        point = _require_shapely_point_factory()(x, y)
        for region in self.model.regions:
            geometry = region.screen_geometry
            if geometry is None or geometry.is_empty:
                continue
            if geometry.contains(point):
                return HitTarget(kind="region", region=region)
        return None

    def bind(self, controller: InteractionController) -> None:
        self._controller = controller
        self.fig.canvas.mpl_connect("motion_notify_event", self._on_motion)

    def handle_pointer(self, x: float, y: float) -> None:
        """Apply one pointer move: an enter transition if the target changed, then the pointer update."""
        if self._controller is None:
            raise RuntimeError("MapView is not bound to an interaction controller")
        target = self.hit_test(x, y)
        key = target.key if target is not None else None
        if target is not None and key != self._last_target:
            if target.marker is not None:
                self._controller.enter_marker(target.marker.record)
            elif target.region is not None:
                self._controller.enter_region(target.region.feature.name)
        self._last_target = key
        self._controller.move_pointer(x, y, self.model.projection)

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        self.fig.savefig(path, dpi=self.viewport.dpi, facecolor=self.fig.get_facecolor())
        return path

    def show(self) -> None:
        self._plt.show()

    def close(self) -> None:
        self._plt.close(self.fig)

    def _on_motion(self, event: Any) -> None:
        if event.inaxes is not self.ax or event.xdata is None or event.ydata is None:
            return
        self.handle_pointer(float(event.xdata), float(event.ydata))

    def _draw_regions(self) -> None:
        patches_mod, path_mod = _require_matplotlib_paths()
        for region in self.model.regions:
            rings = _iter_linear_rings(region.screen_geometry)
            if not rings:
                continue
            path = path_mod.Path.make_compound_path(
                *(path_mod.Path(ring, closed=True) for ring in rings if len(ring) >= 3)
            )
            self.ax.add_patch(
                patches_mod.PathPatch(
                    path,
                    facecolor=region.fill_color,
                    edgecolor=self.style.boundary_color,
                    linewidth=self.style.boundary_width,
                    zorder=1,
                )
            )

    def _draw_markers(self) -> None:
        patches_mod, _ = _require_matplotlib_paths()
        for marker in self.model.markers:
            # Off-screen records stay undrawn whatever the radius scale.
            if marker.anchor.is_sentinel:
                continue
            self.ax.add_patch(
                patches_mod.Circle(
                    marker.anchor.as_tuple(),
                    radius=max(marker.radius, 0.0),
                    facecolor=marker.color,
                    edgecolor="none",
                    alpha=self.markers_cfg.alpha,
                    zorder=_MARKER_ZORDER,
                )
            )

    def _draw_legends(self) -> None:
        patches_mod, _ = _require_matplotlib_paths()
        x = 12.0
        y = 12.0
        for label, color in zip(
            _tier_labels(self.markers_cfg.tier_thresholds), self.markers_cfg.tier_colors
        ):
            self.ax.add_patch(
                patches_mod.Circle((x, y), radius=10.0, facecolor=color, zorder=_LEGEND_ZORDER)
            )
            self.ax.text(x + 18.0, y, label, va="center", fontsize=9, zorder=_LEGEND_ZORDER)
            y += 28.0

        y += 8.0
        self.ax.text(0.0, y, "Dominant category", va="center", fontsize=9, zorder=_LEGEND_ZORDER)
        y += 18.0
        for name, color in self.model.category_colors.items():
            self.ax.add_patch(
                patches_mod.Rectangle(
                    (0.0, y - 10.0), 20.0, 20.0, facecolor=color, zorder=_LEGEND_ZORDER
                )
            )
            self.ax.text(28.0, y, name, va="center", fontsize=9, zorder=_LEGEND_ZORDER)
            y += 28.0


def render_png(
    model: MapModel,
    cfg: AppConfig,
    output_path: Path,
    *,
    state: InteractionState | None = None,
) -> Path:
    """Draw the map once (optionally with a given hover state) and save it."""
    view = MapView(model, viewport=cfg.viewport, style=cfg.style, markers=cfg.markers)
    try:
        view.render(state if state is not None else InteractionState())
        path = view.save(output_path)
    finally:
        view.close()
    _LOGGER.info("Map image written to %s", path)
    return path


def show_interactive(model: MapModel, cfg: AppConfig) -> None:
    """Open a window and drive re-rendering from pointer movement until closed."""
    view = MapView(
        model,
        viewport=cfg.viewport,
        style=cfg.style,
        markers=cfg.markers,
        interactive=True,
    )
    controller = InteractionController(view.render)
    view.bind(controller)
    view.render(controller.state)
    view.show()


def _tier_labels(thresholds: Sequence[float]) -> list[str]:
    labels = [f"> {_format_population(value)}" for value in thresholds]
    if thresholds:
        labels.append(f"<= {_format_population(thresholds[-1])}")
    else:
        labels.append("all")
    return labels


def _format_population(value: float) -> str:
    if value >= 1_000_000 and value % 1_000_000 == 0:
        return f"{int(value // 1_000_000)} million"
    return f"{int(value):,}"


def _iter_linear_rings(geometry: Any) -> Sequence[Sequence[tuple[float, float]]]:
    geom_type = getattr(geometry, "geom_type", "")
    if geom_type == "Polygon":
        if geometry.is_empty:
            return []
        exterior = [(float(x), float(y)) for x, y in geometry.exterior.coords]
        rings: list[Sequence[tuple[float, float]]] = [exterior]
        for interior in geometry.interiors:
            rings.append([(float(x), float(y)) for x, y in interior.coords])
        return rings

    if geom_type in ("MultiPolygon", "GeometryCollection"):
        rings = []
        for part in geometry.geoms:
            rings.extend(_iter_linear_rings(part))
        return rings

    return []


def _require_matplotlib(*, interactive: bool) -> Any:
    try:
        import matplotlib

        if not interactive:
            matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return plt


def _require_matplotlib_paths() -> tuple[Any, Any]:
    try:
        import matplotlib.patches as patches
        import matplotlib.path as path
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return (patches, path)


def _require_shapely_point_factory() -> Any:
    try:
        from shapely.geometry import Point
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for hover hit-testing") from exc
    return Point
