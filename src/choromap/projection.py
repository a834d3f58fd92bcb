"""Geographic to screen projection fitted to a geometry collection."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Sequence

from .errors import ConfigurationError

_LOGGER = logging.getLogger("choromap.projection")

DEFAULT_CRS = "EPSG:5070"
_GEOGRAPHIC_CRS = "EPSG:4326"


@dataclass(frozen=True, slots=True)
class ProjectionHandle:
    """CRS projection followed by a uniform scale and translation.

    Screen `y` grows downward. `forward` and `inverse` are exact inverses of
    each other up to floating-point error.
    """

    crs: str
    scale: float
    translate_x: float
    translate_y: float
    viewport: tuple[float, float]

    def forward(self, lon: float, lat: float) -> tuple[float, float]:
        to_crs, _ = _transformer_pair(self.crs)
        px, py = to_crs.transform(float(lon), float(lat))
        return (
            self.translate_x + self.scale * float(px),
            self.translate_y - self.scale * float(py),
        )

    def inverse(self, x: float, y: float) -> tuple[float, float]:
        _, to_geo = _transformer_pair(self.crs)
        px = (float(x) - self.translate_x) / self.scale
        py = (self.translate_y - float(y)) / self.scale
        lon, lat = to_geo.transform(px, py)
        return (float(lon), float(lat))

    def project_geometry(self, geometry: Any) -> Any:
        """Map a lon/lat shapely geometry into screen space."""
        if not _is_valid_geometry(geometry):
            return geometry
        shapely_transform = _require_shapely_transform()
        return shapely_transform(self._screen_coords, geometry)

    def _screen_coords(self, xs: Any, ys: Any, zs: Any = None) -> tuple[Any, ...]:
        np = _require_numpy()
        to_crs, _ = _transformer_pair(self.crs)
        px, py = to_crs.transform(np.asarray(xs, dtype=float), np.asarray(ys, dtype=float))
        sx = self.translate_x + self.scale * np.asarray(px, dtype=float)
        sy = self.translate_y - self.scale * np.asarray(py, dtype=float)
        if zs is None:
            return (sx, sy)
        return (sx, sy, zs)


def fit(
    geometries: Sequence[Any],
    viewport: tuple[float, float],
    *,
    crs: str = DEFAULT_CRS,
) -> ProjectionHandle:
    """Fit a projection so the whole collection fills the viewport, centered."""
    width, height = (float(viewport[0]), float(viewport[1]))
    if not (width > 0.0 and height > 0.0):
        raise ConfigurationError(f"Viewport must have positive size, got {viewport!r}")
    if not geometries:
        raise ConfigurationError("Cannot fit a projection to an empty geometry collection")
    usable = [geometry for geometry in geometries if _is_valid_geometry(geometry)]
    if not usable:
        raise ConfigurationError("Cannot fit a projection: every geometry is empty")

    try:
        to_crs, _ = _transformer_pair(crs)
    except Exception as exc:
        raise ConfigurationError(f"Unusable projection CRS '{crs}': {exc}") from exc
    shapely_transform = _require_shapely_transform()

    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    for geometry in usable:
        projected = shapely_transform(to_crs.transform, geometry)
        bounds = [float(item) for item in projected.bounds]
        if not all(math.isfinite(value) for value in bounds):
            _LOGGER.warning("Ignoring geometry with non-finite projected bounds in %s", crs)
            continue
        min_x = min(min_x, bounds[0])
        min_y = min(min_y, bounds[1])
        max_x = max(max_x, bounds[2])
        max_y = max(max_y, bounds[3])
    if not math.isfinite(min_x):
        raise ConfigurationError(f"No geometry has a finite extent in {crs}")

    span_x = max_x - min_x
    span_y = max_y - min_y
    candidates = [width / span_x if span_x > 0.0 else math.inf]
    candidates.append(height / span_y if span_y > 0.0 else math.inf)
    scale = min(candidates)
    if not math.isfinite(scale):
        raise ConfigurationError("Cannot fit a projection to a zero-size extent")

    translate_x = width / 2.0 - scale * (min_x + max_x) / 2.0
    translate_y = height / 2.0 + scale * (min_y + max_y) / 2.0
    _LOGGER.debug(
        "Fitted %s to %gx%g: scale=%g translate=(%g, %g)",
        crs,
        width,
        height,
        scale,
        translate_x,
        translate_y,
    )
    return ProjectionHandle(
        crs=crs,
        scale=scale,
        translate_x=translate_x,
        translate_y=translate_y,
        viewport=(width, height),
    )


def _is_valid_geometry(geometry: Any) -> bool:
    if geometry is None:
        return False
    if hasattr(geometry, "is_empty") and bool(geometry.is_empty):
        return False
    return True


@lru_cache(maxsize=8)
def _transformer_pair(crs: str) -> tuple[Any, Any]:
    try:
        from pyproj import Transformer
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("pyproj is required for map projection") from exc
    return (
        Transformer.from_crs(_GEOGRAPHIC_CRS, crs, always_xy=True),
        Transformer.from_crs(crs, _GEOGRAPHIC_CRS, always_xy=True),
    )


def _require_shapely_transform() -> Any:
    try:
        from shapely.ops import transform
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for geometry projection") from exc
    return transform


def _require_numpy() -> Any:
    try:
        import numpy as np
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("numpy is required for geometry projection") from exc
    return np
