"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .errors import ConfigurationError
from .models import CategorySchema


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"Expected integer for '{field_name}'")
    return value


def _positive_int(value: Any, field_name: str) -> int:
    number = _int(value, field_name)
    if number <= 0:
        raise ConfigurationError(f"Expected positive integer for '{field_name}'")
    return number


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"Expected float for '{field_name}'")
    if isinstance(value, (int, float)):
        return float(value)
    raise ConfigurationError(f"Expected float for '{field_name}'")


def _float_list(value: Any, field_name: str) -> tuple[float, ...]:
    if not isinstance(value, list):
        raise ConfigurationError(f"Expected list for '{field_name}'")
    return tuple(_float(item, f"{field_name}[{idx}]") for idx, item in enumerate(value))


def _str_list(value: Any, field_name: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ConfigurationError(f"Expected list for '{field_name}'")
    out: list[str] = []
    for idx, item in enumerate(value):
        out.append(_str(item, f"{field_name}[{idx}]"))
    return tuple(out)


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class PathsConfig:
    geometry: Path
    records: Path
    output_png: Path
    reports_dir: Path
    logs_dir: Path

    @property
    def required_input_files(self) -> tuple[Path, ...]:
        return (self.geometry, self.records)

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (self.output_png.parent, self.reports_dir, self.logs_dir)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            geometry=_path_from_cfg(raw.get("geometry"), "paths.geometry", root_dir),
            records=_path_from_cfg(raw.get("records"), "paths.records", root_dir),
            output_png=_path_from_cfg(raw.get("output_png"), "paths.output_png", root_dir),
            reports_dir=_path_from_cfg(raw.get("reports_dir"), "paths.reports_dir", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class ViewportConfig:
    width_px: int
    height_px: int
    dpi: int

    @property
    def size(self) -> tuple[int, int]:
        return (self.width_px, self.height_px)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ViewportConfig:
        return cls(
            width_px=_positive_int(raw.get("width_px"), "viewport.width_px"),
            height_px=_positive_int(raw.get("height_px"), "viewport.height_px"),
            dpi=_positive_int(raw.get("dpi", 100), "viewport.dpi"),
        )


@dataclass(frozen=True, slots=True)
class ProjectionConfig:
    crs: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProjectionConfig:
        return cls(crs=_str(raw.get("crs", "EPSG:5070"), "projection.crs"))


@dataclass(frozen=True, slots=True)
class MarkersConfig:
    radius_scale: float
    tier_thresholds: tuple[float, ...]
    tier_colors: tuple[str, ...]
    alpha: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> MarkersConfig:
        thresholds = _float_list(
            raw.get("tier_thresholds", [10_000_000, 1_000_000]), "markers.tier_thresholds"
        )
        colors = _str_list(
            raw.get("tier_colors", ["#4682b4", "#E25098", "#990066"]), "markers.tier_colors"
        )
        if any(left <= right for left, right in zip(thresholds, thresholds[1:])):
            raise ConfigurationError("markers.tier_thresholds must be strictly decreasing")
        if len(colors) != len(thresholds) + 1:
            raise ConfigurationError(
                "markers.tier_colors must have exactly one more entry than markers.tier_thresholds"
            )
        alpha = _float(raw.get("alpha", 0.7), "markers.alpha")
        if not 0.0 <= alpha <= 1.0:
            raise ConfigurationError("markers.alpha must be between 0 and 1")
        return cls(
            radius_scale=_float(raw.get("radius_scale", 2.0), "markers.radius_scale"),
            tier_thresholds=thresholds,
            tier_colors=colors,
            alpha=alpha,
        )


@dataclass(frozen=True, slots=True)
class StyleConfig:
    palette: str
    neutral_fill: str
    boundary_color: str
    boundary_width: float
    background: str
    tooltip_font_size: int

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> StyleConfig:
        return cls(
            palette=_str(raw.get("palette", "Pastel1"), "style.palette"),
            neutral_fill=_str(raw.get("neutral_fill", "#eeeeee"), "style.neutral_fill"),
            boundary_color=_str(raw.get("boundary_color", "#ffffff"), "style.boundary_color"),
            boundary_width=_float(raw.get("boundary_width", 0.6), "style.boundary_width"),
            background=_str(raw.get("background", "white"), "style.background"),
            tooltip_font_size=_positive_int(
                raw.get("tooltip_font_size", 9), "style.tooltip_font_size"
            ),
        )

    @classmethod
    def default(cls) -> StyleConfig:
        return cls.from_mapping({})


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    paths: PathsConfig
    viewport: ViewportConfig
    projection: ProjectionConfig
    schema: CategorySchema
    markers: MarkersConfig
    style: StyleConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        return cls(
            source_path=source_path.resolve(),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            viewport=ViewportConfig.from_mapping(_mapping(raw.get("viewport"), "viewport")),
            projection=ProjectionConfig.from_mapping(
                _mapping(raw.get("projection", {}), "projection")
            ),
            schema=CategorySchema.from_mapping(_mapping(raw.get("schema"), "schema")),
            markers=MarkersConfig.from_mapping(_mapping(raw.get("markers", {}), "markers")),
            style=StyleConfig.from_mapping(_mapping(raw.get("style", {}), "style")),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
