"""Load, project, join and classify into a renderable map model."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from .classify import category_colors, classify_features, require_categories
from .config import AppConfig, MarkersConfig
from .errors import ConfigurationError, LoadError
from .join import JoinResult, join
from .markers import Marker, build_markers
from .models import CategorySchema, DemographicRecord, RegionFeature
from .projection import ProjectionHandle, fit
from .sources import GeometrySource, RecordSource, load_sources
from .util import format_id_list

_LOGGER = logging.getLogger("choromap.pipeline")


@dataclass(frozen=True, slots=True)
class RegionView:
    feature: RegionFeature
    screen_geometry: Any
    category: str | None
    fill_color: str


@dataclass(frozen=True, slots=True)
class MapModel:
    """Everything the renderer needs, computed once at load time."""

    projection: ProjectionHandle
    schema: CategorySchema
    regions: tuple[RegionView, ...]
    markers: tuple[Marker, ...]
    join: JoinResult
    category_colors: Mapping[str, str]
    neutral_fill: str


@dataclass(slots=True)
class MapBuildReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "infos": list(self.infos),
            "summary": dict(self.summary),
        }


def assemble_map_model(
    features: Sequence[RegionFeature],
    records: Sequence[DemographicRecord],
    *,
    schema: CategorySchema,
    viewport: tuple[float, float],
    crs: str,
    markers: MarkersConfig,
    palette: str = "Pastel1",
    neutral_fill: str = "#eeeeee",
) -> MapModel:
    """Fit, join, classify and size markers for already loaded data."""
    require_categories(schema)
    projection = fit([feature.geometry for feature in features], viewport, crs=crs)
    join_result = join(features, records, projection)
    categories = classify_features(features, join_result, schema)
    colors = category_colors(schema, palette)

    regions = tuple(
        RegionView(
            feature=feature,
            screen_geometry=projection.project_geometry(feature.geometry),
            category=category,
            fill_color=neutral_fill if category is None else colors[category],
        )
        for feature, category in zip(features, categories)
    )
    return MapModel(
        projection=projection,
        schema=schema,
        regions=regions,
        markers=build_markers(
            join_result.records,
            radius_scale=markers.radius_scale,
            thresholds=markers.tier_thresholds,
            colors=markers.tier_colors,
        ),
        join=join_result,
        category_colors=colors,
        neutral_fill=neutral_fill,
    )


def build_map_model(cfg: AppConfig) -> tuple[MapModel | None, MapBuildReport]:
    """Run the load-time pipeline. Any load or config failure yields no model."""
    report = MapBuildReport()
    started = time.perf_counter()
    try:
        features, records = load_sources(
            GeometrySource(cfg.paths.geometry, cfg.schema),
            RecordSource(cfg.paths.records, cfg.schema),
        )
    except LoadError as exc:
        report.add_error(f"Load failed: {exc}")
        return None, report
    report.add_info(f"Loaded {len(features)} region features from {cfg.paths.geometry}")
    report.add_info(f"Loaded {len(records)} demographic records from {cfg.paths.records}")

    try:
        model = assemble_map_model(
            features,
            records,
            schema=cfg.schema,
            viewport=cfg.viewport.size,
            crs=cfg.projection.crs,
            markers=cfg.markers,
            palette=cfg.style.palette,
            neutral_fill=cfg.style.neutral_fill,
        )
    except ConfigurationError as exc:
        report.add_error(f"Configuration error: {exc}")
        return None, report

    for warning in model.join.warnings:
        report.add_warning(str(warning))
    if model.join.duplicate_region_ids:
        report.add_warning(
            "Duplicate region identifiers (first feature used): "
            + format_id_list(model.join.duplicate_region_ids)
        )
    report.summary = model.join.summary()
    report.summary["regions_classified"] = sum(
        1 for region in model.regions if region.category is not None
    )
    elapsed = time.perf_counter() - started
    report.add_info(
        "Map model summary: "
        + ", ".join(f"{key}={value}" for key, value in report.summary.items())
        + f" ({elapsed:.2f}s)"
    )
    _LOGGER.debug("Built map model in %.3fs", elapsed)
    return model, report


def format_report_lines(report: MapBuildReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Map model built with no errors.")
    return lines
