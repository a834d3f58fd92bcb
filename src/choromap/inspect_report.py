"""JSON inspection report for the record/region join."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .classify import classify
from .pipeline import MapBuildReport, MapModel
from .util import write_json


def build_join_report(model: MapModel, build_report: MapBuildReport) -> dict[str, Any]:
    """Per-record anchors and tiers plus per-region fill categories."""
    records: list[dict[str, Any]] = []
    for marker in model.markers:
        enriched = marker.record
        records.append(
            {
                "region_id": enriched.region_id,
                "name": enriched.name,
                "total": enriched.total,
                "anchor": [enriched.anchor.x, enriched.anchor.y],
                "off_screen": enriched.anchor.is_sentinel,
                "region_index": enriched.region_index,
                "radius": marker.radius,
                "size_tier": marker.tier,
                "dominant_category": classify(enriched.record, model.schema),
            }
        )

    regions = [
        {
            "region_id": region.feature.region_id,
            "name": region.feature.name,
            "dominant_category": region.category,
            "fill": region.fill_color,
        }
        for region in model.regions
    ]
    return {
        "build": build_report.to_dict(),
        "projection": {
            "crs": model.projection.crs,
            "scale": model.projection.scale,
            "translate": [model.projection.translate_x, model.projection.translate_y],
            "viewport": list(model.projection.viewport),
        },
        "join": {
            "unmatched_records": list(model.join.unmatched_records),
            "degenerate_records": list(model.join.degenerate_records),
            "unmatched_features": list(model.join.unmatched_features),
            "duplicate_region_ids": list(model.join.duplicate_region_ids),
        },
        "category_colors": dict(model.category_colors),
        "records": records,
        "regions": regions,
    }


def write_join_report(model: MapModel, build_report: MapBuildReport, path: Path) -> Path:
    write_json(path, build_join_report(model, build_report))
    return path
