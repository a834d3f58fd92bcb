"""Record to region join and marker anchor computation."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Sequence

from .errors import UnmatchedRecordWarning
from .models import Anchor, DemographicRecord, EnrichedRecord, RegionFeature, RegionId
from .projection import ProjectionHandle
from .util import format_id_list

_LOGGER = logging.getLogger("choromap.join")


@dataclass(frozen=True, slots=True)
class JoinResult:
    """Enriched records in input order plus join diagnostics."""

    records: tuple[EnrichedRecord, ...]
    unmatched_records: tuple[RegionId, ...] = ()
    degenerate_records: tuple[RegionId, ...] = ()
    unmatched_features: tuple[RegionId, ...] = ()
    duplicate_region_ids: tuple[RegionId, ...] = ()
    warnings: tuple[UnmatchedRecordWarning, ...] = field(default=(), compare=False)

    def record_for(self, region_id: RegionId) -> EnrichedRecord | None:
        """First enriched record carrying `region_id`."""
        for enriched in self.records:
            if enriched.region_id == region_id:
                return enriched
        return None

    def index_by_region_id(self) -> dict[RegionId, EnrichedRecord]:
        index: dict[RegionId, EnrichedRecord] = {}
        for enriched in self.records:
            index.setdefault(enriched.region_id, enriched)
        return index

    def summary(self) -> dict[str, int]:
        return {
            "records": len(self.records),
            "anchored": sum(1 for item in self.records if not item.anchor.is_sentinel),
            "unmatched_records": len(self.unmatched_records),
            "degenerate_records": len(self.degenerate_records),
            "unmatched_features": len(self.unmatched_features),
            "duplicate_region_ids": len(self.duplicate_region_ids),
        }


def index_features(features: Sequence[RegionFeature]) -> tuple[dict[RegionId, int], list[RegionId]]:
    """Map each identifier to the position of its first feature.

    Returns the index and the identifiers seen more than once, in first
    duplicate-occurrence order.
    """
    index: dict[RegionId, int] = {}
    duplicates: list[RegionId] = []
    for position, feature in enumerate(features):
        if feature.region_id in index:
            if feature.region_id not in duplicates:
                duplicates.append(feature.region_id)
            continue
        index[feature.region_id] = position
    return index, duplicates


def join(
    features: Sequence[RegionFeature],
    records: Sequence[DemographicRecord],
    projection: ProjectionHandle,
) -> JoinResult:
    """Attach a screen anchor to every record.

    Unmatched records and regions whose projected centroid is not finite get
    the off-screen sentinel anchor. Input records are left untouched.
    """
    index, duplicates = index_features(features)
    if duplicates:
        _LOGGER.warning(
            "Duplicate region identifiers, first feature wins: %s",
            format_id_list(duplicates),
        )

    warnings: list[UnmatchedRecordWarning] = []
    enriched: list[EnrichedRecord] = []
    unmatched: list[RegionId] = []
    degenerate: list[RegionId] = []
    centroids: dict[int, tuple[float, float] | None] = {}
    matched_ids: set[RegionId] = set()

    for record in records:
        position = index.get(record.region_id)
        if position is None:
            unmatched.append(record.region_id)
            enriched.append(EnrichedRecord(record=record, anchor=Anchor.sentinel()))
            continue

        matched_ids.add(record.region_id)
        if position not in centroids:
            centroids[position] = _projected_centroid(features[position].geometry, projection)
        centroid = centroids[position]
        if centroid is None:
            degenerate.append(record.region_id)
            anchor = Anchor.sentinel()
        else:
            anchor = Anchor(x=centroid[0], y=centroid[1])
        enriched.append(EnrichedRecord(record=record, anchor=anchor, region_index=position))

    unmatched_features = [
        feature.region_id
        for position, feature in enumerate(features)
        if index.get(feature.region_id) == position and feature.region_id not in matched_ids
    ]

    if unmatched:
        warnings.append(
            UnmatchedRecordWarning(
                f"{len(unmatched)} records match no region feature: {format_id_list(unmatched)}"
            )
        )
    if degenerate:
        warnings.append(
            UnmatchedRecordWarning(
                f"{len(degenerate)} records matched a region without a finite centroid: "
                f"{format_id_list(degenerate)}"
            )
        )
    if unmatched_features:
        warnings.append(
            UnmatchedRecordWarning(
                f"{len(unmatched_features)} region features have no record: "
                f"{format_id_list(unmatched_features)}"
            )
        )
    for warning in warnings:
        _LOGGER.warning("%s", warning)

    return JoinResult(
        records=tuple(enriched),
        unmatched_records=tuple(unmatched),
        degenerate_records=tuple(degenerate),
        unmatched_features=tuple(unmatched_features),
        duplicate_region_ids=tuple(duplicates),
        warnings=tuple(warnings),
    )


def _projected_centroid(geometry: Any, projection: ProjectionHandle) -> tuple[float, float] | None:
    projected = projection.project_geometry(geometry)
    if projected is None or bool(getattr(projected, "is_empty", True)):
        return None
    # Zero-area regions have no planar centroid.
    if not float(projected.area) > 0.0:
        return None
    centroid = projected.centroid
    if centroid.is_empty:
        return None
    x, y = float(centroid.x), float(centroid.y)
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return (x, y)

