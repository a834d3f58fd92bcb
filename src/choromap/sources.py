"""Geometry and demographic record loading."""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Iterable, Sequence

from .errors import LoadError
from .models import CategorySchema, DemographicRecord, RegionFeature, normalize_region_id

_LOGGER = logging.getLogger("choromap.sources")

_GEOGRAPHIC_EPSG = 4326


def _first_existing_column(columns: Iterable[str], candidates: Sequence[str]) -> str | None:
    existing = {str(col).lower(): str(col) for col in columns}
    for candidate in candidates:
        match = existing.get(candidate.lower())
        if match:
            return match
    return None


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


class GeometrySource:
    """Region polygons read from any vector file geopandas understands."""

    def __init__(self, path: Path, schema: CategorySchema) -> None:
        self.path = path
        self.schema = schema

    def load(self) -> list[RegionFeature]:
        if not self.path.exists():
            raise LoadError(f"Geometry file not found: {self.path}")
        gpd = _require_geopandas()
        try:
            frame = gpd.read_file(self.path)
        except Exception as exc:
            raise LoadError(f"Failed reading geometry file '{self.path}': {exc}") from exc
        features = features_from_frame(frame, self.schema)
        _LOGGER.info("Loaded %d region features from %s", len(features), self.path)
        return features


class RecordSource:
    """Demographic rows read from CSV with numeric type inference."""

    def __init__(self, path: Path, schema: CategorySchema) -> None:
        self.path = path
        self.schema = schema

    def load(self) -> list[DemographicRecord]:
        if not self.path.exists():
            raise LoadError(f"Record file not found: {self.path}")
        pd = _require_pandas()
        try:
            frame = pd.read_csv(self.path, dtype=self._identifier_dtypes(pd))
        except Exception as exc:
            raise LoadError(f"Failed reading record file '{self.path}': {exc}") from exc
        records = records_from_frame(frame, self.schema)
        _LOGGER.info("Loaded %d demographic records from %s", len(records), self.path)
        return records

    def _identifier_dtypes(self, pd: Any) -> dict[str, Any] | None:
        # Text identifiers keep leading zeros only if pandas never parses them.
        if self.schema.id_mode != "text":
            return None
        header = pd.read_csv(self.path, nrows=0).columns
        id_col = _first_existing_column(header, [self.schema.id_column])
        return None if id_col is None else {id_col: str}


def features_from_frame(frame: Any, schema: CategorySchema) -> list[RegionFeature]:
    """Convert a GeoDataFrame into region features, in row order."""
    id_col = _first_existing_column(frame.columns, [schema.feature_id_property])
    name_col = _first_existing_column(frame.columns, [schema.feature_name_property])
    if id_col is None or name_col is None:
        cols = ", ".join(str(c) for c in frame.columns)
        raise LoadError(
            "Geometry is missing required properties "
            f"'{schema.feature_id_property}'/'{schema.feature_name_property}'. "
            f"Available columns: {cols}"
        )

    crs = getattr(frame, "crs", None)
    if crs is not None and crs.to_epsg() != _GEOGRAPHIC_EPSG:
        frame = frame.to_crs(epsg=_GEOGRAPHIC_EPSG)

    features: list[RegionFeature] = []
    skipped = 0
    for position, (raw_id, raw_name, geometry) in enumerate(
        zip(frame[id_col], frame[name_col], frame.geometry)
    ):
        try:
            region_id = normalize_region_id(raw_id, schema.id_mode)
        except ValueError as exc:
            skipped += 1
            _LOGGER.warning("Skipping geometry feature #%d: %s", position, exc)
            continue
        name = "" if _is_missing(raw_name) else str(raw_name).strip()
        features.append(RegionFeature(region_id=region_id, name=name, geometry=geometry))
    if skipped:
        _LOGGER.warning("Skipped %d geometry features with unusable identifiers", skipped)
    return features


def records_from_frame(frame: Any, schema: CategorySchema) -> list[DemographicRecord]:
    """Convert a DataFrame into demographic records, skipping unusable rows.

    Column names match the schema case-insensitively, like geometry properties.
    """
    renames: dict[str, str] = {}
    missing: list[str] = []
    for column in schema.required_columns:
        found = _first_existing_column(frame.columns, [column])
        if found is None:
            missing.append(column)
        elif found != column:
            renames[found] = column
    if missing:
        cols = ", ".join(str(c) for c in frame.columns)
        raise LoadError(
            f"Record data is missing required columns: {', '.join(missing)}. "
            f"Available columns: {cols}"
        )

    if renames:
        frame = frame.rename(columns=renames)

    records: list[DemographicRecord] = []
    skipped = 0
    for position, row in enumerate(frame.to_dict(orient="records")):
        if _is_missing(row.get(schema.name_column)):
            row[schema.name_column] = None
        try:
            records.append(DemographicRecord.from_row(row, schema))
        except ValueError as exc:
            skipped += 1
            _LOGGER.warning("Skipping record row #%d: %s", position, exc)
    if skipped:
        _LOGGER.warning("Skipped %d record rows with unusable values", skipped)
    return records


def load_sources(
    geometry: GeometrySource,
    records: RecordSource,
) -> tuple[list[RegionFeature], list[DemographicRecord]]:
    """Load both sources concurrently and return only once both have finished.

    The first failure is re-raised after both loads complete; nothing is
    returned in that case.
    """
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="choromap-load") as pool:
        geometry_future = pool.submit(geometry.load)
        records_future = pool.submit(records.load)
        geometry_exc = geometry_future.exception()
        records_exc = records_future.exception()
    for exc in (geometry_exc, records_exc):
        if exc is None:
            continue
        if isinstance(exc, LoadError):
            raise exc
        raise LoadError(f"Data source failed to load: {exc}") from exc
    return geometry_future.result(), records_future.result()


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for geometry loading") from exc
    return gpd


def _require_pandas() -> Any:
    try:
        import pandas as pd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("pandas is required for record loading") from exc
    return pd
