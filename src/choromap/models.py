"""Domain models shared across pipeline modules."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import ConfigurationError

RegionId = int | str

# Far above and left of any viewport whose origin is the top-left corner.
OFF_SCREEN_SENTINEL: tuple[float, float] = (-100.0, -100.0)

ID_MODES = ("numeric", "text")


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def normalize_region_id(value: Any, mode: str) -> RegionId:
    """Canonical identifier used on both sides of the join."""
    if value is None:
        raise ValueError("Missing region identifier")
    if isinstance(value, float) and math.isnan(value):
        raise ValueError("Missing region identifier")
    if mode == "text":
        text = str(value).strip()
        if not text:
            raise ValueError("Empty region identifier")
        return text
    if mode == "numeric":
        if isinstance(value, bool):
            raise ValueError(f"Invalid numeric region identifier: {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(f"Invalid numeric region identifier: {value!r}")
            return int(value)
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            raise ValueError(f"Invalid numeric region identifier: {value!r}") from None
    raise ConfigurationError(f"Unknown id mode '{mode}', expected one of: {', '.join(ID_MODES)}")


def _to_count(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Expected numeric value for '{field_name}'")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Expected numeric value for '{field_name}', got {value!r}") from None
    if not math.isfinite(number):
        raise ValueError(f"Expected finite value for '{field_name}', got {value!r}")
    return number


@dataclass(frozen=True, slots=True)
class CategoryField:
    """One named category and the record column it is read from."""

    name: str
    column: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CategoryField:
        return cls(
            name=_require_str(data.get("name"), "schema.categories[].name"),
            column=_require_str(data.get("column"), "schema.categories[].column"),
        )


@dataclass(frozen=True, slots=True)
class CategorySchema:
    """Statically declared record layout and category ordering.

    The order of `categories` is the classifier's tie-break order.
    """

    categories: tuple[CategoryField, ...]
    id_column: str = "geoid"
    name_column: str = "name"
    total_column: str = "total"
    feature_id_property: str = "GEOID"
    feature_name_property: str = "NAME"
    id_mode: str = "numeric"

    def __post_init__(self) -> None:
        names = [category.name for category in self.categories]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate category names in schema: {names}")
        if self.id_mode not in ID_MODES:
            raise ConfigurationError(
                f"schema.id_mode must be one of: {', '.join(ID_MODES)}"
            )

    @property
    def category_names(self) -> tuple[str, ...]:
        return tuple(category.name for category in self.categories)

    @property
    def required_columns(self) -> tuple[str, ...]:
        return (
            self.id_column,
            self.name_column,
            self.total_column,
            *(category.column for category in self.categories),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CategorySchema:
        raw_categories = data.get("categories")
        if not isinstance(raw_categories, list):
            raise ConfigurationError("Expected list for 'schema.categories'")
        categories: list[CategoryField] = []
        for idx, item in enumerate(raw_categories):
            if not isinstance(item, Mapping):
                raise ConfigurationError(f"Expected mapping for 'schema.categories[{idx}]'")
            categories.append(CategoryField.from_mapping(item))
        return cls(
            categories=tuple(categories),
            id_column=_require_str(data.get("id_column", "geoid"), "schema.id_column"),
            name_column=_require_str(data.get("name_column", "name"), "schema.name_column"),
            total_column=_require_str(data.get("total_column", "total"), "schema.total_column"),
            feature_id_property=_require_str(
                data.get("feature_id_property", "GEOID"), "schema.feature_id_property"
            ),
            feature_name_property=_require_str(
                data.get("feature_name_property", "NAME"), "schema.feature_name_property"
            ),
            id_mode=_require_str(data.get("id_mode", "numeric"), "schema.id_mode").casefold(),
        )


@dataclass(frozen=True, slots=True)
class RegionFeature:
    """One administrative boundary polygon in lon/lat."""

    region_id: RegionId
    name: str
    geometry: Any


@dataclass(frozen=True, slots=True)
class DemographicRecord:
    """Per-region category counts, in schema category order."""

    region_id: RegionId
    name: str
    counts: tuple[tuple[str, float], ...]
    total: float

    def count(self, category: str) -> float:
        for name, value in self.counts:
            if name == category:
                return value
        raise KeyError(category)

    @classmethod
    def from_row(cls, row: Mapping[str, Any], schema: CategorySchema) -> DemographicRecord:
        region_id = normalize_region_id(row.get(schema.id_column), schema.id_mode)
        name_raw = row.get(schema.name_column)
        name = "" if name_raw is None else str(name_raw).strip()
        counts = tuple(
            (category.name, _to_count(row.get(category.column), category.column))
            for category in schema.categories
        )
        total = _to_count(row.get(schema.total_column), schema.total_column)
        return cls(region_id=region_id, name=name, counts=counts, total=total)


@dataclass(frozen=True, slots=True)
class Anchor:
    """Screen-space marker position."""

    x: float
    y: float
    is_sentinel: bool = False

    @classmethod
    def sentinel(cls) -> Anchor:
        x, y = OFF_SCREEN_SENTINEL
        return cls(x=x, y=y, is_sentinel=True)

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True, slots=True)
class EnrichedRecord:
    """Record plus its join-derived anchor."""

    record: DemographicRecord
    anchor: Anchor
    region_index: int | None = None

    @property
    def region_id(self) -> RegionId:
        return self.record.region_id

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def total(self) -> float:
        return self.record.total
