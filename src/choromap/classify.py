"""Dominant-category classification and category colors."""

from __future__ import annotations

from typing import Any, Sequence

from .errors import ConfigurationError
from .join import JoinResult
from .models import CategorySchema, DemographicRecord, RegionFeature


def require_categories(schema: CategorySchema) -> None:
    if not schema.categories:
        raise ConfigurationError("Category schema declares no category fields")


def classify(record: DemographicRecord, schema: CategorySchema) -> str:
    """Category with the greatest count; ties go to the earliest in schema order."""
    require_categories(schema)
    names = schema.category_names
    best_name = names[0]
    best_value = record.count(best_name)
    for name in names[1:]:
        value = record.count(name)
        if value > best_value:
            best_name = name
            best_value = value
    return best_name


def classify_features(
    features: Sequence[RegionFeature],
    join_result: JoinResult,
    schema: CategorySchema,
) -> tuple[str | None, ...]:
    """Fill category per feature, or None when no record carries its identifier."""
    require_categories(schema)
    by_id = join_result.index_by_region_id()
    out: list[str | None] = []
    for feature in features:
        matched = by_id.get(feature.region_id)
        out.append(None if matched is None else classify(matched.record, schema))
    return tuple(out)


def category_colors(schema: CategorySchema, palette: str = "Pastel1") -> dict[str, Any]:
    """Ordinal color per category, cycling through a matplotlib colormap."""
    require_categories(schema)
    cmap = _require_colormap(palette)
    colors = getattr(cmap, "colors", None)
    out: dict[str, Any] = {}
    for idx, name in enumerate(schema.category_names):
        if colors is not None:
            out[name] = _to_hex(colors[idx % len(colors)])
        else:
            out[name] = _to_hex(cmap(idx / max(len(schema.categories) - 1, 1)))
    return out


def _to_hex(color: Any) -> str:
    from matplotlib.colors import to_hex

    return str(to_hex(color))


def _require_colormap(name: str) -> Any:
    try:
        from matplotlib import colormaps
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for category colors") from exc
    try:
        return colormaps[name]
    except KeyError as exc:
        raise ConfigurationError(f"Unknown matplotlib colormap '{name}'") from exc
