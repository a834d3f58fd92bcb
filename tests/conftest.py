from __future__ import annotations

import json
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import pytest
from shapely.geometry import Polygon

from choromap.config import MarkersConfig
from choromap.models import CategoryField, CategorySchema, DemographicRecord, RegionFeature

CATEGORY_COLUMNS = (
    ("White", "white_alone"),
    ("Latino", "latino_alone"),
    ("Asian", "asian_all"),
    ("Black", "black_alone"),
    ("Other", "other_all"),
)


def square(lon: float, lat: float, size: float = 1.0) -> Polygon:
    return Polygon(
        [(lon, lat), (lon + size, lat), (lon + size, lat + size), (lon, lat + size), (lon, lat)]
    )


def make_record(region_id, name, total, **counts) -> DemographicRecord:
    ordered = tuple((category, float(counts.get(category, 0))) for category, _ in CATEGORY_COLUMNS)
    return DemographicRecord(region_id=region_id, name=name, counts=ordered, total=float(total))


@pytest.fixture
def schema() -> CategorySchema:
    return CategorySchema(
        categories=tuple(CategoryField(name=name, column=col) for name, col in CATEGORY_COLUMNS)
    )


@pytest.fixture
def markers_cfg() -> MarkersConfig:
    return MarkersConfig.from_mapping({})


@pytest.fixture
def features() -> list[RegionFeature]:
    return [
        RegionFeature(region_id=1, name="Alpha", geometry=square(-100.0, 40.0)),
        RegionFeature(region_id=2, name="Beta", geometry=square(-98.5, 40.0)),
        RegionFeature(region_id=3, name="Gamma", geometry=square(-100.0, 41.5)),
    ]


@pytest.fixture
def records() -> list[DemographicRecord]:
    return [
        make_record(1, "Alpha", 15_000_000, White=100, Latino=50, Asian=200, Black=10, Other=5),
        make_record(2, "Beta", 5_000_000, White=50, Latino=50),
        make_record(3, "Gamma", 50_000, Black=30, Other=2),
    ]


def write_geojson(path: Path, features: list[dict]) -> Path:
    payload = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"GEOID": item["GEOID"], "NAME": item["NAME"]},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [list(map(list, item["geometry"].exterior.coords))],
                },
            }
            for item in features
        ],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def write_records_csv(path: Path, rows: list[dict]) -> Path:
    header = ["geoid", "name", "white_alone", "latino_alone", "asian_all", "black_alone", "other_all", "total"]
    lines = [",".join(header)]
    for row in rows:
        lines.append(",".join(str(row.get(col, "")) for col in header))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def data_files(tmp_path: Path) -> tuple[Path, Path]:
    geometry = write_geojson(
        tmp_path / "regions.geojson",
        [
            {"GEOID": "01", "NAME": "Alpha", "geometry": square(-100.0, 40.0)},
            {"GEOID": "02", "NAME": "Beta", "geometry": square(-98.5, 40.0)},
            {"GEOID": "03", "NAME": "Gamma", "geometry": square(-100.0, 41.5)},
        ],
    )
    records = write_records_csv(
        tmp_path / "records.csv",
        [
            {"geoid": 1, "name": "Alpha", "white_alone": 100, "latino_alone": 50, "asian_all": 200,
             "black_alone": 10, "other_all": 5, "total": 15000000},
            {"geoid": 2, "name": "Beta", "white_alone": 50, "latino_alone": 50, "asian_all": 0,
             "black_alone": 0, "other_all": 0, "total": 5000000},
            {"geoid": 72, "name": "Nowhere", "white_alone": 1, "latino_alone": 9, "asian_all": 0,
             "black_alone": 0, "other_all": 0, "total": 50000},
        ],
    )
    return geometry, records


CONFIG_TEMPLATE = """
paths:
  geometry: {geometry}
  records: {records}
  output_png: build/map.png
  reports_dir: build/reports
  logs_dir: build/logs
viewport:
  width_px: 400
  height_px: 300
  dpi: 100
schema:
  categories:
    - {{name: White, column: white_alone}}
    - {{name: Latino, column: latino_alone}}
    - {{name: Asian, column: asian_all}}
    - {{name: Black, column: black_alone}}
    - {{name: Other, column: other_all}}
"""


@pytest.fixture
def config_path(tmp_path: Path, data_files: tuple[Path, Path]) -> Path:
    geometry, records = data_files
    path = tmp_path / "config.yaml"
    path.write_text(
        CONFIG_TEMPLATE.format(geometry=geometry.name, records=records.name), encoding="utf-8"
    )
    return path
