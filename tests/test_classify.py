from __future__ import annotations

import pytest

from choromap.classify import category_colors, classify, classify_features
from choromap.errors import ConfigurationError
from choromap.join import join
from choromap.models import CategorySchema, RegionFeature
from choromap.projection import fit

from conftest import make_record, square


def test_classify_picks_largest_count(schema):
    record = make_record(1, "A", 365, White=100, Latino=50, Asian=200, Black=10, Other=5)
    assert classify(record, schema) == "Asian"


def test_classify_tie_goes_to_first_in_category_order(schema):
    record = make_record(1, "A", 100, White=50, Latino=50, Asian=0, Black=0, Other=0)
    assert classify(record, schema) == "White"


def test_classify_tie_follows_declared_order_not_record_layout(schema):
    reordered = CategorySchema(categories=tuple(reversed(schema.categories)))
    record = make_record(1, "A", 100, White=50, Latino=50)
    assert classify(record, reordered) == "Latino"


def test_classify_all_zero_returns_first_category(schema):
    assert classify(make_record(1, "A", 0), schema) == "White"


def test_empty_schema_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        classify(make_record(1, "A", 0), CategorySchema(categories=()))


def test_unmatched_features_get_no_category(schema, records):
    features = [
        RegionFeature(region_id=1, name="Alpha", geometry=square(-100.0, 40.0)),
        RegionFeature(region_id=50, name="Unknown", geometry=square(-98.0, 40.0)),
    ]
    projection = fit([feature.geometry for feature in features], (400, 300))
    result = join(features, records[:1], projection)
    assert classify_features(features, result, schema) == ("Asian", None)


def test_category_colors_follow_schema_order(schema):
    colors = category_colors(schema, "Pastel1")
    assert list(colors) == ["White", "Latino", "Asian", "Black", "Other"]
    assert len(set(colors.values())) == 5
    assert all(value.startswith("#") for value in colors.values())


def test_unknown_palette_is_a_configuration_error(schema):
    with pytest.raises(ConfigurationError):
        category_colors(schema, "NoSuchPalette")
