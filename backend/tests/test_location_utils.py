"""
Tests for destination record helpers.
"""
import pytest

from conftest import make_destination
from services.location_utils import (
    InvalidDestinationRecord,
    create_search_display_name,
    filter_valid_destinations,
    fold_name,
    group_destinations_by_country,
    sort_destinations_by_relevance,
    transform_destination_record,
    validate_coordinates,
    validate_destination_record,
)

VALID_RECORD = {
    "place_id": "12345",
    "name": "Paris",
    "display_name": "Paris, Île-de-France, France",
    "category": "place",
    "type": "city",
    "country": "France",
    "region": "Île-de-France",
    "city": "Paris",
    "lat": "48.8566",
    "lon": "2.3522",
    "importance": "0.9",
    "place_rank": "16",
}


class TestValidateDestinationRecord:
    def test_valid_record(self):
        assert validate_destination_record(VALID_RECORD) is True

    def test_missing_required_fields(self):
        assert validate_destination_record({"name": "Paris", "lat": "48.8", "lon": "2.3"}) is False

    def test_unparseable_coordinates(self):
        assert validate_destination_record({**VALID_RECORD, "lat": "invalid"}) is False

    @pytest.mark.parametrize("lat", ["91.0", 999, "-90.5"])
    def test_out_of_range_latitude_is_rejected(self, lat):
        assert validate_destination_record({**VALID_RECORD, "lat": lat}) is False

    def test_out_of_range_longitude_is_rejected(self):
        assert validate_destination_record({**VALID_RECORD, "lon": "180.5"}) is False

    @pytest.mark.parametrize("field_name", ["lat", "lon", "importance"])
    @pytest.mark.parametrize("value", ["inf", "-inf", float("inf"), "nan"])
    def test_non_finite_numbers_are_rejected(self, field_name, value):
        assert validate_destination_record({**VALID_RECORD, field_name: value}) is False

    def test_boundingbox_is_optional(self):
        assert validate_destination_record({**VALID_RECORD, "boundingbox": None}) is True
        assert validate_destination_record({**VALID_RECORD, "boundingbox": ["48.81", "48.90", 2.22, 2.46]}) is True

    @pytest.mark.parametrize(
        "bbox",
        [5, "48.81,48.90,2.22,2.46", [], ["48.81", "48.90", "2.22"], ["48.81", "48.90", "2.22", "east"]],
    )
    def test_malformed_boundingbox_is_rejected(self, bbox):
        assert validate_destination_record({**VALID_RECORD, "boundingbox": bbox}) is False

    def test_empty_name_is_rejected(self):
        assert validate_destination_record({**VALID_RECORD, "name": ""}) is False

    def test_id_accepted_instead_of_place_id(self):
        record = {k: v for k, v in VALID_RECORD.items() if k != "place_id"}
        assert validate_destination_record(record) is False
        assert validate_destination_record({**record, "id": "abc"}) is True

    def test_non_mapping_is_rejected(self):
        assert validate_destination_record(["Paris"]) is False


class TestTransformDestinationRecord:
    def test_transform_coerces_types(self):
        d = transform_destination_record(VALID_RECORD)
        assert d.id == "12345"
        assert d.lat == pytest.approx(48.8566)
        assert d.lon == pytest.approx(2.3522)
        assert d.importance == pytest.approx(0.9)
        assert d.place_rank == 16
        assert d.boundingbox is None

    def test_missing_hierarchy_becomes_none(self):
        d = transform_destination_record({**VALID_RECORD, "country": "", "region": None})
        assert d.country is None
        assert d.region is None

    def test_name_normalized_defaults_to_folded_name(self):
        d = transform_destination_record({**VALID_RECORD, "name": "Zürich"})
        assert d.name_normalized == "zurich"

    def test_explicit_name_normalized_is_kept(self):
        d = transform_destination_record({**VALID_RECORD, "name": "Rome", "name_normalized": "roma"})
        assert d.name_normalized == "roma"

    def test_invalid_record_raises(self):
        with pytest.raises(InvalidDestinationRecord):
            transform_destination_record({"name": "Paris"})


def test_fold_name():
    assert fold_name("São Paulo") == "sao paulo"
    assert fold_name("Île-de-France") == "ile-de-france"
    assert fold_name("Berlin") == "berlin"


def test_filter_valid_destinations():
    records = [
        VALID_RECORD,
        {**VALID_RECORD, "category": "amenity"},
        {**VALID_RECORD, "category": "tourism", "type": "museum"},
        {**VALID_RECORD, "type": "island", "importance": "0.05"},
        {**VALID_RECORD, "category": "tourism", "type": "attraction", "importance": "0.4"},
        {**VALID_RECORD, "importance": "n/a"},
    ]
    kept = filter_valid_destinations(records)
    assert [(r["category"], r["type"]) for r in kept] == [("place", "city"), ("tourism", "attraction")]


def test_sort_by_relevance_importance_first():
    low = make_destination(1, "Low", importance=0.2)
    high = make_destination(2, "High", importance=0.9)
    assert [d.id for d in sort_destinations_by_relevance([low, high])] == ["2", "1"]


def test_sort_by_relevance_close_importance_uses_place_rank_then_name_length():
    a = make_destination(1, "Springfield", importance=0.50, place_rank=16)
    b = make_destination(2, "Springfield County", importance=0.55, place_rank=12)
    c = make_destination(3, "Spring", importance=0.52, place_rank=16)
    assert [d.id for d in sort_destinations_by_relevance([a, b, c])] == ["2", "3", "1"]


def test_group_by_country():
    groups = group_destinations_by_country(
        [
            make_destination(1, "Paris", country="France"),
            make_destination(2, "Lyon", country="France"),
            make_destination(3, "Atlantis", country=None),
        ]
    )
    assert sorted(groups) == ["France", "Unknown"]
    assert [d.name for d in groups["France"]] == ["Paris", "Lyon"]


def test_create_search_display_name_skips_repeats():
    d = make_destination(1, "Paris", city="Paris", region="Île-de-France", country="France")
    assert create_search_display_name(d) == "Paris, Île-de-France, France"
    d = make_destination(2, "Monaco", city="Monaco", region="Monaco", country="Monaco")
    assert create_search_display_name(d) == "Monaco, Monaco"


def test_validate_coordinates():
    assert validate_coordinates(48.85, 2.35) is True
    assert validate_coordinates(91.0, 0.0) is False
    assert validate_coordinates(0.0, -180.5) is False

