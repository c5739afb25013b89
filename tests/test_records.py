import pytest

from property_mapper.errors import UnknownEnumValueError
from property_mapper.records import (
    LAYOUT_FIELDS,
    lot_type_for_acres,
    new_address,
    new_layout,
    new_property,
    new_utility,
    prune_nulls,
    space_type_for_description,
    units_type_for_count,
    with_source,
)


def test_builders_carry_every_field():
    record = new_property(parcel_identifier="123")
    assert record["parcel_identifier"] == "123"
    assert record["property_type"] is None
    assert new_address()["country_code"] == "US"


def test_builders_reject_unknown_fields():
    with pytest.raises(KeyError):
        new_property(parcel_id="123")


def test_layout_defaults():
    layout = new_layout("Bedroom", 2)
    assert set(layout) == set(LAYOUT_FIELDS)
    assert layout["space_type"] == "Bedroom"
    assert layout["space_index"] == 2
    assert layout["is_exterior"] is False
    assert layout["is_finished"] is False


def test_utility_solar_defaults():
    utility = new_utility(cooling_system_type="CentralAir")
    assert utility["solar_panel_present"] is False
    assert utility["solar_inverter_visible"] is False


def test_with_source_stamps_seed_provenance():
    seed = {"parcel_id": "42", "source_http_request": {"method": "GET", "url": "https://example.com"}}
    record = with_source({"name": "ACME"}, seed)
    assert record["request_identifier"] == "42"
    assert record["source_http_request"] == seed["source_http_request"]
    assert record["source_http_request"] is not seed["source_http_request"]


def test_prune_nulls():
    assert prune_nulls({"book": "1", "page": None}) == {"book": "1"}


def test_lot_type_for_acres():
    assert lot_type_for_acres(0.25) == "LessThanOrEqualToOneQuarterAcre"
    assert lot_type_for_acres(0.3) == "GreaterThanOneQuarterAcre"
    assert lot_type_for_acres(None) is None


def test_units_type_for_count():
    assert units_type_for_count(1) == "One"
    assert units_type_for_count(None) is None
    with pytest.raises(UnknownEnumValueError) as excinfo:
        units_type_for_count(7)
    assert excinfo.value.to_dict() == {
        "type": "error",
        "message": "Unknown enum value 7.",
        "path": "property.number_of_units_type",
    }


def test_space_type_for_description():
    assert space_type_for_description("POOL HOUSE") == "Pool House"
    assert space_type_for_description("FOP FINISHED OPEN PORCH") == "Open Porch"
    assert space_type_for_description("FSP FINISHED SCREEN PORCH") == "Screened Porch"
    assert space_type_for_description("Summer Kitchen") == "Outdoor Kitchen"
    assert space_type_for_description("UTILITY SHED") == "Shed"
    assert space_type_for_description("SHED") is None
    assert space_type_for_description("BAS BASE AREA") is None
    assert space_type_for_description("") is None
    assert space_type_for_description(None) is None
