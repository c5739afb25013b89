import os

from property_mapper.relationships import build_relationship_files, create_county_data_group
from property_mapper.utils import read_json, write_json


def _touch(data_dir, *names):
    for name in names:
        write_json(os.path.join(data_dir, name), {})


def test_build_relationship_files_links_entities_to_property(tmp_path):
    data_dir = str(tmp_path)
    _touch(
        data_dir,
        "property.json",
        "address.json",
        "lot.json",
        "tax_1.json",
        "tax_2.json",
        "sales_history_1.json",
        "layout_1.json",
        "structure.json",
        "utility.json",
        "person_1.json",
        "company_1.json",
        "mailing_address.json",
        "deed_1.json",
    )
    write_json(os.path.join(data_dir, "relationship_sales_history_1_person_1.json"), {})

    files, errors = build_relationship_files(data_dir)

    assert errors == []
    assert set(files) == {
        "relationship_sales_history_1_person_1.json",
        "relationship_person_1_property.json",
        "relationship_company_1_property.json",
        "relationship_property_address.json",
        "relationship_property_lot.json",
        "relationship_property_tax_1.json",
        "relationship_property_tax_2.json",
        "relationship_property_sales_history_1.json",
        "relationship_property_layout_1.json",
        "relationship_property_structure.json",
        "relationship_property_utility.json",
    }
    assert read_json(os.path.join(data_dir, "relationship_property_tax_2.json")) == {
        "from": {"/": "./property.json"},
        "to": {"/": "./tax_2.json"},
    }
    assert read_json(os.path.join(data_dir, "relationship_person_1_property.json"))["to"] == {"/": "./property.json"}


def test_build_relationship_files_requires_property(tmp_path):
    _touch(str(tmp_path), "address.json")
    files, errors = build_relationship_files(str(tmp_path))
    assert files == []
    assert len(errors) == 1
    assert "property.json" in errors[0]


def test_create_county_data_group():
    group = create_county_data_group([
        "relationship_person_1_property.json",
        "relationship_person_2_property.json",
        "relationship_property_address.json",
        "relationship_property_tax_1.json",
        "relationship_property_sales_history_1.json",
        "relationship_property_structure_1.json",
        "relationship_property_structure_2.json",
        "relationship_sales_history_1_company_1.json",
    ])
    relationships = group["relationships"]

    assert group["label"] == "County"
    assert relationships["person_has_property"] == [
        {"/": "./relationship_person_1_property.json"},
        {"/": "./relationship_person_2_property.json"},
    ]
    assert relationships["property_has_address"] == {"/": "./relationship_property_address.json"}
    assert relationships["property_has_tax"] == [{"/": "./relationship_property_tax_1.json"}]
    assert relationships["property_has_sales_history"] == [{"/": "./relationship_property_sales_history_1.json"}]
    assert relationships["property_has_structure"] == [
        {"/": "./relationship_property_structure_1.json"},
        {"/": "./relationship_property_structure_2.json"},
    ]
    assert relationships["sales_history_has_company"] == [{"/": "./relationship_sales_history_1_company_1.json"}]
    assert relationships["company_has_property"] is None
    assert relationships["property_has_lot"] is None
