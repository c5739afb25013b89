import datetime
import os

import pytest
from bs4 import BeautifulSoup

from property_mapper.counties.collier.data_extractor import (
    extract_address,
    extract_feature_layouts,
    extract_mailing_address,
    extract_permits,
    extract_structure_record,
    map_improvement_type,
    map_property_use_code,
    parse_deed_reference,
)
from property_mapper.counties.collier.owner_processor import extract_owner_lines, extract_property_id
from property_mapper.counties.collier.structure_extractor import extract_structure
from property_mapper.errors import UnknownEnumValueError
from property_mapper.workflow import run_county_pipeline

from conftest import COLLIER_HTML


def _soup(html):
    return BeautifulSoup(html, "html.parser")


def test_extract_property_id():
    assert extract_property_id(_soup(COLLIER_HTML)) == "00123456789"
    assert extract_property_id(_soup("<p>nothing</p>"), "seed-id") == "seed-id"
    assert extract_property_id(_soup("<p>nothing</p>")) == "unknown_id"


def test_owner_lines_drop_city_line_and_addresses():
    assert extract_owner_lines(_soup(COLLIER_HTML)) == ["SMITH, JOHN A", "ACME HOLDINGS LLC"]


def test_structure_from_building_and_permit_tables():
    structure = extract_structure(_soup(COLLIER_HTML), today=datetime.date(2024, 6, 1))
    assert structure["attachment_type"] == "Detached"
    assert structure["finished_base_area"] == 2000
    assert structure["roof_date"] == "2019-02-15"
    assert structure["roof_age_years"] == 5


ROOF_PERMITS_HTML = """
<table id="PermitAdditional">
  <tr>
    <td><span id="permitno1">PRBD2010-0100</span></td>
    <td><span id="IssuedDate1">01/05/2010</span></td>
    <td><span id="codate1">03/01/2010</span></td>
    <td><span id="permittype1">ROOF</span></td>
  </tr>
  <tr>
    <td><span id="permitno2">PRBD2022-0200</span></td>
    <td><span id="IssuedDate2">06/01/2022</span></td>
    <td><span id="codate2"></span></td>
    <td><span id="permittype2">RE-ROOF</span></td>
  </tr>
</table>
"""


def test_structure_roof_age_follows_latest_roof_permit():
    soup = _soup(ROOF_PERMITS_HTML)
    permits = extract_permits(soup)
    owner_structure = {"roof_date": "2010-03-01", "roof_age_years": 14, "finished_base_area": 1800}

    structure = extract_structure_record(soup, permits, owner_structure, today=datetime.date(2024, 6, 1))

    assert structure["roof_date"] == "2022-06-01"
    assert structure["roof_age_years"] == 2
    assert structure["finished_base_area"] == 1800


def test_structure_roof_age_without_permits_uses_owner_roof_date():
    structure = extract_structure_record(
        _soup("<p></p>"), [], {"roof_date": "2010-03-01"}, today=datetime.date(2024, 6, 1)
    )
    assert structure["roof_date"] == "2010-03-01"
    assert structure["roof_age_years"] == 14


def test_mailing_address_reads_owner_lines_past_five():
    names = ["ALPHA LLC", "BRAVO LLC", "CHARLIE LLC", "DELTA LLC", "ECHO LLC"]
    lines = "".join(f'<span id="OwnerLine{i}">{name}</span>' for i, name in enumerate(names, 1))
    html = (
        f'{lines}<span id="OwnerLine6">PO BOX 99</span>'
        '<span id="OwnerCity">NAPLES</span><span id="OwnerState">FL</span><span id="OwnerZip">34102</span>'
    )
    owners = [{"type": "company", "name": name} for name in names]

    mailing = extract_mailing_address(_soup(html), owners)

    assert mailing["unnormalized_address"] == "PO BOX 99, NAPLES FL 34102"


def test_extract_address_parses_street_and_legal_block_lot():
    unnormalized = {"full_address": "123 PINE RIDGE RD, NAPLES, FL 34108"}
    address = extract_address(_soup(COLLIER_HTML), unnormalized)
    assert address["street_number"] == "123"
    assert address["street_name"] == "PINE RIDGE"
    assert address["street_suffix_type"] == "Rd"
    assert (address["city_name"], address["postal_code"]) == ("NAPLES", "34108")
    assert (address["block"], address["lot"]) == ("4", "12")
    assert address["township"] == "49"
    assert address["county_name"] == "Collier"


def test_map_property_use_code():
    assert map_property_use_code("1 - SINGLE FAMILY RESIDENTIAL") == {
        "property_type": "Building",
        "build_status": "Improved",
        "structure_form": "SingleFamilyDetached",
        "property_usage_type": "Residential",
    }
    condo = map_property_use_code("400 - CONDOMINIUM VACANT")
    assert condo["property_type"] == "Unit"
    assert condo["build_status"] == "VacantLand"
    assert map_property_use_code("VACANT") == {}
    with pytest.raises(UnknownEnumValueError):
        map_property_use_code("250 - UNKNOWN")


def test_parse_deed_reference():
    link = _soup("<a onclick=\"DownloadPDF('123-456')\">x</a>").a
    assert parse_deed_reference(link) == {"book": "123", "page": "456", "instrument_number": None}
    text_only = _soup("<a href='#'>789 / 12</a>").a
    assert parse_deed_reference(text_only) == {"book": "789", "page": "12", "instrument_number": None}
    assert parse_deed_reference(None)["book"] is None


def test_improvement_type_default():
    assert map_improvement_type("ROOF REPLACEMENT") == "Roofing"
    assert map_improvement_type("SOMETHING ELSE") == "GeneralBuilding"


def test_feature_layouts():
    html = """
    <span id="BLDGCLASS1">POOL</span><span id="YRBUILT1">2001</span><span id="BASEAREA1">400</span>
    <span id="BLDGCLASS2">POOL FENCE</span>
    <span id="BLDGCLASS3">SCREEN ENCLOSURE</span><span id="BASEAREA3">900</span>
    """
    features = extract_feature_layouts(_soup(html))
    assert [f["space_type"] for f in features] == ["Outdoor Pool", "Screened Porch"]
    assert features[0]["safety_features"] == "Fencing"
    assert features[0]["pool_installation_date"] == "2001-01-01"
    assert features[1]["size_square_feet"] == 900.0


def test_collier_pipeline(collier_work_dir, data_file, tmp_path):
    result = run_county_pipeline(collier_work_dir, validate=True, schemas_dir=str(tmp_path / "schemas"))

    assert result["county"] == "collier"
    assert result["errors"] == []
    assert result["validation_errors"] == {}
    assert result["success"]

    prop = data_file(collier_work_dir, "property.json")
    assert prop["parcel_identifier"] == "00123456789"
    assert prop["property_type"] == "Building"
    assert prop["build_status"] == "Improved"
    assert prop["structure_form"] == "SingleFamilyDetached"
    assert prop["livable_floor_area"] == "2000"
    assert prop["total_area"] == "2500"
    assert prop["property_structure_built_year"] == 1995
    assert prop["subdivision"] == "PINE RIDGE"
    assert prop["request_identifier"] == "00123456789"

    address = data_file(collier_work_dir, "address.json")
    assert (address["street_name"], address["street_suffix_type"]) == ("PINE RIDGE", "Rd")
    assert (address["block"], address["lot"]) == ("4", "12")

    sale_old = data_file(collier_work_dir, "sales_history_1.json")
    sale_new = data_file(collier_work_dir, "sales_history_2.json")
    assert sale_old["ownership_transfer_date"] == "2010-06-01"
    assert sale_old["purchase_price_amount"] == 200000
    assert sale_new["ownership_transfer_date"] == "2020-03-15"
    assert data_file(collier_work_dir, "relationship_sales_history_deed_1.json")["to"] == {"/": "./deed_2.json"}

    deed = data_file(collier_work_dir, "deed_1.json")
    assert (deed["instrument_number"], deed["book"], deed["page"]) == ("5678", "123", "456")
    assert data_file(collier_work_dir, "file_1.json")["name"] == "123-456"

    person = data_file(collier_work_dir, "person_1.json")
    assert (person["last_name"], person["first_name"], person["middle_name"]) == ("Smith", "John", "A")
    assert data_file(collier_work_dir, "company_1.json")["name"] == "ACME HOLDINGS LLC"
    assert data_file(collier_work_dir, "relationship_sales_history_person_1.json")["from"] == {
        "/": "./sales_history_2.json"
    }
    assert data_file(collier_work_dir, "mailing_address.json")["unnormalized_address"] == "123 MAIN ST, NAPLES FL 34102"

    assert data_file(collier_work_dir, "layout_1.json")["space_type"] == "Building"
    pool = data_file(collier_work_dir, "layout_2.json")
    assert pool["space_type"] == "Outdoor Pool"
    assert pool["pool_installation_date"] == "2001-01-01"
    assert pool["size_square_feet"] == 400.0
    assert os.path.exists(os.path.join(collier_work_dir, "data", "relationship_layout_1_to_layout_2.json"))

    structure = data_file(collier_work_dir, "structure.json")
    assert structure["number_of_buildings"] == 1
    assert structure["finished_base_area"] == 2000
    assert structure["roof_date"] == "2019-02-15"

    permit = data_file(collier_work_dir, "property_improvement_1.json")
    assert permit["improvement_type"] == "Roofing"
    assert permit["improvement_action"] == "Replacement"
    assert permit["improvement_status"] == "Completed"

    tax = data_file(collier_work_dir, "tax_1.json")
    assert tax["tax_year"] == 2024
    assert tax["property_market_value_amount"] == 500000
    assert tax["property_assessed_value_amount"] == 500000
    assert tax["property_taxable_value_amount"] == 450000
    assert tax["yearly_tax_amount"] == 6000
    assert tax["monthly_tax_amount"] == 500.0

    assert "relationship_property_sales_history_2.json" in result["relationship_files"]
    assert "relationship_person_1_property.json" in result["relationship_files"]
