import os

import pytest
from bs4 import BeautifulSoup

from property_mapper.counties.leon.data_extractor import (
    extract_address,
    extract_legal_description,
    extract_lot,
    extract_mailing_address,
    extract_property,
    extract_sales_entries,
    extract_taxes,
    map_deed_type,
    map_property_use,
    parse_book_page,
)
from property_mapper.counties.leon.layout_extractor import extract_layouts
from property_mapper.counties.leon.owner_processor import classify_owner_line, extract_owners, parse_person
from property_mapper.counties.leon.page import characteristics, field_lines, owner_lines, parcel_id, parse_buildings
from property_mapper.counties.leon.structure_extractor import (
    extract_structures,
    map_exterior_wall,
    map_roof_design,
    map_roof_material,
)
from property_mapper.counties.leon.utility_extractor import extract_utilities
from property_mapper.errors import UnknownEnumValueError
from property_mapper.workflow import run_county_pipeline

from conftest import LEON_HTML

UNNORMALIZED = {"full_address": "1234 N MONROE ST, TALLAHASSEE, FL 32303", "county_jurisdiction": "Leon"}


@pytest.fixture
def soup():
    return BeautifulSoup(LEON_HTML, "html.parser")


def test_parcel_id_prefers_hidden_input(soup):
    assert parcel_id(soup) == "2121500000010"
    page = BeautifulSoup(LEON_HTML.replace('id="ParcelId"', 'id="Other"'), "html.parser")
    assert parcel_id(page) == "21-21-50-000-0010"
    assert parcel_id(BeautifulSoup("<html></html>", "html.parser"), "seed-id") == "seed-id"


def test_field_lines(soup):
    assert field_lines(soup, "Mailing Address") == ["PO BOX 100", "TALLAHASSEE FL 32302"]
    assert field_lines(soup, "Missing Label") == []


def test_owner_lines_split_on_line_breaks(soup):
    assert owner_lines(soup) == ["SMITH JOHN A", "SMITH JANE", "CAPITAL OAKS HOLDINGS LLC", "DOE JOHN & MARY"]


def test_owner_lines_prefer_owners_modal():
    page = LEON_HTML.replace(
        "</body>",
        '<div id="ownersModal" class="modal"><div class="modal-body">'
        '<div class="col-md-3">BROWN ALICE</div><div class="col-md-3"> </div></div></div></body>',
    )
    assert owner_lines(BeautifulSoup(page, "html.parser")) == ["BROWN ALICE"]


def test_parse_person_reads_last_name_first():
    assert parse_person("SMITH JOHN A") == {
        "type": "person",
        "first_name": "John",
        "last_name": "Smith",
        "middle_name": "A",
        "prefix_name": None,
        "suffix_name": None,
    }
    assert parse_person("SMITH JOHN A JR")["suffix_name"] == "Jr."
    assert parse_person("SMITH") is None


def test_classify_owner_line():
    company = {"type": "company", "name": "CAPITAL OAKS HOLDINGS LLC"}
    assert classify_owner_line("CAPITAL OAKS HOLDINGS LLC") == (company, None)
    assert classify_owner_line("DOE JOHN & MARY") == (None, {"raw": "DOE JOHN & MARY", "reason": "ambiguous_ampersand"})
    # a company name may carry an ampersand
    assert classify_owner_line("SMITH & SONS LLC")[0]["type"] == "company"
    assert classify_owner_line("CHER")[1]["reason"] == "unclassified_owner"


def test_extract_owners(soup):
    payload = extract_owners(soup)
    current = payload["owners_by_date"]["current"]
    assert list(payload["owners_by_date"]) == ["current"]
    assert [o.get("last_name") or o.get("name") for o in current] == ["Smith", "Smith", "CAPITAL OAKS HOLDINGS LLC"]
    assert payload["invalid_owners"] == [{"raw": "DOE JOHN & MARY", "reason": "ambiguous_ampersand"}]


def test_map_property_use():
    assert map_property_use("0100 - Single Family") == {
        "ownership_estate_type": "FeeSimple",
        "build_status": "Improved",
        "structure_form": "SingleFamilyDetached",
        "property_usage_type": "Residential",
        "property_type": "Building",
    }
    assert map_property_use("0400 - Condominium")["property_type"] == "Unit"
    assert map_property_use("9400 - Rights-of-Way")["ownership_estate_type"] == "RightOfWay"


def test_map_property_use_unknown_code_raises():
    with pytest.raises(UnknownEnumValueError) as excinfo:
        map_property_use("0550 - Timeshare")
    assert excinfo.value.to_dict()["path"] == "property.property_type"
    with pytest.raises(UnknownEnumValueError):
        map_property_use(None)


def test_parse_buildings(soup):
    buildings = parse_buildings(soup)
    assert [b["number"] for b in buildings] == [1, 2]
    assert buildings[0]["heated_sq_ft"] == 1850
    # a zero heated area is no area
    assert buildings[1]["heated_sq_ft"] is None
    assert buildings[1]["auxiliary_sq_ft"] == 600


def test_extract_legal_description(soup):
    assert extract_legal_description(soup) == "LAFAYETTE PARK | LOT 7 BLOCK C"
    page = BeautifulSoup(LEON_HTML.replace('id="legalModal"', 'id="closedModal"'), "html.parser")
    assert extract_legal_description(page) == "LAFAYETTE PARK"


def test_extract_property(soup):
    prop = extract_property(soup, "2121500000010")
    assert prop["parcel_identifier"] == "2121500000010"
    assert prop["property_structure_built_year"] == 1998
    assert prop["livable_floor_area"] == "1850"
    assert prop["total_area"] == "2900"
    assert prop["subdivision"] == "LAFAYETTE PARK"
    assert prop["property_type"] == "Building"
    assert prop["historic_designation"] is False


def test_extract_address(soup):
    address = extract_address(soup, UNNORMALIZED, "LAFAYETTE PARK | LOT 7 BLOCK C")
    assert address["county_name"] == "Leon"
    assert address["street_number"] == "1234"
    assert address["street_pre_directional_text"] == "N"
    assert (address["street_name"], address["street_suffix_type"]) == ("MONROE", "St")
    assert (address["city_name"], address["postal_code"]) == ("TALLAHASSEE", "32303")
    assert (address["block"], address["lot"]) == ("C", "7")


def test_extract_address_falls_back_to_location(soup):
    address = extract_address(soup, {"county_jurisdiction": "Leon"}, None)
    assert address["unnormalized_address"] == "1234 N MONROE ST"
    assert (address["street_number"], address["street_name"]) == ("1234", "MONROE")
    assert address["block"] is None


def test_extract_mailing_address(soup):
    assert extract_mailing_address(soup)["unnormalized_address"] == "PO BOX 100, TALLAHASSEE FL 32302"
    assert extract_mailing_address(BeautifulSoup("<html></html>", "html.parser")) is None


def test_extract_lot(soup):
    lot = extract_lot(soup)
    assert lot["lot_size_acre"] == 0.34
    assert lot["lot_area_sqft"] == 14810
    assert lot["lot_type"] == "GreaterThanOneQuarterAcre"
    page = BeautifulSoup(LEON_HTML.replace("<div>0.3400</div>", "<div>0.0000</div>"), "html.parser")
    assert extract_lot(page) is None


def test_extract_taxes_only_certified_year(soup):
    taxes = extract_taxes(soup)
    assert len(taxes) == 1
    tax = taxes[0]
    assert tax["tax_year"] == 2025
    assert tax["property_land_amount"] == 60000
    assert tax["property_building_amount"] == 200000
    assert tax["property_market_value_amount"] == 260000
    assert tax["property_assessed_value_amount"] == 185000
    assert tax["property_taxable_value_amount"] == 135000


def test_extract_taxes_follows_taxable_values_year(soup):
    html = LEON_HTML.replace("2025 Certified Taxable Values", "2024 Certified Taxable Values")
    page = BeautifulSoup(html, "html.parser")
    assert [t["tax_year"] for t in extract_taxes(page)] == [2024]
    page = BeautifulSoup(LEON_HTML.replace("2025 Certified Taxable Values", "Taxable Values"), "html.parser")
    assert extract_taxes(page) == []


def test_map_deed_type():
    assert map_deed_type("WD") == "Warranty Deed"
    assert map_deed_type("ct") == "Contract for Deed"
    assert map_deed_type("QUIT CLAIM") == "Quitclaim Deed"
    assert map_deed_type("XX") == "Miscellaneous"
    assert map_deed_type(None) == "Miscellaneous"


def test_parse_book_page():
    assert parse_book_page("5432/1234") == ("5432", "1234")
    assert parse_book_page("5432 / 1234") == ("5432", "1234")
    assert parse_book_page("ELEC/1234") == (None, None)
    assert parse_book_page(None) == (None, None)


def test_extract_sales_entries(soup):
    entries = extract_sales_entries(soup)
    assert len(entries) == 2
    sale, deed, file_record = entries[1]
    assert (sale["ownership_transfer_date"], sale["purchase_price_amount"]) == ("2020-06-15", 325000)
    assert deed == {"deed_type": "Warranty Deed", "book": "5432", "page": "1234"}
    assert file_record["name"] == "Book/Page 5432/1234"
    assert file_record["original_url"] == "https://records.example.com/or?book=5432&page=1234"
    # unlinked book/page cells give no file name
    assert entries[0][1] == {"deed_type": "Quitclaim Deed", "book": "4100", "page": "0567"}
    assert entries[0][2]["name"] is None


def test_characteristics(soup):
    details = characteristics(soup)
    assert details["roof cover deck"] == "Composition Shingle"
    assert details["pool"] == "Yes"


def test_structure_mappers():
    assert map_roof_design("Gable/Hip") == "Combination"
    assert map_roof_design("HIP") == "Hip"
    assert map_roof_design("Shed") is None
    assert map_roof_material("Composition Shingle") == "Composition"
    assert map_roof_material("Slate") == "Stone"
    assert map_exterior_wall("Hardboard Siding") is None


def test_extract_structures(soup):
    structures = extract_structures(soup)
    assert [s["building_number"] for s in structures] == [1, 2]
    first, second = structures
    assert first["finished_base_area"] == 2300
    assert first["roof_design_type"] == "Combination"
    assert first["roof_material_type"] == "Composition"
    assert first["exterior_wall_material_primary"] == "Brick"
    assert first["primary_framing_material"] == "Wood Frame"
    assert first["number_of_buildings"] == 2
    # the details table describes the first building only
    assert second["roof_design_type"] is None
    assert second["finished_base_area"] is None


def test_extract_utilities(soup):
    utilities = extract_utilities(soup)
    assert [u["building_number"] for u in utilities] == [1, 2]
    assert utilities[0]["solar_panel_present"] is False


def test_extract_layouts(soup):
    layouts = extract_layouts(soup)
    assert [(l["space_type"], l["space_type_index"]) for l in layouts] == [
        ("Building", "1"),
        ("Building", "2"),
        ("Outdoor Pool", "1.1"),
        ("Attached Garage", "1.1"),
        ("Open Porch", "1.1"),
    ]
    building = layouts[0]
    assert (building["total_area_sq_ft"], building["heated_area_sq_ft"], building["built_year"]) == (2300, 1850, 1998)
    pool = layouts[2]
    assert (pool["pool_type"], pool["is_exterior"], pool["building_number"]) == ("BuiltIn", True, 1)
    assert layouts[3]["total_area_sq_ft"] == 400
    assert [l["space_index"] for l in layouts] == [1, 2, 3, 4, 5]


def test_extract_layouts_without_pool_or_buildings():
    page = BeautifulSoup(LEON_HTML.replace("<td>Yes</td>", "<td>No</td>"), "html.parser")
    assert "Outdoor Pool" not in [l["space_type"] for l in extract_layouts(page)]
    page = BeautifulSoup(LEON_HTML.replace('class="building-table"', 'class="other"'), "html.parser")
    layouts = extract_layouts(page)
    assert layouts[0]["space_type"] == "Outdoor Pool"
    assert all(l["building_number"] is None for l in layouts)


def test_leon_pipeline(leon_work_dir, data_file):
    result = run_county_pipeline(leon_work_dir)

    assert result["county"] == "leon"
    assert result["errors"] == []
    assert result["success"]

    prop = data_file(leon_work_dir, "property.json")
    assert prop["parcel_identifier"] == "2121500000010"
    assert prop["request_identifier"] == "2121500000010"
    assert data_file(leon_work_dir, "address.json")["lot"] == "7"

    person = data_file(leon_work_dir, "person_1.json")
    assert (person["first_name"], person["middle_name"], person["last_name"]) == ("John", "A", "Smith")
    assert data_file(leon_work_dir, "company_1.json")["name"] == "CAPITAL OAKS HOLDINGS LLC"
    data_dir = os.path.join(leon_work_dir, "data")
    assert not os.path.exists(os.path.join(data_dir, "person_3.json"))
    assert os.path.exists(os.path.join(data_dir, "relationship_person_has_mailing_address_2.json"))
    # current owners link to the most recent sale
    assert data_file(leon_work_dir, "relationship_sales_history_company_1.json") == {
        "from": {"/": "./sales_history_2.json"},
        "to": {"/": "./company_1.json"},
    }

    assert data_file(leon_work_dir, "tax_1.json")["tax_year"] == 2025
    assert not os.path.exists(os.path.join(data_dir, "tax_2.json"))
    assert data_file(leon_work_dir, "deed_1.json")["deed_type"] == "Quitclaim Deed"
    assert data_file(leon_work_dir, "lot.json")["lot_area_sqft"] == 14810

    assert data_file(leon_work_dir, "layout_2.json")["space_type"] == "Building"
    assert data_file(leon_work_dir, "relationship_layout_2_has_structure_2.json")["to"] == {"/": "./structure_2.json"}
    assert os.path.exists(os.path.join(data_dir, "relationship_layout_1_has_utility_1.json"))
    assert os.path.exists(os.path.join(data_dir, "relationship_layout_1_has_layout_5.json"))

    assert "relationship_sales_history_person_1.json" in result["relationship_files"]


def test_pipeline_unknown_property_use_is_reported(make_work_dir):
    html = LEON_HTML.replace("0100 - Single Family", "0550 - Timeshare")
    work_dir = make_work_dir("input.html", html, "Leon County", "", "2121500000010")

    result = run_county_pipeline(work_dir)

    assert result["county"] == "leon"
    assert not result["success"]
    assert result["errors"][0].startswith("data_extractor:")
    assert "Unknown enum value 0550 - Timeshare." in result["errors"][0]
