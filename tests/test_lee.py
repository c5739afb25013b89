import pytest
from bs4 import BeautifulSoup

from property_mapper.counties.lee.data_extractor import (
    extract_address,
    extract_flood_storm,
    extract_lot,
    extract_property,
    extract_sales,
    extract_taxes,
    fence_length_bucket,
    map_build_status,
    map_ownership_estate_type,
    map_property_type,
    map_property_usage_type,
    map_structure_form,
    try_map_property_type,
)
from property_mapper.counties.lee.layout_extractor import extract_bedroom_bathroom_counts, extract_layouts
from property_mapper.counties.lee.owner_processor import (
    extract_folio_id,
    extract_latest_sale_date,
    extract_owners,
    parse_owner_name,
)
from property_mapper.counties.lee.structure_extractor import extract_structure
from property_mapper.counties.lee.utility_extractor import extract_utility
from property_mapper.workflow import run_county_pipeline

LEE_HTML = """
<html><body>
<div id="parcelLabel">Folio ID: 10234567</div>
<div class="textPanel">CAPE CORAL UNIT 12 BLK 345 LOTS 1 + 2</div>
<div id="divDisplayParcelOwner">
  <div class="textPanel">SMITH JOHN ALLEN &amp; DOE JANE<br/>4521 PELICAN WAY<br/>CAPE CORAL FL 33914</div>
</div>
<table class="appraisalDetailsLocation">
  <tr><th>Township</th><th>Range</th><th>Section</th><th>Block</th></tr>
  <tr><td>44</td><td>23</td><td>14</td><td>12</td></tr>
  <tr><th>Municipality</th><th>Latitude</th><th>Longitude</th></tr>
  <tr><td>Cape Coral</td><td>26.6123</td><td>-81.9512</td></tr>
</table>
<table class="appraisalDetails">
  <tr><td>Gross Living Area</td><td>2,100</td></tr>
</table>
<div id="PropertyDetailsCurrent">
  <div class="sectionSubTitle">Building 1 of 1</div>
  <table class="appraisalAttributes">
    <tr><th>Improvement Type</th><th>Model Type</th><th>Stories</th><th>Living Units</th></tr>
    <tr><td>Ranch</td><td>Single Family Residential</td><td>1</td><td>1</td></tr>
    <tr><td>Model Type</td><td>Single Family Residential</td></tr>
    <tr><td>Living Units</td><td>1</td></tr>
    <tr><td>Year Built</td><td>1998</td><td>1998</td><td></td></tr>
    <tr><th>Bedrooms</th><th>Bathrooms</th></tr>
    <tr><td>3</td><td>2.5</td></tr>
  </table>
  <table class="appraisalAttributes">
    <tr><th>Description</th><th>Year Added</th><th>Heated</th><th>Area</th></tr>
    <tr><td>BAS - BASE</td><td>1998</td><td>Y</td><td>1,500</td></tr>
    <tr><td>FUS - FINISHED UPPER STORY</td><td>1998</td><td>Y</td><td>600</td></tr>
    <tr><td>FGR - FINISHED GARAGE</td><td>1998</td><td>N</td><td>450</td></tr>
  </table>
  <table class="appraisalAttributes">
    <tr><th>Description</th><th>Year Added</th><th>Units</th></tr>
    <tr><td>POOL - RESIDENTIAL</td><td>2005</td><td>1</td></tr>
    <tr><td>A/C-POOL HEATERS</td><td>2005</td><td>1</td></tr>
    <tr><td>XTRA/ADDITIONAL A/C UNITS</td><td>2010</td><td>1</td></tr>
  </table>
  <table class="appraisalAttributes">
    <tr><th colspan="3">Land Features</th></tr>
    <tr><th>Description</th><th>Year Added</th><th>Units</th></tr>
    <tr><td>WOOD FENCE</td><td>2005</td><td>120</td></tr>
    <tr><td>CONCRETE DRIVE</td><td>2005</td><td>1</td></tr>
  </table>
  <table class="appraisalAttributes">
    <tr><th colspan="4">Land Tracts</th></tr>
    <tr><th>Use Code</th><th>Use Code Description</th><th>Number of Units</th><th>Unit of Measure</th></tr>
    <tr><td>0100</td><td>SINGLE FAMILY RESIDENTIAL</td><td>0.25</td><td>Acres</td></tr>
  </table>
</div>
<div id="PermitDetails">
  <table class="detailsTable">
    <tr><th>Permit Number</th><th>Permit Type</th><th>Date</th></tr>
    <tr><td>ROF2018-001</td><td>Roof</td><td>2018</td></tr>
  </table>
</div>
<div id="GarbageDetails">Solid waste collection</div>
<div id="ElevationDetails">
  <table class="detailsTable">
    <tr><th colspan="5">FEMA Flood Insurance Rate Map</th></tr>
    <tr><th>Community</th><th>Panel</th><th>Version</th><th>Date</th><th>Flood Zone</th></tr>
    <tr><td>125124</td><td>0431</td><td>F</td><td>08/28/2008</td><td>AE</td></tr>
  </table>
  <a href="https://msc.fema.gov/portal/search?AddressQuery=4521 PELICAN WAY">FEMA</a>
</div>
<div id="SalesDetails">
  <table>
    <tr><th>Sale Price</th><th>Sale Date</th><th>OR Number</th></tr>
    <tr><td>$350,000</td><td>05/01/2015</td><td>2015000123</td></tr>
    <tr><td>$120,000</td><td>03/10/2001</td><td>2001000456</td></tr>
  </table>
</div>
<table id="valueGrid">
  <tr><th>Tax Year</th><th>Just</th><th>Capped Assessed</th><th>Taxable</th><th>Land</th><th>Building</th></tr>
  <tr><td>2023</td><td>$380,000</td><td>$290,000</td><td>$240,000</td><td>$140,000</td><td>$240,000</td></tr>
  <tr><td>2024</td><td>$400,000</td><td>$300,000</td><td>$250,000</td><td>$150,000</td><td>$250,000</td></tr>
</table>
</body></html>
"""


@pytest.fixture
def soup():
    return BeautifulSoup(LEE_HTML, "html.parser")


@pytest.fixture
def lee_work_dir(make_work_dir):
    return make_work_dir("input.html", LEE_HTML, "Lee", "4521 PELICAN WAY, CAPE CORAL, FL 33914", "10234567")


def test_extract_folio_id(soup):
    assert extract_folio_id(soup) == "10234567"
    link = BeautifulSoup("<a href='/Display.aspx?FolioID=998877'>x</a>", "html.parser")
    assert extract_folio_id(link) == "998877"
    assert extract_folio_id(BeautifulSoup("<p></p>", "html.parser")) == "unknown"


def test_owners_keyed_by_latest_sale_date(soup):
    payload = extract_owners(soup)
    owners = payload["owners_by_date"]["2015-05-01"]
    assert [(o["first_name"], o["last_name"], o["middle_name"]) for o in owners] == [
        ("JOHN", "SMITH", "ALLEN"),
        ("JANE", "DOE", None),
    ]
    assert payload["invalid_owners"] == []


def test_parse_owner_name():
    assert parse_owner_name("GULF COAST HOLDINGS LLC") == {"type": "company", "name": "GULF COAST HOLDINGS LLC"}
    assert parse_owner_name("MADONNA") is None


def test_structure(soup):
    structure = extract_structure(soup)
    assert structure["architectural_style_type"] == "Ranch"
    assert structure["attachment_type"] == "Detached"
    assert structure["finished_base_area"] == 1500
    assert structure["finished_upper_story_area"] == 600
    assert structure["roof_date"] == "2018-01-01"


def test_utility(soup):
    utility = extract_utility(soup)
    assert utility["public_utility_type"] == "ElectricityAvailable"
    assert utility["hvac_condensing_unit_present"] is True


def test_bedroom_bathroom_counts(soup):
    assert extract_bedroom_bathroom_counts(soup) == (3, 2, 1)


def test_layouts(soup):
    layouts = extract_layouts(soup)
    assert [layout["space_type"] for layout in layouts] == [
        "Building",
        "Attached Garage",
        "Bedroom",
        "Bedroom",
        "Bedroom",
        "Full Bathroom",
        "Full Bathroom",
        "Half Bathroom / Powder Room",
        "Pool Area",
    ]
    building = layouts[0]
    assert building["total_area_sq_ft"] == 2550
    assert building["heated_area_sq_ft"] == 2100
    assert building["livable_area_sq_ft"] == 2100
    assert layouts[-1]["pool_equipment"] == "Heated"
    assert layouts[-1]["is_exterior"] is True
    assert [layout["space_index"] for layout in layouts] == list(range(1, 10))


def test_lot(soup):
    lot = extract_lot(soup)
    assert lot["fencing_type"] == "Wood"
    assert lot["fence_length"] == "100ft"
    assert lot["fence_height"] == "6ft"
    assert lot["driveway_material"] == "Concrete"
    assert lot["lot_area_sqft"] == 10890
    assert lot["lot_size_acre"] == 0.25
    assert lot["lot_type"] == "LessThanOrEqualToOneQuarterAcre"


def test_fence_length_bucket():
    assert fence_length_bucket(20) == "25ft"
    assert fence_length_bucket(125) == "100ft"
    assert fence_length_bucket(5000) == "1000ft"


def test_flood_storm(soup):
    flood = extract_flood_storm(soup)
    assert flood["community_id"] == "125124"
    assert flood["panel_number"] == "0431"
    assert flood["map_version"] == "F"
    assert flood["effective_date"] == "2008-08-28"
    assert flood["flood_zone"] == "AE"
    assert flood["flood_insurance_required"] is True
    assert flood["fema_search_url"] == "https://msc.fema.gov/portal/search?AddressQuery=4521%20PELICAN%20WAY"


def test_sales_sorted_oldest_first(soup):
    sales = extract_sales(soup)
    assert [s["ownership_transfer_date"] for s in sales] == ["2001-03-10", "2015-05-01"]
    assert sales[1]["purchase_price_amount"] == 350000


def test_taxes(soup):
    taxes = extract_taxes(soup)
    assert [t["tax_year"] for t in taxes] == [2023, 2024]
    latest = taxes[1]
    assert latest["property_market_value_amount"] == 400000
    assert latest["property_assessed_value_amount"] == 300000
    assert latest["property_taxable_value_amount"] == 250000
    assert latest["property_land_amount"] == 150000
    assert latest["property_building_amount"] == 250000


def test_try_map_property_type():
    assert try_map_property_type("Single Family Residential") == "SingleFamily"
    assert try_map_property_type("DUPLEX", living_units=2) == "Duplex"
    assert try_map_property_type("Duplex") == "2Units"
    assert try_map_property_type("Condominium Detached") == "DetachedCondominium"
    assert try_map_property_type("Mobile Home Double Wide") == "ManufacturedHousingMultiWide"
    assert try_map_property_type("Office Building") is None
    assert try_map_property_type(None) is None


def test_map_property_type_collapses_categories():
    assert map_property_type("VacantLand") == "LandParcel"
    assert map_property_type("ManufacturedHousingSingleWide") == "ManufacturedHome"
    assert map_property_type("DetachedCondominium") == "Unit"
    assert map_property_type("Cooperative") == "Unit"
    assert map_property_type("SingleFamily") == "Building"
    assert map_property_type("3Units") == "Building"
    assert map_property_type(None) == "Building"


def test_use_code_classification():
    assert map_build_status("VACANT COMMERCIAL") == "VacantLand"
    assert map_build_status("UNDER CONSTRUCTION") == "UnderConstruction"
    assert map_build_status("SINGLE FAMILY RESIDENTIAL") == "Improved"
    assert map_build_status(None) is None

    assert map_structure_form("MOBILE HOME PARK") == "ManufacturedHomeInPark"
    assert map_structure_form("MULTI-FAMILY 10 OR MORE UNITS") == "MultiFamilyMoreThan10"
    assert map_structure_form("TOWNHOUSE") == "TownhouseRowhouse"
    assert map_structure_form(None, "01 - Ranch") == "SingleFamilyDetached"
    assert map_structure_form("OFFICE BUILDING, ONE STORY") is None

    assert map_property_usage_type("OFFICE BUILDING, ONE STORY") == "OfficeBuilding"
    assert map_property_usage_type("STORES, ONE STORY") == "Commercial"
    assert map_property_usage_type("CROPLAND CLASS 2") == "CroplandClass2"
    assert map_property_usage_type(None, "Duplex") == "Residential"
    assert map_property_usage_type(None, None, "Warehouse") == "Warehouse"

    assert map_ownership_estate_type("CONDOMINIUM") == "Condominium"
    assert map_ownership_estate_type("TIMESHARE") == "Timeshare"
    assert map_ownership_estate_type("SINGLE FAMILY RESIDENTIAL") == "FeeSimple"
    assert map_ownership_estate_type(None) is None


def test_extract_property(soup):
    prop = extract_property(soup, "10234567")
    assert prop["property_type"] == "Building"
    assert prop["build_status"] == "Improved"
    assert prop["structure_form"] == "SingleFamilyDetached"
    assert prop["property_usage_type"] == "Residential"
    assert prop["ownership_estate_type"] == "FeeSimple"
    assert prop["livable_floor_area"] == "2100"
    assert prop["property_structure_built_year"] == 1998
    assert prop["number_of_units"] == 1
    assert prop["number_of_units_type"] == "One"
    assert prop["property_legal_description_text"] == "CAPE CORAL UNIT 12 BLK 345 LOTS 1 + 2"


def test_extract_property_non_residential_model_defaults_to_building():
    html = '<table class="appraisalAttributes"><tr><td>Model Type</td><td>Office Building</td></tr></table>'
    prop = extract_property(BeautifulSoup(html, "html.parser"), "1")
    assert prop["property_type"] == "Building"
    assert prop["property_usage_type"] == "OfficeBuilding"
    assert prop["ownership_estate_type"] == "FeeSimple"
    assert prop["structure_form"] is None


def _land_tract_html(code, description):
    return f"""
    <div id="PropertyDetailsCurrent"><table class="appraisalAttributes">
      <tr><th colspan="4">Land Tracts</th></tr>
      <tr><th>Use Code</th><th>Use Code Description</th><th>Number of Units</th><th>Unit of Measure</th></tr>
      <tr><td>{code}</td><td>{description}</td><td>1.00</td><td>Acres</td></tr>
    </table></div>
    """


def test_extract_property_from_use_code():
    vacant = extract_property(BeautifulSoup(_land_tract_html("1000", "VACANT COMMERCIAL"), "html.parser"), "2")
    assert vacant["property_type"] == "LandParcel"
    assert vacant["build_status"] == "VacantLand"
    assert vacant["property_usage_type"] == "Commercial"

    office = extract_property(
        BeautifulSoup(_land_tract_html("1700", "OFFICE BUILDING, ONE STORY"), "html.parser"), "3"
    )
    assert office["property_type"] == "Building"
    assert office["build_status"] == "Improved"
    assert office["property_usage_type"] == "OfficeBuilding"


def test_owner_date_key_is_latest_sale_in_any_row_order():
    html = LEE_HTML.replace(
        "<tr><td>$350,000</td><td>05/01/2015</td><td>2015000123</td></tr>\n"
        "    <tr><td>$120,000</td><td>03/10/2001</td><td>2001000456</td></tr>",
        "<tr><td>$120,000</td><td>03/10/2001</td><td>2001000456</td></tr>\n"
        "    <tr><td>$350,000</td><td>05/01/2015</td><td>2015000123</td></tr>",
    )
    assert html != LEE_HTML
    soup = BeautifulSoup(html, "html.parser")
    assert extract_latest_sale_date(soup) == "2015-05-01"
    assert list(extract_owners(soup)["owners_by_date"]) == ["2015-05-01"]


def test_extract_address_falls_back_to_street_line(soup):
    address = extract_address(soup, {"full_address": "2500 US HWY 41 N", "county_jurisdiction": "Lee"})
    assert address["street_number"] == "2500"
    assert address["street_name"] == "US HWY"
    assert address["route_number"] == "41"
    assert address["street_post_directional_text"] == "N"
    assert address["township"] == "44"


def test_lee_pipeline(lee_work_dir, data_file, tmp_path):
    result = run_county_pipeline(lee_work_dir, validate=True, schemas_dir=str(tmp_path / "schemas"))

    assert result["county"] == "lee"
    assert result["errors"] == []
    assert result["validation_errors"] == {}
    assert result["success"]

    assert data_file(lee_work_dir, "property.json")["parcel_identifier"] == "10234567"

    address = data_file(lee_work_dir, "address.json")
    assert address["street_number"] == "4521"
    assert address["street_name"] == "PELICAN"
    assert address["city_name"] == "CAPE CORAL"
    assert (address["township"], address["range"], address["section"], address["block"]) == ("44", "23", "14", "12")
    assert address["latitude"] == 26.6123

    persons = [data_file(lee_work_dir, f"person_{i}.json") for i in (1, 2)]
    assert [(p["first_name"], p["last_name"]) for p in persons] == [("John", "Smith"), ("Jane", "Doe")]
    assert persons[0]["middle_name"] == "Allen"
    assert data_file(lee_work_dir, "relationship_sales_history_person_1.json")["from"] == {
        "/": "./sales_history_2.json"
    }

    assert data_file(lee_work_dir, "flood_storm_information.json")["flood_zone"] == "AE"
    assert data_file(lee_work_dir, "tax_2.json")["tax_year"] == 2024
    assert data_file(lee_work_dir, "layout_9.json")["space_type"] == "Pool Area"
    assert data_file(lee_work_dir, "structure.json")["roof_date"] == "2018-01-01"
    assert data_file(lee_work_dir, "utility.json")["hvac_condensing_unit_present"] is True
    assert "relationship_property_flood_storm_information.json" in result["relationship_files"]
