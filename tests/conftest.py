import json
import os

import pytest

SOURCE_REQUEST = {"method": "GET", "url": "https://example.com/parcel"}


COLLIER_HTML = """
<html><body>
<span id="ParcelID">00123456789</span>
<span id="OwnerLine1">SMITH, JOHN A</span>
<span id="OwnerLine2">ACME HOLDINGS LLC</span>
<span id="OwnerLine3">123 MAIN ST</span>
<span id="OwnerLine4">NAPLES FL 34102</span>
<span id="OwnerCity">NAPLES</span>
<span id="OwnerState">FL</span>
<span id="OwnerZip">34102</span>
<span id="Legal">PINE RIDGE EXT BLK 4 LOT 12</span>
<span id="SCDescription">123 - PINE RIDGE</span>
<span id="UCDescription">1 - SINGLE FAMILY RESIDENTIAL</span>
<span id="Township">49</span>
<span id="Range">25</span>
<span id="Section">12</span>
<span id="Municipality">COUNTY</span>
<table>
  <tr>
    <td><span id="BLDGCLASS1">SINGLE FAMILY RESIDENCE</span></td>
    <td><span id="YRBUILT1">1995</span></td>
    <td><span id="BASEAREA1">2,000</span></td>
    <td><span id="TYADJAREA1">2,500</span></td>
  </tr>
  <tr>
    <td><span id="BLDGCLASS2">POOL</span></td>
    <td><span id="YRBUILT2">2001</span></td>
    <td><span id="BASEAREA2">400</span></td>
    <td><span id="TYADJAREA2">400</span></td>
  </tr>
</table>
<table id="BuildingAdditional">
  <tr><td>1</td><td>1995</td><td>SINGLE FAMILY RESIDENCE</td><td>2,000</td></tr>
</table>
<table id="SalesAdditional">
  <tr><th>Date</th><th>Amount</th><th>Book-Page</th></tr>
  <tr>
    <td><span id="SaleDate1">03/15/2020</span></td>
    <td><span id="SaleAmount1">$450,000</span></td>
    <td><a href="javascript:DownloadPDF('5678','123','456')">123-456</a></td>
  </tr>
  <tr>
    <td><span id="SaleDate2">06/01/2010</span></td>
    <td><span id="SaleAmount2">$200,000</span></td>
    <td></td>
  </tr>
</table>
<table id="PermitAdditional">
  <tr>
    <td><span id="permitno1">PRBD2019-0001</span></td>
    <td>RES</td>
    <td><span id="IssuedDate1">01/10/2019</span></td>
    <td>FINAL</td>
    <td><span id="codate1">02/15/2019</span></td>
    <td><span id="tempcodate1"></span></td>
    <td><span id="finalbldgdate1"></span></td>
    <td><span id="permittype1">ROOF REPLACEMENT</span></td>
  </tr>
</table>
<span id="RollType">2024 Certified Roll</span>
<span id="LandJustValue">$150,000</span>
<span id="ImprovementsJustValue">$350,000</span>
<span id="TotalJustValue">$500,000</span>
<span id="CountyTaxableValue">$450,000</span>
<span id="TotalTaxes">$6,000.00</span>
</body></html>
"""


HILLSBOROUGH_HTML = """
<html><body>
<table><tr><td>Folio:</td><td data-bind="text: displayStrap">193029-0000</td></tr></table>
<h4 data-bind="html: publicOwner">SMITH JOHN<br/>DOE JANE M</h4>
<table>
  <tr><td>Property Use:</td><td>0100 SINGLE FAMILY R</td></tr>
  <tr><td>Subdivision:</td><td>PALM RIVER ESTATES</td></tr>
  <tr><td>PIN:</td><td>U-23-28-18-1AB-000001-00010.0</td></tr>
</table>
<h5>Site Address</h5>
<p>1234 N MAIN ST, TAMPA, FL 33602</p>
<h5>Mailing Address</h5>
<p>PO BOX 100<br/>TAMPA FL 33601</p>
<table><tbody data-bind="foreach: fullLegal">
  <tr><td>1</td><td>PALM RIVER ESTATES LOT 10 BLOCK 1</td></tr>
</tbody></table>
<div data-bind="foreach: buildings()">
  <h4 class="section-header">Building 1</h4>
  <div class="section-wrap">
    <table class="report-table"><tbody>
      <tr><td>Type</td><td>01</td><td>SINGLE FAMILY</td></tr>
      <tr><td>Architectural Style</td><td>RA</td><td>RANCH</td></tr>
      <tr><td>Condition</td><td>3</td><td>AVERAGE</td></tr>
      <tr><td>Exterior Wall</td><td>8</td><td>CONCRETE BLOCK STUCCO</td></tr>
      <tr><td>Interior Flooring</td><td>14</td><td>CARPET</td></tr>
      <tr><td>Interior Flooring</td><td>12</td><td>CERAMIC TILE</td></tr>
      <tr><td>Roof Structure</td><td>03</td><td>GABLE OR HIP</td></tr>
      <tr><td>Roof Cover</td><td>03</td><td>COMPOSITION SHINGLE</td></tr>
      <tr><td>Class</td><td>C</td><td>MASONRY</td></tr>
      <tr><td>Heat/Ac</td><td>2</td><td>CENTRAL</td></tr>
      <tr><td>Bedrooms</td><td>3</td><td></td></tr>
      <tr><td>Bathrooms</td><td>2.5</td><td></td></tr>
      <tr><td>Stories</td><td>1.0</td><td></td></tr>
    </tbody></table>
    <table class="data-table">
      <tfoot><tr><th>Total</th><th>2,400</th><th>1,850</th></tr></tfoot>
    </table>
  </div>
</div>
<h4>Sales History</h4>
<div><table><tbody>
  <tr>
    <td><a href="https://pubrec.example.com/doc/1">12345 / 678</a></td>
    <td>2019123456</td><td>5</td><td>2019</td><td>WD</td><td>Q</td><td>I</td><td>$350,000</td>
  </tr>
  <tr>
    <td>9876 / 54</td>
    <td></td><td>11</td><td>2005</td><td>QC</td><td>U</td><td>I</td><td>$100</td>
  </tr>
</tbody></table></div>
<table class="permitinfo"><tbody>
  <tr><td>1</td><td>BLD-19-001</td><td>REROOF</td><td>03/01/2019</td></tr>
</tbody></table>
<div data-bind="visible: landLines().length > 0"><table><tbody>
  <tr>
    <td><span data-bind="text: publicLandType">SF</span></td>
    <td><span data-bind="text: publicUnits">8,500</span></td>
    <td><span data-bind="text: frontage">70</span></td>
    <td><span data-bind="text: depth">120</span></td>
  </tr>
</tbody></table></div>
<h4 class="section-header">Value Summary</h4>
<div><table><tbody>
  <tr><td>County</td><td>$300,000</td><td>$250,000</td><td>$50,000</td><td>$200,000</td></tr>
</tbody></table></div>
<div class="value-summary-years"><span data-bind="text: displayedTaxYear">2024</span></div>
</body></html>
"""


MIAMI_DADE_DATA = {
    "PropertyInfo": {
        "FolioNumber": "01-3126-045-0040",
        "DORCode": "0101",
        "DORDescription": "RESIDENTIAL - SINGLE FAMILY",
        "UnitCount": 1,
        "FloorCount": 1,
        "BedroomCount": 3,
        "BathroomCount": 2,
        "HalfBathroomCount": 1,
        "BuildingGrossArea": 2100,
        "BuildingHeatedArea": 1800,
        "LotSize": 7500,
        "YearBuilt": "1955",
        "Municipality": "Miami",
        "SubdivisionDescription": "SHENANDOAH",
        "PrimaryZoneDescription": "SINGLE FAMILY",
    },
    "LegalDescription": {"Description": "SHENANDOAH SUB PB 10-71 LOT 4 BLK 2 LOT SIZE 50.000 X 150"},
    "SiteAddress": [{
        "StreetNumber": 1234,
        "StreetPrefix": "SW",
        "StreetName": "14",
        "StreetSuffix": "TER",
        "StreetSuffixDirection": "",
        "Unit": "",
        "City": "Miami",
        "Zip": "33145-1234",
    }],
    "MailingAddress": {
        "Address1": "1234 SW 14 TER",
        "Address2": "",
        "Address3": "",
        "City": "MIAMI",
        "State": "FL",
        "ZipCode": "33145-1234",
    },
    "OwnerInfos": [{"Name": "JOHN R & MARIE V GLOWACKI"}, {"Name": "SUNSHINE PROPERTIES LLC"}],
    "Building": {"BuildingInfos": [
        {"BuildingNo": 1, "SegNo": 1, "Actual": 1955, "Effective": 1970},
        {"BuildingNo": 1, "SegNo": 2, "Actual": 1980, "Effective": 1985},
    ]},
    "ExtraFeature": {"ExtraFeatureInfos": [
        {"Description": "Patio - Concrete Slab", "Units": 200},
        {"Description": "Wood Fence 5-6 ft high", "Units": 120},
    ]},
    "Assessment": {"AssessmentInfos": [
        {"Year": 2024, "AssessedValue": 350000, "TotalValue": 500000, "BuildingOnlyValue": 200000, "LandValue": 300000},
        {"Year": 2023, "AssessedValue": 340000, "TotalValue": 480000, "BuildingOnlyValue": 190000, "LandValue": 290000},
    ]},
    "Taxable": {"TaxableInfos": [
        {"Year": 2024, "SchoolTaxableValue": 340000},
        {"Year": 2023, "SchoolTaxableValue": 320000},
    ]},
    "SalesInfos": [
        {
            "DateOfSale": "06/15/2018",
            "SalePrice": 425000,
            "OfficialRecordBook": "31000",
            "OfficialRecordPage": "1234",
            "SaleInstrument": "WDE",
            "EncodedRecordBookAndPage": "abc123",
        },
        {"DateOfSale": "01/10/2001", "SalePrice": 150000, "SaleInstrument": "QCD"},
    ],
}


PALM_BEACH_MODEL = {
    "propertyDetail": {
        "PCN": "00-43-44-05-01-002-0010",
        "UseCode": "0100 - SINGLE FAMILY",
        "LegalDesc": "PALM GARDENS BLK 2 LOT 10",
        "Units": "1",
        "Subdivision": "PALM GARDENS",
        "Zoning": "RS",
        "Location": "812 CENTER ST",
        "AddressLine1": "812 CENTER ST",
        "AddressLine2": "JUPITER FL 33458 1234",
        "AddressLine3": "",
        "Acres": "0.2000",
        "SqFt": "8,712",
    },
    "assessmentInfo": [
        {"TaxYear": "2024", "AssessedValue": "$300,000", "ExemptionAmount": "$50,000", "TaxableValue": "$250,000"},
        {"TaxYear": "2023", "AssessedValue": "$290,000", "TaxableValue": "$240,000"},
    ],
    "appraisalInfo": [
        {"TaxYear": "2024", "ImprovementValue": "$200,000", "LandValue": "$150,000", "TotalMarketValue": "$350,000"},
    ],
    "taxInfo": [{"TaxYear": "2024", "AdValorem": "$5,000"}],
    "salesInfo": [
        {
            "SaleDate": "05/04/2023",
            "Price": "450000",
            "Book": "34304",
            "Page": " 01188",
            "SaleType": "WARRANTY DEED",
            "OwnerName": "SMITH JOHN A & JANE",
        },
        {"SaleDate": "01/15/2001", "Price": "100", "Book": "", "Page": "", "SaleType": "QC", "OwnerName": "OCEAN HOLDINGS LLC"},
    ],
    "structuralDetails": {"StructuralElements": [
        {"BuildingNumber": "1", "DetailsSection": "Top", "ElementName": "Exterior Wall 1", "ElementValue": "MSY: CB STUCCO"},
        {"BuildingNumber": "1", "DetailsSection": "Top", "ElementName": "Roof Structure ", "ElementValue": "WOOD TRUSS"},
        {"BuildingNumber": "1", "DetailsSection": "Top", "ElementName": "Roof Cover ", "ElementValue": "CONCRETE TILE"},
        {"BuildingNumber": "1", "DetailsSection": "Top", "ElementName": "Floor Type 1", "ElementValue": "CERAMIC TILE"},
        {"BuildingNumber": "1", "DetailsSection": "Top", "ElementName": "Air Condition Desc.", "ElementValue": "HTG & AC"},
        {"BuildingNumber": "1", "DetailsSection": "Top", "ElementName": "Heat Type", "ElementValue": "FORCED AIR DUCT"},
        {"BuildingNumber": "1", "DetailsSection": "Top", "ElementName": "Heat Fuel", "ElementValue": "ELECTRIC"},
        {"BuildingNumber": "1", "DetailsSection": "Top", "ElementName": "Year Built", "ElementValue": "1987"},
        {"BuildingNumber": "1", "DetailsSection": "Top", "ElementName": "Stories", "ElementValue": "1"},
        {"BuildingNumber": "1", "DetailsSection": "Top", "ElementName": "Bed Rooms", "ElementValue": "2"},
        {"BuildingNumber": "1", "DetailsSection": "Top", "ElementName": "Full Baths", "ElementValue": "1"},
        {"BuildingNumber": "1", "DetailsSection": "Bottom", "ElementName": "BAS BASE AREA", "ElementValue": "1,500"},
        {"BuildingNumber": "1", "DetailsSection": "Bottom", "ElementName": "FGR FINISHED GARAGE", "ElementValue": "400"},
        {"BuildingNumber": "1", "DetailsSection": "Bottom", "ElementName": "FOP FINISHED OPEN PORCH", "ElementValue": "60"},
        {"BuildingNumber": "1", "DetailsSection": "Bottom", "ElementName": "FOP FINISHED OPEN PORCH", "ElementValue": "40"},
        {"BuildingNumber": "1", "DetailsSection": "Bottom", "ElementName": "Total Square Footage", "ElementValue": "2,000"},
        {"BuildingNumber": "1", "DetailsSection": "Bottom", "ElementName": "Area Under Air", "ElementValue": "1,500"},
        {"BuildingNumber": "2", "DetailsSection": "Top", "ElementName": "Exterior Wall 1", "ElementValue": "WSF: STUCCO"},
        {"BuildingNumber": "2", "DetailsSection": "Top", "ElementName": "Year Built", "ElementValue": "1995"},
        {"BuildingNumber": "2", "DetailsSection": "Bottom", "ElementName": "Total Square Footage", "ElementValue": "300"},
    ]},
    "extraDetails": [
        {"Description": "Swimming Pool", "FeatureUnits": "450", "YrBuilt": "1990"},
        {"Description": "Fence - Wood", "FeatureUnits": "100", "YrBuilt": "1990"},
    ],
}

PALM_BEACH_PAGE = """
<html><body>
<span id="MainContent_lblPCN">00-43-44-05-01-002-0010</span>
<div class="has-accordion">
  <h2>Owner Information</h2>
  <table>
    <tbody>
      <tr><th>Owner(s)</th><th>Mailing Address</th></tr>
      <tr><td>SMITH JOHN A &amp;</td><td>812 CENTER ST</td></tr>
      <tr><td>SMITH JANE</td><td>JUPITER FL 33458 1234</td></tr>
    </tbody>
  </table>
</div>
<div class="has-accordion">
  <h2>Sales Information</h2>
  <table>
    <tbody>
      <tr><th>Sales Date</th><th>Price</th><th>OR Book/Page</th><th>Sale Type</th><th>Owner</th></tr>
      <tr><td>05/04/2023</td><td>$450,000</td><td>34304 / 01188</td><td>WARRANTY DEED</td><td>SMITH JOHN A &amp; JANE</td></tr>
      <tr><td>01/15/2001</td><td>$100</td><td></td><td>QUIT CLAIM</td><td>OCEAN HOLDINGS LLC</td></tr>
    </tbody>
  </table>
</div>
<script>
function onClickTaxCalculator() {
    var model = __MODEL__;
    showCalculator(model);
}
</script>
</body></html>
"""


def palm_beach_html(model=None):
    return PALM_BEACH_PAGE.replace("__MODEL__", json.dumps(PALM_BEACH_MODEL if model is None else model))


PALM_BEACH_HTML = palm_beach_html()


LEON_HTML = """
<html><body>
<input type="hidden" id="ParcelId" value="2121500000010" />
<div id="summaryCard" class="card">
  <div class="mb-1"><label>Parcel ID:</label><div>21-21-50-000-0010</div></div>
  <div class="mb-1">
    <label>Owner(s):</label>
    <div>SMITH JOHN A<br/>SMITH JANE<br/>CAPITAL OAKS HOLDINGS LLC<br/>DOE JOHN &amp; MARY<br/><a href="#">View All Owners</a></div>
  </div>
  <div class="mb-1"><label>Location:</label><div>1234 N MONROE ST</div></div>
  <div class="mb-1"><label>Mailing Address:</label><div>PO BOX 100</div><div>TALLAHASSEE FL 32302</div></div>
  <div class="mb-1"><label>Subdivision Name:</label><div>LAFAYETTE PARK</div></div>
  <div class="mb-1"><label>Property Use:</label><div>0100 - Single Family</div></div>
  <div class="mb-1"><label>Acreage:</label><div>0.3400</div></div>
  <div class="mb-1"><label>Legal Desc:</label><div>LAFAYETTE PARK</div><a href="#">View All Legal</a></div>
</div>
<div id="legalModal" class="modal">
  <div class="modal-body"><div class="row"><div>LAFAYETTE PARK</div><div>LOT 7 BLOCK C</div></div></div>
</div>
<div class="card">
  <div class="card-header"><h5>Sales Information</h5></div>
  <table>
    <thead><tr><th>Sale Date</th><th>Price</th><th>Book/Page</th><th>Instrument</th><th>Qualified</th></tr></thead>
    <tbody>
      <tr><td>03/01/2010</td><td>$150,000</td><td>4100/0567</td><td>QC</td><td>U</td></tr>
      <tr>
        <td>06/15/2020</td><td>$325,000</td>
        <td><a href="https://records.example.com/or?book=5432&amp;page=1234">5432/1234</a></td>
        <td>WD</td><td>Q</td>
      </tr>
    </tbody>
  </table>
</div>
<div class="card">
  <h5>Certified Value History</h5>
  <table><tbody>
    <tr><td>2025</td><td>$60,000</td><td>$200,000</td><td>$260,000</td><td>$0</td><td>$180,000</td></tr>
    <tr><td>2024</td><td>$55,000</td><td>$190,000</td><td>$245,000</td><td>$0</td><td>$175,000</td></tr>
  </tbody></table>
</div>
<div class="card">
  <h5>2025 Certified Taxable Values</h5>
  <table><tbody>
    <tr><td>Leon County</td><td>$260,000</td><td>$75,000</td><td>$185,000</td><td>$50,000</td><td>$135,000</td></tr>
  </tbody></table>
</div>
<table class="table table-striped table-hover details">
  <thead><tr><th>#</th><th>Use</th><th>Type</th><th>Year Built</th><th>Heated</th><th>Auxiliary</th></tr></thead>
  <tbody class="building-table">
    <tr data-number="1"><th>1</th><td>Single Family</td><td>Residential</td><td>1998</td><td>1,850</td><td>450</td></tr>
    <tr data-number="2"><th>2</th><td>Detached Garage</td><td>Residential</td><td>2005</td><td>0</td><td>600</td></tr>
  </tbody>
</table>
<div id="single-building">
  <div id="building-details">
    <table class="details"><tbody>
      <tr><th>Frame</th><td>Wood Frame</td></tr>
      <tr><th>Exterior Wall</th><td>Brick/Stucco</td></tr>
      <tr><th>Roof Frame</th><td>Gable/Hip</td></tr>
      <tr><th>Roof Cover / Deck</th><td>Composition Shingle</td></tr>
      <tr><th>Pool</th><td>Yes</td></tr>
    </tbody></table>
  </div>
  <div id="building-cards">
    <table><tbody>
      <tr><td>A0</td><td>Main Living Area</td><td>1,850</td></tr>
      <tr><td>A1</td><td>Garage Finished</td><td>400</td></tr>
      <tr><td>A2</td><td>Open Porch Finished</td><td>50</td></tr>
    </tbody></table>
  </div>
</div>
</body></html>
"""


def write_json_file(path, data):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f)


def read_json_file(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def make_work_dir(tmp_path):
    """Build a county work directory holding one input file plus the seed files."""

    def _make(input_name, content, county, full_address, parcel_id):
        work_dir = tmp_path / "work"
        work_dir.mkdir()
        input_path = work_dir / input_name
        if isinstance(content, str):
            input_path.write_text(content, encoding="utf-8")
        else:
            write_json_file(input_path, content)
        write_json_file(work_dir / "unnormalized_address.json", {
            "full_address": full_address,
            "county_jurisdiction": county,
            "source_http_request": SOURCE_REQUEST,
            "request_identifier": parcel_id,
        })
        write_json_file(work_dir / "property_seed.json", {
            "parcel_id": parcel_id,
            "source_http_request": SOURCE_REQUEST,
            "request_identifier": parcel_id,
        })
        return str(work_dir)

    return _make


@pytest.fixture
def collier_work_dir(make_work_dir):
    return make_work_dir("input.html", COLLIER_HTML, "Collier", "123 PINE RIDGE RD, NAPLES, FL 34108", "00123456789")


@pytest.fixture
def hillsborough_work_dir(make_work_dir):
    return make_work_dir(
        "input.html", HILLSBOROUGH_HTML, "Hillsborough", "1234 N MAIN ST, TAMPA, FL 33602", "193029-0000"
    )


@pytest.fixture
def miami_dade_work_dir(make_work_dir):
    return make_work_dir(
        "input.json", MIAMI_DADE_DATA, "Miami Dade", "1234 SW 14TH TER, MIAMI, FL 33145", "01-3126-045-0040"
    )


@pytest.fixture
def data_file():
    """Reader for files under <work_dir>/data."""

    def _read(work_dir, filename):
        return read_json_file(os.path.join(work_dir, "data", filename))

    return _read


@pytest.fixture
def palm_beach_work_dir(make_work_dir):
    return make_work_dir(
        "input.html", PALM_BEACH_HTML, "Palm Beach", "812 CENTER ST, JUPITER, FL 33458", "00434405010020010"
    )


@pytest.fixture
def leon_work_dir(make_work_dir):
    return make_work_dir("input.html", LEON_HTML, "Leon", "1234 N MONROE ST, TALLAHASSEE, FL 32303", "2121500000010")
