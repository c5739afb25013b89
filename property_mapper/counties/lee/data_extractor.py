import logging
import re
from urllib.parse import quote

from ... import config
from ...address import parse_full_address, parse_street_components
from ...owners import current_owners
from ...records import (
    lot_type_for_acres,
    new_address,
    new_company,
    new_flood_storm,
    new_lot,
    new_person,
    new_property,
    new_sales_history,
    new_tax,
    units_type_for_count,
)
from ...utils import clean_text, format_name, node_text, parse_currency, parse_date_to_iso, parse_float, parse_int
from ..common import (
    EntityWriter,
    data_dir_for,
    load_html,
    load_owners_file,
    load_seed,
    load_unnormalized_address,
    owners_entry,
    property_key,
)
from .owner_processor import extract_folio_id, find_sales_table, header_mapped_rows, sale_row_date
from .structure_extractor import attribute_header_value

logger = logging.getLogger(__name__)

SQ_FT_PER_ACRE = 43560

HIGH_RISK_FLOOD_ZONES = {"A", "AE", "AH", "AO", "AR", "A99", "V", "VE"}

FENCE_TYPES = [
    ("stockade", "Stockade"),
    ("wood", "Wood"),
    ("chain", "ChainLink"),
    ("link", "ChainLink"),
    ("vinyl", "Vinyl"),
    ("aluminum", "Aluminum"),
    ("iron", "WroughtIron"),
    ("wrought", "WroughtIron"),
    ("privacy", "Privacy"),
    ("picket", "Picket"),
    ("composite", "Composite"),
]

# upper bound in linear feet -> fence_length bucket
FENCE_LENGTH_BUCKETS = [
    (30, "25ft"),
    (60, "50ft"),
    (87, "75ft"),
    (125, "100ft"),
    (175, "150ft"),
    (250, "200ft"),
    (400, "300ft"),
    (750, "500ft"),
]

DRIVEWAY_MATERIALS = [
    ("concrete", "Concrete"),
    ("asphalt", "Asphalt"),
    ("paver", "Pavers"),
    ("gravel", "Gravel"),
]

UNITS_PROPERTY_TYPES = {1: "SingleFamily", 2: "Duplex", 3: "3Units", 4: "4Units"}


# Detailed categories collapse onto four property types; anything else is a building
PROPERTY_TYPE_BY_CATEGORY = {
    "VacantLand": "LandParcel",
    "ManufacturedHousing": "ManufacturedHome",
    "ManufacturedHousingSingleWide": "ManufacturedHome",
    "ManufacturedHousingMultiWide": "ManufacturedHome",
    "Condominium": "Unit",
    "DetachedCondominium": "Unit",
    "NonWarrantableCondo": "Unit",
    "Cooperative": "Unit",
}

BUILD_STATUS_RULES = [
    (r"vacant", "VacantLand"),
    (r"construction", "UnderConstruction"),
]

STRUCTURE_FORM_RULES = [
    (r"(manufactured|mobile home).*park|park.*(manufactured|mobile home)", "ManufacturedHomeInPark"),
    (r"manufactured|mobile home", "ManufacturedHomeOnLand"),
    (r"modular", "Modular"),
    (r"single.?family.*\b(attached|semi)|\b(attached|semi).*single.?family", "SingleFamilySemiDetached"),
    (r"single.?family", "SingleFamilyDetached"),
    (r"town ?house|townhome|row ?house", "TownhouseRowhouse"),
    (r"duplex|\b2 units?\b", "Duplex"),
    (r"triplex|\b3 units?\b", "Triplex"),
    (r"fourplex|quadplex|\b4 units?\b", "Quadplex"),
    (r"multi.?family.*(10 or more|10\+|more than 10)", "MultiFamilyMoreThan10"),
    (r"multi.?family.*(5 or more|5\+|5 to 9)", "MultiFamily5Plus"),
    (r"multi.?family", "MultiFamilyLessThan10"),
    (r"apartment", "ApartmentUnit"),
    (r"\bloft", "Loft"),
]

IMPROVEMENT_FORM_RULES = [
    (r"ranch|bungalow|cottage|single", "SingleFamilyDetached"),
    (r"town|row", "TownhouseRowhouse"),
    (r"duplex", "Duplex"),
    (r"triplex", "Triplex"),
    (r"quad|fourplex", "Quadplex"),
    (r"apartment", "ApartmentUnit"),
    (r"multi", "MultiFamily5Plus"),
    (r"manufactured|mobile", "ManufacturedHomeOnLand"),
    (r"modular", "Modular"),
]

PROPERTY_USAGE_RULES = [
    (r"retail (store|shop)", "RetailStore"),
    (r"department store", "DepartmentStore"),
    (r"supermarket|grocery", "Supermarket"),
    (r"^(?=.*regional)(?=.*(shopping center|\bmall\b))", "ShoppingCenterRegional"),
    (r"shopping center|\bmall\b", "ShoppingCenterCommunity"),
    (r"medical office|doctor|clinic", "MedicalOffice"),
    (r"office", "OfficeBuilding"),
    (r"restaurant|cafe|diner", "Restaurant"),
    (r"hotel|motel|\binn\b", "Hotel"),
    (r"golf course", "GolfCourse"),
    (r"warehouse|storage", "Warehouse"),
    (r"^(?=.*heavy)(?=.*(manufactur|factory))", "HeavyManufacturing"),
    (r"manufactur|factory", "LightManufacturing"),
    (r"^(?=.*public)(?=.*school)", "PublicSchool"),
    (r"school", "PrivateSchool"),
    (r"^(?=.*public)(?=.*hospital)", "PublicHospital"),
    (r"hospital", "PrivateHospital"),
    (r"church|temple|mosque|synagogue", "Church"),
    (r"mobile home park|trailer park", "MobileHomePark"),
    (r"service station|gas station", "ServiceStation"),
    (r"auto (sales|repair)|car dealer", "AutoSalesRepair"),
    (r"bank|financial|credit union", "FinancialInstitution"),
    (r"theater|cinema", "Theater"),
    (r"entertainment|amusement", "Entertainment"),
    (r"nursery|greenhouse", "NurseryGreenhouse"),
    (r"vineyard|winery", "VineyardWinery"),
    (r"data ?center", "DataCenter"),
    (r"solar", "SolarFarm"),
    (r"residential|single.?family|multi.?family|condo|town ?house|duplex|mobile home", "Residential"),
    (r"commercial|retail|store|business", "Commercial"),
    (r"industrial", "Industrial"),
    (r"^(?=.*crop ?land)(?=.*class ?2)", "CroplandClass2"),
    (r"^(?=.*crop ?land)(?=.*class ?3)", "CroplandClass3"),
    (r"crop ?land", "DrylandCropland"),
    (r"\bhay\b", "HayMeadow"),
    (r"timber", "TimberLand"),
    (r"^(?=.*(grazing|pasture))(?=.*improved)", "ImprovedPasture"),
    (r"^(?=.*(grazing|pasture))(?=.*native)", "NativePasture"),
    (r"grazing", "GrazingLand"),
    (r"orchard|grove|citrus", "OrchardGroves"),
    (r"poultry", "Poultry"),
    (r"livestock|dairy", "LivestockFacility"),
    (r"agricultur|farm|pasture", "Agricultural"),
    (r"recreation|park", "Recreational"),
    (r"conservation|preserve", "Conservation"),
    (r"retirement|senior", "Retirement"),
]

IMPROVEMENT_USAGE_RULES = [
    (r"office", "OfficeBuilding"),
    (r"retail|store", "RetailStore"),
    (r"warehouse", "Warehouse"),
    (r"restaurant", "Restaurant"),
    (r"hotel|motel", "Hotel"),
    (r"church", "Church"),
    (r"ranch|bungalow|cottage|residen|single|duplex|town", "Residential"),
]

OWNERSHIP_ESTATE_RULES = [
    (r"condo", "Condominium"),
    (r"cooperative|co-op", "Cooperative"),
    (r"time ?share|interval", "Timeshare"),
    (r"lease", "Leasehold"),
]


def _keyword(rules, text):
    for keyword, value in rules:
        if keyword in text:
            return value
    return None


# Property

def try_map_property_type(type_text, living_units=None):
    """Map a model type or use-code description onto a detailed property category."""
    if not type_text:
        return None
    text = type_text.lower()

    if "vacant" in text:
        return "VacantLand"
    if "single family" in text or "single-family" in text:
        return "SingleFamily"
    if "duplex" in text or "2 unit" in text or "two unit" in text:
        return "Duplex" if living_units == 2 else "2Units"
    if "triplex" in text or "3 unit" in text or "three unit" in text:
        return "3Units"
    if "fourplex" in text or "4 unit" in text or "four unit" in text:
        return "4Units"
    if any(k in text for k in ("townhouse", "town house", "townhome")):
        return "Townhouse"
    if "condominium" in text or "condo" in text:
        if "detached" in text:
            return "DetachedCondominium"
        if "non warrantable" in text or "nonwarrantable" in text:
            return "NonWarrantableCondo"
        return "Condominium"
    if "cooperative" in text or "co-op" in text:
        return "Cooperative"
    if "manufactured" in text or "mobile" in text or "trailer" in text:
        if "single wide" in text:
            return "ManufacturedHousingSingleWide"
        if any(k in text for k in ("multi", "double", "triple", "wide")):
            return "ManufacturedHousingMultiWide"
        return "ManufacturedHousing"
    if "modular" in text:
        return "Modular"
    if any(k in text for k in ("pud", "planned unit", "planned development")):
        return "Pud"
    if "timeshare" in text or "time share" in text:
        return "Timeshare"
    if any(k in text for k in ("multiple family", "multi family", "apartment", "multi-family")):
        return "MultipleFamily"
    if any(k in text for k in ("two to four", "2 to 4", "2-4")):
        return "TwoToFourFamily"
    return None


def _first_match(rules, text, default=None):
    if not text:
        return default
    for pattern, value in rules:
        if re.search(pattern, text, re.IGNORECASE):
            return value
    return default


def map_property_type(category):
    return PROPERTY_TYPE_BY_CATEGORY.get(category, "Building")


def map_build_status(use_description):
    if not use_description:
        return None
    return _first_match(BUILD_STATUS_RULES, use_description, "Improved")


def map_structure_form(description, improvement_type=None):
    """Structure form from a use-code or model description, else from the improvement type."""
    form = _first_match(STRUCTURE_FORM_RULES, description)
    if form is None and improvement_type:
        form = _first_match(IMPROVEMENT_FORM_RULES, re.sub(r"^\d+\s*-\s*", "", improvement_type))
    return form


def map_property_usage_type(description, structure_form=None, improvement_type=None):
    usage = _first_match(PROPERTY_USAGE_RULES, description)
    if usage is None and structure_form:
        usage = "Residential"
    if usage is None and improvement_type:
        usage = _first_match(IMPROVEMENT_USAGE_RULES, improvement_type)
    return usage


def map_ownership_estate_type(description):
    if not description:
        return None
    return _first_match(OWNERSHIP_ESTATE_RULES, description, "FeeSimple")


def _attribute_value(soup, table_class, label):
    for table in soup.find_all("table", class_=table_class):
        for row in table.find_all("tr"):
            cells = row.find_all(["td", "th"])
            if len(cells) >= 2 and label in (node_text(cells[0]) or "").lower():
                return node_text(cells[1])
    return None


def land_tract_rows(soup):
    """Rows of the Land Tracts section as {header: value} dicts."""
    rows = []
    for section in soup.find_all("div", id=["PropertyDetailsCurrent", "PropertyDetails"]):
        for table in section.find_all("table", class_="appraisalAttributes"):
            headers = None
            in_tracts = False
            for row in table.find_all("tr"):
                cells = [node_text(c) or "" for c in row.find_all(["td", "th"])]
                if not cells:
                    continue
                if "land tracts" in cells[0].lower():
                    in_tracts = True
                    continue
                if not in_tracts:
                    continue
                if any("use code description" in c.lower() for c in cells):
                    headers = [c.lower() for c in cells]
                    continue
                if not any(cells):
                    break
                if headers:
                    rows.append(dict(zip(headers, cells)))
        if rows:
            break
    return rows


def extract_property(soup, folio):
    livable = _attribute_value(soup, "appraisalDetails", "gross living area")
    livable = re.sub(r"\D", "", livable or "")

    legal = soup.find("div", class_="textPanel")
    legal_text = node_text(legal)

    year_text = _attribute_value(soup, "appraisalAttributes", "year built") or _attribute_value(
        soup, "appraisalDetails", "1st year building"
    )
    year_match = re.search(r"\d{4}", year_text or "")

    living_units = parse_int(_attribute_value(soup, "appraisalAttributes", "living units"))
    model_type = _attribute_value(soup, "appraisalAttributes", "model type")
    tracts = land_tract_rows(soup)
    use_description = tracts[0].get("use code description") if tracts else None

    improvement_type = attribute_header_value(soup, r"Improvement Type", 0, 0)

    category = try_map_property_type(model_type, living_units) or try_map_property_type(
        use_description, living_units
    )
    if category is None and living_units:
        category = UNITS_PROPERTY_TYPES.get(living_units, "MultipleFamily")
    if category is None:
        for title in soup.find_all("div", class_="sectionSubTitle"):
            category = try_map_property_type(node_text(title))
            if category:
                break
    if category is None:
        logger.warning(f"⚠️ No property type found for {folio}, defaulting to Building")

    description = use_description or model_type
    structure_form = map_structure_form(description, improvement_type)

    return new_property(
        parcel_identifier=folio,
        property_type=map_property_type(category),
        build_status=map_build_status(use_description),
        structure_form=structure_form,
        property_usage_type=map_property_usage_type(description, structure_form, improvement_type),
        ownership_estate_type=map_ownership_estate_type(description),
        livable_floor_area=livable if len(livable) >= 2 else None,
        property_legal_description_text=legal_text if legal_text and len(legal_text) > 5 else None,
        property_structure_built_year=int(year_match.group(0)) if year_match else None,
        number_of_units_type=units_type_for_count(living_units) if living_units in (1, 2, 3, 4) else None,
        number_of_units=living_units,
    )


# Address

def extract_location(soup):
    location = {"township": None, "range": None, "section": None, "block": None, "latitude": None, "longitude": None}
    table = soup.find("table", class_="appraisalDetailsLocation")
    if table is None:
        return location
    rows = table.find_all("tr")
    if len(rows) > 1:
        cells = [node_text(c) for c in rows[1].find_all(["td", "th"])]
        for i, key in enumerate(("township", "range", "section", "block")):
            if i < len(cells) and cells[i]:
                location[key] = cells[i]
    if len(rows) > 3:
        cells = [node_text(c) for c in rows[3].find_all(["td", "th"])]
        if len(cells) > 2:
            location["latitude"] = parse_float(cells[1])
            location["longitude"] = parse_float(cells[2])
    return location


def extract_address(soup, unnormalized):
    address = new_address(
        county_name=unnormalized.get("county_jurisdiction"),
        unnormalized_address=clean_text(unnormalized.get("full_address")),
    )
    parsed = parse_full_address(unnormalized.get("full_address"))
    if parsed["street_number"] is None:
        street_line = (clean_text(unnormalized.get("full_address")) or "").split(",")[0]
        parsed = {k: v for k, v in parse_street_components(street_line).items() if v is not None}
    address.update(parsed)
    address.update({k: v for k, v in extract_location(soup).items() if v is not None})
    return address


# Lot

def fence_length_bucket(length):
    for upper, bucket in FENCE_LENGTH_BUCKETS:
        if length <= upper:
            return bucket
    return "1000ft"


def land_feature_rows(soup):
    rows = []
    for section in soup.find_all("div", id=["PropertyDetailsCurrent", "PropertyDetails"]):
        for table in section.find_all("table", class_="appraisalAttributes"):
            in_features = False
            for row in table.find_all("tr"):
                cells = [node_text(c) or "" for c in row.find_all(["td", "th"])]
                if not cells:
                    continue
                first = cells[0].lower()
                if "land features" in first:
                    in_features = True
                    continue
                if not in_features or len(cells) < 3:
                    continue
                if "description" in first or "year added" in first:
                    continue
                if not first:
                    break
                rows.append({"description": first, "year_added": cells[1], "units": cells[2]})
    return rows


def extract_lot(soup):
    lot = new_lot()
    for feature in land_feature_rows(soup):
        description = feature["description"]
        if "fence" in description:
            lot["fencing_type"] = _keyword(FENCE_TYPES, description)
            if feature["units"].isdigit():
                lot["fence_length"] = fence_length_bucket(int(feature["units"]))
        elif "drive" in description:
            lot["driveway_material"] = _keyword(DRIVEWAY_MATERIALS, description)
        elif any(k in description for k in ("tree", "garden", "lawn", "landscape")):
            if any(k in description for k in ("mature", "oak", "palm")):
                lot["landscaping_features"] = "MatureTrees"
            elif "garden" in description:
                lot["landscaping_features"] = "ManicuredGarden"
            else:
                lot["landscaping_features"] = "Lawn"

    for tract in land_tract_rows(soup):
        units = parse_float(tract.get("number of units"))
        measure = (tract.get("unit of measure") or "").lower()
        if units is None:
            continue
        if "acre" in measure:
            lot["lot_area_sqft"] = int(units * SQ_FT_PER_ACRE)
            lot["lot_size_acre"] = units
        elif "sq ft" in measure or "square feet" in measure:
            lot["lot_area_sqft"] = int(units)
            lot["lot_size_acre"] = round(units / SQ_FT_PER_ACRE, 4)

    lot["lot_type"] = lot_type_for_acres(lot["lot_size_acre"])
    if lot["fencing_type"] and not lot["fence_height"]:
        lot["fence_height"] = "6ft"
    return lot


# Flood

def extract_flood_storm(soup):
    flood = new_flood_storm()
    section = soup.find("div", id="ElevationDetails")
    if section is None:
        return flood
    table = section.find("table", class_="detailsTable")
    rows = table.find_all("tr") if table is not None else []
    if len(rows) >= 3:
        cells = [node_text(td) for td in rows[-1].find_all("td")]
        if len(cells) >= 5:
            flood["community_id"] = cells[0]
            flood["panel_number"] = cells[1]
            flood["map_version"] = cells[2]
            flood["effective_date"] = parse_date_to_iso(cells[3])
            flood["flood_zone"] = cells[4]

    link = section.find("a", href=lambda href: href and "fema.gov" in href)
    if link is not None:
        flood["fema_search_url"] = quote(link["href"], safe=":/?#[]@!$&'()*+,;=")
    if flood["flood_zone"]:
        flood["flood_insurance_required"] = flood["flood_zone"].upper() in HIGH_RISK_FLOOD_ZONES
    return flood


# Sales and taxes

def extract_sales(soup):
    table = find_sales_table(soup)
    if table is None:
        return []
    sales = []
    for row in header_mapped_rows(table):
        date = sale_row_date(row)
        if not date:
            continue
        price = parse_currency(row.get("Sale Price") or row.get("Price") or row.get("Amount"))
        sales.append(new_sales_history(ownership_transfer_date=date, purchase_price_amount=price))
    return sorted(sales, key=lambda s: s["ownership_transfer_date"])


def extract_taxes(soup):
    table = soup.find("table", id="valueGrid")
    if table is None:
        return []
    taxes = []
    for row in header_mapped_rows(table):
        year = parse_int(row.get("Tax Year") or row.get("Year"))
        if not year:
            continue
        taxes.append(new_tax(
            tax_year=year,
            property_assessed_value_amount=parse_currency(
                row.get("Capped Assessed") or row.get("Assessed Value") or row.get("Assessed")
            ),
            property_market_value_amount=parse_currency(
                row.get("Just") or row.get("Market Value") or row.get("Just Value")
            ),
            property_building_amount=parse_currency(row.get("Building")),
            property_land_amount=parse_currency(row.get("Land")),
            property_taxable_value_amount=parse_currency(row.get("Taxable")),
            period_start_date=f"{year}-01-01",
            period_end_date=f"{year}-12-31",
        ))
    return taxes


def write_owners(writer, owners, latest_sale):
    person_n = 0
    company_n = 0
    for owner in owners:
        if owner.get("type") == "person":
            person_n += 1
            record = new_person(
                first_name=format_name(owner.get("first_name")),
                last_name=format_name(owner.get("last_name")),
                middle_name=format_name(owner.get("middle_name")),
            )
            owner_file = writer.entity(f"person_{person_n}.json", record)
            if latest_sale:
                writer.relationship(f"relationship_sales_history_person_{person_n}.json", latest_sale, owner_file)
        elif owner.get("type") == "company":
            company_n += 1
            owner_file = writer.entity(f"company_{company_n}.json", new_company(name=owner.get("name")))
            if latest_sale:
                writer.relationship(f"relationship_sales_history_company_{company_n}.json", latest_sale, owner_file)


def main(work_dir):
    soup = load_html(work_dir)
    seed = load_seed(work_dir)
    unnormalized = load_unnormalized_address(work_dir)
    folio = extract_folio_id(soup, clean_text(seed.get("parcel_id")))
    key = property_key(folio)
    writer = EntityWriter(data_dir_for(work_dir), seed)

    owner_data = load_owners_file(work_dir, config.OWNER_DATA_FILE)
    layout_data = load_owners_file(work_dir, config.LAYOUT_DATA_FILE)
    structure_data = load_owners_file(work_dir, config.STRUCTURE_DATA_FILE)
    utility_data = load_owners_file(work_dir, config.UTILITIES_DATA_FILE)

    writer.entity("property.json", extract_property(soup, folio))

    try:
        writer.entity("address.json", extract_address(soup, unnormalized))
    except Exception as e:
        logger.error(f"❌ Error extracting location data for {folio}: {e}")

    try:
        writer.entity("lot.json", extract_lot(soup))
    except Exception as e:
        logger.error(f"❌ Error extracting lot information for {folio}: {e}")

    sales_files = []
    try:
        for i, sale in enumerate(extract_sales(soup), 1):
            sales_files.append(writer.entity(f"sales_history_{i}.json", sale))
        for i, tax in enumerate(extract_taxes(soup), 1):
            writer.entity(f"tax_{i}.json", tax)
    except Exception as e:
        logger.error(f"❌ Error extracting sales/tax data for {folio}: {e}")

    try:
        writer.entity("flood_storm_information.json", extract_flood_storm(soup))
    except Exception as e:
        logger.error(f"❌ Error extracting flood storm information for {folio}: {e}")

    try:
        write_owners(writer, current_owners(owner_data, key), sales_files[-1] if sales_files else None)
    except Exception as e:
        logger.error(f"❌ Error processing owners for {folio}: {e}")

    layouts = (owners_entry(layout_data, folio) or {}).get("layouts", [])
    for i, layout in enumerate(layouts, 1):
        writer.entity(f"layout_{i}.json", layout)

    structure = owners_entry(structure_data, folio)
    if structure:
        writer.entity("structure.json", structure)
    utility = owners_entry(utility_data, folio)
    if utility:
        writer.entity("utility.json", utility)

    logger.info(f"✅ Wrote {len(writer.written)} files for {key}")
    return writer.written
