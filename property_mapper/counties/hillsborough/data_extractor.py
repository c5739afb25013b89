import logging
import re

from ... import config
from ...address import parse_full_address, section_township_range_from_pin
from ...errors import UnknownEnumValueError
from ...owners import current_owners
from ...records import (
    lot_type_for_acres,
    new_address,
    new_company,
    new_deed,
    new_file,
    new_lot,
    new_mailing_address,
    new_person,
    new_property,
    new_property_improvement,
    new_sales_history,
    new_tax,
)
from ...utils import clean_text, format_name, node_text, parse_currency, parse_date_to_iso, parse_float
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
from .owner_processor import extract_pin

logger = logging.getLogger(__name__)

SQ_FT_PER_ACRE = 43560

# use code -> (ownership_estate_type, build_status, structure_form, property_usage_type, property_type)
PROPERTY_USE_CODES = {
    "0000": ("FeeSimple", "VacantLand", None, "Residential", "LandParcel"),
    "0006": ("FeeSimple", "VacantLand", None, "Residential", "LandParcel"),
    "0008": ("Condominium", "VacantLand", None, "Residential", "LandParcel"),
    "0029": ("FeeSimple", "VacantLand", None, "GovernmentProperty", "LandParcel"),
    "0040": ("Condominium", "VacantLand", None, "Residential", "LandParcel"),
    "0044": ("Condominium", "Improved", "ApartmentUnit", "Residential", "Unit"),
    "0045": ("Condominium", "Improved", "ApartmentUnit", "Residential", "Unit"),
    "0100": ("FeeSimple", "Improved", "SingleFamilyDetached", "Residential", "Building"),
    "0102": ("FeeSimple", "Improved", "SingleFamilyDetached", "Residential", "ManufacturedHome"),
    "0106": ("FeeSimple", "Improved", "TownhouseRowhouse", "Residential", "Building"),
    "0111": ("FeeSimple", "UnderConstruction", None, "Residential", "Building"),
    "0200": ("FeeSimple", "Improved", "ManufacturedHousing", "Residential", "ManufacturedHome"),
    "0300": ("FeeSimple", "Improved", "MultiFamilyMoreThan10", "Residential", "Building"),
    "0309": ("FeeSimple", "Improved", "MultiFamily5Plus", "Residential", "Building"),
    "0310": ("FeeSimple", "Improved", "MultiFamilyMoreThan10", "Residential", "Building"),
    "0320": ("FeeSimple", "Improved", "MultiFamilyMoreThan10", "Residential", "Building"),
    "0330": ("FeeSimple", "Improved", "MultiFamilyMoreThan10", "Residential", "Building"),
    "0400": ("Condominium", "Improved", "ApartmentUnit", "Residential", "Unit"),
    "0403": ("Condominium", "Improved", "MultiFamily5Plus", "Residential", "Unit"),
    "0408": ("Condominium", "Improved", "ManufacturedHousing", "Residential", "Unit"),
    "0500": ("Cooperative", "Improved", "ApartmentUnit", "Residential", "Unit"),
    "0508": ("Cooperative", "Improved", "ManufacturedHousing", "Residential", "Unit"),
    "0600": ("FeeSimple", "Improved", "MultiFamilyMoreThan10", "HomesForAged", "Building"),
    "0700": ("FeeSimple", "Improved", None, "Residential", "Building"),
    "0800": ("FeeSimple", "Improved", "MultiFamilyLessThan10", "Residential", "Building"),
    "0801": ("FeeSimple", "Improved", "MultiFamily5Plus", "Residential", "Building"),
    "0901": ("FeeSimple", "Improved", None, "ResidentialCommonElementsAreas", "Building"),
    "0902": ("Condominium", "Improved", "ApartmentUnit", "ResidentialCommonElementsAreas", "Unit"),
    "0903": ("FeeSimple", "Improved", "TownhouseRowhouse", "ResidentialCommonElementsAreas", "Building"),
    "0910": ("RightOfWay", "VacantLand", None, "ResidentialCommonElementsAreas", "LandParcel"),
    "1000": ("FeeSimple", "VacantLand", None, "Commercial", "LandParcel"),
    "1100": ("FeeSimple", "Improved", None, "RetailStore", "Building"),
    "1200": ("FeeSimple", "Improved", None, "Commercial", "Building"),
    "1300": ("FeeSimple", "Improved", None, "DepartmentStore", "Building"),
    "1400": ("FeeSimple", "Improved", None, "Supermarket", "Building"),
    "1600": ("FeeSimple", "Improved", None, "ShoppingCenterCommunity", "Building"),
    "1700": ("FeeSimple", "Improved", None, "OfficeBuilding", "Building"),
    "1800": ("FeeSimple", "Improved", None, "OfficeBuilding", "Building"),
    "1900": ("FeeSimple", "Improved", None, "MedicalOffice", "Building"),
    "2100": ("FeeSimple", "Improved", None, "Restaurant", "Building"),
    "2300": ("FeeSimple", "Improved", None, "FinancialInstitution", "Building"),
    "2700": ("FeeSimple", "Improved", None, "AutoSalesRepair", "Building"),
    "2810": ("FeeSimple", "Improved", None, "MobileHomePark", "LandParcel"),
    "3900": ("FeeSimple", "Improved", None, "Hotel", "Building"),
    "4000": ("FeeSimple", "VacantLand", None, "Industrial", "LandParcel"),
    "4100": ("FeeSimple", "Improved", None, "LightManufacturing", "Building"),
    "4800": ("FeeSimple", "Improved", None, "Warehouse", "Building"),
    "5100": ("FeeSimple", "VacantLand", None, "DrylandCropland", "LandParcel"),
    "6600": ("FeeSimple", "VacantLand", None, "OrchardGroves", "LandParcel"),
    "7100": ("FeeSimple", "Improved", None, "Church", "Building"),
    "7400": ("FeeSimple", "Improved", "MultiFamilyMoreThan10", "HomesForAged", "Building"),
    "7600": ("FeeSimple", "Improved", None, "MortuaryCemetery", "Building"),
    "8200": ("FeeSimple", "VacantLand", None, "ForestParkRecreation", "LandParcel"),
    "8600": ("FeeSimple", "Improved", None, "GovernmentProperty", "Building"),
    "8610": ("RightOfWay", "VacantLand", None, "GovernmentProperty", "LandParcel"),
    "9100": ("FeeSimple", "VacantLand", None, "Utility", "LandParcel"),
    "9400": ("RightOfWay", "VacantLand", None, "GovernmentProperty", "LandParcel"),
    "9600": ("FeeSimple", "VacantLand", None, "Conservation", "LandParcel"),
    "9900": ("FeeSimple", "VacantLand", None, "Unknown", "LandParcel"),
}

DEED_TYPES = {
    "AA": "Assignment of Contract",
    "AD": "Administrator's Deed",
    "AG": "Contract for Deed",
    "CD": "Correction Deed",
    "CT": "Court Order Deed",
    "DD": "Miscellaneous",
    "FD": "Warranty Deed",
    "GD": "Guardian's Deed",
    "MD": "Special Master's Deed",
    "PR": "Personal Representative Deed",
    "QC": "Quitclaim Deed",
    "SD": "Sheriff's Deed",
    "TD": "Tax Deed",
    "TR": "Trustee's Deed",
    "WD": "Warranty Deed",
}

IMPROVEMENT_TYPE_RULES = [
    (r"pool|spa", "PoolSpaInstallation"),
    (r"roof", "Roofing"),
    (r"demolition|demo", "Demolition"),
    (r"fence", "Fencing"),
    (r"dock|seawall|shore|pier", "DockAndShore"),
    (r"hvac|mechanical", "MechanicalHVAC"),
    (r"electric", "Electrical"),
    (r"plumb", "Plumbing"),
    (r"gas", "GasInstallation"),
    (r"irrigation", "LandscapeIrrigation"),
    (r"screen", "ScreenEnclosure"),
    (r"shutter|awning", "ShutterAwning"),
    (r"addition|renovation|remodel|alteration|improv", "BuildingAddition"),
    (r"construct|build", "ResidentialConstruction"),
    (r"window|door|exterior", "ExteriorOpeningsAndFinishes"),
    (r"site|grading|driveway", "SiteDevelopment"),
    (r"well", "WellPermit"),
]


# Property

def labeled_cell(soup, label, exact=False):
    """Text of the cell following the td labelled `label`."""
    for td in soup.find_all("td"):
        text = node_text(td) or ""
        if (text == label) if exact else (label in text):
            following = td.find_next_sibling("td")
            return node_text(following)
    return None


def _heading_paragraph(soup, heading):
    for h5 in soup.find_all("h5"):
        if heading.lower() in (node_text(h5) or "").lower():
            paragraph = h5.find_next_sibling("p")
            if paragraph is not None:
                return clean_text(paragraph.get_text(" "))
    return None


def extract_property_data(soup):
    return {
        "property_use": labeled_cell(soup, "Property Use:"),
        "subdivision": labeled_cell(soup, "Subdivision:"),
        "pin": labeled_cell(soup, "PIN:", exact=True),
        "site_address": _heading_paragraph(soup, "Site Address"),
        "mailing_address": _heading_paragraph(soup, "Mailing Address"),
    }


def extract_legal_description(soup):
    lines = []
    for row in soup.select("tbody[data-bind*='fullLegal'] tr"):
        cells = row.find_all("td")
        text = node_text(cells[-1]) if cells else None
        if text:
            lines.append(text)
    return " ".join(lines) if lines else None


def use_code_attributes(property_use):
    """Mapped attributes for the leading four-digit use code of `property_use`."""
    match = re.match(r"^\s*(\d{4})", property_use or "")
    attributes = PROPERTY_USE_CODES.get(match.group(1)) if match else None
    if attributes is None:
        raise UnknownEnumValueError(property_use, "property.property_type")
    estate, build_status, form, usage, property_type = attributes
    return {
        "ownership_estate_type": estate,
        "build_status": build_status,
        "structure_form": form,
        "property_usage_type": usage,
        "property_type": property_type,
    }


def extract_property(soup, pin, property_data):
    return new_property(
        parcel_identifier=pin,
        property_legal_description_text=extract_legal_description(soup),
        subdivision=property_data["subdivision"],
        **use_code_attributes(property_data["property_use"]),
    )


# Addresses

def extract_address(pin, property_data, unnormalized):
    full_address = property_data["site_address"] or clean_text(unnormalized.get("full_address"))
    if not full_address:
        raise ValueError("No address found in site address or unnormalized address")
    address = new_address(
        county_name=unnormalized.get("county_jurisdiction") or "Hillsborough",
        latitude=unnormalized.get("latitude"),
        longitude=unnormalized.get("longitude"),
        unnormalized_address=full_address,
    )
    address.update(parse_full_address(full_address))
    address.update(section_township_range_from_pin(pin))
    return address


# Taxes

def extract_tax_year(soup):
    text = node_text(soup.select_one("div.value-summary-years span[data-bind*='displayedTaxYear']")) or ""
    match = re.search(r"(20\d{2})", text)
    return int(match.group(1)) if match else None


def _county_tax_row(soup):
    for header in soup.select("h4.section-header"):
        if not re.search(r"value summary", node_text(header) or "", re.IGNORECASE):
            continue
        container = header.find_next_sibling("div")
        if container is None:
            return None
        for row in container.select("tbody tr"):
            first = row.find("td")
            if first is not None and re.search(r"county", node_text(first) or "", re.IGNORECASE):
                return row
    return None


def extract_tax(soup):
    row = _county_tax_row(soup)
    if row is None:
        return None
    cells = row.find_all("td")
    if len(cells) < 5:
        return None
    year = extract_tax_year(soup)
    return new_tax(
        tax_year=year,
        property_market_value_amount=parse_currency(node_text(cells[1])),
        property_assessed_value_amount=parse_currency(node_text(cells[2])),
        property_taxable_value_amount=parse_currency(node_text(cells[4])),
        period_start_date=f"{year}-01-01" if year else None,
        period_end_date=f"{year}-12-31" if year else None,
    )


# Sales

def format_sale_date(month_text, year_text):
    year = clean_text(year_text)
    if not year or not re.fullmatch(r"\d{4}", year):
        return None
    month = re.search(r"\d+", month_text or "")
    month_number = int(month.group(0)) if month else 1
    return f"{year}-{month_number:02d}-01"


def map_deed_type(code):
    return DEED_TYPES.get((code or "").strip().upper())


def _strip_confidential(text):
    return re.sub(r"\s*Confidential$", "", clean_text(text) or "", flags=re.IGNORECASE).strip()


def _link(cell):
    anchor = cell.find("a")
    return anchor.get("href") if anchor is not None else None


def extract_sales_entries(soup):
    """(sale, deed, document url) for each Sales History row, in page order."""
    container = None
    for header in soup.find_all("h4"):
        if re.search(r"sales history", node_text(header) or "", re.IGNORECASE):
            container = header.find_next_sibling("div")
            break
    if container is None:
        return []

    entries = []
    for row in container.select("tbody tr"):
        cells = row.find_all("td")
        if len(cells) < 8:
            continue
        book_page = re.search(r"(\d+)\s*/\s*(\d+)", _strip_confidential(cells[0].get_text(" ")))
        book, page = book_page.groups() if book_page else (None, None)
        sale = new_sales_history(
            ownership_transfer_date=format_sale_date(node_text(cells[2]), node_text(cells[3])),
            purchase_price_amount=parse_currency(node_text(cells[7])),
        )
        deed = new_deed(
            deed_type=map_deed_type(node_text(cells[4])),
            book=book,
            page=page,
            instrument_number=_strip_confidential(cells[1].get_text(" ")) or None,
        )
        entries.append((sale, deed, _link(cells[1]) or _link(cells[0])))
    return entries


def write_sales(writer, soup):
    """Write sales_history_N, deed_N, file_N and their links; returns the sales file names."""
    sales_files = []
    for index, (sale, deed, url) in enumerate(extract_sales_entries(soup), 1):
        sale_file = writer.entity(f"sales_history_{index}.json", sale)
        deed_file = writer.entity(f"deed_{index}.json", deed)
        writer.relationship(f"relationship_sales_history_has_deed_{index}.json", sale_file, deed_file)
        if url:
            file_file = writer.entity(f"file_{index}.json", new_file(document_type="Title", original_url=url))
            writer.relationship(f"relationship_deed_has_file_{index}.json", deed_file, file_file)
        sales_files.append((sale_file, sale["ownership_transfer_date"]))
    return sales_files


def latest_sale_file(sales_files):
    dated = [(date, name) for name, date in sales_files if date]
    if dated:
        return max(dated)[1]
    return sales_files[0][0] if sales_files else None


# Permits

def map_improvement_type(description):
    text = (clean_text(description) or "").lower()
    for pattern, improvement_type in IMPROVEMENT_TYPE_RULES:
        if re.search(pattern, text):
            return improvement_type
    return "GeneralBuilding"


def extract_property_improvements(soup):
    improvements = []
    for row in soup.select("table.permitinfo tbody tr"):
        cells = row.find_all("td")
        if len(cells) < 4:
            continue
        permit_number = node_text(cells[1])
        if not permit_number:
            continue
        issue_date = parse_date_to_iso(node_text(cells[3]))
        improvements.append(new_property_improvement(
            improvement_type=map_improvement_type(node_text(cells[2])),
            improvement_status="Permitted",
            permit_number=permit_number,
            permit_issue_date=issue_date,
            completion_date=issue_date,
            contractor_type="Unknown",
            permit_required=True,
        ))
    return improvements


# Lot

def _bound_text(row, binding):
    return node_text(row.select_one(f"[data-bind='text: {binding}']"))


def extract_lot(soup):
    rows = soup.select("div[data-bind='visible: landLines().length > 0'] tbody tr")
    total_acres = 0
    total_square_feet = 0
    frontage = None
    depth = None
    for index, row in enumerate(rows):
        unit_type = _bound_text(row, "publicLandType") or ""
        units = parse_float(_bound_text(row, "publicUnits"))
        if index == 0:
            frontage = parse_float(_bound_text(row, "frontage"))
            depth = parse_float(_bound_text(row, "depth"))
        if units is None:
            continue
        if re.search(r"ac", unit_type, re.IGNORECASE):
            total_acres += units
        elif re.search(r"sq|sf|square", unit_type, re.IGNORECASE):
            total_square_feet += units

    if not total_acres and not total_square_feet:
        return None
    acres = total_acres if total_acres else total_square_feet / SQ_FT_PER_ACRE
    return new_lot(
        lot_type=lot_type_for_acres(acres),
        lot_size_acre=round(acres, 4),
        lot_area_sqft=int(round(acres * SQ_FT_PER_ACRE)),
        lot_length_feet=round(frontage) if frontage and frontage > 0 else None,
        lot_width_feet=round(depth) if depth and depth > 0 else None,
    )


# Owners, structures, utilities and layouts

def write_owners(writer, owners, mailing_file, latest_sale):
    person_n = 0
    company_n = 0
    for owner in owners:
        if owner.get("type") == "person":
            person_n += 1
            record = new_person(
                first_name=format_name(owner.get("first_name")) or owner.get("first_name"),
                last_name=format_name(owner.get("last_name")) or owner.get("last_name"),
                middle_name=format_name(owner.get("middle_name")),
                prefix_name=owner.get("prefix_name"),
                suffix_name=owner.get("suffix_name"),
            )
            owner_file = writer.entity(f"person_{person_n}.json", record)
            if mailing_file:
                writer.relationship(
                    f"relationship_person_has_mailing_address_{person_n}.json", owner_file, mailing_file
                )
            if latest_sale:
                writer.relationship(f"relationship_sales_history_person_{person_n}.json", latest_sale, owner_file)
        elif owner.get("type") == "company":
            company_n += 1
            owner_file = writer.entity(f"company_{company_n}.json", new_company(name=owner.get("name")))
            if mailing_file:
                writer.relationship(
                    f"relationship_company_has_mailing_address_{company_n}.json", owner_file, mailing_file
                )
            if latest_sale:
                writer.relationship(f"relationship_sales_history_company_{company_n}.json", latest_sale, owner_file)


def write_layouts(writer, layouts):
    """Write layout_N files; returns {building number: building layout file}."""
    building_files = {}
    for index, layout in enumerate(layouts, 1):
        layout = dict(layout, space_index=index)
        layout_file = writer.entity(f"layout_{index}.json", layout)
        if layout.get("space_type") == "Building":
            building_files[layout.get("building_number")] = layout_file
            continue
        parent = building_files.get(layout.get("building_number"))
        if parent:
            parent_index = parent[len("layout_"):-len(".json")]
            writer.relationship(f"relationship_layout_{parent_index}_has_layout_{index}.json", parent, layout_file)
    return building_files


def write_building_records(writer, records, prefix, building_files):
    """structure_N / utility_N files linked from their building layout."""
    for index, record in enumerate(records, 1):
        record_file = writer.entity(f"{prefix}_{index}.json", record)
        building_number = record.get("building_number") or index
        building_file = building_files.get(building_number)
        if building_file:
            layout_index = building_file[len("layout_"):-len(".json")]
            writer.relationship(
                f"relationship_layout_{layout_index}_has_{prefix}_{index}.json", building_file, record_file
            )


def main(work_dir):
    soup = load_html(work_dir)
    seed = load_seed(work_dir)
    unnormalized = load_unnormalized_address(work_dir)
    property_data = extract_property_data(soup)
    strap = extract_pin(soup, clean_text(seed.get("parcel_id")))
    pin = property_data["pin"] or strap
    key = property_key(strap)
    writer = EntityWriter(data_dir_for(work_dir), seed)

    owner_data = load_owners_file(work_dir, config.OWNER_DATA_FILE)
    layout_data = load_owners_file(work_dir, config.LAYOUT_DATA_FILE)
    structure_data = load_owners_file(work_dir, config.STRUCTURE_DATA_FILE)
    utility_data = load_owners_file(work_dir, config.UTILITIES_DATA_FILE)

    writer.entity("property.json", extract_property(soup, pin, property_data))

    try:
        writer.entity("address.json", extract_address(pin, property_data, unnormalized))
    except Exception as e:
        logger.error(f"❌ Error extracting address for {pin}: {e}")

    mailing_file = None
    if property_data["mailing_address"]:
        mailing_file = writer.entity(
            "mailing_address.json", new_mailing_address(unnormalized_address=property_data["mailing_address"])
        )

    try:
        tax = extract_tax(soup)
        if tax:
            writer.entity("tax_1.json", tax)
    except Exception as e:
        logger.error(f"❌ Error extracting tax data for {pin}: {e}")

    sales_files = []
    try:
        sales_files = write_sales(writer, soup)
    except Exception as e:
        logger.error(f"❌ Error extracting sales history for {pin}: {e}")

    try:
        write_owners(writer, current_owners(owner_data, key), mailing_file, latest_sale_file(sales_files))
    except Exception as e:
        logger.error(f"❌ Error processing owners for {pin}: {e}")

    try:
        for index, improvement in enumerate(extract_property_improvements(soup), 1):
            writer.entity(f"property_improvement_{index}.json", improvement)
    except Exception as e:
        logger.error(f"❌ Error extracting permits for {pin}: {e}")

    try:
        lot = extract_lot(soup)
        if lot:
            writer.entity("lot.json", lot)
    except Exception as e:
        logger.error(f"❌ Error extracting lot information for {pin}: {e}")

    building_files = write_layouts(writer, (owners_entry(layout_data, strap) or {}).get("layouts", []))
    structures = (owners_entry(structure_data, strap) or {}).get("structures", [])
    write_building_records(writer, structures, "structure", building_files)
    utilities = (owners_entry(utility_data, strap) or {}).get("utilities", [])
    write_building_records(writer, utilities, "utility", building_files)

    logger.info(f"✅ Wrote {len(writer.written)} files for {key}")
    return writer.written
