import logging
import re

from ... import config
from ...address import extract_block_lot, parse_full_address, parse_street_components
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
    new_sales_history,
    new_tax,
    prune_nulls,
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
from .page import card_for, card_rows, field_lines, field_value, parcel_id, parse_buildings

logger = logging.getLogger(__name__)

SQ_FT_PER_ACRE = 43560

# use code -> (ownership_estate_type, build_status, structure_form, property_usage_type, property_type)
PROPERTY_USE_CODES = {
    "0000": ("FeeSimple", "VacantLand", None, "Residential", "LandParcel"),
    "0004": ("Condominium", "VacantLand", "ApartmentUnit", "Residential", "Unit"),
    "0100": ("FeeSimple", "Improved", "SingleFamilyDetached", "Residential", "Building"),
    "0107": ("FeeSimple", "Improved", "TownhouseRowhouse", "Residential", "Building"),
    "0200": ("FeeSimple", "Improved", "ManufacturedHomeOnLand", "Residential", "ManufacturedHome"),
    "0300": ("FeeSimple", "Improved", "MultiFamilyMoreThan10", "Residential", "Building"),
    "0400": ("Condominium", "Improved", "ApartmentUnit", "Residential", "Unit"),
    "0600": ("FeeSimple", "Improved", None, "Retirement", "Building"),
    "0700": ("FeeSimple", "Improved", None, "Residential", "Building"),
    "0800": ("FeeSimple", "Improved", "MultiFamilyLessThan10", "Residential", "Building"),
    "0805": ("FeeSimple", "Improved", "MultiFamilyLessThan10", "Commercial", "Building"),
    "0900": ("FeeSimple", "VacantLand", None, "ResidentialCommonElementsAreas", "LandParcel"),
    "0905": ("FeeSimple", "VacantLand", None, "Commercial", "LandParcel"),
    "1000": ("FeeSimple", "VacantLand", None, "Commercial", "LandParcel"),
    "1100": ("FeeSimple", "Improved", None, "RetailStore", "Building"),
    "1200": ("FeeSimple", "Improved", None, "Commercial", "Building"),
    "1300": ("FeeSimple", "Improved", None, "DepartmentStore", "Building"),
    "1400": ("FeeSimple", "Improved", None, "Supermarket", "Building"),
    "1500": ("FeeSimple", "Improved", None, "ShoppingCenterRegional", "Building"),
    "1600": ("FeeSimple", "Improved", None, "ShoppingCenterCommunity", "Building"),
    "1700": ("FeeSimple", "Improved", None, "OfficeBuilding", "Building"),
    "1800": ("FeeSimple", "Improved", None, "OfficeBuilding", "Building"),
    "1900": ("FeeSimple", "Improved", None, "MedicalOffice", "Building"),
    "2000": ("FeeSimple", "Improved", None, "TransportationTerminal", "Building"),
    "2100": ("FeeSimple", "Improved", None, "Restaurant", "Building"),
    "2200": ("FeeSimple", "Improved", None, "Restaurant", "Building"),
    "2300": ("FeeSimple", "Improved", None, "FinancialInstitution", "Building"),
    "2500": ("FeeSimple", "Improved", None, "Commercial", "Building"),
    "2600": ("FeeSimple", "Improved", None, "ServiceStation", "Building"),
    "2700": ("FeeSimple", "Improved", None, "AutoSalesRepair", "Building"),
    "2800": ("FeeSimple", "Improved", None, "Commercial", "LandParcel"),
    "2801": ("FeeSimple", "Improved", None, "Commercial", "LandParcel"),
    "2802": ("FeeSimple", "Improved", None, "Commercial", "Building"),
    "3000": ("FeeSimple", "Improved", None, "NurseryGreenhouse", "Building"),
    "3200": ("FeeSimple", "Improved", None, "Theater", "Building"),
    "3300": ("FeeSimple", "Improved", None, "Entertainment", "Building"),
    "3400": ("FeeSimple", "Improved", None, "Entertainment", "Building"),
    "3500": ("FeeSimple", "Improved", None, "Entertainment", "Building"),
    "3800": ("FeeSimple", "Improved", None, "GolfCourse", "LandParcel"),
    "3900": ("FeeSimple", "Improved", None, "Hotel", "Building"),
    "4000": ("FeeSimple", "VacantLand", None, "Industrial", "LandParcel"),
    "4100": ("FeeSimple", "Improved", None, "LightManufacturing", "Building"),
    "4800": ("FeeSimple", "Improved", None, "Warehouse", "Building"),
    "4900": ("FeeSimple", "Improved", None, "OpenStorage", "LandParcel"),
    "5001": ("FeeSimple", "Improved", None, "DrylandCropland", "LandParcel"),
    "5002": ("FeeSimple", "Improved", None, "TimberLand", "LandParcel"),
    "5003": ("FeeSimple", "Improved", None, "GrazingLand", "LandParcel"),
    "5006": ("FeeSimple", "Improved", None, "OrchardGroves", "LandParcel"),
    "5007": ("FeeSimple", "Improved", None, "Poultry", "LandParcel"),
    "5008": ("FeeSimple", "Improved", None, "LivestockFacility", "LandParcel"),
    "5009": ("FeeSimple", "Improved", None, "Ornamentals", "LandParcel"),
    "5100": ("FeeSimple", "Improved", None, "DrylandCropland", "LandParcel"),
    "5400": ("FeeSimple", "Improved", None, "TimberLand", "LandParcel"),
    "5500": ("FeeSimple", "Improved", None, "TimberLand", "LandParcel"),
    "5600": ("FeeSimple", "Improved", None, "TimberLand", "LandParcel"),
    "5900": ("FeeSimple", "Improved", None, "TimberLand", "LandParcel"),
    "6000": ("FeeSimple", "Improved", None, "GrazingLand", "LandParcel"),
    "6600": ("FeeSimple", "Improved", None, "OrchardGroves", "LandParcel"),
    "6700": ("FeeSimple", "Improved", None, "LivestockFacility", "LandParcel"),
    "6800": ("FeeSimple", "Improved", None, "LivestockFacility", "LandParcel"),
    "6900": ("FeeSimple", "Improved", None, "Ornamentals", "LandParcel"),
    "7000": ("FeeSimple", "VacantLand", None, "Unknown", "LandParcel"),
    "7100": ("FeeSimple", "Improved", None, "Church", "Building"),
    "7200": ("FeeSimple", "Improved", None, "PrivateSchool", "Building"),
    "7300": ("FeeSimple", "Improved", None, "PrivateHospital", "Building"),
    "7400": ("FeeSimple", "Improved", None, "HomesForAged", "Building"),
    "7500": ("FeeSimple", "Improved", None, "NonProfitCharity", "Building"),
    "7600": ("FeeSimple", "Improved", None, "MortuaryCemetery", "Building"),
    "7700": ("FeeSimple", "Improved", None, "ClubsLodges", "Building"),
    "7800": ("FeeSimple", "Improved", None, "SanitariumConvalescentHome", "Building"),
    "7900": ("FeeSimple", "Improved", None, "CulturalOrganization", "Building"),
    "8000": ("FeeSimple", "VacantLand", None, "GovernmentProperty", "LandParcel"),
    "8100": ("FeeSimple", "Improved", None, "Military", "Building"),
    "8200": ("FeeSimple", "Improved", None, "ForestParkRecreation", "LandParcel"),
    "8300": ("FeeSimple", "Improved", None, "PublicSchool", "Building"),
    "8400": ("FeeSimple", "Improved", None, "PublicSchool", "Building"),
    "8500": ("FeeSimple", "Improved", None, "PublicHospital", "Building"),
    "8900": ("FeeSimple", "Improved", None, "GovernmentProperty", "Building"),
    "9100": ("FeeSimple", "Improved", None, "Utility", "Building"),
    "9200": ("FeeSimple", "Improved", None, "MineralProcessing", "Building"),
    "9400": ("RightOfWay", "VacantLand", None, "GovernmentProperty", "LandParcel"),
    "9500": ("FeeSimple", "VacantLand", None, "RiversLakes", "LandParcel"),
    "9600": ("FeeSimple", "Improved", None, "SewageDisposal", "Building"),
    "9700": ("FeeSimple", "Improved", None, "Recreational", "LandParcel"),
    "9800": ("FeeSimple", "Improved", None, "Railroad", "Building"),
    "9900": ("FeeSimple", "VacantLand", None, "TransitionalProperty", "LandParcel"),
    "9901": ("FeeSimple", "Improved", None, "TransitionalProperty", "LandParcel"),
}

DEED_TYPES = {
    "CT": "Contract for Deed",
    "WD": "Warranty Deed",
    "WARRANTY DEED": "Warranty Deed",
    "TD": "Tax Deed",
    "TAX DEED": "Tax Deed",
    "QC": "Quitclaim Deed",
    "QUITCLAIM DEED": "Quitclaim Deed",
    "QUIT CLAIM": "Quitclaim Deed",
    "SW": "Special Warranty Deed",
    "SPECIAL WARRANTY DEED": "Special Warranty Deed",
}


# Property

def map_property_use(value):
    """The five property classification fields for a Leon "Property Use" value."""
    match = re.search(r"\d{4}", clean_text(value) or "")
    code = match.group(0) if match else None
    try:
        estate, build_status, structure_form, usage, property_type = PROPERTY_USE_CODES[code]
    except KeyError:
        raise UnknownEnumValueError(clean_text(value), "property.property_type")
    return {
        "ownership_estate_type": estate,
        "build_status": build_status,
        "structure_form": structure_form,
        "property_usage_type": usage,
        "property_type": property_type,
    }


def extract_legal_description(soup):
    modal = soup.find(id="legalModal")
    blocks = [node_text(div) for div in modal.select(".modal-body .row div")] if modal else []
    blocks = [b for b in blocks if b]
    if not blocks:
        blocks = [line for line in field_lines(soup, "Legal Desc") if "View All Legal" not in line]
    return " | ".join(blocks) or None


def extract_property(soup, property_id):
    buildings = parse_buildings(soup)
    years = [b["year_built"] for b in buildings if b["year_built"]]
    heated = sum(b["heated_sq_ft"] or 0 for b in buildings)
    total = heated + sum(b["auxiliary_sq_ft"] or 0 for b in buildings)
    return new_property(
        parcel_identifier=property_id,
        property_legal_description_text=extract_legal_description(soup),
        property_structure_built_year=min(years) if years else None,
        livable_floor_area=str(heated) if heated else None,
        total_area=str(total) if total else None,
        subdivision=field_value(soup, "Subdivision Name"),
        historic_designation=False,
        **map_property_use(field_value(soup, "Property Use")),
    )


# Address

def extract_address(soup, unnormalized, legal_description):
    location = field_value(soup, "Location")
    full_address = clean_text(unnormalized.get("full_address"))
    address = new_address(
        county_name=unnormalized.get("county_jurisdiction") or "Leon",
        unnormalized_address=full_address or location,
    )
    parsed = parse_full_address(full_address)
    if parsed["street_number"] is None and location:
        parsed = parse_street_components(location.upper())
    address.update({k: v for k, v in parsed.items() if v is not None})
    address.update({k: v for k, v in extract_block_lot(legal_description).items() if v is not None})
    return address


def extract_mailing_address(soup):
    text = ", ".join(field_lines(soup, "Mailing Address"))
    return new_mailing_address(unnormalized_address=text) if text else None


# Lot and taxes

def extract_lot(soup):
    acres = parse_float(field_value(soup, "Acreage"))
    if acres is None or round(acres * SQ_FT_PER_ACRE) < 1:
        return None
    return new_lot(
        lot_type=lot_type_for_acres(acres),
        lot_size_acre=acres,
        lot_area_sqft=round(acres * SQ_FT_PER_ACRE),
    )


def certified_taxable_values(soup):
    """(year, assessed, taxable) from the "YYYY Certified Taxable Values" card."""
    for heading in soup.find_all("h5"):
        match = re.search(r"(\d{4})\s+Certified Taxable Values", node_text(heading) or "", re.IGNORECASE)
        if not match:
            continue
        rows = card_rows(heading.find_parent(class_="card"), min_cells=6)
        if rows:
            return int(match.group(1)), parse_currency(node_text(rows[0][3])), parse_currency(node_text(rows[0][5]))
    return None, None, None


def extract_taxes(soup):
    """
    Tax records for the certified year only.

    The value history carries land, building and market values per year, but
    assessed and taxable values exist just for the year of the taxable values
    card, and a tax record needs both.
    """
    year, assessed, taxable = certified_taxable_values(soup)
    if year is None or assessed is None or taxable is None:
        return []
    taxes = []
    for cells in card_rows(card_for(soup, "Certified Value History"), min_cells=6):
        if parse_int(node_text(cells[0])) != year:
            continue
        land, building, market = (parse_currency(node_text(c)) for c in cells[1:4])
        if None in (land, building, market):
            continue
        taxes.append(new_tax(
            tax_year=year,
            property_assessed_value_amount=assessed,
            property_market_value_amount=market,
            property_building_amount=building,
            property_land_amount=land,
            property_taxable_value_amount=taxable,
        ))
    return taxes


# Sales

def map_deed_type(instrument):
    return DEED_TYPES.get((clean_text(instrument) or "").upper(), "Miscellaneous")


def parse_book_page(text):
    match = re.fullmatch(r"(\d+)\s*/\s*(\d+)", clean_text(text) or "")
    return match.groups() if match else (None, None)


def extract_sales_entries(soup):
    """(sale, deed, file) per Sales Information row."""
    entries = []
    for cells in card_rows(card_for(soup, "Sales Information"), min_cells=5):
        book, page = parse_book_page(node_text(cells[2]))
        link = cells[2].find("a")
        href = link.get("href") if link else None
        link_text = node_text(link) if link else None
        sale = new_sales_history(
            ownership_transfer_date=parse_date_to_iso(node_text(cells[0])),
            purchase_price_amount=parse_currency(node_text(cells[1])),
        )
        deed = prune_nulls(new_deed(deed_type=map_deed_type(node_text(cells[3])), book=book, page=page))
        file_record = new_file(
            name=f"Book/Page {link_text}" if link_text else None,
            original_url=href if href and href.startswith("http") else None,
        )
        entries.append((sale, deed, file_record))
    return entries


def write_sales(writer, soup):
    """Write sales_history_N, deed_N, file_N and their links; returns (sales file, date) pairs."""
    sales_files = []
    for index, (sale, deed, file_record) in enumerate(extract_sales_entries(soup), 1):
        sale_file = writer.entity(f"sales_history_{index}.json", sale)
        deed_file = writer.entity(f"deed_{index}.json", deed)
        file_file = writer.entity(f"file_{index}.json", file_record)
        writer.relationship(f"relationship_sales_history_has_deed_{index}.json", sale_file, deed_file)
        writer.relationship(f"relationship_deed_has_file_{index}.json", deed_file, file_file)
        sales_files.append((sale_file, sale["ownership_transfer_date"]))
    return sales_files


def latest_sale_file(sales_files):
    dated = [(date, name) for name, date in sales_files if date]
    if dated:
        return max(dated)[1]
    return sales_files[0][0] if sales_files else None


# Owners, structures, utilities and layouts

def write_owners(writer, owners, mailing_file, latest_sale):
    counts = {"person": 0, "company": 0}
    for owner in owners:
        kind = owner.get("type")
        if kind not in counts:
            continue
        counts[kind] += 1
        n = counts[kind]
        if kind == "person":
            record = new_person(
                first_name=format_name(owner.get("first_name")),
                last_name=format_name(owner.get("last_name")),
                middle_name=format_name(owner.get("middle_name")),
                suffix_name=owner.get("suffix_name"),
            )
        else:
            record = new_company(name=owner.get("name"))
        owner_file = writer.entity(f"{kind}_{n}.json", record)
        if mailing_file:
            writer.relationship(f"relationship_{kind}_has_mailing_address_{n}.json", owner_file, mailing_file)
        if latest_sale:
            writer.relationship(f"relationship_sales_history_{kind}_{n}.json", latest_sale, owner_file)


def write_layouts(writer, layouts):
    """Write layout_N files; returns {building number: building layout file}."""
    building_files = {}
    for index, layout in enumerate(layouts, 1):
        layout_file = writer.entity(f"layout_{index}.json", dict(layout, space_index=index))
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
        building_file = building_files.get(record.get("building_number"))
        if building_file:
            layout_index = building_file[len("layout_"):-len(".json")]
            writer.relationship(
                f"relationship_layout_{layout_index}_has_{prefix}_{index}.json", building_file, record_file
            )


def main(work_dir):
    soup = load_html(work_dir)
    seed = load_seed(work_dir)
    unnormalized = load_unnormalized_address(work_dir)
    property_id = parcel_id(soup, clean_text(seed.get("parcel_id")))
    key = property_key(property_id)
    writer = EntityWriter(data_dir_for(work_dir), seed)

    owner_data = load_owners_file(work_dir, config.OWNER_DATA_FILE)
    layout_data = load_owners_file(work_dir, config.LAYOUT_DATA_FILE)
    structure_data = load_owners_file(work_dir, config.STRUCTURE_DATA_FILE)
    utility_data = load_owners_file(work_dir, config.UTILITIES_DATA_FILE)

    property_record = extract_property(soup, property_id)
    writer.entity("property.json", property_record)

    try:
        address = extract_address(soup, unnormalized, property_record["property_legal_description_text"])
        writer.entity("address.json", address)
    except Exception as e:
        logger.error(f"❌ Error extracting address for {property_id}: {e}")

    mailing_file = None
    mailing = extract_mailing_address(soup)
    if mailing:
        mailing_file = writer.entity("mailing_address.json", mailing)

    try:
        for n, tax in enumerate(extract_taxes(soup), 1):
            writer.entity(f"tax_{n}.json", tax)
    except Exception as e:
        logger.error(f"❌ Error extracting tax data for {property_id}: {e}")

    sales_files = []
    try:
        sales_files = write_sales(writer, soup)
    except Exception as e:
        logger.error(f"❌ Error extracting sales history for {property_id}: {e}")

    try:
        write_owners(writer, current_owners(owner_data, key), mailing_file, latest_sale_file(sales_files))
    except Exception as e:
        logger.error(f"❌ Error processing owners for {property_id}: {e}")

    try:
        lot = extract_lot(soup)
        if lot:
            writer.entity("lot.json", lot)
    except Exception as e:
        logger.error(f"❌ Error extracting lot information for {property_id}: {e}")

    building_files = write_layouts(writer, (owners_entry(layout_data, property_id) or {}).get("layouts", []))
    structures = (owners_entry(structure_data, property_id) or {}).get("structures", [])
    write_building_records(writer, structures, "structure", building_files)
    utilities = (owners_entry(utility_data, property_id) or {}).get("utilities", [])
    write_building_records(writer, utilities, "utility", building_files)

    logger.info(f"✅ Wrote {len(writer.written)} files for {key}")
    return writer.written
