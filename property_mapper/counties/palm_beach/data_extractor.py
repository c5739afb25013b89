import logging
import re

from ... import config
from ...address import extract_block_lot, parse_full_address, parse_street_components
from ...errors import UnknownEnumValueError
from ...owners import dedupe_key
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
from ...utils import clean_text, format_name, parse_currency, parse_date_to_iso, parse_float
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
from .model import load_model, top, whole_number
from .owner_processor import classify_owner_cell, extract_pcn

logger = logging.getLogger(__name__)

CLERK_BOOK_PAGE_URL = (
    "https://erec.mypalmbeachclerk.com/Search/DocumentAndInfoByBookPage"
    "?Key=Assessor&booktype=O&booknumber={book}&pagenumber={page}"
)

# use code -> (ownership_estate_type, build_status, structure_form, property_usage_type, property_type)
PROPERTY_USE_CODES = {
    "0000": ("FeeSimple", "VacantLand", None, "TransitionalProperty", "LandParcel"),
    "0010": ("FeeSimple", "VacantLand", None, "Residential", "LandParcel"),
    "0030": ("FeeSimple", "VacantLand", None, "Residential", "LandParcel"),
    "0040": ("Condominium", "VacantLand", None, "Residential", "LandParcel"),
    "0050": ("Condominium", "VacantLand", None, "Residential", "LandParcel"),
    "0100": ("FeeSimple", "Improved", "SingleFamilyDetached", "Residential", "Building"),
    "0101": ("FeeSimple", "Improved", "SingleFamilyDetached", "Residential", "Building"),
    "0104": ("FeeSimple", "Improved", "SingleFamilyDetached", "Residential", "Building"),
    "0105": ("FeeSimple", "Improved", "SingleFamilyDetached", "Residential", "Building"),
    "0110": ("FeeSimple", "Improved", "TownhouseRowhouse", "Residential", "Building"),
    "0130": ("FeeSimple", "Improved", "SingleFamilyDetached", "Residential", "Building"),
    "0150": ("FeeSimple", "Improved", "SingleFamilyDetached", "Residential", "Building"),
    "0200": ("FeeSimple", "Improved", "ManufacturedHomeOnLand", "Residential", "ManufacturedHome"),
    "0201": ("FeeSimple", "Improved", "ManufacturedHomeOnLand", "Residential", "ManufacturedHome"),
    "0210": ("OtherEstate", "Improved", "ManufacturedHousingSingleWide", "Residential", "ManufacturedHome"),
    "0300": ("FeeSimple", "Improved", "MultiFamilyMoreThan10", "Residential", "Building"),
    "0304": ("Condominium", "Improved", "ApartmentUnit", "Residential", "Unit"),
    "0305": ("FeeSimple", "Improved", "MultiFamilyMoreThan10", "Residential", "Building"),
    "0400": ("Condominium", "Improved", "ApartmentUnit", "Residential", "Unit"),
    "0420": ("Timeshare", "Improved", "ApartmentUnit", "Residential", "Unit"),
    "0500": ("Cooperative", "Improved", "ManufacturedHomeInPark", "Residential", "ManufacturedHome"),
    "0501": ("Cooperative", "Improved", "ManufacturedHomeInPark", "Residential", "ManufacturedHome"),
    "0510": ("Cooperative", "Improved", "ApartmentUnit", "Residential", "Unit"),
    "0600": ("FeeSimple", "Improved", None, "Retirement", "Building"),
    "0605": ("FeeSimple", "Improved", None, "Retirement", "Building"),
    "0620": ("FeeSimple", "Improved", None, "HomesForAged", "Building"),
    "0700": ("FeeSimple", "Improved", "SingleFamilyDetached", "Residential", "Building"),
    "0800": ("FeeSimple", "Improved", "MultiFamilyLessThan10", "Residential", "Building"),
    "0801": ("FeeSimple", "Improved", "MultiFamilyLessThan10", "Residential", "Building"),
    "0804": ("FeeSimple", "Improved", "MultiFamilyLessThan10", "Residential", "Building"),
    "0805": ("FeeSimple", "Improved", "MultiFamilyLessThan10", "Residential", "Building"),
    "0810": ("FeeSimple", "VacantLand", None, "Unknown", "LandParcel"),
    "0840": ("FeeSimple", "VacantLand", None, "Unknown", "LandParcel"),
    "0900": ("FeeSimple", "Improved", None, "ResidentialCommonElementsAreas", "LandParcel"),
    "1000": ("FeeSimple", "VacantLand", None, "Commercial", "LandParcel"),
    "1004": ("Condominium", "VacantLand", None, "Commercial", "Unit"),
    "1049": ("Condominium", "VacantLand", None, "Commercial", "LandParcel"),
    "1100": ("FeeSimple", "Improved", None, "RetailStore", "Building"),
    "1104": ("Condominium", "Improved", None, "RetailStore", "Unit"),
    "1200": ("FeeSimple", "Improved", None, "Commercial", "Building"),
    "1204": ("Condominium", "Improved", None, "Commercial", "Unit"),
    "1300": ("FeeSimple", "Improved", None, "DepartmentStore", "Building"),
    "1304": ("Condominium", "Improved", None, "DepartmentStore", "Unit"),
    "1400": ("FeeSimple", "Improved", None, "Supermarket", "Building"),
    "1404": ("Condominium", "Improved", None, "Supermarket", "Unit"),
    "1500": ("FeeSimple", "Improved", None, "ShoppingCenterRegional", "Building"),
    "1600": ("FeeSimple", "Improved", None, "ShoppingCenterCommunity", "Building"),
    "1604": ("Condominium", "Improved", None, "ShoppingCenterCommunity", "Unit"),
    "1700": ("FeeSimple", "Improved", None, "OfficeBuilding", "Building"),
    "1704": ("Condominium", "Improved", None, "OfficeBuilding", "Unit"),
    "1800": ("FeeSimple", "Improved", None, "OfficeBuilding", "Building"),
    "1804": ("Condominium", "Improved", None, "OfficeBuilding", "Unit"),
    "1900": ("FeeSimple", "Improved", None, "OfficeBuilding", "Building"),
    "1904": ("Condominium", "Improved", None, "OfficeBuilding", "Unit"),
    "2000": ("FeeSimple", "Improved", None, "TransportationTerminal", "Building"),
    "2004": ("Condominium", "Improved", None, "TransportationTerminal", "Unit"),
    "2010": ("FeeSimple", "Improved", None, "TransportationTerminal", "Building"),
    "2014": ("Condominium", "Improved", None, "TransportationTerminal", "Unit"),
    "2100": ("FeeSimple", "Improved", None, "Restaurant", "Building"),
    "2104": ("Condominium", "Improved", None, "Restaurant", "Unit"),
    "2200": ("FeeSimple", "Improved", None, "Restaurant", "Building"),
    "2204": ("Condominium", "Improved", None, "Restaurant", "Unit"),
    "2300": ("FeeSimple", "Improved", None, "FinancialInstitution", "Building"),
    "2304": ("Condominium", "Improved", None, "FinancialInstitution", "Unit"),
    "2400": ("FeeSimple", "Improved", None, "OfficeBuilding", "Building"),
    "2500": ("FeeSimple", "Improved", None, "Commercial", "Building"),
    "2600": ("FeeSimple", "Improved", None, "ServiceStation", "Building"),
    "2700": ("FeeSimple", "Improved", None, "AutoSalesRepair", "Building"),
    "2704": ("Condominium", "Improved", None, "AutoSalesRepair", "Unit"),
    "2800": ("FeeSimple", "Improved", None, "MobileHomePark", "LandParcel"),
    "2900": ("FeeSimple", "Improved", None, "WholesaleOutlet", "Building"),
    "3000": ("FeeSimple", "Improved", None, "RetailStore", "Building"),
    "3100": ("FeeSimple", "Improved", None, "Theater", "Building"),
    "3200": ("FeeSimple", "Improved", None, "Theater", "Building"),
    "3300": ("FeeSimple", "Improved", None, "Entertainment", "Building"),
    "3400": ("FeeSimple", "Improved", None, "Entertainment", "Building"),
    "3500": ("FeeSimple", "Improved", None, "Entertainment", "Building"),
    "3600": ("FeeSimple", "Improved", None, "Recreational", "LandParcel"),
    "3700": ("FeeSimple", "Improved", None, "RaceTrack", "LandParcel"),
    "3800": ("FeeSimple", "Improved", None, "GolfCourse", "LandParcel"),
    "3900": ("FeeSimple", "Improved", None, "Hotel", "Building"),
    "3904": ("Condominium", "Improved", None, "Hotel", "Unit"),
    "4000": ("FeeSimple", "VacantLand", None, "Industrial", "LandParcel"),
    "4004": ("Condominium", "VacantLand", None, "Industrial", "Unit"),
    "4100": ("FeeSimple", "Improved", None, "LightManufacturing", "Building"),
    "4104": ("Condominium", "Improved", None, "LightManufacturing", "Unit"),
    "4200": ("FeeSimple", "Improved", None, "HeavyManufacturing", "Building"),
    "4300": ("FeeSimple", "Improved", None, "LumberYard", "Building"),
    "4400": ("FeeSimple", "Improved", None, "PackingPlant", "Building"),
    "4500": ("FeeSimple", "Improved", None, "LightManufacturing", "Building"),
    "4600": ("FeeSimple", "Improved", None, "Cannery", "Building"),
    "4700": ("FeeSimple", "Improved", None, "MineralProcessing", "Building"),
    "4800": ("FeeSimple", "Improved", None, "Warehouse", "Building"),
    "4804": ("Condominium", "Improved", None, "Warehouse", "Unit"),
    "4900": ("FeeSimple", "Improved", None, "OpenStorage", "LandParcel"),
    "4960": ("Condominium", "Improved", None, "Commercial", "Unit"),
    "4969": ("Condominium", "Improved", None, "Commercial", "Unit"),
    "5000": ("FeeSimple", "Improved", None, "Agricultural", "LandParcel"),
    "5100": ("FeeSimple", "Improved", None, "DrylandCropland", "LandParcel"),
    "5200": ("FeeSimple", "Improved", None, "DrylandCropland", "LandParcel"),
    "5300": ("FeeSimple", "Improved", None, "DrylandCropland", "LandParcel"),
    "5400": ("FeeSimple", "Improved", None, "TimberLand", "LandParcel"),
    "5500": ("FeeSimple", "Improved", None, "TimberLand", "LandParcel"),
    "5600": ("FeeSimple", "Improved", None, "TimberLand", "LandParcel"),
    "5700": ("FeeSimple", "Improved", None, "TimberLand", "LandParcel"),
    "5800": ("FeeSimple", "Improved", None, "TimberLand", "LandParcel"),
    "5900": ("FeeSimple", "Improved", None, "TimberLand", "LandParcel"),
    "6000": ("FeeSimple", "Improved", None, "GrazingLand", "LandParcel"),
    "6100": ("FeeSimple", "Improved", None, "GrazingLand", "LandParcel"),
    "6200": ("FeeSimple", "Improved", None, "GrazingLand", "LandParcel"),
    "6300": ("FeeSimple", "Improved", None, "GrazingLand", "LandParcel"),
    "6400": ("FeeSimple", "Improved", None, "GrazingLand", "LandParcel"),
    "6500": ("FeeSimple", "Improved", None, "GrazingLand", "LandParcel"),
    "6600": ("FeeSimple", "Improved", None, "OrchardGroves", "LandParcel"),
    "6700": ("FeeSimple", "Improved", None, "LivestockFacility", "LandParcel"),
    "6800": ("FeeSimple", "Improved", None, "LivestockFacility", "LandParcel"),
    "6804": ("Condominium", "Improved", None, "LivestockFacility", "LandParcel"),
    "6900": ("FeeSimple", "Improved", None, "Ornamentals", "LandParcel"),
    "7000": ("FeeSimple", "VacantLand", None, "GovernmentProperty", "LandParcel"),
    "7100": ("FeeSimple", "Improved", None, "Church", "Building"),
    "7200": ("FeeSimple", "Improved", None, "PrivateSchool", "Building"),
    "7300": ("FeeSimple", "Improved", None, "PrivateHospital", "Building"),
    "7400": ("FeeSimple", "Improved", None, "HomesForAged", "Building"),
    "7500": ("FeeSimple", "Improved", None, "NonProfitCharity", "Building"),
    "7600": ("FeeSimple", "Improved", None, "MortuaryCemetery", "Building"),
    "7700": ("FeeSimple", "Improved", None, "ClubsLodges", "Building"),
    "7800": ("FeeSimple", "Improved", None, "SanitariumConvalescentHome", "Building"),
    "7900": ("FeeSimple", "Improved", None, "CulturalOrganization", "Building"),
    "8000": ("FeeSimple", "Improved", None, "GovernmentProperty", "LandParcel"),
    "8100": ("FeeSimple", "Improved", None, "Military", "Building"),
    "8200": ("FeeSimple", "Improved", None, "ForestParkRecreation", "LandParcel"),
    "8205": ("OtherEstate", "VacantLand", None, "ReferenceParcel", "LandParcel"),
    "8300": ("FeeSimple", "Improved", None, "PublicSchool", "Building"),
    "8400": ("FeeSimple", "Improved", None, "PrivateSchool", "Building"),
    "8500": ("FeeSimple", "Improved", None, "PublicHospital", "Building"),
    "8600": ("FeeSimple", "Improved", None, "GovernmentProperty", "LandParcel"),
    "8700": ("FeeSimple", "Improved", None, "GovernmentProperty", "LandParcel"),
    "8800": ("FeeSimple", "Improved", None, "GovernmentProperty", "LandParcel"),
    "8900": ("FeeSimple", "Improved", None, "GovernmentProperty", "LandParcel"),
    "9000": ("Leasehold", "Improved", None, "ReferenceParcel", "LandParcel"),
    "9010": ("Leasehold", "Improved", None, "TransportationTerminal", "Building"),
    "9100": ("FeeSimple", "Improved", None, "Utility", "Building"),
    "9200": ("FeeSimple", "Improved", None, "MineralProcessing", "LandParcel"),
    "9300": ("SubsurfaceRights", "Improved", None, "ReferenceParcel", "LandParcel"),
    "9400": ("RightOfWay", "Improved", None, "ReferenceParcel", "LandParcel"),
    "9500": ("FeeSimple", "Improved", None, "RiversLakes", "LandParcel"),
    "9600": ("FeeSimple", "Improved", None, "SewageDisposal", "LandParcel"),
    "9700": ("FeeSimple", "Improved", None, "Recreational", "LandParcel"),
    "9800": ("FeeSimple", "Improved", None, "ReferenceParcel", "LandParcel"),
    "9900": ("FeeSimple", "VacantLand", None, "TransitionalProperty", "LandParcel"),
    "9999": ("FeeSimple", "Improved", None, "GovernmentProperty", "LandParcel"),
}

SALE_TYPES = {
    "W": "Warranty Deed",
    "WD": "Warranty Deed",
    "WARRANTY DEED": "Warranty Deed",
    "Q": "Quitclaim Deed",
    "QC": "Quitclaim Deed",
    "QUITCLAIM DEED": "Quitclaim Deed",
    "QUIT CLAIM": "Quitclaim Deed",
    "QUIT CLAIM DEED": "Quitclaim Deed",
    "T": "Tax Deed",
    "TD": "Tax Deed",
    "TAX DEED": "Tax Deed",
    "SW": "Special Warranty Deed",
    "SPECIAL WARRANTY DEED": "Special Warranty Deed",
    "C": "Correction Deed",
    "CORRECTION DEED": "Correction Deed",
    "L": "Life Estate Deed",
    "TQ": "Trustee's Deed",
    "AS": "Assignment of Contract",
}


# Property

def use_code(value):
    match = re.search(r"\d{4}", clean_text(value) or "")
    return match.group(0) if match else None


def map_use_code(value):
    """The five property classification fields for a Palm Beach use code."""
    code = use_code(value)
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


def built_year(model):
    years = [whole_number(top(b, "Year Built")) for b in model["buildings"]]
    years = [y for y in years if y]
    return min(years) if years else None


def extract_property(model, pcn):
    detail = model.get("propertyDetail") or {}
    return new_property(
        parcel_identifier=pcn,
        property_legal_description_text=clean_text(detail.get("LegalDesc")),
        property_structure_built_year=built_year(model),
        number_of_units=whole_number(detail.get("Units")),
        subdivision=clean_text(detail.get("Subdivision")),
        zoning=clean_text(detail.get("Zoning")),
        **map_use_code(detail.get("UseCode")),
    )


# Address

def extract_address(model, unnormalized):
    detail = model.get("propertyDetail") or {}
    location = clean_text(detail.get("Location"))
    full_address = clean_text(unnormalized.get("full_address"))
    address = new_address(
        county_name=unnormalized.get("county_jurisdiction") or "Palm Beach",
        unnormalized_address=full_address or location,
        country_code="US",
    )
    parsed = parse_full_address(full_address)
    if parsed["street_number"] is None and location:
        parsed = parse_street_components(location.upper())
    address.update({k: v for k, v in parsed.items() if v is not None})
    address.update({k: v for k, v in extract_block_lot(detail.get("LegalDesc")).items() if v is not None})
    return address


def extract_mailing_address(model):
    detail = model.get("propertyDetail") or {}
    lines = [clean_text(detail.get(f"AddressLine{i}")) for i in (1, 2, 3)]
    text = ", ".join(line for line in lines if line)
    return new_mailing_address(unnormalized_address=text) if text else None


# Lot and taxes

def extract_lot(model):
    detail = model.get("propertyDetail") or {}
    acres = parse_float(detail.get("Acres")) or None
    return new_lot(
        lot_type=lot_type_for_acres(acres),
        lot_size_acre=acres,
        lot_area_sqft=whole_number(detail.get("SqFt")),
    )


def extract_taxes(model):
    """One tax record per year, merging the assessment, appraisal and tax tables."""
    by_year = {}
    for table in ("assessmentInfo", "appraisalInfo", "taxInfo"):
        for row in model.get(table) or []:
            year = whole_number((row or {}).get("TaxYear"))
            if year:
                by_year.setdefault(year, {}).update(row)
    return [
        new_tax(
            tax_year=year,
            property_assessed_value_amount=parse_currency(values.get("AssessedValue")),
            property_market_value_amount=parse_currency(values.get("TotalMarketValue")),
            property_building_amount=parse_currency(values.get("ImprovementValue")),
            property_land_amount=parse_currency(values.get("LandValue")),
            property_taxable_value_amount=parse_currency(values.get("TaxableValue")),
        )
        for year, values in sorted(by_year.items())
    ]


# Sales

def map_sale_type(sale_type):
    return SALE_TYPES.get((clean_text(sale_type) or "").upper(), "Miscellaneous")


def extract_sales(model):
    """(sale, deed, file, owner name) per salesInfo entry."""
    entries = []
    for info in model.get("salesInfo") or []:
        if not info:
            continue
        book = clean_text(info.get("Book"))
        page = clean_text(info.get("Page"))
        sale = new_sales_history(
            ownership_transfer_date=parse_date_to_iso(info.get("SaleDate")),
            purchase_price_amount=parse_currency(info.get("Price")),
        )
        deed = prune_nulls(new_deed(deed_type=map_sale_type(info.get("SaleType")), book=book, page=page))
        file_record = new_file(
            document_type="Title",
            name=f"Deed {book}/{page}" if book and page else "Deed Document",
            original_url=CLERK_BOOK_PAGE_URL.format(book=book, page=page) if book and page else None,
        )
        entries.append((sale, deed, file_record, clean_text(info.get("OwnerName"))))
    return entries


def write_sales(writer, model):
    """Returns [(sales file, owner name)]."""
    sales = []
    for n, (sale, deed, file_record, owner_name) in enumerate(extract_sales(model), 1):
        sale_file = writer.entity(f"sales_history_{n}.json", sale)
        deed_file = writer.entity(f"deed_{n}.json", deed)
        file_file = writer.entity(f"file_{n}.json", file_record)
        writer.relationship(f"relationship_sales_history_deed_{n}.json", sale_file, deed_file)
        writer.relationship(f"relationship_deed_file_{n}.json", deed_file, file_file)
        sales.append((sale_file, owner_name))
    return sales


# Owners and buildings

def all_owners(owner_entry):
    """(owner, is current) for current owners first, then earlier sale-date owners."""
    by_date = (owner_entry or {}).get("owners_by_date") or {}
    ordered = [(o, True) for o in by_date.get("current") or []]
    for date in sorted(k for k in by_date if k != "current"):
        ordered.extend((o, False) for o in by_date[date] or [])
    return ordered


def write_owners(writer, owner_entry, mailing_file):
    """Write person_N/company_N once per distinct owner; returns {dedupe key: file}."""
    files = {}
    counts = {"person": 0, "company": 0}
    for owner, is_current in all_owners(owner_entry):
        key = dedupe_key(owner)
        kind = owner.get("type")
        if not key or key in files or kind not in counts:
            continue
        counts[kind] += 1
        n = counts[kind]
        if kind == "person":
            record = new_person(
                first_name=format_name(owner.get("first_name")),
                last_name=format_name(owner.get("last_name")),
                middle_name=format_name(owner.get("middle_name")),
            )
        else:
            record = new_company(name=owner.get("name"))
        owner_file = files[key] = writer.entity(f"{kind}_{n}.json", record)
        if is_current and mailing_file:
            writer.relationship(f"relationship_{kind}_has_mailing_address_{n}.json", owner_file, mailing_file)
    return files


def link_sales_to_owners(writer, sales, owner_files):
    """Link each sale to the owners named in its OwnerName."""
    for sale_n, (sale_file, owner_name) in enumerate(sales, 1):
        owners, _ = classify_owner_cell(owner_name)
        for owner in owners:
            owner_file = owner_files.get(dedupe_key(owner))
            if owner_file:
                writer.relationship(
                    f"relationship_sales_history_{sale_n}_{owner_file[:-len('.json')]}.json", sale_file, owner_file
                )


def write_layouts(writer, layouts):
    """Write layout_N; building rooms link to their Building layout. Returns {building number: file}."""
    building_files = {}
    for index, layout in enumerate(layouts, 1):
        layout_file = writer.entity(f"layout_{index}.json", layout)
        number = layout.get("building_number")
        if layout.get("space_type") == "Building":
            building_files[number] = layout_file
        elif number in building_files:
            parent = building_files[number]
            writer.relationship(f"relationship_{parent[:-len('.json')]}_has_layout_{index}.json", parent, layout_file)
    return building_files


def write_building_records(writer, records, prefix, building_files):
    for index, record in enumerate(records, 1):
        record_file = writer.entity(f"{prefix}_{index}.json", record)
        parent = building_files.get(record.get("building_number"))
        if parent:
            writer.relationship(f"relationship_{parent[:-len('.json')]}_has_{prefix}_{index}.json", parent, record_file)


def main(work_dir):
    soup = load_html(work_dir)
    model = load_model(soup)
    seed = load_seed(work_dir)
    unnormalized = load_unnormalized_address(work_dir)
    pcn = extract_pcn(soup, clean_text(seed.get("parcel_id")))
    key = property_key(pcn)
    writer = EntityWriter(data_dir_for(work_dir), seed)

    owner_data = load_owners_file(work_dir, config.OWNER_DATA_FILE)
    layout_data = load_owners_file(work_dir, config.LAYOUT_DATA_FILE)
    structure_data = load_owners_file(work_dir, config.STRUCTURE_DATA_FILE)
    utility_data = load_owners_file(work_dir, config.UTILITIES_DATA_FILE)

    writer.entity("property.json", extract_property(model, pcn))

    try:
        writer.entity("address.json", extract_address(model, unnormalized))
    except Exception as e:
        logger.error(f"❌ Error extracting address for {pcn}: {e}")

    mailing_file = None
    mailing = extract_mailing_address(model)
    if mailing:
        mailing_file = writer.entity("mailing_address.json", mailing)

    try:
        writer.entity("lot.json", extract_lot(model))
    except Exception as e:
        logger.error(f"❌ Error extracting lot information for {pcn}: {e}")

    try:
        for n, tax in enumerate(extract_taxes(model), 1):
            writer.entity(f"tax_{n}.json", tax)
    except Exception as e:
        logger.error(f"❌ Error extracting tax data for {pcn}: {e}")

    sales = []
    try:
        sales = write_sales(writer, model)
    except Exception as e:
        logger.error(f"❌ Error extracting sales history for {pcn}: {e}")

    try:
        owner_files = write_owners(writer, owners_entry(owner_data, pcn), mailing_file)
        link_sales_to_owners(writer, sales, owner_files)
    except Exception as e:
        logger.error(f"❌ Error processing owners for {pcn}: {e}")

    building_files = write_layouts(writer, (owners_entry(layout_data, pcn) or {}).get("layouts", []))
    structures = (owners_entry(structure_data, pcn) or {}).get("structures", [])
    write_building_records(writer, structures, "structure", building_files)
    utilities = (owners_entry(utility_data, pcn) or {}).get("utilities", [])
    write_building_records(writer, utilities, "utility", building_files)

    logger.info(f"✅ Wrote {len(writer.written)} files for {key}")
    return writer.written
