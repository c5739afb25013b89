import logging
import re

from ... import config
from ...address import SUFFIX_MAPPINGS
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
    units_type_for_count,
)
from ...utils import clean_text, format_name, parse_currency, parse_date_to_iso, parse_float
from ..common import (
    EntityWriter,
    data_dir_for,
    load_input_json,
    load_owners_file,
    load_seed,
    load_unnormalized_address,
    owners_entry,
    property_key,
)
from .owner_processor import extract_folio

logger = logging.getLogger(__name__)

SQ_FT_PER_ACRE = 43560

CLERK_SEARCH_URL = "https://onlineservices.miamidadeclerk.gov/officialrecords/SearchResults?QS="

# first two digits of the DOR code
DOR_PROPERTY_TYPES = {
    "00": "VacantLand",
    "01": "SingleFamily",
    "02": "MobileHome",
    "03": "MultiFamilyMoreThan10",
    "04": "Condominium",
    "05": "Cooperative",
    "08": "MultiFamilyLessThan10",
    "09": "ResidentialCommonElementsAreas",
}

VACANT_LAND_DOR_CODES = {"1066", "1081"}

# SaleInstrument code -> (deed_type, file document_type)
SALE_INSTRUMENTS = {
    "QCD": ("Quitclaim Deed", "ConveyanceDeedQuitClaimDeed"),
    "DEE": ("Warranty Deed", "ConveyanceDeedWarrantyDeed"),
    "WDE": ("Warranty Deed", "ConveyanceDeedWarrantyDeed"),
    "SWD": ("Special Warranty Deed", "ConveyanceDeedWarrantyDeed"),
    "GRD": ("Grant Deed", "ConveyanceDeed"),
    "BSD": ("Bargain and Sale Deed", "ConveyanceDeedBargainAndSaleDeed"),
    "LBD": ("Lady Bird Deed", "ConveyanceDeed"),
    "TOD": ("Transfer on Death Deed", "ConveyanceDeed"),
    "SHD": ("Sheriff's Deed", "ConveyanceDeed"),
    "TXD": ("Tax Deed", "ConveyanceDeed"),
    "TRD": ("Trustee's Deed", "ConveyanceDeed"),
    "PRD": ("Personal Representative Deed", "ConveyanceDeed"),
    "CRD": ("Correction Deed", "ConveyanceDeed"),
    "DIL": ("Deed in Lieu of Foreclosure", "ConveyanceDeed"),
    "LED": ("Life Estate Deed", "ConveyanceDeed"),
    "JTD": ("Joint Tenancy Deed", "ConveyanceDeed"),
    "TCD": ("Tenancy in Common Deed", "ConveyanceDeed"),
    "CPD": ("Community Property Deed", "ConveyanceDeed"),
    "GFT": ("Gift Deed", "ConveyanceDeed"),
    "ITD": ("Interspousal Transfer Deed", "ConveyanceDeed"),
    "WLD": ("Wild Deed", "ConveyanceDeed"),
    "SMD": ("Special Master's Deed", "ConveyanceDeed"),
    "COD": ("Court Order Deed", "ConveyanceDeed"),
    "CFD": ("Contract for Deed", "ConveyanceDeed"),
    "QTD": ("Quiet Title Deed", "ConveyanceDeed"),
    "ADM": ("Administrator's Deed", "ConveyanceDeed"),
    "GAD": ("Guardian's Deed", "ConveyanceDeed"),
    "RCD": ("Receiver's Deed", "ConveyanceDeed"),
    "RWD": ("Right of Way Deed", "ConveyanceDeed"),
    "VPD": ("Vacation of Plat Deed", "ConveyanceDeed"),
    "AOC": ("Assignment of Contract", "AssignmentAssignmentOfContract"),
    "ROC": ("Release of Contract", "Assignment"),
}
DEFAULT_INSTRUMENT = ("Warranty Deed", "ConveyanceDeedWarrantyDeed")

FENCE_TYPES = [
    (r"chain.?link", "ChainLink"),
    (r"wood", "Wood"),
    (r"vinyl", "Vinyl"),
    (r"aluminum", "Aluminum"),
    (r"wrought.?iron", "WroughtIron"),
    (r"bamboo", "Bamboo"),
    (r"composite", "Composite"),
    (r"privacy", "Privacy"),
    (r"picket", "Picket"),
    (r"split.?rail", "SplitRail"),
    (r"stockade", "Stockade"),
    (r"board", "Board"),
    (r"post.?and.?rail", "PostAndRail"),
    (r"lattice", "Lattice"),
]

FENCE_LENGTHS = [25, 50, 75, 100, 150, 200, 300, 500]
FENCE_HEIGHTS = [3, 4, 5, 6, 8, 10, 12]


# Property

def map_dor_property_type(dor_code, dor_description=None):
    code = clean_text(dor_code)
    if not code or len(code) < 2:
        return None
    if code == "0000" and clean_text(dor_description) == "REFERENCE FOLIO":
        raise UnknownEnumValueError(code, "property.property_type")
    if code in VACANT_LAND_DOR_CODES:
        return "VacantLand"
    try:
        return DOR_PROPERTY_TYPES[code[:2]]
    except KeyError:
        raise UnknownEnumValueError(code, "property.property_type")


def built_years(data):
    """(built year, effective year) from building 1 segment 1, falling back to YearBuilt."""
    infos = (data.get("Building") or {}).get("BuildingInfos") or []
    main_segments = [b for b in infos if b and b.get("BuildingNo") == 1 and b.get("SegNo") == 1]
    actual = [int(b["Actual"]) for b in main_segments if b.get("Actual")]
    effective = [int(b["Effective"]) for b in main_segments if b.get("Effective")]
    built = min(actual) if actual else None
    if built is None:
        year = parse_float((data.get("PropertyInfo") or {}).get("YearBuilt"))
        built = int(year) if year else None
    return built, (min(effective) if effective else None)


def area_text(value):
    """Area as a string, None unless it carries at least two digits."""
    text = clean_text(value)
    if text is None:
        return None
    text = text.replace(",", "")
    return text if re.search(r"\d{2,}", text) else None


def extract_property(data, folio):
    info = data.get("PropertyInfo") or {}
    legal = data.get("LegalDescription") or {}
    built, effective = built_years(data)
    unit_count = parse_float(info.get("UnitCount"))
    unit_count = int(unit_count) if unit_count is not None else None

    return new_property(
        parcel_identifier=folio,
        property_type=map_dor_property_type(info.get("DORCode"), info.get("DORDescription")),
        property_legal_description_text=clean_text(legal.get("Description")),
        property_structure_built_year=built,
        property_effective_built_year=effective,
        number_of_units=unit_count,
        number_of_units_type=units_type_for_count(unit_count) if unit_count else None,
        livable_floor_area=area_text(info.get("BuildingHeatedArea")),
        area_under_air=area_text(info.get("BuildingHeatedArea")),
        total_area=area_text(info.get("BuildingGrossArea")),
        subdivision=clean_text(info.get("SubdivisionDescription")),
        zoning=clean_text(info.get("PrimaryZoneDescription")),
    )


# Address

def postal_codes(site, unnormalized):
    full_address = unnormalized.get("full_address") or ""
    match = re.search(r"(\d{5})-(\d{4})", full_address)
    if match:
        return match.group(1), match.group(2)
    zip_code = clean_text(site.get("Zip")) or ""
    if "-" in zip_code:
        postal, plus_four = zip_code.split("-", 1)
        return postal, plus_four
    match = re.search(r"\d{5}", full_address) or re.search(r"\d{5}", zip_code)
    return (match.group(0) if match else None), None


def extract_address(data, unnormalized):
    info = data.get("PropertyInfo") or {}
    sites = data.get("SiteAddress") or []
    site = sites[0] if sites else {}
    street_name = clean_text(site.get("StreetName"))
    if not street_name:
        raise ValueError(f"Street name is not extractable for folio {info.get('FolioNumber')}")

    city = clean_text(site.get("City")) or clean_text(info.get("Municipality"))
    if not city and "," in (unnormalized.get("full_address") or ""):
        city = clean_text(unnormalized["full_address"].split(",")[1])
    suffix = clean_text(site.get("StreetSuffix"))
    postal, plus_four = postal_codes(site, unnormalized)
    street_number = site.get("StreetNumber")

    return new_address(
        street_number=str(street_number) if street_number not in (None, "") else None,
        street_pre_directional_text=clean_text(site.get("StreetPrefix")),
        street_name=street_name,
        street_suffix_type=SUFFIX_MAPPINGS.get(suffix.upper()) if suffix else None,
        street_post_directional_text=clean_text(site.get("StreetSuffixDirection")),
        unit_identifier=clean_text(site.get("Unit")),
        city_name=city.upper() if city else None,
        state_code=clean_text((data.get("MailingAddress") or {}).get("State")) or "FL",
        postal_code=postal,
        plus_four_postal_code=plus_four,
        country_code="US",
        county_name=unnormalized.get("county_jurisdiction") or "Miami Dade",
        municipality_name=clean_text(info.get("Municipality")),
        unnormalized_address=clean_text(unnormalized.get("full_address")),
    )


def extract_mailing_address(data):
    mailing = data.get("MailingAddress") or {}
    street = ", ".join(filter(None, (clean_text(mailing.get(k)) for k in ("Address1", "Address2", "Address3"))))
    locality = " ".join(filter(None, (
        clean_text(mailing.get("City")),
        clean_text(mailing.get("State")),
        clean_text(mailing.get("ZipCode")),
    )))
    text = ", ".join(filter(None, (street, locality)))
    return new_mailing_address(unnormalized_address=text) if text else None


# Lot

def lot_dimensions_from_legal(legal_text):
    """(width, length) from "LOT SIZE 50.000 X 150"; the smaller side is the width."""
    match = re.search(r"LOT SIZE\s+([\d.]+)\s*X\s*([\d.]+)", legal_text or "", re.IGNORECASE)
    if not match:
        return None, None
    try:
        a, b = float(match.group(1)), float(match.group(2))
    except ValueError:
        return None, None
    return round(min(a, b)), round(max(a, b))


def _bucket(value, limits, default):
    for limit in limits:
        if value <= limit:
            return f"{limit}ft"
    return default


def fence_attributes(data):
    """(fencing_type, fence_height, fence_length) from the first fence extra feature."""
    features = (data.get("ExtraFeature") or {}).get("ExtraFeatureInfos") or []
    for feature in features:
        description = ((feature or {}).get("Description") or "").lower()
        if "fence" not in description:
            continue
        fencing_type = next((t for p, t in FENCE_TYPES if re.search(p, description)), "Wood")
        length = None
        units = parse_float(feature.get("Units"))
        if units is not None:
            length = _bucket(round(units), FENCE_LENGTHS, "1000ft")
        height = None
        match = re.search(r"(\d+)-?(\d+)?\s*ft\s*high", description)
        if match:
            height = _bucket(int(match.group(1)), FENCE_HEIGHTS, "6ft")
        return fencing_type, height, length
    return None, None, None


def extract_lot(data):
    info = data.get("PropertyInfo") or {}
    size = parse_float(info.get("LotSize"))
    if size is not None and size <= 0:
        size = None
    width, length = lot_dimensions_from_legal((data.get("LegalDescription") or {}).get("Description"))
    fencing_type, fence_height, fence_length = fence_attributes(data)
    acres = size / SQ_FT_PER_ACRE if size is not None else None
    return new_lot(
        lot_type=lot_type_for_acres(acres),
        lot_area_sqft=round(size) if size is not None else None,
        lot_size_acre=acres,
        lot_width_feet=width,
        lot_length_feet=length,
        fencing_type=fencing_type,
        fence_height=fence_height,
        fence_length=fence_length,
    )


# Taxes

def extract_taxes(data):
    """One tax record per assessment year, joined with that year's taxable values."""
    taxable_by_year = {
        info.get("Year"): info
        for info in (data.get("Taxable") or {}).get("TaxableInfos") or []
        if info
    }
    assessed_by_year = {
        info.get("Year"): info
        for info in (data.get("Assessment") or {}).get("AssessmentInfos") or []
        if info and info.get("Year") is not None
    }
    taxes = []
    for year in sorted(assessed_by_year, key=int):
        assessment = assessed_by_year[year]
        taxable = taxable_by_year.get(year) or {}
        taxes.append(new_tax(
            tax_year=int(year),
            property_assessed_value_amount=parse_currency(assessment.get("AssessedValue")),
            property_market_value_amount=parse_currency(assessment.get("TotalValue")),
            property_building_amount=parse_currency(assessment.get("BuildingOnlyValue")),
            property_land_amount=parse_currency(assessment.get("LandValue")),
            property_taxable_value_amount=parse_currency(taxable.get("SchoolTaxableValue")),
        ))
    return taxes


# Sales

def _first(record, *keys):
    for key in keys:
        value = clean_text(record.get(key))
        if value:
            return value
    return None


def extract_sales(data):
    """(sale, deed, file or None) per SalesInfos entry, in source order."""
    entries = []
    for info in data.get("SalesInfos") or []:
        if not info:
            continue
        sale = new_sales_history(
            ownership_transfer_date=parse_date_to_iso(info.get("DateOfSale")),
            purchase_price_amount=parse_currency(info.get("SalePrice")),
        )
        book = _first(info, "OfficialRecordBook", "Book", "DeedBook")
        page = _first(info, "OfficialRecordPage", "Page", "DeedPage")
        instrument = _first(info, "Instrument", "InstrumentNumber", "DocumentNumber")
        code = (_first(info, "SaleInstrument", "SaleType", "DeedType") or "").upper()
        deed_type, document_type = SALE_INSTRUMENTS.get(code, DEFAULT_INSTRUMENT)

        deed = prune_nulls(new_deed(deed_type=deed_type, book=book, page=page, instrument_number=instrument))
        file_record = None
        if (book and page) or instrument:
            encoded = clean_text(info.get("EncodedRecordBookAndPage"))
            file_record = new_file(
                file_format="txt",
                name=f"OR Book {book} Page {page}" if book and page else f"Instrument {instrument}",
                original_url=CLERK_SEARCH_URL + encoded if encoded else None,
                document_type=document_type,
            )
        entries.append((sale, deed, file_record))
    return entries


def write_sales(writer, data):
    sales_files = []
    file_n = 0
    for n, (sale, deed, file_record) in enumerate(extract_sales(data), 1):
        sale_file = writer.entity(f"sales_history_{n}.json", sale)
        deed_file = writer.entity(f"deed_{n}.json", deed)
        writer.relationship(f"relationship_sales_history_deed_{n}.json", sale_file, deed_file)
        if file_record is not None:
            file_n += 1
            file_file = writer.entity(f"file_{file_n}.json", file_record)
            writer.relationship(f"relationship_deed_file_{file_n}.json", deed_file, file_file)
        sales_files.append(sale_file)
    return sales_files


# Owners and buildings

def write_owners(writer, owners, mailing_file, first_sale):
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
            prefix, n = "person", person_n
        elif owner.get("type") == "company":
            company_n += 1
            record = new_company(name=owner.get("name"))
            prefix, n = "company", company_n
        else:
            continue
        owner_file = writer.entity(f"{prefix}_{n}.json", record)
        if mailing_file:
            writer.relationship(f"relationship_{prefix}_has_mailing_address_{n}.json", owner_file, mailing_file)
        if first_sale:
            writer.relationship(f"relationship_sales_history_{prefix}_{n}.json", first_sale, owner_file)


def write_layouts(writer, layouts):
    """Write layout_N; rooms are linked to the Building layout when there is one."""
    files = [writer.entity(f"layout_{i}.json", layout) for i, layout in enumerate(layouts, 1)]
    building = next((f for f, l in zip(files, layouts) if l.get("space_type") == "Building"), None)
    if building:
        for i, layout_file in enumerate(files, 1):
            if layout_file != building:
                writer.relationship(f"relationship_{building[:-5]}_has_layout_{i}.json", building, layout_file)
    return files


def main(work_dir):
    data = load_input_json(work_dir)
    if not isinstance(data, dict) or not data.get("PropertyInfo"):
        raise ValueError("No valid property data found in input.json")
    seed = load_seed(work_dir)
    unnormalized = load_unnormalized_address(work_dir)
    folio = extract_folio(data, clean_text(seed.get("parcel_id")))
    key = property_key(folio)
    writer = EntityWriter(data_dir_for(work_dir), seed)

    owner_data = load_owners_file(work_dir, config.OWNER_DATA_FILE)
    layout_data = load_owners_file(work_dir, config.LAYOUT_DATA_FILE)
    structure_data = load_owners_file(work_dir, config.STRUCTURE_DATA_FILE)
    utility_data = load_owners_file(work_dir, config.UTILITIES_DATA_FILE)

    writer.entity("property.json", extract_property(data, folio))
    writer.entity("address.json", extract_address(data, unnormalized))

    mailing_file = None
    mailing = extract_mailing_address(data)
    if mailing:
        mailing_file = writer.entity("mailing_address.json", mailing)

    try:
        writer.entity("lot.json", extract_lot(data))
    except Exception as e:
        logger.error(f"❌ Error extracting lot information for {folio}: {e}")

    try:
        for n, tax in enumerate(extract_taxes(data), 1):
            writer.entity(f"tax_{n}.json", tax)
    except Exception as e:
        logger.error(f"❌ Error extracting tax data for {folio}: {e}")

    sales_files = []
    try:
        sales_files = write_sales(writer, data)
    except Exception as e:
        logger.error(f"❌ Error extracting sales history for {folio}: {e}")

    try:
        write_owners(writer, current_owners(owner_data, key), mailing_file, sales_files[0] if sales_files else None)
    except Exception as e:
        logger.error(f"❌ Error processing owners for {folio}: {e}")

    write_layouts(writer, (owners_entry(layout_data, folio) or {}).get("layouts", []))
    structure = owners_entry(structure_data, folio)
    if structure:
        writer.entity("structure.json", structure)
    utility = owners_entry(utility_data, folio)
    if utility:
        writer.entity("utility.json", utility)

    logger.info(f"✅ Wrote {len(writer.written)} files for {key}")
    return writer.written
