import logging
import re

from ... import config
from ...address import extract_block_lot, parse_full_address
from ...errors import UnknownEnumValueError
from ...owners import build_mailing_address_lines, build_owner_name_variants, current_owners
from ...records import (
    new_address,
    new_company,
    new_deed,
    new_file,
    new_layout,
    new_mailing_address,
    new_person,
    new_property,
    new_property_improvement,
    new_sales_history,
    new_structure,
    new_tax,
    prune_nulls,
)
from ...utils import (
    capitalize_proper_name,
    clean_text,
    diff_years_from,
    node_text,
    parse_currency,
    parse_date_to_iso,
    round2,
)
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
from .layout_extractor import building_classes, building_value, is_residential
from .owner_processor import MAX_OWNER_LINES, extract_property_id

logger = logging.getLogger(__name__)

COUNTY_NAME = "Collier"

PROPERTY_CATEGORY_MAP = {
    0: "VacantLand",
    1: "SingleFamily",
    2: "MobileHome",
    3: "MultiFamilyMoreThan10",
    4: "Condominium",
    5: "Cooperative",
    6: "Retirement",
    7: "MiscellaneousResidential",
    8: "MultiFamilyLessThan10",
    9: "MiscellaneousResidential",
    400: "VacantLand",
    401: "Condominium",
    402: "Timeshare",
    403: "Condominium",
    404: "Condominium",
    405: "Condominium",
    406: "MobileHome",
    407: "Condominium",
    408: "Apartment",
}

_LAND_PARCEL_CODES = {28, 31, 36, 37, 38, 49, 82, 92, 93, 94, 95, 96, 97, 99} | set(range(50, 70))
for _code in range(10, 100):
    if _code in (10, 40, 70):
        PROPERTY_CATEGORY_MAP[_code] = "VacantLand"
    elif _code in _LAND_PARCEL_CODES:
        PROPERTY_CATEGORY_MAP[_code] = "LandParcel"
    else:
        PROPERTY_CATEGORY_MAP[_code] = "Building"

_IMPROVED_BUILDING = {"property_type": "Building", "build_status": "Improved"}
_IMPROVED_UNIT = {"property_type": "Unit", "build_status": "Improved", "structure_form": "ApartmentUnit"}

PROPERTY_CATEGORY_FIELDS = {
    "VacantLand": {"property_type": "LandParcel", "build_status": "VacantLand"},
    "SingleFamily": dict(_IMPROVED_BUILDING, structure_form="SingleFamilyDetached"),
    "MobileHome": {"property_type": "ManufacturedHome", "build_status": "Improved", "structure_form": "MobileHome"},
    "MultiFamilyMoreThan10": dict(_IMPROVED_BUILDING, structure_form="MultiFamilyMoreThan10"),
    "MultiFamilyLessThan10": dict(_IMPROVED_BUILDING, structure_form="MultiFamilyLessThan10"),
    "Condominium": dict(_IMPROVED_UNIT, ownership_estate_type="Condominium"),
    "Cooperative": dict(_IMPROVED_UNIT, ownership_estate_type="Cooperative"),
    "Timeshare": dict(_IMPROVED_UNIT, ownership_estate_type="Timeshare"),
    "Retirement": dict(_IMPROVED_BUILDING, structure_form="MultiFamily5Plus"),
    "Apartment": dict(_IMPROVED_BUILDING, structure_form="MultiFamily5Plus"),
    "MiscellaneousResidential": dict(_IMPROVED_BUILDING),
    "Building": dict(_IMPROVED_BUILDING),
    "LandParcel": {"property_type": "LandParcel", "build_status": "Improved"},
}

PROPERTY_CODE_OVERRIDES = {
    90: {"ownership_estate_type": "Leasehold"},
    93: {"ownership_estate_type": "SubsurfaceRights"},
    94: {"ownership_estate_type": "RightOfWay"},
    400: {
        "property_type": "Unit",
        "build_status": "VacantLand",
        "structure_form": "ApartmentUnit",
        "ownership_estate_type": "Condominium",
    },
    406: {"ownership_estate_type": "Condominium"},
}

PROPERTY_USAGE_MAP = {code: "Residential" for code in range(0, 10)}
PROPERTY_USAGE_MAP[6] = "Retirement"
PROPERTY_USAGE_MAP.update({code: "Residential" for code in range(400, 409)})
PROPERTY_USAGE_MAP.update({404: "Hotel", 407: "Commercial"})
PROPERTY_USAGE_MAP.update({
    10: "Commercial", 11: "RetailStore", 12: "Commercial", 13: "DepartmentStore",
    14: "Supermarket", 15: "ShoppingCenterRegional", 16: "ShoppingCenterCommunity",
    17: "OfficeBuilding", 18: "OfficeBuilding", 19: "MedicalOffice",
    20: "TransportationTerminal", 21: "Restaurant", 22: "Restaurant",
    23: "FinancialInstitution", 24: "FinancialInstitution", 25: "Commercial",
    26: "ServiceStation", 27: "AutoSalesRepair", 28: "MobileHomePark",
    29: "WholesaleOutlet", 30: "Commercial", 31: "Theater", 32: "Theater",
    33: "Entertainment", 34: "Entertainment", 35: "Entertainment", 36: "Recreational",
    37: "RaceTrack", 38: "GolfCourse", 39: "Hotel", 40: "Industrial",
    41: "LightManufacturing", 42: "HeavyManufacturing", 43: "LumberYard",
    44: "PackingPlant", 45: "Cannery", 46: "Industrial", 47: "MineralProcessing",
    48: "Warehouse", 49: "OpenStorage", 50: "Agricultural", 51: "CroplandClass2",
    52: "CroplandClass2", 53: "CroplandClass3", 66: "OrchardGroves", 67: "Poultry",
    68: "Agricultural", 69: "Ornamentals", 70: "Unknown", 71: "Church",
    72: "PrivateSchool", 73: "PrivateHospital", 74: "HomesForAged",
    75: "NonProfitCharity", 76: "MortuaryCemetery", 77: "ClubsLodges",
    78: "SanitariumConvalescentHome", 79: "CulturalOrganization",
    80: "GovernmentProperty", 81: "Military", 82: "ForestParkRecreation",
    83: "PublicSchool", 84: "PublicSchool", 85: "PublicHospital", 90: "Commercial",
    91: "Utility", 92: "Industrial", 93: "Unknown", 94: "Railroad",
    95: "RiversLakes", 96: "SewageDisposal", 97: "ForestParkRecreation",
    98: "Utility", 99: "Agricultural",
})
PROPERTY_USAGE_MAP.update({code: "TimberLand" for code in range(54, 60)})
PROPERTY_USAGE_MAP.update({code: "GrazingLand" for code in range(60, 66)})
PROPERTY_USAGE_MAP.update({code: "GovernmentProperty" for code in range(86, 90)})

IMPROVEMENT_TYPE_RULES = [
    (r"roof", "Roofing"),
    (r"pool|spa|hot tub|jacuzzi", "PoolSpaInstallation"),
    (r"dock|shore|seawall|pier", "DockAndShore"),
    (r"demo", "Demolition"),
    (r"fence|gate", "Fencing"),
    (r"screen", "ScreenEnclosure"),
    (r"shutter|awning", "ShutterAwning"),
    (r"electric", "Electrical"),
    (r"mechan|hvac|air cond", "MechanicalHVAC"),
    (r"gas", "GasInstallation"),
    (r"plumb|sewer|water line", "Plumbing"),
    (r"solar", "Solar"),
    (r"landscape|irrigation", "LandscapeIrrigation"),
    (r"addition", "BuildingAddition"),
    (r"commercial", "CommercialConstruction"),
    (r"resid|remodel|renov|build|house", "ResidentialConstruction"),
    (r"driveway|right-of-way", "MinorPermit"),
    (r"well", "WellPermit"),
]

IMPROVEMENT_ACTION_RULES = [
    (r"addition|add\b", "Addition"),
    (r"replace|re-roof|reroof", "Replacement"),
    (r"new|install|construct", "New"),
    (r"repair|maint", "Repair"),
    (r"alter|remodel|renov|modify", "Alteration"),
    (r"remove|demolition|demo", "Remove"),
]

LAYOUT_PROPERTY_TYPES = ("Building", "Unit", "ManufacturedHome")

ACCESSORY_CLASS_KEYWORDS = ("POOL", "SCREEN", "DECK", "PATIO", "PORCH")

MIN_AREA_SQ_FT = 10


def _text(soup, selector):
    return node_text(soup.select_one(selector))


def _first_match(rules, text, default=None):
    for pattern, value in rules:
        if re.search(pattern, text, re.IGNORECASE):
            return value
    return default


# Property

def use_code_from_text(use_code_text):
    code = (use_code_text or "").split("-")[0].strip()
    return int(code) if code.isdigit() else None


def map_property_use_code(use_code_text):
    """Property type, build status, form, estate and usage for a "<code> - <desc>" use code."""
    code = use_code_from_text(use_code_text)
    if code is None:
        return {}
    category = PROPERTY_CATEGORY_MAP.get(code)
    if category is None:
        raise UnknownEnumValueError(code, "property.property_type")
    fields = dict(PROPERTY_CATEGORY_FIELDS[category])
    fields.update(PROPERTY_CODE_OVERRIDES.get(code, {}))
    fields["property_usage_type"] = PROPERTY_USAGE_MAP.get(code)
    return fields


def building_areas(soup):
    """Residential base/adjusted area sums and the first residential year built."""
    base_total = 0
    adjusted_total = 0
    year_built = None
    for number, building_class in building_classes(soup):
        if not is_residential(building_class):
            continue
        if year_built is None:
            year_text = building_value(soup, "YRBUILT", number) or ""
            if re.fullmatch(r"\d{4}", year_text):
                year_built = int(year_text)
        base_total += parse_currency(building_value(soup, "BASEAREA", number)) or 0
        adjusted_total += parse_currency(building_value(soup, "TYADJAREA", number)) or 0
    return {
        "base": base_total if base_total >= MIN_AREA_SQ_FT else None,
        "adjusted": adjusted_total if adjusted_total >= MIN_AREA_SQ_FT else None,
        "year_built": year_built,
    }


def _area_text(value):
    if value is None:
        return None
    return str(int(value)) if float(value).is_integer() else str(value)


def extract_property(soup, property_id):
    subdivision = _text(soup, "#SCDescription")
    if subdivision:
        subdivision = re.sub(r"^\s*\d+\s*-\s*", "", subdivision).strip() or None
    areas = building_areas(soup)
    record = new_property(
        parcel_identifier=property_id,
        property_legal_description_text=_text(soup, "#Legal"),
        subdivision=subdivision,
        property_structure_built_year=areas["year_built"],
        livable_floor_area=_area_text(areas["base"]),
        area_under_air=_area_text(areas["base"]),
        total_area=_area_text(areas["adjusted"]),
    )
    record.update(map_property_use_code(_text(soup, "#UCDescription")))
    return record


# Address

def extract_address(soup, unnormalized):
    full_address = clean_text(unnormalized.get("full_address")) or _text(soup, "#FullAddressUnit")
    address = new_address(
        township=_text(soup, "#Township"),
        range=_text(soup, "#Range"),
        section=_text(soup, "#Section"),
        municipality_name=_text(soup, "#Municipality"),
        unnormalized_address=full_address,
        county_name=COUNTY_NAME,
    )
    address.update({k: v for k, v in parse_full_address(full_address).items() if v is not None})
    address.update({k: v for k, v in extract_block_lot(_text(soup, "#Legal")).items() if v is not None})
    return address


def extract_mailing_address(soup, owners):
    owner_lines = [node_text(soup.find(id=f"OwnerLine{i}")) for i in range(1, MAX_OWNER_LINES + 1)]
    location = " ".join(
        part for part in (_text(soup, "#OwnerCity"), _text(soup, "#OwnerState"), _text(soup, "#OwnerZip")) if part
    )
    lines = build_mailing_address_lines(
        [line for line in owner_lines if line], [location], build_owner_name_variants(owners)
    )
    return new_mailing_address(unnormalized_address=", ".join(lines) if lines else None)


# Sales and deeds

def parse_deed_reference(link):
    """Book/page/instrument from a DownloadPDF(...) href or onclick, falling back to the link text."""
    reference = {"book": None, "page": None, "instrument_number": None}
    if link is None:
        return reference

    script = f"{link.get('href') or ''} {link.get('onclick') or ''}"
    match = re.search(r"DownloadPDF\s*\(([^)]+)\)", script)
    if match:
        args = [a.strip().strip("'\"") for a in match.group(1).split(",") if a.strip().strip("'\"")]
        if len(args) == 1:
            args = [a for a in re.split(r"[-/]", args[0]) if a]
        if len(args) >= 3:
            reference.update(instrument_number=args[0], book=args[1], page=args[2])
        elif len(args) == 2:
            reference.update(book=args[0], page=args[1])
        elif len(args) == 1:
            reference["instrument_number"] = args[0]

    if not reference["book"] or not reference["page"]:
        parts = [p for p in re.split(r"[-/\s]+", node_text(link) or "") if p]
        if len(parts) >= 2:
            reference["book"] = reference["book"] or parts[0]
            reference["page"] = reference["page"] or parts[1]
    return reference


def extract_sales_rows(soup):
    rows = []
    for index, tr in enumerate(soup.select("#SalesAdditional tr")):
        date_span = tr.find("span", id=re.compile(r"^SaleDate"))
        amount_span = tr.find("span", id=re.compile(r"^SaleAmount"))
        link = tr.find("a")
        if date_span is None and amount_span is None and link is None:
            continue
        rows.append({
            "index": index,
            "date": parse_date_to_iso(node_text(date_span)),
            "amount": parse_currency(node_text(amount_span)),
            "link": link,
        })
    return rows


def write_sales(writer, soup):
    """deed_N, file_N and sales_history_N files; returns the sales file names newest last."""
    rows = extract_sales_rows(soup)
    deed_files = {}
    for n, row in enumerate(rows, 1):
        reference = parse_deed_reference(row["link"])
        deed_file = writer.entity(f"deed_{n}.json", prune_nulls(new_deed(**reference)))
        deed_files[row["index"]] = deed_file
        if row["link"] is not None:
            name = node_text(row["link"])
            if not name and reference["book"] and reference["page"]:
                name = f"{reference['book']}-{reference['page']}"
            file_record = new_file(document_type="ConveyanceDeed", name=name)
            file_file = writer.entity(f"file_{n}.json", prune_nulls(file_record))
            writer.relationship(f"relationship_deed_file_{n}.json", deed_file, file_file)

    dated = sorted((r for r in rows if r["date"]), key=lambda r: (r["date"], r["index"]))
    sales_files = []
    for n, row in enumerate(dated, 1):
        record = new_sales_history(ownership_transfer_date=row["date"])
        if row["amount"]:
            record["purchase_price_amount"] = row["amount"]
        sales_file = writer.entity(f"sales_history_{n}.json", prune_nulls(record))
        writer.relationship(f"relationship_sales_history_deed_{n}.json", sales_file, deed_files[row["index"]])
        sales_files.append(sales_file)
    return sales_files


def write_owners(writer, owners, mailing_file, latest_sale):
    person_n = 0
    company_n = 0
    for owner in owners:
        if owner.get("type") == "person":
            person_n += 1
            record = new_person(
                first_name=capitalize_proper_name(owner.get("first_name")),
                last_name=capitalize_proper_name(owner.get("last_name")),
                middle_name=capitalize_proper_name(owner.get("middle_name")),
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


# Permits

def _span_text(row, prefix):
    return node_text(row.find("span", id=re.compile(f"^{prefix}", re.IGNORECASE)))


def map_improvement_type(permit_type):
    return _first_match(IMPROVEMENT_TYPE_RULES, permit_type or "", "GeneralBuilding")


def map_improvement_action(permit_type):
    return _first_match(IMPROVEMENT_ACTION_RULES, permit_type or "", "Other")


def extract_permits(soup):
    permits = []
    for tr in soup.select("#PermitAdditional tr"):
        number = _span_text(tr, "permitno")
        permit_type = _span_text(tr, "permittype")
        if not number and not permit_type:
            continue
        permits.append({
            "number": number,
            "type": permit_type or "",
            "issue": parse_date_to_iso(_span_text(tr, "IssuedDate")),
            "completion": parse_date_to_iso(_span_text(tr, "codate")),
            "temp_co": parse_date_to_iso(_span_text(tr, "tempcodate")),
            "final": parse_date_to_iso(_span_text(tr, "finalbldgdate")),
        })
    return permits


def build_property_improvement(permit):
    status = "Completed" if permit["completion"] or permit["final"] else "Permitted"
    record = new_property_improvement(
        improvement_type=map_improvement_type(permit["type"]),
        improvement_status=status,
        improvement_action=map_improvement_action(permit["type"]),
        permit_number=permit["number"],
        permit_issue_date=permit["issue"],
        completion_date=permit["completion"],
        permit_close_date=permit["temp_co"] or permit["completion"],
        final_inspection_date=permit["final"],
        contractor_type="Unknown",
        permit_required=True,
    )
    return prune_nulls(record)


def latest_roof_date(permits):
    dates = []
    for permit in permits:
        if "ROOF" in permit["type"].upper():
            date = permit["completion"] or permit["temp_co"] or permit["issue"]
            if date:
                dates.append(date)
    return max(dates) if dates else None


# Layouts

def extract_feature_layouts(soup):
    """Pool, spa, screened porch, deck and courtyard layouts from the building classes."""
    classes = [(number, text.upper()) for number, text in building_classes(soup)]
    pool_fence = any("POOL" in text and "FENCE" in text for _, text in classes)
    fountain = any("FOUNTAIN" in text for _, text in classes)

    features = []
    for number, text in classes:
        year = building_value(soup, "YRBUILT", number)
        year = year if year and re.fullmatch(r"\d{4}", year) else None
        size = parse_currency(building_value(soup, "BASEAREA", number))
        values = {"size_square_feet": size}
        if "POOL" in text and "FENCE" not in text and "HOUSE" not in text:
            values.update(
                space_type="Outdoor Pool",
                is_exterior=True,
                pool_installation_date=f"{year}-01-01" if year else None,
                safety_features="Fencing" if pool_fence else None,
                pool_equipment="Fountain" if fountain else None,
            )
        elif re.search(r"SPA|JACUZZI|HOT TUB", text):
            values.update(
                space_type="Hot Tub / Spa Area",
                is_exterior=True,
                spa_installation_date=f"{year}-01-01" if year else None,
            )
        elif "SCREEN" in text:
            values.update(space_type="Screened Porch", is_exterior=False, is_finished=True)
        elif (
            "DECK" in text
            or ("TILE" in text and "ROOF" not in text)
            or "BRICK" in text
            or "KEYSTONE" in text
            or ("CONCRETE" in text and "SCULPTURED" in text)
        ):
            values.update(space_type="Deck", is_exterior=True)
        elif "FOUNTAIN" in text and not pool_fence:
            values.update(space_type="Courtyard", is_exterior=True)
        else:
            continue
        features.append(values)
    return features


def _building_layout_from_property(property_record):
    livable = parse_currency(property_record.get("livable_floor_area"))
    under_air = parse_currency(property_record.get("area_under_air"))
    total = parse_currency(property_record.get("total_area"))
    return new_layout(
        "Building",
        1,
        space_type_index="1",
        livable_area_sq_ft=livable,
        area_under_air_sq_ft=under_air,
        total_area_sq_ft=total or livable or under_air,
        size_square_feet=total or under_air or livable,
        is_finished=True,
    )


def write_layouts(writer, soup, property_record, owner_layouts, utility_file, structure_file):
    if property_record.get("property_type") not in LAYOUT_PROPERTY_TYPES:
        return []

    layouts = []
    for index, layout in enumerate(owner_layouts or [], 1):
        layout = dict(layout)
        layout["space_index"] = index
        layout["space_type"] = layout.get("space_type") or "Building"
        layout["space_type_index"] = layout.get("space_type_index") or "1"
        layout["is_exterior"] = bool(layout.get("is_exterior"))
        layout["is_finished"] = not layout["is_exterior"]
        layouts.append(layout)
    if not layouts:
        layouts.append(_building_layout_from_property(property_record))

    building_index = next((i for i, l in enumerate(layouts) if l.get("space_type") == "Building"), 0)
    base_index = len(layouts)
    for k, values in enumerate(extract_feature_layouts(soup), 1):
        space_type = values.pop("space_type")
        layouts.append(new_layout(space_type, base_index + k, space_type_index=f"1.{k}", **values))

    layout_files = [writer.entity(f"layout_{i}.json", layout) for i, layout in enumerate(layouts, 1)]
    building_file = layout_files[building_index]
    b = building_index + 1
    for i, layout_file in enumerate(layout_files, 1):
        if layout_file != building_file:
            writer.relationship(f"relationship_layout_{b}_to_layout_{i}.json", building_file, layout_file)
        writer.relationship(f"relationship_layout_{i}_to_structure.json", layout_file, structure_file)
        if utility_file:
            writer.relationship(f"relationship_layout_{i}_to_utility.json", layout_file, utility_file)
    return layout_files


def extract_structure_record(soup, permits, owner_structure=None, today=None):
    record = new_structure()
    for key in ("attachment_type", "finished_base_area"):
        if owner_structure and owner_structure.get(key) is not None:
            record[key] = owner_structure[key]
    record["roof_date"] = latest_roof_date(permits) or (owner_structure or {}).get("roof_date")
    record["roof_age_years"] = diff_years_from(record["roof_date"], today)
    distinct = {
        text.upper()
        for _, text in building_classes(soup)
        if not any(k in text.upper() for k in ACCESSORY_CLASS_KEYWORDS)
    }
    record["number_of_buildings"] = len(distinct) or None
    return record


# Taxes

def _money(soup, *selectors):
    for selector in selectors:
        value = parse_currency(_text(soup, selector))
        if value is not None:
            return value
    return None


def _tax_record(year, land, building, market, assessed, taxable, yearly):
    assessed = assessed if assessed is not None else market
    market = market if market is not None else assessed
    taxable = taxable if taxable is not None else assessed
    return new_tax(
        tax_year=year,
        property_land_amount=land,
        property_building_amount=building,
        property_market_value_amount=market,
        property_assessed_value_amount=assessed,
        property_taxable_value_amount=taxable,
        yearly_tax_amount=yearly,
        monthly_tax_amount=round2(yearly / 12) if yearly is not None else None,
        period_start_date=f"{year}-01-01",
        period_end_date=f"{year}-12-31",
    )


def extract_current_tax(soup):
    roll = _text(soup, "#RollType") or _text(soup, "#RollType2") or ""
    match = re.search(r"\b(\d{4})\b", roll)
    if not match:
        return None
    land = _money(soup, "#LandJustValue")
    building = _money(soup, "#ImprovementsJustValue")
    market = _money(soup, "#TotalJustValue")
    if land is None and building is None and market is None:
        return None
    return _tax_record(
        int(match.group(1)),
        land,
        building,
        market,
        _money(soup, "#TdDetailCountyAssessedValue", "#HistorySchoolAssessedValue1"),
        _money(soup, "#CountyTaxableValue", "#TdDetailCountyTaxableValue"),
        _money(soup, "#TotalTaxes", "#TblAdValoremAdditionalTotal #TotalAdvTaxes"),
    )


def extract_tax_history(soup, max_years=5):
    history = {}
    for idx in range(1, max_years + 1):
        year_text = _text(soup, f"#HistoryTaxYear{idx}") or ""
        match = re.search(r"\d{4}", year_text)
        if not match:
            continue
        history[idx] = _tax_record(
            int(match.group(0)),
            _money(soup, f"#HistoryLandJustValue{idx}"),
            _money(soup, f"#HistoryImprovementsJustValue{idx}"),
            _money(soup, f"#HistoryTotalJustValue{idx}"),
            _money(soup, f"#HistorySchoolAssessedValue{idx}"),
            _money(soup, f"#HistoryCountyTaxableValue{idx}"),
            _money(soup, f"#HistoryTotalTaxes{idx}"),
        )
    return history


def extract_taxes(soup):
    """tax_<idx> records; history entries replace the current year on index collision."""
    taxes = {}
    current = extract_current_tax(soup)
    if current:
        taxes[1] = current
    taxes.update(extract_tax_history(soup))
    return taxes


def main(work_dir):
    soup = load_html(work_dir)
    seed = load_seed(work_dir)
    unnormalized = load_unnormalized_address(work_dir)
    property_id = extract_property_id(soup, clean_text(seed.get("parcel_id")))
    key = property_key(property_id)
    writer = EntityWriter(data_dir_for(work_dir), seed)

    owner_data = load_owners_file(work_dir, config.OWNER_DATA_FILE)
    utilities = load_owners_file(work_dir, config.UTILITIES_DATA_FILE)
    layout_data = load_owners_file(work_dir, config.LAYOUT_DATA_FILE)
    structure_data = load_owners_file(work_dir, config.STRUCTURE_DATA_FILE)

    property_record = extract_property(soup, property_id)
    writer.entity("property.json", property_record)
    writer.entity("address.json", extract_address(soup, unnormalized))

    owners = current_owners(owner_data, key)
    mailing_file = None
    try:
        mailing_file = writer.entity("mailing_address.json", extract_mailing_address(soup, owners))
    except Exception as e:
        logger.error(f"❌ Error extracting mailing address for {property_id}: {e}")

    sales_files = []
    try:
        sales_files = write_sales(writer, soup)
    except Exception as e:
        logger.error(f"❌ Error processing sales for {property_id}: {e}")

    try:
        write_owners(writer, owners, mailing_file, sales_files[-1] if sales_files else None)
    except Exception as e:
        logger.error(f"❌ Error processing owners for {property_id}: {e}")

    utility_file = None
    utility = owners_entry(utilities, property_id)
    if utility:
        utility_file = writer.entity("utility.json", utility)

    permits = extract_permits(soup)
    for n, permit in enumerate(permits, 1):
        writer.entity(f"property_improvement_{n}.json", build_property_improvement(permit))

    structure_file = writer.entity(
        "structure.json", extract_structure_record(soup, permits, owners_entry(structure_data, property_id))
    )

    try:
        owner_layouts = (owners_entry(layout_data, property_id) or {}).get("layouts", [])
        write_layouts(writer, soup, property_record, owner_layouts, utility_file, structure_file)
    except Exception as e:
        logger.error(f"❌ Error processing layouts for {property_id}: {e}")

    for idx, tax in sorted(extract_taxes(soup).items()):
        writer.entity(f"tax_{idx}.json", tax)

    logger.info(f"✅ Wrote {len(writer.written)} files for {key}")
    return writer.written
