import logging
import re

from ... import config
from ...records import new_layout
from ...utils import clean_text, node_text, parse_int
from ..common import load_html, load_seed, write_owners_file
from .owner_processor import extract_folio_id
from .utility_extractor import extract_pool_equipment

logger = logging.getLogger(__name__)

BEDROOM = "Bedroom"
FULL_BATH = "Full Bathroom"
HALF_BATH = "Half Bathroom / Powder Room"

# Sub-area code -> layout space type
SUBAREA_CODE_MAPPING = {
    "LIV": "Living Room", "LR": "Living Room", "FAM": "Family Room", "FR": "Family Room",
    "GR": "Great Room", "DIN": "Dining Room", "DR": "Dining Room", "KIT": "Kitchen",
    "K": "Kitchen", "APT": "Living Area", "BN": "Breakfast Nook", "PAN": "Pantry",
    "BR": BEDROOM, "BED": BEDROOM, "MBR": "Primary Bedroom", "MBED": "Primary Bedroom",
    "BA": FULL_BATH, "BATH": FULL_BATH, "FB": FULL_BATH, "HB": HALF_BATH,
    "PB": "Primary Bathroom", "LAU": "Laundry Room", "LAUNDRY": "Laundry Room",
    "MUD": "Mudroom", "CL": "Closet", "WIC": "Walk-in Closet", "MECH": "Mechanical Room",
    "STOR": "Storage Room", "OFF": "Home Office", "AOF": "Home Office", "FOF": "Home Office",
    "GOF": "Home Office", "DEN": "Den", "STUDY": "Study", "GAR": "Attached Garage",
    "FGR": "Attached Garage", "UGR": "Attached Garage", "COG": "Attached Garage",
    "FLG": "Lower Garage", "ULG": "Lower Garage", "FDG": "Detached Garage",
    "UDG": "Detached Garage", "DETG": "Detached Garage", "CARP": "Carport",
    "FCP": "Attached Carport", "UCP": "Attached Carport", "LCP": "Attached Carport",
    "FDC": "Detached Carport", "UDC": "Detached Carport", "WORK": "Workshop",
    "PORCH": "Porch", "COP": "Open Porch", "FOP": "Open Porch", "UOP": "Open Porch",
    "FEP": "Enclosed Porch", "UEP": "Enclosed Porch", "DEP": "Enclosed Porch",
    "DSP": "Screened Porch", "FSP": "Screened Porch", "USP": "Screened Porch",
    "PSE": "Screened Porch", "ULS": "Lower Screened Porch", "FLS": "Lower Screened Porch",
    "PS1": "Screen Porch (1-Story)", "CP1": "Screen Porch (1-Story)",
    "PS2": "Screen Enclosure (2-Story)", "CP2": "Screen Enclosure (2-Story)",
    "PS3": "Screen Enclosure (3-Story)", "PSC": "Screen Enclosure (Custom)",
    "CPC": "Screen Enclosure (Custom)", "SUN": "Sunroom", "DECK": "Deck", "RFT": "Deck",
    "PATIO": "Patio", "PTO": "Patio", "CPT": "Patio", "OCY": "Open Courtyard",
    "CGA": "Courtyard", "BAL": "Balcony", "BALC": "Balcony", "COB": "Balcony",
    "COL": "Lanai", "TERR": "Terrace", "GAZEBO": "Gazebo", "STP": "Stoop",
    "KTA": "Kitchen", "KTG": "Kitchen", "LBA": "Lobby / Entry Hall",
    "LBG": "Lobby / Entry Hall", "FAT": "Attic", "UAT": "Attic", "MEF": "Storage Loft",
    "MEU": "Storage Loft", "FCB": "Enclosed Cabana", "UCB": "Enclosed Cabana",
    "FDU": "Detached Utility Closet", "UDU": "Detached Utility Closet",
    "FST": "Utility Closet", "UST": "Utility Closet", "PLR": "Outdoor Pool",
    "CPL": "Outdoor Pool", "PPT": "Pool Area", "CSP": "Hot Tub / Spa Area",
    "JAZ": "Jacuzzi", "POOL": "Pool Area", "SPA": "Hot Tub / Spa Area", "SHED": "Shed",
}

EXTERIOR_CODES = {"POOL", "SPA", "PORCH", "DECK", "PATIO", "BALC", "TERR", "GAZEBO"}
EXTERIOR_DESCRIPTION = re.compile(r"pool|spa|porch|deck|patio|balcony|terrace|gazebo|outdoor", re.IGNORECASE)
NON_LIVABLE = ("GARAGE", "PORCH", "CARPORT", "STORAGE", "MECHANICAL")

BUILDING_PATTERNS = [
    re.compile(r"Building\s+(\d+)\s+of\s+\d+", re.IGNORECASE),
    re.compile(r"Building\s*#?\s*(\d+)", re.IGNORECASE),
    re.compile(r"Bldg\s*#?\s*(\d+)", re.IGNORECASE),
]


def extract_building_number(text):
    for pattern in BUILDING_PATTERNS:
        match = pattern.search(text or "")
        if match and 1 <= int(match.group(1)) <= 20:
            return int(match.group(1))
    return None


def is_exterior_space(code, description):
    return code.upper() in EXTERIOR_CODES or bool(EXTERIOR_DESCRIPTION.search(description or ""))


def _building_tables(soup):
    """(building number, table) for each attribute table, tracking "Building N of M" titles."""
    current = 1
    for table in soup.select("table.appraisalAttributes, table.appraisalDetails"):
        title = table.find_previous(class_=["sectionSubTitle", "sectionTitle"])
        number = extract_building_number(node_text(title)) if title is not None else None
        for th in table.find_all("th"):
            number = extract_building_number(node_text(th)) or number
        current = number or current
        yield current, table


def extract_subareas(soup):
    """Sub-area rows [description, heated, area] grouped by building."""
    by_building = {}
    for building, table in _building_tables(soup):
        for row in table.find_all("tr"):
            tds = row.find_all("td")
            if len(tds) < 3:
                continue
            description = node_text(tds[0]) or ""
            area = parse_int(node_text(tds[-1]))
            heated = node_text(tds[-2]) or ""
            match = re.match(r"^\s*([A-Z0-9]{1,8})\s*-\s*(.+)", description, re.IGNORECASE)
            if not match or not area or not re.match(r"^[YN]", heated.upper()):
                continue
            code = match.group(1).upper()
            by_building.setdefault(building, []).append({
                "code": code,
                "description": (match.group(2) or "").strip(),
                "space_type": SUBAREA_CODE_MAPPING.get(code),
                "area": area,
                "heated": heated.upper().startswith("Y"),
            })
    return by_building


def building_areas(subareas):
    total = sum(s["area"] for s in subareas)
    heated = sum(s["area"] for s in subareas if s["heated"])
    livable = sum(
        s["area"] for s in subareas
        if s["heated"] and not any(word in s["description"].upper() for word in NON_LIVABLE)
    )
    return {
        "total_area_sq_ft": total or None,
        "area_under_air_sq_ft": heated or None,
        "heated_area_sq_ft": heated or None,
        "livable_area_sq_ft": livable or None,
    }


def extract_bedroom_bathroom_counts(soup):
    """(bedrooms, full baths, half baths) from the Bedrooms/Bathrooms header row."""
    baths_text = None
    beds = 0
    for row in soup.select("table.appraisalAttributes tr"):
        labels = [(node_text(th) or "").lower() for th in row.find_all("th")]
        if not any("bedrooms" in label for label in labels):
            continue
        data_row = row.find_next_sibling("tr")
        if data_row is None:
            continue
        tds = data_row.find_all("td")
        for i, label in enumerate(labels):
            if i >= len(tds):
                break
            if label.startswith("total bedrooms"):
                match = re.match(r"^(\d+)\s*/\s*([\d.]+)$", node_text(tds[i]) or "")
                if match:
                    beds, baths_text = int(match.group(1)), match.group(2)
            elif "bedrooms" in label:
                beds = parse_int(node_text(tds[i])) or 0
            elif "bathrooms" in label:
                baths_text = node_text(tds[i])
        break

    full = half = 0
    if baths_text:
        try:
            baths = float(baths_text)
        except ValueError:
            baths = 0
        full = int(baths)
        half = round((baths - full) * 2)

    if not half:
        for pattern in (r"Half\s*Baths?", r"Powder\s*Rooms?", r"1/2\s*Baths?"):
            label = soup.find(string=re.compile(pattern, re.IGNORECASE))
            row = label.find_parent("tr") if label is not None else None
            if row is not None and row.find_all("td"):
                half = parse_int(node_text(row.find_all("td")[-1])) or 0
                break
    return beds, full, half


def has_residential_pool(soup):
    for section_id in ("PropertyDetailsCurrent", "PropertyDetails"):
        section = soup.find(id=section_id)
        if section is not None and re.search(r"POOL - RESIDENTIAL", section.get_text(" "), re.IGNORECASE):
            return True
    return False


def extract_layouts(soup):
    layouts = []
    subareas = extract_subareas(soup) or {1: []}

    for building in sorted(subareas):
        areas = building_areas(subareas[building])
        layouts.append(new_layout(
            "Building",
            len(layouts) + 1,
            building_number=building,
            size_square_feet=areas["total_area_sq_ft"],
            is_finished=True,
            **areas,
        ))
        for sub in subareas[building]:
            if not sub["space_type"]:
                continue
            layouts.append(new_layout(
                sub["space_type"],
                len(layouts) + 1,
                building_number=building,
                size_square_feet=sub["area"],
                is_finished=True,
                is_exterior=is_exterior_space(sub["code"], sub["description"]),
            ))

    first_building = min(subareas)
    beds, full, half = extract_bedroom_bathroom_counts(soup)
    existing = [layout["space_type"] for layout in layouts]
    for space_type, wanted in ((BEDROOM, beds), (FULL_BATH, full), (HALF_BATH, half)):
        for _ in range(max(0, wanted - existing.count(space_type))):
            layouts.append(new_layout(space_type, len(layouts) + 1, building_number=first_building, is_finished=True))

    if has_residential_pool(soup):
        equipment = extract_pool_equipment(soup)
        layouts.append(new_layout(
            "Pool Area",
            len(layouts) + 1,
            pool_type="BuiltIn",
            pool_equipment="Heated" if "PoolHeater" in equipment else None,
            is_exterior=True,
            is_finished=True,
        ))
    return layouts


def main(work_dir):
    soup = load_html(work_dir)
    folio = extract_folio_id(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    layouts = extract_layouts(soup)
    logger.info(f"Created {len(layouts)} layouts for {folio}")
    return write_owners_file(work_dir, config.LAYOUT_DATA_FILE, folio, {"layouts": layouts})
