import re

from ... import config
from ...records import new_layout
from ...utils import clean_text, node_text
from ..common import load_html, load_seed, write_owners_file
from .owner_processor import extract_property_id

RESIDENTIAL_TYPES = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in [
        r"SINGLE\s+FAMILY\s+RESIDENCE",
        r"SINGLE\s+FAMILY",
        r"CONDO",
        r"CONDOMINIUM",
        r"HOMEOWNERS",
        r"MULTI[-\s]*FAMILY",
        r"MOBILE\s+HOME",
        r"MANUFACTURED\s+HOME",
        r"DUPLEX",
        r"TRIPLEX",
        r"FOURPLEX",
        r"TOWNHOUSE",
        r"TOWNHOME",
        r"APARTMENT",
        r"RESIDENTIAL\s+STYLE\s+BUILDING",
        r"RESIDENTIAL\s+BUILDING",
    ]
]

MIN_AREA_SQ_FT = 10


def is_residential(building_class):
    return any(pattern.search(building_class or "") for pattern in RESIDENTIAL_TYPES)


def _area(text):
    digits = re.sub(r"[^0-9.]", "", text or "")
    try:
        value = float(digits)
    except ValueError:
        return None
    return value if value > 0 else None


def building_classes(soup):
    """(building number, class text) for every #BLDGCLASS<n> span, in page order."""
    classes = []
    for span in soup.find_all("span", id=re.compile(r"^BLDGCLASS")):
        match = re.match(r"BLDGCLASS(\d+)", span.get("id", ""))
        text = node_text(span)
        if match and text:
            classes.append((match.group(1), text))
    return classes


def building_value(soup, prefix, number):
    return node_text(soup.find(id=f"{prefix}{number}"))


def residential_base_area(soup):
    total = 0
    found = False
    for number, building_class in building_classes(soup):
        if not is_residential(building_class):
            continue
        area = _area(building_value(soup, "BASEAREA", number))
        if area:
            total += area
            found = True
    return total if found and total >= MIN_AREA_SQ_FT else None


def extract_layouts(soup):
    area = residential_base_area(soup)
    building = new_layout(
        "Building",
        1,
        space_type_index="1",
        livable_area_sq_ft=area,
        area_under_air_sq_ft=area,
        total_area_sq_ft=area,
        is_finished=True,
    )
    return [building]


def main(work_dir):
    soup = load_html(work_dir)
    property_id = extract_property_id(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    payload = {"layouts": extract_layouts(soup)}
    return write_owners_file(work_dir, config.LAYOUT_DATA_FILE, property_id, payload)
