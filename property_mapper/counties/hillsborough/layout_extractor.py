import logging
import math

from ... import config
from ...records import new_layout
from ...utils import clean_text, parse_float
from ..common import load_html, load_seed, write_owners_file
from .owner_processor import extract_pin
from .structure_extractor import building_sections, characteristic

logger = logging.getLogger(__name__)


def characteristic_count(building, label):
    entry = characteristic(building, label)
    if entry is None:
        return 0
    return parse_float(entry["description"] or entry["code"]) or 0


def building_layouts(building):
    """Building layout followed by its bedrooms and bathrooms, indexed "<building>.<n>"."""
    number = building["building_number"]
    totals = building["sub_area_totals"]
    gross = int(totals["gross_area"]) if totals["gross_area"] is not None else None
    heated = int(totals["heated_area"]) if totals["heated_area"] is not None else None

    layouts = [new_layout(
        "Building",
        space_type_index=str(number),
        building_number=number,
        size_square_feet=gross,
        total_area_sq_ft=gross,
        heated_area_sq_ft=heated,
        area_under_air_sq_ft=heated,
        is_finished=True,
    )]

    bedrooms = int(characteristic_count(building, "Bedrooms"))
    bathrooms = characteristic_count(building, "Bathrooms")
    full_baths = math.floor(bathrooms)

    for i in range(1, bedrooms + 1):
        layouts.append(new_layout("Bedroom", space_type_index=f"{number}.{i}", building_number=number, is_finished=True))
    for i in range(1, full_baths + 1):
        layouts.append(new_layout(
            "Full Bathroom", space_type_index=f"{number}.{i}", building_number=number, is_finished=True
        ))
    if bathrooms - full_baths >= 0.5:
        layouts.append(new_layout(
            "Half Bathroom / Powder Room", space_type_index=f"{number}.1", building_number=number, is_finished=True
        ))
    return layouts


def extract_layouts(soup):
    layouts = []
    for building in building_sections(soup):
        layouts.extend(building_layouts(building))
    for index, layout in enumerate(layouts, 1):
        layout["space_index"] = index
    return layouts


def main(work_dir):
    soup = load_html(work_dir)
    pin = extract_pin(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    layouts = extract_layouts(soup)
    logger.info(f"Created {len(layouts)} layouts for {pin}")
    return write_owners_file(work_dir, config.LAYOUT_DATA_FILE, pin, {"layouts": layouts})
