import logging

from ... import config
from ...records import new_layout
from ...utils import clean_text, parse_float
from ..common import load_input_json, load_seed, write_owners_file
from .owner_processor import extract_folio

logger = logging.getLogger(__name__)

FLOOR_LEVELS = {1: "1st Floor", 2: "2nd Floor"}


def _count(value):
    number = parse_float(value)
    return int(number) if number else 0


def _area(value):
    number = parse_float(value)
    return int(number) if number else None


def extract_layouts(data):
    """Building layout followed by one layout per bedroom and bathroom."""
    info = data.get("PropertyInfo") or {}
    floor_level = FLOOR_LEVELS.get(_count(info.get("FloorCount")))
    gross = _area(info.get("BuildingGrossArea"))
    heated = _area(info.get("BuildingHeatedArea"))

    layouts = []
    if gross or heated:
        layouts.append(new_layout(
            "Building",
            space_type_index="1",
            building_number=1,
            size_square_feet=gross or heated,
            total_area_sq_ft=gross,
            heated_area_sq_ft=heated,
            area_under_air_sq_ft=heated,
            is_finished=True,
        ))

    rooms = [
        ("Bedroom", _count(info.get("BedroomCount"))),
        ("Full Bathroom", _count(info.get("BathroomCount"))),
        ("Half Bathroom / Powder Room", _count(info.get("HalfBathroomCount"))),
    ]
    for space_type, count in rooms:
        for i in range(1, count + 1):
            layouts.append(new_layout(
                space_type,
                space_type_index=f"1.{i}",
                building_number=1,
                floor_level=floor_level,
                is_finished=True,
            ))

    for index, layout in enumerate(layouts, 1):
        layout["space_index"] = index
    return layouts


def main(work_dir):
    data = load_input_json(work_dir)
    folio = extract_folio(data, clean_text(load_seed(work_dir).get("parcel_id")))
    layouts = extract_layouts(data)
    logger.info(f"Created {len(layouts)} layouts for {folio}")
    return write_owners_file(work_dir, config.LAYOUT_DATA_FILE, folio, {"layouts": layouts})
