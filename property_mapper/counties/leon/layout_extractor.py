import logging
from collections import Counter

from ... import config
from ...records import new_layout, space_type_for_description
from ...utils import clean_text
from ..common import load_html, load_seed, write_owners_file
from .page import area_rows, characteristics, parcel_id, parse_buildings
from .structure_extractor import total_area

logger = logging.getLogger(__name__)


def extract_layouts(soup):
    buildings = parse_buildings(soup)
    layouts = []
    for index, building in enumerate(buildings, 1):
        area = total_area(building)
        layouts.append(new_layout(
            "Building",
            space_type_index=str(index),
            building_number=index,
            size_square_feet=area,
            total_area_sq_ft=area,
            heated_area_sq_ft=building["heated_sq_ft"],
            built_year=building["year_built"],
            is_finished=True,
        ))

    # pool flag and sub-areas belong to the selected (first) building
    parent = 1 if buildings else None
    counter = Counter()
    pool = (characteristics(soup).get("pool") or "").lower()
    if pool.startswith("yes"):
        counter["Outdoor Pool"] += 1
        layouts.append(new_layout(
            "Outdoor Pool",
            space_type_index=f"1.{counter['Outdoor Pool']}",
            building_number=parent,
            pool_type="BuiltIn",
            is_exterior=True,
            is_finished=True,
        ))
    for description, square_feet in area_rows(soup):
        space_type = space_type_for_description(description)
        if not space_type:
            continue
        counter[space_type] += 1
        layouts.append(new_layout(
            space_type,
            space_type_index=f"1.{counter[space_type]}",
            building_number=parent,
            size_square_feet=square_feet,
            total_area_sq_ft=square_feet,
            is_finished=True,
        ))

    for index, layout in enumerate(layouts, 1):
        layout["space_index"] = index
    return layouts


def main(work_dir):
    soup = load_html(work_dir)
    property_id = parcel_id(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    layouts = extract_layouts(soup)
    logger.info(f"Created {len(layouts)} layouts for {property_id}")
    return write_owners_file(work_dir, config.LAYOUT_DATA_FILE, property_id, {"layouts": layouts})
