import logging
from collections import Counter

from ... import config
from ...records import new_layout, space_type_for_description
from ...utils import clean_text
from ..common import load_html, load_seed, write_owners_file
from .model import bottom, bottom_items, load_model, top, whole_number
from .owner_processor import extract_pcn

logger = logging.getLogger(__name__)

# Top-section counts -> one room layout each
ROOM_COUNTS = [
    ("Stories", "Floor"),
    ("Full Baths", "Full Bathroom"),
    ("Bed Rooms", "Bedroom"),
    ("Half Baths", "Half Bathroom / Powder Room"),
]


def building_layouts(building, building_number):
    layouts = [new_layout(
        "Building",
        space_type_index=str(building_number),
        building_number=building_number,
        total_area_sq_ft=whole_number(bottom(building, "Total Square Footage")),
        area_under_air_sq_ft=whole_number(bottom(building, "Area Under Air")),
        built_year=whole_number(top(building, "Year Built")),
        is_finished=True,
    )]

    for element, space_type in ROOM_COUNTS:
        for i in range(1, (whole_number(top(building, element)) or 0) + 1):
            layouts.append(new_layout(
                space_type,
                space_type_index=f"{building_number}.{i}",
                building_number=building_number,
                is_finished=True,
            ))

    counter = Counter()
    for key, value in bottom_items(building):
        space_type = space_type_for_description(key)
        if not space_type:
            continue
        for area in value if isinstance(value, list) else [value]:
            counter[space_type] += 1
            layouts.append(new_layout(
                space_type,
                space_type_index=f"{building_number}.{counter[space_type]}",
                building_number=building_number,
                total_area_sq_ft=whole_number(area),
                is_finished="unfinished" not in key.lower(),
            ))
    return layouts


def extra_feature_layouts(model):
    """Land improvements; these belong to no building."""
    layouts = []
    counter = Counter()
    for feature in model.get("extraDetails") or []:
        space_type = space_type_for_description((feature or {}).get("Description"))
        if not space_type:
            continue
        counter[space_type] += 1
        layouts.append(new_layout(
            space_type,
            space_type_index=str(counter[space_type]),
            total_area_sq_ft=whole_number(feature.get("FeatureUnits")),
            built_year=whole_number(feature.get("YrBuilt")),
            is_finished=True,
        ))
    return layouts


def extract_layouts(model):
    layouts = []
    for index, building in enumerate(model["buildings"], 1):
        layouts.extend(building_layouts(building, index))
    layouts.extend(extra_feature_layouts(model))
    for index, layout in enumerate(layouts, 1):
        layout["space_index"] = index
    return layouts


def main(work_dir):
    soup = load_html(work_dir)
    pcn = extract_pcn(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    layouts = extract_layouts(load_model(soup))
    logger.info(f"Created {len(layouts)} layouts for {pcn}")
    return write_owners_file(work_dir, config.LAYOUT_DATA_FILE, pcn, {"layouts": layouts})
