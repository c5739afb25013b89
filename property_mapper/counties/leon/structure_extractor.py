import logging

from ... import config
from ...records import new_structure
from ...utils import clean_text
from ..common import load_html, load_seed, write_owners_file
from .page import characteristics, parcel_id, parse_buildings

logger = logging.getLogger(__name__)

ROOF_MATERIAL_KEYWORDS = [
    ("composition", "Composition"),
    ("shingle", "Shingle"),
    ("metal", "Metal"),
    ("tile", "Tile"),
    ("concrete", "Concrete"),
    ("slate", "Stone"),
]

EXTERIOR_WALL_KEYWORDS = [
    ("brick", "Brick"),
    ("stucco", "Stucco"),
    ("vinyl", "Vinyl Siding"),
    ("wood", "Wood Siding"),
]


def _keyword(text, keywords):
    text = (clean_text(text) or "").lower()
    return next((value for keyword, value in keywords if keyword in text), None)


def map_roof_design(roof_frame):
    text = (clean_text(roof_frame) or "").lower()
    if "gable" in text and "hip" in text:
        return "Combination"
    if "gable" in text:
        return "Gable"
    if "hip" in text:
        return "Hip"
    if "flat" in text:
        return "Flat"
    return None


def map_roof_material(roof_cover):
    return _keyword(roof_cover, ROOF_MATERIAL_KEYWORDS)


def map_exterior_wall(exterior_wall):
    return _keyword(exterior_wall, EXTERIOR_WALL_KEYWORDS)


def map_framing(frame):
    return "Wood Frame" if "wood" in (clean_text(frame) or "").lower() else None


def total_area(building):
    heated, auxiliary = building["heated_sq_ft"], building["auxiliary_sq_ft"]
    return heated + auxiliary if heated and auxiliary else None


def extract_structures(soup):
    """
    One structure per building row.

    The details table describes only the building the page has selected,
    which is the first one, so its roof, wall and frame values go there.
    """
    buildings = parse_buildings(soup)
    details = characteristics(soup)
    structures = []
    for index, building in enumerate(buildings, 1):
        structure = new_structure(building_number=index, finished_base_area=total_area(building))
        if index == 1:
            structure.update(
                roof_design_type=map_roof_design(details.get("roof frame")),
                roof_material_type=map_roof_material(details.get("roof cover deck")),
                exterior_wall_material_primary=map_exterior_wall(details.get("exterior wall")),
                primary_framing_material=map_framing(details.get("frame")),
                number_of_buildings=len(buildings),
            )
        structures.append(structure)
    return structures


def main(work_dir):
    soup = load_html(work_dir)
    property_id = parcel_id(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    structures = extract_structures(soup)
    logger.info(f"Mapped {len(structures)} buildings for {property_id}")
    return write_owners_file(work_dir, config.STRUCTURE_DATA_FILE, property_id, {"structures": structures})
