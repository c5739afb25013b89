import logging

from ... import config
from ...records import new_structure
from ...utils import clean_text
from ..common import load_html, load_seed, write_owners_file
from .model import load_model, top, whole_number
from .owner_processor import extract_pcn

logger = logging.getLogger(__name__)

# Exterior Wall label -> (exterior wall material, framing material)
WALL_AND_FRAME = {
    "NONE": (None, None),
    "MSY: CONC. SIP FORMING": ("Precast Concrete", "Concrete Block"),
    "MSY: PRECAST PNL/REIN. CONC": ("Precast Concrete", "Concrete Block"),
    "WSF/MSY: CEMENT FIBER SIDING": ("Fiber Cement Siding", "Wood Frame"),
    "WSF/MSY: WOOD SIDING": ("Wood Siding", "Wood Frame"),
    "WSF: PREFAB PNL": ("Metal Siding", "Wood Frame"),
    "WSF: ASPHALT SIDING": ("Wood Siding", "Wood Frame"),
    "WSF: STONE": ("Natural Stone", "Wood Frame"),
    "MSY: STONE": ("Natural Stone", "Concrete Block"),
    "WSF/MSY: VINYL/STL/ALUM": ("Vinyl Siding", "Wood Frame"),
    "WSF: PLYWD/STL/ALUM SHTH": ("Wood Siding", "Wood Frame"),
    "ADOBE/HOLLOW CLAY BLK": ("Adobe", "Masonry"),
    "MSY: CONC. BLOCK": ("Concrete Block", "Concrete Block"),
    "WSF: STUCCO": ("Stucco", "Wood Frame"),
    "MSY: CB STUCCO": ("Stucco", "Concrete Block"),
    "WSF: BRICK": ("Brick", "Wood Frame"),
    "MSY: BRICK": ("Brick", "Concrete Block"),
    "WSF: WOOD SHINGLE": ("Wood Siding", "Wood Frame"),
    "WSF: COMP OR HARD BD": ("Wood Siding", "Wood Frame"),
    "LOG": ("Log", "Log Construction"),
    "WSF LOG VENEER": ("Log", "Wood Frame"),
    "MSY LOG VENEER": ("Log", "Concrete Block"),
    "GLASS": ("Curtain Wall", "Steel Frame"),
    "BARN/HANGAR: HOLLOW CLAY BLOCK": ("Adobe", "Masonry"),
    "BARN/HANGAR: CONCRETE BLOCK": ("Concrete Block", "Concrete Block"),
    "BARN/HANGAR: CONCRETE BLOCK STUCCO": ("Stucco", "Concrete Block"),
    "BARN/HANGAR: REINFORCED CONCRETE": ("Precast Concrete", "Poured Concrete"),
    "BARN/HANGAR: PRECAST PANELS": ("Precast Concrete", "Concrete Block"),
    "BARN/HANGAR: STONE": ("Natural Stone", "Masonry"),
    "BARN/HANGAR: METAL PANELS (ALUM/STEEL)": ("Metal Siding", "Steel Frame"),
    "BARN/HANGAR: CEMENT FIBER SIDING/SHINGLES": ("Fiber Cement Siding", "Wood Frame"),
    "BARN/HANGAR: PLYWOOD / WOOD FRAME STUCCO / WOOD SIDING / CEDAR/REDWOOD": ("Wood Siding", "Wood Frame"),
    "BARN/HANGAR: VINYL SIDING": ("Vinyl Siding", "Wood Frame"),
    "BARN/HANGAR: BRICK VENEER": ("Brick", "Wood Frame"),
    "BARN/HANGAR: STONE VENEER": ("Manufactured Stone", "Wood Frame"),
    "MFG HOME: ALUMINUM": ("Metal Siding", "Wood Frame"),
    "MFG HOME: CEMENT FIBER SIDING": ("Fiber Cement Siding", "Wood Frame"),
    "MFG HOME: HARD-BOARD SIDING": ("Wood Siding", "Wood Frame"),
    "MFG HOME: LOG SIDING": ("Log", "Wood Frame"),
    "MFG HOME: PLYWOOD SIDING": ("Wood Siding", "Wood Frame"),
    "MFG HOME: STUCCO SIDING": ("Stucco", "Wood Frame"),
    "MFG HOME: WOOD SHINGLE/SHAKE": ("Wood Siding", "Wood Frame"),
    "MFG HOME: VINYL SIDING": ("Vinyl Siding", "Wood Frame"),
    "MFG HOME: MASONRY VENEER": ("Brick", "Wood Frame"),
}

EXTERIOR_WALL_KEYWORDS = [
    ("stucco", "Stucco"),
    ("brick", "Brick"),
    ("stone", "Natural Stone"),
    ("vinyl", "Vinyl Siding"),
    ("wood", "Wood Siding"),
    ("fiber", "Fiber Cement Siding"),
    ("metal", "Metal Siding"),
    ("block", "Concrete Block"),
    ("cb", "Concrete Block"),
]

ROOF_COVER_KEYWORDS = [
    ("asphalt", "3-Tab Asphalt Shingle"),
    ("composition", "3-Tab Asphalt Shingle"),
    ("architectural", "Architectural Asphalt Shingle"),
    ("metal", "Metal Standing Seam"),
    ("concrete", "Concrete Tile"),
    ("clay", "Clay Tile"),
    ("tile", "Clay Tile"),
    ("tpo", "TPO Membrane"),
    ("epdm", "EPDM Membrane"),
    ("modified", "Modified Bitumen"),
    ("slate", "Natural Slate"),
    ("shake", "Wood Shake"),
]

ROOF_STRUCTURE_KEYWORDS = [
    ("concrete", "Concrete Beam"),
    ("engineered", "Engineered Lumber"),
    ("lumber", "Engineered Lumber"),
    ("steel", "Steel Truss"),
    ("rafter", "Wood Rafter"),
    ("wood", "Wood Truss"),
]

FLOORING_KEYWORDS = [
    ("carpet", "Carpet"),
    ("tile", "Ceramic Tile"),
    ("vinyl plank", "Luxury Vinyl Plank"),
    ("vinyl", "Sheet Vinyl"),
    ("hardwood", "Solid Hardwood"),
    ("laminate", "Laminate"),
    ("concrete", "Polished Concrete"),
]


def _keyword(text, keywords):
    text = (clean_text(text) or "").lower()
    if not text or "n/a" in text:
        return None
    return next((value for keyword, value in keywords if keyword in text), None)


def wall_and_frame(exterior_wall):
    return WALL_AND_FRAME.get((clean_text(exterior_wall) or "").upper())


def map_exterior_wall(wall_1, wall_2=None):
    for wall in (wall_1, wall_2):
        mapped = wall_and_frame(wall)
        if mapped:
            return mapped[0]
    if "none" in (clean_text(wall_1) or "").lower():
        return None
    return _keyword(wall_1, EXTERIOR_WALL_KEYWORDS)


def map_framing(wall_1, wall_2=None):
    for wall in (wall_1, wall_2):
        mapped = wall_and_frame(wall)
        if mapped:
            return mapped[1]
    text = (clean_text(wall_1) or "").lower()
    if "cb" in text or "block" in text:
        return "Concrete Block"
    return None


def map_roof_cover(text):
    return _keyword(text, ROOF_COVER_KEYWORDS)


def map_roof_structure(text):
    return _keyword(text, ROOF_STRUCTURE_KEYWORDS)


def map_flooring(text):
    return _keyword(text, FLOORING_KEYWORDS)


def map_structure(building, building_number):
    wall_1 = top(building, "Exterior Wall 1")
    wall_2 = top(building, "Exterior Wall 2")
    framing = wall_and_frame(wall_1)
    return new_structure(
        building_number=building_number,
        exterior_wall_material_primary=map_exterior_wall(wall_1, wall_2),
        primary_framing_material=map_framing(wall_1, wall_2),
        interior_wall_structure_material=framing[1] if framing else None,
        roof_covering_material=map_roof_cover(top(building, "Roof Cover")),
        roof_structure_material=map_roof_structure(top(building, "Roof Structure")),
        flooring_material_primary=map_flooring(top(building, "Floor Type 1")),
        number_of_stories=whole_number(top(building, "Stories")),
    )


def extract_structures(model):
    """One structure per building, numbered in page order."""
    return [map_structure(building, index) for index, building in enumerate(model["buildings"], 1)]


def main(work_dir):
    soup = load_html(work_dir)
    pcn = extract_pcn(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    structures = extract_structures(load_model(soup))
    logger.info(f"Mapped {len(structures)} buildings for {pcn}")
    return write_owners_file(work_dir, config.STRUCTURE_DATA_FILE, pcn, {"structures": structures})
