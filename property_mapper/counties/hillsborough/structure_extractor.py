import logging
import re

from ... import config
from ...records import new_structure
from ...utils import clean_text, node_text, parse_float
from ..common import load_html, load_seed, write_owners_file
from .owner_processor import extract_pin

logger = logging.getLogger(__name__)

SECONDARY_FLOORING_ALLOWED = {
    "Solid Hardwood",
    "Engineered Hardwood",
    "Laminate",
    "Luxury Vinyl Plank",
    "Ceramic Tile",
    "Carpet",
    "Area Rugs",
    "Transition Strips",
}
SECONDARY_FLOORING_FALLBACK = {"Porcelain Tile": "Ceramic Tile"}


# Building sections

def normalize_key(label):
    return re.sub(r"[^a-z0-9]+", "_", (clean_text(label) or "").lower())


def parse_building_number(header_text, index):
    match = re.search(r"building\s+(\d+)", header_text or "", re.IGNORECASE)
    return int(match.group(1)) if match else index + 1


def _is_building_header(node):
    return getattr(node, "name", None) == "h4" and "section-header" in (node.get("class") or [])


def extract_characteristics(section):
    """Characteristics table rows as {normalized label: [{label, code, description}, ...]}."""
    characteristics = {}
    for tr in section.select("table.report-table tbody > tr"):
        cells = tr.find_all("td")
        if len(cells) < 2:
            continue
        label = node_text(cells[0])
        if not label:
            continue
        characteristics.setdefault(normalize_key(label), []).append({
            "label": label,
            "code": node_text(cells[1]) or "",
            "description": (node_text(cells[2]) or "") if len(cells) > 2 else "",
        })
    return characteristics


def extract_sub_area_totals(section):
    """Gross and heated totals from the sub-area table footer."""
    totals = {"gross_area": None, "heated_area": None}
    row = section.select_one("table.data-table tfoot > tr")
    if row is None:
        return totals
    cells = row.find_all("th")
    if len(cells) >= 2:
        totals["gross_area"] = parse_float(node_text(cells[1]))
    if len(cells) >= 3:
        totals["heated_area"] = parse_float(node_text(cells[2]))
    return totals


def building_sections(soup):
    """One dict per building under the buildings() container."""
    container = soup.select_one("div[data-bind='foreach: buildings()']")
    if container is None:
        return []

    buildings = []
    for index, header in enumerate(container.select("h4.section-header")):
        header_text = node_text(header) or ""
        content = []
        for sibling in header.find_next_siblings():
            if _is_building_header(sibling):
                break
            content.append(sibling)
        section = next(
            (node for node in content if node.name == "div" and "section-wrap" in (node.get("class") or [])),
            None,
        )
        if section is None:
            continue
        buildings.append({
            "building_number": parse_building_number(header_text, index),
            "header": header_text,
            "characteristics": extract_characteristics(section),
            "sub_area_totals": extract_sub_area_totals(section),
            "section_text": node_text(section) or "",
            "building_text": " ".join(node_text(node) or "" for node in content),
        })
    return buildings


def characteristic(building, label):
    entries = building["characteristics"].get(normalize_key(label)) or []
    return entries[0] if entries else None


def characteristic_text(building, label):
    """Lower-cased description and code of a characteristic, empty when absent."""
    entry = characteristic(building, label)
    if entry is None:
        return ""
    return f"{entry['description']} {entry['code']}".strip().lower()


def combined_lower_text(building, *parts):
    values = [building["section_text"], building["building_text"]]
    values.extend(p for p in parts if p)
    return " ".join(v for v in values if v).lower()


# Mappers

def map_architectural_style(building):
    text = characteristic_text(building, "Architectural Style")
    if not text:
        return None
    if re.search(r"mid\s*-?\s*century|mcmod", text):
        return "MidCenturyModern"
    if any(k in text for k in ("contemporary", "modern", "current")):
        return "Contemporary"
    for keyword, style in (
        ("victorian", "Victorian"),
        ("ranch", "Ranch"),
        ("craftsman", "Craftsman"),
        ("tudor", "Tudor"),
        ("minimal", "Minimalist"),
        ("colonial", "Colonial"),
        ("farmhouse", "Farmhouse"),
        ("farm house", "Farmhouse"),
    ):
        if keyword in text:
            return style
    return None


def map_attachment_type(building):
    entry = characteristic(building, "Type")
    text = combined_lower_text(building, entry and entry["description"])
    if not text:
        return None
    if re.search(r"\btown\s*house|\btownhome|\brow\s*house|\browhome", text):
        return "Attached"
    if re.search(r"\bduplex\b|\bsemi[- ]?detached\b", text):
        return "SemiDetached"
    if re.search(r"\bquad\b|\bfourplex\b|\btriplex\b|\bcondo\b|\bapartment\b|\bmulti\b|\bmfr\b", text):
        return "Attached"
    return "Detached"


def normalize_condition(value):
    text = (value or "").lower()
    if not text:
        return None
    if "new" in text:
        return "New"
    if "excellent" in text:
        return "Excellent"
    if any(k in text for k in ("good", "average", "typical")):
        return "Good"
    if "fair" in text:
        return "Fair"
    if "poor" in text:
        return "Poor"
    if "damag" in text:
        return "Damaged"
    return None


def map_condition(building):
    return normalize_condition(characteristic_text(building, "Condition"))


def map_exterior_wall(building):
    text = characteristic_text(building, "Exterior Wall")
    if not text:
        return None
    for keywords, material in (
        (("stucco",), "Stucco"),
        (("brick",), "Brick"),
        (("stone",), "Natural Stone"),
        (("vinyl",), "Vinyl Siding"),
        (("wood",), "Wood Siding"),
        (("fiber cement", "hardie"), "Fiber Cement Siding"),
        (("metal",), "Metal Siding"),
        (("concrete block", "masonry"), "Concrete Block"),
        (("eifs",), "EIFS"),
        (("log",), "Log"),
        (("adobe",), "Adobe"),
        (("precast",), "Precast Concrete"),
        (("curtain",), "Curtain Wall"),
    ):
        if any(k in text for k in keywords):
            return material
    return None


def map_interior_wall(building):
    text = characteristic_text(building, "Interior Walls")
    if not text:
        return None
    if "board" in text and "batten" in text:
        return "Board and Batten"
    for keywords, material in (
        (("drywall", "gypsum"), "Drywall"),
        (("plaster",), "Plaster"),
        (("panel",), "Wood Paneling"),
        (("brick",), "Exposed Brick"),
        (("block",), "Exposed Block"),
        (("wainscot",), "Wainscoting"),
        (("shiplap",), "Shiplap"),
        (("tile",), "Tile"),
        (("stone",), "Stone Veneer"),
        (("metal",), "Metal Panels"),
        (("glass",), "Glass Panels"),
        (("concrete",), "Concrete"),
    ):
        if any(k in text for k in keywords):
            return material
    return None


def detect_flooring_material(text):
    if not text:
        return None
    if "tile" in text:
        if "porcelain" in text:
            return "Porcelain Tile"
        if "stone" in text:
            return "Natural Stone Tile"
        return "Ceramic Tile"
    for keyword, material in (
        ("carpet", "Carpet"),
        ("vinyl plank", "Luxury Vinyl Plank"),
        ("vinyl", "Sheet Vinyl"),
        ("laminate", "Laminate"),
        ("hardwood", "Solid Hardwood"),
        ("engineered", "Engineered Hardwood"),
        ("bamboo", "Bamboo"),
        ("cork", "Cork"),
        ("linoleum", "Linoleum"),
        ("terrazzo", "Terrazzo"),
        ("concrete", "Polished Concrete"),
        ("epoxy", "Epoxy Coating"),
        ("marble", "Natural Stone Tile"),
    ):
        if keyword in text:
            return material
    return None


def map_flooring(building):
    """(primary, secondary) from every Interior Flooring row."""
    entries = building["characteristics"].get(normalize_key("Interior Flooring")) or []
    texts = []
    for entry in entries:
        text = (entry["description"] or entry["code"]).lower()
        if text and text not in texts:
            texts.append(text)

    primary = None
    secondary = None
    for text in texts:
        material = detect_flooring_material(text)
        if not material:
            continue
        if primary is None:
            primary = material
            continue
        if secondary is not None:
            continue
        material = SECONDARY_FLOORING_FALLBACK.get(material, material)
        if material in SECONDARY_FLOORING_ALLOWED and material != primary:
            secondary = material
    return primary, secondary


def map_number_of_stories(building):
    entry = characteristic(building, "Stories")
    return parse_float(entry["description"] or entry["code"]) if entry else None


def map_finished_base_area(building):
    gross = building["sub_area_totals"]["gross_area"]
    if not gross:
        entry = characteristic(building, "Heated Area")
        gross = parse_float(entry["description"] or entry["code"]) if entry else None
    return int(gross) if gross else None


def map_roof_design(building):
    text = characteristic_text(building, "Roof Structure")
    if not text:
        return None
    if "gable" in text and "hip" in text:
        return "Combination"
    for keyword, design in (
        ("gable", "Gable"),
        ("hip", "Hip"),
        ("flat", "Flat"),
        ("mansard", "Mansard"),
        ("gambrel", "Gambrel"),
        ("shed", "Shed"),
        ("saltbox", "Saltbox"),
        ("butterfly", "Butterfly"),
        ("bonnet", "Bonnet"),
        ("clerestory", "Clerestory"),
        ("dome", "Dome"),
        ("barrel", "Barrel"),
    ):
        if keyword in text:
            return design
    return None


def map_roof_covering(building):
    text = characteristic_text(building, "Roof Cover")
    if not text:
        return None
    if any(k in text for k in ("architectural", "asphalt", "comp shingle", "composition shingle")):
        return "Architectural Asphalt Shingle"
    if "3-tab" in text:
        return "3-Tab Asphalt Shingle"
    if "metal" in text:
        return "Metal Standing Seam" if "standing" in text else "Metal Corrugated"
    if "clay" in text:
        return "Clay Tile"
    if "concrete" in text:
        return "Concrete Tile"
    if "slate" in text:
        return "Synthetic Slate" if "synthetic" in text else "Natural Slate"
    for keyword, covering in (
        ("wood shake", "Wood Shake"),
        ("wood shingle", "Wood Shingle"),
        ("tpo", "TPO Membrane"),
        ("epdm", "EPDM Membrane"),
        ("modified bitumen", "Modified Bitumen"),
        ("built-up", "Built-Up Roof"),
        ("built up", "Built-Up Roof"),
        ("green roof", "Green Roof System"),
        ("solar", "Solar Integrated Tiles"),
    ):
        if keyword in text:
            return covering
    return None


def map_roof_material_type(covering):
    if not covering:
        return None
    text = covering.lower()
    for keywords, material in (
        (("shingle",), "Shingle"),
        (("metal",), "Metal"),
        (("tile",), "CeramicTile"),
        (("slate",), "Stone"),
        (("wood",), "Wood"),
        (("membrane", "tpo", "epdm", "bitumen", "built-up"), "Composition"),
        (("green roof",), "Manufactured"),
        (("solar",), "Glass"),
        (("concrete",), "Concrete"),
    ):
        if any(k in text for k in keywords):
            return material
    return None


def map_framing(building):
    text = characteristic_text(building, "Class")
    if not text:
        return None
    if re.search(r"post\s*[- ]*and\s*[- ]*beam", text):
        return "Post and Beam"
    if "log" in text:
        return "Log Construction"
    if "engineered" in text or "lvl" in text:
        return "Engineered Lumber"
    if "poured" in text or "cast-in-place" in text:
        return "Poured Concrete"
    if "concrete block" in text or "cmu" in text or re.search(r"\bblock\b", text):
        return "Concrete Block"
    if any(k in text for k in ("masonry", "brick", "stone")):
        return "Masonry"
    if "steel" in text:
        return "Steel Frame"
    if "wood" in text:
        return "Wood Frame"
    return None


def map_structure(building):
    covering = map_roof_covering(building)
    condition = map_condition(building)
    primary_flooring, secondary_flooring = map_flooring(building)
    return new_structure(
        building_number=building["building_number"],
        architectural_style_type=map_architectural_style(building),
        attachment_type=map_attachment_type(building),
        exterior_wall_condition=condition,
        exterior_wall_material_primary=map_exterior_wall(building),
        flooring_condition=condition,
        flooring_material_primary=primary_flooring,
        flooring_material_secondary=secondary_flooring,
        interior_wall_condition=condition,
        interior_wall_surface_material_primary=map_interior_wall(building),
        finished_base_area=map_finished_base_area(building),
        number_of_stories=map_number_of_stories(building),
        primary_framing_material=map_framing(building),
        roof_condition=condition,
        roof_covering_material=covering,
        roof_design_type=map_roof_design(building),
        roof_material_type=map_roof_material_type(covering),
    )


def extract_structures(soup):
    return [map_structure(building) for building in building_sections(soup)]


def main(work_dir):
    soup = load_html(work_dir)
    pin = extract_pin(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    structures = extract_structures(soup)
    logger.info(f"Mapped {len(structures)} building structure(s) for {pin}")
    return write_owners_file(work_dir, config.STRUCTURE_DATA_FILE, pin, {"structures": structures})
