"""The property model the Palm Beach page embeds in its tax-calculator script."""
import json
import logging

from ...utils import clean_text, parse_float

logger = logging.getLogger(__name__)

MODEL_SCRIPT_MARKER = "function onClickTaxCalculator"


def find_model_script(soup):
    for script in soup.find_all("script"):
        body = script.string or script.get_text()
        if body and MODEL_SCRIPT_MARKER in body:
            return body
    return None


def group_structural_elements(elements):
    """
    Group StructuralElements rows per building and details section.

    Returns a list of {"building_number": ..., "sections": {"Top": {...}, "Bottom": {...}}}
    in first-seen building order. An element name repeated within a section
    collects its values into a list.
    """
    buildings = {}
    for element in elements or []:
        if not element:
            continue
        number = clean_text(element.get("BuildingNumber")) or "Unknown"
        building = buildings.setdefault(number, {"building_number": number, "sections": {}})
        section = building["sections"].setdefault(element.get("DetailsSection") or "General", {})
        name = clean_text(element.get("ElementName")) or f"element{element.get('ElementNumber') or ''}"
        value = element.get("ElementValue")
        if name not in section:
            section[name] = value
        elif isinstance(section[name], list):
            section[name].append(value)
        else:
            section[name] = [section[name], value]
    return list(buildings.values())


def parse_model(soup):
    """The decoded ``var model = {...}`` object, or None when the page has none."""
    script = find_model_script(soup)
    if not script or "var model" not in script:
        return None
    start = script.find("{", script.index("var model"))
    if start == -1:
        return None
    try:
        model, _ = json.JSONDecoder().raw_decode(script, start)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse Palm Beach model JSON: {e}")
    details = model.get("structuralDetails") or {}
    model["buildings"] = group_structural_elements(details.get("StructuralElements"))
    return model


def load_model(soup):
    model = parse_model(soup)
    if model is None:
        raise ValueError("No property model found in input.html")
    return model


def top(building, name):
    return (building.get("sections") or {}).get("Top", {}).get(name)


def bottom_items(building):
    return ((building.get("sections") or {}).get("Bottom") or {}).items()


def whole_number(value):
    """int of "1,234" style model values; None for blanks and zero."""
    number = parse_float(value)
    return int(number) if number else None


def bottom(building, name):
    return (building.get("sections") or {}).get("Bottom", {}).get(name)
