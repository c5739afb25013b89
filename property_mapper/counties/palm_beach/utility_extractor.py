import re

from ... import config
from ...records import new_utility
from ...utils import clean_text
from ..common import load_html, load_seed, write_owners_file
from .model import load_model, top
from .owner_processor import extract_pcn


def map_cooling_system(air_condition):
    text = (clean_text(air_condition) or "").lower()
    if re.search(r"\bac\b|\bair\b|htg & ac", text):
        return "CentralAir"
    return None


def map_heating_system(heat_type, heat_fuel):
    kind = (clean_text(heat_type) or "").lower()
    fuel = (clean_text(heat_fuel) or "").lower()
    if "forced" in kind or "duct" in kind:
        if "electric" in fuel:
            return "ElectricFurnace"
        if "gas" in fuel:
            return "GasFurnace"
        return "Central"
    if "electric" in fuel:
        return "Electric"
    if "gas" in fuel:
        return "Gas"
    return None


def map_heating_fuel(heat_fuel):
    fuel = (clean_text(heat_fuel) or "").lower()
    if "propane" in fuel:
        return "Propane"
    if "gas" in fuel:
        return "NaturalGas"
    if "oil" in fuel:
        return "Oil"
    if "electric" in fuel:
        return "Electric"
    return None


def map_utility(building, building_number):
    heat_fuel = top(building, "Heat Fuel")
    cooling = map_cooling_system(top(building, "Air Condition Desc."))
    return new_utility(
        building_number=building_number,
        cooling_system_type=cooling,
        heating_system_type=map_heating_system(top(building, "Heat Type"), heat_fuel),
        heating_fuel_type=map_heating_fuel(heat_fuel),
        hvac_condensing_unit_present="Yes" if cooling == "CentralAir" else None,
    )


def extract_utilities(model):
    return [map_utility(building, index) for index, building in enumerate(model["buildings"], 1)]


def main(work_dir):
    soup = load_html(work_dir)
    pcn = extract_pcn(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    return write_owners_file(work_dir, config.UTILITIES_DATA_FILE, pcn, {"utilities": extract_utilities(load_model(soup))})
