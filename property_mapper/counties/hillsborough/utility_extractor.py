import re

from ... import config
from ...records import new_utility
from ...utils import clean_text
from ..common import load_html, load_seed, write_owners_file
from .owner_processor import extract_pin
from .structure_extractor import building_sections, characteristic, combined_lower_text

CONDENSING_COOLING_TYPES = {"CentralAir", "Ductless", "Hybrid", "GeothermalCooling", "Zoned"}
NO_CONDENSING_COOLING_TYPES = {"WindowAirConditioner", "CeilingFans", "CeilingFan", "WholeHouseFan"}


def heat_ac(building):
    """(code, lower-cased text) for the Heat/Ac characteristic plus the building text."""
    entry = characteristic(building, "Heat/Ac")
    code = entry["code"].strip() if entry else ""
    text = combined_lower_text(building, entry and entry["description"], code)
    return code, text


def map_cooling_system(building):
    code, text = heat_ac(building)
    if not text:
        return None
    if code == "2":
        return "CentralAir"
    if code == "3":
        return "WindowAirConditioner"
    if re.search(r"\bmini\s*split\b|\bductless\b", text):
        return "Ductless"
    if re.search(r"\bzoned\b", text):
        return "Zoned"
    if re.search(r"\bgeothermal\b", text):
        return "GeothermalCooling"
    if re.search(r"\bhybrid\b", text):
        return "Hybrid"
    if re.search(r"\bwhole\s*house\s*fan\b", text):
        return "WholeHouseFan"
    if re.search(r"\bceiling fans\b", text):
        return "CeilingFans"
    if re.search(r"\bceiling fan\b", text):
        return "CeilingFan"
    if re.search(r"\bwindow\b|\bwall unit\b", text):
        return "WindowAirConditioner"
    if re.search(r"\bcentral\b", text):
        return "CentralAir"
    if re.search(r"\belectric\b", text):
        return "Electric"
    return None


def map_heating_system(building):
    code, text = heat_ac(building)
    if not text:
        return None
    if code == "2":
        return "Central"
    if re.search(r"\bheat pump\b", text):
        return "HeatPump"
    if re.search(r"\bductless\b|\bmini\s*split\b", text):
        return "Ductless"
    if re.search(r"\bradiant\b|\bradiator\b", text):
        return "Radiant"
    if re.search(r"\bbaseboard\b", text):
        return "Baseboard"
    furnace = re.search(r"\bfurnace\b", text)
    if re.search(r"\bgas furnace\b", text) or (furnace and re.search(r"\bgas\b", text)):
        return "GasFurnace"
    if re.search(r"\belectric furnace\b", text) or (furnace and re.search(r"\belectric\b", text)):
        return "ElectricFurnace"
    if re.search(r"\bgas\b", text):
        return "Gas"
    if re.search(r"\belectric\b", text):
        return "Electric"
    if re.search(r"\bsolar\b", text):
        return "Solar"
    if re.search(r"\bcentral\b", text):
        return "Central"
    return None


def map_heating_fuel(building):
    _, text = heat_ac(building)
    if not text:
        return None
    for pattern, fuel in (
        (r"\bpropane\b", "Propane"),
        (r"\bnatural\s*gas\b|\bcity gas\b|\bgas\b", "NaturalGas"),
        (r"\boil\b", "Oil"),
        (r"\bkerosene\b", "Kerosene"),
        (r"\bwood pellet\b", "WoodPellet"),
        (r"\bwood\b", "Wood"),
        (r"\bgeothermal\b", "Geothermal"),
        (r"\bsolar\b", "Solar"),
        (r"\bdistrict\s*steam\b|\bsteam heat\b", "DistrictSteam"),
        (r"\bother fuel\b|\bfuel: other\b", "Other"),
        (r"\belectric\b", "Electric"),
    ):
        if re.search(pattern, text):
            return fuel
    return None


def map_hvac_configuration(building):
    code, text = heat_ac(building)
    if not text:
        return None
    if re.search(r"\bvrf\b|\bvariable refrigerant\b", text):
        return "VRF"
    if re.search(r"\bheat pump\b", text) and re.search(r"\bsplit\b", text):
        return "HeatPumpSplit"
    if re.search(r"\bmini\s*split\b|\bductless\b", text):
        return "MiniSplit"
    if re.search(r"\bpackaged\b|\bpackage unit\b", text):
        return "PackagedUnit"
    if re.search(r"\bsplit\b", text):
        return "SplitSystem"
    entry = characteristic(building, "Heat/Ac")
    if entry and (entry["description"] or entry["code"]):
        return "Other"
    return None


def map_condensing_unit(cooling_type):
    if cooling_type in CONDENSING_COOLING_TYPES:
        return "Yes"
    if cooling_type in NO_CONDENSING_COOLING_TYPES:
        return "No"
    return None


def map_panel_capacity(building):
    match = re.search(r"(\d{2,3})\s*amp", combined_lower_text(building))
    return f"{match.group(1)} Amp" if match else None


def map_utility(building):
    cooling = map_cooling_system(building)
    return new_utility(
        building_number=building["building_number"],
        cooling_system_type=cooling,
        heating_system_type=map_heating_system(building),
        heating_fuel_type=map_heating_fuel(building),
        hvac_system_configuration=map_hvac_configuration(building),
        hvac_condensing_unit_present=map_condensing_unit(cooling),
        electrical_panel_capacity=map_panel_capacity(building),
    )


def extract_utilities(soup):
    return [map_utility(building) for building in building_sections(soup)]


def main(work_dir):
    soup = load_html(work_dir)
    pin = extract_pin(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    return write_owners_file(work_dir, config.UTILITIES_DATA_FILE, pin, {"utilities": extract_utilities(soup)})
