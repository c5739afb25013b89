"""County script packages.

Every county package ships the same five scripts, each with a
``main(work_dir)`` entry point run in this order.
"""
import importlib
import logging
import os
import re

from .. import config
from ..utils import read_json

logger = logging.getLogger(__name__)

REQUIRED_SCRIPTS = [
    "owner_processor",
    "structure_extractor",
    "utility_extractor",
    "layout_extractor",
    "data_extractor",
]

AVAILABLE_COUNTIES = ["collier", "lee", "hillsborough", "miami_dade", "palm_beach", "leon"]

COUNTY_ALIASES = {
    "miami dade": "miami_dade",
    "miami-dade": "miami_dade",
    "miamidade": "miami_dade",
}


def county_variations(county_name):
    """Candidate package names for a county_jurisdiction value."""
    name = str(county_name).strip()
    variations = [
        name.lower(),
        name,
        name.title(),
        name.replace(" ", ""),
        name.lower().replace(" ", ""),
        re.sub(r"[\s\-]+", "_", name.lower()),
    ]
    # "Collier County" style jurisdictions
    stripped = re.sub(r"\s+county$", "", name, flags=re.IGNORECASE)
    if stripped != name:
        variations.extend(county_variations(stripped))
    alias = COUNTY_ALIASES.get(name.lower())
    if alias:
        variations.append(alias)
    unique = []
    for variation in variations:
        if variation not in unique:
            unique.append(variation)
    return unique


def resolve_county(county_name):
    """Return the package name for county_name, or raise LookupError."""
    if not county_name or not str(county_name).strip():
        raise LookupError("Could not determine county name from county_jurisdiction")
    variations = county_variations(county_name)
    for variation in variations:
        if variation in AVAILABLE_COUNTIES:
            logger.info(f"✅ Found county package: {variation}")
            return variation
    logger.error(f"❌ Could not find county package for any variation of '{county_name}'")
    logger.error(f"❌ Tried: {', '.join(variations)}")
    raise LookupError(f"Unsupported county: {county_name}")


def county_from_work_dir(work_dir):
    """Read county_jurisdiction from the work directory's unnormalized_address.json"""
    address_path = os.path.join(work_dir, config.UNNORMALIZED_ADDRESS_FILE)
    address_data = read_json(address_path)
    county_name = address_data.get("county_jurisdiction")
    if not county_name:
        raise LookupError(f"'county_jurisdiction' field not found in {address_path}")
    logger.info(f"📍 Found county_jurisdiction: {county_name}")
    return county_name


def import_county_scripts(county_name):
    """Import the five scripts of a county package, keyed by script name."""
    package = resolve_county(county_name)
    modules = {}
    for script_name in REQUIRED_SCRIPTS:
        modules[script_name] = importlib.import_module(f"{__name__}.{package}.{script_name}")
        logger.info(f"📄 Imported: {package}/{script_name}.py")
    logger.info(f"✅ Successfully imported {len(modules)} scripts from {package}/")
    return modules
