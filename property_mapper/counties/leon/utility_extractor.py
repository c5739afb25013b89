from ... import config
from ...records import new_utility
from ...utils import clean_text
from ..common import load_html, load_seed, write_owners_file
from .page import parcel_id, parse_buildings


def extract_utilities(soup):
    """The page lists no utility details; each building gets the defaults."""
    return [new_utility(building_number=index) for index, _ in enumerate(parse_buildings(soup), 1)]


def main(work_dir):
    soup = load_html(work_dir)
    property_id = parcel_id(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    return write_owners_file(work_dir, config.UTILITIES_DATA_FILE, property_id, {"utilities": extract_utilities(soup)})
