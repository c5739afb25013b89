from ... import config
from ...records import new_utility
from ...utils import clean_text
from ..common import load_html, load_seed, write_owners_file
from .owner_processor import extract_property_id


def extract_utility(soup):
    # The appraiser page carries no utility details
    return new_utility()


def main(work_dir):
    soup = load_html(work_dir)
    property_id = extract_property_id(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    return write_owners_file(work_dir, config.UTILITIES_DATA_FILE, property_id, extract_utility(soup))
