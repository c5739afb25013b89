from ... import config
from ...records import new_utility
from ...utils import clean_text
from ..common import load_input_json, load_seed, write_owners_file
from .owner_processor import extract_folio


def main(work_dir):
    data = load_input_json(work_dir)
    folio = extract_folio(data, clean_text(load_seed(work_dir).get("parcel_id")))
    # the property search API exposes no utility details
    return write_owners_file(work_dir, config.UTILITIES_DATA_FILE, folio, new_utility())
