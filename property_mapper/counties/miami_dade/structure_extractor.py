from ... import config
from ...records import new_structure
from ...utils import clean_text, parse_float
from ..common import load_input_json, load_seed, write_owners_file
from .owner_processor import extract_folio


def count_buildings(data):
    infos = (data.get("Building") or {}).get("BuildingInfos") or []
    numbers = set()
    for info in infos:
        number = parse_float((info or {}).get("BuildingNo"))
        if number is not None:
            numbers.add(int(number))
    return len(numbers) or None


def extract_structure(data):
    info = data.get("PropertyInfo") or {}
    unit_count = parse_float(info.get("UnitCount"))
    return new_structure(
        attachment_type="Detached" if unit_count == 1 else None,
        number_of_stories=parse_float(info.get("FloorCount")),
        number_of_buildings=count_buildings(data),
    )


def main(work_dir):
    data = load_input_json(work_dir)
    folio = extract_folio(data, clean_text(load_seed(work_dir).get("parcel_id")))
    return write_owners_file(work_dir, config.STRUCTURE_DATA_FILE, folio, extract_structure(data))
