import logging

from ... import config
from ...owners import build_owner_payload, classify_owner_lines
from ...utils import clean_text
from ..common import load_input_json, load_seed, write_owners_file

logger = logging.getLogger(__name__)


def extract_folio(data, fallback=None):
    info = data.get("PropertyInfo") or {}
    return clean_text(info.get("FolioNumber")) or fallback or "unknown_id"


def extract_owner_names(data):
    names = []
    for owner in data.get("OwnerInfos") or []:
        name = clean_text((owner or {}).get("Name"))
        if name:
            names.append(name)
    return names


def extract_owners(data):
    valid, invalid = classify_owner_lines(extract_owner_names(data))
    return build_owner_payload(valid, invalid)


def main(work_dir):
    data = load_input_json(work_dir)
    folio = extract_folio(data, clean_text(load_seed(work_dir).get("parcel_id")))
    payload = extract_owners(data)
    logger.info(
        f"Owners for {folio}: {len(payload['owners_by_date']['current'])} valid, "
        f"{len(payload['invalid_owners'])} invalid"
    )
    return write_owners_file(work_dir, config.OWNER_DATA_FILE, folio, payload)
