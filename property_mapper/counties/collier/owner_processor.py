import logging
import re

from ... import config
from ...owners import build_owner_payload, classify_owner_lines, is_likely_address
from ...utils import clean_text, node_text
from ..common import load_html, load_seed, write_owners_file

logger = logging.getLogger(__name__)

PROPERTY_ID_HINT = re.compile(r"parcelid|folio|property.*id|prop.*id|gisflnnum", re.IGNORECASE)

MAX_OWNER_LINES = 10


def extract_property_id(soup, fallback=None):
    """Parcel id from id-hinted elements or a "Parcel ID" label, preferring long numeric ids."""
    candidates = []
    for el in soup.find_all(id=PROPERTY_ID_HINT):
        text = node_text(el)
        if text:
            candidates.append(text)

    for el in soup.find_all(["td", "th", "span", "div", "label"]):
        if re.fullmatch(r"parcel id", node_text(el) or "", re.IGNORECASE) and el.parent:
            sibling = next((s for s in el.parent.find_all(["span", "div"]) if s is not el), None)
            if sibling is not None and node_text(sibling):
                candidates.append(node_text(sibling))

    for candidate in candidates:
        match = re.search(r"\d{6,}", candidate)
        if match:
            return match.group(0)
    if candidates:
        return candidates[0]
    return fallback or "unknown_id"


def extract_owner_lines(soup):
    """OwnerLine1..N up to the first blank one, without the trailing city/state line."""
    lines = []
    for i in range(1, MAX_OWNER_LINES + 1):
        text = node_text(soup.find(id=f"OwnerLine{i}"))
        if not text:
            break
        lines.append(text)
    if lines:
        lines.pop()
    return [line for line in lines if not is_likely_address(line)]


def extract_owners(soup):
    valid, invalid = classify_owner_lines(extract_owner_lines(soup))
    return build_owner_payload(valid, invalid)


def main(work_dir):
    soup = load_html(work_dir)
    seed = load_seed(work_dir)
    property_id = extract_property_id(soup, clean_text(seed.get("parcel_id")))
    payload = extract_owners(soup)
    logger.info(
        f"Owners for {property_id}: {len(payload['owners_by_date']['current'])} valid, "
        f"{len(payload['invalid_owners'])} invalid"
    )
    return write_owners_file(work_dir, config.OWNER_DATA_FILE, property_id, payload)
