import logging

from ... import config
from ...owners import (
    KNOWN_SUFFIXES,
    build_owner_payload,
    deduplicate_owners,
    looks_like_company,
    make_company,
    make_person,
    normalize_suffix,
)
from ...utils import clean_text, title_case
from ..common import load_html, load_seed, write_owners_file
from .page import owner_lines, parcel_id

logger = logging.getLogger(__name__)


def parse_person(text):
    """Person from a "LAST FIRST MIDDLE" owner line, or None."""
    tokens = (clean_text(text) or "").replace(",", " ").split()
    suffix_name = None
    if len(tokens) > 2 and tokens[-1].upper().replace(".", "") in KNOWN_SUFFIXES:
        suffix_name = normalize_suffix(tokens.pop())
    if len(tokens) < 2:
        return None
    middle = " ".join(title_case(t.replace(".", "")) for t in tokens[2:]) or None
    return make_person(title_case(tokens[1]), title_case(tokens[0]), middle, suffix_name)


def classify_owner_line(raw):
    """(owner, None) or (None, invalid entry) for one owner line."""
    text = clean_text(raw)
    if not text:
        return None, {"raw": raw, "reason": "empty"}
    if looks_like_company(text):
        return make_company(text), None
    # "SMITH JOHN & JANE" does not say whose last name is whose
    if "&" in text:
        return None, {"raw": text, "reason": "ambiguous_ampersand"}
    person = parse_person(text)
    if person is None:
        return None, {"raw": text, "reason": "unclassified_owner"}
    return person, None


def extract_owners(soup):
    owners = []
    invalid = []
    for line in owner_lines(soup):
        owner, rejected = classify_owner_line(line)
        if owner:
            owners.append(owner)
        else:
            invalid.append(rejected)
            logger.info(f"Rejected owner line {rejected['raw']!r}: {rejected['reason']}")
    return build_owner_payload(deduplicate_owners(owners), invalid)


def main(work_dir):
    soup = load_html(work_dir)
    property_id = parcel_id(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    payload = extract_owners(soup)
    logger.info(
        f"Owners for {property_id}: {len(payload['owners_by_date']['current'])} current, "
        f"{len(payload['invalid_owners'])} invalid"
    )
    return write_owners_file(work_dir, config.OWNER_DATA_FILE, property_id, payload)
