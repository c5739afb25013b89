import logging
import re

from ... import config
from ...owners import build_owner_payload, make_company, make_person
from ...utils import clean_text, node_text
from ..common import load_html, load_seed, write_owners_file

logger = logging.getLogger(__name__)

COMPANY_RE = re.compile(
    r"\b(inc\.?|incorporated|llc\.?|l\.l\.c\.?|ltd\.?|limited|corp\.?|corporation|co\.?|company|companies"
    r"|trust|trustee|trusts|tr|foundation|foundations|fdn\.?|alliance|solutions|services|svcs?\.?"
    r"|assn\.?|association|associations|partners|partnership|ptnrs\.?|holdings|hldgs\.?|group|groups"
    r"|bank|banking|church|churches|ministries|ministry|management|mgmt\.?|properties|property"
    r"|enterprises?|investments?|advisors?|consultants?|contractors?|developers?|builders?|realty"
    r"|real\s+estate|estates?|ventures?|systems?|technologies|technology|networks?|communications?"
    r"|industries|industry|manufacturing|mfg\.?|capital|financial|finance|insurance|medical"
    r"|healthcare|construction|engineering|architects?|marketing|media|publishing|entertainment"
    r"|hospitality|restaurants?|hotels?|resorts?|clubs?|organizations?|nonprofits?|charities|charity"
    r"|schools?|universities|university|colleges?|institutes?|academy|centers?|facilities|clinics?"
    r"|hospitals?|laboratories|laboratory)\b",
    re.IGNORECASE,
)

PREFIX_MAPPING = {
    "mr": "Mr.", "mrs": "Mrs.", "ms": "Ms.", "miss": "Miss", "mx": "Mx.", "dr": "Dr.",
    "prof": "Prof.", "rev": "Rev.", "fr": "Fr.", "sr": "Sr.", "br": "Br.", "capt": "Capt.",
    "col": "Col.", "maj": "Maj.", "lt": "Lt.", "sgt": "Sgt.", "hon": "Hon.", "judge": "Judge",
    "rabbi": "Rabbi", "imam": "Imam", "sheikh": "Sheikh", "sir": "Sir", "dame": "Dame",
}

SUFFIX_MAPPING = {
    "jr": "Jr.", "sr": "Sr.", "ii": "II", "iii": "III", "iv": "IV", "v": "V", "vi": "VI",
    "phd": "PhD", "md": "MD", "esq": "Esq.", "jd": "JD", "llm": "LLM", "mba": "MBA",
    "rn": "RN", "dds": "DDS", "dvm": "DVM", "cfa": "CFA", "cpa": "CPA", "pe": "PE",
    "pmp": "PMP", "emeritus": "Emeritus", "ret": "Ret.",
}


def extract_pin(soup, fallback=None):
    return node_text(soup.select_one("td[data-bind*='displayStrap']")) or fallback or "unknown_id"


def clean_name(raw):
    text = clean_text(raw) or ""
    return re.sub(r"^[;:,]+|[;:,]+$", "", text).strip()


def split_candidates(raw):
    return [p for p in (clean_name(t) for t in re.split(r"[;\n\r|]+", raw or "")) if p]


def extract_owner_text(soup):
    """Owner header text, one owner per line."""
    node = soup.select_one("h4[data-bind*='publicOwner']") or soup.select_one("[data-bind*='publicOwner']")
    if node is None:
        logger.warning("⚠️ No publicOwner element found")
        return ""
    for br in node.find_all("br"):
        br.replace_with("\n")
    return node.get_text().strip()


def is_all_caps(text):
    letters = re.sub(r"[^A-Za-z]", "", text)
    if not letters:
        return False
    return len(re.sub(r"[^A-Z]", "", letters)) / len(letters) > 0.9


def _title(text):
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), text.lower())


def parse_person(name):
    """One person from "LAST, FIRST MIDDLE", ALL-CAPS "LAST FIRST MIDDLE" or "First Middle Last"."""
    text = re.sub(r"\s+", " ", clean_name(name).replace("&", " ")).strip()
    tokens = text.split()

    prefix_name = None
    suffix_name = None
    if tokens and tokens[0].lower().rstrip(".") in PREFIX_MAPPING:
        prefix_name = PREFIX_MAPPING[tokens.pop(0).lower().rstrip(".")]
    while tokens and tokens[-1].lower().rstrip(".") in SUFFIX_MAPPING:
        suffix_name = SUFFIX_MAPPING[tokens.pop().lower().rstrip(".")]
    if len(tokens) < 2:
        return None

    if "," in text:
        left, right = (part.strip() for part in text.split(",", 1))
        right_tokens = [t for t in right.split() if t.lower().rstrip(".") not in SUFFIX_MAPPING]
        last = left
        first = right_tokens[0] if right_tokens else ""
        middle = " ".join(right_tokens[1:])
    elif is_all_caps(text):
        last, first = tokens[0], tokens[1]
        middle = " ".join(tokens[2:])
    else:
        first, last = tokens[0], tokens[-1]
        middle = " ".join(tokens[1:-1])

    if not first.strip() or not last.strip():
        return None
    return make_person(
        _title(first.strip()),
        _title(last.strip()),
        _title(middle.strip()) if middle.strip() else None,
        suffix_name,
        prefix_name,
    )


def classify_owner(raw):
    """Returns (owners, invalid entries) for one candidate line."""
    text = clean_name(raw)
    if not text:
        return [], [{"raw": raw, "reason": "empty_string"}]
    if COMPANY_RE.search(text):
        return [make_company(text)], []

    if "&" in text:
        owners = []
        invalid = []
        for part in (p.strip() for p in text.split("&")):
            if not part:
                continue
            person = parse_person(part)
            if person:
                owners.append(person)
            else:
                invalid.append({"raw": part, "reason": "unparseable_person_with_ampersand"})
        if owners:
            return owners, invalid
        return [], [{"raw": text, "reason": "unparseable_ampersand_name"}]

    person = parse_person(text)
    if person:
        return [person], []
    return [], [{"raw": text, "reason": "unclassified_name"}]


def owner_key(owner):
    if owner["type"] == "company":
        return "c:" + re.sub(r"\s+", " ", owner["name"].lower()).strip()
    name = " ".join(filter(None, [owner.get("first_name"), owner.get("middle_name"), owner.get("last_name")]))
    return "p:" + re.sub(r"\s+", " ", name.lower()).strip()


def dedupe_owners(owners):
    seen = set()
    unique = []
    for owner in owners:
        key = owner_key(owner)
        if key in seen:
            continue
        seen.add(key)
        unique.append(owner)
    return unique


def extract_owners(soup):
    valid = []
    invalid = []
    for candidate in split_candidates(extract_owner_text(soup)):
        owners, rejected = classify_owner(candidate)
        valid.extend(owners)
        invalid.extend(rejected)
    return build_owner_payload(dedupe_owners(valid), invalid)


def main(work_dir):
    soup = load_html(work_dir)
    pin = extract_pin(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    payload = extract_owners(soup)
    logger.info(f"Found {len(payload['owners_by_date']['current'])} current owner(s) for {pin}")
    if payload["invalid_owners"]:
        logger.warning(f"⚠️ {len(payload['invalid_owners'])} owner string(s) could not be classified for {pin}")
    return write_owners_file(work_dir, config.OWNER_DATA_FILE, pin, payload)
