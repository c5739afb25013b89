"""Owner-name classification shared by the county owner processors.

A raw owner line is either a company, one or more persons, or noise (an
address fragment, a city/state line, an empty string). Classification returns
``{"valid": True, "owners": [...]}`` or ``{"valid": False, "reason": ...}``.
"""
import logging
import re

from .utils import clean_text, title_case

logger = logging.getLogger(__name__)

ADDRESS_TOKENS = [
    " ST ", " STREET ", " AVE ", " AVENUE ", " BLVD ", " WAY ", " RD ", " ROAD ",
    " DR ", " DRIVE ", " CT ", " COURT ", " LN ", " LANE ", " HWY ", " PKWY ",
    " PARKWAY ", " PL ", " PLACE ", " TRL ", " TRAIL ", " CIR ", " CIRCLE ",
    " UNIT ", " APT ", " SUITE ", " STE ", " P.O. ", " PO BOX ",
]

COMPANY_KEYWORDS = [
    "INC", "LLC", "L.L.C", "LTD", "L.T.D", "FOUNDATION", "ALLIANCE", "SOLUTIONS",
    "CORP", "CORPORATION", "CO", "COMPANY", "SERVICES", "SERVICE", "TRUST", "TR",
    "LP", "LLP", "PLC", "HOLDINGS", "BANK", "N.A.", "NATIONAL ASSOCIATION",
    "ASSOCIATION", "ASSOC", "REALTY", "PROPERTIES", "PARTNERS", "INVESTMENTS",
    "GROUP", "ENTERPRISES", "HOLDING",
]

KNOWN_SUFFIXES = {
    "JR", "JUNIOR", "SR", "SENIOR", "II", "III", "IV", "V", "ESQ", "CFA", "CPA",
    "DDS", "DVM", "MBA", "MD", "PE", "PHD", "PMP", "RN", "LLM", "EMERITUS", "RET",
}

SUFFIX_NORMALIZATION = {
    "JR": "Jr.", "JUNIOR": "Jr.",
    "SR": "Sr.", "SENIOR": "Sr.",
    "II": "II", "III": "III", "IV": "IV", "V": "V",
    "ESQ": "Esq.", "RET": "Ret.",
}

_COMPANY_PATTERNS = [
    re.compile(r"(^|\s)" + re.escape(kw) + r"(\s|$)") for kw in COMPANY_KEYWORDS
]


def is_likely_address(text):
    """True for address fragments, zip codes and other non-name noise"""
    t = (clean_text(text) or "").upper()
    if not t:
        return True
    if re.match(r"^\d{5}(-\d{4})?$", t):
        return True
    if re.match(r"^\d+[ -]?\d*$", t):
        return True
    padded = f" {t} "
    if any(token in padded for token in ADDRESS_TOKENS):
        return True
    if len(re.findall(r"\d", t)) >= 3:
        return True
    return len(t) <= 3


def looks_like_company(name):
    t = (clean_text(name) or "").upper()
    return any(pattern.search(t) for pattern in _COMPANY_PATTERNS)


def _is_suffix(token):
    return token.upper().replace(".", "") in KNOWN_SUFFIXES


def normalize_suffix(suffix):
    return SUFFIX_NORMALIZATION.get(suffix.upper().replace(".", ""), suffix)


def make_person(first_name, last_name, middle_name=None, suffix_name=None, prefix_name=None):
    return {
        "type": "person",
        "first_name": first_name,
        "last_name": last_name,
        "middle_name": middle_name,
        "prefix_name": prefix_name,
        "suffix_name": suffix_name,
    }


def make_company(name):
    return {"type": "company", "name": name}


def _titled(tokens):
    return " ".join(title_case(t) for t in tokens) if tokens else None


def _classify_comma_form(text):
    parts = [p.strip() for p in text.split(",")]
    left_tokens = parts[0].split()
    if not left_tokens:
        return {"valid": False, "reason": "no_last_name", "raw": text}

    suffix_name = None
    if len(left_tokens) > 1 and _is_suffix(left_tokens[-1]):
        suffix_name = normalize_suffix(left_tokens.pop())
    last_name = _titled(left_tokens)

    first_middle = parts[1]
    if "=&" in first_middle:
        persons = []
        for name in [n.strip() for n in first_middle.split("=&") if n.strip()]:
            tokens = name.split()
            persons.append(make_person(title_case(tokens[0]), last_name, _titled(tokens[1:]), suffix_name))
        return {"valid": True, "owners": persons}

    tokens = first_middle.split()
    if not tokens:
        return {"valid": False, "reason": "no_first_name", "raw": text}
    return {
        "valid": True,
        "owners": [make_person(title_case(tokens[0]), last_name, _titled(tokens[1:]), suffix_name)],
    }


def _shared_last_name(tokens):
    """Pop a trailing suffix and the shared last name off tokens."""
    suffix_name = None
    if _is_suffix(tokens[-1]):
        suffix_name = normalize_suffix(tokens.pop())
    last_name = title_case(tokens.pop())
    return last_name, suffix_name


def _classify_plain_form(text):
    tokens = text.split()
    if len(tokens) < 2:
        return {"valid": False, "reason": "insufficient_name_parts", "raw": text}

    # "STEVEN=& MARILYN KINNIRY": several first names sharing one last name
    equals_amp = next((i for i, t in enumerate(tokens) if "=&" in t), None)
    if equals_amp is not None:
        first, _, after = tokens[equals_amp].partition("=&")
        rebuilt = [first] + ([after] if after else []) + tokens[equals_amp + 1:]
        if len(rebuilt) < 2:
            return {"valid": False, "reason": "insufficient_name_parts", "raw": text}
        last_name, suffix_name = _shared_last_name(rebuilt)
        persons = [make_person(title_case(f), last_name, None, suffix_name) for f in rebuilt if f.strip()]
        if persons:
            return {"valid": True, "owners": persons}

    # "JOHN R & MARIE V GLOWACKI"
    if "&" in tokens[1:]:
        amp = tokens.index("&")
        working = list(tokens)
        last_name, suffix_name = _shared_last_name(working)
        persons = []
        for group in (working[:amp], working[amp + 1:]):
            if group:
                persons.append(make_person(title_case(group[0]), last_name, _titled(group[1:]), suffix_name))
        return {"valid": True, "owners": persons}

    suffix_name = None
    if len(tokens) > 2 and _is_suffix(tokens[-1]):
        suffix_name = normalize_suffix(tokens.pop())
    return {
        "valid": True,
        "owners": [make_person(title_case(tokens[0]), title_case(tokens[-1]), _titled(tokens[1:-1]), suffix_name)],
    }


def classify_owner(raw):
    """Classify one raw owner line into company/person owners or an invalid entry."""
    text = re.sub(r"[\r\n]+", " ", clean_text(raw) or "").strip()
    text = re.sub(r"^[%#@*]+\s*", "", text)
    text = re.sub(r"\s*&\s*$", "", text).strip()
    # C/O, H/W and similar care-of markers
    text = " ".join(t for t in text.split() if "/" not in t).strip()

    if not text:
        return {"valid": False, "reason": "empty"}
    if is_likely_address(text):
        return {"valid": False, "reason": "address_or_noise"}
    if looks_like_company(text) or re.search(r"\d", text):
        return {"valid": True, "owners": [make_company(text)]}

    if "," in text:
        return _classify_comma_form(text)
    return _classify_plain_form(text)


def dedupe_key(owner):
    if owner.get("type") == "company":
        return re.sub(r"[^a-z0-9]+", " ", (owner.get("name") or "").lower()).strip()
    parts = " ".join([owner.get("first_name") or "", owner.get("middle_name") or "", owner.get("last_name") or ""])
    return re.sub(r"[^a-z0-9]+", " ", parts.lower()).strip()


def deduplicate_owners(owners_list):
    """Remove duplicate owners from the list, keeping first occurrence"""
    seen = set()
    unique_owners = []
    for owner in owners_list:
        key = dedupe_key(owner)
        if not key or key in seen:
            continue
        seen.add(key)
        unique_owners.append(owner)
    return unique_owners


def classify_owner_lines(lines):
    """Classify many raw lines; returns (valid_owners, invalid_owners)."""
    valid = []
    invalid = []
    for raw in lines:
        result = classify_owner(raw)
        if result["valid"]:
            valid.extend(result["owners"])
        else:
            invalid.append({"raw": clean_text(raw), "reason": result.get("reason", "unknown")})
            logger.info(f"Rejected owner line {raw!r}: {result.get('reason')}")
    return deduplicate_owners(valid), invalid


def build_owner_payload(valid_owners, invalid_owners, date_key="current"):
    return {
        "owners_by_date": {date_key: valid_owners},
        "invalid_owners": invalid_owners,
    }


def current_owners(owner_data, property_key):
    """Owners listed under `current` (or the latest date) for property_key."""
    entry = owner_data.get(property_key)
    if entry is None and len(owner_data) == 1:
        entry = next(iter(owner_data.values()))
    if not entry:
        return []
    by_date = entry.get("owners_by_date") or {}
    if "current" in by_date:
        return by_date["current"] or []
    dated = sorted(k for k in by_date if re.match(r"^\d{4}-\d{2}-\d{2}$", k))
    return by_date[dated[-1]] if dated else []


# Mailing-address helpers: owner-name lines must not leak into the address

def normalize_comparison_string(value):
    if not value:
        return ""
    value = value.replace("&", " ").replace("\u00a0", " ")
    return re.sub(r"[^0-9A-Z]", "", value.upper())


def build_owner_name_variants(owners):
    variants = set()
    for owner in owners or []:
        if not owner:
            continue
        if owner.get("type") == "company" and owner.get("name"):
            variants.add(normalize_comparison_string(owner["name"]))
            continue
        if owner.get("type") != "person":
            continue
        first = (owner.get("first_name") or "").strip()
        middle = (owner.get("middle_name") or "").strip()
        last = (owner.get("last_name") or "").strip()
        suffix = (owner.get("suffix_name") or "").strip()
        if not any([first, middle, last, suffix]):
            continue
        given = " ".join(p for p in [first, middle] if p)
        family = " ".join(p for p in [last, suffix] if p)
        candidates = [
            " ".join(p for p in [first, middle, last, suffix] if p),
            ", ".join(p for p in [family, given] if p),
            " ".join(p for p in [family, given] if p),
        ]
        for candidate in candidates:
            normalized = normalize_comparison_string(candidate)
            if normalized:
                variants.add(normalized)
    return variants


def should_exclude_owner_line(line, owner_name_variants):
    normalized = normalize_comparison_string(line)
    if normalized and normalized in owner_name_variants:
        return True
    for pattern in (r"\s*&\s*", r"\s+AND\s+"):
        segments = [s.strip() for s in re.split(pattern, line, flags=re.IGNORECASE) if s.strip()]
        if len(segments) > 1 and all(
            normalize_comparison_string(s) in owner_name_variants for s in segments
        ):
            return True
    return False


def build_mailing_address_lines(owner_lines, location_parts, owner_name_variants):
    lines = []
    seen = set()
    candidates = [l for l in owner_lines if not should_exclude_owner_line(l, owner_name_variants)]
    for line in candidates + list(location_parts):
        trimmed = (line or "").strip()
        if not trimmed or trimmed.upper() in seen:
            continue
        seen.add(trimmed.upper())
        lines.append(trimmed)
    return lines
