import re

DIRECTIONAL_MAPPINGS = {
    "NORTH": "N", "SOUTH": "S", "EAST": "E", "WEST": "W",
    "NORTHEAST": "NE", "NORTHWEST": "NW", "SOUTHEAST": "SE", "SOUTHWEST": "SW",
    "N": "N", "S": "S", "E": "E", "W": "W",
    "NE": "NE", "NW": "NW", "SE": "SE", "SW": "SW",
}

# USPS street suffix abbreviations, keyed by the spellings seen on appraiser pages
SUFFIX_MAPPINGS = {
    "STREET": "St", "ST": "St",
    "AVENUE": "Ave", "AVE": "Ave", "AV": "Ave",
    "BOULEVARD": "Blvd", "BLVD": "Blvd",
    "ROAD": "Rd", "RD": "Rd",
    "LANE": "Ln", "LN": "Ln",
    "DRIVE": "Dr", "DR": "Dr",
    "COURT": "Ct", "CT": "Ct",
    "PLACE": "Pl", "PL": "Pl",
    "TERRACE": "Ter", "TER": "Ter", "TERR": "Ter",
    "CIRCLE": "Cir", "CIR": "Cir",
    "WAY": "Way", "WY": "Way",
    "PARKWAY": "Pkwy", "PKWY": "Pkwy",
    "PLAZA": "Plz", "PLZ": "Plz",
    "TRAIL": "Trl", "TRL": "Trl",
    "BEND": "Bnd", "BND": "Bnd",
    "LOOP": "Loop",
    "HIGHWAY": "Hwy", "HWY": "Hwy",
    "EXPRESSWAY": "Expy", "EXPY": "Expy",
    "CAUSEWAY": "Cswy", "CSWY": "Cswy",
    "COVE": "Cv", "CV": "Cv",
    "CREEK": "Crk", "CRK": "Crk",
    "CROSSING": "Xing", "XING": "Xing",
    "GLEN": "Gln", "GLN": "Gln",
    "GROVE": "Grv", "GRV": "Grv",
    "HARBOR": "Hbr", "HBR": "Hbr",
    "HEIGHTS": "Hts", "HTS": "Hts",
    "HILL": "Hl", "HL": "Hl",
    "HOLLOW": "Holw", "HOLW": "Holw",
    "ISLE": "Isle",
    "KEY": "Ky", "KY": "Ky",
    "LANDING": "Lndg", "LNDG": "Lndg",
    "MANOR": "Mnr", "MNR": "Mnr",
    "MEADOW": "Mdw", "MDW": "Mdw",
    "MEADOWS": "Mdws", "MDWS": "Mdws",
    "PASS": "Pass",
    "PATH": "Path",
    "PIKE": "Pike",
    "POINT": "Pt", "PT": "Pt",
    "RIDGE": "Rdg", "RDG": "Rdg",
    "ROW": "Row",
    "RUN": "Run",
    "SQUARE": "Sq", "SQ": "Sq",
    "TRACE": "Trce", "TRCE": "Trce",
    "TURNPIKE": "Tpke", "TPKE": "Tpke",
    "VIEW": "Vw", "VW": "Vw",
    "VILLAGE": "Vlg", "VLG": "Vlg",
    "VISTA": "Vis", "VIS": "Vis",
    "WALK": "Walk",
    "ALLEY": "Aly", "ALY": "Aly",
    "ESTATES": "Ests", "ESTS": "Ests",
    "GARDENS": "Gdns", "GDNS": "Gdns",
    "LAKE": "Lk", "LK": "Lk",
    "LAKES": "Lks", "LKS": "Lks",
    "SHORES": "Shrs", "SHRS": "Shrs",
}

ROUTE_KEYWORDS = ["HWY", "HIGHWAY", "ROUTE", "RT", "RTE", "STATE", "US", "SR", "CR", "COUNTY", "ROAD"]

UNIT_PATTERN = re.compile(r"(#|\bAPT\b|\bUNIT\b|\bSTE\b|\bSUITE\b)\s*([A-Z0-9-]+)", re.IGNORECASE)


def empty_address_components():
    return {
        "street_number": None,
        "street_name": None,
        "street_pre_directional_text": None,
        "street_post_directional_text": None,
        "street_suffix_type": None,
        "unit_identifier": None,
        "city_name": None,
        "state_code": None,
        "postal_code": None,
        "plus_four_postal_code": None,
        "route_number": None,
    }


def parse_full_address(full_address):
    """Parse "280 S COLLIER BLVD # 2306, MARCO ISLAND, FL 34145-1234".

    Falls back to "<num> <street>, <CITY> <ZIP>" when no state is present.
    """
    result = empty_address_components()
    if not full_address:
        return result

    addr = re.sub(r"\s+,", ",", str(full_address)).strip()

    unit_match = UNIT_PATTERN.search(addr)
    if unit_match:
        result["unit_identifier"] = unit_match.group(2)
        addr = UNIT_PATTERN.sub("", addr, count=1).strip()
        addr = re.sub(r"\s+,", ",", re.sub(r"\s{2,}", " ", addr))

    match = re.match(
        r"^(\d+)\s+([^,]+),\s*([A-Za-z\s]+),\s*([A-Za-z]{2})\s*(\d{5})(?:-(\d{4}))?$", addr
    )
    if match:
        number, street, city, state, zip5, zip4 = match.groups()
        result["state_code"] = state.upper()
    else:
        match = re.match(r"^(\d+)\s+([^,]+),\s*([A-Za-z\s]+?)\s*(\d{5})(?:-(\d{4}))?$", addr)
        if not match:
            return result
        number, street, city, zip5, zip4 = match.groups()
        result["state_code"] = "FL"

    parsed = parse_street_components(street.strip().upper())
    result.update({
        "street_number": number,
        "street_name": parsed["street_name"],
        "street_pre_directional_text": parsed["street_pre_directional_text"],
        "street_post_directional_text": parsed["street_post_directional_text"],
        "street_suffix_type": parsed["street_suffix_type"],
        "route_number": parsed["route_number"],
        "city_name": city.strip().upper(),
        "postal_code": zip5,
        "plus_four_postal_code": zip4,
    })
    return result


def _route_index(parts):
    """Index of the first number that follows a highway keyword, e.g. the 41 in "US HWY 41"."""
    for i in range(1, len(parts)):
        if parts[i].isdigit() and parts[i - 1].upper() in ROUTE_KEYWORDS:
            return i
    return None


def parse_street_components(street):
    """Parse a free-form street line around an anchor.

    The anchor is the rightmost suffix, or the route number when the line is
    a highway ("US HWY 41"); highway keywords ahead of a route number stay in
    the name. Directionals before the anchor are pre-directionals and those
    after it are post-directionals. Without an anchor only a leading or
    trailing directional is split off.
    """
    result = {
        "street_number": None,
        "street_name": None,
        "street_pre_directional_text": None,
        "street_post_directional_text": None,
        "street_suffix_type": None,
        "route_number": None,
    }
    street_parts = (street or "").split()
    if not street_parts:
        return result

    if street_parts[0].isdigit():
        result["street_number"] = street_parts[0]
        remaining_parts = street_parts[1:]
    else:
        remaining_parts = street_parts
    if not remaining_parts:
        return result

    route_idx = _route_index(remaining_parts)

    part_types = ["STREET"] * len(remaining_parts)
    for i, part in enumerate(remaining_parts):
        if part.upper() in SUFFIX_MAPPINGS and (route_idx is None or i > route_idx):
            part_types[i] = "SUFFIX"
    for i, part in enumerate(remaining_parts):
        if part.upper() in DIRECTIONAL_MAPPINGS:
            part_types[i] = "DIRECTIONAL"

    main_suffix_idx = None
    for i in range(len(remaining_parts) - 1, -1, -1):
        if part_types[i] == "SUFFIX":
            main_suffix_idx = i
            break
    anchor_idx = main_suffix_idx if main_suffix_idx is not None else route_idx

    pre_idx = None
    post_idx = None
    last = len(remaining_parts) - 1
    for i, part_type in enumerate(part_types):
        if part_type != "DIRECTIONAL":
            continue
        if anchor_idx is None:
            if i == 0 and last > 0:
                pre_idx = i
            elif i == last and last > 0:
                post_idx = i
        elif i < anchor_idx:
            if pre_idx is None:
                pre_idx = i
        elif i > anchor_idx and post_idx is None:
            post_idx = i

    street_name_parts = [
        part
        for i, part in enumerate(remaining_parts)
        if i not in (pre_idx, post_idx, main_suffix_idx, route_idx)
    ]

    if pre_idx is not None:
        result["street_pre_directional_text"] = DIRECTIONAL_MAPPINGS[remaining_parts[pre_idx].upper()]
    if post_idx is not None:
        result["street_post_directional_text"] = DIRECTIONAL_MAPPINGS[remaining_parts[post_idx].upper()]
    if main_suffix_idx is not None:
        result["street_suffix_type"] = SUFFIX_MAPPINGS[remaining_parts[main_suffix_idx].upper()]
    if route_idx is not None:
        result["route_number"] = remaining_parts[route_idx]
    result["street_name"] = " ".join(street_name_parts) if street_name_parts else None
    return result


def extract_block_lot(legal_text):
    """Pull BLOCK and LOT designators out of a legal description."""
    block = None
    lot = None
    if legal_text:
        block_match = re.search(r"\b(?:BLOCK|BLK)\s+([A-Z0-9]+)", legal_text, re.IGNORECASE)
        if block_match:
            block = block_match.group(1).upper()
        lot_match = re.search(r"\bLOT\s+(\w+)", legal_text, re.IGNORECASE)
        if lot_match:
            lot = lot_match.group(1)
    return {"block": block, "lot": lot}


def section_township_range_from_pin(pin):
    """Hillsborough-style PINs start with section-township-range, e.g. "U-23-28-18-..."."""
    if not pin:
        return {"section": None, "township": None, "range": None}
    match = re.match(r"^[A-Z]?-?(\d{2})-(\d{2})-(\d{2})", pin.strip(), re.IGNORECASE)
    if match:
        section, township, rng = match.groups()
        return {"section": section, "township": township, "range": rng}
    digits = re.sub(r"\D", "", pin)
    if len(digits) >= 6:
        return {"section": digits[0:2], "township": digits[2:4], "range": digits[4:6]}
    return {"section": None, "township": None, "range": None}
