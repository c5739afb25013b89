import logging
import re

from ... import config
from ...owners import deduplicate_owners, looks_like_company, make_company, make_person
from ...utils import clean_text, node_text, parse_date_to_iso, title_case
from ..common import load_html, load_seed, write_owners_file

logger = logging.getLogger(__name__)

NAME_SUFFIXES = {"JR", "SR", "II", "III", "IV", "V"}
MIDDLE_PLACEHOLDERS = {"NMI", "NM", "NONE", "NO MIDDLE", "UNKNOWN", "NA", "N/A"}


def extract_pcn(soup, fallback=None):
    """Parcel control number, digits only."""
    node = soup.find(id="MainContent_lblPCN")
    pcn = re.sub(r"\D", "", node_text(node) or "") if node else ""
    if not pcn:
        for label in soup.select("td.label"):
            if re.search(r"parcel control number", node_text(label) or "", re.IGNORECASE):
                value = label.find_next_sibling("td")
                pcn = re.sub(r"\D", "", node_text(value) or "")
                break
    return pcn or fallback or "unknown_id"


def section_table(soup, title):
    """First table under the h2 heading titled `title`."""
    for heading in soup.find_all("h2"):
        if (node_text(heading) or "").lower() != title.lower():
            continue
        container = heading.find_parent(class_="has-accordion")
        table = container.find("table") if container else None
        return table or heading.find_next("table")
    return None


def table_rows(table):
    return [row.find_all("td") for row in table.find_all("tr") if row.find_all("td")] if table else []


def split_owner_names(raw):
    text = re.sub(r"\s*&\s*$", "", clean_text(raw) or "")
    return [p for p in (clean_text(p) for p in re.split(r"\s+(?:AND|&)\s+", text, flags=re.IGNORECASE)) if p]


def _name_part(value):
    cleaned = clean_text(re.sub(r"[^A-Za-z\s\-'.]", " ", value or ""))
    return " ".join(title_case(t) for t in cleaned.split()) if cleaned else None


def _middle(tokens):
    tokens = [t for t in tokens if t.replace(".", "").upper() not in NAME_SUFFIXES]
    if not tokens or " ".join(tokens).upper() in MIDDLE_PLACEHOLDERS:
        return None
    return _name_part(" ".join(tokens))


def parse_person(piece, carried_last=None, continuation=False):
    """Person from "LAST FIRST MIDDLE"; a continuation piece is "FIRST MIDDLE" sharing carried_last."""
    text = (clean_text(piece) or "").replace(".", "")
    if continuation and carried_last:
        tokens = text.split()
        first = _name_part(tokens[0]) if tokens else None
        return make_person(first, _name_part(carried_last), _middle(tokens[1:])) if first else None

    if "," in text:
        last, _, rest = text.partition(",")
        tokens = [last.strip()] + rest.split()
    else:
        tokens = text.split()
    if len(tokens) < 2:
        return None
    first, last = _name_part(tokens[1]), _name_part(tokens[0])
    if not first or not last:
        return None
    return make_person(first, last, _middle(tokens[2:]))


def classify_owner_cell(raw):
    """(owners, invalid) for one owner cell, which may name several owners."""
    owners = []
    invalid = []
    text = re.sub(r"\s*&\s*$", "", clean_text(raw) or "")
    if text and looks_like_company(text) and not looks_like_company(text.split("&")[0]):
        # "SMITH & JONES LLC": the keyword closes the whole cell
        return [make_company(text)], invalid
    carried_last = None
    for index, piece in enumerate(split_owner_names(raw)):
        continuation = index > 0
        if looks_like_company(piece):
            owners.append(make_company(piece))
            continue
        if not continuation:
            carried_last = piece.split()[0]
        person = parse_person(piece, carried_last, continuation)
        if person:
            owners.append(person)
            if not continuation:
                carried_last = person["last_name"]
        else:
            invalid.append({"raw": piece, "reason": "unclassified_owner"})
            logger.info(f"Rejected owner name {piece!r}")
    return owners, invalid


def extract_current_owner_names(soup):
    names = [clean_text(node_text(cells[0])) for cells in table_rows(section_table(soup, "Owner Information"))]
    names = [n for n in names if n]
    if not names:
        for label in soup.select("td.label"):
            if (node_text(label) or "").lower() == "owner name":
                value = clean_text(node_text(label.find_next_sibling("td")))
                if value:
                    names.append(value)
    return names


def extract_sale_owner_names(soup):
    """(iso date, owner cell) per Sales Information row."""
    sales = []
    for cells in table_rows(section_table(soup, "Sales Information")):
        if len(cells) < 2:
            continue
        date = parse_date_to_iso(node_text(cells[0]))
        if date:
            sales.append((date, node_text(cells[-1])))
    return sales


def extract_owners(soup):
    """owners_by_date keyed by sale date plus "current"."""
    by_date = {}
    invalid = []
    for date, raw in extract_sale_owner_names(soup):
        owners, rejected = classify_owner_cell(raw)
        by_date.setdefault(date, []).extend(owners)
        invalid.extend(rejected)

    owners_by_date = {}
    for date in sorted(by_date):
        owners = deduplicate_owners(by_date[date])
        if owners:
            owners_by_date[date] = owners

    current = []
    for raw in extract_current_owner_names(soup):
        owners, rejected = classify_owner_cell(raw)
        current.extend(owners)
        invalid.extend(rejected)
    owners_by_date["current"] = deduplicate_owners(current)
    return {"owners_by_date": owners_by_date, "invalid_owners": invalid}


def main(work_dir):
    soup = load_html(work_dir)
    pcn = extract_pcn(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    payload = extract_owners(soup)
    logger.info(
        f"Owners for {pcn}: {len(payload['owners_by_date']['current'])} current, "
        f"{len(payload['owners_by_date']) - 1} sale dates, {len(payload['invalid_owners'])} invalid"
    )
    return write_owners_file(work_dir, config.OWNER_DATA_FILE, pcn, payload)
