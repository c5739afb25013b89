import logging
import re

from ... import config
from ...owners import build_owner_payload, deduplicate_owners, is_likely_address, looks_like_company, make_company, make_person
from ...utils import clean_text, node_text, parse_date_to_iso
from ..common import load_html, load_seed, write_owners_file

logger = logging.getLogger(__name__)


def extract_folio_id(soup, fallback=None):
    """Folio id from the parcel label, else from any FolioID= link."""
    match = re.search(r"Folio\s*ID:\s*(\d+)", node_text(soup.find(id="parcelLabel")) or "", re.IGNORECASE)
    if match:
        return match.group(1)
    link = soup.select_one("a[href*='FolioID=']")
    if link is not None:
        match = re.search(r"FolioID=(\d+)", link.get("href", ""), re.IGNORECASE)
        if match:
            return match.group(1)
    return fallback or "unknown"


def extract_owner_names(soup):
    """Owner names from the Owner Of Record panel, split on "&", stopping at the address."""
    panel = soup.select_one("#divDisplayParcelOwner .textPanel")
    if panel is None:
        logger.warning("⚠️ No divDisplayParcelOwner text panel found")
        return []

    names = []
    for line in panel.get_text("\n").split("\n"):
        line = clean_text(line)
        if not line:
            continue
        if re.search(r"\d", line) or is_likely_address(line):
            break
        names.extend(part.strip() for part in line.split("&") if part.strip())
    return names


def parse_owner_name(name):
    """Companies by keyword; persons are written LAST FIRST MIDDLE."""
    name = clean_text(name)
    if not name:
        return None
    if looks_like_company(name):
        return make_company(name)

    parts = name.split()
    if len(parts) < 2:
        return None
    if len(parts) == 2:
        return make_person(parts[1], parts[0])
    return make_person(parts[1], parts[0], " ".join(parts[2:]))


# Sales table

def header_mapped_rows(table):
    rows = table.find_all("tr")
    if not rows:
        return []
    headers = [node_text(c) or "" for c in rows[0].find_all(["th", "td"])]
    mapped = []
    for row in rows[1:]:
        cells = row.find_all(["td", "th"])
        if len(cells) < 2:
            continue
        mapped.append({
            (headers[i] if i < len(headers) else f"col{i}"): node_text(cell) or ""
            for i, cell in enumerate(cells)
        })
    return mapped


def find_sales_table(soup):
    table = soup.select_one("#SalesDetails table")
    if table is not None:
        return table
    for table in soup.find_all("table"):
        text = table.get_text(" ").lower()
        if "sale" in text and "date" in text:
            return table
    return None




def sale_row_date(row):
    return parse_date_to_iso(row.get("Date") or row.get("Sale Date") or row.get("Transfer Date"))


def extract_latest_sale_date(soup):
    """Most recent transfer date in the sales table, whatever order the rows are in."""
    table = find_sales_table(soup)
    if table is None:
        return None
    dates = [date for date in (sale_row_date(row) for row in header_mapped_rows(table)) if date]
    return max(dates) if dates else None


def extract_owners(soup):
    valid = []
    invalid = []
    for name in extract_owner_names(soup):
        owner = parse_owner_name(name)
        if owner is None:
            invalid.append({"raw": name, "reason": "unparseable_name"})
            continue
        valid.append(owner)
    date_key = extract_latest_sale_date(soup) or "current"
    return build_owner_payload(deduplicate_owners(valid), invalid, date_key=date_key)


def main(work_dir):
    soup = load_html(work_dir)
    folio = extract_folio_id(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    payload = extract_owners(soup)
    for date_key, owners in payload["owners_by_date"].items():
        logger.info(f"Found {len(owners)} owner(s) for {folio} as of {date_key}")
    return write_owners_file(work_dir, config.OWNER_DATA_FILE, folio, payload)
