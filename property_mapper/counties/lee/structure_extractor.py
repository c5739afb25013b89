import re

from ... import config
from ...records import new_structure
from ...utils import clean_text, node_text, parse_date_to_iso, parse_int
from ..common import load_html, load_seed, write_owners_file
from .owner_processor import extract_folio_id


def attribute_header_value(soup, header_pattern, header_index, value_index):
    """Value under a 4-column header row of table.appraisalAttributes."""
    for row in soup.select("table.appraisalAttributes tr"):
        ths = row.find_all("th")
        if len(ths) == 4 and re.search(header_pattern, node_text(ths[header_index]) or "", re.IGNORECASE):
            data_row = row.find_next_sibling("tr")
            if data_row is not None:
                tds = data_row.find_all("td")
                if len(tds) > value_index:
                    return node_text(tds[value_index])
    return None


def detect_style(soup):
    style = attribute_header_value(soup, r"Improvement Type", 0, 0) or ""
    return "Ranch" if re.search(r"ranch", style, re.IGNORECASE) else None


def detect_attachment(soup):
    model_type = attribute_header_value(soup, r"Stories", 2, 1) or ""
    return "Detached" if re.search(r"single\s*family", model_type, re.IGNORECASE) else None


def extract_areas(soup):
    """Heated BAS and FUS sub-areas."""
    areas = {"finished_base_area": None, "finished_upper_story_area": None}
    for row in soup.select("table.appraisalAttributes tr"):
        tds = row.find_all("td")
        if len(tds) < 4:
            continue
        description = node_text(tds[0]) or ""
        heated = node_text(tds[2]) or ""
        if not heated.upper().startswith("Y"):
            continue
        if re.match(r"^BAS\s*-\s*BASE", description, re.IGNORECASE):
            areas["finished_base_area"] = parse_int(node_text(tds[3]))
        elif re.match(r"^FUS\s*-\s*FINISHED\s*UPPER\s*STORY", description, re.IGNORECASE):
            areas["finished_upper_story_area"] = parse_int(node_text(tds[3]))
    return areas


def extract_year_built(soup):
    for row in soup.select("table.appraisalAttributes tr"):
        tds = row.find_all("td")
        if len(tds) >= 4 and re.search(r"Year Built", node_text(tds[0]) or "", re.IGNORECASE):
            match = re.search(r"\d{4}", node_text(tds[2]) or "")
            if match:
                return int(match.group(0))
    return None


def extract_roof_permit_date(soup):
    for row in soup.select("#PermitDetails table.detailsTable tr"):
        tds = row.find_all("td")
        if len(tds) < 3:
            continue
        if re.search(r"\broof\b", node_text(tds[1]) or "", re.IGNORECASE):
            date_text = node_text(tds[2]) or ""
            iso = parse_date_to_iso(date_text)
            if iso:
                return iso
            year = re.search(r"\d{4}", date_text)
            if year:
                return f"{year.group(0)}-01-01"
    return None


def extract_structure(soup):
    roof_date = extract_roof_permit_date(soup)
    if roof_date is None:
        year_built = extract_year_built(soup)
        roof_date = f"{year_built}-01-01" if year_built else None
    return new_structure(
        architectural_style_type=detect_style(soup),
        attachment_type=detect_attachment(soup),
        roof_date=roof_date,
        structural_damage_indicators="None Observed",
        **extract_areas(soup),
    )


def main(work_dir):
    soup = load_html(work_dir)
    folio = extract_folio_id(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    return write_owners_file(work_dir, config.STRUCTURE_DATA_FILE, folio, extract_structure(soup))
