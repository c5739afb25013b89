from ... import config
from ...records import new_structure
from ...utils import clean_text, diff_years_from, node_text, parse_date_to_iso, parse_int
from ..common import load_html, load_seed, write_owners_file
from .owner_processor import extract_property_id


def _cells(row):
    return [node_text(td) or "" for td in row.find_all("td")]


def extract_finished_base_area(soup):
    area = None
    for row in soup.select("#BuildingAdditional tr"):
        cells = _cells(row)
        if len(cells) > 3 and "SINGLE FAMILY RESIDENCE" in cells[2].upper():
            area = parse_int(cells[3])
    return area


def extract_roof_date(soup):
    """CO date of the last ROOF permit row."""
    roof_date = None
    for row in soup.select("#PermitAdditional tr"):
        cells = _cells(row)
        if len(cells) > 7 and "ROOF" in cells[7].upper():
            iso = parse_date_to_iso(cells[4])
            if iso:
                roof_date = iso
    return roof_date


def extract_structure(soup, today=None):
    roof_date = extract_roof_date(soup)
    return new_structure(
        attachment_type="Detached",
        finished_base_area=extract_finished_base_area(soup),
        roof_date=roof_date,
        roof_age_years=diff_years_from(roof_date, today),
    )


def main(work_dir):
    soup = load_html(work_dir)
    property_id = extract_property_id(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    return write_owners_file(work_dir, config.STRUCTURE_DATA_FILE, property_id, extract_structure(soup))
