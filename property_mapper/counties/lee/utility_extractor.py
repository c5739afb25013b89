from ... import config
from ...records import new_utility
from ...utils import clean_text, node_text
from ..common import load_html, load_seed, write_owners_file
from .owner_processor import extract_folio_id

POOL_EQUIPMENT_KEYWORDS = {
    "A/C-POOL HEATERS": "PoolHeater",
    "OUTDOOR KITCHEN": "OutdoorKitchen",
    "OUTDOOR SHOWER": "OutdoorShower",
    "XTRA/ADDITIONAL A/C UNITS": "ExtraACUnits",
}


def extract_pool_equipment(soup):
    """Building feature keywords, in first-seen order."""
    found = []
    rows = soup.select(
        "#PropertyDetailsCurrent table.appraisalAttributes tr, #PropertyDetails table.appraisalAttributes tr"
    )
    for row in rows:
        tds = row.find_all("td")
        if len(tds) < 3:
            continue
        description = (node_text(tds[0]) or "").upper()
        for keyword, item in POOL_EQUIPMENT_KEYWORDS.items():
            if keyword in description and item not in found:
                found.append(item)
    return found


def extract_utility(soup):
    has_garbage = soup.find(id="GarbageDetails") is not None
    equipment = extract_pool_equipment(soup)
    return new_utility(
        public_utility_type="ElectricityAvailable" if has_garbage else None,
        hvac_condensing_unit_present=True if "ExtraACUnits" in equipment else None,
    )


def main(work_dir):
    soup = load_html(work_dir)
    folio = extract_folio_id(soup, clean_text(load_seed(work_dir).get("parcel_id")))
    return write_owners_file(work_dir, config.UTILITIES_DATA_FILE, folio, extract_utility(soup))
