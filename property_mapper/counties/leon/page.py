"""Readers for the summary card, building tables and value cards of a Leon parcel page."""
import re

from bs4 import BeautifulSoup

from ...utils import clean_text, node_text, parse_int


def normalize_label(text):
    return re.sub(r"[:\s]+", " ", text or "").strip().lower()


def summary_root(soup):
    return soup.find(id="summaryCard") or soup


def label_container(root, target):
    """The ``.mb-1`` block around the first label starting with `target`."""
    wanted = normalize_label(target)
    for label in root.find_all("label"):
        if normalize_label(label.get_text()).startswith(wanted):
            return label.find_parent(class_="mb-1") or label.parent
    return None


def _value_text(node):
    node = BeautifulSoup(str(node), "html.parser")
    for noise in node.find_all(["label", "a", "button", "script", "style"]):
        noise.decompose()
    for modal in node.find_all(class_="modal"):
        modal.decompose()
    return clean_text(node.get_text(" "))


def field_lines(soup, target):
    """Value lines under a summary label; each child div is one line."""
    container = label_container(summary_root(soup), target)
    if container is None:
        return []
    lines = []
    for div in container.find_all("div", recursive=False):
        if "modal" in (div.get("class") or []):
            break
        text = _value_text(div)
        if text:
            lines.append(text)
    if not lines:
        text = _value_text(container)
        if text:
            lines.append(text)
    return lines


def field_value(soup, target):
    lines = field_lines(soup, target)
    return lines[0] if lines else None


def modal_list(soup, modal_id):
    modal = soup.find(id=modal_id)
    if modal is None:
        return []
    cells = [node_text(cell) for cell in modal.select(".modal-body .col-md-3")]
    return [c for c in cells if c]


def owner_lines(soup):
    """Owner names from the owners modal, else the Owner(s) value split on <br>."""
    names = modal_list(soup, "ownersModal")
    if names:
        return names
    container = label_container(summary_root(soup), "Owner")
    value = container.find("div", recursive=False) if container else None
    if value is None:
        return []
    chunks = re.split(r"<br\s*/?>", value.decode_contents(), flags=re.IGNORECASE)
    return [line for line in (_value_text(chunk) for chunk in chunks) if line]


def parcel_id(soup, fallback=None):
    node = soup.find("input", id="ParcelId")
    value = clean_text(node.get("value")) if node else None
    return value or field_value(soup, "Parcel ID") or fallback or "unknown_id"


def card_for(soup, title):
    """The .card whose h5 heading contains `title`."""
    for heading in soup.find_all("h5"):
        if title.lower() in (node_text(heading) or "").lower():
            return heading.find_parent(class_="card")
    return None


def card_rows(card, min_cells=1):
    if card is None:
        return []
    rows = []
    for row in card.select("tbody tr"):
        cells = row.find_all("td")
        if len(cells) >= min_cells:
            rows.append(cells)
    return rows


def parse_buildings(soup):
    """One dict per row of the building summary table."""
    buildings = []
    for row in soup.select("tbody.building-table tr"):
        cells = row.find_all(["th", "td"], recursive=False)
        if len(cells) < 6:
            continue
        buildings.append({
            "number": parse_int(row.get("data-number") or node_text(cells[0])),
            "use": node_text(cells[1]),
            "type": node_text(cells[2]),
            "year_built": parse_int(node_text(cells[3])) or None,
            "heated_sq_ft": parse_int(node_text(cells[4])) or None,
            "auxiliary_sq_ft": parse_int(node_text(cells[5])) or None,
        })
    return buildings


def characteristics(soup):
    """Rows of the selected building's details table keyed "roof cover deck" style."""
    details = soup.find(id="building-details")
    data = {}
    if details is None:
        return data
    for row in details.select("table tbody tr"):
        label = re.sub(r"[^a-z0-9]+", " ", (node_text(row.find("th")) or "").lower()).strip()
        if label:
            data[label] = node_text(row.find("td"))
    return data


def area_rows(soup):
    """(description, square feet) for each sub-area of the selected building."""
    cards = soup.find(id="building-cards")
    if cards is None:
        return []
    rows = []
    for row in cards.select("table tbody tr"):
        cells = row.find_all("td")
        if len(cells) >= 3:
            rows.append((node_text(cells[1]), parse_int(node_text(cells[2]))))
    return rows
