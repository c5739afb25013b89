import logging
import os

from .utils import write_json

logger = logging.getLogger(__name__)

PROPERTY_FILE = "property.json"

# entity file prefix -> relationship name segment
PROPERTY_ENTITY_PREFIXES = [
    "address",
    "lot",
    "tax",
    "sales",
    "layout",
    "flood_storm_information",
    "structure",
    "utility",
]


def ipld_link(filename):
    return {"/": f"./{filename}"}


def write_relationship(data_dir, filename, from_file, to_file):
    """Write one `{"from": ..., "to": ...}` link file and return its name."""
    write_json(os.path.join(data_dir, filename), {
        "from": ipld_link(from_file),
        "to": ipld_link(to_file),
    })
    logger.info(f"     📝 Created {filename}")
    return filename


def _entity_files(json_files, prefix):
    return sorted(
        f for f in json_files
        if f == f"{prefix}.json" or f.startswith(f"{prefix}_")
    )


def build_relationship_files(data_dir):
    """
    Build relationship files based on discovered files in the folder
    Returns: (relationship_files, errors)
    """
    relationship_files = []
    errors = []

    json_files = sorted(f for f in os.listdir(data_dir) if f.endswith(".json"))
    entity_files = [f for f in json_files if not f.startswith("relationship_")]

    # sale -> person/company links are produced by the county data extractors
    relationship_files.extend(
        f for f in json_files
        if f.startswith("relationship_sales") and "person" in f
    )
    relationship_files.extend(
        f for f in json_files
        if f.startswith("relationship_sales") and "company" in f
    )

    if PROPERTY_FILE not in entity_files:
        error_msg = "❌ No property.json file found - you must create one"
        logger.error(error_msg)
        errors.append(error_msg)
        return relationship_files, errors

    for owner_prefix in ("person", "company"):
        for owner_file in _entity_files(entity_files, owner_prefix):
            rel_filename = f"relationship_{owner_file[:-len('.json')]}_property.json"
            relationship_files.append(
                write_relationship(data_dir, rel_filename, owner_file, PROPERTY_FILE)
            )

    for entity_type in PROPERTY_ENTITY_PREFIXES:
        for entity_file in _entity_files(entity_files, entity_type):
            # tax_1.json -> _1, sales_history_2.json -> _history_2
            suffix = entity_file[len(entity_type):-len(".json")]
            rel_filename = f"relationship_property_{entity_type}{suffix}.json"
            relationship_files.append(
                write_relationship(data_dir, rel_filename, PROPERTY_FILE, entity_file)
            )

    return relationship_files, errors


def create_county_data_group(relationship_files):
    """
    Create the county data group structure based on relationship files
    """
    all_relationships = {
        "person_has_property": None,
        "company_has_property": None,
        "property_has_address": None,
        "property_has_lot": None,
        "property_has_tax": None,
        "property_has_sales_history": None,
        "property_has_layout": None,
        "property_has_flood_storm_information": None,
        "property_has_file": None,
        "property_has_structure": None,
        "property_has_utility": None,
        "sales_history_has_person": None,
        "sales_history_has_company": None,
    }

    array_keys = {
        "relationship_person_": "person_has_property",
        "relationship_company_": "company_has_property",
        "relationship_property_tax": "property_has_tax",
        "relationship_property_sales": "property_has_sales_history",
        "relationship_property_layout": "property_has_layout",
    }
    single_keys = {
        "relationship_property_address": "property_has_address",
        "relationship_property_lot": "property_has_lot",
        "relationship_property_flood_storm_information": "property_has_flood_storm_information",
        "relationship_property_structure": "property_has_structure",
        "relationship_property_utility": "property_has_utility",
    }
    grouped = {}
    singles = {}

    for rel_file in relationship_files:
        ipld_ref = ipld_link(rel_file)

        if rel_file.startswith("relationship_sales"):
            if "person" in rel_file:
                grouped.setdefault("sales_history_has_person", []).append(ipld_ref)
            elif "company" in rel_file:
                grouped.setdefault("sales_history_has_company", []).append(ipld_ref)
            continue

        for prefix, key in single_keys.items():
            if rel_file.startswith(prefix):
                singles.setdefault(key, []).append(ipld_ref)
                break
        else:
            for prefix, key in array_keys.items():
                if rel_file.startswith(prefix):
                    grouped.setdefault(key, []).append(ipld_ref)
                    break

    # several per-building files become a list
    for key, refs in singles.items():
        all_relationships[key] = refs[0] if len(refs) == 1 else refs
    all_relationships.update(grouped)
    return {"label": "County", "relationships": all_relationships}


def write_county_data_group(data_dir, relationship_files, county_data_group_cid):
    path = os.path.join(data_dir, f"{county_data_group_cid}.json")
    write_json(path, create_county_data_group(relationship_files))
    logger.info(
        f"   ✅ Created {county_data_group_cid}.json with {len(relationship_files)} relationship files")
    return path
