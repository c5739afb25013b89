import json
import logging
import os

import backoff
import requests
from jsonschema import Draft7Validator

from . import config
from .utils import read_json, write_json, ensure_directory

logger = logging.getLogger(__name__)

# IPFS CIDs for the County data group entity schemas
SCHEMA_CIDS = {
    "person.json": "bafkreiajbdqn32mgb3s52xkrvzzwer7oit3gma6bpetzfcmkldxgy5di7m",
    "company.json": "bafkreibnw5zonrappj3prexq7p376njvvawqqzfde222qytsl2jsbst3da",
    "property.json": "bafkreih6x76aedhs7lqjk5uq4zskmfs33agku62b4flpq5s5pa6aek2gga",
    "address.json": "bafkreid5icxhvf6qmmwzok6pnxlgxmqahddbngykwtdaqbcqznjfqh2tve",
    "tax.json": "bafkreibnk4xl6jwgxfeumim6cqpi66ngabzxlxljyhwhuziksbz7buau54",
    "lot.json": "bafkreichj2jpejog35oqwxlbxv2i7mi4vfec5njoreppya3grnukf7rdy4",
    "sales.json": "bafkreicdvzuuymrsyn6wpbo5ossj3q3xcdwiyiniwg7bkmpvbfxtikjv5a",
    "layout.json": "bafkreiegxxnvwnhmrrighkvqikulfi54a7jv7gndnar6zju722wfxzk6xm",
    "flood_storm_information.json": "bafkreidh7s2pk26qtob2iiznkvdb6hqr75weybo5p67erq23e53rsfbnuy",
    "structure.json": "bafkreictnk74jkby6q64d3vm6h57s6vr5x65p2wzubpwvwsjil2254okhi",
    "utility.json": "bafkreib3wrmiwqyi34xdengoyud4aplz5rbsjs6vag4eic4n7ohturx6xq",
}

# data/ file prefix -> schema file; longest prefixes first
FILE_PREFIX_SCHEMAS = [
    ("property_improvement", None),
    ("mailing_address", None),
    ("flood_storm_information", "flood_storm_information.json"),
    ("sales_history", "sales.json"),
    ("structure", "structure.json"),
    ("property", "property.json"),
    ("utility", "utility.json"),
    ("address", "address.json"),
    ("company", "company.json"),
    ("person", "person.json"),
    ("layout", "layout.json"),
    ("sales", "sales.json"),
    ("tax", "tax.json"),
    ("lot", "lot.json"),
]


def fetch_schema_from_ipfs(cid, gateways=None, timeout=None):
    """Fetch schema from IPFS using the provided CID."""
    gateways = gateways or config.IPFS_GATEWAYS
    timeout = timeout or config.REQUEST_TIMEOUT

    for gateway in gateways:
        try:
            url = f"{gateway}{cid}"
            logger.info(f"Trying to fetch {cid} from {gateway}")
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Error fetching from {gateway}: {e}")
            continue

    logger.error(f"Failed to fetch schema from IPFS CID {cid} from all gateways")
    return None


@backoff.on_exception(
    backoff.expo,
    (requests.exceptions.RequestException, ConnectionError, TimeoutError, json.JSONDecodeError),
    max_tries=3,
    max_time=120,
    on_backoff=lambda details: logger.warning(
        f"🔄 County CID fetch failed, retrying in {details['wait']:.1f}s (attempt {details['tries']})"),
    on_giveup=lambda details: logger.error(f"💥 County CID fetch failed after {details['tries']} attempts")
)
def fetch_county_data_group_cid(manifest_url=None):
    """Fetch the county data group CID from the schema manifest API"""
    manifest_url = manifest_url or config.SCHEMA_MANIFEST_URL

    try:
        logger.info(f"🔍 Fetching schema manifest from: {manifest_url}")
        response = requests.get(manifest_url, timeout=config.REQUEST_TIMEOUT)
        response.raise_for_status()
        manifest_data = response.json()
    except requests.exceptions.RequestException as e:
        error_msg = f"❌ Error fetching schema manifest: {e}"
        logger.error(error_msg)
        raise ConnectionError(error_msg)

    logger.info("✅ Successfully fetched schema manifest")

    county_entry = manifest_data.get("County") if isinstance(manifest_data, dict) else None
    if not county_entry or "ipfsCid" not in county_entry:
        error_msg = "❌ County entry not found in schema manifest"
        logger.error(error_msg)
        raise ValueError(error_msg)

    county_cid = county_entry["ipfsCid"]
    logger.info(f"📋 Found County data group CID: {county_cid}")
    return county_cid


def fetch_schemas(schemas_dir=None):
    """Download every schema into schemas_dir; returns the names that failed."""
    schemas_dir = schemas_dir or config.SCHEMAS_DIR
    ensure_directory(schemas_dir)
    failed = []
    for filename, cid in SCHEMA_CIDS.items():
        logger.info(f"Fetching schema for {filename} from IPFS...")
        schema = fetch_schema_from_ipfs(cid)
        if schema is None:
            logger.error(f"Failed to load schema for {filename}")
            failed.append(filename)
            continue
        write_json(os.path.join(schemas_dir, filename), schema)
        logger.info(f"Successfully loaded schema for {filename}")
    return failed


def load_schemas(schemas_dir=None, fetch=False):
    """Load schemas from the cache directory, falling back to the bundled copies."""
    schemas_dir = schemas_dir or config.SCHEMAS_DIR
    if fetch:
        fetch_schemas(schemas_dir)

    schemas = {}
    for filename in SCHEMA_CIDS:
        for directory in (schemas_dir, config.BUNDLED_SCHEMAS_DIR):
            path = os.path.join(directory, filename)
            if os.path.exists(path):
                schemas[filename] = read_json(path)
                break
        else:
            logger.warning(f"⚠️ No schema available for {filename}")
    return schemas


def create_stub_from_schema(schema):
    """Create a stub structure from a JSON schema."""

    def create_stub_recursive(properties):
        stub = {}
        for key, value in properties.items():
            value_type = value.get("type")
            if value_type == "object":
                if "properties" in value:
                    stub[key] = create_stub_recursive(value["properties"])
                else:
                    stub[key] = {}
            elif value_type == "array":
                items = value.get("items") or {}
                if items.get("type") == "object":
                    if "properties" in items:
                        stub[key] = [create_stub_recursive(items["properties"])]
                    else:
                        stub[key] = [{}]
                else:
                    stub[key] = []
            else:
                stub[key] = None
        return stub

    if "properties" in schema:
        return create_stub_recursive(schema["properties"])
    return {}


def validate_record(record, schema):
    """Return `path: message` strings for every schema violation in record."""
    validator = Draft7Validator(schema)
    messages = []
    for error in sorted(validator.iter_errors(record), key=lambda e: [str(p) for p in e.absolute_path]):
        path = ".".join(str(p) for p in error.absolute_path) or "<root>"
        messages.append(f"{path}: {error.message}")
    return messages


def schema_for_file(filename):
    if filename.startswith("relationship_") or not filename.endswith(".json"):
        return None
    stem = filename[:-len(".json")]
    for prefix, schema_name in FILE_PREFIX_SCHEMAS:
        if stem == prefix or stem.startswith(prefix + "_"):
            return schema_name
    return None


def validate_data_dir(data_dir, schemas):
    """Validate every entity file in data_dir; returns {filename: [errors]}."""
    results = {}
    for filename in sorted(os.listdir(data_dir)):
        schema_name = schema_for_file(filename)
        if schema_name is None:
            if not filename.startswith("relationship_"):
                logger.info(f"No schema mapped for {filename}, skipping")
            continue
        schema = schemas.get(schema_name)
        if schema is None:
            logger.info(f"Schema {schema_name} not loaded, skipping {filename}")
            continue
        errors = validate_record(read_json(os.path.join(data_dir, filename)), schema)
        if errors:
            logger.warning(f"❌ {filename}: {len(errors)} validation error(s)")
        results[filename] = errors
    return results
