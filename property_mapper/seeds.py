import csv
import json
import logging
import os
import re
import shutil

from . import config
from .relationships import ipld_link
from .utils import (
    create_zip,
    ensure_directory,
    extract_query_params_and_base_url,
    is_empty_value,
    print_status,
    write_json,
)

logger = logging.getLogger(__name__)


def _or_none(value):
    return None if is_empty_value(value) else value


def _parse_json_cell(row, column, row_num):
    raw = (row.get(column) or "").strip()
    if is_empty_value(raw):
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Row {row_num}: Invalid {column} JSON format, ignoring {column}: {e}")
        return None


def parse_seed_row(row, row_num=1):
    """Normalize one seed.csv row; JSON columns are decoded."""
    return {
        "parcel_id": (row.get("parcel_id") or "").strip(),
        "address": (row.get("address") or "").strip(),
        "method": (row.get("method") or "GET").strip() or "GET",
        "url": (row.get("url") or "").strip(),
        "county": (row.get("county") or "").strip(),
        "headers": _parse_json_cell(row, "headers", row_num),
        "multiValueQueryString": _parse_json_cell(row, "multiValueQueryString", row_num),
        "json": _parse_json_cell(row, "json", row_num),
    }


def create_parcel_folder(row, output_dir):
    """Write the four seed files for one parsed row into <output_dir>/<clean parcel id>/."""
    parcel_id = row.get("parcel_id")
    clean_parcel_id = re.sub(r"[^\w\-_]", "_", str(parcel_id))
    folder = os.path.join(output_dir, clean_parcel_id)
    ensure_directory(folder)

    # Query parameters always come from the CSV column, never from the URL
    base_url, _ = extract_query_params_and_base_url(row.get("url"))

    source_http_request = {
        "method": _or_none(row.get("method")),
        "url": _or_none(base_url),
        "multiValueQueryString": row.get("multiValueQueryString") or {},
    }
    if row.get("headers"):
        source_http_request["headers"] = row["headers"]
    if row.get("json"):
        source_http_request["json"] = row["json"]

    unnormalized_address = {
        "full_address": _or_none(row.get("address")),
        "source_http_request": source_http_request,
        "county_jurisdiction": _or_none(row.get("county")),
        "request_identifier": _or_none(parcel_id),
    }
    property_seed = {
        "parcel_id": _or_none(parcel_id),
        "source_http_request": dict(source_http_request),
        "request_identifier": unnormalized_address["request_identifier"],
    }
    relationship = {
        "from": ipld_link(config.PROPERTY_SEED_FILE),
        "to": ipld_link(config.UNNORMALIZED_ADDRESS_FILE),
    }
    seed_data_group = {
        "label": "Seed",
        "relationships": {
            "property_seed": ipld_link("relationship_property_to_address.json"),
        },
    }

    write_json(os.path.join(folder, config.UNNORMALIZED_ADDRESS_FILE), unnormalized_address)
    write_json(os.path.join(folder, config.PROPERTY_SEED_FILE), property_seed)
    write_json(os.path.join(folder, "relationship_property_to_address.json"), relationship)
    write_json(os.path.join(folder, "seed_data_group.json"), seed_data_group)

    return folder, unnormalized_address, property_seed


def process_csv_to_seed_folders(csv_path, output_dir):
    """Process a one-row seed CSV into a seed folder; returns the folder path."""
    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    with open(csv_path, "r", encoding="utf-8") as csvfile:
        rows = list(csv.DictReader(csvfile))

    if len(rows) == 0:
        logger.error("❌ CSV file is empty - no data rows found")
        raise ValueError("CSV file is empty")
    if len(rows) > 1:
        logger.error(
            f"❌ CSV file contains {len(rows)} rows - only 1 row (1 property) is allowed for seed processing"
        )
        raise ValueError(f"CSV contains {len(rows)} rows, only 1 property allowed")

    logger.info("✅ CSV validation passed - found exactly 1 row")
    print_status("CSV validation passed - processing 1 property")

    row = parse_seed_row(rows[0])
    if is_empty_value(row["parcel_id"]):
        raise ValueError("Row 1: parcel_id is required but not provided")

    if os.path.exists(output_dir):
        shutil.rmtree(output_dir)
    ensure_directory(output_dir)

    folder, _, _ = create_parcel_folder(row, output_dir)
    logger.info(f"✅ Created seed files for parcel ID {row['parcel_id']}")
    return folder


def create_seed_output_zip(folder, zip_path):
    """Create output ZIP file from seed folders"""
    file_count = create_zip(folder, zip_path)
    print_status(f"Created seed output ZIP: {os.path.basename(zip_path)} with {file_count} files")
    return file_count
