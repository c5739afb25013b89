"""Prepare a submit/ directory: rename parcel folders to their property CIDs,
stamp seed provenance into every entity file and add the County data group."""
import json
import logging
import os
import shutil

import pandas as pd

from . import config
from .relationships import build_relationship_files, write_county_data_group
from .utils import read_json, write_json

logger = logging.getLogger(__name__)


def load_folder_mapping(upload_results_csv):
    """Map original parcel folder names to propertyCid from upload-results.csv"""
    folder_mapping = {}
    if not upload_results_csv or not os.path.exists(upload_results_csv):
        logger.warning("⚠️ upload-results.csv not found, using original folder names")
        return folder_mapping

    df = pd.read_csv(upload_results_csv)
    logger.info(f"📊 Found {len(df)} entries in upload-results.csv")

    for _, row in df.iterrows():
        path_parts = str(row["filePath"]).split("/")
        if "output" not in path_parts:
            continue
        output_index = path_parts.index("output")
        if output_index + 1 < len(path_parts):
            old_folder_name = path_parts[output_index + 1]
            if old_folder_name not in folder_mapping:
                folder_mapping[old_folder_name] = row["propertyCid"]
                logger.info(f"   📋 Mapping: {old_folder_name} -> {row['propertyCid']}")

    logger.info(f"✅ Created mapping for {len(folder_mapping)} unique folders")
    return folder_mapping


def _cell(row, column):
    value = row.get(column)
    if value is None or pd.isna(value):
        return None
    return value


def load_seed_data(seed_csv):
    """Map parcel_id to the seed's source_http_request and request identifier"""
    seed_data = {}
    if not seed_csv or not os.path.exists(seed_csv):
        logger.warning("⚠️ seed.csv not found, skipping JSON updates")
        return seed_data

    seed_df = pd.read_csv(seed_csv, dtype=str)
    logger.info(f"📊 Found {len(seed_df)} entries in seed.csv")

    for _, row in seed_df.iterrows():
        parcel_id = str(row["parcel_id"])
        multi_value = _cell(row, "multiValueQueryString")
        identifier = _cell(row, "source_identifier") or parcel_id
        seed_data[parcel_id] = {
            "source_http_request": {
                "method": _cell(row, "method") or "GET",
                "url": _cell(row, "url"),
                "multiValueQueryString": json.loads(multi_value) if multi_value else None,
            },
            "request_identifier": str(identifier),
        }

    logger.info(f"✅ Created seed mapping for {len(seed_data)} parcel IDs")
    return seed_data


def stamp_seed_data(folder, seed_entry):
    """Overwrite provenance on every non-relationship JSON in folder; returns the count."""
    updated_files_count = 0
    for file_name in sorted(os.listdir(folder)):
        if not file_name.endswith(".json") or "relation" in file_name.lower():
            continue
        json_file_path = os.path.join(folder, file_name)
        try:
            json_data = read_json(json_file_path)
        except json.JSONDecodeError as e:
            logger.error(f"   ❌ Error parsing JSON file {json_file_path}: {e}")
            continue
        if not isinstance(json_data, dict) or "label" in json_data:
            continue
        json_data["source_http_request"] = seed_entry["source_http_request"]
        json_data["request_identifier"] = seed_entry["request_identifier"]
        write_json(json_file_path, json_data)
        updated_files_count += 1
    return updated_files_count


def prepare_submission(data_root, submit_dir, upload_results_csv=None, seed_csv=None, county_cid=None):
    """Copy every parcel folder of data_root into submit_dir, ready for upload."""
    county_cid = county_cid or config.DEFAULT_COUNTY_DATA_GROUP_CID
    if not os.path.isdir(data_root):
        raise FileNotFoundError(f"Data directory not found: {data_root}")

    logger.info("📁 Creating submit directory and copying data with proper naming...")
    if os.path.exists(submit_dir):
        shutil.rmtree(submit_dir)
        logger.info("🗑️ Cleaned existing submit directory")
    os.makedirs(submit_dir, exist_ok=True)

    folder_mapping = load_folder_mapping(upload_results_csv)
    seed_data = load_seed_data(seed_csv)

    summary = {"copied": [], "updated_files": 0, "errors": []}

    for folder_name in sorted(os.listdir(data_root)):
        src_folder_path = os.path.join(data_root, folder_name)
        if not os.path.isdir(src_folder_path):
            continue

        target_folder_name = str(folder_mapping.get(folder_name, folder_name))
        dst_folder_path = os.path.join(submit_dir, target_folder_name)
        shutil.copytree(src_folder_path, dst_folder_path)
        logger.info(f"   📂 Copied folder: {folder_name} -> {target_folder_name}")
        summary["copied"].append(target_folder_name)

        if folder_name in seed_data:
            count = stamp_seed_data(dst_folder_path, seed_data[folder_name])
            summary["updated_files"] += count
            logger.info(f"   🌱 Updated {count} JSON files with seed data for parcel {folder_name}")
        else:
            logger.warning(f"   ⚠️ No seed data found for parcel {folder_name}")

        logger.info(f"   🔗 Building relationship files for {target_folder_name}")
        relationship_files, relationship_errors = build_relationship_files(dst_folder_path)
        if relationship_errors:
            summary["errors"].extend(f"Property {folder_name}: {error}" for error in relationship_errors)
            continue

        write_county_data_group(dst_folder_path, relationship_files, county_cid)

    if summary["errors"]:
        logger.error("❌ Relationship building errors found")
    else:
        logger.info(f"✅ Copied {len(summary['copied'])} folders and built relationship files")
    return summary
