"""CLI entry point for property-mapper"""

import argparse
import logging
import os
import sys

from . import config
from .counties import AVAILABLE_COUNTIES
from .schemas import fetch_schemas, load_schemas, validate_data_dir
from .seeds import create_seed_output_zip, process_csv_to_seed_folders
from .submit import prepare_submission
from .utils import create_zip, print_status, setup_logging
from .workflow import run_county_pipeline, summarize

logger = logging.getLogger(__name__)


def cmd_run(args):
    result = run_county_pipeline(args.work_dir, county=args.county, validate=args.validate,
                                 schemas_dir=args.schemas_dir)
    for line in summarize(result):
        print(line)
    if args.output_zip:
        file_count = create_zip(os.path.join(result["work_dir"], config.DATA_DIRNAME), args.output_zip)
        print_status(f"Created output ZIP: {args.output_zip} with {file_count} files")
    return 0 if result["success"] else 1


def cmd_seed(args):
    folder = process_csv_to_seed_folders(args.csv, args.output_dir)
    print_status(f"Seed folder created: {folder}")
    if args.zip:
        create_seed_output_zip(folder, args.zip)
    return 0


def cmd_validate(args):
    if not os.path.isdir(args.data_dir):
        raise FileNotFoundError(f"Data directory not found: {args.data_dir}")
    results = validate_data_dir(args.data_dir, load_schemas(args.schemas_dir))
    invalid = {filename: errors for filename, errors in results.items() if errors}
    for filename, errors in invalid.items():
        for error in errors:
            print(f"INVALID {filename}: {error}")
    print_status(f"Validated {len(results)} files, {len(invalid)} invalid")
    return 0 if not invalid else 1


def cmd_fetch_schemas(args):
    failed = fetch_schemas(args.schemas_dir)
    if failed:
        print(f"ERROR: failed to fetch {', '.join(failed)}")
        return 1
    print_status(f"Schemas cached in {args.schemas_dir or config.SCHEMAS_DIR}")
    return 0


def cmd_prepare_submit(args):
    summary = prepare_submission(
        args.data_root,
        args.submit_dir,
        upload_results_csv=args.upload_results,
        seed_csv=args.seed_csv,
        county_cid=args.county_cid,
    )
    for error in summary["errors"]:
        print(f"ERROR: {error}")
    print_status(f"Prepared {len(summary['copied'])} folders in {args.submit_dir}")
    return 0 if not summary["errors"] else 1


def cmd_list_counties(args):
    for county in AVAILABLE_COUNTIES:
        print(county)
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog="property-mapper",
        description="Map county property appraiser pages onto County data group records",
    )
    parser.add_argument("--logs-dir", type=str, help="Directory for workflow log files")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run the county scripts over a work directory")
    run.add_argument("--work-dir", type=str, default=config.BASE_DIR,
                     help="Directory holding input.html or input.json plus the seed files")
    run.add_argument("--county", type=str, help="County package; read from unnormalized_address.json if omitted")
    run.add_argument("--validate", action="store_true", help="Validate data/ against the schemas")
    run.add_argument("--schemas-dir", type=str, help="Schema cache directory")
    run.add_argument("--output-zip", type=str, help="Zip the data/ directory to this path")
    run.set_defaults(func=cmd_run)

    seed = subparsers.add_parser("seed", help="Build a seed folder from a one-row seed CSV")
    seed.add_argument("csv", type=str, help="Seed CSV path")
    seed.add_argument("--output-dir", type=str, default="seed_output", help="Seed output directory")
    seed.add_argument("--zip", type=str, help="Zip the seed folder to this path")
    seed.set_defaults(func=cmd_seed)

    validate = subparsers.add_parser("validate", help="Validate a data directory")
    validate.add_argument("--data-dir", type=str, default=config.DATA_DIRNAME, help="Directory of entity files")
    validate.add_argument("--schemas-dir", type=str, help="Schema cache directory")
    validate.set_defaults(func=cmd_validate)

    fetch = subparsers.add_parser("fetch-schemas", help="Download and cache the County schemas")
    fetch.add_argument("--schemas-dir", type=str, help="Schema cache directory")
    fetch.set_defaults(func=cmd_fetch_schemas)

    submit = subparsers.add_parser("prepare-submit", help="Copy parcel folders into a submit directory")
    submit.add_argument("--data-root", type=str, default="output", help="Directory of parcel folders")
    submit.add_argument("--submit-dir", type=str, default="submit", help="Submit directory to (re)create")
    submit.add_argument("--upload-results", type=str, help="upload-results.csv mapping folders to CIDs")
    submit.add_argument("--seed-csv", type=str, help="Seed CSV with source requests")
    submit.add_argument("--county-cid", type=str, help="County data group CID")
    submit.set_defaults(func=cmd_prepare_submit)

    counties = subparsers.add_parser("list-counties", help="List the available county packages")
    counties.set_defaults(func=cmd_list_counties)
    return parser


def main(argv=None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)
    log_file = setup_logging(args.logs_dir)
    logger.info(f"Logging to {log_file}")

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except Exception as e:
        logger.error(f"❌ {args.command} failed: {e}")
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
