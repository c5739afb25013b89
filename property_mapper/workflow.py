import logging
import os
from typing import Dict, List, Optional, TypedDict

from . import config
from .counties import REQUIRED_SCRIPTS, county_from_work_dir, import_county_scripts, resolve_county
from .errors import UnknownEnumValueError
from .relationships import build_relationship_files, write_county_data_group
from .schemas import load_schemas, validate_data_dir
from .utils import cleanup_work_directories, print_completed, print_running, print_status

logger = logging.getLogger(__name__)


class WorkflowResult(TypedDict):
    """Outcome of one county pipeline run"""
    county: str
    work_dir: str
    written_files: List[str]
    relationship_files: List[str]
    errors: List[str]
    validation_errors: Dict[str, List[str]]
    success: bool


def _step_name(script_name):
    return script_name.replace("_", " ").title()


def run_county_pipeline(work_dir, county=None, validate=False, schemas_dir=None,
                        county_data_group_cid=None) -> WorkflowResult:
    """Run the five county scripts over work_dir, then link and optionally validate data/."""
    work_dir = os.path.abspath(work_dir)
    county_data_group_cid = county_data_group_cid or config.DEFAULT_COUNTY_DATA_GROUP_CID
    package = resolve_county(county or county_from_work_dir(work_dir))
    print_status(f"Processing {work_dir} with the {package} scripts")

    result = WorkflowResult(
        county=package,
        work_dir=work_dir,
        written_files=[],
        relationship_files=[],
        errors=[],
        validation_errors={},
        success=False,
    )

    cleanup_work_directories(work_dir)
    scripts = import_county_scripts(package)

    for script_name in REQUIRED_SCRIPTS:
        step = _step_name(script_name)
        print_running(step)
        try:
            output = scripts[script_name].main(work_dir)
        except UnknownEnumValueError as e:
            logger.error(f"❌ {script_name} failed: {e.to_json()}")
            result["errors"].append(f"{script_name}: {e.to_json()}")
            print_completed(step, success=False)
            continue
        except Exception as e:
            logger.error(f"❌ {script_name} failed: {e}")
            result["errors"].append(f"{script_name}: {e}")
            print_completed(step, success=False)
            continue

        if isinstance(output, list):
            result["written_files"].extend(output)
        print_completed(step)

    data_dir = os.path.join(work_dir, config.DATA_DIRNAME)
    print_running("Relationship Files")
    relationship_files, relationship_errors = build_relationship_files(data_dir)
    result["relationship_files"] = relationship_files
    if relationship_errors:
        result["errors"].extend(relationship_errors)
        print_completed("Relationship Files", success=False)
    else:
        write_county_data_group(data_dir, relationship_files, county_data_group_cid)
        print_completed("Relationship Files")

    if validate:
        print_running("Schema Validation")
        schemas = load_schemas(schemas_dir)
        result["validation_errors"] = {
            filename: errors
            for filename, errors in validate_data_dir(data_dir, schemas).items()
            if errors
        }
        print_completed("Schema Validation", success=not result["validation_errors"])

    result["success"] = not result["errors"] and not result["validation_errors"]
    if result["success"]:
        logger.info(f"✅ Pipeline finished for {work_dir}")
    else:
        logger.warning(
            f"⚠️ Pipeline finished with {len(result['errors'])} error(s) and "
            f"{len(result['validation_errors'])} invalid file(s)"
        )
    return result


def summarize(result: WorkflowResult, limit: Optional[int] = 20) -> List[str]:
    """Human-readable lines for a WorkflowResult."""
    lines = [
        f"County: {result['county']}",
        f"Files written: {len(result['written_files'])}",
        f"Relationship files: {len(result['relationship_files'])}",
    ]
    for error in result["errors"][:limit]:
        lines.append(f"ERROR: {error}")
    for filename, errors in list(result["validation_errors"].items())[:limit]:
        for error in errors:
            lines.append(f"INVALID {filename}: {error}")
    return lines
