import copy
import json
import os

import pytest

from property_mapper import cli
from property_mapper.counties import AVAILABLE_COUNTIES, county_variations, resolve_county
from property_mapper.workflow import WorkflowResult, run_county_pipeline, summarize
from property_mapper.utils import write_json

from conftest import MIAMI_DADE_DATA


def test_resolve_county_variations():
    assert resolve_county("Collier") == "collier"
    assert resolve_county("Collier County") == "collier"
    assert resolve_county("Miami Dade") == "miami_dade"
    assert resolve_county("MIAMI-DADE") == "miami_dade"
    assert resolve_county("hillsborough") == "hillsborough"
    assert resolve_county("Palm Beach") == "palm_beach"
    assert resolve_county("Leon County") == "leon"
    assert "leon" in county_variations("Leon County")


def test_resolve_county_unsupported():
    with pytest.raises(LookupError, match="Unsupported county"):
        resolve_county("Orange")
    with pytest.raises(LookupError):
        resolve_county("  ")


def test_summarize_lists_errors_and_invalid_files():
    result = WorkflowResult(
        county="lee",
        work_dir="/tmp/work",
        written_files=["a.json", "b.json"],
        relationship_files=["relationship_property_address.json"],
        errors=["data_extractor: boom"],
        validation_errors={"person_1.json": ["first_name: bad"]},
        success=False,
    )
    assert summarize(result) == [
        "County: lee",
        "Files written: 2",
        "Relationship files: 1",
        "ERROR: data_extractor: boom",
        "INVALID person_1.json: first_name: bad",
    ]
    assert summarize(result, limit=0)[3:] == []


def test_pipeline_records_unknown_enum_and_continues(make_work_dir, tmp_path):
    data = copy.deepcopy(MIAMI_DADE_DATA)
    data["PropertyInfo"]["DORCode"] = "7700"
    work_dir = make_work_dir("input.json", data, "Miami Dade", "1234 SW 14TH TER, MIAMI, FL 33145", "01-3126")

    result = run_county_pipeline(work_dir)

    assert not result["success"]
    assert result["errors"][0].startswith("data_extractor:")
    payload = json.loads(result["errors"][0].split(": ", 1)[1])
    assert payload == {"type": "error", "message": "Unknown enum value 7700.", "path": "property.property_type"}
    # the owner and layout scripts ran before the failure
    assert os.path.exists(os.path.join(work_dir, "owners", "owner_data.json"))


def test_pipeline_reruns_from_clean_directories(miami_dade_work_dir):
    first = run_county_pipeline(miami_dade_work_dir)
    stale = os.path.join(miami_dade_work_dir, "data", "stale.json")
    write_json(stale, {})

    second = run_county_pipeline(miami_dade_work_dir)

    assert first["success"] and second["success"]
    assert not os.path.exists(stale)
    assert sorted(first["relationship_files"]) == sorted(second["relationship_files"])


def test_cli_list_counties(tmp_path, capsys):
    assert cli.main(["--logs-dir", str(tmp_path / "logs"), "list-counties"]) == 0
    printed = capsys.readouterr().out.split()
    for county in AVAILABLE_COUNTIES:
        assert county in printed
    assert os.listdir(tmp_path / "logs")


def test_cli_run(miami_dade_work_dir, tmp_path, capsys):
    output_zip = str(tmp_path / "out.zip")
    code = cli.main([
        "--logs-dir", str(tmp_path / "logs"),
        "run",
        "--work-dir", miami_dade_work_dir,
        "--validate",
        "--schemas-dir", str(tmp_path / "schemas"),
        "--output-zip", output_zip,
    ])
    out = capsys.readouterr().out
    assert code == 0
    assert "County: miami_dade" in out
    assert "ERROR" not in out
    assert os.path.exists(output_zip)


def test_cli_validate(tmp_path, capsys):
    data_dir = tmp_path / "data"
    write_json(str(data_dir / "property.json"), {"parcel_identifier": "1"})
    logs = str(tmp_path / "logs")

    assert cli.main(["--logs-dir", logs, "validate", "--data-dir", str(data_dir),
                     "--schemas-dir", str(tmp_path / "schemas")]) == 1
    assert "INVALID property.json" in capsys.readouterr().out

    assert cli.main(["--logs-dir", logs, "validate", "--data-dir", str(tmp_path / "missing")]) == 1
    assert "ERROR: Data directory not found" in capsys.readouterr().out
