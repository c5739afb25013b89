import os
import zipfile

import pytest

from property_mapper.seeds import (
    create_parcel_folder,
    create_seed_output_zip,
    parse_seed_row,
    process_csv_to_seed_folders,
)
from property_mapper.utils import read_json

HEADER = "parcel_id,address,method,url,county,multiValueQueryString\n"
ROW = (
    '01-3126-045-0040,"1234 SW 14 TER, MIAMI, FL 33145",GET,'
    'https://apps.example.gov/PApublicServiceProxy/PaServicesProxy.ashx?folio=0131260450040,'
    'Miami Dade,"{""folio"": [""0131260450040""]}"\n'
)


def _write_csv(tmp_path, body):
    path = tmp_path / "seed.csv"
    path.write_text(HEADER + body, encoding="utf-8")
    return str(path)


def test_parse_seed_row_decodes_json_columns():
    row = parse_seed_row({
        "parcel_id": " 123 ",
        "method": "",
        "url": "https://example.com",
        "headers": '{"Accept": "text/html"}',
        "json": "not json",
    })
    assert row["parcel_id"] == "123"
    assert row["method"] == "GET"
    assert row["headers"] == {"Accept": "text/html"}
    assert row["json"] is None
    assert row["multiValueQueryString"] is None


def test_create_parcel_folder_writes_seed_files(tmp_path):
    row = parse_seed_row({
        "parcel_id": "12/34",
        "address": "1 MAIN ST, NAPLES, FL 34102",
        "method": "GET",
        "url": "https://example.com/search?id=1",
        "county": "Collier",
        "multiValueQueryString": '{"id": ["1"]}',
    })
    folder, unnormalized, seed = create_parcel_folder(row, str(tmp_path))

    assert os.path.basename(folder) == "12_34"
    assert sorted(os.listdir(folder)) == [
        "property_seed.json",
        "relationship_property_to_address.json",
        "seed_data_group.json",
        "unnormalized_address.json",
    ]
    assert unnormalized["source_http_request"]["url"] == "https://example.com/search"
    assert unnormalized["source_http_request"]["multiValueQueryString"] == {"id": ["1"]}
    assert unnormalized["county_jurisdiction"] == "Collier"
    assert seed["parcel_id"] == "12/34"
    assert seed["request_identifier"] == "12/34"
    assert read_json(os.path.join(folder, "relationship_property_to_address.json")) == {
        "from": {"/": "./property_seed.json"},
        "to": {"/": "./unnormalized_address.json"},
    }
    assert read_json(os.path.join(folder, "seed_data_group.json"))["label"] == "Seed"


def test_process_csv_to_seed_folders(tmp_path):
    csv_path = _write_csv(tmp_path, ROW)
    output_dir = str(tmp_path / "seed_output")

    folder = process_csv_to_seed_folders(csv_path, output_dir)

    assert folder == os.path.join(output_dir, "01-3126-045-0040")
    unnormalized = read_json(os.path.join(folder, "unnormalized_address.json"))
    assert unnormalized["full_address"] == "1234 SW 14 TER, MIAMI, FL 33145"
    assert unnormalized["county_jurisdiction"] == "Miami Dade"
    assert unnormalized["source_http_request"]["multiValueQueryString"] == {"folio": ["0131260450040"]}

    zip_path = str(tmp_path / "seed_output.zip")
    assert create_seed_output_zip(output_dir, zip_path) == 4
    with zipfile.ZipFile(zip_path) as archive:
        assert "01-3126-045-0040/property_seed.json" in archive.namelist()


def test_process_csv_requires_exactly_one_row(tmp_path):
    with pytest.raises(ValueError, match="empty"):
        process_csv_to_seed_folders(_write_csv(tmp_path, ""), str(tmp_path / "out"))
    with pytest.raises(ValueError, match="only 1 property"):
        process_csv_to_seed_folders(_write_csv(tmp_path, ROW + ROW), str(tmp_path / "out"))


def test_process_csv_requires_parcel_id(tmp_path):
    with pytest.raises(ValueError, match="parcel_id"):
        process_csv_to_seed_folders(_write_csv(tmp_path, ',"1 MAIN ST",GET,https://x.com,Lee,\n'), str(tmp_path / "out"))


def test_process_csv_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        process_csv_to_seed_folders(str(tmp_path / "missing.csv"), str(tmp_path / "out"))
