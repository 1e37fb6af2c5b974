import json
from datetime import datetime, timezone

import pytest

from depwatch.dependency_loader import load_watchlist, parse_record, parse_sbom


def test_load_nested_watchlist(watchlist_file):
    records = load_watchlist(watchlist_file)
    assert [record.name for record in records] == ["left-pad", "readline-gpl", "Zlib-Wrapper"]

    left_pad = records[0]
    assert left_pad.id == "w-1"
    assert left_pad.status == "approved"
    assert left_pad.processing_status == "done"
    assert left_pad.scores.total == 20
    assert left_pad.scorecard_score == 7
    assert left_pad.stars == 120
    assert left_pad.added_at == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)

    gpl = records[1]
    assert gpl.is_queued_or_running
    assert gpl.vulnerability_score == 85

    wrapper = records[2]
    assert wrapper.license is None
    assert wrapper.scores is None
    assert wrapper.risk == 0
    assert wrapper.added_at is None


def test_flat_entries_and_wrapping_object(tmp_path):
    path = tmp_path / "flat.json"
    path.write_text(
        json.dumps(
            {
                "watchlist": [
                    {
                        "name": "chalk",
                        "version": "5.3.0",
                        "license": "MIT",
                        "processing_status": "running",
                        "review_status": "approved",
                        "total_score": "42.5",
                        "stars": "oops",
                    },
                    "not-an-entry",
                    {"unrelated": True},
                ]
            }
        )
    )
    records = load_watchlist(path)
    assert len(records) == 1
    chalk = records[0]
    assert chalk.id == "chalk"
    assert chalk.version == "5.3.0"
    assert chalk.status == "approved"
    assert chalk.processing_status == "running"
    assert chalk.risk == 42.5
    assert chalk.stars is None


def test_parse_record_defaults():
    record = parse_record({"id": "x-1", "name": "tiny", "added_at": "yesterday"})
    assert record.status == "pending"
    assert record.processing_status is None
    assert record.added_at is None
    assert parse_record({"package": {}}) is None


def test_unreadable_watchlist_raises_value_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(ValueError):
        load_watchlist(path)
    with pytest.raises(ValueError):
        load_watchlist(tmp_path / "missing.json")

    scalar = tmp_path / "scalar.json"
    scalar.write_text("42")
    with pytest.raises(ValueError):
        load_watchlist(scalar)


def test_parse_cyclonedx_sbom(tmp_path):
    path = tmp_path / "bom.json"
    path.write_text(
        json.dumps(
            {
                "bomFormat": "CycloneDX",
                "components": [
                    {
                        "name": "express",
                        "version": "4.18.2",
                        "purl": "pkg:npm/express@4.18.2",
                        "licenses": [{"license": {"id": "MIT"}}],
                    },
                    {"name": "mystery", "version": "0.0.1"},
                ],
            }
        )
    )
    records = parse_sbom(path)
    assert [(r.id, r.license) for r in records] == [("pkg:npm/express@4.18.2", "MIT"), ("mystery", None)]
    assert all(r.processing_status == "done" for r in records)


def test_parse_spdx_sbom(tmp_path):
    path = tmp_path / "spdx.json"
    path.write_text(
        json.dumps(
            {
                "spdxVersion": "SPDX-2.3",
                "packages": [
                    {"SPDXID": "SPDXRef-1", "name": "requests", "versionInfo": "2.31.0", "licenseDeclared": "Apache-2.0"},
                    {"SPDXID": "SPDXRef-2", "name": "blob", "licenseDeclared": "NOASSERTION"},
                ],
            }
        )
    )
    records = parse_sbom(path)
    assert [r.license for r in records] == ["Apache-2.0", None]
    assert records[0].version == "2.31.0"


def test_malformed_sbom_entries_are_skipped(tmp_path, caplog):
    cyclonedx = tmp_path / "bom.json"
    cyclonedx.write_text(
        json.dumps(
            {
                "bomFormat": "CycloneDX",
                "components": [
                    "oops",
                    {"name": "ok", "licenses": ["MIT"]},
                    {"name": "odd", "licenses": [{"license": "MIT"}]},
                ],
            }
        )
    )
    with caplog.at_level("WARNING", logger="depwatch.dependency_loader"):
        records = parse_sbom(cyclonedx)
    assert [(r.name, r.license) for r in records] == [("ok", None), ("odd", None)]
    assert "skipping malformed CycloneDX component 0" in caplog.text

    spdx = tmp_path / "spdx.json"
    spdx.write_text(json.dumps({"spdxVersion": "SPDX-2.3", "packages": [7, {"name": "fine"}]}))
    assert [r.name for r in parse_sbom(spdx)] == ["fine"]

    not_a_list = tmp_path / "flat.json"
    not_a_list.write_text(json.dumps({"bomFormat": "CycloneDX", "components": {"name": "x"}}))
    assert parse_sbom(not_a_list) == []


def test_unknown_sbom_format_is_empty(tmp_path):
    path = tmp_path / "other.json"
    path.write_text(json.dumps({"hello": "world"}))
    assert parse_sbom(path) == []
