from __future__ import annotations

import json
from pathlib import Path

from choromap.cli import main


def test_validate_ok(config_path: Path):
    assert main(["validate", "--config", str(config_path)]) == 0


def test_validate_reports_missing_inputs(config_path: Path):
    (config_path.parent / "records.csv").unlink()
    assert main(["validate", "--config", str(config_path)]) == 1


def test_inspect_writes_join_report(config_path: Path, tmp_path: Path):
    output = tmp_path / "report.json"
    assert main(["inspect", "--config", str(config_path), "--output", str(output)]) == 0
    report = json.loads(output.read_text(encoding="utf-8"))
    assert report["join"]["unmatched_records"] == [72]
    by_id = {item["region_id"]: item for item in report["records"]}
    assert by_id[72]["off_screen"] is True
    assert by_id[72]["anchor"] == [-100.0, -100.0]
    assert by_id[1]["dominant_category"] == "Asian"
    assert by_id[2]["dominant_category"] == "White"
    assert by_id[1]["size_tier"] == 0


def test_render_writes_png(config_path: Path):
    assert main(["render", "--config", str(config_path), "--hover", "01"]) == 0
    assert (config_path.parent / "build" / "map.png").exists()


def test_render_unknown_hover_id(config_path: Path):
    assert main(["render", "--config", str(config_path), "--hover", "99"]) == 1


def test_missing_config_returns_error(tmp_path: Path):
    assert main(["validate", "--config", str(tmp_path / "absent.yaml")]) == 1
