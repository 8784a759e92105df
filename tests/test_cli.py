import json
from pathlib import Path

from typer.testing import CliRunner

from meshwardrive.cli import app


def _invoke(args: list[str], tmp_path: Path, **kwargs):
    runner = CliRunner()
    env = {"MESHWARDRIVE_CONFIG": str(tmp_path / "absent.yml"), "HOME": str(tmp_path)}
    return runner.invoke(app, args, prog_name="meshwardrive", env=env, **kwargs)


def _write_export(path: Path, count: int) -> Path:
    rows = [
        {
            "id": f"s{i}",
            "lat": 50.0 + i / 100,
            "lon": 8.0,
            "timestamp": 1_000 * (i + 1),
            "geohash": "u0yjj",
            "rssi": -90 + i,
            "pingSuccess": i % 2 == 0,
        }
        for i in range(count)
    ]
    path.write_text(json.dumps(rows), encoding="utf-8")
    return path


def test_version_command(tmp_path: Path):
    result = _invoke(["version"], tmp_path)
    assert result.exit_code == 0
    assert "meshwardrive" in result.stdout


def test_info_on_fresh_store(tmp_path: Path):
    data = tmp_path / "data"
    result = _invoke(["info", "--data-dir", str(data)], tmp_path)
    assert result.exit_code == 0
    assert "'samples': 0" in result.stdout
    assert (data / "meshcore_wardrive.db").exists()


def test_import_then_export(tmp_path: Path):
    data = tmp_path / "data"
    source = _write_export(tmp_path / "in.json", 3)

    result = _invoke(["import", str(source), "--data-dir", str(data)], tmp_path)
    assert result.exit_code == 0
    assert "'inserted': 3" in result.stdout

    again = _invoke(["import", str(source), "--data-dir", str(data)], tmp_path)
    assert again.exit_code == 0
    assert "'ignored': 3" in again.stdout

    out = tmp_path / "out.json"
    exported = _invoke(["export", "--output", str(out), "--data-dir", str(data)], tmp_path)
    assert exported.exit_code == 0
    rows = json.loads(out.read_text(encoding="utf-8"))
    assert [row["id"] for row in rows] == ["s2", "s1", "s0"]
    assert rows[0]["pingSuccess"] is True
    assert rows[1]["pingSuccess"] is False
    assert rows[0]["observerNames"] is None


def test_import_rejects_invalid_payload(tmp_path: Path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"id": "not-a-list"}), encoding="utf-8")
    result = _invoke(["import", str(bad), "--data-dir", str(tmp_path / "data")], tmp_path)
    assert result.exit_code == 1
    assert "JSON array" in result.stdout


def test_prune_removes_old_samples(tmp_path: Path):
    data = tmp_path / "data"
    # Timestamps near the epoch are far outside any retention window
    source = _write_export(tmp_path / "in.json", 2)
    _invoke(["import", str(source), "--data-dir", str(data)], tmp_path)

    result = _invoke(["prune", "--days", "1", "--data-dir", str(data)], tmp_path)
    assert result.exit_code == 0
    assert "'deleted': 2" in result.stdout


def test_wipe_requires_confirmation(tmp_path: Path):
    data = tmp_path / "data"
    source = _write_export(tmp_path / "in.json", 2)
    _invoke(["import", str(source), "--data-dir", str(data)], tmp_path)

    refused = _invoke(["wipe", "--data-dir", str(data)], tmp_path)
    assert refused.exit_code == 1

    result = _invoke(["wipe", "--yes", "--data-dir", str(data)], tmp_path)
    assert result.exit_code == 0
    assert "'deleted': 2" in result.stdout


def test_config_validate_reports_failure(tmp_path: Path):
    yml = tmp_path / "meshwardrive.yml"
    yml.write_text("retention:\n  max_age_days: -1\n", encoding="utf-8")
    result = _invoke(["config-validate", str(yml)], tmp_path)
    assert result.exit_code == 1
    assert "Config validation failed" in result.stdout


def test_config_validate_ok(tmp_path: Path):
    yml = tmp_path / "meshwardrive.yml"
    yml.write_text(f"store:\n  data_dir: {tmp_path}\n", encoding="utf-8")
    result = _invoke(["config-validate", str(yml)], tmp_path)
    assert result.exit_code == 0
    assert "Config OK" in result.stdout
