from pathlib import Path

from typer.testing import CliRunner

from uicdb.cli import app
from uicdb.store import read_table

runner = CliRunner()


def _synthetic(tmp_path: Path) -> tuple[Path, Path, Path]:
    data = tmp_path / "uif700a_mod.txt"
    schema = tmp_path / "schema.yaml"
    key = tmp_path / "viol_codes.csv"
    result = runner.invoke(
        app,
        [
            "dataset",
            "synthetic",
            str(data),
            "--schema",
            str(schema),
            "--viol-codes",
            str(key),
            "--wells",
            "25",
            "--seed",
            "11",
        ],
    )
    assert result.exit_code == 0, result.output
    return data, schema, key


def test_process_then_analyze(tmp_path: Path):
    data, schema, key = _synthetic(tmp_path)
    tables = tmp_path / "tables"
    log_csv = tmp_path / "logs" / "runs.csv"
    result = runner.invoke(
        app,
        [
            "process",
            str(data),
            "--schema",
            str(schema),
            "--output-dir",
            str(tables),
            "--cache-dir",
            str(tmp_path / "cache"),
            "--format",
            "both",
            "--log-csv",
            str(log_csv),
        ],
    )
    assert result.exit_code == 0, result.output
    for rtype in ("01", "07", "10"):
        assert (tables / f"table_{rtype}.arrow").exists()
        assert (tables / f"table_{rtype}.csv").exists()
    table_07 = read_table(tables / "table_07.arrow")
    assert list(table_07.columns)[0] == "UIC_CNTL_NO"

    out = tmp_path / "analysis"
    result = runner.invoke(
        app, ["analyze", str(tables), "--viol-codes", str(key), "--output-dir", str(out)]
    )
    assert result.exit_code == 0, result.output
    assert (out / "snc_timeseries.csv").exists()
    assert (out / "mit_failure_table.csv").exists()
    assert (out / "snc_by_type_pre_2011.csv").exists()

    result = runner.invoke(app, ["log", "summarize", str(log_csv)])
    assert result.exit_code == 0
    assert '"entries": 1' in result.output


def test_process_rejects_detail_before_header(tmp_path: Path):
    data = tmp_path / "bad.txt"
    data.write_text("07orphan\n01AAAAAAAAA\n")
    schema = tmp_path / "schema.yaml"
    schema.write_text('tables:\n  "07": [{name: A, pos: 3, length: 1}]\n')
    result = runner.invoke(app, ["process", str(data), "--schema", str(schema)])
    assert result.exit_code == 1
    assert "no '01' header" in result.output


def test_tag_command_writes_lines(tmp_path: Path):
    data = tmp_path / "uic.txt"
    data.write_text("01ABC123456HEADERDATA\n02999EXTRA\n")
    out = tmp_path / "tagged.txt"
    result = runner.invoke(app, ["tag", str(data), "--output", str(out)])
    assert result.exit_code == 0, result.output
    assert out.read_text().splitlines() == ["01ABC123456HEADERDATA", "02ABC123456999EXTRA"]


def test_latest_command(tmp_path: Path):
    (tmp_path / "2024-01-01").mkdir()
    (tmp_path / "2024-09-03").mkdir()
    result = runner.invoke(app, ["latest", str(tmp_path)])
    assert result.exit_code == 0
    assert "2024-09-03" in result.output


def test_manifest_sample_prints_yaml():
    result = runner.invoke(app, ["manifest", "sample"])
    assert result.exit_code == 0
    assert "uif700a" in result.output


def test_analyze_rejects_key_without_expected_columns(tmp_path: Path):
    data, schema, _key = _synthetic(tmp_path)
    tables = tmp_path / "tables"
    result = runner.invoke(app, ["process", str(data), "--schema", str(schema), "-o", str(tables)])
    assert result.exit_code == 0, result.output
    bad_key = tmp_path / "codes.csv"
    bad_key.write_text("code,type\nA1,Operating\n")
    result = runner.invoke(
        app, ["analyze", str(tables), "--viol-codes", str(bad_key), "-o", str(tmp_path / "out")]
    )
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "missing columns" in result.output


def test_manifest_validate_reports_bad_schema(tmp_path: Path):
    data = tmp_path / "uic.txt"
    data.write_text("01AAAAAAAAA\n07X\n")
    schema = tmp_path / "schema.yaml"
    schema.write_text("tables:\n  '07':\n    - {name: F, pos: x, length: 2}\n")
    manifest = tmp_path / "manifest.yaml"
    manifest.write_text(f"name: dl\npath: {data}\nschema: {schema}\n")
    result = runner.invoke(app, ["manifest", "validate", str(manifest)])
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "non-integer" in result.output


def test_manifest_validate_reports_unparsable_manifest(tmp_path: Path):
    manifest = tmp_path / "manifest.json"
    manifest.write_text("{not json")
    result = runner.invoke(app, ["manifest", "validate", str(manifest)])
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_process_reports_unparsable_schema(tmp_path: Path):
    data, _schema, _key = _synthetic(tmp_path)
    schema = tmp_path / "broken.yaml"
    schema.write_text("tables: [unclosed\n")
    result = runner.invoke(app, ["process", str(data), "--schema", str(schema)])
    assert result.exit_code == 1
    assert "Error:" in result.output
