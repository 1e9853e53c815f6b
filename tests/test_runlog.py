from pathlib import Path

from uicdb.runlog import ProcessSummary, append_csv, append_jsonl, summarize_log, summary_to_row


def _sample_summary() -> ProcessSummary:
    return ProcessSummary(
        lines=10, mode="insert", cached=False, table_rows={"01": 2, "07": 5, "10": 3}
    )


def test_summary_to_row_and_csv(tmp_path: Path):
    row = summary_to_row(_sample_summary(), source="uif700a_mod.txt", tag="test")
    out = tmp_path / "log.csv"
    append_csv(out, row)
    content = out.read_text()
    assert "uif700a_mod.txt" in content
    assert "table_rows" in content


def test_summary_to_row_accepts_mapping():
    row = summary_to_row({"lines": 3, "cached": True}, source="foo")
    assert row["lines"] == 3
    assert row["cached"] is True
    assert row["table_rows"] == "{}"


def test_append_jsonl(tmp_path: Path):
    path = tmp_path / "log.jsonl"
    append_jsonl(path, {"a": 1})
    assert path.read_text().strip() == '{"a": 1}'


def test_append_jsonl_handles_dataclass(tmp_path: Path):
    path = tmp_path / "log.jsonl"
    append_jsonl(path, {"summary": _sample_summary()})
    assert "table_rows" in path.read_text()


def test_summarize_log_over_csv(tmp_path: Path):
    out = tmp_path / "log.csv"
    append_csv(out, summary_to_row(_sample_summary(), source="a"))
    cached = ProcessSummary(lines=10, mode="insert", cached=True, table_rows={"01": 2})
    append_csv(out, summary_to_row(cached, source="a"))
    agg = summarize_log(out)
    assert agg["entries"] == 2
    assert agg["cached_runs"] == 1
    assert agg["lines_total"] == 20
    assert agg["rows_per_table"] == {"01": 4, "07": 5, "10": 3}


def test_summarize_log_over_jsonl(tmp_path: Path):
    out = tmp_path / "log.jsonl"
    append_jsonl(out, {"source": "a", "tag": None, "summary": _sample_summary()})
    agg = summarize_log(out)
    assert agg["entries"] == 1
    assert agg["rows_per_table"]["07"] == 5


def test_append_csv_writes_header_into_empty_log(tmp_path: Path):
    out = tmp_path / "log.csv"
    out.touch()
    append_csv(out, summary_to_row(_sample_summary(), source="a"))
    assert out.read_text().splitlines()[0].startswith("timestamp,source,tag")
    assert summarize_log(out)["entries"] == 1
