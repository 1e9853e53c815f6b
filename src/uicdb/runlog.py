"""Append processing-run summaries to CSV/JSONL logs and aggregate them."""

from __future__ import annotations

import csv
import json
from collections.abc import Iterator, Mapping
from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class ProcessSummary:
    lines: int
    mode: str
    cached: bool
    table_rows: dict[str, int] = field(default_factory=dict)
    outputs: list[str] = field(default_factory=list)


def summary_to_row(
    summary: ProcessSummary | Mapping[str, Any], source: str, tag: str | None = None
) -> dict:
    """Flatten a ProcessSummary into a CSV/JSONL-friendly row."""
    payload = dict(summary) if isinstance(summary, Mapping) else asdict(summary)
    return {
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "source": source,
        "tag": tag or "",
        "lines": int(payload.get("lines", 0) or 0),
        "mode": str(payload.get("mode", "")),
        "cached": bool(payload.get("cached", False)),
        "table_rows": json.dumps(payload.get("table_rows", {})),
    }


def append_csv(path: Path, row: dict) -> None:
    """Append a summary row; the header goes in first when the log is new or empty."""
    path.parent.mkdir(parents=True, exist_ok=True)
    needs_header = not path.exists() or path.stat().st_size == 0
    with path.open("a", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(row))
        if needs_header:
            writer.writeheader()
        writer.writerow(row)


def _default(obj: object) -> object:
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def append_jsonl(path: Path, payload: dict) -> None:
    """Append one run as a single JSON line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(payload, default=_default, sort_keys=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(f"{line}\n")


def _iter_entries(path: Path) -> Iterator[dict[str, Any]]:
    """Yield one run per log record, unwrapping the "summary" nesting of JSONL logs."""
    with path.open(newline="", encoding="utf-8") as f:
        if path.suffix.lower() == ".csv":
            yield from csv.DictReader(f)
            return
        for raw in f:
            if raw.strip():
                record = json.loads(raw)
                yield record.get("summary", record)


def summarize_log(path: Path) -> dict[str, object]:
    """Aggregate run logs: run count, cache hits, lines and rows per table."""
    entries = 0
    cached_runs = 0
    lines_total = 0
    rows_per_table: dict[str, int] = {}

    for entry in _iter_entries(path):
        entries += 1
        lines_total += int(entry.get("lines", 0) or 0)
        cached = entry.get("cached", False)
        if cached is True or str(cached).lower() == "true":
            cached_runs += 1
        rows_raw = entry.get("table_rows", {})
        rows = json.loads(rows_raw) if isinstance(rows_raw, str) else rows_raw
        for rtype, n in rows.items():
            rows_per_table[rtype] = rows_per_table.get(rtype, 0) + int(n)

    return {
        "entries": entries,
        "cached_runs": cached_runs,
        "lines_total": lines_total,
        "rows_per_table": dict(sorted(rows_per_table.items())),
    }
