"""Persist extracted tables and load them back for analysis."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

import pandas as pd
import pyarrow as pa
import pyarrow.ipc as pa_ipc

from uicdb.extractor import Table

SUPPORTED_FORMATS = {"arrow", "csv"}


def table_filename(record_type: str, fmt: str) -> str:
    return f"table_{record_type}.{fmt}"


def write_arrow(table: Table, path: Path) -> None:
    """Write a table to Arrow IPC; every column is a string column."""
    path.parent.mkdir(parents=True, exist_ok=True)
    arrow_table = table.to_arrow()
    with pa.OSFile(str(path), "wb") as sink:
        with pa_ipc.new_file(sink, arrow_table.schema) as writer:
            writer.write_table(arrow_table)


def write_csv(table: Table, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    table.to_pandas().to_csv(path, index=False)


def write_tables(
    tables: Mapping[str, Table], output_dir: Path, formats: Iterable[str] = ("arrow",)
) -> list[Path]:
    """Write each table once per requested format; returns the written paths."""
    formats = list(formats)
    unknown = set(formats) - SUPPORTED_FORMATS
    if unknown:
        raise ValueError(
            f"Unsupported format(s) {sorted(unknown)}. Choose from {SUPPORTED_FORMATS}."
        )
    written: list[Path] = []
    for rtype, table in tables.items():
        for fmt in formats:
            path = output_dir / table_filename(rtype, fmt)
            if fmt == "arrow":
                write_arrow(table, path)
            else:
                write_csv(table, path)
            written.append(path)
    return written


def read_table(path: Path) -> pd.DataFrame:
    """Load a persisted table as a data frame of raw strings."""
    if path.suffix.lower() == ".csv":
        # keep_default_na=False so blank flags stay " " / "" instead of NaN
        return pd.read_csv(path, dtype=str, keep_default_na=False)
    with pa.memory_map(str(path), "r") as source:
        return pa_ipc.open_file(source).read_all().to_pandas()


def find_table(table_dir: Path, record_type: str) -> Path:
    """Locate table_NN in a directory, preferring Arrow over CSV."""
    for fmt in ("arrow", "csv"):
        path = table_dir / table_filename(record_type, fmt)
        if path.exists():
            return path
    raise FileNotFoundError(f"No table_{record_type}.arrow/.csv under {table_dir}")
