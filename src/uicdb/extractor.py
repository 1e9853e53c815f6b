"""Slice tagged UIC lines into one table per record type.

Positions are 1-indexed and inclusive at the start, as in the RRC layout
documents. Values stay raw strings; numeric/date handling happens in analysis.

A slice running past the end of a line yields the shorter (possibly empty)
string instead of raising.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

import pandas as pd
import pyarrow as pa

from uicdb.tagger import CONTROL_WIDTH, HEADER_TYPE, TYPE_WIDTH, TaggedLines, TagMode

CONTROL_FIELD = "UIC_CNTL_NO"


class SchemaError(ValueError):
    """A schema entry cannot be applied to the file layout."""


@dataclass(frozen=True)
class SchemaEntry:
    name: str
    pos: int
    length: int


Schema = Mapping[str, Sequence[SchemaEntry]]


@dataclass
class Table:
    record_type: str
    columns: dict[str, list[str]] = field(default_factory=dict)

    @property
    def num_rows(self) -> int:
        return len(next(iter(self.columns.values()), []))

    def to_arrow(self) -> pa.Table:
        return pa.table(
            {name: pa.array(values, type=pa.string()) for name, values in self.columns.items()}
        )

    def to_pandas(self) -> pd.DataFrame:
        data = {name: list(values) for name, values in self.columns.items()}
        return pd.DataFrame(data, dtype=str)


def offset_for(record_type: str, mode: TagMode = "insert") -> int:
    """Shift applied to layout positions of a table after tagging."""
    if record_type == HEADER_TYPE or mode == "overwrite":
        return 0
    return CONTROL_WIDTH


def _slice_bounds(entry: SchemaEntry, offset: int) -> tuple[int, int]:
    start = entry.pos + offset
    if start < 1:
        raise SchemaError(
            f"Field {entry.name!r} starts at {entry.pos} (+{offset}); positions are 1-indexed."
        )
    if entry.length < 1:
        raise SchemaError(f"Field {entry.name!r} has non-positive length {entry.length}.")
    return start - 1, start - 1 + entry.length


def extract_table(
    lines: Iterable[str],
    record_type: str,
    schema: Sequence[SchemaEntry],
    offset: int = 0,
) -> Table:
    """Collect every line starting with record_type and slice it per schema entry."""
    bounds = [(entry.name, *_slice_bounds(entry, offset)) for entry in schema]
    columns: dict[str, list[str]] = {name: [] for name, _start, _end in bounds}
    for line in lines:
        if not line.startswith(record_type):
            continue
        for name, start, end in bounds:
            columns[name].append(line[start:end])
    return Table(record_type=record_type, columns=columns)


def extract_tables(
    lines: Sequence[str], schema: Schema, mode: TagMode | None = None
) -> dict[str, Table]:
    """Extract every table named in the schema, in schema order.

    The tagging mode is read from TaggedLines when not given explicitly.
    """
    if mode is None:
        mode = lines.mode if isinstance(lines, TaggedLines) else "insert"
    return {
        rtype: extract_table(lines, rtype, entries, offset=offset_for(rtype, mode))
        for rtype, entries in schema.items()
    }


def with_control_field(
    schema: Schema, name: str = CONTROL_FIELD, mode: TagMode = "insert"
) -> dict[str, list[SchemaEntry]]:
    """Give each detail table a leading column reading the injected control number."""
    out: dict[str, list[SchemaEntry]] = {}
    for rtype, entries in schema.items():
        entries = list(entries)
        if rtype != HEADER_TYPE and not any(e.name == name for e in entries):
            # after the offset this lands on the first character past the type code
            pos = TYPE_WIDTH + 1 - offset_for(rtype, mode)
            entries.insert(0, SchemaEntry(name, pos, CONTROL_WIDTH))
        out[rtype] = entries
    return out
