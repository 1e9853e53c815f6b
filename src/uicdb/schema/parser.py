"""Load per-table field layouts for the UIC flat file.

Supported sources:
- YAML/JSON: {"tables": {"01": [{"name": ..., "pos": ..., "length": ...}, ...]}}
- Workbook (.xlsx/.xls): one sheet per table named "Table NN" with columns
  var, pos, length (the layout the RRC variable workbook ships in)
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from uicdb.extractor import SchemaEntry, SchemaError

SHEET_RE = re.compile(r"(\d+)")
WORKBOOK_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


def _entry_from_mapping(rtype: str, payload: Mapping[str, Any]) -> SchemaEntry:
    name = payload.get("name", payload.get("var"))
    if name is None or "pos" not in payload or "length" not in payload:
        raise SchemaError(f"Table {rtype}: entry {dict(payload)} needs name, pos and length.")
    try:
        pos = int(payload["pos"])
        length = int(payload["length"])
    except (TypeError, ValueError) as exc:
        raise SchemaError(f"Table {rtype}: field {name!r} has non-integer pos/length.") from exc
    if length < 1:
        raise SchemaError(f"Table {rtype}: field {name!r} has non-positive length {length}.")
    return SchemaEntry(name=str(name), pos=pos, length=length)


def parse_schema(payload: Mapping[str, Any]) -> dict[str, list[SchemaEntry]]:
    tables = payload.get("tables", payload)
    if not isinstance(tables, Mapping):
        raise SchemaError("Schema must map record types to field lists.")
    schema: dict[str, list[SchemaEntry]] = {}
    for rtype, entries in tables.items():
        # YAML reads unquoted 01 as the integer 1
        key = f"{int(rtype):02d}" if isinstance(rtype, int) else str(rtype)
        if not isinstance(entries, Sequence) or isinstance(entries, str):
            raise SchemaError(f"Table {key}: expected a list of fields.")
        schema[key] = [_entry_from_mapping(key, e) for e in entries]
    return schema


def load_schema_workbook(path: Path) -> dict[str, list[SchemaEntry]]:
    sheets = pd.read_excel(path, sheet_name=None, dtype={"var": str})
    schema: dict[str, list[SchemaEntry]] = {}
    for sheet_name, frame in sheets.items():
        match = SHEET_RE.search(str(sheet_name))
        if not match:
            continue
        rtype = match.group(1).zfill(2)
        missing = {"var", "pos", "length"} - set(frame.columns)
        if missing:
            raise SchemaError(f"Sheet {sheet_name!r} is missing columns {sorted(missing)}.")
        records = frame.dropna(subset=["var"]).to_dict(orient="records")
        schema[rtype] = [_entry_from_mapping(rtype, r) for r in records]
    return schema


def read_mapping(path: Path) -> dict[str, Any]:
    """Read a YAML (.yml/.yaml) or JSON document; an empty document reads as {}."""
    text = path.read_text(encoding="utf-8")
    payload = yaml.safe_load(text) if path.suffix.lower() in {".yml", ".yaml"} else json.loads(text)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValueError(f"{path} must hold a mapping, got {type(payload).__name__}.")
    return payload


def load_schema(path: Path) -> dict[str, list[SchemaEntry]]:
    if path.suffix.lower() in WORKBOOK_SUFFIXES:
        return load_schema_workbook(path)
    return parse_schema(read_mapping(path))


def schema_to_mapping(schema: Mapping[str, Sequence[SchemaEntry]]) -> dict[str, Any]:
    return {
        "tables": {
            rtype: [{"name": e.name, "pos": e.pos, "length": e.length} for e in entries]
            for rtype, entries in schema.items()
        }
    }
