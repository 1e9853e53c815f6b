from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from uicdb.data.loader import file_digest, read_lines
from uicdb.schema.parser import load_schema, read_mapping
from uicdb.tagger import HEADER_TYPE, record_type


@dataclass
class Manifest:
    name: str
    path: Path
    schema: Path | None = None
    hash: str | None = None
    notes: str | None = None
    checks: dict[str, Any] | None = None

    @staticmethod
    def from_mapping(payload: dict[str, Any]) -> Manifest:
        return Manifest(
            name=str(payload.get("name") or Path(payload["path"]).stem),
            path=Path(payload["path"]),
            schema=Path(payload["schema"]) if payload.get("schema") else None,
            hash=payload.get("hash"),
            notes=payload.get("notes"),
            checks=payload.get("checks"),
        )


def _nul_count(path: Path) -> int:
    count = 0
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            count += chunk.count(b"\x00")
    return count


def validate_manifest(manifest: Manifest) -> dict[str, Any]:
    path = manifest.path
    result: dict[str, Any] = {
        "name": manifest.name,
        "path": str(path),
        "exists": path.exists(),
        "size_bytes": path.stat().st_size if path.exists() else 0,
        "schema": str(manifest.schema) if manifest.schema else None,
        "hash_expected": manifest.hash,
        "hash_actual": None,
        "hash_match": None,
        "lines": 0,
        "nul_bytes": 0,
        "first_line_header": None,
        "record_type_counts": {},
        "warnings": [],
    }
    if not path.exists():
        result["warnings"].append("file_missing")
        return result

    if manifest.hash:
        expected = manifest.hash if ":" in manifest.hash else f"sha256:{manifest.hash}"
        algo = expected.split(":", 1)[0]
        actual = file_digest(path, algo=algo)
        result["hash_actual"] = actual
        result["hash_match"] = actual == expected
        if not result["hash_match"]:
            result["warnings"].append("hash_mismatch")

    # NUL bytes must be replaced before parsing or positions shift
    result["nul_bytes"] = _nul_count(path)
    max_nul = int((manifest.checks or {}).get("max_nul_bytes") or 0)
    if result["nul_bytes"] > max_nul:
        result["warnings"].append("nul_bytes_present")

    lines = read_lines(path)
    if manifest.checks and manifest.checks.get("max_lines"):
        lines = lines[: int(manifest.checks["max_lines"])]
        result["lines_capped"] = len(lines)
    counts = Counter(record_type(line) for line in lines)
    result["lines"] = len(lines)
    result["record_type_counts"] = dict(sorted(counts.items()))
    result["first_line_header"] = bool(lines) and record_type(lines[0]) == HEADER_TYPE
    if lines and not result["first_line_header"]:
        result["warnings"].append("first_line_not_header")

    if manifest.schema:
        if not manifest.schema.exists():
            result["warnings"].append("schema_missing")
        else:
            schema = load_schema(manifest.schema)
            result["schema_tables"] = list(schema)
            # empty tables are allowed, but worth flagging before a long run
            result["warnings"].extend(
                f"schema_type_absent:{rtype}" for rtype in schema if rtype not in counts
            )
    return result


def load_manifest(path: Path) -> Manifest:
    payload = read_mapping(path)
    if "path" not in payload:
        raise ValueError(f"Manifest {path} does not name the flat file ('path').")
    return Manifest.from_mapping(payload)


def sample_manifest() -> dict[str, Any]:
    return {
        "name": "uif700a_2024-09-03",
        "path": "data/2024-09-03/uif700a_mod.txt",
        "schema": "rrc_uic_db_var.xlsx",
        "hash": "sha256:<hex>",
        "notes": "NUL bytes replaced with '?' before processing",
        "checks": {"max_nul_bytes": 0, "max_lines": None},
    }
