"""Synthetic UIC flat-file generator.

Produces untagged lines in the nesting order of the RRC file: each "01" well
header is followed by its detail records. Covered record types:
- 01 well header (control number, class, activated flag, CO2 authorization, W-3 date)
- 07 H-5 mechanical integrity tests
- 10 enforcement actions / violations

Used for fixtures, demos, and regression tests before a real download is at hand.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta

from uicdb.extractor import SchemaEntry

SYNTHETIC_SCHEMA: dict[str, list[SchemaEntry]] = {
    "01": [
        SchemaEntry("UIC_CNTL_NO", 3, 9),
        SchemaEntry("UIC_CLASS", 12, 1),
        SchemaEntry("UIC_ACTIVATED_FLAG", 13, 1),
        SchemaEntry("UIC_INJ_CO2", 14, 1),
        SchemaEntry("UIC_W3_DATE", 15, 8),
    ],
    "07": [
        SchemaEntry("UIC_H5_TEST_DATE", 3, 8),
        SchemaEntry("UIC_H5_RESULT", 11, 1),
    ],
    "10": [
        SchemaEntry("ENF_ACT_VIOL_DATE", 3, 8),
        SchemaEntry("ENF_ACT_VIOL_CODE", 11, 3),
        SchemaEntry("ENF_ACT_SNC_FLAG", 14, 1),
    ],
}

SYNTHETIC_VIOL_CODES: dict[str, str] = {
    "H5F": "MIT FAILURE",
    "PRS": "PRESSURE EXCEEDANCE",
    "RPT": "FAILURE TO REPORT",
    "PRM": "PERMIT VIOLATION",
}


@dataclass
class WellSpec:
    control_number: str
    uic_class: str
    activated: str
    co2: str
    w3_date: str
    tests: list[tuple[str, str]] = field(default_factory=list)
    violations: list[tuple[str, str, str]] = field(default_factory=list)


def _yyyymmdd(value: date) -> str:
    return value.strftime("%Y%m%d")


def _build_lines(spec: WellSpec) -> list[str]:
    lines = [f"01{spec.control_number}{spec.uic_class}{spec.activated}{spec.co2}{spec.w3_date}"]
    lines.extend(f"07{test_date}{result}" for test_date, result in spec.tests)
    lines.extend(f"10{viol_date}{code}{snc}" for viol_date, code, snc in spec.violations)
    return lines


def generate_synthetic_file(wells: int = 4, *, seed: int = 1234) -> tuple[list[str], list[dict]]:
    """Generate untagged UIC lines plus per-well metadata."""
    rng = random.Random(seed)
    base_date = date(2005, 1, 1)
    classes: Sequence[str] = ("2", "2", "2", "1")
    co2_flags: Sequence[str] = ("Y", "N", " ")
    codes = sorted(SYNTHETIC_VIOL_CODES)
    lines: list[str] = []
    metadata: list[dict] = []

    for i in range(wells):
        first_test = base_date + timedelta(days=rng.randint(0, 3650))
        plugged = rng.random() < 0.25
        spec = WellSpec(
            control_number=f"{100_000_000 + i:09d}",
            uic_class=rng.choice(classes),
            activated="Y" if rng.random() < 0.85 else "N",
            co2=rng.choice(co2_flags),
            w3_date=_yyyymmdd(first_test + timedelta(days=3650)) if plugged else "00000000",
        )
        for t in range(rng.randint(1, 3)):
            test_date = first_test + timedelta(days=365 * t)
            spec.tests.append((_yyyymmdd(test_date), rng.choice("PF")))
        for _ in range(rng.randint(0, 3)):
            viol_date = first_test + timedelta(days=rng.randint(0, 5000))
            spec.violations.append((_yyyymmdd(viol_date), rng.choice(codes), rng.choice("YN")))

        lines.extend(_build_lines(spec))
        metadata.append(
            {
                "control_number": spec.control_number,
                "uic_class": spec.uic_class,
                "activated": spec.activated,
                "co2": spec.co2,
                "w3_date": spec.w3_date,
                "tests": len(spec.tests),
                "violations": len(spec.violations),
            }
        )

    return lines, metadata
