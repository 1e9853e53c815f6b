"""Significant non-compliance (SNC) violation analyses for Class II wells.

Inputs are raw-string frames as written by the extractor: table 01 (well
headers) and table 10 (enforcement actions), joined on the control number.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from uicdb.extractor import CONTROL_FIELD
from uicdb.schema.parser import WORKBOOK_SUFFIXES

VIOL_CODE_FIELD = "ENF_ACT_VIOL_CODE"
VIOL_TYPE_FIELD = "VIOLATION_TYPE"


def fill_false(condition: pd.Series) -> pd.Series:
    """Treat missing comparison results as False."""
    return condition.fillna(False).astype(bool)


def parse_year(dates: pd.Series) -> pd.Series:
    """YYYYMMDD strings -> nullable integer year; unparseable dates become <NA>."""
    parsed = pd.to_datetime(dates, format="%Y%m%d", errors="coerce")
    return parsed.dt.year.astype("Int64")


def class_2_snc_violations(table_01: pd.DataFrame, table_10: pd.DataFrame) -> pd.DataFrame:
    """Violations flagged SNC on Class II wells, with the violation year."""
    joined = table_10.merge(table_01, on=CONTROL_FIELD, how="left", suffixes=("", "_01"))
    keep = (joined["UIC_CLASS"] == "2") & (joined["ENF_ACT_SNC_FLAG"] == "Y")
    snc = joined[fill_false(keep)].copy()
    snc["year"] = parse_year(snc["ENF_ACT_VIOL_DATE"])
    return snc.reset_index(drop=True)


def snc_timeseries(snc: pd.DataFrame, max_year: int | None = 2023) -> pd.DataFrame:
    """Number of SNC violations per year (years after max_year are incomplete)."""
    frame = snc if max_year is None else snc[fill_false(snc["year"] <= max_year)]
    return frame.groupby("year").size().reset_index(name="n_snc")


def load_viol_code_key(path: Path) -> pd.DataFrame:
    """Violation code -> violation type lookup, from CSV or a workbook."""
    if path.suffix.lower() in WORKBOOK_SUFFIXES:
        key = pd.read_excel(path, dtype=str)
    else:
        key = pd.read_csv(path, dtype=str, keep_default_na=False)
    missing = {VIOL_CODE_FIELD, VIOL_TYPE_FIELD} - set(key.columns)
    if missing:
        raise ValueError(f"Violation code key {path} is missing columns {sorted(missing)}.")
    return key


def attach_violation_types(snc: pd.DataFrame, viol_code_key: pd.DataFrame) -> pd.DataFrame:
    key = viol_code_key[[VIOL_CODE_FIELD, VIOL_TYPE_FIELD]].drop_duplicates(VIOL_CODE_FIELD)
    return snc.merge(key, on=VIOL_CODE_FIELD, how="left")


def snc_by_type(
    snc_typed: pd.DataFrame, start_year: int | None = None, end_year: int | None = None
) -> pd.DataFrame:
    """Share of SNC violations per violation code, for start_year <= year < end_year."""
    frame = snc_typed
    if start_year is not None:
        frame = frame[fill_false(frame["year"] >= start_year)]
    if end_year is not None:
        frame = frame[fill_false(frame["year"] < end_year)]
    counts = (
        frame.groupby([VIOL_CODE_FIELD, VIOL_TYPE_FIELD], dropna=False)
        .size()
        .reset_index(name="count")
    )
    total = counts["count"].sum()
    counts["pct"] = (counts["count"] / total * 100).round(2) if total else 0.0
    return counts.sort_values("pct", ascending=False, kind="stable").reset_index(drop=True)
