"""Mechanical integrity test (MIT) failure rates by CO2 injection authorization.

A well counts as failing when it has at least one SNC violation of type
"MIT FAILURE". A well is active in a year when it is activated, had its first
H-5 test in or before that year, and was not plugged (W-3) before that year.
"""

from __future__ import annotations

import pandas as pd

from uicdb.analysis.violations import VIOL_TYPE_FIELD, fill_false
from uicdb.extractor import CONTROL_FIELD

MIT_FAILURE = "MIT FAILURE"
CO2_FIELD = "co2_authorized"
CO2_ORDER = ("Yes", "No", "Unknown")
UNPLUGGED_YEAR = 9999

MIT_TABLE_HEADINGS = {
    CO2_FIELD: "Authorized to Inject CO2?",
    "n_mit_fail": "Active UIC Control Numbers with One or More MIT Failures",
    "n_tot": "Total Active UIC Control Numbers",
    "pct_mit_fail": "Percent of Active UIC Control Numbers with 1 or More MIT Failures",
}


def co2_label(flags: pd.Series) -> pd.Series:
    """UIC_INJ_CO2 flag -> Yes / No / Unknown (blank)."""
    stripped = flags.fillna("").astype(str).str.strip()
    labels = pd.Series("Yes", index=flags.index, dtype=object)
    labels[stripped == "N"] = "No"
    labels[stripped == ""] = "Unknown"
    return labels


def _year_prefix(dates: pd.Series) -> pd.Series:
    return pd.to_numeric(dates.astype(str).str[:4], errors="coerce")


def _activated(table_01: pd.DataFrame) -> pd.DataFrame:
    wells = table_01[fill_false(table_01["UIC_ACTIVATED_FLAG"] == "Y")].copy()
    wells[CO2_FIELD] = co2_label(wells["UIC_INJ_CO2"])
    return wells


def mit_failure_table(table_01: pd.DataFrame, snc_typed: pd.DataFrame) -> pd.DataFrame:
    """Share of activated wells with one or more MIT failures, per CO2 authorization."""
    failed = snc_typed.loc[fill_false(snc_typed[VIOL_TYPE_FIELD] == MIT_FAILURE), CONTROL_FIELD]
    wells = _activated(table_01)
    wells["mit_fail"] = wells[CONTROL_FIELD].isin(set(failed)).astype(int)

    summary = wells.groupby(CO2_FIELD).agg(
        n_mit_fail=("mit_fail", "sum"), n_tot=("mit_fail", "size")
    )
    summary["pct_mit_fail"] = (summary["n_mit_fail"] / summary["n_tot"] * 100).round(2)
    order = [label for label in CO2_ORDER if label in summary.index]
    return summary.loc[order].reset_index()


def first_test_years(table_07: pd.DataFrame) -> pd.DataFrame:
    """Year of the earliest H-5 test per control number."""
    first = table_07.sort_values("UIC_H5_TEST_DATE", kind="stable").drop_duplicates(CONTROL_FIELD)
    first = first.assign(year_first_test=_year_prefix(first["UIC_H5_TEST_DATE"]))
    return first[[CONTROL_FIELD, "year_first_test"]].reset_index(drop=True)


def well_years(table_01: pd.DataFrame, table_07: pd.DataFrame) -> pd.DataFrame:
    """Activated wells with first-test year and plug year (9999 when never plugged)."""
    wells = _activated(table_01)
    year_w3 = _year_prefix(wells["UIC_W3_DATE"])
    wells["year_w3"] = year_w3.mask(year_w3 == 0, UNPLUGGED_YEAR)
    return wells.merge(first_test_years(table_07), on=CONTROL_FIELD, how="left")


def mit_failure_timeseries(
    table_01: pd.DataFrame,
    table_07: pd.DataFrame,
    snc_typed: pd.DataFrame,
    max_year: int | None = 2023,
) -> pd.DataFrame:
    """Percent of active wells with an MIT failure, per year and CO2 authorization."""
    failures = snc_typed[
        fill_false(snc_typed["UIC_ACTIVATED_FLAG"] == "Y")
        & fill_false(snc_typed[VIOL_TYPE_FIELD] == MIT_FAILURE)
    ].copy()
    failures[CO2_FIELD] = co2_label(failures["UIC_INJ_CO2"])
    # one count per well and year, however many failures it had
    failures = failures.drop_duplicates([CONTROL_FIELD, "year", CO2_FIELD])
    series = failures.groupby(["year", CO2_FIELD]).size().reset_index(name="n_mit_fail")

    wells = well_years(table_01, table_07)
    series["n_active"] = [
        int(
            (
                (wells[CO2_FIELD] == label)
                & (wells["year_first_test"] <= year)
                & (wells["year_w3"] >= year)
            ).sum()
        )
        for year, label in zip(series["year"], series[CO2_FIELD], strict=True)
    ]

    if max_year is not None:
        series = series[fill_false(series["year"] <= max_year)]
    denominator = series["n_active"].where(series["n_active"] > 0)
    series = series.assign(pct_mit_fail=series["n_mit_fail"] / denominator * 100)
    return series.reset_index(drop=True)
