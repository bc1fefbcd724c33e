import numpy as np
import pandas as pd
import pytest

from analysis.diagnostics import DiagnosticsReport
from core.config import PipelineConfig, DEMOCRACY_COLUMNS

PHYSICIANS = "Physicians (per 1,000 people)"
HEALTH_EXP = "Health expenditure per capita (current US$)"
UNDERNOURISHMENT = "Prevalence of undernourishment (% of population)"

SERIES_CODES = {
    PHYSICIANS: "SH.MED.PHYS.ZS",
    HEALTH_EXP: "SH.XPD.PCAP",
    UNDERNOURISHMENT: "SN.ITK.DEFC.ZS",
    "GDP (current US$)": "NY.GDP.MKTP.CD",
}

VDEM_SOURCE_COLUMNS = list(PipelineConfig().vdem.indicators)


def make_un_raw(rows, years=(2000, 2001)):
    """Raw UN table (all strings) from (name, code, series, {year: value}) tuples."""
    records = []
    for name, code, series, values in rows:
        record = {
            "Country Name": name,
            "Country Code": code,
            "Series Name": series,
            "Series Code": SERIES_CODES.get(series, "XX.UNKNOWN"),
        }
        for year in years:
            value = values.get(year, "..")
            record[f"X{year}..YR{year}."] = value
        records.append(record)
    return pd.DataFrame(records, dtype=object)


def make_vdem_raw(rows):
    """Raw V-Dem table from (name, code, year, {tidy indicator: value}) tuples."""
    tidy_to_source = {tidy: source for source, tidy in PipelineConfig().vdem.indicators.items()}
    records = []
    for name, code, year, values in rows:
        record = {"country_name": name, "country_text_id": code, "year": str(year), "v2x_polyarchy": "0.5"}
        for tidy in DEMOCRACY_COLUMNS:
            record[tidy_to_source[tidy]] = values.get(tidy, np.nan)
        records.append(record)
    return pd.DataFrame(records, dtype=object)


@pytest.fixture
def un_raw():
    return make_un_raw([
        ("United States", "USA", PHYSICIANS, {2000: "2.5", 2001: "2.6"}),
        ("United States", "USA", HEALTH_EXP, {2000: "4000", 2001: "4200"}),
        ("United States", "USA", UNDERNOURISHMENT, {2000: "..", 2001: ".."}),
        ("United States", "USA", "GDP (current US$)", {2000: "1.0e13", 2001: "1.1e13"}),
        ("France", "FRA", PHYSICIANS, {2000: "3.3", 2001: "3.4"}),
        ("France", "FRA", HEALTH_EXP, {2000: "2200", 2001: "n/a"}),
        ("France", "FRA", UNDERNOURISHMENT, {2000: "2.5", 2001: "2.5"}),
        ("Japan", "JPN", PHYSICIANS, {2000: "1.9", 2001: "2.0"}),
        ("Japan", "JPN", HEALTH_EXP, {2000: "2800", 2001: "2600"}),
        ("Japan", "JPN", UNDERNOURISHMENT, {2000: "2.5", 2001: "2.5"}),
    ])


@pytest.fixture
def vdem_raw():
    return make_vdem_raw([
        ("United States", "USA", 2000, {"freedom_of_expression": "0.9", "gdp_per_capita": "45000"}),
        ("United States", "USA", 2001, {"freedom_of_expression": "0.91", "gdp_per_capita": "45500"}),
        ("French Republic", "FRA", 2000, {"freedom_of_expression": "0.85", "political_corruption": "0.1"}),
        ("French Republic", "FRA", 2001, {"freedom_of_expression": "0.86", "political_corruption": "0.1"}),
        ("Germany", "DEU", 2000, {"freedom_of_expression": "0.92"}),
    ])


@pytest.fixture
def diagnostics():
    return DiagnosticsReport()
