#!/usr/bin/env python3
"""
Key Harmonization

Compares the two identifier families (country name, country code) across the
UN and V-Dem tables and renames both tables to the shared vocabulary.

The join key is always (country_code, year). The overlap of each identifier
family is still computed and reported: on the worked dataset codes match
161 countries against 145 for names, which is why codes are used.
"""

from typing import Optional, Tuple

import pandas as pd
from structlog import get_logger

from analysis.diagnostics import DiagnosticsReport
from core.config import UNHealthConfig, VDemConfig, COUNTRY_NAME, COUNTRY_CODE, YEAR
from models.records import KeyHarmonization, health_schema, demographics_schema

log = get_logger()

# Year representation shared by both tables
YEAR_DTYPE = 'int64'


def identifier_overlap(left: pd.Series, right: pd.Series) -> int:
    """Number of distinct non-missing identifiers present in both columns."""
    return len(set(left.dropna().unique()) & set(right.dropna().unique()))


def choose_join_key(name_overlap: int, code_overlap: int) -> KeyHarmonization:
    """
    Report which identifier family overlaps more; the join key stays on codes.

    Ties favour country codes.
    """
    preferred = COUNTRY_NAME if name_overlap > code_overlap else COUNTRY_CODE
    result = KeyHarmonization(
        name_overlap=name_overlap,
        code_overlap=code_overlap,
        preferred_family=preferred,
    )
    if preferred != COUNTRY_CODE:
        log.warning(
            "Country names overlap more than codes; joining on codes anyway",
            name_overlap=name_overlap, code_overlap=code_overlap,
        )
    else:
        log.info("Joining on country code", name_overlap=name_overlap, code_overlap=code_overlap)
    return result


class KeyHarmonizer:
    """Aligns the reshaped UN table and the V-Dem projection on one vocabulary"""

    def __init__(self, un_config: UNHealthConfig = None, vdem_config: VDemConfig = None,
                 diagnostics: Optional[DiagnosticsReport] = None):
        self.un_config = un_config or UNHealthConfig()
        self.vdem_config = vdem_config or VDemConfig()
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsReport()

    def compare_identifiers(self, health: pd.DataFrame, democracy: pd.DataFrame) -> KeyHarmonization:
        """Compute name and code overlap between the two source tables."""
        name_overlap = identifier_overlap(
            health[self.un_config.country_name_column], democracy[self.vdem_config.country_name_column]
        )
        code_overlap = identifier_overlap(
            health[self.un_config.country_code_column], democracy[self.vdem_config.country_code_column]
        )
        return choose_join_key(name_overlap, code_overlap)

    def rename_health(self, health: pd.DataFrame) -> pd.DataFrame:
        cfg = self.un_config
        df = health.rename(columns={
            cfg.country_name_column: COUNTRY_NAME,
            cfg.country_code_column: COUNTRY_CODE,
            **cfg.series,
        })
        df[YEAR] = df[YEAR].astype(YEAR_DTYPE)
        return health_schema(list(cfg.series.values())).validate(df)

    def rename_democracy(self, democracy: pd.DataFrame) -> pd.DataFrame:
        cfg = self.vdem_config
        df = democracy.rename(columns={
            cfg.country_name_column: COUNTRY_NAME,
            cfg.country_code_column: COUNTRY_CODE,
            cfg.year_column: YEAR,
            **cfg.indicators,
        })
        df[YEAR] = df[YEAR].astype(YEAR_DTYPE)
        return demographics_schema(list(cfg.indicators.values())).validate(df)

    def harmonize(self, health: pd.DataFrame,
                  democracy: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame, KeyHarmonization]:
        """
        Compare identifiers, then rename both tables to the shared vocabulary.

        Args:
            health: Reshaped UN table (source column names)
            democracy: V-Dem projection (source column names)

        Returns:
            (health, democracy, key report) with renamed columns and int64 years
        """
        keys = self.compare_identifiers(health, democracy)
        return self.rename_health(health), self.rename_democracy(democracy), keys
