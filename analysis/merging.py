#!/usr/bin/env python3
"""
Merge of the health and democracy tables

Inner join on (country_code, year). The UN country name is canonical: after
the join both name spellings are compared, differing rows are reported as
mismatches and kept, and the V-Dem spelling is dropped.

Keeping one side's name unconditionally is a deliberate choice. Mismatches
seen on the worked dataset are spelling variants (e.g. "Egypt, Arab Rep."
vs "Egypt"), not different countries under one code.
"""

from dataclasses import dataclass
from typing import List, Optional

import pandas as pd
from structlog import get_logger

from analysis.diagnostics import DiagnosticsReport
from core.config import COUNTRY_NAME, COUNTRY_CODE, YEAR
from models.records import TableSchema, MERGED

log = get_logger()

JOIN_KEY = [COUNTRY_CODE, YEAR]
ALT_NAME = f"{COUNTRY_NAME}_vdem"


@dataclass
class MergeResult:
    """Merged table plus the name-mismatch audit"""
    table: pd.DataFrame
    mismatches: pd.DataFrame

    @property
    def mismatched_countries(self) -> List[str]:
        return sorted(self.mismatches[COUNTRY_CODE].unique())


def find_name_mismatches(merged: pd.DataFrame) -> pd.DataFrame:
    """Rows whose UN and V-Dem country names differ (missing on one side counts)."""
    left, right = merged[COUNTRY_NAME], merged[ALT_NAME]
    differ = (left != right) & ~(left.isna() & right.isna())
    return merged.loc[differ, [COUNTRY_CODE, YEAR, COUNTRY_NAME, ALT_NAME]].reset_index(drop=True)


class Merger:
    """Joins the harmonized health and democracy tables"""

    def __init__(self, schema: TableSchema = MERGED, diagnostics: Optional[DiagnosticsReport] = None):
        self.schema = schema
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsReport()

    def merge(self, health: pd.DataFrame, democracy: pd.DataFrame) -> MergeResult:
        """
        Inner join on (country_code, year) and audit country names.

        Args:
            health: Harmonized health table, unique on (country_code, year)
            democracy: Harmonized democracy table

        Returns:
            MergeResult with the merged table (one name column) and mismatches

        Raises:
            pandas.errors.MergeError: if the health table repeats a key
        """
        merged = pd.merge(
            health,
            democracy,
            on=JOIN_KEY,
            how='inner',
            suffixes=('', '_vdem'),
            validate='one_to_many'
        )

        # Rows without a counterpart are dropped, not imputed
        self.diagnostics.record("merge", "unmatched_rows", len(health) - _matched(health, merged),
                                "UN rows without a V-Dem counterpart")
        self.diagnostics.record("merge", "unmatched_rows", len(democracy) - _matched(democracy, merged),
                                "V-Dem rows without a UN counterpart")

        mismatches = find_name_mismatches(merged)
        if not mismatches.empty:
            pairs = mismatches[[COUNTRY_CODE, COUNTRY_NAME, ALT_NAME]].drop_duplicates()
            log.warning(
                "Country names differ between sources; keeping UN spelling",
                rows=len(mismatches),
                countries=pairs[COUNTRY_CODE].nunique(),
            )
            self.diagnostics.record("merge", "name_mismatch", len(mismatches),
                                    ", ".join(f"{r[COUNTRY_CODE]}: {r[COUNTRY_NAME]!r} vs {r[ALT_NAME]!r}"
                                              for _, r in pairs.iterrows()))

        merged = merged.drop(columns=[ALT_NAME])
        merged = self.schema.validate(merged).reset_index(drop=True)
        log.info("Merged health and democracy tables", rows=len(merged),
                 countries=merged[COUNTRY_CODE].nunique())
        return MergeResult(table=merged, mismatches=mismatches)


def _matched(side: pd.DataFrame, merged: pd.DataFrame) -> int:
    """Rows of one input that found a partner in the merged table."""
    keys = merged[JOIN_KEY].drop_duplicates()
    return len(side.merge(keys, on=JOIN_KEY, how='inner'))
