#!/usr/bin/env python3
"""
Grouped summaries of the merged panel.

Means are taken over non-missing values only. A group with no valid value
for a column gets a missing mean (NaN), never zero.
"""

from typing import List, Optional, Sequence

import pandas as pd
from structlog import get_logger

from analysis.diagnostics import DiagnosticsReport
from core.config import COUNTRY_CODE, YEAR
from core.exceptions import MissingColumnError

log = get_logger()

GROUP_KEYS = (YEAR, COUNTRY_CODE)


class Aggregator:
    """Per-year and per-country means for the presentation layer"""

    def __init__(self, diagnostics: Optional[DiagnosticsReport] = None):
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsReport()

    @staticmethod
    def _check_columns(table: pd.DataFrame, by: str, columns: Sequence[str]) -> List[str]:
        if by not in GROUP_KEYS:
            raise ValueError(f"Grouping key must be one of {list(GROUP_KEYS)}, got '{by}'")
        columns = list(columns)
        missing = [col for col in [by, *columns] if col not in table.columns]
        if missing:
            raise MissingColumnError("merged table", missing)
        non_numeric = [col for col in columns if not pd.api.types.is_numeric_dtype(table[col])]
        if non_numeric:
            raise ValueError(f"Cannot average non-numeric column(s) {non_numeric}")
        return columns

    def aggregate(self, table: pd.DataFrame, by: str, columns: Sequence[str],
                  sort: bool = False) -> pd.DataFrame:
        """
        Mean of each column per distinct value of ``by``.

        Args:
            table: Merged table
            by: 'year' or 'country_code'
            columns: Numeric columns to average
            sort: Sort rows by group key (otherwise order is unspecified)

        Returns:
            One row per group: the group key followed by one mean per column
        """
        columns = self._check_columns(table, by, columns)

        means = (
            table.groupby(by, sort=sort)[columns]
            .mean()
            .reset_index()
        )

        all_missing = means[columns].isna()
        for col in columns:
            self.diagnostics.record("aggregate", "all_missing_group", int(all_missing[col].sum()),
                                    f"{col} by {by}")

        log.info("Aggregated merged table", by=by, groups=len(means), columns=len(columns))
        return means

    def by_year(self, table: pd.DataFrame, columns: Sequence[str], sort: bool = False) -> pd.DataFrame:
        return self.aggregate(table, YEAR, columns, sort=sort)

    def by_country(self, table: pd.DataFrame, columns: Sequence[str], sort: bool = False) -> pd.DataFrame:
        return self.aggregate(table, COUNTRY_CODE, columns, sort=sort)

    @staticmethod
    def coverage(table: pd.DataFrame, columns: Sequence[str] = None) -> pd.DataFrame:
        """
        Share of non-missing values per column.

        Returns:
            DataFrame with columns: column, non_missing, rows, coverage_pct
        """
        columns = list(columns) if columns is not None else list(table.columns)
        rows = len(table)
        cov = pd.DataFrame({
            'column': columns,
            'non_missing': [int(table[col].notna().sum()) for col in columns],
        })
        cov['rows'] = rows
        cov['coverage_pct'] = cov['non_missing'] * 100 / rows if rows else float('nan')
        return cov.sort_values('coverage_pct', ascending=False, kind='stable').reset_index(drop=True)
