#!/usr/bin/env python3
"""
Table Schemas for the Health and Democracy Panel

Each stage boundary of the pipeline is described by a ``TableSchema``: the
named columns a table must carry, the key that identifies a row and the
columns holding numeric measurements. Stages validate their input and output
against these schemas instead of relying on column names as an implicit
contract.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

import pandas as pd

from core.config import (
    COUNTRY_NAME, COUNTRY_CODE, YEAR, HEALTH_COLUMNS, DEMOCRACY_COLUMNS,
)
from core.exceptions import MissingColumnError, DuplicateKeyError


@dataclass(frozen=True)
class TableSchema:
    """Named, typed columns of a pipeline table"""
    name: str
    columns: Tuple[str, ...]
    key: Tuple[str, ...] = ()
    numeric: Tuple[str, ...] = ()
    unique_key: bool = False  # Whether `key` must identify at most one row

    def missing_columns(self, df: pd.DataFrame) -> List[str]:
        return [col for col in self.columns if col not in df.columns]

    def validate(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Check that a table satisfies this schema.

        Args:
            df: Table to check

        Returns:
            The same table, restricted to and ordered by the schema columns

        Raises:
            MissingColumnError: if any schema column is absent
            DuplicateKeyError: if ``unique_key`` is set and a key repeats
        """
        missing = self.missing_columns(df)
        if missing:
            raise MissingColumnError(self.name, missing)

        for col in self.numeric:
            if not pd.api.types.is_numeric_dtype(df[col]):
                raise TypeError(f"{self.name}: column '{col}' is not numeric ({df[col].dtype})")

        if self.unique_key:
            duplicated = df.duplicated(subset=list(self.key), keep=False)
            if duplicated.any():
                raise DuplicateKeyError(self.name, self.key, df.loc[duplicated, list(self.key)])

        return df[list(self.columns)]


WIDE_HEALTH = TableSchema(
    name="WideHealthRecord",
    columns=(COUNTRY_CODE, COUNTRY_NAME, YEAR, *HEALTH_COLUMNS),
    key=(COUNTRY_CODE, YEAR),
    numeric=tuple(HEALTH_COLUMNS),
    unique_key=True,
)

# (country_code, year) is the join key but is not guaranteed unique in V-Dem
DEMOGRAPHICS = TableSchema(
    name="DemographicsRecord",
    columns=(COUNTRY_NAME, COUNTRY_CODE, YEAR, *DEMOCRACY_COLUMNS),
    key=(COUNTRY_CODE, YEAR),
    numeric=tuple(DEMOCRACY_COLUMNS),
)

MERGED = TableSchema(
    name="MergedRecord",
    columns=(COUNTRY_CODE, COUNTRY_NAME, YEAR, *HEALTH_COLUMNS, *DEMOCRACY_COLUMNS),
    key=(COUNTRY_CODE, YEAR),
    numeric=tuple(HEALTH_COLUMNS + DEMOCRACY_COLUMNS),
)


def health_schema(series_columns: List[str]) -> TableSchema:
    """Wide health schema for a custom selection of series."""
    return TableSchema(
        name=WIDE_HEALTH.name,
        columns=(COUNTRY_CODE, COUNTRY_NAME, YEAR, *series_columns),
        key=WIDE_HEALTH.key,
        numeric=tuple(series_columns),
        unique_key=True,
    )


def demographics_schema(indicator_columns: List[str]) -> TableSchema:
    """Demographics schema for a custom selection of indicators."""
    return TableSchema(
        name=DEMOGRAPHICS.name,
        columns=(COUNTRY_NAME, COUNTRY_CODE, YEAR, *indicator_columns),
        key=DEMOGRAPHICS.key,
        numeric=tuple(indicator_columns),
    )


def merged_schema(health: TableSchema, demographics: TableSchema) -> TableSchema:
    """Schema of the inner join of a health and a demographics table."""
    return TableSchema(
        name=MERGED.name,
        columns=(COUNTRY_CODE, COUNTRY_NAME, YEAR, *health.numeric, *demographics.numeric),
        key=MERGED.key,
        numeric=health.numeric + demographics.numeric,
    )


@dataclass
class KeyHarmonization:
    """Outcome of comparing the two identifier families across sources"""
    name_overlap: int
    code_overlap: int
    preferred_family: str
    join_key: List[str] = field(default_factory=lambda: [COUNTRY_CODE, YEAR])

    def to_dict(self) -> dict:
        return {
            'name_overlap': self.name_overlap,
            'code_overlap': self.code_overlap,
            'preferred_family': self.preferred_family,
            'join_key': list(self.join_key),
        }
