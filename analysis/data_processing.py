#!/usr/bin/env python3
"""
This module loads and tidies the two raw inputs:

1. UN/WHO health indicators (wide, one column per year)
2. V-Dem country-year democracy panel

The UN table is reshaped to one row per country and year with one column per
series; the V-Dem table is projected down to the identifier columns and ten
indicators. Column names stay as in the sources; renaming to the shared
vocabulary is done by ``analysis.harmonization``.
"""

import csv
import io
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd
from structlog import get_logger

from analysis.diagnostics import DiagnosticsReport
from core.config import SourceConfig, UNHealthConfig, VDemConfig, YEAR
from core.exceptions import SourceNotFoundError, ParseError, MissingColumnError
from models.records import TableSchema

log = get_logger()

SERIES = 'series_name'
VALUE = 'value'

# Leading text of the notes DataBank appends after the data rows
FOOTER_PREFIXES = ('Data from database:', 'Last Updated:')


# ============================================================================
# Loader
# ============================================================================

def _record_widths(text: str, delimiter: str) -> List[List[str]]:
    """Split text into non-blank records, honouring quoted fields."""
    return [row for row in csv.reader(io.StringIO(text), delimiter=delimiter, skipinitialspace=True) if row]


def _strip_footer(records: List[List[str]], width: int) -> List[List[str]]:
    """Drop the trailing DataBank notes block (e.g. 'Last Updated: ...')."""
    end = len(records)
    while end > 1 and len(records[end - 1]) < width and records[end - 1][0].startswith(FOOTER_PREFIXES):
        end -= 1
    return records[:end]


def load_table(path: Path, delimiter: str = ',') -> pd.DataFrame:
    """
    Read a delimited file with every cell kept as a string (or missing).

    Every record must have as many fields as the header. The only exception
    is the notes block DataBank appends after the data, which is dropped.

    Args:
        path: File to read
        delimiter: Field delimiter

    Returns:
        Raw table, untyped

    Raises:
        SourceNotFoundError: if the file does not exist
        ParseError: if the file is empty, not text, or has malformed rows
    """
    path = Path(path)
    if not path.is_file():
        raise SourceNotFoundError(f"Input file {path} not found")

    try:
        with open(path, newline='', encoding='utf-8-sig') as fh:
            text = fh.read()
    except UnicodeDecodeError as e:
        raise ParseError(f"{path}: not a UTF-8 text file ({e.reason})") from e

    try:
        records = _record_widths(text, delimiter)
    except csv.Error as e:
        raise ParseError(f"{path}: {e}") from e
    if not records:
        raise ParseError(f"{path}: no columns to parse")

    width = len(records[0])
    records = _strip_footer(records, width)
    for number, record in enumerate(records[1:], start=1):
        if len(record) != width:
            raise ParseError(
                f"{path}: record {number} has {len(record)} field(s), header has {width}"
            )

    try:
        df = pd.read_csv(io.StringIO(text), sep=delimiter, dtype=str, skipinitialspace=True,
                         nrows=len(records) - 1)
    except pd.errors.EmptyDataError as e:
        raise ParseError(f"{path}: no columns to parse") from e
    except pd.errors.ParserError as e:
        raise ParseError(f"{path}: {e}") from e

    log.info("Loaded table", path=str(path), rows=len(df), columns=len(df.columns))
    return df


def load_sources(sources: SourceConfig) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Load the UN health table and the V-Dem table, in that order."""
    un_raw = load_table(sources.un_path, sources.delimiter)
    vdem_raw = load_table(sources.vdem_path, sources.delimiter)
    return un_raw, vdem_raw


def coerce_numeric(df: pd.DataFrame, columns: List[str]) -> Tuple[pd.DataFrame, int]:
    """
    Convert columns to numbers; values that fail to parse become missing.

    Returns:
        Converted copy of the table and the number of non-missing cells that
        could not be parsed
    """
    df = df.copy()
    if not columns:
        return df, 0
    present_before = df[columns].notna()
    df[columns] = df[columns].apply(pd.to_numeric, errors='coerce').astype('float64')
    coerced = int((present_before & df[columns].isna()).to_numpy().sum())
    return df, coerced


# ============================================================================
# UN Reshaper
# ============================================================================

class UNHealthReshaper:
    """Turns the wide UN table into one row per country and year"""

    def __init__(self, config: UNHealthConfig = None, diagnostics: Optional[DiagnosticsReport] = None):
        self.config = config or UNHealthConfig()
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsReport()
        self._year_label = re.compile(self.config.year_label_pattern)

    @property
    def id_columns(self) -> List[str]:
        return [self.config.country_name_column, self.config.country_code_column, self.config.series_name_column]

    @property
    def long_schema(self) -> TableSchema:
        cfg = self.config
        return TableSchema(
            name="LongRecord",
            columns=(cfg.country_name_column, cfg.country_code_column, YEAR, SERIES, VALUE),
            key=(cfg.country_code_column, YEAR, SERIES),
            numeric=(VALUE,),
            unique_key=True,
        )

    def year_columns(self, df: pd.DataFrame) -> Dict[str, int]:
        """Map each year column label (e.g. 'X1990..YR1990.') to its year."""
        years = {}
        for col in df.columns:
            m = self._year_label.match(str(col))
            if m:
                years[col] = int(m.group('year'))
        return years

    def to_long_records(self, raw: pd.DataFrame) -> pd.DataFrame:
        """
        Drop the series code, coerce year columns, melt and keep the series of interest.

        Args:
            raw: Raw UN table

        Returns:
            Long table with columns: country name, country code, year, series_name, value;
            cells with no value are left out

        Raises:
            MissingColumnError: if an identifier column or every year column is missing
        """
        cfg = self.config
        missing = [col for col in self.id_columns if col not in raw.columns]
        year_map = self.year_columns(raw)
        if not year_map:
            missing.append(f"<year columns matching {cfg.year_label_pattern}>")
        if missing:
            raise MissingColumnError("UN health table", missing)

        # Series code is administrative only
        df = raw.drop(columns=[cfg.series_code_column], errors='ignore')

        # Lenient parsing: '..' and other placeholders become missing
        df, coerced = coerce_numeric(df, list(year_map))
        self.diagnostics.record("un_reshape", "coerced_to_missing", coerced,
                                "non-numeric year-column values")

        # Convert to long format
        long_df = pd.melt(
            df,
            id_vars=self.id_columns,
            value_vars=list(year_map),
            var_name=YEAR,
            value_name=VALUE
        )
        long_df[YEAR] = long_df[YEAR].map(year_map).astype('int64')
        long_df = long_df.rename(columns={cfg.series_name_column: SERIES})

        # Keep the three series of interest only
        keep = long_df[SERIES].isin(list(cfg.series))
        dropped_series = long_df.loc[~keep, SERIES].dropna().unique()
        self.diagnostics.record("un_reshape", "series_dropped", len(dropped_series),
                                "series outside the selection")
        long_df = long_df[keep]

        # Rows without a country code cannot be joined
        no_code = long_df[cfg.country_code_column].isna()
        self.diagnostics.record("un_reshape", "missing_identifier", int(no_code.sum()),
                                "rows without a country code")
        long_df = self.long_schema.validate(long_df[~no_code])

        # A missing cell is not a record
        long_df = long_df.dropna(subset=[VALUE])
        return long_df.reset_index(drop=True)

    def pivot_series(self, long_df: pd.DataFrame) -> pd.DataFrame:
        """
        Pivot series into columns, one row per (country code, year).

        Raises:
            DuplicateKeyError: if a (country code, year, series) triple repeats
        """
        cfg = self.config
        name_col, code_col = cfg.country_name_column, cfg.country_code_column
        series_cols = list(cfg.series)
        long_df = self.long_schema.validate(long_df)

        if long_df.empty:
            wide = pd.DataFrame({
                code_col: pd.Series(dtype=object),
                name_col: pd.Series(dtype=object),
                YEAR: pd.Series(dtype='int64'),
                **{col: pd.Series(dtype='float64') for col in series_cols},
            })
            return wide

        wide = long_df.pivot(index=[code_col, YEAR], columns=SERIES, values=VALUE)
        wide = wide.reindex(columns=series_cols).reset_index()
        wide.columns.name = None

        names = long_df.drop_duplicates(subset=[code_col])[[code_col, name_col]]
        wide = wide.merge(names, on=code_col, how='left', validate='many_to_one')
        wide[series_cols] = wide[series_cols].astype('float64')

        return wide[[code_col, name_col, YEAR, *series_cols]]

    def reshape(self, raw: pd.DataFrame) -> pd.DataFrame:
        """Full UN reshape: raw wide table -> one row per country and year."""
        wide = self.pivot_series(self.to_long_records(raw))
        log.info("Reshaped UN health table", rows=len(wide),
                 countries=wide[self.config.country_code_column].nunique())
        return wide

    def to_long(self, wide: pd.DataFrame) -> pd.DataFrame:
        """Melt a reshaped health table back into long records."""
        cfg = self.config
        series_cols = [col for col in cfg.series if col in wide.columns]
        long_df = pd.melt(
            wide,
            id_vars=[cfg.country_name_column, cfg.country_code_column, YEAR],
            value_vars=series_cols,
            var_name=SERIES,
            value_name=VALUE
        )
        long_df = long_df.dropna(subset=[VALUE]).reset_index(drop=True)
        return long_df[[cfg.country_name_column, cfg.country_code_column, YEAR, SERIES, VALUE]]


# ============================================================================
# VDEM Selector
# ============================================================================

def normalize_year(values: pd.Series, table: str) -> pd.Series:
    """
    Parse a year column as int64.

    Raises:
        ParseError: if any year is missing, non-numeric or fractional
    """
    years = pd.to_numeric(values, errors='coerce')
    bad = years.isna() | (years % 1 != 0)
    if bad.any():
        examples = values[bad].head(5).tolist()
        raise ParseError(f"{table}: {int(bad.sum())} unparseable year value(s), e.g. {examples}")
    return years.astype('int64')


class VDemSelector:
    """Projects the V-Dem panel onto the 13 whitelisted columns"""

    def __init__(self, config: VDemConfig = None, diagnostics: Optional[DiagnosticsReport] = None):
        self.config = config or VDemConfig()
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsReport()

    def select(self, raw: pd.DataFrame) -> pd.DataFrame:
        """
        Keep the whitelisted columns, coerce indicators and normalize the year.

        Raises:
            MissingColumnError: if any whitelisted column is absent
            ParseError: if a year value cannot be read as an integer
        """
        cfg = self.config
        missing = [col for col in cfg.whitelist if col not in raw.columns]
        if missing:
            raise MissingColumnError("V-Dem table", missing)

        df = raw[cfg.whitelist]
        df, coerced = coerce_numeric(df, list(cfg.indicators))
        self.diagnostics.record("vdem_select", "coerced_to_missing", coerced,
                                "non-numeric indicator values")
        df[cfg.year_column] = normalize_year(df[cfg.year_column], "V-Dem table")

        log.info("Selected V-Dem columns", rows=len(df), columns=len(df.columns))
        return df.reset_index(drop=True)
