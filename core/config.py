#!/usr/bin/env python3
"""Pipeline Configuration and Column Documentation.

This module centralizes everything the pipeline needs to know about its two
sources, using Pydantic for validation and documentation.

Key features:
- Type validation and coercion
- Immutable configuration (frozen=True)
- Source column names mapped to the shared tidy vocabulary in one place
- Programmatic access to documentation

Settings are organized by category:
- Sources: Data directory and input file names
- UN health: Identifier columns, year-label pattern and the three series kept
- V-Dem: Identifier columns and the ten indicators projected
- Aggregation: Columns averaged by year and by country

Usage:
    >>> from core.config import PipelineConfig
    >>> config = PipelineConfig(sources={'data_dir': 'data'})
    >>> config.un_health.series  # source series name -> tidy column
    >>> config.un_health.describe('year_label_pattern')
"""

import re
from pathlib import Path
from typing import Dict, Any, List

from pydantic import BaseModel, Field, field_validator

from core.paths import DATA_DIR, UN_HEALTH_FILENAME, VDEM_FILENAME


# ============================================================================
# Shared Vocabulary
# ============================================================================

COUNTRY_NAME = 'country_name'
COUNTRY_CODE = 'country_code'
YEAR = 'year'

HEALTH_COLUMNS = ['physicians_per_1000', 'health_expenditure_per_capita', 'undernourishment_pct']

DEMOCRACY_COLUMNS = [
    'freedom_of_expression', 'individual_liberty', 'equal_resource_distribution',
    'political_corruption', 'education_inequality', 'literate_share',
    'gdp_per_capita', 'income_inequality', 'male_life_expectancy', 'female_life_expectancy',
]


class _Describable(BaseModel):
    """Adds ``describe`` to configuration sections."""

    model_config = {'frozen': True, 'extra': 'forbid'}

    def describe(self, param_name: str) -> None:
        """Print documentation for a setting."""
        if param_name not in type(self).model_fields:
            raise ValueError(f"Unknown setting: {param_name}")

        field_info = type(self).model_fields[param_name]
        extra = field_info.json_schema_extra or {}

        print(f"\n{'=' * 70}")
        print(f"Setting: {param_name}")
        print(f"{'=' * 70}")
        print(f"Value: {getattr(self, param_name)}")
        print(f"\nDescription:")
        print(f"  {field_info.description}")
        if 'source' in extra:
            print(f"\nSource:")
            print(f"  {extra['source']}")
        if 'notes' in extra:
            print(f"\nNotes:")
            print(f"  {extra['notes']}")
        print(f"{'=' * 70}\n")


# ============================================================================
# Input Sources
# ============================================================================

class SourceConfig(_Describable):
    """Where the two raw tables live. Passed to the loader explicitly."""

    data_dir: Path = Field(
        default=DATA_DIR,
        description="Directory holding both raw input files.",
        json_schema_extra={'notes': 'The only configuration input exposed on the command line by default'},
    )

    un_filename: str = Field(
        default=UN_HEALTH_FILENAME,
        min_length=1,
        description="UN/WHO health panel, one column per year.",
    )

    vdem_filename: str = Field(
        default=VDEM_FILENAME,
        min_length=1,
        description="V-Dem country-year panel.",
    )

    delimiter: str = Field(
        default=',',
        min_length=1,
        max_length=1,
        description="Field delimiter shared by both files.",
    )

    @property
    def un_path(self) -> Path:
        return Path(self.data_dir) / self.un_filename

    @property
    def vdem_path(self) -> Path:
        return Path(self.data_dir) / self.vdem_filename


# ============================================================================
# UN Health Panel
# ============================================================================

class UNHealthConfig(_Describable):
    """Layout of the UN/WHO wide table and the series kept from it."""

    country_name_column: str = Field(
        default='Country Name',
        description="Country name identifier column.",
    )

    country_code_column: str = Field(
        default='Country Code',
        description="ISO3 country code identifier column.",
    )

    series_name_column: str = Field(
        default='Series Name',
        description="Indicator (series) name column.",
    )

    series_code_column: str = Field(
        default='Series Code',
        description="Indicator code column. Administrative only, dropped before reshaping.",
    )

    year_label_pattern: str = Field(
        default=r'^X?(?P<year>\d{4})(?:\.\.YR(?P=year)\.| \[YR(?P=year)\])$',
        description="Regular expression matching year column labels; the 'year' group is the year.",
        json_schema_extra={
            'source': 'World Development Indicators DataBank export',
            'notes': "Matches both 'X1960..YR1960.' (R-style names) and the raw export label '1960 [YR1960]'",
        }
    )

    series: Dict[str, str] = Field(
        default={
            'Physicians (per 1,000 people)': 'physicians_per_1000',
            'Health expenditure per capita (current US$)': 'health_expenditure_per_capita',
            'Prevalence of undernourishment (% of population)': 'undernourishment_pct',
        },
        description="The three series of interest, mapped to their tidy column names. Any other series is dropped.",
        json_schema_extra={'source': 'World Development Indicators series names'},
    )

    @field_validator('year_label_pattern')
    @classmethod
    def _pattern_has_year_group(cls, v: str) -> str:
        if 'year' not in re.compile(v).groupindex:
            raise ValueError("year_label_pattern must define a named group 'year'")
        return v

    @field_validator('series')
    @classmethod
    def _series_are_distinct(cls, v: Dict[str, str]) -> Dict[str, str]:
        if not v:
            raise ValueError("At least one series must be selected")
        if len(set(v.values())) != len(v):
            raise ValueError("Series must map to distinct tidy column names")
        return v


# ============================================================================
# V-Dem Panel
# ============================================================================

class VDemConfig(_Describable):
    """Whitelist of V-Dem columns projected into the demographics table."""

    country_name_column: str = Field(default='country_name', description="Country name column.")

    country_code_column: str = Field(default='country_text_id', description="ISO3-like country code column.")

    year_column: str = Field(default='year', description="Observation year column.")

    indicators: Dict[str, str] = Field(
        default={
            'v2x_freexp_altinf': 'freedom_of_expression',
            'v2xcl_rol': 'individual_liberty',
            'v2xeg_eqdr': 'equal_resource_distribution',
            'v2x_corr': 'political_corruption',
            'e_peedgini': 'education_inequality',
            'e_peaveduc': 'literate_share',
            'e_migdppc': 'gdp_per_capita',
            'e_peginiwi': 'income_inequality',
            'e_pemaliex': 'male_life_expectancy',
            'e_pefeliex': 'female_life_expectancy',
        },
        description="The ten indicator columns kept from V-Dem, mapped to their tidy column names.",
        json_schema_extra={
            'source': 'V-Dem Country-Year dataset codebook',
            'notes': 'A missing whitelisted column is treated as schema drift and stops the pipeline',
        }
    )

    @property
    def whitelist(self) -> List[str]:
        """All 13 projected columns in output order."""
        return [self.country_name_column, self.country_code_column, self.year_column, *self.indicators]

    @field_validator('indicators')
    @classmethod
    def _indicators_are_distinct(cls, v: Dict[str, str]) -> Dict[str, str]:
        if len(set(v.values())) != len(v):
            raise ValueError("Indicators must map to distinct tidy column names")
        return v


# ============================================================================
# Aggregation
# ============================================================================

class AggregationConfig(_Describable):
    """Columns summarised for the presentation layer."""

    by_year_columns: List[str] = Field(
        default=['physicians_per_1000', 'health_expenditure_per_capita', 'undernourishment_pct',
                 'freedom_of_expression', 'political_corruption'],
        description="Columns averaged per year.",
    )

    by_country_columns: List[str] = Field(
        default=['physicians_per_1000', 'health_expenditure_per_capita', 'undernourishment_pct',
                 'freedom_of_expression', 'gdp_per_capita', 'income_inequality'],
        description="Columns averaged per country code.",
    )

    sort: bool = Field(
        default=True,
        description="Stable-sort aggregate rows by group key.",
    )


# ============================================================================
# Main Configuration Class
# ============================================================================

class PipelineConfig(BaseModel):
    """Complete pipeline configuration.

    Usage:
        >>> config = PipelineConfig()
        >>> config.sources.un_path
        >>> config.to_dict()
    """

    model_config = {'frozen': True}

    sources: SourceConfig = Field(default_factory=SourceConfig, description="Input files")

    un_health: UNHealthConfig = Field(default_factory=UNHealthConfig, description="UN health panel layout")

    vdem: VDemConfig = Field(default_factory=VDemConfig, description="V-Dem projection")

    aggregation: AggregationConfig = Field(default_factory=AggregationConfig, description="Grouped means")

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Export all settings as a nested dictionary."""
        return {
            'sources': self.sources.model_dump(mode='json'),
            'un_health': self.un_health.model_dump(),
            'vdem': self.vdem.model_dump(),
            'aggregation': self.aggregation.model_dump(),
        }

    def describe_all(self) -> None:
        """Print documentation for all settings in all categories."""
        for category_name in ['sources', 'un_health', 'vdem', 'aggregation']:
            category = getattr(self, category_name)
            print(f"\n{'#' * 70}")
            print(f"# {category_name.upper().replace('_', ' ')}")
            print(f"{'#' * 70}")
            for param_name in type(category).model_fields.keys():
                category.describe(param_name)


if __name__ == "__main__":
    """Print all settings when run as script."""
    config = PipelineConfig()

    print("=" * 80)
    print("PIPELINE SETTINGS")
    print("=" * 80)
    for category_name, values in config.to_dict().items():
        print(f"\n{category_name.upper()}")
        print("-" * 80)
        for param_name, value in values.items():
            print(f"  {param_name:20s} = {value}")
    print("=" * 80)
