#!/usr/bin/env python3
"""
Pipeline orchestration

Runs every stage in order:

    load -> {UN reshape, V-Dem select} -> harmonize keys -> merge -> aggregate

Each stage receives its inputs explicitly and returns a new table; nothing
is read back from a later stage.
"""

from dataclasses import dataclass
from typing import Tuple

import pandas as pd
from structlog import get_logger

from analysis.aggregation import Aggregator
from analysis.data_processing import load_sources, UNHealthReshaper, VDemSelector
from analysis.diagnostics import DiagnosticsReport
from analysis.harmonization import KeyHarmonizer
from analysis.merging import Merger
from core.config import PipelineConfig
from models.records import KeyHarmonization, health_schema, demographics_schema, merged_schema

log = get_logger()


@dataclass
class PipelineResult:
    """Everything handed to the presentation layer"""
    merged: pd.DataFrame
    by_year: pd.DataFrame
    by_country: pd.DataFrame
    coverage: pd.DataFrame
    keys: KeyHarmonization
    mismatches: pd.DataFrame
    diagnostics: DiagnosticsReport


class HealthDemocracyPipeline:
    """Coordinates the tidy/merge/aggregate stages for one configuration"""

    def __init__(self, config: PipelineConfig = None):
        self.config = config or PipelineConfig()
        self.diagnostics = DiagnosticsReport()
        self.reshaper = UNHealthReshaper(self.config.un_health, self.diagnostics)
        self.selector = VDemSelector(self.config.vdem, self.diagnostics)
        self.harmonizer = KeyHarmonizer(self.config.un_health, self.config.vdem, self.diagnostics)
        self.merger = Merger(
            merged_schema(
                health_schema(list(self.config.un_health.series.values())),
                demographics_schema(list(self.config.vdem.indicators.values())),
            ),
            self.diagnostics,
        )
        self.aggregator = Aggregator(self.diagnostics)

    def tidy(self, un_raw: pd.DataFrame,
             vdem_raw: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame, KeyHarmonization]:
        """Reshape, select and harmonize both raw tables."""
        health = self.reshaper.reshape(un_raw)
        democracy = self.selector.select(vdem_raw)
        return self.harmonizer.harmonize(health, democracy)

    def run_tables(self, un_raw: pd.DataFrame, vdem_raw: pd.DataFrame) -> PipelineResult:
        """Run every stage after loading, on tables already in memory."""
        health, democracy, keys = self.tidy(un_raw, vdem_raw)
        merge = self.merger.merge(health, democracy)

        agg = self.config.aggregation
        by_year = self.aggregator.by_year(merge.table, agg.by_year_columns, sort=agg.sort)
        by_country = self.aggregator.by_country(merge.table, agg.by_country_columns, sort=agg.sort)
        coverage = self.aggregator.coverage(merge.table)

        log.info("Pipeline finished", merged_rows=len(merge.table), issues=len(self.diagnostics))
        return PipelineResult(
            merged=merge.table,
            by_year=by_year,
            by_country=by_country,
            coverage=coverage,
            keys=keys,
            mismatches=merge.mismatches,
            diagnostics=self.diagnostics,
        )

    def run(self) -> PipelineResult:
        """Load both sources from the configured directory and run every stage."""
        un_raw, vdem_raw = load_sources(self.config.sources)
        return self.run_tables(un_raw, vdem_raw)
