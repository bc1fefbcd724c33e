#!/usr/bin/env python3
"""
Main Execution Script for the Health and Democracy Panel

This script loads the UN health indicators and the V-Dem panel, builds the
merged country-year table and its grouped summaries, and optionally exports
them for charting.
"""

import argparse
from pathlib import Path
from typing import Dict

import pandas as pd

from analysis.pipeline import HealthDemocracyPipeline, PipelineResult
from core.config import PipelineConfig, SourceConfig, AggregationConfig
from core.exceptions import PipelineError
from core.paths import DATA_DIR, OUTPUT_DIR, UN_HEALTH_FILENAME, VDEM_FILENAME, ensure_output_dir


class HealthDemocracyAnalysis:
    """Main analysis class that runs the pipeline and exports its tables"""

    def __init__(self, config: PipelineConfig = None, output_dir: str = str(OUTPUT_DIR)):
        """
        Initialize the analysis

        Args:
            config: Pipeline configuration (data directory, columns, aggregation)
            output_dir: Directory for exported tables
        """
        self.config = config or PipelineConfig()
        self.output_dir = Path(output_dir)

    def _export_results(self, results: pd.DataFrame, filename: str):
        """Export results to CSV file"""
        ensure_output_dir(self.output_dir)
        results.to_csv(self.output_dir / filename, index=False)
        print(f"Results exported to {self.output_dir / filename}")

    def run(self) -> PipelineResult:
        """Run the full pipeline and print a short summary."""
        print(f"Loading data from {self.config.sources.data_dir}...")
        result = HealthDemocracyPipeline(self.config).run()

        keys = result.keys
        print(f"Country name overlap: {keys.name_overlap}, country code overlap: {keys.code_overlap} "
              f"(joining on {', '.join(keys.join_key)})")
        print(f"Merged table: {len(result.merged)} rows, "
              f"{result.merged['country_code'].nunique()} countries")
        if not result.mismatches.empty:
            print(f"Warning: {result.mismatches['country_code'].nunique()} countries spelled differently "
                  f"in the two sources (UN spelling kept)")
        for issue in result.diagnostics.issues:
            print(f"  [{issue.stage}] {issue.kind}: {issue.count} {issue.detail}")
        return result

    def export(self, result: PipelineResult) -> Dict[str, Path]:
        """
        Export all pipeline tables.

        Saves the following outputs to the output directory:
            "merged_panel.csv"
            "means_by_year.csv"
            "means_by_country.csv"
            "coverage.csv"
            "name_mismatches.csv"
            "diagnostics.csv"
        """
        tables = {
            "merged_panel.csv": result.merged,
            "means_by_year.csv": result.by_year,
            "means_by_country.csv": result.by_country,
            "coverage.csv": result.coverage,
            "name_mismatches.csv": result.mismatches,
            "diagnostics.csv": result.diagnostics.to_frame(),
        }
        for filename, table in tables.items():
            self._export_results(table, filename)
        return {filename: self.output_dir / filename for filename in tables}


def build_config(args: argparse.Namespace) -> PipelineConfig:
    """Pipeline configuration from command-line arguments."""
    return PipelineConfig(
        sources=SourceConfig(
            data_dir=Path(args.data_dir),
            un_filename=args.un_file,
            vdem_filename=args.vdem_file,
        ),
        aggregation=AggregationConfig(sort=args.sort),
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Health and Democracy Panel")
    parser.add_argument("--data_dir", default=str(DATA_DIR), help="Directory containing both input files")
    parser.add_argument("--un_file", default=UN_HEALTH_FILENAME, help="UN health indicators file name")
    parser.add_argument("--vdem_file", default=VDEM_FILENAME, help="V-Dem panel file name")
    parser.add_argument("--output_dir", default=str(OUTPUT_DIR), help="Directory for exported tables")
    parser.add_argument("--export", action="store_true", help="Export merged table, aggregates and diagnostics")
    parser.add_argument("--no_sort", dest="sort", action="store_false", help="Leave aggregate rows unsorted")
    parser.add_argument("--show_config", action="store_true", help="Print the configuration and exit")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main function"""
    args = parse_args(argv)
    config = build_config(args)

    if args.show_config:
        config.describe_all()
        return 0

    analysis = HealthDemocracyAnalysis(config, args.output_dir)
    try:
        result = analysis.run()
    except PipelineError as e:
        print(f"Error: {e}")
        return 1

    if args.export:
        analysis.export(result)

    print("Analysis completed successfully!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
