#!/usr/bin/env python3
"""Centralized Path Management for the Health and Democracy Panel.

This module provides the default locations used across the project. The
pipeline itself never reads these directly: they only seed the defaults of
``SourceConfig`` so that every stage receives its paths explicitly.

Directory Structure:
    project_root/
    ├── analysis/       # Pipeline stages (load, reshape, merge, aggregate)
    ├── core/           # Paths, configuration, exceptions
    ├── models/         # Table schemas for each stage boundary
    ├── data/           # Raw input data
    │   ├── un_health_indicators.csv   # UN/WHO wide panel (one column per year)
    │   └── vdem_country_year.csv      # V-Dem democracy panel
    └── output/         # Exported merged table, aggregates and diagnostics

Usage:
    >>> from core.paths import DATA_DIR, OUTPUT_DIR
    >>> merged.to_csv(OUTPUT_DIR / "merged_panel.csv")
"""

from pathlib import Path

# ============================================================================
# Root Directory
# ============================================================================

# Project root is parent of core/ directory
PROJECT_ROOT = Path(__file__).parent.parent

# ============================================================================
# Input Data
# ============================================================================

DATA_DIR = PROJECT_ROOT / "data"
"""Root directory for the two raw input tables."""

UN_HEALTH_FILENAME = "un_health_indicators.csv"
"""UN/WHO health panel, wide by year (``X1960..YR1960.`` ... ``X2015..YR2015.``)."""

VDEM_FILENAME = "vdem_country_year.csv"
"""V-Dem country-year panel (several hundred columns)."""

# ============================================================================
# Output Directories
# ============================================================================

OUTPUT_DIR = PROJECT_ROOT / "output"
"""Exported tables for the presentation layer."""


def ensure_output_dir(output_dir: Path = OUTPUT_DIR) -> Path:
    """Create the output directory if it doesn't exist.

    Note:
        Does NOT create data/, as it should contain user-provided raw data.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


if __name__ == "__main__":
    """Print all configured paths for debugging if run as script."""
    print("=" * 80)
    print("Configured Paths for Health & Democracy Panel")
    print("=" * 80)
    print(f"\nProject Root: {PROJECT_ROOT}")
    print(f"\n  Data Directory: {DATA_DIR}")
    print(f"    UN health:  {DATA_DIR / UN_HEALTH_FILENAME}")
    print(f"    V-Dem:      {DATA_DIR / VDEM_FILENAME}")
    print(f"\n  Output Directory: {OUTPUT_DIR}")

    missing = [p for p in (DATA_DIR / UN_HEALTH_FILENAME, DATA_DIR / VDEM_FILENAME) if not p.exists()]
    if missing:
        print("✗ Missing input files:")
        for path in missing:
            print(f"    {path}")
    else:
        print("✓ All required input files found")
