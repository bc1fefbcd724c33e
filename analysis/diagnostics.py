#!/usr/bin/env python3
"""
Data-quality diagnostics

Row-level problems never stop the pipeline. Each stage records them here as
``DataQualityIssue`` entries (values coerced to missing, series dropped,
rows without a counterpart in the other source, country-name mismatches,
groups with no valid observation) and keeps going.
"""

from dataclasses import dataclass, asdict
from typing import List, Optional

import pandas as pd
from structlog import get_logger

log = get_logger()


@dataclass(frozen=True)
class DataQualityIssue:
    """A recoverable, row-level issue found by a pipeline stage"""
    stage: str
    kind: str
    count: int
    detail: str = ""


class DiagnosticsReport:
    """Collects data-quality issues across all stages of one pipeline run"""

    def __init__(self):
        self.issues: List[DataQualityIssue] = []

    def record(self, stage: str, kind: str, count: int, detail: str = "") -> Optional[DataQualityIssue]:
        """
        Record an issue. Zero counts are ignored.

        Args:
            stage: Pipeline stage reporting the issue
            kind: Short issue label (e.g. 'coerced_to_missing')
            count: Number of affected cells/rows/groups
            detail: Free-text context

        Returns:
            The recorded issue, or None if count was zero
        """
        count = int(count)
        if count <= 0:
            return None
        issue = DataQualityIssue(stage, kind, count, detail)
        self.issues.append(issue)
        log.info(f"{stage}: {kind}", count=count, detail=detail)
        return issue

    def by_kind(self, kind: str) -> List[DataQualityIssue]:
        return [issue for issue in self.issues if issue.kind == kind]

    def total(self, kind: str) -> int:
        return sum(issue.count for issue in self.by_kind(kind))

    def to_frame(self) -> pd.DataFrame:
        """Issues as a table, one row per issue."""
        return pd.DataFrame(
            [asdict(issue) for issue in self.issues],
            columns=['stage', 'kind', 'count', 'detail'],
        )

    def __len__(self) -> int:
        return len(self.issues)
