"""Fatal pipeline errors.

Structural problems (missing files, malformed rows, schema drift, ambiguous
reshapes) stop the pipeline. Row-level data-quality problems are never raised:
they become missing values and are collected by ``analysis.diagnostics``.
"""

from typing import Iterable


class PipelineError(Exception):
    """Base class for every fatal error raised by the pipeline."""

    pass


class SourceNotFoundError(PipelineError):
    """Raised when an input file does not exist."""

    pass


class ParseError(PipelineError):
    """Raised when an input table cannot be parsed.

    This typically occurs when:
    - A row has more fields than the header declares
    - The file is empty or not valid text
    - A year field cannot be read as an integer
    """

    pass


class MissingColumnError(PipelineError):
    """Raised when a required column is absent (schema drift in a source)."""

    def __init__(self, table: str, missing: Iterable[str]):
        self.table = table
        self.missing = sorted(missing)
        super().__init__(f"{table}: missing required column(s) {self.missing}")


class DuplicateKeyError(PipelineError):
    """Raised when a reshape or key check finds the same key more than once."""

    def __init__(self, table: str, key: Iterable[str], duplicates):
        self.table = table
        self.key = list(key)
        self.duplicates = duplicates
        super().__init__(
            f"{table}: {len(duplicates)} duplicated row(s) for key {self.key}"
        )
