"""
===========================================================
errors.py
Author: Veronica Scerra
Last Updated: 2026-10-19
===========================================================

Description:
    Exceptions raised by the regional report pipeline. Each one
    marks the stage boundary where an input precondition failed;
    the pipeline aborts on the first of them.

Notes:
    - Missing values in derived metrics are NOT errors; they are
      carried as <NA> in nullable pandas columns.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
from typing import Optional


class ReportError(Exception):
    """Base class for every pipeline failure"""


class MalformedInputError(ReportError):
    """Source table is structurally broken (header, row width, numeric cells)"""

    def __init__(self, message: str, source: Optional[str] = None, column: Optional[str] = None):
        super().__init__(message)
        self.source = source
        self.column = column


class RegionNotFoundError(ReportError):
    def __init__(self, region: str, column: str):
        super().__init__(f"No rows with {column} == {region!r}")
        self.region = region
        self.column = column


class ColumnMismatchError(ReportError):
    """Cases and deaths tables disagree on their date columns"""


class DateParseError(ReportError):
    def __init__(self, label: str, date_format: str, reason: str = "unparseable date label"):
        super().__init__(f"{reason}: {label!r} (expected {date_format})")
        self.label = label
        self.date_format = date_format


class InsufficientDataError(ReportError):
    """Regression is undefined for the supplied series"""
