"""
Utility helpers used by the migration tool.

This subpackage exposes the error hierarchy with structured logging, the
slug helpers and report generation.
"""

from .errors import ERRORS, report_error, report_ok
from .reports import classify_error, summarize, write_report
from .slugs import resolve_conflict, slugify

__all__ = [
    "ERRORS",
    "report_error",
    "report_ok",
    "classify_error",
    "summarize",
    "write_report",
    "resolve_conflict",
    "slugify",
]
