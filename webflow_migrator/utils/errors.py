"""
Error types and structured logging helpers for the migration.

The exception hierarchy below is shared by every layer.  Per-item errors are
raised by the API clients and caught by the batch driver, which turns them
into failed outcomes; only :class:`ConfigurationError` and
:class:`PreFlightCheckError` are expected to end a run.

The :func:`report_error` and :func:`report_ok` helpers append JSON Lines
entries under ``reports/migration`` so that every event of a run can be
reviewed or parsed afterwards.

The ``ERRORS`` dictionary maps error or event codes to human readable
messages.  Codes not present in the dictionary fall back to the code itself.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional


class MigrationError(Exception):
    """Base class for all errors raised by the migration."""


class ConfigurationError(MigrationError):
    """Required configuration is missing or invalid."""


class PreFlightCheckError(MigrationError):
    """An external service needed by the run is not reachable."""


class SourceFetchError(MigrationError):
    """The Webflow API failed or answered with a non-2xx status."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class ImageRelocationError(MigrationError):
    """An image could not be downloaded or uploaded."""


class PersistenceError(MigrationError):
    """The Mnemo API rejected a write for a reason other than those below."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class SlugConflictError(PersistenceError):
    """The Mnemo API rejected a create because the slug is already taken."""

    def __init__(self, slug: str, message: Optional[str] = None, status: Optional[int] = None) -> None:
        super().__init__(message or f"duplicate slug '{slug}'", status)
        self.slug = slug


class ValidationError(PersistenceError):
    """The Mnemo API rejected a payload with missing or invalid fields."""


# Mapping of event codes used throughout the migration to descriptive messages.
# The keys include both error and success codes as the same lookup is used by
# :func:`report_error` and :func:`report_ok`.
ERRORS: Dict[str, str] = {
    "SOURCE_FETCH": "Failed to fetch items from Webflow",
    "IMAGE_RELOCATION": "Failed to relocate image to the CDN",
    "SLUG_CONFLICT": "Slug already taken in Mnemo",
    "VALIDATION": "Mnemo rejected the item payload",
    "PERSISTENCE": "Failed to write item to Mnemo",
    "UNEXPECTED": "Unexpected error while migrating item",
    "ITEM_CREATED": "Item created successfully",
    "ITEM_UPDATED": "Item updated successfully",
    "ITEM_SKIPPED": "Item skipped",
}

_REPORT_DIR = os.path.join("reports", "migration")
_ERROR_LOG = "errors.jsonl"
_OK_LOG = "success.jsonl"


def _write_jsonl(filename: str, data: Dict[str, Any]) -> None:
    """Append ``data`` as a JSON object followed by a newline to ``filename``."""
    os.makedirs(_REPORT_DIR, exist_ok=True)
    with open(os.path.join(_REPORT_DIR, filename), "a", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
        f.write("\n")


def error_code_for(exc: BaseException) -> str:
    """Return the :data:`ERRORS` code matching an exception instance."""
    if isinstance(exc, SlugConflictError):
        return "SLUG_CONFLICT"
    if isinstance(exc, ValidationError):
        return "VALIDATION"
    if isinstance(exc, PersistenceError):
        return "PERSISTENCE"
    if isinstance(exc, SourceFetchError):
        return "SOURCE_FETCH"
    if isinstance(exc, ImageRelocationError):
        return "IMAGE_RELOCATION"
    return "UNEXPECTED"


def report_error(code: str, record: Dict[str, Any], exc: Optional[BaseException] = None) -> None:
    """Log an error event for ``record``.

    Parameters
    ----------
    code:
        A key identifying the type of error.  If ``code`` is present in
        :data:`ERRORS` its value will be used as the message.
    record:
        Dictionary describing the item.  Only the ``source_id``, ``slug``
        and ``title`` keys are referenced if present.
    exc:
        Optional exception instance that triggered the error.  The string
        representation of the exception will be included in the log entry.
    """
    message = ERRORS.get(code, code)
    entry: Dict[str, Any] = {
        "code": code,
        "message": message,
        "source_id": record.get("source_id"),
        "slug": record.get("slug"),
        "title": record.get("title"),
    }
    if exc is not None:
        entry["error"] = str(exc)
    print(f"[ERROR] {message} - {record.get('slug') or record.get('source_id') or ''}")
    _write_jsonl(_ERROR_LOG, entry)


def report_ok(code: str, record: Dict[str, Any], extra: Optional[Dict[str, Any]] = None) -> None:
    """Log a successful event for ``record``.

    Parameters
    ----------
    code:
        A key identifying the type of event.
    record:
        Dictionary describing the item.
    extra:
        Optional dictionary of additional fields to merge into the log entry.
    """
    message = ERRORS.get(code, code)
    entry: Dict[str, Any] = {
        "code": code,
        "message": message,
        "source_id": record.get("source_id"),
        "slug": record.get("slug"),
        "title": record.get("title"),
    }
    if extra:
        entry.update(extra)
    print(f"[OK] {message} - {record.get('slug', '')}")
    _write_jsonl(_OK_LOG, entry)
