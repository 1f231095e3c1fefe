"""
Summaries and JSON report files for migration runs.

:func:`summarize` aggregates a list of :class:`MigrationOutcome` into the
counts a human needs to decide whether to re-run, fix items by hand or
ignore the failures, and :func:`write_report` stores that summary together
with every per-item outcome in a timestamped file such as
``webflow-post-migration-report-2025-07-21T14-42-17-733Z.json``.
"""

from __future__ import annotations

import json
import os
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from webflow_migrator.models.outcome import CREATED, FAILED, SKIPPED, UPDATED, MigrationOutcome


# "...: 500 ...", "failed with 404", "(500 ...", "HTTP 404"; never inside a slug
_STATUS_TOKEN = re.compile(r"(?:^|[:(]\s*|\bwith\s+|\bhttp\s+)(404|500)\b")


def classify_error(message: Optional[str]) -> str:
    """Coarse error family used to group failures in reports."""
    text = (message or "").lower()
    if (
        "duplicate slug" in text
        or "duplicate key" in text
        or "unique constraint" in text
        or "already exists" in text
    ):
        return "duplicate_slug"
    if "timeout" in text or "timed out" in text:
        return "timeout"
    status = _STATUS_TOKEN.search(text)
    if status and status.group(1) == "404":
        return "not_found"
    if status and status.group(1) == "500":
        return "server_error"
    return "unknown"


def _iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def summarize(
    outcomes: Iterable[MigrationOutcome],
    *,
    kind: str,
    started_at: Optional[datetime] = None,
    finished_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Aggregate per-item outcomes into a report dictionary."""
    outcomes = list(outcomes)
    finished_at = finished_at or datetime.now(timezone.utc)
    started_at = started_at or finished_at
    counts = Counter(o.status for o in outcomes)
    failures: List[Dict[str, Any]] = [
        {
            "source_id": o.source_id,
            "slug": o.slug,
            "title": o.title,
            "error": o.error,
            "error_type": classify_error(o.error),
        }
        for o in outcomes
        if o.status == FAILED
    ]
    return {
        "kind": kind,
        "started_at": _iso(started_at),
        "finished_at": _iso(finished_at),
        "duration_seconds": round((finished_at - started_at).total_seconds(), 3),
        "total": len(outcomes),
        "successful": counts[CREATED] + counts[UPDATED],
        "created": counts[CREATED],
        "updated": counts[UPDATED],
        "skipped": counts[SKIPPED],
        "failed": counts[FAILED],
        "relocated_images": sum(o.relocated_images for o in outcomes),
        "image_failures": sum(len(o.image_failures) for o in outcomes),
        "failures_by_type": dict(Counter(f["error_type"] for f in failures)),
        "failures": failures,
        "outcomes": [o.to_dict() for o in outcomes],
    }


def report_filename(kind: str, now: Optional[datetime] = None) -> str:
    timestamp = _iso(now or datetime.now(timezone.utc)).replace(":", "-").replace(".", "-")
    return f"{kind}-report-{timestamp}.json"


def write_report(
    report: Dict[str, Any], *, kind: str, directory: str = ".", now: Optional[datetime] = None
) -> str:
    """Write ``report`` as pretty-printed JSON and return the file path.

    The parent directory is created automatically.
    """
    os.makedirs(directory or ".", exist_ok=True)
    out_path = os.path.join(directory or ".", report_filename(kind, now))
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(report, f, ensure_ascii=False, indent=2)
    return out_path
