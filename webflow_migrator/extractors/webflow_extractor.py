"""
Webflow Data API (v2) client used as the migration source.

Only the read endpoints the migration needs are implemented::

    GET /collections/{collection_id}
    GET /collections/{collection_id}/items?limit=&offset=
    GET /collections/{collection_id}/items/{item_id}

Every failure, whether a non-2xx status left after retries or a network
error, is raised as :class:`SourceFetchError`.

Usage example::

    settings = config.webflow
    for page in iter_item_pages(settings, settings.collection_ids["post"]):
        if page.error:
            ...
        for record in page.items:
            item = map_record(record, "post")
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import requests

from webflow_migrator.config import WebflowSettings
from webflow_migrator.utils.errors import SourceFetchError
from webflow_migrator.utils.http import RateLimiter, with_retries

_limiter = RateLimiter(60)


def configure_rate_limit(rpm: int) -> None:
    global _limiter
    _limiter = RateLimiter(rpm)


@dataclass
class SourcePage:
    """One page of source records, or the error that prevented reading it."""

    offset: int
    expected: int
    items: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[SourceFetchError] = None


def webflow_headers(settings: WebflowSettings) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {settings.api_token}",
        "accept-version": "1.0.0",
        "Accept": "application/json",
    }


def _get(settings: WebflowSettings, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    url = f"{settings.api_base.rstrip('/')}{path}"

    def do_request() -> requests.Response:
        _limiter.wait()
        return requests.get(url, headers=webflow_headers(settings), params=params, timeout=settings.timeout)

    try:
        resp = with_retries(do_request)
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        body = e.response.text[:300] if e.response is not None else ""
        raise SourceFetchError(f"Webflow GET {path} failed with {status}: {body}", status=status) from e
    except requests.RequestException as e:
        raise SourceFetchError(f"Webflow GET {path} failed: {e}") from e
    try:
        return resp.json()
    except ValueError as e:
        raise SourceFetchError(f"Webflow GET {path} returned invalid JSON", status=resp.status_code) from e


def fetch_collection(settings: WebflowSettings, collection_id: str) -> Dict[str, Any]:
    """Collection schema; used by the pre-flight check."""
    return _get(settings, f"/collections/{collection_id}")


def fetch_items_page(
    settings: WebflowSettings, collection_id: str, offset: int, limit: int
) -> Tuple[List[Dict[str, Any]], int]:
    """Return ``(items, total)`` for one page of a collection."""
    payload = _get(settings, f"/collections/{collection_id}/items", {"limit": limit, "offset": offset})
    items = payload.get("items") or []
    total = (payload.get("pagination") or {}).get("total", len(items))
    return list(items), int(total)


def count_items(settings: WebflowSettings, collection_id: str) -> int:
    """Total number of items in a collection, read with a one-item page request."""
    _, total = fetch_items_page(settings, collection_id, 0, 1)
    return total


def fetch_item(settings: WebflowSettings, collection_id: str, item_id: str) -> Dict[str, Any]:
    return _get(settings, f"/collections/{collection_id}/items/{item_id}")


def iter_item_pages(
    settings: WebflowSettings,
    collection_id: str,
    *,
    limit: Optional[int] = None,
    page_delay: float = 0.0,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> Iterator[SourcePage]:
    """Yield the pages of a collection in increasing offset order.

    The total is read first; a failure there is raised.  A failure on a
    later page is reported through :attr:`SourcePage.error` and iteration
    continues with the next offset, so one bad page never hides the rest
    of the collection.

    :param limit: Stop after this many records.
    :param page_delay: Seconds to pause between two page requests.
    """
    total = count_items(settings, collection_id)
    if limit is not None:
        total = min(total, limit)
    offset = 0
    while offset < total:
        if offset:
            sleep_fn(page_delay)
        expected = min(settings.page_size, total - offset)
        try:
            items, _ = fetch_items_page(settings, collection_id, offset, settings.page_size)
        except SourceFetchError as e:
            print(f"[WARNING] Could not read items {offset}-{offset + expected - 1}: {e}")
            yield SourcePage(offset=offset, expected=expected, error=e)
        else:
            yield SourcePage(offset=offset, expected=expected, items=items[:expected])
        offset += settings.page_size
