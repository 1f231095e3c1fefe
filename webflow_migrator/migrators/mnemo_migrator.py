"""
Mnemo collection-items API helpers.

This module wraps the REST endpoints the migration writes through::

    GET  /api/collection-items?type=&status=&slugs=
    POST /api/collection-items            {type, status, slug, title, data}
    PUT  /api/collection-items/{id}       {type, status, slug, title, data}

Responses are ``{"success": true, "collectionItem": {...}}`` (or
``collectionItems`` for listings).  Write failures are translated into the
exception hierarchy of :mod:`webflow_migrator.utils.errors`:

* 400 -> :class:`ValidationError` (never retried)
* 409, or a body mentioning a duplicate key/slug/unique constraint ->
  :class:`SlugConflictError`
* a generic 5xx after which the slug turns out to exist ->
  :class:`SlugConflictError`; the API answers a unique-constraint
  violation with a plain ``500 Failed to create collection item``
* anything else -> :class:`PersistenceError`
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from webflow_migrator.config import MnemoSettings
from webflow_migrator.models.collection_item import CollectionItem
from webflow_migrator.utils.errors import PersistenceError, SlugConflictError, ValidationError
from webflow_migrator.utils.http import WRITE_RETRY_EXCEPTIONS, WRITE_RETRY_STATUSES, RateLimiter, with_retries

_limiter = RateLimiter(180)

_DUPLICATE_MARKERS = ("duplicate key", "duplicate slug", "unique constraint", "already exists")


def configure_rate_limit(rpm: int) -> None:
    global _limiter
    _limiter = RateLimiter(rpm)


def mnemo_headers(settings: MnemoSettings) -> Dict[str, str]:
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    if settings.api_key:
        headers["Authorization"] = f"Bearer {settings.api_key}"
    return headers


def _items_url(settings: MnemoSettings) -> str:
    return f"{settings.api_base.rstrip('/')}/api/collection-items"


def _error_text(resp: Optional[requests.Response]) -> str:
    if resp is None:
        return ""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:300]
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)[:300]
    return str(body)[:300]


def _item_from(resp: requests.Response) -> Dict[str, Any]:
    try:
        body = resp.json()
    except ValueError as e:
        raise PersistenceError("Mnemo returned invalid JSON", status=resp.status_code) from e
    row = body.get("collectionItem") if isinstance(body, dict) else None
    if not isinstance(row, dict):
        raise PersistenceError(f"Unexpected Mnemo response: {str(body)[:300]}", status=resp.status_code)
    return row


def _webflow_id(item: CollectionItem) -> Optional[str]:
    return (item.data.get("webflowMeta") or {}).get("webflowId")


def list_collection_items(
    settings: MnemoSettings,
    content_type: str,
    *,
    status: Optional[str] = None,
    slugs: Optional[List[str]] = None,
) -> List[CollectionItem]:
    """
    Retrieve stored items of a type, optionally restricted to some slugs.

    Rows of another type are dropped, since older deployments ignore
    unknown query parameters.

    :raises PersistenceError: if the listing cannot be read.
    """
    params: Dict[str, str] = {"type": content_type}
    if status:
        params["status"] = status
    if slugs:
        params["slugs"] = ",".join(slugs)

    def do_request() -> requests.Response:
        _limiter.wait()
        return requests.get(_items_url(settings), headers=mnemo_headers(settings), params=params, timeout=settings.timeout)

    try:
        resp = with_retries(do_request)
        rows = resp.json().get("collectionItems") or []
    except requests.HTTPError as e:
        status_code = e.response.status_code if e.response is not None else None
        raise PersistenceError(
            f"Failed to list {content_type} items: {status_code} {_error_text(e.response)}", status=status_code
        ) from e
    except (requests.RequestException, ValueError, AttributeError) as e:
        raise PersistenceError(f"Failed to list {content_type} items: {e}") from e
    items = []
    for row in rows:
        if row.get("type") != content_type:
            continue
        if slugs and row.get("slug") not in slugs:
            continue
        items.append(CollectionItem.model_validate(row))
    return items


def find_collection_item(settings: MnemoSettings, content_type: str, slug: str) -> Optional[CollectionItem]:
    """Return the stored item with exactly this type and slug, if any."""
    matches = list_collection_items(settings, content_type, slugs=[slug])
    return matches[0] if matches else None


def _raise_write_error(
    e: requests.HTTPError,
    settings: MnemoSettings,
    item: CollectionItem,
    action: str,
) -> None:
    status = e.response.status_code if e.response is not None else None
    text = _error_text(e.response)
    message = f"Failed to {action} {item.type} '{item.slug}': {status} {text}".strip()
    if status == 400:
        raise ValidationError(message, status=status) from e
    if status == 409 or any(marker in text.lower() for marker in _DUPLICATE_MARKERS):
        raise SlugConflictError(item.slug, message, status=status) from e
    if action == "create" and status is not None and status >= 500:
        try:
            existing = find_collection_item(settings, item.type, item.slug)
        except PersistenceError:
            existing = None
        if existing is not None:
            raise SlugConflictError(item.slug, f"duplicate slug '{item.slug}' ({status} {text})", status=status) from e
    raise PersistenceError(message, status=status) from e


def create_collection_item(settings: MnemoSettings, item: CollectionItem) -> CollectionItem:
    """
    Create a new collection item and return it as stored.

    :raises SlugConflictError: if the slug is already taken for the type.
    :raises ValidationError: if the API rejects the payload.
    :raises PersistenceError: for any other failure.
    """
    payload = item.to_payload()

    def do_request() -> requests.Response:
        _limiter.wait()
        return requests.post(_items_url(settings), headers=mnemo_headers(settings), json=payload, timeout=settings.timeout)

    try:
        resp = with_retries(
            do_request, retry_statuses=WRITE_RETRY_STATUSES, retry_exceptions=WRITE_RETRY_EXCEPTIONS
        )
    except requests.HTTPError as e:
        _raise_write_error(e, settings, item, "create")
        raise
    except requests.Timeout as e:
        # the POST may have been stored before the response was lost
        try:
            existing = find_collection_item(settings, item.type, item.slug)
        except PersistenceError:
            existing = None
        if existing is not None and _webflow_id(existing) == _webflow_id(item):
            return existing
        raise PersistenceError(f"Failed to create {item.type} '{item.slug}': {e}") from e
    except requests.RequestException as e:
        raise PersistenceError(f"Failed to create {item.type} '{item.slug}': {e}") from e
    return CollectionItem.model_validate(_item_from(resp))


def update_collection_item(settings: MnemoSettings, item_id: str, item: CollectionItem) -> CollectionItem:
    """
    Overwrite the stored row ``item_id`` with ``item``.

    :raises ValidationError: if the API rejects the payload.
    :raises PersistenceError: for any other failure, including 404.
    """
    payload = item.to_payload()
    url = f"{_items_url(settings)}/{item_id}"

    def do_request() -> requests.Response:
        _limiter.wait()
        return requests.put(url, headers=mnemo_headers(settings), json=payload, timeout=settings.timeout)

    try:
        resp = with_retries(do_request, retry_statuses=WRITE_RETRY_STATUSES)
    except requests.HTTPError as e:
        _raise_write_error(e, settings, item, "update")
        raise
    except requests.RequestException as e:
        raise PersistenceError(f"Failed to update {item.type} '{item.slug}': {e}") from e
    return CollectionItem.model_validate(_item_from(resp))


def check_api(settings: MnemoSettings) -> None:
    """Issue a cheap listing request; raises :class:`PersistenceError` on failure."""
    list_collection_items(settings, "post", slugs=["__pre-flight__"])
