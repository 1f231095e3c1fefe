"""
Source side of the migration: the Webflow Data API.
"""

from .webflow_extractor import (
    SourcePage,
    count_items,
    fetch_collection,
    fetch_item,
    fetch_items_page,
    iter_item_pages,
    webflow_headers,
)

__all__ = [
    "SourcePage",
    "count_items",
    "fetch_collection",
    "fetch_item",
    "fetch_items_page",
    "iter_item_pages",
    "webflow_headers",
]
