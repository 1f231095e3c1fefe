"""
Data types exchanged between the mapper, the API clients and the driver.
"""

from .collection_item import CONTENT_TYPES, CollectionItem, ContentType, ImageReference, Status
from .outcome import CREATED, FAILED, SKIPPED, UPDATED, MigrationOutcome

__all__ = [
    "CONTENT_TYPES",
    "CollectionItem",
    "ContentType",
    "ImageReference",
    "Status",
    "MigrationOutcome",
    "CREATED",
    "UPDATED",
    "SKIPPED",
    "FAILED",
]
