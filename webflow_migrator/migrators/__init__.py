"""
Destination side of the migration: the Mnemo API and image storage.
"""

from .image_relocator import ImageRelocator, RelocatedImage, RelocationFailure
from .mnemo_migrator import (
    create_collection_item,
    find_collection_item,
    list_collection_items,
    update_collection_item,
)
from .storage import GCSObjectStorage, LocalObjectStorage, ObjectStorage, build_storage

__all__ = [
    "ImageRelocator",
    "RelocatedImage",
    "RelocationFailure",
    "create_collection_item",
    "find_collection_item",
    "list_collection_items",
    "update_collection_item",
    "GCSObjectStorage",
    "LocalObjectStorage",
    "ObjectStorage",
    "build_storage",
]
