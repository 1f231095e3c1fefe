"""
Convert Webflow collection items into Mnemo collection items.

A single generic mapper handles every content type; what differs between
types lives in :mod:`webflow_migrator.mappers.field_tables`.  The mapper is
pure: it does not touch the network, the clock or any global state, so the
same record always produces the same item.

Example::

    item = map_record(webflow_item, "post")
    item.data["mainImage"]   # {"url": "https://cdn.prod.website-files.com/...", "alt": None}
    item.data["tags"]        # [{"id": "64f...", "slug": "64f..."}]
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from webflow_migrator.mappers.field_tables import FieldTable, table_for
from webflow_migrator.models.collection_item import CollectionItem, ImageReference
from webflow_migrator.utils.slugs import slugify


def _text(value: Any) -> Optional[Any]:
    if value is None:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    return value


def normalize_image(value: Any) -> Optional[Dict[str, Any]]:
    """Webflow image object (or bare URL) -> ``{"url", "alt"}`` or ``None``."""
    if isinstance(value, str):
        url, alt = value, None
    elif isinstance(value, Mapping):
        url, alt = value.get("url"), value.get("alt")
    else:
        return None
    if not isinstance(url, str) or not url.strip():
        return None
    return ImageReference(url=url, alt=alt or None).model_dump()


def normalize_gallery(value: Any) -> List[Dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        value = [value]
    images = (normalize_image(v) for v in value)
    return [img for img in images if img is not None]


def normalize_reference(value: Any) -> Optional[Dict[str, str]]:
    """Reference id or object -> ``{"id", "slug"}``; empty entries give ``None``."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, str):
        value = value.strip()
        return {"id": value, "slug": value} if value else None
    if isinstance(value, Mapping):
        ref_id = value.get("id") or value.get("_id")
        slug = value.get("slug")
        ref_id = str(ref_id) if ref_id else None
        slug = str(slug) if slug else None
        if not ref_id and not slug:
            return None
        return {"id": ref_id or slug, "slug": slug or ref_id}
    return None


def normalize_references(value: Any) -> List[Dict[str, str]]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        value = [value]
    refs = (normalize_reference(v) for v in value)
    return [ref for ref in refs if ref is not None]


def _file_ids(table: FieldTable, field_data: Mapping[str, Any]) -> Dict[str, str]:
    file_ids: Dict[str, str] = {}
    for source, destination in table.image_fields.items():
        image = field_data.get(source)
        if isinstance(image, Mapping) and image.get("fileId"):
            file_ids[destination] = str(image["fileId"])
    return file_ids


def map_record(record: Mapping[str, Any], content_type: str) -> CollectionItem:
    """Map one Webflow item of ``content_type`` to a :class:`CollectionItem`.

    Missing fields never fail the mapping: text and single references
    become ``None``, flags ``False``, galleries and multi references ``[]``.

    :raises TypeError: if ``record`` is not a mapping.
    :raises ValueError: if ``content_type`` is unknown.
    """
    if not isinstance(record, Mapping):
        raise TypeError(f"Webflow record must be a mapping, got {type(record).__name__}")
    table = table_for(content_type)
    field_data = record.get("fieldData")
    if not isinstance(field_data, Mapping):
        field_data = {}

    source_id = record.get("id")
    source_id = str(source_id) if source_id else None
    status = "draft" if record.get("isDraft") else "published"

    title = _text(field_data.get(table.title_field))
    title = str(title).strip() if title is not None else table.default_title

    slug = _text(field_data.get("slug"))
    slug = str(slug).strip() if slug is not None else (source_id or slugify(title) or table.content_type)

    data: Dict[str, Any] = {
        "title": title,
        "slug": slug,
        "status": status,
        "description": _text(field_data.get(table.description_field)) if table.description_field else None,
    }
    for source, destination in table.text_fields.items():
        data[destination] = _text(field_data.get(source))
    for source, destination in table.flag_fields.items():
        data[destination] = bool(field_data.get(source))
    for source, destination in table.image_fields.items():
        data[destination] = normalize_image(field_data.get(source))
    for source, destination in table.gallery_fields.items():
        data[destination] = normalize_gallery(field_data.get(source))
    for source, destination in table.reference_fields.items():
        data[destination] = normalize_reference(field_data.get(source))
    for source, destination in table.multi_reference_fields.items():
        data[destination] = normalize_references(field_data.get(source))

    data["webflowMeta"] = {
        "webflowId": source_id,
        "cmsLocaleId": record.get("cmsLocaleId"),
        "lastPublished": record.get("lastPublished"),
        "lastUpdated": record.get("lastUpdated"),
        "createdOn": record.get("createdOn"),
        "isArchived": bool(record.get("isArchived")),
        "fileIds": _file_ids(table, field_data),
    }

    return CollectionItem(
        title=title,
        type=table.content_type,
        slug=slug,
        status=status,
        data=data,
    )
