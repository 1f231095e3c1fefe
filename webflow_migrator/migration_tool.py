"""
High-level orchestration of the Webflow → Mnemo migration.

This module defines a :class:`WebflowMigrationTool` class that ties
together the extractor, the field mapper, the image relocator and the
Mnemo client into a complete pipeline.  A run over one content type
pages through the Webflow collection, maps every record, optionally moves
its images to the CDN, writes it to Mnemo and records one
:class:`MigrationOutcome` per source record.  The outcomes are summarized
into a JSON report at the end of the run.

Records are processed in small concurrent batches; whatever goes wrong
with one record is recorded on its own outcome and never stops the batch.
Detailed success and failure information is also recorded using the
:mod:`webflow_migrator.utils.errors` module.

Example::

    config = load_config()
    tool = WebflowMigrationTool(config)
    report = tool.run("post")
"""

from __future__ import annotations

import copy
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar

from webflow_migrator.config import MigrationConfig
from webflow_migrator.extractors.webflow_extractor import fetch_item, iter_item_pages
from webflow_migrator.mappers import map_record, table_for
from webflow_migrator.migrators.image_relocator import ImageRelocator, RelocatedImage, RelocationFailure
from webflow_migrator.migrators.mnemo_migrator import (
    create_collection_item,
    find_collection_item,
    list_collection_items,
    update_collection_item,
)
from webflow_migrator.migrators.storage import ObjectStorage, build_storage
from webflow_migrator.models.collection_item import CollectionItem
from webflow_migrator.models.outcome import MigrationOutcome
from webflow_migrator.utils.errors import (
    SlugConflictError,
    SourceFetchError,
    error_code_for,
    report_error,
    report_ok,
)
from webflow_migrator.utils.reports import summarize, write_report
from webflow_migrator.utils.slugs import resolve_conflict

T = TypeVar("T")

_LOG_DIR = os.path.join("reports", "migration")
_log_lock = threading.Lock()


class WebflowMigrationTool:
    """
    Encapsulates all state and behavior required to migrate the items of
    one Webflow collection into Mnemo.  The configuration is read once by
    :func:`webflow_migrator.config.load_config` and passed in; the tool
    never reads the environment itself.

    :param config: Validated run configuration.
    :param storage: Image storage backend.  When omitted it is built from
        ``config.storage`` the first time an image has to be relocated.
    :param sleep_fn: Used for the pauses between batches and pages.
    """

    def __init__(
        self,
        config: MigrationConfig,
        storage: Optional[ObjectStorage] = None,
        *,
        relocator: Optional[ImageRelocator] = None,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.storage = storage
        self._relocator = relocator
        self.sleep_fn = sleep_fn

    @property
    def settings(self):
        return self.config.migration

    @property
    def relocator(self) -> ImageRelocator:
        if self._relocator is None:
            if self.storage is None:
                self.storage = build_storage(self.config.storage)
            self._relocator = ImageRelocator.from_config(self.config, self.storage)
        return self._relocator

    def log_message(self, message: str, level: str = "INFO") -> None:
        with _log_lock:
            print(f"[{level}] {message}")
            os.makedirs(_LOG_DIR, exist_ok=True)
            with open(os.path.join(_LOG_DIR, "migration.log"), "a", encoding="utf-8") as f:
                f.write(f"{level}: {message}\n")

    # ------------------------------------------------------------------
    # Batching
    # ------------------------------------------------------------------

    def _in_batches(self, entries: Sequence[T], fn: Callable[[T], MigrationOutcome]) -> List[MigrationOutcome]:
        """Apply ``fn`` to ``entries`` in concurrent batches, keeping their order."""
        size = self.settings.batch_size
        outcomes: List[MigrationOutcome] = []
        if not entries:
            return outcomes
        with ThreadPoolExecutor(max_workers=size) as pool:
            for start in range(0, len(entries), size):
                if start:
                    self.sleep_fn(self.settings.request_delay)
                batch = entries[start:start + size]
                futures = [pool.submit(fn, entry) for entry in batch]
                outcomes.extend(f.result() for f in futures)
        return outcomes

    # ------------------------------------------------------------------
    # Source → Mnemo
    # ------------------------------------------------------------------

    def migrate_collection(self, content_type: str) -> List[MigrationOutcome]:
        """
        Migrate every record of the Webflow collection configured for
        ``content_type`` and return the outcomes in source order.

        A page that cannot be read produces one failed outcome per record
        position it should have held, and the run moves on to the next
        page.

        :raises SourceFetchError: if the collection size cannot be read.
        """
        collection_id = self.config.collection_id(content_type)
        self.log_message(f"Migrating Webflow collection {collection_id} as '{content_type}'")
        outcomes: List[MigrationOutcome] = []
        pages = iter_item_pages(
            self.config.webflow,
            collection_id,
            limit=self.settings.limit,
            page_delay=self.settings.page_delay,
            sleep_fn=self.sleep_fn,
        )
        for page in pages:
            if page.error is not None:
                self.log_message(
                    f"Page at offset {page.offset} could not be read; {page.expected} items marked as failed",
                    "ERROR",
                )
                report_error("SOURCE_FETCH", {"source_id": f"offset:{page.offset}"}, page.error)
                outcomes.extend(
                    MigrationOutcome.failed(f"offset:{n}", None, page.error)
                    for n in range(page.offset, page.offset + page.expected)
                )
                continue
            self.log_message(f"Processing items {page.offset + 1}-{page.offset + len(page.items)}")
            outcomes.extend(self._in_batches(page.items, lambda record: self.process_record(record, content_type)))
        return outcomes

    def migrate_item(self, content_type: str, item_id: str) -> MigrationOutcome:
        """Migrate a single Webflow item by its id."""
        collection_id = self.config.collection_id(content_type)
        try:
            record = fetch_item(self.config.webflow, collection_id, item_id)
        except SourceFetchError as e:
            report_error("SOURCE_FETCH", {"source_id": item_id}, e)
            self.log_message(f"Could not fetch Webflow item {item_id}: {e}", "ERROR")
            return MigrationOutcome.failed(item_id, None, e)
        return self.process_record(record, content_type)

    def process_record(self, record: Mapping[str, Any], content_type: str) -> MigrationOutcome:
        """Map, relocate and persist one source record.  Never raises."""
        source_id = record.get("id") if isinstance(record, Mapping) else None
        item: Optional[CollectionItem] = None
        try:
            item = map_record(record, content_type)
            return self._persist(item, source_id)
        except Exception as e:
            slug = item.slug if item is not None else None
            title = item.title if item is not None else None
            entry = {"source_id": source_id, "slug": slug, "title": title}
            report_error(error_code_for(e), entry, e)
            self.log_message(f"Failed to migrate {content_type} '{slug or source_id}': {e}", "ERROR")
            return MigrationOutcome.failed(
                source_id, slug, e, title=title, slug_attempts=getattr(e, "attempts", 0)
            )

    def _persist(self, item: CollectionItem, source_id: Optional[str]) -> MigrationOutcome:
        entry = {"source_id": source_id, "slug": item.slug, "title": item.title}
        if self.settings.dry_run:
            self.log_message(f"Dry-run: would migrate {item.type} '{item.slug}'")
            return MigrationOutcome.skipped(source_id, item.slug, "dry run", title=item.title)

        policy = self.settings.on_duplicate
        existing: Optional[CollectionItem] = None
        if policy in ("skip", "update"):
            existing = find_collection_item(self.config.mnemo, item.type, item.slug)
            if existing is not None and policy == "skip":
                self.log_message(f"{item.type} '{item.slug}' already exists; skipping")
                report_ok("ITEM_SKIPPED", entry, {"reason": "already exists", "item_id": existing.id})
                return MigrationOutcome.skipped(
                    source_id, item.slug, "already exists", title=item.title, item_id=existing.id
                )

        relocated, image_failures = 0, []
        if self.settings.relocate_images:
            item, relocated, image_failures = self.relocate_item_images(item)
            for failure in image_failures:
                report_error("IMAGE_RELOCATION", entry, RuntimeError(f"{failure['url']}: {failure['reason']}"))

        extra = dict(title=item.title, relocated_images=relocated, image_failures=image_failures)
        if existing is not None:
            stored = update_collection_item(self.config.mnemo, existing.id, item)
            self.log_message(f"Updated {item.type} '{item.slug}' (id {stored.id})")
            report_ok("ITEM_UPDATED", entry, {"item_id": stored.id})
            return MigrationOutcome.updated(source_id, stored.slug, stored.id, slug_attempts=1, **extra)

        if policy == "suffix":
            stored, attempts = self._create_with_suffix(item)
        else:
            stored, attempts = create_collection_item(self.config.mnemo, item), 1
        self.log_message(f"Created {item.type} '{stored.slug}' (id {stored.id})")
        report_ok("ITEM_CREATED", {**entry, "slug": stored.slug}, {"item_id": stored.id})
        return MigrationOutcome.created(source_id, stored.slug, stored.id, slug_attempts=attempts, **extra)

    def _create_with_suffix(self, item: CollectionItem) -> Tuple[CollectionItem, int]:
        """Create ``item``, moving to the next suffixed slug on each conflict."""
        max_attempts = self.settings.max_slug_attempts
        candidate = item
        for attempt in range(1, max_attempts + 1):
            try:
                return create_collection_item(self.config.mnemo, candidate), attempt
            except SlugConflictError as e:
                if attempt == max_attempts:
                    exhausted = SlugConflictError(
                        item.slug,
                        f"duplicate slug '{item.slug}': still taken after {max_attempts} attempts "
                        f"(last tried '{candidate.slug}')",
                        status=e.status,
                    )
                    exhausted.attempts = attempt
                    raise exhausted from e
                next_slug = resolve_conflict(candidate.slug, attempt)
                self.log_message(f"Slug '{candidate.slug}' is taken; retrying as '{next_slug}'", "WARNING")
                candidate = candidate.with_slug(next_slug)
        raise AssertionError("unreachable")

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def relocate_item_images(self, item: CollectionItem) -> Tuple[CollectionItem, int, List[Dict[str, Any]]]:
        """
        Relocate the image, gallery and rich-text images of ``item``.

        Uploads run with up to ``image_concurrency`` workers.  Images that
        fail keep their original URL and are reported in the returned list.

        :return: ``(item with rewritten URLs, relocated count, failures)``
        """
        table = table_for(item.type)
        data = copy.deepcopy(item.data)
        relocator = self.relocator
        jobs = []

        for source, destination in table.image_fields.items():
            image = data.get(destination)
            if isinstance(image, dict) and image.get("url"):
                jobs.append(("image", image, source))
        for source, destination in table.gallery_fields.items():
            for i, image in enumerate(data.get(destination) or [], start=1):
                if isinstance(image, dict) and image.get("url"):
                    jobs.append(("image", image, f"{source}-{i}"))
        rich_text_fields = table.rich_text_fields if self.settings.relocate_rich_text_images else ()
        for source in rich_text_fields:
            destination = table.destination(source)
            if destination and isinstance(data.get(destination), str):
                jobs.append(("rich_text", destination, source))

        def run(job):
            kind, target, field_name = job
            if kind == "image":
                return relocator.relocate(target["url"], item.type, item.slug, field_name)
            return relocator.relocate_rich_text(data[target], item.type, item.slug, field_name)

        with ThreadPoolExecutor(max_workers=self.settings.image_concurrency) as pool:
            results = list(pool.map(run, jobs))

        relocated = 0
        failures: List[Dict[str, Any]] = []
        for (kind, target, source), result in zip(jobs, results):
            if kind == "image":
                found = [result]
                if isinstance(result, RelocatedImage) and not result.skipped:
                    target["url"] = result.url
            else:
                html, found = result
                if html != data[target]:
                    data[target] = html
                    if source == table.description_field:
                        data["description"] = html
            for r in found:
                if isinstance(r, RelocationFailure):
                    failures.append(r.to_dict())
                elif not r.skipped:
                    relocated += 1

        return item.model_copy(update={"data": data}), relocated, failures

    def relocate_existing_items(self, content_type: str) -> List[MigrationOutcome]:
        """
        Follow-up pass over items already stored in Mnemo: relocate any
        image still hosted outside the CDN and update the rows that changed.

        :raises PersistenceError: if the stored items cannot be listed.
        """
        items = list_collection_items(self.config.mnemo, content_type)
        if self.settings.limit is not None:
            items = items[:self.settings.limit]
        self.log_message(f"Checking images of {len(items)} stored '{content_type}' items")
        return self._in_batches(items, self._relocate_stored)

    def _relocate_stored(self, item: CollectionItem) -> MigrationOutcome:
        source_id = (item.data.get("webflowMeta") or {}).get("webflowId") or item.id
        entry = {"source_id": source_id, "slug": item.slug, "title": item.title}
        try:
            if self.settings.dry_run:
                return MigrationOutcome.skipped(source_id, item.slug, "dry run", title=item.title, item_id=item.id)
            new_item, relocated, failures = self.relocate_item_images(item)
            if not relocated:
                return MigrationOutcome.skipped(
                    source_id, item.slug, "no external images", title=item.title,
                    item_id=item.id, image_failures=failures,
                )
            stored = update_collection_item(self.config.mnemo, item.id, new_item)
            self.log_message(f"Relocated {relocated} images of {item.type} '{item.slug}'")
            report_ok("ITEM_UPDATED", entry, {"item_id": stored.id, "relocated_images": relocated})
            return MigrationOutcome.updated(
                source_id, stored.slug, stored.id, title=item.title,
                relocated_images=relocated, image_failures=failures,
            )
        except Exception as e:
            report_error(error_code_for(e), entry, e)
            self.log_message(f"Failed to relocate images of '{item.slug}': {e}", "ERROR")
            return MigrationOutcome.failed(source_id, item.slug, e, title=item.title, item_id=item.id)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, content_type: str, *, item_id: Optional[str] = None, relocate_only: bool = False) -> Dict[str, Any]:
        """
        Execute one run, write its report and return it.

        The path of the written file is added to the returned dictionary
        under ``report_file``.
        """
        started_at = datetime.now(timezone.utc)
        if relocate_only:
            kind = f"webflow-{content_type}-image-relocation"
            outcomes = self.relocate_existing_items(content_type)
        elif item_id:
            kind = f"webflow-{content_type}-migration"
            outcomes = [self.migrate_item(content_type, item_id)]
        else:
            kind = f"webflow-{content_type}-migration"
            outcomes = self.migrate_collection(content_type)

        report = summarize(outcomes, kind=kind, started_at=started_at, finished_at=datetime.now(timezone.utc))
        path = write_report(report, kind=kind, directory=self.settings.report_dir)
        self.log_message(
            f"{kind}: {report['total']} items, {report['created']} created, {report['updated']} updated, "
            f"{report['skipped']} skipped, {report['failed']} failed"
        )
        if report["failures_by_type"]:
            self.log_message(f"Failures by type: {report['failures_by_type']}", "WARNING")
        self.log_message(f"Report written to {path}")
        report["report_file"] = path
        return report
