from __future__ import annotations

from typing import Optional

from webflow_migrator.config import MigrationConfig
from webflow_migrator.extractors.webflow_extractor import fetch_collection
from webflow_migrator.migrators.mnemo_migrator import check_api
from webflow_migrator.migrators.storage import ObjectStorage
from webflow_migrator.utils.errors import PersistenceError, PreFlightCheckError, SourceFetchError


def run_pre_flight_checks(
    config: MigrationConfig,
    content_type: str,
    storage: Optional[ObjectStorage] = None,
    *,
    source: bool = True,
) -> None:
    """
    Verifies that the services a run depends on are reachable.

    Args:
        config: The run configuration.
        content_type: Content type about to be migrated.
        storage: Image storage backend, checked when given.
        source: Whether the Webflow collection is read by this run.

    Raises:
        PreFlightCheckError: If any check fails.
    """
    print("[INFO] Running pre-flight checks...")

    if source:
        collection_id = config.collection_id(content_type)
        try:
            collection = fetch_collection(config.webflow, collection_id)
        except SourceFetchError as e:
            if e.status == 401:
                raise PreFlightCheckError("The Webflow API token is invalid or expired.") from e
            if e.status == 404:
                raise PreFlightCheckError(
                    f"Webflow collection {collection_id} for '{content_type}' was not found."
                ) from e
            raise PreFlightCheckError(f"Could not reach the Webflow API: {e}") from e
        print(f"[INFO] Webflow collection: {collection.get('displayName') or collection_id}")

    try:
        check_api(config.mnemo)
    except PersistenceError as e:
        raise PreFlightCheckError(f"Could not reach the Mnemo API at {config.mnemo.api_base}: {e}") from e

    if storage is not None:
        storage.check_access()

    print("[INFO] Pre-flight checks passed successfully.")
