"""
Configuration for a migration run.

Settings are read once at start-up from ``config/migration_config.json``
(when present) and completed from environment variables, then passed
explicitly to every component.  The JSON file mirrors the sections of
:class:`MigrationConfig`::

    {
      "webflow": {"api_token": "...", "collection_ids": {"post": "61ee..."}},
      "mnemo": {"api_base": "https://mnemo.example.run.app"},
      "storage": {"bucket_name": "mnemo", "cdn_base_url": "https://cdn.example.io"},
      "migration": {"on_duplicate": "skip", "batch_size": 3}
    }

Environment variables only fill values the file leaves empty.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from webflow_migrator.models.collection_item import CONTENT_TYPES
from webflow_migrator.utils.errors import ConfigurationError

CONFIG_FILE = os.path.join("config", "migration_config.json")


class WebflowSettings(BaseModel):
    api_base: str = "https://api.webflow.com/v2"
    api_token: str = ""
    collection_ids: Dict[str, str] = Field(default_factory=dict)
    page_size: int = Field(100, ge=1, le=100)
    timeout: float = Field(30.0, gt=0)
    requests_per_minute: int = Field(60, ge=1)


class MnemoSettings(BaseModel):
    api_base: str = ""
    api_key: str = ""
    timeout: float = Field(30.0, gt=0)
    requests_per_minute: int = Field(180, ge=1)


class StorageSettings(BaseModel):
    backend: Literal["gcs", "local"] = "gcs"
    bucket_name: str = ""
    project_id: str = ""
    credentials_file: str = ""
    local_path: str = os.path.join("reports", "bucket")
    cdn_base_url: str = ""
    cache_control: str = "public, max-age=31536000"


class MigrationSettings(BaseModel):
    dry_run: bool = False
    limit: Optional[int] = Field(None, ge=1)
    on_duplicate: Literal["skip", "suffix", "update"] = "skip"
    max_slug_attempts: int = Field(3, ge=1, le=9)
    batch_size: int = Field(3, ge=1, le=5)
    image_concurrency: int = Field(3, ge=1, le=5)
    request_delay: float = Field(0.5, ge=0)
    page_delay: float = Field(1.0, ge=0)
    relocate_images: bool = False
    relocate_rich_text_images: bool = True
    compress_to_webp: bool = False
    webp_quality: int = Field(80, ge=1, le=100)
    image_timeout: float = Field(30.0, gt=0)
    reuse_existing_objects: bool = False
    report_dir: str = "."


class MigrationConfig(BaseModel):
    webflow: WebflowSettings = Field(default_factory=WebflowSettings)
    mnemo: MnemoSettings = Field(default_factory=MnemoSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    migration: MigrationSettings = Field(default_factory=MigrationSettings)

    def collection_id(self, content_type: str) -> str:
        return self.webflow.collection_ids.get(content_type, "")

    def require(self, content_type: str, *, source: bool = True) -> None:
        """Check that everything a run over ``content_type`` needs is set.

        ``source=False`` skips the Webflow checks, for passes that only
        read back items already stored in Mnemo.

        :raises ConfigurationError: listing every missing setting.
        """
        if content_type not in CONTENT_TYPES:
            raise ConfigurationError(
                f"Unknown content type '{content_type}'; expected one of {', '.join(CONTENT_TYPES)}"
            )
        missing = []
        if source:
            if not self.webflow.api_token:
                missing.append("webflow.api_token (WEBFLOW_API_TOKEN)")
            if not self.collection_id(content_type):
                missing.append(
                    f"webflow.collection_ids.{content_type} (WEBFLOW_{content_type.upper()}_COLLECTION_ID)"
                )
        if not self.mnemo.api_base:
            missing.append("mnemo.api_base (MNEMO_API_BASE)")
        if self.migration.relocate_images:
            if not self.storage.cdn_base_url:
                missing.append("storage.cdn_base_url (CDN_BASE_URL)")
            if self.storage.backend == "gcs" and not self.storage.bucket_name:
                missing.append("storage.bucket_name (GCS_BUCKET_NAME)")
        if missing:
            raise ConfigurationError("Missing required configuration: " + "; ".join(missing))


def _fill(section: Dict[str, Any], key: str, value: Optional[str]) -> None:
    if value and not section.get(key):
        section[key] = value


def load_config(
    config_file: Optional[str] = CONFIG_FILE,
    *,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> MigrationConfig:
    """Build the run configuration from the JSON file and the environment.

    :param config_file: JSON file to read; ignored when it does not exist.
    :param environ: Mapping used instead of ``os.environ`` (tests).
    :param overrides: Values for the ``migration`` section that win over
        the file, typically command-line flags.
    :raises ConfigurationError: if the file cannot be parsed or a value
        fails validation.
    """
    env = os.environ if environ is None else environ
    raw: Dict[str, Any] = {}
    if config_file and os.path.exists(config_file):
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not read {config_file}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigurationError(f"{config_file} must contain a JSON object")

    webflow = raw.setdefault("webflow", {})
    mnemo = raw.setdefault("mnemo", {})
    storage = raw.setdefault("storage", {})
    migration = raw.setdefault("migration", {})

    _fill(webflow, "api_token", env.get("WEBFLOW_API_TOKEN"))
    _fill(webflow, "api_base", env.get("WEBFLOW_API_BASE"))
    collection_ids = webflow.setdefault("collection_ids", {})
    for content_type in CONTENT_TYPES:
        _fill(collection_ids, content_type, env.get(f"WEBFLOW_{content_type.upper()}_COLLECTION_ID"))

    _fill(mnemo, "api_base", env.get("MNEMO_API_BASE"))
    _fill(mnemo, "api_key", env.get("MNEMO_API_KEY"))

    _fill(storage, "bucket_name", env.get("GCS_BUCKET_NAME"))
    _fill(storage, "project_id", env.get("GCS_PROJECT_ID"))
    _fill(storage, "credentials_file", env.get("GOOGLE_APPLICATION_CREDENTIALS"))
    _fill(storage, "cdn_base_url", env.get("CDN_BASE_URL"))

    if overrides:
        migration.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return MigrationConfig.model_validate(raw)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
