"""
Object storage backends for relocated images.

Production runs upload to a Google Cloud Storage bucket served through the
CDN; rehearsals can write to a local directory instead.  Both expose the
same interface and return the public CDN URL of what they stored.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import requests
from google.api_core import exceptions as gcs_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage as gcs

from webflow_migrator.config import StorageSettings
from webflow_migrator.utils.errors import ConfigurationError, ImageRelocationError, PreFlightCheckError

# API, retry deadline, credential and transport failures of the client
_CLIENT_ERRORS = (gcs_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError, requests.RequestException)


class ObjectStorage(ABC):
    """Abstract base class for object storage backends."""

    def __init__(self, cdn_base_url: str) -> None:
        self.cdn_base_url = cdn_base_url.rstrip("/")

    def public_url(self, path: str) -> str:
        return f"{self.cdn_base_url}/{path.lstrip('/')}"

    @abstractmethod
    def upload(self, data: bytes, path: str, content_type: str, cache_control: Optional[str] = None) -> str:
        """
        Store ``data`` at ``path`` and return its public URL.

        Raises:
            ImageRelocationError: if the object could not be written.
        """

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check if an object already exists at ``path``."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the object at ``path``; missing objects are ignored."""

    def check_access(self) -> None:
        """Raise :class:`PreFlightCheckError` if the backend is unusable."""


class GCSObjectStorage(ObjectStorage):
    """Google Cloud Storage bucket."""

    def __init__(
        self,
        bucket_name: str,
        cdn_base_url: str,
        project_id: Optional[str] = None,
        credentials_file: Optional[str] = None,
        client: Optional[gcs.Client] = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(cdn_base_url)
        if client is None:
            if credentials_file:
                client = gcs.Client.from_service_account_json(credentials_file, project=project_id or None)
            else:
                client = gcs.Client(project=project_id or None)
        self.client = client
        self.bucket = client.bucket(bucket_name)
        self.timeout = timeout

    def upload(self, data: bytes, path: str, content_type: str, cache_control: Optional[str] = None) -> str:
        blob = self.bucket.blob(path)
        if cache_control:
            blob.cache_control = cache_control
        try:
            blob.upload_from_string(data, content_type=content_type, timeout=self.timeout)
        except _CLIENT_ERRORS as e:
            raise ImageRelocationError(f"GCS upload of {path} failed: {e}") from e
        return self.public_url(path)

    def exists(self, path: str) -> bool:
        try:
            return self.bucket.blob(path).exists(timeout=self.timeout)
        except _CLIENT_ERRORS as e:
            print(f"[WARNING] Could not check gs://{self.bucket.name}/{path}: {e}")
            return False

    def delete(self, path: str) -> None:
        try:
            self.bucket.blob(path).delete(timeout=self.timeout)
        except gcs_exceptions.NotFound:
            pass

    def check_access(self) -> None:
        try:
            found = self.bucket.exists(timeout=self.timeout)
        except _CLIENT_ERRORS as e:
            raise PreFlightCheckError(f"Cannot reach bucket {self.bucket.name}: {e}") from e
        if not found:
            raise PreFlightCheckError(f"Bucket {self.bucket.name} does not exist")


class LocalObjectStorage(ObjectStorage):
    """Local filesystem storage, laid out like the bucket."""

    def __init__(self, base_path: str, cdn_base_url: str) -> None:
        super().__init__(cdn_base_url)
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _file(self, path: str) -> Path:
        return self.base_path / path.lstrip("/")

    def upload(self, data: bytes, path: str, content_type: str, cache_control: Optional[str] = None) -> str:
        target = self._file(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise ImageRelocationError(f"Could not write {target}: {e}") from e
        return self.public_url(path)

    def exists(self, path: str) -> bool:
        return self._file(path).is_file()

    def delete(self, path: str) -> None:
        try:
            os.remove(self._file(path))
        except FileNotFoundError:
            pass


def build_storage(settings: StorageSettings) -> ObjectStorage:
    """Create the backend selected by ``settings.backend``."""
    if not settings.cdn_base_url:
        raise ConfigurationError("storage.cdn_base_url (CDN_BASE_URL) is required to relocate images")
    if settings.backend == "local":
        return LocalObjectStorage(settings.local_path, settings.cdn_base_url)
    if not settings.bucket_name:
        raise ConfigurationError("storage.bucket_name (GCS_BUCKET_NAME) is required for the gcs backend")
    return GCSObjectStorage(
        settings.bucket_name,
        settings.cdn_base_url,
        project_id=settings.project_id,
        credentials_file=settings.credentials_file,
    )
