import json
import os
import sys
from typing import Dict, List, Optional

import pytest
import requests
from google.api_core import exceptions as gcs_exceptions

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from webflow_migrator.config import MigrationConfig
from webflow_migrator.extractors import webflow_extractor
from webflow_migrator.migrators import mnemo_migrator
from webflow_migrator.migrators.storage import ObjectStorage
from webflow_migrator.utils import http

CDN = "https://cdn.example"


def make_response(status: int = 200, json_body=None, content: Optional[bytes] = None, headers=None, url: str = "https://api.test/"):
    resp = requests.Response()
    resp.status_code = status
    if json_body is not None:
        resp._content = json.dumps(json_body).encode("utf-8")
    else:
        resp._content = content or b""
    resp._content_consumed = True
    resp.headers.update(headers or {})
    resp.url = url
    return resp


class MemoryStorage(ObjectStorage):
    def __init__(self, cdn_base_url: str = CDN) -> None:
        super().__init__(cdn_base_url)
        self.objects: Dict[str, bytes] = {}
        self.uploads: List[dict] = []

    def upload(self, data, path, content_type, cache_control=None):
        self.objects[path] = data
        self.uploads.append({"path": path, "content_type": content_type, "cache_control": cache_control})
        return self.public_url(path)

    def exists(self, path):
        return path in self.objects

    def delete(self, path):
        self.objects.pop(path, None)


class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name
        self.cache_control = None

    def upload_from_string(self, data, content_type=None, timeout=None):
        if self.bucket.fail_with is not None:
            raise self.bucket.fail_with
        self.bucket.objects[self.name] = {
            "data": data,
            "content_type": content_type,
            "cache_control": self.cache_control,
        }

    def exists(self, timeout=None):
        if self.bucket.fail_with is not None:
            raise self.bucket.fail_with
        return self.name in self.bucket.objects

    def delete(self, timeout=None):
        if self.name not in self.bucket.objects:
            raise gcs_exceptions.NotFound(f"No such object: {self.name}")
        del self.bucket.objects[self.name]


class FakeBucket:
    def __init__(self, name):
        self.name = name
        self.objects: Dict[str, dict] = {}
        self.fail_with: Optional[Exception] = None
        self.found = True

    def blob(self, name):
        return FakeBlob(self, name)

    def exists(self, timeout=None):
        if self.fail_with is not None:
            raise self.fail_with
        return self.found


class FakeGCSClient:
    """Just enough of ``google.cloud.storage.Client`` for the bucket backend."""

    def __init__(self):
        self.buckets: Dict[str, FakeBucket] = {}

    def bucket(self, name):
        return self.buckets.setdefault(name, FakeBucket(name))


class FakeHttp:
    """Serves image downloads from a ``{url: response}`` table."""

    def __init__(self, responses=None) -> None:
        self.responses = dict(responses or {})
        self.calls: List[str] = []

    def get(self, url, headers=None, timeout=None, stream=False):
        self.calls.append(url)
        resp = self.responses.get(url)
        if isinstance(resp, Exception):
            raise resp
        if resp is None:
            return make_response(404, url=url)
        return resp


class _NoWait:
    def wait(self, *args, **kwargs):
        pass


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    # log files and reports are written relative to the working directory
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def no_delays(monkeypatch):
    monkeypatch.setattr(webflow_extractor, "_limiter", _NoWait())
    monkeypatch.setattr(mnemo_migrator, "_limiter", _NoWait())
    monkeypatch.setattr(http.time, "sleep", lambda s: None)


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def config():
    return MigrationConfig.model_validate(
        {
            "webflow": {"api_token": "wf-token", "collection_ids": {"post": "col-post", "event": "col-event"}},
            "mnemo": {"api_base": "https://mnemo.test"},
            "storage": {"backend": "local", "cdn_base_url": CDN},
            "migration": {"request_delay": 0, "page_delay": 0},
        }
    )
