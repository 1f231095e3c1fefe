import pytest
import requests
from google.api_core import exceptions as gcs_exceptions
from google.auth import exceptions as auth_exceptions

from conftest import CDN, FakeGCSClient, FakeHttp, make_response
from webflow_migrator.config import StorageSettings
from webflow_migrator.migrators import storage as storage_module
from webflow_migrator.migrators.image_relocator import DEFAULT_CACHE_CONTROL, ImageRelocator, RelocationFailure
from webflow_migrator.migrators.storage import GCSObjectStorage, LocalObjectStorage, build_storage
from webflow_migrator.utils.errors import ConfigurationError, ImageRelocationError, PreFlightCheckError

PATH = "website/collection/post/my-post/hero-image-img.jpg"


@pytest.fixture
def client():
    return FakeGCSClient()


@pytest.fixture
def bucket_storage(client):
    return GCSObjectStorage("mnemo", CDN + "/", client=client)


def test_gcs_upload_sets_headers_and_returns_cdn_url(client, bucket_storage):
    url = bucket_storage.upload(b"jpeg", PATH, "image/jpeg", "public, max-age=31536000")
    assert url == f"{CDN}/{PATH}"
    stored = client.buckets["mnemo"].objects[PATH]
    assert stored == {"data": b"jpeg", "content_type": "image/jpeg", "cache_control": "public, max-age=31536000"}
    assert bucket_storage.exists(PATH) is True
    bucket_storage.delete(PATH)
    assert bucket_storage.exists(PATH) is False
    # deleting twice is harmless
    bucket_storage.delete(PATH)


@pytest.mark.parametrize(
    "error",
    [
        gcs_exceptions.RetryError("Deadline of 120.0s exceeded", ConnectionError("reset")),
        gcs_exceptions.Forbidden("no write access"),
        auth_exceptions.RefreshError("token expired"),
        requests.ConnectionError("reset by peer"),
    ],
)
def test_gcs_client_errors_become_relocation_errors(client, bucket_storage, error):
    client.bucket("mnemo").fail_with = error
    with pytest.raises(ImageRelocationError):
        bucket_storage.upload(b"jpeg", PATH, "image/jpeg")
    assert bucket_storage.exists(PATH) is False


def test_gcs_check_access(client, bucket_storage):
    bucket_storage.check_access()
    client.bucket("mnemo").found = False
    with pytest.raises(PreFlightCheckError):
        bucket_storage.check_access()
    client.bucket("mnemo").fail_with = auth_exceptions.DefaultCredentialsError("no credentials")
    with pytest.raises(PreFlightCheckError):
        bucket_storage.check_access()


def test_relocator_keeps_original_url_when_bucket_times_out(client, bucket_storage):
    client.bucket("mnemo").fail_with = gcs_exceptions.RetryError("Deadline of 120.0s exceeded", ConnectionError("reset"))
    source = "https://thirdparty.example/img.jpg"
    http = FakeHttp({source: make_response(200, content=b"\xff\xd8\xff", headers={"Content-Type": "image/jpeg"})})
    relocator = ImageRelocator(bucket_storage, cdn_base_url=CDN, http=http, reuse_existing_objects=True)
    result = relocator.relocate(source, "post", "my-post", "hero-image")
    assert isinstance(result, RelocationFailure)
    assert result.url == source
    assert result.reason.startswith("upload failed:")


def test_relocator_uploads_with_long_lived_cache_header(client, bucket_storage):
    source = "https://thirdparty.example/img.jpg"
    http = FakeHttp({source: make_response(200, content=b"\xff\xd8\xff", headers={"Content-Type": "image/jpeg"})})
    ImageRelocator(bucket_storage, cdn_base_url=CDN, http=http).relocate(source, "post", "my-post", "hero-image")
    stored = client.buckets["mnemo"].objects[PATH]
    assert stored["cache_control"] == DEFAULT_CACHE_CONTROL
    assert stored["content_type"] == "image/jpeg"


def test_local_storage_round_trip(tmp_path):
    local = LocalObjectStorage(str(tmp_path / "bucket"), CDN)
    url = local.upload(b"png", PATH, "image/png")
    assert url == f"{CDN}/{PATH}"
    assert (tmp_path / "bucket" / PATH).read_bytes() == b"png"
    assert local.exists(PATH)
    local.delete(PATH)
    assert not local.exists(PATH)
    local.delete(PATH)


def test_build_storage_requires_cdn_and_bucket():
    with pytest.raises(ConfigurationError):
        build_storage(StorageSettings(backend="local"))
    with pytest.raises(ConfigurationError):
        build_storage(StorageSettings(backend="gcs", cdn_base_url=CDN))


def test_build_storage_backends(monkeypatch, tmp_path):
    local = build_storage(StorageSettings(backend="local", local_path=str(tmp_path / "b"), cdn_base_url=CDN))
    assert isinstance(local, LocalObjectStorage)

    monkeypatch.setattr(storage_module.gcs, "Client", lambda project=None: FakeGCSClient())
    remote = build_storage(StorageSettings(bucket_name="mnemo", project_id="proj", cdn_base_url=CDN))
    assert isinstance(remote, GCSObjectStorage)
    assert remote.bucket.name == "mnemo"
