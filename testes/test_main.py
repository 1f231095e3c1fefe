import json

import pytest

import main
from test_migration_tool import FakeStore, _page, _pages, _record
from webflow_migrator.migrators.storage import ObjectStorage
from webflow_migrator.utils import pre_flight_checks
from webflow_migrator.utils.errors import PersistenceError, PreFlightCheckError, SourceFetchError
from webflow_migrator.utils.pre_flight_checks import run_pre_flight_checks

ENV_VARS = (
    "WEBFLOW_API_TOKEN",
    "WEBFLOW_API_BASE",
    "WEBFLOW_POST_COLLECTION_ID",
    "MNEMO_API_BASE",
    "MNEMO_API_KEY",
    "CDN_BASE_URL",
    "GCS_BUCKET_NAME",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "migration_config.json"
    path.write_text(
        json.dumps(
            {
                "webflow": {"api_token": "t", "collection_ids": {"post": "col-post"}},
                "mnemo": {"api_base": "https://mnemo.test"},
                "migration": {"request_delay": 0, "page_delay": 0},
            }
        ),
        encoding="utf-8",
    )
    return str(path)


def test_missing_configuration_exits_1(clean_env, tmp_path):
    assert main.main(["--type", "post", "--config", str(tmp_path / "absent.json")]) == 1


def test_successful_run_exits_0(monkeypatch, clean_env, config_file):
    FakeStore().install(monkeypatch)
    _pages(monkeypatch, _page(0, [_record("a")]))
    assert main.main(["--type", "post", "--config", config_file, "--skip-pre-flight"]) == 0


def test_strict_exits_1_on_item_failures(monkeypatch, clean_env, config_file):
    FakeStore(errors={"a": RuntimeError("boom")}).install(monkeypatch)
    _pages(monkeypatch, _page(0, [_record("a")]))
    args = ["--type", "post", "--config", config_file, "--skip-pre-flight"]
    assert main.main(args) == 0
    _pages(monkeypatch, _page(0, [_record("a")]))
    assert main.main(args + ["--strict"]) == 1


def test_pre_flight_reports_bad_token(monkeypatch, config):
    def fetch_collection(settings, collection_id):
        raise SourceFetchError("unauthorized", status=401)

    monkeypatch.setattr(pre_flight_checks, "fetch_collection", fetch_collection)
    with pytest.raises(PreFlightCheckError, match="token"):
        run_pre_flight_checks(config, "post")


def test_pre_flight_checks_mnemo_and_storage(monkeypatch, config):
    checked = []

    class Storage(ObjectStorage):
        def upload(self, data, path, content_type, cache_control=None):
            raise NotImplementedError

        def exists(self, path):
            return False

        def delete(self, path):
            pass

        def check_access(self):
            checked.append("storage")

    monkeypatch.setattr(pre_flight_checks, "fetch_collection", lambda s, c: {"displayName": "Posts"})
    monkeypatch.setattr(pre_flight_checks, "check_api", lambda s: checked.append("mnemo"))
    run_pre_flight_checks(config, "post", Storage("https://cdn.example"))
    assert checked == ["mnemo", "storage"]

    def broken(settings):
        raise PersistenceError("connection refused")

    monkeypatch.setattr(pre_flight_checks, "check_api", broken)
    with pytest.raises(PreFlightCheckError, match="Mnemo"):
        run_pre_flight_checks(config, "post", source=False)
