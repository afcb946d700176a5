# tests/test_http_api.py
from unittest import mock

import pytest
from fastapi.testclient import TestClient
from html_samples import CW_BASE, CW_DETAIL, cw_embedded_listing

from service.http_api import app


@pytest.fixture
def api(db_path, monkeypatch):
    monkeypatch.setenv("JOB_HARVEST_SQLITE_PATH", db_path)
    monkeypatch.setenv("JOB_HARVEST_PAGE_DELAY", "0")
    return TestClient(app)


def test_healthz(api):
    r = api.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_harvest_reports_counts(api, fake_client):
    client = fake_client({
        CW_BASE: cw_embedded_listing((1, "A"), (2, "B")),
        "https://crowdworks.jp/public/jobs/1": CW_DETAIL,
    })
    with mock.patch("modules.job_harvest.lib.engine.HttpClient", return_value=client):
        r = api.post("/harvest", json={"site": "crowdworks"})

    assert r.status_code == 200
    assert r.json() == {"ok": True, "collected": 2, "inserted": 2}


def test_harvest_without_body_and_nothing_fetched(api, fake_client):
    with mock.patch("modules.job_harvest.lib.engine.HttpClient", return_value=fake_client({})):
        r = api.post("/harvest")

    assert r.status_code == 200
    assert r.json() == {"ok": True, "message": "No items fetched"}


def test_harvest_get_variant(api, monkeypatch):
    monkeypatch.setenv("JOB_HARVEST_SKIP_NETWORK", "1")
    r = api.get("/harvest", params={"site": "lancers"})
    assert r.status_code == 200
    assert r.json()["message"] == "No items fetched"


def test_harvest_failure_is_500(api):
    with mock.patch("modules.job_harvest.main._run_engine", side_effect=RuntimeError("store exploded")):
        r = api.post("/harvest", json={"site": "lancers"})

    assert r.status_code == 500
    assert r.json() == {"ok": False, "error": "store exploded"}


def test_bad_config_is_500(api, monkeypatch):
    monkeypatch.setenv("JOB_HARVEST_MAX_TOTAL_ITEMS", "0")
    r = api.post("/harvest")
    assert r.status_code == 500
    assert r.json()["ok"] is False


def test_retention_endpoint(api):
    r = api.post("/retention", json={"days": 5})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["deleted"] == 0


def test_malformed_json_body_is_500(api):
    r = api.post("/harvest", content=b"{not json", headers={"Content-Type": "application/json"})

    assert r.status_code == 500
    body = r.json()
    assert body["ok"] is False
    assert set(body) == {"ok", "error"}
    assert body["error"]


def test_mistyped_retention_days_is_500(api):
    r = api.post("/retention", json={"days": "soon"})
    assert r.status_code == 500
    assert r.json()["ok"] is False
