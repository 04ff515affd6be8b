from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from dfsr_monitoring.grafana_api.server import app

SNAPSHOT = {
    "timestamp": "2026-10-17T12:00:00",
    "global_status": "WARNING",
    "results": [
        {"name": "Service - DFSR", "check_set": "dfsr_fs01", "server": "fs01", "status": "OK",
         "status_code": 0, "message": "Service DFSR is running.", "metrics": {}, "details": {}},
        {"name": "DFSR Backlog - Data", "check_set": "dfsr_fs01", "server": "fs01", "status": "WARNING",
         "status_code": 1, "message": "Backlog for folder 'Data' in group 'RG-Files' is 75. Investigate.",
         "metrics": {"backlog": 75.0, "backlog_warn": 50.0, "backlog_crit": 200.0},
         "details": {"group": "RG-Files"}},
        {"name": "DFSR Backlog - Profiles", "check_set": "dfsr_fs01", "server": "fs01", "status": "CRITICAL",
         "status_code": 2, "message": "Backlog for folder 'Profiles' could not be calculated (boom).",
         "metrics": {"backlog": -1.0, "backlog_warn": 50.0, "backlog_crit": 200.0},
         "details": {"group": "RG-Files"}},
    ],
}


@pytest.fixture
def client(tmp_path, monkeypatch):
    (tmp_path / "snapshot_latest.json").write_text(json.dumps(SNAPSHOT), encoding="utf-8")
    monkeypatch.setenv("DFSR_SNAPSHOT_DIR", str(tmp_path))
    return TestClient(app)


def _query(client, *targets):
    resp = client.post("/query", json={"targets": list(targets)})
    assert resp.status_code == 200
    return resp.json()


def test_root_reports_snapshot(client):
    body = client.get("/").json()
    assert body["global_status"] == "WARNING"
    assert body["backlog_folders"] == 2


def test_missing_snapshot_is_404(tmp_path, monkeypatch):
    monkeypatch.setenv("DFSR_SNAPSHOT_DIR", str(tmp_path / "empty"))
    assert TestClient(app).get("/").status_code == 404


def test_search_lists_metrics(client):
    assert "backlog_table" in client.post("/search").json()


def test_global_and_per_check_status(client):
    out = _query(
        client,
        {"target": "check_status"},
        {"target": "check_status", "payload": {"check": "DFSR Backlog - Profiles"}},
    )
    assert out[0]["datapoints"][0][0] == 1
    assert out[1]["target"] == "DFSR Backlog - Profiles.status_num"
    assert out[1]["datapoints"][0][0] == 2


def test_backlog_count_requires_folder(client):
    resp = client.post("/query", json={"targets": [{"target": "backlog_count"}]})
    assert resp.status_code == 400


def test_backlog_count_skips_uncalculated(client):
    out = _query(
        client,
        {"target": "backlog_count", "payload": {"folder": "Data"}},
        {"target": "backlog_count", "payload": {"folder": "Profiles"}},
    )
    assert out[0]["datapoints"][0][0] == 75.0
    assert out[1]["datapoints"] == []


def test_backlog_table(client):
    table = _query(client, {"target": "backlog_table"})[0]
    assert table["type"] == "table"
    assert table["rows"][0][1:] == ["Data", "RG-Files", 75.0, "WARNING"]
    assert table["rows"][1][3] is None


def test_checks_table_and_unknown_metric(client):
    out = _query(client, {"target": "checks_table"}, {"target": "nope"})
    assert len(out[0]["rows"]) == 3
    assert out[1] == {"target": "nope", "datapoints": []}
