import pytest
from fastapi.testclient import TestClient

from campusdesk.core.config import Settings
from campusdesk.main import create_app
from campusdesk.storage import InMemoryStorage

ADMIN = {"X-User-Id": "adm_001", "X-User-Name": "Counselor Wu", "X-User-Role": "role_admin"}
STUDENT = {"X-User-Id": "stu_001", "X-User-Name": "Lin Mei", "X-User-Role": "role_student"}


@pytest.fixture
def client():
    app = create_app(Settings(storage_dsn="memory://"), storage=InMemoryStorage())
    with TestClient(app) as test_client:
        yield test_client


def _append(client, **overrides):
    payload = {"actorName": "Counselor Wu", "roleName": "Counselor", "actionType": "UPDATE", "target": "Student 1"}
    payload.update(overrides)
    response = client.post("/audit/logs", json=payload)
    assert response.status_code == 201
    return response.json()


def test_append_and_list_logs(client):
    created = _append(client, actionType="export", target="Roster", riskLevel="HIGH")

    assert created["actionType"] == "EXPORT"
    assert created["id"].startswith("log_")

    listed = client.get("/audit/logs", params={"actionType": "EXPORT"}, headers=ADMIN).json()
    assert [entry["id"] for entry in listed] == [created["id"]]
    assert client.get("/audit/logs", params={"riskLevel": "LOW"}, headers=ADMIN).json() == []


def test_audit_views_are_staff_only(client):
    for path in ("/audit/logs", "/audit/trend", "/audit/risk", "/audit/anomalies", "/audit/summary", "/audit/export"):
        assert client.get(path, headers=STUDENT).status_code == 403
        assert client.get(path).status_code == 401


def test_invalid_bound_returns_unprocessable(client):
    response = client.get("/audit/logs", params={"start": "yesterday"}, headers=ADMIN)

    assert response.status_code == 422


def test_dashboard_views(client):
    for _ in range(4):
        _append(client, actionType="LOGIN", status="FAILURE", target="console")
    _append(client, riskLevel="CRITICAL", actionType="SYSTEM_RESET")

    trend = client.get("/audit/trend", headers=ADMIN).json()
    assert len(trend) == 7
    assert trend[-1]["count"] == 5

    assert client.get("/audit/risk", headers=ADMIN).json() == {"LOW": 0, "MEDIUM": 4, "HIGH": 0, "CRITICAL": 1}

    kinds = [alert["kind"] for alert in client.get("/audit/anomalies", headers=ADMIN).json()]
    assert kinds == ["BRUTE_FORCE", "CRITICAL_ACTION"]

    summary = client.get("/audit/summary", headers=ADMIN).json()
    assert summary["total"] == 5
    assert summary["failures"] == 4
    assert summary["highRisk"] == 1
    assert summary["uniqueActors"] == 1


def test_export_is_csv_text(client):
    _append(client, details='Changed "phone"')

    response = client.get("/audit/export", headers=ADMIN)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.split("\n")
    assert lines[0].startswith('"timestamp","actor"')
    assert '"Changed ""phone"""' in lines[1]


def test_risk_is_derived_when_payload_omits_it(client):
    exported = _append(client, actionType="EXPORT", target="Roster")
    reset = _append(client, actionType="system_reset", target="database")

    assert exported["riskLevel"] == "HIGH"
    assert reset["actionType"] == "SYSTEM_RESET"
    assert reset["riskLevel"] == "CRITICAL"
