"""
Test HTTP API

Route tests for order upload, sessions, reports and questions.
"""

import pytest
from fastapi.testclient import TestClient

from api.routes import query as query_routes
from config import get_settings
from core.cache import SessionStore, session_store
from main import app

MARCH = {"dateRange": "custom", "startDate": "2024-03-01", "endDate": "2024-03-31"}


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session_id(client, spike_records):
    response = client.post("/api/v1/orders", json={"orders": spike_records, "source": "test"})
    assert response.status_code == 200
    yield response.json()["sessionId"]
    client.delete(f"/api/v1/sessions/{response.json()['sessionId']}")


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestOrders:
    def test_upload_reports_skipped_records(self, client, spike_records):
        response = client.post("/api/v1/orders", json={"orders": spike_records + ["junk"], "source": "test"})

        assert response.status_code == 200
        body = response.json()
        assert body["orderCount"] == 7
        assert body["skipped"] == 1
        client.delete(f"/api/v1/sessions/{body['sessionId']}")

    def test_upload_too_large(self, client, spike_records, monkeypatch):
        monkeypatch.setattr(get_settings(), "max_orders_per_upload", 3)

        response = client.post("/api/v1/orders", json={"orders": spike_records})

        assert response.status_code == 413

    def test_session_lifecycle(self, client, session_id):
        info = client.get(f"/api/v1/sessions/{session_id}")
        assert info.status_code == 200
        assert info.json()["orderCount"] == 7
        assert info.json()["source"] == "test"

        listed = client.get("/api/v1/sessions").json()
        assert session_id in [s["sessionId"] for s in listed["sessions"]]

        assert client.delete(f"/api/v1/sessions/{session_id}").status_code == 200
        assert client.get(f"/api/v1/sessions/{session_id}").status_code == 404

    def test_unknown_session(self, client):
        assert client.get("/api/v1/sessions/missing").status_code == 404
        assert client.delete("/api/v1/sessions/missing").status_code == 404


class TestReports:
    def test_report(self, client, session_id):
        response = client.get(f"/api/v1/reports/{session_id}", params=MARCH)

        assert response.status_code == 200
        report = response.json()
        assert report["metrics"]["totalOrders"] == 7
        assert report["metrics"]["totalRevenue"] == pytest.approx(1000)
        assert report["dateRange"]["label"] == "01 Mar 2024 to 31 Mar 2024"
        assert report["aiSummary"] is None

    def test_report_with_filters_and_summary(self, client, session_id):
        params = {**MARCH, "customerId": "cust-0", "include_summary": "true"}
        report = client.get(f"/api/v1/reports/{session_id}", params=params).json()

        assert report["metrics"]["totalOrders"] == 3
        assert report["aiSummary"]["summary"].startswith("For 01 Mar 2024 to 31 Mar 2024, you processed 3 orders")

    def test_invalid_range_returns_error_report(self, client, session_id):
        report = client.get(f"/api/v1/reports/{session_id}", params={"dateRange": "fortnight"}).json()

        assert report["error"]
        assert report["metrics"]["totalOrders"] == 0

    def test_summary(self, client, session_id):
        response = client.get(f"/api/v1/reports/{session_id}/summary", params=MARCH)

        assert response.status_code == 200
        assert response.json()["confidence"]["factors"]["dataVolume"] == "fair"

    def test_summary_invalid_range(self, client, session_id):
        response = client.get(f"/api/v1/reports/{session_id}/summary", params={"dateRange": "fortnight"})
        assert response.status_code == 400

    def test_forecast(self, client, session_id):
        response = client.get(f"/api/v1/reports/{session_id}/forecast", params={"period": "month"})

        assert response.status_code == 200
        assert response.json()["historyDays"] == 7
        assert response.json()["predictions"]["sales"]["forecastDays"] == 30

    def test_forecast_rejects_unknown_period(self, client, session_id):
        response = client.get(f"/api/v1/reports/{session_id}/forecast", params={"period": "decade"})
        assert response.status_code == 422

    def test_dashboard(self, client, session_id):
        body = client.get(f"/api/v1/reports/{session_id}/dashboard").json()

        assert body["totalOrders"] == 7
        assert body["topProduct"] == "Full Cream Milk"

    def test_missing_session(self, client):
        assert client.get("/api/v1/reports/missing").status_code == 404
        assert client.get("/api/v1/reports/missing/dashboard").status_code == 404


class TestQuery:
    def test_question(self, client, session_id):
        response = client.post(f"/api/v1/query/{session_id}", json={"question": "top products this month"})

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "answer"
        assert body["intent"] == "top_products"

    def test_invalid_question_is_an_answer_not_a_422(self, client, session_id):
        body = client.post(f"/api/v1/query/{session_id}", json={"question": ""}).json()

        assert body["type"] == "error"
        assert body["errorKind"] == "invalid_input"

    def test_missing_session(self, client):
        response = client.post("/api/v1/query/missing", json={"question": "show sales"})
        assert response.status_code == 404

    def test_suggestions(self, client):
        body = client.get("/api/v1/query/suggestions").json()

        assert "Sales Analytics" in body["categories"]
        assert body["quickActions"][0]["text"] == "Sales Today"


class TestSessionExpiry:
    def test_removal_listeners(self):
        store = SessionStore(ttl_seconds=60)
        removed = []
        store.add_removal_listener(removed.append)
        for sid in ("a", "b", "c"):
            store.create(sid, [], {})

        assert store.delete("a")
        assert not store.delete("a")
        assert removed == ["a"]

        store.ttl_seconds = -1
        assert store.list_sessions() == []
        assert sorted(removed) == ["a", "b", "c"]

    def test_expired_session_releases_engine(self, client, session_id, monkeypatch):
        client.post(f"/api/v1/query/{session_id}", json={"question": "sales this week"})
        assert session_id in query_routes._engines

        monkeypatch.setattr(session_store, "ttl_seconds", -1)

        assert client.get("/api/v1/sessions").json()["count"] == 0
        assert session_id not in query_routes._engines

    def test_deleted_session_releases_engine(self, client, session_id):
        client.post(f"/api/v1/query/{session_id}", json={"question": "sales this week"})

        client.delete(f"/api/v1/sessions/{session_id}")

        assert session_id not in query_routes._engines
