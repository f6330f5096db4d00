"""
Tavara.care Coordination Service - API Tests

Exercises the HTTP surface: the acting profile header, access checks
and the translation of service errors into JSON responses.
"""

import pytest
from fastapi.testclient import TestClient

from tavara.core.settings import get_settings
from tavara.db.models import CarePlan, Lead
from tavara.main import app
from tavara.monitoring.metrics import metrics_collector


@pytest.fixture
def client():
    return TestClient(app)


def as_user(profile):
    return {"X-User-ID": profile.id}


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"

    def test_security_headers(self, client):
        response = client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestAuthentication:

    def test_missing_user_header(self, client):
        response = client.get("/api/v1/care-plans")

        assert response.status_code == 401
        assert response.json()["detail"] == "Missing X-User-ID header"

    def test_unknown_user(self, client):
        response = client.get("/api/v1/care-plans", headers={"X-User-ID": "nobody"})

        assert response.status_code == 401

    def test_admin_only(self, client, family):
        response = client.get("/api/v1/admin/families", headers=as_user(family))

        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"

    def test_admin_lists_families(self, client, admin, family):
        response = client.get("/api/v1/admin/families", headers=as_user(admin))

        assert response.status_code == 200
        assert [p["full_name"] for p in response.json()] == ["Maria Lopez"]


class TestCarePlanRoutes:

    def test_create_plan(self, client, db, family):
        response = client.post(
            "/api/v1/care-plans",
            json={"title": "Mum's care", "plan_type": "both"},
            headers=as_user(family)
        )

        assert response.status_code == 201
        assert response.json()["family_id"] == family.id
        assert db.query(CarePlan).count() == 1

    def test_outsider_refused(self, client, care_plan, make_profile):
        stranger = make_profile("family", full_name="Someone Else")

        response = client.get(f"/api/v1/care-plans/{care_plan.id}", headers=as_user(stranger))

        assert response.status_code == 403

    def test_team_member_can_read(self, client, care_plan, caregiver, team_member):
        response = client.get(f"/api/v1/care-plans/{care_plan.id}", headers=as_user(caregiver))

        assert response.status_code == 200
        assert response.json()["title"] == "Mum's care"

    def test_team_member_cannot_edit(self, client, care_plan, caregiver, team_member):
        response = client.patch(
            f"/api/v1/care-plans/{care_plan.id}", json={"title": "Mine now"}, headers=as_user(caregiver)
        )

        assert response.status_code == 403


class TestErrorTranslation:
    """Service exceptions arrive as {error, detail, request_id, timestamp}."""

    def test_not_found(self, client, family):
        response = client.get(
            "/api/v1/care-plans/missing", headers={**as_user(family), "X-Request-ID": "req_test"}
        )

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["request_id"] == "req_test"
        assert "timestamp" in body

    def test_value_error(self, client, family):
        response = client.post(
            "/api/v1/care-plans", json={"title": "Plan", "plan_type": "weekly"}, headers=as_user(family)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_conflict(self, client, family, care_plan, caregiver):
        url = f"/api/v1/care-plans/{care_plan.id}/team"
        client.post(url, json={"caregiver_id": caregiver.id}, headers=as_user(family))

        response = client.post(url, json={"caregiver_id": caregiver.id}, headers=as_user(family))

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_request_validation(self, client, family):
        response = client.post("/api/v1/care-plans", json={}, headers=as_user(family))

        assert response.status_code == 422


class TestPublicRoutes:

    def test_visit_fees(self, client):
        response = client.get("/api/v1/visits/fees")

        assert response.status_code == 200
        assert response.json()["in_person_visit"] == "300.00"

    def test_chat_start(self, client):
        response = client.post("/api/v1/chat/start", json={})

        assert response.status_code == 200
        state = response.json()
        assert state["session_id"].startswith("chat_")
        intro = state["conversation"]["conversation_data"][0]
        assert intro["message_type"] == "option"
        assert intro["context_data"]["step"] == "role_selection"

    def test_contact_form(self, client, db):
        response = client.post("/api/v1/leads/contact", json={
            "name": "Ana Ramdial",
            "email": "ana@example.com",
            "message": "Looking for weekday help"
        })

        assert response.status_code == 201
        assert db.query(Lead).count() == 1

    def test_rate_limit(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "RATE_LIMIT_PER_MINUTE", 2)
        payload = {"session_id": "chat_limit", "message": "1"}
        client.post("/api/v1/chat/start", json={"session_id": "chat_limit"})

        statuses = [client.post("/api/v1/chat/reply", json=payload).status_code for _ in range(3)]

        assert statuses[-1] == 429


class TestMonitoringRoutes:

    def test_metrics(self, client):
        metrics_collector.record_assignment("manual")

        response = client.get("/api/v1/metrics")

        assert response.status_code == 200
        assert response.json()["assignments_by_type"] == {"manual": 1}

    def test_prometheus(self, client):
        response = client.get("/api/v1/metrics/prometheus")

        assert response.status_code == 200
        assert "tavara_errors_total" in response.text

    def test_prometheus_disabled(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "ENABLE_METRICS", False)

        assert client.get("/api/v1/metrics/prometheus").status_code == 404
