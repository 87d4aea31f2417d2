"""Tests for app factory wiring and correlation ID middleware."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from wabridge.api.factory import create_app
from wabridge.context import build_context


class TestRoutes:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_docs_disabled(self, client):
        assert client.get("/docs").status_code == 404

    def test_api_routes_mounted(self, client):
        assert client.get("/api/messages").status_code == 200
        assert client.get("/api/download/unknown").status_code == 404
        assert client.post("/api/send", content=b"{}").status_code == 400
        assert client.post("/webhooks/evolution", json={}).status_code == 200

    def test_readiness_reports_store_and_session(self, client, context):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "stored": 0, "loggedIn": True}

    def test_readiness_without_identity(self, client, session):
        session.set_own_jid(None)
        assert client.get("/health/ready").json()["loggedIn"] is False

    def test_readiness_503_when_store_unreachable(self, client, context):
        with patch.object(context.store, "count", side_effect=RuntimeError("db down")):
            response = client.get("/health/ready")
        assert response.status_code == 503
        assert response.json() == {"status": "unavailable"}

    def test_invalid_body_is_plain_400(self, client):
        response = client.post("/api/send", json={"message": "x"})
        assert response.status_code == 400
        assert response.text == "Invalid request body"


class TestCorrelationId:
    def test_generates_correlation_id(self, client):
        response = client.get("/health")
        assert "X-Correlation-ID" in response.headers
        assert len(response.headers["X-Correlation-ID"]) > 0

    def test_echoes_incoming_correlation_id(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "test-123"})
        assert response.headers["X-Correlation-ID"] == "test-123"


class TestLifespan:
    def test_starts_and_stops_workers(self, settings, engine, session, notifier):
        ctx = build_context(settings, session=session, engine=engine, notifier=notifier)
        ctx.store.ensure_schema()

        with TestClient(create_app(ctx)) as client:
            assert ctx.persistence.running is True
            assert client.get("/health").status_code == 200

        assert ctx.persistence.running is False
