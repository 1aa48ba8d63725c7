"""Unit tests for auth, rate limiting and request ID middleware."""

from __future__ import annotations

import uuid

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from src.config.settings import EnvelopeSettings
from src.main import create_app
from src.middleware.auth import ServiceKeyAuthMiddleware
from src.middleware.error_handler import register_error_handlers
from src.middleware.rate_limit import RateLimitMiddleware
from src.middleware.request_id import RequestIdMiddleware
from src.resilience.rate_limiter import ClientRateLimiter
from src.routers.health import create_health_router


def _make_app(*, tokens: int = 1000, limiter: ClientRateLimiter | None = None) -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return {"success": True, "data": {"status": "healthy"}}

    @app.get("/protected")
    async def protected(request: Request):
        return {"success": True, "data": {"request_id": request.state.request_id}}

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database password=hunter2 leaked")

    app.add_middleware(ServiceKeyAuthMiddleware, service_key="secret")
    app.add_middleware(
        RateLimitMiddleware,
        limiter=limiter or ClientRateLimiter(tokens=tokens, interval_seconds=60),
        service_key="secret",
    )
    app.add_middleware(RequestIdMiddleware)
    return app


@pytest.fixture()
def client():
    return TestClient(_make_app())


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestServiceKeyAuth:
    def test_missing_key_rejected(self, client: TestClient):
        resp = client.get("/protected")
        assert resp.status_code == 401
        assert resp.json() == {
            "success": False,
            "error": True,
            "message": "Invalid or missing service key",
            "code": "UNAUTHORIZED",
        }

    def test_wrong_key_rejected(self, client: TestClient):
        assert client.get("/protected", headers={"X-Service-Key": "nope"}).status_code == 401

    def test_service_key_header(self, client: TestClient):
        assert client.get("/protected", headers={"X-Service-Key": "secret"}).status_code == 200

    def test_bearer_token(self, client: TestClient):
        assert client.get("/protected", headers={"Authorization": "Bearer secret"}).status_code == 200

    def test_other_auth_scheme_rejected(self, client: TestClient):
        assert client.get("/protected", headers={"Authorization": "Basic secret"}).status_code == 401

    def test_health_is_public(self, client: TestClient):
        assert client.get("/health").status_code == 200

    def test_rejection_still_has_request_id(self, client: TestClient):
        assert "X-Request-ID" in client.get("/protected").headers


# ---------------------------------------------------------------------------
# Request ID
# ---------------------------------------------------------------------------


class TestRequestId:
    def test_generated_when_absent(self, client: TestClient):
        resp = client.get("/protected", headers={"X-Service-Key": "secret"})
        request_id = resp.headers["X-Request-ID"]
        assert uuid.UUID(request_id).version == 4
        assert resp.json()["data"]["request_id"] == request_id

    def test_propagates_well_formed_id(self, client: TestClient):
        resp = client.get("/protected", headers={"X-Service-Key": "secret", "X-Request-ID": "abc-123"})
        assert resp.headers["X-Request-ID"] == "abc-123"

    def test_replaces_unsafe_id(self, client: TestClient):
        resp = client.get(
            "/protected", headers={"X-Service-Key": "secret", "X-Request-ID": "bad id<script>"}
        )
        assert resp.headers["X-Request-ID"] != "bad id<script>"
        uuid.UUID(resp.headers["X-Request-ID"])

    def test_unhandled_error_still_has_request_id(self, client: TestClient):
        resp = client.get("/boom", headers={"X-Service-Key": "secret", "X-Request-ID": "trace-42"})
        assert resp.status_code == 500
        assert resp.headers["X-Request-ID"] == "trace-42"
        assert resp.json() == {
            "success": False,
            "error": True,
            "message": "Internal server error",
            "code": "INTERNAL_ERROR",
        }


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


class TestRateLimit:
    def test_exhausted_bucket_returns_429(self):
        client = TestClient(_make_app(tokens=2))
        headers = {"X-Service-Key": "secret"}

        assert client.get("/protected", headers=headers).status_code == 200
        assert client.get("/protected", headers=headers).status_code == 200
        resp = client.get("/protected", headers=headers)

        assert resp.status_code == 429
        assert int(resp.headers["Retry-After"]) >= 1
        body = resp.json()
        assert body["code"] == "RATE_LIMIT_EXCEEDED"
        assert body["error"] is True
        assert body["details"][0]["retry_after"] == int(resp.headers["Retry-After"])

    def test_health_is_exempt(self):
        client = TestClient(_make_app(tokens=1))
        for _ in range(5):
            assert client.get("/health").status_code == 200

    def test_rotating_unverified_keys_share_ip_bucket(self):
        limiter = ClientRateLimiter(tokens=2, interval_seconds=60)
        client = TestClient(_make_app(limiter=limiter))

        codes = [
            client.get("/protected", headers={"X-Service-Key": f"guess-{i}"}).status_code
            for i in range(10)
        ]

        assert codes[:2] == [401, 401]
        assert set(codes[2:]) == {429}
        assert limiter.get_stats()["tracked_clients"] == 1

    def test_bearer_and_header_share_bucket(self):
        client = TestClient(_make_app(tokens=2))
        bearer = {"Authorization": "Bearer secret"}

        assert client.get("/protected", headers=bearer).status_code == 200
        assert client.get("/protected", headers=bearer).status_code == 200
        assert client.get("/protected", headers={"X-Service-Key": "secret"}).status_code == 429

    def test_verified_key_has_its_own_bucket(self):
        client = TestClient(_make_app(tokens=1))
        assert client.get("/protected", headers={"X-Service-Key": "wrong"}).status_code == 401
        assert client.get("/protected", headers={"X-Service-Key": "wrong"}).status_code == 429
        assert client.get("/protected", headers={"X-Service-Key": "secret"}).status_code == 200


# ---------------------------------------------------------------------------
# Application wiring
# ---------------------------------------------------------------------------


class TestAppWiring:
    def test_health_reports_resources(self, settings: EnvelopeSettings):
        with TestClient(create_app(settings)) as client:
            body = client.get("/health").json()
        assert body["success"] is True
        assert body["data"]["status"] == "healthy"
        assert body["data"]["resources"]["appointment"] == 0
        assert body["data"]["rate_limiter"]["max_tokens"] == settings.rate_limit_tokens

    def test_readiness(self, settings: EnvelopeSettings):
        with TestClient(create_app(settings)) as client:
            resp = client.get("/readiness")
        assert resp.status_code == 200
        assert resp.json()["data"]["ready"] is True

    def test_app_state(self, settings: EnvelopeSettings):
        app = create_app(settings)
        assert app.state.settings is settings
        assert "invoice" in app.state.stores

    def test_readiness_without_resources(self):
        app = FastAPI()
        app.include_router(create_health_router(stores={}))
        resp = TestClient(app).get("/readiness")
        assert resp.status_code == 503
        body = resp.json()
        assert body["success"] is False
        assert body == {
            "success": False,
            "error": True,
            "message": "Service not ready",
            "code": "SERVICE_UNAVAILABLE",
            "details": [{"ready": False, "resources": []}],
        }
