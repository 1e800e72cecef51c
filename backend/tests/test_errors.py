"""Tests for error envelopes, health and metrics."""

import pytest
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel, ValidationError

import crm.database
import crm.main
from crm.database import get_db
from crm.errors import Conflict, NotFound, ValidationFailed, error_body, field_errors
from crm.main import app


class TestErrorHelpers:
    def test_error_body_omits_empty_details(self):
        assert error_body("Nope", "not_found") == {"error": "Nope", "code": "not_found"}

    def test_conflict_names_constraint(self):
        exc = Conflict("Duplicate", "leads_email_unique")
        assert exc.status_code == 409
        assert exc.details == {"constraint": "leads_email_unique"}

    def test_not_found_status(self):
        assert NotFound("Lead not found").status_code == 404

    def test_field_errors_drop_location_prefix(self):
        class Payload(BaseModel):
            count: int

        with pytest.raises(ValidationError) as exc:
            Payload.model_validate({"count": "many"})

        details = ValidationFailed.from_pydantic(exc.value).details
        assert details[0]["field"] == "count"
        assert field_errors([{"loc": ("body", "ids", 0), "msg": "bad"}]) == [{"field": "ids.0", "message": "bad"}]


class TestUnexpectedErrors:
    async def test_storage_fault_is_opaque(self, users):
        async def broken_db():
            raise RuntimeError("connection to 10.0.0.5 refused")

        app.dependency_overrides[get_db] = broken_db
        try:
            transport = ASGITransport(app=app, raise_app_exceptions=False)
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                resp = await ac.get("/api/leads", headers={"Authorization": "Bearer whatever"})
        finally:
            app.dependency_overrides.clear()

        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error", "code": "internal_error"}
        assert "10.0.0.5" not in resp.text


class TestRequestValidation:
    async def test_bad_json_body_is_400(self, client, alice_headers):
        resp = await client.post(
            "/api/campaigns", content="{", headers={**alice_headers, "Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"


class TestHealth:
    async def test_healthy(self, client, session_factory, monkeypatch):
        monkeypatch.setattr(crm.database, "async_session", session_factory)
        body = (await client.get("/api/health")).json()
        assert body == {"status": "healthy", "version": "1.0.0", "db": "ok"}

    async def test_metrics_exposed(self, client, alice_headers):
        await client.get("/api/campaigns", headers=alice_headers)
        resp = await client.get("/api/metrics")
        assert resp.status_code == 200
        assert "list_requests_total" in resp.text
        assert "errors_total" in resp.text


class TestEntryPoint:
    def test_run_serves_app(self, monkeypatch):
        calls = []
        monkeypatch.setattr(crm.main.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))

        crm.main.run()
        args, kwargs = calls[0]
        assert args == ("crm.main:app",)
        assert kwargs["port"] == 8000
