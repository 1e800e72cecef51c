"""Tests for the HTTP client, run against the app in-process."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from crm.client.api import APIError, CRMClient, page_headers
from crm.main import app
from crm.middleware.auth import create_access_token
from conftest import ALICE


@pytest.fixture
async def api(client):
    # ``client`` wires the app to the test database
    http = AsyncClient(transport=ASGITransport(app=app), base_url="http://test/api")
    async with CRMClient(token=create_access_token(ALICE), http=http) as api:
        yield api


def stub_client(handler) -> CRMClient:
    http = AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test/api")
    return CRMClient(http=http)


def test_page_headers_drop_nulls():
    headers = page_headers({"status": "pending", "campaignId": None}, 2, 50)
    assert headers == {"X-Filters": '{"status": "pending"}', "X-Page": "2", "X-Page-Size": "50"}


class TestAgainstApp:
    async def test_session(self, api):
        assert (await api.session())["user"]["id"] == ALICE

    async def test_list_with_filters(self, api, make_lead):
        await make_lead(status="converted")
        await make_lead(status="pending")

        body = await api.list_leads({"status": "converted"}, 1, 10)
        assert body["total"] == 1
        assert body["data"][0]["status"] == "converted"
        assert body["pageSize"] == 10

    async def test_create_then_read(self, api):
        campaign = await api.create_campaign({"name": "Spring Launch"})
        lead = await api.create_lead({"email": "dana@example.com", "campaignId": campaign["id"]})

        detail = await api.get_campaign(campaign["id"])
        assert detail["leadCount"] == 1
        assert (await api.get_lead(lead["id"]))["campaign"]["name"] == "Spring Launch"

    async def test_not_found(self, api):
        with pytest.raises(APIError) as exc:
            await api.get_lead("00000000-0000-0000-0000-000000000000")
        assert exc.value.status == 404
        assert exc.value.code == "not_found"

    async def test_conflict(self, api):
        await api.create_lead({"email": "dup@example.com"})
        with pytest.raises(APIError) as exc:
            await api.create_lead({"email": "dup@example.com"})
        assert exc.value.status == 409
        assert exc.value.code == "conflict"

    async def test_validation_details(self, api):
        with pytest.raises(APIError) as exc:
            await api.create_lead({"email": "not-an-email"})
        assert exc.value.status == 400
        assert exc.value.details[0]["field"] == "email"


class TestTransportFailures:
    async def test_non_json_error_uses_reason(self):
        api = stub_client(lambda request: httpx.Response(502, text="<html>bad gateway</html>"))
        with pytest.raises(APIError) as exc:
            await api.dashboard()
        assert exc.value.status == 502
        assert exc.value.message == "Bad Gateway"
        await api.aclose()

    async def test_message_field_fallback(self):
        api = stub_client(lambda request: httpx.Response(503, json={"message": "Maintenance"}))
        with pytest.raises(APIError) as exc:
            await api.list_campaigns()
        assert exc.value.message == "Maintenance"
        await api.aclose()

    async def test_network_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        api = stub_client(refuse)
        with pytest.raises(APIError) as exc:
            await api.session()
        assert exc.value.status == 0
        await api.aclose()

    async def test_filter_headers_sent(self):
        seen = {}

        def capture(request):
            seen.update(request.headers)
            seen["path"] = request.url.path
            return httpx.Response(200, json={"data": []})

        api = stub_client(capture)
        await api.list_leads({"search": "acme"}, 3, 25)
        assert seen["path"] == "/api/leads"
        assert seen["x-filters"] == '{"search": "acme"}'
        assert seen["x-page"] == "3"
        await api.aclose()
