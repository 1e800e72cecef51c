"""HTTP client for the CRM API."""

import json
from typing import Any, Mapping

import httpx
import structlog

from crm.config import settings

logger = structlog.get_logger()


class APIError(Exception):
    def __init__(self, message: str, status: int, code: str | None = None, details: Any = None):
        self.message = message
        self.status = status
        self.code = code
        self.details = details
        super().__init__(message)

    @classmethod
    def from_response(cls, response: httpx.Response) -> "APIError":
        try:
            body = response.json()
        except ValueError:
            return cls(response.reason_phrase or f"HTTP {response.status_code}", response.status_code)
        if not isinstance(body, dict):
            return cls(f"HTTP {response.status_code}", response.status_code)
        message = body.get("error") or body.get("message") or f"HTTP {response.status_code}"
        return cls(message, response.status_code, body.get("code"), body.get("details"))


def page_headers(filters: Mapping[str, Any] | None, page: int, page_size: int) -> dict[str, str]:
    """List filters travel in headers, the same way the web frontend sends them."""
    return {
        "X-Filters": json.dumps({k: v for k, v in (filters or {}).items() if v is not None}, default=str),
        "X-Page": str(page),
        "X-Page-Size": str(page_size),
    }


class CRMClient:
    """Thin async wrapper; every method returns decoded JSON or raises APIError."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        session_token: str | None = None,
        http: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.http = http or httpx.AsyncClient(base_url=base_url or settings.api_base_url, timeout=timeout)
        self.headers = {"Content-Type": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        if session_token:
            self.headers["Cookie"] = f"{settings.session_cookie_name}={session_token}"

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    async def request(self, method: str, path: str, *, json: Any = None, headers: dict | None = None) -> Any:
        try:
            response = await self.http.request(method, path, json=json, headers={**self.headers, **(headers or {})})
        except httpx.HTTPError as e:
            logger.warning("api_request_failed", method=method, path=path, error=str(e))
            raise APIError(str(e) or "An unexpected error occurred", 0) from e

        if response.is_error:
            raise APIError.from_response(response)
        if "application/json" not in response.headers.get("content-type", ""):
            return {}
        return response.json()

    # Leads

    async def list_leads(self, filters: Mapping[str, Any] | None = None, page: int = 1, page_size: int = 20) -> dict:
        return await self.request("GET", "/leads", headers=page_headers(filters, page, page_size))

    async def get_lead(self, lead_id) -> dict:
        return await self.request("GET", f"/leads/{lead_id}")

    async def create_lead(self, data: dict) -> dict:
        return await self.request("POST", "/leads", json=data)

    async def update_lead(self, lead_id, data: dict) -> dict:
        return await self.request("PUT", f"/leads/{lead_id}", json=data)

    async def delete_lead(self, lead_id) -> dict:
        return await self.request("DELETE", f"/leads/{lead_id}")

    async def bulk_update_leads(self, ids: list, data: dict) -> dict:
        return await self.request("PATCH", "/leads", json={"ids": [str(i) for i in ids], "data": data})

    async def bulk_delete_leads(self, ids: list) -> dict:
        return await self.request("DELETE", "/leads", json={"ids": [str(i) for i in ids]})

    async def list_interactions(self, lead_id) -> list:
        return await self.request("GET", f"/leads/{lead_id}/interactions")

    async def add_interaction(self, lead_id, data: dict) -> dict:
        return await self.request("POST", f"/leads/{lead_id}/interactions", json=data)

    # Campaigns

    async def list_campaigns(self, filters: Mapping[str, Any] | None = None, page: int = 1, page_size: int = 20) -> dict:
        return await self.request("GET", "/campaigns", headers=page_headers(filters, page, page_size))

    async def get_campaign(self, campaign_id) -> dict:
        return await self.request("GET", f"/campaigns/{campaign_id}")

    async def create_campaign(self, data: dict) -> dict:
        return await self.request("POST", "/campaigns", json=data)

    async def update_campaign(self, campaign_id, data: dict) -> dict:
        return await self.request("PUT", f"/campaigns/{campaign_id}", json=data)

    async def delete_campaign(self, campaign_id) -> dict:
        return await self.request("DELETE", f"/campaigns/{campaign_id}")

    async def bulk_update_campaigns(self, ids: list, data: dict) -> dict:
        return await self.request("PATCH", "/campaigns", json={"ids": [str(i) for i in ids], "data": data})

    async def bulk_delete_campaigns(self, ids: list) -> dict:
        return await self.request("DELETE", "/campaigns", json={"ids": [str(i) for i in ids]})

    # Misc

    async def dashboard(self) -> dict:
        return await self.request("GET", "/analytics/dashboard")

    async def session(self) -> dict:
        return await self.request("GET", "/session")
