"""Cached reads and cache-aware mutations on top of CRMClient.

Mutations run under ``asyncio.shield``: once dispatched, a mutation and the
invalidation that follows it complete even if the awaiting caller is
cancelled.
"""

import asyncio
from typing import Any, Awaitable, Callable, Mapping

import structlog

from crm.client.api import CRMClient
from crm.client.cache import QueryCache, QueryKeys, analytics_keys, campaign_keys, infinite_items, lead_keys
from crm.config import settings

logger = structlog.get_logger()

INFINITE_PAGE_SIZE = 50


class _EntityQueries:
    keys: QueryKeys
    kind: str

    def __init__(self, client: CRMClient, cache: QueryCache):
        self.client = client
        self.cache = cache

    def _fetch_list(self, filters, page: int, page_size: int) -> Awaitable[dict]:
        raise NotImplementedError

    async def _mutate(
        self, name: str, call: Awaitable, on_success: Callable[[Any], Awaitable[None]] | None = None
    ) -> Any:
        async def run():
            result = await call
            if on_success is not None:
                await on_success(result)
            await self.cache.apply_rule(f"{self.kind}.{name}")
            logger.info("client_mutation_applied", mutation=f"{self.kind}.{name}")
            return result

        return await asyncio.shield(run())

    async def list_page(self, filters: Mapping[str, Any] | None = None, page: int = 1, page_size: int = 20) -> dict:
        return await self.cache.fetch_query(
            self.keys.list(filters, page, page_size),
            lambda: self._fetch_list(filters, page, page_size),
            settings.list_stale_seconds,
        )

    async def infinite(self, filters: Mapping[str, Any] | None = None, page_size: int = INFINITE_PAGE_SIZE) -> dict:
        return await self.cache.fetch_infinite(
            self.keys.infinite(filters, page_size),
            lambda page: self._fetch_list(filters, page, page_size),
            settings.list_stale_seconds,
        )

    async def fetch_next_page(
        self, filters: Mapping[str, Any] | None = None, page_size: int = INFINITE_PAGE_SIZE
    ) -> dict:
        return await self.cache.fetch_next_page(
            self.keys.infinite(filters, page_size),
            lambda page: self._fetch_list(filters, page, page_size),
            settings.list_stale_seconds,
        )

    async def has_next_page(self, filters: Mapping[str, Any] | None = None, page_size: int = INFINITE_PAGE_SIZE) -> bool:
        return await self.cache.has_next_page(self.keys.infinite(filters, page_size))

    async def loaded_rows(self, filters: Mapping[str, Any] | None = None, page_size: int = INFINITE_PAGE_SIZE) -> list:
        data = await self.cache.get_query_data(self.keys.infinite(filters, page_size))
        return infinite_items(data) if data else []

    async def _write_detail(self, entity_id, updated: dict) -> None:
        """Merge an update response into a cached detail entry, if there is one."""
        key = self.keys.detail(entity_id)
        previous = await self.cache.get_query_data(key)
        if previous is not None:
            await self.cache.set_query_data(key, {**previous, **updated})


class LeadQueries(_EntityQueries):
    keys = lead_keys
    kind = "leads"

    def _fetch_list(self, filters, page, page_size):
        return self.client.list_leads(filters, page, page_size)

    async def detail(self, lead_id) -> dict:
        return await self.cache.fetch_query(
            lead_keys.detail(lead_id), lambda: self.client.get_lead(lead_id), settings.detail_stale_seconds
        )

    async def interactions(self, lead_id) -> list:
        return await self.cache.fetch_query(
            lead_keys.interactions(lead_id),
            lambda: self.client.list_interactions(lead_id),
            settings.list_stale_seconds,
        )

    async def create(self, data: dict) -> dict:
        async def on_success(lead):
            if lead.get("campaignId"):
                await self.cache.invalidate(campaign_keys.detail(lead["campaignId"]))

        return await self._mutate("create", self.client.create_lead(data), on_success)

    async def update(self, lead_id, data: dict) -> dict:
        previous = await self.cache.get_query_data(lead_keys.detail(lead_id))
        previous_campaign = previous.get("campaignId") if previous else None

        async def on_success(lead):
            if previous and previous_campaign != lead.get("campaignId"):
                # The embedded campaign no longer matches; refetch instead of merging
                await self.cache.remove(lead_keys.detail(lead_id))
            else:
                await self._write_detail(lead_id, lead)
            for campaign_id in {previous_campaign, lead.get("campaignId")} - {None}:
                await self.cache.invalidate(campaign_keys.detail(campaign_id))

        return await self._mutate("update", self.client.update_lead(lead_id, data), on_success)

    async def delete(self, lead_id) -> dict:
        async def on_success(_):
            await self.cache.remove(lead_keys.detail(lead_id))
            await self.cache.remove(lead_keys.interactions(lead_id))

        return await self._mutate("delete", self.client.delete_lead(lead_id), on_success)

    async def bulk_update(self, ids: list, data: dict) -> dict:
        return await self._mutate("bulk_update", self.client.bulk_update_leads(ids, data))

    async def bulk_delete(self, ids: list) -> dict:
        return await self._mutate("bulk_delete", self.client.bulk_delete_leads(ids))

    async def add_interaction(self, lead_id, data: dict) -> dict:
        async def on_success(_):
            await self.cache.invalidate(lead_keys.interactions(lead_id))
            await self.cache.invalidate(lead_keys.detail(lead_id))

        return await self._mutate("add_interaction", self.client.add_interaction(lead_id, data), on_success)


class CampaignQueries(_EntityQueries):
    keys = campaign_keys
    kind = "campaigns"

    def _fetch_list(self, filters, page, page_size):
        return self.client.list_campaigns(filters, page, page_size)

    async def detail(self, campaign_id) -> dict:
        return await self.cache.fetch_query(
            campaign_keys.detail(campaign_id),
            lambda: self.client.get_campaign(campaign_id),
            settings.detail_stale_seconds,
        )

    async def create(self, data: dict) -> dict:
        return await self._mutate("create", self.client.create_campaign(data))

    async def update(self, campaign_id, data: dict) -> dict:
        async def on_success(campaign):
            await self._write_detail(campaign_id, campaign)

        return await self._mutate("update", self.client.update_campaign(campaign_id, data), on_success)

    async def delete(self, campaign_id) -> dict:
        async def on_success(_):
            await self.cache.remove(campaign_keys.detail(campaign_id))

        return await self._mutate("delete", self.client.delete_campaign(campaign_id), on_success)

    async def bulk_update(self, ids: list, data: dict) -> dict:
        return await self._mutate("bulk_update", self.client.bulk_update_campaigns(ids, data))

    async def bulk_delete(self, ids: list) -> dict:
        return await self._mutate("bulk_delete", self.client.bulk_delete_campaigns(ids))


class AnalyticsQueries:
    def __init__(self, client: CRMClient, cache: QueryCache):
        self.client = client
        self.cache = cache

    async def dashboard(self) -> dict:
        return await self.cache.fetch_query(
            analytics_keys.dashboard(), self.client.dashboard, settings.analytics_stale_seconds
        )
