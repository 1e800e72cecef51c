"""Client-side query cache for list pages, details and the dashboard.

Keys are tuples built by the ``*_keys`` helpers below; invalidation works on
key prefixes, so ``lead_keys.lists()`` covers every cached lead page, plain or
infinite, whatever its filters.
"""

import json
import time
from typing import Any, Awaitable, Callable, Mapping
from urllib.parse import quote

import redis.asyncio as aioredis
import structlog

from crm.config import settings

logger = structlog.get_logger()

Key = tuple


def canonical_filters(filters: Mapping[str, Any] | None) -> str:
    """Equal filter specifications give equal strings. Unset values are dropped."""
    cleaned = {k: v for k, v in (filters or {}).items() if v is not None and v != ""}
    return json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=str)


class QueryKeys:
    def __init__(self, kind: str):
        self.kind = kind

    def all(self) -> Key:
        return (self.kind,)

    def lists(self) -> Key:
        return (self.kind, "list")

    def list(self, filters: Mapping[str, Any] | None, page: int, page_size: int) -> Key:
        return (*self.lists(), canonical_filters(filters), page, page_size)

    def infinite(self, filters: Mapping[str, Any] | None, page_size: int) -> Key:
        return (*self.lists(), "infinite", canonical_filters(filters), page_size)

    def details(self) -> Key:
        return (self.kind, "detail")

    def detail(self, entity_id) -> Key:
        return (*self.details(), str(entity_id))


class LeadKeys(QueryKeys):
    def interactions(self, lead_id) -> Key:
        return (self.kind, "interactions", str(lead_id))


class AnalyticsKeys:
    kind = "analytics"

    def all(self) -> Key:
        return (self.kind,)

    def dashboard(self) -> Key:
        return (self.kind, "dashboard")


lead_keys = LeadKeys("leads")
campaign_keys = QueryKeys("campaigns")
analytics_keys = AnalyticsKeys()


# Mutation -> key prefixes to drop once it succeeds. Entity-specific keys
# (one lead's interactions, the campaign a lead points at) are handled by the
# query layer, which knows the ids involved.
INVALIDATION_RULES: dict[str, tuple[Key, ...]] = {
    "leads.create": (lead_keys.lists(), campaign_keys.lists(), analytics_keys.all()),
    "leads.update": (lead_keys.lists(), campaign_keys.lists(), analytics_keys.all()),
    "leads.delete": (lead_keys.lists(), campaign_keys.lists(), campaign_keys.details(), analytics_keys.all()),
    "leads.bulk_update": (lead_keys.all(), campaign_keys.lists(), campaign_keys.details(), analytics_keys.all()),
    "leads.bulk_delete": (lead_keys.all(), campaign_keys.lists(), campaign_keys.details(), analytics_keys.all()),
    "leads.add_interaction": (lead_keys.lists(), campaign_keys.details(), analytics_keys.all()),
    "campaigns.create": (campaign_keys.lists(), analytics_keys.all()),
    "campaigns.update": (campaign_keys.lists(), lead_keys.lists(), lead_keys.details(), analytics_keys.all()),
    "campaigns.delete": (campaign_keys.lists(), lead_keys.lists(), lead_keys.details(), analytics_keys.all()),
    "campaigns.bulk_update": (campaign_keys.all(), lead_keys.lists(), lead_keys.details(), analytics_keys.all()),
    "campaigns.bulk_delete": (campaign_keys.all(), lead_keys.lists(), lead_keys.details(), analytics_keys.all()),
}


class MemoryStore:
    """Process-local store."""

    def __init__(self):
        self._entries: dict[Key, dict] = {}

    async def get(self, key: Key) -> dict | None:
        return self._entries.get(key)

    async def set(self, key: Key, entry: dict) -> None:
        self._entries[key] = entry

    async def delete(self, key: Key) -> None:
        self._entries.pop(key, None)

    async def delete_prefix(self, prefix: Key) -> int:
        matched = [k for k in self._entries if k[: len(prefix)] == prefix]
        for k in matched:
            del self._entries[k]
        return len(matched)


def get_redis() -> aioredis.Redis:
    return aioredis.from_url(settings.redis_url, decode_responses=True)


class RedisStore:
    """Shared store; entries are JSON strings under ``<namespace>:<part>:<part>...``."""

    def __init__(self, namespace: str = "crm-cache", client: aioredis.Redis | None = None):
        self.namespace = namespace
        self.r = client or get_redis()

    def _name(self, key: Key) -> str:
        # Quoting keeps ':' and glob characters out of the parts
        return ":".join([self.namespace, *(quote(str(part), safe="") for part in key)])

    async def get(self, key: Key) -> dict | None:
        raw = await self.r.get(self._name(key))
        return json.loads(raw) if raw else None

    async def set(self, key: Key, entry: dict) -> None:
        await self.r.set(self._name(key), json.dumps(entry, default=str))

    async def delete(self, key: Key) -> None:
        await self.r.delete(self._name(key))

    async def delete_prefix(self, prefix: Key) -> int:
        base = self._name(prefix)
        names = [base]
        async for name in self.r.scan_iter(match=f"{base}:*"):
            names.append(name)
        return await self.r.delete(*names)


def next_page_param(last_page: Mapping[str, Any]) -> int | None:
    if last_page["page"] < last_page["totalPages"]:
        return last_page["page"] + 1
    return None


def infinite_items(data: Mapping[str, Any]) -> list:
    """Rows of every accumulated page, in page order."""
    return [row for page in data["pages"] for row in page["data"]]


class QueryCache:
    """Stale-while-fresh cache over a store.

    A fetch that is cancelled or fails stores nothing.
    """

    def __init__(self, store=None, clock: Callable[[], float] = time.time):
        self.store = store if store is not None else MemoryStore()
        self.clock = clock

    async def get_query_data(self, key: Key) -> Any:
        entry = await self.store.get(key)
        return entry["data"] if entry else None

    async def set_query_data(self, key: Key, data: Any) -> None:
        await self.store.set(key, {"data": data, "fetched_at": self.clock()})

    async def is_fresh(self, key: Key, stale_seconds: float) -> bool:
        entry = await self.store.get(key)
        return bool(entry) and self.clock() - entry["fetched_at"] < stale_seconds

    async def fetch_query(self, key: Key, fetcher: Callable[[], Awaitable[Any]], stale_seconds: float) -> Any:
        if await self.is_fresh(key, stale_seconds):
            return await self.get_query_data(key)
        data = await fetcher()
        await self.set_query_data(key, data)
        return data

    async def invalidate(self, prefix: Key) -> int:
        dropped = await self.store.delete_prefix(prefix)
        logger.debug("cache_invalidated", prefix=list(prefix), entries=dropped)
        return dropped

    async def remove(self, key: Key) -> None:
        await self.store.delete(key)

    async def apply_rule(self, mutation: str) -> None:
        for prefix in INVALIDATION_RULES[mutation]:
            await self.invalidate(prefix)

    async def fetch_infinite(
        self, key: Key, fetch_page: Callable[[int], Awaitable[dict]], stale_seconds: float
    ) -> dict:
        """Return the accumulated pages, starting over from page 1 when stale."""
        if await self.is_fresh(key, stale_seconds):
            return await self.get_query_data(key)
        first = await fetch_page(1)
        data = {"pages": [first], "page_params": [1]}
        await self.set_query_data(key, data)
        return data

    async def fetch_next_page(
        self, key: Key, fetch_page: Callable[[int], Awaitable[dict]], stale_seconds: float
    ) -> dict:
        """Append the next page, or return the pages unchanged when there is none."""
        data = await self.get_query_data(key)
        if data is None:
            return await self.fetch_infinite(key, fetch_page, stale_seconds)

        page_param = next_page_param(data["pages"][-1])
        if page_param is None:
            return data

        page = await fetch_page(page_param)

        current = await self.get_query_data(key)
        if current is None or current["page_params"] != data["page_params"]:
            # Invalidated or advanced while this page was in flight
            logger.debug("cache_page_discarded", key=list(key), page=page_param)
            return current if current is not None else await self.fetch_infinite(key, fetch_page, stale_seconds)

        data = {
            "pages": [*data["pages"], page],
            "page_params": [*data["page_params"], page_param],
        }
        await self.set_query_data(key, data)
        return data

    async def has_next_page(self, key: Key) -> bool:
        data = await self.get_query_data(key)
        return data is not None and next_page_param(data["pages"][-1]) is not None
