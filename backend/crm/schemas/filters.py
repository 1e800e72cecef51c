"""List filter specifications and their transport.

A filter specification is the validated, canonical description of one list
query: search text, status, sort field/direction and the page window. The
same fields can arrive as query-string parameters or as an ``X-Filters``
JSON header plus ``X-Page`` / ``X-Page-Size`` headers; headers win. Values
are rejected, never clamped.
"""

import json
from typing import Literal, Mapping

from pydantic import Field, ValidationError, field_validator

from crm.config import settings
from crm.errors import ValidationFailed
from crm.schemas.common import CamelModel

LeadStatus = Literal["pending", "contacted", "responded", "converted"]
CampaignStatus = Literal["draft", "active", "paused", "completed"]
SortOrder = Literal["asc", "desc"]

LeadSortField = Literal[
    "email", "firstName", "lastName", "company", "status", "createdAt", "updatedAt", "lastContactedAt",
]
CampaignSortField = Literal["name", "createdAt", "updatedAt", "status"]

# Sentinel for "campaign reference is unset"
NO_CAMPAIGN = "none"


class _Filters(CamelModel):
    search: str | None = None
    sort_order: SortOrder = "desc"
    page: int = Field(1, ge=1)

    @field_validator("search", mode="before")
    @classmethod
    def _blank_search(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class LeadFilters(_Filters):
    status: LeadStatus | None = None
    campaign_id: str | None = None
    sort_by: LeadSortField = "createdAt"
    limit: int = Field(settings.default_lead_limit, ge=1, le=settings.max_page_size)

    @field_validator("status", "campaign_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        return None if v == "" else v

    @property
    def page_size(self) -> int:
        return self.limit

    @property
    def unassigned_only(self) -> bool:
        return self.campaign_id == NO_CAMPAIGN


class CampaignFilters(_Filters):
    # "deleted" is only ever returned when asked for explicitly
    status: Literal[CampaignStatus, "deleted"] | None = None
    sort_by: CampaignSortField = "createdAt"
    page_size: int = Field(settings.default_page_size, ge=1, le=settings.max_page_size)

    @field_validator("status", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        return None if v == "" else v


def _collect(params: Mapping[str, str], headers: Mapping[str, str], size_field: str) -> dict:
    raw: dict = {k: v for k, v in params.items()}

    filters_header = headers.get("x-filters")
    if filters_header:
        try:
            decoded = json.loads(filters_header)
        except ValueError:
            raise ValidationFailed.single("X-Filters", "Invalid JSON")
        if not isinstance(decoded, dict):
            raise ValidationFailed.single("X-Filters", "Expected a JSON object")
        raw.update(decoded)

    if headers.get("x-page"):
        raw["page"] = headers["x-page"]
    if headers.get("x-page-size"):
        raw[size_field] = headers["x-page-size"]
    return raw


def parse_lead_filters(params: Mapping[str, str], headers: Mapping[str, str]) -> LeadFilters:
    raw = _collect(params, headers, "limit")
    # The paginated list hooks send pageSize; accept it as the lead limit too
    if "pageSize" in raw and "limit" not in raw:
        raw["limit"] = raw.pop("pageSize")
    try:
        return LeadFilters.model_validate(raw)
    except ValidationError as e:
        raise ValidationFailed.from_pydantic(e)


def parse_campaign_filters(params: Mapping[str, str], headers: Mapping[str, str]) -> CampaignFilters:
    raw = _collect(params, headers, "pageSize")
    try:
        return CampaignFilters.model_validate(raw)
    except ValidationError as e:
        raise ValidationFailed.from_pydantic(e)
