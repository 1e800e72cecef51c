"""Campaign schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from crm.schemas.common import CamelModel, reject_nulls
from crm.schemas.filters import CampaignStatus
from crm.schemas.lead import LeadResponse


class CampaignCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: CampaignStatus = "draft"


class CampaignUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[CampaignStatus] = None

    @model_validator(mode="after")
    def _no_null_required_fields(self):
        reject_nulls(self, ("name", "status"))
        return self


class CampaignBulkUpdate(CamelModel):
    ids: list[uuid.UUID] = Field(..., min_length=1)
    data: CampaignUpdate


class CampaignResponse(CamelModel):
    id: uuid.UUID
    tenant_id: str
    name: str
    description: Optional[str]
    status: str
    created_at: datetime
    updated_at: datetime


class CampaignListItem(CampaignResponse):
    lead_count: int = 0


class CampaignDetail(CampaignResponse):
    lead_count: int = 0
    leads: list[LeadResponse] = []
