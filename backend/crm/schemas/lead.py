"""Lead and interaction schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from crm.schemas.common import CamelModel, reject_nulls, to_naive_utc
from crm.schemas.filters import LeadStatus


class LeadCreate(CamelModel):
    email: EmailStr
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    company: Optional[str] = Field(None, max_length=255)
    title: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    tags: Optional[str] = None  # stored as-is
    status: LeadStatus = "pending"
    score: int = 0
    campaign_id: Optional[uuid.UUID] = None


class LeadUpdate(CamelModel):
    """Partial update. Omitted fields are untouched; campaignId: null unassigns."""

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    company: Optional[str] = Field(None, max_length=255)
    title: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    tags: Optional[str] = None
    status: Optional[LeadStatus] = None
    score: Optional[int] = None
    campaign_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def _no_null_required_fields(self):
        reject_nulls(self, ("email", "status"))
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class LeadBulkUpdate(CamelModel):
    ids: list[uuid.UUID] = Field(..., min_length=1)
    data: LeadUpdate


class LeadResponse(CamelModel):
    id: uuid.UUID
    tenant_id: str
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    company: Optional[str]
    title: Optional[str]
    status: str
    score: Optional[int]
    tags: Optional[str]
    notes: Optional[str]
    last_contacted_at: Optional[datetime]
    campaign_id: Optional[uuid.UUID]
    created_at: datetime
    updated_at: datetime


class LeadListItem(LeadResponse):
    campaign_name: Optional[str] = None


class InteractionCreate(CamelModel):
    type: str = Field(..., min_length=1, max_length=50)
    content: Optional[str] = None
    contacted_at: Optional[datetime] = None

    @field_validator("contacted_at")
    @classmethod
    def _naive_utc(cls, v):
        return to_naive_utc(v)


class InteractionResponse(CamelModel):
    id: uuid.UUID
    lead_id: uuid.UUID
    type: str
    content: Optional[str]
    timestamp: datetime


class LeadCampaign(CamelModel):
    id: uuid.UUID
    name: str
    status: str


class LeadDetail(LeadResponse):
    campaign: Optional[LeadCampaign] = None
    interactions: list[InteractionResponse] = []
