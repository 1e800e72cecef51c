"""Dashboard analytics read-model."""

import uuid
from datetime import datetime
from typing import Optional

from crm.schemas.common import CamelModel


class Overview(CamelModel):
    total_campaigns: int
    total_leads: int
    active_campaigns: int
    converted_leads: int
    conversion_rate: float
    avg_lead_score: float


class RecentActivity(CamelModel):
    new_leads_this_week: int
    new_campaigns_this_week: int


class StatusCount(CamelModel):
    status: str
    count: int


class Distributions(CamelModel):
    lead_status: list[StatusCount]
    campaign_status: list[StatusCount]


class TopCampaign(CamelModel):
    id: uuid.UUID
    name: str
    status: str
    total_leads: int
    converted_leads: int
    conversion_rate: float


class RecentInteraction(CamelModel):
    id: uuid.UUID
    type: str
    content: Optional[str]
    timestamp: datetime
    lead_id: uuid.UUID
    lead_name: str
    lead_email: str


class DailyLeads(CamelModel):
    date: str
    leads: int


class DashboardAnalytics(CamelModel):
    overview: Overview
    recent_activity: RecentActivity
    distributions: Distributions
    top_campaigns: list[TopCampaign]
    recent_interactions: list[RecentInteraction]
    daily_leads: list[DailyLeads]
