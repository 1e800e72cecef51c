"""Execute list queries and wrap them in page envelopes."""

from sqlalchemy.ext.asyncio import AsyncSession

from crm.models.campaign import Campaign
from crm.models.lead import Lead
from crm.schemas.campaign import CampaignListItem
from crm.schemas.common import Page
from crm.schemas.filters import CampaignFilters, LeadFilters
from crm.schemas.lead import LeadListItem
from crm.services.query_builder import (
    build_campaign_page_query,
    build_count_query,
    build_lead_page_query,
    campaign_conditions,
    lead_conditions,
)


async def list_leads(db: AsyncSession, tenant_id: str, filters: LeadFilters) -> Page[LeadListItem]:
    conditions = lead_conditions(filters, tenant_id)
    query = build_lead_page_query(filters, conditions)

    total = (await db.execute(build_count_query(Lead, conditions))).scalar_one()
    rows = (await db.execute(query)).all()

    items = []
    for lead, campaign_name in rows:
        item = LeadListItem.model_validate(lead)
        item.campaign_name = campaign_name
        items.append(item)
    return Page[LeadListItem].build(items, filters.page, filters.limit, total)


async def list_campaigns(db: AsyncSession, tenant_id: str, filters: CampaignFilters) -> Page[CampaignListItem]:
    conditions = campaign_conditions(filters, tenant_id)
    query = build_campaign_page_query(filters, conditions)

    total = (await db.execute(build_count_query(Campaign, conditions))).scalar_one()
    rows = (await db.execute(query)).all()

    items = []
    for campaign, lead_count in rows:
        item = CampaignListItem.model_validate(campaign)
        item.lead_count = lead_count
        items.append(item)
    return Page[CampaignListItem].build(items, filters.page, filters.page_size, total)
