"""Tenant-scoped entity resolution.

Every lookup carries the tenant predicate, so an id owned by another tenant
is indistinguishable from a missing one.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from crm.errors import NotFound
from crm.models.campaign import Campaign, DELETED
from crm.models.lead import Lead


async def get_owned_campaign(
    db: AsyncSession,
    tenant_id: str,
    campaign_id: UUID,
    *,
    with_leads: bool = False,
) -> Campaign:
    """Resolve a non-deleted campaign owned by the tenant. Raises 404 otherwise."""
    query = select(Campaign).where(
        Campaign.id == campaign_id,
        Campaign.tenant_id == tenant_id,
        Campaign.status != DELETED,
    )
    if with_leads:
        query = query.options(selectinload(Campaign.leads))
    result = await db.execute(query)
    campaign = result.scalar_one_or_none()
    if not campaign:
        raise NotFound("Campaign not found")
    return campaign


async def get_owned_lead(
    db: AsyncSession,
    tenant_id: str,
    lead_id: UUID,
    *,
    with_relations: bool = False,
) -> Lead:
    """Resolve a lead owned by the tenant. Raises 404 otherwise."""
    query = select(Lead).where(Lead.id == lead_id, Lead.tenant_id == tenant_id)
    if with_relations:
        query = query.options(selectinload(Lead.campaign), selectinload(Lead.interactions))
    result = await db.execute(query)
    lead = result.scalar_one_or_none()
    if not lead:
        raise NotFound("Lead not found")
    return lead
