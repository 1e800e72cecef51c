"""Lead endpoints: list, detail, CRUD, bulk mutations and the interaction log."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api.health import LIST_REQUESTS, MUTATIONS
from crm.database import get_db
from crm.middleware.auth import get_current_user
from crm.middleware.tenant import get_owned_campaign, get_owned_lead
from crm.models.interaction import Interaction
from crm.models.lead import Lead
from crm.models.user import User
from crm.schemas.common import BulkDelete, BulkResult, DeleteResult, Page
from crm.schemas.filters import parse_lead_filters
from crm.schemas.lead import (
    InteractionCreate,
    InteractionResponse,
    LeadBulkUpdate,
    LeadCreate,
    LeadDetail,
    LeadListItem,
    LeadResponse,
    LeadUpdate,
)
from crm.services import bulk
from crm.services.constraints import ensure_email_available, raise_for_integrity_error
from crm.services.listing import list_leads as fetch_lead_page

logger = structlog.get_logger()
router = APIRouter(prefix="/leads", tags=["leads"])


@router.get("", response_model=Page[LeadListItem])
async def list_leads(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List leads with search, status, campaign and sort filters."""
    filters = parse_lead_filters(request.query_params, request.headers)
    LIST_REQUESTS.labels(entity="leads").inc()
    return await fetch_lead_page(db, user.id, filters)


@router.post("", response_model=LeadResponse, status_code=201)
async def create_lead(
    data: LeadCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a lead. Email must be unique across all tenants."""
    if data.campaign_id:
        await get_owned_campaign(db, user.id, data.campaign_id)
    await ensure_email_available(db, data.email)

    lead = Lead(tenant_id=user.id, **data.model_dump())
    db.add(lead)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise_for_integrity_error(e)
    await db.refresh(lead)

    MUTATIONS.labels(entity="leads", operation="create").inc()
    logger.info("lead_created", tenant_id=user.id, lead_id=str(lead.id))
    return LeadResponse.model_validate(lead)


@router.patch("", response_model=BulkResult)
async def bulk_update_leads(
    body: LeadBulkUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Apply one partial update to several leads."""
    count = await bulk.bulk_update_leads(db, user.id, body.ids, body.data.changes())
    MUTATIONS.labels(entity="leads", operation="bulk_update").inc()
    return BulkResult(count=count, message=f"Updated {count} leads")


@router.delete("", response_model=BulkResult)
async def bulk_delete_leads(
    body: BulkDelete,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete several leads and their interactions."""
    count = await bulk.bulk_delete_leads(db, user.id, body.ids)
    MUTATIONS.labels(entity="leads", operation="bulk_delete").inc()
    return BulkResult(count=count, message=f"Deleted {count} leads and their interactions")


@router.get("/{lead_id}", response_model=LeadDetail)
async def get_lead(
    lead_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a lead with its campaign and interactions, newest first."""
    lead = await get_owned_lead(db, user.id, lead_id, with_relations=True)
    return LeadDetail.model_validate(lead)


@router.put("/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: UUID,
    data: LeadUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Partially update a lead. campaignId: null unassigns it."""
    lead = await get_owned_lead(db, user.id, lead_id)
    changes = data.changes()

    if changes.get("email") is not None and changes["email"] != lead.email:
        await ensure_email_available(db, changes["email"], exclude_ids=[lead.id])
    if changes.get("campaign_id") is not None:
        await get_owned_campaign(db, user.id, changes["campaign_id"])

    for field, value in changes.items():
        setattr(lead, field, value)
    lead.updated_at = datetime.utcnow()

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise_for_integrity_error(e)
    await db.refresh(lead)

    MUTATIONS.labels(entity="leads", operation="update").inc()
    logger.info("lead_updated", tenant_id=user.id, lead_id=str(lead.id), fields=sorted(changes))
    return LeadResponse.model_validate(lead)


@router.delete("/{lead_id}", response_model=DeleteResult)
async def delete_lead(
    lead_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a lead and its interactions."""
    await get_owned_lead(db, user.id, lead_id)

    # Interactions first, then the lead
    await db.execute(delete(Interaction).where(Interaction.lead_id == lead_id))
    await db.execute(delete(Lead).where(Lead.id == lead_id, Lead.tenant_id == user.id))
    await db.commit()

    MUTATIONS.labels(entity="leads", operation="delete").inc()
    logger.info("lead_deleted", tenant_id=user.id, lead_id=str(lead_id))
    return DeleteResult(message="Lead deleted")


@router.get("/{lead_id}/interactions", response_model=list[InteractionResponse])
async def list_interactions(
    lead_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List a lead's interactions, newest first."""
    await get_owned_lead(db, user.id, lead_id)
    result = await db.execute(
        select(Interaction)
        .where(Interaction.lead_id == lead_id, Interaction.tenant_id == user.id)
        .order_by(Interaction.timestamp.desc())
    )
    return [InteractionResponse.model_validate(i) for i in result.scalars().all()]


@router.post("/{lead_id}/interactions", response_model=InteractionResponse, status_code=201)
async def add_interaction(
    lead_id: UUID,
    data: InteractionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record an interaction and move the lead's last-contacted time to it.

    Both writes share one transaction, so the interaction is never visible
    without the matching ``lastContactedAt``.
    """
    lead = await get_owned_lead(db, user.id, lead_id)

    now = datetime.utcnow()
    interaction = Interaction(
        tenant_id=user.id,
        lead_id=lead.id,
        type=data.type,
        content=data.content,
        timestamp=data.contacted_at or now,
    )
    db.add(interaction)
    lead.last_contacted_at = interaction.timestamp
    lead.updated_at = now
    await db.commit()
    await db.refresh(interaction)

    MUTATIONS.labels(entity="interactions", operation="create").inc()
    logger.info("interaction_recorded", tenant_id=user.id, lead_id=str(lead_id), type=data.type)
    return InteractionResponse.model_validate(interaction)
