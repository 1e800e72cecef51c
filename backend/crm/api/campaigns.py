"""Campaign endpoints: list, detail, CRUD and bulk mutations."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api.health import LIST_REQUESTS, MUTATIONS
from crm.database import get_db
from crm.middleware.auth import get_current_user
from crm.middleware.tenant import get_owned_campaign
from crm.models.campaign import Campaign, DELETED
from crm.models.user import User
from crm.schemas.campaign import (
    CampaignBulkUpdate,
    CampaignCreate,
    CampaignDetail,
    CampaignListItem,
    CampaignResponse,
    CampaignUpdate,
)
from crm.schemas.common import BulkDelete, BulkResult, DeleteResult, Page
from crm.schemas.filters import parse_campaign_filters
from crm.services import bulk
from crm.services.listing import list_campaigns as fetch_campaign_page

logger = structlog.get_logger()
router = APIRouter(prefix="/campaigns", tags=["campaigns"])


@router.get("", response_model=Page[CampaignListItem])
async def list_campaigns(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List campaigns with filters. Soft-deleted campaigns only when status=deleted is asked for."""
    filters = parse_campaign_filters(request.query_params, request.headers)
    LIST_REQUESTS.labels(entity="campaigns").inc()
    return await fetch_campaign_page(db, user.id, filters)


@router.post("", response_model=CampaignResponse, status_code=201)
async def create_campaign(
    data: CampaignCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new campaign."""
    campaign = Campaign(tenant_id=user.id, **data.model_dump())
    db.add(campaign)
    await db.commit()
    await db.refresh(campaign)

    MUTATIONS.labels(entity="campaigns", operation="create").inc()
    logger.info("campaign_created", tenant_id=user.id, campaign_id=str(campaign.id))
    return CampaignResponse.model_validate(campaign)


@router.patch("", response_model=BulkResult)
async def bulk_update_campaigns(
    body: CampaignBulkUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Apply one partial update to several campaigns."""
    count = await bulk.bulk_update_campaigns(db, user.id, body.ids, body.data.model_dump(exclude_unset=True))
    MUTATIONS.labels(entity="campaigns", operation="bulk_update").inc()
    return BulkResult(count=count, message=f"Updated {count} campaigns")


@router.delete("", response_model=BulkResult)
async def bulk_delete_campaigns(
    body: BulkDelete,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete several campaigns."""
    count = await bulk.bulk_delete_campaigns(db, user.id, body.ids)
    MUTATIONS.labels(entity="campaigns", operation="bulk_delete").inc()
    return BulkResult(count=count, message=f"Soft deleted {count} campaigns")


@router.get("/{campaign_id}", response_model=CampaignDetail)
async def get_campaign(
    campaign_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a campaign with its leads."""
    campaign = await get_owned_campaign(db, user.id, campaign_id, with_leads=True)
    detail = CampaignDetail.model_validate(campaign)
    detail.lead_count = len(campaign.leads)
    return detail


@router.put("/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: UUID,
    data: CampaignUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Partially update a campaign."""
    campaign = await get_owned_campaign(db, user.id, campaign_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(campaign, field, value)
    campaign.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(campaign)

    MUTATIONS.labels(entity="campaigns", operation="update").inc()
    logger.info("campaign_updated", tenant_id=user.id, campaign_id=str(campaign.id))
    return CampaignResponse.model_validate(campaign)


@router.delete("/{campaign_id}", response_model=DeleteResult)
async def delete_campaign(
    campaign_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete a campaign. Deleting twice is a 404."""
    campaign = await get_owned_campaign(db, user.id, campaign_id)

    campaign.status = DELETED
    campaign.updated_at = datetime.utcnow()
    await db.commit()

    MUTATIONS.labels(entity="campaigns", operation="delete").inc()
    logger.info("campaign_soft_deleted", tenant_id=user.id, campaign_id=str(campaign_id))
    return DeleteResult(message="Campaign soft deleted successfully")
