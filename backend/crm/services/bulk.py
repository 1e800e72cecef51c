"""Apply one mutation to many entity ids.

Each operation runs in a single transaction:

1. verify that every requested id belongs to the tenant (all-or-nothing);
2. apply the update or delete to exactly that id set;
3. report the row count the store says was affected.

The reported count is the storage rowcount, not ``len(ids)``: a concurrent
request may have changed the rows between the check and the write.
"""

from datetime import datetime
from typing import Iterable
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api.health import BULK_AFFECTED_ROWS
from crm.errors import Conflict, NotFound
from crm.middleware.tenant import get_owned_campaign
from crm.models.campaign import Campaign, DELETED
from crm.models.interaction import Interaction
from crm.models.lead import EMAIL_CONSTRAINT, Lead
from crm.services.constraints import DUPLICATE_EMAIL, ensure_email_available, raise_for_integrity_error

logger = structlog.get_logger()


def unique_ids(ids: Iterable[UUID]) -> list[UUID]:
    """Drop repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(ids))


async def verify_ownership(db: AsyncSession, model, tenant_id: str, ids: list[UUID], *extra, label: str) -> None:
    """Raise 404 unless every id is owned by the tenant."""
    result = await db.execute(
        select(func.count()).select_from(model).where(model.id.in_(ids), model.tenant_id == tenant_id, *extra)
    )
    owned = result.scalar_one()
    if owned < len(ids):
        logger.info("bulk_ownership_rejected", entity=label, tenant_id=tenant_id, requested=len(ids), owned=owned)
        raise NotFound(f"Some {label} not found")


def _record(entity: str, operation: str, count: int, tenant_id: str) -> None:
    BULK_AFFECTED_ROWS.labels(entity=entity, operation=operation).inc(count)
    logger.info(f"{entity}_bulk_{operation}", tenant_id=tenant_id, count=count)


async def bulk_update_leads(db: AsyncSession, tenant_id: str, ids: list[UUID], changes: dict) -> int:
    ids = unique_ids(ids)
    await verify_ownership(db, Lead, tenant_id, ids, label="leads")

    if changes.get("campaign_id") is not None:
        await get_owned_campaign(db, tenant_id, changes["campaign_id"])

    if changes.get("email") is not None:
        if len(ids) > 1:
            raise Conflict(DUPLICATE_EMAIL, EMAIL_CONSTRAINT)
        await ensure_email_available(db, changes["email"], exclude_ids=ids)

    stmt = (
        update(Lead)
        .where(Lead.id.in_(ids), Lead.tenant_id == tenant_id)
        .values(**changes, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    try:
        result = await db.execute(stmt)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise_for_integrity_error(e)

    _record("leads", "update", result.rowcount, tenant_id)
    return result.rowcount


async def bulk_delete_leads(db: AsyncSession, tenant_id: str, ids: list[UUID]) -> int:
    ids = unique_ids(ids)
    await verify_ownership(db, Lead, tenant_id, ids, label="leads")

    # Interactions first, then the leads themselves
    await db.execute(
        delete(Interaction)
        .where(Interaction.lead_id.in_(ids))
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(
        delete(Lead)
        .where(Lead.id.in_(ids), Lead.tenant_id == tenant_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    _record("leads", "delete", result.rowcount, tenant_id)
    return result.rowcount


async def bulk_update_campaigns(db: AsyncSession, tenant_id: str, ids: list[UUID], changes: dict) -> int:
    ids = unique_ids(ids)
    # Soft-deleted campaigns are gone as far as updates are concerned
    await verify_ownership(db, Campaign, tenant_id, ids, Campaign.status != DELETED, label="campaigns")

    result = await db.execute(
        update(Campaign)
        .where(Campaign.id.in_(ids), Campaign.tenant_id == tenant_id, Campaign.status != DELETED)
        .values(**changes, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    _record("campaigns", "update", result.rowcount, tenant_id)
    return result.rowcount


async def bulk_delete_campaigns(db: AsyncSession, tenant_id: str, ids: list[UUID]) -> int:
    """Soft delete. Campaigns already deleted pass the ownership check but are not counted."""
    ids = unique_ids(ids)
    await verify_ownership(db, Campaign, tenant_id, ids, label="campaigns")

    result = await db.execute(
        update(Campaign)
        .where(Campaign.id.in_(ids), Campaign.tenant_id == tenant_id, Campaign.status != DELETED)
        .values(status=DELETED, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    _record("campaigns", "delete", result.rowcount, tenant_id)
    return result.rowcount
