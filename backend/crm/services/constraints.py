"""Uniqueness guards for lead email addresses."""

from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crm.errors import Conflict
from crm.models.lead import EMAIL_CONSTRAINT, Lead

DUPLICATE_EMAIL = "A lead with this email address already exists"


async def ensure_email_available(db: AsyncSession, email: str, exclude_ids: Iterable[UUID] = ()) -> None:
    """Raise 409 if any lead, in any tenant, already uses this email."""
    query = select(Lead.id).where(Lead.email == email)
    exclude = list(exclude_ids)
    if exclude:
        query = query.where(Lead.id.not_in(exclude))
    result = await db.execute(query.limit(1))
    if result.first() is not None:
        raise Conflict(DUPLICATE_EMAIL, EMAIL_CONSTRAINT)


def raise_for_integrity_error(exc: IntegrityError) -> None:
    """Translate a store-level unique violation into a 409; re-raise anything else."""
    message = str(exc.orig)
    # Postgres reports the constraint name, SQLite the column
    if EMAIL_CONSTRAINT in message or "leads.email" in message:
        raise Conflict(DUPLICATE_EMAIL, EMAIL_CONSTRAINT) from exc
    raise exc
