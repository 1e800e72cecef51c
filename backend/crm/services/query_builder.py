"""Compose list queries from filter specifications.

Predicates are built in a fixed order: tenant ownership first, then the
implicit soft-delete exclusion (campaigns), then the caller's filters. The
page query and the count query share the same predicate list so ``total``
always describes the rows being paged through.
"""

import uuid

from sqlalchemy import ColumnElement, Select, false, func, or_, select

from crm.errors import ValidationFailed
from crm.models.campaign import Campaign, DELETED
from crm.models.lead import Lead
from crm.schemas.filters import CampaignFilters, LeadFilters

# sortBy value -> column; anything outside these maps never reaches SQL
LEAD_SORT_COLUMNS = {
    "email": Lead.email,
    "firstName": Lead.first_name,
    "lastName": Lead.last_name,
    "company": Lead.company,
    "status": Lead.status,
    "createdAt": Lead.created_at,
    "updatedAt": Lead.updated_at,
    "lastContactedAt": Lead.last_contacted_at,
}

CAMPAIGN_SORT_COLUMNS = {
    "name": Campaign.name,
    "createdAt": Campaign.created_at,
    "updatedAt": Campaign.updated_at,
    "status": Campaign.status,
}


def sort_column(columns: dict, sort_by: str):
    try:
        return columns[sort_by]
    except KeyError:
        raise ValidationFailed.single("sortBy", f"Unsupported sort field '{sort_by}'")


def _order_by(column, sort_order: str, tiebreak):
    primary = column.asc() if sort_order == "asc" else column.desc()
    # Stable order across offset pages
    return primary, tiebreak.asc()


def _contains(column, term: str) -> ColumnElement[bool]:
    return column.contains(term, autoescape=True)


def lead_conditions(filters: LeadFilters, tenant_id: str) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = [Lead.tenant_id == tenant_id]

    if filters.search:
        conditions.append(
            or_(
                _contains(Lead.email, filters.search),
                _contains(Lead.first_name, filters.search),
                _contains(Lead.last_name, filters.search),
                _contains(Lead.company, filters.search),
            )
        )

    if filters.status:
        conditions.append(Lead.status == filters.status)

    if filters.campaign_id:
        if filters.unassigned_only:
            conditions.append(Lead.campaign_id.is_(None))
        else:
            try:
                campaign_id = uuid.UUID(filters.campaign_id)
            except ValueError:
                # Not an id any campaign can have: nothing matches
                conditions.append(false())
            else:
                conditions.append(Lead.campaign_id == campaign_id)

    return conditions


def campaign_conditions(filters: CampaignFilters, tenant_id: str) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = [Campaign.tenant_id == tenant_id]

    if filters.status != DELETED:
        conditions.append(Campaign.status != DELETED)

    if filters.search:
        conditions.append(_contains(Campaign.name, filters.search))

    if filters.status:
        conditions.append(Campaign.status == filters.status)

    return conditions


def build_count_query(model, conditions: list[ColumnElement[bool]]) -> Select:
    """Count rows matching the predicates, ignoring the page window."""
    return select(func.count()).select_from(model).where(*conditions)


def build_lead_page_query(filters: LeadFilters, conditions: list[ColumnElement[bool]]) -> Select:
    """Rows are (Lead, campaign name)."""
    column = sort_column(LEAD_SORT_COLUMNS, filters.sort_by)
    return (
        select(Lead, Campaign.name.label("campaign_name"))
        .outerjoin(Campaign, Lead.campaign_id == Campaign.id)
        .where(*conditions)
        .order_by(*_order_by(column, filters.sort_order, Lead.id))
        .offset(filters.offset)
        .limit(filters.limit)
    )


def build_campaign_page_query(filters: CampaignFilters, conditions: list[ColumnElement[bool]]) -> Select:
    """Rows are (Campaign, lead count)."""
    column = sort_column(CAMPAIGN_SORT_COLUMNS, filters.sort_by)
    return (
        select(Campaign, func.count(Lead.id).label("lead_count"))
        .outerjoin(Lead, Lead.campaign_id == Campaign.id)
        .where(*conditions)
        .group_by(Campaign.id)
        .order_by(*_order_by(column, filters.sort_order, Campaign.id))
        .offset(filters.offset)
        .limit(filters.page_size)
    )
