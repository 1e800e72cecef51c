"""Dashboard aggregates computed from the tenant's campaigns, leads and interactions.

Soft-deleted campaigns never contribute to any figure.
"""

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.models.campaign import Campaign, DELETED
from crm.models.interaction import Interaction
from crm.models.lead import Lead
from crm.schemas.analytics import (
    DailyLeads,
    DashboardAnalytics,
    Distributions,
    Overview,
    RecentActivity,
    RecentInteraction,
    StatusCount,
    TopCampaign,
)

TOP_CAMPAIGNS_LIMIT = 5
RECENT_INTERACTIONS_LIMIT = 10


def _round1(value) -> float:
    """One decimal, halves rounded up (6.25 -> 6.3)."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _percent(part: int, whole: int) -> float:
    return _round1(part / whole * 100) if whole else 0.0


def _lead_name(first: str | None, last: str | None) -> str:
    return " ".join(p for p in (first, last) if p)


async def _count(db: AsyncSession, model, *conditions) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*conditions))
    return result.scalar_one()


async def dashboard(db: AsyncSession, tenant_id: str, now: datetime | None = None) -> DashboardAnalytics:
    now = now or datetime.utcnow()
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    live_campaign = (Campaign.tenant_id == tenant_id, Campaign.status != DELETED)
    own_lead = Lead.tenant_id == tenant_id

    total_campaigns = await _count(db, Campaign, *live_campaign)
    active_campaigns = await _count(db, Campaign, Campaign.tenant_id == tenant_id, Campaign.status == "active")
    total_leads = await _count(db, Lead, own_lead)
    converted_leads = await _count(db, Lead, own_lead, Lead.status == "converted")

    avg_score = (
        await db.execute(select(func.coalesce(func.avg(Lead.score), 0)).where(own_lead))
    ).scalar_one()

    lead_status = (
        await db.execute(
            select(Lead.status, func.count()).where(own_lead).group_by(Lead.status).order_by(Lead.status)
        )
    ).all()
    campaign_status = (
        await db.execute(
            select(Campaign.status, func.count())
            .where(*live_campaign)
            .group_by(Campaign.status)
            .order_by(Campaign.status)
        )
    ).all()

    new_leads = await _count(db, Lead, own_lead, Lead.created_at >= week_ago)
    new_campaigns = await _count(db, Campaign, *live_campaign, Campaign.created_at >= week_ago)

    converted_count = func.count(case((Lead.status == "converted", 1)))
    top_rows = (
        await db.execute(
            select(
                Campaign.id,
                Campaign.name,
                Campaign.status,
                func.count(Lead.id).label("total_leads"),
                converted_count.label("converted_leads"),
            )
            .outerjoin(Lead, Lead.campaign_id == Campaign.id)
            .where(*live_campaign)
            .group_by(Campaign.id, Campaign.name, Campaign.status)
            .order_by(converted_count.desc(), Campaign.id)
            .limit(TOP_CAMPAIGNS_LIMIT)
        )
    ).all()

    interaction_rows = (
        await db.execute(
            select(Interaction, Lead.first_name, Lead.last_name, Lead.email)
            .join(Lead, Interaction.lead_id == Lead.id)
            .where(own_lead)
            .order_by(Interaction.timestamp.desc())
            .limit(RECENT_INTERACTIONS_LIMIT)
        )
    ).all()

    day = func.date(Lead.created_at)
    daily_rows = (
        await db.execute(
            select(day.label("day"), func.count())
            .where(own_lead, Lead.created_at >= month_ago)
            .group_by(day)
            .order_by(day)
        )
    ).all()

    return DashboardAnalytics(
        overview=Overview(
            total_campaigns=total_campaigns,
            total_leads=total_leads,
            active_campaigns=active_campaigns,
            converted_leads=converted_leads,
            conversion_rate=_percent(converted_leads, total_leads),
            avg_lead_score=_round1(avg_score),
        ),
        recent_activity=RecentActivity(
            new_leads_this_week=new_leads,
            new_campaigns_this_week=new_campaigns,
        ),
        distributions=Distributions(
            lead_status=[StatusCount(status=s, count=c) for s, c in lead_status],
            campaign_status=[StatusCount(status=s, count=c) for s, c in campaign_status],
        ),
        top_campaigns=[
            TopCampaign(
                id=row.id,
                name=row.name,
                status=row.status,
                total_leads=row.total_leads,
                converted_leads=row.converted_leads,
                conversion_rate=_percent(row.converted_leads, row.total_leads),
            )
            for row in top_rows
        ],
        recent_interactions=[
            RecentInteraction(
                id=interaction.id,
                type=interaction.type,
                content=interaction.content,
                timestamp=interaction.timestamp,
                lead_id=interaction.lead_id,
                lead_name=_lead_name(first, last),
                lead_email=email,
            )
            for interaction, first, last, email in interaction_rows
        ],
        daily_leads=[DailyLeads(date=str(d), leads=c) for d, c in daily_rows],
    )
