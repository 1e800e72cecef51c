"""Dashboard analytics endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crm.database import get_db
from crm.middleware.auth import get_current_user
from crm.models.user import User
from crm.schemas.analytics import DashboardAnalytics
from crm.services.analytics import dashboard

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/dashboard", response_model=DashboardAnalytics)
async def get_dashboard(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Aggregate counts, distributions and recent activity for the tenant."""
    return await dashboard(db, user.id)
