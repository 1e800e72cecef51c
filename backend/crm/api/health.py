"""Health check and metrics endpoints."""

from fastapi import APIRouter, Response
from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text

import crm.database
from crm.schemas.common import HealthResponse

router = APIRouter(tags=["health"])

# Prometheus metrics
LIST_REQUESTS = Counter("list_requests_total", "Total list requests", ["entity"])
MUTATIONS = Counter("mutations_total", "Total mutations", ["entity", "operation"])
BULK_AFFECTED_ROWS = Counter("bulk_affected_rows_total", "Rows affected by bulk mutations", ["entity", "operation"])
ERRORS = Counter("errors_total", "Total errors", ["type"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    db_status = "ok"

    try:
        async with crm.database.async_session() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        db_status = "error"

    return HealthResponse(
        status="healthy" if db_status == "ok" else "degraded",
        db=db_status,
    )


@router.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
