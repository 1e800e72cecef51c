"""FastAPI application entry point."""

import structlog
import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crm.config import settings
from crm.api import analytics, campaigns, health, leads
from crm.errors import register_exception_handlers
from crm.middleware.auth import get_current_user
from crm.models.user import User
from crm.schemas.common import SessionResponse, SessionUser

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(0),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
)

app = FastAPI(
    title=settings.app_name,
    description="Multi-tenant CRM for campaigns, leads and their interactions",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS - allow frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Filters", "X-Page", "X-Page-Size"],
)

register_exception_handlers(app)

# Mount routers
app.include_router(health.router, prefix=settings.api_prefix)
app.include_router(campaigns.router, prefix=settings.api_prefix)
app.include_router(leads.router, prefix=settings.api_prefix)
app.include_router(analytics.router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get(f"{settings.api_prefix}/session", response_model=SessionResponse)
async def current_session(user: User = Depends(get_current_user)):
    """Return the signed-in user."""
    return SessionResponse(user=SessionUser.model_validate(user))


def run():
    """Console entry point: serve the API with uvicorn."""
    uvicorn.run("crm.main:app", host=settings.host, port=settings.port, log_level="debug" if settings.debug else "info")
