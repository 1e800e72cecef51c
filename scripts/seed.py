#!/usr/bin/env python3
"""Seed the database with a demo user, a session and sample campaigns/leads."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

import secrets
from datetime import datetime, timedelta
from pathlib import Path

import yaml
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from crm.config import settings
from crm.middleware.auth import create_access_token
from crm.models import Campaign, Interaction, Lead, Session, User

SAMPLES_DIR = Path(__file__).parent.parent / "samples"


def load_demo(path: Path = SAMPLES_DIR / "demo.yaml") -> dict:
    with open(path) as f:
        return yaml.safe_load(f)


def _add_lead(session, user_id: str, spec: dict, campaign_id=None) -> None:
    now = datetime.utcnow()
    interactions = spec.pop("interactions", [])
    lead = Lead(tenant_id=user_id, campaign_id=campaign_id, **spec)
    session.add(lead)
    session.flush()

    for item in interactions:
        timestamp = now - timedelta(days=item["days_ago"])
        session.add(
            Interaction(
                tenant_id=user_id,
                lead_id=lead.id,
                type=item["type"],
                content=item.get("content"),
                timestamp=timestamp,
            )
        )
        if lead.last_contacted_at is None or timestamp > lead.last_contacted_at:
            lead.last_contacted_at = timestamp


def seed():
    engine = create_engine(settings.database_url_sync)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    demo = load_demo()
    user_spec = demo["user"]

    # Check if demo user already exists
    existing = session.get(User, user_spec["id"])
    if existing:
        print(f"Demo user already exists: {existing.id}")
        session.close()
        return

    user = User(id=user_spec["id"], name=user_spec["name"], email=user_spec["email"], email_verified=True)
    session.add(user)

    token = secrets.token_urlsafe(32)
    session.add(
        Session(
            id=secrets.token_hex(16),
            token=token,
            user_id=user.id,
            expires_at=datetime.utcnow() + timedelta(days=user_spec.get("session_days", 30)),
        )
    )

    for campaign_spec in demo.get("campaigns", []):
        leads = campaign_spec.pop("leads", [])
        campaign = Campaign(tenant_id=user.id, **campaign_spec)
        session.add(campaign)
        session.flush()
        for lead_spec in leads:
            _add_lead(session, user.id, lead_spec, campaign.id)

    for lead_spec in demo.get("unassigned_leads", []):
        _add_lead(session, user.id, lead_spec)

    session.commit()
    print(f"Created demo user: {user.id} ({user.email})")
    print(f"Session cookie {settings.session_cookie_name}={token}")
    print(f"Bearer token: {create_access_token(user.id)}")
    session.close()


if __name__ == "__main__":
    seed()
