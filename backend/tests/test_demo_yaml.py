"""Tests for the demo seed data."""

import yaml
import pytest
from pathlib import Path
from typing import get_args

from crm.schemas.filters import CampaignStatus, LeadStatus
from crm.schemas.lead import LeadCreate


SAMPLES_DIR = Path(__file__).parent.parent.parent / "samples"


@pytest.fixture
def demo():
    with open(SAMPLES_DIR / "demo.yaml") as f:
        return yaml.safe_load(f)


def all_leads(demo):
    for campaign in demo["campaigns"]:
        yield from campaign["leads"]
    yield from demo.get("unassigned_leads", [])


class TestDemoData:
    def test_user(self, demo):
        user = demo["user"]
        assert user["id"]
        assert "@" in user["email"]
        assert user["session_days"] > 0

    def test_campaign_statuses_valid(self, demo):
        for campaign in demo["campaigns"]:
            assert campaign["status"] in get_args(CampaignStatus)
            assert campaign["name"]

    def test_emails_unique(self, demo):
        emails = [lead["email"] for lead in all_leads(demo)]
        assert len(emails) == len(set(emails))

    def test_leads_pass_create_validation(self, demo):
        for lead in all_leads(demo):
            fields = {k: v for k, v in lead.items() if k != "interactions"}
            LeadCreate.model_validate(fields)
            assert lead["status"] in get_args(LeadStatus)

    def test_interactions_are_in_the_past(self, demo):
        for lead in all_leads(demo):
            for item in lead.get("interactions", []):
                assert item["type"]
                assert item["days_ago"] >= 0
