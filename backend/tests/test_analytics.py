"""Tests for the dashboard analytics read-model."""

from datetime import datetime, timedelta

from crm.services.analytics import dashboard
from conftest import ALICE, BOB

URL = "/api/analytics/dashboard"


class TestDashboard:
    async def test_empty_tenant(self, db, users):
        result = await dashboard(db, ALICE)
        assert result.overview.total_leads == 0
        assert result.overview.conversion_rate == 0.0
        assert result.overview.avg_lead_score == 0.0
        assert result.top_campaigns == []
        assert result.daily_leads == []

    async def test_overview_figures(self, db, make_campaign, make_lead):
        active = await make_campaign(status="active")
        await make_campaign(status="draft")
        await make_campaign(status="deleted")
        await make_lead(campaign_id=active.id, status="converted", score=90)
        await make_lead(campaign_id=active.id, status="pending", score=30)
        await make_lead(status="contacted", score=60)
        await make_lead(status="converted", score=0)

        overview = (await dashboard(db, ALICE)).overview
        assert overview.total_campaigns == 2
        assert overview.active_campaigns == 1
        assert overview.total_leads == 4
        assert overview.converted_leads == 2
        assert overview.conversion_rate == 50.0
        assert overview.avg_lead_score == 45.0

    async def test_halves_round_up(self, db, make_lead):
        await make_lead(status="converted", score=4)
        for _ in range(15):
            await make_lead(status="pending", score=0)

        overview = (await dashboard(db, ALICE)).overview
        assert overview.conversion_rate == 6.3
        assert overview.avg_lead_score == 0.3

    async def test_deleted_campaigns_never_count(self, db, make_campaign, make_lead):
        gone = await make_campaign(name="Gone", status="deleted")
        await make_lead(campaign_id=gone.id, status="converted")

        result = await dashboard(db, ALICE)
        assert result.overview.total_campaigns == 0
        assert result.recent_activity.new_campaigns_this_week == 0
        assert [s.status for s in result.distributions.campaign_status] == []
        assert result.top_campaigns == []

    async def test_top_campaigns_by_conversions(self, db, make_campaign, make_lead):
        strong = await make_campaign(name="Strong")
        weak = await make_campaign(name="Weak")
        for status in ("converted", "converted", "pending"):
            await make_lead(campaign_id=strong.id, status=status)
        await make_lead(campaign_id=weak.id, status="pending")

        top = (await dashboard(db, ALICE)).top_campaigns
        assert [c.name for c in top] == ["Strong", "Weak"]
        assert top[0].total_leads == 3
        assert top[0].converted_leads == 2
        assert top[0].conversion_rate == 66.7
        assert top[1].conversion_rate == 0.0

    async def test_weekly_and_daily_activity(self, db, make_campaign, make_lead):
        now = datetime.utcnow()
        await make_campaign(created_at=now - timedelta(days=2))
        await make_campaign(created_at=now - timedelta(days=20))
        await make_lead(created_at=now - timedelta(days=1))
        await make_lead(created_at=now - timedelta(days=1))
        await make_lead(created_at=now - timedelta(days=10))
        await make_lead(created_at=now - timedelta(days=45))

        result = await dashboard(db, ALICE, now=now)
        assert result.recent_activity.new_leads_this_week == 2
        assert result.recent_activity.new_campaigns_this_week == 1
        assert sum(d.leads for d in result.daily_leads) == 3
        assert len(result.daily_leads) == 2
        assert result.daily_leads[0].date < result.daily_leads[1].date

    async def test_recent_interactions(self, db, make_lead, make_interaction):
        lead = await make_lead(email="ivy@example.com", first_name="Ivy", last_name="Lane")
        await make_interaction(lead, type="email", timestamp=datetime(2025, 1, 1))
        await make_interaction(lead, type="meeting", content="Demo", timestamp=datetime(2025, 1, 5))

        recent = (await dashboard(db, ALICE)).recent_interactions
        assert [i.type for i in recent] == ["meeting", "email"]
        assert recent[0].lead_name == "Ivy Lane"
        assert recent[0].lead_email == "ivy@example.com"

    async def test_scoped_to_tenant(self, db, make_campaign, make_lead):
        await make_campaign(tenant_id=BOB)
        await make_lead(tenant_id=BOB, status="converted")

        overview = (await dashboard(db, ALICE)).overview
        assert overview.total_campaigns == 0
        assert overview.total_leads == 0


class TestDashboardEndpoint:
    async def test_requires_auth(self, client):
        assert (await client.get(URL)).status_code == 401

    async def test_camel_case_body(self, client, alice_headers, make_lead):
        await make_lead(status="converted", score=80)
        body = (await client.get(URL, headers=alice_headers)).json()
        assert set(body) == {
            "overview", "recentActivity", "distributions", "topCampaigns", "recentInteractions", "dailyLeads",
        }
        assert body["overview"]["convertedLeads"] == 1
        assert body["distributions"]["leadStatus"] == [{"status": "converted", "count": 1}]
