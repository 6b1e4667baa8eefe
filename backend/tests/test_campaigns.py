"""
广告系列测试：每日花费汇总与广告文案组的唯一激活
"""
import datetime as dt
from decimal import Decimal

import pytest

from advantix.exceptions import NotFoundError, ValidationError
from advantix.models.campaign import AdCopySet, Campaign, CampaignDailySpend
from advantix.services import campaign_service


class TestDailySpend:

    def test_same_day_upsert_is_idempotent(self, db, sample_campaign):
        """同一天写两次只保留一行，总花费不重复累加"""
        campaign_service.upsert_daily_spend(db, sample_campaign.id, "2025-01-15", 100)
        campaign_service.upsert_daily_spend(db, sample_campaign.id, "2025-01-15", 100)

        rows = db.query(CampaignDailySpend).filter(CampaignDailySpend.campaign_id == sample_campaign.id).all()
        assert len(rows) == 1
        assert rows[0].amount == Decimal("100.00")

        db.refresh(sample_campaign)
        assert sample_campaign.spend == Decimal("100.00")

    def test_spend_equals_sum_of_distinct_days(self, db, sample_campaign):
        campaign_service.upsert_daily_spend(db, sample_campaign.id, "2025-01-15", "100")
        campaign_service.upsert_daily_spend(db, sample_campaign.id, "2025-01-16", "40.50")
        campaign_service.upsert_daily_spend(db, sample_campaign.id, "2025-01-15", "60")

        db.refresh(sample_campaign)
        assert sample_campaign.spend == Decimal("100.50")
        assert campaign_service.get_total_spend(db, sample_campaign.id) == Decimal("100.50")

    def test_timestamp_normalized_to_utc_day(self, db, sample_campaign):
        # 东六区 2025-01-16 03:00 即 UTC 2025-01-15 21:00
        aware = dt.datetime(2025, 1, 16, 3, 0, tzinfo=dt.timezone(dt.timedelta(hours=6)))
        row = campaign_service.upsert_daily_spend(db, sample_campaign.id, aware, 25)
        assert row.date == dt.date(2025, 1, 15)

        campaign_service.upsert_daily_spend(db, sample_campaign.id, "2025-01-15T08:00:00Z", 30)
        rows = campaign_service.list_daily_spends(db, sample_campaign.id)
        assert len(rows) == 1
        assert rows[0].amount == Decimal("30.00")

    def test_negative_amount_rejected(self, db, sample_campaign):
        with pytest.raises(ValidationError):
            campaign_service.upsert_daily_spend(db, sample_campaign.id, "2025-01-15", -1)
        assert db.query(CampaignDailySpend).count() == 0

    def test_bad_date_rejected(self, db, sample_campaign):
        with pytest.raises(ValidationError):
            campaign_service.upsert_daily_spend(db, sample_campaign.id, "15th of January", 10)

    def test_unknown_campaign(self, db):
        with pytest.raises(NotFoundError):
            campaign_service.upsert_daily_spend(db, "missing", "2025-01-15", 10)

    def test_total_spend_of_empty_campaign_is_zero(self, db, sample_campaign):
        assert campaign_service.get_total_spend(db, sample_campaign.id) == Decimal("0.00")

    def test_daily_spend_api(self, client, admin_headers, sample_campaign):
        url = f"/api/campaigns/{sample_campaign.id}/daily-spends"
        assert client.post(url, json={"date": "2025-02-01", "amount": "12.30"}, headers=admin_headers).status_code == 200
        assert client.post(url, json={"date": "2025-02-02", "amount": "7.70"}, headers=admin_headers).status_code == 200

        total = client.get(f"/api/campaigns/{sample_campaign.id}/total-spend", headers=admin_headers).json()
        assert Decimal(total["totalSpend"]) == Decimal("20.00")

        campaign = client.get(f"/api/campaigns/{sample_campaign.id}", headers=admin_headers).json()
        assert Decimal(campaign["spend"]) == Decimal("20.00")


class TestAdCopySets:

    def _active_ids(self, db, campaign_id):
        db.expire_all()
        return [
            s.id for s in db.query(AdCopySet).filter(
                AdCopySet.campaign_id == campaign_id, AdCopySet.is_active.is_(True)
            )
        ]

    def test_create_active_deactivates_others(self, db, sample_campaign):
        first = campaign_service.create_ad_copy_set(db, sample_campaign.id, {"set_name": "A", "is_active": True})
        second = campaign_service.create_ad_copy_set(db, sample_campaign.id, {"set_name": "B", "is_active": True})
        assert self._active_ids(db, sample_campaign.id) == [second.id]
        assert first.id != second.id

    def test_set_active_switches(self, db, sample_campaign):
        first = campaign_service.create_ad_copy_set(db, sample_campaign.id, {"set_name": "A", "is_active": True})
        second = campaign_service.create_ad_copy_set(db, sample_campaign.id, {"set_name": "B"})
        assert self._active_ids(db, sample_campaign.id) == [first.id]

        activated = campaign_service.set_active_ad_copy_set(db, sample_campaign.id, second.id)
        assert activated.is_active is True
        assert self._active_ids(db, sample_campaign.id) == [second.id]

    def test_set_active_wrong_campaign_changes_nothing(self, db, sample_campaign):
        active = campaign_service.create_ad_copy_set(db, sample_campaign.id, {"set_name": "A", "is_active": True})
        other = Campaign(
            name="Other",
            start_date=dt.date(2025, 1, 1),
            ad_account_id=sample_campaign.ad_account_id,
            objective="reach",
            budget=Decimal("10"),
            spend=Decimal("0"),
        )
        db.add(other)
        db.commit()
        foreign = campaign_service.create_ad_copy_set(db, other.id, {"set_name": "X"})

        with pytest.raises(NotFoundError):
            campaign_service.set_active_ad_copy_set(db, sample_campaign.id, foreign.id)
        assert self._active_ids(db, sample_campaign.id) == [active.id]
        assert self._active_ids(db, other.id) == []

    def test_update_cannot_activate(self, db, sample_campaign):
        copy_set = campaign_service.create_ad_copy_set(db, sample_campaign.id, {"set_name": "A"})
        updated = campaign_service.update_ad_copy_set(db, copy_set.id, {"headline": "New", "is_active": True})
        assert updated.headline == "New"
        assert updated.is_active is False

    def test_set_active_api(self, client, admin_headers, sample_campaign):
        base = f"/api/campaigns/{sample_campaign.id}/ad-copy-sets"
        a = client.post(base, json={"setName": "A", "isActive": True}, headers=admin_headers).json()
        b = client.post(base, json={"setName": "B"}, headers=admin_headers).json()

        response = client.put(f"{base}/{b['id']}/set-active", headers=admin_headers)
        assert response.status_code == 200
        sets = {s["id"]: s["isActive"] for s in client.get(base, headers=admin_headers).json()}
        assert sets == {a["id"]: False, b["id"]: True}
