"""Unit tests for effective tier derivation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from bakerly.billing.entitlements import can_use_feature
from bakerly.billing.subscription import (
    SubscriptionRecord,
    add_months,
    as_utc,
    effective_tier,
    is_expired,
)
from bakerly.types import FeatureKey, PlanTier

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


@pytest.mark.unit
class TestEffectiveTier:
    def test_free_stays_free(self) -> None:
        assert effective_tier(SubscriptionRecord(plan=PlanTier.FREE), NOW) == PlanTier.FREE

    def test_free_ignores_past_expiry(self) -> None:
        record = SubscriptionRecord(
            plan=PlanTier.FREE, subscription_expires_at=datetime(2001, 1, 1, tzinfo=UTC)
        )
        assert effective_tier(record, NOW) == PlanTier.FREE
        assert not is_expired(record, NOW)

    def test_paid_without_expiry_never_lapses(self) -> None:
        record = SubscriptionRecord(plan=PlanTier.BASIC, subscription_expires_at=None)
        assert effective_tier(record, NOW) == PlanTier.BASIC

    def test_future_expiry_keeps_plan(self) -> None:
        record = SubscriptionRecord(
            plan=PlanTier.PREMIUM, subscription_expires_at=NOW + timedelta(days=3)
        )
        assert effective_tier(record, NOW) == PlanTier.PREMIUM

    def test_expired_premium_demotes_to_free(self) -> None:
        record = SubscriptionRecord(
            plan=PlanTier.PREMIUM, subscription_expires_at=NOW - timedelta(seconds=1)
        )
        tier = effective_tier(record, NOW)
        assert tier == PlanTier.FREE
        for feature in (
            FeatureKey.HAS_REPORTS,
            FeatureKey.HAS_PRODUCTION_CENTER,
            FeatureKey.HAS_LOYALTY_SYSTEM,
            FeatureKey.HAS_MARKETPLACE_INTEGRATION,
        ):
            assert can_use_feature(tier, feature) is False

    def test_expiry_equal_to_now_is_not_expired(self) -> None:
        record = SubscriptionRecord(plan=PlanTier.BASIC, subscription_expires_at=NOW)
        assert effective_tier(record, NOW) == PlanTier.BASIC

    def test_derivation_does_not_touch_record(self) -> None:
        record = SubscriptionRecord(
            plan=PlanTier.BASIC, subscription_expires_at=NOW - timedelta(days=1)
        )
        effective_tier(record, NOW)
        assert record.plan == PlanTier.BASIC


@pytest.mark.unit
class TestDateHelpers:
    def test_add_one_month(self) -> None:
        assert add_months(NOW, 1) == datetime(2026, 4, 15, 12, 0, tzinfo=UTC)

    def test_add_month_clamps_to_month_end(self) -> None:
        jan31 = datetime(2026, 1, 31, 9, 30, tzinfo=UTC)
        assert add_months(jan31, 1) == datetime(2026, 2, 28, 9, 30, tzinfo=UTC)

    def test_add_month_rolls_year(self) -> None:
        dec = datetime(2026, 12, 5, tzinfo=UTC)
        assert add_months(dec, 1) == datetime(2027, 1, 5, tzinfo=UTC)

    def test_as_utc_accepts_z_suffix(self) -> None:
        assert as_utc("2026-03-15T12:00:00Z") == NOW

    def test_as_utc_treats_naive_as_utc(self) -> None:
        assert as_utc(datetime(2026, 3, 15, 12, 0)) == NOW

    def test_as_utc_converts_offsets(self) -> None:
        brt = timezone(timedelta(hours=-3))
        assert as_utc(datetime(2026, 3, 15, 9, 0, tzinfo=brt)) == NOW

    def test_as_utc_none(self) -> None:
        assert as_utc(None) is None
