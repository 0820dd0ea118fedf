# tests/test_subscription_guard.py
"""
Subscription guard tests
Tests: expiry detection, days remaining, lazy expiry persistence
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from app.core.constants import SubscriptionStatus
from app.core.exceptions import (
    SubscriptionExpiredError,
    SubscriptionRequiredError,
    TenantInactiveError,
)
from app.db.models.subscription import Subscription
from app.db.repositories.tenant_repository import TenantRepository
from app.services.subscription_guard import (
    SubscriptionGuard,
    days_until_expiry,
    detect_expiry,
    is_expiring_soon,
)

from conftest import create_tenant

NOW = datetime(2026, 3, 1, 12, 0, 0)


class TestExpiryHelpers:
    """Pure clock arithmetic"""

    def test_not_expired_at_exact_period_end(self):
        assert detect_expiry(NOW, now=NOW) is False

    def test_expired_one_second_after_period_end(self):
        assert detect_expiry(NOW, now=NOW + timedelta(seconds=1)) is True

    def test_days_until_expiry_rounds_up(self):
        assert days_until_expiry(NOW + timedelta(days=2, hours=1), now=NOW) == 3
        assert days_until_expiry(NOW + timedelta(hours=1), now=NOW) == 1

    def test_days_until_expiry_non_positive_once_expired(self):
        assert days_until_expiry(NOW - timedelta(days=1), now=NOW) <= 0

    @pytest.mark.parametrize("delta, expected", [
        (timedelta(days=7), True),
        (timedelta(days=1), True),
        (timedelta(days=7, seconds=1), False),
        (timedelta(days=30), False),
        (timedelta(seconds=0), False),
    ])
    def test_expiring_soon_window(self, delta, expected):
        assert is_expiring_soon(NOW + delta, now=NOW) is expected


@pytest.mark.asyncio
class TestSubscriptionGuard:
    """Guard behaviour against the database"""

    async def test_active_subscription_passes(self, db_session):
        tenant = await create_tenant(db_session, period_end=datetime.utcnow() + timedelta(days=3))

        status = await SubscriptionGuard(db_session).check_subscription_active(tenant)

        assert status.plan.plan_key == "oneweek"
        assert status.days_until_expiry == 3
        assert status.expiring_soon is True
        assert status.to_dict()["status"] == SubscriptionStatus.ACTIVE.value

    async def test_missing_subscription_rejected(self, db_session):
        tenant = await create_tenant(db_session, with_subscription=False)

        with pytest.raises(SubscriptionRequiredError):
            await SubscriptionGuard(db_session).check_subscription_active(tenant)

    async def test_inactive_tenant_rejected(self, db_session):
        tenant = await create_tenant(db_session, is_active=False)

        with pytest.raises(TenantInactiveError):
            await SubscriptionGuard(db_session).check_subscription_active(tenant)

    async def test_expiry_is_persisted_on_first_check(self, db_session):
        period_end = datetime.utcnow() - timedelta(minutes=5)
        tenant = await create_tenant(db_session, period_end=period_end)

        with pytest.raises(SubscriptionExpiredError) as exc_info:
            await SubscriptionGuard(db_session).check_subscription_active(tenant)

        assert exc_info.value.status_code == 403
        assert exc_info.value.payload["expired_at"] == period_end.isoformat()

        result = await db_session.execute(select(Subscription).where(Subscription.tenant_id == tenant.id))
        subscription = result.unique().scalar_one()
        await db_session.refresh(subscription)
        assert subscription.status == SubscriptionStatus.EXPIRED.value

        reloaded = await TenantRepository(db_session).get(tenant.id)
        await db_session.refresh(reloaded)
        assert reloaded.is_active is False

    async def test_second_check_after_expiry_reports_no_subscription(self, db_session):
        tenant = await create_tenant(db_session, period_end=datetime.utcnow() - timedelta(days=1))
        guard = SubscriptionGuard(db_session)

        with pytest.raises(SubscriptionExpiredError):
            await guard.check_subscription_active(tenant)
        with pytest.raises(SubscriptionRequiredError):
            await guard.check_subscription_active(tenant)
