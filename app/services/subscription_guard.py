# app/services/subscription_guard.py
"""
Subscription health checks for tenant-scoped requests.

Expiry is detected lazily: there is no scheduler, so the first guarded request
after ``current_period_end`` flips the subscription to ``expired`` and the
tenant to inactive. Detection is a pure function of the clock; persisting the
flip is a separate step.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import EXPIRING_SOON_DAYS
from app.core.exceptions import (
    SubscriptionRequiredError,
    TenantInactiveError,
    SubscriptionExpiredError,
)
from app.core.logging import logger
from app.db.models.plan import SubscriptionPlan
from app.db.models.subscription import Subscription
from app.db.models.tenant import Tenant
from app.db.repositories.subscription_repository import SubscriptionRepository

SECONDS_PER_DAY = 24 * 60 * 60


def detect_expiry(period_end: datetime, now: Optional[datetime] = None) -> bool:
    """True once ``now`` is strictly past the end of the period"""
    now = now or datetime.utcnow()
    return now > period_end


def days_until_expiry(period_end: datetime, now: Optional[datetime] = None) -> int:
    """Whole days left, rounded up; zero or negative once expired"""
    now = now or datetime.utcnow()
    return math.ceil((period_end - now).total_seconds() / SECONDS_PER_DAY)


def is_expiring_soon(period_end: datetime, now: Optional[datetime] = None) -> bool:
    days = days_until_expiry(period_end, now)
    return 0 < days <= EXPIRING_SOON_DAYS


@dataclass
class SubscriptionStatusInfo:
    subscription: Subscription
    plan: SubscriptionPlan
    days_until_expiry: int
    expiring_soon: bool

    def to_dict(self) -> dict:
        return {
            "status": self.subscription.status,
            "plan": self.plan.plan_key if self.plan else None,
            "plan_name": self.plan.name if self.plan else None,
            "current_period_start": self.subscription.current_period_start.isoformat(),
            "current_period_end": self.subscription.current_period_end.isoformat(),
            "days_until_expiry": self.days_until_expiry,
            "expiring_soon": self.expiring_soon,
        }


class SubscriptionGuard:
    """Gate tenant-scoped operations on subscription health"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.subscriptions = SubscriptionRepository(session)

    async def check_subscription_active(
        self, tenant: Tenant, now: Optional[datetime] = None
    ) -> SubscriptionStatusInfo:
        now = now or datetime.utcnow()

        subscription = await self.subscriptions.get_active_for_tenant(tenant.id)
        if subscription is None:
            raise SubscriptionRequiredError()

        if not tenant.is_active:
            raise TenantInactiveError()

        period_end = subscription.current_period_end
        if detect_expiry(period_end, now):
            await self._persist_expiry(subscription, tenant)
            raise SubscriptionExpiredError(
                f"Your subscription expired on {period_end.date().isoformat()}",
                payload={"expired_at": period_end.isoformat()},
            )

        return SubscriptionStatusInfo(
            subscription=subscription,
            plan=subscription.plan,
            days_until_expiry=days_until_expiry(period_end, now),
            expiring_soon=is_expiring_soon(period_end, now),
        )

    async def _persist_expiry(self, subscription: Subscription, tenant: Tenant):
        await self.subscriptions.mark_expired(subscription.id, tenant.id)
        logger.info(
            f"Subscription {subscription.id} expired, tenant {tenant.slug} deactivated",
            extra={"tenant_id": tenant.id},
        )
