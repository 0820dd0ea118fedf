# app/db/repositories/subscription_repository.py
from datetime import datetime
from typing import Optional, List
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import SubscriptionStatus
from app.db.models.subscription import Subscription
from app.db.models.tenant import Tenant
from app.db.repositories.base import BaseRepository


class SubscriptionRepository(BaseRepository[Subscription]):
    """Repository for Subscription operations (plan is eager-loaded)"""

    def __init__(self, session: AsyncSession):
        super().__init__(Subscription, session)

    async def get_active_for_tenant(self, tenant_id: str) -> Optional[Subscription]:
        """The tenant's current active subscription, latest period first"""
        result = await self.session.execute(
            select(Subscription)
            .where(Subscription.tenant_id == tenant_id)
            .where(Subscription.status == SubscriptionStatus.ACTIVE.value)
            .order_by(Subscription.current_period_end.desc())
            .limit(1)
        )
        return result.unique().scalar_one_or_none()

    async def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Subscription]:
        result = await self.session.execute(
            select(Subscription).where(Subscription.stripe_payment_intent_id == payment_intent_id)
        )
        return result.unique().scalars().first()

    async def get_by_stripe_subscription(self, stripe_subscription_id: str) -> Optional[Subscription]:
        result = await self.session.execute(
            select(Subscription).where(Subscription.stripe_subscription_id == stripe_subscription_id)
        )
        return result.unique().scalars().first()

    async def list_expiring(self, now: datetime, until: datetime) -> List[Subscription]:
        """Active subscriptions whose period ends inside (now, until]"""
        result = await self.session.execute(
            select(Subscription)
            .where(Subscription.status == SubscriptionStatus.ACTIVE.value)
            .where(Subscription.current_period_end > now)
            .where(Subscription.current_period_end <= until)
        )
        return list(result.unique().scalars().all())

    async def mark_expired(self, subscription_id: str, tenant_id: str):
        """Flip the subscription to expired and deactivate its tenant in one commit"""
        await self.session.execute(
            update(Subscription)
            .where(Subscription.id == subscription_id)
            .values(status=SubscriptionStatus.EXPIRED.value, updated_at=datetime.utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(
            update(Tenant)
            .where(Tenant.id == tenant_id)
            .values(is_active=False, updated_at=datetime.utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await self.session.commit()
