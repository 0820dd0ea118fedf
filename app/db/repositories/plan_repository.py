# app/db/repositories/plan_repository.py
from typing import Optional, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.plan import SubscriptionPlan
from app.db.repositories.base import BaseRepository


class PlanRepository(BaseRepository[SubscriptionPlan]):
    """Repository for the plan catalog"""

    def __init__(self, session: AsyncSession):
        super().__init__(SubscriptionPlan, session)

    async def get_by_key(self, plan_key: str, active_only: bool = True) -> Optional[SubscriptionPlan]:
        query = select(SubscriptionPlan).where(SubscriptionPlan.plan_key == plan_key)
        if active_only:
            query = query.where(SubscriptionPlan.is_active.is_(True))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_active(self) -> List[SubscriptionPlan]:
        result = await self.session.execute(
            select(SubscriptionPlan)
            .where(SubscriptionPlan.is_active.is_(True))
            .order_by(SubscriptionPlan.sort_order)
        )
        return list(result.scalars().all())
