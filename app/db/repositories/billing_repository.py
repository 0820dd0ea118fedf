# app/db/repositories/billing_repository.py
from typing import Dict, List
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import BillingStatus
from app.db.models.billing import BillingHistory
from app.db.repositories.base import BaseRepository


class BillingRepository(BaseRepository[BillingHistory]):
    """Repository for the billing ledger"""

    def __init__(self, session: AsyncSession):
        super().__init__(BillingHistory, session)

    async def list_for_tenant(self, tenant_id: str) -> List[BillingHistory]:
        result = await self.session.execute(
            select(BillingHistory)
            .where(BillingHistory.tenant_id == tenant_id)
            .order_by(BillingHistory.created_at.desc())
        )
        return list(result.scalars().all())

    async def revenue_by_tenant(self) -> Dict[str, int]:
        """Net revenue per tenant: paid entries plus (negative) refunds"""
        result = await self.session.execute(
            select(BillingHistory.tenant_id, func.sum(BillingHistory.amount))
            .where(BillingHistory.status.in_([BillingStatus.PAID.value, BillingStatus.REFUNDED.value]))
            .group_by(BillingHistory.tenant_id)
        )
        return {tenant_id: int(total or 0) for tenant_id, total in result.all()}

    async def has_entry(self, payment_intent_id: str, status: str) -> bool:
        result = await self.session.execute(
            select(func.count(BillingHistory.id))
            .where(BillingHistory.stripe_payment_intent_id == payment_intent_id)
            .where(BillingHistory.status == status)
        )
        return (result.scalar() or 0) > 0
