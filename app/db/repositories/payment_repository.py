# app/db/repositories/payment_repository.py
from typing import Dict, Optional, Tuple
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import PaymentStatus
from app.db.models.payment import Payment
from app.db.repositories.base import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    """Repository for per-upload payments"""

    def __init__(self, session: AsyncSession):
        super().__init__(Payment, session)

    async def get_by_intent(self, payment_intent_id: str) -> Optional[Payment]:
        result = await self.session.execute(
            select(Payment).where(Payment.stripe_payment_intent_id == payment_intent_id)
        )
        return result.scalar_one_or_none()

    async def succeeded_totals_by_tenant(self) -> Dict[str, Tuple[int, int]]:
        """tenant_id -> (revenue, number of payments) over succeeded payments"""
        result = await self.session.execute(
            select(Payment.tenant_id, func.sum(Payment.amount), func.count(Payment.id))
            .where(Payment.status == PaymentStatus.SUCCEEDED.value)
            .group_by(Payment.tenant_id)
        )
        return {tenant_id: (int(total or 0), count) for tenant_id, total, count in result.all()}
