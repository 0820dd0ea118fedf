# app/services/quota.py
"""Upload quota derived from the tenant's active plan"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import QUOTA_CONFIG, UNLIMITED
from app.core.logging import logger
from app.db.repositories.subscription_repository import SubscriptionRepository
from app.db.repositories.tenant_repository import TenantRepository


@dataclass
class QuotaResult:
    allowed: bool
    reason: str
    usage: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"allowed": self.allowed, "reason": self.reason, "usage": self.usage}


def check_quota_limit(usage: int, limit: int) -> Dict[str, Any]:
    """Non-blocking usage warning: percent used, remaining and a warning level"""
    if limit == UNLIMITED:
        return {
            "ok": True,
            "usage": usage,
            "limit": "unlimited",
            "percent": 0,
            "remaining": None,
            "in_grace_period": False,
            "warning_level": "ok",
        }

    percent = (usage / limit) * 100 if limit > 0 else 100.0
    grace_limit = math.floor(limit * QUOTA_CONFIG["GRACE_PERIOD_MULTIPLIER"])

    if percent >= QUOTA_CONFIG["CRITICAL_THRESHOLD_PERCENT"]:
        warning_level = "critical"
    elif percent >= QUOTA_CONFIG["WARNING_THRESHOLD_PERCENT"]:
        warning_level = "warning"
    else:
        warning_level = "ok"

    return {
        "ok": usage < grace_limit,
        "usage": usage,
        "limit": limit,
        "percent": round(percent),
        "remaining": max(0, limit - usage),
        "in_grace_period": limit <= usage < grace_limit,
        "warning_level": warning_level,
    }


class QuotaService:
    """Decide whether a tenant may accept another upload"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.tenants = TenantRepository(session)
        self.subscriptions = SubscriptionRepository(session)

    async def check_quota(self, tenant_id: str) -> QuotaResult:
        try:
            return await self._check(tenant_id)
        except Exception as e:
            # Fail open: a broken quota lookup must not block uploads
            logger.error(f"Error checking quota: {str(e)}", extra={"tenant_id": tenant_id})
            await self.session.rollback()
            return QuotaResult(allowed=True, reason="Error checking quota", usage=None)

    async def _check(self, tenant_id: str) -> QuotaResult:
        tenant = await self.tenants.get(tenant_id)
        if tenant is None:
            return QuotaResult(allowed=False, reason="Tenant not found")
        if not tenant.is_active:
            return QuotaResult(allowed=False, reason="Tenant is not active")

        subscription = await self.subscriptions.get_active_for_tenant(tenant_id)
        if subscription is None:
            return QuotaResult(allowed=False, reason="No active subscription")

        period_end = subscription.current_period_end
        if datetime.utcnow() > period_end:
            return QuotaResult(
                allowed=False,
                reason="Subscription expired",
                usage={"period_end": period_end.isoformat()},
            )

        plan = subscription.plan
        limit = plan.upload_limit
        storage_limit_gb = plan.storage_limit_gb or 0
        current = await self.tenants.count_images(tenant_id)

        if limit != UNLIMITED and current >= limit:
            return QuotaResult(
                allowed=False,
                reason="Image limit reached",
                usage={
                    "current": current,
                    "limit": limit,
                    "plan": plan.name,
                    "storage_limit_gb": storage_limit_gb,
                },
            )

        return QuotaResult(
            allowed=True,
            reason="OK",
            usage={
                "current": current,
                "limit": limit,
                "plan": plan.name,
                "period_end": period_end.isoformat(),
                "storage_limit_gb": storage_limit_gb,
                "warning": check_quota_limit(current, limit),
            },
        )
