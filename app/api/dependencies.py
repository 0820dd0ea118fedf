# app/api/dependencies.py
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
import jwt

from app.core.exceptions import (
    AuthError,
    ForbiddenError,
    NotFoundError,
    QuotaExceededError,
)
from app.core.security import decode_token, generate_session_id, get_client_ip
from app.db.database import get_db
from app.db.models.admin import Admin
from app.db.models.plan import SubscriptionPlan
from app.db.models.subscription import Subscription
from app.db.models.tenant import Tenant
from app.db.repositories.admin_repository import AdminRepository
from app.db.repositories.tenant_repository import TenantRepository
from app.services.email_service import EmailService
from app.services.payments import StripeGateway
from app.services.quota import QuotaResult, QuotaService
from app.services.realtime import RealtimeNotifier
from app.services.storage import StorageBackend
from app.services.subscription_guard import SubscriptionGuard, SubscriptionStatusInfo

security = HTTPBearer(auto_error=False)


@dataclass
class TenantContext:
    """Tenant resolved for the current request, with its subscription when guarded"""
    tenant: Tenant
    subscription: Optional[Subscription] = None
    plan: Optional[SubscriptionPlan] = None
    status: Optional[SubscriptionStatusInfo] = None


# Collaborators, overridable in tests through app.dependency_overrides

def get_payment_gateway() -> StripeGateway:
    return StripeGateway()


def get_email_service() -> EmailService:
    return EmailService()


def get_storage(request: Request) -> StorageBackend:
    return request.app.state.storage


def get_notifier(request: Request) -> Optional[RealtimeNotifier]:
    return getattr(request.app.state, "notifier", None)


def get_client_ip_address(request: Request) -> Optional[str]:
    return get_client_ip(request.headers, request.client.host if request.client else None)


def get_session_id(request: Request) -> str:
    """Pseudonymous guest id derived from client IP and user agent"""
    return generate_session_id(get_client_ip_address(request), request.headers.get("user-agent"))


# Tenant resolution

async def resolve_tenant(
    tenant_slug: str,
    db: AsyncSession = Depends(get_db),
) -> Tenant:
    """Active tenant addressed by the path slug"""
    tenant = await TenantRepository(db).get_by_slug(tenant_slug, active_only=True)
    if tenant is None:
        raise NotFoundError("Tenant not found or inactive")
    return tenant


async def load_subscribed_tenant(
    tenant_slug: str,
    db: AsyncSession = Depends(get_db),
) -> TenantContext:
    """Tenant whose subscription is healthy.

    The tenant is loaded whatever its active flag, so a deactivated or expired
    tenant is reported as such (403) rather than as missing (404).
    """
    tenant = await TenantRepository(db).get_by_slug(tenant_slug)
    if tenant is None:
        raise NotFoundError("Tenant not found or inactive")

    status = await SubscriptionGuard(db).check_subscription_active(tenant)
    return TenantContext(
        tenant=tenant,
        subscription=status.subscription,
        plan=status.plan,
        status=status,
    )


async def require_quota(
    ctx: TenantContext = Depends(load_subscribed_tenant),
    db: AsyncSession = Depends(get_db),
) -> QuotaResult:
    quota = await QuotaService(db).check_quota(ctx.tenant.id)
    if not quota.allowed:
        raise QuotaExceededError(quota.reason, payload={"usage": quota.usage})
    return quota


# Admin authentication

async def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Admin:
    """Get current authenticated admin"""
    if not credentials:
        raise AuthError("Authentication required")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.PyJWTError:
        raise AuthError("Invalid or expired token")

    admin_id = payload.get("sub")
    if not admin_id or payload.get("type") != "access":
        raise AuthError("Invalid token")

    admin = await AdminRepository(db).get(admin_id)
    if admin is None:
        raise AuthError("Admin not found")
    return admin


async def require_tenant_admin(
    admin: Admin = Depends(get_current_admin),
    ctx: TenantContext = Depends(load_subscribed_tenant),
) -> Admin:
    """Admin of the path tenant, or a super-admin"""
    if not admin.is_super_admin and admin.tenant_id != ctx.tenant.id:
        raise ForbiddenError("You do not have access to this tenant")
    return admin


async def require_super_admin(
    admin: Admin = Depends(get_current_admin),
) -> Admin:
    if not admin.is_super_admin:
        raise ForbiddenError("Super admin access required")
    return admin
