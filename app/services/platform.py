# app/services/platform.py
"""Super-admin operations across all tenants"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import AdminRole, EXPIRING_SOON_DAYS, ImageStatus, SubscriptionStatus
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.input_validation import slug_problem
from app.core.logging import logger
from app.core.security import get_password_hash
from app.db.models.admin import Admin
from app.db.models.tenant import Tenant
from app.db.repositories.admin_repository import AdminRepository
from app.db.repositories.billing_repository import BillingRepository
from app.db.repositories.payment_repository import PaymentRepository
from app.db.repositories.plan_repository import PlanRepository
from app.db.repositories.subscription_repository import SubscriptionRepository
from app.db.repositories.tenant_repository import TenantRepository
from app.schemas.auth import AdminCreate, AdminUpdate
from app.schemas.tenant import TenantCreate, TenantUpdate
from app.services.email_service import EmailService
from app.services.provisioning import compute_period_end
from app.services.subscription_guard import days_until_expiry


class PlatformService:

    def __init__(self, session: AsyncSession):
        self.session = session
        self.tenants = TenantRepository(session)
        self.admins = AdminRepository(session)
        self.plans = PlanRepository(session)
        self.subscriptions = SubscriptionRepository(session)
        self.payments = PaymentRepository(session)
        self.billing = BillingRepository(session)

    # Tenants

    async def create_tenant(self, data: TenantCreate) -> Tenant:
        """Create a tenant directly, optionally with an active subscription on ``plan_key``"""
        if slug_problem(data.slug):
            raise ValidationError("Invalid slug format")
        if await self.tenants.slug_exists(data.slug):
            raise ConflictError("Slug already exists")

        plan = None
        if data.plan_key:
            plan = await self.plans.get_by_key(data.plan_key)
            if plan is None:
                raise ValidationError("Invalid plan")

        values = data.model_dump(exclude={"plan_key"})
        try:
            tenant = await self.tenants.create(values, commit=False)
            if plan is not None:
                now = datetime.utcnow()
                await self.subscriptions.create(
                    {
                        "tenant_id": tenant.id,
                        "plan_id": plan.id,
                        "status": SubscriptionStatus.ACTIVE.value,
                        "current_period_start": now,
                        "current_period_end": compute_period_end(plan, now),
                    },
                    commit=False,
                )
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("Slug already exists") from e

        logger.info(f"Tenant {tenant.slug} created by super-admin", extra={"tenant_id": tenant.id})
        return tenant

    async def update_tenant(self, tenant_id: str, data: TenantUpdate) -> Tenant:
        tenant = await self.tenants.get(tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found")

        updates = data.model_dump(exclude_unset=True)
        new_slug = updates.get("slug")
        if new_slug is not None and new_slug != tenant.slug:
            if slug_problem(new_slug):
                raise ValidationError("Invalid slug format")
            if await self.tenants.slug_exists(new_slug):
                raise ConflictError("Slug already exists")

        if not updates:
            return tenant
        try:
            return await self.tenants.update(tenant_id, updates)
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("Slug already exists") from e

    async def delete_tenant(self, tenant_id: str):
        if not await self.tenants.delete(tenant_id):
            raise NotFoundError("Tenant not found")
        logger.info(f"Tenant {tenant_id} deleted", extra={"tenant_id": tenant_id})

    # Admins

    async def create_admin(self, data: AdminCreate) -> Admin:
        if not data.is_super_admin and not data.tenant_id:
            raise ValidationError("Tenant ID is required for regular admins")
        if data.tenant_id and await self.tenants.get(data.tenant_id) is None:
            raise NotFoundError("Tenant not found")
        if await self.admins.get_by_username(data.username) is not None:
            raise ConflictError("Username already exists")

        try:
            return await self.admins.create({
                "username": data.username,
                "password_hash": get_password_hash(data.password),
                "tenant_id": None if data.is_super_admin else data.tenant_id,
                "is_super_admin": data.is_super_admin,
                "role": AdminRole.SUPER_ADMIN.value if data.is_super_admin else AdminRole.ADMIN.value,
            })
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("Username already exists") from e

    async def update_admin(self, admin_id: str, data: AdminUpdate) -> Admin:
        admin = await self.admins.get(admin_id)
        if admin is None:
            raise NotFoundError("Admin not found")

        updates: Dict[str, Any] = {}
        if data.password:
            updates["password_hash"] = get_password_hash(data.password)
        if data.tenant_id is not None and not admin.is_super_admin:
            if await self.tenants.get(data.tenant_id) is None:
                raise NotFoundError("Tenant not found")
            updates["tenant_id"] = data.tenant_id
        if not updates:
            return admin
        return await self.admins.update(admin_id, updates)

    async def delete_admin(self, admin_id: str, current_admin: Admin):
        if admin_id == current_admin.id:
            raise ValidationError("Cannot delete yourself")
        if not await self.admins.delete(admin_id):
            raise NotFoundError("Admin not found")

    # Reporting

    async def stats(self) -> Dict[str, Any]:
        tenants = await self.tenants.list_all()
        images = await self.tenants.image_counts_by_tenant()
        payments = await self.payments.succeeded_totals_by_tenant()
        billing = await self.billing.revenue_by_tenant()

        per_tenant: List[Dict[str, Any]] = []
        for tenant in tenants:
            counts = images.get(tenant.id, {})
            revenue, payments_count = payments.get(tenant.id, (0, 0))
            per_tenant.append({
                "tenant_id": tenant.id,
                "slug": tenant.slug,
                "name": tenant.name,
                "is_active": tenant.is_active,
                "total_images": sum(counts.values()),
                "pending": counts.get(ImageStatus.PENDING.value, 0),
                "approved": counts.get(ImageStatus.APPROVED.value, 0),
                "rejected": counts.get(ImageStatus.REJECTED.value, 0),
                "revenue": revenue,
                "payments_count": payments_count,
                "subscription_revenue": billing.get(tenant.id, 0),
            })

        overview = {
            "total_tenants": len(tenants),
            "active_tenants": sum(1 for tenant in tenants if tenant.is_active),
            "total_images": sum(row["total_images"] for row in per_tenant),
            "pending_images": sum(row["pending"] for row in per_tenant),
            "approved_images": sum(row["approved"] for row in per_tenant),
            "rejected_images": sum(row["rejected"] for row in per_tenant),
            "total_revenue": sum(row["revenue"] for row in per_tenant),
            "total_payments": sum(row["payments_count"] for row in per_tenant),
            "subscription_revenue": sum(billing.values()),
        }
        return {"overview": overview, "tenants": per_tenant}

    async def send_expiry_warnings(
        self, email_service: EmailService, now: Optional[datetime] = None
    ) -> Dict[str, int]:
        """Email owners whose subscription ends within the warning window"""
        now = now or datetime.utcnow()
        expiring = await self.subscriptions.list_expiring(now, now + timedelta(days=EXPIRING_SOON_DAYS))

        sent = 0
        for subscription in expiring:
            tenant = await self.tenants.get(subscription.tenant_id)
            if tenant is None or not tenant.owner_email:
                continue
            if await email_service.send_expiry_warning(
                email=tenant.owner_email,
                shop_name=tenant.name,
                plan_name=subscription.plan.name if subscription.plan else "",
                days_left=days_until_expiry(subscription.current_period_end, now),
                period_end=subscription.current_period_end,
            ):
                sent += 1

        logger.info(f"Expiry warnings: {sent} sent, {len(expiring)} expiring")
        return {"expiring": len(expiring), "sent": sent}

    async def ensure_super_admin(self, username: str, password: str) -> Admin:
        """Create the super-admin, or reset the password of an existing account"""
        values = {
            "password_hash": get_password_hash(password),
            "is_super_admin": True,
            "role": AdminRole.SUPER_ADMIN.value,
            "tenant_id": None,
        }
        existing = await self.admins.get_by_username(username)
        if existing is not None:
            logger.info(f"Super admin {username} exists, password updated")
            return await self.admins.update(existing.id, values)
        logger.info(f"Super admin {username} created")
        return await self.admins.create({"username": username, **values})
