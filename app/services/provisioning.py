# app/services/provisioning.py
"""
Tenant signup.

Trial signups are provisioned immediately; paid signups create a Stripe
payment intent first and are provisioned once the intent has succeeded.
Tenant, subscription, admin (and, for paid plans, the billing entry) are
written in one database transaction, so a failure at any step leaves no
partial account behind. Emails go out after the commit and never fail the
signup.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import stripe
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.constants import (
    AdminRole,
    BillingStatus,
    SubscriptionStatus,
    TRIAL_PLAN_KEY,
)
from app.core.exceptions import (
    ConflictError,
    DependencyError,
    PaymentError,
    ValidationError,
)
from app.core.input_validation import slug_problem
from app.core.logging import logger
from app.core.security import generate_password, generate_username, get_password_hash
from app.db.models.admin import Admin
from app.db.models.plan import SubscriptionPlan
from app.db.models.subscription import Subscription
from app.db.models.tenant import Tenant
from app.db.repositories.admin_repository import AdminRepository
from app.db.repositories.billing_repository import BillingRepository
from app.db.repositories.plan_repository import PlanRepository
from app.db.repositories.subscription_repository import SubscriptionRepository
from app.db.repositories.tenant_repository import TenantRepository
from app.services.email_service import EmailService
from app.services.payments import PaymentIntentInfo, StripeGateway

MONTH_DAYS = 30
YEAR_DAYS = 365


def compute_period_end(plan: SubscriptionPlan, now: datetime) -> datetime:
    """One-time plans last ``duration_days``; subscriptions a month or a year"""
    if plan.is_one_time:
        return now + timedelta(days=plan.duration_days or 1)
    return now + timedelta(days=YEAR_DAYS if plan.is_yearly else MONTH_DAYS)


@dataclass
class ProvisionedAccount:
    tenant: Tenant
    subscription: Subscription
    admin: Admin
    plan: SubscriptionPlan
    username: str
    password: str

    def to_response(self, message: str) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": True,
            "tenant": {"id": self.tenant.id, "slug": self.tenant.slug, "name": self.tenant.name},
            "message": message,
        }
        if settings.EXPOSE_SIGNUP_CREDENTIALS:
            body["credentials"] = {
                "username": self.username,
                "password": self.password,
                "loginUrl": f"/{self.tenant.slug}/admin/login",
            }
        return body


def _require(*values: Optional[str]):
    if any(value is None or not str(value).strip() for value in values):
        raise ValidationError("Missing required fields")


class ProvisioningService:
    """Signup flows for new tenants"""

    def __init__(
        self,
        session: AsyncSession,
        gateway: Optional[StripeGateway] = None,
        email_service: Optional[EmailService] = None,
    ):
        self.session = session
        self.gateway = gateway
        self.email_service = email_service
        self.tenants = TenantRepository(session)
        self.plans = PlanRepository(session)
        self.subscriptions = SubscriptionRepository(session)
        self.admins = AdminRepository(session)
        self.billing = BillingRepository(session)

    async def check_slug(self, slug: str) -> Dict[str, Any]:
        problem = slug_problem(slug)
        if problem:
            return {"available": False, "reason": problem}
        return {"available": not await self.tenants.slug_exists(slug)}

    async def _ensure_slug_free(self, slug: str):
        if slug_problem(slug):
            raise ValidationError("Invalid slug format")
        if await self.tenants.slug_exists(slug):
            raise ConflictError("Slug already taken")

    async def create_trial_account(
        self,
        shop_name: Optional[str],
        shop_slug: Optional[str],
        owner_email: Optional[str],
        owner_phone: Optional[str],
    ) -> ProvisionedAccount:
        _require(shop_name, shop_slug, owner_email, owner_phone)
        await self._ensure_slug_free(shop_slug)

        plan = await self.plans.get_by_key(TRIAL_PLAN_KEY)
        if plan is None:
            logger.error("Trial plan missing from subscription_plans")
            raise DependencyError("Trial plan not found")

        account = await self._provision(
            plan=plan,
            tenant_values={
                "slug": shop_slug,
                "name": shop_name.strip(),
                "owner_email": owner_email.strip(),
                "owner_phone": owner_phone.strip(),
                "payment_enabled": False,
            },
        )
        logger.info(f"Trial account created: {account.tenant.slug}", extra={"tenant_id": account.tenant.id})

        await self._send_welcome(account)
        return account

    async def create_payment_intent(
        self,
        plan_key: Optional[str],
        shop_name: Optional[str],
        shop_slug: Optional[str],
        owner_email: Optional[str],
        owner_phone: Optional[str],
    ) -> Dict[str, Any]:
        _require(plan_key, shop_name, shop_slug, owner_email, owner_phone)

        plan = await self.plans.get_by_key(plan_key)
        if plan is None:
            raise ValidationError("Invalid plan")
        if plan.price_amount == 0:
            raise ValidationError("This plan does not require payment")

        await self._ensure_slug_free(shop_slug)

        customer_id = await self.gateway.create_customer(
            email=owner_email,
            name=shop_name,
            phone=owner_phone,
            metadata={"plan_key": plan_key, "shop_slug": shop_slug},
        )
        intent = await self.gateway.create_payment_intent(
            amount=plan.price_amount,
            currency=plan.price_currency,
            customer_id=customer_id,
            receipt_email=owner_email,
            description=f"{plan.name} - {shop_name}",
            metadata={
                "plan_key": plan_key,
                "plan_name": plan.name,
                "shop_name": shop_name,
                "shop_slug": shop_slug,
                "owner_email": owner_email,
                "owner_phone": owner_phone,
            },
        )

        return {
            "success": True,
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.id,
            "customerId": customer_id,
        }

    async def complete_signup(self, payment_intent_id: Optional[str], shop_slug: Optional[str]) -> ProvisionedAccount:
        _require(payment_intent_id, shop_slug)

        try:
            intent = await self.gateway.retrieve_payment_intent(payment_intent_id)
        except stripe.error.StripeError as e:
            logger.warning(f"Signup payment intent lookup failed: {str(e)}")
            raise PaymentError("Invalid payment ID") from e

        if not intent.succeeded:
            raise PaymentError("Payment not completed")

        metadata = intent.metadata
        if metadata.get("shop_slug") != shop_slug:
            raise PaymentError("Payment does not match this signup")

        if await self.subscriptions.get_by_payment_intent(intent.id) is not None:
            raise ConflictError("Tenant already created")
        if await self.tenants.slug_exists(shop_slug):
            raise ConflictError("Slug already taken")

        plan = await self.plans.get_by_key(metadata.get("plan_key") or "", active_only=False)
        if plan is None:
            raise ValidationError("Plan not found")

        account = await self._provision(
            plan=plan,
            tenant_values={
                "slug": shop_slug,
                "name": metadata.get("shop_name") or shop_slug,
                "owner_email": metadata.get("owner_email"),
                "owner_phone": metadata.get("owner_phone"),
                "payment_enabled": False,
            },
            subscription_values={
                "stripe_customer_id": intent.customer,
                "stripe_payment_intent_id": intent.id,
            },
            intent=intent,
        )
        logger.info(f"Paid account created: {account.tenant.slug}", extra={"tenant_id": account.tenant.id})

        await self._send_welcome(account)
        if account.tenant.owner_email and self.email_service is not None:
            await self.email_service.send_payment_receipt(
                email=account.tenant.owner_email,
                shop_name=account.tenant.name,
                plan_name=plan.name,
                amount=intent.amount,
                currency=intent.currency,
                reference=intent.id,
                period_end=account.subscription.current_period_end,
            )
        return account

    async def _provision(
        self,
        plan: SubscriptionPlan,
        tenant_values: Dict[str, Any],
        subscription_values: Optional[Dict[str, Any]] = None,
        intent: Optional[PaymentIntentInfo] = None,
    ) -> ProvisionedAccount:
        """Create tenant, subscription, admin (and billing entry) atomically"""
        now = datetime.utcnow()
        username = generate_username(tenant_values["name"])
        password = generate_password()
        password_hash = get_password_hash(password)

        try:
            tenant = await self.tenants.create(tenant_values, commit=False)

            subscription = await self.subscriptions.create(
                {
                    "tenant_id": tenant.id,
                    "plan_id": plan.id,
                    "status": SubscriptionStatus.ACTIVE.value,
                    "current_period_start": now,
                    "current_period_end": compute_period_end(plan, now),
                    "auto_username": username,
                    "auto_password_hash": password_hash,
                    "credentials_sent": False,
                    **(subscription_values or {}),
                },
                commit=False,
            )

            admin = await self.admins.create(
                {
                    "username": username,
                    "password_hash": password_hash,
                    "tenant_id": tenant.id,
                    "is_super_admin": False,
                    "role": AdminRole.ADMIN.value,
                },
                commit=False,
            )

            if intent is not None:
                await self.billing.create(
                    {
                        "tenant_id": tenant.id,
                        "subscription_id": subscription.id,
                        "amount": intent.amount,
                        "currency": intent.currency,
                        "status": BillingStatus.PAID.value,
                        "description": f"Initial payment for {plan.name}",
                        "stripe_payment_intent_id": intent.id,
                        "paid_at": now,
                    },
                    commit=False,
                )

            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Signup for {tenant_values['slug']} lost a uniqueness race: {str(e)}")
            raise ConflictError("Slug already taken") from e
        except Exception:
            await self.session.rollback()
            logger.exception(f"Signup for {tenant_values['slug']} failed, transaction rolled back")
            raise

        return ProvisionedAccount(
            tenant=tenant,
            subscription=subscription,
            admin=admin,
            plan=plan,
            username=username,
            password=password,
        )

    async def _send_welcome(self, account: ProvisionedAccount):
        if self.email_service is None or not account.tenant.owner_email:
            return
        sent = await self.email_service.send_welcome_email(
            email=account.tenant.owner_email,
            shop_name=account.tenant.name,
            tenant_slug=account.tenant.slug,
            username=account.username,
            password=account.password,
            plan_name=account.plan.name,
            period_end=account.subscription.current_period_end,
        )
        if sent:
            try:
                await self.subscriptions.update(account.subscription.id, {"credentials_sent": True})
            except Exception as e:
                await self.session.rollback()
                logger.error(f"Failed to flag credentials as sent: {str(e)}", extra={"tenant_id": account.tenant.id})
