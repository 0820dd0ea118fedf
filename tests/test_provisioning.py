# tests/test_provisioning.py
"""
Signup and provisioning tests
Tests: slug rules, trial signup, paid signup, atomic rollback on failure
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from app.core.constants import SubscriptionStatus
from app.core.exceptions import ConflictError, DependencyError, PaymentError, ValidationError
from app.core.input_validation import slug_problem
from app.core.security import generate_username, verify_password
from app.db.models.admin import Admin
from app.db.models.billing import BillingHistory
from app.db.models.subscription import Subscription
from app.db.models.tenant import Tenant
from app.db.repositories.admin_repository import AdminRepository
from app.db.repositories.plan_repository import PlanRepository
from app.db.repositories.subscription_repository import SubscriptionRepository
from app.services.provisioning import ProvisioningService, compute_period_end

from conftest import RecordingEmailService, create_tenant

TRIAL_FORM = {
    "shop_name": "My Shop",
    "shop_slug": "my-shop",
    "owner_email": "owner@shop.test",
    "owner_phone": "0812345678",
}


async def _count(session, model) -> int:
    result = await session.execute(select(func.count(model.id)))
    return result.scalar()


class TestSlugRules:

    @pytest.mark.parametrize("slug, problem", [
        ("my-shop", None),
        ("abc", None),
        ("ab", "too_short"),
        ("My-Shop", "invalid_format"),
        ("my shop", "invalid_format"),
        ("", "invalid_format"),
        ("abc\n", "invalid_format"),
    ])
    def test_slug_problem(self, slug, problem):
        assert slug_problem(slug) == problem

    def test_generated_username_shape(self):
        username = generate_username("My Shop!")
        base, suffix = username.split("_")
        assert base == "myshop"
        assert len(suffix) == 4


@pytest.mark.asyncio
class TestPeriodEnd:

    async def test_one_time_plan_uses_duration(self, db_session):
        plan = await PlanRepository(db_session).get_by_key("trial")
        now = datetime(2026, 1, 1)
        assert compute_period_end(plan, now) == now + timedelta(days=3)

    async def test_monthly_and_yearly(self, db_session):
        plans = PlanRepository(db_session)
        now = datetime(2026, 1, 1)
        assert compute_period_end(await plans.get_by_key("pro_monthly"), now) == now + timedelta(days=30)
        assert compute_period_end(await plans.get_by_key("pro_yearly"), now) == now + timedelta(days=365)


@pytest.mark.asyncio
class TestTrialSignup:

    async def test_trial_creates_tenant_subscription_and_admin(self, db_session):
        email = RecordingEmailService()
        account = await ProvisioningService(db_session, email_service=email).create_trial_account(**TRIAL_FORM)

        assert account.tenant.slug == "my-shop"
        assert account.tenant.payment_enabled is False
        assert account.subscription.status == SubscriptionStatus.ACTIVE.value
        assert account.plan.plan_key == "trial"
        assert verify_password(account.password, account.admin.password_hash)
        assert account.admin.tenant_id == account.tenant.id

        assert email.sent[0]["kind"] == "welcome"
        assert email.sent[0]["username"] == account.username

        subscription = await SubscriptionRepository(db_session).get_active_for_tenant(account.tenant.id)
        await db_session.refresh(subscription)
        assert subscription.credentials_sent is True

    async def test_email_failure_does_not_fail_signup(self, db_session):
        email = RecordingEmailService(succeed=False)
        account = await ProvisioningService(db_session, email_service=email).create_trial_account(**TRIAL_FORM)

        subscription = await SubscriptionRepository(db_session).get_active_for_tenant(account.tenant.id)
        assert subscription.credentials_sent is False

    async def test_missing_fields(self, db_session):
        form = dict(TRIAL_FORM, owner_phone="  ")
        with pytest.raises(ValidationError) as exc_info:
            await ProvisioningService(db_session).create_trial_account(**form)
        assert exc_info.value.message == "Missing required fields"

    async def test_invalid_slug(self, db_session):
        with pytest.raises(ValidationError):
            await ProvisioningService(db_session).create_trial_account(**dict(TRIAL_FORM, shop_slug="My Shop"))

    async def test_duplicate_slug(self, db_session):
        await create_tenant(db_session, slug="my-shop")
        with pytest.raises(ConflictError) as exc_info:
            await ProvisioningService(db_session).create_trial_account(**TRIAL_FORM)
        assert exc_info.value.message == "Slug already taken"

    async def test_missing_trial_plan(self, db_session):
        trial = await PlanRepository(db_session).get_by_key("trial")
        await PlanRepository(db_session).update(trial.id, {"is_active": False})

        with pytest.raises(DependencyError):
            await ProvisioningService(db_session).create_trial_account(**TRIAL_FORM)
        assert await _count(db_session, Tenant) == 0

    @pytest.mark.parametrize("failing_step", ["subscriptions", "admins"])
    async def test_failure_mid_provisioning_leaves_nothing(self, db_session, monkeypatch, failing_step):
        service = ProvisioningService(db_session)
        repository = getattr(service, failing_step)

        async def broken_create(obj_in, commit=True):
            raise RuntimeError(f"{failing_step} insert failed")

        monkeypatch.setattr(repository, "create", broken_create)

        with pytest.raises(RuntimeError):
            await service.create_trial_account(**TRIAL_FORM)

        assert await _count(db_session, Tenant) == 0
        assert await _count(db_session, Subscription) == 0
        assert await _count(db_session, Admin) == 0

    async def test_check_slug(self, db_session):
        await create_tenant(db_session, slug="taken")
        service = ProvisioningService(db_session)

        assert await service.check_slug("taken") == {"available": False}
        assert await service.check_slug("free-slug") == {"available": True}
        assert await service.check_slug("ab") == {"available": False, "reason": "too_short"}


@pytest.mark.asyncio
class TestPaidSignup:

    async def _create_intent(self, service, plan_key="pro_monthly", slug="paid-shop"):
        return await service.create_payment_intent(
            plan_key=plan_key,
            shop_name="Paid Shop",
            shop_slug=slug,
            owner_email="paid@shop.test",
            owner_phone="0899999999",
        )

    async def test_create_payment_intent(self, db_session, gateway):
        result = await self._create_intent(ProvisioningService(db_session, gateway=gateway))

        intent = gateway.intents[result["paymentIntentId"]]
        assert intent.amount == 89900
        assert intent.metadata["plan_key"] == "pro_monthly"
        assert intent.metadata["shop_slug"] == "paid-shop"
        assert result["customerId"] == gateway.customers[0]["id"]

    async def test_free_plan_needs_no_payment(self, db_session, gateway):
        with pytest.raises(ValidationError) as exc_info:
            await self._create_intent(ProvisioningService(db_session, gateway=gateway), plan_key="trial")
        assert exc_info.value.message == "This plan does not require payment"

    async def test_unknown_plan(self, db_session, gateway):
        with pytest.raises(ValidationError) as exc_info:
            await self._create_intent(ProvisioningService(db_session, gateway=gateway), plan_key="gold")
        assert exc_info.value.message == "Invalid plan"

    async def test_complete_signup(self, db_session, gateway):
        email = RecordingEmailService()
        service = ProvisioningService(db_session, gateway=gateway, email_service=email)
        created = await self._create_intent(service)
        gateway.succeed(created["paymentIntentId"])

        account = await service.complete_signup(created["paymentIntentId"], "paid-shop")

        assert account.tenant.name == "Paid Shop"
        assert account.subscription.stripe_payment_intent_id == created["paymentIntentId"]
        assert account.subscription.current_period_end - account.subscription.current_period_start == timedelta(days=30)
        assert await _count(db_session, BillingHistory) == 1
        assert [mail["kind"] for mail in email.sent] == ["welcome", "receipt"]

    async def test_unpaid_intent_rejected(self, db_session, gateway):
        service = ProvisioningService(db_session, gateway=gateway)
        created = await self._create_intent(service)

        with pytest.raises(PaymentError) as exc_info:
            await service.complete_signup(created["paymentIntentId"], "paid-shop")
        assert exc_info.value.message == "Payment not completed"
        assert await _count(db_session, Tenant) == 0

    async def test_unknown_intent(self, db_session, gateway):
        with pytest.raises(PaymentError) as exc_info:
            await ProvisioningService(db_session, gateway=gateway).complete_signup("pi_missing", "paid-shop")
        assert exc_info.value.message == "Invalid payment ID"

    async def test_slug_mismatch(self, db_session, gateway):
        service = ProvisioningService(db_session, gateway=gateway)
        created = await self._create_intent(service)
        gateway.succeed(created["paymentIntentId"])

        with pytest.raises(PaymentError):
            await service.complete_signup(created["paymentIntentId"], "other-shop")

    async def test_completing_twice(self, db_session, gateway):
        service = ProvisioningService(db_session, gateway=gateway)
        created = await self._create_intent(service)
        gateway.succeed(created["paymentIntentId"])

        await service.complete_signup(created["paymentIntentId"], "paid-shop")
        with pytest.raises(ConflictError) as exc_info:
            await service.complete_signup(created["paymentIntentId"], "paid-shop")
        assert exc_info.value.message == "Tenant already created"
        assert await _count(db_session, Tenant) == 1

    async def test_billing_failure_rolls_back(self, db_session, gateway, monkeypatch):
        service = ProvisioningService(db_session, gateway=gateway)
        created = await self._create_intent(service)
        gateway.succeed(created["paymentIntentId"])

        async def broken_create(obj_in, commit=True):
            raise RuntimeError("billing insert failed")

        monkeypatch.setattr(service.billing, "create", broken_create)

        with pytest.raises(RuntimeError):
            await service.complete_signup(created["paymentIntentId"], "paid-shop")

        assert await _count(db_session, Tenant) == 0
        assert await _count(db_session, Subscription) == 0
        assert await AdminRepository(db_session).list_all() == []
