# tests/test_payment_gate.py
"""
Upload payment gate tests
Tests: payment requirement per tenant, intent verification, bookkeeping
"""
import pytest
from sqlalchemy import select

from app.core.constants import PaymentStatus
from app.core.exceptions import PaymentError, ValidationError
from app.db.models.payment import Payment
from app.services.payment_gate import UploadPaymentService, is_missing_reference, verify_upload_payment
from app.services.payments import payment_methods_for

from conftest import create_tenant


class TestReferences:

    @pytest.mark.parametrize("reference", [None, "", "   ", "null", "undefined"])
    def test_missing(self, reference):
        assert is_missing_reference(reference) is True

    def test_present(self):
        assert is_missing_reference("pi_123") is False

    def test_payment_methods(self):
        assert payment_methods_for("THB") == ["card", "promptpay"]
        assert payment_methods_for("usd") == ["card"]


@pytest.mark.asyncio
class TestVerifyUploadPayment:

    @pytest.mark.parametrize("reference", [None, "null", "undefined", "valid"])
    async def test_free_tenant_skips_payment(self, db_session, gateway, reference):
        tenant = await create_tenant(db_session, payment_enabled=False)
        if reference == "valid":
            reference = gateway.add_intent(tenant_id=tenant.id).id
        assert await verify_upload_payment(tenant, reference, gateway) is None

    @pytest.mark.parametrize("reference", [None, "", "null", "undefined"])
    async def test_paid_tenant_requires_reference(self, db_session, gateway, reference):
        tenant = await create_tenant(db_session, payment_enabled=True)
        with pytest.raises(PaymentError) as exc_info:
            await verify_upload_payment(tenant, reference, gateway)
        assert exc_info.value.message == "Payment is required for this tenant"

    async def test_unknown_intent(self, db_session, gateway):
        tenant = await create_tenant(db_session, payment_enabled=True)
        with pytest.raises(PaymentError) as exc_info:
            await verify_upload_payment(tenant, "pi_unknown", gateway)
        assert exc_info.value.message == "Invalid payment ID"

    async def test_unpaid_intent(self, db_session, gateway):
        tenant = await create_tenant(db_session, payment_enabled=True)
        intent = gateway.add_intent(status="requires_payment_method", tenant_id=tenant.id)

        with pytest.raises(PaymentError) as exc_info:
            await verify_upload_payment(tenant, intent.id, gateway)
        assert exc_info.value.message == "Payment not completed. Status: requires_payment_method"

    async def test_intent_of_another_tenant(self, db_session, gateway):
        tenant = await create_tenant(db_session, payment_enabled=True)
        intent = gateway.add_intent(tenant_id="someone-else")

        with pytest.raises(PaymentError) as exc_info:
            await verify_upload_payment(tenant, intent.id, gateway)
        assert exc_info.value.message == "Payment does not belong to this tenant"

    async def test_valid_payment(self, db_session, gateway):
        tenant = await create_tenant(db_session, payment_enabled=True)
        intent = gateway.add_intent(tenant_id=tenant.id)

        verified = await verify_upload_payment(tenant, intent.id, gateway)

        assert verified.id == intent.id


@pytest.mark.asyncio
class TestUploadPaymentService:

    async def test_no_payment_required(self, db_session, gateway):
        tenant = await create_tenant(db_session, payment_enabled=False)
        result = await UploadPaymentService(db_session, gateway).create_payment(tenant, "session")
        assert result["payment_required"] is False
        assert gateway.intents == {}

    async def test_invalid_amount(self, db_session, gateway):
        tenant = await create_tenant(db_session, payment_enabled=True, price_amount=0)
        with pytest.raises(ValidationError):
            await UploadPaymentService(db_session, gateway).create_payment(tenant, "session")

    async def test_create_and_mark_succeeded(self, db_session, gateway):
        tenant = await create_tenant(db_session, payment_enabled=True, price_amount=3500)
        service = UploadPaymentService(db_session, gateway)

        result = await service.create_payment(tenant, "session-1")

        assert result["payment_required"] is True
        assert result["amount"] == 3500
        intent = gateway.intents[result["paymentIntentId"]]
        assert intent.metadata == {"tenant_id": tenant.id, "tenant_slug": tenant.slug, "session_id": "session-1"}

        gateway.succeed(intent.id)
        payment = await service.mark_succeeded(tenant, intent)

        assert payment.status == PaymentStatus.SUCCEEDED.value
        rows = (await db_session.execute(select(Payment))).scalars().all()
        assert len(rows) == 1
