# app/services/payment_gate.py
"""Per-tenant payment requirement in front of guest uploads"""
from typing import Any, Dict, Optional

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import EMPTY_PAYMENT_REFERENCES, PaymentStatus
from app.core.exceptions import PaymentError, ValidationError
from app.core.logging import logger
from app.db.models.payment import Payment
from app.db.models.tenant import Tenant
from app.db.repositories.payment_repository import PaymentRepository
from app.services.payments import PaymentIntentInfo, StripeGateway


def is_missing_reference(payment_intent_id: Optional[str]) -> bool:
    """Absent, blank, or the literal strings some clients send for null"""
    return payment_intent_id is None or payment_intent_id.strip() in EMPTY_PAYMENT_REFERENCES


async def verify_upload_payment(
    tenant: Tenant,
    payment_intent_id: Optional[str],
    gateway: StripeGateway,
) -> Optional[PaymentIntentInfo]:
    """Return the verified intent, or None when the tenant does not charge.

    Raises ``PaymentError`` when the tenant charges and the reference is
    missing, unknown, unpaid or issued for another tenant.
    """
    if not tenant.payment_enabled:
        return None

    if is_missing_reference(payment_intent_id):
        raise PaymentError("Payment is required for this tenant")

    try:
        intent = await gateway.retrieve_payment_intent(payment_intent_id.strip())
    except stripe.error.StripeError as e:
        logger.warning(f"Payment intent lookup failed: {str(e)}", extra={"tenant_id": tenant.id})
        raise PaymentError("Invalid payment ID") from e

    if not intent.succeeded:
        raise PaymentError(f"Payment not completed. Status: {intent.status}")

    if intent.metadata.get("tenant_id") != str(tenant.id):
        raise PaymentError("Payment does not belong to this tenant")

    return intent


class UploadPaymentService:
    """Payment intents guests pay before uploading, and their local bookkeeping"""

    def __init__(self, session: AsyncSession, gateway: StripeGateway):
        self.session = session
        self.gateway = gateway
        self.payments = PaymentRepository(session)

    async def create_payment(self, tenant: Tenant, session_id: Optional[str]) -> Dict[str, Any]:
        if not tenant.payment_enabled:
            return {
                "success": True,
                "payment_required": False,
                "message": "This tenant does not require payment",
            }

        amount = tenant.price_amount
        currency = (tenant.price_currency or "thb").lower()
        if not amount or amount <= 0:
            raise ValidationError("Invalid payment amount")

        intent = await self.gateway.create_payment_intent(
            amount=amount,
            currency=currency,
            metadata={
                "tenant_id": str(tenant.id),
                "tenant_slug": tenant.slug,
                "session_id": session_id or "unknown",
            },
        )

        # The intent exists at Stripe already; a bookkeeping failure must not
        # stop the guest from paying.
        try:
            await self.payments.create({
                "tenant_id": tenant.id,
                "stripe_payment_intent_id": intent.id,
                "amount": amount,
                "currency": currency,
                "status": PaymentStatus.PENDING.value,
                "session_id": session_id,
                "payment_metadata": intent.metadata,
            })
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to record payment {intent.id}: {str(e)}", extra={"tenant_id": tenant.id})

        return {
            "success": True,
            "payment_required": True,
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.id,
            "amount": amount,
            "currency": currency,
        }

    async def mark_succeeded(self, tenant: Tenant, intent: PaymentIntentInfo) -> Optional[Payment]:
        """Flag the local payment row as paid; best effort"""
        try:
            payment = await self.payments.get_by_intent(intent.id)
            if payment is None:
                payment = await self.payments.create({
                    "tenant_id": tenant.id,
                    "stripe_payment_intent_id": intent.id,
                    "amount": intent.amount,
                    "currency": intent.currency or tenant.price_currency,
                    "status": PaymentStatus.SUCCEEDED.value,
                    "session_id": intent.metadata.get("session_id"),
                    "payment_metadata": intent.metadata,
                })
            elif payment.status != PaymentStatus.SUCCEEDED.value:
                payment = await self.payments.update(payment.id, {"status": PaymentStatus.SUCCEEDED.value})
            return payment
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to update payment status for {intent.id}: {str(e)}", extra={"tenant_id": tenant.id})
            return None
