# app/services/webhooks.py
"""Apply Stripe webhook events to subscriptions, payments and the billing ledger"""
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import BillingStatus, PaymentStatus, SubscriptionStatus
from app.core.logging import logger
from app.db.models.subscription import Subscription
from app.db.repositories.billing_repository import BillingRepository
from app.db.repositories.payment_repository import PaymentRepository
from app.db.repositories.subscription_repository import SubscriptionRepository
from app.db.repositories.tenant_repository import TenantRepository

# Stripe subscription status -> local subscription status; anything else is active
STRIPE_SUBSCRIPTION_STATUS = {
    "canceled": SubscriptionStatus.CANCELED.value,
    "past_due": SubscriptionStatus.PAYMENT_FAILED.value,
    "unpaid": SubscriptionStatus.PAYMENT_FAILED.value,
}


def map_subscription_status(stripe_status: Optional[str]) -> str:
    return STRIPE_SUBSCRIPTION_STATUS.get(stripe_status, SubscriptionStatus.ACTIVE.value)


def _from_epoch(value: Optional[int]) -> Optional[datetime]:
    return datetime.utcfromtimestamp(value) if value else None


def _period_bounds(stripe_subscription: Dict[str, Any]):
    """Period start/end; newer API versions only carry them on the items"""
    start = stripe_subscription.get("current_period_start")
    end = stripe_subscription.get("current_period_end")
    if start is None or end is None:
        items = (stripe_subscription.get("items") or {}).get("data") or []
        if items:
            start = start or items[0].get("current_period_start")
            end = end or items[0].get("current_period_end")
    return _from_epoch(start), _from_epoch(end)


class WebhookService:

    def __init__(self, session: AsyncSession):
        self.session = session
        self.subscriptions = SubscriptionRepository(session)
        self.payments = PaymentRepository(session)
        self.billing = BillingRepository(session)
        self.tenants = TenantRepository(session)
        self.handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[None]]] = {
            "payment_intent.succeeded": self.handle_payment_succeeded,
            "payment_intent.payment_failed": self.handle_payment_failed,
            "charge.refunded": self.handle_refund,
            "customer.subscription.updated": self.handle_subscription_updated,
            "customer.subscription.deleted": self.handle_subscription_canceled,
        }

    async def handle(self, event: Dict[str, Any]) -> bool:
        """Dispatch one event; returns False for event types we ignore"""
        event_type = event.get("type")
        handler = self.handlers.get(event_type)
        if handler is None:
            logger.info(f"Unhandled Stripe event type: {event_type}")
            return False

        try:
            await handler(event["data"]["object"])
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return True

    async def _set_payment_status(self, payment_intent_id: str, status: str):
        payment = await self.payments.get_by_intent(payment_intent_id)
        if payment is not None:
            payment.status = status

    async def _subscription_for_intent(self, payment_intent_id: str) -> Optional[Subscription]:
        subscription = await self.subscriptions.get_by_payment_intent(payment_intent_id)
        if subscription is None:
            logger.info(f"No subscription found for payment intent {payment_intent_id}")
        return subscription

    async def handle_payment_succeeded(self, intent: Dict[str, Any]):
        await self._set_payment_status(intent["id"], PaymentStatus.SUCCEEDED.value)

        subscription = await self._subscription_for_intent(intent["id"])
        if subscription is None:
            return

        subscription.status = SubscriptionStatus.ACTIVE.value
        # complete_signup already booked the initial charge
        if not await self.billing.has_entry(intent["id"], BillingStatus.PAID.value):
            plan_name = (intent.get("metadata") or {}).get("plan_name") or "subscription"
            await self.billing.create(
                {
                    "tenant_id": subscription.tenant_id,
                    "subscription_id": subscription.id,
                    "amount": intent.get("amount") or 0,
                    "currency": intent.get("currency") or "thb",
                    "status": BillingStatus.PAID.value,
                    "description": f"Payment for {plan_name}",
                    "stripe_payment_intent_id": intent["id"],
                    "paid_at": datetime.utcnow(),
                },
                commit=False,
            )
        logger.info(f"Payment recorded for subscription {subscription.id}", extra={"tenant_id": subscription.tenant_id})

    async def handle_payment_failed(self, intent: Dict[str, Any]):
        await self._set_payment_status(intent["id"], PaymentStatus.FAILED.value)

        subscription = await self._subscription_for_intent(intent["id"])
        if subscription is None:
            return

        subscription.status = SubscriptionStatus.PAYMENT_FAILED.value
        plan_name = (intent.get("metadata") or {}).get("plan_name") or "subscription"
        await self.billing.create(
            {
                "tenant_id": subscription.tenant_id,
                "subscription_id": subscription.id,
                "amount": intent.get("amount") or 0,
                "currency": intent.get("currency") or "thb",
                "status": BillingStatus.FAILED.value,
                "description": f"Failed payment for {plan_name}",
                "stripe_payment_intent_id": intent["id"],
                "paid_at": None,
            },
            commit=False,
        )
        logger.info(f"Payment failure recorded for subscription {subscription.id}", extra={"tenant_id": subscription.tenant_id})

    async def handle_refund(self, charge: Dict[str, Any]):
        payment_intent_id = charge.get("payment_intent")
        if not payment_intent_id:
            logger.info(f"Refunded charge {charge.get('id')} has no payment intent")
            return

        subscription = await self._subscription_for_intent(payment_intent_id)
        if subscription is None:
            return

        now = datetime.utcnow()
        subscription.status = SubscriptionStatus.REFUNDED.value
        subscription.current_period_end = now
        await self.billing.create(
            {
                "tenant_id": subscription.tenant_id,
                "subscription_id": subscription.id,
                "amount": -(charge.get("amount_refunded") or 0),
                "currency": charge.get("currency") or "thb",
                "status": BillingStatus.REFUNDED.value,
                "description": "Refund issued",
                "stripe_payment_intent_id": payment_intent_id,
                "paid_at": now,
            },
            commit=False,
        )
        logger.info(f"Refund recorded for subscription {subscription.id}", extra={"tenant_id": subscription.tenant_id})

    async def handle_subscription_updated(self, stripe_subscription: Dict[str, Any]):
        subscription = await self.subscriptions.get_by_stripe_subscription(stripe_subscription["id"])
        if subscription is None:
            logger.info(f"No subscription found for Stripe subscription {stripe_subscription['id']}")
            return

        subscription.status = map_subscription_status(stripe_subscription.get("status"))
        start, end = _period_bounds(stripe_subscription)
        if start is not None:
            subscription.current_period_start = start
        if end is not None:
            subscription.current_period_end = end
        logger.info(f"Subscription {subscription.id} updated, status {subscription.status}")

    async def handle_subscription_canceled(self, stripe_subscription: Dict[str, Any]):
        subscription = await self.subscriptions.get_by_stripe_subscription(stripe_subscription["id"])
        if subscription is None:
            logger.info(f"No subscription found for Stripe subscription {stripe_subscription['id']}")
            return

        subscription.status = SubscriptionStatus.CANCELED.value
        subscription.current_period_end = datetime.utcnow()
        tenant = await self.tenants.get(subscription.tenant_id)
        if tenant is not None:
            tenant.is_active = False
        logger.info("Subscription canceled and tenant deactivated", extra={"tenant_id": subscription.tenant_id})
