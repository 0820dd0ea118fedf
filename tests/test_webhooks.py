# tests/test_webhooks.py
"""
Stripe webhook tests
Tests: signature handling, payment and subscription events, billing ledger
"""
import json
from datetime import datetime, timedelta

import pytest
from fastapi import status
from sqlalchemy import select

from app.core.constants import BillingStatus, PaymentStatus, SubscriptionStatus
from app.db.models.billing import BillingHistory
from app.db.models.payment import Payment
from app.db.repositories.subscription_repository import SubscriptionRepository
from app.db.repositories.tenant_repository import TenantRepository
from app.services.webhooks import WebhookService, map_subscription_status

from conftest import create_tenant

SIGNED = {"stripe-signature": "valid-signature"}


def _event(event_type: str, obj: dict) -> bytes:
    return json.dumps({"id": "evt_test", "type": event_type, "data": {"object": obj}}).encode()


async def _subscription_with_intent(session, payment_intent_id="pi_signup", stripe_subscription_id=None):
    tenant = await create_tenant(session, slug="hooked")
    subscription = await SubscriptionRepository(session).get_active_for_tenant(tenant.id)
    subscription.stripe_payment_intent_id = payment_intent_id
    subscription.stripe_subscription_id = stripe_subscription_id
    await session.commit()
    return tenant, subscription


async def _billing(session):
    result = await session.execute(select(BillingHistory).order_by(BillingHistory.created_at))
    return list(result.scalars().all())


class TestStatusMapping:

    @pytest.mark.parametrize("stripe_status, expected", [
        ("active", SubscriptionStatus.ACTIVE.value),
        ("trialing", SubscriptionStatus.ACTIVE.value),
        ("canceled", SubscriptionStatus.CANCELED.value),
        ("past_due", SubscriptionStatus.PAYMENT_FAILED.value),
        ("unpaid", SubscriptionStatus.PAYMENT_FAILED.value),
    ])
    def test_map(self, stripe_status, expected):
        assert map_subscription_status(stripe_status) == expected


@pytest.mark.asyncio
class TestWebhookEndpoint:

    async def test_bad_signature(self, client):
        response = await client.post(
            "/api/webhooks/stripe",
            content=_event("payment_intent.succeeded", {"id": "pi_1"}),
            headers={"stripe-signature": "forged"},
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_unhandled_event_acknowledged(self, client):
        response = await client.post(
            "/api/webhooks/stripe", content=_event("invoice.created", {"id": "in_1"}), headers=SIGNED
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"received": True}

    async def test_payment_failed_records_ledger(self, client, db_session):
        tenant, subscription = await _subscription_with_intent(db_session)

        response = await client.post(
            "/api/webhooks/stripe",
            content=_event("payment_intent.payment_failed", {
                "id": "pi_signup", "amount": 29900, "currency": "thb", "metadata": {"plan_name": "Starter"},
            }),
            headers=SIGNED,
        )

        assert response.status_code == status.HTTP_200_OK
        await db_session.refresh(subscription)
        assert subscription.status == SubscriptionStatus.PAYMENT_FAILED.value
        entries = await _billing(db_session)
        assert [entry.status for entry in entries] == [BillingStatus.FAILED.value]

    async def test_handler_failure_returns_500(self, client, monkeypatch):
        async def broken(self, event):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(WebhookService, "handle", broken)

        response = await client.post(
            "/api/webhooks/stripe", content=_event("payment_intent.succeeded", {"id": "pi_1"}), headers=SIGNED
        )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "Webhook handler failed"}


@pytest.mark.asyncio
class TestWebhookService:

    async def test_payment_succeeded_books_once(self, db_session):
        tenant, subscription = await _subscription_with_intent(db_session)
        service = WebhookService(db_session)
        event = {
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_signup", "amount": 29900, "currency": "thb", "metadata": {}}},
        }

        assert await service.handle(event) is True
        assert await service.handle(event) is True

        entries = await _billing(db_session)
        assert len(entries) == 1
        assert entries[0].status == BillingStatus.PAID.value
        assert entries[0].amount == 29900

    async def test_payment_succeeded_updates_upload_payment(self, db_session):
        tenant = await create_tenant(db_session, slug="wall")
        db_session.add(Payment(
            tenant_id=tenant.id,
            stripe_payment_intent_id="pi_guest",
            amount=3500,
            currency="thb",
            status=PaymentStatus.PENDING.value,
        ))
        await db_session.commit()

        await WebhookService(db_session).handle({
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_guest", "amount": 3500, "currency": "thb"}},
        })

        payment = (await db_session.execute(select(Payment))).scalar_one()
        assert payment.status == PaymentStatus.SUCCEEDED.value
        assert await _billing(db_session) == []

    async def test_refund_ends_period(self, db_session):
        tenant, subscription = await _subscription_with_intent(db_session)

        await WebhookService(db_session).handle({
            "type": "charge.refunded",
            "data": {"object": {"id": "ch_1", "payment_intent": "pi_signup", "amount_refunded": 29900, "currency": "thb"}},
        })

        await db_session.refresh(subscription)
        assert subscription.status == SubscriptionStatus.REFUNDED.value
        assert subscription.current_period_end <= datetime.utcnow()
        entries = await _billing(db_session)
        assert entries[0].amount == -29900

    async def test_subscription_updated(self, db_session):
        tenant, subscription = await _subscription_with_intent(db_session, stripe_subscription_id="sub_1")
        new_end = datetime.utcnow().replace(microsecond=0) + timedelta(days=30)

        await WebhookService(db_session).handle({
            "type": "customer.subscription.updated",
            "data": {"object": {
                "id": "sub_1",
                "status": "past_due",
                "items": {"data": [{
                    "current_period_start": int((new_end - timedelta(days=30)).timestamp()),
                    "current_period_end": int(new_end.timestamp()),
                }]},
            }},
        })

        await db_session.refresh(subscription)
        assert subscription.status == SubscriptionStatus.PAYMENT_FAILED.value
        assert subscription.current_period_end == datetime.utcfromtimestamp(int(new_end.timestamp()))

    async def test_subscription_deleted_deactivates_tenant(self, db_session):
        tenant, subscription = await _subscription_with_intent(db_session, stripe_subscription_id="sub_2")

        await WebhookService(db_session).handle({
            "type": "customer.subscription.deleted",
            "data": {"object": {"id": "sub_2", "status": "canceled"}},
        })

        await db_session.refresh(subscription)
        reloaded = await TenantRepository(db_session).get(tenant.id)
        await db_session.refresh(reloaded)
        assert subscription.status == SubscriptionStatus.CANCELED.value
        assert reloaded.is_active is False
