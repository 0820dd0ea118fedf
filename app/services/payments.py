# app/services/payments.py
"""
Stripe integration.

The Stripe SDK is synchronous, so every call is pushed to the threadpool.
Results are normalised into plain dataclasses so that callers (and test
doubles) never depend on ``StripeObject`` internals.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import stripe
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.constants import PAYMENT_METHODS_BY_CURRENCY, DEFAULT_PAYMENT_METHODS
from app.core.exceptions import DependencyError
from app.core.logging import logger


@dataclass
class PaymentIntentInfo:
    id: str
    status: str
    amount: int
    currency: str
    client_secret: Optional[str] = None
    customer: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


def payment_methods_for(currency: str) -> List[str]:
    """promptpay is only offered for THB"""
    return list(PAYMENT_METHODS_BY_CURRENCY.get((currency or "").lower(), DEFAULT_PAYMENT_METHODS))


def _to_info(intent) -> PaymentIntentInfo:
    data = intent.to_dict()
    metadata = data.get("metadata") or {}
    return PaymentIntentInfo(
        id=data["id"],
        status=data["status"],
        amount=data.get("amount") or 0,
        currency=data.get("currency") or "",
        client_secret=data.get("client_secret"),
        customer=data.get("customer"),
        metadata=dict(metadata),
    )


class StripeGateway:
    """Thin async facade over the Stripe SDK"""

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET

    async def create_customer(
        self,
        email: Optional[str],
        name: Optional[str],
        metadata: Dict[str, str],
        phone: Optional[str] = None,
    ) -> str:
        try:
            customer = await run_in_threadpool(
                stripe.Customer.create,
                api_key=self.api_key,
                email=email,
                name=name,
                phone=phone,
                metadata=metadata,
            )
        except stripe.error.StripeError as e:
            logger.error(f"Stripe customer creation failed: {str(e)}")
            raise DependencyError("Failed to create payment customer") from e
        return customer.id

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: Dict[str, str],
        customer_id: Optional[str] = None,
        description: Optional[str] = None,
        receipt_email: Optional[str] = None,
    ) -> PaymentIntentInfo:
        params: Dict[str, Any] = {
            "amount": amount,
            "currency": currency.lower(),
            "payment_method_types": payment_methods_for(currency),
            "metadata": metadata,
        }
        if customer_id:
            params["customer"] = customer_id
        if description:
            params["description"] = description
        if receipt_email:
            params["receipt_email"] = receipt_email

        try:
            intent = await run_in_threadpool(stripe.PaymentIntent.create, api_key=self.api_key, **params)
        except stripe.error.StripeError as e:
            logger.error(f"Stripe payment intent creation failed: {str(e)}")
            raise DependencyError("Failed to create payment") from e

        logger.info(f"Payment intent created: {intent.id}")
        return _to_info(intent)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentInfo:
        """Raises ``stripe.error.StripeError`` when the intent cannot be fetched"""
        intent = await run_in_threadpool(
            stripe.PaymentIntent.retrieve, payment_intent_id, api_key=self.api_key
        )
        return _to_info(intent)

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify the Stripe-Signature header and decode the event body.

        Raises ``stripe.error.SignatureVerificationError`` on a bad signature
        and ``ValueError`` on a malformed body.
        """
        if not self.webhook_secret:
            raise stripe.error.SignatureVerificationError("Webhook secret not configured", signature)
        text = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(
            text, signature or "", self.webhook_secret, stripe.Webhook.DEFAULT_TOLERANCE
        )
        return json.loads(text)
