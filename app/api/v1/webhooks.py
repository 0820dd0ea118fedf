# app/api/v1/webhooks.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
import stripe

from app.api.dependencies import get_payment_gateway
from app.core.logging import logger
from app.db.database import get_db
from app.services.payments import StripeGateway
from app.services.webhooks import WebhookService

router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    gateway: StripeGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
):
    """Handle Stripe webhooks"""

    # Raw body for signature verification
    body = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event = gateway.construct_event(body, signature)
    except (stripe.error.SignatureVerificationError, ValueError) as e:
        logger.warning(f"Invalid webhook signature: {str(e)}")
        return JSONResponse(status_code=400, content={"error": f"Webhook Error: {str(e)}"})

    try:
        await WebhookService(db).handle(event)
    except Exception as e:
        logger.error(f"Webhook handler failed for {event.get('type')}: {str(e)}")
        return JSONResponse(status_code=500, content={"error": "Webhook handler failed"})

    return {"received": True}
