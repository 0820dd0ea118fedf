# app/api/v1/upload.py
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import (
    TenantContext,
    get_payment_gateway,
    get_session_id,
    get_storage,
    load_subscribed_tenant,
    require_quota,
)
from app.core.config import settings
from app.core.exceptions import ValidationError
from app.db.database import get_db
from app.services.moderation import serialize_image
from app.services.payment_gate import UploadPaymentService, verify_upload_payment
from app.services.payments import StripeGateway
from app.services.quota import QuotaResult
from app.services.storage import StorageBackend
from app.services.uploads import UploadService

router = APIRouter()


@router.post("/{tenant_slug}/payment/create")
async def create_upload_payment(
    ctx: TenantContext = Depends(load_subscribed_tenant),
    session_id: str = Depends(get_session_id),
    gateway: StripeGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
):
    """Payment intent a guest pays before uploading, when the tenant charges"""
    return await UploadPaymentService(db, gateway).create_payment(ctx.tenant, session_id)


@router.post("/{tenant_slug}/upload")
async def upload_image(
    image: Optional[UploadFile] = File(None),
    payment_intent_id: Optional[str] = Form(None, alias="paymentIntentId"),
    caption: Optional[str] = Form(None),
    ctx: TenantContext = Depends(load_subscribed_tenant),
    quota: QuotaResult = Depends(require_quota),
    session_id: str = Depends(get_session_id),
    gateway: StripeGateway = Depends(get_payment_gateway),
    storage: StorageBackend = Depends(get_storage),
    db: AsyncSession = Depends(get_db),
):
    """Guest upload; lands in the moderation queue as pending"""
    tenant = ctx.tenant

    intent = await verify_upload_payment(tenant, payment_intent_id, gateway)
    payment_id = None
    if intent is not None:
        payment = await UploadPaymentService(db, gateway).mark_succeeded(tenant, intent)
        payment_id = payment.id if payment is not None else None

    if image is None or not image.filename:
        raise ValidationError("No image file uploaded")

    # Anything past the limit is enough to reject; the rest is never buffered
    data = await image.read(settings.MAX_FILE_SIZE + 1)
    created = await UploadService(db, storage).store_upload(
        tenant,
        data,
        content_type=image.content_type,
        original_filename=image.filename,
        session_id=session_id,
        payment_id=payment_id,
        caption=caption,
    )
    return {"success": True, "data": serialize_image(created)}
