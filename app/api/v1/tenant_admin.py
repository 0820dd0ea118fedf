# app/api/v1/tenant_admin.py
"""Moderation and settings for a tenant's own admins"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import (
    TenantContext,
    get_notifier,
    get_storage,
    load_subscribed_tenant,
    require_tenant_admin,
)
from app.core.constants import ImageStatus
from app.core.exceptions import ValidationError
from app.core.logging import logger
from app.db.database import get_db
from app.db.models.admin import Admin
from app.db.repositories.tenant_repository import TenantRepository
from app.schemas.image import RejectRequest
from app.schemas.tenant import TenantInDB, TenantSettingsUpdate
from app.services.engagement import EngagementService
from app.services.moderation import ModerationService, serialize_image
from app.services.quota import QuotaService
from app.services.realtime import RealtimeNotifier
from app.services.storage import StorageBackend

router = APIRouter()


@router.get("/{tenant_slug}/admin/images")
async def list_images(
    status: Optional[str] = Query(None),
    admin: Admin = Depends(require_tenant_admin),
    ctx: TenantContext = Depends(load_subscribed_tenant),
    db: AsyncSession = Depends(get_db),
):
    """Moderation queue, newest upload first"""
    if status is not None and status not in {s.value for s in ImageStatus}:
        raise ValidationError("Invalid status filter")
    images = await ModerationService(db).admin_images(ctx.tenant, status)
    return {"success": True, "data": [serialize_image(image) for image in images]}


@router.put("/{tenant_slug}/admin/images/{image_id}/approve")
async def approve_image(
    image_id: str,
    admin: Admin = Depends(require_tenant_admin),
    ctx: TenantContext = Depends(load_subscribed_tenant),
    notifier: Optional[RealtimeNotifier] = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    image = await ModerationService(db, notifier=notifier).approve(ctx.tenant, image_id, admin.id)
    return {"success": True, "data": serialize_image(image)}


@router.put("/{tenant_slug}/admin/images/{image_id}/reject")
async def reject_image(
    image_id: str,
    request: Optional[RejectRequest] = None,
    admin: Admin = Depends(require_tenant_admin),
    ctx: TenantContext = Depends(load_subscribed_tenant),
    db: AsyncSession = Depends(get_db),
):
    reason = request.rejection_reason if request else None
    image = await ModerationService(db).reject(ctx.tenant, image_id, reason)
    return {"success": True, "data": serialize_image(image)}


@router.delete("/{tenant_slug}/admin/images/{image_id}")
async def delete_image(
    image_id: str,
    admin: Admin = Depends(require_tenant_admin),
    ctx: TenantContext = Depends(load_subscribed_tenant),
    storage: StorageBackend = Depends(get_storage),
    db: AsyncSession = Depends(get_db),
):
    await ModerationService(db, storage=storage).delete(ctx.tenant, image_id)
    return {"success": True, "message": "Image deleted successfully"}


@router.delete("/{tenant_slug}/admin/comments/{comment_id}")
async def hide_comment(
    comment_id: str,
    admin: Admin = Depends(require_tenant_admin),
    ctx: TenantContext = Depends(load_subscribed_tenant),
    db: AsyncSession = Depends(get_db),
):
    await EngagementService(db).hide_comment(ctx.tenant, comment_id)
    return {"success": True, "message": "Comment hidden"}


@router.get("/{tenant_slug}/admin/stats")
async def get_stats(
    admin: Admin = Depends(require_tenant_admin),
    ctx: TenantContext = Depends(load_subscribed_tenant),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, "data": await ModerationService(db).stats(ctx.tenant)}


@router.get("/{tenant_slug}/admin/quota")
async def get_quota(
    admin: Admin = Depends(require_tenant_admin),
    ctx: TenantContext = Depends(load_subscribed_tenant),
    db: AsyncSession = Depends(get_db),
):
    quota = await QuotaService(db).check_quota(ctx.tenant.id)
    return {"success": True, "data": quota.to_dict()}


@router.get("/{tenant_slug}/admin/subscription")
async def get_subscription(
    admin: Admin = Depends(require_tenant_admin),
    ctx: TenantContext = Depends(load_subscribed_tenant),
):
    return {"success": True, "data": ctx.status.to_dict()}


@router.put("/{tenant_slug}/admin/settings")
async def update_settings(
    request: TenantSettingsUpdate,
    admin: Admin = Depends(require_tenant_admin),
    ctx: TenantContext = Depends(load_subscribed_tenant),
    db: AsyncSession = Depends(get_db),
):
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationError("No settings to update")

    tenant = await TenantRepository(db).update(ctx.tenant.id, updates)
    logger.info(f"Settings updated: {', '.join(sorted(updates))}", extra={"tenant_id": tenant.id, "admin_id": admin.id})
    return {"success": True, "data": TenantInDB.model_validate(tenant).model_dump(mode="json")}
