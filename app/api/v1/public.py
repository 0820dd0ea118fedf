# app/api/v1/public.py
"""Guest-facing tenant routes: theme, display feed, gallery, likes and comments"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import (
    TenantContext,
    get_client_ip_address,
    get_notifier,
    get_session_id,
    load_subscribed_tenant,
    resolve_tenant,
)
from app.core.input_validation import normalize_sort
from app.db.database import get_db
from app.db.models.tenant import Tenant
from app.schemas.image import CommentCreate, CommentOut
from app.schemas.tenant import TenantTheme
from app.services.engagement import EngagementService
from app.services.moderation import ModerationService, serialize_image
from app.services.realtime import RealtimeNotifier

router = APIRouter()


@router.get("/{tenant_slug}/theme")
async def get_theme(tenant: Tenant = Depends(resolve_tenant)):
    return {"success": True, "data": TenantTheme.model_validate(tenant).model_dump()}


@router.get("/{tenant_slug}/images/display")
async def get_display_images(
    ctx: TenantContext = Depends(load_subscribed_tenant),
    db: AsyncSession = Depends(get_db),
):
    """Approved, unexpired images for the projector slideshow"""
    images = await ModerationService(db).display_images(ctx.tenant)
    return {
        "success": True,
        "images": [serialize_image(image) for image in images],
        "display_duration": ctx.tenant.display_duration,
    }


@router.get("/{tenant_slug}/images/gallery")
async def get_gallery_images(
    sort: Optional[str] = Query("latest"),
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    ctx: TenantContext = Depends(load_subscribed_tenant),
    session_id: str = Depends(get_session_id),
    db: AsyncSession = Depends(get_db),
):
    """Every approved image, including expired ones"""
    result = await ModerationService(db).gallery_images(
        ctx.tenant, normalize_sort(sort), offset, limit, session_id=session_id
    )
    return {"success": True, **result}


@router.get("/{tenant_slug}/images/{image_id}")
async def get_image(
    image_id: str,
    tenant: Tenant = Depends(resolve_tenant),
    session_id: str = Depends(get_session_id),
    db: AsyncSession = Depends(get_db),
):
    result = await EngagementService(db).get_image(tenant, image_id, session_id)
    return {
        "success": True,
        "image": serialize_image(
            result["image"],
            comments=[CommentOut.model_validate(c).model_dump(mode="json") for c in result["comments"]],
            has_liked=result["has_liked"],
        ),
    }


@router.post("/{tenant_slug}/images/{image_id}/like")
async def toggle_like(
    image_id: str,
    tenant: Tenant = Depends(resolve_tenant),
    session_id: str = Depends(get_session_id),
    ip_address: Optional[str] = Depends(get_client_ip_address),
    notifier: Optional[RealtimeNotifier] = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    result = await EngagementService(db, notifier).toggle_like(tenant, image_id, session_id, ip_address)
    return {"success": True, **result}


@router.get("/{tenant_slug}/images/{image_id}/comments")
async def list_comments(
    image_id: str,
    tenant: Tenant = Depends(resolve_tenant),
    db: AsyncSession = Depends(get_db),
):
    comments = await EngagementService(db).list_comments(tenant, image_id)
    return {
        "success": True,
        "comments": [CommentOut.model_validate(c).model_dump(mode="json") for c in comments],
    }


@router.post("/{tenant_slug}/images/{image_id}/comment")
async def add_comment(
    image_id: str,
    request: CommentCreate,
    tenant: Tenant = Depends(resolve_tenant),
    session_id: str = Depends(get_session_id),
    ip_address: Optional[str] = Depends(get_client_ip_address),
    notifier: Optional[RealtimeNotifier] = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    comment = await EngagementService(db, notifier).add_comment(
        tenant, image_id, session_id, request.comment_text, ip_address
    )
    return {"success": True, "comment": CommentOut.model_validate(comment).model_dump(mode="json")}
