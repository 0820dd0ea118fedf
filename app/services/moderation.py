# app/services/moderation.py
"""
Image moderation: pending -> approved | rejected, exactly once.

Approve and reject are a single conditional UPDATE guarded on
``status = 'pending'``, so of two concurrent moderators only one can win;
the loser gets "already processed".
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import ImageStatus, SortMode
from app.core.exceptions import NotFoundError, ForbiddenError, ConflictError
from app.core.logging import logger
from app.db.models.image import Image
from app.db.models.tenant import Tenant
from app.db.repositories.engagement_repository import LikeRepository
from app.db.repositories.image_repository import ImageRepository
from app.db.repositories.tenant_repository import TenantRepository
from app.schemas.image import ImageOut
from app.services.realtime import RealtimeNotifier
from app.services.storage import StorageBackend, image_key, thumbnail_key

DEFAULT_REJECTION_REASON = "No reason provided"


def _approved_key(image) -> datetime:
    return image.approved_at or datetime.min


def sort_images(images: Iterable[Image], mode: Optional[SortMode] = None) -> List[Image]:
    """Order images for the gallery. Stable, so ties keep their input order."""
    images = list(images)
    if mode == SortMode.OLDEST:
        return sorted(images, key=_approved_key)
    if mode == SortMode.MOST_LIKED:
        return sorted(images, key=lambda image: image.like_count or 0, reverse=True)
    if mode == SortMode.MOST_COMMENTED:
        return sorted(images, key=lambda image: image.comment_count or 0, reverse=True)
    return sorted(images, key=_approved_key, reverse=True)


def paginate(items: Sequence[Any], offset: int = 0, limit: int = 50) -> Tuple[List[Any], Dict[str, Any]]:
    offset = max(0, offset)
    limit = max(0, limit)
    page = list(items[offset:offset + limit])
    meta = {
        "total": len(items),
        "offset": offset,
        "limit": limit,
        "has_more": offset + len(page) < len(items),
    }
    return page, meta


def serialize_image(image: Image, **extra) -> Dict[str, Any]:
    data = ImageOut.model_validate(image).model_dump(mode="json")
    data.update(extra)
    return data


class ModerationService:
    """Tenant-scoped moderation actions and image listings"""

    def __init__(
        self,
        session: AsyncSession,
        storage: Optional[StorageBackend] = None,
        notifier: Optional[RealtimeNotifier] = None,
    ):
        self.session = session
        self.storage = storage
        self.notifier = notifier
        self.images = ImageRepository(session)
        self.likes = LikeRepository(session)
        self.tenants = TenantRepository(session)

    async def approve(self, tenant: Tenant, image_id: str, admin_id: Optional[str]) -> Image:
        now = datetime.utcnow()
        changed = await self.images.transition_from_pending(
            image_id,
            tenant.id,
            {
                "status": ImageStatus.APPROVED.value,
                "approved_by": admin_id,
                "approved_at": now,
                "expires_at": now + timedelta(hours=tenant.image_expiry_hours or 1),
            },
        )
        if not changed:
            await self._raise_not_transitionable(tenant, image_id)

        image = await self.images.get_for_tenant(image_id, tenant.id)
        logger.info(f"Image {image_id} approved", extra={"tenant_id": tenant.id, "admin_id": admin_id})

        if self.notifier is not None:
            await self.notifier.broadcast(
                tenant.slug, "image:approved", {"imageId": image_id, "image": serialize_image(image)}
            )
        return image

    async def reject(self, tenant: Tenant, image_id: str, reason: Optional[str] = None) -> Image:
        reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
        changed = await self.images.transition_from_pending(
            image_id,
            tenant.id,
            {"status": ImageStatus.REJECTED.value, "rejection_reason": reason},
        )
        if not changed:
            await self._raise_not_transitionable(tenant, image_id)

        logger.info(f"Image {image_id} rejected", extra={"tenant_id": tenant.id})
        return await self.images.get_for_tenant(image_id, tenant.id)

    async def _raise_not_transitionable(self, tenant: Tenant, image_id: str):
        image = await self.images.get(image_id)
        if image is None:
            raise NotFoundError("Image not found")
        if image.tenant_id != tenant.id:
            raise ForbiddenError("Image does not belong to this tenant")
        raise ConflictError("Image has already been processed")

    async def delete(self, tenant: Tenant, image_id: str):
        image = await self.images.get_for_tenant(image_id, tenant.id)
        if image is None:
            raise NotFoundError("Image not found")

        if self.storage is not None:
            for key in (image_key(tenant.slug, image.filename), thumbnail_key(tenant.slug, image.filename)):
                try:
                    await self.storage.delete(key)
                except Exception as e:
                    logger.warning(f"Failed to delete stored file {key}: {str(e)}", extra={"tenant_id": tenant.id})

        await self.images.delete(image.id)
        logger.info(f"Image {image_id} deleted", extra={"tenant_id": tenant.id})

    async def display_images(self, tenant: Tenant) -> List[Image]:
        """Slideshow feed: approved and not yet expired, newest approval first"""
        return await self.images.list_approved(tenant.id, not_expired_at=datetime.utcnow())

    async def gallery_images(
        self,
        tenant: Tenant,
        sort: SortMode = SortMode.LATEST,
        offset: int = 0,
        limit: int = 50,
        session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Every approved image, expired or not, sorted and paginated"""
        images = sort_images(await self.images.list_approved(tenant.id), sort)
        page, meta = paginate(images, offset, limit)

        liked: Set[str] = set()
        if session_id:
            liked = await self.likes.liked_image_ids(tenant.id, session_id)

        return {
            "images": [serialize_image(image, has_liked=image.id in liked) for image in page],
            **meta,
        }

    async def admin_images(self, tenant: Tenant, status: Optional[str] = None) -> List[Image]:
        if status is not None:
            status = ImageStatus(status).value
        return await self.images.list_for_admin(tenant.id, status=status, limit=1000)

    async def stats(self, tenant: Tenant) -> Dict[str, int]:
        return await self.tenants.get_usage_stats(tenant.id)
