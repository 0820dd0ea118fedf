# app/db/repositories/tenant_repository.py
from typing import Optional, List, Dict, Any
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import ImageStatus
from app.db.models.tenant import Tenant
from app.db.models.image import Image
from app.db.models.engagement import Like, Comment
from app.db.repositories.base import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    """Repository for Tenant operations"""

    def __init__(self, session: AsyncSession):
        super().__init__(Tenant, session)

    async def get_by_slug(self, slug: str, active_only: bool = False) -> Optional[Tenant]:
        """Get tenant by slug"""
        query = select(Tenant).where(Tenant.slug == slug)
        if active_only:
            query = query.where(Tenant.is_active.is_(True))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def slug_exists(self, slug: str) -> bool:
        result = await self.session.execute(
            select(func.count(Tenant.id)).where(Tenant.slug == slug)
        )
        return (result.scalar() or 0) > 0

    async def list_all(self) -> List[Tenant]:
        result = await self.session.execute(
            select(Tenant).order_by(Tenant.created_at.desc())
        )
        return list(result.scalars().all())

    async def count_images(self, tenant_id: str) -> int:
        """Count every image of the tenant, whatever its status"""
        result = await self.session.execute(
            select(func.count(Image.id)).where(Image.tenant_id == tenant_id)
        )
        return result.scalar() or 0

    async def get_usage_stats(self, tenant_id: str) -> Dict[str, Any]:
        """Image counts per moderation status plus engagement totals"""
        result = await self.session.execute(
            select(Image.status, func.count(Image.id))
            .where(Image.tenant_id == tenant_id)
            .group_by(Image.status)
        )
        by_status = {status: count for status, count in result.all()}

        likes = await self.session.execute(
            select(func.count(Like.id)).where(Like.tenant_id == tenant_id)
        )
        comments = await self.session.execute(
            select(func.count(Comment.id)).where(Comment.tenant_id == tenant_id)
        )

        return {
            "total": sum(by_status.values()),
            "pending": by_status.get(ImageStatus.PENDING.value, 0),
            "approved": by_status.get(ImageStatus.APPROVED.value, 0),
            "rejected": by_status.get(ImageStatus.REJECTED.value, 0),
            "total_likes": likes.scalar() or 0,
            "total_comments": comments.scalar() or 0,
        }

    async def image_counts_by_tenant(self) -> Dict[str, Dict[str, int]]:
        """tenant_id -> {status: count} across all tenants"""
        result = await self.session.execute(
            select(Image.tenant_id, Image.status, func.count(Image.id))
            .group_by(Image.tenant_id, Image.status)
        )
        counts: Dict[str, Dict[str, int]] = {}
        for tenant_id, status, count in result.all():
            counts.setdefault(tenant_id, {})[status] = count
        return counts
