# app/db/repositories/image_repository.py
from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, update, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import ImageStatus
from app.db.models.image import Image
from app.db.repositories.base import BaseRepository


class ImageRepository(BaseRepository[Image]):
    """Repository for Image operations. Every query is tenant-scoped."""

    def __init__(self, session: AsyncSession):
        super().__init__(Image, session)

    async def get_for_tenant(self, image_id: str, tenant_id: str) -> Optional[Image]:
        result = await self.session.execute(
            select(Image).where(and_(Image.id == image_id, Image.tenant_id == tenant_id))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_approved(self, image_id: str, tenant_id: str) -> Optional[Image]:
        result = await self.session.execute(
            select(Image)
            .where(Image.id == image_id)
            .where(Image.tenant_id == tenant_id)
            .where(Image.status == ImageStatus.APPROVED.value)
        )
        return result.scalar_one_or_none()

    async def transition_from_pending(self, image_id: str, tenant_id: str, values: dict) -> int:
        """Apply ``values`` only if the image is still pending. Returns rows changed."""
        result = await self.session.execute(
            update(Image)
            .where(Image.id == image_id)
            .where(Image.tenant_id == tenant_id)
            .where(Image.status == ImageStatus.PENDING.value)
            .values(updated_at=datetime.utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount

    async def list_approved(self, tenant_id: str, not_expired_at: Optional[datetime] = None) -> List[Image]:
        """Approved images; with ``not_expired_at`` set, drop those already expired"""
        query = (
            select(Image)
            .where(Image.tenant_id == tenant_id)
            .where(Image.status == ImageStatus.APPROVED.value)
        )
        if not_expired_at is not None:
            query = query.where(or_(Image.expires_at.is_(None), Image.expires_at > not_expired_at))
        query = query.order_by(Image.approved_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_for_admin(
        self,
        tenant_id: str,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Image]:
        query = select(Image).where(Image.tenant_id == tenant_id)
        if status:
            query = query.where(Image.status == status)
        query = query.order_by(Image.uploaded_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def adjust_counter(self, image_id: str, column: str, delta: int, commit: bool = True):
        """Increment/decrement a denormalized counter, never below zero"""
        image = await self.get(image_id)
        if image is None:
            return
        current = getattr(image, column) or 0
        setattr(image, column, max(0, current + delta))
        await self._save(commit)
