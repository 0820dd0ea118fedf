# app/db/repositories/engagement_repository.py
from typing import List, Optional, Set
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.engagement import Like, Comment
from app.db.repositories.base import BaseRepository


class LikeRepository(BaseRepository[Like]):
    """Repository for Like operations"""

    def __init__(self, session: AsyncSession):
        super().__init__(Like, session)

    async def get_for_session(self, image_id: str, session_id: str) -> Optional[Like]:
        result = await self.session.execute(
            select(Like).where(and_(Like.image_id == image_id, Like.session_id == session_id))
        )
        return result.scalar_one_or_none()

    async def liked_image_ids(self, tenant_id: str, session_id: str) -> Set[str]:
        result = await self.session.execute(
            select(Like.image_id)
            .where(Like.tenant_id == tenant_id)
            .where(Like.session_id == session_id)
        )
        return set(result.scalars().all())


class CommentRepository(BaseRepository[Comment]):
    """Repository for Comment operations"""

    def __init__(self, session: AsyncSession):
        super().__init__(Comment, session)

    async def list_visible(self, image_id: str, tenant_id: str) -> List[Comment]:
        result = await self.session.execute(
            select(Comment)
            .where(Comment.image_id == image_id)
            .where(Comment.tenant_id == tenant_id)
            .where(Comment.is_hidden.is_(False))
            .order_by(Comment.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_for_tenant(self, comment_id: str, tenant_id: str) -> Optional[Comment]:
        result = await self.session.execute(
            select(Comment).where(and_(Comment.id == comment_id, Comment.tenant_id == tenant_id))
        )
        return result.scalar_one_or_none()
