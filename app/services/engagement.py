# app/services/engagement.py
"""Guest likes and comments, keyed by a pseudonymous session id"""
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import MAX_COMMENT_LENGTH
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.input_validation import sanitize_text
from app.core.logging import logger
from app.db.models.engagement import Comment
from app.db.models.image import Image
from app.db.models.tenant import Tenant
from app.db.repositories.engagement_repository import LikeRepository, CommentRepository
from app.db.repositories.image_repository import ImageRepository
from app.services.realtime import RealtimeNotifier


class EngagementService:

    def __init__(self, session: AsyncSession, notifier: Optional[RealtimeNotifier] = None):
        self.session = session
        self.notifier = notifier
        self.images = ImageRepository(session)
        self.likes = LikeRepository(session)
        self.comments = CommentRepository(session)

    async def _approved_image(self, tenant: Tenant, image_id: str) -> Image:
        image = await self.images.get_approved(image_id, tenant.id)
        if image is None:
            raise NotFoundError("Image not found")
        return image

    async def _notify(self, tenant: Tenant, event: str, data: Dict[str, Any]):
        if self.notifier is not None:
            await self.notifier.broadcast(tenant.slug, event, data)

    async def get_image(self, tenant: Tenant, image_id: str, session_id: Optional[str]) -> Dict[str, Any]:
        image = await self._approved_image(tenant, image_id)
        comments = await self.comments.list_visible(image.id, tenant.id)
        has_liked = False
        if session_id:
            has_liked = await self.likes.get_for_session(image.id, session_id) is not None
        return {"image": image, "comments": comments, "has_liked": has_liked}

    async def toggle_like(
        self, tenant: Tenant, image_id: str, session_id: str, ip_address: Optional[str] = None
    ) -> Dict[str, Any]:
        """Like the image, or remove the like if this session already liked it"""
        if not session_id:
            raise ValidationError("Session ID is required")
        image = await self._approved_image(tenant, image_id)

        existing = await self.likes.get_for_session(image.id, session_id)
        if existing is not None:
            await self.likes.delete(existing.id, commit=False)
            await self.images.adjust_counter(image.id, "like_count", -1)
            await self.session.refresh(image)
            await self._notify(tenant, "image:unliked", {"imageId": image.id, "likeCount": image.like_count})
            return {"liked": False, "likeCount": image.like_count, "message": "Like removed"}

        try:
            await self.likes.create(
                {"image_id": image.id, "tenant_id": tenant.id, "session_id": session_id, "ip_address": ip_address},
                commit=False,
            )
        except IntegrityError as e:
            # A concurrent request from the same session won the insert
            await self.session.rollback()
            raise ConflictError("Already liked") from e
        await self.images.adjust_counter(image.id, "like_count", 1)
        await self.session.refresh(image)

        await self._notify(tenant, "image:liked", {"imageId": image.id, "likeCount": image.like_count})
        return {"liked": True, "likeCount": image.like_count, "message": "Image liked"}

    async def list_comments(self, tenant: Tenant, image_id: str) -> List[Comment]:
        image = await self._approved_image(tenant, image_id)
        return await self.comments.list_visible(image.id, tenant.id)

    async def add_comment(
        self,
        tenant: Tenant,
        image_id: str,
        session_id: str,
        text: Optional[str],
        ip_address: Optional[str] = None,
    ) -> Comment:
        if not session_id:
            raise ValidationError("Session ID is required")
        if not text or not text.strip():
            raise ValidationError("Comment text is required")
        if len(text) > MAX_COMMENT_LENGTH:
            raise ValidationError(f"Comment too long (max {MAX_COMMENT_LENGTH} characters)")

        clean = sanitize_text(text)
        if not clean:
            raise ValidationError("Comment text is required")

        image = await self._approved_image(tenant, image_id)
        comment = await self.comments.create(
            {
                "image_id": image.id,
                "tenant_id": tenant.id,
                "session_id": session_id,
                "comment_text": clean,
                "ip_address": ip_address,
            },
            commit=False,
        )
        await self.images.adjust_counter(image.id, "comment_count", 1)

        await self._notify(
            tenant,
            "image:commented",
            {"imageId": image.id, "comment": {"id": comment.id, "comment_text": comment.comment_text}},
        )
        return comment

    async def hide_comment(self, tenant: Tenant, comment_id: str):
        comment = await self.comments.get_for_tenant(comment_id, tenant.id)
        if comment is None:
            raise NotFoundError("Comment not found")
        if comment.is_hidden:
            return
        comment.is_hidden = True
        await self.images.adjust_counter(comment.image_id, "comment_count", -1)
        logger.info(f"Comment {comment_id} hidden", extra={"tenant_id": tenant.id})
