# tests/test_moderation.py
"""
Moderation tests
Tests: approve/reject transitions, tenant isolation, display feed, gallery ordering
"""
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from app.core.constants import ImageStatus, SortMode
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.db.repositories.image_repository import ImageRepository
from app.services.moderation import ModerationService, paginate, sort_images

from conftest import create_image, create_tenant


def _img(name, approved_at=None, likes=0, comments=0):
    return SimpleNamespace(
        name=name, approved_at=approved_at, like_count=likes, comment_count=comments
    )


class TestSortAndPaginate:
    """Gallery ordering and paging"""

    def setup_method(self):
        base = datetime(2026, 1, 1)
        self.images = [
            _img("a", base, likes=3, comments=0),
            _img("b", base + timedelta(hours=2), likes=1, comments=5),
            _img("c", base + timedelta(hours=1), likes=3, comments=2),
        ]

    def names(self, images):
        return [image.name for image in images]

    def test_latest_first_by_default(self):
        assert self.names(sort_images(self.images)) == ["b", "c", "a"]

    def test_oldest(self):
        assert self.names(sort_images(self.images, SortMode.OLDEST)) == ["a", "c", "b"]

    def test_most_liked_keeps_ties_stable(self):
        assert self.names(sort_images(self.images, SortMode.MOST_LIKED)) == ["a", "c", "b"]

    def test_most_commented(self):
        assert self.names(sort_images(self.images, SortMode.MOST_COMMENTED)) == ["b", "c", "a"]

    def test_paginate(self):
        page, meta = paginate(list(range(10)), offset=8, limit=5)
        assert page == [8, 9]
        assert meta == {"total": 10, "offset": 8, "limit": 5, "has_more": False}

        page, meta = paginate(list(range(10)), offset=0, limit=5)
        assert meta["has_more"] is True


@pytest.mark.asyncio
class TestModerationService:
    """Approve / reject state machine"""

    async def test_approve_sets_expiry(self, db_session):
        tenant = await create_tenant(db_session)
        image = await create_image(db_session, tenant)

        approved = await ModerationService(db_session).approve(tenant, image.id, admin_id=None)

        assert approved.status == ImageStatus.APPROVED.value
        assert approved.approved_at is not None
        assert approved.expires_at - approved.approved_at == timedelta(hours=tenant.image_expiry_hours)

    async def test_approve_twice_conflicts(self, db_session):
        tenant = await create_tenant(db_session)
        image = await create_image(db_session, tenant)
        service = ModerationService(db_session)

        await service.approve(tenant, image.id, admin_id=None)
        with pytest.raises(ConflictError) as exc_info:
            await service.approve(tenant, image.id, admin_id=None)

        assert exc_info.value.message == "Image has already been processed"

    async def test_reject_after_approve_conflicts(self, db_session):
        tenant = await create_tenant(db_session)
        image = await create_image(db_session, tenant)
        service = ModerationService(db_session)

        await service.approve(tenant, image.id, admin_id=None)
        with pytest.raises(ConflictError):
            await service.reject(tenant, image.id, "blurry")

        stored = await ImageRepository(db_session).get_for_tenant(image.id, tenant.id)
        assert stored.status == ImageStatus.APPROVED.value
        assert stored.rejection_reason is None

    async def test_reject_default_reason(self, db_session):
        tenant = await create_tenant(db_session)
        image = await create_image(db_session, tenant)

        rejected = await ModerationService(db_session).reject(tenant, image.id, "   ")

        assert rejected.status == ImageStatus.REJECTED.value
        assert rejected.rejection_reason == "No reason provided"

    async def test_cross_tenant_approve_forbidden(self, db_session):
        tenant_a = await create_tenant(db_session, slug="alpha")
        tenant_b = await create_tenant(db_session, slug="bravo")
        image = await create_image(db_session, tenant_a)

        with pytest.raises(ForbiddenError):
            await ModerationService(db_session).approve(tenant_b, image.id, admin_id=None)

        stored = await ImageRepository(db_session).get_for_tenant(image.id, tenant_a.id)
        assert stored.status == ImageStatus.PENDING.value

    async def test_unknown_image(self, db_session):
        tenant = await create_tenant(db_session)
        with pytest.raises(NotFoundError):
            await ModerationService(db_session).reject(tenant, "missing", None)

    async def test_display_excludes_expired_and_pending(self, db_session):
        tenant = await create_tenant(db_session)
        now = datetime.utcnow()
        live = await create_image(
            db_session, tenant, ImageStatus.APPROVED, approved_at=now, expires_at=now + timedelta(minutes=30)
        )
        await create_image(
            db_session, tenant, ImageStatus.APPROVED,
            approved_at=now - timedelta(hours=2), expires_at=now - timedelta(hours=1),
        )
        await create_image(db_session, tenant, ImageStatus.PENDING)

        images = await ModerationService(db_session).display_images(tenant)

        assert [image.id for image in images] == [live.id]

    async def test_gallery_includes_expired(self, db_session):
        tenant = await create_tenant(db_session)
        now = datetime.utcnow()
        await create_image(
            db_session, tenant, ImageStatus.APPROVED, approved_at=now, expires_at=now + timedelta(minutes=30)
        )
        await create_image(
            db_session, tenant, ImageStatus.APPROVED,
            approved_at=now - timedelta(hours=2), expires_at=now - timedelta(hours=1),
        )

        result = await ModerationService(db_session).gallery_images(tenant, SortMode.LATEST, 0, 50)

        assert result["total"] == 2
        assert all(image["has_liked"] is False for image in result["images"])

    async def test_delete_removes_stored_files(self, db_session, storage):
        tenant = await create_tenant(db_session)
        image = await create_image(db_session, tenant)

        await ModerationService(db_session, storage=storage).delete(tenant, image.id)

        assert f"{tenant.slug}/images/{image.filename}" in storage.deleted
        assert f"{tenant.slug}/thumbnails/{image.filename}" in storage.deleted
        assert await ImageRepository(db_session).get(image.id) is None
