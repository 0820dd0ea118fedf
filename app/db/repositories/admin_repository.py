# app/db/repositories/admin_repository.py
from typing import Optional, List
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.admin import Admin
from app.db.repositories.base import BaseRepository


class AdminRepository(BaseRepository[Admin]):
    """Repository for Admin operations"""

    def __init__(self, session: AsyncSession):
        super().__init__(Admin, session)

    async def get_by_username(self, username: str) -> Optional[Admin]:
        result = await self.session.execute(
            select(Admin).where(Admin.username == username)
        )
        return result.scalar_one_or_none()

    async def get_for_tenant_login(self, username: str, tenant_id: str) -> Optional[Admin]:
        """Admin of this tenant, or a super-admin, matching the username"""
        result = await self.session.execute(
            select(Admin)
            .where(Admin.username == username)
            .where(or_(Admin.tenant_id == tenant_id, Admin.is_super_admin.is_(True)))
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> List[Admin]:
        result = await self.session.execute(
            select(Admin).order_by(Admin.created_at.desc())
        )
        return list(result.scalars().all())
