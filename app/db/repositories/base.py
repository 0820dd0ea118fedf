# app/db/repositories/base.py
from typing import Any, Generic, TypeVar, Type, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations.

    Writes commit by default. Pass ``commit=False`` to only flush, leaving the
    transaction open so several writes can be committed (or rolled back)
    together by the caller.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def _save(self, commit: bool):
        if commit:
            await self.session.commit()
        else:
            await self.session.flush()

    async def get(self, id: Any) -> Optional[ModelType]:
        """Get by ID"""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def create(self, obj_in: dict, commit: bool = True) -> ModelType:
        """Create new record"""
        db_obj = self.model(**obj_in)
        self.session.add(db_obj)
        await self._save(commit)
        await self.session.refresh(db_obj)
        return db_obj

    async def update(self, id: Any, obj_in: dict, commit: bool = True) -> Optional[ModelType]:
        """Update record"""
        await self.session.execute(
            update(self.model)
            .where(self.model.id == id)
            .values(**obj_in)
            .execution_options(synchronize_session="fetch")
        )
        await self._save(commit)
        return await self.get(id)

    async def delete(self, id: Any, commit: bool = True) -> bool:
        """Delete record"""
        result = await self.session.execute(
            delete(self.model).where(self.model.id == id)
        )
        await self._save(commit)
        return result.rowcount > 0
