# app/db/database.py
from typing import AsyncGenerator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.constants import PRICING_PLANS
from app.core.logging import logger


def _engine_url(url: str) -> str:
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def build_engine(url: str, echo: bool = False):
    """Create an async engine; SQLite (local dev, tests) gets a single shared connection"""
    url = _engine_url(url)
    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        echo=echo,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Create async session factory
async_session_local = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database session dependency"""
    async with async_session_local() as session:
        try:
            yield session
        finally:
            await session.close()


async def seed_plans(session: AsyncSession) -> int:
    """Insert catalog plans that are missing from subscription_plans"""
    from app.db.models.plan import SubscriptionPlan

    result = await session.execute(select(SubscriptionPlan.plan_key))
    existing = set(result.scalars().all())

    created = 0
    for plan_key, plan in PRICING_PLANS.items():
        if plan_key in existing:
            continue
        session.add(SubscriptionPlan(
            plan_key=plan_key,
            name=plan["name"],
            description=plan.get("description", ""),
            price_amount=plan["price_amount"],
            price_currency=plan.get("price_currency", "thb"),
            billing_type=plan["billing_type"].value,
            billing_interval=plan["billing_interval"].value if plan.get("billing_interval") else None,
            duration_days=plan.get("duration_days"),
            features=dict(plan["features"]),
            sort_order=plan.get("sort_order", 0),
            is_active=True,
        ))
        created += 1

    await session.commit()
    return created


async def init_db():
    """Initialize database (create tables, seed the plan catalog)"""
    from app.db.base import Base
    from app.db import models  # noqa: F401  registers all tables

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_local() as session:
        created = await seed_plans(session)
    if created:
        logger.info(f"Seeded {created} subscription plans")


async def close_db():
    """Close database connections"""
    await engine.dispose()
