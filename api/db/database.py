"""Async SQLAlchemy engine, session factory and request-scoped session dependency."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from config import settings

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db():
    """Yield a session per request; roll back if the handler raises."""
    async with async_session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
