"""SQLAlchemy async engine, session, and dependency."""

from __future__ import annotations

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from library_service.config import get_settings


settings = get_settings()

_engine_kwargs = {"pool_pre_ping": True, "echo": False}
if settings.database_dsn.startswith("postgresql"):
    _engine_kwargs.update(pool_size=20, max_overflow=10, pool_recycle=300)

engine = create_async_engine(settings.database_dsn, **_engine_kwargs)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
