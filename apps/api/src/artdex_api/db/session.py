from __future__ import annotations

from collections.abc import AsyncIterator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from artdex_api.db.models import Base
from artdex_api.settings import Settings, get_settings


@lru_cache(maxsize=4)
def create_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, pool_pre_ping=True)


@lru_cache(maxsize=4)
def create_sessionmaker(database_url: str) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(create_engine(database_url), expire_on_commit=False)


async def create_schema(database_url: str) -> None:
    """Create all tables directly; migrations are the path for long-lived databases."""
    async with create_engine(database_url).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db_session(
    settings: Annotated[Settings, Depends(get_settings)],
) -> AsyncIterator[AsyncSession]:
    sessionmaker = create_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        yield session


DbSessionDep = Annotated[AsyncSession, Depends(get_db_session)]
