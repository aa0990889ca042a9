# backend/ptcoach/db/session.py
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
import structlog

from ptcoach.core.config import settings

log = structlog.get_logger(__name__)

# statement_cache_size понимает только asyncpg (pgbouncer в режиме transaction)
_connect_args = {"statement_cache_size": 0} if "+asyncpg" in settings.database_url else {}

engine = create_async_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=_connect_args,
)

AsyncSessionFactory = sessionmaker(
    autocommit=False, autoflush=False, bind=engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Зависимость для получения сессии БД."""
    async with AsyncSessionFactory() as session:
        yield session
