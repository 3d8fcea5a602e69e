import logging
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.config import get_settings
from app.errors import StoreError

logger = logging.getLogger(__name__)
settings = get_settings()

engine = create_async_engine(settings.database_url, echo=settings.database_echo, pool_pre_ping=True)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session


async def commit(db: AsyncSession) -> None:
    """Commit, converting driver/ORM failures into StoreError after a rollback."""
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        message = str(getattr(exc, "orig", None) or exc)
        logger.error("Store commit failed: %s", message)
        raise StoreError(message) from exc
