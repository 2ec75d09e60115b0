import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from diagram_sync.core.config import settings
from diagram_sync.core.errors import StorageError
from diagram_sync.db.base import Base

logger = logging.getLogger(__name__)

# Асинхронный движок
engine = create_async_engine(settings.database_url, future=True, echo=settings.sql_echo)

# Сессии
SessionLocal = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


# Функция для dependency injection в FastAPI
async def get_db():
    async with SessionLocal() as session:
        yield session


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Все-или-ничего: коммит при успехе, полный откат при любой ошибке.

    Доменные ошибки пробрасываются без изменений, ошибки SQLAlchemy
    превращаются в StorageError.
    """
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error(f"Transaction rolled back after storage error: {exc!r}")
        raise StorageError() from exc
    except BaseException:
        await session.rollback()
        raise


async def create_tables(bind: AsyncEngine = None) -> None:
    """Создание схемы (аналог автомиграции при старте)"""
    # регистрируем модели в метаданных
    import diagram_sync.db.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
