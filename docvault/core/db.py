from typing import Tuple

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from docvault.db.base import Base


def create_session_factory(database_url: str, echo: bool = False) -> Tuple[AsyncEngine, sessionmaker]:
    """Асинхронный движок и фабрика сессий"""
    engine = create_async_engine(database_url, future=True, echo=echo)
    session_factory = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    return engine, session_factory


async def init_models(engine: AsyncEngine) -> None:
    """Создание таблиц графа, если их еще нет"""
    # Импорт регистрирует модели в Base.metadata
    import docvault.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
