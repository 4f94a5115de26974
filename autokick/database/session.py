from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from contextlib import asynccontextmanager

from autokick.config import DATABASE_URL
from autokick.database.models import Base


def _engine_options(url: str) -> dict:
    # SQLite (aiosqlite) не поддерживает параметры пула соединений
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,  # Проверка соединения перед использованием
        "pool_recycle": 3600,   # Переподключение каждый час
    }


# создаем движок и фабрику сессий
engine = create_async_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))
async_session = async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def get_session():
    """Асинхронный контекстный менеджер для получения сессии БД"""
    session = async_session()
    try:
        yield session
    finally:
        await session.close()


async def init_db():
    """Создаёт таблицы, которых ещё нет (миграции - через alembic)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("✅ База данных инициализирована")
