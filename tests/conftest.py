import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Callable
from unittest.mock import AsyncMock

import pytest

# КРИТИЧНО: Устанавливаем переменные окружения ДО импорта autokick.config
# чтобы избежать ошибки "BOT_TOKEN не установлен!" / "DATABASE_URL не установлен!"
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("BOT_TOKEN", "123456:TEST-TOKEN")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

# Гарантируем, что пакет autokick доступен для импортов из тестов
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from aiogram import Bot
from fakeredis import aioredis as fakeredis_aioredis
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from autokick.database.models import Base
from autokick.database import session as db_session_module
from autokick.services.menu_cache import MenuCache
from autokick.services.menu_presenter import MenuPresenter
from tests.unit.helpers import make_admins


@pytest.fixture(autouse=True)
def _no_log_channel(monkeypatch):
    """Логи в Telegram канал из тестов не отправляем."""
    monkeypatch.setattr("autokick.utils.logger.LOG_CHANNEL_ID", None)


@pytest.fixture
async def session_factory(tmp_path, monkeypatch):
    """Отдельная SQLite база на каждый тест + подмена глобальной фабрики сессий."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    TestingSessionMaker = async_sessionmaker(engine, expire_on_commit=False)
    monkeypatch.setattr(db_session_module, "engine", engine)
    monkeypatch.setattr(db_session_module, "async_session", TestingSessionMaker)

    try:
        yield TestingSessionMaker
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(session_factory):
    """Provide an isolated database session for a test."""
    session = session_factory()
    try:
        yield session
    finally:
        try:
            await session.rollback()
        finally:
            await session.close()


@pytest.fixture
async def fake_redis():
    client = fakeredis_aioredis.FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()
        await client.aclose()


@pytest.fixture
def menu_presenter(fake_redis) -> MenuPresenter:
    return MenuPresenter(MenuCache(fake_redis, ttl=60))


@pytest.fixture
def bot_mock():
    """Async mock for aiogram Bot."""
    bot = AsyncMock(spec=Bot)
    bot.send_message = AsyncMock()
    bot.delete_message = AsyncMock()
    bot.approve_chat_join_request = AsyncMock(return_value=True)
    bot.get_chat_administrators = AsyncMock(return_value=make_admins(1))
    bot.ban_chat_member = AsyncMock(return_value=True)
    bot.unban_chat_member = AsyncMock(return_value=True)
    bot.me = AsyncMock(return_value=SimpleNamespace(id=424242, username="autokick_bot"))
    bot.session = AsyncMock()
    bot.id = 424242
    return bot


@pytest.fixture
def message_factory() -> Callable[..., SimpleNamespace]:
    """Фабрика сообщений в виде SimpleNamespace (как в тестах хендлеров)."""

    def _factory(
        *,
        message_id: int = 1,
        user_id: int = 100,
        chat_id: int = -1000,
        chat_type: str = "supergroup",
        text: str = "/settings",
        reply_to_message_id: int = None,
        sender_chat_id: int = None,
    ) -> SimpleNamespace:
        reply_to = SimpleNamespace(message_id=reply_to_message_id) if reply_to_message_id else None
        sender_chat = SimpleNamespace(id=sender_chat_id) if sender_chat_id else None
        return SimpleNamespace(
            message_id=message_id,
            chat=SimpleNamespace(id=chat_id, type=chat_type),
            from_user=SimpleNamespace(id=user_id, username="user", is_bot=False),
            sender_chat=sender_chat,
            text=text,
            reply_to_message=reply_to,
            answer=AsyncMock(return_value=SimpleNamespace(message_id=message_id + 1)),
            edit_text=AsyncMock(),
            delete=AsyncMock(),
        )

    return _factory


@pytest.fixture
def callback_factory(message_factory) -> Callable[..., SimpleNamespace]:
    def _factory(*, data: str, user_id: int = 100, chat_id: int = -1000, chat_type: str = "supergroup"):
        return SimpleNamespace(
            data=data,
            from_user=SimpleNamespace(id=user_id, username="user"),
            message=message_factory(chat_id=chat_id, chat_type=chat_type, user_id=424242),
            answer=AsyncMock(),
        )

    return _factory

