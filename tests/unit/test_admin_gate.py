from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from aiogram.types import CallbackQuery, Message

from autokick.middleware.admin_gate import AdminGateMiddleware, is_anonymous_admin
from autokick.services.admin_gate import fetch_admin_ids, is_authorized
from tests.unit.helpers import make_admins


CHAT_ID = -5000


def _message(user_id=100, chat_type="supergroup", chat_id=CHAT_ID, sender_chat_id=None) -> Message:
    payload = {
        "message_id": 1,
        "date": datetime.now(timezone.utc),
        "chat": {"id": chat_id, "type": chat_type, "title": "Test chat"},
        "from": {"id": user_id, "is_bot": False, "first_name": "Test"},
        "text": "/settings",
    }
    if sender_chat_id is not None:
        payload["sender_chat"] = {"id": sender_chat_id, "type": "supergroup", "title": "Test chat"}
    return Message.model_validate(payload)


def _callback(user_id=100, chat_type="supergroup") -> CallbackQuery:
    return CallbackQuery.model_validate({
        "id": "cb-1",
        "data": "activate",
        "chat_instance": "test-instance",
        "from": {"id": user_id, "is_bot": False, "first_name": "Tester"},
        "message": _message(user_id=424242, chat_type=chat_type).model_dump(),
    })


@pytest.mark.asyncio
async def test_fetch_admin_ids(bot_mock):
    bot_mock.get_chat_administrators = AsyncMock(return_value=make_admins(1, 2))

    assert await fetch_admin_ids(bot_mock, CHAT_ID) == {1, 2}


@pytest.mark.asyncio
async def test_fetch_admin_ids_propagates_errors(bot_mock):
    bot_mock.get_chat_administrators = AsyncMock(side_effect=RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        await fetch_admin_ids(bot_mock, CHAT_ID)


@pytest.mark.asyncio
async def test_is_authorized(bot_mock):
    bot_mock.get_chat_administrators = AsyncMock(return_value=make_admins(1))

    assert await is_authorized(bot_mock, CHAT_ID, 1) is True
    assert await is_authorized(bot_mock, CHAT_ID, 2) is False


@pytest.mark.asyncio
async def test_is_authorized_fails_closed(bot_mock):
    bot_mock.get_chat_administrators = AsyncMock(side_effect=RuntimeError("boom"))

    assert await is_authorized(bot_mock, CHAT_ID, 1) is False


def test_is_anonymous_admin():
    assert is_anonymous_admin(_message(sender_chat_id=CHAT_ID)) is True
    assert is_anonymous_admin(_message(sender_chat_id=-999)) is False
    assert is_anonymous_admin(_message()) is False


@pytest.mark.asyncio
async def test_middleware_allows_admin(bot_mock):
    bot_mock.get_chat_administrators = AsyncMock(return_value=make_admins(100))
    handler = AsyncMock(return_value="handled")

    result = await AdminGateMiddleware()(handler, _message(user_id=100), {"bot": bot_mock})

    assert result == "handled"
    handler.assert_awaited_once()


@pytest.mark.asyncio
async def test_middleware_silently_drops_non_admin_message(bot_mock):
    handler = AsyncMock()

    result = await AdminGateMiddleware()(handler, _message(user_id=555), {"bot": bot_mock})

    assert result is None
    handler.assert_not_awaited()


@pytest.mark.asyncio
async def test_middleware_drops_non_admin_callback(bot_mock):
    handler = AsyncMock()

    result = await AdminGateMiddleware()(handler, _callback(user_id=555), {"bot": bot_mock})

    assert result is None
    handler.assert_not_awaited()


@pytest.mark.asyncio
async def test_middleware_passes_private_chat_without_lookup(bot_mock):
    handler = AsyncMock()

    await AdminGateMiddleware()(handler, _message(user_id=555, chat_type="private", chat_id=555), {"bot": bot_mock})

    handler.assert_awaited_once()
    bot_mock.get_chat_administrators.assert_not_awaited()


@pytest.mark.asyncio
async def test_middleware_passes_anonymous_admin(bot_mock):
    handler = AsyncMock()

    await AdminGateMiddleware()(handler, _message(user_id=1087968824, sender_chat_id=CHAT_ID), {"bot": bot_mock})

    handler.assert_awaited_once()


@pytest.mark.asyncio
async def test_middleware_denies_when_lookup_fails(bot_mock):
    bot_mock.get_chat_administrators = AsyncMock(side_effect=RuntimeError("boom"))
    handler = AsyncMock()

    await AdminGateMiddleware()(handler, _message(user_id=1), {"bot": bot_mock})

    handler.assert_not_awaited()
