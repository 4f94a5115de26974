from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from aiogram.types import Update

from autokick.middleware.structured_logging import StructuredLoggingMiddleware, describe_update


NOW = datetime.now(timezone.utc)
CHAT = {"id": -1, "type": "supergroup", "title": "Group"}
USER = {"id": 10, "is_bot": False, "first_name": "Test", "username": "tester"}


def test_describe_join_request():
    update = Update.model_validate({
        "update_id": 1,
        "chat_join_request": {"chat": CHAT, "from": USER, "user_chat_id": 10, "date": NOW},
    })

    data = describe_update(update)

    assert data["type"] == "chat_join_request"
    assert data["from"]["id"] == 10
    assert data["chat"]["id"] == -1


def test_describe_new_members():
    update = Update.model_validate({
        "update_id": 2,
        "message": {"message_id": 5, "date": NOW, "chat": CHAT, "from": USER, "new_chat_members": [USER]},
    })

    data = describe_update(update)

    assert data["type"] == "new_chat_members"
    assert data["members"][0]["id"] == 10


def test_describe_reply_text_is_truncated():
    update = Update.model_validate({
        "update_id": 3,
        "message": {
            "message_id": 6,
            "date": NOW,
            "chat": CHAT,
            "from": USER,
            "text": "x" * 500,
            "reply_to_message": {"message_id": 4, "date": NOW, "chat": CHAT, "text": "prompt"},
        },
    })

    data = describe_update(update)

    assert data["type"] == "message"
    assert len(data["text"]) == 100
    assert data["reply_to"] == 4


def test_describe_other_update():
    update = Update.model_validate({"update_id": 4})

    assert describe_update(update) == {"update_id": 4, "type": "other"}


@pytest.mark.asyncio
async def test_middleware_reraises_handler_errors():
    update = Update.model_validate({"update_id": 5})
    handler = AsyncMock(side_effect=RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        await StructuredLoggingMiddleware()(handler, update, {})
