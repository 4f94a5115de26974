import time
from unittest.mock import AsyncMock

import pytest
from aiogram.exceptions import TelegramBadRequest
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.methods import DeleteMessage
from aiogram.types import ForceReply

from autokick.handlers.settings_input.prompts import (
    PromptCheck,
    SettingsInput,
    check_prompt_reply,
    finish_prompt,
    start_prompt,
)


CHAT_ID = -1000


@pytest.fixture
def fsm_state():
    return FSMContext(storage=MemoryStorage(), key=StorageKey(bot_id=424242, chat_id=CHAT_ID, user_id=100))


@pytest.mark.asyncio
async def test_start_prompt_sets_state_and_data(message_factory, fsm_state):
    menu = message_factory(message_id=10, chat_id=CHAT_ID)

    prompt = await start_prompt(menu, fsm_state, SettingsInput.waiting_for_days, "Сколько дней?", ttl=60)

    assert prompt.message_id == 11
    reply_markup = menu.answer.await_args.kwargs["reply_markup"]
    assert isinstance(reply_markup, ForceReply)
    assert reply_markup.selective is True
    menu.delete.assert_awaited_once()

    assert await fsm_state.get_state() == SettingsInput.waiting_for_days.state
    data = await fsm_state.get_data()
    assert data["chat_id"] == CHAT_ID
    assert data["prompt_message_id"] == 11
    assert time.time() < data["expires_at"] <= time.time() + 60


@pytest.mark.asyncio
async def test_start_prompt_survives_menu_delete_failure(message_factory, fsm_state):
    menu = message_factory(message_id=10, chat_id=CHAT_ID)
    menu.delete = AsyncMock(
        side_effect=TelegramBadRequest(method=DeleteMessage(chat_id=CHAT_ID, message_id=10), message="message can't be deleted")
    )

    await start_prompt(menu, fsm_state, SettingsInput.waiting_for_message, "Текст?")

    assert await fsm_state.get_state() == SettingsInput.waiting_for_message.state


def test_check_prompt_reply(message_factory):
    data = {"chat_id": CHAT_ID, "prompt_message_id": 11, "expires_at": 1000.0}

    reply = message_factory(chat_id=CHAT_ID, reply_to_message_id=11)
    other_reply = message_factory(chat_id=CHAT_ID, reply_to_message_id=5)
    plain = message_factory(chat_id=CHAT_ID)
    other_chat = message_factory(chat_id=-2000, reply_to_message_id=11)

    assert check_prompt_reply(reply, data, now=999.0) is PromptCheck.OK
    assert check_prompt_reply(reply, data, now=1001.0) is PromptCheck.EXPIRED
    assert check_prompt_reply(other_reply, data, now=999.0) is PromptCheck.NOT_A_REPLY
    assert check_prompt_reply(plain, data, now=999.0) is PromptCheck.NOT_A_REPLY
    assert check_prompt_reply(other_chat, data, now=999.0) is PromptCheck.NOT_A_REPLY


@pytest.mark.asyncio
async def test_finish_prompt_clears_state_and_deletes_prompt(message_factory, fsm_state, bot_mock):
    await fsm_state.set_state(SettingsInput.waiting_for_days)
    reply = message_factory(chat_id=CHAT_ID, reply_to_message_id=11)

    await finish_prompt(bot_mock, reply, fsm_state, {"prompt_message_id": 11})

    assert await fsm_state.get_state() is None
    bot_mock.delete_message.assert_awaited_once_with(chat_id=CHAT_ID, message_id=11)
