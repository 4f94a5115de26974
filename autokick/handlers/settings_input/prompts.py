# autokick/handlers/settings_input/prompts.py
"""
Запросы ввода от админа ("свой срок", "своё сообщение").

Бот отправляет сообщение с ForceReply и запоминает в FSM:
- chat_id: ID группы
- prompt_message_id: ID сообщения-запроса (ответ принимается только на него)
- expires_at: unix-время, после которого ответ не принимается
"""

import logging
import time
from enum import Enum
from typing import Any, Dict, Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import ForceReply, Message

from autokick.config import PROMPT_TTL


logger = logging.getLogger(__name__)


class SettingsInput(StatesGroup):
    """
    Состояния FSM ожидания ввода.

    waiting_for_days - ждём количество дней до кика
    waiting_for_message - ждём текст кастомного сообщения
    """
    waiting_for_days = State()
    waiting_for_message = State()


class PromptCheck(str, Enum):
    """Результат проверки ответа на запрос."""
    OK = "ok"
    NOT_A_REPLY = "not_a_reply"
    EXPIRED = "expired"


async def start_prompt(
    message: Message,
    state: FSMContext,
    target_state: State,
    prompt_text: str,
    ttl: int = PROMPT_TTL,
) -> Message:
    """
    Отправляет запрос с ForceReply и переводит FSM в target_state.

    Сообщение с меню, из которого пришёл запрос, удаляется.

    Args:
        message: Сообщение с меню (callback.message)
        state: FSM контекст админа
        target_state: Состояние ожидания
        prompt_text: Текст запроса
        ttl: Сколько секунд ждать ответ

    Returns:
        Отправленное сообщение-запрос
    """
    prompt = await message.answer(prompt_text, reply_markup=ForceReply(selective=True))

    await state.set_state(target_state)
    await state.set_data({
        "chat_id": message.chat.id,
        "prompt_message_id": prompt.message_id,
        "expires_at": time.time() + ttl,
    })

    try:
        await message.delete()
    except TelegramAPIError as e:
        logger.debug(f"[PROMPT] Не удалось удалить меню: {e}")

    logger.info(
        f"✏️ [PROMPT] Ожидаем ввод {target_state.state}: chat_id={message.chat.id}, "
        f"prompt_id={prompt.message_id}, ttl={ttl}s"
    )
    return prompt


def check_prompt_reply(
    message: Message,
    data: Dict[str, Any],
    now: Optional[float] = None,
) -> PromptCheck:
    """
    Проверяет что сообщение - ответ на наш запрос и срок ещё не истёк.

    Args:
        message: Входящее сообщение админа
        data: Данные FSM (см. start_prompt)
        now: Текущее unix-время (для тестов)
    """
    reply_to = message.reply_to_message
    if (
        reply_to is None
        or reply_to.message_id != data.get("prompt_message_id")
        or message.chat.id != data.get("chat_id")
    ):
        return PromptCheck.NOT_A_REPLY

    if (now or time.time()) > data.get("expires_at", 0):
        return PromptCheck.EXPIRED

    return PromptCheck.OK


async def finish_prompt(bot: Bot, message: Message, state: FSMContext, data: Dict[str, Any]) -> None:
    """Удаляет сообщение-запрос и сбрасывает FSM."""
    await state.clear()
    prompt_id = data.get("prompt_message_id")
    if not prompt_id:
        return
    try:
        await bot.delete_message(chat_id=message.chat.id, message_id=prompt_id)
    except TelegramAPIError as e:
        logger.debug(f"[PROMPT] Не удалось удалить запрос: {e}")
