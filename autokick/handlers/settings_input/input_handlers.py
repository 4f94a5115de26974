# autokick/handlers/settings_input/input_handlers.py
"""
Обработка ответов админа на запросы ввода.

Принимаются только ответы (reply) на сообщение-запрос, пока не истёк
PROMPT_TTL. Прочие сообщения в группе пропускаются дальше.
"""

import logging

from aiogram import Router, Bot, F
from aiogram.dispatcher.event.bases import UNHANDLED
from aiogram.fsm.context import FSMContext
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from autokick.handlers.settings_input.prompts import (
    SettingsInput,
    PromptCheck,
    check_prompt_reply,
    finish_prompt,
)
from autokick.middleware.admin_gate import AdminGateMiddleware
from autokick.services.errors import InvalidKickDaysError, TRANSIENT_IO_ERRORS
from autokick.services.group_config_service import (
    parse_kick_days,
    set_kick_delay,
    set_custom_message,
)
from autokick.services.menu_presenter import MenuPresenter
from autokick.utils.retry_utils import safe_answer


logger = logging.getLogger(__name__)

input_router = Router(name="settings_input")
input_router.message.middleware(AdminGateMiddleware())

PROMPT_EXPIRED_TEXT = "⌛ Время ожидания ответа истекло. Откройте меню заново: /settings"


async def _check_reply(message: Message, state: FSMContext) -> tuple[PromptCheck, dict]:
    """Проверяет ответ на запрос; просроченный запрос сбрасывается."""
    data = await state.get_data()
    check = check_prompt_reply(message, data)

    if check is PromptCheck.EXPIRED:
        await state.clear()
        logger.info(f"⌛ [PROMPT] Ответ после истечения срока: chat_id={message.chat.id}")
        await safe_answer(message, PROMPT_EXPIRED_TEXT)

    return check, data


@input_router.message(SettingsInput.waiting_for_days, F.reply_to_message, F.text)
async def handle_custom_days(
    message: Message,
    bot: Bot,
    state: FSMContext,
    session: AsyncSession,
    menu_presenter: MenuPresenter,
):
    """Ответ на запрос "Свой срок"."""
    check, data = await _check_reply(message, state)
    if check is PromptCheck.NOT_A_REPLY:
        # Ответ на другое сообщение - апдейт уходит следующим роутерам
        return UNHANDLED
    if check is PromptCheck.EXPIRED:
        return

    try:
        days = parse_kick_days(message.text)
    except InvalidKickDaysError as e:
        # Состояние не сбрасываем - админ может ответить ещё раз
        await safe_answer(message, str(e))
        return

    chat_id = message.chat.id
    try:
        group = await set_kick_delay(session, chat_id, days)
    except TRANSIENT_IO_ERRORS as e:
        logger.error(f"❌ [CONFIG] Ошибка установки срока chat_id={chat_id}: {e}")
        await session.rollback()
        await state.clear()
        await safe_answer(message, "Не удалось установить срок до кика.")
        return

    await finish_prompt(bot, message, state, data)
    await menu_presenter.remember_group_menu(chat_id, group)
    await safe_answer(message, f"Срок до кика установлен: {days} дн.")


@input_router.message(SettingsInput.waiting_for_message, F.reply_to_message, F.text)
async def handle_custom_message(
    message: Message,
    bot: Bot,
    state: FSMContext,
    session: AsyncSession,
    menu_presenter: MenuPresenter,
):
    """Ответ на запрос "Задать сообщение"."""
    check, data = await _check_reply(message, state)
    if check is PromptCheck.NOT_A_REPLY:
        # Ответ на другое сообщение - апдейт уходит следующим роутерам
        return UNHANDLED
    if check is PromptCheck.EXPIRED:
        return

    text = message.text.strip()
    if not text:
        await safe_answer(message, "Сообщение не может быть пустым.")
        return

    chat_id = message.chat.id
    try:
        group = await set_custom_message(session, chat_id, text)
    except TRANSIENT_IO_ERRORS as e:
        logger.error(f"❌ [CONFIG] Ошибка сохранения сообщения chat_id={chat_id}: {e}")
        await session.rollback()
        await state.clear()
        await safe_answer(message, "Не удалось сохранить сообщение.")
        return

    await finish_prompt(bot, message, state, data)
    await menu_presenter.remember_group_menu(chat_id, group)
    await safe_answer(message, "Кастомное сообщение сохранено и включено.")
