# ═══════════════════════════════════════════════════════════════════════════
# ХЕНДЛЕРЫ МЕНЮ НАСТРОЕК
# ═══════════════════════════════════════════════════════════════════════════
# Команды /start, /settings, /help и все inline кнопки меню.
# В группе доступны только админам (AdminGateMiddleware), в ЛС - всем.
# После каждого изменения настроек главное меню группы пересохраняется
# в кэш, чтобы кнопка "Назад" показывала актуальное состояние.
# ═══════════════════════════════════════════════════════════════════════════

import logging

from aiogram import Router, Bot, F
from aiogram.enums import ChatType, ParseMode
from aiogram.filters import Command, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State
from aiogram.types import Message, CallbackQuery
from sqlalchemy.ext.asyncio import AsyncSession

from autokick.handlers.settings_input.prompts import SettingsInput, start_prompt
from autokick.keyboards.menu_kb import (
    CB_HELP,
    CB_BACK,
    CB_ACTIVATE,
    CB_DEACTIVATE,
    CB_KICK_TIME,
    CB_KICK_DAYS_PREFIX,
    CB_KICK_CUSTOM,
    CB_KICK_MESSAGE,
    CB_KICK_MESSAGE_TOGGLE,
    CB_KICK_MESSAGE_SET,
    parse_kick_days_callback,
)
from autokick.middleware.admin_gate import AdminGateMiddleware
from autokick.services.errors import TRANSIENT_IO_ERRORS
from autokick.services.group_config_service import (
    activate_group,
    deactivate_group,
    get_group_state,
    set_kick_delay,
    toggle_custom_message,
)
from autokick.services.menu_cache import MenuScreen
from autokick.services.menu_presenter import MenuPresenter
from autokick.utils.retry_utils import safe_answer, safe_edit


logger = logging.getLogger(__name__)

menu_router = Router(name="menu")
menu_router.message.middleware(AdminGateMiddleware())
menu_router.callback_query.middleware(AdminGateMiddleware())

GROUP_CHAT_TYPES = {ChatType.GROUP, ChatType.SUPERGROUP}
NOT_ACTIVE_TEXT = "Бот не активирован в этой группе."


# ═══════════════════════════════════════════════════════════════════════════
# ХЕЛПЕРЫ
# ═══════════════════════════════════════════════════════════════════════════
async def _send_screen(message: Message, screen: MenuScreen) -> None:
    await safe_answer(message, screen.text, reply_markup=screen.keyboard, parse_mode=ParseMode.HTML)


async def _edit_screen(message: Message, screen: MenuScreen) -> None:
    await safe_edit(message, screen.text, reply_markup=screen.keyboard, parse_mode=ParseMode.HTML)


async def _fail(callback: CallbackQuery, session: AsyncSession, text: str, error: Exception) -> None:
    """Общая реакция на ошибку БД/Telegram в действии админа."""
    logger.error(f"❌ [MENU] {text} chat_id={callback.message.chat.id}: {error}")
    try:
        await session.rollback()
    except Exception as rollback_error:
        logger.error(f"❌ [MENU] Ошибка rollback: {rollback_error}")
    await safe_answer(callback.message, text)
    await callback.answer()


async def _ask(callback: CallbackQuery, state: FSMContext, target_state: State, prompt_text: str) -> None:
    """Отправляет запрос ввода; при ошибке Telegram состояние не выставляется."""
    try:
        await start_prompt(callback.message, state, target_state, prompt_text)
    except TRANSIENT_IO_ERRORS as e:
        logger.error(f"❌ [MENU] Не удалось отправить запрос ввода chat_id={callback.message.chat.id}: {e}")
        await state.clear()
    await callback.answer()


# ═══════════════════════════════════════════════════════════════════════════
# КОМАНДЫ
# ═══════════════════════════════════════════════════════════════════════════
@menu_router.message(CommandStart(), F.chat.type == ChatType.PRIVATE)
async def start_private(message: Message, bot: Bot, menu_presenter: MenuPresenter) -> None:
    """Стартовый экран в ЛС - доступен любому пользователю."""
    try:
        username = (await bot.me()).username
    except TRANSIENT_IO_ERRORS as e:
        # Без username просто не будет кнопки "Добавить в группу"
        logger.warning(f"⚠️ [MENU] Не удалось получить данные бота: {e}")
        username = None
    screen = menu_presenter.private_start(username)
    await menu_presenter.cache_last(message.chat.id, screen)
    await _send_screen(message, screen)


@menu_router.message(Command("start", "settings"), F.chat.type.in_(GROUP_CHAT_TYPES))
async def settings_command(message: Message, session: AsyncSession, menu_presenter: MenuPresenter) -> None:
    """Главное меню группы (только для админов)."""
    chat_id = message.chat.id
    try:
        state = await get_group_state(session, chat_id)
    except TRANSIENT_IO_ERRORS as e:
        logger.error(f"❌ [MENU] Ошибка проверки статуса chat_id={chat_id}: {e}")
        await safe_answer(message, "Не удалось проверить статус бота. Попробуйте позже.")
        return

    screen = await menu_presenter.remember_group_menu(chat_id, state)
    await _send_screen(message, screen)


@menu_router.message(Command("help"))
async def help_command(message: Message, menu_presenter: MenuPresenter) -> None:
    await _send_screen(message, menu_presenter.help_screen())


# ═══════════════════════════════════════════════════════════════════════════
# НАВИГАЦИЯ
# ═══════════════════════════════════════════════════════════════════════════
@menu_router.callback_query(F.data == CB_HELP)
async def help_callback(callback: CallbackQuery, menu_presenter: MenuPresenter) -> None:
    await _edit_screen(callback.message, menu_presenter.help_screen())
    await callback.answer()


@menu_router.callback_query(F.data == CB_BACK)
async def back_callback(callback: CallbackQuery, menu_presenter: MenuPresenter) -> None:
    """Возврат к последнему главному экрану. При промахе кэша - ничего не делаем."""
    screen = await menu_presenter.back(callback.message.chat.id)
    if screen is not None:
        await _edit_screen(callback.message, screen)
    await callback.answer()


# ═══════════════════════════════════════════════════════════════════════════
# АКТИВАЦИЯ / ДЕАКТИВАЦИЯ
# ═══════════════════════════════════════════════════════════════════════════
@menu_router.callback_query(F.data == CB_ACTIVATE)
async def activate_callback(callback: CallbackQuery, session: AsyncSession, menu_presenter: MenuPresenter) -> None:
    chat_id = callback.message.chat.id
    try:
        result = await activate_group(session, chat_id)
        state = await get_group_state(session, chat_id)
    except TRANSIENT_IO_ERRORS as e:
        await _fail(callback, session, "Не удалось активировать бота.", e)
        return

    screen = await menu_presenter.remember_group_menu(chat_id, state, result)
    await _edit_screen(callback.message, screen)
    await callback.answer()


@menu_router.callback_query(F.data == CB_DEACTIVATE)
async def deactivate_callback(callback: CallbackQuery, session: AsyncSession, menu_presenter: MenuPresenter) -> None:
    chat_id = callback.message.chat.id
    try:
        result = await deactivate_group(session, chat_id)
        state = await get_group_state(session, chat_id)
    except TRANSIENT_IO_ERRORS as e:
        await _fail(callback, session, "Не удалось деактивировать бота.", e)
        return

    screen = await menu_presenter.remember_group_menu(chat_id, state, result)
    await _edit_screen(callback.message, screen)
    await callback.answer()


# ═══════════════════════════════════════════════════════════════════════════
# СРОК ДО КИКА
# ═══════════════════════════════════════════════════════════════════════════
@menu_router.callback_query(F.data == CB_KICK_TIME)
async def kick_time_callback(callback: CallbackQuery, menu_presenter: MenuPresenter) -> None:
    await _edit_screen(callback.message, menu_presenter.kick_time_menu())
    await callback.answer()


@menu_router.callback_query(F.data.startswith(CB_KICK_DAYS_PREFIX))
async def kick_days_callback(callback: CallbackQuery, session: AsyncSession, menu_presenter: MenuPresenter) -> None:
    """Выбор готового срока (1/7/14/30 дней)."""
    days = parse_kick_days_callback(callback.data)
    if not days:
        await callback.answer()
        return

    chat_id = callback.message.chat.id
    try:
        state = await set_kick_delay(session, chat_id, days)
    except TRANSIENT_IO_ERRORS as e:
        await _fail(callback, session, "Не удалось установить срок до кика.", e)
        return

    screen = await menu_presenter.remember_group_menu(chat_id, state)
    await _edit_screen(callback.message, screen)
    await safe_answer(callback.message, f"Срок до кика установлен: {days} дн.")
    await callback.answer()


@menu_router.callback_query(F.data == CB_KICK_CUSTOM)
async def kick_custom_callback(callback: CallbackQuery, state: FSMContext) -> None:
    """Запрос своего срока через ответ на сообщение."""
    await _ask(callback, state, SettingsInput.waiting_for_days, "Ответьте на это сообщение количеством дней до кика:")


# ═══════════════════════════════════════════════════════════════════════════
# КАСТОМНОЕ СООБЩЕНИЕ
# ═══════════════════════════════════════════════════════════════════════════
@menu_router.callback_query(F.data == CB_KICK_MESSAGE)
async def kick_message_callback(callback: CallbackQuery, session: AsyncSession, menu_presenter: MenuPresenter) -> None:
    chat_id = callback.message.chat.id
    try:
        state = await get_group_state(session, chat_id)
    except TRANSIENT_IO_ERRORS as e:
        await _fail(callback, session, "Не удалось загрузить настройки сообщения.", e)
        return

    if not state.is_active:
        await safe_answer(callback.message, NOT_ACTIVE_TEXT)
        await callback.answer()
        return

    await _edit_screen(callback.message, menu_presenter.kick_message_menu(state))
    await callback.answer()


@menu_router.callback_query(F.data == CB_KICK_MESSAGE_TOGGLE)
async def kick_message_toggle_callback(
    callback: CallbackQuery,
    session: AsyncSession,
    menu_presenter: MenuPresenter,
) -> None:
    chat_id = callback.message.chat.id
    try:
        state = await toggle_custom_message(session, chat_id)
    except TRANSIENT_IO_ERRORS as e:
        await _fail(callback, session, "Не удалось переключить сообщение.", e)
        return

    if not state.is_active:
        await safe_answer(callback.message, NOT_ACTIVE_TEXT)
        await callback.answer()
        return

    await menu_presenter.remember_group_menu(chat_id, state)
    await _edit_screen(callback.message, menu_presenter.kick_message_menu(state))
    await callback.answer()


@menu_router.callback_query(F.data == CB_KICK_MESSAGE_SET)
async def kick_message_set_callback(callback: CallbackQuery, state: FSMContext) -> None:
    """Запрос текста сообщения через ответ на сообщение."""
    await _ask(
        callback,
        state,
        SettingsInput.waiting_for_message,
        "Ответьте на это сообщение текстом, который бот отправит участнику перед киком:",
    )
