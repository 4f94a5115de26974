# ============================================================
# КЛАВИАТУРЫ МЕНЮ АВТОКИКА
# ============================================================
# Этот модуль содержит все inline клавиатуры для:
# - Стартового экрана в ЛС
# - Главного меню группы (активация / деактивация)
# - Выбора срока до кика
# - Настройки кастомного сообщения
# ============================================================

from typing import Optional

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton


# ============================================================
# CALLBACK DATA
# ============================================================
CB_HELP = "help"
CB_BACK = "back"
CB_ACTIVATE = "activate"
CB_DEACTIVATE = "deactivate"
CB_KICK_TIME = "kick_time"
# kick_days:{n} - выбор готового срока
CB_KICK_DAYS_PREFIX = "kick_days:"
CB_KICK_CUSTOM = "kick_custom"
CB_KICK_MESSAGE = "kick_message"
CB_KICK_MESSAGE_TOGGLE = "kick_message_toggle"
CB_KICK_MESSAGE_SET = "kick_message_set"

# Готовые варианты срока (дни), по два в ряд
PRESET_KICK_DAYS = (1, 7, 14, 30)


def _days_label(days: int) -> str:
    return "1 день" if days == 1 else f"{days} дней"


def create_private_start_keyboard(bot_username: Optional[str]) -> InlineKeyboardMarkup:
    """
    Клавиатура стартового экрана в ЛС.

    Args:
        bot_username: Username бота для ссылки добавления в группу
    """
    buttons = [
        [InlineKeyboardButton(text="📋 Помощь", callback_data=CB_HELP)],
    ]
    if bot_username:
        buttons.append([
            InlineKeyboardButton(
                text="➕ Добавить в группу",
                url=f"https://t.me/{bot_username}?startgroup=true&admin=ban_users+invite_users",
            )
        ])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def create_help_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🔙 Назад", callback_data=CB_BACK)]
    ])


def create_group_menu_keyboard(is_active: bool) -> InlineKeyboardMarkup:
    """
    Главное меню группы.

    Для активированной группы показываются настройки срока и сообщения,
    для неактивированной - только кнопка активации.
    """
    buttons = []
    if is_active:
        buttons.append([InlineKeyboardButton(text="⏱ Срок до кика", callback_data=CB_KICK_TIME)])
        buttons.append([InlineKeyboardButton(text="💬 Сообщение при кике", callback_data=CB_KICK_MESSAGE)])
        buttons.append([InlineKeyboardButton(text="🛑 Деактивировать бота", callback_data=CB_DEACTIVATE)])
    else:
        buttons.append([InlineKeyboardButton(text="✅ Активировать бота", callback_data=CB_ACTIVATE)])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def create_kick_time_keyboard() -> InlineKeyboardMarkup:
    """Выбор срока: готовые варианты + ввод своего значения."""
    rows = []
    row = []
    for days in PRESET_KICK_DAYS:
        row.append(InlineKeyboardButton(text=_days_label(days), callback_data=f"{CB_KICK_DAYS_PREFIX}{days}"))
        if len(row) == 2:
            rows.append(row)
            row = []
    if row:
        rows.append(row)

    rows.append([
        InlineKeyboardButton(text="🔙 Назад", callback_data=CB_BACK),
        InlineKeyboardButton(text="✏️ Свой срок", callback_data=CB_KICK_CUSTOM),
    ])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def create_kick_message_keyboard(enabled: bool) -> InlineKeyboardMarkup:
    """Настройка кастомного сообщения."""
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(
            text="🔕 Выключить сообщение" if enabled else "🔔 Включить сообщение",
            callback_data=CB_KICK_MESSAGE_TOGGLE,
        )],
        [InlineKeyboardButton(text="✏️ Задать сообщение", callback_data=CB_KICK_MESSAGE_SET)],
        [InlineKeyboardButton(text="🔙 Назад", callback_data=CB_BACK)],
    ])


def parse_kick_days_callback(data: str) -> Optional[int]:
    """Извлекает количество дней из callback_data вида kick_days:{n}."""
    if not data.startswith(CB_KICK_DAYS_PREFIX):
        return None
    raw = data[len(CB_KICK_DAYS_PREFIX):]
    return int(raw) if raw.isdigit() else None
