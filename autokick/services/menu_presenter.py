# autokick/services/menu_presenter.py
"""
Тексты и клавиатуры меню бота + навигация "Назад".

Главные экраны (старт в ЛС, меню группы) сохраняются в MenuCache,
подменю (помощь, срок, сообщение) - нет, поэтому "Назад" из подменю
возвращает к главному экрану чата.
"""

import html
from typing import Optional

from autokick.keyboards.menu_kb import (
    create_private_start_keyboard,
    create_help_keyboard,
    create_group_menu_keyboard,
    create_kick_time_keyboard,
    create_kick_message_keyboard,
)
from autokick.services.group_config_service import GroupState, ActivationResult
from autokick.services.menu_cache import MenuCache, MenuScreen


PRIVATE_START_TEXT = (
    "<b>Добро пожаловать в Auto Approve Bot!</b>\n\n"
    "Бот автоматически одобряет заявки на вступление в вашу группу "
    "и удаляет участников по истечении заданного срока.\n\n"
    "🔍 Нужна помощь? Нажмите кнопку ниже."
)

HELP_TEXT = (
    "<b>Помощь по Auto Approve Bot</b>\n\n"
    "1. <b>Автоодобрение заявок</b> - заявки на вступление одобряются автоматически.\n"
    "2. <b>Автокик</b> - участники удаляются из группы по истечении срока.\n"
    "3. <b>Срок до кика</b> - сколько дней участник может находиться в группе.\n"
    "4. <b>Сообщение при кике</b> - текст, который бот отправит участнику в ЛС перед удалением.\n\n"
    "Администраторы группы никогда не удаляются.\n"
    "Чтобы открыть настройки, отправьте /settings в группе."
)

KICK_TIME_TEXT = "Выберите, сколько дней участник может находиться в группе до кика."

_ACTIVATION_HEADERS = {
    ActivationResult.ACTIVATED: "✅ Бот активирован в этой группе.",
    ActivationResult.ALREADY_ACTIVE: "ℹ️ Бот уже активирован в этой группе.",
    ActivationResult.DEACTIVATED: "🛑 Бот деактивирован в этой группе.",
    ActivationResult.ALREADY_INACTIVE: "ℹ️ Бот не активирован в этой группе.",
}


class MenuPresenter:
    """Строит экраны меню и помнит последний главный экран чата."""

    def __init__(self, cache: MenuCache):
        self.cache = cache

    # ─── Экраны ───
    def private_start(self, bot_username: Optional[str]) -> MenuScreen:
        return MenuScreen(PRIVATE_START_TEXT, create_private_start_keyboard(bot_username))

    def help_screen(self) -> MenuScreen:
        return MenuScreen(HELP_TEXT, create_help_keyboard())

    def group_menu(self, state: GroupState, result: Optional[ActivationResult] = None) -> MenuScreen:
        """
        Главное меню группы.

        Args:
            state: Текущее состояние группы
            result: Результат последней активации/деактивации (для заголовка)
        """
        lines = []
        if result is not None:
            lines.append(_ACTIVATION_HEADERS[result])
            lines.append("")
        else:
            lines.append("<b>Auto Approve Bot</b>")
            lines.append("")

        if state.is_active:
            days = state.kick_days
            lines.append(f"⏱ Срок до кика: <b>{days if days is not None else '-'} дн.</b>")
            lines.append(
                f"💬 Сообщение при кике: <b>{'включено' if state.custom_message_enabled else 'выключено'}</b>"
            )
            lines.append("")
            lines.append("Управляйте ботом кнопками ниже.")
        else:
            lines.append("Нажмите кнопку ниже, чтобы активировать бота.")

        return MenuScreen("\n".join(lines), create_group_menu_keyboard(state.is_active))

    def kick_time_menu(self) -> MenuScreen:
        return MenuScreen(KICK_TIME_TEXT, create_kick_time_keyboard())

    def kick_message_menu(self, state: GroupState) -> MenuScreen:
        enabled = state.is_active and state.custom_message_enabled
        text = f"Кастомное сообщение сейчас <b>{'включено' if enabled else 'выключено'}</b>."
        if state.is_active and state.custom_message:
            text += f"\n\nТекущий текст:\n<i>{html.escape(state.custom_message)}</i>"
        return MenuScreen(text, create_kick_message_keyboard(enabled))

    # ─── Навигация ───
    async def cache_last(self, chat_id: int, screen: MenuScreen) -> None:
        await self.cache.set_last(chat_id, screen)

    async def remember_group_menu(
        self,
        chat_id: int,
        state: GroupState,
        result: Optional[ActivationResult] = None,
    ) -> MenuScreen:
        """
        Строит меню группы по актуальному состоянию и кладёт его в кэш.

        Вызывается после каждого изменения настроек, чтобы "Назад"
        не показывал устаревшее состояние активации.
        """
        screen = self.group_menu(state, result)
        await self.cache_last(chat_id, screen)
        return screen

    async def back(self, chat_id: int) -> Optional[MenuScreen]:
        """Последний главный экран чата или None (тогда "Назад" ничего не делает)."""
        return await self.cache.get_last(chat_id)
