# middleware/admin_gate.py
import logging
from typing import Callable, Dict, Any, Awaitable

from aiogram import BaseMiddleware
from aiogram.types import Message, CallbackQuery, TelegramObject

from autokick.services.admin_gate import is_authorized

logger = logging.getLogger(__name__)


def is_anonymous_admin(message: Message) -> bool:
    """
    Отправитель - анонимный админ группы (пишет от имени группы).

    В этом случае sender_chat == chat.
    """
    return (
        message.sender_chat is not None
        and message.sender_chat.id == message.chat.id
    )


class AdminGateMiddleware(BaseMiddleware):
    """
    Пропускает к хендлерам управления только админов группы.

    - В ЛС проверка не выполняется (помощь и онбординг доступны всем)
    - Не админу ничего не отвечаем, чтобы не раскрывать поведение бота;
      callback просто закрываем без текста
    """

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        if isinstance(event, CallbackQuery):
            if event.message is None:
                return await handler(event, data)
            chat = event.message.chat
        elif isinstance(event, Message):
            chat = event.chat
            if is_anonymous_admin(event):
                return await handler(event, data)
        else:
            return await handler(event, data)

        if chat.type == "private":
            return await handler(event, data)

        user_id = event.from_user.id if event.from_user else None
        if user_id is not None and await is_authorized(data["bot"], chat.id, user_id):
            return await handler(event, data)

        logger.debug(f"🚫 [ADMIN_GATE] Действие отклонено: user_id={user_id}, chat_id={chat.id}")
        if isinstance(event, CallbackQuery):
            try:
                await event.answer()
            except Exception as e:
                logger.debug(f"[ADMIN_GATE] Не удалось закрыть callback: {e}")
        return None
