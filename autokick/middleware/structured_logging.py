# middleware/structured_logging.py
"""
Middleware для структурированного логирования апдейтов от Telegram
"""
import json
import logging
from typing import Callable, Dict, Any, Awaitable, Optional

from aiogram import BaseMiddleware
from aiogram.types import Update, User, Chat

logger = logging.getLogger(__name__)


def _user(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {"id": user.id, "username": user.username, "is_bot": user.is_bot}


def _chat(chat: Optional[Chat]) -> Optional[Dict[str, Any]]:
    if chat is None:
        return None
    return {"id": chat.id, "type": chat.type, "title": chat.title}


def describe_update(event: Update) -> Dict[str, Any]:
    """Собирает из апдейта только поля, нужные для разбора событий автокика."""
    data: Dict[str, Any] = {"update_id": event.update_id}

    if event.message:
        msg = event.message
        data["type"] = "message"
        data["chat"] = _chat(msg.chat)
        data["from"] = _user(msg.from_user)
        if msg.new_chat_members:
            data["type"] = "new_chat_members"
            data["members"] = [_user(m) for m in msg.new_chat_members]
        elif msg.left_chat_member:
            data["type"] = "left_chat_member"
            data["member"] = _user(msg.left_chat_member)
        elif msg.text:
            data["text"] = msg.text[:100]
        if msg.reply_to_message:
            data["reply_to"] = msg.reply_to_message.message_id

    elif event.callback_query:
        cb = event.callback_query
        data["type"] = "callback_query"
        data["from"] = _user(cb.from_user)
        data["data"] = cb.data[:50] if cb.data else None
        data["chat"] = _chat(cb.message.chat) if cb.message else None

    elif event.chat_join_request:
        cjr = event.chat_join_request
        data["type"] = "chat_join_request"
        data["chat"] = _chat(cjr.chat)
        data["from"] = _user(cjr.from_user)

    else:
        data["type"] = "other"

    return data


class StructuredLoggingMiddleware(BaseMiddleware):
    """Логирует каждый апдейт одной JSON строкой и результат его обработки"""

    async def __call__(
        self,
        handler: Callable[[Update, Dict[str, Any]], Awaitable[Any]],
        event: Update,
        data: Dict[str, Any]
    ) -> Any:
        logger.info(f"📩 {json.dumps(describe_update(event), ensure_ascii=False, default=str)}")

        try:
            result = await handler(event, data)
        except Exception as e:
            logger.error(f"❌ Ошибка обработки update id={event.update_id}: {e}")
            raise

        logger.debug(f"✅ Update id={event.update_id} обработан")
        return result
