# autokick/services/admin_gate.py
"""
Проверка прав администратора группы.

Два уровня:
- fetch_admin_ids - "сырой" запрос списка админов, ошибки пробрасываются
  (используется фоновым киком: при ошибке запись пропускается, а не кикается)
- is_authorized - проверка для управления ботом, при любой ошибке
  возвращает False (fail closed) и никогда не бросает исключение
"""

import logging
from typing import Set

from aiogram import Bot


logger = logging.getLogger(__name__)


async def fetch_admin_ids(bot: Bot, chat_id: int) -> Set[int]:
    """
    Получает множество user_id администраторов группы (включая владельца).

    Raises:
        TelegramAPIError и сетевые ошибки - как есть
    """
    admins = await bot.get_chat_administrators(chat_id)
    return {admin.user.id for admin in admins}


async def is_authorized(bot: Bot, chat_id: int, user_id: int) -> bool:
    """
    Может ли пользователь управлять ботом в группе.

    Args:
        bot: Экземпляр бота
        chat_id: ID группы
        user_id: ID пользователя

    Returns:
        True если пользователь админ группы, False иначе или при ошибке
    """
    try:
        return user_id in await fetch_admin_ids(bot, chat_id)
    except Exception as e:
        logger.error(f"❌ [ADMIN_GATE] Не удалось получить админов chat_id={chat_id}: {e}")
        return False
