# autokick/services/menu_cache.py
"""
Кэш последнего показанного меню для кнопки "Назад".

Хранится в Redis на время жизни процесса (с TTL). Гарантий сохранности нет:
при промахе или ошибке Redis кнопка "Назад" просто ничего не делает.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

from aiogram.types import InlineKeyboardMarkup
from redis.asyncio import Redis

from autokick.config import MENU_CACHE_TTL


logger = logging.getLogger(__name__)

# Ключ последнего меню чата
MENU_CACHE_KEY = "autokick:menu:{chat_id}"


@dataclass(frozen=True)
class MenuScreen:
    """Текст меню и его inline клавиатура."""
    text: str
    keyboard: InlineKeyboardMarkup


class MenuCache:
    """Обёртка над Redis: chat_id → последний MenuScreen."""

    def __init__(self, redis: Optional[Redis], ttl: int = MENU_CACHE_TTL):
        self.redis = redis
        self.ttl = ttl

    async def set_last(self, chat_id: int, screen: MenuScreen) -> None:
        if self.redis is None:
            return
        payload = json.dumps(
            {
                "text": screen.text,
                # exclude_none=True чтобы не сохранять url: null у callback-кнопок
                "keyboard": screen.keyboard.model_dump(exclude_none=True),
            },
            ensure_ascii=False,
        )
        try:
            await self.redis.set(MENU_CACHE_KEY.format(chat_id=chat_id), payload, ex=self.ttl)
        except Exception as e:
            logger.warning(f"⚠️ [MENU] Не удалось сохранить меню chat_id={chat_id}: {e}")

    async def get_last(self, chat_id: int) -> Optional[MenuScreen]:
        if self.redis is None:
            return None
        try:
            raw = await self.redis.get(MENU_CACHE_KEY.format(chat_id=chat_id))
        except Exception as e:
            logger.warning(f"⚠️ [MENU] Не удалось прочитать меню chat_id={chat_id}: {e}")
            return None

        if not raw:
            return None

        try:
            data = json.loads(raw)
            return MenuScreen(
                text=data["text"],
                keyboard=InlineKeyboardMarkup.model_validate(data["keyboard"]),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"⚠️ [MENU] Повреждённая запись меню chat_id={chat_id}: {e}")
            return None
