# ============================================================
# RETRY UTILS - ПОВТОРНЫЕ ПОПЫТКИ ДЛЯ ОТВЕТОВ В ИНТЕРФЕЙСЕ
# ============================================================
# Используется только для ответов на действия админа (меню, подтверждения).
# Кик и одобрение заявок здесь НЕ повторяются - их повторяет
# следующий проход автокика.
# ============================================================

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from aiogram.exceptions import TelegramBadRequest, TelegramNetworkError, TelegramRetryAfter

logger = logging.getLogger(__name__)

T = TypeVar('T')


async def retry_on_network_error(
    call: Callable[[], Awaitable[T]],
    max_retries: int = 2,
    delay: float = 1.0,
    backoff: float = 2.0,
    max_rate_limit_waits: int = 3,
) -> T:
    """
    Выполняет вызов Telegram API с retry при сетевых ошибках.

    Args:
        call: Фабрика корутины (корутину нельзя await-ить дважды)
        max_retries: Максимальное количество повторных попыток
        delay: Начальная задержка между попытками (секунды)
        backoff: Множитель задержки для каждой следующей попытки
        max_rate_limit_waits: Сколько раз ждать по TelegramRetryAfter

    Raises:
        Последнее исключение если все попытки неудачны
    """
    current_delay = delay
    attempt = 0
    rate_limit_waits = 0

    while True:
        try:
            return await call()
        except TelegramRetryAfter as e:
            # Telegram просит подождать - не считаем как попытку
            if rate_limit_waits >= max_rate_limit_waits:
                logger.error(f"[Retry] Rate limit не снят после {rate_limit_waits} ожиданий: {e}")
                raise
            rate_limit_waits += 1
            logger.warning(f"[Retry] Telegram rate limit. Ожидание {e.retry_after}с...")
            await asyncio.sleep(e.retry_after)
        except TelegramNetworkError as e:
            if attempt >= max_retries:
                logger.error(f"[Retry] Все {max_retries + 1} попыток исчерпаны: {e}")
                raise
            attempt += 1
            logger.warning(
                f"[Retry] Сетевая ошибка (попытка {attempt}/{max_retries + 1}): {e}. "
                f"Повтор через {current_delay:.1f}с..."
            )
            await asyncio.sleep(current_delay)
            current_delay *= backoff


async def safe_answer(message, text: str, **kwargs) -> Optional[object]:
    """
    Безопасная отправка ответа с retry.

    Returns:
        Отправленное сообщение или None при ошибке
    """
    try:
        return await retry_on_network_error(lambda: message.answer(text, **kwargs))
    except Exception as e:
        logger.error(f"[safe_answer] Не удалось отправить ответ: {e}")
        return None


async def safe_edit(message, text: str, **kwargs) -> Optional[object]:
    """
    Безопасное редактирование сообщения с retry.

    "message is not modified" не считается ошибкой.
    """
    try:
        return await retry_on_network_error(lambda: message.edit_text(text, **kwargs))
    except TelegramBadRequest as e:
        if "message is not modified" in str(e):
            return None
        logger.error(f"[safe_edit] Не удалось отредактировать: {e}")
        return None
    except Exception as e:
        logger.error(f"[safe_edit] Не удалось отредактировать: {e}")
        return None
