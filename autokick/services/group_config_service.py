# autokick/services/group_config_service.py
"""
Сервис настроек группы - CRUD операции с GroupConfig.

Отвечает за:
- Получение состояния группы (активирована / не активирована)
- Активацию и деактивацию бота в группе
- Изменение срока до кика и кастомного сообщения
- Валидацию количества дней, введённого админом

Наличие записи GroupConfig означает что бот активирован. Наружу это
отдаётся явным вариантом ActiveGroup / InactiveGroup, чтобы не путать
"записи нет" с "настройки по умолчанию".
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional, Union

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from autokick.database.models import GroupConfig, DEFAULT_KICK_AFTER_MS
from autokick.services.errors import InvalidKickDaysError


# Логгер для отслеживания операций с настройками
logger = logging.getLogger(__name__)

# Миллисекунд в сутках - единица хранения kick_after_ms
MS_PER_DAY = 24 * 60 * 60 * 1000

# Верхняя граница срока, который может задать админ (10 лет)
MAX_KICK_DAYS = 3650


class ActivationResult(str, Enum):
    """Результат активации / деактивации бота в группе."""
    ACTIVATED = "activated"
    ALREADY_ACTIVE = "already_active"
    DEACTIVATED = "deactivated"
    ALREADY_INACTIVE = "already_inactive"


@dataclass(frozen=True)
class ActiveGroup:
    """
    Бот активирован в группе.

    kick_after может быть None, если в БД лежит 0/NULL - тогда
    вызывающий код подставляет свой срок по умолчанию.
    """
    chat_id: int
    kick_after: Optional[timedelta]
    custom_message: str
    custom_message_enabled: bool

    is_active = True

    @property
    def kick_days(self) -> Optional[int]:
        """Срок в целых днях (для отображения в меню)."""
        if self.kick_after is None:
            return None
        return self.kick_after.days

    @property
    def departure_message(self) -> Optional[str]:
        """Текст для отправки перед киком или None если отправлять нечего."""
        if self.custom_message_enabled and self.custom_message:
            return self.custom_message
        return None


@dataclass(frozen=True)
class InactiveGroup:
    """Бот не активирован в группе (записи GroupConfig нет)."""
    chat_id: int

    is_active = False


GroupState = Union[ActiveGroup, InactiveGroup]


def _to_state(chat_id: int, config: Optional[GroupConfig]) -> GroupState:
    """Преобразует ORM запись в ActiveGroup / InactiveGroup."""
    if config is None:
        return InactiveGroup(chat_id=chat_id)

    kick_after = None
    if config.kick_after_ms:
        kick_after = timedelta(milliseconds=config.kick_after_ms)

    return ActiveGroup(
        chat_id=chat_id,
        kick_after=kick_after,
        custom_message=config.custom_message or "",
        custom_message_enabled=bool(config.custom_message_enabled),
    )


async def _get_config(session: AsyncSession, chat_id: int) -> Optional[GroupConfig]:
    # Сессия может жить долго (проход автокика) - перечитываем строку из БД
    result = await session.execute(
        select(GroupConfig)
        .where(GroupConfig.chat_id == chat_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_group_state(session: AsyncSession, chat_id: int) -> GroupState:
    """
    Возвращает текущее состояние группы.

    Всегда читает из БД - состояние в памяти не кэшируется.

    Args:
        session: Сессия БД
        chat_id: ID группы

    Returns:
        ActiveGroup если бот активирован, иначе InactiveGroup
    """
    config = await _get_config(session, chat_id)
    return _to_state(chat_id, config)


async def activate_group(session: AsyncSession, chat_id: int) -> ActivationResult:
    """
    Активирует бота в группе с настройками по умолчанию.

    Идемпотентна: повторная активация ничего не меняет и возвращает
    ALREADY_ACTIVE. Гонка двух одновременных активаций разрешается
    уникальным индексом по chat_id.

    Args:
        session: Сессия БД
        chat_id: ID группы

    Returns:
        ActivationResult.ACTIVATED или ActivationResult.ALREADY_ACTIVE
    """
    if await _get_config(session, chat_id) is not None:
        logger.info(f"ℹ️ [CONFIG] Группа уже активирована: chat_id={chat_id}")
        return ActivationResult.ALREADY_ACTIVE

    session.add(GroupConfig(chat_id=chat_id))
    try:
        await session.commit()
    except IntegrityError:
        # Параллельный запрос успел создать запись раньше нас
        await session.rollback()
        logger.info(f"ℹ️ [CONFIG] Группа активирована параллельно: chat_id={chat_id}")
        return ActivationResult.ALREADY_ACTIVE

    logger.info(f"✅ [CONFIG] Бот активирован: chat_id={chat_id}")
    return ActivationResult.ACTIVATED


async def deactivate_group(session: AsyncSession, chat_id: int) -> ActivationResult:
    """
    Деактивирует бота в группе, удаляя GroupConfig целиком.

    Срок и кастомное сообщение при этом теряются - при повторной
    активации группа получит настройки по умолчанию.
    """
    result = await session.execute(
        delete(GroupConfig).where(GroupConfig.chat_id == chat_id)
    )
    await session.commit()

    if not result.rowcount:
        logger.info(f"ℹ️ [CONFIG] Группа уже деактивирована: chat_id={chat_id}")
        return ActivationResult.ALREADY_INACTIVE

    logger.info(f"🛑 [CONFIG] Бот деактивирован: chat_id={chat_id}")
    return ActivationResult.DEACTIVATED


async def _get_or_create_config(session: AsyncSession, chat_id: int) -> GroupConfig:
    """Возвращает запись GroupConfig, создавая её при отсутствии (upsert)."""
    config = await _get_config(session, chat_id)
    if config is None:
        config = GroupConfig(chat_id=chat_id)
        session.add(config)
    return config


async def set_kick_delay(session: AsyncSession, chat_id: int, days: int) -> ActiveGroup:
    """
    Устанавливает срок до кика в днях.

    Если группа не активирована - запись создаётся (upsert).
    Уже существующие записи участников НЕ пересчитываются.

    Args:
        session: Сессия БД
        chat_id: ID группы
        days: Количество дней (> 0)

    Returns:
        Новое состояние группы
    """
    if days <= 0:
        raise InvalidKickDaysError("Количество дней должно быть положительным числом.")

    config = await _get_or_create_config(session, chat_id)
    config.kick_after_ms = days * MS_PER_DAY
    await session.commit()

    logger.info(f"⏱ [CONFIG] Срок кика изменён: chat_id={chat_id}, days={days}")
    return _to_state(chat_id, config)


async def set_custom_message(session: AsyncSession, chat_id: int, text: str) -> ActiveGroup:
    """
    Сохраняет кастомное сообщение и сразу включает его отправку.

    Если группа не активирована - запись создаётся (upsert).
    """
    config = await _get_or_create_config(session, chat_id)
    config.custom_message = text
    config.custom_message_enabled = True
    await session.commit()

    logger.info(f"💬 [CONFIG] Кастомное сообщение сохранено: chat_id={chat_id}, len={len(text)}")
    return _to_state(chat_id, config)


async def toggle_custom_message(session: AsyncSession, chat_id: int) -> GroupState:
    """
    Переключает отправку кастомного сообщения.

    Для неактивированной группы ничего не создаёт и возвращает InactiveGroup.
    """
    config = await _get_config(session, chat_id)
    if config is None:
        logger.info(f"ℹ️ [CONFIG] Переключение сообщения в неактивной группе: chat_id={chat_id}")
        return InactiveGroup(chat_id=chat_id)

    config.custom_message_enabled = not config.custom_message_enabled
    await session.commit()

    logger.info(
        f"💬 [CONFIG] Кастомное сообщение "
        f"{'включено' if config.custom_message_enabled else 'выключено'}: chat_id={chat_id}"
    )
    return _to_state(chat_id, config)


def parse_kick_days(text: Optional[str]) -> int:
    """
    Парсит количество дней, введённое админом.

    Args:
        text: Текст ответа админа

    Returns:
        Количество дней

    Raises:
        InvalidKickDaysError: если ввод не целое положительное число
            или превышает MAX_KICK_DAYS
    """
    raw = (text or "").strip()

    try:
        days = int(raw) if raw.isdigit() else None
    except ValueError:
        days = None

    if days is None or days <= 0:
        raise InvalidKickDaysError("Неверное количество дней. Введите целое положительное число.")
    if days > MAX_KICK_DAYS:
        raise InvalidKickDaysError(f"Слишком большой срок. Максимум - {MAX_KICK_DAYS} дней.")

    return days


def default_kick_days() -> int:
    """Срок по умолчанию для только что активированной группы (в днях)."""
    return DEFAULT_KICK_AFTER_MS // MS_PER_DAY
