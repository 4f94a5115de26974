# autokick/services/membership_service.py
"""
Сервис отслеживания участников - CRUD операции с MembershipRecord.

Запись = "кикнуть user_id из chat_id после kick_date".
Создаётся при входе участника, удаляется при выходе или после кика.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import select, delete, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from autokick.database.models import MembershipRecord, utcnow


logger = logging.getLogger(__name__)


async def find_record(
    session: AsyncSession,
    chat_id: int,
    user_id: int,
) -> Optional[MembershipRecord]:
    """Возвращает самую раннюю запись для пары (user_id, chat_id) или None."""
    result = await session.execute(
        select(MembershipRecord)
        .where(
            MembershipRecord.chat_id == chat_id,
            MembershipRecord.user_id == user_id,
        )
        .order_by(MembershipRecord.kick_date)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def track_member(
    session: AsyncSession,
    chat_id: int,
    user_id: int,
    kick_after: timedelta,
    now: Optional[datetime] = None,
) -> MembershipRecord:
    """
    Начинает отслеживать участника: kick_date = now + kick_after.

    Если запись для этой пары уже есть (например, одобренная заявка и
    следом событие new_chat_members), новая не создаётся - остаётся
    первый срок.

    Args:
        session: Сессия БД
        chat_id: ID группы
        user_id: ID пользователя
        kick_after: Через сколько кикнуть
        now: Текущее время (UTC, naive); по умолчанию utcnow()

    Returns:
        Созданная или уже существующая запись
    """
    existing = await find_record(session, chat_id, user_id)
    if existing is not None:
        logger.debug(
            f"[TRACKER] Уже отслеживается: user_id={user_id}, chat_id={chat_id}, "
            f"kick_date={existing.kick_date}"
        )
        return existing

    joined = now or utcnow()
    record = MembershipRecord(
        user_id=user_id,
        chat_id=chat_id,
        join_date=joined,
        kick_date=joined + kick_after,
    )
    session.add(record)
    await session.commit()

    logger.info(
        f"➕ [TRACKER] Участник добавлен: user_id={user_id}, chat_id={chat_id}, "
        f"kick_date={record.kick_date:%Y-%m-%d %H:%M}"
    )
    return record


async def untrack_member(session: AsyncSession, chat_id: int, user_id: int) -> int:
    """
    Удаляет все записи для пары (user_id, chat_id).

    Returns:
        Количество удалённых записей (0 если отслеживания не было)
    """
    result = await session.execute(
        delete(MembershipRecord).where(
            MembershipRecord.chat_id == chat_id,
            MembershipRecord.user_id == user_id,
        )
    )
    await session.commit()

    removed = result.rowcount or 0
    if removed:
        logger.info(f"➖ [TRACKER] Участник удалён: user_id={user_id}, chat_id={chat_id}, records={removed}")
    return removed


async def get_due_records(
    session: AsyncSession,
    now: Optional[datetime] = None,
    limit: int = 0,
    after: Optional[Tuple[datetime, int]] = None,
) -> List[MembershipRecord]:
    """
    Возвращает записи, у которых kick_date <= now.

    Args:
        session: Сессия БД
        now: Момент проверки (UTC, naive)
        limit: Максимум записей (0 = все)
        after: Курсор (kick_date, id) - вернуть только записи после него

    Returns:
        Список записей, самые просроченные первыми
    """
    stmt = (
        select(MembershipRecord)
        .where(MembershipRecord.kick_date <= (now or utcnow()))
        .order_by(MembershipRecord.kick_date, MembershipRecord.id)
    )
    if after is not None:
        after_date, after_id = after
        stmt = stmt.where(or_(
            MembershipRecord.kick_date > after_date,
            and_(MembershipRecord.kick_date == after_date, MembershipRecord.id > after_id),
        ))
    if limit > 0:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_record(session: AsyncSession, record_id: int) -> bool:
    """Удаляет одну запись по id. Возвращает True если запись была."""
    result = await session.execute(
        delete(MembershipRecord).where(MembershipRecord.id == record_id)
    )
    await session.commit()
    return bool(result.rowcount)
