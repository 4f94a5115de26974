# ═══════════════════════════════════════════════════════════════════════════
# ЖИЗНЕННЫЙ ЦИКЛ УЧАСТНИКА
# ═══════════════════════════════════════════════════════════════════════════
# Реакция на события группы:
# - заявка на вступление → одобряем и ставим на отслеживание
# - участник вошёл сам → ставим на отслеживание
# - участник вышел → снимаем с отслеживания
#
# Состояния пары (user, group): NONE → TRACKED → NONE.
# Неактивированные группы записи участников не накапливают.
# ═══════════════════════════════════════════════════════════════════════════

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from aiogram import Bot
from aiogram.types import User
from sqlalchemy.ext.asyncio import AsyncSession

from autokick.database.models import MembershipRecord
from autokick.services.group_config_service import ActiveGroup, get_group_state
from autokick.services.membership_service import track_member, untrack_member


logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# СРОКИ ПО УМОЛЧАНИЮ
# ═══════════════════════════════════════════════════════════════════════════
# Используются, только если у активной группы срок не задан (0/NULL).
# Для заявки и для прямого входа сроки различаются (7 и 1 день).
JOIN_REQUEST_DEFAULT_KICK_AFTER = timedelta(days=7)
DIRECT_JOIN_DEFAULT_KICK_AFTER = timedelta(days=1)


def _kick_after_for(group: ActiveGroup, fallback: timedelta) -> timedelta:
    return group.kick_after or fallback


async def on_join_request(
    bot: Bot,
    session: AsyncSession,
    chat_id: int,
    user_id: int,
    now: Optional[datetime] = None,
) -> Optional[MembershipRecord]:
    """
    Обрабатывает заявку на вступление.

    Если бот активирован в группе - одобряет заявку и создаёт запись
    с kick_date = now + срок группы (по умолчанию 7 дней).

    Returns:
        Запись участника или None, если группа не активирована
    """
    group = await get_group_state(session, chat_id)
    if not group.is_active:
        logger.info(
            f"[LIFECYCLE] Группа {chat_id} не активирована - "
            f"заявка user_id={user_id} не отслеживается"
        )
        return None

    await bot.approve_chat_join_request(chat_id=chat_id, user_id=user_id)

    return await track_member(
        session,
        chat_id=chat_id,
        user_id=user_id,
        kick_after=_kick_after_for(group, JOIN_REQUEST_DEFAULT_KICK_AFTER),
        now=now,
    )


async def on_members_joined(
    session: AsyncSession,
    chat_id: int,
    members: Iterable[User],
    now: Optional[datetime] = None,
) -> List[MembershipRecord]:
    """
    Обрабатывает вход участников (new_chat_members).

    Боты пропускаются. Срок по умолчанию - 1 день.

    Returns:
        Список записей (пустой, если группа не активирована)
    """
    group = await get_group_state(session, chat_id)
    if not group.is_active:
        logger.info(
            f"[LIFECYCLE] Группа {chat_id} не активирована - "
            f"новые участники не отслеживаются"
        )
        return []

    kick_after = _kick_after_for(group, DIRECT_JOIN_DEFAULT_KICK_AFTER)
    records = []
    for member in members:
        if member.is_bot:
            continue
        records.append(
            await track_member(session, chat_id=chat_id, user_id=member.id, kick_after=kick_after, now=now)
        )
    return records


async def on_member_left(session: AsyncSession, chat_id: int, user_id: int) -> int:
    """
    Снимает участника с отслеживания после добровольного выхода.

    Returns:
        Количество удалённых записей
    """
    group = await get_group_state(session, chat_id)
    if not group.is_active:
        return 0

    return await untrack_member(session, chat_id=chat_id, user_id=user_id)
