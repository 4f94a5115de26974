# ═══════════════════════════════════════════════════════════════════════════
# СОБЫТИЯ УЧАСТНИКОВ ГРУППЫ
# ═══════════════════════════════════════════════════════════════════════════
# chat_join_request  → автоодобрение + постановка на автокик
# new_chat_members   → постановка на автокик
# left_chat_member   → снятие с автокика
#
# Ошибки БД и Telegram логируются и не прерывают обработку апдейтов.
# ═══════════════════════════════════════════════════════════════════════════

import logging

from aiogram import Router, Bot, F
from aiogram.types import ChatJoinRequest, Message
from sqlalchemy.ext.asyncio import AsyncSession

from autokick.services.errors import TRANSIENT_IO_ERRORS
from autokick.services.lifecycle_service import (
    on_join_request,
    on_members_joined,
    on_member_left,
)
from autokick.utils.logger import log_join_request, log_member_tracked


logger = logging.getLogger(__name__)

membership_router = Router(name="membership")


async def _rollback(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except Exception as e:
        logger.error(f"❌ [MEMBERSHIP] Ошибка rollback: {e}")


@membership_router.chat_join_request()
async def handle_join_request(chat_join_request: ChatJoinRequest, bot: Bot, session: AsyncSession) -> None:
    chat_id = chat_join_request.chat.id
    user_id = chat_join_request.from_user.id
    logger.info(f"📬 [JOIN_REQUEST] Заявка: user_id={user_id}, chat_id={chat_id}")

    try:
        record = await on_join_request(bot, session, chat_id, user_id)
    except TRANSIENT_IO_ERRORS as e:
        logger.error(f"❌ [JOIN_REQUEST] Ошибка обработки заявки user_id={user_id}, chat_id={chat_id}: {e}")
        await _rollback(session)
        return

    log_join_request(user_id, chat_id, approved=record is not None)
    if record is not None:
        logger.info(f"✅ [JOIN_REQUEST] Одобрено: user_id={user_id}, kick_date={record.kick_date}")
        log_member_tracked(user_id, chat_id, record.kick_date)


@membership_router.message(F.new_chat_members)
async def handle_new_members(message: Message, session: AsyncSession) -> None:
    chat_id = message.chat.id
    try:
        records = await on_members_joined(session, chat_id, message.new_chat_members)
    except TRANSIENT_IO_ERRORS as e:
        logger.error(f"❌ [NEW_MEMBERS] Ошибка постановки на автокик chat_id={chat_id}: {e}")
        await _rollback(session)
        return

    for record in records:
        logger.info(f"⏳ [NEW_MEMBERS] user_id={record.user_id} → kick_date={record.kick_date}")
        log_member_tracked(record.user_id, chat_id, record.kick_date)


@membership_router.message(F.left_chat_member)
async def handle_member_left(message: Message, session: AsyncSession) -> None:
    chat_id = message.chat.id
    user_id = message.left_chat_member.id
    try:
        removed = await on_member_left(session, chat_id, user_id)
    except TRANSIENT_IO_ERRORS as e:
        logger.error(f"❌ [LEFT_MEMBER] Ошибка снятия с автокика user_id={user_id}, chat_id={chat_id}: {e}")
        await _rollback(session)
        return

    if removed:
        logger.info(f"👋 [LEFT_MEMBER] user_id={user_id} вышел из chat_id={chat_id}, записей удалено: {removed}")
