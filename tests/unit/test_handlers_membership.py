from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from aiogram.exceptions import TelegramBadRequest
from aiogram.methods import ApproveChatJoinRequest
from sqlalchemy import select

from autokick.database.models import MembershipRecord
from autokick.handlers.membership.membership_handlers import (
    handle_join_request,
    handle_member_left,
    handle_new_members,
)
from autokick.services.group_config_service import activate_group


CHAT_ID = -6000


def _join_request(user_id):
    return SimpleNamespace(chat=SimpleNamespace(id=CHAT_ID), from_user=SimpleNamespace(id=user_id))


def _service_message(new_members=None, left_member=None):
    return SimpleNamespace(
        chat=SimpleNamespace(id=CHAT_ID),
        new_chat_members=new_members,
        left_chat_member=left_member,
    )


async def _tracked_ids(session):
    result = await session.execute(select(MembershipRecord.user_id).where(MembershipRecord.chat_id == CHAT_ID))
    return sorted(result.scalars().all())


@pytest.mark.asyncio
async def test_join_request_is_approved_and_tracked(db_session, bot_mock):
    await activate_group(db_session, CHAT_ID)

    await handle_join_request(_join_request(10), bot_mock, db_session)

    bot_mock.approve_chat_join_request.assert_awaited_once_with(chat_id=CHAT_ID, user_id=10)
    assert await _tracked_ids(db_session) == [10]


@pytest.mark.asyncio
async def test_join_request_in_inactive_group(db_session, bot_mock):
    await handle_join_request(_join_request(10), bot_mock, db_session)

    bot_mock.approve_chat_join_request.assert_not_awaited()
    assert await _tracked_ids(db_session) == []


@pytest.mark.asyncio
async def test_join_request_approve_failure_is_contained(db_session, bot_mock):
    await activate_group(db_session, CHAT_ID)
    bot_mock.approve_chat_join_request = AsyncMock(
        side_effect=TelegramBadRequest(
            method=ApproveChatJoinRequest(chat_id=CHAT_ID, user_id=10), message="HIDE_REQUESTER_MISSING"
        )
    )

    await handle_join_request(_join_request(10), bot_mock, db_session)

    assert await _tracked_ids(db_session) == []


@pytest.mark.asyncio
async def test_new_members_are_tracked(db_session):
    await activate_group(db_session, CHAT_ID)
    members = [SimpleNamespace(id=1, is_bot=False), SimpleNamespace(id=2, is_bot=True)]

    await handle_new_members(_service_message(new_members=members), db_session)

    assert await _tracked_ids(db_session) == [1]


@pytest.mark.asyncio
async def test_left_member_is_untracked(db_session):
    await activate_group(db_session, CHAT_ID)
    await handle_new_members(_service_message(new_members=[SimpleNamespace(id=1, is_bot=False)]), db_session)

    await handle_member_left(_service_message(left_member=SimpleNamespace(id=1, is_bot=False)), db_session)

    assert await _tracked_ids(db_session) == []
