from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from autokick.database.models import GroupConfig, MembershipRecord
from autokick.services.group_config_service import activate_group, set_kick_delay
from autokick.services.lifecycle_service import (
    DIRECT_JOIN_DEFAULT_KICK_AFTER,
    JOIN_REQUEST_DEFAULT_KICK_AFTER,
    on_join_request,
    on_member_left,
    on_members_joined,
)


CHAT_ID = -3000
NOW = datetime(2025, 5, 1, 8, 0)


def _user(user_id, is_bot=False):
    return SimpleNamespace(id=user_id, is_bot=is_bot)


async def _records(session):
    result = await session.execute(select(MembershipRecord).where(MembershipRecord.chat_id == CHAT_ID))
    return result.scalars().all()


@pytest.mark.asyncio
async def test_join_request_in_inactive_group_is_ignored(db_session, bot_mock):
    record = await on_join_request(bot_mock, db_session, CHAT_ID, 10, now=NOW)

    assert record is None
    bot_mock.approve_chat_join_request.assert_not_awaited()
    assert await _records(db_session) == []


@pytest.mark.asyncio
async def test_join_request_after_default_activation_kicks_in_24h(db_session, bot_mock):
    await activate_group(db_session, CHAT_ID)

    record = await on_join_request(bot_mock, db_session, CHAT_ID, 10, now=NOW)

    bot_mock.approve_chat_join_request.assert_awaited_once_with(chat_id=CHAT_ID, user_id=10)
    assert record.kick_date == NOW + timedelta(hours=24)


@pytest.mark.asyncio
async def test_join_request_uses_group_delay(db_session, bot_mock):
    await set_kick_delay(db_session, CHAT_ID, 14)

    record = await on_join_request(bot_mock, db_session, CHAT_ID, 10, now=NOW)

    assert record.kick_date == NOW + timedelta(days=14)


@pytest.mark.asyncio
async def test_unset_delay_falls_back_per_event(db_session, bot_mock):
    db_session.add(GroupConfig(chat_id=CHAT_ID, kick_after_ms=0))
    await db_session.commit()

    requested = await on_join_request(bot_mock, db_session, CHAT_ID, 10, now=NOW)
    joined = await on_members_joined(db_session, CHAT_ID, [_user(11)], now=NOW)

    assert JOIN_REQUEST_DEFAULT_KICK_AFTER == timedelta(days=7)
    assert DIRECT_JOIN_DEFAULT_KICK_AFTER == timedelta(days=1)
    assert requested.kick_date == NOW + timedelta(days=7)
    assert joined[0].kick_date == NOW + timedelta(days=1)


@pytest.mark.asyncio
async def test_approved_request_followed_by_join_keeps_one_record(db_session, bot_mock):
    await activate_group(db_session, CHAT_ID)

    await on_join_request(bot_mock, db_session, CHAT_ID, 10, now=NOW)
    await on_members_joined(db_session, CHAT_ID, [_user(10)], now=NOW + timedelta(seconds=1))

    records = await _records(db_session)
    assert len(records) == 1
    assert records[0].kick_date == NOW + timedelta(hours=24)


@pytest.mark.asyncio
async def test_members_joined_skips_bots(db_session):
    await activate_group(db_session, CHAT_ID)

    records = await on_members_joined(db_session, CHAT_ID, [_user(1), _user(2, is_bot=True), _user(3)], now=NOW)

    assert sorted(r.user_id for r in records) == [1, 3]


@pytest.mark.asyncio
async def test_members_joined_in_inactive_group(db_session):
    assert await on_members_joined(db_session, CHAT_ID, [_user(1)], now=NOW) == []
    assert await _records(db_session) == []


@pytest.mark.asyncio
async def test_member_left_removes_tracking(db_session):
    await activate_group(db_session, CHAT_ID)
    await on_members_joined(db_session, CHAT_ID, [_user(1)], now=NOW)

    assert await on_member_left(db_session, CHAT_ID, 1) == 1
    assert await _records(db_session) == []


@pytest.mark.asyncio
async def test_member_left_untracked_user_is_noop(db_session):
    await activate_group(db_session, CHAT_ID)

    assert await on_member_left(db_session, CHAT_ID, 999) == 0
