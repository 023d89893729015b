"""
Tests for the reminder tick job.
"""
import logging
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from services.push_transport import SubscriptionGoneError, TEST_PAYLOAD
from jobs.send_reminders import (
    process_reminders,
    run_reminder_tick,
    send_test_notifications,
)

# 06:00 UTC == 08:00 in Johannesburg
EIGHT_AM_LOCAL = datetime(2024, 5, 2, 6, 0, tzinfo=timezone.utc)

PREFERENCES = [
    {"user_id": "u-morning", "morning_time": "08:00:00", "afternoon_time": "19:00:00",
     "morning_enabled": True, "afternoon_enabled": True},
    {"user_id": "u-disabled", "morning_time": "08:00:00", "afternoon_time": "19:00:00",
     "morning_enabled": False, "afternoon_enabled": True},
    {"user_id": "u-later", "morning_time": "09:30:00", "afternoon_time": "20:00:00",
     "morning_enabled": True, "afternoon_enabled": True},
]

SUBSCRIPTIONS = [
    {"user_id": "u-morning", "endpoint": "https://push.example/phone", "p256dh": "k1", "auth": "a1"},
    {"user_id": "u-morning", "endpoint": "https://push.example/laptop", "p256dh": "k2", "auth": "a2"},
]


def make_transport(side_effect=None):
    transport = MagicMock()
    transport.send = AsyncMock(side_effect=side_effect)
    return transport


@pytest.mark.asyncio
async def test_tick_notifies_due_users_only(supabase_factory):
    supabase = supabase_factory(tables={
        "user_notification_preferences": PREFERENCES,
        "push_subscriptions": SUBSCRIPTIONS,
    })
    transport = make_transport()

    stats = await run_reminder_tick(supabase, transport, now=EIGHT_AM_LOCAL)

    assert stats["time"] == "08:00"
    assert stats["eligible_users"] == 1
    assert stats["total_subscriptions"] == 2
    assert stats["successful"] == 2
    assert stats["failed"] == 0
    assert transport.send.await_count == 2

    sub_query = supabase.builders_for("push_subscriptions", "select")[0]
    assert sub_query.called("in_") == [("in_", ("user_id", ["u-morning"]), {})]


@pytest.mark.asyncio
async def test_tick_with_nobody_due_sends_nothing(supabase_factory):
    supabase = supabase_factory(tables={"user_notification_preferences": PREFERENCES})
    transport = make_transport()
    # 08:01 local
    now = datetime(2024, 5, 2, 6, 1, tzinfo=timezone.utc)

    stats = await run_reminder_tick(supabase, transport, now=now)

    assert stats["eligible_users"] == 0
    assert stats["message"] == "No users scheduled for this time"
    transport.send.assert_not_awaited()
    assert supabase.builders_for("push_subscriptions") == []


@pytest.mark.asyncio
async def test_tick_without_preferences(supabase_factory):
    supabase = supabase_factory()

    stats = await run_reminder_tick(supabase, make_transport(), now=EIGHT_AM_LOCAL)

    assert stats["message"] == "No preferences found"


@pytest.mark.asyncio
async def test_tick_without_subscriptions(supabase_factory):
    supabase = supabase_factory(tables={"user_notification_preferences": PREFERENCES})

    stats = await run_reminder_tick(supabase, make_transport(), now=EIGHT_AM_LOCAL)

    assert stats["eligible_users"] == 1
    assert stats["message"] == "No subscriptions found for eligible users"


@pytest.mark.asyncio
async def test_tick_deletes_gone_subscription_by_endpoint(supabase_factory):
    supabase = supabase_factory(tables={
        "user_notification_preferences": PREFERENCES,
        "push_subscriptions": SUBSCRIPTIONS,
    })

    async def send(subscription, payload):
        if subscription.endpoint.endswith("laptop"):
            raise SubscriptionGoneError("gone", status_code=410)

    stats = await run_reminder_tick(supabase, make_transport(side_effect=send), now=EIGHT_AM_LOCAL)

    assert stats["successful"] == 1
    assert stats["failed"] == 1
    deletes = supabase.builders_for("push_subscriptions", "delete")
    assert len(deletes) == 1
    assert deletes[0].called("eq") == [("eq", ("endpoint", "https://push.example/laptop"), {})]


@pytest.mark.asyncio
async def test_malformed_preference_rows_are_skipped(supabase_factory):
    rows = PREFERENCES + [{"user_id": "u-bad", "morning_time": "8 o'clock",
                           "afternoon_time": None, "morning_enabled": True,
                           "afternoon_enabled": False}]
    supabase = supabase_factory(tables={
        "user_notification_preferences": rows,
        "push_subscriptions": SUBSCRIPTIONS,
    })

    stats = await run_reminder_tick(supabase, make_transport(), now=EIGHT_AM_LOCAL)

    assert stats["eligible_users"] == 1


@pytest.mark.asyncio
async def test_test_notifications_for_one_user(supabase_factory):
    supabase = supabase_factory(tables={"push_subscriptions": SUBSCRIPTIONS})
    transport = make_transport()

    stats = await send_test_notifications(supabase, transport, user_id="u-morning")

    assert stats["type"] == "manual_test"
    assert stats["total_subscriptions"] == 2
    assert stats["successful"] == 2
    assert transport.send.await_args.args[1] == TEST_PAYLOAD


@pytest.mark.asyncio
async def test_test_notifications_without_subscriptions(supabase_factory):
    stats = await send_test_notifications(supabase_factory(), make_transport())

    assert stats["total_subscriptions"] == 0
    assert stats["message"] == "No subscriptions found"


@pytest.mark.asyncio
async def test_process_reminders_reports_fatal_error():
    with patch("jobs.send_reminders.get_supabase_admin_client",
               new_callable=AsyncMock, side_effect=ValueError("SUPABASE_URL missing")):
        stats = await process_reminders()

    assert stats["fatal_error"] == "SUPABASE_URL missing"
    assert "duration_seconds" in stats


@pytest.mark.asyncio
async def test_job_logs_use_lazy_formatting(supabase_factory, caplog):
    supabase = supabase_factory(tables={"user_notification_preferences": PREFERENCES})

    with caplog.at_level(logging.INFO, logger="frogsy-api.reminder_job"):
        await run_reminder_tick(supabase, make_transport(), now=EIGHT_AM_LOCAL)

    records = [r for r in caplog.records if r.name == "frogsy-api.reminder_job"]
    found = [r for r in records if r.msg.startswith("Found %d users")]
    assert found and found[0].args == (1, "08:00")
    assert found[0].getMessage() == "Found 1 users scheduled for notifications at 08:00"
