"""
Reminder tick: push a "time to log your pain" notification to every user
whose morning or afternoon reminder is set to the current minute.

Run once per minute from an external scheduler (pg_cron, a platform cron,
...). Ticks must not overlap: two ticks in the same minute would notify the
same users twice.

    python -m jobs.send_reminders                 # one reminder tick
    python -m jobs.send_reminders --test          # test push to everyone
    python -m jobs.send_reminders --test --user-id <uuid>
"""
import os
import asyncio
import argparse
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from supabase import acreate_client, AsyncClient
from supabase.lib.client_options import AsyncClientOptions

from api.schemas.notifications import NotificationPreference, PushSubscription
from services.push_transport import PushTransport, REMINDER_PAYLOAD, TEST_PAYLOAD
from services.reminder_matcher import current_time_of_day, find_due_users, reconcile_dispatch

logger = logging.getLogger("frogsy-api.reminder_job")

PREFERENCE_COLUMNS = "user_id, morning_time, afternoon_time, morning_enabled, afternoon_enabled"


async def get_supabase_admin_client() -> AsyncClient:
    """
    Service-role client; reminders need every user's preferences.

    Raises:
        ValueError: If SUPABASE_URL or SUPABASE_SERVICE_KEY is missing
    """
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_SERVICE_KEY")

    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")

    options = AsyncClientOptions(persist_session=False)
    return await acreate_client(url, key, options=options)


async def fetch_preferences(supabase: AsyncClient) -> List[NotificationPreference]:
    response = await supabase.table('user_notification_preferences')\
        .select(PREFERENCE_COLUMNS)\
        .execute()

    preferences = []
    for row in response.data or []:
        try:
            preferences.append(NotificationPreference.model_validate(row))
        except ValueError as e:
            # One malformed row must not block everyone else's reminder
            logger.warning("Skipping malformed preference row: %s", e)
    return preferences


async def fetch_subscriptions(
    supabase: AsyncClient,
    user_ids: Optional[List[str]] = None
) -> List[PushSubscription]:
    """Subscriptions for the given users, or all of them when user_ids is None."""
    query = supabase.table('push_subscriptions').select('user_id, endpoint, p256dh, auth')
    if user_ids is not None:
        query = query.in_('user_id', user_ids)
    response = await query.execute()
    return [PushSubscription.model_validate(row) for row in response.data or []]


def make_delete_fn(supabase: AsyncClient):
    async def delete_subscription(endpoint: str) -> None:
        await supabase.table('push_subscriptions').delete().eq('endpoint', endpoint).execute()
    return delete_subscription


async def dispatch_to_subscriptions(
    supabase: AsyncClient,
    transport: PushTransport,
    subscriptions: List[PushSubscription],
    payload: Dict[str, Any],
    eligible_users: int
) -> Dict[str, Any]:
    async def send(subscription: PushSubscription) -> None:
        await transport.send(subscription, payload)

    summary = await reconcile_dispatch(
        subscriptions,
        send_fn=send,
        delete_fn=make_delete_fn(supabase),
        eligible_users=eligible_users,
    )
    return summary.model_dump()


async def run_reminder_tick(
    supabase: AsyncClient,
    transport: PushTransport,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Match preferences against the current minute and notify the due users.

    Args:
        supabase: Service-role client
        transport: Push sender
        now: Instant to evaluate (defaults to the current time)

    Returns:
        Job statistics; dispatch counts are present once a dispatch ran
    """
    current_time = current_time_of_day(now)
    stats: Dict[str, Any] = {
        'time': current_time,
        'eligible_users': 0,
        'total_subscriptions': 0,
        'successful': 0,
        'failed': 0,
    }
    logger.info("Reminder tick at %s (app time zone)", current_time)

    preferences = await fetch_preferences(supabase)
    if not preferences:
        logger.info("No user preferences found")
        stats['message'] = "No preferences found"
        return stats

    due_user_ids = find_due_users(preferences, current_time)
    stats['eligible_users'] = len(due_user_ids)
    if not due_user_ids:
        logger.info("No users scheduled for notifications at %s", current_time)
        stats['message'] = "No users scheduled for this time"
        return stats

    logger.info("Found %d users scheduled for notifications at %s", len(due_user_ids), current_time)

    subscriptions = await fetch_subscriptions(supabase, due_user_ids)
    if not subscriptions:
        logger.info("No subscriptions found for eligible users")
        stats['message'] = "No subscriptions found for eligible users"
        return stats

    stats.update(await dispatch_to_subscriptions(
        supabase, transport, subscriptions, REMINDER_PAYLOAD, len(due_user_ids)
    ))
    return stats


async def send_test_notifications(
    supabase: AsyncClient,
    transport: PushTransport,
    user_id: Optional[str] = None
) -> Dict[str, Any]:
    """Push a test notification to all subscriptions, or to one user's."""
    subscriptions = await fetch_subscriptions(supabase, [user_id] if user_id else None)
    stats: Dict[str, Any] = {
        'type': 'manual_test',
        'target_user_id': user_id,
        'eligible_users': len({s.user_id for s in subscriptions}),
        'total_subscriptions': len(subscriptions),
        'successful': 0,
        'failed': 0,
    }

    if not subscriptions:
        logger.info("No subscriptions found%s", " for target user" if user_id else "")
        stats['message'] = "No subscriptions found"
        return stats

    stats.update(await dispatch_to_subscriptions(
        supabase, transport, subscriptions, TEST_PAYLOAD, stats['eligible_users']
    ))
    stats['message'] = f"Manual test sent to {len(subscriptions)} subscription(s)"
    return stats


async def process_reminders(test: bool = False, user_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Job entry point. Failures are logged and reported in the returned stats
    under 'fatal_error' instead of raised.
    """
    logger.info("=== Starting reminder job ===")
    start_time = datetime.now(timezone.utc)

    try:
        supabase = await get_supabase_admin_client()
        transport = PushTransport()
        if test:
            stats = await send_test_notifications(supabase, transport, user_id)
        else:
            stats = await run_reminder_tick(supabase, transport)
    except Exception as e:
        logger.exception("Fatal error in reminder job: %s", e)
        stats = {'fatal_error': str(e)}

    stats['started_at'] = start_time.isoformat()
    stats['duration_seconds'] = (datetime.now(timezone.utc) - start_time).total_seconds()
    logger.info(
        "=== Reminder job completed: %d successful, %d failed ===",
        stats.get('successful', 0), stats.get('failed', 0)
    )
    return stats


async def main(argv: Optional[List[str]] = None):
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    parser = argparse.ArgumentParser(description="Send Frogsy pain-logging reminders")
    parser.add_argument("--test", action="store_true", help="Send a test notification instead")
    parser.add_argument("--user-id", help="With --test, only notify this user")
    args = parser.parse_args(argv)

    stats = await process_reminders(test=args.test, user_id=args.user_id)
    print(f"Job completed: {stats}")
    return stats


if __name__ == "__main__":
    asyncio.run(main())
