# services/reminder_matcher.py
"""
Reminder matching and dispatch reconciliation.

find_due_users() is a pure filter over notification preferences.
reconcile_dispatch() sends to each subscription through an injected send
function and deletes subscriptions the transport reports as gone.

Matching is exact to the minute with no "last sent" state, so the tick that
drives it must run once per minute and never overlap with itself.
"""
import logging
from datetime import datetime, time
from typing import Awaitable, Callable, Iterable, List, Optional, Union

from api.schemas.notifications import DispatchSummary, NotificationPreference, PushSubscription
from api.utils import hash_user_id_for_logging
from services.clock import now_in_app_timezone
from services.push_transport import SubscriptionGoneError

logger = logging.getLogger("frogsy-api.reminders")

SendFn = Callable[[PushSubscription], Awaitable[None]]
DeleteFn = Callable[[str], Awaitable[None]]


def _minute_key(value: Union[str, time, datetime, None]) -> Optional[str]:
    """Normalize a time of day to HH:MM."""
    if value is None:
        return None
    if isinstance(value, (time, datetime)):
        return value.strftime("%H:%M")
    return value[:5]


def current_time_of_day(now: Optional[datetime] = None) -> str:
    """Wall-clock HH:MM in the app time zone."""
    return now_in_app_timezone(now).strftime("%H:%M")


def is_due(preference: NotificationPreference, now: Union[str, time, datetime]) -> bool:
    current = _minute_key(now)
    morning_match = preference.morning_enabled and _minute_key(preference.morning_time) == current
    afternoon_match = preference.afternoon_enabled and _minute_key(preference.afternoon_time) == current
    return bool(morning_match or afternoon_match)


def find_due_users(
    preferences: Iterable[NotificationPreference],
    now: Union[str, time, datetime]
) -> List[str]:
    """
    Users with an enabled reminder at exactly this minute.

    Args:
        preferences: One preference record per user
        now: Current time of day in the app time zone (HH:MM, time or datetime)

    Returns:
        User IDs, each at most once, in preference order
    """
    due: List[str] = []
    seen = set()
    for preference in preferences:
        if preference.user_id in seen:
            continue
        if is_due(preference, now):
            seen.add(preference.user_id)
            due.append(preference.user_id)
    return due


async def reconcile_dispatch(
    subscriptions: Iterable[PushSubscription],
    send_fn: SendFn,
    delete_fn: DeleteFn,
    eligible_users: int = 0
) -> DispatchSummary:
    """
    Send to every subscription and prune the dead ones.

    Each send either succeeds, fails with SubscriptionGoneError (the
    subscription is deleted by endpoint, counted as failed) or fails with
    anything else (kept, counted as failed). Nothing is retried here.

    Args:
        subscriptions: Subscriptions of the due users
        send_fn: Awaitable delivering one notification
        delete_fn: Awaitable deleting a subscription by endpoint
        eligible_users: Number of due users, echoed in the summary

    Returns:
        DispatchSummary with counts only
    """
    subscriptions = list(subscriptions)
    summary = DispatchSummary(
        eligible_users=eligible_users,
        total_subscriptions=len(subscriptions),
    )

    for subscription in subscriptions:
        user_hash = hash_user_id_for_logging(subscription.user_id)
        try:
            await send_fn(subscription)
            summary.successful += 1
            logger.info("Notification sent (user_hash=%s)", user_hash)
        except SubscriptionGoneError as e:
            summary.failed += 1
            logger.info("Removing invalid subscription (user_hash=%s): %s", user_hash, e)
            try:
                await delete_fn(subscription.endpoint)
            except Exception as delete_error:
                logger.error(
                    "Failed to delete subscription (user_hash=%s): %s", user_hash, delete_error
                )
        except Exception as e:
            summary.failed += 1
            logger.warning("Notification failed (user_hash=%s): %s", user_hash, e)

    logger.info(
        "Dispatch complete: %d successful, %d failed",
        summary.successful, summary.failed
    )
    return summary
