# api/notifications.py
"""
Reminder preferences and push subscription endpoints.

Preferences are created lazily with defaults (08:00 / 19:00, both enabled)
the first time a user's settings are read.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from supabase import AsyncClient
from postgrest.exceptions import APIError

from api.dependencies import get_current_user_id, get_supabase_client, require_user_access
from api.schemas.notifications import (
    NotificationPreference,
    NotificationPreferenceUpdate,
    PushSubscriptionCreate,
)
from api.utils import handle_postgrest_error, hash_user_id_for_logging
from api.rate_limiter import limiter, DATA_ACCESS_RATE_LIMIT, WRITE_RATE_LIMIT
from jobs.send_reminders import PREFERENCE_COLUMNS, send_test_notifications
from services.push_transport import PushTransport

logger = logging.getLogger("frogsy-api.notifications")

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "/{user_id}/preferences",
    response_model=NotificationPreference,
    dependencies=[Depends(require_user_access)]
)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def get_preferences(
    request: Request,
    user_id: str,
    supabase: AsyncClient = Depends(get_supabase_client)
):
    try:
        response = await supabase.table('user_notification_preferences')\
            .select(PREFERENCE_COLUMNS)\
            .eq('user_id', user_id)\
            .limit(1)\
            .execute()

        if response.data:
            return NotificationPreference.model_validate(response.data[0])

        defaults = NotificationPreference(user_id=user_id)
        await supabase.table('user_notification_preferences')\
            .upsert(defaults.model_dump(), on_conflict='user_id')\
            .execute()
    except APIError as e:
        handle_postgrest_error(e, user_id)

    logger.info("Created default reminder preferences for user_hash=%s", hash_user_id_for_logging(user_id))
    return defaults


@router.put(
    "/{user_id}/preferences",
    response_model=NotificationPreference,
    dependencies=[Depends(require_user_access)]
)
@limiter.limit(WRITE_RATE_LIMIT)
async def update_preferences(
    request: Request,
    user_id: str,
    payload: NotificationPreferenceUpdate,
    supabase: AsyncClient = Depends(get_supabase_client)
):
    preference = NotificationPreference(user_id=user_id, **payload.model_dump())
    try:
        await supabase.table('user_notification_preferences')\
            .upsert(preference.model_dump(), on_conflict='user_id')\
            .execute()
    except APIError as e:
        handle_postgrest_error(e, user_id)

    logger.info(
        "Reminder preferences updated for user_hash=%s (morning=%s/%s afternoon=%s/%s)",
        hash_user_id_for_logging(user_id),
        preference.morning_time, preference.morning_enabled,
        preference.afternoon_time, preference.afternoon_enabled
    )
    return preference


@router.post(
    "/{user_id}/subscriptions",
    status_code=201,
    dependencies=[Depends(require_user_access)]
)
@limiter.limit(WRITE_RATE_LIMIT)
async def add_subscription(
    request: Request,
    user_id: str,
    payload: PushSubscriptionCreate,
    supabase: AsyncClient = Depends(get_supabase_client)
):
    """Store a browser push subscription. Re-registering the same endpoint is a no-op."""
    try:
        existing = await supabase.table('push_subscriptions')\
            .select('endpoint')\
            .eq('user_id', user_id)\
            .eq('endpoint', payload.endpoint)\
            .limit(1)\
            .execute()
        if existing.data:
            return {"status": "ok", "created": False}

        await supabase.table('push_subscriptions').insert({
            'user_id': user_id,
            'endpoint': payload.endpoint,
            'p256dh': payload.keys.p256dh,
            'auth': payload.keys.auth,
        }).execute()
    except APIError as e:
        handle_postgrest_error(e, user_id)

    logger.info("Push subscription stored for user_hash=%s", hash_user_id_for_logging(user_id))
    return {"status": "ok", "created": True}


@router.delete("/subscriptions")
@limiter.limit(WRITE_RATE_LIMIT)
async def remove_subscription(
    request: Request,
    endpoint: str = Query(..., min_length=1, description="Push endpoint to unsubscribe"),
    current_user_id: str = Depends(get_current_user_id),
    supabase: AsyncClient = Depends(get_supabase_client)
):
    """Remove one of the caller's subscriptions. Deleting a missing row is not an error."""
    try:
        response = await supabase.table('push_subscriptions')\
            .delete()\
            .eq('endpoint', endpoint)\
            .eq('user_id', current_user_id)\
            .execute()
    except APIError as e:
        handle_postgrest_error(e, current_user_id)

    return {"status": "ok", "deleted": len(response.data or [])}


@router.post("/{user_id}/test", dependencies=[Depends(require_user_access)])
@limiter.limit(WRITE_RATE_LIMIT)
async def send_test_notification(
    request: Request,
    user_id: str,
    supabase: AsyncClient = Depends(get_supabase_client)
):
    """Push a test notification to every subscription of this user."""
    try:
        transport = PushTransport()
    except ValueError as e:
        logger.error("Push transport not configured: %s", e)
        raise HTTPException(status_code=503, detail="Push notifications are not configured.")

    try:
        stats = await send_test_notifications(supabase, transport, user_id)
    except APIError as e:
        handle_postgrest_error(e, user_id)

    return {"status": "ok", **stats}
