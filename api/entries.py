# api/entries.py
"""
Pain entry endpoints: log today's (or a past day's) pain level and list history.
"""
import logging
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from supabase import AsyncClient
from postgrest.exceptions import APIError

from api.dependencies import get_supabase_client, require_user_access
from api.schemas.pain import PainEntry, PainEntryUpsert
from api.utils import handle_postgrest_error, hash_user_id_for_logging, validate_date_range_or_400
from api.rate_limiter import limiter, DATA_ACCESS_RATE_LIMIT, WRITE_RATE_LIMIT
from services.clock import today_in_app_timezone
from services.stats_engine import parse_entries

logger = logging.getLogger("frogsy-api.entries")

router = APIRouter(prefix="/entries", tags=["Pain Entries"])

ENTRY_COLUMNS = "pain_date, pain_level, notes, created_at"


async def fetch_pain_entries(
    supabase: AsyncClient,
    user_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    columns: str = ENTRY_COLUMNS
) -> List[PainEntry]:
    """
    Load a user's entries, oldest first, optionally bounded by date.

    PostgREST errors propagate to the caller.
    """
    query = supabase.table('pain_entries').select(columns).eq('user_id', user_id)
    if start is not None:
        query = query.gte('pain_date', start.isoformat())
    if end is not None:
        query = query.lte('pain_date', end.isoformat())

    response = await query.order('pain_date', desc=False).execute()
    return parse_entries(response.data or [])


@router.put("/{user_id}", dependencies=[Depends(require_user_access)])
@limiter.limit(WRITE_RATE_LIMIT)
async def upsert_pain_entry(
    request: Request,
    payload: PainEntryUpsert,
    user_id: str,
    supabase: AsyncClient = Depends(get_supabase_client)
):
    """
    Log a pain level for today or a past day.

    An existing entry for the same day is overwritten (level and note only;
    the first created_at is kept). Future dates are rejected.
    """
    today = today_in_app_timezone()
    target_date = payload.pain_date or today

    if target_date > today:
        raise HTTPException(status_code=400, detail="Cannot log pain for a future date.")

    notes = payload.notes.strip() if payload.notes else None
    row = {
        'user_id': user_id,
        'pain_date': target_date.isoformat(),
        'pain_level': payload.pain_level,
        'notes': notes or None,
    }

    try:
        response = await supabase.table('pain_entries')\
            .upsert(row, on_conflict='user_id,pain_date')\
            .execute()
    except APIError as e:
        handle_postgrest_error(e, user_id)

    logger.info(
        "Pain entry saved: user_hash=%s date=%s level=%d",
        hash_user_id_for_logging(user_id), target_date, payload.pain_level
    )
    saved = response.data[0] if response.data else row
    return {"status": "ok", "entry": saved}


@router.get("/{user_id}", dependencies=[Depends(require_user_access)])
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def list_pain_entries(
    request: Request,
    user_id: str,
    start: Optional[date] = Query(None, description="Earliest pain_date (inclusive)"),
    end: Optional[date] = Query(None, description="Latest pain_date (inclusive)"),
    supabase: AsyncClient = Depends(get_supabase_client)
):
    validate_date_range_or_400(start, end)

    try:
        entries = await fetch_pain_entries(supabase, user_id, start, end)
    except APIError as e:
        handle_postgrest_error(e, user_id)

    return {
        "user_id": user_id,
        "count": len(entries),
        "entries": [e.model_dump(mode="json", exclude={"user_id"}) for e in entries],
    }
