# api/calendar.py
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from supabase import AsyncClient
from postgrest.exceptions import APIError

from api.dependencies import get_supabase_client, require_user_access
from api.entries import fetch_pain_entries
from api.schemas.pain import WeekGridResponse
from api.utils import handle_postgrest_error, validate_date_range_or_400
from api.rate_limiter import limiter, DATA_ACCESS_RATE_LIMIT
from services.clock import today_in_app_timezone
from services.heatmap import (
    build_week_grid,
    default_heatmap_range,
    levels_by_date,
    month_bounds,
    month_grid,
)

logger = logging.getLogger("frogsy-api.calendar")

router = APIRouter(prefix="/calendar", tags=["Calendar & Heatmap"])

# Guards against absurd ranges; ten years of weeks is plenty for a heatmap
MAX_GRID_DAYS = 3660


@router.get(
    "/{user_id}/heatmap",
    response_model=WeekGridResponse,
    dependencies=[Depends(require_user_access)]
)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def get_heatmap(
    request: Request,
    user_id: str,
    start: Optional[date] = Query(None, description="First day to cover (YYYY-MM-DD)"),
    end: Optional[date] = Query(None, description="Last day to cover (YYYY-MM-DD)"),
    supabase: AsyncClient = Depends(get_supabase_client)
):
    """
    Contribution-style grid of pain levels. Without bounds, shows the twelve
    weeks ending today. A missing end defaults to today; a missing start to
    twelve weeks before the end.
    """
    today = today_in_app_timezone()
    if end is None:
        end = today
    if start is None:
        start, _ = default_heatmap_range(end)

    validate_date_range_or_400(start, end)
    if (end - start).days > MAX_GRID_DAYS:
        raise HTTPException(status_code=400, detail=f"Range too large (max {MAX_GRID_DAYS} days)")

    try:
        entries = await fetch_pain_entries(supabase, user_id, start, end, columns="pain_date, pain_level")
    except APIError as e:
        handle_postgrest_error(e, user_id)

    weeks = build_week_grid(start, end, levels=levels_by_date(entries), today=today)
    return WeekGridResponse(user_id=user_id, start=start, end=end, weeks=weeks)


@router.get(
    "/{user_id}/month",
    response_model=WeekGridResponse,
    dependencies=[Depends(require_user_access)]
)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def get_month(
    request: Request,
    user_id: str,
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    supabase: AsyncClient = Depends(get_supabase_client)
):
    """Month view for the calendar page; defaults to the current month."""
    today = today_in_app_timezone()
    year = year or today.year
    month = month or today.month
    start, end = month_bounds(year, month)

    try:
        entries = await fetch_pain_entries(supabase, user_id, start, end, columns="pain_date, pain_level")
    except APIError as e:
        handle_postgrest_error(e, user_id)

    weeks = month_grid(year, month, levels=levels_by_date(entries), today=today)
    return WeekGridResponse(user_id=user_id, start=start, end=end, weeks=weeks)
