# api/trends.py
"""
Trends endpoint: summary stats, badges and chart data for one user.
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from supabase import AsyncClient
from postgrest.exceptions import APIError

from api.dependencies import get_supabase_client, require_user_access
from api.entries import fetch_pain_entries
from api.middleware import get_request_id
from api.schemas.pain import BadgeDefinition, BadgeOut, ChartPoint, TrendsResponse
from api.utils import handle_postgrest_error, hash_user_id_for_logging
from api.rate_limiter import limiter, DATA_ACCESS_RATE_LIMIT
from services.clock import today_in_app_timezone
from services.stats_engine import (
    CHART_RANGES,
    compute_stats,
    filter_by_range,
    recent_entries,
    split_badges,
    weekday_averages,
)

logger = logging.getLogger("frogsy-api.trends")

router = APIRouter(prefix="/trends", tags=["Trends & Badges"])


def _badges_out(badges: List[BadgeDefinition], unlocked: bool) -> List[BadgeOut]:
    return [
        BadgeOut(id=b.id, name=b.name, description=b.description, icon=b.icon, unlocked=unlocked)
        for b in badges
    ]


@router.get(
    "/{user_id}",
    response_model=TrendsResponse,
    dependencies=[Depends(require_user_access)]
)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def get_trends(
    request: Request,
    user_id: str,
    range: str = Query("90", description="Chart range: 30, 90 or all"),
    supabase: AsyncClient = Depends(get_supabase_client)
):
    """
    Stats and badges are computed over the full history; the chart honours
    the selected range.
    """
    if range not in CHART_RANGES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid range '{range}'. Use one of: 30, 90, all"
        )

    try:
        entries = await fetch_pain_entries(supabase, user_id)
    except APIError as e:
        handle_postgrest_error(e, user_id)

    today = today_in_app_timezone()
    stats = compute_stats(entries, today=today)
    unlocked, locked = split_badges(stats)

    logger.info(
        "Trends computed: request_id=%s user_hash=%s entries=%d unlocked=%d",
        get_request_id(request), hash_user_id_for_logging(user_id),
        stats.total_entries, len(unlocked)
    )

    return TrendsResponse(
        user_id=user_id,
        range=range,
        today=today,
        stats=stats,
        unlocked_badges=_badges_out(unlocked, True),
        locked_badges=_badges_out(locked, False),
        chart=[
            ChartPoint(date=e.pain_date, pain=e.pain_level)
            for e in filter_by_range(entries, range, today=today)
        ],
        weekday_averages=weekday_averages(entries),
        recent_entries=[
            ChartPoint(date=e.pain_date, pain=e.pain_level)
            for e in recent_entries(entries)
        ],
    )
