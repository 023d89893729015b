# api/report.py
"""
Printable report: pain summary, entries and medication history for a date range.
"""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from supabase import AsyncClient
from postgrest.exceptions import APIError

from api.dependencies import get_supabase_client, require_user_access
from api.entries import fetch_pain_entries
from api.medications import fetch_medications
from api.utils import handle_postgrest_error, validate_date_range_or_400
from api.rate_limiter import limiter, DATA_ACCESS_RATE_LIMIT
from services.clock import today_in_app_timezone
from services.heatmap import month_bounds
from services.stats_engine import active_medications_on, summarize_range

logger = logging.getLogger("frogsy-api.report")

router = APIRouter(prefix="/report", tags=["Report"])

REPORT_MEDICATION_FIELDS = {"id", "name", "dosage"}


@router.get("/{user_id}", dependencies=[Depends(require_user_access)])
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def get_report(
    request: Request,
    user_id: str,
    start: Optional[date] = Query(None, description="Defaults to the first of this month"),
    end: Optional[date] = Query(None, description="Defaults to the last of this month"),
    supabase: AsyncClient = Depends(get_supabase_client)
):
    """
    Each entry lists the medications active on its day. The full list,
    archived ones included, is returned alongside for the report header.
    """
    today = today_in_app_timezone()
    month_start, month_end = month_bounds(today.year, today.month)
    start = start or month_start
    end = end or month_end
    validate_date_range_or_400(start, end)

    try:
        entries = await fetch_pain_entries(
            supabase, user_id, start, end, columns="pain_date, pain_level, notes"
        )
        medications = await fetch_medications(supabase, user_id, include_archived=True)
    except APIError as e:
        handle_postgrest_error(e, user_id)

    return {
        "user_id": user_id,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "summary": summarize_range(entries).model_dump(),
        "entries": [
            {
                **e.model_dump(mode="json", exclude={"user_id", "created_at"}),
                "medications": [
                    m.model_dump(mode="json", include=REPORT_MEDICATION_FIELDS)
                    for m in active_medications_on(medications, e.pain_date)
                ],
            }
            for e in entries
        ],
        "medications": [m.model_dump(mode="json") for m in medications],
    }
