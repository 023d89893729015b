# services/heatmap.py
"""
Week grids for the calendar and the contribution-style heatmap.
"""
import calendar
from datetime import date, timedelta
from typing import Dict, List, Mapping, Optional, Tuple

from api.schemas.pain import GridCell
from services.clock import today_in_app_timezone

DAYS_PER_WEEK = 7
DEFAULT_HEATMAP_WEEKS = 12


def _week_start(day: date) -> date:
    """Sunday on or before `day`."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _week_end(day: date) -> date:
    """Saturday on or after `day`."""
    return _week_start(day) + timedelta(days=DAYS_PER_WEEK - 1)


def build_week_grid(
    start: date,
    end: date,
    levels: Optional[Mapping[date, int]] = None,
    today: Optional[date] = None,
    pad_outside: bool = False
) -> List[List[Optional[GridCell]]]:
    """
    Lay out [start, end] as Sunday-first weeks of exactly seven slots.

    The grid runs from the Sunday on/before `start` to the Saturday on/after
    `end`. A cell is flagged `is_month_start` when its month differs from the
    previous cell's (the first cell only if it is the 1st), and `is_future`
    when it falls after `today`.

    Args:
        start: First day that must be covered
        end: Last day that must be covered
        levels: Pain level per date; dates without one get level None
        today: Reference day (defaults to today in the app time zone)
        pad_outside: Emit None instead of a cell for days outside [start, end]

    Returns:
        List of weeks, each a list of seven cells (or None)

    Raises:
        ValueError: If start is after end
    """
    if start > end:
        raise ValueError(f"start ({start}) must not be after end ({end})")

    levels = levels or {}
    if today is None:
        today = today_in_app_timezone()

    weeks: List[List[Optional[GridCell]]] = []
    current = _week_start(start)
    last = _week_end(end)
    previous_month: Optional[Tuple[int, int]] = None

    while current <= last:
        week: List[Optional[GridCell]] = []
        for _ in range(DAYS_PER_WEEK):
            month = (current.year, current.month)
            if previous_month is None:
                is_month_start = current.day == 1
            else:
                is_month_start = month != previous_month
            previous_month = month

            if pad_outside and not (start <= current <= end):
                week.append(None)
            else:
                week.append(GridCell(
                    date=current,
                    level=levels.get(current),
                    is_month_start=is_month_start,
                    is_future=current > today,
                ))
            current += timedelta(days=1)
        weeks.append(week)

    return weeks


def levels_by_date(entries) -> Dict[date, int]:
    """Map pain_date -> pain_level; later entries win on duplicate dates."""
    return {entry.pain_date: entry.pain_level for entry in entries}


def default_heatmap_range(today: Optional[date] = None) -> Tuple[date, date]:
    """The last twelve weeks, ending today."""
    if today is None:
        today = today_in_app_timezone()
    return today - timedelta(days=DEFAULT_HEATMAP_WEEKS * DAYS_PER_WEEK - 1), today


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def month_grid(
    year: int,
    month: int,
    levels: Optional[Mapping[date, int]] = None,
    today: Optional[date] = None
) -> List[List[Optional[GridCell]]]:
    """Calendar view of one month, with blank (None) slots around it."""
    start, end = month_bounds(year, month)
    return build_week_grid(start, end, levels=levels, today=today, pad_outside=True)
