# services/stats_engine.py
"""
Pain statistics, logging streaks and badges.

Everything here is pure: stats are recomputed from the full entry list on
every call and badges are never stored as "earned".
"""
import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from api.schemas.medications import Medication
from api.schemas.pain import BadgeDefinition, PainEntry, RangeSummary, Stats
from services.clock import local_calendar_day, today_in_app_timezone

logger = logging.getLogger("frogsy-api.stats_engine")

HIGH_PAIN_THRESHOLD = 7
PAIN_FREE_LEVEL = 0
WINDOW_7_DAYS = 7
WINDOW_30_DAYS = 30

WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

CHART_RANGES = {"30": 30, "90": 90, "all": None}


# Static catalog, evaluated in declaration order
BADGES: List[BadgeDefinition] = [
    BadgeDefinition(
        id="first-log",
        name="First Lily Pad",
        description="Log your first pain entry.",
        icon="🌱",
        unlock=lambda s: s.total_entries >= 1,
    ),
    BadgeDefinition(
        id="seven-day-streak",
        name="Seven-Day Stream",
        description="Log pain 7 days in a row.",
        icon="🌊",
        unlock=lambda s: s.longest_streak >= 7,
    ),
    BadgeDefinition(
        id="thirty-day-streak",
        name="Pond Guardian",
        description="Log pain 30 days in a row.",
        icon="🐸",
        unlock=lambda s: s.longest_streak >= 30,
    ),
    BadgeDefinition(
        id="pain-free-days",
        name="Gentle Waters",
        description="Have 5 pain-free days (level 0).",
        icon="💧",
        unlock=lambda s: s.pain_free_days >= 5,
    ),
    BadgeDefinition(
        id="storm-weathered",
        name="Storm Weathered",
        description="Log at least 10 high pain days (7+).",
        icon="⛈️",
        unlock=lambda s: s.high_pain_days >= 10,
    ),
]


def parse_entries(rows: Iterable[Dict[str, Any]]) -> List[PainEntry]:
    """Convert raw Supabase rows into PainEntry models."""
    return [PainEntry.model_validate(row) for row in rows or []]


def _is_same_day_log(entry: PainEntry) -> bool:
    # Backfilled entries carry data for the day but do not count as active logging
    if entry.created_at is None:
        return True
    return local_calendar_day(entry.created_at) == entry.pain_date


def _streaks(days: Iterable[date]) -> Tuple[int, int]:
    """
    Longest run and the run ending at the latest day.

    Args:
        days: Calendar days (any order, duplicates allowed)

    Returns:
        (longest_streak, current_streak)
    """
    ordered = sorted(set(days))
    if not ordered:
        return 0, 0

    longest = 1
    current = 1
    for previous, day in zip(ordered, ordered[1:]):
        gap = (day - previous).days
        if gap == 1:
            current += 1
        else:
            current = 1
        longest = max(longest, current)

    return longest, current


def _average(total: int, count: int) -> Optional[float]:
    return total / count if count else None


def compute_stats(entries: Iterable[PainEntry], today: Optional[date] = None) -> Stats:
    """
    Compute averages, counters and logging streaks.

    Rolling windows are inclusive of today: the 7-day window is
    [today-6, today] and the 30-day window [today-29, today]. Entries dated
    after today count toward all-time figures only.

    Args:
        entries: Pain entries for one user, in any order
        today: Reference day (defaults to today in the app time zone)

    Returns:
        Stats with None averages for empty windows
    """
    entries = sorted(entries, key=lambda e: e.pain_date)
    if not entries:
        return Stats()

    if today is None:
        today = today_in_app_timezone()

    sum_all = count_all = 0
    sum_30 = count_30 = 0
    sum_7 = count_7 = 0
    pain_free_days = 0
    high_pain_days = 0
    streak_days = set()

    for entry in entries:
        level = entry.pain_level
        days_ago = (today - entry.pain_date).days

        sum_all += level
        count_all += 1

        if 0 <= days_ago < WINDOW_30_DAYS:
            sum_30 += level
            count_30 += 1
        if 0 <= days_ago < WINDOW_7_DAYS:
            sum_7 += level
            count_7 += 1

        if level == PAIN_FREE_LEVEL:
            pain_free_days += 1
        if level >= HIGH_PAIN_THRESHOLD:
            high_pain_days += 1

        if _is_same_day_log(entry):
            streak_days.add(entry.pain_date)

    longest_streak, current_streak = _streaks(streak_days)
    logger.debug(
        "Stats computed: entries=%d streak_days=%d longest=%d current=%d",
        count_all, len(streak_days), longest_streak, current_streak
    )

    return Stats(
        average_all=_average(sum_all, count_all),
        average_30=_average(sum_30, count_30),
        average_7=_average(sum_7, count_7),
        total_entries=count_all,
        pain_free_days=pain_free_days,
        high_pain_days=high_pain_days,
        longest_streak=longest_streak,
        current_streak=current_streak,
    )


def split_badges(
    stats: Stats,
    catalog: Optional[List[BadgeDefinition]] = None
) -> Tuple[List[BadgeDefinition], List[BadgeDefinition]]:
    """
    Partition the badge catalog into (unlocked, locked).

    Catalog order is preserved within each list.
    """
    unlocked: List[BadgeDefinition] = []
    locked: List[BadgeDefinition] = []

    for badge in BADGES if catalog is None else catalog:
        if badge.unlock(stats):
            unlocked.append(badge)
        else:
            locked.append(badge)

    return unlocked, locked


def weekday_averages(entries: Iterable[PainEntry]) -> List[Dict[str, Any]]:
    """
    Average pain per weekday, Sunday first.

    Weekdays with no entries report 0. Returns an empty list when there are
    no entries at all.
    """
    entries = list(entries)
    if not entries:
        return []

    sums = [0] * 7
    counts = [0] * 7
    for entry in entries:
        # date.weekday() is Monday=0; shift so Sunday=0
        idx = (entry.pain_date.weekday() + 1) % 7
        sums[idx] += entry.pain_level
        counts[idx] += 1

    return [
        {"weekday": label, "avg": sums[idx] / counts[idx] if counts[idx] else 0}
        for idx, label in enumerate(WEEKDAY_LABELS)
    ]


def filter_by_range(
    entries: Iterable[PainEntry],
    range_key: str = "90",
    today: Optional[date] = None
) -> List[PainEntry]:
    """
    Restrict entries to the chart's selected range.

    Args:
        entries: Pain entries
        range_key: "30", "90" or "all"
        today: Reference day (defaults to today in the app time zone)

    Returns:
        Entries dated on or after today - (days - 1), sorted by date. When the
        filter would hide everything, all entries are returned instead.

    Raises:
        ValueError: If range_key is not a known range
    """
    if range_key not in CHART_RANGES:
        raise ValueError(f"Unknown range {range_key!r}; expected one of {sorted(CHART_RANGES)}")

    entries = sorted(entries, key=lambda e: e.pain_date)
    days_back = CHART_RANGES[range_key]
    if days_back is None:
        return entries

    if today is None:
        today = today_in_app_timezone()
    cutoff = today - timedelta(days=days_back - 1)

    within_range = [e for e in entries if e.pain_date >= cutoff]
    if not within_range and entries:
        return entries
    return within_range


def recent_entries(entries: Iterable[PainEntry], limit: int = 10) -> List[PainEntry]:
    """Last `limit` entries by date, newest first."""
    ordered = sorted(entries, key=lambda e: e.pain_date)
    return list(reversed(ordered[-limit:])) if limit > 0 else []


def summarize_range(entries: Iterable[PainEntry]) -> RangeSummary:
    """Average and counters for an already date-bounded list of entries."""
    levels = [e.pain_level for e in entries]
    if not levels:
        return RangeSummary()

    return RangeSummary(
        average=sum(levels) / len(levels),
        pain_free_days=sum(1 for level in levels if level == PAIN_FREE_LEVEL),
        high_pain_days=sum(1 for level in levels if level >= HIGH_PAIN_THRESHOLD),
        days=len(levels),
    )


def active_medications_on(medications: Iterable[Medication], day: date) -> List[Medication]:
    """
    Medications a user was on during `day`.

    A medication counts when it was created on or before `day` and was not
    archived by the end of it (archiving during `day` hides it). Timestamps
    are read as local days in the app time zone; a missing created_at means
    it always existed.
    """
    active = []
    for medication in medications:
        if medication.created_at is not None and local_calendar_day(medication.created_at) > day:
            continue
        if medication.archived_at is not None and local_calendar_day(medication.archived_at) <= day:
            continue
        active.append(medication)
    return active
