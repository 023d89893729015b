"""
Pydantic schemas for pain entries, derived statistics and badges.
"""
from datetime import date, datetime
from typing import Callable, List, Optional
from pydantic import BaseModel, Field


class PainEntry(BaseModel):
    """
    One row of the pain_entries table.

    Levels are not range-checked here: rows already stored are read back
    as-is and validation happens on write (see PainEntryUpsert).
    """
    user_id: Optional[str] = Field(None, description="Owner of the entry")
    pain_date: date = Field(..., description="Calendar day the pain level refers to")
    pain_level: int = Field(..., description="Pain level (0-10)")
    notes: Optional[str] = Field(None, description="Free-text note")
    created_at: Optional[datetime] = Field(None, description="When the entry was actually recorded")


class PainEntryUpsert(BaseModel):
    """Request body for logging (or overwriting) a day's pain level."""
    pain_level: int = Field(..., ge=0, le=10, description="Pain level (0-10)")
    pain_date: Optional[date] = Field(None, description="Day to log; defaults to today")
    notes: Optional[str] = Field(None, max_length=2000, description="Optional note")

    model_config = {
        "json_schema_extra": {
            "example": {
                "pain_level": 3,
                "pain_date": "2024-03-14",
                "notes": "Stiff after the long drive"
            }
        }
    }


class Stats(BaseModel):
    """Aggregates derived from a user's full entry list. Never persisted."""
    average_all: Optional[float] = None
    average_30: Optional[float] = None
    average_7: Optional[float] = None
    total_entries: int = 0
    pain_free_days: int = 0
    high_pain_days: int = 0
    longest_streak: int = 0
    current_streak: int = 0


class BadgeDefinition(BaseModel):
    """An achievement unlocked by a pure predicate over Stats."""
    id: str
    name: str
    description: str
    icon: str
    unlock: Callable[[Stats], bool] = Field(..., exclude=True)

    model_config = {"frozen": True}


class BadgeOut(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    unlocked: bool


class RangeSummary(BaseModel):
    """Summary shown on the printable report for a date range."""
    average: Optional[float] = None
    pain_free_days: int = 0
    high_pain_days: int = 0
    days: int = 0


class WeekdayAverage(BaseModel):
    weekday: str
    avg: float


class ChartPoint(BaseModel):
    date: date
    pain: int


class TrendsResponse(BaseModel):
    """Response for GET /trends/{user_id}."""
    user_id: str
    range: str
    today: date
    stats: Stats
    unlocked_badges: List[BadgeOut]
    locked_badges: List[BadgeOut]
    chart: List[ChartPoint]
    weekday_averages: List[WeekdayAverage]
    recent_entries: List[ChartPoint]


class GridCell(BaseModel):
    """One day slot of a calendar or heatmap grid."""
    date: date
    level: Optional[int] = None
    is_month_start: bool = False
    is_future: bool = False


class WeekGridResponse(BaseModel):
    user_id: str
    start: date
    end: date
    weeks: List[List[Optional[GridCell]]]
