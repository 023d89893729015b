"""
Pydantic schemas for reminder preferences, push subscriptions and dispatch results.
"""
import re
from typing import Optional
from pydantic import BaseModel, Field, field_validator

DEFAULT_MORNING_TIME = "08:00"
DEFAULT_AFTERNOON_TIME = "19:00"

# Postgres returns time columns as HH:MM:SS; clients usually send HH:MM
_TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")


def _check_time_of_day(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not _TIME_OF_DAY_RE.match(value):
        raise ValueError(f"Invalid time of day: {value!r} (expected HH:MM)")
    return value


class NotificationPreference(BaseModel):
    """One row of user_notification_preferences."""
    user_id: str
    morning_time: Optional[str] = Field(DEFAULT_MORNING_TIME, description="Morning reminder (HH:MM)")
    afternoon_time: Optional[str] = Field(DEFAULT_AFTERNOON_TIME, description="Afternoon reminder (HH:MM)")
    morning_enabled: bool = True
    afternoon_enabled: bool = True

    @field_validator("morning_time", "afternoon_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_time_of_day(v)


class NotificationPreferenceUpdate(BaseModel):
    """Request body for PUT /notifications/{user_id}/preferences."""
    morning_time: str = Field(DEFAULT_MORNING_TIME, description="Morning reminder (HH:MM)")
    afternoon_time: str = Field(DEFAULT_AFTERNOON_TIME, description="Afternoon reminder (HH:MM)")
    morning_enabled: bool = True
    afternoon_enabled: bool = True

    @field_validator("morning_time", "afternoon_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _check_time_of_day(v)


class PushSubscription(BaseModel):
    """One row of push_subscriptions: a transport endpoint plus its keys."""
    user_id: str
    endpoint: str
    p256dh: str
    auth: str


class PushSubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscriptionCreate(BaseModel):
    """
    Request body for storing a subscription.

    Mirrors the browser's PushSubscription.toJSON() shape.
    """
    endpoint: str = Field(..., min_length=1)
    keys: PushSubscriptionKeys


class DispatchSummary(BaseModel):
    """Outcome of one dispatch batch, returned for logging."""
    eligible_users: int = 0
    total_subscriptions: int = 0
    successful: int = 0
    failed: int = 0
