"""Pydantic schemas for API models."""
from .pain import (
    PainEntry,
    PainEntryUpsert,
    Stats,
    BadgeDefinition,
    BadgeOut,
    RangeSummary,
    WeekdayAverage,
    ChartPoint,
    TrendsResponse,
    GridCell,
    WeekGridResponse
)
from .notifications import (
    NotificationPreference,
    NotificationPreferenceUpdate,
    PushSubscription,
    PushSubscriptionCreate,
    DispatchSummary
)
from .medications import (
    Medication,
    MedicationCreate,
    MedicationLogCreate
)


__all__ = [
    "PainEntry",
    "PainEntryUpsert",
    "Stats",
    "BadgeDefinition",
    "BadgeOut",
    "RangeSummary",
    "WeekdayAverage",
    "ChartPoint",
    "TrendsResponse",
    "GridCell",
    "WeekGridResponse",
    "NotificationPreference",
    "NotificationPreferenceUpdate",
    "PushSubscription",
    "PushSubscriptionCreate",
    "DispatchSummary",
    "Medication",
    "MedicationCreate",
    "MedicationLogCreate"
]
