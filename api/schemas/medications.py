"""
Pydantic schemas for medication tracking.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class MedicationCreate(BaseModel):
    """Request body for adding a medication."""
    name: str = Field(..., min_length=1, max_length=200, description="Medication name")
    dosage: Optional[str] = Field(None, max_length=100, description="Dosage, e.g. '200mg'")
    frequency: Optional[str] = Field(None, max_length=100, description="How often, e.g. 'twice daily'")

    # Stripped before the length checks, so a blank name is rejected
    model_config = {"str_strip_whitespace": True}


class Medication(BaseModel):
    id: str
    user_id: Optional[str] = None
    name: str
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    created_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None


class MedicationLogCreate(BaseModel):
    """Request body for recording a dose. taken_at defaults to now."""
    taken_at: Optional[datetime] = Field(None, description="When the dose was taken")
