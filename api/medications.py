# api/medications.py
"""
Medication list management and dose logging.

Removing a medication archives it (archived_at) so past logs and reports
keep their history. Databases that predate the archived_at column fall back
to a hard delete.
"""
import logging
from datetime import datetime, timezone
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from supabase import AsyncClient
from postgrest.exceptions import APIError

from api.dependencies import get_supabase_client, require_user_access
from api.schemas.medications import Medication, MedicationCreate, MedicationLogCreate
from api.utils import (
    handle_postgrest_error,
    hash_user_id_for_logging,
    is_undefined_column_error,
    validate_uuid_or_400,
)
from api.rate_limiter import limiter, DATA_ACCESS_RATE_LIMIT, WRITE_RATE_LIMIT

logger = logging.getLogger("frogsy-api.medications")

router = APIRouter(prefix="/medications", tags=["Medications"])


async def fetch_medications(
    supabase: AsyncClient,
    user_id: str,
    include_archived: bool = False
) -> List[Medication]:
    """A user's medications ordered by name; active only unless asked otherwise."""
    query = supabase.table('medications').select('*').eq('user_id', user_id)
    if not include_archived:
        query = query.is_('archived_at', 'null')
    response = await query.order('name').execute()
    return [Medication.model_validate(row) for row in response.data or []]


async def _get_owned_medication(supabase: AsyncClient, user_id: str, medication_id: str) -> dict:
    response = await supabase.table('medications')\
        .select('id, name, archived_at')\
        .eq('id', medication_id)\
        .eq('user_id', user_id)\
        .limit(1)\
        .execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="Medication not found")
    return response.data[0]


@router.get("/{user_id}", dependencies=[Depends(require_user_access)])
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def list_medications(
    request: Request,
    user_id: str,
    include_archived: bool = Query(False, description="Include archived medications"),
    supabase: AsyncClient = Depends(get_supabase_client)
):
    try:
        medications = await fetch_medications(supabase, user_id, include_archived)
    except APIError as e:
        handle_postgrest_error(e, user_id)

    return {"medications": [m.model_dump(mode="json") for m in medications]}


@router.post("/{user_id}", status_code=201, dependencies=[Depends(require_user_access)])
@limiter.limit(WRITE_RATE_LIMIT)
async def add_medication(
    request: Request,
    user_id: str,
    payload: MedicationCreate,
    supabase: AsyncClient = Depends(get_supabase_client)
):
    row = {
        'user_id': user_id,
        'name': payload.name,
        'dosage': payload.dosage,
        'frequency': payload.frequency,
    }
    try:
        response = await supabase.table('medications').insert(row).execute()
    except APIError as e:
        handle_postgrest_error(e, user_id)

    logger.info("Medication added for user_hash=%s", hash_user_id_for_logging(user_id))
    return {"status": "ok", "medication": response.data[0] if response.data else row}


@router.delete("/{user_id}/{medication_id}", dependencies=[Depends(require_user_access)])
@limiter.limit(WRITE_RATE_LIMIT)
async def remove_medication(
    request: Request,
    user_id: str,
    medication_id: str,
    supabase: AsyncClient = Depends(get_supabase_client)
):
    """
    Archive the medication, or delete it when archiving is unsupported.

    Both paths filter on id and owner; no matching row is a 404.
    """
    validate_uuid_or_400(medication_id, "medication_id")

    try:
        response = await supabase.table('medications')\
            .update({'archived_at': datetime.now(timezone.utc).isoformat()})\
            .eq('id', medication_id)\
            .eq('user_id', user_id)\
            .execute()
        if not response.data:
            raise HTTPException(status_code=404, detail="Medication not found")
        return {"status": "ok", "mode": "archived", "medication_id": medication_id}
    except APIError as e:
        if not is_undefined_column_error(e):
            handle_postgrest_error(e, user_id)
        logger.warning("archived_at column missing; hard-deleting medication %s", medication_id)

    try:
        response = await supabase.table('medications')\
            .delete()\
            .eq('id', medication_id)\
            .eq('user_id', user_id)\
            .execute()
    except APIError as e:
        handle_postgrest_error(e, user_id)

    if not response.data:
        raise HTTPException(status_code=404, detail="Medication not found")

    return {"status": "ok", "mode": "deleted", "medication_id": medication_id}


@router.post(
    "/{user_id}/{medication_id}/logs",
    status_code=201,
    dependencies=[Depends(require_user_access)]
)
@limiter.limit(WRITE_RATE_LIMIT)
async def log_medication_dose(
    request: Request,
    user_id: str,
    medication_id: str,
    payload: MedicationLogCreate,
    supabase: AsyncClient = Depends(get_supabase_client)
):
    validate_uuid_or_400(medication_id, "medication_id")

    try:
        medication = await _get_owned_medication(supabase, user_id, medication_id)
        if medication.get('archived_at'):
            raise HTTPException(status_code=409, detail="Medication is archived")

        taken_at = payload.taken_at or datetime.now(timezone.utc)
        row = {
            'user_id': user_id,
            'medication_id': medication_id,
            'taken_at': taken_at.isoformat(),
        }
        response = await supabase.table('medication_logs').insert(row).execute()
    except APIError as e:
        handle_postgrest_error(e, user_id)

    logger.info(
        "Dose logged: user_hash=%s medication=%s",
        hash_user_id_for_logging(user_id), medication.get('name')
    )
    return {"status": "ok", "log": response.data[0] if response.data else row}
