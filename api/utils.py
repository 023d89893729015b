# api/utils.py
"""
Utility functions for the API.
"""
import uuid
import hashlib
import logging
from datetime import date
from typing import Optional, Union
from fastapi import HTTPException
from postgrest.exceptions import APIError

logger = logging.getLogger("frogsy-api.utils")

# PostgREST error codes
POSTGREST_INVALID_TEXT = '22P02'      # invalid_text_representation (bad uuid/date)
POSTGREST_UNDEFINED_COLUMN = '42703'  # undefined_column


def hash_user_id_for_logging(user_id: str) -> str:
    """
    Short, stable hash of a user ID so logs can correlate requests without
    exposing the ID itself.
    """
    return hashlib.sha256(str(user_id).encode()).hexdigest()[:8]


def validate_uuid_or_400(value: str, param_name: str = "id") -> str:
    """
    Validates that a string is a valid UUID format.

    Raises:
        HTTPException: 400 Bad Request if the value is not a valid UUID
    """
    try:
        uuid.UUID(value)
        return value
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid UUID format for {param_name}: {value}"
        )


def validate_date_range_or_400(start: Optional[date], end: Optional[date]) -> None:
    """Reject ranges whose start falls after their end."""
    if start is not None and end is not None and start > end:
        raise HTTPException(
            status_code=400,
            detail=f"start ({start}) must not be after end ({end})"
        )


def is_undefined_column_error(e: Exception) -> bool:
    return isinstance(e, APIError) and getattr(e, 'code', None) == POSTGREST_UNDEFINED_COLUMN


def handle_postgrest_error(e: Union[APIError, Exception], user_id: str) -> None:
    """
    Translate a PostgREST failure into an HTTPException.

    22P02 becomes 400, auth failures 401/403, everything else 500 with
    whatever detail PostgREST gave us.

    Raises:
        HTTPException: always
    """
    error_msg = str(e)
    error_code = getattr(e, 'code', None) if isinstance(e, APIError) else None
    user_hash = hash_user_id_for_logging(user_id)

    if error_code == POSTGREST_INVALID_TEXT:
        logger.warning("PostgREST invalid input for user_hash=%s: %s", user_hash, e)
        raise HTTPException(
            status_code=400,
            detail="Invalid value in database query"
        )

    if error_code == '401' or '401' in error_msg:
        logger.error("PostgREST Auth Error (401) for user_hash=%s: %s", user_hash, e)
        raise HTTPException(
            status_code=401,
            detail="Unauthorized: Database access denied. Check API configuration."
        )

    if error_code == '403' or '403' in error_msg:
        logger.error("PostgREST Permission Error (403) for user_hash=%s: %s", user_hash, e)
        raise HTTPException(
            status_code=403,
            detail="Forbidden: Insufficient permissions for this operation."
        )

    logger.exception("PostgREST APIError for user_hash=%s: %s", user_hash, e)

    detail = "Database error"
    if getattr(e, 'details', None):
        detail = f"Database error: {e.details}"
    elif getattr(e, 'message', None):
        detail = f"Database error: {e.message}"

    raise HTTPException(status_code=500, detail=detail)
