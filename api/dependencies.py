import os
import asyncio
import logging
from typing import Optional
from fastapi import Depends, HTTPException, Header
from supabase import acreate_client, AsyncClient
from supabase.lib.client_options import AsyncClientOptions

from api.utils import validate_uuid_or_400, hash_user_id_for_logging

logger = logging.getLogger("frogsy-api.dependencies")

__all__ = [
    "get_supabase_anon_client",
    "get_supabase_service_role_client",
    "get_supabase_client",
    "get_current_user_id",
    "require_user_access",
    "reset_caches_for_testing",
]

_cached_anon_client: Optional[AsyncClient] = None
_cached_service_client: Optional[AsyncClient] = None

# Created lazily so it binds to the running event loop
_client_initialization_lock: Optional[asyncio.Lock] = None

MIN_SERVICE_KEY_LENGTH = 100
MIN_ANON_KEY_LENGTH = 100


def reset_caches_for_testing():
    """
    Reset cached clients between tests.
    Do NOT call from production code.
    """
    global _cached_anon_client, _cached_service_client, _client_initialization_lock
    _cached_anon_client = None
    _cached_service_client = None
    _client_initialization_lock = None


def _get_lock() -> asyncio.Lock:
    global _client_initialization_lock
    if _client_initialization_lock is None:
        _client_initialization_lock = asyncio.Lock()
    return _client_initialization_lock


def _read_config(key_env: str, min_length: int, label: str):
    url = os.getenv("SUPABASE_URL")
    key = os.getenv(key_env, "").strip()

    if not url or not key:
        logger.error("SUPABASE_URL or %s missing.", key_env)
        raise HTTPException(status_code=500, detail=f"Supabase configuration incomplete ({label}).")

    if len(key) < min_length:
        logger.error("%s key invalid/truncated (len=%d).", label, len(key))
        raise HTTPException(status_code=500, detail=f"{key_env} invalid or truncated.")

    return url, key


async def get_supabase_anon_client() -> AsyncClient:
    """
    ANON client (RLS applied). Used to resolve a user's access token.
    """
    global _cached_anon_client
    if _cached_anon_client is None:
        async with _get_lock():
            if _cached_anon_client is None:  # Double-check
                url, key = _read_config("SUPABASE_ANON_KEY", MIN_ANON_KEY_LENGTH, "ANON")
                logger.info("Initializing ANON client key=%s...%s", key[:5], key[-5:])
                _cached_anon_client = await acreate_client(
                    url, key, options=AsyncClientOptions(persist_session=False)
                )
    return _cached_anon_client


async def get_supabase_service_role_client() -> AsyncClient:
    """
    SERVICE ROLE client (bypasses RLS). Routes scope every query by the
    caller's verified user_id; the reminder job uses it to read all users.
    """
    global _cached_service_client
    if _cached_service_client is None:
        async with _get_lock():
            if _cached_service_client is None:  # Double-check
                url, key = _read_config("SUPABASE_SERVICE_KEY", MIN_SERVICE_KEY_LENGTH, "SERVICE")
                logger.info("Initializing SERVICE client key=%s...%s", key[:5], key[-5:])
                _cached_service_client = await acreate_client(
                    url, key, options=AsyncClientOptions(persist_session=False)
                )
    return _cached_service_client


async def get_supabase_client() -> AsyncClient:
    """Client injected into data routes."""
    return await get_supabase_service_role_client()


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """
    Resolve the Bearer token to a Supabase user ID.

    Raises:
        HTTPException: 401 when the header is missing/malformed or the token
        is rejected
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        logger.warning("Authorization missing or malformed")
        raise HTTPException(status_code=401, detail="Authorization required. Provide a valid access token.")

    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Empty token")

    supabase = await get_supabase_anon_client()
    try:
        user_resp = await supabase.auth.get_user(token)
        user = getattr(user_resp, "user", None)
    except Exception as e:
        logger.warning("Supabase auth failure: %s", str(e)[:200])
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    if not user or not getattr(user, "id", None):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return str(user.id)


async def require_user_access(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id)
) -> str:
    """
    Path-level guard: the caller may only touch their own rows.

    Returns:
        The validated user_id from the path
    """
    validate_uuid_or_400(user_id, "user_id")
    if user_id != current_user_id:
        logger.warning(
            "Access denied: token user_hash=%s path user_hash=%s",
            hash_user_id_for_logging(current_user_id),
            hash_user_id_for_logging(user_id)
        )
        raise HTTPException(status_code=403, detail="Access denied.")
    return user_id
