# api/middleware.py
"""
Request tracking middleware: request IDs, timing and privacy-preserving logs.
"""
import time
import uuid
import logging
from typing import Callable, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from api.utils import hash_user_id_for_logging

logger = logging.getLogger("frogsy-api.middleware")


def _user_hash_from_path(path: str) -> Optional[str]:
    for part in path.split('/'):
        if len(part) == 36 and part.count('-') == 4:
            return hash_user_id_for_logging(part)
    return None


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an X-Request-ID, measures it into
    X-Response-Time and logs start/finish with the path's user ID hashed.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        user_hash = _user_hash_from_path(request.url.path)

        request.state.request_id = request_id
        request.state.user_id_hash = user_hash

        start_time = time.perf_counter()
        logger.info(
            "Request started: request_id=%s method=%s path_user=%s",
            request_id, request.method, user_hash or 'none'
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed: request_id=%s error=%s duration=%.2fms",
                request_id, e, duration_ms,
                exc_info=True
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        logger.info(
            "Request completed: request_id=%s status=%d duration=%.2fms",
            request_id, response.status_code, duration_ms
        )
        return response


def get_request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', 'unknown')
