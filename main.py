# main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from api import calendar, entries, medications, notifications, report, trends
from api.middleware import ObservabilityMiddleware, get_request_id
from api.rate_limiter import limiter, rate_limit_exceeded_handler
from services.clock import get_app_timezone


logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("frogsy-api")

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("=== Application Startup ===")

    supabase_url = os.getenv("SUPABASE_URL", "")
    anon_key = os.getenv("SUPABASE_ANON_KEY", "")
    service_key = os.getenv("SUPABASE_SERVICE_KEY", "")

    logger.warning(
        "SUPABASE_URL=%s ANON_PREFIX=%s SERVICE_PREFIX=%s",
        supabase_url,
        anon_key[:16] if anon_key else "(not set)",
        service_key[:16] if service_key else "(not set)"
    )
    logger.info("App time zone: %s", get_app_timezone().key)
    if not os.getenv("VAPID_PRIVATE_KEY"):
        logger.warning("VAPID_PRIVATE_KEY not set - test notifications will be unavailable")

    logger.info("=== Application Ready ===")
    yield
    logger.info("=== Application Shutdown ===")


app = FastAPI(
    title="Frogsy API",
    description="Pain tracking, trends, badges and daily reminders.",
    version=APP_VERSION,
    lifespan=lifespan
)

app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return rate_limit_exceeded_handler(request, exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled exception: %s %s (request_id=%s)",
        request.method,
        request.url,
        get_request_id(request),
        exc_info=True
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# --- CORS ---
ALLOWED_ORIGINS: List[str] = [
    "http://localhost:3000",
]

cors_origins_env = os.getenv("CORS_ORIGINS")
if cors_origins_env:
    for origin in cors_origins_env.split(","):
        origin = origin.strip()
        if origin and origin not in ALLOWED_ORIGINS:
            ALLOWED_ORIGINS.append(origin)

logger.info("CORS allowed origins: %s", ALLOWED_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
)

app.add_middleware(ObservabilityMiddleware)

app.include_router(entries.router)
app.include_router(trends.router)
app.include_router(calendar.router)
app.include_router(report.router)
app.include_router(notifications.router)
app.include_router(medications.router)


@app.get("/", tags=["Health Check"])
def read_root():
    return {"message": "Frogsy API is running", "status": "healthy"}


@app.get("/health", tags=["Health Check"])
def health_check():
    return {"status": "healthy", "uptime": "ok", "version": APP_VERSION}
