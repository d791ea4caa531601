"""
backend/app/main.py

Purpose:
    FastAPI application bootstrap: logging, database, optional odds poller,
    middleware, router wiring and the global exception handlers.

Dependencies:
    - app.database
    - app.workers.odds_poller
"""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    OperationFailure,
    ServerSelectionTimeoutError,
)

import app.database as _db
from app.config import settings
from app.database import close_db, connect_db
from app.middleware.logging import StructuredLoggingMiddleware, setup_logging
from app.providers.odds_api import odds_provider
from app.workers.odds_poller import register_odds_poller

logger = logging.getLogger("parlay")
scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await connect_db()

    if settings.ODDS_POLLER_ENABLED:
        register_odds_poller(scheduler)
        scheduler.start()
        logger.info("Background scheduler started")
    else:
        logger.info("Odds poller disabled via config; use the admin refresh endpoint")

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    await odds_provider.aclose()
    await close_db()


app = FastAPI(
    title="Group Parlay",
    description="Weekly group parlay coordination for a private league",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.BACKEND_CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

# Structured logging
app.add_middleware(StructuredLoggingMiddleware)

# Routers
from app.routers.admin import router as admin_router  # noqa: E402
from app.routers.legs import router as legs_router  # noqa: E402
from app.routers.odds import router as odds_router  # noqa: E402
from app.routers.parlay import router as parlay_router  # noqa: E402
from app.routers.profile import router as profile_router  # noqa: E402
from app.routers.weeks import router as weeks_router  # noqa: E402

app.include_router(profile_router)
app.include_router(weeks_router)
app.include_router(parlay_router)
app.include_router(legs_router)
app.include_router(odds_router)
app.include_router(admin_router)


@app.exception_handler(InvalidId)
async def invalid_object_id_handler(request: Request, exc: InvalidId):
    return JSONResponse(status_code=400, content={"detail": "Invalid ID."})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Return clean validation errors without leaking internal field paths."""
    errors = []
    for err in exc.errors():
        loc = err.get("loc", ())
        # Strip the "body" / "query" prefix for cleaner messages
        field = ".".join(str(part) for part in loc[1:]) if len(loc) > 1 else (str(loc[-1]) if loc else "unknown")
        errors.append({"field": field, "message": err.get("msg", "Invalid value.")})
    return JSONResponse(status_code=422, content={"detail": "Validation error.", "errors": errors})


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    # Services translate the expected violations; this catches the rest
    logger.warning("Unmapped duplicate key on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=409, content={"detail": "Duplicate entry."})


@app.exception_handler(ServerSelectionTimeoutError)
async def db_timeout_handler(request: Request, exc: ServerSelectionTimeoutError):
    logger.error("Database timeout: %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=503, content={"detail": "Service temporarily unavailable. Please retry."},
    )


@app.exception_handler(ConnectionFailure)
async def db_connection_handler(request: Request, exc: ConnectionFailure):
    logger.error("Database connection failure: %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=503, content={"detail": "Service temporarily unavailable. Please retry."},
    )


@app.exception_handler(OperationFailure)
async def db_operation_handler(request: Request, exc: OperationFailure):
    logger.error("Database operation error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the real error, return a safe generic message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})


@app.get("/health")
async def health():
    """Health check: DB ping plus odds provider circuit state."""
    try:
        result = await _db.db.command("ping")
        db_ok = result.get("ok") == 1.0
    except (ConnectionFailure, OperationFailure):
        db_ok = False
    return {
        "status": "healthy" if db_ok else "degraded",
        "db": "connected" if db_ok else "disconnected",
        "odds_provider": {
            "circuit_open": odds_provider.circuit_open,
            "usage": odds_provider.api_usage,
        },
    }
