"""
backend/app/database.py

Purpose:
    MongoDB connection bootstrap and index management for all collections.
    The unique indexes here are the authority for one-leg-per-user-per-week,
    one-parlay-per-week and at-most-one-open-week.

Dependencies:
    - motor.motor_asyncio
    - pymongo
    - app.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, OperationFailure

from app.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("parlay.database")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=25,
        minPoolSize=5,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()


async def close_db() -> None:
    global client
    if client:
        client.close()


async def get_db() -> AsyncIOMotorDatabase:
    return db


async def _ensure_indexes() -> None:
    """Create indexes on startup. Idempotent, safe to run repeatedly."""

    # ---- Profiles ----

    await db.profiles.create_index("user_id", unique=True)
    await db.profiles.create_index("role")

    # ---- Seasons ----

    await db.seasons.create_index([("league", 1), ("start_date", -1)])

    # ---- Weeks ----

    await db.weeks.create_index(
        [("season_id", 1), ("week_number", 1)],
        unique=True,
    )
    await db.weeks.create_index([("status", 1), ("opens_at", -1)])
    # At most one OPEN week at a time (current-week resolution stays unambiguous)
    try:
        await db.weeks.create_index(
            "status",
            unique=True,
            name="weeks_single_open",
            partialFilterExpression={"status": "OPEN"},
        )
    except (DuplicateKeyError, OperationFailure) as exc:
        logger.warning(
            "Skipped single-open-week index; more than one OPEN week exists: %s",
            exc,
        )

    # ---- Legs ----

    # One leg per user per week
    await db.legs.create_index(
        [("user_id", 1), ("week_id", 1)],
        unique=True,
        name="unique_user_week_leg",
    )
    await db.legs.create_index([("week_id", 1), ("status", 1)])
    await db.legs.create_index([("status", 1), ("created_at", 1)])

    # ---- Parlays (derived summary, one per week) ----

    await db.parlays.create_index("week_id", unique=True)

    # ---- Odds Cache ----

    await db.odds_cache.create_index("external_game_id", unique=True)
    await db.odds_cache.create_index([("league", 1), ("game_date", 1)])
    await db.odds_cache.create_index("updated_at")

    # ---- Audit Logs ----

    await db.audit_logs.create_index([("action", 1), ("timestamp", -1)])
    await db.audit_logs.create_index([("actor_id", 1), ("timestamp", -1)])
    await db.audit_logs.create_index([("target_id", 1), ("timestamp", -1)])
    await db.audit_logs.create_index("timestamp")
