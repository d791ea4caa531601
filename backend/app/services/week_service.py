"""
backend/app/services/week_service.py

Purpose:
    Week lifecycle (OPEN -> LOCKED -> FINALIZED, LOCKED -> OPEN), lock-time
    management and the one place that decides which week is "current".

Dependencies:
    - app.database
    - app.services.leg_lifecycle
    - app.services.parlay_service
    - app.utils.lock_time
"""

import logging
from datetime import datetime
from typing import Optional

from bson import ObjectId
from fastapi import HTTPException, Request, status
from pymongo.errors import DuplicateKeyError

import app.database as _db
from app.config import settings
from app.models.week import WeekStatus
from app.services import parlay_service
from app.services.audit_service import log_audit
from app.services.leg_lifecycle import can_transition_week, finalized_at_for
from app.utils import as_utc, ensure_utc, utcnow
from app.utils.lock_time import (
    format_lock_time,
    format_time_until_lock,
    is_before_lock_time,
    next_lock_time,
)
from app.utils.odds_utils import format_currency

logger = logging.getLogger("parlay.week_service")

SINGLE_OPEN_INDEX = "weeks_single_open"


def _another_week_open(exc: DuplicateKeyError) -> bool:
    return SINGLE_OPEN_INDEX in str(exc)


def accepts_submissions(week: dict, now: Optional[datetime] = None) -> bool:
    """Leg creation/edits need an OPEN week whose deadline has not passed."""
    if week.get("status") != WeekStatus.OPEN.value:
        return False
    return is_before_lock_time(week["locks_at"], now)


async def get_week(week_id: str) -> dict:
    week = await _db.db.weeks.find_one({"_id": ObjectId(week_id)})
    if not week:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Week not found.")
    return week


async def list_weeks(limit: int = 52) -> list[dict]:
    return await _db.db.weeks.find().sort("opens_at", -1).limit(limit).to_list(length=limit)


async def get_current_week(now: Optional[datetime] = None) -> Optional[dict]:
    """Resolve the current week.

    Contract: the OPEN week whose [opens_at, locks_at) window contains now;
    otherwise the most recently opened OPEN week (opens_at desc, then _id desc);
    otherwise None. Callers must not re-derive this with their own queries.
    """
    now = ensure_utc(now or utcnow())
    sort = [("opens_at", -1), ("_id", -1)]

    in_window = await _db.db.weeks.find({
        "status": WeekStatus.OPEN.value,
        "opens_at": {"$lte": now},
        "locks_at": {"$gt": now},
    }).sort(sort).limit(1).to_list(length=1)
    if in_window:
        return in_window[0]

    fallback = await _db.db.weeks.find(
        {"status": WeekStatus.OPEN.value},
    ).sort(sort).limit(1).to_list(length=1)
    return fallback[0] if fallback else None


async def require_current_week(now: Optional[datetime] = None) -> dict:
    week = await get_current_week(now)
    if not week:
        raise HTTPException(
            status.HTTP_404_NOT_FOUND,
            "No week is currently open for submissions.",
        )
    return week


async def get_season_labels(season_ids: list[Optional[str]]) -> dict[str, str]:
    ids = [ObjectId(s) for s in set(season_ids) if s and ObjectId.is_valid(s)]
    if not ids:
        return {}
    rows = await _db.db.seasons.find({"_id": {"$in": ids}}, {"label": 1}).to_list(length=None)
    return {str(r["_id"]): r.get("label", "") for r in rows}


def week_response(
    week: dict, season_label: Optional[str] = None, now: Optional[datetime] = None,
) -> dict:
    locks_at = ensure_utc(week["locks_at"])
    return {
        "id": str(week["_id"]),
        "season_id": week.get("season_id"),
        "season_label": season_label,
        "week_number": week["week_number"],
        "status": week["status"],
        "opens_at": as_utc(week["opens_at"]),
        "locks_at": locks_at,
        "finalized_at": as_utc(week.get("finalized_at")),
        "stake_amount": week["stake_amount"],
        "stake_display": format_currency(week["stake_amount"]),
        "lock_display": format_lock_time(locks_at),
        "time_until_lock": format_time_until_lock(locks_at, now),
        "accepting_submissions": accepts_submissions(week, now),
    }


async def create_week(
    admin: dict,
    *,
    week_number: int,
    season_id: Optional[str] = None,
    opens_at: Optional[datetime] = None,
    locks_at: Optional[datetime] = None,
    stake_amount: Optional[int] = None,
    initial_status: WeekStatus = WeekStatus.OPEN,
    request: Optional[Request] = None,
) -> dict:
    """Create a betting round. Only OPEN or LOCKED are valid starting states."""
    if initial_status == WeekStatus.FINALIZED:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "A new week cannot start finalized.")

    if season_id is not None:
        season = await _db.db.seasons.find_one({"_id": ObjectId(season_id)}, {"_id": 1})
        if not season:
            raise HTTPException(status.HTTP_404_NOT_FOUND, "Season not found.")

    now = utcnow()
    opens_at = ensure_utc(opens_at) if opens_at else now
    locks_at = ensure_utc(locks_at) if locks_at else next_lock_time(opens_at)
    if opens_at >= locks_at:
        raise HTTPException(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            {"message": "locks_at must be after opens_at.", "field": "locks_at"},
        )

    week_doc = {
        "season_id": season_id,
        "week_number": week_number,
        "status": initial_status.value,
        "opens_at": opens_at,
        "locks_at": locks_at,
        "finalized_at": None,
        "stake_amount": settings.DEFAULT_STAKE_CENTS if stake_amount is None else int(stake_amount),
        "created_at": now,
        "updated_at": now,
    }

    try:
        result = await _db.db.weeks.insert_one(week_doc)
    except DuplicateKeyError as exc:
        if _another_week_open(exc):
            raise HTTPException(
                status.HTTP_409_CONFLICT,
                "Another week is already open. Lock it before opening a new one.",
            ) from exc
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            f"Week {week_number} already exists for this season.",
        ) from exc
    week_doc["_id"] = result.inserted_id

    await log_audit(
        actor_id=admin["user_id"],
        target_id=str(result.inserted_id),
        action="WEEK_CREATED",
        metadata={"week_number": week_number, "status": initial_status.value},
        request=request,
    )
    logger.info("Week %d created (%s) by %s, locks %s",
                week_number, initial_status.value, admin["user_id"], locks_at.isoformat())
    return week_doc


async def transition_week(
    admin: dict, week_id: str, target: WeekStatus, request: Optional[Request] = None,
) -> dict:
    """Move a week along its lifecycle with a compare-and-set on the current status."""
    week = await get_week(week_id)
    current = WeekStatus(week["status"])
    if not can_transition_week(current, target):
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            f"Week cannot move from {current.value} to {target.value}.",
        )

    now = utcnow()
    updates = {
        "status": target.value,
        "finalized_at": finalized_at_for(target, now),
        "updated_at": now,
    }
    try:
        result = await _db.db.weeks.update_one(
            {"_id": week["_id"], "status": current.value},
            {"$set": updates},
        )
    except DuplicateKeyError as exc:
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            "Another week is already open. Lock it before reopening this one.",
        ) from exc

    if result.matched_count == 0:
        raise HTTPException(status.HTTP_409_CONFLICT, "Week status changed, please refresh.")

    week.update(updates)

    await log_audit(
        actor_id=admin["user_id"],
        target_id=str(week["_id"]),
        action="WEEK_STATUS_CHANGED",
        metadata={"from": current.value, "to": target.value},
        request=request,
    )
    logger.info("Week %s: %s -> %s by %s", week["_id"], current.value, target.value, admin["user_id"])

    if target == WeekStatus.FINALIZED:
        await parlay_service.recompute_after_write(str(week["_id"]))
    return week


async def set_lock_time(
    admin: dict,
    week_id: str,
    locks_at: Optional[datetime] = None,
    request: Optional[Request] = None,
) -> dict:
    """Set an explicit deadline, or the next Sunday-noon deadline when none is given."""
    week = await get_week(week_id)
    if week["status"] == WeekStatus.FINALIZED.value:
        raise HTTPException(status.HTTP_409_CONFLICT, "A finalized week cannot be rescheduled.")

    new_lock = ensure_utc(locks_at) if locks_at else next_lock_time()
    if new_lock <= ensure_utc(week["opens_at"]):
        raise HTTPException(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            {"message": "locks_at must be after opens_at.", "field": "locks_at"},
        )

    now = utcnow()
    result = await _db.db.weeks.update_one(
        {"_id": week["_id"], "status": week["status"]},
        {"$set": {"locks_at": new_lock, "updated_at": now}},
    )
    if result.matched_count == 0:
        raise HTTPException(status.HTTP_409_CONFLICT, "Week status changed, please refresh.")

    await log_audit(
        actor_id=admin["user_id"],
        target_id=str(week["_id"]),
        action="WEEK_LOCK_TIME_SET",
        metadata={"from": as_utc(week["locks_at"]).isoformat(), "to": new_lock.isoformat()},
        request=request,
    )
    week["locks_at"] = new_lock
    week["updated_at"] = now
    return week
