"""
backend/app/services/leg_service.py

Purpose:
    Leg submission by members and leg review by the commissioner. Every
    status write is a compare-and-set on the status the decision was made
    against; the (user_id, week_id) unique index is the only guard against
    double submissions.

Dependencies:
    - app.database
    - app.services.leg_lifecycle
    - app.services.week_service
    - app.services.parlay_service
    - app.services.input_sanity_service
"""

import logging
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException, Request, status
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

import app.database as _db
from app.models.leg import LegCreate, LegStatus, LegUpdate
from app.services import parlay_service, week_service
from app.services.audit_service import log_audit
from app.services.input_sanity_service import check_leg_input, raise_for_input
from app.services.leg_lifecycle import (
    affects_parlay,
    can_admin_set_leg_status,
    can_member_modify_leg,
    can_reopen_leg,
)
from app.services.profile_service import get_public_profiles
from app.utils import as_utc, utcnow
from app.utils.odds_utils import american_to_decimal, format_odds
from app.utils.prop_utils import format_leg_description, get_bet_type_category

logger = logging.getLogger("parlay.leg_service")

BATCH_DB_ERROR = "Database error, please retry."
BATCH_SKIPPED_ERROR = "Not processed after a database error, please retry."

REVIEW_FILTERS: dict[str, tuple[LegStatus, ...]] = {
    "all": (LegStatus.PENDING, LegStatus.CONFLICT),
    "pending": (LegStatus.PENDING,),
    "conflict": (LegStatus.CONFLICT,),
    "approved": (LegStatus.OK,),
    "all_statuses": tuple(LegStatus),
}

# Editable leg fields a member may send on PATCH
_MEMBER_FIELDS = (
    "game_desc", "market_key", "selection", "line", "player_name",
    "prop_category", "bookmaker",
)


def leg_response(leg: dict, owner_name: Optional[str] = None) -> dict:
    return {
        "id": str(leg["_id"]),
        "user_id": leg["user_id"],
        "week_id": leg["week_id"],
        "sport_key": leg["sport_key"],
        "league": leg["league"],
        "game_id": leg.get("game_id"),
        "game_desc": leg["game_desc"],
        "market_key": leg["market_key"],
        "selection": leg["selection"],
        "line": leg.get("line"),
        "player_name": leg.get("player_name"),
        "prop_type": leg.get("prop_type"),
        "prop_category": leg.get("prop_category"),
        "american_odds": leg["american_odds"],
        "decimal_odds": leg["decimal_odds"],
        "odds_display": format_odds(leg["american_odds"]),
        "description": format_leg_description(leg),
        "bet_category": get_bet_type_category(leg),
        "source": leg.get("source", "manual"),
        "bookmaker": leg.get("bookmaker", "DraftKings"),
        "notes": leg.get("notes"),
        "status": leg["status"],
        "owner_name": owner_name,
        "reviewed_at": as_utc(leg.get("reviewed_at")),
        "created_at": as_utc(leg["created_at"]),
        "updated_at": as_utc(leg["updated_at"]),
    }


async def get_leg(leg_id: str) -> dict:
    leg = await _db.db.legs.find_one({"_id": ObjectId(leg_id)})
    if not leg:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Leg not found.")
    return leg


def _require_accepting(week: dict) -> None:
    if not week_service.accepts_submissions(week):
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            f"Week {week['week_number']} is locked; submissions are closed.",
        )


def _require_member_editable(leg: dict, user_id: str) -> None:
    if leg["user_id"] != user_id:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "You can only change your own leg.")
    if not can_member_modify_leg(leg, user_id):
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            "Only pending legs can be changed. Ask the commissioner to revert it.",
        )


# ---------- Member operations ----------

async def create_leg(user: dict, body: LegCreate) -> dict:
    """Submit the caller's one leg for a week (default: the current week)."""
    check = check_leg_input(american_odds=body.american_odds, line=body.line, notes=body.notes)
    raise_for_input(check)

    if body.week_id:
        week = await week_service.get_week(body.week_id)
    else:
        week = await week_service.require_current_week()
    _require_accepting(week)

    american = int(body.american_odds)
    now = utcnow()
    leg_doc = {
        "user_id": user["user_id"],
        "week_id": str(week["_id"]),
        "sport_key": body.sport_key,
        "league": body.league,
        "game_id": body.game_id,
        "game_desc": body.game_desc.strip(),
        "market_key": body.market_key,
        "selection": body.selection.strip(),
        "line": body.line,
        "player_name": body.player_name,
        "prop_type": body.prop_type,
        "prop_category": body.prop_category,
        "american_odds": american,
        "decimal_odds": american_to_decimal(american),
        "source": body.source,
        "bookmaker": body.bookmaker,
        "notes": check.notes,
        "status": LegStatus.PENDING.value,
        "reviewed_by": None,
        "reviewed_at": None,
        "created_at": now,
        "updated_at": now,
    }

    try:
        result = await _db.db.legs.insert_one(leg_doc)
    except DuplicateKeyError as exc:
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            "You have already submitted a leg for this week.",
        ) from exc
    leg_doc["_id"] = result.inserted_id

    logger.info(
        "Leg submitted: user=%s week=%s %s %s",
        user["user_id"], leg_doc["week_id"], leg_doc["selection"], format_odds(american),
    )
    return leg_doc


async def update_own_leg(user: dict, leg_id: str, body: LegUpdate) -> dict:
    """Owner edit while the leg is PENDING and the week still takes submissions."""
    leg = await get_leg(leg_id)
    _require_member_editable(leg, user["user_id"])
    week = await week_service.get_week(leg["week_id"])
    _require_accepting(week)

    fields = body.model_dump(exclude_unset=True)
    odds = fields.get("american_odds")
    odds_kwargs = {"american_odds": odds} if odds is not None else {}
    check = check_leg_input(**odds_kwargs, line=fields.get("line"), notes=fields.get("notes"))
    raise_for_input(check)

    updates: dict = {k: fields[k] for k in _MEMBER_FIELDS if k in fields}
    if odds is not None:
        updates["american_odds"] = int(odds)
        updates["decimal_odds"] = american_to_decimal(int(odds))
    if "notes" in fields:
        updates["notes"] = check.notes
    if not updates:
        return leg
    updates["updated_at"] = utcnow()

    updated = await _db.db.legs.find_one_and_update(
        {"_id": leg["_id"], "user_id": user["user_id"], "status": LegStatus.PENDING.value},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise HTTPException(status.HTTP_409_CONFLICT, "Leg status changed, please refresh.")
    return updated


async def delete_own_leg(user: dict, leg_id: str) -> None:
    leg = await get_leg(leg_id)
    _require_member_editable(leg, user["user_id"])
    week = await week_service.get_week(leg["week_id"])
    _require_accepting(week)

    result = await _db.db.legs.delete_one(
        {"_id": leg["_id"], "user_id": user["user_id"], "status": LegStatus.PENDING.value},
    )
    if result.deleted_count == 0:
        raise HTTPException(status.HTTP_409_CONFLICT, "Leg status changed, please refresh.")
    logger.info("Leg withdrawn by owner: leg=%s user=%s", leg_id, user["user_id"])


# ---------- Commissioner operations ----------

def _clean_admin_notes(notes: Optional[str]) -> Optional[str]:
    check = check_leg_input(notes=notes)
    raise_for_input(check)
    return check.notes


async def _write_status(
    admin: dict,
    leg: dict,
    target: LegStatus,
    notes: Optional[str],
    request: Optional[Request],
    action: str,
) -> dict:
    """Compare-and-set the leg status against the status the decision was based on."""
    current = leg["status"]
    now = utcnow()
    updates = {
        "status": target.value,
        "reviewed_by": admin["user_id"],
        "reviewed_at": now,
        "updated_at": now,
    }
    if notes is not None:
        updates["notes"] = notes

    updated = await _db.db.legs.find_one_and_update(
        {"_id": leg["_id"], "status": current},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise HTTPException(status.HTTP_409_CONFLICT, "Leg status changed, please refresh.")

    await log_audit(
        actor_id=admin["user_id"],
        target_id=str(leg["_id"]),
        action=action,
        metadata={"from": current, "to": target.value, "week_id": leg["week_id"], "notes": notes},
        request=request,
    )
    return updated


async def _apply_admin_status(
    admin: dict,
    leg_id: str,
    target: LegStatus,
    notes: Optional[str],
    request: Optional[Request],
) -> tuple[dict, dict]:
    leg = await get_leg(leg_id)
    current = LegStatus(leg["status"])
    if not can_admin_set_leg_status(current, target):
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            f"Leg cannot move from {current.value} to {target.value}.",
        )
    updated = await _write_status(admin, leg, target, notes, request, "LEG_STATUS_CHANGED")
    return leg, updated


async def set_leg_status(
    admin: dict,
    leg_id: str,
    target: LegStatus,
    notes: Optional[str] = None,
    request: Optional[Request] = None,
) -> dict:
    """Approve, reject, flag or revert a single leg."""
    cleaned = _clean_admin_notes(notes)
    before, updated = await _apply_admin_status(admin, leg_id, target, cleaned, request)

    if affects_parlay(LegStatus(before["status"]), target):
        await parlay_service.recompute_after_write(before["week_id"])
    logger.info("Leg %s: %s -> %s by %s", leg_id, before["status"], target.value, admin["user_id"])
    return updated


async def reopen_leg(
    admin: dict,
    leg_id: str,
    notes: Optional[str] = None,
    request: Optional[Request] = None,
) -> dict:
    """Send a REJECTED or DUPLICATE leg back to PENDING."""
    cleaned = _clean_admin_notes(notes)
    leg = await get_leg(leg_id)
    if not can_reopen_leg(LegStatus(leg["status"])):
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            f"Only rejected or duplicate legs can be reopened (leg is {leg['status']}).",
        )
    updated = await _write_status(admin, leg, LegStatus.PENDING, cleaned, request, "LEG_REOPENED")
    logger.info("Leg %s reopened by %s", leg_id, admin["user_id"])
    return updated


async def batch_set_leg_status(
    admin: dict,
    leg_ids: list[str],
    target: LegStatus,
    notes: Optional[str] = None,
    request: Optional[Request] = None,
) -> dict:
    """Apply one status to many legs, each update independent.

    A failure on one leg never rolls back the others; the result lists
    every leg with its own outcome. After a database error the remaining
    legs are reported as not processed. Each touched week is recomputed
    once, also when the loop stopped early.
    """
    cleaned = _clean_admin_notes(notes)
    unique_ids = list(dict.fromkeys(leg_ids))

    results: list[dict] = []
    weeks_to_recompute: set[str] = set()
    backend_down = False
    for leg_id in unique_ids:
        if backend_down:
            results.append({"leg_id": leg_id, "ok": False, "status": None, "error": BATCH_SKIPPED_ERROR})
            continue
        try:
            before, _ = await _apply_admin_status(admin, leg_id, target, cleaned, request)
        except InvalidId:
            results.append({"leg_id": leg_id, "ok": False, "status": None, "error": "Invalid leg id."})
            continue
        except HTTPException as exc:
            results.append({"leg_id": leg_id, "ok": False, "status": None, "error": str(exc.detail)})
            continue
        except PyMongoError:
            logger.error("Batch %s: database error on leg %s", target.value, leg_id, exc_info=True)
            results.append({"leg_id": leg_id, "ok": False, "status": None, "error": BATCH_DB_ERROR})
            backend_down = True
            continue

        results.append({"leg_id": leg_id, "ok": True, "status": target.value, "error": None})
        if affects_parlay(LegStatus(before["status"]), target):
            weeks_to_recompute.add(before["week_id"])

    stale_weeks: list[str] = []
    for week_id in sorted(weeks_to_recompute):
        try:
            await parlay_service.recompute_parlay(week_id)
        except PyMongoError:
            logger.error("Batch %s: parlay recompute failed for week %s", target.value, week_id, exc_info=True)
            stale_weeks.append(week_id)

    succeeded = sum(1 for r in results if r["ok"])
    failed = len(results) - succeeded
    await log_audit(
        actor_id=admin["user_id"],
        target_id=",".join(unique_ids),
        action="LEG_BATCH_STATUS",
        metadata={
            "to": target.value, "requested": len(unique_ids),
            "succeeded": succeeded, "failed": failed, "stale_parlays": stale_weeks,
        },
        request=request,
    )
    if failed:
        logger.warning("Batch %s: %d/%d legs failed", target.value, failed, len(unique_ids))

    return {
        "requested": len(unique_ids),
        "succeeded": succeeded,
        "failed": failed,
        "results": results,
        "stale_parlays": stale_weeks,
    }


async def admin_delete_leg(admin: dict, leg_id: str, request: Optional[Request] = None) -> None:
    leg = await get_leg(leg_id)
    result = await _db.db.legs.delete_one({"_id": leg["_id"]})
    if result.deleted_count == 0:
        raise HTTPException(status.HTTP_409_CONFLICT, "Leg status changed, please refresh.")

    await log_audit(
        actor_id=admin["user_id"],
        target_id=leg_id,
        action="LEG_DELETED",
        metadata={"status": leg["status"], "week_id": leg["week_id"], "owner": leg["user_id"]},
        request=request,
    )
    logger.info("Leg %s deleted by commissioner %s", leg_id, admin["user_id"])

    if affects_parlay(LegStatus(leg["status"]), None):
        await parlay_service.recompute_after_write(leg["week_id"])


# ---------- Queries ----------

async def list_week_legs(week_id: str, statuses: Optional[list[LegStatus]] = None) -> list[dict]:
    query: dict = {"week_id": week_id}
    if statuses:
        query["status"] = {"$in": [s.value for s in statuses]}
    return await _db.db.legs.find(query).sort("created_at", 1).to_list(length=None)


async def list_review_queue(review_filter: str = "all", week_id: Optional[str] = None) -> list[dict]:
    """Legs awaiting a decision (or the chosen slice), oldest first."""
    statuses = REVIEW_FILTERS.get(review_filter)
    if statuses is None:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            f"Unknown filter '{review_filter}'. Use one of: {', '.join(REVIEW_FILTERS)}.",
        )
    query: dict = {"status": {"$in": [s.value for s in statuses]}}
    if week_id:
        query["week_id"] = week_id
    return await _db.db.legs.find(query).sort("created_at", 1).to_list(length=None)


async def get_user_leg(user_id: str, week_id: str) -> Optional[dict]:
    return await _db.db.legs.find_one({"user_id": user_id, "week_id": week_id})


async def with_owner_names(legs: list[dict]) -> list[dict]:
    """leg_response() rows with the owner's public name attached."""
    owners = await get_public_profiles([leg["user_id"] for leg in legs])
    return [
        leg_response(leg, owners.get(leg["user_id"], {}).get("name"))
        for leg in legs
    ]


async def week_board(week_id: str) -> dict:
    """Every leg of a week with public owner info and submission counts."""
    week = await week_service.get_week(week_id)
    legs = await list_week_legs(str(week["_id"]))
    owners = await get_public_profiles([leg["user_id"] for leg in legs])

    counts = {s.value: 0 for s in LegStatus}
    rows = []
    for leg in legs:
        counts[leg["status"]] = counts.get(leg["status"], 0) + 1
        owner = owners.get(leg["user_id"], {})
        row = leg_response(leg, owner.get("name"))
        row["owner_team"] = owner.get("team_name")
        rows.append(row)

    members = await _db.db.profiles.count_documents({})
    return {
        "week_id": str(week["_id"]),
        "week_number": week["week_number"],
        "status": week["status"],
        "legs": rows,
        "counts": counts,
        "submitted": len(legs),
        "members": members,
    }
