"""
backend/app/services/parlay_service.py

Purpose:
    Combined-parlay projection for a week. The stored parlay document is a
    cache: it is rebuilt from scratch from the week's OK legs whenever the
    included leg set changes, and upserted on week_id.

Dependencies:
    - app.database
    - app.services.leg_lifecycle
    - app.utils.odds_utils
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from bson import ObjectId
from fastapi import HTTPException, status
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

import app.database as _db
from app.config import settings
from app.models.leg import LegStatus
from app.services.leg_lifecycle import included_statuses
from app.utils import as_utc, utcnow
from app.utils.odds_utils import (
    american_to_decimal,
    decimal_to_american,
    format_combined_odds,
    format_currency,
    parlay_decimal,
    parlay_payout,
)
from app.utils.prop_utils import format_leg_description

logger = logging.getLogger("parlay.parlay_service")


def build_parlay_summary(
    week: dict,
    legs: Iterable[dict],
    include_pending: bool = False,
    now: Optional[datetime] = None,
) -> dict:
    """Pure projection over a week's legs.

    Only OK legs count (OK + PENDING when include_pending). Decimal odds are
    derived from american_odds here, stored decimal_odds are not trusted.
    """
    allowed = {s.value for s in included_statuses(include_pending)}
    included = [leg for leg in legs if leg.get("status") in allowed]
    included.sort(key=lambda leg: (as_utc(leg.get("created_at")) or utcnow(), str(leg.get("_id"))))

    decimals = [american_to_decimal(int(leg["american_odds"])) for leg in included]
    combined = parlay_decimal(decimals)
    combined_american = decimal_to_american(combined) if included else None
    stake_amount = int(week.get("stake_amount", settings.DEFAULT_STAKE_CENTS))
    payout = parlay_payout(stake_amount, combined)

    leg_rows = [
        {
            "leg_id": str(leg["_id"]),
            "user_id": leg["user_id"],
            "description": format_leg_description(leg),
            "american_odds": int(leg["american_odds"]),
            "decimal_odds": dec,
            "status": leg["status"],
        }
        for leg, dec in zip(included, decimals)
    ]
    return {
        "week_id": str(week["_id"]),
        "combined_decimal": combined,
        "combined_american": combined_american,
        "stake_amount": stake_amount,
        "projected_payout": payout,
        "legs_count": len(included),
        "legs": leg_rows,
        "computed_at": now or utcnow(),
    }


async def _load_week(week_id: str) -> dict:
    week = await _db.db.weeks.find_one({"_id": ObjectId(week_id)})
    if not week:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Week not found.")
    return week


async def _week_legs(week_id: str, statuses: Iterable[LegStatus]) -> list[dict]:
    return await _db.db.legs.find({
        "week_id": week_id,
        "status": {"$in": [s.value for s in statuses]},
    }).to_list(length=None)


async def recompute_parlay(week_id: str) -> dict:
    """Rebuild the cached parlay for a week and upsert it. Idempotent."""
    week = await _load_week(week_id)
    legs = await _week_legs(week_id, included_statuses(False))
    now = utcnow()
    summary = build_parlay_summary(week, legs, now=now)

    doc = await _db.db.parlays.find_one_and_update(
        {"week_id": week_id},
        {
            "$set": {
                "combined_decimal": summary["combined_decimal"],
                "combined_american": summary["combined_american"],
                "stake_amount": summary["stake_amount"],
                "projected_payout": summary["projected_payout"],
                "legs_count": summary["legs_count"],
                "summary_json": {"legs": summary["legs"]},
                "computed_at": now,
                "updated_at": now,
            },
            "$setOnInsert": {"week_id": week_id, "created_at": now},
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    logger.info(
        "Parlay recomputed: week=%s legs=%d combined=%.4f payout=%d",
        week_id, summary["legs_count"], summary["combined_decimal"], summary["projected_payout"],
    )
    return doc


async def recompute_after_write(week_id: str) -> None:
    """Recompute after a leg or week write that already succeeded.

    A database failure here leaves the cached parlay stale; the caller gets
    a 503 naming that, and the commissioner recompute endpoint repairs it.
    """
    try:
        await recompute_parlay(week_id)
    except PyMongoError as exc:
        logger.error("Parlay recompute failed after write: week=%s", week_id, exc_info=True)
        raise HTTPException(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "The change was saved but the parlay could not be recomputed. Please retry.",
        ) from exc


async def get_parlay(week_id: str) -> dict:
    """Cached parlay for a week, computed on first read."""
    doc = await _db.db.parlays.find_one({"week_id": week_id})
    if doc is None:
        doc = await recompute_parlay(week_id)
    return doc


async def preview_parlay(week_id: str, include_pending: bool = True) -> dict:
    """What-if projection straight from the legs. Never written back."""
    week = await _load_week(week_id)
    legs = await _week_legs(week_id, included_statuses(include_pending))
    return build_parlay_summary(week, legs, include_pending=include_pending)


def format_parlay(doc: dict, include_pending: bool = False) -> dict:
    """Shape a stored parlay (or a preview summary) for the API."""
    legs = doc.get("legs")
    if legs is None:
        legs = (doc.get("summary_json") or {}).get("legs", [])
    combined_american: Optional[int] = doc.get("combined_american")
    return {
        "week_id": doc["week_id"],
        "combined_decimal": round(doc["combined_decimal"], 4),
        "combined_american": combined_american,
        "combined_odds_display": format_combined_odds(combined_american),
        "stake_amount": doc["stake_amount"],
        "stake_display": format_currency(doc["stake_amount"]),
        "projected_payout": doc["projected_payout"],
        "payout_display": format_currency(doc["projected_payout"]),
        "legs_count": doc["legs_count"],
        "legs": legs,
        "include_pending": include_pending,
        "computed_at": as_utc(doc["computed_at"]),
    }
