"""
backend/app/routers/admin.py

Purpose:
    Commissioner HTTP router: leg review (single, batch, reopen, delete),
    week lifecycle and lock time, parlay recompute, member roles and the
    manual odds-cache refresh.

Dependencies:
    - app.services.auth_service
    - app.services.leg_service
    - app.services.week_service
    - app.services.parlay_service
    - app.services.profile_service
    - app.services.odds_cache_service
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from app.models.leg import (
    BatchLegStatusResponse,
    BatchLegStatusUpdate,
    LegReopen,
    LegResponse,
    LegStatusUpdate,
)
from app.models.odds import OddsRefreshResponse
from app.models.parlay import ParlayResponse
from app.models.profile import ProfileActivityResponse, ProfileResponse, RoleUpdate
from app.models.week import LockTimeUpdate, WeekCreate, WeekResponse, WeekStatusUpdate
from app.services import (
    leg_service,
    odds_cache_service,
    parlay_service,
    profile_service,
    week_service,
)
from app.services.auth_service import get_commissioner_user

logger = logging.getLogger("parlay.admin")
router = APIRouter(prefix="/api/admin", tags=["admin"])


# ---------- Legs ----------

@router.get("/legs", response_model=list[LegResponse])
async def review_queue(
    filter: str = Query("all", description="all | pending | conflict | approved | all_statuses"),
    week_id: Optional[str] = Query(None),
    admin=Depends(get_commissioner_user),
):
    """Legs awaiting a decision (PENDING and CONFLICT by default), oldest first."""
    legs = await leg_service.list_review_queue(filter, week_id)
    return await leg_service.with_owner_names(legs)


@router.patch("/legs/{leg_id}/status", response_model=LegResponse)
async def set_leg_status(
    leg_id: str,
    body: LegStatusUpdate,
    request: Request,
    admin=Depends(get_commissioner_user),
):
    leg = await leg_service.set_leg_status(admin, leg_id, body.status, body.notes, request)
    rows = await leg_service.with_owner_names([leg])
    return rows[0]


@router.post("/legs/{leg_id}/reopen", response_model=LegResponse)
async def reopen_leg(
    leg_id: str,
    body: LegReopen,
    request: Request,
    admin=Depends(get_commissioner_user),
):
    """REJECTED or DUPLICATE back to PENDING."""
    leg = await leg_service.reopen_leg(admin, leg_id, body.notes, request)
    rows = await leg_service.with_owner_names([leg])
    return rows[0]


@router.post("/legs/batch-status", response_model=BatchLegStatusResponse)
async def batch_leg_status(
    body: BatchLegStatusUpdate,
    request: Request,
    admin=Depends(get_commissioner_user),
):
    """Per-leg outcomes; one failing leg does not undo the others."""
    return await leg_service.batch_set_leg_status(
        admin, body.leg_ids, body.status, body.notes, request,
    )


@router.delete("/legs/{leg_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leg(leg_id: str, request: Request, admin=Depends(get_commissioner_user)):
    await leg_service.admin_delete_leg(admin, leg_id, request)


# ---------- Weeks ----------

@router.post("/weeks", response_model=WeekResponse, status_code=status.HTTP_201_CREATED)
async def create_week(body: WeekCreate, request: Request, admin=Depends(get_commissioner_user)):
    week = await week_service.create_week(
        admin,
        week_number=body.week_number,
        season_id=body.season_id,
        opens_at=body.opens_at,
        locks_at=body.locks_at,
        stake_amount=body.stake_amount,
        initial_status=body.status,
        request=request,
    )
    return week_service.week_response(week)


@router.patch("/weeks/{week_id}/status", response_model=WeekResponse)
async def set_week_status(
    week_id: str,
    body: WeekStatusUpdate,
    request: Request,
    admin=Depends(get_commissioner_user),
):
    """Lock, reopen or finalize a week."""
    week = await week_service.transition_week(admin, week_id, body.status, request)
    return week_service.week_response(week)


@router.patch("/weeks/{week_id}/lock-time", response_model=WeekResponse)
async def set_lock_time(
    week_id: str,
    body: LockTimeUpdate,
    request: Request,
    admin=Depends(get_commissioner_user),
):
    """Explicit deadline, or next Sunday noon league time when locks_at is omitted."""
    week = await week_service.set_lock_time(admin, week_id, body.locks_at, request)
    return week_service.week_response(week)


@router.post("/weeks/{week_id}/parlay/recompute", response_model=ParlayResponse)
async def recompute_parlay(week_id: str, admin=Depends(get_commissioner_user)):
    doc = await parlay_service.recompute_parlay(week_id)
    return parlay_service.format_parlay(doc)


# ---------- Members ----------

@router.get("/users", response_model=list[ProfileActivityResponse])
async def list_users(admin=Depends(get_commissioner_user)):
    return await profile_service.list_profiles_with_activity()


@router.patch("/users/{user_id}/role", response_model=ProfileResponse)
async def set_user_role(
    user_id: str,
    body: RoleUpdate,
    request: Request,
    admin=Depends(get_commissioner_user),
):
    return await profile_service.set_role(admin, user_id, body.role, request)


# ---------- Odds cache ----------

@router.post("/odds/refresh", response_model=OddsRefreshResponse)
async def refresh_odds(admin=Depends(get_commissioner_user)):
    logger.info("Manual odds refresh by %s", admin["user_id"])
    return await odds_cache_service.refresh_odds_cache()
