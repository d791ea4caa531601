"""Week endpoints for members: current week, history and the week board."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.models.leg import WeekBoardResponse
from app.models.week import WeekResponse
from app.services import leg_service, week_service
from app.services.auth_service import get_current_user

router = APIRouter(prefix="/api/weeks", tags=["weeks"])


async def _with_season(week: dict) -> WeekResponse:
    labels = await week_service.get_season_labels([week.get("season_id")])
    return WeekResponse(**week_service.week_response(week, labels.get(week.get("season_id") or "")))


@router.get("/current", response_model=Optional[WeekResponse])
async def current_week(user=Depends(get_current_user)):
    """The week members are submitting to, with lock countdown. null if none is open."""
    week = await week_service.get_current_week()
    if not week:
        return None
    return await _with_season(week)


@router.get("", response_model=list[WeekResponse])
async def list_weeks(
    limit: int = Query(52, ge=1, le=200),
    user=Depends(get_current_user),
):
    weeks = await week_service.list_weeks(limit)
    labels = await week_service.get_season_labels([w.get("season_id") for w in weeks])
    return [
        WeekResponse(**week_service.week_response(w, labels.get(w.get("season_id") or "")))
        for w in weeks
    ]


@router.get("/{week_id}", response_model=WeekResponse)
async def get_week(week_id: str, user=Depends(get_current_user)):
    week = await week_service.get_week(week_id)
    return await _with_season(week)


@router.get("/{week_id}/board", response_model=WeekBoardResponse)
async def week_board(week_id: str, user=Depends(get_current_user)):
    """Everyone's legs for the week. Other members' emails are never included."""
    return await leg_service.week_board(week_id)
