"""Member leg endpoints: submit, edit and withdraw one leg per week."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.models.leg import LegCreate, LegResponse, LegUpdate
from app.services import leg_service, week_service
from app.services.auth_service import get_current_user

router = APIRouter(prefix="/api/legs", tags=["legs"])


@router.get("/mine", response_model=Optional[LegResponse])
async def my_leg(
    week_id: Optional[str] = Query(None),
    user=Depends(get_current_user),
):
    """Caller's leg for a week (default: current week). null when not submitted."""
    if week_id is None:
        week = await week_service.get_current_week()
        if not week:
            return None
        week_id = str(week["_id"])
    leg = await leg_service.get_user_leg(user["user_id"], week_id)
    if not leg:
        return None
    return leg_service.leg_response(leg, user.get("name"))


@router.post("", response_model=LegResponse, status_code=status.HTTP_201_CREATED)
async def create_leg(body: LegCreate, user=Depends(get_current_user)):
    leg = await leg_service.create_leg(user, body)
    return leg_service.leg_response(leg, user.get("name"))


@router.patch("/{leg_id}", response_model=LegResponse)
async def update_leg(leg_id: str, body: LegUpdate, user=Depends(get_current_user)):
    """Edit while PENDING and before the lock."""
    leg = await leg_service.update_own_leg(user, leg_id, body)
    return leg_service.leg_response(leg, user.get("name"))


@router.delete("/{leg_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leg(leg_id: str, user=Depends(get_current_user)):
    await leg_service.delete_own_leg(user, leg_id)
