"""Combined parlay for a week: the stored summary and a what-if preview."""

from fastapi import APIRouter, Depends, Query

from app.models.parlay import ParlayResponse
from app.services import parlay_service
from app.services.auth_service import get_current_user

router = APIRouter(prefix="/api/weeks", tags=["parlay"])


@router.get("/{week_id}/parlay", response_model=ParlayResponse)
async def get_parlay(week_id: str, user=Depends(get_current_user)):
    """Approved legs only, as last recomputed."""
    doc = await parlay_service.get_parlay(week_id)
    return parlay_service.format_parlay(doc)


@router.get("/{week_id}/parlay/preview", response_model=ParlayResponse)
async def preview_parlay(
    week_id: str,
    include_pending: bool = Query(True),
    user=Depends(get_current_user),
):
    """Projection that can count pending legs too. Not stored."""
    summary = await parlay_service.preview_parlay(week_id, include_pending=include_pending)
    return parlay_service.format_parlay(summary, include_pending=include_pending)
