"""Cached odds for the leg submission form."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.models.odds import OddsCacheGame
from app.services import odds_cache_service
from app.services.auth_service import get_current_user
from app.utils import as_utc

router = APIRouter(prefix="/api/odds", tags=["odds"])


@router.get("/games", response_model=list[OddsCacheGame])
async def list_games(
    league: Optional[str] = Query(None, description="e.g. AMERICANFOOTBALL NFL"),
    user=Depends(get_current_user),
):
    games = await odds_cache_service.list_games(league)
    return [
        OddsCacheGame(**{
            **{k: v for k, v in g.items() if k != "_id"},
            "game_date": as_utc(g["game_date"]),
            "updated_at": as_utc(g["updated_at"]),
        })
        for g in games
    ]
