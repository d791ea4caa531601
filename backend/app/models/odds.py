"""Odds cache rows (one per upcoming game, American odds)."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class OddsCacheGame(BaseModel):
    external_game_id: str
    sport: str
    league: str
    game_date: datetime
    team_a: str                                 # Home
    team_b: str                                 # Away
    moneyline_home: Optional[int] = None
    moneyline_away: Optional[int] = None
    spread_home: Optional[float] = None
    spread_home_odds: Optional[int] = None
    spread_away: Optional[float] = None
    spread_away_odds: Optional[int] = None
    total_over: Optional[float] = None
    total_over_odds: Optional[int] = None
    total_under: Optional[float] = None
    total_under_odds: Optional[int] = None
    updated_at: datetime


class OddsRefreshResponse(BaseModel):
    games_processed: int
    purged: int
    api_success: bool
