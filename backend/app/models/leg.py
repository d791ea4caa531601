"""Leg (one member's weekly bet) data models."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class LegStatus(str, Enum):
    PENDING = "PENDING"       # Initial; owner may still edit or delete
    OK = "OK"                 # Approved, counts toward the parlay
    DUPLICATE = "DUPLICATE"   # Same pick as another member
    CONFLICT = "CONFLICT"     # Contradicts another leg, needs a decision
    REJECTED = "REJECTED"


# ---------- MongoDB documents ----------

class LegInDB(BaseModel):
    """Full leg document as stored in MongoDB.

    decimal_odds is always american_to_decimal(american_odds), computed
    server-side; clients never supply it.
    """
    user_id: str
    week_id: str
    sport_key: str
    league: str
    game_id: Optional[str] = None                 # odds_cache.external_game_id
    game_desc: str                                # "Chiefs vs Bills"
    market_key: str                               # h2h | spreads | totals | player_*
    selection: str
    line: Optional[float] = None
    player_name: Optional[str] = None
    prop_type: Optional[str] = None
    prop_category: Optional[str] = None
    american_odds: int
    decimal_odds: float
    source: str = "manual"
    bookmaker: str = "DraftKings"
    notes: Optional[str] = None                   # HTML-stripped, <= 500 chars
    status: LegStatus = LegStatus.PENDING
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# ---------- Request / Response models ----------

class LegCreate(BaseModel):
    """Member submission. week_id defaults to the current week.

    Odds and line arrive as plain numbers and are range-checked by
    check_leg_input() so the error can name the field precisely.
    """
    week_id: Optional[str] = None
    sport_key: str = Field(min_length=1, max_length=64)
    league: str = Field(min_length=1, max_length=64)
    game_id: Optional[str] = None
    game_desc: str = Field(min_length=1, max_length=200)
    market_key: str = Field(min_length=1, max_length=64)
    selection: str = Field(min_length=1, max_length=200)
    line: Optional[float] = None
    player_name: Optional[str] = Field(default=None, max_length=100)
    prop_type: Optional[str] = Field(default=None, max_length=64)
    prop_category: Optional[str] = Field(default=None, max_length=64)
    american_odds: float
    source: str = "manual"
    bookmaker: str = "DraftKings"
    notes: Optional[str] = None


class LegUpdate(BaseModel):
    """Owner edit of a PENDING leg. Omitted fields stay unchanged."""
    game_desc: Optional[str] = Field(default=None, min_length=1, max_length=200)
    market_key: Optional[str] = Field(default=None, min_length=1, max_length=64)
    selection: Optional[str] = Field(default=None, min_length=1, max_length=200)
    line: Optional[float] = None
    player_name: Optional[str] = Field(default=None, max_length=100)
    prop_category: Optional[str] = Field(default=None, max_length=64)
    american_odds: Optional[float] = None
    bookmaker: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("game_desc", "market_key", "selection", "bookmaker")
    @classmethod
    def not_cleared(cls, v: Optional[str]) -> Optional[str]:
        # Omit a field to keep it; null or blank would erase a required leg field
        if v is None or not v.strip():
            raise ValueError("This field cannot be cleared.")
        return v.strip()


class LegStatusUpdate(BaseModel):
    status: LegStatus
    notes: Optional[str] = None


class LegReopen(BaseModel):
    notes: Optional[str] = None


class BatchLegStatusUpdate(BaseModel):
    leg_ids: List[str] = Field(min_length=1, max_length=200)
    status: LegStatus
    notes: Optional[str] = None


class BatchLegResult(BaseModel):
    leg_id: str
    ok: bool
    status: Optional[LegStatus] = None
    error: Optional[str] = None


class BatchLegStatusResponse(BaseModel):
    requested: int
    succeeded: int
    failed: int
    results: List[BatchLegResult]
    stale_parlays: List[str] = Field(default_factory=list)   # Week ids whose recompute failed


class LegResponse(BaseModel):
    id: str
    user_id: str
    week_id: str
    sport_key: str
    league: str
    game_id: Optional[str] = None
    game_desc: str
    market_key: str
    selection: str
    line: Optional[float] = None
    player_name: Optional[str] = None
    prop_type: Optional[str] = None
    prop_category: Optional[str] = None
    american_odds: int
    decimal_odds: float
    odds_display: str
    description: str
    bet_category: str
    source: str
    bookmaker: str
    notes: Optional[str] = None
    status: LegStatus
    owner_name: Optional[str] = None
    owner_team: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class WeekBoardResponse(BaseModel):
    """All legs of a week as other members see them."""
    week_id: str
    week_number: int
    status: str
    legs: List[LegResponse]
    counts: Dict[str, int]
    submitted: int
    members: int
