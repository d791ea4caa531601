"""Parlay summary models. A parlay is a projection over a week's OK legs."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ParlayLegSummary(BaseModel):
    leg_id: str
    user_id: str
    description: str
    american_odds: int
    decimal_odds: float
    status: str


class ParlayInDB(BaseModel):
    """Cached projection. Overwritten on every recompute, never hand-edited."""
    week_id: str
    combined_decimal: float
    combined_american: Optional[int] = None   # None while no legs are included
    stake_amount: int                         # Cents, copied from the week
    projected_payout: int                     # Cents
    legs_count: int
    summary_json: Dict[str, Any] = Field(default_factory=dict)
    computed_at: datetime
    created_at: datetime
    updated_at: datetime


class ParlayResponse(BaseModel):
    week_id: str
    combined_decimal: float
    combined_american: Optional[int] = None
    combined_odds_display: str
    stake_amount: int
    stake_display: str
    projected_payout: int
    payout_display: str
    legs_count: int
    legs: List[ParlayLegSummary] = Field(default_factory=list)
    include_pending: bool = False
    computed_at: datetime
