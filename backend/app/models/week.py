"""Week (betting round) data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class WeekStatus(str, Enum):
    OPEN = "OPEN"            # Accepting leg submissions
    LOCKED = "LOCKED"        # Submissions closed, commissioner reviewing
    FINALIZED = "FINALIZED"  # Terminal, finalized_at stamped


# ---------- MongoDB documents ----------

class SeasonInDB(BaseModel):
    label: str                          # "2026 NFL"
    league: str
    start_date: datetime
    end_date: datetime
    created_at: datetime


class WeekInDB(BaseModel):
    """One betting round. finalized_at is set iff status is FINALIZED."""
    season_id: Optional[str] = None
    week_number: int
    status: WeekStatus = WeekStatus.OPEN
    opens_at: datetime
    locks_at: datetime
    finalized_at: Optional[datetime] = None
    stake_amount: int                   # Cents
    created_at: datetime
    updated_at: datetime


# ---------- API request/response models ----------

class WeekCreate(BaseModel):
    season_id: Optional[str] = None
    week_number: int = Field(ge=1, le=99)
    opens_at: Optional[datetime] = None   # Default: now
    locks_at: Optional[datetime] = None   # Default: next Sunday noon league time
    stake_amount: Optional[int] = Field(default=None, ge=0)
    status: WeekStatus = WeekStatus.OPEN


class WeekStatusUpdate(BaseModel):
    status: WeekStatus


class LockTimeUpdate(BaseModel):
    locks_at: Optional[datetime] = None   # None = next Sunday noon


class WeekResponse(BaseModel):
    id: str
    season_id: Optional[str] = None
    season_label: Optional[str] = None
    week_number: int
    status: WeekStatus
    opens_at: datetime
    locks_at: datetime
    finalized_at: Optional[datetime] = None
    stake_amount: int
    stake_display: str
    lock_display: str
    time_until_lock: str
    accepting_submissions: bool = False
