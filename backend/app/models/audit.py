from datetime import datetime

from pydantic import BaseModel, Field


class AuditLog(BaseModel):
    """Insert-only record of a commissioner action (status changes, roles, weeks)."""

    timestamp: datetime
    actor_id: str  # Profile user_id of the commissioner, or "SYSTEM"
    target_id: str  # Leg id, week id or user id
    action: str  # e.g. "LEG_STATUS_CHANGED", "WEEK_FINALIZED"
    metadata: dict = Field(default_factory=dict)  # from/to status, notes, counts
    ip_truncated: str = ""  # e.g. "192.168.1.xxx"
