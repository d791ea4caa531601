from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator


class Role(str, Enum):
    MEMBER = "MEMBER"
    COMMISSIONER = "COMMISSIONER"


class ProfileInDB(BaseModel):
    """Profile document, keyed by the auth provider's user id."""
    user_id: str
    name: str
    email: str
    team_name: Optional[str] = None
    role: Role = Role.MEMBER
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(BaseModel):
    """Self-service fields. Role changes go through the commissioner endpoint."""
    name: Optional[str] = Field(default=None, max_length=80)
    team_name: Optional[str] = Field(default=None, max_length=80)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Name must not be empty.")
        return v.strip() if v is not None else v


class RoleUpdate(BaseModel):
    role: Role


class ProfileResponse(BaseModel):
    user_id: str
    name: str
    email: str
    team_name: Optional[str] = None
    role: Role
    created_at: datetime


class ProfileActivityResponse(ProfileResponse):
    leg_count: int = 0
    legs_by_status: Dict[str, int] = Field(default_factory=dict)
