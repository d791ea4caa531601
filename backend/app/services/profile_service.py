"""
backend/app/services/profile_service.py

Purpose:
    League member profiles: creation on first sign-in, self-service edits,
    commissioner role changes and per-member activity counts.

Dependencies:
    - app.database
    - app.services.audit_service
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from pymongo import ReturnDocument

import app.database as _db
from app.models.profile import Role
from app.services.audit_service import log_audit
from app.utils import utcnow

logger = logging.getLogger("parlay.profile_service")


def _display_name(claims: dict) -> str:
    meta = claims.get("user_metadata") or {}
    name = meta.get("name") or meta.get("full_name") or claims.get("name")
    if name:
        return str(name).strip()
    email = claims.get("email") or ""
    return email.split("@")[0] or "Member"


async def ensure_profile(claims: dict) -> dict:
    """Return the caller's profile, creating a MEMBER profile on first sign-in."""
    now = utcnow()
    user_id = str(claims["sub"])
    result = await _db.db.profiles.update_one(
        {"user_id": user_id},
        {"$setOnInsert": {
            "user_id": user_id,
            "name": _display_name(claims),
            "email": claims.get("email") or "",
            "team_name": None,
            "role": Role.MEMBER.value,
            "created_at": now,
            "updated_at": now,
        }},
        upsert=True,
    )
    if result.upserted_id is not None:
        logger.info("Profile created on first sign-in: user=%s", user_id)
    return await get_profile(user_id)


async def get_profile(user_id: str) -> dict:
    profile = await _db.db.profiles.find_one({"user_id": user_id})
    if not profile:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Member not found.")
    return profile


async def update_own_profile(
    user_id: str, name: Optional[str] = None, team_name: Optional[str] = None,
) -> dict:
    """Members may change their display name and team name, nothing else."""
    updates: dict = {}
    if name is not None:
        updates["name"] = name
    if team_name is not None:
        updates["team_name"] = team_name.strip() or None
    if not updates:
        return await get_profile(user_id)

    updates["updated_at"] = utcnow()
    profile = await _db.db.profiles.find_one_and_update(
        {"user_id": user_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    if not profile:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Member not found.")
    return profile


async def set_role(
    admin: dict, user_id: str, role: Role, request: Optional[Request] = None,
) -> dict:
    """Commissioner promotes or demotes a member."""
    if user_id == admin["user_id"] and role != Role.COMMISSIONER:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            "You cannot remove your own commissioner role.",
        )

    previous = await get_profile(user_id)
    profile = await _db.db.profiles.find_one_and_update(
        {"user_id": user_id},
        {"$set": {"role": role.value, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not profile:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Member not found.")

    await log_audit(
        actor_id=admin["user_id"],
        target_id=user_id,
        action="PROFILE_ROLE_CHANGED",
        metadata={"from": previous.get("role"), "to": role.value},
        request=request,
    )
    logger.info("Role changed: user=%s %s -> %s by %s",
                user_id, previous.get("role"), role.value, admin["user_id"])
    return profile


async def get_public_profiles(user_ids: list[str]) -> dict[str, dict]:
    """user_id -> {name, team_name}. Email never leaves this function."""
    if not user_ids:
        return {}
    rows = await _db.db.profiles.find(
        {"user_id": {"$in": list(set(user_ids))}},
        {"user_id": 1, "name": 1, "team_name": 1},
    ).to_list(length=None)
    return {
        r["user_id"]: {"name": r.get("name") or "Unknown User", "team_name": r.get("team_name")}
        for r in rows
    }


async def list_profiles_with_activity() -> list[dict]:
    """All members with their leg counts grouped by status."""
    profiles = await _db.db.profiles.find().sort("name", 1).to_list(length=None)

    pipeline = [
        {"$group": {
            "_id": {"user_id": "$user_id", "status": "$status"},
            "count": {"$sum": 1},
        }},
    ]
    counts: dict[str, dict[str, int]] = {}
    rows = await _db.db.legs.aggregate(pipeline).to_list(length=None)
    for row in rows:
        key = row["_id"]
        counts.setdefault(key["user_id"], {})[key["status"]] = row["count"]

    out = []
    for p in profiles:
        by_status = counts.get(p["user_id"], {})
        out.append({
            **p,
            "legs_by_status": by_status,
            "leg_count": sum(by_status.values()),
        })
    return out
