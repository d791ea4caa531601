"""
backend/tests/test_profile_auth.py

Purpose:
    Token verification (bearer/cookie, secret rotation), profile creation on
    first sign-in, commissioner gating and role changes.
"""

from __future__ import annotations

import sys
from types import SimpleNamespace

import jwt
import pytest
from bson import ObjectId
from fastapi import HTTPException

sys.path.insert(0, "backend")

import app.database as _db
from app.models.profile import Role
from app.services import auth_service, profile_service
from fake_mongo import FakeCollection, fake_db

SECRET = "test-secret-0123456789abcdef0123456789"


def _token(sub: str = "user-1", secret: str = SECRET, **claims) -> str:
    return jwt.encode({"sub": sub, "email": f"{sub}@example.com", **claims}, secret, algorithm="HS256")


def _request(token: str | None = None, cookie: str | None = None):
    headers = {"authorization": f"Bearer {token}"} if token else {}
    cookies = {"access_token": cookie} if cookie else {}
    return SimpleNamespace(headers=headers, cookies=cookies, client=None)


@pytest.fixture
def db(monkeypatch):
    fake = fake_db()
    monkeypatch.setattr(_db, "db", fake, raising=False)
    monkeypatch.setattr(auth_service.settings, "JWT_SECRET", SECRET)
    monkeypatch.setattr(auth_service.settings, "JWT_SECRET_OLD", "")
    monkeypatch.setattr(auth_service.settings, "JWT_AUDIENCE", "")
    return fake


# ---------- auth ----------

@pytest.mark.asyncio
async def test_first_sign_in_creates_member_profile_once(db):
    token = _token(user_metadata={"name": "Alice Doe"})

    first = await auth_service.get_current_user(_request(token))
    second = await auth_service.get_current_user(_request(token))

    assert first["role"] == "MEMBER"
    assert first["name"] == "Alice Doe"
    assert second["_id"] == first["_id"]
    assert len(db.profiles.docs) == 1


@pytest.mark.asyncio
async def test_cookie_token_accepted(db):
    user = await auth_service.get_current_user(_request(cookie=_token("bob")))
    assert user["user_id"] == "bob"
    assert user["name"] == "bob"


@pytest.mark.asyncio
async def test_missing_and_forged_tokens_rejected(db):
    with pytest.raises(HTTPException) as exc:
        await auth_service.get_current_user(_request())
    assert exc.value.status_code == 401

    with pytest.raises(HTTPException) as exc:
        await auth_service.get_current_user(_request(_token(secret="someone-else-0123456789abcdef0123456789")))
    assert exc.value.status_code == 401
    assert db.profiles.docs == []


@pytest.mark.asyncio
async def test_old_secret_still_valid_during_rotation(db, monkeypatch):
    monkeypatch.setattr(auth_service.settings, "JWT_SECRET", "new-secret-0123456789abcdef0123456789")
    monkeypatch.setattr(auth_service.settings, "JWT_SECRET_OLD", SECRET)

    user = await auth_service.get_current_user(_request(_token("carol")))
    assert user["user_id"] == "carol"


@pytest.mark.asyncio
async def test_commissioner_gate(db):
    with pytest.raises(HTTPException) as exc:
        await auth_service.get_commissioner_user(_request(_token("member")))
    assert exc.value.status_code == 403

    db.profiles.docs.append({
        "_id": ObjectId(), "user_id": "commish", "name": "Commish", "email": "", "team_name": None,
        "role": Role.COMMISSIONER.value,
    })
    user = await auth_service.get_commissioner_user(_request(_token("commish")))
    assert user["role"] == "COMMISSIONER"


# ---------- profiles ----------

@pytest.mark.asyncio
async def test_member_updates_own_name_and_team(db):
    await profile_service.ensure_profile({"sub": "alice", "email": "alice@example.com"})

    profile = await profile_service.update_own_profile("alice", name="Alice", team_name="  ")
    assert profile["name"] == "Alice"
    assert profile["team_name"] is None
    assert profile["role"] == "MEMBER"


@pytest.mark.asyncio
async def test_commissioner_cannot_demote_self(db):
    admin = {"user_id": "commish"}
    with pytest.raises(HTTPException) as exc:
        await profile_service.set_role(admin, "commish", Role.MEMBER)
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_promotion_is_audited(db):
    await profile_service.ensure_profile({"sub": "alice", "email": "alice@example.com"})

    profile = await profile_service.set_role({"user_id": "commish"}, "alice", Role.COMMISSIONER)

    assert profile["role"] == "COMMISSIONER"
    entry = db.audit_logs.docs[-1]
    assert entry["action"] == "PROFILE_ROLE_CHANGED"
    assert entry["metadata"] == {"from": "MEMBER", "to": "COMMISSIONER"}


@pytest.mark.asyncio
async def test_role_change_for_unknown_member(db):
    with pytest.raises(HTTPException) as exc:
        await profile_service.set_role({"user_id": "commish"}, "ghost", Role.MEMBER)
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_public_profiles_hide_email(db):
    db.profiles = FakeCollection([
        {"user_id": "a", "name": "Alice", "email": "a@example.com", "team_name": "Sharks"},
        {"user_id": "b", "name": "", "email": "b@example.com", "team_name": None},
    ])
    out = await profile_service.get_public_profiles(["a", "b", "a"])
    assert out == {
        "a": {"name": "Alice", "team_name": "Sharks"},
        "b": {"name": "Unknown User", "team_name": None},
    }


class _Aggregate:
    def __init__(self, rows):
        self._rows = rows

    async def to_list(self, length=None):
        return list(self._rows)


@pytest.mark.asyncio
async def test_activity_counts_per_status(db):
    db.profiles = FakeCollection([
        {"user_id": "a", "name": "Alice", "email": "", "role": "MEMBER"},
        {"user_id": "b", "name": "Bob", "email": "", "role": "MEMBER"},
    ])
    rows = [
        {"_id": {"user_id": "a", "status": "OK"}, "count": 3},
        {"_id": {"user_id": "a", "status": "REJECTED"}, "count": 1},
    ]
    db.legs = SimpleNamespace(aggregate=lambda pipeline: _Aggregate(rows))

    out = await profile_service.list_profiles_with_activity()
    by_user = {p["user_id"]: p for p in out}
    assert by_user["a"]["leg_count"] == 4
    assert by_user["a"]["legs_by_status"] == {"OK": 3, "REJECTED": 1}
    assert by_user["b"]["leg_count"] == 0
