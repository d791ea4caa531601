"""
backend/tests/test_week_service.py

Purpose:
    Current-week resolution contract, week creation rules and lifecycle
    transitions (compare-and-set, finalized_at, single OPEN week).
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from bson import ObjectId
from fastapi import HTTPException

sys.path.insert(0, "backend")

import app.database as _db
from app.models.week import WeekStatus
from app.services import week_service
from fake_mongo import fake_db, week_collection

ADMIN = {"user_id": "commish", "role": "COMMISSIONER", "name": "Commish"}
NOW = datetime(2026, 10, 21, 15, 0, tzinfo=timezone.utc)


def _week(number: int, status: str = "OPEN", opens_days: int = -2, locks_days: int = 4, **extra) -> dict:
    doc = {
        "_id": ObjectId(),
        "season_id": "s1",
        "week_number": number,
        "status": status,
        "opens_at": NOW + timedelta(days=opens_days),
        "locks_at": NOW + timedelta(days=locks_days),
        "finalized_at": None,
        "stake_amount": 13000,
        "created_at": NOW,
        "updated_at": NOW,
    }
    doc.update(extra)
    return doc


@pytest.fixture
def db(monkeypatch):
    fake = fake_db()
    monkeypatch.setattr(_db, "db", fake, raising=False)
    return fake


# ---------- get_current_week ----------

@pytest.mark.asyncio
async def test_current_week_prefers_open_window_containing_now(db):
    in_window = _week(7, opens_days=-1, locks_days=3)
    # Legacy data: a second OPEN week that opened later but whose window already closed
    stale = _week(8, opens_days=-0.5, locks_days=-0.1)
    db.weeks = week_collection([in_window, stale])

    current = await week_service.get_current_week(NOW)
    assert current["_id"] == in_window["_id"]


@pytest.mark.asyncio
async def test_current_week_falls_back_to_most_recently_opened(db):
    older = _week(5, opens_days=-10, locks_days=-5)
    newer = _week(6, opens_days=-3, locks_days=-1)
    db.weeks = week_collection([older, newer, _week(9, status="LOCKED")])

    current = await week_service.get_current_week(NOW)
    assert current["_id"] == newer["_id"]


@pytest.mark.asyncio
async def test_current_week_tie_breaks_on_id(db):
    first = _week(3, opens_days=-1, locks_days=2)
    second = _week(4, opens_days=-1, locks_days=2)
    assert second["_id"] > first["_id"]
    db.weeks = week_collection([first, second])

    current = await week_service.get_current_week(NOW)
    assert current["_id"] == second["_id"]


@pytest.mark.asyncio
async def test_no_open_week_means_no_current_week(db):
    db.weeks = week_collection([_week(1, status="LOCKED"), _week(2, status="FINALIZED")])

    assert await week_service.get_current_week(NOW) is None
    with pytest.raises(HTTPException) as exc:
        await week_service.require_current_week(NOW)
    assert exc.value.status_code == 404
    assert exc.value.detail == "No week is currently open for submissions."


def test_accepts_submissions_needs_open_status_and_future_lock():
    assert week_service.accepts_submissions(_week(1), NOW)
    assert not week_service.accepts_submissions(_week(1, status="LOCKED"), NOW)
    assert not week_service.accepts_submissions(_week(1, locks_days=-0.01), NOW)


# ---------- create_week ----------

@pytest.mark.asyncio
async def test_create_week_defaults(db):
    week = await week_service.create_week(ADMIN, week_number=1)

    assert week["status"] == "OPEN"
    assert week["stake_amount"] == 13000
    assert week["locks_at"] > week["opens_at"]
    assert week["locks_at"] == week_service.next_lock_time(week["opens_at"])
    assert len(db.weeks.docs) == 1
    assert db.audit_logs.docs[-1]["action"] == "WEEK_CREATED"


@pytest.mark.asyncio
async def test_create_second_open_week_conflicts(db):
    await week_service.create_week(ADMIN, week_number=1)
    with pytest.raises(HTTPException) as exc:
        await week_service.create_week(ADMIN, week_number=2)
    assert exc.value.status_code == 409
    assert "already open" in exc.value.detail


@pytest.mark.asyncio
async def test_create_locked_week_alongside_open_one(db):
    await week_service.create_week(ADMIN, week_number=1)
    week = await week_service.create_week(ADMIN, week_number=2, initial_status=WeekStatus.LOCKED)
    assert week["status"] == "LOCKED"


@pytest.mark.asyncio
async def test_create_week_rejects_lock_before_open(db):
    with pytest.raises(HTTPException) as exc:
        await week_service.create_week(
            ADMIN, week_number=1, opens_at=NOW, locks_at=NOW - timedelta(hours=1),
        )
    assert exc.value.status_code == 422
    assert exc.value.detail["field"] == "locks_at"
    assert db.weeks.docs == []


@pytest.mark.asyncio
async def test_create_week_cannot_start_finalized(db):
    with pytest.raises(HTTPException) as exc:
        await week_service.create_week(ADMIN, week_number=1, initial_status=WeekStatus.FINALIZED)
    assert exc.value.status_code == 400


# ---------- transition_week ----------

@pytest.mark.asyncio
async def test_lock_then_finalize_stamps_finalized_at(db):
    week = _week(4)
    db.weeks = week_collection([week])
    week_id = str(week["_id"])

    locked = await week_service.transition_week(ADMIN, week_id, WeekStatus.LOCKED)
    assert locked["status"] == "LOCKED"
    assert locked["finalized_at"] is None

    final = await week_service.transition_week(ADMIN, week_id, WeekStatus.FINALIZED)
    assert final["status"] == "FINALIZED"
    assert final["finalized_at"] is not None
    assert db.weeks.docs[0]["finalized_at"] is not None
    # Final parlay snapshot
    assert db.parlays.docs[0]["week_id"] == week_id


@pytest.mark.asyncio
async def test_finalized_is_terminal(db):
    week = _week(4, status="FINALIZED", finalized_at=NOW)
    db.weeks = week_collection([week])
    for target in (WeekStatus.OPEN, WeekStatus.LOCKED):
        with pytest.raises(HTTPException) as exc:
            await week_service.transition_week(ADMIN, str(week["_id"]), target)
        assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_open_cannot_skip_to_finalized(db):
    week = _week(4)
    db.weeks = week_collection([week])
    with pytest.raises(HTTPException) as exc:
        await week_service.transition_week(ADMIN, str(week["_id"]), WeekStatus.FINALIZED)
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_reopen_blocked_while_another_week_is_open(db):
    locked = _week(4, status="LOCKED")
    db.weeks = week_collection([locked, _week(5)])

    with pytest.raises(HTTPException) as exc:
        await week_service.transition_week(ADMIN, str(locked["_id"]), WeekStatus.OPEN)
    assert exc.value.status_code == 409
    assert db.weeks.docs[0]["status"] == "LOCKED"


@pytest.mark.asyncio
async def test_lost_race_reports_refresh(db, monkeypatch):
    week = _week(4)
    db.weeks = week_collection([week])

    async def _stale_update(*args, **kwargs):
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    monkeypatch.setattr(db.weeks, "update_one", _stale_update)
    with pytest.raises(HTTPException) as exc:
        await week_service.transition_week(ADMIN, str(week["_id"]), WeekStatus.LOCKED)
    assert exc.value.status_code == 409
    assert exc.value.detail == "Week status changed, please refresh."


# ---------- set_lock_time ----------

@pytest.mark.asyncio
async def test_set_explicit_lock_time(db):
    week = _week(4)
    db.weeks = week_collection([week])
    new_lock = NOW + timedelta(days=6)

    updated = await week_service.set_lock_time(ADMIN, str(week["_id"]), new_lock)
    assert updated["locks_at"] == new_lock
    assert db.weeks.docs[0]["locks_at"] == new_lock


@pytest.mark.asyncio
async def test_lock_time_rejected_for_finalized_week(db):
    week = _week(4, status="FINALIZED", finalized_at=NOW)
    db.weeks = week_collection([week])
    with pytest.raises(HTTPException) as exc:
        await week_service.set_lock_time(ADMIN, str(week["_id"]), NOW + timedelta(days=1))
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_lock_time_must_follow_opens_at(db):
    week = _week(4)
    db.weeks = week_collection([week])
    with pytest.raises(HTTPException) as exc:
        await week_service.set_lock_time(ADMIN, str(week["_id"]), week["opens_at"])
    assert exc.value.status_code == 422


def test_week_response_display_fields():
    week = _week(4, locks_days=0)
    week["locks_at"] = datetime(2026, 10, 25, 16, 0, tzinfo=timezone.utc)
    out = week_service.week_response(week, "2026 NFL", now=NOW)

    assert out["stake_display"] == "$130.00"
    assert out["lock_display"] == "Sunday, Oct 25, 12:00 PM EDT"
    assert out["time_until_lock"] == "4d 1h"
    assert out["accepting_submissions"] is True
    assert out["season_label"] == "2026 NFL"
