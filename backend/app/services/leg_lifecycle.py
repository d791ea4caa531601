"""
backend/app/services/leg_lifecycle.py

Purpose:
    Status transition rules for legs and weeks. Pure functions only; the
    services enforce these before every write and the database enforces
    uniqueness.

Dependencies:
    - app.models.leg
    - app.models.week
"""

from __future__ import annotations

from app.models.leg import LegStatus
from app.models.week import WeekStatus

# Commissioner decisions in the common review flow
ADMIN_LEG_TRANSITIONS: dict[LegStatus, frozenset[LegStatus]] = {
    LegStatus.PENDING: frozenset({
        LegStatus.OK, LegStatus.DUPLICATE, LegStatus.CONFLICT, LegStatus.REJECTED,
    }),
    LegStatus.CONFLICT: frozenset({
        LegStatus.OK, LegStatus.DUPLICATE, LegStatus.CONFLICT, LegStatus.REJECTED,
    }),
    LegStatus.OK: frozenset({LegStatus.PENDING}),  # Revert to pending
}

# Explicit reopen of a closed-out leg (separate commissioner action)
REOPENABLE_LEG_STATUSES = frozenset({LegStatus.REJECTED, LegStatus.DUPLICATE})

# Owner may edit or delete only while the leg is still pending
MEMBER_EDITABLE_LEG_STATUSES = frozenset({LegStatus.PENDING})

INCLUDED_LEG_STATUSES = frozenset({LegStatus.OK})
PREVIEW_LEG_STATUSES = frozenset({LegStatus.OK, LegStatus.PENDING})
EXCLUDED_LEG_STATUSES = frozenset({
    LegStatus.REJECTED, LegStatus.DUPLICATE, LegStatus.CONFLICT,
})

WEEK_TRANSITIONS: dict[WeekStatus, frozenset[WeekStatus]] = {
    WeekStatus.OPEN: frozenset({WeekStatus.LOCKED}),
    WeekStatus.LOCKED: frozenset({WeekStatus.OPEN, WeekStatus.FINALIZED}),
    WeekStatus.FINALIZED: frozenset(),
}


def can_admin_set_leg_status(current: LegStatus, target: LegStatus) -> bool:
    return target in ADMIN_LEG_TRANSITIONS.get(LegStatus(current), frozenset())


def can_reopen_leg(current: LegStatus) -> bool:
    return LegStatus(current) in REOPENABLE_LEG_STATUSES


def can_member_modify_leg(leg: dict, user_id: str) -> bool:
    """Owner-only, and only while PENDING."""
    return (
        leg.get("user_id") == user_id
        and LegStatus(leg.get("status")) in MEMBER_EDITABLE_LEG_STATUSES
    )


def can_transition_week(current: WeekStatus, target: WeekStatus) -> bool:
    return WeekStatus(target) in WEEK_TRANSITIONS.get(WeekStatus(current), frozenset())


def included_statuses(include_pending: bool = False) -> frozenset[LegStatus]:
    """Statuses whose odds enter the combined parlay."""
    return PREVIEW_LEG_STATUSES if include_pending else INCLUDED_LEG_STATUSES


def affects_parlay(previous: LegStatus, new: LegStatus | None) -> bool:
    """True when a change moves a leg into or out of the OK set (None = deleted)."""
    was_in = LegStatus(previous) in INCLUDED_LEG_STATUSES
    is_in = new is not None and LegStatus(new) in INCLUDED_LEG_STATUSES
    return was_in != is_in


def finalized_at_for(target: WeekStatus, now):
    """finalized_at is stamped iff the week is FINALIZED."""
    return now if WeekStatus(target) == WeekStatus.FINALIZED else None
