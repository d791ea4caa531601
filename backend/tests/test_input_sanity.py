"""
backend/tests/test_input_sanity.py

Purpose:
    Leg input checks: field-specific failures, HTML stripping and the notes
    length limit, and the 422 shape raised from a failed check.
"""

from __future__ import annotations

import math
import sys

import pytest
from fastapi import HTTPException

sys.path.insert(0, "backend")

from app.services.input_sanity_service import (
    check_leg_input,
    raise_for_input,
    sanitize_notes,
)


def test_valid_input_passes_with_sanitized_notes():
    check = check_leg_input(american_odds=-110, line=-3.5, notes="  <b>Lock</b> of the week ")
    assert check.ok
    assert check.notes == "Lock of the week"


@pytest.mark.parametrize("odds", [0, 10001, 150.5, math.nan, None, "150"])
def test_bad_odds_name_the_field(odds):
    check = check_leg_input(american_odds=odds)
    assert not check.ok
    assert check.field == "american_odds"


def test_odds_not_checked_when_omitted():
    assert check_leg_input(notes="fine").ok


def test_infinite_line_rejected():
    check = check_leg_input(american_odds=150, line=math.inf)
    assert check.field == "line"


def test_notes_limit_applies_after_stripping_tags():
    body = "x" * 500
    assert check_leg_input(notes=f"<p>{body}</p>").ok

    check = check_leg_input(notes=body + "y")
    assert not check.ok
    assert check.field == "notes"


def test_blank_notes_become_none():
    assert sanitize_notes("   ") is None
    assert sanitize_notes("<br/>") is None
    assert sanitize_notes(None) is None


def test_script_tags_removed():
    assert sanitize_notes("<script>alert(1)</script>hi") == "alert(1)hi"


def test_raise_for_input_returns_422_with_field():
    raise_for_input(check_leg_input(american_odds=150))

    with pytest.raises(HTTPException) as exc:
        raise_for_input(check_leg_input(american_odds=0))
    assert exc.value.status_code == 422
    assert exc.value.detail["field"] == "american_odds"
    assert "between -10000 and 10000" in exc.value.detail["message"]
