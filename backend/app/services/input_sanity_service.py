"""
backend/app/services/input_sanity_service.py

Purpose:
    Boundary checks for leg input (odds, line, notes) before anything is
    persisted. Returns a typed result instead of raising so every caller
    has to branch on it.

Dependencies:
    - dataclasses
    - app.utils.odds_utils
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import HTTPException, status

from app.config import settings
from app.utils.odds_utils import is_valid_line, is_valid_odds

_HTML_TAG_RE = re.compile(r"<[^>]*>")

_UNSET = object()


@dataclass
class LegInputCheck:
    ok: bool
    field: Optional[str] = None
    message: str = ""
    notes: Optional[str] = None  # Sanitized notes, ready to persist


def sanitize_notes(raw: Optional[str]) -> Optional[str]:
    """Strip HTML tags and surrounding whitespace. Blank notes become None."""
    if raw is None:
        return None
    cleaned = _HTML_TAG_RE.sub("", str(raw)).strip()
    return cleaned or None


def check_leg_input(
    *,
    american_odds: Any = _UNSET,
    line: Any = None,
    notes: Optional[str] = None,
    max_notes_length: Optional[int] = None,
) -> LegInputCheck:
    """Validate untrusted odds/line/notes. Out-of-range values are rejected, never clamped.

    american_odds is only checked when passed (edits may leave it unchanged).
    """
    if american_odds is not _UNSET and not is_valid_odds(american_odds):
        return LegInputCheck(
            ok=False,
            field="american_odds",
            message="american_odds must be a whole number between -10000 and 10000, excluding 0.",
        )

    if line is not None and not is_valid_line(line):
        return LegInputCheck(
            ok=False,
            field="line",
            message="line must be a finite number.",
        )

    limit = settings.NOTES_MAX_LENGTH if max_notes_length is None else max_notes_length
    cleaned = sanitize_notes(notes)
    if cleaned is not None and len(cleaned) > limit:
        return LegInputCheck(
            ok=False,
            field="notes",
            message=f"notes must be {limit} characters or less.",
        )

    return LegInputCheck(ok=True, notes=cleaned)


def raise_for_input(check: LegInputCheck) -> None:
    """Turn a failed check into the 422 the API returns."""
    if check.ok:
        return
    raise HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": check.message, "field": check.field},
    )
