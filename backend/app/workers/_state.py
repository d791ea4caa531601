"""Last-run bookkeeping for background jobs, kept in the worker_state collection.

Lets the odds poller skip a run right after a restart or a manual refresh.
"""

from datetime import datetime, timedelta

import app.database as _db
from app.utils import ensure_utc, utcnow


async def last_synced_at(worker_id: str) -> datetime | None:
    doc = await _db.db.worker_state.find_one({"_id": worker_id})
    return ensure_utc(doc["synced_at"]) if doc else None


async def mark_synced(worker_id: str, **metrics) -> None:
    await _db.db.worker_state.update_one(
        {"_id": worker_id},
        {"$set": {"synced_at": utcnow(), "last_metrics": metrics}},
        upsert=True,
    )


async def recently_synced(worker_id: str, max_age: timedelta) -> bool:
    last = await last_synced_at(worker_id)
    return last is not None and (utcnow() - last) < max_age
