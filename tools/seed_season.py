"""Create a season, open its first week and bootstrap the commissioner.

The first commissioner cannot be promoted through the API (only a
commissioner can change roles), so this tool sets it directly.

Usage:
    python -m tools.seed_season --label "2026 NFL" --start 2026-09-03 --end 2027-01-10
    python -m tools.seed_season --label "2026 NFL" --start 2026-09-03 --end 2027-01-10 \
        --commissioner <auth user id> --stake-cents 13000
    python -m tools.seed_season ... --dry-run
"""

import argparse
import asyncio
import os
import sys
from datetime import date, datetime, timezone

sys.path.insert(0, "backend")

if "MONGO_URI" not in os.environ:
    os.environ["MONGO_URI"] = "mongodb://localhost:27017/parlay"

from pymongo import ReturnDocument  # noqa: E402
from pymongo.errors import DuplicateKeyError  # noqa: E402

from app.config import settings  # noqa: E402
from app.models.profile import Role  # noqa: E402
from app.models.week import WeekStatus  # noqa: E402
from app.utils import utcnow  # noqa: E402
from app.utils.lock_time import format_lock_time, next_lock_time  # noqa: E402
from app.utils.odds_utils import format_currency  # noqa: E402


def _day(value: str) -> datetime:
    d = date.fromisoformat(value)
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


async def run(
    label: str,
    league: str,
    start: datetime,
    end: datetime,
    stake_cents: int,
    commissioner: str | None,
    dry_run: bool,
) -> None:
    import app.database as _db

    now = utcnow()
    opens_at = max(now, start)
    locks_at = next_lock_time(opens_at)

    print(f"season: {label} ({league}) {start.date()} .. {end.date()}")
    print(f"week 1: opens {opens_at.isoformat()}, locks {format_lock_time(locks_at)}, "
          f"stake {format_currency(stake_cents)}")
    if commissioner:
        print(f"commissioner: {commissioner}")
    if dry_run:
        print("[dry-run] nothing written")
        return

    await _db.connect_db()
    db = _db.db

    season = await db.seasons.find_one_and_update(
        {"label": label, "league": league},
        {
            "$set": {"start_date": start, "end_date": end},
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    season_id = str(season["_id"])

    existing = await db.weeks.find_one({"season_id": season_id, "week_number": 1})
    if existing:
        print(f"week 1 already exists ({existing['status']}), left unchanged")
    else:
        try:
            await db.weeks.insert_one({
                "season_id": season_id,
                "week_number": 1,
                "status": WeekStatus.OPEN.value,
                "opens_at": opens_at,
                "locks_at": locks_at,
                "finalized_at": None,
                "stake_amount": stake_cents,
                "created_at": now,
                "updated_at": now,
            })
        except DuplicateKeyError:
            print("another week is already OPEN; lock it first, week 1 not created")
        else:
            print("week 1 created")

    if commissioner:
        await db.profiles.update_one(
            {"user_id": commissioner},
            {
                "$set": {"role": Role.COMMISSIONER.value, "updated_at": now},
                "$setOnInsert": {
                    "user_id": commissioner,
                    "name": "Commissioner",
                    "email": "",
                    "team_name": None,
                    "created_at": now,
                },
            },
            upsert=True,
        )
        print(f"{commissioner} is now {Role.COMMISSIONER.value}")

    await _db.close_db()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a season with its first open week.")
    parser.add_argument("--label", required=True, help='Season label, e.g. "2026 NFL".')
    parser.add_argument("--league", default="NFL")
    parser.add_argument("--start", required=True, type=_day, help="First day (YYYY-MM-DD).")
    parser.add_argument("--end", required=True, type=_day, help="Last day (YYYY-MM-DD).")
    parser.add_argument("--stake-cents", type=int, default=settings.DEFAULT_STAKE_CENTS)
    parser.add_argument("--commissioner", default=None, help="Auth user id to promote.")
    parser.add_argument("--dry-run", action="store_true", help="Preview without DB writes.")
    args = parser.parse_args()
    if args.end <= args.start:
        parser.error("--end must be after --start")
    asyncio.run(run(
        args.label, args.league, args.start, args.end,
        args.stake_cents, args.commissioner, args.dry_run,
    ))


if __name__ == "__main__":
    main()
