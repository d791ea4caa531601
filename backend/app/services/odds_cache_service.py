"""
backend/app/services/odds_cache_service.py

Purpose:
    Keeps the odds_cache collection (one row per upcoming game, American
    odds) in sync with TheOddsAPI and serves it to the leg submission form.

Dependencies:
    - app.database
    - app.providers.odds_api
    - app.workers._state
"""

import logging
from datetime import timedelta
from typing import Optional

from pymongo import UpdateOne

import app.database as _db
from app.config import settings
from app.providers.http_client import ProviderUnavailable
from app.providers.odds_api import odds_provider
from app.utils import utcnow
from app.workers._state import mark_synced

logger = logging.getLogger("parlay.odds_cache")


async def purge_stale(max_age_hours: Optional[int] = None) -> int:
    """Drop rows that no refresh has touched within max_age_hours."""
    hours = settings.ODDS_CACHE_MAX_AGE_HOURS if max_age_hours is None else max_age_hours
    cutoff = utcnow() - timedelta(hours=hours)
    result = await _db.db.odds_cache.delete_many({"updated_at": {"$lt": cutoff}})
    return result.deleted_count


async def refresh_odds_cache(provider=None) -> dict:
    """Pull every configured sport, upsert by external_game_id, purge stale rows.

    A sport that fails is skipped; api_success is True when at least one
    sport was read.
    """
    provider = provider or odds_provider
    now = utcnow()
    games_processed = 0
    api_success = False

    for sport_key in settings.odds_sports:
        try:
            games = await provider.get_games(sport_key)
        except (ProviderUnavailable, ValueError) as exc:
            logger.warning("Odds refresh skipped %s: %s", sport_key, exc)
            continue
        api_success = True
        if not games:
            continue

        ops = [
            UpdateOne(
                {"external_game_id": game["external_game_id"]},
                {"$set": {**game, "updated_at": now}},
                upsert=True,
            )
            for game in games
        ]
        await _db.db.odds_cache.bulk_write(ops, ordered=False)
        games_processed += len(games)

    purged = await purge_stale()
    await mark_synced("odds_cache", games=games_processed, purged=purged, api_success=api_success)
    logger.info(
        "Odds cache refreshed: %d games, %d purged, api_success=%s",
        games_processed, purged, api_success,
    )
    return {"games_processed": games_processed, "purged": purged, "api_success": api_success}


async def list_games(league: Optional[str] = None, limit: int = 200) -> list[dict]:
    """Upcoming cached games, soonest first."""
    query: dict = {"game_date": {"$gte": utcnow()}}
    if league:
        query["league"] = league
    return await _db.db.odds_cache.find(query).sort("game_date", 1).limit(limit).to_list(length=limit)
