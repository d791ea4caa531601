"""
backend/tests/test_odds_api_provider.py

Purpose:
    TheOddsAPI parsing (preferred bookmaker, invalid prices), the resilient
    HTTP client (retry, circuit breaker) and the odds cache refresh.
"""

from __future__ import annotations

import sys
from datetime import timedelta
from types import SimpleNamespace

import httpx
import pytest

sys.path.insert(0, "backend")

import app.database as _db
from app.providers.http_client import ProviderUnavailable, ResilientClient
from app.providers.odds_api import TheOddsAPIProvider, extract_best_odds, parse_odds_response
from app.services import odds_cache_service
from app.utils import utcnow
from app.workers import odds_poller
from fake_mongo import FakeCollection, fake_db


def _event(**overrides) -> dict:
    event = {
        "id": "evt-1",
        "sport_title": "NFL",
        "commence_time": "2026-10-25T17:00:00Z",
        "home_team": "Kansas City Chiefs",
        "away_team": "Buffalo Bills",
        "bookmakers": [
            {
                "key": "fanduel",
                "markets": [
                    {"key": "h2h", "outcomes": [
                        {"name": "Kansas City Chiefs", "price": -140},
                        {"name": "Buffalo Bills", "price": 120},
                    ]},
                    {"key": "totals", "outcomes": [
                        {"name": "Over", "price": -110, "point": 47.5},
                        {"name": "Under", "price": -110, "point": 47.5},
                    ]},
                ],
            },
            {
                "key": "draftkings",
                "markets": [
                    {"key": "h2h", "outcomes": [
                        {"name": "Kansas City Chiefs", "price": -150},
                        {"name": "Buffalo Bills", "price": 0},
                    ]},
                    {"key": "spreads", "outcomes": [
                        {"name": "Kansas City Chiefs", "price": -105, "point": -3.5},
                        {"name": "Buffalo Bills", "price": -115, "point": 3.5},
                    ]},
                ],
            },
        ],
    }
    event.update(overrides)
    return event


# ---------- parsing ----------

def test_preferred_bookmaker_wins_and_others_fill_gaps():
    best = extract_best_odds(_event(), "draftkings")
    assert best["moneyline_home"] == -150
    assert best["spread_home"] == -3.5
    assert best["spread_away_odds"] == -115
    # Only FanDuel quotes totals
    assert best["total_over"] == 47.5
    assert best["total_under_odds"] == -110


def test_invalid_price_becomes_none():
    best = extract_best_odds(_event(), "draftkings")
    # DraftKings quoted 0 for the Bills and overwrote FanDuel's line
    assert best["moneyline_away"] is None


def test_oversized_feed_price_is_dropped():
    event = _event(bookmakers=[{"key": "draftkings", "markets": [{"key": "h2h", "outcomes": [
        {"name": "Kansas City Chiefs", "price": 10**400},
        {"name": "Buffalo Bills", "price": 130},
    ]}]}])
    best = extract_best_odds(event, "draftkings")
    assert best["moneyline_home"] is None
    assert best["moneyline_away"] == 130


def test_parse_response_maps_rows_and_skips_incomplete_events():
    rows = parse_odds_response(
        [_event(), _event(id=None), _event(id="evt-2", commence_time=None)],
        "americanfootball_nfl",
        "draftkings",
    )
    assert len(rows) == 1
    row = rows[0]
    assert row["external_game_id"] == "evt-1"
    assert row["league"] == "AMERICANFOOTBALL NFL"
    assert row["team_a"] == "Kansas City Chiefs"
    assert row["team_b"] == "Buffalo Bills"
    assert row["game_date"].tzinfo is not None


# ---------- HTTP client ----------

@pytest.mark.asyncio
async def test_client_retries_then_succeeds():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json=[])

    client = ResilientClient("test", base_delay=0, transport=httpx.MockTransport(handler))
    resp = await client.get("https://odds.example/v4/sports/x/odds")
    assert resp.status_code == 200
    assert len(calls) == 2
    assert not client.circuit.is_open
    await client.aclose()


@pytest.mark.asyncio
async def test_client_returns_client_errors_without_retry():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401)

    client = ResilientClient("test", base_delay=0, transport=httpx.MockTransport(handler))
    resp = await client.get("https://odds.example/v4")
    assert resp.status_code == 401
    assert len(calls) == 1
    await client.aclose()


@pytest.mark.asyncio
async def test_circuit_opens_after_repeated_failures():
    client = ResilientClient(
        "test", max_retries=0, base_delay=0,
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    for _ in range(3):
        with pytest.raises(ProviderUnavailable):
            await client.get("https://odds.example/v4")
    assert client.circuit.is_open

    with pytest.raises(ProviderUnavailable, match="circuit open"):
        await client.get("https://odds.example/v4")
    await client.aclose()


# ---------- provider ----------

@pytest.mark.asyncio
async def test_provider_reads_games_and_usage(monkeypatch):
    monkeypatch.setattr(odds_cache_service.settings, "ODDSAPIKEY", "key")
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200, json=[_event()],
            headers={"x-requests-used": "12", "x-requests-remaining": "488"},
        )

    provider = TheOddsAPIProvider(
        ResilientClient("test", base_delay=0, transport=httpx.MockTransport(handler)),
    )
    games = await provider.get_games("americanfootball_nfl")

    assert [g["external_game_id"] for g in games] == ["evt-1"]
    assert seen["params"]["oddsFormat"] == "american"
    assert provider.api_usage == {"requests_used": 12, "requests_remaining": 488}
    await provider.aclose()


@pytest.mark.asyncio
async def test_provider_without_key_is_unavailable(monkeypatch):
    monkeypatch.setattr(odds_cache_service.settings, "ODDSAPIKEY", "")
    provider = TheOddsAPIProvider(ResilientClient("test"))
    with pytest.raises(ProviderUnavailable):
        await provider.get_games("americanfootball_nfl")
    await provider.aclose()


# ---------- cache refresh ----------

class _OddsCache(FakeCollection):
    def __init__(self, docs=None):
        super().__init__(docs)
        self.bulk_ops = []

    async def bulk_write(self, ops, ordered=True):
        self.bulk_ops.extend(ops)
        for op in ops:
            await self.update_one(op._filter, op._doc, upsert=op._upsert)
        return SimpleNamespace(upserted_count=len(ops))


class _FakeProvider:
    def __init__(self, by_sport):
        self.by_sport = by_sport

    async def get_games(self, sport_key):
        result = self.by_sport[sport_key]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def db(monkeypatch):
    fake = fake_db(odds_cache=_OddsCache())
    monkeypatch.setattr(_db, "db", fake, raising=False)
    monkeypatch.setattr(
        odds_cache_service.settings, "ODDS_SPORTS", "americanfootball_nfl,americanfootball_nfl_preseason",
    )
    return fake


@pytest.mark.asyncio
async def test_refresh_upserts_and_purges(db):
    stale = {"external_game_id": "old", "updated_at": utcnow() - timedelta(hours=12)}
    db.odds_cache.docs.append(dict(stale, _id="old"))
    games = parse_odds_response([_event()], "americanfootball_nfl", "draftkings")
    provider = _FakeProvider({
        "americanfootball_nfl": games,
        "americanfootball_nfl_preseason": ProviderUnavailable("HTTP 500"),
    })

    result = await odds_cache_service.refresh_odds_cache(provider)
    again = await odds_cache_service.refresh_odds_cache(provider)

    assert result == {"games_processed": 1, "purged": 1, "api_success": True}
    assert again["purged"] == 0
    assert [d["external_game_id"] for d in db.odds_cache.docs] == ["evt-1"]
    state = db.worker_state.docs[0]
    assert state["_id"] == "odds_cache"
    assert state["last_metrics"]["games"] == 1


@pytest.mark.asyncio
async def test_refresh_reports_total_outage(db):
    provider = _FakeProvider({
        "americanfootball_nfl": ProviderUnavailable("circuit open"),
        "americanfootball_nfl_preseason": ProviderUnavailable("circuit open"),
    })
    result = await odds_cache_service.refresh_odds_cache(provider)
    assert result["api_success"] is False
    assert db.odds_cache.bulk_ops == []


@pytest.mark.asyncio
async def test_poller_skips_when_recently_synced(db, monkeypatch):
    calls = []

    async def _refresh():
        calls.append(1)

    monkeypatch.setattr(odds_poller, "refresh_odds_cache", _refresh)
    await odds_poller.poll_odds()
    assert calls == [1]

    db.worker_state = FakeCollection([{"_id": "odds_cache", "synced_at": utcnow()}])
    await odds_poller.poll_odds()
    assert calls == [1]
