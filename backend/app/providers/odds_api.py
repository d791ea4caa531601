import logging
from typing import Any, Optional

from app.config import settings
from app.providers.http_client import ProviderUnavailable, ResilientClient
from app.utils import parse_utc
from app.utils.odds_utils import is_valid_line, is_valid_odds

logger = logging.getLogger("parlay.odds_api")

LEAGUE_NAMES = {
    "americanfootball_nfl": "AMERICANFOOTBALL NFL",
    "americanfootball_nfl_preseason": "AMERICANFOOTBALL NFL PRESEASON",
}


def _league_name(sport_key: str) -> str:
    return LEAGUE_NAMES.get(sport_key, sport_key.replace("_", " ").upper())


def _price(value: Any) -> Optional[int]:
    """Validated American price, or None. Bad prices are dropped, never clamped."""
    return int(value) if is_valid_odds(value) else None


def _point(value: Any) -> Optional[float]:
    return float(value) if is_valid_line(value) else None


def extract_best_odds(event: dict, preferred: str) -> dict[str, Optional[float]]:
    """Flatten one event's bookmakers into moneyline/spread/total columns.

    The first bookmaker seen fills each slot; the preferred bookmaker
    overwrites whatever it offers.
    """
    home = event.get("home_team")
    away = event.get("away_team")
    best: dict[str, Optional[float]] = {
        "moneyline_home": None, "moneyline_away": None,
        "spread_home": None, "spread_home_odds": None,
        "spread_away": None, "spread_away_odds": None,
        "total_over": None, "total_over_odds": None,
        "total_under": None, "total_under_odds": None,
    }

    def put(price_key: str, price: Any, line_key: Optional[str] = None, point: Any = None,
            force: bool = False) -> None:
        if best[price_key] is not None and not force:
            return
        best[price_key] = _price(price)
        if line_key:
            best[line_key] = _point(point)

    for bookmaker in event.get("bookmakers", []):
        preferred_book = bookmaker.get("key") == preferred
        for market in bookmaker.get("markets", []):
            key = market.get("key")
            for outcome in market.get("outcomes", []):
                name = outcome.get("name")
                price = outcome.get("price")
                point = outcome.get("point")
                if key == "h2h":
                    if name == home:
                        put("moneyline_home", price, force=preferred_book)
                    elif name == away:
                        put("moneyline_away", price, force=preferred_book)
                elif key == "spreads":
                    if name == home:
                        put("spread_home_odds", price, "spread_home", point, preferred_book)
                    elif name == away:
                        put("spread_away_odds", price, "spread_away", point, preferred_book)
                elif key == "totals":
                    if name == "Over":
                        put("total_over_odds", price, "total_over", point, preferred_book)
                    elif name == "Under":
                        put("total_under_odds", price, "total_under", point, preferred_book)
    return best


def parse_odds_response(raw: list[dict], sport_key: str, preferred: str) -> list[dict[str, Any]]:
    """TheOddsAPI /odds payload -> odds_cache rows (without updated_at)."""
    games = []
    for event in raw:
        if not event.get("id") or not event.get("commence_time"):
            continue
        games.append({
            "external_game_id": event["id"],
            "sport": event.get("sport_title") or sport_key,
            "league": _league_name(sport_key),
            "game_date": parse_utc(event["commence_time"]),
            "team_a": event.get("home_team") or "Unknown",
            "team_b": event.get("away_team") or "Unknown",
            **extract_best_odds(event, preferred),
        })
    return games


class TheOddsAPIProvider:
    """American-odds feed for the league's sports via TheOddsAPI."""

    def __init__(self, client: Optional[ResilientClient] = None):
        self._client = client or ResilientClient("odds_api")
        self._api_usage: dict[str, Optional[int]] = {"requests_used": None, "requests_remaining": None}

    def _track_usage_headers(self, resp) -> None:
        used = resp.headers.get("x-requests-used")
        remaining = resp.headers.get("x-requests-remaining")
        if used is not None:
            self._api_usage["requests_used"] = int(used)
        if remaining is not None:
            self._api_usage["requests_remaining"] = int(remaining)

    async def get_games(self, sport_key: str) -> list[dict[str, Any]]:
        """Upcoming games with best available odds.

        Raises ProviderUnavailable when the feed cannot be read.
        """
        if not settings.ODDSAPIKEY:
            raise ProviderUnavailable("ODDSAPIKEY is not configured")

        resp = await self._client.get(
            f"{settings.THEODDSAPI_BASE_URL}/sports/{sport_key}/odds",
            params={
                "apiKey": settings.ODDSAPIKEY,
                "regions": settings.ODDS_REGIONS,
                "markets": settings.ODDS_MARKETS,
                "oddsFormat": "american",
            },
        )
        if resp.status_code != 200:
            logger.error("TheOddsAPI %s returned HTTP %d", sport_key, resp.status_code)
            raise ProviderUnavailable(f"odds_api: HTTP {resp.status_code} for {sport_key}")

        self._track_usage_headers(resp)
        games = parse_odds_response(resp.json(), sport_key, settings.ODDS_PREFERRED_BOOKMAKER)
        logger.info("TheOddsAPI %s: %d games", sport_key, len(games))
        return games

    @property
    def api_usage(self) -> dict:
        return dict(self._api_usage)

    @property
    def circuit_open(self) -> bool:
        return self._client.circuit.is_open

    async def aclose(self) -> None:
        await self._client.aclose()


# Singleton provider instance
odds_provider = TheOddsAPIProvider()
