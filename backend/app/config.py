"""
backend/app/config.py

Purpose:
    Central settings loading for the parlay backend.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017/parlay"
    MONGO_DB: str = "parlay"
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    # Access tokens are issued by the hosted auth provider (HS256 shared secret)
    JWT_SECRET: str = "change-me"
    JWT_SECRET_OLD: str = ""  # Set during rotation; cleared once old tokens expired
    JWT_AUDIENCE: str = ""  # e.g. "authenticated"; empty disables the aud check

    # The Odds API (odds cache ingestion)
    ODDSAPIKEY: str = ""
    THEODDSAPI_BASE_URL: str = "https://api.the-odds-api.com/v4"
    ODDS_SPORTS: str = "americanfootball_nfl,americanfootball_nfl_preseason"
    ODDS_REGIONS: str = "us"
    ODDS_MARKETS: str = "h2h,spreads,totals"
    ODDS_PREFERRED_BOOKMAKER: str = "draftkings"
    ODDS_CACHE_MAX_AGE_HOURS: int = 6
    ODDS_POLLER_ENABLED: bool = False
    ODDS_POLL_MINUTES: int = 60

    # Week lock schedule (league-local wall clock)
    LEAGUE_TIMEZONE: str = "America/New_York"
    LOCK_WEEKDAY: int = 6  # Monday=0 ... Sunday=6
    LOCK_HOUR: int = 12

    # Money (integer cents at rest)
    DEFAULT_STAKE_CENTS: int = 13000
    CURRENCY_SYMBOL: str = "$"

    # Leg input limits
    NOTES_MAX_LENGTH: int = 500

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }

    @property
    def odds_sports(self) -> list[str]:
        return [s.strip() for s in self.ODDS_SPORTS.split(",") if s.strip()]


settings = Settings()
