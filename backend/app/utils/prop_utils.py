"""Display labels for betting markets and player props."""

from __future__ import annotations

from typing import Any, Literal

PROP_DISPLAY_NAMES = {
    # Passing
    "player_pass_yds": "Passing Yards",
    "player_pass_tds": "Passing TDs",
    "player_pass_completions": "Completions",
    "player_pass_attempts": "Pass Attempts",
    "player_pass_interceptions": "Interceptions",
    "player_pass_longest_completion": "Longest Completion",
    # Rushing
    "player_rush_yds": "Rushing Yards",
    "player_rush_tds": "Rushing TDs",
    "player_rush_attempts": "Rush Attempts",
    "player_rush_longest": "Longest Rush",
    # Receiving
    "player_receptions": "Receptions",
    "player_reception_yds": "Receiving Yards",
    "player_reception_tds": "Receiving TDs",
    "player_reception_longest": "Longest Reception",
    # Touchdowns
    "player_anytime_td": "Anytime TD",
    "player_1st_td": "First TD",
    "player_last_td": "Last TD",
    # Defense
    "player_sacks": "Sacks",
    "player_tackles_assists": "Tackles + Assists",
    "player_interceptions": "Interceptions",
    "player_fumbles_recovered": "Fumbles Recovered",
    # Kicking
    "player_field_goals": "Field Goals",
    "player_kicking_points": "Kicking Points",
    "player_extra_points": "Extra Points",
    # Combined
    "player_pass_rush_reception_yds": "Pass + Rush + Rec Yards",
    "player_rush_reception_yds": "Rush + Rec Yards",
    "player_pass_reception_yds": "Pass + Rec Yards",
    # Game markets
    "h2h": "Moneyline",
    "spreads": "Point Spread",
    "totals": "Total Points",
    "total": "Total Points",
}

TOUCHDOWN_PROPS = {"player_anytime_td", "player_1st_td", "player_last_td"}


def format_prop_display_name(prop_type: str) -> str:
    """player_pass_yds -> Passing Yards; unknown keys are title-cased."""
    known = PROP_DISPLAY_NAMES.get(prop_type)
    if known:
        return known
    return " ".join(word[:1].upper() + word[1:] for word in prop_type.split("_") if word)


def get_bet_type_category(leg: dict[str, Any]) -> Literal["player_prop", "game_bet"]:
    if leg.get("player_name") and leg.get("prop_type"):
        return "player_prop"
    return "game_bet"


def format_leg_description(leg: dict[str, Any]) -> str:
    if get_bet_type_category(leg) == "player_prop":
        return (
            f"{leg['player_name']} - "
            f"{format_prop_display_name(leg['prop_type'])}: {leg['selection']}"
        )
    return leg["selection"]


def is_anytime_touchdown_prop(market_key: str) -> bool:
    return market_key == "player_anytime_td"


def is_touchdown_prop(market_key: str) -> bool:
    return market_key in TOUCHDOWN_PROPS
