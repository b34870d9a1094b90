from __future__ import annotations

import logging
import math
from typing import Any, Iterable

import httpx

from ..config import CHESSCOM_API_BASE, LICHESS_API_BASE, RATINGS_HTTP_TIMEOUT
from ..errors import RatingLookupError

logger = logging.getLogger(__name__)

MANUAL_LEVEL_RATINGS = {
    "beginner": 250,
    "apprentice": 750,
    "intermediate": 1250,
    "advanced": 1750,
    "expert": 2000,
}
CHESSCOM_TIME_CONTROLS = ("chess_rapid", "chess_blitz", "chess_bullet")
LICHESS_PERFS = ("blitz", "rapid", "classical")
PLATFORMS = ("chess.com", "lichess")


def manual_rating(level: str | None) -> int | None:
    if not level:
        return None
    return MANUAL_LEVEL_RATINGS.get(level.strip().lower())


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def average_rating(ratings: Iterable[float | int | None]) -> int | None:
    present = [float(r) for r in ratings if r is not None]
    if not present:
        return None
    return _round_half_up(sum(present) / len(present))


def normalize_chess_experience(raw: dict[str, Any] | None) -> dict[str, Any]:
    """Canonical chess_experience document with the derived average_rating.

    Only enabled sources (non-null entries) count toward the average; the
    manual level is translated into its nominal rating.
    """
    raw = raw or {}
    manual = raw.get("manual") or None
    chesscom = raw.get("chess.com") or None
    lichess = raw.get("lichess") or None

    out: dict[str, Any] = {"manual": None, "chess.com": None, "lichess": None}
    if manual and manual_rating(manual.get("level")) is not None:
        level = str(manual["level"]).strip().lower()
        out["manual"] = {"level": level, "rating": MANUAL_LEVEL_RATINGS[level]}
    for key, entry in (("chess.com", chesscom), ("lichess", lichess)):
        if entry and str(entry.get("username") or "").strip():
            rating = entry.get("rating")
            out[key] = {
                "username": str(entry["username"]).strip(),
                "rating": int(rating) if rating is not None else None,
            }

    out["average_rating"] = average_rating(
        [
            out["manual"]["rating"] if out["manual"] else None,
            out["chess.com"]["rating"] if out["chess.com"] else None,
            out["lichess"]["rating"] if out["lichess"] else None,
        ]
    )
    return out


def best_chesscom_rating(stats: dict[str, Any]) -> int | None:
    ratings = [
        ((stats.get(tc) or {}).get("last") or {}).get("rating")
        for tc in CHESSCOM_TIME_CONTROLS
    ]
    ratings = [int(r) for r in ratings if r is not None]
    return max(ratings) if ratings else None


def best_lichess_rating(user: dict[str, Any]) -> int | None:
    perfs = user.get("perfs") or {}
    ratings = [(perfs.get(p) or {}).get("rating") for p in LICHESS_PERFS]
    ratings = [int(r) for r in ratings if r is not None]
    return max(ratings) if ratings else None


async def _get_json(client: httpx.AsyncClient, platform: str, url: str) -> dict[str, Any]:
    try:
        resp = await client.get(url, headers={"Accept": "application/json"})
    except httpx.HTTPError as exc:
        logger.warning("[ratings] %s request failed url=%s: %s", platform, url, exc)
        raise RatingLookupError(platform, f"{platform} is unavailable right now") from exc

    if resp.status_code == 404:
        raise RatingLookupError(platform, f"{platform} player not found", status_code=404)
    if resp.status_code >= 400:
        logger.warning("[ratings] %s answered %s for url=%s", platform, resp.status_code, url)
        raise RatingLookupError(platform, f"{platform} is unavailable right now")
    try:
        data = resp.json()
    except ValueError as exc:
        raise RatingLookupError(platform, f"{platform} returned an unreadable response") from exc
    if not isinstance(data, dict):
        raise RatingLookupError(platform, f"{platform} returned an unreadable response")
    return data


async def lookup_rating(platform: str, username: str, client: httpx.AsyncClient | None = None) -> int | None:
    """Best current online rating for ``username`` on ``platform``."""
    username = username.strip()
    if platform == "chess.com":
        url = f"{CHESSCOM_API_BASE}/player/{username.lower()}/stats"
        pick = best_chesscom_rating
    elif platform == "lichess":
        url = f"{LICHESS_API_BASE}/user/{username}"
        pick = best_lichess_rating
    else:
        raise RatingLookupError(platform, f"Unsupported platform: {platform}", status_code=400)

    if client is not None:
        return pick(await _get_json(client, platform, url))
    async with httpx.AsyncClient(timeout=RATINGS_HTTP_TIMEOUT) as owned:
        return pick(await _get_json(owned, platform, url))
