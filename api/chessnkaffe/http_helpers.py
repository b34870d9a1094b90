import re
import uuid
from datetime import date, timedelta
from typing import Any

from fastapi import HTTPException

from .config import BOOKING_HORIZON_DAYS, PROPOSAL_COMMENTS_MAX
from .records import UserPreference
from .services.chess_ratings import manual_rating, normalize_chess_experience
from .services.geo import AREA_COORDINATES

PRONOUN_OPTIONS = ("she/her", "they/them", "he/his", "any", "prefer-not-to-share")
CHESS_SET_PROVIDERS = ("self", "cafe", "opponent")
# 09:00, 09:30, ... 22:00
TIME_OPTIONS = tuple(f"{h:02d}:{m:02d}" for h in range(9, 23) for m in (0, 30) if (h, m) <= (22, 0))
_CLOCK_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_uuid(raw: str | None, *, status_code: int = 400, detail: str = "Invalid id") -> str:
    """Canonical UUID string for ``raw``; anything else raises ``HTTPException``."""
    value = str(raw or "").strip()
    try:
        return str(uuid.UUID(value))
    except ValueError as exc:
        raise HTTPException(status_code=status_code, detail=detail) from exc


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_login_input(email: str, password: str) -> tuple[str, str]:
    e = normalize_email(email)
    if not e or "@" not in e:
        raise HTTPException(status_code=400, detail="email required")
    if len(e) > 254:
        raise HTTPException(status_code=400, detail="Email too long")
    if not password:
        raise HTTPException(status_code=400, detail="password required")
    return e, password


def booking_dates(today: date) -> list[date]:
    return [today + timedelta(days=i) for i in range(BOOKING_HORIZON_DAYS)]


def _parse_iso_date(raw: Any) -> date:
    try:
        return date.fromisoformat(str(raw).strip())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid date: {raw}") from exc


def validate_preference_payload(user_id: str, payload: dict[str, Any], today: date) -> UserPreference:
    areas = [str(a).strip() for a in payload.get("areas") or [] if str(a).strip()]
    if not areas:
        raise HTTPException(status_code=400, detail="Select at least one preferred area")
    unknown = [a for a in areas if a not in AREA_COORDINATES]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown area: {unknown[0]}")

    dates = sorted({_parse_iso_date(d) for d in payload.get("dates") or []})
    if not dates:
        raise HTTPException(status_code=400, detail="Select at least one available date")
    horizon_end = today + timedelta(days=BOOKING_HORIZON_DAYS - 1)
    for d in dates:
        if d < today or d > horizon_end:
            raise HTTPException(
                status_code=400,
                detail=f"Dates must be between {today.isoformat()} and {horizon_end.isoformat()}",
            )

    start_time = str(payload.get("start_time") or "").strip()
    end_time = str(payload.get("end_time") or "").strip()
    if not start_time or not end_time:
        raise HTTPException(status_code=400, detail="Start and end time are required")
    if start_time not in TIME_OPTIONS or end_time not in TIME_OPTIONS:
        raise HTTPException(status_code=400, detail="Times must be on the half hour between 09:00 and 22:00")
    if end_time <= start_time:
        raise HTTPException(status_code=400, detail="End time must be after start time")

    return UserPreference(
        user_id=user_id,
        areas=tuple(dict.fromkeys(areas)),
        dates=tuple(dates),
        start_time=start_time,
        end_time=end_time,
    )


def sanitize_profile_payload(payload: dict[str, Any]) -> dict[str, Any]:
    alias = str(payload.get("alias") or "").strip() or None
    if alias and len(alias) > 40:
        raise HTTPException(status_code=400, detail="alias must be at most 40 characters")

    pronoun = str(payload.get("pronoun") or "").strip().lower() or None
    if pronoun and pronoun not in PRONOUN_OPTIONS:
        raise HTTPException(status_code=400, detail=f"pronoun must be one of: {', '.join(PRONOUN_OPTIONS)}")

    queer = payload.get("queer")
    if queer is not None and not isinstance(queer, bool):
        raise HTTPException(status_code=400, detail="queer must be true, false or null")

    raw_experience = payload.get("chess_experience") or {}
    if not isinstance(raw_experience, dict):
        raise HTTPException(status_code=400, detail="chess_experience must be an object")
    manual = raw_experience.get("manual")
    if isinstance(manual, dict) and manual.get("level") and manual_rating(str(manual["level"])) is None:
        raise HTTPException(status_code=400, detail=f"Unknown chess level: {manual['level']}")
    experience = normalize_chess_experience(raw_experience)

    return {
        "alias": alias,
        "pronoun": pronoun,
        "queer": queer,
        "chess_experience": experience,
        "average_rating": experience["average_rating"],
    }


def validate_proposal_details(payload: dict[str, Any]) -> dict[str, Any]:
    cafe_address = str(payload.get("cafe_address") or "").strip()
    if not cafe_address:
        raise HTTPException(status_code=400, detail="Select a café for the meetup")

    meeting_time = str(payload.get("meeting_time") or "").strip()
    meeting_end_time = str(payload.get("meeting_end_time") or "").strip()
    if not meeting_time or not meeting_end_time:
        raise HTTPException(status_code=400, detail="Meeting start and end time are required")
    if not _CLOCK_RE.match(meeting_time) or not _CLOCK_RE.match(meeting_end_time):
        raise HTTPException(status_code=400, detail="Meeting times must be HH:MM")
    if meeting_end_time <= meeting_time:
        raise HTTPException(status_code=400, detail="Meeting end time must be after the start time")

    provider = str(payload.get("chess_set_provider") or "").strip().lower()
    if provider not in CHESS_SET_PROVIDERS:
        raise HTTPException(status_code=400, detail=f"chess_set_provider must be one of: {', '.join(CHESS_SET_PROVIDERS)}")

    comments = str(payload.get("comments") or "").strip()
    if len(comments) > PROPOSAL_COMMENTS_MAX:
        raise HTTPException(status_code=400, detail=f"Comments must be at most {PROPOSAL_COMMENTS_MAX} characters")

    return {
        "cafe_address": cafe_address,
        "meeting_time": meeting_time,
        "meeting_end_time": meeting_end_time,
        "chess_set_provider": provider,
        "comments": comments,
    }
