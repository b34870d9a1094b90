from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from .. import repo
from ..auth.deps import get_current_user
from ..http_helpers import TIME_OPTIONS, booking_dates, validate_preference_payload
from ..records import UserPreference
from ..schemas import PreferencesRequest
from ..services.connections import local_today
from ..services.geo import AREA_COORDINATES, AREAS

router = APIRouter()


def _preference_out(pref: UserPreference) -> dict[str, Any]:
    return {
        "areas": list(pref.areas),
        "dates": [d.isoformat() for d in pref.dates],
        "start_time": pref.start_time,
        "end_time": pref.end_time,
    }


@router.get("/preferences")
def get_preferences(current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    pref = repo.get_user_preference(str(current_user["id"]))
    if pref is None:
        raise HTTPException(status_code=404, detail="No preferences saved yet")
    return _preference_out(pref)


@router.put("/preferences")
def put_preferences(
    payload: PreferencesRequest,
    current_user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    user_id = str(current_user["id"])
    today = local_today(datetime.now(timezone.utc))
    pref = validate_preference_payload(user_id, payload.model_dump(), today)
    repo.put_user_preference(user_id, pref)
    return _preference_out(pref)


@router.get("/areas")
def list_areas() -> dict[str, Any]:
    today = local_today(datetime.now(timezone.utc))
    return {
        "areas": [{"name": a, "coordinates": AREA_COORDINATES[a]} for a in AREAS],
        "time_options": list(TIME_OPTIONS),
        "bookable_dates": [d.isoformat() for d in booking_dates(today)],
    }
