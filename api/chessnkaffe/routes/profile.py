from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from .. import repo
from ..auth.deps import get_current_user
from ..errors import RatingLookupError
from ..http_helpers import sanitize_profile_payload
from ..schemas import ProfileUpdateRequest
from ..services.chess_ratings import PLATFORMS, lookup_rating

router = APIRouter()


@router.get("/users/me")
def get_my_profile(current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    profile = repo.get_user_profile(str(current_user["id"]))
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.put("/users/me")
def update_my_profile(
    payload: ProfileUpdateRequest,
    current_user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    clean = sanitize_profile_payload(payload.model_dump())
    profile = repo.update_user_profile(str(current_user["id"]), **clean)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.get("/ratings/{platform}/{username}")
async def get_online_rating(
    platform: str,
    username: str,
    current_user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    if platform not in PLATFORMS:
        raise HTTPException(status_code=404, detail=f"Unknown platform: {platform}")
    if not username.strip():
        raise HTTPException(status_code=400, detail="username required")
    try:
        rating = await lookup_rating(platform, username)
    except RatingLookupError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return {"platform": platform, "username": username.strip(), "rating": rating}
