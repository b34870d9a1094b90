from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from ..auth.deps import get_current_user
from ..config import RL_MATCH_FIND_LIMIT, RL_WINDOW_SECONDS
from ..services.matching import find_matches
from ..services.rate_limit import rate_limit_dependency

router = APIRouter()

RL_MATCH_FIND = rate_limit_dependency("match_find", RL_MATCH_FIND_LIMIT, RL_WINDOW_SECONDS)


@router.post("/matches/find")
def matches_find(current_user: dict[str, Any] = Depends(get_current_user), _: None = RL_MATCH_FIND) -> dict[str, Any]:
    result = find_matches(str(current_user["id"]), datetime.now(timezone.utc))
    if result is None:
        raise HTTPException(status_code=404, detail="Save your meetup preferences first")
    return result
