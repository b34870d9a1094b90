import logging
from datetime import datetime
from typing import Any

from .. import repo
from ..config import MATCH_TOP_N
from ..records import IdentityAttributes
from .connections import connection_statuses, load_connections, local_today
from .ranking import rank_candidates
from .state_machine import connect_button_state

logger = logging.getLogger(__name__)


def find_matches(user_id: str, now: datetime, limit: int = MATCH_TOP_N) -> dict[str, Any] | None:
    """Ranked candidates for ``user_id``; None when the user has no preferences saved."""
    preference = repo.get_user_preference(user_id)
    if preference is None:
        return None

    identity = repo.get_user_identity(user_id) or IdentityAttributes()
    today = local_today(now)
    statuses = connection_statuses(load_connections(user_id, now), user_id)
    candidates = repo.list_candidate_preferences(user_id)

    ranked = rank_candidates(identity, preference, candidates, statuses, today, limit=limit)
    logger.info("[match] user=%s candidates=%s ranked=%s", user_id, len(candidates), len(ranked))

    matches = []
    for r in ranked:
        item = r.as_dict()
        item["connect_button"] = connect_button_state(r.connection_status)
        matches.append(item)
    return {"matches": matches, "total": len(matches)}
