from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from ..config import MATCH_TOP_N
from ..records import CandidateProfile, IdentityAttributes, RankedCandidate, UserPreference
from .scoring import score_match
from .state_machine import HIDDEN_FROM_MATCHING

logger = logging.getLogger(__name__)


def _rank_one(
    user_identity: IdentityAttributes,
    user_preference: UserPreference,
    candidate: CandidateProfile,
    connection: tuple[str, str] | None,
    today: date,
) -> RankedCandidate | None:
    status = connection[0] if connection else None
    if status in HIDDEN_FROM_MATCHING:
        return None

    if candidate.preference is None:
        return None
    match_preference = candidate.preference.with_dates_from(today)
    if not match_preference.dates:
        return None

    try:
        score = score_match(user_identity, user_preference, candidate.identity, match_preference)
    except (TypeError, ValueError) as exc:
        logger.warning("[match] skipping candidate=%s, unscorable preference data: %s", candidate.user_id, exc)
        return None

    if score.total_score <= 0 or score.missing_required:
        return None

    return RankedCandidate(
        candidate=CandidateProfile(
            user_id=candidate.user_id,
            display_name=candidate.display_name,
            identity=candidate.identity,
            preference=match_preference,
        ),
        score=score,
        connection_status=status,
        connection_id=connection[1] if connection else None,
    )


def rank_candidates(
    user_identity: IdentityAttributes,
    user_preference: UserPreference,
    candidates: Iterable[CandidateProfile],
    connection_statuses: dict[str, tuple[str, str]] | None,
    today: date,
    limit: int = MATCH_TOP_N,
) -> list[RankedCandidate]:
    """Best candidates for the current user, highest score first.

    ``connection_statuses`` maps the other party's user id to the
    ``(status, connection_id)`` of the Connection between them. Each candidate
    is evaluated on its own, so one bad record never affects the others.
    """
    statuses = connection_statuses or {}
    own = user_preference.with_dates_from(today)

    ranked: list[RankedCandidate] = []
    for candidate in candidates:
        if candidate.user_id == user_preference.user_id:
            continue
        result = _rank_one(user_identity, own, candidate, statuses.get(candidate.user_id), today)
        if result is not None:
            ranked.append(result)

    ranked.sort(key=lambda r: r.score.total_score, reverse=True)
    return ranked[: max(0, limit)]
