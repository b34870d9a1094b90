from __future__ import annotations

from ..records import IdentityAttributes, MatchScoreCalculation, UserPreference
from .availability import find_best_matching_date, time_score
from .geo import distance_score, find_shortest_distance

ANY_PRONOUNS = {"any pronouns", "any"}


def _rejected(missing_field: str) -> MatchScoreCalculation:
    return MatchScoreCalculation(
        total_score=0.0,
        rating_score=0.0,
        queer_score=0.0,
        pronoun_score=0.0,
        distance_score=0.0,
        date_score=0.0,
        time_score=0.0,
        best_area="",
        best_date=None,
        missing_fields=(missing_field,),
    )


def _missing_required_field(pref: UserPreference) -> str | None:
    if not pref.dates:
        return "Available Dates"
    if not pref.areas:
        return "Preferred Areas"
    if not pref.start_time or not pref.end_time:
        return "Time Preference"
    return None


def rating_score(user_rating: float | None, match_rating: float | None) -> float:
    if user_rating is None or match_rating is None:
        return 0.0
    return max(0.0, 10.0 - abs(float(user_rating) - float(match_rating)) / 200.0)


def queer_score(user_queer: bool | None, match_queer: bool | None) -> float:
    """10 on agreement, 1 on disagreement, 0 when either side left the flag unset."""
    if user_queer is None or match_queer is None:
        return 0.0
    return 10.0 if user_queer == match_queer else 1.0


def pronoun_score(user_pronoun: str | None, match_pronoun: str | None) -> float:
    if not user_pronoun or not match_pronoun:
        return 0.0
    mine = user_pronoun.strip().lower()
    theirs = match_pronoun.strip().lower()
    if mine == theirs:
        return 10.0
    if theirs in ANY_PRONOUNS:
        return 8.0
    if mine in ANY_PRONOUNS:
        return 6.0
    return 0.0


def score_match(
    user_identity: IdentityAttributes,
    user_preference: UserPreference,
    match_identity: IdentityAttributes,
    match_preference: UserPreference,
) -> MatchScoreCalculation:
    """Compatibility of one candidate for the current user, on a 0-10 scale.

    Missing dates, areas or time window on the candidate reject outright with a
    zero score. Missing rating, queer status or pronouns only zero their own
    sub-score and are reported in ``missing_fields``.
    """
    missing = _missing_required_field(match_preference)
    if missing:
        return _rejected(missing)

    missing_fields: list[str] = []

    if match_identity.chess_rating is None:
        missing_fields.append("Chess Rating")
    rating = rating_score(user_identity.chess_rating, match_identity.chess_rating)

    if match_identity.is_queer is None:
        missing_fields.append("Queer Status")
    queer = queer_score(user_identity.is_queer, match_identity.is_queer)

    if not match_identity.pronoun:
        missing_fields.append("Pronouns")
    pronoun = pronoun_score(user_identity.pronoun, match_identity.pronoun)

    closest = find_shortest_distance(user_preference.areas, match_preference.areas)
    distance = distance_score(closest.distance_km)

    best_date = find_best_matching_date(user_preference.dates, match_preference.dates)

    timing = time_score(user_preference.time_window, match_preference.time_window)

    total = (rating + queer + pronoun + distance + best_date.score + timing) / 6.0

    return MatchScoreCalculation(
        total_score=round(total, 2),
        rating_score=rating,
        queer_score=queer,
        pronoun_score=pronoun,
        distance_score=distance,
        date_score=best_date.score,
        time_score=timing,
        best_area=closest.area,
        best_date=best_date.date,
        missing_fields=tuple(missing_fields),
    )
