from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

REQUIRED_FIELDS = ("Available Dates", "Preferred Areas", "Time Preference")


@dataclass(frozen=True)
class TimeWindow:
    start_time: str
    end_time: str


@dataclass(frozen=True)
class UserPreference:
    user_id: str
    areas: tuple[str, ...] = ()
    dates: tuple[date, ...] = ()
    start_time: str | None = None
    end_time: str | None = None

    @property
    def time_window(self) -> TimeWindow | None:
        if not self.start_time or not self.end_time:
            return None
        return TimeWindow(self.start_time, self.end_time)

    def with_dates_from(self, today: date) -> UserPreference:
        return UserPreference(
            user_id=self.user_id,
            areas=self.areas,
            dates=tuple(d for d in self.dates if d >= today),
            start_time=self.start_time,
            end_time=self.end_time,
        )


@dataclass(frozen=True)
class IdentityAttributes:
    chess_rating: float | None = None
    is_queer: bool | None = None
    pronoun: str | None = None


@dataclass(frozen=True)
class CandidateProfile:
    user_id: str
    display_name: str
    identity: IdentityAttributes
    preference: UserPreference | None = None


@dataclass(frozen=True)
class MatchScoreCalculation:
    total_score: float
    rating_score: float
    queer_score: float
    pronoun_score: float
    distance_score: float
    date_score: float
    time_score: float
    best_area: str
    best_date: date | None
    missing_fields: tuple[str, ...] = ()

    @property
    def missing_required(self) -> bool:
        return any(f in REQUIRED_FIELDS for f in self.missing_fields)

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_score": self.total_score,
            "rating_score": self.rating_score,
            "queer_score": self.queer_score,
            "pronoun_score": self.pronoun_score,
            "distance_score": self.distance_score,
            "date_score": self.date_score,
            "time_score": self.time_score,
            "best_area": self.best_area,
            "best_date": self.best_date.isoformat() if self.best_date else None,
            "missing_fields": list(self.missing_fields),
        }


@dataclass(frozen=True)
class RankedCandidate:
    candidate: CandidateProfile
    score: MatchScoreCalculation
    connection_status: str | None = None
    connection_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        identity = self.candidate.identity
        pref = self.candidate.preference
        return {
            "user_id": self.candidate.user_id,
            "display_name": self.candidate.display_name,
            "pronouns": identity.pronoun,
            "is_queer": identity.is_queer,
            "chess_rating": identity.chess_rating,
            "preferred_areas": list(pref.areas) if pref else [],
            "availability": {
                "dates": [d.isoformat() for d in pref.dates] if pref else [],
                "start_time": pref.start_time if pref else None,
                "end_time": pref.end_time if pref else None,
            },
            "match_score": self.score.total_score,
            "scores": self.score.as_dict(),
            "best_matching_area": self.score.best_area,
            "best_matching_date": self.score.best_date.isoformat() if self.score.best_date else None,
            "connection_status": self.connection_status,
            "connection_id": self.connection_id,
        }


@dataclass
class Connection:
    id: str
    sender_id: str
    receiver_id: str
    status: str
    expires_at: datetime
    match_score: float = 0.0
    sender_details: dict[str, Any] = field(default_factory=dict)
    receiver_details: dict[str, Any] = field(default_factory=dict)
    matching_details: dict[str, Any] = field(default_factory=dict)
    meetup_details: dict[str, Any] = field(default_factory=dict)
    sent_at: datetime | None = None
    responded_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def match_date(self) -> date | None:
        raw = (self.matching_details or {}).get("date")
        if not raw:
            return None
        if isinstance(raw, date):
            return raw
        return date.fromisoformat(str(raw)[:10])

    def other_party(self, user_id: str) -> str:
        return self.receiver_id if self.sender_id == user_id else self.sender_id

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "status": self.status,
            "expires_at": self.expires_at.isoformat(),
            "match_score": self.match_score,
            "sender_details": self.sender_details,
            "receiver_details": self.receiver_details,
            "matching_details": self.matching_details,
            "meetup_details": self.meetup_details,
            "timestamps": {
                "sent": self.sent_at.isoformat() if self.sent_at else None,
                "responded": self.responded_at.isoformat() if self.responded_at else None,
                "completed": self.completed_at.isoformat() if self.completed_at else None,
            },
        }
