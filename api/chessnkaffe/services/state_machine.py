from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Iterable
from zoneinfo import ZoneInfo

from ..config import DECLINE_COOLDOWN_HOURS, MATCH_TIMEZONE, PROPOSAL_LEAD_HOURS, PROPOSAL_TTL_DAYS
from ..records import Connection

PENDING = "pending"
ACCEPTED = "accepted"
DECLINED = "declined"
DECLINED_PAST = "declined_past"
EXPIRED = "expired"
PAST = "past"

TERMINAL_STATUSES = {DECLINED_PAST, EXPIRED, PAST}
HIDDEN_FROM_MATCHING = {ACCEPTED, DECLINED}
BLOCKS_PROPOSAL = {PENDING, ACCEPTED, DECLINED}


def transition_status(current: str, action: str, now: datetime, expires_at: datetime) -> str:
    if current in TERMINAL_STATUSES:
        return current

    if current == PENDING and now > expires_at:
        return EXPIRED

    if action == "accept":
        if current in {PENDING, ACCEPTED}:
            return ACCEPTED
        return current

    if action == "decline":
        if current in {PENDING, DECLINED}:
            return DECLINED
        return current

    return current


def end_of_match_day(match_date: date, tz: str = MATCH_TIMEZONE) -> datetime:
    return datetime.combine(match_date, time(23, 59, 59), tzinfo=ZoneInfo(tz))


def sweep_status(connection: Connection, now: datetime, tz: str = MATCH_TIMEZONE) -> str:
    """Status the connection should have at ``now``; terminal states never move."""
    status = connection.status
    if status == PENDING:
        if connection.expires_at and now > connection.expires_at:
            return EXPIRED
        return status

    if status == DECLINED:
        if connection.responded_at and now > connection.responded_at + timedelta(hours=DECLINE_COOLDOWN_HOURS):
            return DECLINED_PAST
        return status

    if status == ACCEPTED:
        match_date = connection.match_date
        if match_date and now > end_of_match_day(match_date, tz):
            return PAST
        return status

    return status


def compute_expires_at(
    match_date: date,
    now: datetime,
    meeting_time: str | None = None,
    tz: str = MATCH_TIMEZONE,
) -> datetime:
    start = time(0, 0)
    if meeting_time:
        hours, minutes = meeting_time.split(":")
        start = time(int(hours), int(minutes))
    meeting_start = datetime.combine(match_date, start, tzinfo=ZoneInfo(tz))
    return min(meeting_start - timedelta(hours=PROPOSAL_LEAD_HOURS), now + timedelta(days=PROPOSAL_TTL_DAYS))


def connect_button_state(status: str | None) -> dict[str, Any]:
    if status == PENDING:
        return {"text": "Pending", "can_click": False}
    if status == ACCEPTED:
        return {"text": "Connected", "can_click": False}
    if status == DECLINED:
        return {"text": "Declined", "can_click": False}
    return {"text": "Connect", "can_click": True}


def categorize_connections(connections: Iterable[Connection], user_id: str, today: date) -> dict[str, list[Connection]]:
    buckets: dict[str, list[Connection]] = {"sent": [], "received": [], "confirmed": [], "past": []}
    for c in connections:
        if c.status == PENDING:
            buckets["sent" if c.sender_id == user_id else "received"].append(c)
        elif c.status == ACCEPTED:
            if c.match_date and c.match_date < today:
                buckets["past"].append(c)
            else:
                buckets["confirmed"].append(c)
        elif c.status == PAST:
            buckets["past"].append(c)
    return buckets
