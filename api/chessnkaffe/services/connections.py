from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Iterable
from zoneinfo import ZoneInfo

from .. import repo
from ..config import MATCH_TIMEZONE
from ..errors import ConnectionActionNotAllowed, ConnectionNotFound, DuplicateProposalError, ProposalRejected
from ..records import Connection, IdentityAttributes, MatchScoreCalculation, UserPreference
from .availability import parse_clock
from .notifications import confirmation_payloads, declined_payload, invitation_payload, send_notification
from .scoring import score_match
from .state_machine import (
    ACCEPTED,
    BLOCKS_PROPOSAL,
    PAST,
    PENDING,
    categorize_connections,
    compute_expires_at,
    sweep_status,
    transition_status,
)

logger = logging.getLogger(__name__)


def local_today(now: datetime, tz: str = MATCH_TIMEZONE) -> date:
    return now.astimezone(ZoneInfo(tz)).date()


def sweep_connections(connections: Iterable[Connection], now: datetime) -> list[Connection]:
    """Apply the time rules and persist whatever moved.

    Writes are conditional on the status we read, so two sweeps racing over
    the same row land the same result once. When the row changed underneath
    us (e.g. the receiver accepted in the meantime) the fresh row is swept
    instead.
    """
    out: list[Connection] = []
    for connection in connections:
        target = sweep_status(connection, now)
        if target == connection.status:
            out.append(connection)
            continue

        completed_at = now if target == PAST else None
        moved = repo.update_connection_status(
            connection.id,
            target,
            completed_at=completed_at,
            expected_status=connection.status,
        )
        if moved:
            logger.info("[sweep] connection=%s %s -> %s", connection.id, connection.status, target)
            connection.status = target
            if completed_at:
                connection.completed_at = completed_at
            out.append(connection)
            continue

        fresh = repo.get_connection(connection.id)
        if fresh is None:
            continue
        fresh.status = sweep_status(fresh, now)
        out.append(fresh)
    return out


def load_connections(user_id: str, now: datetime) -> list[Connection]:
    return sweep_connections(repo.get_connections_for_user(user_id), now)


def connection_statuses(connections: Iterable[Connection], user_id: str) -> dict[str, tuple[str, str]]:
    """Other party -> (status, connection id), most recent connection first."""
    out: dict[str, tuple[str, str]] = {}
    for c in sorted(connections, key=lambda c: c.sent_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True):
        out.setdefault(c.other_party(user_id), (c.status, c.id))
    return out


def dashboard(user_id: str, now: datetime) -> dict[str, list[dict[str, Any]]]:
    buckets = categorize_connections(load_connections(user_id, now), user_id, local_today(now))
    return {name: [c.as_dict() for c in items] for name, items in buckets.items()}


def _party_snapshot(profile: dict[str, Any] | None, identity: IdentityAttributes | None) -> dict[str, Any]:
    profile = profile or {}
    return {
        "display_name": str(profile.get("alias") or "").strip() or "Anonymous",
        "pronouns": (identity.pronoun if identity else None) or "Not specified",
        "chess_rating": (identity.chess_rating if identity else None) or 0,
        "is_queer": bool(identity.is_queer) if identity and identity.is_queer is not None else False,
    }


def _check_meeting_window(details: dict[str, Any], window_start: str | None, window_end: str | None) -> None:
    start = parse_clock(str(details["meeting_time"]))
    end = parse_clock(str(details["meeting_end_time"]))
    if end <= start:
        raise ProposalRejected("Meeting end time must be after the start time")
    if window_start and window_end:
        if not parse_clock(window_start) <= start < parse_clock(window_end):
            raise ProposalRejected(f"Meeting time must be between {window_start} and {window_end}")


def _score_pair(
    sender_id: str, receiver_id: str, today: date
) -> tuple[MatchScoreCalculation, IdentityAttributes, IdentityAttributes, UserPreference]:
    sender_pref = repo.get_user_preference(sender_id)
    if sender_pref is None:
        raise ProposalRejected("Set your meetup preferences before proposing a match")
    receiver_pref = repo.get_user_preference(receiver_id)
    if receiver_pref is None:
        raise ProposalRejected("This player has no meetup availability")

    sender_identity = repo.get_user_identity(sender_id) or IdentityAttributes()
    receiver_identity = repo.get_user_identity(receiver_id) or IdentityAttributes()
    score = score_match(
        sender_identity,
        sender_pref.with_dates_from(today),
        receiver_identity,
        receiver_pref.with_dates_from(today),
    )
    if score.total_score <= 0 or score.missing_required or score.best_date is None:
        raise ProposalRejected("No compatible availability with this player")
    return score, sender_identity, receiver_identity, receiver_pref


def propose_connection(sender_id: str, receiver_id: str, details: dict[str, Any], now: datetime) -> Connection:
    """Create a pending Connection from sender to receiver.

    ``details`` carries the meetup fields: cafe_address, meeting_time,
    meeting_end_time, chess_set_provider and comments.
    """
    if sender_id == receiver_id:
        raise ProposalRejected("You cannot propose a match to yourself")

    for existing in load_connections(sender_id, now):
        if existing.other_party(sender_id) != receiver_id or existing.status not in BLOCKS_PROPOSAL:
            continue
        if existing.status == PENDING and existing.sender_id == sender_id:
            raise DuplicateProposalError()
        raise DuplicateProposalError(existing.status)

    score, sender_identity, receiver_identity, receiver_pref = _score_pair(sender_id, receiver_id, local_today(now))
    _check_meeting_window(details, receiver_pref.start_time, receiver_pref.end_time)

    connection = Connection(
        id=str(uuid.uuid4()),
        sender_id=sender_id,
        receiver_id=receiver_id,
        status=PENDING,
        expires_at=compute_expires_at(score.best_date, now, str(details["meeting_time"])),
        match_score=score.total_score,
        sender_details=_party_snapshot(repo.get_user_profile(sender_id), sender_identity),
        receiver_details=_party_snapshot(repo.get_user_profile(receiver_id), receiver_identity),
        matching_details={
            "area": score.best_area,
            "date": score.best_date.isoformat(),
            "time_window": {"start": receiver_pref.start_time, "end": receiver_pref.end_time},
        },
        meetup_details={
            "cafe_address": details["cafe_address"],
            "meeting_time": details["meeting_time"],
            "meeting_end_time": details["meeting_end_time"],
            "chess_set_provider": details["chess_set_provider"],
            "comments": details.get("comments") or "",
        },
        sent_at=now,
    )
    connection.id = repo.create_connection(connection)
    logger.info(
        "[connect] proposed connection=%s sender=%s receiver=%s score=%.2f expires_at=%s",
        connection.id,
        sender_id,
        receiver_id,
        connection.match_score,
        connection.expires_at.isoformat(),
    )

    send_notification(receiver_id, invitation_payload(connection))
    return connection


def respond_to_connection(connection_id: str, user_id: str, action: str, now: datetime) -> Connection:
    if action not in {"accept", "decline"}:
        raise ConnectionActionNotAllowed(f"Unsupported action: {action}", status_code=400)

    connection = repo.get_connection(connection_id)
    if connection is None or user_id not in {connection.sender_id, connection.receiver_id}:
        raise ConnectionNotFound(connection_id)
    if connection.receiver_id != user_id:
        raise ConnectionActionNotAllowed("Only the invited player can respond to this match", status_code=403)

    swept = sweep_connections([connection], now)
    if not swept:
        raise ConnectionNotFound(connection_id)
    connection = swept[0]
    if connection.status != PENDING:
        raise ConnectionActionNotAllowed(f"Match is already {connection.status}")

    target = transition_status(connection.status, action, now, connection.expires_at)
    if not repo.update_connection_status(connection.id, target, now, expected_status=PENDING):
        # lost the race to another response or a sweep
        fresh = repo.get_connection(connection.id)
        status = fresh.status if fresh else "gone"
        raise ConnectionActionNotAllowed(f"Match is already {status}")

    connection.status = target
    connection.responded_at = now
    logger.info("[connect] connection=%s %s by user=%s", connection.id, target, user_id)

    if target == ACCEPTED:
        for recipient, payload in confirmation_payloads(connection):
            send_notification(recipient, payload)
    else:
        send_notification(connection.sender_id, declined_payload(connection))
    return connection
