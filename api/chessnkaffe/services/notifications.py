import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from .. import repo
from ..records import Connection

logger = logging.getLogger(__name__)

MATCH_INVITATION = "match_invitation"
MATCH_CONFIRMED = "match_confirmed"
MATCH_REMINDER = "match_reminder"
MATCH_DECLINED = "match_declined"

NOTIFICATION_PRIORITY = {
    MATCH_INVITATION: "high",
    MATCH_CONFIRMED: "high",
    MATCH_REMINDER: "normal",
    MATCH_DECLINED: "normal",
}


def notification_priority(notification_type: str) -> str:
    return NOTIFICATION_PRIORITY.get(notification_type, "low")


def _display_name(details: dict[str, Any], fallback: str = "Anonymous") -> str:
    return str((details or {}).get("display_name") or "").strip() or fallback


def _meetup_time(connection: Connection) -> str:
    meetup = connection.meetup_details or {}
    return f"{meetup.get('meeting_time') or ''} - {meetup.get('meeting_end_time') or ''}"


def invitation_payload(connection: Connection) -> dict[str, Any]:
    sender = _display_name(connection.sender_details, fallback="Someone")
    return {
        "type": MATCH_INVITATION,
        "title": "♟️ New Chess Match Invitation!",
        "message": f"{sender} wants to play chess with you",
        "data": {
            "match_id": connection.id,
            "sender_name": _display_name(connection.sender_details),
            "date": (connection.matching_details or {}).get("date"),
            "location": (connection.meetup_details or {}).get("cafe_address"),
            "time": _meetup_time(connection),
        },
    }


def confirmation_payloads(connection: Connection) -> list[tuple[str, dict[str, Any]]]:
    """One payload for the proposer and one for the accepter."""
    receiver_name = _display_name(connection.receiver_details)
    sender_name = _display_name(connection.sender_details)
    common = {
        "match_id": connection.id,
        "date": (connection.matching_details or {}).get("date"),
        "location": (connection.meetup_details or {}).get("cafe_address"),
        "time": _meetup_time(connection),
    }
    return [
        (
            connection.sender_id,
            {
                "type": MATCH_CONFIRMED,
                "title": "✅ Match Accepted!",
                "message": f"{receiver_name} accepted your chess invitation",
                "data": {**common, "opponent_name": receiver_name},
            },
        ),
        (
            connection.receiver_id,
            {
                "type": MATCH_CONFIRMED,
                "title": "✅ Match Confirmed!",
                "message": f"Your chess match with {sender_name} is confirmed",
                "data": {**common, "opponent_name": sender_name},
            },
        ),
    ]


def declined_payload(connection: Connection) -> dict[str, Any]:
    receiver_name = _display_name(connection.receiver_details)
    return {
        "type": MATCH_DECLINED,
        "title": "Match Declined",
        "message": f"{receiver_name} can't make it this time",
        "data": {
            "match_id": connection.id,
            "opponent_name": receiver_name,
            "date": (connection.matching_details or {}).get("date"),
        },
    }


def send_notification(target_user_id: str, payload: dict[str, Any]) -> str | None:
    """Fire-and-forget: a store failure is logged and never reaches the caller."""
    try:
        notification_id = repo.create_notification(target_user_id, payload)
    except SQLAlchemyError:
        logger.exception("[notify] failed to create %s notification for user=%s", payload.get("type"), target_user_id)
        return None
    logger.info("[notify] %s -> user=%s id=%s", payload.get("type"), target_user_id, notification_id)
    return notification_id


def notification_feed(user_id: str, limit: int) -> dict[str, Any]:
    items = repo.list_notifications(user_id, limit=limit)
    for item in items:
        item["priority"] = notification_priority(str(item.get("type") or ""))
    return {
        "notifications": items,
        "unread_count": sum(1 for n in items if not n.get("read")),
    }
