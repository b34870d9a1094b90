import json
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from chessnkaffe.database import SessionLocal
from chessnkaffe.errors import DuplicateProposalError
from chessnkaffe.records import CandidateProfile, Connection, IdentityAttributes, UserPreference

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        value = json.loads(value)
    return list(value) if isinstance(value, (list, tuple)) else []


def _as_dict(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, str):
        value = json.loads(value)
    return dict(value) if isinstance(value, dict) else {}


def _parse_dates(values: Any) -> tuple[date, ...]:
    return tuple(v if isinstance(v, date) else date.fromisoformat(str(v)[:10]) for v in _as_list(values))


def identity_from_row(row: dict[str, Any]) -> IdentityAttributes:
    rating = row.get("average_rating")
    return IdentityAttributes(
        chess_rating=float(rating) if rating is not None else None,
        is_queer=row.get("queer"),
        pronoun=(str(row.get("pronoun") or "").strip() or None),
    )


def preference_from_row(row: dict[str, Any]) -> UserPreference:
    return UserPreference(
        user_id=str(row["user_id"]),
        areas=tuple(str(a) for a in _as_list(row.get("areas"))),
        dates=_parse_dates(row.get("dates")),
        start_time=row.get("start_time") or None,
        end_time=row.get("end_time") or None,
    )


def connection_from_row(row: dict[str, Any]) -> Connection:
    return Connection(
        id=str(row["id"]),
        sender_id=str(row["sender_id"]),
        receiver_id=str(row["receiver_id"]),
        status=str(row["status"]),
        expires_at=row["expires_at"],
        match_score=float(row.get("match_score") or 0.0),
        sender_details=_as_dict(row.get("sender_details")),
        receiver_details=_as_dict(row.get("receiver_details")),
        matching_details=_as_dict(row.get("matching_details")),
        meetup_details=_as_dict(row.get("meetup_details")),
        sent_at=row.get("sent_at"),
        responded_at=row.get("responded_at"),
        completed_at=row.get("completed_at"),
    )


# Users


def create_user(email: str, password_hash: str, alias: str | None = None) -> dict[str, Any] | None:
    user_id = str(uuid.uuid4())
    try:
        with SessionLocal() as db:
            db.execute(
                text(
                    """
                    INSERT INTO user_account (id, email, password_hash, alias)
                    VALUES (:id, :email, :password_hash, :alias)
                    """
                ),
                {"id": user_id, "email": email, "password_hash": password_hash, "alias": alias},
            )
            db.commit()
    except IntegrityError:
        return None
    return get_user_by_id(user_id)


def get_user_by_id(user_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(text("SELECT * FROM user_account WHERE id=CAST(:id AS uuid)"), {"id": user_id}).mappings().first()
    return dict(row) if row else None


def get_user_by_email(email: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(text("SELECT * FROM user_account WHERE email=:email"), {"email": email}).mappings().first()
    return dict(row) if row else None


def update_last_login(user_id: str) -> None:
    with SessionLocal() as db:
        db.execute(text("UPDATE user_account SET last_login_at=now() WHERE id=CAST(:id AS uuid)"), {"id": user_id})
        db.commit()


def update_password_hash(user_id: str, password_hash: str) -> None:
    with SessionLocal() as db:
        db.execute(
            text("UPDATE user_account SET password_hash=:password_hash, updated_at=now() WHERE id=CAST(:id AS uuid)"),
            {"id": user_id, "password_hash": password_hash},
        )
        db.commit()


def get_user_profile(user_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                SELECT id, email, alias, pronoun, queer, chess_experience, average_rating, updated_at
                FROM user_account
                WHERE id=CAST(:id AS uuid)
                """
            ),
            {"id": user_id},
        ).mappings().first()
    if not row:
        return None
    out = dict(row)
    out["id"] = str(out["id"])
    out["chess_experience"] = _as_dict(out.get("chess_experience"))
    return out


def update_user_profile(
    user_id: str,
    *,
    alias: str | None,
    pronoun: str | None,
    queer: bool | None,
    chess_experience: dict[str, Any],
    average_rating: int | None,
) -> dict[str, Any] | None:
    with SessionLocal() as db:
        db.execute(
            text(
                """
                UPDATE user_account
                SET alias=:alias,
                    pronoun=:pronoun,
                    queer=:queer,
                    chess_experience=CAST(:chess_experience AS jsonb),
                    average_rating=:average_rating,
                    updated_at=now()
                WHERE id=CAST(:id AS uuid)
                """
            ),
            {
                "id": user_id,
                "alias": alias,
                "pronoun": pronoun,
                "queer": queer,
                "chess_experience": json.dumps(chess_experience),
                "average_rating": average_rating,
            },
        )
        db.commit()
    return get_user_profile(user_id)


def get_user_identity(user_id: str) -> IdentityAttributes | None:
    profile = get_user_profile(user_id)
    return identity_from_row(profile) if profile else None


# Preferences


def get_user_preference(user_id: str) -> UserPreference | None:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                SELECT user_id, areas, dates, start_time, end_time
                FROM meetup_preference
                WHERE user_id=CAST(:user_id AS uuid)
                """
            ),
            {"user_id": user_id},
        ).mappings().first()
    return preference_from_row(dict(row)) if row else None


def put_user_preference(user_id: str, preference: UserPreference) -> None:
    with SessionLocal() as db:
        db.execute(
            text(
                """
                INSERT INTO meetup_preference (user_id, areas, dates, start_time, end_time)
                VALUES (CAST(:user_id AS uuid), CAST(:areas AS jsonb), CAST(:dates AS jsonb), :start_time, :end_time)
                ON CONFLICT (user_id) DO UPDATE
                SET areas=EXCLUDED.areas,
                    dates=EXCLUDED.dates,
                    start_time=EXCLUDED.start_time,
                    end_time=EXCLUDED.end_time,
                    updated_at=now()
                """
            ),
            {
                "user_id": user_id,
                "areas": json.dumps(list(preference.areas)),
                "dates": json.dumps([d.isoformat() for d in preference.dates]),
                "start_time": preference.start_time,
                "end_time": preference.end_time,
            },
        )
        db.commit()


def list_candidate_preferences(exclude_user_id: str) -> list[CandidateProfile]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT
                  u.id AS user_id,
                  u.alias,
                  u.pronoun,
                  u.queer,
                  u.average_rating,
                  p.user_id AS preference_user_id,
                  p.areas,
                  p.dates,
                  p.start_time,
                  p.end_time
                FROM user_account u
                LEFT JOIN meetup_preference p ON p.user_id = u.id
                WHERE u.id <> CAST(:exclude_user_id AS uuid)
                  AND u.disabled_at IS NULL
                """
            ),
            {"exclude_user_id": exclude_user_id},
        ).mappings().all()

    out: list[CandidateProfile] = []
    for row in rows:
        r = dict(row)
        preference: UserPreference | None = None
        if r.get("preference_user_id") is not None:
            try:
                preference = preference_from_row(r)
            except (TypeError, ValueError, json.JSONDecodeError) as exc:
                logger.warning("[match] candidate=%s has malformed preferences, skipping: %s", r["user_id"], exc)
                continue
        out.append(
            CandidateProfile(
                user_id=str(r["user_id"]),
                display_name=str(r.get("alias") or "").strip() or "Anonymous",
                identity=identity_from_row(r),
                preference=preference,
            )
        )
    return out


# Connections


def get_connections_for_user(user_id: str) -> list[Connection]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT *
                FROM match_connection
                WHERE sender_id=CAST(:user_id AS uuid) OR receiver_id=CAST(:user_id AS uuid)
                ORDER BY sent_at DESC
                """
            ),
            {"user_id": user_id},
        ).mappings().all()
    return [connection_from_row(dict(r)) for r in rows]


def get_connection(connection_id: str) -> Connection | None:
    with SessionLocal() as db:
        row = db.execute(
            text("SELECT * FROM match_connection WHERE id=CAST(:id AS uuid)"),
            {"id": connection_id},
        ).mappings().first()
    return connection_from_row(dict(row)) if row else None


def create_connection(connection: Connection) -> str:
    """Insert a pending connection; the open-pair unique index rejects duplicates."""
    connection_id = connection.id or str(uuid.uuid4())
    try:
        with SessionLocal() as db:
            db.execute(
                text(
                    """
                    INSERT INTO match_connection (
                      id, sender_id, receiver_id, status, expires_at, match_score,
                      sender_details, receiver_details, matching_details, meetup_details, sent_at
                    )
                    VALUES (
                      CAST(:id AS uuid), CAST(:sender_id AS uuid), CAST(:receiver_id AS uuid), :status, :expires_at, :match_score,
                      CAST(:sender_details AS jsonb), CAST(:receiver_details AS jsonb),
                      CAST(:matching_details AS jsonb), CAST(:meetup_details AS jsonb), :sent_at
                    )
                    """
                ),
                {
                    "id": connection_id,
                    "sender_id": connection.sender_id,
                    "receiver_id": connection.receiver_id,
                    "status": connection.status,
                    "expires_at": connection.expires_at,
                    "match_score": connection.match_score,
                    "sender_details": json.dumps(connection.sender_details),
                    "receiver_details": json.dumps(connection.receiver_details),
                    "matching_details": json.dumps(connection.matching_details),
                    "meetup_details": json.dumps(connection.meetup_details),
                    "sent_at": connection.sent_at or _now_utc(),
                },
            )
            db.commit()
    except IntegrityError as exc:
        logger.info(
            "[connect] duplicate open connection sender=%s receiver=%s: %s",
            connection.sender_id,
            connection.receiver_id,
            exc.orig,
        )
        raise DuplicateProposalError() from exc
    return connection_id


def update_connection_status(
    connection_id: str,
    status: str,
    responded_at: datetime | None = None,
    *,
    completed_at: datetime | None = None,
    expected_status: str | None = None,
) -> bool:
    """Set the status; with ``expected_status`` the write only lands if the row still has it."""
    with SessionLocal() as db:
        result = db.execute(
            text(
                """
                UPDATE match_connection
                SET status=:status,
                    responded_at=COALESCE(:responded_at, responded_at),
                    completed_at=COALESCE(:completed_at, completed_at)
                WHERE id=CAST(:id AS uuid)
                  AND (CAST(:expected_status AS text) IS NULL OR status=:expected_status)
                """
            ),
            {
                "id": connection_id,
                "status": status,
                "responded_at": responded_at,
                "completed_at": completed_at,
                "expected_status": expected_status,
            },
        )
        db.commit()
    return bool(result.rowcount)


# Notifications


def create_notification(target_user_id: str, payload: dict[str, Any]) -> str:
    notification_id = str(uuid.uuid4())
    with SessionLocal() as db:
        db.execute(
            text(
                """
                INSERT INTO notification (id, user_id, type, title, message, data)
                VALUES (CAST(:id AS uuid), CAST(:user_id AS uuid), :type, :title, :message, CAST(:data AS jsonb))
                """
            ),
            {
                "id": notification_id,
                "user_id": target_user_id,
                "type": payload["type"],
                "title": payload["title"],
                "message": payload["message"],
                "data": json.dumps(payload.get("data") or {}),
            },
        )
        db.commit()
    return notification_id


def list_notifications(user_id: str, limit: int = 10) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT id, user_id, type, title, message, data, read, read_at, created_at
                FROM notification
                WHERE user_id=CAST(:user_id AS uuid) AND deleted=false
                ORDER BY created_at DESC
                LIMIT :limit
                """
            ),
            {"user_id": user_id, "limit": max(1, min(int(limit), 100))},
        ).mappings().all()
    out = []
    for r in rows:
        item = dict(r)
        item["id"] = str(item["id"])
        item["user_id"] = str(item["user_id"])
        item["data"] = _as_dict(item.get("data"))
        out.append(item)
    return out


def mark_notification_read(notification_id: str, user_id: str) -> bool:
    with SessionLocal() as db:
        result = db.execute(
            text(
                """
                UPDATE notification
                SET read=true, read_at=COALESCE(read_at, now())
                WHERE id=CAST(:id AS uuid) AND user_id=CAST(:user_id AS uuid) AND deleted=false
                """
            ),
            {"id": notification_id, "user_id": user_id},
        )
        db.commit()
    return bool(result.rowcount)


def mark_all_notifications_read(user_id: str) -> int:
    with SessionLocal() as db:
        result = db.execute(
            text(
                """
                UPDATE notification
                SET read=true, read_at=now()
                WHERE user_id=CAST(:user_id AS uuid) AND read=false AND deleted=false
                """
            ),
            {"user_id": user_id},
        )
        db.commit()
    return int(result.rowcount or 0)


def delete_notification(notification_id: str, user_id: str) -> bool:
    with SessionLocal() as db:
        result = db.execute(
            text(
                """
                UPDATE notification
                SET deleted=true, deleted_at=now()
                WHERE id=CAST(:id AS uuid) AND user_id=CAST(:user_id AS uuid) AND deleted=false
                """
            ),
            {"id": notification_id, "user_id": user_id},
        )
        db.commit()
    return bool(result.rowcount)
