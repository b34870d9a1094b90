from __future__ import annotations

import json
from datetime import date, datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from chessnkaffe import repo
from chessnkaffe.errors import DuplicateProposalError
from chessnkaffe.records import Connection, UserPreference


class _Result:
    def __init__(self, rows=None, rowcount=0):
        self._rows = rows or []
        self.rowcount = rowcount

    def mappings(self):
        return self

    def first(self):
        return self._rows[0] if self._rows else None

    def all(self):
        return list(self._rows)


class _FakeSession:
    def __init__(self, results=None, raise_on_execute=None):
        self.calls = []
        self.commits = 0
        self._results = list(results or [])
        self._raise = raise_on_execute

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def execute(self, statement, params=None):
        self.calls.append((str(statement), params))
        if self._raise is not None:
            raise self._raise
        return self._results.pop(0) if self._results else _Result()

    def commit(self):
        self.commits += 1


@pytest.fixture
def session(monkeypatch):
    holder = {"session": _FakeSession()}
    monkeypatch.setattr(repo, "SessionLocal", lambda: holder["session"])
    return holder


def test_put_user_preference_upserts_json(session):
    pref = UserPreference("u1", ("2200 Nørrebro", "2100 Østerbro"), (date(2025, 6, 12),), "10:00", "12:00")
    repo.put_user_preference("u1", pref)

    sql, params = session["session"].calls[0]
    assert "ON CONFLICT (user_id) DO UPDATE" in sql
    assert json.loads(params["areas"]) == ["2200 Nørrebro", "2100 Østerbro"]
    assert json.loads(params["dates"]) == ["2025-06-12"]
    assert session["session"].commits == 1


def test_get_user_preference_parses_row(session):
    session["session"] = _FakeSession(
        [_Result([{"user_id": "u1", "areas": ["2200 Nørrebro"], "dates": ["2025-06-12"], "start_time": "10:00", "end_time": "12:00"}])]
    )
    pref = repo.get_user_preference("u1")
    assert pref == UserPreference("u1", ("2200 Nørrebro",), (date(2025, 6, 12),), "10:00", "12:00")


def test_list_candidate_preferences_skips_malformed_rows(session):
    rows = [
        {"user_id": "a", "alias": "Ann", "pronoun": "she/her", "queer": True, "average_rating": 1200,
         "preference_user_id": "a", "areas": '["2200 Nørrebro"]', "dates": '["2025-06-12"]', "start_time": "10:00", "end_time": "12:00"},
        {"user_id": "b", "alias": None, "pronoun": None, "queer": None, "average_rating": None,
         "preference_user_id": None, "areas": None, "dates": None, "start_time": None, "end_time": None},
        {"user_id": "c", "alias": "Cat", "pronoun": "any", "queer": False, "average_rating": 900,
         "preference_user_id": "c", "areas": "[]", "dates": '["not-a-date"]', "start_time": None, "end_time": None},
    ]
    session["session"] = _FakeSession([_Result(rows)])

    candidates = repo.list_candidate_preferences("me")

    assert [c.user_id for c in candidates] == ["a", "b"]
    assert candidates[0].identity.chess_rating == 1200.0
    assert candidates[0].preference.areas == ("2200 Nørrebro",)
    assert candidates[1].display_name == "Anonymous"
    assert candidates[1].preference is None
    sql, params = session["session"].calls[0]
    assert "disabled_at IS NULL" in sql
    assert params == {"exclude_user_id": "me"}


def test_create_connection_maps_integrity_error_to_duplicate(session):
    session["session"] = _FakeSession(raise_on_execute=IntegrityError("INSERT", {}, Exception("uq_match_connection_open_pair")))
    connection = Connection(
        id="c1",
        sender_id="a",
        receiver_id="b",
        status="pending",
        expires_at=datetime(2025, 6, 12, 10, 0, tzinfo=timezone.utc),
    )
    with pytest.raises(DuplicateProposalError):
        repo.create_connection(connection)


def test_create_connection_serializes_documents(session):
    connection = Connection(
        id="c1",
        sender_id="a",
        receiver_id="b",
        status="pending",
        expires_at=datetime(2025, 6, 12, 10, 0, tzinfo=timezone.utc),
        match_score=8.5,
        meetup_details={"cafe_address": "Absalon", "meeting_time": "15:00"},
    )
    assert repo.create_connection(connection) == "c1"
    sql, params = session["session"].calls[0]
    assert "INSERT INTO match_connection" in sql
    assert json.loads(params["meetup_details"]) == {"cafe_address": "Absalon", "meeting_time": "15:00"}
    assert params["match_score"] == 8.5


def test_update_connection_status_is_conditional(session):
    session["session"] = _FakeSession([_Result(rowcount=0)])
    assert repo.update_connection_status("c1", "expired", expected_status="pending") is False
    sql, params = session["session"].calls[0]
    assert "status=:expected_status" in sql
    assert params["expected_status"] == "pending"

    session["session"] = _FakeSession([_Result(rowcount=1)])
    assert repo.update_connection_status("c1", "accepted", datetime(2025, 6, 10, tzinfo=timezone.utc)) is True


def test_connection_from_row_decodes_json_text():
    row = {
        "id": "c1",
        "sender_id": "a",
        "receiver_id": "b",
        "status": "accepted",
        "expires_at": datetime(2025, 6, 12, tzinfo=timezone.utc),
        "match_score": None,
        "sender_details": '{"display_name": "A"}',
        "receiver_details": {"display_name": "B"},
        "matching_details": '{"date": "2025-06-12"}',
        "meetup_details": None,
        "sent_at": None,
    }
    connection = repo.connection_from_row(row)
    assert connection.match_score == 0.0
    assert connection.sender_details == {"display_name": "A"}
    assert connection.match_date == date(2025, 6, 12)
    assert connection.meetup_details == {}


def test_notification_queries_are_scoped_to_the_owner(session):
    session["session"] = _FakeSession([_Result(rowcount=1)])
    assert repo.mark_notification_read("n1", "u1") is True
    sql, params = session["session"].calls[0]
    assert "user_id=CAST(:user_id AS uuid)" in sql
    assert params == {"id": "n1", "user_id": "u1"}

    session["session"] = _FakeSession([_Result(rowcount=0)])
    assert repo.delete_notification("n1", "someone-else") is False

    session["session"] = _FakeSession([_Result(rowcount=3)])
    assert repo.mark_all_notifications_read("u1") == 3


def test_list_notifications_clamps_limit(session):
    session["session"] = _FakeSession([_Result([])])
    repo.list_notifications("u1", limit=10_000)
    sql, params = session["session"].calls[0]
    assert "deleted=false" in sql
    assert "ORDER BY created_at DESC" in sql
    assert params["limit"] == 100
