import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import DataError, OperationalError

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

import chessnkaffe.main as m
from chessnkaffe import config as app_config
from chessnkaffe import repo
from chessnkaffe.auth import security as auth_security
from chessnkaffe.errors import DuplicateProposalError
from chessnkaffe.records import CandidateProfile, IdentityAttributes, UserPreference
from chessnkaffe.services import rate_limit
from chessnkaffe.services.connections import local_today

TEST_SECRET = "test-secret-key-for-testing-only"
ALICE = "11111111-1111-1111-1111-111111111111"
BOB = "22222222-2222-2222-2222-222222222222"
PASSWORD_HASH = auth_security.hash_password("correct horse")


def _match_day():
    return local_today(datetime.now(timezone.utc)) + timedelta(days=2)


class _Store:
    def __init__(self):
        self.users = {
            ALICE: {"id": ALICE, "email": "alice@example.dk", "alias": "Alice", "password_hash": PASSWORD_HASH, "disabled_at": None},
            BOB: {"id": BOB, "email": "bob@example.dk", "alias": "Bob", "password_hash": PASSWORD_HASH, "disabled_at": None},
        }
        self.identities = {
            ALICE: IdentityAttributes(chess_rating=1300, is_queer=True, pronoun="she/her"),
            BOB: IdentityAttributes(chess_rating=1250, is_queer=True, pronoun="any"),
        }
        self.preferences = {
            BOB: UserPreference(BOB, ("2200 Nørrebro",), (_match_day(),), "13:00", "19:00"),
        }
        self.connections = {}
        self.notifications = []

    def install(self, monkeypatch):
        monkeypatch.setattr(repo, "get_user_by_id", lambda uid: self.users.get(uid))
        monkeypatch.setattr(
            repo,
            "get_user_by_email",
            lambda email: next((u for u in self.users.values() if u["email"] == email), None),
        )
        monkeypatch.setattr(repo, "update_last_login", lambda uid: None)
        monkeypatch.setattr(repo, "get_user_profile", lambda uid: self.users.get(uid) and {"id": uid, "alias": self.users[uid]["alias"]})
        monkeypatch.setattr(repo, "get_user_identity", lambda uid: self.identities.get(uid))
        monkeypatch.setattr(repo, "get_user_preference", lambda uid: self.preferences.get(uid))
        monkeypatch.setattr(repo, "put_user_preference", lambda uid, pref: self.preferences.__setitem__(uid, pref))
        monkeypatch.setattr(repo, "list_candidate_preferences", self.list_candidate_preferences)
        monkeypatch.setattr(repo, "get_connections_for_user", self.get_connections_for_user)
        monkeypatch.setattr(repo, "get_connection", lambda cid: self.connections.get(cid) and replace(self.connections[cid]))
        monkeypatch.setattr(repo, "create_connection", self.create_connection)
        monkeypatch.setattr(repo, "update_connection_status", self.update_connection_status)
        monkeypatch.setattr(repo, "create_notification", self.create_notification)
        monkeypatch.setattr(repo, "list_notifications", lambda uid, limit: [dict(n) for n in self.notifications if n["user_id"] == uid][:limit])
        monkeypatch.setattr(repo, "mark_notification_read", self.mark_notification_read)
        return self

    def list_candidate_preferences(self, exclude_user_id):
        return [
            CandidateProfile(uid, u["alias"], self.identities[uid], self.preferences.get(uid))
            for uid, u in self.users.items()
            if uid != exclude_user_id
        ]

    def get_connections_for_user(self, user_id):
        return [replace(c) for c in self.connections.values() if user_id in (c.sender_id, c.receiver_id)]

    def create_connection(self, connection):
        for c in self.connections.values():
            if {c.sender_id, c.receiver_id} == {connection.sender_id, connection.receiver_id} and c.status in {"pending", "accepted", "declined"}:
                raise DuplicateProposalError()
        self.connections[connection.id] = replace(connection, sent_at=datetime.now(timezone.utc))
        return connection.id

    def update_connection_status(self, connection_id, status, responded_at=None, *, completed_at=None, expected_status=None):
        row = self.connections.get(connection_id)
        if row is None or (expected_status is not None and row.status != expected_status):
            return False
        row.status = status
        row.responded_at = responded_at or row.responded_at
        row.completed_at = completed_at or row.completed_at
        return True

    def create_notification(self, target_user_id, payload):
        nid = str(uuid.uuid4())
        self.notifications.insert(0, {"id": nid, "user_id": target_user_id, "read": False, **payload})
        return nid

    def mark_notification_read(self, notification_id, user_id):
        for n in self.notifications:
            if n["id"] == notification_id and n["user_id"] == user_id:
                n["read"] = True
                return True
        return False


@pytest.fixture
def store(monkeypatch):
    monkeypatch.setattr(m, "wait_for_db", lambda *args, **kwargs: None)
    monkeypatch.setattr(m, "run_migrations", lambda *args, **kwargs: None)
    # security imports the secret at load time
    monkeypatch.setattr(app_config, "JWT_SECRET", TEST_SECRET)
    monkeypatch.setattr(auth_security, "JWT_SECRET", TEST_SECRET)
    rate_limit.limiter.reset()
    return _Store().install(monkeypatch)


@pytest.fixture
def client(store):
    return TestClient(m.app)


def _bearer(user_id, email):
    return {"Authorization": f"Bearer {auth_security.create_access_token(user_id=user_id, email=email)}"}


def _proposal():
    return {
        "receiver_id": BOB,
        "cafe_address": "Folkets Café, Stengade 50, 2200 København N",
        "meeting_time": "15:00",
        "meeting_end_time": "17:00",
        "chess_set_provider": "cafe",
        "comments": "",
    }


def test_public_endpoints(client):
    assert client.get("/health").json() == {"status": "ok"}

    cafes = client.get("/cafes", params={"area": "2200 Nørrebro"}).json()
    assert cafes["total"] == len(cafes["cafes"]) > 0
    absalon = client.get("/cafes/absalon").json()
    assert absalon["address_label"] == "Absalon, Sønder Boulevard 73, 1651 København V"
    assert client.get("/cafes/nowhere").status_code == 404

    areas = client.get("/areas").json()
    assert {"name": "2200 Nørrebro", "coordinates": {"lat": 55.6971, "lng": 12.5429}} in areas["areas"]
    assert len(areas["bookable_dates"]) == 14
    assert areas["time_options"][0] == "09:00"


def test_protected_endpoints_require_auth(client):
    for method, path in [("get", "/preferences"), ("post", "/matches/find"), ("get", "/connections"), ("get", "/notifications")]:
        resp = getattr(client, method)(path)
        assert resp.status_code == 401, path
        assert "trace_id" in resp.json()["detail"]

    resp = client.get("/auth/me", headers={"Authorization": "Token abc"})
    assert resp.status_code == 401


def test_login_sets_cookie_and_bearer_mode_returns_token(client):
    bad = client.post("/auth/login", json={"email": "alice@example.dk", "password": "wrong"})
    assert bad.status_code == 401

    login = client.post("/auth/login", json={"email": " Alice@Example.dk ", "password": "correct horse"})
    assert login.status_code == 200
    assert login.json() == {"id": ALICE, "email": "alice@example.dk", "alias": "Alice"}
    assert app_config.SESSION_COOKIE_NAME in login.cookies

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["id"] == ALICE

    bearer = client.post(
        "/auth/login",
        json={"email": "bob@example.dk", "password": "correct horse"},
        headers={"X-Auth-Mode": "bearer"},
    )
    token = bearer.json()["access_token"]
    assert auth_security.decode_access_token(token)["sub"] == BOB


def test_disabled_account_is_forbidden(client, store):
    store.users[ALICE]["disabled_at"] = datetime.now(timezone.utc)
    resp = client.get("/connections", headers=_bearer(ALICE, "alice@example.dk"))
    assert resp.status_code == 403


def test_preferences_match_propose_accept_flow(client, store):
    alice = _bearer(ALICE, "alice@example.dk")
    bob = _bearer(BOB, "bob@example.dk")
    day = _match_day().isoformat()

    assert client.get("/preferences", headers=alice).status_code == 404
    assert client.post("/matches/find", headers=alice).status_code == 404

    saved = client.put(
        "/preferences",
        headers=alice,
        json={"areas": ["2200 Nørrebro"], "dates": [day], "start_time": "14:00", "end_time": "18:00"},
    )
    assert saved.status_code == 200
    assert client.get("/preferences", headers=alice).json()["dates"] == [day]

    found = client.post("/matches/find", headers=alice).json()
    assert found["total"] == 1
    top = found["matches"][0]
    assert top["user_id"] == BOB
    assert top["best_matching_date"] == day
    assert top["connect_button"] == {"text": "Connect", "can_click": True}

    proposed = client.post("/connections", headers=alice, json=_proposal())
    assert proposed.status_code == 201
    connection_id = proposed.json()["id"]
    assert proposed.json()["status"] == "pending"

    again = client.post("/connections", headers=alice, json=_proposal())
    assert again.status_code == 409

    assert client.post(f"/connections/{connection_id}/accept", headers=alice).status_code == 403

    accepted = client.post(f"/connections/{connection_id}/accept", headers=bob)
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"

    board = client.get("/connections", headers=alice).json()
    assert [c["id"] for c in board["confirmed"]] == [connection_id]
    assert board["sent"] == []

    found = client.post("/matches/find", headers=alice).json()
    assert found["total"] == 0

    feed = client.get("/notifications", headers=bob).json()
    assert [n["type"] for n in feed["notifications"]] == ["match_confirmed", "match_invitation"]
    assert feed["unread_count"] == 2
    first = feed["notifications"][0]["id"]
    assert client.post(f"/notifications/{first}/read", headers=bob).status_code == 200
    assert client.post(f"/notifications/{first}/read", headers=alice).status_code == 404


def test_proposal_validation_errors(client, store):
    alice = _bearer(ALICE, "alice@example.dk")
    store.preferences[ALICE] = UserPreference(ALICE, ("2200 Nørrebro",), (_match_day(),), "14:00", "18:00")

    resp = client.post("/connections", headers=alice, json={**_proposal(), "chess_set_provider": "robot"})
    assert resp.status_code == 400

    resp = client.post("/connections", headers=alice, json={**_proposal(), "meeting_time": "20:00", "meeting_end_time": "21:00"})
    assert resp.status_code == 400

    resp = client.post("/connections/does-not-exist/decline", headers=_bearer(BOB, "bob@example.dk"))
    assert resp.status_code == 404
    assert store.connections == {}


def test_store_failure_is_a_503(client, monkeypatch):
    def boom(user_id):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(repo, "get_user_preference", boom)
    resp = client.get("/preferences", headers=_bearer(ALICE, "alice@example.dk"))
    assert resp.status_code == 503
    assert resp.json() == {"detail": "Service temporarily unavailable, please retry"}


def test_login_is_rate_limited(client):
    payload = {"email": "nobody@example.dk", "password": "guess"}
    statuses = [client.post("/auth/login", json=payload).status_code for _ in range(app_config.RL_AUTH_LOGIN_LIMIT)]
    assert set(statuses) == {401}

    blocked = client.post("/auth/login", json=payload)
    assert blocked.status_code == 429
    assert int(blocked.headers["Retry-After"]) >= 1


def test_profile_update_stores_derived_rating(client, store, monkeypatch):
    saved = {}

    def fake_update(user_id, **fields):
        saved.update(fields)
        return {"id": user_id, **fields}

    monkeypatch.setattr(repo, "update_user_profile", fake_update)
    alice = _bearer(ALICE, "alice@example.dk")
    resp = client.put(
        "/users/me",
        headers=alice,
        json={"alias": "Alice", "pronoun": "she/her", "queer": True, "chess_experience": {"manual": {"level": "beginner"}}},
    )
    assert resp.status_code == 200
    assert saved["average_rating"] == 250
    assert resp.json()["chess_experience"]["manual"] == {"level": "beginner", "rating": 250}

    assert client.put("/users/me", headers=alice, json={"pronoun": "xe/xem"}).status_code == 400
    assert client.get("/ratings/myspace/alice", headers=alice).status_code == 404


def test_malformed_ids_never_reach_the_store(client, store, monkeypatch):
    def uuid_cast_fails(*args, **kwargs):
        raise DataError("SELECT", {}, Exception("invalid input syntax for type uuid"))

    for name in ("get_user_preference", "get_connection", "mark_notification_read", "delete_notification"):
        monkeypatch.setattr(repo, name, uuid_cast_fails)
    alice = _bearer(ALICE, "alice@example.dk")
    bob = _bearer(BOB, "bob@example.dk")

    resp = client.post("/connections", headers=alice, json={**_proposal(), "receiver_id": "bob"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "receiver_id must be a valid UUID"

    assert client.post("/connections/not-a-uuid/accept", headers=bob).status_code == 404
    assert client.post("/connections/not-a-uuid/decline", headers=bob).status_code == 404
    assert client.post("/notifications/n1/read", headers=bob).status_code == 404
    assert client.delete("/notifications/n1", headers=bob).status_code == 404


def test_rate_limit_follows_the_player_not_the_token(client):
    limit = app_config.RL_MATCH_FIND_LIMIT
    first = client.post("/matches/find", headers=_bearer(BOB, "bob@example.dk"))
    assert first.status_code == 200
    assert first.headers["X-RateLimit-Limit"] == str(limit)
    assert first.headers["X-RateLimit-Remaining"] == str(limit - 1)

    # A second device signs the same player in with a different token.
    second = client.post("/matches/find", headers=_bearer(BOB, "bob+phone@example.dk"))
    assert second.headers["X-RateLimit-Remaining"] == str(limit - 2)

    for _ in range(limit - 2):
        rate_limit.limiter.hit(f"match_find:user:{BOB}", limit=limit, window_seconds=app_config.RL_WINDOW_SECONDS)
    blocked = client.post("/matches/find", headers=_bearer(BOB, "bob@example.dk"))
    assert blocked.status_code == 429
    assert blocked.headers["X-RateLimit-Remaining"] == "0"
    assert int(blocked.headers["Retry-After"]) >= 1

    assert client.post("/matches/find", headers=_bearer(ALICE, "alice@example.dk")).status_code == 404
