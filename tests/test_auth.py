from collections import defaultdict
from datetime import datetime, timedelta

import pytest
from werkzeug.security import check_password_hash, generate_password_hash

from app.canvashub import create_app
from app.canvashub.db import create_schema, session_scope
from app.canvashub.models import AuditEvent, User


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("CSRF_ENABLED", "0")
    monkeypatch.setenv("LOGIN_RATE_LIMIT", "3")

    app = create_app()
    create_schema(app)

    with session_scope(app) as s:
        s.add(User(username="bob", password_hash=generate_password_hash("bob-pw"), is_active=True))
        s.add(User(username="carol", password_hash=generate_password_hash("carol-pw"), is_active=False))

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _users_named(app, username):
    with session_scope(app) as s:
        return s.query(User).filter(User.username == username).all()


def test_register_hashes_password_and_redirects_to_login(app, client):
    r = client.post("/register", data={"username": "alice", "password": "s3cret"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")

    users = _users_named(app, "alice")
    assert len(users) == 1
    assert users[0].password_hash != "s3cret"
    assert check_password_hash(users[0].password_hash, "s3cret")


def test_register_accepts_json_body(app, client):
    r = client.post("/register", json={"username": "dave", "password": "pw", "display_name": "Dave"})
    assert r.status_code == 302
    users = _users_named(app, "dave")
    assert len(users) == 1
    assert users[0].display_name == "Dave"


def test_register_existing_username_changes_nothing(app, client):
    before = _users_named(app, "bob")[0]

    r = client.post("/register", data={"username": "bob", "password": "other"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/register")

    users = _users_named(app, "bob")
    assert len(users) == 1
    assert users[0].id == before.id
    assert users[0].password_hash == before.password_hash
    assert check_password_hash(users[0].password_hash, "bob-pw")


def test_register_missing_fields_is_bad_request(client):
    r = client.post("/register", data={"username": "eve"})
    assert r.status_code == 400

    r = client.post("/register", data={"username": "   ", "password": "pw"})
    assert r.status_code == 400

    r = client.post("/register", data="{not json", content_type="application/json")
    assert r.status_code == 400


def test_login_success_gives_profile(client):
    r = client.post("/login", data={"username": "bob", "password": "bob-pw"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/")

    r = client.get("/profile")
    assert r.status_code == 200
    assert r.json["username"] == "bob"
    assert "password_hash" not in r.json


def test_login_bad_password_keeps_session_anonymous(client):
    r = client.post("/login", data={"username": "bob", "password": "wrong"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")

    r = client.get("/profile", follow_redirects=False)
    assert r.status_code == 302
    assert "/login" in r.headers["Location"]


def test_login_unknown_and_inactive_users_rejected(client):
    r = client.post("/login", data={"username": "nobody", "password": "x"}, follow_redirects=False)
    assert r.headers["Location"].endswith("/login")

    r = client.post("/login", data={"username": "carol", "password": "carol-pw"}, follow_redirects=False)
    assert r.headers["Location"].endswith("/login")
    assert client.get("/profile").status_code == 302


def test_login_rate_limit_blocks_even_correct_password(client):
    for _ in range(3):
        client.post("/login", data={"username": "bob", "password": "wrong"})

    client.post("/login", data={"username": "bob", "password": "bob-pw"})
    r = client.get("/profile", follow_redirects=False)
    assert r.status_code == 302


def test_stale_attempts_from_other_ips_are_dropped(app, client):
    attempts = app.extensions.setdefault("login_attempts", defaultdict(list))
    attempts["10.0.0.9"] = [datetime.utcnow() - timedelta(hours=1)]

    client.post("/login", data={"username": "bob", "password": "wrong"})

    attempts = app.extensions["login_attempts"]
    assert "10.0.0.9" not in attempts
    assert len(attempts["127.0.0.1"]) == 1


def test_logout_then_profile_redirects_to_login(client):
    client.post("/login", data={"username": "bob", "password": "bob-pw"})
    assert client.get("/profile").status_code == 200

    r = client.get("/logout", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")

    r = client.get("/profile", follow_redirects=False)
    assert r.status_code == 302
    assert "/login" in r.headers["Location"]


def test_auth_events_are_audited(app, client):
    client.post("/register", data={"username": "frank", "password": "pw"})
    client.post("/login", data={"username": "frank", "password": "bad"})
    client.post("/login", data={"username": "frank", "password": "pw"})
    client.get("/logout")

    with session_scope(app) as s:
        actions = [e.action for e in s.query(AuditEvent).order_by(AuditEvent.id.asc()).all()]
        failed = s.query(AuditEvent).filter(AuditEvent.action == "auth.login_failed").one()
        assert failed.actor_user_id is None
        assert failed.entity_id == "frank"
        assert failed.reason == "Invalid credentials"
    assert actions == ["user.register", "auth.login_failed", "auth.login", "auth.logout"]
