from datetime import datetime, timedelta

import pytest
from werkzeug.security import generate_password_hash

from app.backoffice import create_app
from app.backoffice.auth import _check_rate_limit, _login_attempts
from app.backoffice.db import session_scope
from app.backoffice.models import Admin, AuditEvent, Base


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.delenv("ADMIN_DIR", raising=False)
    _login_attempts.clear()

    app = create_app()

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        s.add(Admin(username="ownerone", name="Owner One", role="owner", password_hash=generate_password_hash("pw")))

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_login_and_admin_access(app, client):
    # Anonymous is sent to login
    r = client.get("/admin/")
    assert r.status_code == 302
    assert "/admin/login" in r.headers["Location"]

    r = client.post("/admin/login", data={"username": "ownerone", "password": "pw"}, follow_redirects=False)
    assert r.status_code == 302

    r = client.get("/admin/")
    assert r.status_code == 200
    assert b"Owner One" in r.data
    assert b"/admin/admins/insert" in r.data

    with session_scope(app) as s:
        actions = [e.action for e in s.query(AuditEvent).all()]
    assert "auth.login" in actions


def test_login_bad_password(app, client):
    r = client.post("/admin/login", data={"username": "ownerone", "password": "nope"}, follow_redirects=True)
    assert b"Invalid credentials." in r.data
    r = client.get("/admin/")
    assert r.status_code == 302


def test_login_attempts_forget_idle_clients(client):
    client.post("/admin/login", data={"username": "ownerone", "password": "nope"})
    assert "127.0.0.1" in _login_attempts
    _login_attempts["127.0.0.1"] = [datetime.utcnow() - timedelta(minutes=10)]
    assert _check_rate_limit("127.0.0.1") is False
    assert "127.0.0.1" not in _login_attempts


def test_successful_login_forgets_client(client):
    client.post("/admin/login", data={"username": "ownerone", "password": "nope"})
    client.post("/admin/login", data={"username": "ownerone", "password": "pw"})
    assert "127.0.0.1" not in _login_attempts


def test_login_next_is_local_only(client):
    r = client.post("/admin/login", data={"username": "ownerone", "password": "pw", "next": "//evil.example"})
    assert r.headers["Location"].endswith("/admin/")


def test_logout(client):
    client.post("/admin/login", data={"username": "ownerone", "password": "pw"})
    client.get("/admin/logout")
    assert client.get("/admin/").status_code == 302


def test_admin_dir_is_configurable(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'other.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("ADMIN_DIR", "backstage")
    app = create_app()
    client = app.test_client()
    assert client.get("/backstage/login").status_code == 200
    assert client.get("/admin/login").status_code == 404


def test_production_requires_secret(monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost/db")
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(RuntimeError):
        create_app()
