from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for
from werkzeug.security import check_password_hash

from app.backoffice.audit import record_event
from app.backoffice.db import db_session
from app.backoffice.modules.admins.models import Admin

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    recent = [t for t in _login_attempts.get(ip, ()) if t > cutoff]
    if not recent:
        _login_attempts.pop(ip, None)
        return False
    _login_attempts[ip] = recent
    return len(recent) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def load_current_admin() -> None:
    """
    Loads g.current_admin from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_admin = None
        return

    admin_id = session.get("admin_id")
    if not admin_id:
        g.current_admin = None
        return

    try:
        s = db_session()
        admin = s.get(Admin, int(admin_id))
    except Exception as e:
        current_app.logger.error("load_current_admin DB error (clearing session): %s", e)
        admin = None
    if not admin:
        session.pop("admin_id", None)
    g.current_admin = admin


@bp.get("/login")
def login_get():
    nxt = (request.args.get("next") or "").strip()
    return render_template("auth/login.html", next=nxt)


@bp.post("/login")
def login_post():
    username = (request.form.get("username") or "").strip()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("auth.login_get"))

    _record_attempt(ip)

    s = db_session()
    admin = s.query(Admin).filter(Admin.username == username).one_or_none()
    if not admin or not check_password_hash(admin.password_hash, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="Admin",
            entity_id=username,
            reason="Invalid credentials",
        )
        s.commit()
        current_app.logger.warning("Failed login for username=%s ip=%s", username, ip)
        flash("Invalid credentials.", "danger")
        return redirect(url_for("auth.login_get"))

    session["admin_id"] = admin.id
    _login_attempts.pop(ip, None)
    record_event(s, actor=admin, action="auth.login", entity_type="Admin", entity_id=str(admin.id))
    s.commit()
    # Optional "next" redirect (only allow local paths to avoid open redirects).
    if nxt.startswith("/") and not nxt.startswith("//"):
        return redirect(nxt)
    return redirect(url_for("admin.index"))


@bp.get("/logout")
def logout():
    s = db_session()
    admin = getattr(g, "current_admin", None)
    if admin:
        record_event(s, actor=admin, action="auth.logout", entity_type="Admin", entity_id=str(admin.id))
        s.commit()
    session.pop("admin_id", None)
    return redirect(url_for("auth.login_get"))
