from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for
from sqlalchemy.exc import IntegrityError

from app.canvashub.accounts import authenticate, normalize_username, register_user
from app.canvashub.audit import record_event
from app.canvashub.contexts import PageContext
from app.canvashub.db import db_session
from app.canvashub.errors import DecodeError
from app.canvashub.repositories import SqlUserRepository
from app.canvashub.utils import decode_payload, optional_str, require_str

bp = Blueprint("auth", __name__)


def _attempts() -> dict[str, list[datetime]]:
    # per-app, per-process attempt log keyed by client ip
    return current_app.extensions.setdefault("login_attempts", defaultdict(list))


def _check_rate_limit(ip: str) -> bool:
    limit = int(current_app.config.get("LOGIN_RATE_LIMIT", 5))
    window = int(current_app.config.get("LOGIN_RATE_WINDOW", 300))
    if limit <= 0:
        return False
    cutoff = datetime.utcnow() - timedelta(seconds=window)
    attempts = _attempts()
    for key in list(attempts):
        recent = [t for t in attempts[key] if t > cutoff]
        if recent:
            attempts[key] = recent
        else:
            del attempts[key]
    return len(attempts.get(ip, ())) >= limit


def _record_attempt(ip: str) -> None:
    _attempts()[ip].append(datetime.utcnow())


def load_current_user() -> None:
    """
    Loads g.current_user (the principal) from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_user = None
    if request.path.startswith(("/static/", "/health", "/healthz")):
        return

    user_id = session.get("user_id")
    if not user_id:
        return

    user = SqlUserRepository(db_session()).get(int(user_id))
    if not user or not user.is_active:
        session.pop("user_id", None)
        return
    g.current_user = user


def login_session(user) -> None:
    session.clear()
    session["user_id"] = user.id
    session.permanent = True


def logout_session() -> None:
    session.pop("user_id", None)


# ---------- Register ----------
@bp.get("/register")
def register_get():
    return render_template("children/register.html", **PageContext(title="Register").as_template_kwargs())


@bp.post("/register")
def register_post():
    payload = decode_payload(request)
    username = normalize_username(require_str(payload, "username"))
    password = require_str(payload, "password")
    if not username:
        raise DecodeError("Missing required field: username.")

    s = db_session()
    repo = SqlUserRepository(s)
    try:
        user = register_user(repo, username, password, display_name=optional_str(payload, "display_name"))
        if user is None:
            flash("Username is already taken.", "danger")
            return redirect(url_for("auth.register_get"))
        record_event(s, actor=user, action="user.register", entity_type="User", entity_id=str(user.id))
        s.commit()
    except IntegrityError:
        # Lost the race against a concurrent registration of the same username.
        s.rollback()
        current_app.logger.info("Duplicate registration rejected by constraint (username=%s)", username)
        flash("Username is already taken.", "danger")
        return redirect(url_for("auth.register_get"))

    current_app.logger.info("Registered user id=%s username=%s", user.id, user.username)
    flash("Account created. Please log in.", "success")
    return redirect(url_for("auth.login_get"))


# ---------- Login ----------
@bp.get("/login")
def login_get():
    nxt = (request.args.get("next") or "").strip()
    return render_template("children/login.html", next=nxt, **PageContext(title="Login").as_template_kwargs())


@bp.post("/login")
def login_post():
    payload = decode_payload(request)
    username = normalize_username(require_str(payload, "username"))
    password = require_str(payload, "password")
    nxt = (optional_str(payload, "next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        current_app.logger.warning("Login rate limit hit (ip=%s)", ip)
        flash("Too many login attempts. Please wait a few minutes.", "danger")
        return redirect(url_for("auth.login_get"))

    _record_attempt(ip)

    s = db_session()
    user = authenticate(SqlUserRepository(s), username, password)
    if user is None:
        current_app.logger.warning("Login failed (username=%s request_id=%s)", username, g.request_id)
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=username or None,
            reason="Invalid credentials",
        )
        s.commit()
        flash("Invalid credentials.", "danger")
        return redirect(url_for("auth.login_get"))

    login_session(user)
    _attempts().pop(ip, None)
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    # Optional "next" redirect (only allow local paths to avoid open redirects).
    if nxt.startswith("/") and not nxt.startswith("//"):
        return redirect(nxt)
    return redirect(url_for("solutions.index"))


# ---------- Logout ----------
@bp.get("/logout")
def logout():
    user = getattr(g, "current_user", None)
    if user:
        s = db_session()
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    logout_session()
    return redirect(url_for("auth.login_get"))
