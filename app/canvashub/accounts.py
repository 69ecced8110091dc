from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from werkzeug.security import check_password_hash, generate_password_hash

from app.canvashub.models import User

if TYPE_CHECKING:
    from app.canvashub.repositories import UserRepository


def normalize_username(username: str | None) -> str:
    return (username or "").strip()


def register_user(
    repo: "UserRepository",
    username: str,
    password: str,
    *,
    display_name: str | None = None,
) -> User | None:
    """
    Create a user with a hashed password.
    Returns None (and writes nothing) when the username is already taken.
    """
    username = normalize_username(username)
    if not username:
        raise ValueError("Username is required.")
    if not password:
        raise ValueError("Password is required.")
    if repo.find_by_username(username) is not None:
        return None

    now = datetime.utcnow()
    user = User(
        username=username,
        password_hash=generate_password_hash(password),
        display_name=(display_name or "").strip() or None,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    return repo.save(user)


def authenticate(repo: "UserRepository", username: str, password: str) -> User | None:
    user = repo.find_by_username(normalize_username(username))
    if not user or not user.is_active:
        return None
    if not password or not check_password_hash(user.password_hash, password):
        return None
    return user
