from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING, Any

from werkzeug.security import generate_password_hash

from app.canvashub.errors import AuthorizationError, DecodeError

if TYPE_CHECKING:
    from app.canvashub.models import User
    from app.canvashub.repositories import UserRepository

# Fields a user may change on their own record. id/username/is_active stay server-controlled.
WRITABLE_PROFILE_FIELDS = ("display_name", "address1", "address2", "city", "state", "zip")

_ZIP_RE = re.compile(r"\d{5}(-\d{4})?")


def profile_to_dict(user: "User") -> dict[str, Any]:
    """Public profile representation. Never includes the password hash."""
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
        "address1": user.address1,
        "address2": user.address2,
        "city": user.city,
        "state": user.state,
        "zip": user.zip,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def validate_profile_payload(payload: dict) -> list[str]:
    errors = []
    zip_code = str(payload.get("zip") or "").strip()
    if zip_code and not _ZIP_RE.fullmatch(zip_code):
        errors.append("ZIP must be 5 digits or 5+4 (e.g., 12345 or 12345-6789).")
    password = payload.get("password")
    if password is not None and not isinstance(password, str):
        errors.append("Password must be a string.")
    return errors


def update_profile(
    repo: "UserRepository",
    principal: "User",
    record_id: int,
    payload: dict,
) -> tuple["User", dict]:
    """
    Apply the writable fields present in `payload` to the principal's record.
    `record_id` is the id the client claims to be editing; it must be the principal's.
    Returns the user and a change summary for the audit trail.
    """
    if record_id != principal.id:
        raise AuthorizationError(f"Profile {record_id} does not belong to the current user.")

    errors = validate_profile_payload(payload)
    if errors:
        raise DecodeError(" ".join(errors))

    changes: dict = {}
    for key in WRITABLE_PROFILE_FIELDS:
        if key not in payload:
            continue
        raw = payload.get(key)
        new_value = str(raw).strip() if raw is not None else ""
        new_value = new_value or None
        old_value = getattr(principal, key)
        if new_value != old_value:
            changes[key] = {"old": old_value, "new": new_value}
            setattr(principal, key, new_value)

    password = payload.get("password")
    if password:
        principal.password_hash = generate_password_hash(password)
        changes["password"] = "changed"

    if changes:
        principal.updated_at = datetime.utcnow()
        repo.save(principal)
    return principal, changes
