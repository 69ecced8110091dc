from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from app.canvashub.audit import record_event
from app.canvashub.db import db_session
from app.canvashub.models import User
from app.canvashub.modules.profile.service import profile_to_dict, update_profile
from app.canvashub.rbac import require_capability
from app.canvashub.repositories import SqlUserRepository
from app.canvashub.utils import decode_payload, require_int

bp = Blueprint("profile", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/profile")
@require_capability("profile.view")
def profile():
    return jsonify(profile_to_dict(_current_user()))


@bp.post("/updateProfile")
@require_capability("profile.edit")
def profile_update():
    """Update the principal's own record. Any other id is an AuthorizationError (403)."""
    s = db_session()
    u = _current_user()
    payload = decode_payload(request)
    record_id = require_int(payload, "id")

    user, changes = update_profile(SqlUserRepository(s), u, record_id, payload)
    if changes:
        record_event(
            s,
            actor=user,
            action="user.update_profile",
            entity_type="User",
            entity_id=str(user.id),
            metadata={"changed": sorted(changes)},
        )
        s.commit()
    return jsonify(profile_to_dict(user))
