from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g, redirect, request, url_for

from app.canvashub.models import User

# Capabilities granted to every active, authenticated principal.
AUTHENTICATED_CAPABILITIES = frozenset(
    {
        "profile.view",
        "profile.edit",
        "solutions.view",
        "solutions.create",
        "solutions.edit",
        "solutions.delete",
    }
)


def capabilities_for(user: User | None) -> frozenset[str]:
    if not user or not user.is_active:
        return frozenset()
    return AUTHENTICATED_CAPABILITIES


def user_has_capability(user: User | None, capability: str) -> bool:
    return capability in capabilities_for(user)


def require_capability(*capabilities: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Protect a view: anonymous -> redirect to login, missing capability -> 403."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            if not user or not user.is_active:
                nxt = request.full_path or request.path
                # Avoid trailing '?' from full_path when there is no query string.
                if nxt.endswith("?"):
                    nxt = nxt[:-1]
                return redirect(url_for("auth.login_get", next=nxt))
            granted = capabilities_for(user)
            for cap in capabilities:
                if cap not in granted:
                    g.missing_capability = cap
                    abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
