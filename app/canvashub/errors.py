from __future__ import annotations

import logging

from flask import Flask, g, jsonify, render_template, request
from werkzeug.exceptions import BadRequest, Forbidden, HTTPException

logger = logging.getLogger(__name__)


class AuthorizationError(Forbidden):
    """The principal may not act on the requested record."""

    description = "You are not allowed to modify this record."


class DecodeError(BadRequest):
    """Request body could not be decoded into the expected record."""


def _wants_json() -> bool:
    if request.is_json:
        return True
    best = request.accept_mimetypes.best_match(["application/json", "text/html"])
    return best == "application/json" and request.accept_mimetypes[best] > request.accept_mimetypes["text/html"]


def _error_response(e: HTTPException, template: str, **ctx):
    if _wants_json():
        return jsonify({"error": e.name, "description": e.description}), e.code
    return render_template(template, error=e, **ctx), e.code


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(400)
    def _err_400(e):  # type: ignore[no-redef]
        app.logger.info("Bad request %s %s: %s", request.method, request.path, e.description)
        return _error_response(e, "errors/400.html")

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_capability", None)
        user = getattr(g, "current_user", None)
        app.logger.warning(
            "Forbidden: path=%s user=%s missing_capability=%s request_id=%s",
            request.path,
            user.username if user else None,
            missing,
            getattr(g, "request_id", None),
        )
        return _error_response(e, "errors/403.html", missing_capability=missing)

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return _error_response(e, "errors/404.html")

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"error": "Internal Server Error"}), 500
        return render_template("errors/500.html"), 500
