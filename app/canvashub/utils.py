from __future__ import annotations

from typing import Any

from flask import Request

from app.canvashub.errors import DecodeError


def decode_payload(req: Request) -> dict[str, Any]:
    """Decode a form-encoded or JSON request body into a flat dict."""
    if req.is_json:
        data = req.get_json(silent=True)
        if not isinstance(data, dict):
            raise DecodeError("Request body must be a JSON object.")
        return data
    return req.form.to_dict()


def require_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None or not isinstance(value, str) or value == "":
        raise DecodeError(f"Missing required field: {key}.")
    return value


def optional_str(payload: dict[str, Any], key: str) -> str | None:
    """Return the stripped value, or None when absent or blank."""
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, (str, int, float)):
        raise DecodeError(f"Field {key} must be a string.")
    return str(value).strip() or None


def require_int(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool):
        raise DecodeError(f"Field {key} must be an integer.")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise DecodeError(f"Field {key} must be an integer.") from None
