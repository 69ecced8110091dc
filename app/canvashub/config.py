import os
from dataclasses import dataclass

SOLUTION_JSON_MODES = ("strip", "normalize", "raw")


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    session_hours: int
    log_level: str

    csrf_enabled: bool
    login_rate_limit: int
    login_rate_window: int

    solution_json_mode: str
    enforce_solution_ownership: bool


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r}).") from None


def _getenv_flag(name: str, default: bool) -> bool:
    raw = _getenv(name, "1" if default else "0").lower()
    return raw in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    mode = _getenv("SOLUTION_JSON_MODE", "strip").lower()
    if mode not in SOLUTION_JSON_MODES:
        raise ValueError(f"SOLUTION_JSON_MODE must be one of: {', '.join(SOLUTION_JSON_MODES)} (got {mode!r}).")
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///canvashub.db"),
        session_hours=_getenv_int("SESSION_HOURS", 8),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        csrf_enabled=_getenv_flag("CSRF_ENABLED", True),
        login_rate_limit=_getenv_int("LOGIN_RATE_LIMIT", 5),
        login_rate_window=_getenv_int("LOGIN_RATE_WINDOW", 300),
        solution_json_mode=mode,
        enforce_solution_ownership=_getenv_flag("ENFORCE_SOLUTION_OWNERSHIP", False),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "SESSION_HOURS": s.session_hours,
        "LOG_LEVEL": s.log_level,
        "CSRF_ENABLED": s.csrf_enabled,
        "LOGIN_RATE_LIMIT": s.login_rate_limit,
        "LOGIN_RATE_WINDOW": s.login_rate_window,
        "SOLUTION_JSON_MODE": s.solution_json_mode,
        "ENFORCE_SOLUTION_OWNERSHIP": s.enforce_solution_ownership,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # solution payloads are small JSON documents
        "MAX_CONTENT_LENGTH": 2 * 1024 * 1024,
    }
