import os
from dataclasses import dataclass

from app.backoffice.constants import DEFAULT_AUTHORIZATION


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    admin_dir: str
    admin_session_hours: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///backoffice.db"),
        admin_dir=_getenv("ADMIN_DIR", "admin").strip("/") or "admin",
        admin_session_hours=int(_getenv("ADMIN_SESSION_HOURS", "8")),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        # URL path prefix the admin blueprints are mounted under
        "ADMIN_DIR": s.admin_dir,
        "ADMIN_SESSION_HOURS": s.admin_session_hours,
        # route key -> minimum role
        "AUTHORIZATION": dict(DEFAULT_AUTHORIZATION),
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }
