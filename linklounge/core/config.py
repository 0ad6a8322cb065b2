"""
Configuration helpers for the LinkLounge backend.

Settings are read once from the environment and handed to services, token
issuers and storage adapters so that nothing else calls os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    database_url: str
    frontend_url: str
    cookie_domain: str
    access_token_secret: str
    refresh_token_secret: str
    password_reset_token_secret: str
    jwt_algorithm: str
    access_token_ttl_seconds: int
    refresh_token_ttl_seconds: int
    password_reset_ttl_seconds: int
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    feedback_inbox: str
    cloudinary_cloud_name: str
    cloudinary_api_key: str
    cloudinary_api_secret: str
    rate_limit_max: int
    rate_limit_window_seconds: int
    trust_proxy: bool
    allowed_origins: tuple[str, ...]


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str | None, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _list(value: str | None) -> tuple[str, ...]:
        if not value:
            return ()
        return tuple(item.strip().rstrip("/") for item in value.split(",") if item.strip())

    smtp_user = os.getenv("SMTP_USER", "")
    smtp_from = os.getenv("SMTP_FROM", smtp_user)
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./linklounge.db"),
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/"),
        cookie_domain=os.getenv("COOKIE_DOMAIN", ""),
        access_token_secret=os.getenv("ACCESS_TOKEN_SECRET", "dev-access-secret"),
        refresh_token_secret=os.getenv("REFRESH_TOKEN_SECRET", "dev-refresh-secret"),
        password_reset_token_secret=os.getenv("PASSWORD_RESET_TOKEN_SECRET", "dev-reset-secret"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        access_token_ttl_seconds=_int(os.getenv("ACCESS_TOKEN_TTL_SECONDS"), 900),
        refresh_token_ttl_seconds=_int(os.getenv("REFRESH_TOKEN_TTL_SECONDS"), 7 * 24 * 60 * 60),
        password_reset_ttl_seconds=_int(os.getenv("PASSWORD_RESET_TTL_SECONDS"), 3600),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT"), 465),
        smtp_user=smtp_user,
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=smtp_from,
        feedback_inbox=os.getenv("FEEDBACK_INBOX", smtp_from),
        cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME", ""),
        cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY", ""),
        cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET", ""),
        rate_limit_max=_int(os.getenv("RATE_LIMIT_MAX"), 5),
        rate_limit_window_seconds=_int(os.getenv("RATE_LIMIT_WINDOW_SECONDS"), 60),
        trust_proxy=(os.getenv("TRUST_PROXY") or "").strip().lower() in {"1", "true", "yes"},
        allowed_origins=_list(os.getenv("ALLOWED_ORIGINS")),
    )
