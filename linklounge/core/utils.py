"""
Utility helpers shared across routers/services.
"""

from typing import Optional

from .config import get_settings


def frontend_url(path: str, base: Optional[str] = None) -> str:
    """
    Turn a relative path into an absolute URL on the frontend (FRONTEND_URL).
    """
    base_url = (base or get_settings().frontend_url).rstrip("/")
    if not path:
        return base_url + "/"
    if path.startswith("http://") or path.startswith("https://"):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return base_url + path


def normalize_identifier(value: Optional[str]) -> str:
    """Trim and lowercase usernames and e-mails before lookups or writes."""
    return (value or "").strip().lower()
