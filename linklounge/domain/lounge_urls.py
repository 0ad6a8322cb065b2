"""Domain helpers for usernames and canonical lounge URLs."""
from __future__ import annotations

import re

USERNAME_PATTERN = re.compile(r"[a-z0-9._-]{3,30}")
RESERVED_USERNAMES = {
    "auth",
    "users",
    "lounges",
    "user",
    "visibility",
    "static",
    "admin",
}
_WHITESPACE = re.compile(r"\s+")


def is_valid_username(value: str | None) -> bool:
    """Return True when an already-normalized username matches the allowed pattern and is not reserved."""
    if not value:
        return False
    return bool(USERNAME_PATTERN.fullmatch(value)) and value not in RESERVED_USERNAMES


def normalize_title(title: str | None) -> str:
    """Lowercase a lounge title and collapse whitespace runs into a single hyphen."""
    return _WHITESPACE.sub("-", (title or "").strip().lower())


def is_valid_title(title: str | None) -> bool:
    value = (title or "").strip()
    return bool(value) and "/" not in value and len(value) <= 255


def derive_url(owner_username: str, title: str) -> str:
    """
    Canonical lounge URL: ``<username>/<title-slug>``.

    The username is expected to be normalized already; it is only lowercased.
    """
    return f"{(owner_username or '').strip().lower()}/{normalize_title(title)}"
