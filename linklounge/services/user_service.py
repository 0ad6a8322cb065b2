"""
Account use cases (registration, profile updates, deletion).

Usernames and e-mails are normalized before validation and uniqueness checks.
Renaming a user moves all of their lounges to URLs under the new username in
the same transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from linklounge.core.errors import ForbiddenError, ValidationError
from linklounge.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, hash_password
from linklounge.core.utils import normalize_identifier
from linklounge.db.models import ROLE_ADMIN, ROLE_USER, ROLES, User
from linklounge.domain.lounge_urls import derive_url, is_valid_username
from linklounge.repositories.sql_repository import SQLRepository

logger = logging.getLogger(__name__)


def _validate_username(username: str) -> None:
    if not is_valid_username(username):
        raise ValidationError("Invalid username. Use 3-30 characters [a-z0-9._-].")


def _validate_email(email: str) -> None:
    local, _, domain = email.partition("@")
    if not local or "." not in domain or " " in email:
        raise ValidationError("Invalid email. Please provide a valid email address.")


def _validate_password(password: str) -> None:
    if not (PASSWORD_MIN_LEN <= len(password or "") <= PASSWORD_MAX_LEN):
        raise ValidationError(f"Password must be between {PASSWORD_MIN_LEN} and {PASSWORD_MAX_LEN} characters.")


@dataclass
class UserService:
    repository: Optional[SQLRepository] = None

    def __post_init__(self):
        self.repository = self.repository or SQLRepository()

    def _require_self_or_admin(self, actor: User, user_id: int) -> None:
        if actor.role != ROLE_ADMIN and actor.id != user_id:
            raise ForbiddenError("You can only manage your own account.")

    def register(self, username: str, email: str, password: str) -> User:
        name = normalize_identifier(username)
        address = normalize_identifier(email)
        if not name or not address or not password:
            raise ValidationError("Username, email, and password are required to create an account.")
        _validate_username(name)
        _validate_email(address)
        _validate_password(password)
        user = self.repository.create_user(name, address, hash_password(password), role=ROLE_USER)
        logger.info("Created user %s", user.username)
        return user

    def list_users(self, actor: User) -> list[User]:
        if actor.role != ROLE_ADMIN:
            raise ForbiddenError("Admin access required.")
        return self.repository.list_users()

    def update(
        self,
        actor: User,
        user_id: int,
        *,
        username: str | None = None,
        email: str | None = None,
        password: str | None = None,
        role: str | None = None,
    ) -> User:
        self._require_self_or_admin(actor, user_id)
        fields: dict = {}
        if username is not None:
            fields["username"] = normalize_identifier(username)
            _validate_username(fields["username"])
        if email is not None:
            fields["email"] = normalize_identifier(email)
            _validate_email(fields["email"])
        if password:
            _validate_password(password)
            fields["password_hash"] = hash_password(password)
        if role is not None:
            if actor.role != ROLE_ADMIN:
                raise ForbiddenError("Only admins can change roles.")
            if role not in ROLES:
                raise ValidationError(f"Role must be one of: {', '.join(ROLES)}.")
            fields["role"] = role
        if not fields:
            raise ValidationError("Nothing to update. Provide a username, email, password or role.")

        current = self.repository.get_user(user_id)
        lounge_urls: dict[int, str] = {}
        if current and "username" in fields and fields["username"] != current.username:
            for lounge in self.repository.list_lounges(owner_id=user_id):
                lounge_urls[lounge.id] = derive_url(fields["username"], lounge.title)
        user = self.repository.update_user(user_id, fields, lounge_urls=lounge_urls)
        logger.info("Updated user %s (%s)", user.username, ", ".join(sorted(fields)))
        return user

    def delete(self, actor: User, user_id: int) -> User:
        self._require_self_or_admin(actor, user_id)
        user = self.repository.delete_user(user_id)
        logger.info("Deleted user %s", user.username)
        return user
