"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from linklounge.core.config import Settings
from linklounge.core.errors import DuplicateError, HasDependentsError, NotFoundError
from linklounge.core.utils import normalize_identifier
from linklounge.db.models import Lounge, User, ROLE_USER
from linklounge.db.session import get_session

USER_FIELDS = {"username", "email", "password_hash", "role"}
LOUNGE_FIELDS = {
    "owner_id",
    "title",
    "description",
    "buttons",
    "icons",
    "profile_image",
    "background_image",
    "theme",
    "is_public",
    "url",
}


def _duplicate_from_integrity(exc: IntegrityError) -> DuplicateError:
    text = str(getattr(exc, "orig", exc)).lower()
    if "email" in text:
        return DuplicateError("email", "This email is already in use. Please use a different email.")
    if "url" in text:
        return DuplicateError("url", "Duplicate URL found. Please choose a different title or username.")
    return DuplicateError("username", "This username is already taken. Please choose another one.")


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    def __init__(self, settings: Settings | None = None) -> None:
        # None follows DATABASE_URL from the environment
        self.database_url = settings.database_url if settings else None

    def _session(self):
        return get_session(self.database_url)

    # -------------------------- users --------------------------
    def get_user(self, user_id: int) -> Optional[User]:
        with self._session() as session:
            return session.get(User, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        value = normalize_identifier(username)
        if not value:
            return None
        with self._session() as session:
            stmt = select(User).where(User.username == value)
            return session.execute(stmt).scalar_one_or_none()

    def get_user_by_email(self, email: str) -> Optional[User]:
        value = normalize_identifier(email)
        if not value:
            return None
        with self._session() as session:
            stmt = select(User).where(User.email == value)
            return session.execute(stmt).scalar_one_or_none()

    def list_users(self) -> list[User]:
        with self._session() as session:
            return session.execute(select(User).order_by(User.id)).scalars().all()

    def _check_user_unique(self, session: Session, username: str, email: str, excluding_id: int | None = None) -> None:
        stmt = select(User.id).where(User.email == email)
        if excluding_id is not None:
            stmt = stmt.where(User.id != excluding_id)
        if session.execute(stmt.limit(1)).first() is not None:
            raise DuplicateError("email", "This email is already in use. Please use a different email.")
        stmt = select(User.id).where(User.username == username)
        if excluding_id is not None:
            stmt = stmt.where(User.id != excluding_id)
        if session.execute(stmt.limit(1)).first() is not None:
            raise DuplicateError("username", "This username is already taken. Please choose another one.")

    def create_user(self, username: str, email: str, password_hash: str, role: str = ROLE_USER) -> User:
        username = normalize_identifier(username)
        email = normalize_identifier(email)
        now = datetime.now(timezone.utc)
        with self._session() as session:
            self._check_user_unique(session, username, email)
            user = User(
                username=username,
                email=email,
                password_hash=password_hash,
                role=role,
                created_at=now,
                updated_at=now,
            )
            session.add(user)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise _duplicate_from_integrity(exc) from exc
            session.refresh(user)
            return user

    def update_user(self, user_id: int, fields: dict, lounge_urls: dict[int, str] | None = None) -> User:
        """
        Apply ``fields`` to a user and, in the same transaction, move the
        user's lounges to the URLs in ``lounge_urls`` (lounge id -> url).
        """
        values = {key: value for key, value in fields.items() if key in USER_FIELDS}
        if "username" in values:
            values["username"] = normalize_identifier(values["username"])
        if "email" in values:
            values["email"] = normalize_identifier(values["email"])
        with self._session() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User not found. Please check the user ID and try again.")
            self._check_user_unique(
                session,
                values.get("username", user.username),
                values.get("email", user.email),
                excluding_id=user_id,
            )
            moved_ids = list((lounge_urls or {}).keys())
            for lounge_id, url in (lounge_urls or {}).items():
                self._check_url_free(session, url, excluding_ids=moved_ids)
                session.execute(
                    update(Lounge)
                    .where(Lounge.id == lounge_id)
                    .values(url=url, updated_at=datetime.now(timezone.utc))
                )
            for key, value in values.items():
                setattr(user, key, value)
            user.updated_at = datetime.now(timezone.utc)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise _duplicate_from_integrity(exc) from exc
            session.refresh(user)
            return user

    def update_user_password(self, user_id: int, password_hash: str) -> None:
        with self._session() as session:
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(password_hash=password_hash, updated_at=datetime.now(timezone.utc))
            )
            session.execute(stmt)
            session.commit()

    def delete_user(self, user_id: int) -> User:
        with self._session() as session:
            owned = session.execute(select(Lounge.id).where(Lounge.owner_id == user_id).limit(1)).first()
            if owned is not None:
                raise HasDependentsError()
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User not found. Please check the user ID and try again.")
            try:
                session.execute(delete(User).where(User.id == user_id))
                session.commit()
            except IntegrityError as exc:
                # a lounge created after the check trips the owner foreign key
                session.rollback()
                raise HasDependentsError() from exc
            return user

    # -------------------------- lounges --------------------------
    def get_lounge(self, lounge_id: int) -> Optional[Lounge]:
        with self._session() as session:
            return session.get(Lounge, lounge_id)

    def get_lounge_by_url(self, url: str, *, public_only: bool = False) -> Optional[Lounge]:
        with self._session() as session:
            stmt = select(Lounge).where(Lounge.url == url)
            if public_only:
                stmt = stmt.where(Lounge.is_public.is_(True))
            return session.execute(stmt).scalar_one_or_none()

    def list_lounges(self, owner_id: int | None = None) -> list[Lounge]:
        with self._session() as session:
            stmt = select(Lounge).order_by(Lounge.id)
            if owner_id is not None:
                stmt = stmt.where(Lounge.owner_id == owner_id)
            return session.execute(stmt).scalars().all()

    def _check_url_free(self, session: Session, url: str, excluding_ids: list[int] | None = None) -> None:
        stmt = select(Lounge.id).where(Lounge.url == url)
        if excluding_ids:
            stmt = stmt.where(Lounge.id.not_in(excluding_ids))
        if session.execute(stmt.limit(1)).first() is not None:
            raise DuplicateError("url", "Duplicate URL found. Please choose a different title or username.")

    def url_exists(self, url: str, excluding_id: int | None = None) -> bool:
        with self._session() as session:
            try:
                self._check_url_free(session, url, [excluding_id] if excluding_id is not None else None)
            except DuplicateError:
                return True
            return False

    def create_lounge(self, fields: dict) -> Lounge:
        values = {key: value for key, value in fields.items() if key in LOUNGE_FIELDS}
        now = datetime.now(timezone.utc)
        with self._session() as session:
            self._check_url_free(session, values["url"])
            lounge = Lounge(created_at=now, updated_at=now, **values)
            session.add(lounge)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise _duplicate_from_integrity(exc) from exc
            return session.get(Lounge, lounge.id, populate_existing=True)

    def save_lounge(self, lounge_id: int, fields: dict) -> Lounge:
        values = {key: value for key, value in fields.items() if key in LOUNGE_FIELDS}
        with self._session() as session:
            lounge = session.get(Lounge, lounge_id)
            if not lounge:
                raise NotFoundError("Lounge not found. Please verify the lounge ID and try again.")
            if "url" in values and values["url"] != lounge.url:
                self._check_url_free(session, values["url"], [lounge_id])
            for key, value in values.items():
                setattr(lounge, key, value)
            lounge.updated_at = datetime.now(timezone.utc)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise _duplicate_from_integrity(exc) from exc
            return session.get(Lounge, lounge_id, populate_existing=True)

    def delete_lounge(self, lounge_id: int) -> None:
        with self._session() as session:
            session.execute(delete(Lounge).where(Lounge.id == lounge_id))
            session.commit()
