"""
Lounge use cases and the canonical URL rules around them.

Every create and rename derives ``<username>/<title-slug>`` and reserves it
before any image is touched or anything is persisted, so a URL conflict leaves
both the record and the stored images unchanged. Image uploads that succeed
before a failed save are left orphaned in the image store.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Optional, Protocol

from linklounge.core.errors import (
    DuplicateError,
    ForbiddenError,
    NotFoundError,
    UpstreamFailure,
    ValidationError,
)
from linklounge.core.images import (
    BACKGROUND_FOLDER,
    PROFILE_FOLDER,
    ImageStorageError,
    UploadedImage,
    public_id_from_url,
)
from linklounge.core.utils import normalize_identifier
from linklounge.db.models import ROLE_ADMIN, Lounge, User
from linklounge.domain.lounge_urls import derive_url, is_valid_title
from linklounge.repositories.sql_repository import SQLRepository

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "My Lounge"
DEFAULT_THEME = "default"


class ImageStore(Protocol):
    def upload(self, file_path: str, folder: str) -> UploadedImage: ...

    def delete(self, public_id: str) -> None: ...


@dataclass
class ImageChange:
    """Requested change to one image slot: a new local file to upload, or a clear."""

    file_path: Optional[str] = None
    clear: bool = False


def _clean_links(items: Any, key: str, label: str) -> list[dict]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValidationError(f"{label.capitalize()}s must be a list.")
    cleaned = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError(f"Each {label} must have a {key} and link.")
        value = str(item.get(key) or "").strip()
        link = str(item.get("link") or "").strip()
        if not value or not link:
            raise ValidationError(f"Each {label} must have a {key} and link.")
        cleaned.append({key: value, "link": link})
    return cleaned


class LoungeService:
    """Create, update, delete and look up lounges for verified identities."""

    def __init__(self, image_store: ImageStore, repository: SQLRepository | None = None) -> None:
        self.image_store = image_store
        self.repository = repository or SQLRepository()

    # -------------------------------------- identity --------------------------------------
    def derive_url(self, owner_username: str, title: str) -> str:
        return derive_url(owner_username, title)

    def reserve(self, url: str, excluding_id: int | None = None) -> None:
        """Raise a conflict when another lounge already uses ``url``."""
        if self.repository.url_exists(url, excluding_id=excluding_id):
            raise DuplicateError("url", "Duplicate URL found. Please choose a different title or username.")

    def _require_owner(self, actor: User, lounge: Lounge, action: str) -> None:
        if actor.role != ROLE_ADMIN and lounge.owner_id != actor.id:
            raise ForbiddenError(f"Unauthorized. You can only {action} your own lounges.")

    def _get(self, lounge_id: int) -> Lounge:
        lounge = self.repository.get_lounge(lounge_id) if lounge_id else None
        if not lounge:
            raise NotFoundError("Lounge not found. Please verify the lounge ID and try again.")
        return lounge

    # -------------------------------------- images --------------------------------------
    def _upload(self, file_path: str, folder: str) -> str:
        try:
            return self.image_store.upload(file_path, folder).url
        except UpstreamFailure as exc:
            raise ImageStorageError() from exc

    def _discard(self, url: str | None) -> None:
        public_id = public_id_from_url(url)
        if not public_id:
            return
        try:
            self.image_store.delete(public_id)
        except UpstreamFailure as exc:
            raise ImageStorageError("Image upload failed. Please try again.") from exc

    def _apply_image(self, stored: str | None, change: ImageChange | None, folder: str) -> str | None:
        if change is None:
            return stored
        if change.file_path:
            if stored:
                self._discard(stored)
            return self._upload(change.file_path, folder)
        if change.clear:
            if stored:
                self._discard(stored)
            return None
        return stored

    # -------------------------------------- commands --------------------------------------
    def create(
        self,
        actor: User,
        *,
        title: str | None = None,
        description: str | None = None,
        buttons: list | None = None,
        icons: list | None = None,
        theme: str | None = None,
        is_public: bool = False,
        profile_path: str | None = None,
        background_path: str | None = None,
    ) -> Lounge:
        title_value = (title or "").strip() or DEFAULT_TITLE
        if not is_valid_title(title_value):
            raise ValidationError("Title is required and cannot contain '/'.")
        clean_buttons = _clean_links(buttons, "text", "button")
        clean_icons = _clean_links(icons, "icon", "icon")
        url = self.derive_url(actor.username, title_value)
        self.reserve(url)

        profile_url = self._upload(profile_path, PROFILE_FOLDER) if profile_path else None
        background_url = self._upload(background_path, BACKGROUND_FOLDER) if background_path else None

        lounge = self.repository.create_lounge(
            {
                "owner_id": actor.id,
                "title": title_value,
                "description": description,
                "buttons": clean_buttons,
                "icons": clean_icons,
                "theme": (theme or "").strip() or DEFAULT_THEME,
                "is_public": bool(is_public),
                "profile_image": profile_url,
                "background_image": background_url,
                "url": url,
            }
        )
        logger.info("Created lounge %s (id=%s)", lounge.url, lounge.id)
        return lounge

    def update(
        self,
        actor: User,
        lounge_id: int,
        *,
        title: str | None = None,
        description: str | None = None,
        buttons: list | None = None,
        icons: list | None = None,
        theme: str | None = None,
        is_public: bool | None = None,
        profile: ImageChange | None = None,
        background: ImageChange | None = None,
    ) -> Lounge:
        lounge = self._get(lounge_id)
        self._require_owner(actor, lounge, "update")

        fields: dict = {}
        if title is not None:
            title_value = title.strip()
            if not is_valid_title(title_value):
                raise ValidationError("Title is required and cannot contain '/'.")
            fields["title"] = title_value
        url = self.derive_url(lounge.owner.username, fields.get("title", lounge.title))
        if url != lounge.url:
            self.reserve(url, excluding_id=lounge.id)
            fields["url"] = url
        if description is not None:
            fields["description"] = description
        if buttons is not None:
            fields["buttons"] = _clean_links(buttons, "text", "button")
        if icons is not None:
            fields["icons"] = _clean_links(icons, "icon", "icon")
        if theme is not None:
            fields["theme"] = theme.strip() or DEFAULT_THEME
        if is_public is not None:
            fields["is_public"] = bool(is_public)

        fields["profile_image"] = self._apply_image(lounge.profile_image, profile, PROFILE_FOLDER)
        fields["background_image"] = self._apply_image(lounge.background_image, background, BACKGROUND_FOLDER)

        updated = self.repository.save_lounge(lounge.id, fields)
        logger.info("Updated lounge %s (id=%s)", updated.url, updated.id)
        return updated

    def set_visibility(self, actor: User, lounge_id: int, is_public: bool) -> Lounge:
        lounge = self._get(lounge_id)
        self._require_owner(actor, lounge, "change visibility of")
        return self.repository.save_lounge(lounge.id, {"is_public": bool(is_public)})

    def delete(self, actor: User, lounge_id: int) -> Lounge:
        lounge = self._get(lounge_id)
        self._require_owner(actor, lounge, "delete")
        self._discard(lounge.profile_image)
        self._discard(lounge.background_image)
        self.repository.delete_lounge(lounge.id)
        logger.info("Deleted lounge %s (id=%s)", lounge.url, lounge.id)
        return lounge

    # -------------------------------------- queries --------------------------------------
    def list_for(self, actor: User) -> list[Lounge]:
        if actor.role == ROLE_ADMIN:
            return self.repository.list_lounges()
        return self.repository.list_lounges(owner_id=actor.id)

    def list_by_owner(self, actor: User, username: str) -> list[Lounge]:
        owner = self.repository.get_user_by_username(username)
        if not owner:
            raise NotFoundError("User not found.")
        if actor.role != ROLE_ADMIN and actor.id != owner.id:
            raise ForbiddenError("Unauthorized access. You can only access your own lounges.")
        return self.repository.list_lounges(owner_id=owner.id)

    def get_public(self, username: str, title: str) -> Lounge:
        url = self.derive_url(normalize_identifier(username), title)
        lounge = self.repository.get_lounge_by_url(url, public_only=True)
        if not lounge:
            raise NotFoundError("Public lounge not found. Please check the URL or availability.")
        return lounge
