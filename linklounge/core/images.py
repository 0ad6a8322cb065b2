"""
Image storage adapter (Cloudinary).

Lounges keep only the delivery URL of their images; the provider's public id
is recovered from that URL when an image has to be deleted.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from .config import Settings, get_settings
from .errors import UpstreamFailure

logger = logging.getLogger(__name__)

PROFILE_FOLDER = "lounges/profiles"
BACKGROUND_FOLDER = "lounges/backgrounds"


class ImageStorageError(UpstreamFailure):
    default_message = "Image upload failed. Please ensure the images are in the correct format and try again."


@dataclass(frozen=True)
class UploadedImage:
    url: str
    public_id: str


def public_id_from_url(url: str | None) -> str | None:
    """
    Recover the public id from a delivery URL.

    ``https://res.cloudinary.com/demo/image/upload/v1712/lounges/profiles/me.png``
    becomes ``lounges/profiles/me``: the path after ``/upload/``, without the
    version segment and the file extension.
    """
    if not url or "/upload/" not in url:
        return None
    tail = url.split("/upload/", 1)[1]
    segments = tail.split("/")[1:]
    if not segments:
        return None
    public_id = os.path.splitext("/".join(segments))[0]
    return public_id or None


class CloudinaryImageStore:
    """Uploads and deletes images through the Cloudinary SDK."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._configured = False

    def _configure(self) -> None:
        if self._configured:
            return
        if not (
            self.settings.cloudinary_cloud_name
            and self.settings.cloudinary_api_key
            and self.settings.cloudinary_api_secret
        ):
            raise ImageStorageError("Image storage is not configured.")
        cloudinary.config(
            cloud_name=self.settings.cloudinary_cloud_name,
            api_key=self.settings.cloudinary_api_key,
            api_secret=self.settings.cloudinary_api_secret,
            secure=True,
        )
        self._configured = True

    def upload(self, file_path: str, folder: str) -> UploadedImage:
        self._configure()
        try:
            result = cloudinary.uploader.upload(
                file_path,
                folder=folder,
                use_filename=True,
                unique_filename=True,
                resource_type="image",
            )
        except cloudinary.exceptions.Error as exc:
            logger.warning("Image upload to %s failed: %s", folder, exc)
            raise ImageStorageError() from exc
        url = result.get("secure_url") or result.get("url")
        return UploadedImage(url=url, public_id=result.get("public_id") or public_id_from_url(url) or "")

    def delete(self, public_id: str) -> None:
        self._configure()
        try:
            result = cloudinary.uploader.destroy(public_id)
        except cloudinary.exceptions.Error as exc:
            logger.warning("Image delete of %s failed: %s", public_id, exc)
            raise ImageStorageError("Image delete failed. Please try again.") from exc
        outcome = (result or {}).get("result")
        if outcome == "ok":
            return
        if outcome == "not found":
            # already gone; nothing left to clean up
            logger.warning("Image %s was not found in storage", public_id)
            return
        logger.warning("Image delete of %s returned %r", public_id, outcome)
        raise ImageStorageError("Image delete failed. Please try again.")
