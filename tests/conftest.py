from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the linklounge package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from linklounge.core import config as core_config  # noqa: E402
from linklounge.core.images import ImageStorageError, UploadedImage, public_id_from_url  # noqa: E402
from linklounge.core.rate_limiter import reset_limits  # noqa: E402
from linklounge.db import models  # noqa: E402
from linklounge.db import session as db_session  # noqa: E402


class FakeImageStore:
    """In-memory stand-in for the image provider; records uploads and deletes."""

    def __init__(self) -> None:
        self.uploads: list[tuple[str, str]] = []
        self.deleted: list[str] = []
        self.fail_uploads = False
        self.fail_deletes = False
        self._counter = 0

    def upload(self, file_path: str, folder: str) -> UploadedImage:
        if self.fail_uploads:
            raise ImageStorageError()
        self._counter += 1
        url = f"https://res.cloudinary.com/demo/image/upload/v{1000 + self._counter}/{folder}/img{self._counter}.png"
        self.uploads.append((file_path, folder))
        return UploadedImage(url=url, public_id=public_id_from_url(url))

    def delete(self, public_id: str) -> None:
        if self.fail_deletes:
            raise ImageStorageError("Image delete failed. Please try again.")
        self.deleted.append(public_id)


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Point the app at a temporary SQLite database and reset settings/engine caches."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("FRONTEND_URL", "https://linklounge.test")
    monkeypatch.setenv("FEEDBACK_INBOX", "info@linklounge.test")
    core_config.get_settings.cache_clear()
    db_session.clear_engines()
    reset_limits()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    db_session.clear_engines()
    core_config.get_settings.cache_clear()


@pytest.fixture()
def image_store():
    return FakeImageStore()


@pytest.fixture()
def sent_emails(monkeypatch):
    """Capture outgoing e-mails instead of talking to SMTP."""
    import linklounge.services.auth_service as auth_service

    outbox: list[dict] = []

    def _send(subject, to_email, html_body, text_body=None, settings=None):
        outbox.append({"subject": subject, "to": to_email, "html": html_body, "text": text_body})
        return True

    monkeypatch.setattr(auth_service, "send_email", _send)
    return outbox
