from __future__ import annotations

from dataclasses import replace

import cloudinary.uploader
import pytest

from linklounge.core.config import get_settings
from linklounge.core.images import CloudinaryImageStore, ImageStorageError


@pytest.fixture()
def store():
    get_settings.cache_clear()
    settings = replace(
        get_settings(),
        cloudinary_cloud_name="demo",
        cloudinary_api_key="key",
        cloudinary_api_secret="secret",
    )
    yield CloudinaryImageStore(settings)
    get_settings.cache_clear()


def test_delete_accepts_ok_result(store, monkeypatch):
    destroyed = []
    monkeypatch.setattr(cloudinary.uploader, "destroy", lambda public_id: destroyed.append(public_id) or {"result": "ok"})
    store.delete("lounges/profiles/me")
    assert destroyed == ["lounges/profiles/me"]


def test_delete_of_missing_image_is_logged(store, monkeypatch, caplog):
    monkeypatch.setattr(cloudinary.uploader, "destroy", lambda public_id: {"result": "not found"})
    with caplog.at_level("WARNING", logger="linklounge.core.images"):
        store.delete("lounges/profiles/gone")
    assert "lounges/profiles/gone was not found" in caplog.text


def test_delete_with_unexpected_result_fails(store, monkeypatch):
    monkeypatch.setattr(cloudinary.uploader, "destroy", lambda public_id: {"result": "error"})
    with pytest.raises(ImageStorageError):
        store.delete("lounges/profiles/me")


def test_unconfigured_store_refuses_to_delete():
    get_settings.cache_clear()
    with pytest.raises(ImageStorageError):
        CloudinaryImageStore(replace(get_settings(), cloudinary_cloud_name="")).delete("x")
