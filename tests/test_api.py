"""
HTTP-level tests for the auth, users and lounges routers.
"""
from __future__ import annotations

from dataclasses import replace
import json

import pytest
from fastapi.testclient import TestClient

from linklounge.app import create_app
from linklounge.core.config import get_settings
from linklounge.db.session import get_engine
from linklounge.repositories.sql_repository import SQLRepository


@pytest.fixture()
def client(db_env, image_store, sent_emails):
    app = create_app(get_settings(), image_store=image_store)
    # https so the Secure refresh cookie is sent back
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client


def _register(client, username="jane", email="jane@example.com", password="password-1"):
    response = client.post("/users", json={"username": username, "email": email, "password": password})
    assert response.status_code == 201, response.text
    return response


def _login(client, username="jane", password="password-1") -> str:
    response = client.post("/auth", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["accessToken"]


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_register_and_login_sets_refresh_cookie(client):
    _register(client, username="Jane", email="Jane@Example.com")
    response = client.post("/auth", json={"username": "JANE", "password": "password-1"})
    assert response.status_code == 200
    assert response.json()["accessToken"]
    set_cookie = response.headers["set-cookie"].lower()
    assert set_cookie.startswith("jwt=")
    assert "httponly" in set_cookie
    assert "secure" in set_cookie
    assert "samesite=none" in set_cookie
    assert "max-age=604800" in set_cookie


def test_register_duplicate_is_conflict(client):
    _register(client)
    response = client.post("/users", json={"username": "JANE", "email": "x@example.com", "password": "password-1"})
    assert response.status_code == 409
    assert "username" in response.json()["error"]["message"]


def test_register_validates_input(client):
    response = client.post("/users", json={"username": "jane doe", "email": "jane@example.com", "password": "password-1"})
    assert response.status_code == 400
    response = client.post("/users", json={"username": "jane", "email": "jane@example.com", "password": "short"})
    assert response.status_code == 400


def test_login_failures_share_one_shape(client):
    _register(client)
    wrong = client.post("/auth", json={"username": "jane", "password": "nope-nope"})
    unknown = client.post("/auth", json={"username": "ghost", "password": "password-1"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()


def test_refresh_uses_cookie(client):
    _register(client)
    _login(client)
    response = client.get("/auth/refresh")
    assert response.status_code == 200
    assert response.json()["accessToken"]


def test_refresh_without_cookie_and_with_bad_cookie(client):
    response = client.get("/auth/refresh")
    assert response.status_code == 401
    client.cookies.set("jwt", "forged.token.value")
    response = client.get("/auth/refresh")
    assert response.status_code == 403


def test_logout_is_idempotent(client):
    response = client.post("/auth/logout")
    assert response.status_code == 200
    assert "No refresh token" in response.json()["message"]

    _register(client)
    _login(client)
    response = client.post("/auth/logout")
    assert response.status_code == 200
    assert "Logged out" in response.json()["message"]
    assert 'jwt=""' in response.headers["set-cookie"] or "max-age=0" in response.headers["set-cookie"].lower()


def test_login_is_rate_limited(client):
    _register(client)
    for _ in range(5):
        assert client.post("/auth", json={"username": "jane", "password": "wrong-one"}).status_code == 401
    response = client.post("/auth", json={"username": "jane", "password": "password-1"})
    assert response.status_code == 429
    error = response.json()["error"]
    assert error["attemptsLeft"] == 0
    assert 0 < error["retryAfter"] <= 60
    assert error["reason"] == "Too many login attempts"


def test_forgot_password_flow(client, sent_emails):
    _register(client)
    assert client.post("/auth/forgot-password", json={"email": "ghost@example.com"}).status_code == 404
    response = client.post("/auth/forgot-password", json={"email": "JANE@example.com"})
    assert response.status_code == 200
    token = sent_emails[-1]["text"].split("reset-password?token=")[1].split()[0]

    bad = client.post("/auth/reset-password", json={"token": "nope", "password": "password-2"})
    assert bad.status_code == 400
    ok = client.post("/auth/reset-password", json={"token": token, "password": "password-2"})
    assert ok.status_code == 200
    assert _login(client, password="password-2")


def test_forgot_username_and_feedback(client, sent_emails):
    _register(client)
    assert client.post("/auth/forgot-username", json={"email": "jane@example.com"}).status_code == 200
    assert client.post("/auth/feedback", json={"username": "jane", "type": "idea", "body": "More themes"}).status_code == 200
    assert len(sent_emails) == 3


def test_protected_routes_require_valid_token(client):
    assert client.get("/lounges").status_code == 401
    assert client.get("/lounges", headers=_auth("garbage")).status_code == 403


def test_users_admin_and_self_management(client):
    _register(client)
    _register(client, username="john", email="john@example.com")
    jane_token = _login(client)
    users = client.get("/users", headers=_auth(jane_token))
    assert users.status_code == 403
    assert users.json()["error"]["message"] == "Admin access required."

    response = client.patch("/users", json={"id": 2, "username": "hijack"}, headers=_auth(jane_token))
    assert response.status_code == 403
    response = client.patch("/users", json={"id": 1, "email": "JANE2@example.com"}, headers=_auth(jane_token))
    assert response.status_code == 200
    response = client.request("DELETE", "/users", json={"id": 1}, headers=_auth(jane_token))
    assert response.status_code == 200


def test_lounge_lifecycle_over_http(client, image_store):
    _register(client)
    token = _login(client)
    response = client.post(
        "/lounges",
        data={
            "title": "My   Cool Page",
            "description": "Everything I do",
            "buttons": json.dumps([{"text": "Blog", "link": "https://blog.example.com"}]),
            "icons": json.dumps([]),
            "isPublic": "true",
        },
        files={"profile": ("me.png", b"\x89PNG fake", "image/png")},
        headers=_auth(token),
    )
    assert response.status_code == 201, response.text
    lounge = response.json()["lounge"]
    assert lounge["url"] == "jane/my-cool-page"
    assert lounge["owner"]["username"] == "jane"
    assert lounge["profile_image"].startswith("https://res.cloudinary.com/")
    assert image_store.uploads[0][1] == "lounges/profiles"

    public = client.get("/lounges/Jane/My Cool Page")
    assert public.status_code == 200
    assert public.json()["id"] == lounge["id"]

    duplicate = client.post("/lounges", data={"title": "my cool page"}, headers=_auth(token))
    assert duplicate.status_code == 409

    renamed = client.patch(
        "/lounges",
        data={"id": str(lounge["id"]), "title": "Renamed", "removeProfile": "true"},
        headers=_auth(token),
    )
    assert renamed.status_code == 200, renamed.text
    assert renamed.json()["lounge"]["url"] == "jane/renamed"
    assert renamed.json()["lounge"]["profile_image"] is None
    assert image_store.deleted == ["lounges/profiles/img1"]

    hidden = client.patch("/lounges/visibility", json={"id": lounge["id"], "isPublic": False}, headers=_auth(token))
    assert hidden.status_code == 200
    assert client.get("/lounges/jane/renamed").status_code == 404

    mine = client.get("/lounges", headers=_auth(token))
    assert [item["url"] for item in mine.json()] == ["jane/renamed"]

    blocked = client.request("DELETE", "/users", json={"id": 1}, headers=_auth(token))
    assert blocked.status_code == 409

    deleted = client.request("DELETE", "/lounges", json={"id": lounge["id"]}, headers=_auth(token))
    assert deleted.status_code == 200
    assert client.get("/lounges", headers=_auth(token)).json() == []


def test_lounge_create_rejects_bad_buttons_json(client):
    _register(client)
    token = _login(client)
    response = client.post("/lounges", data={"title": "Links", "buttons": "{not json"}, headers=_auth(token))
    assert response.status_code == 400
    assert "Buttons" in response.json()["error"]["message"]


def test_cross_owner_lounge_access_is_forbidden(client):
    _register(client)
    _register(client, username="john", email="john@example.com")
    jane_token = _login(client)
    john_token = _login(client, username="john", password="password-1")
    created = client.post("/lounges", data={"title": "Links"}, headers=_auth(jane_token)).json()["lounge"]
    response = client.patch("/lounges", data={"id": str(created["id"]), "title": "Stolen"}, headers=_auth(john_token))
    assert response.status_code == 403
    assert client.get("/lounges/user/jane", headers=_auth(john_token)).status_code == 403


def test_login_limit_ignores_spoofed_forwarded_for(client):
    _register(client)
    codes = [
        client.post(
            "/auth",
            json={"username": "jane", "password": "wrong-one"},
            headers={"X-Forwarded-For": f"10.0.0.{i}"},
        ).status_code
        for i in range(6)
    ]
    assert codes == [401] * 5 + [429]


def test_login_limit_uses_forwarded_for_behind_trusted_proxy(db_env, image_store):
    settings = replace(get_settings(), trust_proxy=True)
    with TestClient(create_app(settings, image_store=image_store), base_url="https://testserver") as proxied:
        _register(proxied)
        codes = [
            proxied.post(
                "/auth",
                json={"username": "jane", "password": "wrong-one"},
                headers={"X-Forwarded-For": f"10.0.0.{i}, 192.168.0.1"},
            ).status_code
            for i in range(6)
        ]
    assert codes == [401] * 6


def test_injected_database_url_is_used_for_storage(db_env, image_store, tmp_path):
    settings = replace(get_settings(), database_url=f"sqlite:///{tmp_path / 'injected.db'}")
    with TestClient(create_app(settings, image_store=image_store), base_url="https://testserver") as injected:
        _register(injected)
        token = _login(injected)
        assert injected.get("/lounges", headers=_auth(token)).status_code == 200
    assert (tmp_path / "injected.db").exists()
    assert SQLRepository(settings).get_user_by_username("jane") is not None
    assert SQLRepository().get_user_by_username("jane") is None
    get_engine(settings.database_url).dispose()
