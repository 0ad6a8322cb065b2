from __future__ import annotations

from dataclasses import replace

import jwt
import pytest

from linklounge.core.config import get_settings
from linklounge.core.tokens import TokenExpiredError, TokenInvalidError, TokenKind, TokenService


@pytest.fixture()
def tokens():
    get_settings.cache_clear()
    settings = replace(
        get_settings(),
        access_token_secret="access-test",
        refresh_token_secret="refresh-test",
        password_reset_token_secret="reset-test",
    )
    yield TokenService(settings)
    get_settings.cache_clear()


def test_access_token_carries_identity_claims(tokens):
    token = tokens.issue_access({"username": "jane", "email": "jane@example.com", "role": "admin"})
    claims = tokens.verify(token, TokenKind.ACCESS)
    assert claims["sub"] == "jane"
    assert claims["email"] == "jane@example.com"
    assert claims["role"] == "admin"
    assert claims["exp"] - claims["iat"] == tokens.settings.access_token_ttl_seconds


def test_refresh_token_carries_only_username(tokens):
    claims = tokens.verify(tokens.issue_refresh("jane"), TokenKind.REFRESH)
    assert claims["sub"] == "jane"
    assert "email" not in claims
    assert claims["exp"] - claims["iat"] == 7 * 24 * 60 * 60


def test_expired_token_is_distinguished_from_invalid(tokens):
    expired = tokens.issue_access({"username": "jane"}, ttl_seconds=-30)
    with pytest.raises(TokenExpiredError):
        tokens.verify(expired, TokenKind.ACCESS)


def test_tampered_token_is_invalid(tokens):
    token = tokens.issue_refresh("jane")
    header, _payload, signature = token.split(".")
    claims = jwt.decode(token, options={"verify_signature": False})
    claims["sub"] = "mallory"
    forged_payload = jwt.encode(claims, "whatever", algorithm="HS256").split(".")[1]
    tampered = ".".join([header, forged_payload, signature])
    with pytest.raises(TokenInvalidError):
        tokens.verify(tampered, TokenKind.REFRESH)


def test_malformed_and_empty_tokens_are_invalid(tokens):
    with pytest.raises(TokenInvalidError):
        tokens.verify("not-a-token", TokenKind.ACCESS)
    with pytest.raises(TokenInvalidError):
        tokens.verify("", TokenKind.ACCESS)


def test_token_kinds_are_not_interchangeable(tokens):
    with pytest.raises(TokenInvalidError):
        tokens.verify(tokens.issue_refresh("jane"), TokenKind.ACCESS)
    with pytest.raises(TokenInvalidError):
        tokens.verify(tokens.issue_access({"username": "jane"}), TokenKind.RESET)


def test_kind_claim_is_checked_even_with_a_shared_secret():
    get_settings.cache_clear()
    settings = replace(
        get_settings(),
        access_token_secret="same",
        refresh_token_secret="same",
        password_reset_token_secret="same",
    )
    shared = TokenService(settings)
    with pytest.raises(TokenInvalidError):
        shared.verify(shared.issue_refresh("jane"), TokenKind.ACCESS)
    get_settings.cache_clear()


def test_reset_token_embeds_email(tokens):
    claims = tokens.verify(tokens.issue_reset_token("jane@example.com"), TokenKind.RESET)
    assert claims["email"] == "jane@example.com"
    assert claims["exp"] - claims["iat"] == 3600


def test_token_signed_with_foreign_secret_is_invalid(tokens):
    forged = jwt.encode({"sub": "jane", "typ": "access", "iat": 0, "exp": 9999999999}, "other", algorithm="HS256")
    with pytest.raises(TokenInvalidError):
        tokens.verify(forged, TokenKind.ACCESS)
