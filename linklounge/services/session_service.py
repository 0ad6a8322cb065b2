"""Session helpers (refresh cookie, bearer access token validation)."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from linklounge.core.config import Settings, get_settings
from linklounge.core.errors import ForbiddenError, UnauthorizedError
from linklounge.core.tokens import TokenExpiredError, TokenInvalidError, TokenKind, TokenService
from linklounge.db.models import User
from linklounge.repositories.sql_repository import SQLRepository

REFRESH_COOKIE_NAME = "jwt"

_bearer = HTTPBearer(auto_error=False)


def _cookie_kwargs(settings: Settings) -> dict:
    kwargs = {"httponly": True, "secure": True, "samesite": "none", "path": "/"}
    if settings.cookie_domain:
        kwargs["domain"] = settings.cookie_domain
    return kwargs


def set_refresh_cookie(response: Response, token: str, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        token,
        max_age=settings.refresh_token_ttl_seconds,
        **_cookie_kwargs(settings),
    )


def clear_refresh_cookie(response: Response, settings: Settings | None = None) -> None:
    """Clear the refresh cookie with the same attributes it was set with."""
    response.delete_cookie(REFRESH_COOKIE_NAME, **_cookie_kwargs(settings or get_settings()))


def refresh_token_from(request: Request) -> str | None:
    return request.cookies.get(REFRESH_COOKIE_NAME) or None


def _app_settings(request: Request) -> Settings:
    return getattr(getattr(request.app, "state", None), "settings", None) or get_settings()


def _token_service(request: Request) -> TokenService:
    svc = getattr(getattr(request.app, "state", None), "token_service", None)
    return svc or TokenService(_app_settings(request))


def _repository(request: Request) -> SQLRepository:
    repo = getattr(getattr(request.app, "state", None), "repository", None)
    return repo or SQLRepository(_app_settings(request))


def current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> User:
    """
    Dependency: require a valid Bearer access token and return the user.
    Missing or expired tokens are 401, tampered tokens are 403.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Unauthorized: Token missing or malformed.")
    try:
        claims = _token_service(request).verify(credentials.credentials, TokenKind.ACCESS)
    except TokenExpiredError:
        raise UnauthorizedError("Unauthorized: Token expired. Please log in again.")
    except TokenInvalidError:
        raise ForbiddenError("Forbidden: Invalid token.")
    user = _repository(request).get_user_by_username(claims.get("sub") or "")
    if not user:
        raise UnauthorizedError("User not found. Please log in again.")
    return user


CurrentUser = Annotated[User, Depends(current_user)]
