from __future__ import annotations

from fastapi import APIRouter, Request, Response

from linklounge.core.rate_limiter import rate_limit_ip
from linklounge.schemas import (
    EmailRequest,
    FeedbackRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    TokenResponse,
)
from linklounge.services.auth_service import AuthService
from linklounge.services.session_service import (
    clear_refresh_cookie,
    refresh_token_from,
    set_refresh_cookie,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_service(request: Request) -> AuthService:
    svc = getattr(getattr(request.app, "state", None), "auth_service", None)
    if not svc:
        raise RuntimeError("AuthService is not configured")
    return svc


@router.post("", response_model=TokenResponse)
def login(body: LoginRequest, request: Request, response: Response):
    svc = _auth_service(request)
    rate_limit_ip(
        request,
        "auth:login",
        limit=svc.settings.rate_limit_max,
        window_seconds=svc.settings.rate_limit_window_seconds,
        trust_proxy=svc.settings.trust_proxy,
    )
    result = svc.login(body.username, body.password)
    set_refresh_cookie(response, result.refresh_token, svc.settings)
    return TokenResponse(accessToken=result.access_token)


@router.get("/refresh", response_model=TokenResponse)
def refresh(request: Request):
    token = _auth_service(request).refresh(refresh_token_from(request))
    return TokenResponse(accessToken=token)


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, response: Response):
    if not refresh_token_from(request):
        return MessageResponse(message="No refresh token found in cookies to clear.")
    clear_refresh_cookie(response, _auth_service(request).settings)
    return MessageResponse(
        message="Logged out successfully. Your session has been terminated, and the refresh token has been cleared."
    )


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(body: EmailRequest, request: Request):
    _auth_service(request).forgot_password(body.email)
    return MessageResponse(
        message="A password reset email has been sent successfully. Please check your inbox for further instructions."
    )


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(body: ResetPasswordRequest, request: Request):
    _auth_service(request).reset_password(body.token, body.password)
    return MessageResponse(
        message="Your password has been reset successfully. You can now log in with your new password."
    )


@router.post("/forgot-username", response_model=MessageResponse)
def forgot_username(body: EmailRequest, request: Request):
    _auth_service(request).forgot_username(body.email)
    return MessageResponse(message="Your username has been sent to the provided email address.")


@router.post("/feedback", response_model=MessageResponse)
def feedback(body: FeedbackRequest, request: Request):
    _auth_service(request).send_feedback(body.username, body.type, body.body)
    return MessageResponse(
        message="Feedback submitted successfully. A confirmation email has been sent to the user."
    )
