"""
Authentication and session use cases.

Login issues an access token (returned in the body) and a refresh token
(delivered as a cookie by the router). Refresh only mints new access tokens;
the refresh token is not rotated. Password reset tokens are stateless and stay
valid until they expire.
"""

from __future__ import annotations

from dataclasses import dataclass
import html
import logging
from typing import Optional

from linklounge.core.config import Settings, get_settings
from linklounge.core.errors import (
    ForbiddenError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    UnauthorizedError,
    UpstreamFailure,
    ValidationError,
)
from linklounge.core.mailer import send_email
from linklounge.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    hash_password,
    needs_rehash,
    verify_password,
)
from linklounge.core.tokens import TokenExpiredError, TokenInvalidError, TokenKind, TokenService
from linklounge.core.utils import frontend_url, normalize_identifier
from linklounge.db.models import User
from linklounge.repositories.sql_repository import SQLRepository

logger = logging.getLogger(__name__)

SIGNATURE_HTML = "<p>Best regards,<br>The LinkLounge Team</p>"
SIGNATURE_TEXT = "Best regards,\nThe LinkLounge Team"


@dataclass
class LoginSuccess:
    user: User
    access_token: str
    refresh_token: str


@dataclass
class AuthService:
    """Handles login, refresh, password/username recovery and feedback flows."""

    settings: Optional[Settings] = None
    repository: Optional[SQLRepository] = None
    tokens: Optional[TokenService] = None

    def __post_init__(self):
        self.settings = self.settings or get_settings()
        self.repository = self.repository or SQLRepository(self.settings)
        self.tokens = self.tokens or TokenService(self.settings)

    # -------------------------------------- helpers --------------------------------------
    def _access_token_for(self, user: User) -> str:
        return self.tokens.issue_access({"username": user.username, "email": user.email, "role": user.role})

    def _deliver(self, subject: str, to_email: str, html_body: str, text_body: str, failure_message: str) -> None:
        if not send_email(subject, to_email, html_body, text_body, settings=self.settings):
            logger.warning("Delivery of %r to %s failed", subject, to_email)
            raise UpstreamFailure(failure_message)

    # -------------------------------------- login --------------------------------------
    def login(self, username: str, password: str) -> LoginSuccess:
        name = normalize_identifier(username)
        if not name or not password:
            raise ValidationError(
                "Both username and password fields are required. Please provide valid credentials to log in."
            )
        user = self.repository.get_user_by_username(name)
        # same error for unknown user and wrong password
        if not user or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        if needs_rehash(user.password_hash):
            self.repository.update_user_password(user.id, hash_password(password))
        logger.info("User %s logged in", user.username)
        return LoginSuccess(
            user=user,
            access_token=self._access_token_for(user),
            refresh_token=self.tokens.issue_refresh(user.username),
        )

    def refresh(self, refresh_token: str | None) -> str:
        if not refresh_token:
            raise UnauthorizedError("No refresh token found. Please log in again to obtain a new refresh token.")
        try:
            claims = self.tokens.verify(refresh_token, TokenKind.REFRESH)
        except TokenExpiredError:
            raise UnauthorizedError("Unauthorized: Your refresh token has expired. Please log in again.")
        except TokenInvalidError:
            raise ForbiddenError("Forbidden: Invalid refresh token. Please log in again to get a new token.")
        # re-read the user so deletions and role changes take effect
        user = self.repository.get_user_by_username(claims.get("sub") or "")
        if not user:
            raise UnauthorizedError("No user found for the provided refresh token. Please log in again.")
        return self._access_token_for(user)

    # -------------------------------------- recovery --------------------------------------
    def forgot_password(self, email: str) -> None:
        address = normalize_identifier(email)
        if not address:
            raise ValidationError("Invalid email. Please provide a valid email address for password reset.")
        user = self.repository.get_user_by_email(address)
        if not user:
            raise NotFoundError("No account found with the provided email. Please check your email address and try again.")
        token = self.tokens.issue_reset_token(user.email)
        reset_link = frontend_url(f"/reset-password?token={token}", self.settings.frontend_url)
        safe_link = html.escape(reset_link, quote=True)
        html_body = f"""
        <p>Dear User,</p>
        <p>We received a request to reset your password. You can reset your password by clicking the button below:</p>
        <a href="{safe_link}" style="display:inline-block;padding:12px 24px;color:#ffffff;background-color:#025373;text-decoration:none;border-radius:6px;font-weight:bold;">Reset Password</a>
        <p>If the button above does not work, please copy and paste the following link into your web browser:</p>
        <p><a href="{safe_link}" style="color:#025373;">{safe_link}</a></p>
        <p>If you did not initiate this request, please contact our support team immediately.</p>
        {SIGNATURE_HTML}
        """
        text_body = (
            "Dear User,\n\nWe received a request to reset your password. "
            f"You can reset your password using the link below:\n\n{reset_link}\n\n"
            "If you did not request this password reset, please contact our support team immediately.\n\n"
            f"{SIGNATURE_TEXT}"
        )
        self._deliver(
            "Password Reset Request",
            user.email,
            html_body,
            text_body,
            "An error occurred while sending the password reset email. Please try again later.",
        )
        logger.info("Password reset issued for user %s", user.username)

    def reset_password(self, token: str, password: str) -> User:
        if not token or not password:
            raise ValidationError("Both token and password are required to reset your password.")
        if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
            raise ValidationError(f"Password must be between {PASSWORD_MIN_LEN} and {PASSWORD_MAX_LEN} characters.")
        try:
            claims = self.tokens.verify(token, TokenKind.RESET)
        except (TokenExpiredError, TokenInvalidError):
            raise InvalidOrExpiredTokenError()
        # TODO: record a jti per reset token and reject reuse so each link works once
        user = self.repository.get_user_by_email(claims.get("email") or "")
        if not user:
            raise NotFoundError("No user found for the provided reset token. Please check the token and try again.")
        self.repository.update_user_password(user.id, hash_password(password))
        logger.info("Password reset completed for user %s", user.username)
        return user

    def forgot_username(self, email: str) -> None:
        address = normalize_identifier(email)
        if not address:
            raise ValidationError("Email is required for username recovery. Please provide a valid email address.")
        user = self.repository.get_user_by_email(address)
        if not user:
            raise NotFoundError("No account found with the provided email. Please check your email address and try again.")
        safe_name = html.escape(user.username)
        html_body = f"""
        <p>Dear User,</p>
        <p>We have received a request to retrieve your username. Below is your account username:</p>
        <h2 style="color:#025373;font-weight:600;">{safe_name}</h2>
        <p>If you did not initiate this request, please contact our support team immediately.</p>
        {SIGNATURE_HTML}
        """
        text_body = (
            "Dear User,\n\nWe have received a request to retrieve your username. "
            f"Below is your account username:\n\n{user.username}\n\n{SIGNATURE_TEXT}"
        )
        self._deliver(
            "Your Requested Username Recovery",
            user.email,
            html_body,
            text_body,
            "An error occurred while sending the username recovery email. Please try again later.",
        )

    # -------------------------------------- feedback --------------------------------------
    def send_feedback(self, username: str, kind: str, body: str) -> None:
        if not (username or "").strip() or not (kind or "").strip() or not (body or "").strip():
            raise ValidationError("Username, type, and body fields are required.")
        user = self.repository.get_user_by_username(username)
        if not user:
            raise NotFoundError("No account found with the provided username.")
        safe_name = html.escape(user.username)
        safe_kind = html.escape(kind.strip())
        failure = "An error occurred while sending the emails. Please try again later."
        self._deliver(
            "We received your feedback",
            user.email,
            f"""
            <p>Dear {safe_name},</p>
            <p>Thank you for your feedback! We have received your message and will review it shortly.</p>
            {SIGNATURE_HTML}
            """,
            f"Dear {user.username},\n\nThank you for your feedback! We have received your message "
            f"and will review it shortly.\n\n{SIGNATURE_TEXT}",
            failure,
        )
        inbox = self.settings.feedback_inbox or self.settings.smtp_from
        if not inbox:
            raise UpstreamFailure(failure)
        self._deliver(
            f"New {kind.strip()} from {user.username}",
            inbox,
            f"""
            <p><strong>Username:</strong> {safe_name}</p>
            <p><strong>Email:</strong> {html.escape(user.email)}</p>
            <p><strong>Type:</strong> {safe_kind}</p>
            <p><strong>Message:</strong></p>
            <p>{html.escape(body).replace(chr(10), "<br>")}</p>
            """,
            f"Username: {user.username}\nEmail: {user.email}\nType: {kind.strip()}\n\nMessage:\n{body}",
            failure,
        )
        logger.info("Feedback (%s) received from %s", kind.strip(), user.username)
