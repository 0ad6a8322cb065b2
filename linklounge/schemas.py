"""Request/response schemas for the HTTP surface."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    username: str = Field("", description="Username (case-insensitive)")
    password: str = Field("", description="Password")


class TokenResponse(BaseModel):
    accessToken: str = Field(..., description="Short-lived JWT access token")


class MessageResponse(BaseModel):
    message: str


class EmailRequest(BaseModel):
    email: str = ""


class ResetPasswordRequest(BaseModel):
    token: str = ""
    password: str = ""


class FeedbackRequest(BaseModel):
    username: str = ""
    type: str = ""
    body: str = ""


class RegisterRequest(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""


class UpdateUserRequest(BaseModel):
    id: int
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class IdRequest(BaseModel):
    id: int


class VisibilityRequest(BaseModel):
    id: int
    isPublic: bool


class UserOut(BaseModel):
    """User without the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OwnerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str


class Button(BaseModel):
    text: str
    link: str


class Icon(BaseModel):
    icon: str
    link: str


class LoungeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner: OwnerOut
    title: str
    description: Optional[str] = None
    buttons: list[Button] = []
    icons: list[Icon] = []
    profile_image: Optional[str] = None
    background_image: Optional[str] = None
    theme: str
    is_public: bool
    url: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoungeResponse(BaseModel):
    message: str
    lounge: LoungeOut
