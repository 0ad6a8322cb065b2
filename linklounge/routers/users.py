from __future__ import annotations

from fastapi import APIRouter, Request, status

from linklounge.schemas import IdRequest, MessageResponse, RegisterRequest, UpdateUserRequest, UserOut
from linklounge.services.session_service import CurrentUser
from linklounge.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


def _user_service(request: Request) -> UserService:
    svc = getattr(getattr(request.app, "state", None), "user_service", None)
    if not svc:
        raise RuntimeError("UserService is not configured")
    return svc


@router.post("", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
def create_user(body: RegisterRequest, request: Request):
    user = _user_service(request).register(body.username, body.email, body.password)
    return MessageResponse(message=f"New user account for {user.username} has been successfully created.")


@router.get("", response_model=list[UserOut])
def list_users(request: Request, actor: CurrentUser):
    return _user_service(request).list_users(actor)


@router.patch("", response_model=MessageResponse)
def update_user(body: UpdateUserRequest, request: Request, actor: CurrentUser):
    user = _user_service(request).update(
        actor,
        body.id,
        username=body.username,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    return MessageResponse(message=f"{user.username}'s account has been updated successfully.")


@router.delete("", response_model=MessageResponse)
def delete_user(body: IdRequest, request: Request, actor: CurrentUser):
    user = _user_service(request).delete(actor, body.id)
    return MessageResponse(message=f"User {user.username} with ID {user.id} has been deleted successfully.")
