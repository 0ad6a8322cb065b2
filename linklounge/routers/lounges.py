from __future__ import annotations

from contextlib import contextmanager, ExitStack
import json
import os
import shutil
import tempfile
from typing import Iterator

from fastapi import APIRouter, File, Form, Request, UploadFile, status

from linklounge.core.errors import ValidationError
from linklounge.schemas import IdRequest, LoungeOut, LoungeResponse, MessageResponse, VisibilityRequest
from linklounge.services.lounge_service import ImageChange, LoungeService
from linklounge.services.session_service import CurrentUser

router = APIRouter(prefix="/lounges", tags=["lounges"])


def _lounge_service(request: Request) -> LoungeService:
    svc = getattr(getattr(request.app, "state", None), "lounge_service", None)
    if not svc:
        raise RuntimeError("LoungeService is not configured")
    return svc


def _parse_list(raw: str | None, label: str) -> list | None:
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError(f"{label} must be a JSON array.")
    if not isinstance(value, list):
        raise ValidationError(f"{label} must be a JSON array.")
    return value


@contextmanager
def _stash_upload(upload: UploadFile | None) -> Iterator[str | None]:
    """Copy an uploaded file to a temporary path for the image store; remove it afterwards."""
    if upload is None or not upload.filename:
        yield None
        return
    suffix = os.path.splitext(upload.filename)[1].lower()
    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
        shutil.copyfileobj(upload.file, tmp)
        path = tmp.name
    try:
        yield path
    finally:
        try:
            os.unlink(path)
        except OSError:
            pass


def _out(lounge) -> LoungeOut:
    return LoungeOut.model_validate(lounge)


@router.get("", response_model=list[LoungeOut])
def list_lounges(request: Request, actor: CurrentUser):
    return [_out(lounge) for lounge in _lounge_service(request).list_for(actor)]


@router.get("/user/{username}", response_model=list[LoungeOut])
def lounges_by_user(username: str, request: Request, actor: CurrentUser):
    return [_out(lounge) for lounge in _lounge_service(request).list_by_owner(actor, username)]


@router.get("/{username}/{title}", response_model=LoungeOut)
def public_lounge(username: str, title: str, request: Request):
    return _out(_lounge_service(request).get_public(username, title))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=LoungeResponse)
def create_lounge(
    request: Request,
    actor: CurrentUser,
    title: str = Form(""),
    description: str | None = Form(None),
    buttons: str | None = Form(None),
    icons: str | None = Form(None),
    theme: str | None = Form(None),
    isPublic: bool = Form(False),
    profile: UploadFile | None = File(None),
    background: UploadFile | None = File(None),
):
    if not title.strip():
        raise ValidationError("Title is required. Please provide a title for the lounge.")
    svc = _lounge_service(request)
    with ExitStack() as stack:
        profile_path = stack.enter_context(_stash_upload(profile))
        background_path = stack.enter_context(_stash_upload(background))
        lounge = svc.create(
            actor,
            title=title,
            description=description,
            buttons=_parse_list(buttons, "Buttons"),
            icons=_parse_list(icons, "Icons"),
            theme=theme,
            is_public=isPublic,
            profile_path=profile_path,
            background_path=background_path,
        )
    return LoungeResponse(
        message=f"{lounge.title} created successfully with URL: {lounge.url}",
        lounge=_out(lounge),
    )


@router.patch("", response_model=LoungeResponse)
def update_lounge(
    request: Request,
    actor: CurrentUser,
    id: int = Form(...),
    title: str | None = Form(None),
    description: str | None = Form(None),
    buttons: str | None = Form(None),
    icons: str | None = Form(None),
    theme: str | None = Form(None),
    isPublic: bool | None = Form(None),
    removeProfile: bool = Form(False),
    removeBackground: bool = Form(False),
    profile: UploadFile | None = File(None),
    background: UploadFile | None = File(None),
):
    svc = _lounge_service(request)
    with ExitStack() as stack:
        profile_path = stack.enter_context(_stash_upload(profile))
        background_path = stack.enter_context(_stash_upload(background))
        profile_change = ImageChange(file_path=profile_path, clear=removeProfile) if (profile_path or removeProfile) else None
        background_change = (
            ImageChange(file_path=background_path, clear=removeBackground)
            if (background_path or removeBackground)
            else None
        )
        lounge = svc.update(
            actor,
            id,
            title=title,
            description=description,
            buttons=_parse_list(buttons, "Buttons"),
            icons=_parse_list(icons, "Icons"),
            theme=theme,
            is_public=isPublic,
            profile=profile_change,
            background=background_change,
        )
    return LoungeResponse(
        message=f"{lounge.title} updated successfully. New URL: {lounge.url}",
        lounge=_out(lounge),
    )


@router.patch("/visibility", response_model=LoungeResponse)
def set_visibility(body: VisibilityRequest, request: Request, actor: CurrentUser):
    lounge = _lounge_service(request).set_visibility(actor, body.id, body.isPublic)
    return LoungeResponse(
        message=f"Lounge visibility updated to {'public' if lounge.is_public else 'private'}",
        lounge=_out(lounge),
    )


@router.delete("", response_model=MessageResponse)
def delete_lounge(body: IdRequest, request: Request, actor: CurrentUser):
    lounge = _lounge_service(request).delete(actor, body.id)
    return MessageResponse(
        message=f"Lounge {lounge.title} with ID {lounge.id} and associated images deleted successfully."
    )
