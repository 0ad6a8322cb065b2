"""FastAPI application: wiring, middleware and error translation."""
from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from linklounge.core.config import Settings, get_settings
from linklounge.core.errors import LoungeError
from linklounge.core.images import CloudinaryImageStore
from linklounge.core.tokens import TokenService
from linklounge.db.create_tables import create_all
from linklounge.repositories.sql_repository import SQLRepository
from linklounge.routers import auth as auth_router
from linklounge.routers import lounges as lounges_router
from linklounge.routers import users as users_router
from linklounge.services.auth_service import AuthService
from linklounge.services.lounge_service import ImageStore, LoungeService
from linklounge.services.user_service import UserService

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (anti clickjacking, nosniff, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def _error_body(payload: dict) -> dict:
    return {"error": payload}


async def _handle_lounge_error(request: Request, exc: LoungeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"Retry-After": str(exc.retry_after)} if hasattr(exc, "retry_after") else None
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.payload()), headers=headers)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    message = "Invalid request data. " + "; ".join(problems) if problems else "Invalid request data."
    return JSONResponse(status_code=400, content=_error_body({"message": message}))


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=_error_body({"message": "An unexpected error occurred. Please try again later."}),
    )


@asynccontextmanager
async def _lifespan(app: FastAPI):
    create_all(app.state.settings.database_url)
    yield


def create_app(settings: Settings | None = None, image_store: ImageStore | None = None) -> FastAPI:
    """Build the API with explicitly injected settings and image store."""
    settings = settings or get_settings()
    app = FastAPI(title="LinkLounge API", lifespan=_lifespan)

    repository = SQLRepository(settings)
    tokens = TokenService(settings)
    app.state.settings = settings
    app.state.repository = repository
    app.state.token_service = tokens
    app.state.auth_service = AuthService(settings=settings, repository=repository, tokens=tokens)
    app.state.user_service = UserService(repository=repository)
    app.state.lounge_service = LoungeService(image_store or CloudinaryImageStore(settings), repository=repository)

    allowed_cors = set(settings.allowed_origins) | {settings.frontend_url}
    if settings.app_env != "prod":
        allowed_cors.update({"http://localhost:3000", "http://localhost:5173", "http://127.0.0.1:5173"})
    allowed_cors = {origin for origin in allowed_cors if origin}
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    app.add_exception_handler(LoungeError, _handle_lounge_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected)

    app.include_router(auth_router.router)
    app.include_router(users_router.router)
    app.include_router(lounges_router.router)

    @app.get("/")
    def root() -> dict[str, str]:
        return {"message": "LinkLounge API"}

    return app
