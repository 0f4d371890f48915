"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notes_api.adapters.auth import FederatedTokenVerifier, LocalTokenIssuer, SigningKeyDirectory
from notes_api.core.config import Settings, get_settings
from notes_api.core.passwords import PasswordHasher
from notes_api.errors import ApiError
from notes_api.repositories.memory import InMemoryStore
from notes_api.routes import notes_router, users_router
from notes_api.schemas.error import ErrorResponse, ValidationErrorDetail
from notes_api.services.authorization import AuthorizationMiddleware
from notes_api.services.identity import IdentityResolver

logger = logging.getLogger(__name__)


def _validation_detail(exc: RequestValidationError) -> ValidationErrorDetail:
    """Reduce pydantic's error list to the first offending field."""
    errors = exc.errors()
    if not errors:
        return ValidationErrorDetail(message="Invalid request payload")

    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    key = ".".join(location) or None
    value: Any = None if first.get("type") == "missing" else first.get("input")
    message = first.get("msg", "Invalid value")
    if key:
        message = f"{key}: {message}"
    return ValidationErrorDetail(key=key, value=value, message=message)


def build_authorizer(
    settings: Settings,
    store: InMemoryStore,
    local_tokens: LocalTokenIssuer,
    key_directory: SigningKeyDirectory | None = None,
) -> AuthorizationMiddleware:
    federated: FederatedTokenVerifier | None = None
    issuer, jwks_url = settings.federated_issuer, settings.jwks_url
    if issuer is not None and jwks_url is not None:
        if key_directory is None:
            key_directory = SigningKeyDirectory(
                jwks_url,
                timeout_seconds=settings.key_lookup_timeout_seconds,
            )
        federated = FederatedTokenVerifier(
            issuer=issuer,
            key_directory=key_directory,
            audience=settings.federated_audience,
        )

    return AuthorizationMiddleware(
        store=store,
        local_tokens=local_tokens,
        resolver=IdentityResolver(store),
        federated=federated,
    )


def create_app(
    settings: Settings | None = None,
    *,
    key_directory: SigningKeyDirectory | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.authorizer.aclose()

    app = FastAPI(title="Notes API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = InMemoryStore(note_title_scope=settings.note_title_scope)
    app.state.password_hasher = PasswordHasher(rounds=settings.password_hash_rounds)
    app.state.local_tokens = LocalTokenIssuer(settings.access_token_secret)
    app.state.authorizer = build_authorizer(
        settings,
        app.state.store,
        app.state.local_tokens,
        key_directory=key_directory,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-access-token"],
    )

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_, exc: RequestValidationError) -> JSONResponse:
        detail = _validation_detail(exc)
        payload = ErrorResponse(message=detail.message, error=detail)
        return JSONResponse(status_code=400, content=payload.model_dump(mode="json"))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("request.failed method=%s path=%s", request.method, request.url.path)
        payload = ErrorResponse(message="Unexpected error occurred! Internal server error!")
        return JSONResponse(status_code=500, content=payload.model_dump(mode="json", exclude_none=True))

    base_url = "/" + settings.base_api_url.strip("/")

    @app.get(base_url, tags=["Health"])
    async def health() -> dict[str, Any]:
        return {"success": True, "message": "The server is up"}

    app.include_router(users_router, prefix=base_url)
    app.include_router(notes_router, prefix=base_url)

    return app
