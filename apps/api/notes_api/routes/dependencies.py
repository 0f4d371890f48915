"""Dependency wiring for routes."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from notes_api.core.logging_safety import safe_log_identifier
from notes_api.errors import ApiError
from notes_api.repositories.memory import InMemoryStore, UserRecord
from notes_api.services.authorization import AuthorizationMiddleware, AuthorizationRejected
from notes_api.services.identity import IdentityConflictError
from notes_api.services.notes import NoteService
from notes_api.services.users import UserService

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
logger = logging.getLogger(__name__)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id") or f"req-{uuid4()}"
    request.state.correlation_id = correlation_id
    return correlation_id


def get_authorizer(request: Request) -> AuthorizationMiddleware:
    return request.app.state.authorizer


async def get_authenticated_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    authorizer: Annotated[AuthorizationMiddleware, Depends(get_authorizer)],
) -> UserRecord:
    """Authorize the bearer token and attach the resolved user to request context."""
    safe_correlation_id = safe_log_identifier(_request_correlation_id(request), prefix="cid")
    token = credentials.credentials if credentials is not None else None

    try:
        result = await authorizer.authorize(token)
    except AuthorizationRejected as exc:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s state=%s reason=%s",
            safe_correlation_id,
            request.method,
            request.url.path,
            exc.state.value,
            exc.reason,
        )
        raise ApiError(
            status_code=401,
            message=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    except IdentityConflictError as exc:
        logger.warning(
            "auth.conflict correlation_id=%s method=%s path=%s",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise ApiError(status_code=409, message="Account setup is in progress, please retry") from exc

    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s user_id=%s via=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        safe_log_identifier(result.user.id, prefix="uid"),
        result.path.value,
    )
    request.state.user = result.user
    return result.user


CurrentUser = Annotated[UserRecord, Depends(get_authenticated_user)]


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def get_user_service(request: Request, store: Annotated[InMemoryStore, Depends(get_store)]) -> UserService:
    return UserService(store, request.app.state.password_hasher, request.app.state.local_tokens)


def get_note_service(store: Annotated[InMemoryStore, Depends(get_store)]) -> NoteService:
    return NoteService(store)
