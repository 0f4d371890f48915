"""Local account service: registration, login and password changes."""

from __future__ import annotations

import logging

from fastapi.concurrency import run_in_threadpool

from notes_api.adapters.auth.local_tokens import LocalTokenIssuer
from notes_api.core.logging_safety import safe_log_identifier
from notes_api.core.passwords import PasswordHasher
from notes_api.errors import ApiError
from notes_api.repositories.memory import DuplicateKeyError, InMemoryStore, UserRecord
from notes_api.schemas.auth import LocalClaims
from notes_api.schemas.user import AuthenticatedUser, UserProfile

logger = logging.getLogger(__name__)

_BAD_CREDENTIALS = "Invalid email or password"


def _email_taken(email: str) -> ApiError:
    return ApiError(status_code=409, message=f"{email} is already registered!")


class UserService:
    def __init__(self, store: InMemoryStore, hasher: PasswordHasher, tokens: LocalTokenIssuer) -> None:
        self._store = store
        self._hasher = hasher
        self._tokens = tokens

    async def register(self, *, name: str, email: str, password: str) -> AuthenticatedUser:
        if self._store.find_user_by_email(email) is not None:
            raise _email_taken(email)

        password_hash = await run_in_threadpool(self._hasher.hash, password)
        try:
            user = self._store.insert_user(
                name=name,
                email=email,
                provider="local",
                password_hash=password_hash,
            )
        except DuplicateKeyError as exc:
            raise _email_taken(email) from exc

        logger.info("users.registered user_id=%s", safe_log_identifier(user.id, prefix="uid"))
        return self._authenticated(user)

    async def login(self, *, email: str, password: str) -> AuthenticatedUser:
        user = self._store.find_user_by_email(email)
        password_hash = user.password_hash if user is not None else None
        matches = await run_in_threadpool(self._hasher.verify, password, password_hash)
        if user is None or not matches:
            logger.warning(
                "users.login_rejected email=%s reason=%s",
                safe_log_identifier(email, prefix="email"),
                "unknown_email" if user is None else "password_mismatch",
            )
            raise ApiError(status_code=401, message=_BAD_CREDENTIALS)

        logger.info("users.logged_in user_id=%s", safe_log_identifier(user.id, prefix="uid"))
        return self._authenticated(user)

    async def change_password(self, user: UserRecord, *, current_password: str | None, new_password: str) -> None:
        # Federated-only accounts have no password yet and may set one.
        if user.password_hash is not None:
            if not current_password or not await run_in_threadpool(
                self._hasher.verify, current_password, user.password_hash
            ):
                raise ApiError(status_code=401, message="Current password is incorrect")

        password_hash = await run_in_threadpool(self._hasher.hash, new_password)
        if self._store.update_user(user.id, password_hash=password_hash) is None:
            raise ApiError(status_code=401, message="Invalid or expired token")
        logger.info("users.password_changed user_id=%s", safe_log_identifier(user.id, prefix="uid"))

    def profile(self, user: UserRecord) -> UserProfile:
        return UserProfile(
            id=user.id,
            name=user.name,
            email=user.email,
            picture=user.picture,
            provider=user.provider,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def _authenticated(self, user: UserRecord) -> AuthenticatedUser:
        claims = LocalClaims(user_id=user.id, name=user.name, email=user.email)
        return AuthenticatedUser(
            id=user.id,
            name=user.name,
            email=user.email,
            access_token=self._tokens.issue(claims),
        )
