"""Request-time authorization: which verifier, which user.

``AuthorizationMiddleware.authorize`` walks one explicit state machine per
request::

    NO_TOKEN                                   -> REJECTED
    TOKEN_PRESENT -> FEDERATED_PATH -> resolve -> AUTHORIZED
                  -> LOCAL_PATH     -> lookup  -> AUTHORIZED
    any failure                                -> REJECTED
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import jwt as pyjwt

from notes_api.adapters.auth.base import AuthVerificationError
from notes_api.adapters.auth.federated import FederatedTokenVerifier
from notes_api.adapters.auth.local_tokens import LocalTokenIssuer
from notes_api.repositories.memory import InMemoryStore, UserRecord
from notes_api.services.identity import IdentityConflictError, IdentityResolver

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    NO_TOKEN = "no_token"
    TOKEN_PRESENT = "token_present"
    FEDERATED_PATH = "federated_path"
    LOCAL_PATH = "local_path"
    AUTHORIZED = "authorized"
    REJECTED = "rejected"


class AuthorizationRejected(Exception):
    """Terminal ``REJECTED`` state; ``reason`` is for logs only, never for clients."""

    def __init__(self, message: str, *, reason: str, state: AuthState) -> None:
        self.reason = reason
        self.state = state
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class AuthorizationResult:
    user: UserRecord
    path: AuthState


class AuthorizationMiddleware:
    """Universal bearer-token authorizer for local and federated tokens.

    Built once per process; owns the federated verifier and with it the
    signing-key cache. ``federated`` is ``None`` when no identity provider is
    configured, in which case every token takes the local path.
    """

    def __init__(
        self,
        *,
        store: InMemoryStore,
        local_tokens: LocalTokenIssuer,
        resolver: IdentityResolver,
        federated: FederatedTokenVerifier | None = None,
    ) -> None:
        self._store = store
        self._local = local_tokens
        self._resolver = resolver
        self._federated = federated

    @property
    def federated(self) -> FederatedTokenVerifier | None:
        return self._federated

    def select_path(self, token: str) -> AuthState:
        """Decide which verifier handles ``token`` from its unverified issuer."""
        try:
            unverified = pyjwt.decode(token, options={"verify_signature": False})
        except pyjwt.PyJWTError as exc:
            raise AuthorizationRejected(
                "Invalid token format",
                reason="undecodable_token",
                state=AuthState.TOKEN_PRESENT,
            ) from exc

        if self._federated is not None and unverified.get("iss") == self._federated.issuer:
            return AuthState.FEDERATED_PATH
        return AuthState.LOCAL_PATH

    async def authorize(self, token: str | None) -> AuthorizationResult:
        if not token:
            raise AuthorizationRejected("No token provided", reason="missing_token", state=AuthState.NO_TOKEN)

        path = self.select_path(token)
        try:
            if path is AuthState.FEDERATED_PATH and self._federated is not None:
                user = await self._authorize_federated(self._federated, token)
            else:
                user = await self._authorize_local(token)
        except (AuthorizationRejected, IdentityConflictError):
            raise
        except AuthVerificationError as exc:
            raise AuthorizationRejected("Invalid or expired token", reason=exc.reason, state=path) from exc
        except Exception as exc:
            logger.exception("auth.unexpected_error path=%s", path.value)
            raise AuthorizationRejected("Token verification failed", reason="unexpected_error", state=path) from exc

        return AuthorizationResult(user=user, path=path)

    async def _authorize_federated(self, verifier: FederatedTokenVerifier, token: str) -> UserRecord:
        claims = await verifier.verify_token(token)
        return self._resolver.resolve(claims)

    async def _authorize_local(self, token: str) -> UserRecord:
        claims = await self._local.verify_token(token)
        user = self._store.get_user(claims.user_id)
        if user is None:
            raise AuthorizationRejected("Invalid or expired token", reason="user_not_found", state=AuthState.LOCAL_PATH)
        return user

    async def aclose(self) -> None:
        if self._federated is not None:
            await self._federated.key_directory.aclose()


__all__ = [
    "AuthState",
    "AuthorizationMiddleware",
    "AuthorizationRejected",
    "AuthorizationResult",
]
