"""Self-issued access tokens for local accounts."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt as pyjwt
from pydantic import ValidationError

from notes_api.adapters.auth.base import ExpiredToken, InvalidToken, TokenVerifier
from notes_api.schemas.auth import LocalClaims

ACCESS_TOKEN_TTL = timedelta(days=30)
_ALGORITHM = "HS256"


class LocalTokenIssuer(TokenVerifier[LocalClaims]):
    """Signs and validates HS256 bearer tokens carrying ``{_id, name, email}``.

    Tokens are stateless: there is no revocation, a token stays valid until
    ``exp``.
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Access token secret must not be empty")
        self._secret = secret

    def issue(self, claims: LocalClaims, *, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(UTC)
        payload = {
            **claims.token_payload(),
            "iat": issued_at,
            "exp": issued_at + ACCESS_TOKEN_TTL,
        }
        return pyjwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> LocalClaims:
        try:
            payload = pyjwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except pyjwt.ExpiredSignatureError as exc:
            raise ExpiredToken("Access token has expired") from exc
        except pyjwt.PyJWTError as exc:
            raise InvalidToken("Invalid access token") from exc

        try:
            return LocalClaims.model_validate(payload)
        except ValidationError as exc:
            raise InvalidToken("Access token is missing identity claims") from exc

    async def verify_token(self, token: str) -> LocalClaims:
        return self.verify(token)


__all__ = ["ACCESS_TOKEN_TTL", "LocalTokenIssuer"]
