"""Authentication provider interfaces and failure kinds."""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from notes_api.schemas.auth import FederatedClaims, LocalClaims


class AuthVerificationError(Exception):
    """Raised when a token cannot be verified or normalized."""

    reason = "token_verification_failed"


class InvalidToken(AuthVerificationError):
    """Malformed token, bad signature, disallowed algorithm or missing claims."""

    reason = "invalid_token"


class ExpiredToken(AuthVerificationError):
    reason = "expired_token"


class UntrustedIssuer(AuthVerificationError):
    reason = "untrusted_issuer"


class KeyLookupFailure(AuthVerificationError):
    """The signing-key directory could not be reached or returned garbage."""

    reason = "key_lookup_failure"


ClaimsT = TypeVar("ClaimsT", LocalClaims, FederatedClaims)


class TokenVerifier(ABC, Generic[ClaimsT]):
    """Provider-neutral token verification interface."""

    @abstractmethod
    async def verify_token(self, token: str) -> ClaimsT:
        """Verify token and return its claims."""


__all__ = [
    "AuthVerificationError",
    "ExpiredToken",
    "InvalidToken",
    "KeyLookupFailure",
    "TokenVerifier",
    "UntrustedIssuer",
]
