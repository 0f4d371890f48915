"""Auth verifier adapters."""

from .base import (
    AuthVerificationError,
    ExpiredToken,
    InvalidToken,
    KeyLookupFailure,
    TokenVerifier,
    UntrustedIssuer,
)
from .federated import FederatedTokenVerifier, SigningKeyDirectory
from .local_tokens import ACCESS_TOKEN_TTL, LocalTokenIssuer

__all__ = [
    "ACCESS_TOKEN_TTL",
    "AuthVerificationError",
    "ExpiredToken",
    "FederatedTokenVerifier",
    "InvalidToken",
    "KeyLookupFailure",
    "LocalTokenIssuer",
    "SigningKeyDirectory",
    "TokenVerifier",
    "UntrustedIssuer",
]
