"""Identity-provider (OIDC) token verification against a remote JWKS directory."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx
import jwt as pyjwt
from pydantic import ValidationError

from notes_api.adapters.auth.base import (
    ExpiredToken,
    InvalidToken,
    KeyLookupFailure,
    TokenVerifier,
    UntrustedIssuer,
)
from notes_api.schemas.auth import FederatedClaims

logger = logging.getLogger(__name__)

ALLOWED_ALGORITHMS = ("RS256",)


@dataclass(frozen=True, slots=True)
class SigningKey:
    kid: str
    algorithm: str
    key: Any


class UnknownSigningKey(InvalidToken):
    """The token names a key id the directory does not publish."""


class SigningKeyDirectory:
    """Caching client for an issuer's JSON Web Key Set.

    Keys are cached per key id for the lifetime of the process and never
    evicted; a key id maps to the same key material once published, so
    concurrent population is last-write-wins. Failed lookups are not cached.
    """

    def __init__(
        self,
        jwks_url: str,
        *,
        timeout_seconds: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._jwks_url = jwks_url
        self._timeout_seconds = timeout_seconds
        self._http_client = http_client
        self._owns_client = http_client is None
        self._keys: dict[str, SigningKey] = {}
        self.fetch_count = 0

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout_seconds)
        return self._http_client

    def cached_key(self, kid: str) -> SigningKey | None:
        return self._keys.get(kid)

    async def fetch_key(self, kid: str) -> SigningKey:
        """Re-download the key set and return the key for ``kid``."""
        self._keys.update(await self._fetch_keys())
        key = self._keys.get(kid)
        if key is None:
            logger.warning("keys.unknown_kid kid=%s", kid)
            raise UnknownSigningKey(f"No signing key published for kid {kid!r}")
        return key

    async def _fetch_keys(self) -> dict[str, SigningKey]:
        self.fetch_count += 1
        try:
            response = await asyncio.wait_for(
                self.http_client.get(self._jwks_url),
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
            document = response.json()
        except (TimeoutError, asyncio.TimeoutError) as exc:
            logger.error("keys.fetch_failed url=%s reason=timeout", self._jwks_url)
            raise KeyLookupFailure("Signing key lookup timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("keys.fetch_failed url=%s reason=%s", self._jwks_url, type(exc).__name__)
            raise KeyLookupFailure("Signing key lookup failed") from exc
        except ValueError as exc:
            logger.error("keys.fetch_failed url=%s reason=malformed_document", self._jwks_url)
            raise KeyLookupFailure("Signing key directory returned malformed JSON") from exc

        keys = self._parse_key_set(document)
        logger.info("keys.refreshed url=%s kids=%s", self._jwks_url, ",".join(sorted(keys)))
        return keys

    def _parse_key_set(self, document: Any) -> dict[str, SigningKey]:
        if not isinstance(document, dict) or not isinstance(document.get("keys"), list):
            raise KeyLookupFailure("Signing key directory returned an unexpected document")

        keys: dict[str, SigningKey] = {}
        for entry in document["keys"]:
            if not isinstance(entry, dict) or not entry.get("kid"):
                continue
            if entry.get("use", "sig") != "sig":
                continue
            try:
                jwk = pyjwt.PyJWK(entry)
            except pyjwt.PyJWTError:
                logger.warning("keys.skipped kid=%s reason=unsupported_key", entry.get("kid"))
                continue
            algorithm = entry.get("alg") or jwk.algorithm_name
            if algorithm not in ALLOWED_ALGORITHMS:
                logger.warning("keys.skipped kid=%s reason=algorithm_not_allowed", entry.get("kid"))
                continue
            keys[entry["kid"]] = SigningKey(kid=entry["kid"], algorithm=algorithm, key=jwk.key)
        return keys

    async def aclose(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


class FederatedTokenVerifier(TokenVerifier[FederatedClaims]):
    """Verifies identity-provider tokens and normalizes them into claims."""

    def __init__(
        self,
        *,
        issuer: str,
        key_directory: SigningKeyDirectory,
        audience: str | None = None,
    ) -> None:
        self.issuer = issuer
        self._keys = key_directory
        self._audience = audience

    @property
    def key_directory(self) -> SigningKeyDirectory:
        return self._keys

    async def verify_token(self, token: str) -> FederatedClaims:
        try:
            header = pyjwt.get_unverified_header(token)
            unverified = pyjwt.decode(token, options={"verify_signature": False})
        except pyjwt.PyJWTError as exc:
            raise InvalidToken("Malformed identity token") from exc

        # Only asymmetric algorithms: an HMAC token claiming this issuer
        # must never reach a key lookup.
        if header.get("alg") not in ALLOWED_ALGORITHMS:
            raise InvalidToken("Identity token uses a disallowed algorithm")
        if unverified.get("iss") != self.issuer:
            raise UntrustedIssuer("Identity token issuer is not trusted")
        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise InvalidToken("Identity token header missing key id")

        signing_key = self._keys.cached_key(kid)
        if signing_key is None:
            payload = self._decode(token, await self._keys.fetch_key(kid))
        else:
            try:
                payload = self._decode(token, signing_key, allow_refetch=True)
            except pyjwt.InvalidSignatureError:
                # The provider may have rotated the key behind this kid.
                logger.info("keys.refetch kid=%s reason=signature_mismatch", kid)
                payload = self._decode(token, await self._keys.fetch_key(kid))

        return self._claims_from_payload(payload)

    def _decode(self, token: str, signing_key: SigningKey, *, allow_refetch: bool = False) -> dict[str, Any]:
        try:
            return pyjwt.decode(
                token,
                signing_key.key,
                algorithms=[signing_key.algorithm],
                issuer=self.issuer,
                audience=self._audience,
                options={
                    "require": ["exp", "iss", "sub"],
                    "verify_aud": self._audience is not None,
                },
            )
        except pyjwt.InvalidSignatureError as exc:
            if allow_refetch:
                raise
            raise InvalidToken("Identity token signature mismatch") from exc
        except pyjwt.ExpiredSignatureError as exc:
            raise ExpiredToken("Identity token has expired") from exc
        except pyjwt.InvalidIssuerError as exc:
            raise UntrustedIssuer("Identity token issuer is not trusted") from exc
        except pyjwt.PyJWTError as exc:
            raise InvalidToken("Invalid identity token") from exc

    def _claims_from_payload(self, payload: dict[str, Any]) -> FederatedClaims:
        try:
            return FederatedClaims(
                subject=str(payload.get("sub") or "").strip(),
                email=str(payload.get("email") or "").strip(),
                name=(str(payload["name"]).strip() or None) if payload.get("name") else None,
                picture=payload.get("picture") or None,
                issuer=payload["iss"],
            )
        except ValidationError as exc:
            raise InvalidToken("Identity token missing subject or email") from exc


__all__ = [
    "ALLOWED_ALGORITHMS",
    "FederatedTokenVerifier",
    "SigningKey",
    "SigningKeyDirectory",
    "UnknownSigningKey",
]
