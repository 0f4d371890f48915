"""Shared fixtures for the API test suite."""

from __future__ import annotations

import asyncio
import json
import os
import time
import unittest
from typing import Any

import httpx
import jwt as pyjwt
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from notes_api.adapters.auth.federated import SigningKeyDirectory
from notes_api.core.config import get_settings

IDP_DOMAIN = "tenant.idp.test"
FEDERATED_ISSUER = f"https://{IDP_DOMAIN}/"
JWKS_URL = f"https://{IDP_DOMAIN}/.well-known/jwks.json"
ACCESS_TOKEN_SECRET = "test-access-token-secret-for-api-tests"


class SettingsEnvCase(unittest.TestCase):
    _env = {
        "NOTES_ACCESS_TOKEN_SECRET": ACCESS_TOKEN_SECRET,
        "NOTES_PASSWORD_HASH_ROUNDS": "4",
        "NOTES_FEDERATED_DOMAIN": IDP_DOMAIN,
        "NOTES_FEDERATED_AUDIENCE": None,
        "NOTES_BASE_API_URL": None,
        "NOTES_NOTE_TITLE_SCOPE": None,
    }

    def setUp(self) -> None:
        self._old_env = {key: os.environ.get(key) for key in self._env}
        for key, value in self._env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()

    def tearDown(self) -> None:
        for key, value in self._old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()


def generate_rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


class FakeIdentityProvider:
    """Publishes a JWKS document through ``httpx.MockTransport`` and mints tokens."""

    def __init__(self) -> None:
        self.private_keys: dict[str, rsa.RSAPrivateKey] = {}
        self.requests = 0
        self.failure: str | None = None

    def add_key(self, kid: str = "key-1") -> rsa.RSAPrivateKey:
        self.private_keys[kid] = generate_rsa_key()
        return self.private_keys[kid]

    def jwks(self) -> dict[str, Any]:
        keys = []
        for kid, private_key in self.private_keys.items():
            jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
            jwk.update({"kid": kid, "alg": "RS256", "use": "sig"})
            keys.append(jwk)
        return {"keys": keys}

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests += 1
        if self.failure == "hang":
            await asyncio.sleep(30)
        if self.failure == "connect":
            raise httpx.ConnectError("connection refused", request=request)
        if self.failure == "unavailable":
            return httpx.Response(503, json={"error": "unavailable"})
        if self.failure == "garbage":
            return httpx.Response(200, content=b"<html>not json</html>")
        return httpx.Response(200, json=self.jwks())

    def directory(self, *, timeout_seconds: float = 2.0) -> SigningKeyDirectory:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return SigningKeyDirectory(JWKS_URL, timeout_seconds=timeout_seconds, http_client=client)

    def token(
        self,
        *,
        subject: str = "idp|ann",
        email: str | None = "ann@x.com",
        name: str | None = "Ann",
        picture: str | None = "https://cdn.idp.test/ann.png",
        kid: str = "key-1",
        issuer: str = FEDERATED_ISSUER,
        expires_in: int = 3600,
        private_key: rsa.RSAPrivateKey | None = None,
        **extra: Any,
    ) -> str:
        now = int(time.time())
        payload: dict[str, Any] = {
            "sub": subject,
            "iss": issuer,
            "iat": now,
            "exp": now + expires_in,
            **extra,
        }
        if email is not None:
            payload["email"] = email
        if name is not None:
            payload["name"] = name
        if picture is not None:
            payload["picture"] = picture
        key = private_key or self.private_keys[kid]
        return pyjwt.encode(payload, key, algorithm="RS256", headers={"kid": kid})


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
