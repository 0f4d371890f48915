"""Identity-provider token verification and signing-key directory tests."""

from __future__ import annotations

import time
import unittest

import jwt as pyjwt

from notes_api.adapters.auth import (
    ExpiredToken,
    FederatedTokenVerifier,
    InvalidToken,
    KeyLookupFailure,
    UntrustedIssuer,
)
from support import FEDERATED_ISSUER, FakeIdentityProvider, generate_rsa_key


class FederatedVerifierTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.idp = FakeIdentityProvider()
        self.idp.add_key("key-1")
        self.directory = self.idp.directory()
        self.verifier = FederatedTokenVerifier(issuer=FEDERATED_ISSUER, key_directory=self.directory)

    async def asyncTearDown(self) -> None:
        await self.directory.http_client.aclose()

    async def test_valid_token_yields_federated_claims(self) -> None:
        claims = await self.verifier.verify_token(self.idp.token())

        self.assertEqual(claims.kind, "federated")
        self.assertEqual(claims.subject, "idp|ann")
        self.assertEqual(claims.email, "ann@x.com")
        self.assertEqual(claims.name, "Ann")
        self.assertEqual(claims.picture, "https://cdn.idp.test/ann.png")
        self.assertEqual(claims.issuer, FEDERATED_ISSUER)

    async def test_signing_keys_are_cached_per_kid(self) -> None:
        await self.verifier.verify_token(self.idp.token(subject="idp|one"))
        await self.verifier.verify_token(self.idp.token(subject="idp|two"))

        self.assertEqual(self.idp.requests, 1)
        self.assertIsNotNone(self.directory.cached_key("key-1"))

    async def test_token_signed_with_non_matching_key_is_invalid(self) -> None:
        forged = self.idp.token(private_key=generate_rsa_key())

        with self.assertRaises(InvalidToken):
            await self.verifier.verify_token(forged)

    async def test_forged_token_against_cached_key_refetches_once_then_fails(self) -> None:
        await self.verifier.verify_token(self.idp.token())
        forged = self.idp.token(private_key=generate_rsa_key())

        with self.assertRaises(InvalidToken):
            await self.verifier.verify_token(forged)
        self.assertEqual(self.idp.requests, 2)

    async def test_rotated_key_behind_cached_kid_is_refetched_and_accepted(self) -> None:
        await self.verifier.verify_token(self.idp.token())
        self.idp.add_key("key-1")

        claims = await self.verifier.verify_token(self.idp.token(subject="idp|after-rotation"))

        self.assertEqual(claims.subject, "idp|after-rotation")
        self.assertEqual(self.idp.requests, 2)

    async def test_new_kid_triggers_fetch(self) -> None:
        await self.verifier.verify_token(self.idp.token())
        self.idp.add_key("key-2")

        claims = await self.verifier.verify_token(self.idp.token(kid="key-2", subject="idp|new-kid"))

        self.assertEqual(claims.subject, "idp|new-kid")
        self.assertEqual(self.idp.requests, 2)

    async def test_unpublished_kid_is_invalid_token(self) -> None:
        token = self.idp.token(kid="key-unknown", private_key=generate_rsa_key())

        with self.assertRaises(InvalidToken):
            await self.verifier.verify_token(token)

    async def test_untrusted_issuer_is_rejected_even_with_valid_signature(self) -> None:
        token = self.idp.token(issuer="https://evil.example.com/")

        with self.assertRaises(UntrustedIssuer):
            await self.verifier.verify_token(token)
        self.assertEqual(self.idp.requests, 0)

    async def test_issuer_must_match_scheme_and_host_exactly(self) -> None:
        for issuer in ("http://tenant.idp.test/", "https://tenant.idp.test", "https://tenant.idp.test.evil/"):
            with self.subTest(issuer=issuer), self.assertRaises(UntrustedIssuer):
                await self.verifier.verify_token(self.idp.token(issuer=issuer))

    async def test_symmetric_token_claiming_trusted_issuer_is_rejected_without_key_lookup(self) -> None:
        now = int(time.time())
        token = pyjwt.encode(
            {"sub": "idp|ann", "email": "ann@x.com", "iss": FEDERATED_ISSUER, "iat": now, "exp": now + 60},
            "guessable-shared-secret-at-least-32-bytes",
            algorithm="HS256",
            headers={"kid": "key-1"},
        )

        with self.assertRaises(InvalidToken):
            await self.verifier.verify_token(token)
        self.assertEqual(self.idp.requests, 0)

    async def test_expired_token_is_rejected(self) -> None:
        with self.assertRaises(ExpiredToken):
            await self.verifier.verify_token(self.idp.token(expires_in=-60))

    async def test_token_without_email_is_invalid(self) -> None:
        with self.assertRaises(InvalidToken):
            await self.verifier.verify_token(self.idp.token(email=None))

    async def test_token_without_kid_is_invalid(self) -> None:
        now = int(time.time())
        token = pyjwt.encode(
            {"sub": "idp|ann", "email": "ann@x.com", "iss": FEDERATED_ISSUER, "exp": now + 60},
            self.idp.private_keys["key-1"],
            algorithm="RS256",
        )

        with self.assertRaises(InvalidToken):
            await self.verifier.verify_token(token)

    async def test_audience_is_checked_when_configured(self) -> None:
        verifier = FederatedTokenVerifier(
            issuer=FEDERATED_ISSUER,
            key_directory=self.directory,
            audience="notes-api",
        )

        accepted = await verifier.verify_token(self.idp.token(aud="notes-api"))
        self.assertEqual(accepted.subject, "idp|ann")
        with self.assertRaises(InvalidToken):
            await verifier.verify_token(self.idp.token(aud="someone-else"))

    async def test_malformed_token_is_invalid(self) -> None:
        with self.assertRaises(InvalidToken):
            await self.verifier.verify_token("not-a-jwt")


class SigningKeyDirectoryFailureTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.idp = FakeIdentityProvider()
        self.idp.add_key("key-1")

    async def _verify_with_failure(self, failure: str, *, timeout_seconds: float = 2.0) -> None:
        directory = self.idp.directory(timeout_seconds=timeout_seconds)
        verifier = FederatedTokenVerifier(issuer=FEDERATED_ISSUER, key_directory=directory)
        self.idp.failure = failure
        try:
            await verifier.verify_token(self.idp.token())
        finally:
            await directory.http_client.aclose()

    async def test_connection_error_is_key_lookup_failure(self) -> None:
        with self.assertRaises(KeyLookupFailure):
            await self._verify_with_failure("connect")

    async def test_error_status_is_key_lookup_failure(self) -> None:
        with self.assertRaises(KeyLookupFailure):
            await self._verify_with_failure("unavailable")

    async def test_malformed_document_is_key_lookup_failure(self) -> None:
        with self.assertRaises(KeyLookupFailure):
            await self._verify_with_failure("garbage")

    async def test_hung_lookup_fails_closed_after_timeout(self) -> None:
        started = time.monotonic()
        with self.assertRaises(KeyLookupFailure):
            await self._verify_with_failure("hang", timeout_seconds=0.05)
        self.assertLess(time.monotonic() - started, 5)

    async def test_failures_are_not_cached(self) -> None:
        directory = self.idp.directory()
        verifier = FederatedTokenVerifier(issuer=FEDERATED_ISSUER, key_directory=directory)
        try:
            self.idp.failure = "unavailable"
            with self.assertRaises(KeyLookupFailure):
                await verifier.verify_token(self.idp.token())
            self.assertIsNone(directory.cached_key("key-1"))

            self.idp.failure = None
            claims = await verifier.verify_token(self.idp.token())
        finally:
            await directory.http_client.aclose()

        self.assertEqual(claims.subject, "idp|ann")
        self.assertEqual(self.idp.requests, 2)


if __name__ == "__main__":
    unittest.main()
