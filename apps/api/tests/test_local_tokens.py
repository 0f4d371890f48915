"""Local access token issue/verify tests."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
import unittest

import jwt as pyjwt

from notes_api.adapters.auth import ACCESS_TOKEN_TTL, ExpiredToken, InvalidToken, LocalTokenIssuer
from notes_api.schemas.auth import LocalClaims

SECRET = "local-token-secret-for-unit-tests-only"


class LocalTokenIssuerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.issuer = LocalTokenIssuer(SECRET)
        self.claims = LocalClaims(user_id="user-1", name="Ann", email="ann@x.com")

    def test_issue_then_verify_returns_same_claims(self) -> None:
        token = self.issuer.issue(self.claims)

        self.assertEqual(self.issuer.verify(token), self.claims)

    def test_payload_carries_only_identity_claims_and_thirty_day_expiry(self) -> None:
        issued_at = datetime(2026, 1, 1, tzinfo=UTC)
        token = self.issuer.issue(self.claims, now=issued_at)

        payload = pyjwt.decode(token, options={"verify_signature": False})
        self.assertEqual(set(payload), {"_id", "name", "email", "iat", "exp"})
        self.assertEqual(payload["exp"] - payload["iat"], int(ACCESS_TOKEN_TTL.total_seconds()))
        self.assertEqual(ACCESS_TOKEN_TTL, timedelta(days=30))

    def test_token_is_valid_until_thirty_days_elapse(self) -> None:
        almost_expired = self.issuer.issue(self.claims, now=datetime.now(UTC) - timedelta(days=29, hours=23))
        expired = self.issuer.issue(self.claims, now=datetime.now(UTC) - timedelta(days=30, minutes=1))

        self.assertEqual(self.issuer.verify(almost_expired).user_id, "user-1")
        with self.assertRaises(ExpiredToken):
            self.issuer.verify(expired)

    def test_token_signed_with_other_secret_is_invalid(self) -> None:
        token = LocalTokenIssuer("another-secret-for-unit-tests-only").issue(self.claims)

        with self.assertRaises(InvalidToken):
            self.issuer.verify(token)

    def test_malformed_token_is_invalid(self) -> None:
        for token in ("", "garbage", "a.b.c"):
            with self.subTest(token=token), self.assertRaises(InvalidToken):
                self.issuer.verify(token)

    def test_unsigned_token_is_invalid(self) -> None:
        now = datetime.now(UTC)
        token = pyjwt.encode(
            {**self.claims.token_payload(), "iat": now, "exp": now + timedelta(days=1)},
            None,
            algorithm="none",
        )

        with self.assertRaises(InvalidToken):
            self.issuer.verify(token)

    def test_token_missing_identity_claims_is_invalid(self) -> None:
        now = datetime.now(UTC)
        token = pyjwt.encode({"name": "Ann", "iat": now, "exp": now + timedelta(days=1)}, SECRET, algorithm="HS256")

        with self.assertRaises(InvalidToken):
            self.issuer.verify(token)

    def test_async_verify_token_matches_verify(self) -> None:
        token = self.issuer.issue(self.claims)

        self.assertEqual(asyncio.run(self.issuer.verify_token(token)), self.claims)

    def test_empty_secret_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            LocalTokenIssuer("")


if __name__ == "__main__":
    unittest.main()
