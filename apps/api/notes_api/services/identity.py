"""Find-or-create-or-link resolution of federated identities into users."""

from __future__ import annotations

import logging

from notes_api.core.logging_safety import safe_log_identifier
from notes_api.repositories.memory import DuplicateKeyError, InMemoryStore, UserRecord
from notes_api.schemas.auth import FederatedClaims

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 64


class IdentityConflictError(Exception):
    """Resolution kept colliding with concurrent writes after one retry."""


def default_name(claims: FederatedClaims) -> str:
    """Display name for a new account: the claimed name, else the email local part."""
    name = (claims.name or "").strip() or claims.email.split("@", 1)[0]
    return name[:NAME_MAX_LENGTH]


class IdentityResolver:
    """Maps verified federated claims onto exactly one canonical user.

    Order matters to avoid duplicate accounts:

    1. one lookup by subject OR email; a subject match wins over an email match
    2. nothing matched: create a federated user, filling defaults for the name
       (email local part) and picture (none)
    3. matched a local-only user: link it, keeping its password hash
    4. matched a linked user: return it untouched, so profile edits survive
       later logins

    A unique-index violation means another request created or linked the same
    identity first; resolution is re-run once against the winner's record.
    """

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def resolve(self, claims: FederatedClaims) -> UserRecord:
        try:
            return self._resolve_once(claims)
        except DuplicateKeyError as exc:
            logger.info(
                "identity.conflict_retry subject=%s key=%s",
                safe_log_identifier(claims.subject, prefix="sub"),
                exc.key,
            )

        try:
            return self._resolve_once(claims)
        except DuplicateKeyError as exc:
            logger.error(
                "identity.conflict_unresolved subject=%s key=%s",
                safe_log_identifier(claims.subject, prefix="sub"),
                exc.key,
            )
            raise IdentityConflictError("Identity resolution conflicted twice") from exc

    def _resolve_once(self, claims: FederatedClaims) -> UserRecord:
        user = self._find_canonical(claims)
        if user is None:
            user = self._store.insert_user(
                name=default_name(claims),
                email=claims.email,
                provider="federated",
                federated_subject=claims.subject,
                picture=claims.picture,
            )
            logger.info(
                "identity.created user_id=%s subject=%s",
                safe_log_identifier(user.id, prefix="uid"),
                safe_log_identifier(claims.subject, prefix="sub"),
            )
            return user

        if user.federated_subject is None:
            linked = self._store.update_user(
                user.id,
                federated_subject=claims.subject,
                picture=claims.picture,
                provider="federated",
            )
            if linked is None:
                # Vanished between lookup and update; let the retry start over.
                raise DuplicateKeyError("id", user.id)
            logger.info(
                "identity.linked user_id=%s subject=%s kept_password=%s",
                safe_log_identifier(linked.id, prefix="uid"),
                safe_log_identifier(claims.subject, prefix="sub"),
                linked.password_hash is not None,
            )
            return linked

        return user

    def _find_canonical(self, claims: FederatedClaims) -> UserRecord | None:
        matches = self._store.find_users_by_subject_or_email(claims.subject, claims.email)
        by_subject = next((record for record in matches if record.federated_subject == claims.subject), None)
        by_email = next((record for record in matches if record is not by_subject), None)

        if by_subject is not None:
            if by_email is not None:
                logger.warning(
                    "identity.link_conflict subject_user_id=%s email_user_id=%s",
                    safe_log_identifier(by_subject.id, prefix="uid"),
                    safe_log_identifier(by_email.id, prefix="uid"),
                )
            return by_subject
        return by_email


__all__ = ["IdentityConflictError", "IdentityResolver", "default_name"]
