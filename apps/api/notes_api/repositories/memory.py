"""In-memory document store used by the API and tests.

Writes are serialised by a lock and checked against unique indexes the way a
database enforces unique constraints: a violating insert or update raises
``DuplicateKeyError`` and leaves the store untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from threading import RLock
from typing import Any, Literal
from uuid import uuid4

Provider = Literal["local", "federated"]
TitleScope = Literal["owner", "global"]

_USER_MUTABLE_FIELDS = frozenset({"name", "email", "password_hash", "federated_subject", "picture", "provider"})
_NOTE_MUTABLE_FIELDS = frozenset({"title", "description"})


class DuplicateKeyError(Exception):
    """Raised when a write would violate a unique index."""

    def __init__(self, key: str, value: Any) -> None:
        self.key = key
        self.value = value
        super().__init__(f"A field value already exists. Field: {key!r}, Value: {value!r}")


@dataclass(slots=True)
class UserRecord:
    id: str
    name: str
    email: str
    provider: Provider
    created_at: datetime
    updated_at: datetime
    password_hash: str | None = None
    federated_subject: str | None = None
    picture: str | None = None


@dataclass(slots=True)
class NoteRecord:
    id: str
    owner_id: str
    title: str
    description: str
    created_at: datetime
    updated_at: datetime


def _email_key(email: str) -> str:
    return email.strip().casefold()


@dataclass(slots=True)
class InMemoryStore:
    """Simple, deterministic persistence layer for users and notes."""

    note_title_scope: TitleScope = "owner"
    users: dict[str, UserRecord] = field(default_factory=dict)
    notes: dict[str, NoteRecord] = field(default_factory=dict)
    user_write_count: int = 0
    note_write_count: int = 0
    _lock: RLock = field(default_factory=RLock, repr=False)

    # Users

    def get_user(self, user_id: str) -> UserRecord | None:
        return self.users.get(user_id)

    def find_user_by_email(self, email: str) -> UserRecord | None:
        key = _email_key(email)
        for record in self.users.values():
            if _email_key(record.email) == key:
                return record
        return None

    def find_users_by_subject_or_email(self, subject: str | None, email: str | None) -> list[UserRecord]:
        """Return every user whose federated subject OR email matches, in one pass."""
        email_key = _email_key(email) if email else None
        with self._lock:
            return [
                record
                for record in self.users.values()
                if (subject and record.federated_subject == subject)
                or (email_key and _email_key(record.email) == email_key)
            ]

    def insert_user(
        self,
        *,
        name: str,
        email: str,
        provider: Provider,
        password_hash: str | None = None,
        federated_subject: str | None = None,
        picture: str | None = None,
    ) -> UserRecord:
        now = datetime.now(UTC)
        record = UserRecord(
            id=str(uuid4()),
            name=name,
            email=email.strip(),
            provider=provider,
            created_at=now,
            updated_at=now,
            password_hash=password_hash,
            federated_subject=federated_subject,
            picture=picture,
        )
        with self._lock:
            self._check_user_indexes(record)
            self.users[record.id] = record
            self.user_write_count += 1
        return record

    def update_user(self, user_id: str, **changes: Any) -> UserRecord | None:
        unknown = set(changes) - _USER_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)}")

        with self._lock:
            current = self.users.get(user_id)
            if current is None:
                return None
            updated = replace(current, **changes, updated_at=datetime.now(UTC))
            self._check_user_indexes(updated)
            self.users[user_id] = updated
            self.user_write_count += 1
        return updated

    def _check_user_indexes(self, candidate: UserRecord) -> None:
        email_key = _email_key(candidate.email)
        for record in self.users.values():
            if record.id == candidate.id:
                continue
            if _email_key(record.email) == email_key:
                raise DuplicateKeyError("email", candidate.email)
            if candidate.federated_subject and record.federated_subject == candidate.federated_subject:
                raise DuplicateKeyError("federated_subject", candidate.federated_subject)

    # Notes

    def create_note(self, *, owner_id: str, title: str, description: str = "") -> NoteRecord:
        now = datetime.now(UTC)
        record = NoteRecord(
            id=str(uuid4()),
            owner_id=owner_id,
            title=title,
            description=description,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._check_note_indexes(record)
            self.notes[record.id] = record
            self.note_write_count += 1
        return record

    def list_notes_for_owner(self, owner_id: str) -> list[NoteRecord]:
        notes = [record for record in reversed(self.notes.values()) if record.owner_id == owner_id]
        notes.sort(key=lambda record: record.created_at, reverse=True)
        return notes

    def get_note_for_owner(self, *, owner_id: str, note_id: str) -> NoteRecord | None:
        note = self.notes.get(note_id)
        if note is None or note.owner_id != owner_id:
            return None
        return note

    def update_note_for_owner(self, *, owner_id: str, note_id: str, **changes: Any) -> NoteRecord | None:
        unknown = set(changes) - _NOTE_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown note fields: {sorted(unknown)}")

        with self._lock:
            current = self.get_note_for_owner(owner_id=owner_id, note_id=note_id)
            if current is None:
                return None
            updated = replace(current, **changes, updated_at=datetime.now(UTC))
            self._check_note_indexes(updated)
            self.notes[note_id] = updated
            self.note_write_count += 1
        return updated

    def delete_note_for_owner(self, *, owner_id: str, note_id: str) -> NoteRecord | None:
        with self._lock:
            current = self.get_note_for_owner(owner_id=owner_id, note_id=note_id)
            if current is None:
                return None
            del self.notes[note_id]
            self.note_write_count += 1
        return current

    def _check_note_indexes(self, candidate: NoteRecord) -> None:
        for record in self.notes.values():
            if record.id == candidate.id or record.title != candidate.title:
                continue
            if self.note_title_scope == "global" or record.owner_id == candidate.owner_id:
                raise DuplicateKeyError("title", candidate.title)


__all__ = ["DuplicateKeyError", "InMemoryStore", "NoteRecord", "UserRecord"]
