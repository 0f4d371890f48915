"""Note service layer."""

from uuid import UUID

from notes_api.errors import ApiError, not_found
from notes_api.repositories.memory import DuplicateKeyError, InMemoryStore, NoteRecord
from notes_api.schemas.note import Note


def _to_note(record: NoteRecord) -> Note:
    return Note(
        id=record.id,
        title=record.title,
        description=record.description,
        user=record.owner_id,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _validate_note_id(note_id: str) -> None:
    try:
        UUID(note_id)
    except ValueError as exc:
        raise ApiError(
            status_code=400,
            message=f"Id {note_id} in url parameter is not a valid note id",
        ) from exc


def _title_taken(exc: DuplicateKeyError) -> ApiError:
    return ApiError(status_code=409, message=f'A note titled "{exc.value}" already exists')


class NoteService:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def create_note(self, *, owner_id: str, title: str, description: str) -> Note:
        try:
            record = self._store.create_note(owner_id=owner_id, title=title, description=description)
        except DuplicateKeyError as exc:
            raise _title_taken(exc) from exc
        return _to_note(record)

    def list_notes(self, *, owner_id: str) -> list[Note]:
        return [_to_note(record) for record in self._store.list_notes_for_owner(owner_id)]

    def get_note(self, *, owner_id: str, note_id: str) -> Note:
        _validate_note_id(note_id)
        record = self._store.get_note_for_owner(owner_id=owner_id, note_id=note_id)
        if record is None:
            raise not_found("Note does not exist")
        return _to_note(record)

    def update_note(self, *, owner_id: str, note_id: str, changes: dict[str, str]) -> Note:
        _validate_note_id(note_id)
        try:
            record = self._store.update_note_for_owner(owner_id=owner_id, note_id=note_id, **changes)
        except DuplicateKeyError as exc:
            raise _title_taken(exc) from exc
        if record is None:
            raise not_found("Note does not exist")
        return _to_note(record)

    def delete_note(self, *, owner_id: str, note_id: str) -> Note:
        _validate_note_id(note_id)
        record = self._store.delete_note_for_owner(owner_id=owner_id, note_id=note_id)
        if record is None:
            raise not_found("Note does not exist")
        return _to_note(record)
