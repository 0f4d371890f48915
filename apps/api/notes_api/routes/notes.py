"""Note routes. Every operation is scoped to the authenticated owner."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from notes_api.routes.dependencies import CurrentUser, get_note_service
from notes_api.schemas.error import ErrorResponse
from notes_api.schemas.note import CreateNoteRequest, NoteListResponse, NoteResponse, UpdateNoteRequest
from notes_api.services.notes import NoteService

router = APIRouter(prefix="/notes", tags=["Notes"])

NoteId = Annotated[str, Path(alias="noteId")]
_NOT_FOUND = {404: {"model": ErrorResponse}}


@router.post(
    "",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_note(
    payload: CreateNoteRequest,
    user: CurrentUser,
    service: Annotated[NoteService, Depends(get_note_service)],
) -> NoteResponse:
    note = service.create_note(owner_id=user.id, title=payload.title, description=payload.description)
    return NoteResponse(message="A new note has been created", note=note)


@router.get("", response_model=NoteListResponse, responses={401: {"model": ErrorResponse}})
async def list_notes(
    user: CurrentUser,
    service: Annotated[NoteService, Depends(get_note_service)],
) -> NoteListResponse:
    notes = service.list_notes(owner_id=user.id)
    return NoteListResponse(total_results=len(notes), notes=notes)


@router.get("/{noteId}", response_model=NoteResponse, responses=_NOT_FOUND)
async def get_note(
    note_id: NoteId,
    user: CurrentUser,
    service: Annotated[NoteService, Depends(get_note_service)],
) -> NoteResponse:
    return NoteResponse(note=service.get_note(owner_id=user.id, note_id=note_id))


@router.put("/{noteId}", response_model=NoteResponse, responses={**_NOT_FOUND, 409: {"model": ErrorResponse}})
async def update_note(
    note_id: NoteId,
    payload: UpdateNoteRequest,
    user: CurrentUser,
    service: Annotated[NoteService, Depends(get_note_service)],
) -> NoteResponse:
    note = service.update_note(
        owner_id=user.id,
        note_id=note_id,
        changes=payload.model_dump(exclude_none=True),
    )
    return NoteResponse(message="Note has been updated!", note=note)


@router.delete("/{noteId}", response_model=NoteResponse, responses=_NOT_FOUND)
async def delete_note(
    note_id: NoteId,
    user: CurrentUser,
    service: Annotated[NoteService, Depends(get_note_service)],
) -> NoteResponse:
    return NoteResponse(message="Note has been deleted!", note=service.delete_note(owner_id=user.id, note_id=note_id))
