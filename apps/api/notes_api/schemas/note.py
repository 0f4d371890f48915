"""Note API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

TITLE_MAX_LENGTH = 128


class CreateNoteRequest(BaseModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = ""

    model_config = ConfigDict(str_strip_whitespace=True)


class UpdateNoteRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = None

    model_config = ConfigDict(str_strip_whitespace=True)


class Note(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    title: str
    description: str
    user: str
    created_at: datetime
    updated_at: datetime


class NoteResponse(BaseModel):
    success: bool = True
    message: str | None = None
    note: Note


class NoteListResponse(BaseModel):
    success: bool = True
    total_results: int
    notes: list[Note]
