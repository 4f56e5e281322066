"""Pydantic schemas for diagnosis notes."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from triage_catalog.schemas.diagnosis import CamelModel


class NoteCreate(CamelModel):
    """Request to add a note."""

    body: str = Field(..., min_length=2, max_length=4000)


class NoteUpdate(CamelModel):
    """Request to edit a note."""

    body: str = Field(..., min_length=2, max_length=4000)


class NoteRead(CamelModel):
    """Note response."""

    id: UUID
    diagnosis_id: UUID
    author_id: UUID
    author_name: str | None = None
    body: str
    created_at: datetime
    updated_at: datetime
